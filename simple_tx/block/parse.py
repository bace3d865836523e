"""Reading a transaction block out of a function definition.

Inside a block:

- ``pattern << expr`` is a bind statement;
- ``if cond: pattern << expr`` (no ``else``) is a conditional bind statement;
- the last statement, ``return expr`` or a bare expression, is the result;
- an optional trailing ``match otherwise:`` holds the else clauses;
- anything else is an ordinary statement.
"""

import ast
from collections.abc import Iterator

from simple_tx.block.ir import Bind, Block, Let, Result, Statement
from simple_tx.errors import DesugarError

OTHERWISE = "otherwise"

_NESTED_SCOPES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)


def _error(node: ast.AST, message: str) -> DesugarError:
    return DesugarError(f"{message}: {ast.unparse(node)!r}")


def to_pattern(node: ast.expr) -> ast.pattern:
    """
    Read an expression written in pattern position as a ``match`` pattern.

    ``Ok(a)`` becomes a class pattern, bare names become captures (``_`` is the
    wildcard), dotted names and literals become value patterns, ``x | y``
    becomes an or-pattern and ``(name := pattern)`` an as-pattern.

    Raises:
        DesugarError: If the expression has no pattern reading
    """
    match node:
        case ast.Name(id="_"):
            pattern = ast.MatchAs(pattern=None, name=None)
        case ast.Name(id=name):
            pattern = ast.MatchAs(pattern=None, name=name)
        case ast.Attribute():
            pattern = ast.MatchValue(value=node)
        case ast.Constant(value=None | True | False):
            pattern = ast.MatchSingleton(value=node.value)
        case ast.Constant(value=str() | bytes() | int() | float() | complex()):
            pattern = ast.MatchValue(value=node)
        case ast.UnaryOp(op=ast.USub(), operand=ast.Constant(value=int() | float() | complex())):
            pattern = ast.MatchValue(value=node)
        case ast.Tuple(elts=elts) | ast.List(elts=elts):
            pattern = ast.MatchSequence(patterns=[_element_pattern(elt) for elt in elts])
        case ast.Dict():
            pattern = _mapping_pattern(node)
        case ast.Call(func=ast.Name() | ast.Attribute() as cls, args=args, keywords=keywords):
            if any(isinstance(arg, ast.Starred) for arg in args) or any(kw.arg is None for kw in keywords):
                raise _error(node, "Unpacking is not allowed in a class pattern")
            pattern = ast.MatchClass(
                cls=cls,
                patterns=[to_pattern(arg) for arg in args],
                kwd_attrs=[kw.arg for kw in keywords],
                kwd_patterns=[to_pattern(kw.value) for kw in keywords],
            )
        case ast.BinOp(op=ast.BitOr(), left=left, right=right):
            pattern = ast.MatchOr(patterns=[*_alternatives(left), *_alternatives(right)])
        case ast.NamedExpr(target=ast.Name(id=name), value=value):
            pattern = ast.MatchAs(pattern=to_pattern(value), name=name)
        case _:
            raise _error(node, "Not a valid pattern")
    return ast.copy_location(pattern, node)


def _element_pattern(node: ast.expr) -> ast.pattern:
    match node:
        case ast.Starred(value=ast.Name(id=name)):
            return ast.copy_location(ast.MatchStar(name=None if name == "_" else name), node)
        case ast.Starred():
            raise _error(node, "Only a name can be starred in a sequence pattern")
    return to_pattern(node)


def _alternatives(node: ast.expr) -> list[ast.pattern]:
    match to_pattern(node):
        case ast.MatchOr(patterns=patterns):
            return patterns
        case pattern:
            return [pattern]


def _mapping_pattern(node: ast.Dict) -> ast.MatchMapping:
    keys: list[ast.expr] = []
    patterns: list[ast.pattern] = []
    rest = None
    for index, (key, value) in enumerate(zip(node.keys, node.values)):
        if key is None:
            if index != len(node.keys) - 1 or not isinstance(value, ast.Name):
                raise _error(node, "Only a trailing **name is allowed in a mapping pattern")
            rest = value.id
            continue
        if not isinstance(to_pattern(key), (ast.MatchValue, ast.MatchSingleton)):
            raise _error(key, "Mapping pattern keys must be literals or dotted names")
        keys.append(key)
        patterns.append(to_pattern(value))
    return ast.MatchMapping(keys=keys, patterns=patterns, rest=rest)


def _as_bind(node: ast.stmt) -> Bind | None:
    match node:
        case ast.Expr(value=ast.BinOp(op=ast.LShift(), left=left, right=right)):
            return Bind(pattern=to_pattern(left), expr=right)
        case ast.If(test=test, body=[ast.Expr(value=ast.BinOp(op=ast.LShift(), left=left, right=right))], orelse=[]):
            return Bind(pattern=to_pattern(left), expr=right, condition=test)
    return None


def _nested(node: ast.AST) -> Iterator[ast.AST]:
    for child in ast.iter_child_nodes(node):
        if isinstance(child, _NESTED_SCOPES):
            continue
        yield child
        yield from _nested(child)


def check_plain(node: ast.stmt) -> None:
    """
    Reject statements that would escape the block's control flow.

    Raises:
        DesugarError: On ``return``, ``yield`` or ``await`` outside a nested
            scope, or on a bind statement below the top level of the block
    """
    for child in (node, *_nested(node)):
        match child:
            case ast.Return():
                raise _error(child, "return is only allowed as the last statement of a block")
            case ast.Yield() | ast.YieldFrom() | ast.Await():
                raise _error(child, "Blocks cannot suspend")
            case ast.Expr(value=ast.BinOp(op=ast.LShift())) if child is not node:
                raise _error(child, "Bind statements are only allowed at the top level of a block")


def _statement(node: ast.stmt) -> Statement:
    bind = _as_bind(node)
    if bind is not None:
        return bind
    check_plain(node)
    return Let(node=node)


def _final(node: ast.stmt) -> Statement:
    bind = _as_bind(node)
    if bind is not None:
        return bind
    match node:
        case ast.Return(value=None):
            raise _error(node, "A block must return a value")
        case ast.Return(value=value) | ast.Expr(value=value):
            for child in (value, *_nested(value)):
                if isinstance(child, (ast.Yield, ast.YieldFrom, ast.Await)):
                    raise _error(child, "Blocks cannot suspend")
            return Result(expr=value)
    raise _error(node, "A block must end with an expression")


def _is_docstring(node: ast.stmt) -> bool:
    return isinstance(node, ast.Expr) and isinstance(node.value, ast.Constant) and isinstance(node.value.value, str)


def _is_otherwise(node: ast.stmt) -> bool:
    return isinstance(node, ast.Match) and isinstance(node.subject, ast.Name) and node.subject.id == OTHERWISE


def parse_block(function: ast.FunctionDef) -> Block:
    """
    Split a function body into block statements.

    Raises:
        DesugarError: If the body is not a valid block
    """
    body = list(function.body)

    docstring = None
    if len(body) > 1 and _is_docstring(body[0]):
        docstring = body.pop(0)

    else_clauses: list[ast.match_case] = []
    if body and _is_otherwise(body[-1]):
        else_clauses = body.pop().cases

    if not body:
        raise DesugarError(f"Block {function.name!r} has no result expression")

    *init, last = body
    statements = [_statement(node) for node in init]
    statements.append(_final(last))
    return Block(statements=statements, else_clauses=else_clauses, docstring=docstring)
