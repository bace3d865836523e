"""Rewriting a transaction block into nested composition.

Given the block::

    Ok(a) << tx_a(foo)
    Ok(b) << tx_b(a, foo)
    return Ok((a, b))

``desugar`` produces::

    def _tx_body(_tx_ctx):
        match _tx_run(_tx_ctx, tx_a(foo)):
            case Ok(a):
                match _tx_run(_tx_ctx, tx_b(a, foo)):
                    case Ok(b):
                        return _tx_run(_tx_ctx, Ok((a, b)))
                    case _tx_mismatch:
                        return _tx_mismatch
            case _tx_mismatch:
                return _tx_mismatch
    return _tx_new(_tx_body)

which behaves like ``new(lambda ctx: and_then(tx_a(foo), lambda a: ...))``.
"""

import ast
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from simple_tx.block.hygiene import Namer, collect_names, collect_targets
from simple_tx.block.ir import Bind, Let, Result, Statement
from simple_tx.block.parse import check_plain
from simple_tx.errors import DesugarError, UnmatchedClauseError
from simple_tx.schema import Ok
from simple_tx.tx.core import new, run


@dataclass(frozen=True)
class Expansion:
    """
    The rewritten block.

    Attributes:
        body: Statements replacing the body of the function holding the block
        bindings: Generated helper names mapped to the objects they must refer to
    """

    body: list[ast.stmt]
    bindings: dict[str, Any]


def desugar(
    statements: Sequence[Statement],
    else_clauses: Sequence[ast.match_case] | None = None,
    context_name: str | None = None,
    *,
    reserved: Iterable[str] = (),
    outer: Iterable[str] = (),
) -> Expansion:
    """
    Rewrite block statements into a transaction.

    Args:
        statements: Bind and plain statements, ending with a ``Result`` or a ``Bind``
        else_clauses: Cases handling a mismatched or failed bind
        context_name: Name of the context parameter, visible to the block;
            a fresh name is generated when omitted
        reserved: Names that generated code must not shadow, on top of those
            found in ``statements`` and ``else_clauses``
        outer: Names visible around the block; those the block reassigns start
            out with their outer value on every run

    Returns:
        The expansion; its body returns ``new(<body function>)``

    Raises:
        DesugarError: If the statements do not form a block
    """
    return _Desugarer(list(statements), list(else_clauses or ()), context_name, reserved, outer).expand()


def _name(identifier: str) -> ast.Name:
    return ast.Name(id=identifier, ctx=ast.Load())


def _function(name: str, param: str, body: list[ast.stmt], seeded: Iterable[str] = ()) -> ast.FunctionDef:
    defaults = "".join(f", {seed}={seed}" for seed in sorted(seeded))
    function = ast.parse(f"def {name}({param}" + (f", *{defaults}" if defaults else "") + "): pass").body[0]
    function.body = body
    return function


def _irrefutable(pattern: ast.pattern) -> bool:
    match pattern:
        case ast.MatchAs(pattern=None):
            return True
        case ast.MatchAs(pattern=inner):
            return _irrefutable(inner)
        case ast.MatchOr(patterns=patterns):
            return any(_irrefutable(alternative) for alternative in patterns)
    return False


def _nodes(statement: Statement) -> list[ast.AST]:
    match statement:
        case Bind(pattern, expr, None):
            return [pattern, expr]
        case Bind(pattern, expr, condition):
            return [pattern, expr, condition]
        case Let(node):
            return [node]
        case Result(expr):
            return [expr]
    raise DesugarError(f"Not a block statement: {statement!r}")


class _Desugarer:
    def __init__(
        self,
        statements: list[Statement],
        else_clauses: list[ast.match_case],
        context_name: str | None,
        reserved: Iterable[str],
        outer: Iterable[str],
    ) -> None:
        if not statements:
            raise DesugarError("A block needs at least a result expression")
        for statement in statements[:-1]:
            if isinstance(statement, Result):
                raise DesugarError("The result expression must be the last statement of a block")
        if isinstance(statements[-1], Let):
            raise DesugarError("A block must end with an expression")

        self.statements = statements
        self.else_clauses = else_clauses

        nodes = [node for statement in statements for node in _nodes(statement)]
        namer = Namer(reserved)
        namer.reserve(*collect_names(*nodes, *else_clauses))
        if context_name is not None:
            namer.reserve(context_name)

        self.run = namer.fresh("_tx_run")
        self.new = namer.fresh("_tx_new")
        self.ok = namer.fresh("_tx_ok")
        self.unmatched = namer.fresh("_tx_unmatched")
        self.ctx = context_name or namer.fresh("_tx_ctx")
        self.body = namer.fresh("_tx_body")
        self.mismatch = namer.fresh("_tx_mismatch")
        self.otherwise = namer.fresh("_tx_otherwise")
        self.out = namer.fresh("_tx_out")

        # Reassigned outer names are parameters of the generated functions, defaulting
        # to the outer value, so every run starts from the same bindings.
        outer = set(outer) - {self.ctx}
        self.seeded = collect_targets(*nodes) & outer
        self.seeded_otherwise = collect_targets(*else_clauses) & outer

    def expand(self) -> Expansion:
        inner: list[ast.stmt] = []
        if self.else_clauses:
            inner.append(self._otherwise_function())
        inner.extend(self._chain(self.statements))

        body = [
            _function(self.body, self.ctx, inner, self.seeded),
            ast.Return(value=ast.Call(func=_name(self.new), args=[_name(self.body)], keywords=[])),
        ]
        bindings = {self.run: run, self.new: new, self.ok: Ok, self.unmatched: UnmatchedClauseError}
        return Expansion(body=body, bindings=bindings)

    def _run(self, expr: ast.expr) -> ast.Call:
        return ast.Call(func=_name(self.run), args=[_name(self.ctx), expr], keywords=[])

    def _chain(self, statements: list[Statement]) -> list[ast.stmt]:
        head, rest = statements[0], statements[1:]
        match head:
            case Result(expr):
                return [ast.Return(value=self._run(expr))]
            case Let(node):
                return [node, *self._chain(rest)]
            case Bind(pattern, expr, condition):
                return [self._bind(pattern, self._subject(expr, condition), rest)]
        raise DesugarError(f"Not a block statement: {head!r}")

    def _subject(self, expr: ast.expr, condition: ast.expr | None) -> ast.Call:
        if condition is not None:
            nothing = ast.Call(func=_name(self.ok), args=[ast.Constant(value=None)], keywords=[])
            expr = ast.IfExp(test=condition, body=expr, orelse=nothing)
        return self._run(expr)

    def _bind(self, pattern: ast.pattern, subject: ast.expr, rest: list[Statement]) -> ast.Match:
        if rest:
            cases = [ast.match_case(pattern=pattern, guard=None, body=self._chain(rest))]
        else:
            # The trailing bind is the result; pass the matched outcome through.
            passthrough = ast.MatchAs(pattern=pattern, name=self.out)
            cases = [ast.match_case(pattern=passthrough, guard=None, body=[ast.Return(value=_name(self.out))])]

        if not _irrefutable(pattern):
            if self.else_clauses:
                fallthrough = ast.Call(func=_name(self.otherwise), args=[_name(self.mismatch)], keywords=[])
            else:
                fallthrough = _name(self.mismatch)
            capture = ast.MatchAs(pattern=None, name=self.mismatch)
            cases.append(ast.match_case(pattern=capture, guard=None, body=[ast.Return(value=fallthrough)]))

        return ast.Match(subject=subject, cases=cases)

    def _otherwise_function(self) -> ast.FunctionDef:
        cases = [self._clause(case) for case in self.else_clauses]

        last = self.else_clauses[-1]
        if last.guard is not None or not _irrefutable(last.pattern):
            unmatched = ast.Call(func=_name(self.unmatched), args=[_name(self.mismatch)], keywords=[])
            cases.append(
                ast.match_case(
                    pattern=ast.MatchAs(pattern=None, name=None),
                    guard=None,
                    body=[ast.Raise(exc=unmatched, cause=None)],
                )
            )

        match_ = ast.Match(subject=_name(self.mismatch), cases=cases)
        return _function(self.otherwise, self.mismatch, [match_], self.seeded_otherwise)

    def _clause(self, case: ast.match_case) -> ast.match_case:
        *init, last = case.body
        for node in init:
            check_plain(node)

        match last:
            case ast.Return(value=ast.expr() as value) | ast.Expr(value=value):
                last = ast.copy_location(ast.Return(value=self._run(value)), last)
            case ast.Raise():
                pass
            case _:
                raise DesugarError(f"An else clause must end with an expression: {ast.unparse(last)!r}")

        return ast.match_case(pattern=case.pattern, guard=case.guard, body=[*init, last])
