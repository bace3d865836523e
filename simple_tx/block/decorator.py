"""The ``tx_block`` decorator: direct-style transaction blocks."""

import ast
import functools
import inspect
import logging
import textwrap
import types
from collections.abc import Callable
from typing import Any

from simple_tx.block.hygiene import collect_names
from simple_tx.block.parse import parse_block
from simple_tx.block.transform import desugar
from simple_tx.errors import DesugarError

logger = logging.getLogger(__name__)


class _Otherwise:
    """Subject of the ``match`` holding a block's else clauses. Never evaluated."""

    def __repr__(self) -> str:
        return "otherwise"


otherwise = _Otherwise()


def tx_block(func: Callable[..., Any] | None = None, *, context: str | None = None) -> Any:
    """
    Turn a function written in direct style into a function returning a ``Tx``.

    Each ``pattern << expr`` statement runs ``expr`` against the transaction
    context and matches the outcome against ``pattern``; a failure or a
    mismatch ends the block with that outcome, or hands it to the else
    clauses. The last statement is the result and is run against the context
    too.

    Example:
        @tx_block
        def create_pair(name):
            Ok(user) << create_user(name)
            Ok(profile) << create_profile(user)
            return Ok((user, profile))

        @tx_block(context="repo")
        def create_audited(name):
            Ok(user) << create_user(name)
            audit = repo.log(f"created {user.id}")
            return Ok(audit)
            match otherwise:
                case Err(ValueError() as e):
                    return Err(str(e))
                case other:
                    return other

        execute(create_pair("alice"), ctx)

    The function is recompiled when decorated, so ``tx_block`` must be its
    innermost decorator and its source must be available.

    Args:
        func: The function to rewrite
        context: Name under which the block can use the context directly

    Returns:
        The rewritten function, or a decorator when called with options only

    Raises:
        DesugarError: If the function body is not a valid block
    """
    if func is None:
        return functools.partial(tx_block, context=context)
    return _rewrite(func, context)


def _source(func: Callable[..., Any]) -> tuple[ast.FunctionDef, int]:
    try:
        lines, first_line = inspect.getsourcelines(func)
    except (OSError, TypeError) as e:
        raise DesugarError(f"Source of {func.__qualname__} is not available") from e

    tree = ast.parse(textwrap.dedent("".join(lines)))
    function = tree.body[0]
    if not isinstance(function, ast.FunctionDef):
        raise DesugarError(f"{func.__qualname__} must be a plain function")
    return function, first_line


def _strip_signature(function: ast.FunctionDef) -> None:
    arguments = function.args
    for arg in (*arguments.posonlyargs, *arguments.args, *arguments.kwonlyargs, arguments.vararg, arguments.kwarg):
        if arg is not None:
            arg.annotation = None
    arguments.defaults = []
    arguments.kw_defaults = [None] * len(arguments.kwonlyargs)
    function.returns = None


def _parameters(function: ast.FunctionDef) -> list[str]:
    arguments = function.args
    named = [*arguments.posonlyargs, *arguments.args, *arguments.kwonlyargs, arguments.vararg, arguments.kwarg]
    return [arg.arg for arg in named if arg is not None]


def _rewrite(func: Callable[..., Any], context: str | None) -> Callable[..., Any]:
    function, first_line = _source(func)
    block = parse_block(function)
    outer = {*_parameters(function), *func.__code__.co_freevars, *func.__globals__}
    expansion = desugar(
        block.statements,
        block.else_clauses,
        context,
        reserved=collect_names(function),
        outer=outer,
    )

    function.body = [block.docstring, *expansion.body] if block.docstring else expansion.body
    function.decorator_list = []
    # Annotations and defaults are restored from the original function.
    _strip_signature(function)

    # A nested function referring to itself resolves to the rewritten one.
    closure = dict(zip(func.__code__.co_freevars, func.__closure__ or ()))
    closure.pop(function.name, None)
    freevars = list(closure)
    factory = ast.parse(f"def _tx_factory({', '.join([*expansion.bindings, *freevars])}): pass").body[0]
    factory.body = [function, ast.Return(value=ast.Name(id=function.name, ctx=ast.Load()))]

    tree = ast.Module(body=[factory], type_ignores=[])
    ast.fix_missing_locations(tree)
    ast.increment_lineno(tree, first_line - 1)

    filename = inspect.getsourcefile(func) or "<tx_block>"
    code = compile(tree, filename, "exec")
    factory_code = next(const for const in code.co_consts if isinstance(const, types.CodeType))

    try:
        captured = [cell.cell_contents for cell in closure.values()]
    except ValueError as e:
        raise DesugarError(f"{func.__qualname__} uses a variable that is not bound yet") from e

    rewritten = types.FunctionType(factory_code, func.__globals__)(*expansion.bindings.values(), *captured)
    rewritten.__defaults__ = func.__defaults__
    rewritten.__kwdefaults__ = func.__kwdefaults__
    rewritten.__annotations__ = func.__annotations__
    rewritten.__qualname__ = func.__qualname__
    rewritten.__module__ = func.__module__
    rewritten.__dict__.update(func.__dict__)

    logger.debug(f"Rewrote {func.__qualname__} from {filename}:{first_line}")
    return rewritten
