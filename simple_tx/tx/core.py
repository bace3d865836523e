"""Composable transaction values and their combinators."""

import inspect
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from simple_tx.errors import TxFailedError
from simple_tx.saga.named_saga import NamedSaga, run_saga
from simple_tx.schema import Err, Ok, Outcome, RollbackPolicy, is_outcome

A = TypeVar("A")
B = TypeVar("B")

_MISSING = object()


class Tx(Generic[A]):
    """
    A deferred computation against a transactional context.

    A ``Tx`` describes work; nothing happens until it is run against a
    context, usually through ``execute``. Composition always builds a new
    value, so a ``Tx`` can be shared and reused freely.

    The concrete shapes are ``FnTx``, ``LiteralTx`` and ``SagaTx``; use
    ``to_tx`` to lift anything ``run`` accepts.

    Example:
        create_pair = (
            create_user("alice")
            .and_then(lambda user: create_profile(user))
            .map(lambda profile: profile.id)
        )
        execute(create_pair, ctx)  # Ok(42) or Err(...)
    """

    __slots__ = ()

    def map(self, fn: Callable[[A], B]) -> "Tx[B]":
        return fmap(self, fn)

    def and_then(self, fn: Callable[[A], Any]) -> "Tx[Any]":
        return and_then(self, fn)

    def or_else(self, recover: Callable[..., Any]) -> "Tx[Any]":
        return or_else(self, recover)

    def optional(self) -> "Tx[A | None]":
        return make_optional(self)

    def concat(self, other: Any) -> "Tx[tuple[A, Any]]":
        return concat(self, other)

    def run(self, ctx: Any) -> Outcome[A]:
        return run(ctx, self)

    def execute(self, ctx: Any, policy: RollbackPolicy | None = None, **options: Any) -> Outcome[A]:
        from simple_tx.tx.execute import execute

        return execute(self, ctx, policy, **options)


@dataclass(frozen=True)
class FnTx(Tx[A]):
    """A function of the context returning ``Ok`` or ``Err``."""

    fn: Callable[[Any], Outcome[A]]


@dataclass(frozen=True)
class LiteralTx(Tx[A]):
    """An outcome that is already known."""

    outcome: Outcome[A]


@dataclass(frozen=True)
class SagaTx(Tx[dict[Any, Any]]):
    """A named saga, run through the context's own saga runner."""

    saga: NamedSaga


@dataclass(frozen=True)
class ThunkTx(Tx[A]):
    """A zero-argument function building the transaction to run, called at run time."""

    thunk: Callable[[], Any]


def _is_thunk(value: Any) -> bool:
    if not callable(value) or isinstance(value, type):
        return False
    try:
        inspect.signature(value).bind()
    except (TypeError, ValueError):
        return False
    return True


def to_tx(value: Any) -> Tx[Any]:
    """
    Lift anything ``run`` accepts into a ``Tx``.

    Literal ``Ok``/``Err`` values are always composable. A list becomes the
    ``concat`` of its elements, and a function callable without arguments is
    deferred until run time.

    Raises:
        TypeError: If ``value`` is none of the supported shapes
    """
    match value:
        case Tx():
            return value
        case Ok() | Err():
            return LiteralTx(value)
        case NamedSaga():
            return SagaTx(value)
        case list():
            return concat(value)
        case _ if _is_thunk(value):
            return ThunkTx(value)
    raise TypeError(f"Cannot use {value!r} as a transaction")


def new(fn: Callable[[Any], Outcome[A]]) -> Tx[A]:
    """Wrap a function of the context as a transaction."""
    if not callable(fn):
        raise TypeError(f"Expected a function of the context, got {fn!r}")
    return FnTx(fn)


def pure(value: A) -> Tx[A]:
    return LiteralTx(Ok(value))


def new_error(error: Any) -> Tx[Any]:
    return LiteralTx(Err(error))


def run(ctx: Any, value: Any) -> Outcome[Any]:
    """
    Run a transaction against ``ctx`` and return its outcome.

    Args:
        ctx: The transactional context
        value: A ``Tx``, a literal ``Ok``/``Err``, a ``NamedSaga`` or a list of those

    Returns:
        ``Ok`` or ``Err``

    Raises:
        TypeError: If ``value`` is not a transaction, or a transaction function
            returns something other than ``Ok`` or ``Err``
    """
    match to_tx(value):
        case FnTx(fn):
            outcome = fn(ctx)
            if not is_outcome(outcome):
                raise TypeError(f"Transaction function {fn!r} must return Ok or Err, got {outcome!r}")
            return outcome
        case LiteralTx(outcome):
            return outcome
        case SagaTx(saga):
            return run_saga(ctx, saga)
        case ThunkTx(thunk):
            return run(ctx, thunk())
        case other:
            raise TypeError(f"Unsupported transaction {other!r}")


def run_or_raise(ctx: Any, value: Any) -> Any:
    """
    Run a transaction and unwrap its success value.

    Raises:
        BaseException: The failure payload itself when it is an exception
        TxFailedError: Wrapping any other failure payload
    """
    match run(ctx, value):
        case Ok(result):
            return result
        case Err(BaseException() as exc):
            raise exc
        case Err(error):
            raise TxFailedError(error)


def fmap(tx: Any, fn: Callable[[Any], B]) -> Tx[B]:
    """Apply ``fn`` to the success value; failures pass through and ``fn`` is not called."""
    tx = to_tx(tx)

    def body(ctx: Any) -> Outcome[B]:
        match run(ctx, tx):
            case Ok(value):
                return Ok(fn(value))
            case failure:
                return failure

    return new(body)


def and_then(tx: Any, fn: Callable[[Any], Any]) -> Tx[Any]:
    """
    Sequence ``tx`` with a transaction built from its success value.

    On ``Ok(a)`` the transaction ``fn(a)`` runs against the same context. On
    ``Err`` the chain stops and ``fn`` is never called.
    """
    tx = to_tx(tx)

    def body(ctx: Any) -> Outcome[Any]:
        match run(ctx, tx):
            case Ok(value):
                return run(ctx, fn(value))
            case failure:
                return failure

    return new(body)


def _takes_error(recover: Callable[..., Any]) -> bool:
    try:
        signature = inspect.signature(recover)
    except (TypeError, ValueError):
        return True
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(param.kind in positional for param in signature.parameters.values())


def or_else(tx: Any, recover: Callable[..., Any]) -> Tx[Any]:
    """
    Replace a failed transaction with a fallback.

    ``recover`` receives the failure payload, or nothing when it takes no
    positional arguments, and returns the transaction to run instead.
    """
    tx = to_tx(tx)
    takes_error = _takes_error(recover)

    def body(ctx: Any) -> Outcome[Any]:
        match run(ctx, tx):
            case Err(error):
                return run(ctx, recover(error) if takes_error else recover())
            case success:
                return success

    return new(body)


def make_optional(tx: Any) -> Tx[Any]:
    """Turn any failure into ``Ok(None)``."""
    return or_else(tx, lambda: pure(None))


def concat(first: Any, second: Any = _MISSING) -> Tx[Any]:
    """
    Run transactions one after the other against the same context.

    ``concat(a, b)`` yields ``Ok((a_value, b_value))``; ``concat([t1, ..., tn])``
    yields ``Ok([v1, ..., vn])``. The first failure is returned as is and no
    later transaction runs.
    """
    if second is not _MISSING:
        return _concat_pair(to_tx(first), to_tx(second))
    if not isinstance(first, list):
        raise TypeError(f"concat expects two transactions or a list, got {first!r}")
    return _concat_list([to_tx(item) for item in first])


def _concat_pair(first: Tx[A], second: Tx[B]) -> Tx[tuple[A, B]]:
    def body(ctx: Any) -> Outcome[tuple[A, B]]:
        match run(ctx, first):
            case Ok(first_value):
                pass
            case failure:
                return failure
        match run(ctx, second):
            case Ok(second_value):
                return Ok((first_value, second_value))
            case failure:
                return failure

    return new(body)


def _concat_list(txs: list[Tx[Any]]) -> Tx[list[Any]]:
    if not txs:
        return pure([])

    def body(ctx: Any) -> Outcome[list[Any]]:
        values = []
        for tx in txs:
            match run(ctx, tx):
                case Ok(value):
                    values.append(value)
                case failure:
                    return failure
        return Ok(values)

    return new(body)
