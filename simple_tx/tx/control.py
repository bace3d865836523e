"""Wrappers deciding how a transaction reacts to failures and exceptions."""

import logging
from typing import Any, NoReturn

from simple_tx.schema import Err, Ok, Outcome, RollbackPolicy
from simple_tx.tx.core import Tx, new, run, to_tx

logger = logging.getLogger(__name__)


def rollback(ctx: Any, error: Any) -> NoReturn:
    """Abort the enclosing transaction of ``ctx`` with ``error``."""
    ctx.abort(error)
    raise AssertionError(f"{type(ctx).__name__}.abort() returned")


def enable_rollback_on_failure(tx: Any) -> Tx[Any]:
    """Abort the transaction instead of returning ``Err``."""
    tx = to_tx(tx)

    def body(ctx: Any) -> Outcome[Any]:
        match run(ctx, tx):
            case Ok() as success:
                return success
            case Err(error):
                logger.debug(f"Rolling back on failure: {error!r}")
                rollback(ctx, error)

    return new(body)


def disable_rollback_on_exception(tx: Any) -> Tx[Any]:
    """
    Turn an exception raised while running ``tx`` into ``Err(exception)``.

    Only ``Exception`` subclasses are caught, so an abort signal still unwinds
    the transaction.
    """
    tx = to_tx(tx)

    def body(ctx: Any) -> Outcome[Any]:
        try:
            return run(ctx, tx)
        except Exception as e:
            logger.warning(f"⚠️ Exception converted to failure: {e!r}")
            return Err(e)

    return new(body)


def rollback_on_failure(tx: Any, enabled: bool = True) -> Tx[Any]:
    return enable_rollback_on_failure(tx) if enabled else to_tx(tx)


def rollback_on_exception(tx: Any, enabled: bool = True) -> Tx[Any]:
    return to_tx(tx) if enabled else disable_rollback_on_exception(tx)


def with_policy(tx: Any, policy: RollbackPolicy) -> Tx[Any]:
    """
    Apply both rollback wrappers according to ``policy``.

    Args:
        tx: The transaction to wrap
        policy: Which failures and exceptions roll back the transaction

    Returns:
        The wrapped transaction, with exception handling outermost so that a
        failure-triggered abort is never intercepted
    """
    tx = rollback_on_failure(tx, policy.rollback_on_failure)
    return rollback_on_exception(tx, policy.rollback_on_exception)
