"""Running transactions inside the context's transaction primitive."""

import logging
from typing import Any

from simple_tx.schema import DEFAULT_POLICY, Err, Ok, Outcome, RollbackPolicy, StepFailed, is_outcome
from simple_tx.tx.core import run, to_tx
from simple_tx.tx.control import with_policy

logger = logging.getLogger(__name__)

POLICY_OPTIONS = ("rollback_on_failure", "rollback_on_exception")


def split_options(policy: RollbackPolicy, options: dict[str, Any]) -> tuple[RollbackPolicy, dict[str, Any]]:
    """
    Separate rollback flags from options meant for the context.

    Args:
        policy: The policy the flags override
        options: Keyword options given to ``execute``

    Returns:
        The effective policy and the remaining options, untouched
    """
    overrides = {key: options[key] for key in POLICY_OPTIONS if key in options}
    passthrough = {key: value for key, value in options.items() if key not in POLICY_OPTIONS}
    return policy.merge(**overrides), passthrough


def normalize(result: Any) -> Outcome[Any]:
    """
    Flatten whatever the transaction primitive reported into one outcome.

    Raises:
        TypeError: If ``result`` has none of the known shapes
    """
    match result:
        case Ok(inner) if is_outcome(inner):
            return inner
        case StepFailed(error=error):
            return Err(error)
        case Err():
            return result
    raise TypeError(f"Unexpected transaction result: {result!r}")


def execute(tx: Any, ctx: Any, policy: RollbackPolicy | None = None, **options: Any) -> Outcome[Any]:
    """
    Run ``tx`` as one transaction of ``ctx``.

    The rollback wrappers are applied once around the whole transaction, so a
    composed transaction shares a single rollback decision.

    Args:
        tx: Anything ``run`` accepts
        ctx: The transactional context
        policy: Rollback policy, ``DEFAULT_POLICY`` when omitted
        **options: ``rollback_on_failure`` and ``rollback_on_exception`` override
            ``policy``; everything else is passed to ``ctx.run_transaction``

    Returns:
        ``Ok(value)`` or ``Err(payload)``

    Raises:
        Exception: Any exception raised by the transaction, unless
            ``rollback_on_exception`` is disabled
    """
    policy, passthrough = split_options(policy or DEFAULT_POLICY, options)
    wrapped = with_policy(to_tx(tx), policy)

    logger.debug(f"Executing transaction with {policy}")
    result = normalize(ctx.run_transaction(lambda inner: run(inner, wrapped), **passthrough))

    match result:
        case Ok():
            logger.debug("Transaction completed")
        case Err(error):
            logger.debug(f"Transaction failed: {error!r}")
    return result
