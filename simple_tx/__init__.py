"""Simple composable transactions for Python.

A lightweight alternative to named-step sagas: transactions are values that
compose through plain functions, so no step name can ever collide.
"""

from .block import otherwise, tx_block
from .context import ContextBase, Rollback, TransactionalContext
from .errors import DesugarError, DuplicateStepError, TxError, TxFailedError, UnmatchedClauseError
from .saga import NamedSaga, run_saga
from .saga.adapter import to_saga
from .schema import DEFAULT_POLICY, Err, Ok, Outcome, RollbackPolicy, SagaStep, StepFailed, StepResult
from .tx import (
    FnTx,
    LiteralTx,
    SagaTx,
    ThunkTx,
    Tx,
    and_then,
    concat,
    disable_rollback_on_exception,
    enable_rollback_on_failure,
    execute,
    fmap,
    make_optional,
    new,
    new_error,
    or_else,
    pure,
    rollback,
    rollback_on_exception,
    rollback_on_failure,
    run,
    run_or_raise,
    to_tx,
    with_policy,
)

__version__ = "0.1.0"
__all__ = [
    "Tx",
    "FnTx",
    "LiteralTx",
    "SagaTx",
    "ThunkTx",
    "Ok",
    "Err",
    "Outcome",
    "new",
    "pure",
    "new_error",
    "fmap",
    "and_then",
    "or_else",
    "make_optional",
    "concat",
    "run",
    "run_or_raise",
    "to_tx",
    "execute",
    "rollback",
    "enable_rollback_on_failure",
    "disable_rollback_on_exception",
    "rollback_on_failure",
    "rollback_on_exception",
    "with_policy",
    "RollbackPolicy",
    "DEFAULT_POLICY",
    "NamedSaga",
    "SagaStep",
    "StepResult",
    "StepFailed",
    "run_saga",
    "to_saga",
    "TransactionalContext",
    "ContextBase",
    "Rollback",
    "tx_block",
    "otherwise",
    "TxError",
    "TxFailedError",
    "DuplicateStepError",
    "DesugarError",
    "UnmatchedClauseError",
]
