from .core import (
    FnTx,
    LiteralTx,
    SagaTx,
    ThunkTx,
    Tx,
    and_then,
    concat,
    fmap,
    make_optional,
    new,
    new_error,
    or_else,
    pure,
    run,
    run_or_raise,
    to_tx,
)
from .execute import execute
from .control import (
    disable_rollback_on_exception,
    enable_rollback_on_failure,
    rollback,
    rollback_on_exception,
    rollback_on_failure,
    with_policy,
)

__all__ = [
    "Tx",
    "FnTx",
    "LiteralTx",
    "SagaTx",
    "ThunkTx",
    "and_then",
    "concat",
    "fmap",
    "make_optional",
    "new",
    "new_error",
    "or_else",
    "pure",
    "run",
    "run_or_raise",
    "to_tx",
    "execute",
    "disable_rollback_on_exception",
    "enable_rollback_on_failure",
    "rollback",
    "rollback_on_exception",
    "rollback_on_failure",
    "with_policy",
]
