"""Embedding transactions into named sagas."""

from typing import Any

from simple_tx.saga.named_saga import NamedSaga
from simple_tx.tx.execute import execute


def to_saga(tx: Any, name: Any) -> NamedSaga:
    """
    Build a one-step saga running ``tx`` under ``name``.

    The step ignores the results of earlier steps and records the outcome of
    ``execute(tx, ctx)``.

    Example:
        saga = existing_saga.append(to_saga(create_user("alice"), "user"))
    """

    def action(ctx: Any, _changes: Any) -> Any:
        return execute(tx, ctx)

    return NamedSaga().step(name, action)
