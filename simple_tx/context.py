"""The transactional context contract and a reusable base implementation."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, NoReturn, Protocol, TypeVar

from simple_tx.saga.named_saga import NamedSaga
from simple_tx.schema import Err, Ok, StepFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransactionalContext(Protocol):
    """What a context must provide to run transactions."""

    def run_transaction(self, body: Callable[[Any], Any], **options: Any) -> Any:
        """Run ``body(self)`` in a transaction; ``Ok(result)`` on commit, ``Err(payload)`` on abort."""
        ...

    def abort(self, payload: Any) -> NoReturn:
        """Unwind to the enclosing ``run_transaction``, discarding its changes."""
        ...

    def run_saga(self, saga: NamedSaga) -> Any:
        """Run ``saga``; ``Ok(mapping)`` or a ``StepFailed`` marker."""
        ...


class Rollback(BaseException):
    """
    Signal raised by ``ContextBase.abort``.

    It derives from ``BaseException`` so that ``except Exception`` handlers in
    transaction code never swallow an abort.
    """

    def __init__(self, payload: Any) -> None:
        super().__init__(payload)
        self.payload = payload


class ContextBase(ABC):
    """
    Base class for transactional contexts.

    Subclasses wrap a concrete resource and implement the ``_begin``,
    ``_commit`` and ``_rollback`` hooks; this class takes care of the
    transaction bookkeeping.

    Nested ``run_transaction`` calls join the outermost transaction. An abort
    inside a nested call answers ``Err(payload)`` there and marks the outer
    transaction rollback-only: it is rolled back when the outermost body
    returns, and the outermost call answers ``Err`` with the first payload.
    """

    def __init__(self) -> None:
        self._depth = 0
        self._rollback_only: Rollback | None = None

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @abstractmethod
    def _begin(self, **options: Any) -> None:
        """Start a transaction on the underlying resource."""

    @abstractmethod
    def _commit(self) -> None:
        """Make the transaction's changes permanent."""

    @abstractmethod
    def _rollback(self) -> None:
        """Discard the transaction's changes."""

    def abort(self, payload: Any) -> NoReturn:
        raise Rollback(payload)

    def run_saga(self, saga: NamedSaga) -> Ok[dict[Any, Any]] | StepFailed:
        return saga.execute(self)

    def run_transaction(self, body: Callable[["ContextBase"], T], **options: Any) -> Ok[T] | Err[Any]:
        """
        Run ``body(self)`` inside a transaction.

        Args:
            body: Function of the context
            **options: Passed to ``_begin`` for the outermost transaction

        Returns:
            ``Ok(result)`` when the body returned normally, ``Err(payload)`` when
            it aborted

        Raises:
            Exception: Any exception raised by ``body``, after rolling back
        """
        if self.in_transaction:
            return self._run_nested(body)

        logger.debug(f"Beginning transaction on {type(self).__name__}")
        self._begin(**options)
        self._depth = 1
        try:
            result = body(self)
        except Rollback as signal:
            logger.debug(f"🔄 Rolling back: {signal.payload!r}")
            self._rollback()
            return Err(signal.payload)
        except BaseException:
            logger.exception("❌ Transaction body raised, rolling back")
            self._rollback()
            raise
        else:
            if self._rollback_only is not None:
                logger.debug(f"🔄 Rolling back rollback-only transaction: {self._rollback_only.payload!r}")
                self._rollback()
                return Err(self._rollback_only.payload)
            self._commit()
            logger.debug("✅ Transaction committed")
            return Ok(result)
        finally:
            self._depth = 0
            self._rollback_only = None

    def _run_nested(self, body: Callable[["ContextBase"], T]) -> Ok[T] | Err[Any]:
        self._depth += 1
        try:
            return Ok(body(self))
        except Rollback as signal:
            if self._rollback_only is None:
                self._rollback_only = signal
            return Err(signal.payload)
        finally:
            self._depth -= 1
