from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Any, Generic, TypeVar, Union

A = TypeVar("A")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[A]):
    """Successful outcome of a transaction."""

    value: A


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome of a transaction, carrying an opaque payload."""

    error: E


Outcome = Union[Ok[A], Err[Any]]


def is_outcome(value: Any) -> bool:
    return isinstance(value, (Ok, Err))


@dataclass(frozen=True)
class RollbackPolicy:
    """How a transaction reacts to failures and exceptions when executed."""

    rollback_on_failure: bool = True
    rollback_on_exception: bool = True

    def merge(self, **overrides: Any) -> "RollbackPolicy":
        """
        Return a copy with the given flags replaced.

        Args:
            **overrides: ``rollback_on_failure`` and/or ``rollback_on_exception``

        Returns:
            A new policy; flags passed as None keep their current value
        """
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})


DEFAULT_POLICY = RollbackPolicy()


@dataclass(frozen=True)
class StepResult:
    """Result of a saga step execution."""

    step_index: int
    step_name: Any
    result: Any


@dataclass(frozen=True)
class StepFailed:
    """Failure marker reported by a saga runner, naming the step that failed."""

    step_name: Any
    error: Any
    completed: tuple[StepResult, ...] = field(default_factory=tuple)

    @property
    def changes(self) -> dict[Any, Any]:
        """Results of the steps that completed before the failure."""
        return {step.step_name: step.result for step in self.completed}


@dataclass(frozen=True)
class SagaStep:
    """Represents a single named step of a saga."""

    name: Any
    action: Callable[[Any, Mapping[Any, Any]], Any]
