"""Ordered collection of named transaction steps."""

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from simple_tx.errors import DuplicateStepError
from simple_tx.schema import Err, Ok, SagaStep, StepFailed, StepResult

logger = logging.getLogger(__name__)


class NamedSaga:
    """
    An ordered, immutable sequence of named steps sharing one context.

    Each step is a function of ``(ctx, changes)`` returning ``Ok`` or ``Err``,
    where ``changes`` maps the names of the steps run so far to their results.
    Step names are global to the saga, so composing sagas built in different
    places can collide; ``Tx`` values avoid that by passing results as plain
    values instead.

    Example:
        saga = (
            NamedSaga()
            .step("order", lambda ctx, _: create_order(ctx, "ORDER-123"))
            .step("invoice", lambda ctx, changes: create_invoice(ctx, changes["order"]))
        )
        ctx.run_saga(saga)  # Ok({"order": ..., "invoice": ...})
    """

    def __init__(self, steps: Iterable[SagaStep] = ()) -> None:
        """
        Initialize a saga from already built steps.

        Args:
            steps: Steps in execution order

        Raises:
            DuplicateStepError: If two steps share a name
        """
        self._steps: tuple[SagaStep, ...] = ()
        for step in steps:
            self._steps = self._with(step)

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, name: Any) -> bool:
        return any(step.name == name for step in self._steps)

    def __repr__(self) -> str:
        return f"NamedSaga(names={self.names!r})"

    @property
    def names(self) -> list[Any]:
        return [step.name for step in self._steps]

    @property
    def steps(self) -> tuple[SagaStep, ...]:
        return self._steps

    def _with(self, step: SagaStep) -> tuple[SagaStep, ...]:
        if step.name in self:
            raise DuplicateStepError(step.name)
        return self._steps + (step,)

    def step(self, name: Any, action: Callable[[Any, Mapping[Any, Any]], Any]) -> "NamedSaga":
        """
        Return a new saga with one more step appended.

        Args:
            name: Unique name the step's result is recorded under
            action: Function of ``(ctx, changes)`` returning ``Ok`` or ``Err``

        Returns:
            A new saga; this one is left untouched

        Raises:
            DuplicateStepError: If ``name`` is already used by a step
        """
        saga = NamedSaga()
        saga._steps = self._with(SagaStep(name=name, action=action))
        return saga

    def append(self, other: "NamedSaga") -> "NamedSaga":
        """Return a new saga running this saga's steps followed by ``other``'s."""
        saga = NamedSaga(self._steps)
        for step in other.steps:
            saga._steps = saga._with(step)
        return saga

    def execute(self, ctx: Any) -> Ok[dict[Any, Any]] | StepFailed:
        """
        Run every step in order against ``ctx``.

        This is the reference runner used by ``ContextBase.run_saga``. It does
        not open a transaction of its own.

        Args:
            ctx: The transactional context handed to every step

        Returns:
            ``Ok`` of the name-to-result mapping, or ``StepFailed`` for the first
            step returning ``Err``; later steps are not run

        Raises:
            TypeError: If a step returns something other than ``Ok`` or ``Err``
        """
        executed: list[StepResult] = []
        changes: dict[Any, Any] = {}

        for index, step in enumerate(self._steps):
            logger.info(f"Executing step {index + 1}: {step.name}")

            match step.action(ctx, dict(changes)):
                case Ok(value):
                    executed.append(StepResult(step_index=index, step_name=step.name, result=value))
                    changes[step.name] = value
                    logger.info(f"✅ Step {index + 1} completed: {step.name}")
                case Err(error):
                    logger.error(f"❌ Step {index + 1} failed: {step.name}: {error!r}")
                    return StepFailed(step_name=step.name, error=error, completed=tuple(executed))
                case other:
                    raise TypeError(f"Saga step {step.name!r} must return Ok or Err, got {other!r}")

        return Ok(changes)


def run_saga(ctx: Any, saga: NamedSaga) -> Ok[dict[Any, Any]] | Err[Any]:
    """
    Run ``saga`` through the context's own saga runner and flatten the result.

    A ``StepFailed`` marker surfaces as ``Err`` of the failing step's payload.

    Raises:
        TypeError: If the runner reports something other than ``Ok``, ``Err`` or ``StepFailed``
    """
    match ctx.run_saga(saga):
        case Ok() | Err() as outcome:
            return outcome
        case StepFailed(step_name=name, error=error):
            logger.debug(f"Saga stopped at step {name!r}")
            return Err(error)
        case other:
            raise TypeError(f"Saga runner returned an unexpected result: {other!r}")
