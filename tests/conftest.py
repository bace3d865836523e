"""Pytest configuration and shared fixtures for simple-tx tests."""

from typing import Any, NoReturn

import pytest

from simple_tx import ContextBase, Ok, new


class RecordingContext(ContextBase):
    """A context recording transaction events instead of touching a database."""

    def __init__(self) -> None:
        super().__init__()
        self.events: list[Any] = []
        self.aborts: list[Any] = []
        self.options: list[dict[str, Any]] = []
        self.results: list[Any] = []

    def _begin(self, **options: Any) -> None:
        self.events.append("begin")
        self.options.append(options)

    def _commit(self) -> None:
        self.events.append("commit")

    def _rollback(self) -> None:
        self.events.append("rollback")

    def abort(self, payload: Any) -> NoReturn:
        self.aborts.append(payload)
        super().abort(payload)

    def run_transaction(self, body, **options):
        result = super().run_transaction(body, **options)
        self.results.append(result)
        return result


@pytest.fixture
def ctx():
    """Create a fresh recording context."""
    return RecordingContext()


@pytest.fixture
def calls():
    """Execution-order side channel shared by ``record``."""
    return []


@pytest.fixture
def record(calls):
    """Create transactions that append their label to ``calls`` when run."""

    def make(label: Any, outcome: Any = None):
        def body(ctx: Any):
            calls.append(label)
            return Ok(label) if outcome is None else outcome

        return new(body)

    return make
