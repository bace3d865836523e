"""Tests for named sagas and their reference runner."""

import pytest

from simple_tx import DuplicateStepError, Err, NamedSaga, Ok, StepFailed, StepResult


def _returning(value):
    def action(ctx, changes):
        return Ok(value)

    return action


class TestNamedSagaConstruction:
    """Test building sagas."""

    def test_create_empty_saga(self):
        """Test creating an empty saga."""
        saga = NamedSaga()

        assert len(saga) == 0
        assert saga.names == []

    def test_step_returns_new_saga(self):
        """Test that adding a step leaves the original saga untouched."""
        empty = NamedSaga()
        one = empty.step("order", _returning(1))

        assert len(empty) == 0
        assert one.names == ["order"]
        assert "order" in one

    def test_duplicate_name_rejected(self):
        """Test that step names must be unique."""
        saga = NamedSaga().step("order", _returning(1))

        with pytest.raises(DuplicateStepError, match="order"):
            saga.step("order", _returning(2))

    def test_append_keeps_order(self):
        """Test appending one saga to another."""
        first = NamedSaga().step("a", _returning(1)).step("b", _returning(2))
        second = NamedSaga().step("c", _returning(3))

        assert first.append(second).names == ["a", "b", "c"]

    def test_append_detects_collision(self):
        """Test that appending sagas sharing a step name fails."""
        first = NamedSaga().step("user", _returning(1))
        second = NamedSaga().step("user", _returning(2))

        with pytest.raises(DuplicateStepError):
            first.append(second)


class TestNamedSagaExecution:
    """Test the reference runner."""

    def test_execute_empty_saga(self, ctx):
        """Test executing a saga without steps."""
        assert NamedSaga().execute(ctx) == Ok({})

    def test_results_recorded_by_name(self, ctx):
        """Test that each step sees the results of the previous ones."""
        saga = (
            NamedSaga()
            .step("order", lambda inner, _: Ok({"order_id": "ORDER-123"}))
            .step("invoice", lambda inner, changes: Ok(f"invoice for {changes['order']['order_id']}"))
        )

        assert saga.execute(ctx) == Ok({"order": {"order_id": "ORDER-123"}, "invoice": "invoice for ORDER-123"})

    def test_steps_receive_context(self, ctx):
        """Test that every step runs against the given context."""
        seen = []
        saga = NamedSaga().step("a", lambda inner, _: Ok(seen.append(inner)))

        saga.execute(ctx)

        assert seen == [ctx]

    def test_failure_stops_later_steps(self, ctx):
        """Test that the first failing step ends the run."""
        calls = []

        def step(name, outcome):
            def action(inner, changes):
                calls.append(name)
                return outcome

            return action

        saga = (
            NamedSaga()
            .step("reserve", step("reserve", Ok("reserved")))
            .step("charge", step("charge", Err("declined")))
            .step("ship", step("ship", Ok("shipped")))
        )

        result = saga.execute(ctx)

        assert result == StepFailed(
            step_name="charge",
            error="declined",
            completed=(StepResult(step_index=0, step_name="reserve", result="reserved"),),
        )
        assert result.changes == {"reserve": "reserved"}
        assert calls == ["reserve", "charge"]

    def test_step_must_return_outcome(self, ctx):
        """Test that a step returning a bare value is a fault."""
        saga = NamedSaga().step("bad", lambda inner, _: 42)

        with pytest.raises(TypeError, match="must return Ok or Err"):
            saga.execute(ctx)
