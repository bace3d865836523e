"""Tests for embedding transactions into sagas and running sagas as transactions."""

import pytest

from simple_tx import Err, NamedSaga, Ok, StepFailed, execute, new_error, pure, run, run_saga, to_saga


class TestToSaga:
    """Test wrapping a transaction as a one-step saga."""

    def test_single_named_step(self):
        """Test that the saga has exactly the given step."""
        assert to_saga(pure(1), "value").names == ["value"]

    def test_success_recorded_under_name(self, ctx):
        """Test that the transaction's value is recorded under its name."""
        assert execute(to_saga(pure(1), "value"), ctx) == Ok({"value": 1})
        assert ctx.events == ["begin", "commit"]

    def test_composes_with_other_steps(self, ctx):
        """Test appending a wrapped transaction to an existing saga."""
        saga = NamedSaga().step("user", lambda inner, _: Ok("alice")).append(to_saga(pure("profile"), "profile"))

        assert execute(saga, ctx) == Ok({"user": "alice", "profile": "profile"})

    def test_ignores_previous_results(self, ctx):
        """Test that the wrapped transaction does not see earlier steps."""
        saga = NamedSaga().step("first", lambda inner, _: Ok(1)).append(to_saga(pure(2), "second"))

        assert execute(saga, ctx) == Ok({"first": 1, "second": 2})

    def test_failure_rolls_back_outer_transaction(self, ctx):
        """Test that a failing wrapped transaction fails and rolls back the whole saga."""
        assert execute(to_saga(new_error("boom"), "value"), ctx) == Err("boom")
        assert ctx.events == ["begin", "rollback"]

    def test_failure_rolls_back_even_without_outer_rollback(self, ctx):
        """Test that an inner abort marks the joined transaction rollback-only."""
        assert execute(to_saga(new_error("boom"), "value"), ctx, rollback_on_failure=False) == Err("boom")
        assert ctx.events == ["begin", "rollback"]


class StubSagaContext:
    """A context whose saga runner returns a canned result."""

    def __init__(self, result):
        self.result = result

    def run_saga(self, saga):
        return self.result


class TestRunSaga:
    """Test flattening saga runner results."""

    def test_success_mapping(self):
        """Test that a successful run yields the name-to-result mapping."""
        assert run_saga(StubSagaContext(Ok({"a": 1})), NamedSaga()) == Ok({"a": 1})

    def test_step_failure(self):
        """Test that a failure marker yields the failing step's payload."""
        ctx = StubSagaContext(StepFailed(step_name="charge", error="declined"))

        assert run(ctx, NamedSaga()) == Err("declined")

    def test_unexpected_result(self):
        """Test that an unknown runner result is a fault."""
        with pytest.raises(TypeError):
            run_saga(StubSagaContext("done"), NamedSaga())
