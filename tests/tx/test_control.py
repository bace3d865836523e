"""Tests for rollback control wrappers."""

import pytest

from simple_tx import (
    Err,
    Ok,
    Rollback,
    RollbackPolicy,
    disable_rollback_on_exception,
    enable_rollback_on_failure,
    new,
    new_error,
    pure,
    rollback,
    rollback_on_exception,
    rollback_on_failure,
    run,
    with_policy,
)


def _raising(error):
    def body(ctx):
        raise error

    return new(body)


class TestRollbackOnFailure:
    """Test turning failures into aborts."""

    def test_failure_aborts(self, ctx):
        """Test that a failure calls abort with its payload."""
        with pytest.raises(Rollback) as exc_info:
            run(ctx, enable_rollback_on_failure(new_error("boom")))

        assert exc_info.value.payload == "boom"
        assert ctx.aborts == ["boom"]

    def test_success_passes_through(self, ctx):
        """Test that a success is returned untouched."""
        assert run(ctx, enable_rollback_on_failure(pure(1))) == Ok(1)
        assert ctx.aborts == []

    def test_abort_inside_transaction(self, ctx):
        """Test that the abort unwinds to run_transaction and rolls back."""
        tx = enable_rollback_on_failure(new_error("boom"))

        assert ctx.run_transaction(lambda inner: run(inner, tx)) == Err("boom")
        assert ctx.events == ["begin", "rollback"]

    def test_disabled_flag_keeps_transaction(self):
        """Test that the flag form leaves the transaction alone when disabled."""
        tx = new(lambda ctx: Ok(1))

        assert rollback_on_failure(tx, False) is tx

    def test_rollback_helper(self, ctx):
        """Test that rollback aborts the context."""
        with pytest.raises(Rollback):
            rollback(ctx, "manual")

        assert ctx.aborts == ["manual"]


class TestRollbackOnException:
    """Test turning exceptions into failures."""

    def test_exception_becomes_failure(self, ctx):
        """Test that a raised exception is returned as the failure payload."""
        error = RuntimeError("database gone")

        assert run(ctx, disable_rollback_on_exception(_raising(error))) == Err(error)

    def test_exception_propagates_by_default(self, ctx):
        """Test that without the wrapper exceptions propagate."""
        with pytest.raises(RuntimeError, match="database gone"):
            run(ctx, _raising(RuntimeError("database gone")))

    def test_abort_is_not_swallowed(self, ctx):
        """Test that an abort signal is never converted into a failure."""
        tx = disable_rollback_on_exception(enable_rollback_on_failure(new_error("boom")))

        with pytest.raises(Rollback):
            run(ctx, tx)

    def test_enabled_flag_keeps_transaction(self):
        """Test that the flag form leaves the transaction alone when enabled."""
        tx = new(lambda ctx: Ok(1))

        assert rollback_on_exception(tx, True) is tx


class TestWithPolicy:
    """Test applying a whole rollback policy."""

    def test_default_policy_aborts_on_failure(self, ctx):
        """Test that the default policy rolls back failures."""
        with pytest.raises(Rollback):
            run(ctx, with_policy(new_error("boom"), RollbackPolicy()))

    def test_permissive_policy_returns_values(self, ctx):
        """Test that disabling both flags keeps failures and exceptions as values."""
        policy = RollbackPolicy(rollback_on_failure=False, rollback_on_exception=False)
        error = KeyError("missing")

        assert run(ctx, with_policy(new_error("boom"), policy)) == Err("boom")
        assert run(ctx, with_policy(_raising(error), policy)) == Err(error)
        assert ctx.aborts == []

    def test_exception_handling_wraps_failure_handling(self, ctx):
        """Test that an exception is converted before it could be aborted."""
        policy = RollbackPolicy(rollback_on_failure=True, rollback_on_exception=False)
        error = ValueError("bad")

        assert run(ctx, with_policy(_raising(error), policy)) == Err(error)
        assert ctx.aborts == []

    def test_policy_merge(self):
        """Test overriding policy flags."""
        policy = RollbackPolicy().merge(rollback_on_failure=False, rollback_on_exception=None)

        assert policy == RollbackPolicy(rollback_on_failure=False, rollback_on_exception=True)
