"""Tests for the remote validation phase."""

import threading
import time

from cfgcheck.validator import (
    AsyncValidationContext,
    ValidationSkipped,
    ValidatorFailed,
    ValidatorRegistry,
)


def make_registry(**validators) -> ValidatorRegistry:
    registry = ValidatorRegistry()
    for name, func in validators.items():
        registry.register(name, func, remote=True)
    return registry


def ok(value, parent):
    pass


def bad(value, parent):
    raise ValidatorFailed(f"bad value {value}")


class TestWait:
    """Tests for AsyncValidationContext.wait."""

    def test_no_tasks(self):
        """An empty context returns no errors immediately."""
        ctx = AsyncValidationContext(ValidatorRegistry())
        assert ctx.wait() == []

    def test_collects_every_failure(self):
        """N tasks with M failures yield exactly M errors."""
        ctx = AsyncValidationContext(make_registry(ok=ok, bad=bad), max_workers=3)
        for i in range(10):
            ctx.add_task(f"field{i}", "bad" if i % 3 == 0 else "ok", i, {})

        errors = ctx.wait()

        assert [e.path for e in errors] == ["field0", "field3", "field6", "field9"]
        assert errors[0].message == "bad value 0"

    def test_errors_sorted_by_path(self):
        """Completion order does not leak into the result."""
        def slow_bad(value, parent):
            time.sleep(value)
            raise ValidatorFailed("slow")

        ctx = AsyncValidationContext(make_registry(slow_bad=slow_bad))
        ctx.add_task("a", "slow_bad", 0.2, {})
        ctx.add_task("b", "slow_bad", 0.0, {})

        assert [e.path for e in ctx.wait()] == ["a", "b"]

    def test_failure_does_not_cancel_others(self):
        """A fast failure does not stop a slow sibling from finishing."""
        finished = threading.Event()

        def slow_ok(value, parent):
            time.sleep(0.2)
            finished.set()

        ctx = AsyncValidationContext(make_registry(slow_ok=slow_ok, bad=bad))
        ctx.add_task("slow", "slow_ok", None, {})
        ctx.add_task("fast", "bad", None, {})

        errors = ctx.wait()

        assert finished.is_set()
        assert [e.path for e in errors] == ["fast"]

    def test_runs_concurrently(self):
        """Tasks overlap up to the worker bound."""
        barrier = threading.Barrier(3, timeout=5)

        def rendezvous(value, parent):
            barrier.wait()

        ctx = AsyncValidationContext(make_registry(rendezvous=rendezvous), max_workers=3)
        for i in range(3):
            ctx.add_task(f"f{i}", "rendezvous", i, {})

        assert ctx.wait() == []

    def test_parent_passed_through(self):
        seen = []
        ctx = AsyncValidationContext(make_registry(spy=lambda value, parent: seen.append((value, parent))))
        ctx.add_task("user.key", "spy", "k", {"key": "k", "domain": "example.com"})

        ctx.wait()

        assert seen == [("k", {"key": "k", "domain": "example.com"})]

    def test_skipped_is_not_an_error(self):
        def skip(value, parent):
            raise ValidationSkipped("rclone is not installed")

        ctx = AsyncValidationContext(make_registry(skip=skip))
        ctx.add_task("rclone.remote", "skip", "google", {})

        assert ctx.wait() == []
        assert ctx.skipped == [("rclone.remote", "rclone is not installed")]

    def test_unexpected_exception_is_contained(self):
        def boom(value, parent):
            raise RuntimeError("connection reset")

        ctx = AsyncValidationContext(make_registry(boom=boom, bad=bad))
        ctx.add_task("a", "boom", None, {})
        ctx.add_task("b", "bad", 1, {})

        errors = ctx.wait()

        assert [e.path for e in errors] == ["a", "b"]
        assert errors[0].message == "boom failed unexpectedly: connection reset"

    def test_wait_runs_tasks_once(self):
        """A second wait returns the same result without rerunning anything."""
        calls = []

        def counted_bad(value, parent):
            calls.append(value)
            raise ValidatorFailed("bad")

        def skip(value, parent):
            raise ValidationSkipped("not installed")

        ctx = AsyncValidationContext(make_registry(counted_bad=counted_bad, skip=skip))
        ctx.add_task("a", "counted_bad", 1, {})
        ctx.add_task("b", "skip", 2, {})

        first = ctx.wait()
        second = ctx.wait()

        assert calls == [1]
        assert [e.path for e in first] == [e.path for e in second] == ["a"]
        assert ctx.skipped == [("b", "not installed")]

    def test_unregistered_remote_validator(self):
        ctx = AsyncValidationContext(ValidatorRegistry())
        ctx.add_task("a", "gone", None, {})

        [error] = ctx.wait()

        assert error.message == "remote validator 'gone' is not registered"
