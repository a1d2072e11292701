"""
Unit Tests for Asynchronous Dispatch
=====================================

Purpose
-------
Test sequential delivery with async listeners through emit(), publish() and
drain(), and the DispatchScheduler directly.

Test Coverage
-------------
- Awaitable results are awaited before the next listener starts
- publish() returns after the whole pass
- emit() hands the remainder to a background task when a loop is running
- emit() finishes the pass itself when no loop is running
- drain() waits for background passes and re-raises their failures
- once/limit and cancellation across suspension points
- Nested emits from async listeners, with and without a running loop
- Only the first undrained background failure is kept
- DispatchLoopError for a foreign loop

Testing Strategy
----------------
- pytest-asyncio in auto mode
- asyncio.sleep(0) to force suspension points
"""

import asyncio

import pytest

from emitter.core.event import DispatchScheduler, Emitter
from emitter.core.exceptions import DispatchLoopError


def make_async(label, calls, *, cancel=False, delay=0):
    async def listener(event, *args):
        calls.append(f"{label}:start")
        await asyncio.sleep(delay)
        calls.append(f"{label}:end")
        if cancel:
            event.cancel()

    return listener


# ============================================================================
# PUBLISH TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestPublish:
    """Test publish(), the awaitable dispatch."""

    async def test_async_listeners_run_sequentially(self, emitter, calls):
        """The second listener starts only after the first settles."""
        # Arrange
        emitter.on("job", make_async("a", calls, delay=0.01))
        emitter.on("job", make_async("b", calls))

        # Act
        result = await emitter.publish("job")

        # Assert
        assert result is emitter
        assert calls == ["a:start", "a:end", "b:start", "b:end"]

    async def test_mixed_sync_and_async(self, emitter, calls, recorder):
        emitter.on("job", recorder("sync1"))
        emitter.on("job", make_async("async", calls))
        emitter.on("job", recorder("sync2"))

        await emitter.publish("job")

        assert calls == ["sync1", "async:start", "async:end", "sync2"]

    async def test_async_cancel_stops_pass(self, emitter, calls, recorder):
        emitter.on("job", make_async("a", calls, cancel=True))
        emitter.on("job", recorder("never"))

        await emitter.publish("job")

        assert calls == ["a:start", "a:end"]

    async def test_async_once_listener(self, emitter, calls):
        emitter.once("job", make_async("a", calls))

        await emitter.publish("job")
        await emitter.publish("job")

        assert calls == ["a:start", "a:end"]

    async def test_async_failure_propagates(self, emitter, recorder, calls):
        async def failing(event):
            await asyncio.sleep(0)
            raise ValueError("async boom")

        emitter.on("job", failing).on("job", recorder("after"))

        with pytest.raises(ValueError, match="async boom"):
            await emitter.publish("job")

        assert calls == []

    async def test_publish_with_invalid_name(self, emitter):
        assert await emitter.publish(None) is emitter

    async def test_publish_passes_arguments(self, emitter):
        seen = []

        async def listener(event, *args):
            seen.append((event.name, args))

        emitter.on("job", listener)

        await emitter.publish("job", 1, "two")

        assert seen == [("job", (1, "two"))]


# ============================================================================
# EMIT + DRAIN TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestEmitWithRunningLoop:
    """Test emit() inside a running loop."""

    async def test_emit_returns_before_async_pass_completes(self, emitter, calls, recorder):
        """Sync listeners before the first awaitable run inline."""
        emitter.on("job", recorder("sync"))
        emitter.on("job", make_async("a", calls))
        emitter.on("job", recorder("tail"))

        assert emitter.emit("job") is emitter
        assert calls == ["sync"]
        assert emitter.get_pending_count() == 1

        await emitter.drain()

        assert calls == ["sync", "a:start", "a:end", "tail"]
        assert emitter.get_pending_count() == 0

    async def test_drain_reraises_background_failure(self, emitter):
        async def failing(event):
            raise RuntimeError("background boom")

        emitter.on("job", failing)
        emitter.emit("job")

        with pytest.raises(RuntimeError, match="background boom"):
            await emitter.drain()

        # The failure is reported once.
        await emitter.drain()

    async def test_drain_without_pending_passes(self, emitter):
        await emitter.drain()

    async def test_once_listener_consumed_by_background_pass(self, emitter, calls):
        emitter.once("job", make_async("a", calls))

        emitter.emit("job")
        await emitter.drain()
        emitter.emit("job")
        await emitter.drain()

        assert calls == ["a:start", "a:end"]

    async def test_multiple_background_passes(self, emitter, calls):
        emitter.on("job", make_async("a", calls))

        emitter.emit("job").emit("job")
        await emitter.drain()

        assert calls.count("a:end") == 2

    async def test_nested_async_emit_completes_after_drain(self, emitter, calls):
        async def outer(event):
            await asyncio.sleep(0)
            event.source.emit("inner")
            calls.append("outer")

        async def inner(event):
            await asyncio.sleep(0)
            calls.append("inner")

        emitter.on("outer", outer).on("inner", inner)

        emitter.emit("outer")
        await emitter.drain()

        assert calls == ["outer", "inner"]
        assert emitter.get_pending_count() == 0

    async def test_only_first_background_failure_is_kept(self, isolated_broadcast):
        """Undrained failures do not accumulate; drain() re-raises the first."""
        # Arrange
        scheduler = DispatchScheduler()
        emitter = Emitter(isolated_broadcast, scheduler=scheduler)

        async def failing(event, label):
            raise RuntimeError(label)

        emitter.on("job", failing)

        # Act
        emitter.emit("job", "first").emit("job", "second").emit("job", "third")
        for _ in range(5):
            await asyncio.sleep(0)

        # Assert
        assert scheduler.get_pending_count() == 0
        assert str(scheduler._failure) == "first"

        with pytest.raises(RuntimeError, match="first"):
            await emitter.drain()
        assert scheduler._failure is None
        await emitter.drain()


@pytest.mark.unit
@pytest.mark.event
class TestEmitWithoutLoop:
    """Test emit() with no running loop."""

    def test_async_pass_completes_before_emit_returns(self, emitter, calls, recorder):
        emitter.on("job", make_async("a", calls))
        emitter.on("job", recorder("tail"))

        emitter.emit("job")

        assert calls == ["a:start", "a:end", "tail"]
        assert emitter.get_pending_count() == 0

    def test_async_failure_raises_from_emit(self, emitter):
        async def failing(event):
            raise LookupError("no loop boom")

        emitter.on("job", failing)

        with pytest.raises(LookupError, match="no loop boom"):
            emitter.emit("job")

    def test_nested_async_emit_completes_before_emit_returns(self, emitter, calls):
        """Passes started by nested emits finish before the temporary loop closes."""
        # Arrange
        async def outer(event):
            await asyncio.sleep(0)
            event.source.emit("inner")
            calls.append("outer")

        async def inner(event):
            await asyncio.sleep(0)
            calls.append("inner")

        emitter.on("outer", outer).on("inner", inner)

        # Act
        emitter.emit("outer")

        # Assert
        assert calls == ["outer", "inner"]
        assert emitter.get_pending_count() == 0

    def test_nested_emit_on_another_emitter(self, emitter, other_emitter, calls):
        async def outer(event):
            await asyncio.sleep(0)
            other_emitter.emit("inner")

        async def inner(event):
            await asyncio.sleep(0)
            calls.append("other:inner")

        emitter.on("outer", outer)
        other_emitter.on("inner", inner)

        emitter.emit("outer")

        assert calls == ["other:inner"]
        assert other_emitter.get_pending_count() == 0

    def test_nested_failure_raises_from_emit(self, emitter):
        async def outer(event):
            await asyncio.sleep(0)
            event.source.emit("inner")

        async def inner(event):
            await asyncio.sleep(0)
            raise KeyError("nested boom")

        emitter.on("outer", outer).on("inner", inner)

        with pytest.raises(KeyError, match="nested boom"):
            emitter.emit("outer")

        # Reported by emit(), not kept for a later drain().
        asyncio.run(emitter.drain())


# ============================================================================
# SCHEDULER TESTS
# ============================================================================


@pytest.mark.unit
@pytest.mark.event
class TestDispatchScheduler:
    """Test DispatchScheduler details."""

    async def test_shared_scheduler_drains_all_emitters(self, isolated_broadcast, calls):
        scheduler = DispatchScheduler()
        first = Emitter(isolated_broadcast, scheduler=scheduler)
        second = Emitter(isolated_broadcast, scheduler=scheduler)
        first.on("job", make_async("first", calls))
        second.on("job", make_async("second", calls))

        first.emit("job")
        second.emit("job")
        assert scheduler.get_pending_count() == 2

        await first.drain()

        assert scheduler.get_pending_count() == 0
        assert sorted(calls) == ["first:end", "first:start", "second:end", "second:start"]

    def test_drain_from_foreign_loop_raises(self, emitter, calls):
        """Background passes can only be drained from their own loop."""
        emitter.on("job", make_async("a", calls, delay=10))

        async def start():
            emitter.emit("job")

        first_loop = asyncio.new_event_loop()
        try:
            first_loop.run_until_complete(start())

            with pytest.raises(DispatchLoopError) as exc_info:
                asyncio.run(emitter.drain())

            assert exc_info.value.pending == 1
            assert exc_info.value.error_code == "DISPATCH_LOOP_MISMATCH"
        finally:
            pending = asyncio.all_tasks(first_loop)
            for task in pending:
                task.cancel()
            first_loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            first_loop.close()
