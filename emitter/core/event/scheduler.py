"""
DispatchScheduler: sequential listener execution for the emitter.

Purpose
-------
Runs the ordered listener snapshot of one emit, one listener at a time,
honoring invocation limits and cooperative cancellation, for both synchronous
and asynchronous callbacks.

Responsibilities
----------------
- Invoke each listener as `callback(event, *args)` in snapshot order
- Wait for an awaitable result before the next listener starts
- Count down finite invocation limits and retire exhausted listeners from
  the registry that owns them
- Stop the pass when a listener cancels the Event
- Log and count listener failures, then propagate them
- Track passes that continue in the background and expose `drain()`

Execution Model
---------------
- run():
    - Called by `Emitter.emit()`
    - Synchronous listeners run inline
    - When a listener returns an awaitable, the remainder of the pass becomes
      a coroutine:
        - with a running loop it is scheduled as a tracked task and run()
          returns at once
        - without a running loop it is driven to completion by asyncio.run(),
          together with any passes that nested emits started meanwhile
- run_async():
    - Called by `Emitter.publish()`
    - Awaits every awaitable result in place; returns after the whole pass

Failure Policy
--------------
A listener that raises aborts the rest of the pass. The exception is logged
and recorded by `handle_listener_error`, then re-raised unchanged:
- from run()/run_async() when the failure happens on the caller's stack
- from drain() when it happened inside a background task

A failed invocation does not count against the listener's limit and never
cancels the Event.

Dependencies
------------
- asyncio (Python stdlib)
- emitter.core.event.types (Listener)
- emitter.core.event.context (Event)
- emitter.core.event.metrics (EventMetricsRecorder)
- emitter.core.event.errors (handle_listener_error)
- emitter.core.exceptions (DispatchLoopError)
"""

from __future__ import annotations

import asyncio
import inspect
from logging import Logger
from typing import Any, Awaitable, Optional, Sequence

from emitter.core.event.context import Event
from emitter.core.event.errors import handle_listener_error
from emitter.core.event.metrics import EventMetricsRecorder
from emitter.core.event.types import Listener
from emitter.core.exceptions import DispatchLoopError

# Loops created by run() to finish a pass when no loop was running. Failures of
# tasks on these loops are reported by the driver, not kept for drain().
_driven_loops: set[asyncio.AbstractEventLoop] = set()


class DispatchScheduler:
    """
    Executes listener snapshots sequentially.

    Examples
    --------
    >>> scheduler = DispatchScheduler()
    >>> scheduler.run(
    ...     event=Event("user.created", source=owner),
    ...     listeners=snapshot,
    ...     args=(user,),
    ...     metrics=recorder,
    ...     logger=logger,
    ... )
    >>> await scheduler.drain()
    """

    def __init__(self) -> None:
        """Initialize the scheduler with background task tracking."""
        # Track background passes to prevent premature garbage collection
        self._pending: set[asyncio.Task[Any]] = set()
        self._failure: Optional[BaseException] = None

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def run(
        self,
        *,
        event: Event,
        listeners: Sequence[Listener],
        args: tuple[Any, ...],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> None:
        """
        Run a pass, continuing in the background after the first awaitable.

        Parameters
        ----------
        event:
            The Event shared by every listener of this pass.
        listeners:
            Snapshot of listeners, already sorted by order.
        args:
            Extra positional arguments passed after the Event.
        metrics:
            Optional metrics recorder to update.
        logger:
            Logger instance for structured logging.
        """
        for index, listener in enumerate(listeners):
            if self._exhausted(listener):
                continue

            result = self._invoke(event, listener, args, metrics, logger)

            if inspect.isawaitable(result):
                remainder = self._resume(
                    event=event,
                    listener=listener,
                    awaitable=result,
                    rest=listeners[index + 1 :],
                    args=args,
                    metrics=metrics,
                    logger=logger,
                )
                self._defer(remainder, event, logger)
                return

            if self._settle(event, listener, metrics, logger):
                return

    async def run_async(
        self,
        *,
        event: Event,
        listeners: Sequence[Listener],
        args: tuple[Any, ...],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> None:
        """Run a pass, awaiting each awaitable result before moving on."""
        for listener in listeners:
            if self._exhausted(listener):
                continue

            result = self._invoke(event, listener, args, metrics, logger)

            if inspect.isawaitable(result):
                await self._await_result(event, listener, result, metrics, logger)

            if self._settle(event, listener, metrics, logger):
                return

    async def drain(self) -> None:
        """
        Wait for every background pass started by run().

        Raises
        ------
        DispatchLoopError
            If a pending pass belongs to a loop other than the running one.
        BaseException
            The first listener failure raised inside a background pass since
            the last drain. Later failures were already logged and are not kept.
        """
        loop = asyncio.get_running_loop()

        while self._pending:
            pending = list(self._pending)
            foreign = [task for task in pending if task.get_loop() is not loop]
            if foreign:
                raise DispatchLoopError(pending=len(foreign))

            await asyncio.gather(*pending, return_exceptions=True)

        failure, self._failure = self._failure, None
        if failure is not None:
            raise failure

    def get_pending_count(self) -> int:
        """Number of background passes still running."""
        return len(self._pending)

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    async def _resume(
        self,
        *,
        event: Event,
        listener: Listener,
        awaitable: Awaitable[Any],
        rest: Sequence[Listener],
        args: tuple[Any, ...],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> None:
        await self._await_result(event, listener, awaitable, metrics, logger)

        if self._settle(event, listener, metrics, logger):
            return

        await self.run_async(
            event=event,
            listeners=rest,
            args=args,
            metrics=metrics,
            logger=logger,
        )

    def _defer(self, remainder: Any, event: Event, logger: Logger) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop in this thread: finish the pass, and every pass it
            # started, before emit() returns.
            asyncio.run(self._drive(remainder))
            return

        task = loop.create_task(
            remainder,
            name=f"emitter-{event.name}-{event.dispatch_id}",
        )
        self._pending.add(task)
        task.add_done_callback(self._on_task_done)

        logger.debug(
            "Emitter: pass suspended, continuing in background",
            extra={"pending_passes": len(self._pending)},
        )

    @staticmethod
    async def _drive(remainder: Awaitable[Any]) -> None:
        """
        Await a suspended pass, then every task it left on this loop.

        Nested emits inside async listeners schedule their own background
        passes; those must settle before the temporary loop closes. The first
        failure among all of them is raised.
        """
        current = asyncio.current_task()
        loop = asyncio.get_running_loop()
        _driven_loops.add(loop)
        failures: list[BaseException] = []
        try:
            try:
                await remainder
            except Exception as exc:
                failures.append(exc)

            while True:
                others = asyncio.all_tasks(loop) - {current}
                if not others:
                    break
                results = await asyncio.gather(*others, return_exceptions=True)
                failures.extend(r for r in results if isinstance(r, Exception))
        finally:
            _driven_loops.discard(loop)

        if failures:
            raise failures[0]

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None or task.get_loop() in _driven_loops:
            return
        # drain() re-raises only the first failure; later ones were logged.
        if self._failure is None:
            self._failure = exc

    def _invoke(
        self,
        event: Event,
        listener: Listener,
        args: tuple[Any, ...],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> Any:
        logger.debug(
            "Emitter: executing listener",
            extra={"listener": listener.label, "order": listener.order},
        )
        try:
            return listener.invoke(event, args)
        except Exception as exc:
            handle_listener_error(
                logger=logger,
                event=event,
                listener=listener,
                exc=exc,
                metrics=metrics,
            )
            raise

    async def _await_result(
        self,
        event: Event,
        listener: Listener,
        awaitable: Awaitable[Any],
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> Any:
        try:
            return await awaitable
        except Exception as exc:
            handle_listener_error(
                logger=logger,
                event=event,
                listener=listener,
                exc=exc,
                metrics=metrics,
            )
            raise

    @staticmethod
    def _exhausted(listener: Listener) -> bool:
        # A snapshot can outlive the limit of a listener retired by an
        # earlier settle (nested or overlapping passes).
        return listener.is_bounded and listener.remaining <= 0

    def _settle(
        self,
        event: Event,
        listener: Listener,
        metrics: Optional[EventMetricsRecorder],
        logger: Logger,
    ) -> bool:
        """Apply post-invocation bookkeeping; return True to stop the pass."""
        if metrics is not None:
            metrics.record_invocation()

        if listener.is_bounded:
            listener.remaining -= 1
            if listener.remaining <= 0 and listener.registry is not None:
                listener.registry.discard(listener)
                logger.debug(
                    "Emitter: listener limit reached, removed",
                    extra={"listener": listener.label},
                )

        if event.canceled:
            if metrics is not None:
                metrics.record_cancellation(event.name)
            logger.debug("Emitter: pass canceled", extra={"listener": listener.label})
            return True

        return False
