from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections import deque
from typing import TYPE_CHECKING, Any

from ._errors import StepError


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    Done = Callable[..., None]
    Step = Callable[[Any, Done], Any]


class _Trampoline(threading.local):
    """Runs continuations iteratively when no event loop is running.

    Whoever pushes first drains the queue; nested pushes only enqueue, so long
    chains of synchronously completing steps never grow the stack. Each thread
    gets its own queue.
    """

    def __init__(self) -> None:
        self._queue: deque[tuple[Callable[..., None], tuple[Any, ...]]] = deque()
        self._draining = False

    def push(self, callback: Callable[..., None], *args: Any) -> None:
        self._queue.append((callback, args))
        if self._draining:
            return

        self._draining = True
        error: Exception | None = None
        try:
            while self._queue:
                callback, args = self._queue.popleft()
                try:
                    callback(*args)
                except Exception as exc:
                    # Drain the rest of the queue; the first error is raised once it is empty.
                    if error is not None:
                        logger.exception("Continuation %r failed after an earlier error", callback)
                        continue
                    error = exc
        finally:
            self._draining = False

        if error is not None:
            raise error


_trampoline = _Trampoline()


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _schedule(callback: Callable[..., None], *args: Any) -> None:
    loop = _running_loop()
    if loop is None:
        _trampoline.push(callback, *args)
    else:
        loop.call_soon(callback, *args)


def _adapt(step: Step) -> Step:
    """Turn `async def step(context)` into a `(context, done)` step."""
    if not inspect.iscoroutinefunction(step):
        return step

    def run_coroutine(context: Any, done: Done) -> None:
        task = asyncio.get_running_loop().create_task(step(context))  # type: ignore[call-arg]

        def on_complete(finished: asyncio.Task[Any]) -> None:
            if finished.cancelled():
                done(asyncio.CancelledError())
            else:
                done(finished.exception())

        task.add_done_callback(on_complete)

    return run_coroutine


class _Run:
    """One execution of a lifecycle's steps."""

    def __init__(self, steps: tuple[Step, ...], context: Any, done: Done) -> None:
        self._steps = steps
        self._context = context
        self._done = done

    def start(self) -> None:
        if _running_loop() is None:
            _trampoline.push(self._execute, 0)
        else:
            self._execute(0)

    def _execute(self, n: int) -> None:
        step = self._steps[n]
        signalled = False

        def step_done(error: object = None) -> None:
            nonlocal signalled
            if signalled:
                logger.warning("Lifecycle step %r signalled completion more than once", step)
                return
            signalled = True

            if error is not None:
                self._done(error)
                return

            if n + 1 < len(self._steps):
                _schedule(self._execute, n + 1)
            else:
                self._done()

        try:
            step(self._context, step_done)
        except Exception as exc:
            if signalled:
                raise
            logger.debug("Lifecycle step %r raised %r", step, exc)
            step_done(exc)


class Lifecycle:
    """A prebuilt, reusable chain of asynchronous steps.

    Each step is called as `step(context, done)` and must call `done()` once,
    or `done(error)` to abort the chain. Steps run strictly one after the
    other; the next step is scheduled on the running event loop (or an
    internal queue when there is none) rather than called recursively.
    """

    def __init__(self, steps: Iterable[Step] = ()) -> None:
        self._steps = tuple(_adapt(step) for step in steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"Lifecycle(steps={len(self._steps)})"

    def __call__(self, context: Any, done: Done) -> None:
        if not self._steps:
            done()
            return
        _Run(self._steps, context, done).start()

    async def run_async(self, context: Any = None) -> None:
        """Run the chain on the running loop, raising the first step error."""
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        def finish(error: object = None) -> None:
            if future.done():
                return
            if error is None:
                future.set_result(None)
            elif isinstance(error, asyncio.CancelledError):
                future.cancel()
            elif isinstance(error, BaseException):
                future.set_exception(error)
            else:
                future.set_exception(StepError(error))

        self(context, finish)
        await future
