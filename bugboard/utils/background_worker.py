"""
Background Work and UI Hand-off
===============================

This module separates the two execution contexts of the client:

- The **UI context**: the single thread that owns the entity store and the
  session. In the desktop app this is the Tk main loop.
- **Background tasks**: short-lived jobs, one per network operation, run on a
  ``DaemonThreadPoolExecutor``.

The only bridge between them is ``Dispatcher.post``. A background task never
mutates shared state; it posts a continuation that the UI context runs later,
exactly once, in completion order.

Key Classes:
------------
- Dispatcher: Thread-safe FIFO of continuations, drained by the UI thread.
- TkDispatcher: Dispatcher that drains itself from a Tk widget's ``after``
  loop.
- TaskRunner: Runs an operation in the background and routes its result or
  failure back through the dispatcher.

Usage:
------
    >>> dispatcher = Dispatcher()
    >>> runner = TaskRunner(dispatcher)
    >>> future = runner.run(fetch_issues, on_success=store.issues.replace_all)
    >>> future.result()      # background part finished
    >>> dispatcher.drain()   # continuation applied on this thread
"""

import logging
import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional

from .concurrency import DaemonThreadPoolExecutor


class Dispatcher:
    """
    FIFO of callables to run on the owning (UI) thread.

    ``post`` may be called from any thread. ``drain`` runs every queued
    callable on the calling thread; an exception raised by one callable is
    logged and does not prevent the others from running.
    """

    def __init__(self, name: str = "UI"):
        self.name = name
        self.logger = logging.getLogger(__name__)
        self._queue: queue.Queue = queue.Queue()
        self._owner = threading.current_thread()

    def post(self, callback: Callable, *args, **kwargs) -> None:
        self._queue.put((callback, args, kwargs))

    def is_owner_thread(self) -> bool:
        return threading.current_thread() is self._owner

    def drain(self, limit: Optional[int] = None) -> int:
        """
        Run pending callbacks on the current thread.

        Args:
            limit: Maximum number of callbacks to run; None runs all that are
                queued, including ones posted while draining.

        Returns:
            int: Number of callbacks executed.
        """
        executed = 0
        while limit is None or executed < limit:
            try:
                callback, args, kwargs = self._queue.get_nowait()
            except queue.Empty:
                break
            executed += 1
            try:
                callback(*args, **kwargs)
            except Exception as e:
                self.logger.error(
                    f"Dispatcher '{self.name}' callback failed: {type(e).__name__}: {e}",
                    exc_info=True
                )
            finally:
                self._queue.task_done()
        return executed

    @property
    def pending_count(self) -> int:
        """Approximate number of callbacks waiting to run."""
        return self._queue.qsize()


class TkDispatcher(Dispatcher):
    """
    Dispatcher pumped by a Tk widget.

    Tk is not thread-safe, so background threads never call ``widget.after``
    themselves; they only enqueue. The widget polls the queue every
    ``interval_ms`` on the main loop.
    """

    def __init__(self, widget, interval_ms: int = 50, name: str = "Tk"):
        super().__init__(name=name)
        self.widget = widget
        self.interval_ms = interval_ms
        self._after_id = None
        self._running = False

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._schedule()
        self.logger.debug(f"TkDispatcher polling every {self.interval_ms}ms")

    def stop(self) -> None:
        self._running = False
        if self._after_id is not None:
            try:
                self.widget.after_cancel(self._after_id)
            except Exception as e:
                self.logger.debug(f"after_cancel failed during stop: {e}")
            self._after_id = None

    def _schedule(self) -> None:
        self._after_id = self.widget.after(self.interval_ms, self._pump)

    def _pump(self) -> None:
        self.drain()
        if self._running:
            self._schedule()


class TaskRunner:
    """
    Runs blocking operations in the background and marshals results back.

    Exactly one of ``on_success(result)`` / ``on_failure(exc)`` is posted to
    the dispatcher per task. Nothing raised by the operation escapes the
    worker thread: failures are logged here and only travel onward through
    ``on_failure``.
    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        executor: Optional[DaemonThreadPoolExecutor] = None,
        name: str = "BugBoardTask"
    ):
        self.dispatcher = dispatcher
        self.name = name
        self.executor = executor or DaemonThreadPoolExecutor(thread_name_prefix=name)
        self.logger = logging.getLogger(__name__)

    def run(
        self,
        operation: Callable[[], Any],
        on_success: Optional[Callable[[Any], None]] = None,
        on_failure: Optional[Callable[[BaseException], None]] = None,
        description: str = "task"
    ) -> Future:
        """
        Submit ``operation`` to the executor.

        Returns:
            Future: Resolves (to None) once the background part is done and
            its continuation has been posted. The continuation itself runs on
            the next ``dispatcher.drain()``.
        """
        def _task():
            try:
                result = operation()
            except Exception as e:
                self.logger.error(
                    f"{self.name} '{description}' failed: {type(e).__name__}: {e}",
                    exc_info=True
                )
                if on_failure is not None:
                    self.dispatcher.post(on_failure, e)
                return
            if on_success is not None:
                self.dispatcher.post(on_success, result)

        return self.executor.submit(_task)

    def shutdown(self, wait: bool = False) -> None:
        self.executor.shutdown(wait=wait)
