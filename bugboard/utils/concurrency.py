"""
Daemon Thread Executor
======================

A ``concurrent.futures.Executor`` whose worker threads are always daemons, so
an in-flight network request never keeps the process alive after the main
window closes.

Unlike ``ThreadPoolExecutor`` the pool can be unbounded: with
``max_workers=None`` a new worker is started whenever a task is submitted and
no worker is idle. Idle workers are reused.
"""

import queue
import threading
from concurrent.futures import Executor, Future
from typing import List, Optional


class DaemonThreadPoolExecutor(Executor):
    """
    Executor backed by daemon threads.

    Args:
        max_workers: Upper bound on worker threads, or None for no bound.
        thread_name_prefix: Prefix for worker thread names (shows up in logs).
    """

    def __init__(self, max_workers: Optional[int] = None, thread_name_prefix: str = 'DaemonWorker'):
        if max_workers is not None and max_workers <= 0:
            raise ValueError("max_workers must be greater than 0")

        self._max_workers = max_workers
        self._thread_name_prefix = thread_name_prefix
        self._work_queue: queue.Queue = queue.Queue()
        self._threads: List[threading.Thread] = []
        self._idle = 0
        self._shutdown = False
        self._lock = threading.Lock()

    def submit(self, fn, *args, **kwargs) -> Future:
        """Schedule ``fn(*args, **kwargs)`` and return its Future."""
        with self._lock:
            if self._shutdown:
                raise RuntimeError('cannot schedule new futures after shutdown')

            future: Future = Future()
            self._work_queue.put((fn, args, kwargs, future))
            self._adjust_thread_count()
        return future

    def _adjust_thread_count(self):
        # Caller holds self._lock
        if self._idle > 0:
            self._idle -= 1
            return
        if self._max_workers is not None and len(self._threads) >= self._max_workers:
            return
        t = threading.Thread(
            target=self._worker_loop,
            daemon=True,
            name=f"{self._thread_name_prefix}-{len(self._threads)}"
        )
        self._threads.append(t)
        t.start()

    def _worker_loop(self):
        while True:
            item = self._work_queue.get()
            if item is None:
                break

            fn, args, kwargs, future = item
            try:
                if future.set_running_or_notify_cancel():
                    try:
                        future.set_result(fn(*args, **kwargs))
                    except BaseException as e:
                        future.set_exception(e)
            finally:
                self._work_queue.task_done()
                with self._lock:
                    self._idle += 1

    @property
    def thread_count(self) -> int:
        with self._lock:
            return len(self._threads)

    def shutdown(self, wait=True, *, cancel_futures=False):
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            threads = list(self._threads)

        if cancel_futures:
            while True:
                try:
                    item = self._work_queue.get_nowait()
                except queue.Empty:
                    break
                if item is not None:
                    item[3].cancel()
                self._work_queue.task_done()

        for _ in threads:
            self._work_queue.put(None)

        if wait:
            for t in threads:
                t.join()
