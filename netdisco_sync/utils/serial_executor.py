"""
Single-threaded job queue with a dedicated drain thread.

Gives the sync coordinator one serial execution context: every job runs
on the same worker thread, one at a time, in submission order.  Callers
on any thread (UI collaborators, store notification callbacks) only
enqueue and never touch shared state themselves.
"""
import logging
import queue
import threading
from concurrent.futures import Future, TimeoutError as FutureTimeout
from typing import Any, Callable

log = logging.getLogger("serial_executor")


class SerialExecutor:
    """Thread-safe bounded FIFO of callables drained by one worker thread.

    Args:
        name: Worker thread name (shows up in logs).
        maxsize: Maximum queued jobs before backpressure kicks in.
    """

    def __init__(self, name: str = "sync-serial", maxsize: int = 256):
        self.name = name
        self._queue = queue.Queue(maxsize=maxsize)
        self._stop = threading.Event()
        self._thread = None
        self._dropped = 0
        self._lock = threading.Lock()

    def start(self) -> None:
        """Start the worker thread."""
        with self._lock:
            if self._thread and self._thread.is_alive():
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._drain, daemon=True, name=self.name)
            self._thread.start()

    def stop(self, timeout: float = 2.0) -> bool:
        """Let queued jobs finish, then stop the worker.

        Returns:
            True if the worker exited within *timeout*.
        """
        self._stop.set()
        with self._lock:
            thread = self._thread
        if thread is None:
            return True
        if thread is threading.current_thread():
            return False
        thread.join(timeout=timeout)
        if thread.is_alive():
            log.warning("%s did not stop within %.1fs", self.name, timeout)
            return False
        with self._lock:
            self._thread = None
        return True

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def in_worker(self) -> bool:
        """True when called from the worker thread itself."""
        return threading.current_thread() is self._thread

    def submit(self, fn: Callable[..., Any], *args, dropped_result: Any = None, **kwargs) -> Future:
        """Queue *fn* for the worker.  The returned Future carries its result.

        On backpressure the job is dropped and the Future resolves to
        *dropped_result* (None unless the caller passes its own falsy value).
        """
        future: Future = Future()
        try:
            self._queue.put_nowait((fn, args, kwargs, future))
        except queue.Full:
            with self._lock:
                self._dropped += 1
                dropped = self._dropped
            log.warning("%s queue full, job %s dropped (%d total dropped)",
                        self.name, getattr(fn, "__name__", fn), dropped)
            future.set_result(dropped_result)
        return future

    def flush(self, timeout: float = 5.0) -> bool:
        """Block until every job submitted before this call has run."""
        if self.in_worker():
            return True
        marker = self.submit(lambda: True)
        try:
            return bool(marker.result(timeout=timeout))
        except FutureTimeout:
            return False

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _drain(self) -> None:
        """Drain loop: pull jobs and run them until stopped and empty."""
        while True:
            try:
                fn, args, kwargs, future = self._queue.get(timeout=0.2)
            except queue.Empty:
                if self._stop.is_set():
                    break
                continue

            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as e:
                log.error("%s job %s failed: %s", self.name, getattr(fn, "__name__", fn), e)
                future.set_exception(e)
