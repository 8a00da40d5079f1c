"""
Serialized Executor
===================

Single-consumer task queue that linearizes work from many threads.

Callers on any thread enqueue callables; one worker thread runs them one
at a time, in submission order. Anything the tasks touch is therefore only
ever accessed from the worker, so it needs no lock of its own.

Design Rules:
    - post() is fire-and-forget and never blocks
    - submit() returns a Future for callers that need the result
    - A failing task is logged and does not stop the worker
    - No cancellation: once queued, a task runs to completion
    - close() lets queued work finish, then stops the worker

Example:
    executor = SerializedExecutor(name="analyzer")
    executor.post(ledger.update, key, value)      # returns immediately
    snapshot = executor.run_and_wait(ledger.copy) # sees the update above
    executor.close()
"""

import concurrent.futures
import logging
import queue
import threading
from typing import Any, Callable, Optional

from codec_analyzer.errors import ExecutorClosedError


logger = logging.getLogger(__name__)

# Sentinel that tells the worker to exit
_STOP = object()


def _task_name(fn: Callable) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)


class SerializedExecutor:
    """
    FIFO executor backed by one daemon worker thread.

    Attributes:
        name: Worker thread name
        closed: Whether new work is rejected

    Thread Safety:
        post/submit/flush/close may be called from any thread.
    """

    def __init__(self, name: str = "codec-analyzer") -> None:
        """
        Start the worker thread.

        Args:
            name: Name given to the worker thread (visible in logs/debuggers)
        """
        self.name = name

        self._queue: "queue.Queue[Any]" = queue.Queue()
        self._lock = threading.Lock()
        self._closed: bool = False

        # Metrics
        self._tasks_posted: int = 0
        self._tasks_run: int = 0
        self._tasks_failed: int = 0

        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

        logger.debug(f"SerializedExecutor '{name}' started")

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Approximate number of queued tasks."""
        return self._queue.qsize()

    def is_current(self) -> bool:
        """Whether the caller is running on the worker thread."""
        return threading.current_thread() is self._thread

    def _enqueue(self, item: tuple) -> None:
        with self._lock:
            if self._closed:
                raise ExecutorClosedError(f"Executor '{self.name}' is closed")
            self._tasks_posted += 1
            self._queue.put(item)

    def post(self, fn: Callable, *args: Any, **kwargs: Any) -> None:
        """
        Queue a task without waiting for it.

        Raises:
            ExecutorClosedError: If close() was called
        """
        self._enqueue((fn, args, kwargs, None))

    def submit(self, fn: Callable, *args: Any, **kwargs: Any) -> concurrent.futures.Future:
        """
        Queue a task and return a Future for its result.

        Raises:
            ExecutorClosedError: If close() was called
        """
        future: concurrent.futures.Future = concurrent.futures.Future()
        self._enqueue((fn, args, kwargs, future))
        return future

    def run_and_wait(
        self,
        fn: Callable,
        *args: Any,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> Any:
        """
        Queue a task and block until it has run.

        Everything queued before this call runs first. Called from the
        worker thread itself, the task runs inline to avoid deadlock.

        Args:
            fn: Task to run
            timeout: Maximum seconds to wait. None = wait forever.

        Returns:
            The task's return value

        Raises:
            concurrent.futures.TimeoutError: If the wait times out
            ExecutorClosedError: If close() was called
            Exception: Whatever the task raised
        """
        if self.is_current():
            return fn(*args, **kwargs)
        return self.submit(fn, *args, **kwargs).result(timeout=timeout)

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every task queued before this call has run.

        Returns:
            True if drained, False on timeout
        """
        if self.is_current():
            return True

        try:
            self.run_and_wait(lambda: None, timeout=timeout)
        except concurrent.futures.TimeoutError:
            logger.warning(f"Executor '{self.name}' flush timed out after {timeout}s")
            return False
        except ExecutorClosedError:
            self._thread.join(timeout)
            return not self._thread.is_alive()
        return True

    def close(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop accepting work and shut the worker down after the queue drains.

        Args:
            wait: Block until the worker has exited
            timeout: Maximum seconds to wait for the worker
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)

        if wait and not self.is_current():
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(f"Executor '{self.name}' did not stop within {timeout}s")

        logger.debug(
            f"SerializedExecutor '{self.name}' closed: "
            f"run={self._tasks_run}, failed={self._tasks_failed}"
        )

    def _run(self) -> None:
        """Worker loop: drain the queue until the stop sentinel."""
        while True:
            item = self._queue.get()
            if item is _STOP:
                break

            fn, args, kwargs, future = item
            if future is not None and not future.set_running_or_notify_cancel():
                continue

            # Counters are updated before the future resolves so waiters
            # observe them.
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                self._tasks_run += 1
                self._tasks_failed += 1
                logger.exception(f"Task {_task_name(fn)} failed: {e}")
                if future is not None:
                    future.set_exception(e)
            else:
                self._tasks_run += 1
                if future is not None:
                    future.set_result(result)

    def metrics(self) -> dict:
        """
        Get executor metrics for observability.

        Returns:
            Dict with posted, run, failed and pending task counts
        """
        return {
            "tasks_posted": self._tasks_posted,
            "tasks_run": self._tasks_run,
            "tasks_failed": self._tasks_failed,
            "pending": self.pending,
            "closed": self._closed,
        }

    def __enter__(self) -> "SerializedExecutor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
