"""
In-process background task queue.

A single worker thread runs tasks one at a time in FIFO order. The worker
is started on enqueue when the queue is idle and exits as soon as the queue
is empty; nothing polls.

Failed tasks are re-enqueued at the tail until they have run max_attempts
times, then marked failed. There is no per-task timeout: a task that never
returns blocks the worker (and every task behind it) indefinitely.
"""

import threading
import time
import uuid
from collections import deque
from typing import Any, Callable

from docintake.config import settings
from docintake.core.logging import get_logger
from docintake.core.models import QueuedTask, TaskStatus, utcnow

log = get_logger(__name__)


def _check_attempts(value: int) -> int:
    if value < 1:
        raise ValueError(f"max_attempts must be at least 1, got {value}")
    return value


class TaskQueue:
    """Single-worker FIFO task runner with bounded retries."""

    def __init__(
        self,
        max_attempts: int | None = None,
        retention: int | None = None,
        retry_delay: float = 0.0,
        name: str = "tasks",
    ):
        self.max_attempts = _check_attempts(
            max_attempts if max_attempts is not None else settings.queue_max_attempts
        )
        self.retention = retention if retention is not None else settings.queue_retention
        self.retry_delay = retry_delay
        self.name = name

        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._pending: deque[QueuedTask] = deque()
        self._tasks: dict[str, QueuedTask] = {}
        self._history: deque[str] = deque()
        self._current: QueuedTask | None = None
        self._processing = False
        self._closed = False
        self._worker: threading.Thread | None = None

    def enqueue(
        self,
        func: Callable[[], Any],
        *,
        payload: dict[str, Any] | None = None,
        max_attempts: int | None = None,
    ) -> str:
        """
        Add a task to the tail of the queue and start the worker if idle.

        Returns immediately; the task runs on the worker thread.

        Returns:
            The new task id.

        Raises:
            RuntimeError: the queue has been shut down
        """
        task_id, _ = self.submit(func, payload=payload, max_attempts=max_attempts)
        return task_id

    def submit(
        self,
        func: Callable[[], Any],
        *,
        payload: dict[str, Any] | None = None,
        max_attempts: int | None = None,
    ) -> tuple[str, int]:
        """
        Same as enqueue, but also returns the task's 1-based position among
        waiting tasks, taken under the lock at enqueue time.
        """
        task = QueuedTask(
            id=f"task_{uuid.uuid4().hex[:16]}",
            func=func,
            payload=payload or {},
            max_attempts=(
                _check_attempts(max_attempts) if max_attempts is not None else self.max_attempts
            ),
        )

        with self._lock:
            if self._closed:
                raise RuntimeError(f"Task queue '{self.name}' is shut down")
            self._pending.append(task)
            self._tasks[task.id] = task
            queue_length = len(self._pending)
            start_worker = not self._processing
            if start_worker:
                self._processing = True

        log.info("task_queued", queue=self.name, task_id=task.id, queue_length=queue_length)

        if start_worker:
            self._start_worker()
        return task.id, queue_length

    def _start_worker(self) -> None:
        worker = threading.Thread(
            target=self._run,
            name=f"{self.name}-worker",
            daemon=True,
        )
        self._worker = worker
        worker.start()

    def _run(self) -> None:
        log.info("queue_processing_started", queue=self.name)
        while True:
            with self._lock:
                if not self._pending:
                    self._processing = False
                    self._current = None
                    self._idle.notify_all()
                    log.info("queue_processing_completed", queue=self.name)
                    return
                task = self._pending.popleft()
                task.status = TaskStatus.PROCESSING
                task.attempts += 1
                task.started_at = utcnow()
                self._current = task

            try:
                self._execute(task)
            except BaseException as e:
                # Reopen the gate so the next enqueue starts a new worker.
                with self._lock:
                    task.status = TaskStatus.FAILED
                    task.error = repr(e)
                    task.completed_at = utcnow()
                    self._retain(task)
                    self._current = None
                    self._processing = False
                    self._idle.notify_all()
                log.error("task_worker_aborted", queue=self.name, task_id=task.id, error=repr(e))
                raise

    def _execute(self, task: QueuedTask) -> None:
        log.info("task_started", queue=self.name, task_id=task.id, attempt=task.attempts)
        try:
            result = task.func()
        except Exception as e:
            error = str(e) or e.__class__.__name__
            with self._lock:
                task.error = error
                self._current = None
                retry = task.attempts < task.max_attempts
                if retry:
                    task.status = TaskStatus.QUEUED
                    self._pending.append(task)
                else:
                    task.status = TaskStatus.FAILED
                    task.completed_at = utcnow()
                    self._retain(task)

            if retry:
                log.warning(
                    "task_retry_scheduled",
                    queue=self.name,
                    task_id=task.id,
                    attempt=task.attempts,
                    max_attempts=task.max_attempts,
                    error=error,
                )
                if self.retry_delay:
                    time.sleep(self.retry_delay)
            else:
                log.error(
                    "task_failed",
                    queue=self.name,
                    task_id=task.id,
                    attempts=task.attempts,
                    error=error,
                )
            return

        with self._lock:
            task.status = TaskStatus.COMPLETED
            task.completed_at = utcnow()
            task.result = result
            self._current = None
            self._retain(task)
        log.info("task_completed", queue=self.name, task_id=task.id, attempts=task.attempts)

    def _retain(self, task: QueuedTask) -> None:
        # Caller holds the lock.
        self._history.append(task.id)
        while len(self._history) > self.retention:
            self._tasks.pop(self._history.popleft(), None)

    @property
    def is_processing(self) -> bool:
        with self._lock:
            return self._processing

    def get_status(self) -> dict[str, Any]:
        """Point-in-time snapshot of the queue, taken under the lock."""
        with self._lock:
            queued = len(self._pending)
            processing = 1 if self._current else 0
            return {
                "queued": queued,
                "processing": processing,
                "is_processing": self._processing,
                "total_in_system": queued + processing,
                "current": self._current.to_dict() if self._current else None,
                "queue_snapshot": [t.to_dict() for t in self._pending],
                "recent": [self._tasks[i].to_dict() for i in self._history if i in self._tasks],
            }

    def get_task(self, task_id: str) -> dict[str, Any] | None:
        """Snapshot of one task, or None if unknown or no longer retained."""
        with self._lock:
            task = self._tasks.get(task_id)
            return task.to_dict() if task else None

    def clear(self) -> int:
        """
        Drop all pending tasks. A task that is already running is not cancelled.

        Returns:
            Number of tasks removed.
        """
        with self._lock:
            cleared = len(self._pending)
            for task in self._pending:
                self._tasks.pop(task.id, None)
            self._pending.clear()
            self._idle.notify_all()
        log.info("queue_cleared", queue=self.name, removed=cleared)
        return cleared

    def wait_until_idle(self, timeout: float | None = None) -> bool:
        """
        Block until the queue is empty and the worker has exited.

        Returns:
            False if the timeout expired first.
        """
        with self._idle:
            return self._idle.wait_for(
                lambda: not self._processing and not self._pending,
                timeout=timeout,
            )

    def shutdown(self, wait: bool = True, timeout: float | None = None, cancel_pending: bool = False) -> None:
        """
        Stop accepting tasks.

        Pending tasks still run unless cancel_pending is set; an in-flight
        task is never interrupted.
        """
        with self._lock:
            self._closed = True
            worker = self._worker
        if cancel_pending:
            self.clear()
        log.info("queue_shutdown", queue=self.name, wait=wait)
        if wait and worker is not None and worker is not threading.current_thread():
            worker.join(timeout)
