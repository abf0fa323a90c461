"""
Fixed-floor, bounded-ceiling worker pool.

    submit() ──► Queue(maxsize) ──► Worker-0 ... Worker-n
                     │
                     └── full → submit() returns False → caller answers 503

Starts with `min_workers`; adds one worker whenever every worker is busy
and work is queued, up to `max_workers`. A task that sat in the queue
longer than its timeout is dropped instead of run against a client that
has likely given up.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    timeout: Optional[float] = None
    # Called with the same args instead of func when the task is dropped
    on_drop: Optional[Callable[..., Any]] = None
    submitted_at: float = field(default_factory=time.monotonic)

    @property
    def waited(self) -> float:
        return time.monotonic() - self.submitted_at


class Worker(threading.Thread):
    def __init__(self, task_queue: queue.Queue, worker_id: int, idle_timeout: float = 1.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self.tasks_completed = 0
        self.tasks_failed = 0
        self._stop_requested = threading.Event()

    def run(self):
        while not self._stop_requested.is_set():
            try:
                task = self.task_queue.get(timeout=self.idle_timeout)
            except queue.Empty:
                continue
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.task_queue.task_done()
        self.state = WorkerState.STOPPED

    def _execute(self, task: Task):
        if task.timeout and task.waited > task.timeout:
            logger.warning(
                f"Dropping task that waited {task.waited:.2f}s (timeout {task.timeout}s)"
            )
            self.tasks_failed += 1
            if task.on_drop is not None:
                try:
                    task.on_drop(*task.args, **task.kwargs)
                except Exception:
                    logger.exception(f"Worker {self.worker_id} drop callback failed")
            return

        self.state = WorkerState.BUSY
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
        except Exception:
            logger.exception(f"Worker {self.worker_id} task failed")
            self.tasks_failed += 1
        finally:
            self.state = WorkerState.IDLE

    def stop(self):
        self._stop_requested.set()


class ThreadPool:
    """
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        pool.submit(process, args=(conn,), timeout=30.0)
        pool.shutdown()
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 1.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.idle_timeout = idle_timeout
        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    def start(self):
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutting_down = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        """Spawn one worker. Call with the lock held."""
        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(
        self,
        func: Callable[..., Any],
        args: tuple = (),
        kwargs: Optional[dict] = None,
        timeout: Optional[float] = None,
        on_drop: Optional[Callable[..., Any]] = None,
    ) -> bool:
        """
        Queue a call. Never blocks.

        A task still queued after `timeout` seconds is not run; `on_drop`
        is called with the same arguments instead so the caller can
        release whatever the task owned.

        Returns:
            False when the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func, args, kwargs or {}, timeout, on_drop))
        except queue.Full:
            return False
        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self):
        with self._lock:
            all_busy = all(w.state == WorkerState.BUSY for w in self._workers)
            if all_busy and len(self._workers) < self.max_workers \
                    and not self._task_queue.empty():
                logger.debug(f"Scaling up to {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop all workers.

        With wait=True, queued tasks are given up to `timeout` seconds
        (forever when None) to drain first.
        """
        if not self._started:
            return
        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = None if timeout is None else time.monotonic() + timeout
            while not self._task_queue.empty():
                if deadline is not None and time.monotonic() > deadline:
                    logger.warning("Shutdown timeout, abandoning queued tasks")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()
        for worker in workers:
            worker.stop()
        for worker in workers:
            worker.join(timeout=2.0)

        self._started = False
        completed = sum(w.tasks_completed for w in workers)
        failed = sum(w.tasks_failed for w in workers)
        logger.info(f"Thread pool shutdown complete ({completed} tasks run, {failed} failed or dropped)")

