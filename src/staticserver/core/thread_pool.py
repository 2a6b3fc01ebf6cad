"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Each accepted connection is served start to finish by one worker thread:
read request, stat the file, stream the body, repeat while keep-alive.
Every blocking step (disk reads, sendall to a slow client) happens on that
worker and only stalls that one connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    THREAD POOL                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept loop ──submit()──► ┌───────────────────────┐               │
    │                             │  Queue (bounded)      │               │
    │                             │  [conn][conn][conn]   │               │
    │                             └──────────┬────────────┘               │
    │                      ┌─────────────────┼─────────────────┐          │
    │                      ▼                 ▼                 ▼          │
    │                 Worker-0          Worker-1     ...   Worker-N       │
    │                                                                      │
    │   min_workers threads start up front. When every worker is busy     │
    │   and work is waiting, one more is added, up to max_workers.        │
    │   A full queue makes submit() return False (the server answers 503).│
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Shutdown puts one ``None`` (a poison pill) per worker on the queue; a
worker that takes one exits its loop.

=============================================================================
INTERVIEW QUESTIONS
=============================================================================

Q: "Why threads and not asyncio for a file server?"
A: "Regular file I/O has no non-blocking mode on most platforms; asyncio
   would push it to a thread pool anyway. Threads release the GIL during
   read() and sendall(), so I/O-bound work overlaps well."

Q: "Why bound the queue?"
A: "An unbounded queue turns overload into unbounded latency and memory.
   Rejecting early with 503 lets a load balancer retry elsewhere."

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any
from dataclasses import dataclass, field
from enum import Enum


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
    submitted_at: float = field(default_factory=time.time)


class Worker(threading.Thread):
    """Daemon thread that runs tasks from the shared queue."""

    def __init__(self, task_queue: "queue.Queue[Optional[Task]]", worker_id: int, idle_timeout: float = 60.0):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.idle_timeout = idle_timeout
        self.state = WorkerState.IDLE
        self._shutdown = threading.Event()
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self) -> None:
        logger.debug(f"Worker {self.worker_id} started")

        while not self._shutdown.is_set():
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
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, task: Task) -> None:
        self.state = WorkerState.BUSY
        waited = time.time() - task.submitted_at
        start = time.time()
        try:
            task.func(*task.args, **task.kwargs)
            self.tasks_completed += 1
            logger.debug(
                f"Worker {self.worker_id} finished task "
                f"(queued {waited:.3f}s, ran {time.time() - start:.3f}s)"
            )
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Worker {self.worker_id} task failed: {e}")
        finally:
            self.state = WorkerState.IDLE

    def shutdown(self) -> None:
        self._shutdown.set()


class ThreadPool:
    """
    Bounded pool of worker threads.

    Args:
        min_workers: Threads started by start().
        max_workers: Upper bound when scaling up.
        queue_size: Pending tasks accepted before submit() refuses.
        idle_timeout: Seconds a worker waits on the queue per poll.
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
        idle_timeout: float = 60.0,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.max_queue = queue_size
        self.idle_timeout = idle_timeout

        self._task_queue: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._shutting_down = False
        self._next_worker_id = 0

    def start(self) -> None:
        if self._started:
            return
        logger.info(f"Starting thread pool with {self.min_workers} workers")
        self._shutting_down = False
        with self._lock:
            for _ in range(self.min_workers):
                self._add_worker()
        self._started = True

    def _add_worker(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._task_queue, self._next_worker_id, self.idle_timeout)
        self._next_worker_id += 1
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], args: tuple = (), kwargs: Optional[dict] = None) -> bool:
        """
        Queue ``func(*args, **kwargs)`` without blocking.

        Returns:
            True if queued, False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self._started or self._shutting_down:
            raise RuntimeError("Thread pool is not running")

        try:
            self._task_queue.put_nowait(Task(func=func, args=args, kwargs=kwargs or {}))
        except queue.Full:
            return False

        self._maybe_scale_up()
        return True

    def _maybe_scale_up(self) -> None:
        with self._lock:
            all_busy = all(w.state == WorkerState.BUSY for w in self._workers)
            if all_busy and len(self._workers) < self.max_workers and not self._task_queue.empty():
                logger.debug(f"Scaling up: {len(self._workers)} -> {len(self._workers) + 1} workers")
                self._add_worker()

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """
        Stop all workers.

        Args:
            wait: Let queued tasks drain first.
            timeout: Give up draining after this many seconds.
        """
        if not self._started:
            return

        logger.info("Shutting down thread pool...")
        self._shutting_down = True

        if wait:
            deadline = time.time() + timeout if timeout else None
            while not self._task_queue.empty():
                if deadline is not None and time.time() > deadline:
                    logger.warning("Thread pool drain timed out")
                    break
                time.sleep(0.05)

        with self._lock:
            workers = list(self._workers)
            self._workers.clear()

        for _ in workers:
            try:
                self._task_queue.put_nowait(None)
            except queue.Full:
                break

        for worker in workers:
            worker.shutdown()
            worker.join(timeout=2.0)

        self._started = False
        logger.info("Thread pool stopped")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

    @property
    def pending(self) -> int:
        return self._task_queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "busy": self.busy_workers,
            "pending": self.pending,
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
