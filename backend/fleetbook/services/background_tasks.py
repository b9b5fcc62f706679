"""
Ordered background work for side effects of booking changes.

Socket.IO broadcasts run on a task lane so the request that approved or
created a booking returns without waiting for the pending queue to be
re-read and pushed to every admin. Tasks on one lane run one at a time in
submission order, so a broadcast built from older data never lands after a
newer one.
"""

import logging
import queue
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class TaskLane:
    """
    Single worker thread consuming tasks in FIFO order.

    Example usage:
        lane = TaskLane("broadcasts")
        lane.submit(broadcast_pending_bookings_update_sync, socketio, data_service,
                    task_name="pending_bookings_update")
    """

    def __init__(self, name: str):
        self.name = name
        self._tasks: queue.Queue = queue.Queue()
        self._lock = threading.Lock()
        self._worker: Optional[threading.Thread] = None

    def submit(
        self,
        task: Callable,
        *args,
        task_name: Optional[str] = None,
        on_success: Optional[Callable] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        **kwargs
    ) -> None:
        """
        Queue a task behind everything already submitted to this lane.

        Args:
            task: The function to execute
            task_name: Optional name for logging purposes
            on_success: Optional callback receiving the task's result
            on_error: Optional callback receiving the exception; without one the
                failure is logged with its traceback
        """
        label = task_name or getattr(task, "__name__", "task")
        self._tasks.put((label, task, args, kwargs, on_success, on_error))
        self._ensure_worker()
        logger.debug(f"[BackgroundTask:{self.name}] Queued: {label}")

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is None:
                self._worker = threading.Thread(target=self._run, name=f"bg-{self.name}", daemon=True)
                self._worker.start()

    def _run(self) -> None:
        while True:
            label, task, args, kwargs, on_success, on_error = self._tasks.get()
            try:
                result = task(*args, **kwargs)
                if on_success:
                    on_success(result)
            except Exception as e:
                logger.error(f"[BackgroundTask:{self.name}] Failed: {label} - {e}", exc_info=on_error is None)
                if on_error:
                    try:
                        on_error(e)
                    except Exception as callback_error:
                        logger.error(f"[BackgroundTask:{self.name}] Error callback failed: {callback_error}")
            finally:
                self._tasks.task_done()

    @property
    def pending(self) -> int:
        """Tasks queued or running."""
        return self._tasks.unfinished_tasks

    def join(self) -> None:
        """Block until every task submitted so far has finished."""
        self._tasks.join()
