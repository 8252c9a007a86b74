"""
In-process async task queue for the Playwright background jobs.
No external dependencies (no Celery/Redis) - uses asyncio.Queue.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

logger = logging.getLogger("autoconnect")


class TaskType(str, Enum):
    LOGIN = "login"
    COLLECT = "collect"
    RUN_WORKFLOW = "run_workflow"


@dataclass
class WorkerTask:
    task_type: TaskType
    payload: dict = field(default_factory=dict)
    task_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    status: str = "queued"  # queued -> running -> completed | failed
    progress: int = 0
    total: int = 0
    error: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status in ("queued", "running")

    def to_dict(self) -> dict:
        return {
            "job_id": self.task_id,
            "task_type": self.task_type.value,
            "status": self.status,
            "progress": self.progress,
            "total": self.total,
            "error": self.error,
        }


class TaskRegistry:
    """Thread-safe registry for tracking active and completed tasks."""

    def __init__(self):
        self._tasks: dict[str, WorkerTask] = {}
        self._lock = threading.Lock()

    def register(self, task: WorkerTask) -> str:
        with self._lock:
            self._tasks[task.task_id] = task
        return task.task_id

    def get(self, task_id: str) -> Optional[WorkerTask]:
        with self._lock:
            return self._tasks.get(task_id)

    def open_task(self, task_type: TaskType) -> Optional[WorkerTask]:
        """The queued or running task of this type, if any."""
        with self._lock:
            for task in self._tasks.values():
                if task.task_type == task_type and task.is_open:
                    return task
        return None

    def cleanup_old(self, max_completed: int = 50):
        """Remove old completed tasks to prevent memory leak."""
        with self._lock:
            finished = [t for t in self._tasks.values() if not t.is_open]
            if len(finished) > max_completed:
                for t in finished[:len(finished) - max_completed]:
                    del self._tasks[t.task_id]


# Global registry
task_registry = TaskRegistry()
