"""
Task status transitions and work-session bookkeeping.

    TODO -> WORKING -> STUCK | DONE,  STUCK -> WORKING

Any status may be set from any other; the machine only enforces two things:

1. a worker has at most one non-deleted task in WORKING;
2. entering WORKING opens a work log, entering STUCK or DONE closes every
   open log of that task for the worker.

The exclusivity check, the log write and the status write run under a
per-worker lock and commit together, so two concurrent requests for the same
worker cannot both pass the check. The task is re-read once that lock is
held, and reassignments take the same lock, so the worker cannot change
underneath a transition. On databases with row locks the task row and the
worker's user row are also locked until commit, which covers multiple
processes.
"""

from collections import defaultdict
from contextlib import contextmanager
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
import logging
import threading

from app.core import permissions
from app.core.calendar import utcnow
from app.core.database import unit_of_work
from app.core.errors import ActiveTaskExists, NotFoundError, UpstreamFailure
from app.core.principal import Principal
from app.models.task import Task, TaskStatus
from app.services import task_repository as repo

logger = logging.getLogger(__name__)

TIMER_STOP_STATES = (TaskStatus.STUCK, TaskStatus.DONE)


class WorkerLocks:
    """One re-entrant lock per worker id.

    An entry lives only while some thread holds or waits on it, so the map
    stays as small as the number of workers currently in a transition.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}
        self._users = defaultdict(int)

    def __len__(self):
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, worker_id: int):
        with self._guard:
            lock = self._locks.setdefault(worker_id, threading.RLock())
            self._users[worker_id] += 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[worker_id] -= 1
                if not self._users[worker_id]:
                    del self._users[worker_id]
                    del self._locks[worker_id]


worker_locks = WorkerLocks()


def worker_for(task: Task, principal: Principal) -> int:
    """Whose timer a transition drives: the assignee, or the caller on unassigned tasks."""
    return task.assignee_id if task.assignee_id is not None else principal.id


@contextmanager
def task_worker_lock(db: Session, task: Task, principal: Principal):
    """Hold the lock of the worker currently driving `task` and yield its id.

    The task is re-read (row-locked where supported) after the lock is taken.
    If it changed hands while we waited, the read is rolled back and the new
    worker's lock is taken instead. Callers commit inside the block.
    """
    while True:
        worker_id = worker_for(task, principal)
        with worker_locks.hold(worker_id):
            try:
                repo.lock_task(db, task.id)
            except NotFoundError:
                db.rollback()
                raise
            except SQLAlchemyError as e:
                db.rollback()
                logger.error(f"Could not re-read task {task.id}: {e}")
                raise UpstreamFailure("Failed to read task") from e
            if worker_for(task, principal) == worker_id:
                yield worker_id
                return
            db.rollback()
        logger.info(f"Task {task.id} moved away from user {worker_id}, retrying under the new worker")


def set_task_status(
    db: Session,
    principal: Principal,
    task_id: int,
    new_status: TaskStatus,
    now: Optional[datetime] = None,
) -> Task:
    new_status = TaskStatus(new_status)
    task = repo.get_task(db, task_id)
    permissions.require(permissions.can_set_status(principal, task))

    now = now or utcnow()
    with task_worker_lock(db, task, principal) as worker_id:
        with unit_of_work(db, "update status"):
            # ownership is re-checked on the fresh row
            permissions.require(permissions.can_set_status(principal, task))

            if new_status == TaskStatus.WORKING:
                _enter_working(db, task, worker_id, now)
            elif new_status in TIMER_STOP_STATES:
                closed = repo.close_open_logs(db, task.id, worker_id, now)
                if closed:
                    logger.info(f"Closed {closed} work log(s) on task {task.id} for user {worker_id}")

            previous = task.status
            repo.apply_changes(task, {"status": new_status.value}, now)

    db.refresh(task)
    logger.info(f"Task {task.id} status {previous} -> {new_status.value} by {principal.id}")
    return task


def _enter_working(db: Session, task: Task, worker_id: int, now: datetime) -> None:
    repo.lock_worker(db, worker_id)

    active = repo.find_active_task(db, worker_id, exclude_task_id=task.id)
    if active is not None:
        logger.info(f"User {worker_id} already working on task {active.id}, refusing task {task.id}")
        raise ActiveTaskExists(active.id, active.title)

    # re-entering WORKING keeps the running session
    if not repo.open_logs(db, task.id, worker_id):
        repo.open_work_log(db, task.id, worker_id, now)
