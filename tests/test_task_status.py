"""
Status transitions, single active task per worker and work-session timing.
"""

import threading
from datetime import datetime, timedelta

import pytest

from conftest import TestingSessionLocal
from app.core.errors import ActiveTaskExists, ForbiddenError, NotFoundError
from app.models.task import Task, TaskStatus
from app.models.work_log import TaskWorkLog
from app.schemas.task import TaskCreate, TaskUpdate
from app.services import task_service
from app.services.task_status import WorkerLocks, set_task_status, worker_locks

T0 = datetime(2026, 3, 2, 9, 0, 0)


def new_task(db, manager, operator, title="Task"):
    return task_service.create_task(db, manager, TaskCreate(title=title, assignee_user_id=operator.id))


def logs_for(db, task_id):
    db.expire_all()
    return db.query(TaskWorkLog).filter(TaskWorkLog.task_id == task_id).order_by(TaskWorkLog.id).all()


def working_count(db, user_id):
    db.expire_all()
    return db.query(Task).filter(
        Task.assignee_id == user_id,
        Task.status == TaskStatus.WORKING.value,
        Task.is_deleted == False,  # noqa: E712
    ).count()


def test_start_work_opens_one_log(db, manager, operator):
    task = new_task(db, manager, operator)

    updated = set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0)

    assert updated.status == "WORKING"
    logs = logs_for(db, task.id)
    assert len(logs) == 1
    assert logs[0].user_id == operator.id
    assert logs[0].start_time == T0
    assert logs[0].end_time is None


def test_second_working_task_conflicts_and_names_the_running_one(db, manager, operator):
    a = new_task(db, manager, operator, "Task A")
    b = new_task(db, manager, operator, "Task B")
    set_task_status(db, operator, a.id, TaskStatus.WORKING, now=T0)

    with pytest.raises(ActiveTaskExists) as exc:
        set_task_status(db, operator, b.id, TaskStatus.WORKING, now=T0)

    assert exc.value.kind == "CONFLICT"
    assert exc.value.payload["code"] == "ACTIVE_TASK_EXISTS"
    assert exc.value.payload["runningTask"] == {"id": a.id, "title": "Task A"}
    # nothing leaked from the refused transition
    db.expire_all()
    assert db.get(Task, b.id).status == "TODO"
    assert logs_for(db, b.id) == []


def test_done_closes_log_and_restart_opens_new_one(db, manager, operator):
    task = new_task(db, manager, operator)
    set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0)
    set_task_status(db, operator, task.id, TaskStatus.DONE, now=T0 + timedelta(hours=2))

    logs = logs_for(db, task.id)
    assert len(logs) == 1
    assert logs[0].end_time == T0 + timedelta(hours=2)

    set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0 + timedelta(hours=3))

    logs = logs_for(db, task.id)
    assert len(logs) == 2
    assert logs[0].end_time is not None
    assert logs[1].end_time is None


def test_stuck_releases_the_worker(db, manager, operator):
    a = new_task(db, manager, operator, "A")
    b = new_task(db, manager, operator, "B")
    set_task_status(db, operator, a.id, TaskStatus.WORKING, now=T0)
    set_task_status(db, operator, a.id, TaskStatus.STUCK, now=T0 + timedelta(minutes=30))

    set_task_status(db, operator, b.id, TaskStatus.WORKING, now=T0 + timedelta(minutes=31))

    assert working_count(db, operator.id) == 1
    assert all(log.end_time is not None for log in logs_for(db, a.id))


def test_closing_is_idempotent_over_several_open_logs(db, manager, operator):
    task = new_task(db, manager, operator)
    db.add_all([
        TaskWorkLog(task_id=task.id, user_id=operator.id, start_time=T0),
        TaskWorkLog(task_id=task.id, user_id=operator.id, start_time=T0 + timedelta(minutes=5)),
    ])
    db.commit()

    set_task_status(db, operator, task.id, TaskStatus.DONE, now=T0 + timedelta(hours=1))
    set_task_status(db, operator, task.id, TaskStatus.DONE, now=T0 + timedelta(hours=2))

    ends = [log.end_time for log in logs_for(db, task.id)]
    assert ends == [T0 + timedelta(hours=1), T0 + timedelta(hours=1)]


def test_reentering_working_keeps_the_running_log(db, manager, operator):
    task = new_task(db, manager, operator)
    set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0)
    set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0 + timedelta(minutes=10))

    assert len(logs_for(db, task.id)) == 1


def test_skipping_states_is_allowed(db, manager, operator):
    task = new_task(db, manager, operator)

    updated = set_task_status(db, operator, task.id, TaskStatus.DONE, now=T0)

    assert updated.status == "DONE"
    assert logs_for(db, task.id) == []


def test_manager_drives_the_assignee_timer(db, manager, operator):
    a = new_task(db, manager, operator, "A")
    b = new_task(db, manager, operator, "B")
    set_task_status(db, manager, a.id, TaskStatus.WORKING, now=T0)

    assert logs_for(db, a.id)[0].user_id == operator.id
    with pytest.raises(ActiveTaskExists):
        set_task_status(db, manager, b.id, TaskStatus.WORKING, now=T0)


def test_other_operator_cannot_change_status(db, manager, operator, other_operator):
    task = new_task(db, manager, operator)

    with pytest.raises(ForbiddenError):
        set_task_status(db, other_operator, task.id, TaskStatus.WORKING)


def test_missing_or_deleted_task_is_not_found(db, manager, operator):
    with pytest.raises(NotFoundError):
        set_task_status(db, operator, 9999, TaskStatus.WORKING)

    task = new_task(db, manager, operator)
    task_service.soft_delete_task(db, manager, task.id)
    with pytest.raises(NotFoundError):
        set_task_status(db, operator, task.id, TaskStatus.WORKING)


def test_deleted_working_task_does_not_block(db, manager, operator):
    a = new_task(db, manager, operator, "A")
    b = new_task(db, manager, operator, "B")
    set_task_status(db, operator, a.id, TaskStatus.WORKING, now=T0)
    task_service.soft_delete_task(db, manager, a.id)

    updated = set_task_status(db, operator, b.id, TaskStatus.WORKING, now=T0)

    assert updated.status == "WORKING"


def test_transfer_resets_to_todo_and_leaves_old_log_open(db, manager, operator, other_operator):
    task = new_task(db, manager, operator)
    set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0)

    moved = task_service.transfer_task(db, manager, task.id, new_assignee_user_id=other_operator.id)

    assert moved.assignee_id == other_operator.id
    assert moved.status == "TODO"
    logs = logs_for(db, task.id)
    assert len(logs) == 1
    assert logs[0].user_id == operator.id
    assert logs[0].end_time is None


def test_open_logs_only_exist_on_working_tasks(db, manager, operator):
    tasks = [new_task(db, manager, operator, f"T{i}") for i in range(3)]
    steps = [
        (tasks[0], TaskStatus.WORKING),
        (tasks[0], TaskStatus.STUCK),
        (tasks[1], TaskStatus.WORKING),
        (tasks[1], TaskStatus.DONE),
        (tasks[0], TaskStatus.WORKING),
        (tasks[2], TaskStatus.DONE),
    ]
    for i, (task, target) in enumerate(steps):
        set_task_status(db, operator, task.id, target, now=T0 + timedelta(minutes=i))

        db.expire_all()
        for log in db.query(TaskWorkLog).filter(TaskWorkLog.end_time.is_(None)).all():
            assert db.get(Task, log.task_id).status == "WORKING"
        assert working_count(db, operator.id) <= 1


def test_concurrent_starts_admit_a_single_working_task(db, manager, operator):
    task_ids = [new_task(db, manager, operator, f"T{i}").id for i in range(4)]
    barrier = threading.Barrier(len(task_ids))
    outcomes = []
    outcomes_lock = threading.Lock()

    def start(task_id):
        session = TestingSessionLocal()
        try:
            barrier.wait()
            set_task_status(session, operator, task_id, TaskStatus.WORKING)
            result = "ok"
        except ActiveTaskExists:
            result = "conflict"
        finally:
            session.close()
        with outcomes_lock:
            outcomes.append(result)

    threads = [threading.Thread(target=start, args=(task_id,)) for task_id in task_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(outcomes) == ["conflict", "conflict", "conflict", "ok"]
    assert working_count(db, operator.id) == 1


def test_reassigning_through_update_resets_to_todo(db, manager, operator, other_operator):
    a = new_task(db, manager, operator, "A")
    b = new_task(db, manager, other_operator, "B")
    set_task_status(db, operator, a.id, TaskStatus.WORKING, now=T0)
    set_task_status(db, other_operator, b.id, TaskStatus.WORKING, now=T0)

    moved = task_service.update_task(db, manager, a.id, TaskUpdate(assignee_user_id=other_operator.id))

    assert moved.assignee_id == other_operator.id
    assert moved.status == "TODO"
    assert working_count(db, other_operator.id) == 1


def test_assigning_an_unassigned_working_task_resets_it(db, manager, operator):
    busy = new_task(db, manager, operator, "busy")
    set_task_status(db, operator, busy.id, TaskStatus.WORKING, now=T0)
    loose = task_service.create_task(db, manager, TaskCreate(title="loose"))
    # unassigned: the manager's own timer runs
    set_task_status(db, manager, loose.id, TaskStatus.WORKING, now=T0)

    updated = task_service.update_task(db, manager, loose.id, TaskUpdate(assignee_user_id=operator.id))

    assert updated.status == "TODO"
    assert working_count(db, operator.id) == 1


def test_update_with_same_assignee_keeps_status(db, manager, operator):
    task = new_task(db, manager, operator)
    set_task_status(db, operator, task.id, TaskStatus.WORKING, now=T0)

    updated = task_service.update_task(
        db, manager, task.id, TaskUpdate(title="Renamed", assignee_user_id=operator.id)
    )

    assert updated.title == "Renamed"
    assert updated.status == "WORKING"


@pytest.fixture
def transfer_before_lock(monkeypatch, manager):
    """Moves a task to another assignee right before the first worker lock is taken."""
    original_hold = worker_locks.hold
    pending = {}

    def hold(worker_id):
        if pending:
            task_id, new_assignee_id = pending.popitem()
            session = TestingSessionLocal()
            try:
                task_service.transfer_task(session, manager, task_id, new_assignee_user_id=new_assignee_id)
            finally:
                session.close()
        return original_hold(worker_id)

    monkeypatch.setattr(worker_locks, "hold", hold)
    return pending


def test_former_assignee_loses_a_task_transferred_mid_request(
    db, manager, operator, other_operator, transfer_before_lock
):
    a = new_task(db, manager, operator, "A")
    b = new_task(db, manager, other_operator, "B")
    set_task_status(db, other_operator, b.id, TaskStatus.WORKING, now=T0)
    transfer_before_lock[a.id] = other_operator.id

    with pytest.raises(ForbiddenError):
        set_task_status(db, operator, a.id, TaskStatus.WORKING, now=T0)

    assert working_count(db, other_operator.id) == 1
    assert logs_for(db, a.id) == []


def test_manager_start_follows_the_new_assignee(db, manager, operator, other_operator, transfer_before_lock):
    a = new_task(db, manager, operator, "A")
    b = new_task(db, manager, other_operator, "B")
    set_task_status(db, other_operator, b.id, TaskStatus.WORKING, now=T0)
    transfer_before_lock[a.id] = other_operator.id

    with pytest.raises(ActiveTaskExists) as exc:
        set_task_status(db, manager, a.id, TaskStatus.WORKING, now=T0)

    assert exc.value.payload["runningTask"]["id"] == b.id
    assert working_count(db, other_operator.id) == 1
    assert logs_for(db, a.id) == []


def test_worker_locks_are_released_after_use():
    locks = WorkerLocks()

    with locks.hold(1):
        with locks.hold(1):
            assert len(locks) == 1
        with locks.hold(2):
            assert len(locks) == 2

    assert len(locks) == 0
