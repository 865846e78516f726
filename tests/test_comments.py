import pytest

from conftest import auth_header
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.schemas.task import TaskCreate
from app.services import comment_service, task_service


@pytest.fixture
def task(db, manager, operator):
    return task_service.create_task(db, manager, TaskCreate(title="Check pallets", assignee_user_id=operator.id))


def test_seen_flags_follow_the_author(db, manager, operator, task):
    from_manager = comment_service.add_comment(db, manager, task.id, "Please double check")
    from_operator = comment_service.add_comment(db, operator, task.id, "Done twice")

    assert from_manager.seen_by_manager is True
    assert from_manager.seen_by_assignee is False
    assert from_operator.seen_by_manager is False
    assert from_operator.seen_by_assignee is True


def test_mark_seen_sets_only_the_callers_flag(db, manager, operator, task):
    comment_service.add_comment(db, manager, task.id, "one")
    comment_service.add_comment(db, manager, task.id, "two")

    updated = comment_service.mark_comments_seen(db, operator, task.id)

    assert updated == 2
    db.expire_all()
    for comment in comment_service.list_comments(db, manager, task.id):
        assert comment.seen_by_assignee is True
        assert comment.seen_by_manager is True


def test_other_manager_has_no_access(db, other_manager, task):
    with pytest.raises(ForbiddenError):
        comment_service.add_comment(db, other_manager, task.id, "hi")
    with pytest.raises(ForbiddenError):
        comment_service.list_comments(db, other_manager, task.id)
    with pytest.raises(ForbiddenError):
        comment_service.mark_comments_seen(db, other_manager, task.id)


def test_blank_content_rejected(db, manager, task):
    with pytest.raises(ValidationError):
        comment_service.add_comment(db, manager, task.id, "   ")


def test_deleted_task_has_no_thread(db, manager, task):
    task_service.soft_delete_task(db, manager, task.id)

    with pytest.raises(NotFoundError):
        comment_service.list_comments(db, manager, task.id)


def test_thread_over_http(client, manager, operator, task):
    first = client.post(f"/comments/{task.id}", headers=auth_header(manager), json={"content": "first"})
    client.post(f"/comments/{task.id}", headers=auth_header(operator), json={"content": "second"})

    assert first.status_code == 200
    assert first.json()["author"]["email"] == manager.email

    thread = client.get(f"/comments/{task.id}", headers=auth_header(operator)).json()
    assert [c["content"] for c in thread] == ["first", "second"]

    seen = client.patch(f"/comments/{task.id}/seen", headers=auth_header(manager))
    assert seen.status_code == 200
    assert seen.json()["updated"] == 2


def test_empty_comment_over_http(client, manager, task):
    response = client.post(f"/comments/{task.id}", headers=auth_header(manager), json={"content": ""})
    assert response.status_code == 422


def test_comment_on_missing_task(client, manager):
    response = client.post("/comments/999", headers=auth_header(manager), json={"content": "hello"})
    assert response.status_code == 404
