import os

from app.config import UPLOAD_DIR
from app.models.notification_model import Notification, NotificationType
from app.models.task_model import Task
from app.models.user_model import UserRole


def create_task(client, headers, user, **fields):
    data = {"title": "Prepare report", "description": "Quarterly numbers"}
    data.update({k: str(v) for k, v in fields.items()})
    return client.post("/api/tasks", headers=headers(user), data=data)


def test_member_cannot_create_task(client, make_user, headers):
    member = make_user()
    response = create_task(client, headers, member)
    assert response.status_code == 403


def test_create_task_defaults_and_assignment_notification(client, make_user, headers, db, socket_emit):
    manager = make_user(role=UserRole.manager)
    member = make_user()

    response = create_task(client, headers, manager, assignee_id=member.id)
    assert response.status_code == 201
    task = response.json()["task"]
    assert task["status"] == "todo"
    assert task["priority"] == "medium"
    assert task["notify_on_view"] is True
    assert task["assignee_first_name"] == member.first_name
    assert task["creator_first_name"] == manager.first_name

    notifications = db.query(Notification).filter(Notification.recipient_id == member.id).all()
    assert len(notifications) == 1
    assert notifications[0].type == NotificationType.task_assigned
    assert notifications[0].message == 'You have been assigned a new task: "Prepare report"'

    events = [call.args[0] for call in socket_emit.await_args_list]
    assert "new_notification" in events


def test_self_assigned_task_creates_no_notification(client, make_user, headers, db):
    manager = make_user(role=UserRole.manager)
    response = create_task(client, headers, manager, assignee_id=manager.id)
    assert response.status_code == 201
    assert db.query(Notification).count() == 0


def test_create_task_with_unknown_assignee_fails(client, make_user, headers, db):
    manager = make_user(role=UserRole.manager)
    response = create_task(client, headers, manager, assignee_id=999)
    assert response.status_code == 400
    assert "Assignee not found" in response.json()["detail"]
    assert db.query(Task).count() == 0


def test_create_task_with_attachment_and_download(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    response = client.post(
        "/api/tasks",
        headers=headers(manager),
        data={"title": "With file"},
        files={"attachment": ("notes.txt", b"hello world", "text/plain")},
    )
    assert response.status_code == 201
    task = response.json()["task"]
    assert task["attachment_name"] == "notes.txt"
    assert task["attachment_size"] == 11
    assert os.path.exists(os.path.join(UPLOAD_DIR, task["attachment_path"]))

    download = client.get(f"/api/tasks/attachments/{task['attachment_path']}", headers=headers(manager))
    assert download.status_code == 200
    assert download.content == b"hello world"

    missing = client.get("/api/tasks/attachments/does-not-exist.txt", headers=headers(manager))
    assert missing.status_code == 404


def test_failed_task_creation_removes_uploaded_file(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    before = set(os.listdir(UPLOAD_DIR))
    response = client.post(
        "/api/tasks",
        headers=headers(manager),
        data={"title": "Bad assignee", "assignee_id": "999"},
        files={"attachment": ("notes.txt", b"data", "text/plain")},
    )
    assert response.status_code == 400
    assert set(os.listdir(UPLOAD_DIR)) == before


def test_task_visibility_by_role(client, make_user, headers):
    admin = make_user(role=UserRole.admin)
    manager_a = make_user(role=UserRole.manager)
    manager_b = make_user(role=UserRole.manager)
    member = make_user()
    other_member = make_user()

    create_task(client, headers, manager_a, title="A to member", assignee_id=member.id)
    create_task(client, headers, manager_b, title="B to A", assignee_id=manager_a.id)
    create_task(client, headers, manager_b, title="B to other", assignee_id=other_member.id)

    def titles(user):
        response = client.get("/api/tasks", headers=headers(user))
        assert response.status_code == 200
        assert response.json()["count"] == len(response.json()["tasks"])
        return {t["title"] for t in response.json()["tasks"]}

    assert titles(admin) == {"A to member", "B to A", "B to other"}
    assert titles(manager_a) == {"A to member", "B to A"}
    assert titles(member) == {"A to member"}


def test_get_task_forbidden_for_unrelated_member(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    stranger = make_user()
    task_id = create_task(client, headers, manager, assignee_id=member.id).json()["task"]["id"]

    assert client.get(f"/api/tasks/{task_id}", headers=headers(member)).status_code == 200
    assert client.get(f"/api/tasks/{task_id}", headers=headers(stranger)).status_code == 403
    assert client.get("/api/tasks/9999", headers=headers(member)).status_code == 404


def test_member_may_only_change_status_of_own_task(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    stranger = make_user()
    task_id = create_task(client, headers, manager, assignee_id=member.id, priority="high").json()["task"]["id"]

    ok = client.put(f"/api/tasks/{task_id}", headers=headers(member), json={"status": "in_progress"})
    assert ok.status_code == 200
    task = ok.json()["task"]
    assert task["status"] == "in_progress"
    # merge semantics: untouched fields keep their values
    assert task["title"] == "Prepare report"
    assert task["priority"] == "high"

    retitle = client.put(f"/api/tasks/{task_id}", headers=headers(member), json={"title": "Mine now"})
    assert retitle.status_code == 403

    other = client.put(f"/api/tasks/{task_id}", headers=headers(stranger), json={"status": "done"})
    assert other.status_code == 403

    missing = client.put("/api/tasks/9999", headers=headers(manager), json={"status": "done"})
    assert missing.status_code == 404


def test_update_rejects_null_for_required_fields(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    task_id = create_task(client, headers, manager, assignee_id=member.id).json()["task"]["id"]

    response = client.put(f"/api/tasks/{task_id}", headers=headers(member), json={"status": None})
    assert response.status_code == 400
    assert response.json()["error"] == "Validation failed"

    for field in ("title", "priority", "description"):
        rejected = client.put(f"/api/tasks/{task_id}", headers=headers(manager), json={field: None})
        assert rejected.status_code == 400

    task = client.get(f"/api/tasks/{task_id}", headers=headers(manager)).json()["task"]
    assert task["status"] == "todo"

    # null assignee still means unassign
    unassigned = client.put(f"/api/tasks/{task_id}", headers=headers(manager), json={"assignee_id": None})
    assert unassigned.status_code == 200
    assert unassigned.json()["task"]["assignee_id"] is None


def test_status_change_by_member_notifies_creator(client, make_user, headers, db):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    task_id = create_task(client, headers, manager, assignee_id=member.id).json()["task"]["id"]

    client.put(f"/api/tasks/{task_id}", headers=headers(member), json={"status": "done"})

    updates = db.query(Notification).filter(Notification.type == NotificationType.task_updated).all()
    assert len(updates) == 1
    assert updates[0].recipient_id == manager.id


def test_manager_update_validates_new_assignee(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    task_id = create_task(client, headers, manager).json()["task"]["id"]
    response = client.put(f"/api/tasks/{task_id}", headers=headers(manager), json={"assignee_id": 4242})
    assert response.status_code == 400


def test_delete_task_only_by_creator_or_admin(client, make_user, headers):
    creator = make_user(role=UserRole.manager)
    other_manager = make_user(role=UserRole.manager)
    admin = make_user(role=UserRole.admin)
    first = create_task(client, headers, creator).json()["task"]["id"]
    second = create_task(client, headers, creator).json()["task"]["id"]

    assert client.delete(f"/api/tasks/{first}", headers=headers(other_manager)).status_code == 403
    assert client.delete(f"/api/tasks/{first}", headers=headers(creator)).status_code == 200
    assert client.delete(f"/api/tasks/{first}", headers=headers(creator)).status_code == 404
    assert client.delete(f"/api/tasks/{second}", headers=headers(admin)).status_code == 200


def test_assignable_users_list_for_staff_only(client, make_user, headers):
    manager = make_user(role=UserRole.manager)
    member = make_user()
    make_user(is_active=False)

    assert client.get("/api/tasks/users/list", headers=headers(member)).status_code == 403
    response = client.get("/api/tasks/users/list", headers=headers(manager))
    assert response.status_code == 200
    assert {u["id"] for u in response.json()["users"]} == {manager.id, member.id}
