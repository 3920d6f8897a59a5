from fastapi.testclient import TestClient
from sqlmodel import Session

from conftest import PASSWORD, png_bytes
from courseadmin.database import engine
from courseadmin.main import app
from courseadmin.services import AdminService


def test_admin_routes_require_admin(teacher):
    _, client = teacher
    r = client.get("/api/admin/users")
    assert r.status_code == 403
    assert TestClient(app).get("/api/admin/users").status_code == 401


def test_create_user_and_duplicate(admin_client, create_user):
    create_user("t1@academy.io", "TEACHER")
    r = admin_client.post(
        "/api/admin/users",
        json={"email": "t1@academy.io", "name": "Dup", "password": PASSWORD, "role": "USER"},
    )
    assert r.status_code == 409


def test_admins_cannot_be_created_over_the_api(admin_client):
    r = admin_client.post(
        "/api/admin/users",
        json={"email": "boss@academy.io", "name": "Boss", "password": PASSWORD, "role": "ADMIN"},
    )
    assert r.status_code == 400


def test_update_user_email_conflict(admin_client, create_user):
    a = create_user("a@academy.io")
    create_user("b@academy.io")
    r = admin_client.patch(f"/api/admin/users/{a}", json={"email": "b@academy.io"})
    assert r.status_code == 409
    r = admin_client.patch(f"/api/admin/users/{a}", json={"name": "Alice Again"})
    assert r.status_code == 200
    assert r.json()["data"]["name"] == "Alice Again"


def test_change_password_applies_policy(admin_client, create_user, login):
    uid = create_user("t@academy.io")
    weak = admin_client.patch(f"/api/admin/users/{uid}/password", json={"password": "short"})
    assert weak.status_code == 400
    ok = admin_client.patch(f"/api/admin/users/{uid}/password", json={"password": "Chang3dPass"})
    assert ok.status_code == 200
    login("t@academy.io", password="Chang3dPass")


def test_admin_cannot_delete_or_ban_self(admin_client):
    me = admin_client.get("/api/auth/me").json()["data"]
    assert admin_client.delete(f"/api/admin/users/{me['id']}").status_code == 400
    r = admin_client.patch(f"/api/admin/users/{me['id']}/ban", json={"reason": "oops"})
    assert r.status_code == 400


def test_teacher_owning_courses_cannot_be_deleted(admin_client, teacher, course):
    teacher_id, _ = teacher
    r = admin_client.delete(f"/api/admin/users/{teacher_id}")
    assert r.status_code == 409
    detail = admin_client.get(f"/api/admin/users/{teacher_id}").json()["data"]
    assert [c["id"] for c in detail["courses_created"]] == [course["id"]]


def test_delete_user(admin_client, create_user):
    uid = create_user("gone@academy.io", "USER")
    assert admin_client.delete(f"/api/admin/users/{uid}").status_code == 200
    assert admin_client.get(f"/api/admin/users/{uid}").status_code == 404


def test_unban_clears_device_binding(admin_client, create_user, login):
    uid = create_user("s@academy.io", "USER")
    login("s@academy.io", device_id="phone-1")
    admin_client.patch(f"/api/admin/users/{uid}/ban", json={"reason": "Suspicious"})
    r = admin_client.patch(f"/api/admin/users/{uid}/unban")
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["is_banned"] is False
    assert data["ban_reason"] is None
    assert data["device_id"] is None
    login("s@academy.io", device_id="phone-2")


def test_list_teachers_paginates_and_searches(admin_client, create_user):
    for i in range(3):
        create_user(f"teacher{i}@academy.io", "TEACHER", name=f"Teacher {i}")
    create_user("zed@academy.io", "TEACHER", name="Zed Zulu")
    r = admin_client.get("/api/admin/teachers", params={"page": 1, "limit": 2})
    data = r.json()["data"]
    assert len(data["items"]) == 2
    assert data["metadata"] == {"total": 4, "page": 1, "limit": 2, "total_pages": 2}

    r = admin_client.get("/api/admin/teachers", params={"search": "ZULU"})
    assert [t["email"] for t in r.json()["data"]["items"]] == ["zed@academy.io"]

    too_big = admin_client.get("/api/admin/teachers", params={"limit": 500})
    assert too_big.status_code == 400


def test_list_teachers_filters_banned(admin_client, create_user):
    a = create_user("a@academy.io")
    create_user("b@academy.io")
    admin_client.patch(f"/api/admin/users/{a}/ban", json={"reason": "x"})
    banned = admin_client.get("/api/admin/teachers", params={"is_banned": "true"}).json()["data"]
    assert [t["id"] for t in banned["items"]] == [a]
    active = admin_client.get("/api/admin/teachers", params={"is_banned": "false"}).json()["data"]
    assert active["metadata"]["total"] == 1


def test_students_filter_by_hierarchy(admin_client, create_user, catalog):
    s1 = create_user("s1@academy.io", "USER")
    create_user("s2@academy.io", "USER")
    r = admin_client.patch(f"/api/admin/students/{s1}/level", json={"level_id": catalog["level_id"]})
    assert r.status_code == 200

    by_uni = admin_client.get("/api/admin/students", params={"university_id": catalog["university_id"]}).json()
    items = by_uni["data"]["items"]
    assert [s["id"] for s in items] == [s1]
    assert items[0]["level"]["name"] == "First Year"
    assert items[0]["level"]["department"]["name"] == "Computer"

    everyone = admin_client.get("/api/admin/students").json()["data"]
    assert everyone["metadata"]["total"] == 2

    detail = admin_client.get(f"/api/admin/students/{s1}").json()["data"]
    assert detail["level"]["department"]["college"]["university"]["name"] == "Cairo University"


def test_student_detail_rejects_non_students(admin_client, create_user):
    t = create_user("t@academy.io", "TEACHER")
    assert admin_client.get(f"/api/admin/students/{t}").status_code == 404


def test_set_student_level_unknown_level(admin_client, create_user):
    s = create_user("s@academy.io", "USER")
    r = admin_client.patch(f"/api/admin/students/{s}/level", json={"level_id": "missing"})
    assert r.status_code == 404
    cleared = admin_client.patch(f"/api/admin/students/{s}/level", json={"level_id": None})
    assert cleared.status_code == 200


def test_bulk_level_only_touches_students(admin_client, create_user, catalog):
    s1 = create_user("s1@academy.io", "USER")
    s2 = create_user("s2@academy.io", "USER")
    t = create_user("t@academy.io", "TEACHER")
    r = admin_client.patch(
        "/api/admin/students/bulk-level",
        json={"user_ids": [s1, s2, t, "missing"], "level_id": catalog["level_id"]},
    )
    assert r.status_code == 200
    assert r.json()["data"] == {"count": 2}
    assert admin_client.get(f"/api/admin/users/{t}").json()["data"]["level_id"] is None


def test_recovery_requests_reject_then_conflict(admin_client, create_user):
    s = create_user("s@academy.io", "USER")
    admin_client.patch(f"/api/admin/users/{s}/ban", json={"reason": "Device change"})
    body = {"email": "s@academy.io", "message": "New phone after a repair", "device_id": "phone-x"}
    request_id = TestClient(app).post("/api/auth/recovery/request", json=body).json()["data"]["request_id"]

    pending = admin_client.get("/api/admin/recovery-requests").json()["data"]
    assert [p["id"] for p in pending] == [request_id]
    assert pending[0]["user"]["email"] == "s@academy.io"

    r = admin_client.patch(f"/api/admin/recovery-requests/{request_id}/reject", json={"admin_note": "No proof"})
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "REJECTED"
    again = admin_client.patch(f"/api/admin/recovery-requests/{request_id}/approve")
    assert again.status_code == 409
    assert admin_client.get("/api/admin/recovery-requests").json()["data"] == []
    assert admin_client.patch("/api/admin/recovery-requests/nope/approve").status_code == 404


def test_admin_cannot_ban_another_admin(admin_client):
    with Session(engine) as session:
        other = AdminService(session).ensure_admin("second@academy.io", "Second", PASSWORD)
        other_id = other.id
    r = admin_client.patch(f"/api/admin/users/{other_id}/ban", json={"reason": "no"})
    assert r.status_code == 400
    assert r.json()["message"] == "Admins cannot be banned"


def test_role_change_blocked_for_teacher_with_courses(admin_client, teacher, course):
    teacher_id, _ = teacher
    r = admin_client.patch(f"/api/admin/users/{teacher_id}", json={"role": "USER"})
    assert r.status_code == 409


def test_user_detail_lists_course_levels(admin_client, teacher, catalog, course_form):
    teacher_id, client = teacher
    client.post("/api/course", data=course_form(title="Second"), files={"image": ("c.png", png_bytes(), "image/png")})
    detail = admin_client.get(f"/api/admin/users/{teacher_id}").json()["data"]
    assert detail["courses_created"][0]["level"]["id"] == catalog["level_id"]
