import pytest

from courseadmin.repositories import UniversityRepository
from courseadmin.services.hierarchy import (
    CollegeService,
    DepartmentService,
    LevelService,
    UniversityService,
    _NodeService,
)

from conftest import pdf_bytes


def test_university_crud(admin_client):
    r = admin_client.post("/api/university", json={"name": "  Alexandria University  "})
    assert r.status_code == 201
    uni = r.json()["data"]
    assert uni["name"] == "Alexandria University"
    assert uni["is_active"] is True

    r = admin_client.patch(f"/api/university/{uni['id']}", json={"is_active": False})
    assert r.json()["data"]["is_active"] is False
    assert r.json()["data"]["name"] == "Alexandria University"

    assert admin_client.get(f"/api/university/{uni['id']}").status_code == 200
    assert admin_client.delete(f"/api/university/{uni['id']}").status_code == 200
    r = admin_client.get(f"/api/university/{uni['id']}")
    assert r.status_code == 404
    assert r.json()["error"] == "not_found"


def test_empty_university_list_is_ok(admin_client):
    r = admin_client.get("/api/university")
    assert r.status_code == 200
    assert r.json()["data"] == {"items": [], "metadata": {"total": 0, "page": 1, "limit": 10, "total_pages": 0}}


def test_university_list_search_and_order(admin_client):
    for name in ("Zagazig", "Ain Shams", "Helwan"):
        admin_client.post("/api/university", json={"name": name})
    names = [u["name"] for u in admin_client.get("/api/university").json()["data"]["items"]]
    assert names == ["Ain Shams", "Helwan", "Zagazig"]
    found = admin_client.get("/api/university", params={"search": "shams"}).json()["data"]["items"]
    assert [u["name"] for u in found] == ["Ain Shams"]


def test_blank_names_are_rejected(admin_client):
    r = admin_client.post("/api/university", json={"name": "   "})
    assert r.status_code == 400
    assert r.json()["message"].startswith("name:")


def test_hierarchy_writes_require_admin(teacher, catalog):
    _, client = teacher
    assert client.post("/api/university", json={"name": "Nope"}).status_code == 403
    assert client.get("/api/university").status_code == 200
    assert client.get("/api/level", params={"department_id": catalog["department_id"]}).status_code == 200


def test_children_need_existing_parent(admin_client):
    r = admin_client.post("/api/college", json={"name": "Science", "university_id": "missing"})
    assert r.status_code == 404
    r = admin_client.post("/api/department", json={"name": "Math", "college_id": "missing"})
    assert r.status_code == 404
    r = admin_client.post("/api/level", json={"name": "L1", "order": 1, "department_id": "missing"})
    assert r.status_code == 404


def test_lists_include_parent_chain(admin_client, catalog):
    colleges = admin_client.get("/api/college", params={"university_id": catalog["university_id"]}).json()["data"]
    assert colleges["items"][0]["university"]["name"] == "Cairo University"

    departments = admin_client.get("/api/department", params={"college_id": catalog["college_id"]}).json()["data"]
    assert departments[0]["college"]["university"]["id"] == catalog["university_id"]

    admin_client.post("/api/level", json={"name": "Zero Year", "order": 0, "department_id": catalog["department_id"]})
    levels = admin_client.get("/api/level", params={"department_id": catalog["department_id"]}).json()["data"]
    assert [lvl["name"] for lvl in levels] == ["Zero Year", "First Year"]
    assert levels[0]["department"]["college"]["name"] == "Engineering"


def test_level_list_requires_department(admin_client):
    r = admin_client.get("/api/level")
    assert r.status_code == 400
    assert r.json()["error"] == "validation_error"


def test_move_college_to_other_university(admin_client, catalog):
    other = admin_client.post("/api/university", json={"name": "Mansoura"}).json()["data"]["id"]
    r = admin_client.patch(f"/api/college/{catalog['college_id']}", json={"university_id": other})
    assert r.status_code == 200
    assert r.json()["data"]["university"]["name"] == "Mansoura"
    bad = admin_client.patch(f"/api/college/{catalog['college_id']}", json={"university_id": "missing"})
    assert bad.status_code == 404


def test_deleting_university_cascades_and_removes_media(admin_client, create_user, catalog, course, teacher, storage):
    _, client = teacher
    chapter = client.post("/api/chapter", json={"title": "Intro", "course_id": course["id"]}).json()["data"]
    lesson = client.post(
        "/api/lesson",
        data={"title": "Welcome", "chapter_id": chapter["id"]},
        files={"pdf": ("notes.pdf", pdf_bytes(), "application/pdf")},
    ).json()["data"]
    student = create_user("s@academy.io", "USER")
    admin_client.patch(f"/api/admin/students/{student}/level", json={"level_id": catalog["level_id"]})
    uploaded = set(storage.objects)
    assert len(uploaded) == 2

    r = admin_client.delete(f"/api/university/{catalog['university_id']}")
    assert r.status_code == 200

    assert set(storage.deleted) == uploaded
    assert admin_client.get(f"/api/course/{course['id']}").status_code == 404
    assert admin_client.get(f"/api/lesson/{lesson['id']}").status_code == 404
    assert admin_client.get(f"/api/level/{catalog['level_id']}").status_code == 404
    detail = admin_client.get(f"/api/admin/students/{student}").json()["data"]
    assert detail["level_id"] is None


def test_deleting_level_keeps_students(admin_client, create_user, catalog):
    student = create_user("s@academy.io", "USER")
    admin_client.patch(f"/api/admin/students/{student}/level", json={"level_id": catalog["level_id"]})
    assert admin_client.delete(f"/api/level/{catalog['level_id']}").status_code == 200
    detail = admin_client.get(f"/api/admin/students/{student}")
    assert detail.status_code == 200
    assert detail.json()["data"]["level"] is None


def test_node_services_must_say_which_courses_they_own():
    class Orphan(_NodeService):
        repository = UniversityRepository
        label = "Orphan"

    with pytest.raises(TypeError):
        Orphan(session=None)
    for service in (UniversityService, CollegeService, DepartmentService, LevelService):
        assert not service.__abstractmethods__
