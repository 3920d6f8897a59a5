from courseadmin.config import settings
from courseadmin.main import app
from courseadmin.storage import NullMediaStorage, get_media_storage

from conftest import FakeStorage, pdf_bytes, png_bytes


def key_of(url):
    assert url.startswith(FakeStorage.BASE)
    return url[len(FakeStorage.BASE):]


def test_teacher_creates_course_with_uploads(teacher, course_form, catalog, storage):
    teacher_id, client = teacher
    r = client.post(
        "/api/course",
        data=course_form(),
        files={
            "image": ("cover.png", png_bytes(), "image/png"),
            "pdf": ("syllabus.pdf", pdf_bytes(), "application/pdf"),
        },
    )
    assert r.status_code == 201, r.text
    course = r.json()["data"]
    assert course["teacher_id"] == teacher_id
    assert course["price"] == 150
    assert course["cash_numbers"] == ["01000000001", "01000000002"]
    assert course["level"]["department"]["college"]["university"]["id"] == catalog["university_id"]
    assert key_of(course["image_url"]).startswith("courses/")
    assert key_of(course["image_url"]).endswith(".png")
    assert key_of(course["pdf_link"]).endswith(".pdf")
    assert storage.objects[key_of(course["pdf_link"])][1] == "application/pdf"
    assert course["chapters"] == []


def test_cash_numbers_accept_json_array_field(teacher, course_form):
    _, client = teacher
    r = client.post(
        "/api/course",
        data=course_form(cash_numbers='["0111", "0122"]'),
        files={"image": ("cover.png", png_bytes(), "image/png")},
    )
    assert r.status_code == 201, r.text
    assert r.json()["data"]["cash_numbers"] == ["0111", "0122"]


def test_course_requires_image(teacher, course_form, storage):
    _, client = teacher
    r = client.post("/api/course", data=course_form(), files={"pdf": ("s.pdf", pdf_bytes(), "application/pdf")})
    assert r.status_code == 400
    assert r.json()["message"] == "image: course image is required"
    assert storage.objects == {}


def test_course_json_body_with_external_urls(teacher, catalog):
    _, client = teacher
    body = {
        "title": "Networks",
        "description": "TCP/IP from the bottom up",
        "small_description": "Networking",
        "price": 0,
        "duration": 6,
        "term": "SUMMER",
        "status": "ARCHIVED",
        "level_id": catalog["level_id"],
        "image": "https://cdn.example.com/networks.jpg",
    }
    r = client.post("/api/course", json=body)
    assert r.status_code == 201, r.text
    assert r.json()["data"]["image_url"] == "https://cdn.example.com/networks.jpg"
    assert r.json()["data"]["pdf_link"] is None


def test_course_rejects_non_http_image_url(teacher, catalog, course_form):
    _, client = teacher
    body = dict(course_form(), price=10, duration=2, image="ftp://files.example.com/a.png")
    r = client.post("/api/course", json=body)
    assert r.status_code == 400
    assert r.json()["message"] == "image: must be an http(s) URL"


def test_course_field_validation(teacher, course_form):
    _, client = teacher
    r = client.post("/api/course", data=course_form(price="-5"), files={"image": ("c.png", png_bytes(), "image/png")})
    assert r.status_code == 400
    assert r.json()["error"] == "validation_error"
    assert r.json()["message"].startswith("price:")


def test_unknown_level_uploads_nothing(teacher, course_form, storage):
    _, client = teacher
    r = client.post(
        "/api/course", data=course_form(level_id="missing"), files={"image": ("c.png", png_bytes(), "image/png")}
    )
    assert r.status_code == 404
    assert storage.objects == {}


def test_invalid_image_is_rejected(teacher, course_form, storage):
    _, client = teacher
    r = client.post("/api/course", data=course_form(), files={"image": ("c.png", b"definitely not a png", "image/png")})
    assert r.status_code == 415
    assert r.json()["error"] == "unsupported_media"
    assert storage.objects == {}


def test_oversized_upload_is_rejected(teacher, course_form, monkeypatch):
    monkeypatch.setattr(settings, "MAX_UPLOAD_BYTES", 16)
    _, client = teacher
    r = client.post("/api/course", data=course_form(), files={"image": ("c.png", png_bytes(), "image/png")})
    assert r.status_code == 413
    assert r.json()["error"] == "payload_too_large"


def test_admin_must_name_the_teacher(admin_client, teacher, course_form):
    teacher_id, _ = teacher
    cover = {"image": ("c.png", png_bytes(), "image/png")}
    r = admin_client.post("/api/course", data=course_form(), files=cover)
    assert r.status_code == 400
    r = admin_client.post("/api/course", data=course_form(teacher_id="missing"), files=cover)
    assert r.status_code == 404
    r = admin_client.post("/api/course", data=course_form(teacher_id=teacher_id), files=cover)
    assert r.status_code == 201
    assert r.json()["data"]["teacher"]["id"] == teacher_id


def test_students_cannot_create_courses(create_user, login, course_form):
    create_user("s@academy.io", "USER")
    client = login("s@academy.io", device_id="d1")
    r = client.post("/api/course", data=course_form(), files={"image": ("c.png", png_bytes(), "image/png")})
    assert r.status_code == 403


def test_replacing_image_deletes_previous_object(teacher, course, storage):
    _, client = teacher
    old_key = key_of(course["image_url"])
    r = client.patch(
        f"/api/course/{course['id']}",
        data={"title": "Algorithms II"},
        files={"image": ("new.png", png_bytes(color=(0, 0, 255)), "image/png")},
    )
    assert r.status_code == 200, r.text
    updated = r.json()["data"]
    assert updated["title"] == "Algorithms II"
    assert updated["image_url"] != course["image_url"]
    assert storage.deleted == [old_key]
    assert key_of(updated["image_url"]) in storage.objects


def test_replacing_external_url_deletes_nothing(teacher, catalog, course_form, storage):
    _, client = teacher
    body = dict(course_form(), price=1, duration=1, image="https://cdn.example.com/a.png")
    course = client.post("/api/course", json=body).json()["data"]
    r = client.patch(f"/api/course/{course['id']}", files={"image": ("b.png", png_bytes(), "image/png")})
    assert r.status_code == 200
    assert storage.deleted == []


def test_clearing_pdf_and_instapay(teacher, course_form, storage):
    _, client = teacher
    created = client.post(
        "/api/course",
        data=course_form(instapay_username="tina.pay"),
        files={"image": ("c.png", png_bytes(), "image/png"), "pdf": ("s.pdf", pdf_bytes(), "application/pdf")},
    ).json()["data"]
    r = client.patch(f"/api/course/{created['id']}", json={"pdf": None, "instapay_username": None, "price": None})
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["pdf_link"] is None
    assert data["instapay_username"] is None
    assert data["price"] == 150
    assert storage.deleted == [key_of(created["pdf_link"])]


def test_course_image_cannot_be_removed(teacher, course):
    _, client = teacher
    r = client.patch(f"/api/course/{course['id']}", json={"image": None})
    assert r.status_code == 400


def test_other_teacher_cannot_edit(create_user, login, course):
    create_user("other@academy.io", "TEACHER")
    other = login("other@academy.io")
    r = other.patch(f"/api/course/{course['id']}", json={"title": "Mine now"})
    assert r.status_code == 403
    assert r.json()["message"] == "You can only modify your own courses"


def test_teacher_cannot_reassign_course(create_user, teacher, course):
    other_id = create_user("other@academy.io", "TEACHER")
    _, client = teacher
    r = client.patch(f"/api/course/{course['id']}", json={"teacher_id": other_id})
    assert r.status_code == 403


def test_admin_reassigns_course(admin_client, create_user, course):
    other_id = create_user("other@academy.io", "TEACHER")
    r = admin_client.patch(f"/api/course/{course['id']}", json={"teacher_id": other_id})
    assert r.status_code == 200
    assert r.json()["data"]["teacher_id"] == other_id
    student = create_user("s@academy.io", "USER")
    assert admin_client.patch(f"/api/course/{course['id']}", json={"teacher_id": student}).status_code == 404


def test_list_courses_with_counts_and_filters(admin_client, teacher, course, course_form):
    _, client = teacher
    client.post("/api/chapter", json={"title": "One", "course_id": course["id"]})
    client.post("/api/chapter", json={"title": "Two", "course_id": course["id"]})
    client.post(
        "/api/course",
        data=course_form(title="Databases", description="Relational design"),
        files={"image": ("c.png", png_bytes(), "image/png")},
    )

    listing = admin_client.get("/api/course").json()["data"]
    assert listing["metadata"]["total"] == 2
    assert [c["title"] for c in listing["items"]] == ["Databases", "Algorithms"]
    counts = {c["title"]: c["chapter_count"] for c in listing["items"]}
    assert counts == {"Databases": 0, "Algorithms": 2}

    found = admin_client.get("/api/course", params={"search": "relational"}).json()["data"]
    assert [c["title"] for c in found["items"]] == ["Databases"]

    none = admin_client.get("/api/course", params={"level_id": "missing"}).json()["data"]
    assert none["items"] == []


def test_my_courses_only_lists_own(admin_client, create_user, login, course, course_form):
    other_id = create_user("other@academy.io", "TEACHER")
    admin_client.post(
        "/api/course",
        data=course_form(title="Other course", teacher_id=other_id),
        files={"image": ("c.png", png_bytes(), "image/png")},
    )
    other = login("other@academy.io")
    mine = other.get("/api/course/my-courses").json()["data"]
    assert [c["title"] for c in mine["items"]] == ["Other course"]
    assert admin_client.get("/api/course/my-courses").status_code == 403


def test_course_detail_lists_chapters_in_order(teacher, course):
    _, client = teacher
    for title in ("Intro", "Sorting", "Graphs"):
        client.post("/api/chapter", json={"title": title, "course_id": course["id"]})
    detail = client.get(f"/api/course/{course['id']}").json()["data"]
    assert [(c["title"], c["position"]) for c in detail["chapters"]] == [("Intro", 1), ("Sorting", 2), ("Graphs", 3)]


def test_only_admin_deletes_course_and_media_goes_too(admin_client, teacher, course, storage):
    _, client = teacher
    assert client.delete(f"/api/course/{course['id']}").status_code == 403
    r = admin_client.delete(f"/api/course/{course['id']}")
    assert r.status_code == 200
    assert storage.deleted == [key_of(course["image_url"])]
    assert admin_client.get(f"/api/course/{course['id']}").status_code == 404


def test_uploads_fail_cleanly_without_media_host(teacher, course_form):
    app.dependency_overrides[get_media_storage] = NullMediaStorage
    _, client = teacher
    r = client.post("/api/course", data=course_form(), files={"image": ("c.png", png_bytes(), "image/png")})
    assert r.status_code == 503
    assert r.json()["error"] == "storage_unavailable"
    body = dict(course_form(), price=1, duration=1, image="https://cdn.example.com/a.png")
    assert client.post("/api/course", json=body).status_code == 201
