import io
import os
import tempfile
from pathlib import Path

# Point the app at a throwaway database before `courseadmin` is imported.
_TMP = Path(tempfile.mkdtemp(prefix="courseadmin-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TMP / 'test.db'}"
os.environ["ENV"] = "dev"
os.environ["COOKIE_SECURE"] = "false"
os.environ["LOGIN_RATE_LIMIT_PER_MIN"] = "1000"
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("SUPABASE_SERVICE_ROLE_KEY", None)

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlmodel import Session

from courseadmin.database import create_db_and_tables, drop_db_and_tables, engine
from courseadmin.main import app
from courseadmin.services import AdminService
from courseadmin.storage import get_media_storage
from courseadmin.utils.rate_limit import limiter

PASSWORD = "Passw0rdX"
ADMIN_EMAIL = "admin@academy.io"


class FakeStorage:
    """In-memory media host recording uploads and deletions."""
    BASE = "https://media.academy.io/storage/v1/object/public/media/"

    def __init__(self):
        self.objects = {}
        self.deleted = []

    def put_object(self, *, key, body, content_type):
        self.objects[key] = (body, content_type)
        return self.BASE + key

    def delete_object(self, *, key):
        self.deleted.append(key)
        self.objects.pop(key, None)

    def key_from_url(self, url):
        if url and url.startswith(self.BASE):
            return url[len(self.BASE):]
        return None


def png_bytes(size=(8, 8), color=(200, 30, 30)):
    bio = io.BytesIO()
    Image.new("RGB", size, color).save(bio, format="PNG")
    return bio.getvalue()


def pdf_bytes():
    bio = io.BytesIO()
    Image.new("RGB", (20, 20), (255, 255, 255)).save(bio, format="PDF")
    return bio.getvalue()


@pytest.fixture(autouse=True)
def fresh_db():
    """Recreate the schema and clear throttling state for every test."""
    drop_db_and_tables()
    create_db_and_tables()
    limiter.reset()
    yield


@pytest.fixture(autouse=True)
def storage():
    fake = FakeStorage()
    app.dependency_overrides[get_media_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_media_storage, None)


@pytest.fixture
def login():
    """Return a function logging in and yielding a cookie-carrying client."""

    def _login(email, password=PASSWORD, device_id=None):
        client = TestClient(app)
        body = {"email": email, "password": password}
        if device_id is not None:
            body["device_id"] = device_id
        r = client.post("/api/auth/login", json=body)
        assert r.status_code == 200, r.text
        return client

    return _login


@pytest.fixture
def admin_client(login):
    with Session(engine) as session:
        AdminService(session).ensure_admin(ADMIN_EMAIL, "Admin", PASSWORD)
    return login(ADMIN_EMAIL)


@pytest.fixture
def create_user(admin_client):
    """Create a TEACHER or USER through the admin API and return its id."""

    def _create(email, role="TEACHER", name="Some Person"):
        r = admin_client.post(
            "/api/admin/users",
            json={"email": email, "name": name, "password": PASSWORD, "role": role},
        )
        assert r.status_code == 201, r.text
        return r.json()["data"]["id"]

    return _create


@pytest.fixture
def teacher(create_user, login):
    teacher_id = create_user("teacher@academy.io", "TEACHER", "Tina Teacher")
    return teacher_id, login("teacher@academy.io")


@pytest.fixture
def catalog(admin_client):
    """University → college → department → level, returned as a dict of ids."""
    ids = {}
    r = admin_client.post("/api/university", json={"name": "Cairo University"})
    ids["university_id"] = r.json()["data"]["id"]
    r = admin_client.post("/api/college", json={"name": "Engineering", "university_id": ids["university_id"]})
    ids["college_id"] = r.json()["data"]["id"]
    r = admin_client.post("/api/department", json={"name": "Computer", "college_id": ids["college_id"]})
    ids["department_id"] = r.json()["data"]["id"]
    r = admin_client.post("/api/level", json={"name": "First Year", "order": 1, "department_id": ids["department_id"]})
    ids["level_id"] = r.json()["data"]["id"]
    return ids


@pytest.fixture
def course_form(catalog):
    def _form(**overrides):
        data = {
            "title": "Algorithms",
            "description": "Sorting, searching and graphs",
            "small_description": "Core algorithms",
            "price": "150",
            "duration": "12",
            "term": "REGULAR",
            "status": "PUBLISHED",
            "cash_numbers": ["01000000001", "01000000002"],
            "level_id": catalog["level_id"],
        }
        data.update(overrides)
        return data

    return _form


@pytest.fixture
def course(teacher, course_form):
    """A course owned by the `teacher` fixture, created with an uploaded cover."""
    _, client = teacher
    r = client.post("/api/course", data=course_form(), files={"image": ("cover.png", png_bytes(), "image/png")})
    assert r.status_code == 201, r.text
    return r.json()["data"]
