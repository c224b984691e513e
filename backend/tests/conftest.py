import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from app.config import settings
from app.database import Base, get_db
from app.main import app
from app.models.user import User
from app.models.course import Course
from app.models.batch import Batch
from app.services.recording_sync_service import RecordingSyncDispatcher, get_sync_dispatcher
from app.services.storage_client import S3StorageClient, get_storage_client
from app.services.zoom_client import get_zoom_client
from app.utils.errors import ProviderError
from datetime import date

TEST_DB_URL = "sqlite:///./test_lms.db"

engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def seed_users(db):
    users = {
        "admin": User(login_id="admin001", name="Admin", role="admin", email="admin@example.com"),
        "super": User(login_id="super001", name="Super", role="super-admin"),
        "instructor": User(login_id="inst001", name="Instructor", role="instructor"),
        "instructor2": User(login_id="inst002", name="Instructor 2", role="instructor"),
        "student": User(login_id="stud001", name="Student", role="student"),
        "student2": User(login_id="stud002", name="Student 2", role="student"),
        "student3": User(login_id="stud003", name="Student 3", role="student"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


@pytest.fixture
def seed_course(db):
    course = Course(course_title="Full Stack Web Development", slug="full-stack-web")
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def make_batch(db, course, creator, **overrides) -> Batch:
    values = {
        "batch_name": "FSWD 2025 1차",
        "batch_code": f"FSWD-{db.query(Batch).count() + 100001}",
        "course_id": course.course_id,
        "batch_type": "group",
        "capacity": 2,
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 12, 31),
        "created_by": creator.user_id,
    }
    values.update(overrides)
    batch = Batch(**values)
    db.add(batch)
    db.commit()
    db.refresh(batch)
    return batch


@pytest.fixture
def seed_batch(db, seed_users, seed_course):
    return make_batch(db, seed_course, seed_users["admin"], assigned_instructor_id=seed_users["instructor"].user_id)


class FakeZoom:
    """미팅 제공자 대역. 호출 내역을 기록하고 실패를 주입할 수 있습니다."""

    def __init__(self):
        self.created = []
        self.updated = []
        self.recordings = {}
        self.recording_calls = []
        self.fail_create = None
        self.fail_recordings = {}

    def create_meeting(self, payload, user_id="me"):
        if self.fail_create:
            raise ProviderError(self.fail_create)
        self.created.append(payload)
        meeting_id = 9000 + len(self.created)
        return {
            "id": meeting_id,
            "join_url": f"https://zoom.test/j/{meeting_id}",
            "start_url": f"https://zoom.test/s/{meeting_id}",
            "password": "pw1234",
            "topic": payload["topic"],
        }

    def update_meeting(self, meeting_id, payload):
        self.updated.append((meeting_id, payload))

    def get_meeting_recordings(self, meeting_id):
        self.recording_calls.append(meeting_id)
        if meeting_id in self.fail_recordings:
            raise ProviderError(self.fail_recordings[meeting_id])
        return list(self.recordings.get(meeting_id, []))


class FakeStorage(S3StorageClient):
    """메모리 오브젝트 목록을 쓰는 스토리지 대역. 서명 URL 은 키와 TTL 을 그대로 드러냅니다."""

    def __init__(self, objects=()):
        super().__init__(bucket="lms-test", region="ap-south-1", client=object())
        self.objects = list(objects)
        self.listed_prefixes = []

    def list_objects(self, prefix):
        self.listed_prefixes.append(prefix)
        return [obj for obj in self.objects if obj.key.startswith(prefix)]

    def sign(self, key, ttl_seconds=None):
        return f"https://signed.test/{key}?ttl={settings.clamp_signed_url_ttl(ttl_seconds)}"


@pytest.fixture
def fake_zoom():
    zoom = FakeZoom()
    app.dependency_overrides[get_zoom_client] = lambda: zoom
    yield zoom
    app.dependency_overrides.pop(get_zoom_client, None)


@pytest.fixture
def fake_storage():
    storage = FakeStorage()
    app.dependency_overrides[get_storage_client] = lambda: storage
    yield storage
    app.dependency_overrides.pop(get_storage_client, None)


@pytest.fixture
def sync_dispatcher(fake_zoom):
    dispatcher = RecordingSyncDispatcher(
        session_factory=TestingSession,
        client_factory=lambda: fake_zoom,
        runner=lambda job: job(),
    )
    app.dependency_overrides[get_sync_dispatcher] = lambda: dispatcher
    yield dispatcher
    app.dependency_overrides.pop(get_sync_dispatcher, None)


def get_token(client, login_id: str) -> str:
    resp = client.post("/api/auth/login", json={"login_id": login_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, login_id: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, login_id)}"}
