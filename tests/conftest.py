import os
import tempfile

# Configure before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["PUSH_BACKEND"] = "log"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["LOCAL_STORAGE_DIR"] = tempfile.mkdtemp(prefix="coparent-uploads-")
os.environ["FAMILY_AUTO_ENROLL"] = "false"
os.environ["RESEND_API_KEY"] = ""
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from coparent import models_calendar  # noqa: F401
from coparent import realtime
from coparent.auth import get_current_user
from coparent.database import Base, SessionLocal, engine, get_db
from coparent.main import app
from coparent.models import Family, FamilyMember, PushToken, User
from coparent.push import PushResult, set_push_gateway
from coparent.storage import set_object_store

PARENT_A = "uid-a"
PARENT_B = "uid-b"
OUTSIDER = "uid-z"


class RecordingPushGateway:
    """Captures pushes; titles in ``fail_titles`` raise, tokens in ``invalid_tokens`` are rejected"""

    def __init__(self):
        self.sent = []
        self.fail_titles = set()
        self.fail_all = False
        self.invalid_tokens = set()

    def send(self, tokens, title, body, data=None):
        if self.fail_all or title in self.fail_titles:
            raise RuntimeError("push transport unavailable")
        self.sent.append({"tokens": list(tokens), "title": title, "body": body, "data": data or {}})
        invalid = [t for t in tokens if t in self.invalid_tokens]
        return PushResult(
            success_count=len(tokens) - len(invalid),
            failure_count=len(invalid),
            invalid_tokens=invalid,
        )


class RecordingHub:
    def __init__(self):
        self.events = []
        self.evicted = []

    async def emit_to_family(self, family_id, event, payload, exclude_user_id=None):
        self.events.append(
            {"familyId": family_id, "event": event, "data": payload, "exclude": exclude_user_id}
        )
        return 0

    def remove_user_from_family(self, family_id, user_id):
        self.evicted.append((family_id, user_id))
        return 0

    def names(self):
        return [e["event"] for e in self.events]


class MemoryObjectStore:
    def __init__(self):
        self.objects = {}
        self.fail_delete = False

    def upload(self, content, folder, filename, content_type):
        from coparent.storage import StoredObject, build_object_key

        key = build_object_key(folder, filename)
        self.objects[key] = content
        return StoredObject(key=key, url=self.url_for(key))

    def url_for(self, key):
        return f"https://files.test/{key}"

    def delete(self, key):
        if self.fail_delete:
            raise RuntimeError("storage unavailable")
        self.objects.pop(key, None)


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def push_gateway():
    gateway = RecordingPushGateway()
    set_push_gateway(gateway)
    yield gateway
    set_push_gateway(None)


@pytest.fixture(autouse=True)
def hub(monkeypatch):
    recording = RecordingHub()
    monkeypatch.setattr(realtime, "hub", recording)
    return recording


@pytest.fixture
def object_store():
    store = MemoryObjectStore()
    set_object_store(store)
    yield store
    set_object_store(None)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


def _make_user(db: Session, uid: str, email: str, name: str) -> User:
    user = User(id=uid, email=email, full_name=name)
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def parent_a(db):
    return _make_user(db, PARENT_A, "alex@example.com", "Alex")


@pytest.fixture
def parent_b(db):
    return _make_user(db, PARENT_B, "blake@example.com", "Blake")


@pytest.fixture
def outsider(db):
    return _make_user(db, OUTSIDER, "zoe@example.com", "Zoe")


@pytest.fixture
def solo_family(db, parent_a):
    family = Family(name="Solo", owner_id=parent_a.id, share_code="111111")
    family.members.append(FamilyMember(user_id=parent_a.id, role="owner"))
    db.add(family)
    db.commit()
    return family


@pytest.fixture
def family(db, parent_a, parent_b):
    family = Family(name="The Family", owner_id=parent_a.id, share_code="123456")
    family.members.append(FamilyMember(user_id=parent_a.id, role="owner"))
    family.members.append(FamilyMember(user_id=parent_b.id, role="member"))
    db.add(family)
    db.commit()
    return family


@pytest.fixture
def push_tokens(db, parent_a, parent_b):
    db.add_all(
        [
            PushToken(user_id=parent_a.id, token="token-a", platform="ios"),
            PushToken(user_id=parent_b.id, token="token-b", platform="android"),
        ]
    )
    db.commit()


@pytest.fixture
def client():
    """TestClient authenticated as ``client.act_as(uid)``; defaults to parent A"""
    state = {"uid": PARENT_A}

    def _current_user(db: Session = Depends(get_db)) -> User:
        return db.query(User).filter(User.id == state["uid"]).first()

    app.dependency_overrides[get_current_user] = _current_user
    test_client = TestClient(app)
    test_client.act_as = lambda uid: state.__setitem__("uid", uid)
    yield test_client
    app.dependency_overrides = {}
