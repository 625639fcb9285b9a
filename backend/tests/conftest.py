import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from engagement.database import Base, create_db_engine, get_db
from engagement.main import app
from engagement.models.user import User
from engagement.models.blog import BlogPost
from engagement.routers.chat import get_completion_provider
from engagement.services.ai_client import CompletionError
from engagement.utils.helpers import utcnow

TEST_DB_URL = "sqlite:///./test_engagement.db"

engine = create_db_engine(TEST_DB_URL)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSession()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeProvider:
    """AI 완성 서비스 테스트 더블. fail_with/title_fail_with로 실패를 흉내낸다."""

    model_name = "fake-model"

    def __init__(self, reply="테스트 답변입니다.", title="테스트 제목", fail_with=None, title_fail_with=None):
        self.reply = reply
        self.title = title
        self.fail_with = fail_with
        self.title_fail_with = title_fail_with
        self.calls = []
        self.title_calls = []

    def complete(self, prompt, system_prompt=None):
        self.calls.append((prompt, system_prompt))
        if self.fail_with:
            raise CompletionError(self.fail_with, "fake failure")
        return self.reply

    def generate_title(self, first_message):
        self.title_calls.append(first_message)
        if self.title_fail_with:
            raise CompletionError(self.title_fail_with, "fake title failure")
        return self.title


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
def fake_provider():
    provider = FakeProvider()
    app.dependency_overrides[get_completion_provider] = lambda: provider
    yield provider
    app.dependency_overrides.pop(get_completion_provider, None)


@pytest.fixture
def seed_users(db):
    users = {
        "admin": User(login_id="admin001", name="Admin", role="admin"),
        "user": User(login_id="user001", name="User1", role="user"),
        "other": User(login_id="user002", name="User2", role="user"),
    }
    for u in users.values():
        db.add(u)
    db.commit()
    for u in users.values():
        db.refresh(u)
    return users


@pytest.fixture
def seed_post(db, seed_users):
    post = BlogPost(
        author_id=seed_users["user"].user_id,
        title="첫 번째 글",
        summary="요약",
        content="본문",
        category="tech",
        status="published",
        published_at=utcnow(),
    )
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def get_token(client, login_id: str) -> str:
    resp = client.post("/api/auth/login", json={"login_id": login_id})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


def auth_headers(client, login_id: str) -> dict:
    return {"Authorization": f"Bearer {get_token(client, login_id)}"}
