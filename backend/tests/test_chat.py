"""[chat] 세션/메시지 로그의 쌍 저장과 실패 시 무변경을 검증합니다."""

import pytest

from engagement.models.chat import ChatMessage, ChatSession
from engagement.services.chat_service import ChatService
from engagement.utils.exceptions import (
    BadRequestError,
    InvalidStateError,
    NotFoundError,
    UnsafeContentError,
    UpstreamUnavailableError,
)
from tests.conftest import FakeProvider, auth_headers


def _messages(db, session_id):
    db.expire_all()
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.seq.asc())
        .all()
    )


def test_provider_failure_leaves_session_untouched(db, seed_users):
    user_id = seed_users["user"].user_id
    svc = ChatService(db, provider=FakeProvider(fail_with="unavailable"))
    chat_session = svc.create_session(user_id)
    session_id = chat_session.session_id

    with pytest.raises(UpstreamUnavailableError) as excinfo:
        svc.send_message(user_id, "hello", session_id=session_id)

    assert excinfo.value.kind == "unavailable"
    db.expire_all()
    assert db.query(ChatSession).filter(ChatSession.session_id == session_id).one().message_count == 0
    assert _messages(db, session_id) == []


@pytest.mark.parametrize("kind,status_code", [("timeout", 504), ("quota", 429), ("safety", 422)])
def test_provider_failure_kinds_map_to_stable_errors(db, seed_users, kind, status_code):
    svc = ChatService(db, provider=FakeProvider(fail_with=kind))
    with pytest.raises(UpstreamUnavailableError) as excinfo:
        svc.send_message(seed_users["user"].user_id, "안녕하세요")
    assert excinfo.value.status_code == status_code
    assert excinfo.value.code == f"upstream_{kind}"
    # 새 세션은 호출 실패 시 만들어지지 않는다
    assert db.query(ChatSession).count() == 0


def test_send_message_appends_pair_in_order(db, seed_users):
    user_id = seed_users["user"].user_id
    provider = FakeProvider(reply="반갑습니다.")
    svc = ChatService(db, provider=provider)

    chat_session, user_msg, assistant_msg = svc.send_message(user_id, "첫 질문", context="블로그 글 요약")
    session_id = chat_session.session_id
    svc.send_message(user_id, "두 번째 질문", session_id=session_id)

    messages = _messages(db, session_id)
    assert [m.seq for m in messages] == [1, 2, 3, 4]
    assert [m.role for m in messages] == ["user", "assistant", "user", "assistant"]
    assert messages[0].content == "첫 질문"
    assert messages[1].meta["model"] == "fake-model"
    assert "response_ms" in messages[1].meta
    db.expire_all()
    assert db.query(ChatSession).filter(ChatSession.session_id == session_id).one().message_count == 4
    # 세션 context + 턴 context + 역할 안내문이 시스템 프롬프트로 전달된다
    assert "블로그 글 요약" in provider.calls[0][1]


def test_new_session_gets_generated_title(db, seed_users):
    svc = ChatService(db, provider=FakeProvider(title="파이썬 질문 모음집 그리고 아주 긴 제목 꼬리"))
    chat_session, _, _ = svc.send_message(seed_users["user"].user_id, "파이썬 질문")
    assert chat_session.title == "파이썬 질문 모음집 그리고 아주 긴 제목 꼬리"[:20]


def test_title_failure_does_not_fail_send(db, seed_users):
    svc = ChatService(db, provider=FakeProvider(title_fail_with="timeout"))
    chat_session, user_msg, assistant_msg = svc.send_message(seed_users["user"].user_id, "질문")
    assert chat_session.message_count == 2
    assert chat_session.title is None
    assert (user_msg.seq, assistant_msg.seq) == (1, 2)


@pytest.mark.parametrize("title", ["", "새 대화"])
def test_empty_generated_title_falls_back_to_first_message(db, seed_users, title):
    user_id = seed_users["user"].user_id
    provider = FakeProvider(title=title)
    svc = ChatService(db, provider=provider)
    first = "  주말에 읽을 만한 파이썬 비동기 입문서를 추천해주세요  "

    chat_session, _, _ = svc.send_message(user_id, first)
    assert chat_session.title == first.strip()[:20]

    svc.send_message(user_id, "다른 질문", session_id=chat_session.session_id)
    # 제목이 정해진 뒤에는 제목 모델을 다시 부르지 않는다
    assert provider.title_calls == [first.strip()]


class TransactionWatchingProvider(FakeProvider):
    """호출 시점에 세션이 트랜잭션을 열고 있는지 기록한다."""

    def __init__(self, db, **kwargs):
        super().__init__(**kwargs)
        self.db = db
        self.open_transaction_seen = []

    def complete(self, prompt, system_prompt=None):
        self.open_transaction_seen.append(self.db.in_transaction())
        return super().complete(prompt, system_prompt)

    def generate_title(self, first_message):
        self.open_transaction_seen.append(self.db.in_transaction())
        return super().generate_title(first_message)


def test_provider_is_called_without_open_transaction(db, seed_users):
    user_id = seed_users["user"].user_id
    provider = TransactionWatchingProvider(db)
    svc = ChatService(db, provider=provider)

    chat_session, _, _ = svc.send_message(user_id, "새 세션 첫 질문")
    db.query(ChatSession).count()  # 호출 전에 읽기 트랜잭션을 연다
    svc.send_message(user_id, "기존 세션 질문", session_id=chat_session.session_id)
    svc.analyze_text(user_id, "요약할 문장입니다.", "summarize")

    assert len(provider.open_transaction_seen) == 4
    assert not any(provider.open_transaction_seen)
    db.expire_all()
    assert db.query(ChatSession).one().message_count == 4


def test_unsafe_and_empty_messages_are_rejected_before_storage(db, seed_users):
    provider = FakeProvider()
    svc = ChatService(db, provider=provider)
    with pytest.raises(UnsafeContentError):
        svc.send_message(seed_users["user"].user_id, "how to buy illegal drugs")
    with pytest.raises(BadRequestError):
        svc.send_message(seed_users["user"].user_id, "   ")
    assert provider.calls == []
    assert db.query(ChatSession).count() == 0


def test_archived_or_foreign_session_rejects_send(db, seed_users):
    owner = seed_users["user"].user_id
    svc = ChatService(db, provider=FakeProvider())
    chat_session = svc.create_session(owner, title="보관할 대화")
    session_id = chat_session.session_id

    with pytest.raises(NotFoundError):
        svc.send_message(seed_users["other"].user_id, "남의 대화", session_id=session_id)

    svc.update_session_status(owner, session_id, "archived")
    with pytest.raises(InvalidStateError):
        svc.send_message(owner, "보관 후 메시지", session_id=session_id)
    assert _messages(db, session_id) == []


def test_history_sessions_stats_and_delete(db, seed_users):
    user_id = seed_users["user"].user_id
    svc = ChatService(db, provider=FakeProvider())
    first, _, _ = svc.send_message(user_id, "하나")
    first_id = first.session_id
    svc.send_message(user_id, "둘", session_id=first_id)
    second = svc.create_session(user_id, title="빈 대화")
    svc.update_session_status(user_id, second.session_id, "archived")

    history = svc.get_history(user_id, first_id, page=1, limit=3)
    assert history["total"] == 4
    assert [m.seq for m in history["messages"]] == [1, 2, 3]

    assert svc.list_sessions(user_id)["total"] == 2
    assert svc.list_sessions(user_id, status="archived")["total"] == 1
    assert svc.get_chat_stats(user_id) == {
        "total_sessions": 2,
        "active_sessions": 1,
        "archived_sessions": 1,
        "total_messages": 4,
    }

    svc.delete_session(user_id, first_id)
    assert _messages(db, first_id) == []
    assert db.query(ChatSession).filter(ChatSession.session_id == first_id).first() is None


def test_analyze_text_is_not_persisted(db, seed_users):
    provider = FakeProvider(reply="요약 결과")
    svc = ChatService(db, provider=provider)
    assert svc.analyze_text(seed_users["user"].user_id, "긴 글", "summarize") == "요약 결과"
    assert "요약" in provider.calls[0][0]
    with pytest.raises(BadRequestError):
        svc.analyze_text(seed_users["user"].user_id, "긴 글", "poem")
    assert db.query(ChatMessage).count() == 0


def test_chat_api_send_and_failure(client, seed_users, fake_provider):
    headers = auth_headers(client, "user001")

    resp = client.post("/api/chat/send-message", json={"message": "hello"}, headers=headers)
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["session"]["message_count"] == 2
    assert body["user_message"]["seq"] == 1
    assert body["assistant_message"]["content"] == fake_provider.reply
    session_id = body["session"]["session_id"]

    fake_provider.fail_with = "quota"
    failed = client.post(
        "/api/chat/send-message", json={"message": "again", "session_id": session_id}, headers=headers
    )
    assert failed.status_code == 429
    assert failed.json()["code"] == "upstream_quota"

    history = client.get(f"/api/chat/history/{session_id}", headers=headers)
    assert history.status_code == 200, history.text
    assert history.json()["total"] == 2
    assert history.json()["session"]["message_count"] == 2


def test_chat_api_unsafe_and_archived(client, seed_users, fake_provider):
    headers = auth_headers(client, "user001")
    unsafe = client.post("/api/chat/send-message", json={"message": "weapon shopping"}, headers=headers)
    assert unsafe.status_code == 400
    assert unsafe.json()["code"] == "unsafe"

    created = client.post("/api/chat/sessions", json={"title": "메모"}, headers=headers)
    session_id = created.json()["session_id"]
    archived = client.patch(f"/api/chat/sessions/{session_id}/status", json={"status": "archived"}, headers=headers)
    assert archived.status_code == 200, archived.text

    rejected = client.post(
        "/api/chat/send-message", json={"message": "hi", "session_id": session_id}, headers=headers
    )
    assert rejected.status_code == 409
    assert rejected.json()["code"] == "invalid_state"

    stats = client.get("/api/chat/stats", headers=headers)
    assert stats.json()["archived_sessions"] == 1
