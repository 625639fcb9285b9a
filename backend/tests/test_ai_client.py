"""AI Client 응답 정규화/오류 분류 동작을 검증합니다."""

import types

import httpx
import pytest

from engagement.config import settings
from engagement.services.ai_client import AIClient, CompletionError


class _FakeMessage:
    def __init__(self, content):
        self.content = content


class _FakeChoice:
    def __init__(self, content, finish_reason="stop"):
        self.message = _FakeMessage(content)
        self.finish_reason = finish_reason


class _FakeResponse:
    def __init__(self, content, finish_reason="stop"):
        self.choices = [_FakeChoice(content, finish_reason)]


def _client_returning(monkeypatch, create):
    client = AIClient(model_name="test-model", user_id="u-1")
    sdk = types.SimpleNamespace(chat=types.SimpleNamespace(completions=types.SimpleNamespace(create=create)))
    monkeypatch.setattr(client, "_get_client", lambda: sdk)
    return client


def test_complete_sends_system_prompt_and_strips(monkeypatch):
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return _FakeResponse("  답변입니다.  ")

    client = _client_returning(monkeypatch, create)
    assert client.complete("질문", "시스템") == "답변입니다."
    assert calls[0]["model"] == "test-model"
    assert calls[0]["messages"][0] == {"role": "system", "content": "시스템"}
    assert calls[0]["extra_headers"]["User-ID"] == "u-1"


def test_complete_joins_text_parts(monkeypatch):
    parts = [{"type": "text", "text": "가"}, {"type": "image"}, {"type": "text", "text": "나"}]
    client = _client_returning(monkeypatch, lambda **_: _FakeResponse(parts))
    assert client.complete("질문") == "가나"


@pytest.mark.parametrize(
    "exc,kind",
    [
        (httpx.ReadTimeout("read timed out"), "timeout"),
        (Exception("Error code: 429 - rate limit reached"), "quota"),
        (Exception("insufficient_quota"), "quota"),
        (Exception("blocked by content_filter"), "safety"),
        (Exception("connection refused"), "unavailable"),
    ],
)
def test_complete_classifies_failures(monkeypatch, exc, kind):
    def create(**_):
        raise exc

    client = _client_returning(monkeypatch, create)
    with pytest.raises(CompletionError) as excinfo:
        client.complete("질문")
    assert excinfo.value.kind == kind


def test_content_filter_finish_reason_is_safety(monkeypatch):
    client = _client_returning(monkeypatch, lambda **_: _FakeResponse("", finish_reason="content_filter"))
    with pytest.raises(CompletionError) as excinfo:
        client.complete("질문")
    assert excinfo.value.kind == "safety"


def test_disabled_features_raise_unavailable(monkeypatch):
    monkeypatch.setattr(settings, "AI_FEATURES_ENABLED", False)
    with pytest.raises(CompletionError) as excinfo:
        AIClient().complete("질문")
    assert excinfo.value.kind == "unavailable"


def test_generate_title_trims_and_falls_back(monkeypatch):
    long_title = '"' + "가" * 40 + '"\n두 번째 줄'
    client = _client_returning(monkeypatch, lambda **_: _FakeResponse(long_title))
    assert client.generate_title("질문") == "가" * settings.CHAT_TITLE_MAX_LENGTH

    empty = _client_returning(monkeypatch, lambda **_: _FakeResponse("   "))
    assert empty.generate_title("질문") == settings.CHAT_DEFAULT_TITLE


def test_get_client_uses_title_model_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "AI_TITLE_MODEL", "title-model")
    assert AIClient.get_client("title").model_name == "title-model"
    assert AIClient.get_client("chat").model_name == settings.AI_CHAT_MODEL
    monkeypatch.setattr(settings, "AI_TITLE_MODEL", "")
    assert AIClient.get_client("title").model_name == settings.AI_CHAT_MODEL
