"""Chat 세션/메시지 요청/응답 계약을 위한 Pydantic 스키마입니다."""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Literal, Optional
from datetime import datetime


class SendMessageRequest(BaseModel):
    message: str = Field(min_length=1, max_length=4000)
    session_id: Optional[str] = None
    context: Optional[str] = Field(default=None, max_length=2000)


class CreateSessionRequest(BaseModel):
    title: Optional[str] = Field(default=None, max_length=200)
    model: Optional[str] = Field(default=None, max_length=100)
    context: Optional[str] = Field(default=None, max_length=2000)


class SessionStatusUpdate(BaseModel):
    status: Literal["active", "archived"]


class AnalyzeTextRequest(BaseModel):
    text: str = Field(min_length=1, max_length=10000)
    analysis_type: Literal["explain", "summarize", "translate"] = "explain"


class ChatSessionOut(BaseModel):
    session_id: str
    user_id: str
    title: Optional[str] = None
    model: str
    context: Optional[str] = None
    message_count: int
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ChatMessageOut(BaseModel):
    message_id: str
    session_id: str
    seq: int
    role: str
    content: str
    meta: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class SendMessageResponse(BaseModel):
    session: ChatSessionOut
    user_message: ChatMessageOut
    assistant_message: ChatMessageOut


class ChatHistoryOut(BaseModel):
    session: ChatSessionOut
    messages: List[ChatMessageOut]
    total: int
    page: int
    limit: int
    total_pages: int


class ChatSessionPage(BaseModel):
    sessions: List[ChatSessionOut]
    total: int
    page: int
    limit: int
    total_pages: int


class AnalyzeTextResponse(BaseModel):
    analysis_type: str
    result: str


class ChatStatsOut(BaseModel):
    total_sessions: int
    active_sessions: int
    archived_sessions: int
    total_messages: int
