"""[chat] AI 채팅 세션/메시지 API 라우터입니다."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from engagement.database import get_db
from engagement.middleware.auth_middleware import get_current_user
from engagement.models.user import User
from engagement.schemas.chat import (
    AnalyzeTextRequest,
    AnalyzeTextResponse,
    ChatHistoryOut,
    ChatMessageOut,
    ChatSessionOut,
    ChatSessionPage,
    ChatStatsOut,
    CreateSessionRequest,
    SendMessageRequest,
    SendMessageResponse,
    SessionStatusUpdate,
)
from engagement.services.chat_service import ChatService

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_completion_provider():
    # None이면 ChatService가 설정 기반 AIClient를 사용한다. 테스트에서 override한다.
    return None


def get_chat_service(
    db: Session = Depends(get_db),
    provider=Depends(get_completion_provider),
) -> ChatService:
    return ChatService(db, provider=provider)


@router.post("/send-message", response_model=SendMessageResponse)
def send_message(
    data: SendMessageRequest,
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    chat_session, user_message, assistant_message = svc.send_message(
        current_user.user_id,
        data.message,
        session_id=data.session_id,
        context=data.context,
    )
    return SendMessageResponse(
        session=ChatSessionOut.model_validate(chat_session),
        user_message=ChatMessageOut.model_validate(user_message),
        assistant_message=ChatMessageOut.model_validate(assistant_message),
    )


@router.get("/sessions", response_model=ChatSessionPage)
def list_sessions(
    status: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    return svc.list_sessions(current_user.user_id, status=status, page=page, limit=limit)


@router.post("/sessions", response_model=ChatSessionOut)
def create_session(
    data: CreateSessionRequest,
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    return svc.create_session(current_user.user_id, title=data.title, model=data.model, context=data.context)


@router.get("/history/{session_id}", response_model=ChatHistoryOut)
def chat_history(
    session_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    return svc.get_history(current_user.user_id, session_id, page=page, limit=limit)


@router.patch("/sessions/{session_id}/status", response_model=ChatSessionOut)
def update_session_status(
    session_id: str,
    data: SessionStatusUpdate,
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    return svc.update_session_status(current_user.user_id, session_id, data.status)


@router.delete("/sessions/{session_id}")
def delete_session(
    session_id: str,
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    svc.delete_session(current_user.user_id, session_id)
    return {"message": "삭제되었습니다."}


@router.post("/analyze-text", response_model=AnalyzeTextResponse)
def analyze_text(
    data: AnalyzeTextRequest,
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    result = svc.analyze_text(current_user.user_id, data.text, data.analysis_type)
    return AnalyzeTextResponse(analysis_type=data.analysis_type, result=result)


@router.get("/stats", response_model=ChatStatsOut)
def chat_stats(
    svc: ChatService = Depends(get_chat_service),
    current_user: User = Depends(get_current_user),
):
    return svc.get_chat_stats(current_user.user_id)
