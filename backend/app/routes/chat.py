"""Chat API routes."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import CurrentUser, get_current_user
from app.config import settings
from app.database import get_db
from app.errors import StorageFailure
from app.models.chat import ChatSession, ChatMessage
from app.schemas.chat import ChatRequest, MessageResponse, SessionResponse
from app.services.chat_completion import complete_chat, resolve_chat_target
from app.services.llm import BaseLLMProvider, create_llm_provider
from app.services.model_catalog import build_catalog, resolve_or_default
from app.services.prompt_store import PromptStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])

TITLE_LENGTH = 80

_provider: BaseLLMProvider | None = None


def get_llm_provider() -> BaseLLMProvider:
    """FastAPI dependency: the process-wide LLM provider, built on first use."""
    global _provider
    if _provider is None:
        try:
            _provider = create_llm_provider(
                "openai",
                api_key=settings.OPENAI_API_KEY,
                temperature=settings.CHAT_TEMPERATURE,
                timeout=settings.LLM_TIMEOUT,
            )
        except ValueError as e:
            logger.error("LLM provider unavailable: %s", e)
            raise HTTPException(status_code=503, detail=str(e))
    return _provider


@router.post("", response_model=MessageResponse)
async def send_message(
    body: ChatRequest,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    provider: BaseLLMProvider = Depends(get_llm_provider),
):
    """Append the user's message to the chat and return the model's reply."""
    store = PromptStore(db)
    catalog = await build_catalog(store, user.id, user.user_type)
    descriptor = resolve_or_default(body.selected_chat_model, catalog, settings.DEFAULT_CHAT_MODEL)
    target = await resolve_chat_target(descriptor, store, user.id)

    try:
        session = await db.get(ChatSession, body.id)
        if session is None:
            session = ChatSession(
                id=body.id,
                user_id=user.id,
                title=body.message.content[:TITLE_LENGTH],
                visibility=body.selected_visibility_type,
                model_id=target.model_id,
            )
            db.add(session)
        elif session.user_id != user.id:
            raise HTTPException(status_code=403, detail="Chat belongs to another user")
        else:
            session.model_id = target.model_id

        db.add(ChatMessage(
            id=body.message.id, session_id=body.id, role="user", content=body.message.content,
        ))
        await db.commit()
        history = await _history(db, body.id)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to store message for chat %s: %s", body.id, e)
        raise StorageFailure("Failed to store message") from e

    try:
        reasoning, text = await complete_chat(provider, target, history)
    except Exception as e:
        logger.error("LLM call for chat %s on %s failed: %s", body.id, target.model_id, e)
        raise HTTPException(status_code=502, detail="The model did not respond")

    reply = ChatMessage(
        session_id=body.id, role="assistant", content=text,
        reasoning=reasoning, model_id=target.model_id,
    )
    try:
        db.add(reply)
        await db.commit()
        await db.refresh(reply)
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error("Failed to store reply for chat %s: %s", body.id, e)
        raise StorageFailure("Failed to store reply") from e
    return reply


@router.get("/sessions", response_model=list[SessionResponse])
async def list_sessions(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's chats, most recent first."""
    result = await db.execute(
        select(ChatSession)
        .where(ChatSession.user_id == user.id)
        .order_by(desc(ChatSession.updated_at))
    )
    return result.scalars().all()


@router.get("/sessions/{session_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    session_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List all messages in one of the caller's chats."""
    await _owned_session(db, session_id, user)
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.seq)
    )
    return result.scalars().all()


@router.delete("/sessions/{session_id}")
async def delete_session(
    session_id: UUID,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a chat. Messages are cascade deleted by DB."""
    session = await _owned_session(db, session_id, user)
    await db.delete(session)
    await db.commit()
    return {"deleted": True, "id": str(session_id)}


async def _owned_session(db: AsyncSession, session_id: UUID, user: CurrentUser) -> ChatSession:
    session = await db.get(ChatSession, session_id)
    if not session or session.user_id != user.id:
        raise HTTPException(status_code=404, detail="Chat not found")
    return session


async def _history(db: AsyncSession, session_id: UUID) -> list[dict]:
    result = await db.execute(
        select(ChatMessage.role, ChatMessage.content)
        .where(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.seq)
    )
    return [{"role": role, "content": content} for role, content in result.all()]
