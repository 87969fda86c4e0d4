"""Chat request/response schemas."""
import uuid
from datetime import datetime
from typing import Literal, Optional
from pydantic import AnyUrl, Field, field_validator

from app.schemas.base import CamelModel, CamelORMModel
from app.services.model_catalog import parse_model_id

MAX_TEXT = 2000


class TextPart(CamelModel):
    text: str = Field(min_length=1, max_length=MAX_TEXT)
    type: Literal["text"]


class Attachment(CamelModel):
    url: AnyUrl
    name: str = Field(min_length=1, max_length=MAX_TEXT)
    content_type: Literal["image/png", "image/jpg", "image/jpeg"]


class UserMessage(CamelModel):
    id: uuid.UUID
    created_at: datetime
    role: Literal["user"]
    content: str = Field(min_length=1, max_length=MAX_TEXT)
    parts: list[TextPart]
    experimental_attachments: Optional[list[Attachment]] = Field(
        None, alias="experimental_attachments"
    )


class ChatRequest(CamelModel):
    id: uuid.UUID
    message: UserMessage
    selected_chat_model: str
    selected_visibility_type: Literal["public", "private"]

    @field_validator("selected_chat_model")
    @classmethod
    def known_model_shape(cls, value: str) -> str:
        # Shape only. A custom prompt deleted since is handled by fallback.
        parse_model_id(value)
        return value


class MessageResponse(CamelORMModel):
    id: uuid.UUID
    session_id: uuid.UUID
    role: str
    content: str
    reasoning: Optional[str] = None
    model_id: Optional[str] = None
    created_at: datetime


class SessionResponse(CamelORMModel):
    id: uuid.UUID
    title: str
    visibility: str
    model_id: str
    created_at: datetime
    updated_at: datetime
    user_id: str
