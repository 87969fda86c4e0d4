"""Prompt request/response schemas."""
from datetime import datetime
from pydantic import Field, field_validator

from app.config import settings
from app.schemas.base import CamelModel, CamelORMModel


class PromptUpsert(CamelModel):
    prompt_type: str = Field(min_length=1, max_length=settings.PROMPT_TYPE_MAX_LENGTH)
    prompt_text: str = Field(min_length=1, max_length=settings.PROMPT_TEXT_MAX_LENGTH)

    @field_validator("prompt_type", "prompt_text")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class PromptResponse(CamelORMModel):
    id: int
    user_id: str
    prompt_type: str
    prompt_text: str
    created_at: datetime
    updated_at: datetime


class PromptDeleteResponse(CamelModel):
    deleted: bool
    prompt_type: str
