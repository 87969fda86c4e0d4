"""UserPrompt model - a user's named prompt template, one per prompt_type."""
from datetime import datetime
from sqlalchemy import String, Text, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.models.base import Base, UserMixin


class UserPrompt(Base, UserMixin):
    __tablename__ = "user_prompts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    prompt_type: Mapped[str] = mapped_column(String(50), nullable=False)
    prompt_text: Mapped[str] = mapped_column(Text, nullable=False)
    # Set by PromptStore's clock, not the server, so upserts can keep created_at.
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    user: Mapped["User"] = relationship(back_populates="prompts")

    __table_args__ = (
        UniqueConstraint("user_id", "prompt_type", name="uq_user_prompt"),
    )
