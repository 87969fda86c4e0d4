"""Import all models so SQLAlchemy metadata knows about them."""
from app.models.base import Base
from app.models.user import User
from app.models.prompt import UserPrompt
from app.models.chat import ChatSession, ChatMessage

__all__ = [
    "Base",
    "User", "UserPrompt",
    "ChatSession", "ChatMessage",
]
