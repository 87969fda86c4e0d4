"""Per-user prompt storage keyed by (user_id, prompt_type).

Every call goes straight to the database; nothing is cached and nothing
is retried. A ``PromptStore`` wraps the request's session, so it lives
exactly as long as the request does.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select, delete
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidInput, StorageFailure
from app.models.prompt import UserPrompt

logger = logging.getLogger(__name__)

# Dialects that accept INSERT ... ON CONFLICT DO UPDATE ... RETURNING.
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _key(prompt_type: Optional[str]) -> str:
    return (prompt_type or "").strip()


class PromptStore:
    """Upsert, list and delete a user's prompt records."""

    def __init__(self, db: AsyncSession, clock: Callable[[], datetime] = _utcnow):
        self.db = db
        self.clock = clock

    async def upsert(self, user_id: str, prompt_type: str, prompt_text: str) -> UserPrompt:
        """Create or replace the prompt stored under (user_id, prompt_type).

        A new record gets created_at == updated_at. An existing one keeps
        created_at and has prompt_text and updated_at overwritten. The key is
        stored without surrounding whitespace.
        """
        prompt_type = _key(prompt_type)
        if not prompt_type:
            raise InvalidInput("promptType is required")
        if not prompt_text or not prompt_text.strip():
            raise InvalidInput("promptText is required")

        now = self.clock()
        try:
            insert = _UPSERT_INSERTS.get(self.db.get_bind().dialect.name)
            if insert is None:
                prompt = await self._lookup_then_write(user_id, prompt_type, prompt_text, now)
            else:
                stmt = insert(UserPrompt).values(
                    user_id=user_id,
                    prompt_type=prompt_type,
                    prompt_text=prompt_text,
                    created_at=now,
                    updated_at=now,
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=["user_id", "prompt_type"],
                    set_={"prompt_text": stmt.excluded.prompt_text, "updated_at": now},
                ).returning(UserPrompt)
                result = await self.db.execute(
                    stmt, execution_options={"populate_existing": True}
                )
                prompt = result.scalar_one()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("upsert", user_id, prompt_type, e)

        logger.info("Stored prompt '%s' for user %s", prompt_type, user_id)
        return prompt

    async def _lookup_then_write(self, user_id, prompt_type, prompt_text, now) -> UserPrompt:
        # Two concurrent callers can both miss the lookup; the unique
        # constraint then rejects the second insert.
        prompt = await self._get(user_id, prompt_type)
        if prompt is None:
            prompt = UserPrompt(
                user_id=user_id,
                prompt_type=prompt_type,
                prompt_text=prompt_text,
                created_at=now,
                updated_at=now,
            )
            self.db.add(prompt)
        else:
            prompt.prompt_text = prompt_text
            prompt.updated_at = now
        await self.db.flush()
        return prompt

    async def list_by_user(self, user_id: str) -> list[UserPrompt]:
        """All prompts owned by user_id. Order is not guaranteed."""
        try:
            result = await self.db.execute(
                select(UserPrompt).where(UserPrompt.user_id == user_id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            await self._fail("list", user_id, None, e)

    async def get(self, user_id: str, prompt_type: str) -> Optional[UserPrompt]:
        try:
            return await self._get(user_id, _key(prompt_type))
        except SQLAlchemyError as e:
            await self._fail("get", user_id, prompt_type, e)

    async def _get(self, user_id: str, prompt_type: str) -> Optional[UserPrompt]:
        result = await self.db.execute(
            select(UserPrompt).where(
                UserPrompt.user_id == user_id, UserPrompt.prompt_type == prompt_type
            )
        )
        return result.scalar_one_or_none()

    async def delete_by_key(self, user_id: str, prompt_type: str) -> bool:
        """Delete the prompt if it exists. Returns whether a row was removed."""
        prompt_type = _key(prompt_type)
        try:
            result = await self.db.execute(
                delete(UserPrompt).where(
                    UserPrompt.user_id == user_id, UserPrompt.prompt_type == prompt_type
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self._fail("delete", user_id, prompt_type, e)

        deleted = result.rowcount > 0
        if deleted:
            logger.info("Deleted prompt '%s' for user %s", prompt_type, user_id)
        return deleted

    async def _fail(self, op: str, user_id: str, prompt_type: Optional[str], error: Exception):
        await self.db.rollback()
        logger.error("Prompt %s failed (user=%s, type=%s): %s", op, user_id, prompt_type, error)
        raise StorageFailure(f"Prompt {op} failed") from error
