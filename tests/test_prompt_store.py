"""Tests for PromptStore against a SQLite database."""
import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.errors import InvalidInput, StorageFailure
from app.models import User, UserPrompt
from app.services import prompt_store
from app.services.prompt_store import PromptStore


def test_upsert_creates_record(run, clock):
    async def scenario(db):
        prompt = await PromptStore(db, clock).upsert("u1", "lesson", "Teach English basics")
        return prompt.user_id, prompt.prompt_type, prompt.prompt_text, prompt.created_at, prompt.updated_at

    user_id, prompt_type, text, created_at, updated_at = run(scenario)
    assert (user_id, prompt_type, text) == ("u1", "lesson", "Teach English basics")
    assert created_at == updated_at


def test_second_upsert_replaces_text_and_keeps_created_at(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        first = await store.upsert("u1", "lesson", "first text")
        first_state = (first.id, first.created_at, first.updated_at)
        second = await store.upsert("u1", "lesson", "second text")
        rows = await store.list_by_user("u1")
        return first_state, (second.id, second.created_at, second.updated_at, second.prompt_text), rows

    (first_id, first_created, first_updated), second, rows = run(scenario)
    second_id, second_created, second_updated, second_text = second

    assert len(rows) == 1
    assert rows[0].prompt_text == "second text"
    assert second_text == "second text"
    assert second_id == first_id
    assert second_created == first_created
    assert second_updated > first_updated


def test_upsert_same_text_twice_converges(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        await store.upsert("u1", "story", "Tell a story")
        await store.upsert("u1", "story", "Tell a story")
        return [(p.prompt_type, p.prompt_text) for p in await store.list_by_user("u1")]

    assert run(scenario) == [("story", "Tell a story")]


@pytest.mark.parametrize("prompt_type, prompt_text", [
    ("", "text"),
    ("lesson", ""),
    ("   ", "text"),
    ("lesson", "\n\t"),
])
def test_upsert_rejects_blank_fields(run, clock, prompt_type, prompt_text):
    async def scenario(db):
        await PromptStore(db, clock).upsert("u1", prompt_type, prompt_text)

    with pytest.raises(InvalidInput):
        run(scenario)


def test_same_prompt_type_is_separate_per_user(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        await store.upsert("u1", "lesson", "u1 lesson")
        await store.upsert("u2", "lesson", "u2 lesson")
        await store.upsert("u2", "task", "u2 task")
        return await store.list_by_user("u1"), await store.list_by_user("u2")

    mine, theirs = run(scenario)
    assert [(p.user_id, p.prompt_text) for p in mine] == [("u1", "u1 lesson")]
    assert {p.user_id for p in theirs} == {"u2"}
    assert sorted(p.prompt_type for p in theirs) == ["lesson", "task"]


def test_list_by_user_empty(run):
    async def scenario(db):
        return await PromptStore(db).list_by_user("u1")

    assert run(scenario) == []


def test_delete_by_key(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        await store.upsert("u1", "lesson", "text")
        await store.upsert("u1", "task", "other")
        deleted = await store.delete_by_key("u1", "lesson")
        remaining = [p.prompt_type for p in await store.list_by_user("u1")]
        return deleted, remaining

    deleted, remaining = run(scenario)
    assert deleted is True
    assert remaining == ["task"]


def test_delete_missing_key_is_noop(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        await store.upsert("u2", "lesson", "not yours")
        deleted = await store.delete_by_key("u1", "lesson")
        return deleted, await store.list_by_user("u2")

    deleted, theirs = run(scenario)
    assert deleted is False
    assert len(theirs) == 1


def test_get(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        await store.upsert("u1", "lesson", "text")
        return await store.get("u1", "lesson"), await store.get("u1", "story")

    found, missing = run(scenario)
    assert found.prompt_text == "text"
    assert missing is None


def test_prompts_removed_with_their_user(run, clock):
    async def scenario(db):
        await PromptStore(db, clock).upsert("u1", "lesson", "text")
        user = await db.get(User, "u1")
        await db.delete(user)
        await db.commit()
        result = await db.execute(select(UserPrompt))
        return result.scalars().all()

    assert run(scenario) == []


def test_storage_errors_become_storage_failure(run, clock, monkeypatch):
    async def scenario(db):
        async def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is gone"))

        monkeypatch.setattr(db, "execute", broken)
        store = PromptStore(db, clock)
        failures = []
        for call in (
            store.list_by_user("u1"),
            store.upsert("u1", "lesson", "text"),
            store.delete_by_key("u1", "lesson"),
        ):
            try:
                await call
            except StorageFailure as e:
                failures.append(e)
        return failures

    assert len(run(scenario)) == 3


def test_upsert_on_dialect_without_on_conflict(run, clock, monkeypatch):
    monkeypatch.setattr(prompt_store, "_UPSERT_INSERTS", {})

    async def scenario(db):
        store = PromptStore(db, clock)
        first = await store.upsert("u1", "lesson", "first text")
        first_state = (first.id, first.created_at, first.updated_at)
        second = await store.upsert("u1", "lesson", "second text")
        second_state = (second.id, second.created_at, second.updated_at)
        rows = [(p.prompt_type, p.prompt_text) for p in await store.list_by_user("u1")]
        return first_state, second_state, rows

    (first_id, first_created, first_updated), (second_id, second_created, second_updated), rows = run(scenario)
    assert first_created == first_updated
    assert second_id == first_id
    assert second_created == first_created
    assert second_updated > first_updated
    assert rows == [("lesson", "second text")]


def test_prompt_type_surrounding_whitespace_is_one_key(run, clock):
    async def scenario(db):
        store = PromptStore(db, clock)
        await store.upsert("u1", "lesson ", "padded")
        await store.upsert("u1", "lesson", "plain")
        rows = [(p.prompt_type, p.prompt_text) for p in await store.list_by_user("u1")]
        found = await store.get("u1", " lesson")
        deleted = await store.delete_by_key("u1", "lesson\n")
        return rows, found.prompt_text, deleted, await store.list_by_user("u1")

    rows, found_text, deleted, remaining = run(scenario)
    assert rows == [("lesson", "plain")]
    assert found_text == "plain"
    assert deleted is True
    assert remaining == []
