"""Prompts API routes.

A user keeps at most one prompt per prompt type. Saving a prompt type
that already exists replaces its text.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import CurrentUser, get_current_user
from app.database import get_db
from app.schemas.prompt import PromptUpsert, PromptResponse, PromptDeleteResponse
from app.services.prompt_store import PromptStore

router = APIRouter(prefix="/api/prompts", tags=["prompts"])


@router.get("", response_model=list[PromptResponse])
async def list_prompts(
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the caller's prompts."""
    return await PromptStore(db).list_by_user(user.id)


@router.post("", response_model=PromptResponse)
async def upsert_prompt(
    body: PromptUpsert,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create the prompt, or replace the text of the existing one of this type."""
    return await PromptStore(db).upsert(user.id, body.prompt_type, body.prompt_text)


@router.delete("", response_model=PromptDeleteResponse)
async def delete_prompt(
    prompt_type: str = Query(..., alias="promptType", min_length=1),
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete a prompt by type. Deleting a missing prompt still succeeds."""
    deleted = await PromptStore(db).delete_by_key(user.id, prompt_type)
    return PromptDeleteResponse(deleted=deleted, prompt_type=prompt_type.strip())
