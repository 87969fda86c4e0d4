"""Model picker API routes.

The current selection is kept in a cookie. Reads fall back to the default
model when the cookie is missing or names a prompt that no longer exists.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import CurrentUser, get_current_user
from app.config import settings
from app.database import get_db
from app.schemas.catalog import CatalogResponse, ModelDescriptorResponse, SelectModelRequest
from app.services.model_catalog import ModelDescriptor, build_catalog, resolve_or_default
from app.services.prompt_store import PromptStore

router = APIRouter(prefix="/api/models", tags=["models"])

COOKIE_MAX_AGE = 60 * 60 * 24 * 365


@router.get("", response_model=CatalogResponse)
async def get_catalog(
    request: Request,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Selectable models for the caller and the currently selected one."""
    catalog = await build_catalog(PromptStore(db), user.id, user.user_type)
    selected_id = request.cookies.get(settings.CHAT_MODEL_COOKIE)
    return _to_response(catalog, selected_id)


@router.put("/selected", response_model=CatalogResponse)
async def select_model(
    body: SelectModelRequest,
    response: Response,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Remember the selected model in a cookie."""
    response.set_cookie(
        settings.CHAT_MODEL_COOKIE, body.model_id,
        max_age=COOKIE_MAX_AGE, httponly=True, samesite="lax",
    )
    catalog = await build_catalog(PromptStore(db), user.id, user.user_type)
    return _to_response(catalog, body.model_id)


def _to_response(catalog: list[ModelDescriptor], selected_id: Optional[str]) -> CatalogResponse:
    selected = resolve_or_default(selected_id, catalog, settings.DEFAULT_CHAT_MODEL)
    return CatalogResponse(
        models=[ModelDescriptorResponse.model_validate(m) for m in catalog],
        selected_model_id=selected.id,
        selected_model=ModelDescriptorResponse.model_validate(selected),
    )
