"""Model picker schemas."""
from typing import Optional
from pydantic import field_validator

from app.schemas.base import CamelModel, CamelORMModel
from app.services.model_catalog import parse_model_id


class ModelDescriptorResponse(CamelORMModel):
    id: str
    name: str
    description: str
    source_prompt_type: Optional[str] = None


class CatalogResponse(CamelModel):
    models: list[ModelDescriptorResponse]
    selected_model_id: str
    selected_model: ModelDescriptorResponse


class SelectModelRequest(CamelModel):
    model_id: str

    @field_validator("model_id")
    @classmethod
    def known_shape(cls, value: str) -> str:
        parse_model_id(value)
        return value
