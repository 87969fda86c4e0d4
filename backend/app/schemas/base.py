"""Base schema classes with camelCase aliases.

Python code works with snake_case fields; request and response JSON use
camelCase (``promptType``, ``selectedChatModel``, ...).
"""
from pydantic import BaseModel
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Request bodies. Accepts camelCase, or snake_case by field name."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "protected_namespaces": (),
    }


class CamelORMModel(BaseModel):
    """Responses built from ORM rows or dataclasses, serialized as camelCase."""
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }
