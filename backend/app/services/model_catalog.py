"""Chat model catalog: built-in models plus one entry per saved prompt.

A selected model travels over the wire (request bodies, the model cookie)
as a plain string. ``parse_model_id`` turns it into a ``BuiltinModelId``
or a ``CustomPromptModelId`` once, at the boundary; everything past that
point works with the tagged value.

The catalog itself is never stored. It is recomputed per request from the
built-in list and the user's current prompts, so a deleted prompt simply
stops appearing.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Sequence, Union

from app.errors import InvalidInput, NotResolved
from app.models.prompt import UserPrompt

logger = logging.getLogger(__name__)

CUSTOM_PREFIX = "custom-"
DESCRIPTION_PREVIEW_LENGTH = 100


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    name: str
    description: str
    source_prompt_type: Optional[str] = None

    @property
    def is_custom(self) -> bool:
        return self.source_prompt_type is not None


@dataclass(frozen=True)
class BuiltinModelId:
    id: str


@dataclass(frozen=True)
class CustomPromptModelId:
    prompt_type: str


SelectedModelId = Union[BuiltinModelId, CustomPromptModelId]


BUILTIN_CHAT_MODELS: tuple[ModelDescriptor, ...] = (
    ModelDescriptor(
        id="chat-model",
        name="Chat model",
        description="Primary model for all-purpose chat",
    ),
    ModelDescriptor(
        id="chat-model-reasoning",
        name="Reasoning model",
        description="Uses advanced reasoning",
    ),
    ModelDescriptor(
        id="chat-english-prompt",
        name="English tutor",
        description="Built-in English teacher prompt",
    ),
)

BUILTIN_MODEL_IDS = frozenset(m.id for m in BUILTIN_CHAT_MODELS)

ENTITLEMENTS_BY_USER_TYPE: dict[str, frozenset[str]] = {
    "guest": frozenset({"chat-model", "chat-model-reasoning"}),
    "regular": frozenset({"chat-model", "chat-model-reasoning", "chat-english-prompt"}),
}

PROMPT_TYPE_NAMES = {
    "lesson": "English",
    "question": "Question",
    "task": "Task",
    "story": "Story",
    "custom": "Custom",
}


def parse_model_id(value: str, builtin_ids: Iterable[str] = BUILTIN_MODEL_IDS) -> SelectedModelId:
    """Parse a wire-format model id.

    Accepts a known built-in id or anything carrying the ``custom-`` prefix.
    Whether the custom prompt still exists is not checked here.
    """
    if not isinstance(value, str):
        raise InvalidInput("Model id must be a string")
    if value in builtin_ids:
        return BuiltinModelId(value)
    if value.startswith(CUSTOM_PREFIX):
        return CustomPromptModelId(value[len(CUSTOM_PREFIX):])
    raise InvalidInput(
        f"Must be a valid model ID (standard model or custom model starting with '{CUSTOM_PREFIX}')"
    )


def _tag(value: str, builtin_ids: Iterable[str] = BUILTIN_MODEL_IDS) -> SelectedModelId:
    # Same precedence as parse_model_id, minus validation: anything that is
    # neither a built-in nor custom-prefixed is still looked up as a built-in.
    if value in builtin_ids:
        return BuiltinModelId(value)
    if value.startswith(CUSTOM_PREFIX):
        return CustomPromptModelId(value[len(CUSTOM_PREFIX):])
    return BuiltinModelId(value)


def format_model_id(selected: SelectedModelId) -> str:
    if isinstance(selected, CustomPromptModelId):
        return CUSTOM_PREFIX + selected.prompt_type
    return selected.id


def prompt_type_name(prompt_type: str) -> str:
    return PROMPT_TYPE_NAMES.get(prompt_type, prompt_type)


def preview(text: str, length: int = DESCRIPTION_PREVIEW_LENGTH) -> str:
    if len(text) > length:
        return text[:length] + "..."
    return text


def derive_descriptor(prompt: UserPrompt) -> ModelDescriptor:
    """Catalog entry for a stored prompt."""
    return ModelDescriptor(
        id=CUSTOM_PREFIX + prompt.prompt_type,
        name=prompt_type_name(prompt.prompt_type),
        description=preview(prompt.prompt_text),
        source_prompt_type=prompt.prompt_type,
    )


def entitled_builtins(
    user_type: str,
    builtins: Sequence[ModelDescriptor] = BUILTIN_CHAT_MODELS,
    entitlements: Mapping[str, Iterable[str]] = ENTITLEMENTS_BY_USER_TYPE,
) -> list[ModelDescriptor]:
    """Built-ins the user type may use, in configured order."""
    allowed = entitlements.get(user_type)
    if allowed is None:
        logger.warning("No model entitlements for user type '%s'", user_type)
        return []
    allowed = set(allowed)
    return [m for m in builtins if m.id in allowed]


def find_id_collisions(catalog: Sequence[ModelDescriptor]) -> list[str]:
    """Ids that appear more than once in the catalog."""
    counts = Counter(m.id for m in catalog)
    return [model_id for model_id, n in counts.items() if n > 1]


def merge_catalog(
    builtins: Sequence[ModelDescriptor], prompts: Iterable[UserPrompt]
) -> list[ModelDescriptor]:
    """Built-ins first, then one derived entry per prompt, without de-duplication."""
    catalog = list(builtins) + [derive_descriptor(p) for p in prompts]
    collisions = find_id_collisions(catalog)
    if collisions:
        logger.warning("Model catalog has duplicate ids: %s", ", ".join(collisions))
    return catalog


async def build_catalog(
    store,
    user_id: str,
    user_type: str,
    builtins: Sequence[ModelDescriptor] = BUILTIN_CHAT_MODELS,
    entitlements: Mapping[str, Iterable[str]] = ENTITLEMENTS_BY_USER_TYPE,
) -> list[ModelDescriptor]:
    """Selectable models for a user: entitled built-ins plus their prompts."""
    prompts = await store.list_by_user(user_id)
    return merge_catalog(entitled_builtins(user_type, builtins, entitlements), prompts)


def resolve_selected(
    selected: Union[SelectedModelId, str], catalog: Sequence[ModelDescriptor]
) -> Optional[ModelDescriptor]:
    """Find the catalog entry for a selection, or None.

    None is a normal outcome: a prompt saved in a cookie may have been
    deleted since.
    """
    if isinstance(selected, str):
        builtin_ids = BUILTIN_MODEL_IDS | {m.id for m in catalog if not m.is_custom}
        selected = _tag(selected, builtin_ids)

    if isinstance(selected, CustomPromptModelId):
        return next(
            (m for m in catalog if m.is_custom and m.source_prompt_type == selected.prompt_type),
            None,
        )
    return next((m for m in catalog if not m.is_custom and m.id == selected.id), None)


def resolve_or_default(
    selected: Union[SelectedModelId, str, None],
    catalog: Sequence[ModelDescriptor],
    default_id: str,
) -> ModelDescriptor:
    """Resolve a selection, falling back to the default built-in model.

    If the default is not in the catalog either, the first entry is used.
    An empty catalog still yields the default built-in. NotResolved means
    default_id names no built-in model at all, i.e. a configuration error.
    """
    if selected is not None:
        found = resolve_selected(selected, catalog)
        if found is not None:
            return found
        shown = format_model_id(selected) if not isinstance(selected, str) else selected
        logger.info("Model '%s' not in catalog, falling back to '%s'", shown, default_id)

    found = resolve_selected(BuiltinModelId(default_id), catalog)
    if found is not None:
        return found
    if catalog:
        return catalog[0]
    found = next((m for m in BUILTIN_CHAT_MODELS if m.id == default_id), None)
    if found is None:
        raise NotResolved(f"Default chat model '{default_id}' is not a built-in model")
    logger.info("Empty model catalog, using default '%s'", default_id)
    return found
