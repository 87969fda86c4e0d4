"""Turn a resolved catalog entry into an LLM call."""
import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from app.config import settings
from app.services.llm import BaseLLMProvider
from app.services.model_catalog import ModelDescriptor

logger = logging.getLogger(__name__)

REGULAR_PROMPT = (
    "You are a friendly assistant! Keep your responses concise and helpful."
)

ENGLISH_TUTOR_PROMPT = (
    "You are a patient English teacher. Answer in simple English, correct the "
    "learner's mistakes gently, explain each correction briefly, and finish "
    "with a short follow-up question or exercise."
)

BUILTIN_SYSTEM_PROMPTS = {
    "chat-model": REGULAR_PROMPT,
    "chat-model-reasoning": REGULAR_PROMPT,
    "chat-english-prompt": ENGLISH_TUTOR_PROMPT,
}

# Replies from these models carry their chain of thought in <think> tags.
REASONING_MODEL_IDS = frozenset({"chat-model-reasoning"})


@dataclass(frozen=True)
class ChatTarget:
    model_id: str
    backend_model: str
    system_prompt: str
    extract_reasoning: bool = False


async def resolve_chat_target(descriptor: ModelDescriptor, store, user_id: str) -> ChatTarget:
    """Work out backend model and system prompt for a catalog entry.

    Custom entries run on the default backend model with the stored prompt
    text as the system prompt. The prompt is re-read so the latest text is
    used; if it was deleted in the meantime the default built-in runs instead.
    """
    if descriptor.is_custom:
        prompt = await store.get(user_id, descriptor.source_prompt_type)
        if prompt is None:
            logger.info(
                "Prompt '%s' deleted before the chat call, falling back to '%s'",
                descriptor.source_prompt_type, settings.DEFAULT_CHAT_MODEL,
            )
            return builtin_target(settings.DEFAULT_CHAT_MODEL)
        return ChatTarget(
            model_id=descriptor.id,
            backend_model=settings.OPENAI_MODEL,
            system_prompt=prompt.prompt_text,
        )

    return builtin_target(descriptor.id)


def builtin_target(model_id: str) -> ChatTarget:
    return ChatTarget(
        model_id=model_id,
        backend_model=settings.OPENAI_MODEL,
        system_prompt=BUILTIN_SYSTEM_PROMPTS.get(model_id, REGULAR_PROMPT),
        extract_reasoning=model_id in REASONING_MODEL_IDS,
    )


def extract_reasoning(text: str, tag_name: str = "think") -> Tuple[Optional[str], str]:
    """Split ``<think>...</think>`` blocks out of a reply.

    Returns (reasoning or None, remaining text).
    """
    pattern = re.compile(rf"<{tag_name}>(.*?)</{tag_name}>", re.DOTALL)
    parts = [m.strip() for m in pattern.findall(text)]
    if not parts:
        return None, text
    return "\n".join(parts), pattern.sub("", text).strip()


async def complete_chat(
    provider: BaseLLMProvider, target: ChatTarget, history: Sequence[dict],
) -> Tuple[Optional[str], str]:
    """Run the conversation through the provider. Returns (reasoning, text)."""
    text = await provider.chat(target.backend_model, history, system_prompt=target.system_prompt)
    if target.extract_reasoning:
        return extract_reasoning(text)
    return None, text
