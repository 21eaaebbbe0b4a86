# Save as: chat_companion/services/llm_generator.py
"""
Generative capability backed by a local Ollama model.

The hybrid generator only depends on the GenerativeCapability protocol;
this module is the production implementation of it.
"""

import ollama
from typing import Optional, Protocol, runtime_checkable
from config import OLLAMA_MODEL, OLLAMA_HOST, LLM_MAX_COMMENT_LENGTH, RoleType
from context.models import ContextSnapshot
from systems.role_catalog import Role
from errors import ExternalCapabilityFailure


@runtime_checkable
class GenerativeCapability(Protocol):
    async def generate(self, context: ContextSnapshot, role: Role) -> str: ...

    def is_ready(self) -> bool: ...


SYSTEM_PROMPT = (
    "You are a viewer typing into a live stream chat. "
    "Keep it short (1-10 words), casual and natural for the given role. "
    "Respond only with the comment text, no explanations."
)

ROLE_GUIDANCE = {
    RoleType.GREETING: 'Write a welcoming greeting like "hello!" or "first time here".',
    RoleType.DEPARTURE: 'Write a goodbye like "good night~" or "great stream today".',
    RoleType.REACTION: 'Write an emotional reaction like "so cute" or "lol".',
    RoleType.AGREEMENT: 'Write agreement like "true" or "exactly".',
    RoleType.QUESTION: "Write a casual question about daily life or interests.",
    RoleType.INSIDER: 'Write a regular-viewer comment like "the usual" or "there it is".',
    RoleType.SUPPORT: 'Write a supportive comment like "don\'t overdo it" or "rooting for you".',
    RoleType.PLAYFUL: 'Write playful teasing like "was that foreshadowing?" or "is this scripted?".',
}


def build_comment_prompt(context: ContextSnapshot, role: Role) -> str:
    prompt = f"Generate a {role.type.value} comment for this live stream context:\n"
    if context.current_topic:
        prompt += f"Topic: {context.current_topic}\n"
    if context.recent_transcript:
        prompt += f'Recent speech: "{context.recent_transcript[-200:]}"\n'
    prompt += ROLE_GUIDANCE.get(role.type, "")
    return prompt


def clean_response(text: str) -> str:
    cleaned = text.strip().replace("\n", " ").strip().strip('"').strip("'").strip()
    return cleaned[:LLM_MAX_COMMENT_LENGTH]


class OllamaCapability:
    def __init__(self, model: str = OLLAMA_MODEL, host: str = OLLAMA_HOST, client=None):
        self.model = model
        self.host = host
        self.client: Optional[ollama.AsyncClient] = client
        self._ready = client is not None

    async def initialize(self) -> bool:
        if self.client is None:
            try:
                self.client = ollama.AsyncClient(host=self.host)
                print(f"[LLM] ✅ Async Ollama Client connected at {self.host}")
            except Exception as e:
                print(f"[LLM] ❌ Failed to connect to Ollama: {e}")
                self.client = None
        self._ready = self.client is not None
        return self._ready

    def is_ready(self) -> bool:
        return self._ready and self.client is not None

    async def generate(self, context: ContextSnapshot, role: Role) -> str:
        if not self.is_ready():
            raise ExternalCapabilityFailure("Ollama client not initialized")

        try:
            response = await self.client.chat(
                model=self.model,
                messages=[
                    {'role': 'system', 'content': SYSTEM_PROMPT},
                    {'role': 'user', 'content': build_comment_prompt(context, role)},
                ],
                options={"temperature": 0.8, "num_predict": 50, "top_p": 0.9}
            )
        except Exception as e:
            raise ExternalCapabilityFailure(f"Ollama chat failed: {e}") from e

        comment = clean_response(response['message']['content'] or "")
        if not comment:
            raise ExternalCapabilityFailure("Ollama returned an empty comment")
        return comment

    async def close(self):
        self.client = None
        self._ready = False
