"""
Text-generation providers.

Both tiers speak the OpenAI chat-completions protocol: the primary provider
talks to OpenAI (or any compatible endpoint) with a key picked by the
credential manager, the secondary one to an OpenAI-compatible endpoint such
as the Hugging Face router. Library errors are translated into the agent's
``ProviderError`` family here so nothing above this module imports openai.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence, runtime_checkable

import httpx
import openai
from openai import AsyncOpenAI

from procurement_agent.exceptions import (
    ProviderError,
    ProviderTimeout,
    ProviderUnavailable,
    QuotaExceededError,
)
from procurement_agent.llm.credentials import CredentialRotationManager
from procurement_agent.models import ConversationMessage, Role
from procurement_agent.prompts.procurement_agent import SYSTEM_PROMPT

logger = logging.getLogger(__name__)


@runtime_checkable
class TextProvider(Protocol):
    name: str

    async def complete(self, prompt: str, history: Sequence[ConversationMessage]) -> str:
        ...


def to_chat_messages(
    system_prompt: str, history: Sequence[ConversationMessage], prompt: str
) -> list[dict]:
    """Convert conversation history into chat-completions messages."""
    messages = [{"role": "system", "content": system_prompt}]
    for message in history:
        role = "user" if message.role == Role.USER else "assistant"
        messages.append({"role": role, "content": message.text})
    messages.append({"role": "user", "content": prompt})
    return messages


def translate_openai_error(error: openai.OpenAIError) -> ProviderError:
    """Map an openai exception onto the provider error family."""
    if isinstance(error, openai.RateLimitError):
        return QuotaExceededError(str(error), status_code=429)
    if isinstance(error, openai.APITimeoutError):
        return ProviderTimeout(str(error))
    if isinstance(error, openai.APIStatusError):
        if error.status_code == 429:
            return QuotaExceededError(str(error), status_code=429)
        return ProviderUnavailable(str(error), status_code=error.status_code)
    return ProviderUnavailable(str(error))


class OpenAIChatProvider:
    """Chat-completions provider with an optional rotating credential pool."""

    def __init__(
        self,
        name: str,
        model: str,
        api_key: Optional[str] = None,
        credentials: Optional[CredentialRotationManager] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        temperature: float = 0.7,
        max_tokens: int = 1024,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        if not api_key and credentials is None:
            raise ValueError(f"Provider {name} needs an api_key or a credential manager")
        self.name = name
        self.model = model
        self.api_key = api_key
        self.credentials = credentials
        self.base_url = base_url
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.system_prompt = system_prompt
        self._clients: dict[str, AsyncOpenAI] = {}

    def _client(self, key: str) -> AsyncOpenAI:
        client = self._clients.get(key)
        if client is None:
            client = AsyncOpenAI(
                api_key=key,
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout, connect=5.0),
                # Retries and rotation are driven by the response generator
                max_retries=0,
            )
            self._clients[key] = client
        return client

    async def complete(self, prompt: str, history: Sequence[ConversationMessage]) -> str:
        """
        Generate a completion for the prompt.

        Args:
            prompt: Fully built prompt for this turn
            history: Recent conversation turns, oldest first

        Returns:
            Completion text

        Raises:
            QuotaExceededError, ProviderTimeout, ProviderUnavailable: tagged
                with the ``slot_index`` of the pooled credential that was used
        """
        slot = self.credentials.acquire() if self.credentials is not None else None
        client = self._client(slot.secret if slot is not None else self.api_key)
        messages = to_chat_messages(self.system_prompt, history, prompt)

        try:
            return await self._request(client, messages)
        except ProviderError as e:
            if slot is not None:
                e.slot_index = slot.index
            raise

    async def _request(self, client: AsyncOpenAI, messages: list[dict]) -> str:
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=self.temperature,
                    max_tokens=self.max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(f"{self.name} timed out after {self.timeout}s") from e
        except openai.OpenAIError as e:
            raise translate_openai_error(e) from e

        text = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not text:
            raise ProviderUnavailable(f"{self.name} returned an empty completion")
        return text

    def __repr__(self) -> str:
        return f"<OpenAIChatProvider {self.name} model={self.model}>"
