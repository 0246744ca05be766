"""
LLM provider adapters.
Every provider exposes the same single capability: complete(messages) -> text.
"""

import logging
from dataclasses import dataclass
from typing import Literal

import anthropic
import google.generativeai as genai
from openai import OpenAI

from config import ANTHROPIC_MODEL, GOOGLE_MODEL, OPENAI_MODEL

logger = logging.getLogger(__name__)

ProviderType = Literal["anthropic", "openai", "google"]

DEFAULT_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 1.0


@dataclass
class ChatMessage:
    role: Literal["user", "assistant", "system"]
    content: str


def _split_system(messages: list[ChatMessage]) -> tuple[str | None, list[ChatMessage]]:
    system = next((m.content for m in messages if m.role == "system"), None)
    return system, [m for m in messages if m.role != "system"]


class LLMProvider:
    """Base class for chat-completion providers."""

    name = "base"

    def complete(self, messages: list[ChatMessage], max_tokens: int = DEFAULT_MAX_TOKENS,
                 temperature: float = DEFAULT_TEMPERATURE) -> str:
        raise NotImplementedError


class AnthropicProvider(LLMProvider):
    name = "Anthropic Claude"

    def __init__(self, api_key: str, model: str = ANTHROPIC_MODEL, client=None):
        self.model = model
        self.client = client or anthropic.Anthropic(api_key=api_key)

    def complete(self, messages, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        # Anthropic takes the system prompt as a separate argument
        system, chat = _split_system(messages)
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": m.role, "content": m.content} for m in chat],
        }
        if system:
            kwargs["system"] = system

        response = self.client.messages.create(**kwargs)
        for block in response.content:
            if getattr(block, "type", None) == "text":
                return block.text
        return ""


class OpenAIProvider(LLMProvider):
    name = "OpenAI GPT-4"

    def __init__(self, api_key: str, model: str = OPENAI_MODEL, client=None):
        self.model = model
        self.client = client or OpenAI(api_key=api_key)

    def complete(self, messages, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        response = self.client.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": m.role, "content": m.content} for m in messages],
        )
        if not response.choices:
            return ""
        return response.choices[0].message.content or ""


class GoogleProvider(LLMProvider):
    name = "Google Gemini"

    def __init__(self, api_key: str, model: str = GOOGLE_MODEL, model_factory=None):
        self.model = model
        if model_factory is None:
            genai.configure(api_key=api_key)
            model_factory = genai.GenerativeModel
        self._model_factory = model_factory

    def complete(self, messages, max_tokens=DEFAULT_MAX_TOKENS, temperature=DEFAULT_TEMPERATURE):
        system, chat = _split_system(messages)
        if not chat:
            return ""

        model = self._model_factory(
            self.model,
            generation_config={"max_output_tokens": max_tokens, "temperature": temperature},
        )
        history = [
            {"role": "model" if m.role == "assistant" else "user", "parts": [m.content]}
            for m in chat[:-1]
        ]
        session = model.start_chat(history=history)

        # Gemini has no system role here; fold it into the final prompt
        prompt = chat[-1].content
        if system:
            prompt = f"{system}\n\n{prompt}"
        return session.send_message(prompt).text


_PROVIDERS: dict[str, type[LLMProvider]] = {
    "anthropic": AnthropicProvider,
    "openai": OpenAIProvider,
    "google": GoogleProvider,
}


def create_provider(provider_type: ProviderType, api_key: str) -> LLMProvider:
    """Build the provider for a configured tag."""
    provider_cls = _PROVIDERS.get(provider_type)
    if provider_cls is None:
        raise ValueError(f"Unknown AI provider: {provider_type}")
    if not api_key:
        raise ValueError(f"No API key found for provider: {provider_type}")
    provider = provider_cls(api_key)
    logger.info(f"[LLM] Using provider {provider.name}")
    return provider
