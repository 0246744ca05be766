from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from src.analyzers.providers import (
    AnthropicProvider,
    ChatMessage,
    GoogleProvider,
    OpenAIProvider,
    create_provider,
)

MESSAGES = [
    ChatMessage(role="system", content="Be terse."),
    ChatMessage(role="user", content="Hi"),
    ChatMessage(role="assistant", content="Hello"),
    ChatMessage(role="user", content="Score this"),
]


def test_anthropic_passes_system_separately():
    client = MagicMock()
    client.messages.create.return_value = SimpleNamespace(content=[
        SimpleNamespace(type="tool_use"),
        SimpleNamespace(type="text", text="{}"),
    ])
    provider = AnthropicProvider("key", model="claude-test", client=client)

    assert provider.complete(MESSAGES, max_tokens=50) == "{}"
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["system"] == "Be terse."
    assert kwargs["max_tokens"] == 50
    assert [m["role"] for m in kwargs["messages"]] == ["user", "assistant", "user"]


def test_openai_returns_first_choice():
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content="answer"))]
    )
    provider = OpenAIProvider("key", model="gpt-test", client=client)

    assert provider.complete(MESSAGES) == "answer"
    sent = client.chat.completions.create.call_args.kwargs["messages"]
    assert sent[0] == {"role": "system", "content": "Be terse."}


def test_openai_no_choices_is_empty():
    client = MagicMock()
    client.chat.completions.create.return_value = SimpleNamespace(choices=[])
    assert OpenAIProvider("key", client=client).complete(MESSAGES) == ""


def test_google_uses_history_and_folds_system():
    chat = MagicMock()
    chat.send_message.return_value = SimpleNamespace(text="gemini says")
    model = MagicMock()
    model.start_chat.return_value = chat
    factory = MagicMock(return_value=model)

    provider = GoogleProvider("key", model="gemini-test", model_factory=factory)

    assert provider.complete(MESSAGES, max_tokens=10, temperature=0.2) == "gemini says"
    assert factory.call_args.kwargs["generation_config"] == {"max_output_tokens": 10, "temperature": 0.2}
    history = model.start_chat.call_args.kwargs["history"]
    assert [h["role"] for h in history] == ["user", "model"]
    chat.send_message.assert_called_once_with("Be terse.\n\nScore this")


def test_create_provider_rejects_unknown_type():
    with pytest.raises(ValueError, match="Unknown AI provider"):
        create_provider("mistral", "key")


def test_create_provider_requires_key():
    with pytest.raises(ValueError, match="No API key"):
        create_provider("openai", "")
