"""Tests for the AI prompt and chat slots against a mocked transport."""

import httpx
import pytest

from asyncslot.ai.chat import AIChat, AIChatConfig, ChatMessage
from asyncslot.ai.prompter import AIPrompter, request_completion
from asyncslot.ai.providers import AIConfig, get_provider
from asyncslot.services.errors import HTTPStatusError, ProviderConfigError
from tests.helpers import json_body


def chat_reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"content": text}}]})


def groq_config(**kwargs) -> AIConfig:
    return AIConfig(provider="groq", api_key="gsk_test", **kwargs)


@pytest.mark.asyncio
async def test_groq_request_shape(mock_http):
    client = mock_http(lambda request: chat_reply("hi there"))
    config = groq_config(
        model="llama-3.1-70b",
        system_prompt="Be terse.",
        temperature=0.2,
        max_tokens=64,
    )

    text = await request_completion("hello", config, client=client)

    assert text == "hi there"
    sent = mock_http.requests[-1]
    assert str(sent.url) == "https://api.groq.com/openai/v1/chat/completions"
    assert sent.headers["Authorization"] == "Bearer gsk_test"
    assert json_body(sent) == {
        "model": "llama-3.1-70b-versatile",
        "messages": [
            {"role": "system", "content": "Be terse."},
            {"role": "user", "content": "hello"},
        ],
        "temperature": 0.2,
        "max_tokens": 64,
    }


@pytest.mark.asyncio
async def test_unknown_model_alias_is_sent_verbatim(mock_http):
    client = mock_http(lambda request: chat_reply("ok"))

    await request_completion("x", groq_config(model="qwen-2.5-32b"), client=client)

    assert json_body(mock_http.requests[-1])["model"] == "qwen-2.5-32b"


@pytest.mark.asyncio
async def test_huggingface_puts_model_in_url(mock_http):
    client = mock_http(
        lambda request: httpx.Response(200, json=[{"generated_text": "generated"}])
    )
    config = AIConfig(
        provider="huggingface",
        api_key="hf_test",
        model="gemma-7b",
        system_prompt="sys",
        max_tokens=32,
    )

    text = await request_completion("prompt", config, client=client)

    assert text == "generated"
    sent = mock_http.requests[-1]
    assert str(sent.url) == "https://api-inference.huggingface.co/models/google/gemma-7b-it"
    body = json_body(sent)
    assert body["inputs"] == "sys\n\nUser: prompt"
    assert body["parameters"]["max_new_tokens"] == 32


@pytest.mark.asyncio
async def test_custom_provider_fields(mock_http):
    client = mock_http(lambda request: httpx.Response(200, json={"text": "custom reply"}))
    config = AIConfig(
        provider="custom",
        api_url="https://llm.internal.test/complete",
        api_key=None,
        system_prompt="sys",
        temperature=0.5,
        max_tokens=10,
    )

    text = await request_completion("hey", config, client=client)

    assert text == "custom reply"
    sent = mock_http.requests[-1]
    assert "Authorization" not in sent.headers
    assert json_body(sent) == {
        "prompt": "hey",
        "systemPrompt": "sys",
        "temperature": 0.5,
        "maxTokens": 10,
    }


@pytest.mark.asyncio
async def test_custom_provider_requires_url():
    config = AIConfig(provider="custom", api_url=None)

    with pytest.raises(ProviderConfigError, match="api_url is required"):
        await request_completion("hey", config)


@pytest.mark.asyncio
async def test_hosted_provider_requires_key():
    config = AIConfig(provider="together", api_key=None)

    with pytest.raises(ProviderConfigError, match="API key is required for together provider"):
        await request_completion("hey", config)


def test_unknown_provider():
    with pytest.raises(ProviderConfigError, match="Unknown provider: foo"):
        get_provider("foo")


@pytest.mark.asyncio
async def test_prompter_exposes_response(mock_http, recorder):
    client = mock_http(lambda request: chat_reply("answer"))
    prompter = AIPrompter(groq_config(), on_success=recorder("ok"), client=client)

    reply = await prompter.send_prompt("question")

    assert reply == "answer"
    assert prompter.response == "answer"
    assert prompter.loading is False
    assert prompter.error is None
    assert recorder.values("ok") == ["answer"]


@pytest.mark.asyncio
async def test_prompter_per_call_overrides(mock_http):
    client = mock_http(lambda request: chat_reply("ok"))
    config = groq_config(temperature=0.7)
    prompter = AIPrompter(config, client=client)

    await prompter.send_prompt("q", temperature=0.1)

    assert json_body(mock_http.requests[-1])["temperature"] == 0.1
    assert prompter.config.temperature == 0.7


@pytest.mark.asyncio
async def test_prompter_records_provider_error(mock_http, recorder):
    client = mock_http(
        lambda request: httpx.Response(401, json={"error": {"message": "Invalid API Key"}})
    )
    prompter = AIPrompter(groq_config(), on_error=recorder("error"), client=client)

    reply = await prompter.send_prompt("q")

    assert reply is None
    assert isinstance(prompter.error, HTTPStatusError)
    assert str(prompter.error) == "Invalid API Key"
    assert prompter.loading is False
    assert prompter.response is None
    assert recorder.values("error") == [prompter.error]
    # no automatic retries for prompts
    assert len(mock_http.requests) == 1


@pytest.mark.asyncio
async def test_prompter_clear(mock_http):
    client = mock_http(lambda request: chat_reply("answer"))
    prompter = AIPrompter(groq_config(), client=client)
    await prompter.send_prompt("q")

    prompter.clear()

    assert prompter.response is None
    assert prompter.controller.state.idle


def test_build_prompt_without_history():
    chat = AIChat(AIChatConfig(provider="groq", api_key="k"))

    assert chat.build_prompt("Hi") == "Hi"


def test_build_prompt_skips_system_messages():
    chat = AIChat(
        AIChatConfig(
            provider="groq",
            api_key="k",
            initial_messages=[
                ChatMessage(role="system", content="rules"),
                ChatMessage(role="user", content="Hi"),
                ChatMessage(role="assistant", content="Hello!"),
            ],
        )
    )

    assert chat.build_prompt("How are you?") == (
        "User: Hi\n\nAssistant: Hello!\n\nUser: How are you?"
    )


@pytest.mark.asyncio
async def test_send_message_appends_both_turns(mock_http, recorder):
    replies = iter(["first reply", "second reply"])
    client = mock_http(lambda request: chat_reply(next(replies)))
    chat = AIChat(
        AIChatConfig(provider="groq", api_key="k"),
        on_success=recorder("reply"),
        client=client,
    )

    await chat.send_message("one")
    await chat.send_message("two")

    assert [(m.role, m.content) for m in chat.messages] == [
        ("user", "one"),
        ("assistant", "first reply"),
        ("user", "two"),
        ("assistant", "second reply"),
    ]
    assert recorder.values("reply") == ["first reply", "second reply"]
    sent = json_body(mock_http.requests[-1])["messages"][-1]["content"]
    assert sent == "User: one\n\nAssistant: first reply\n\nUser: two"


@pytest.mark.asyncio
async def test_history_is_trimmed_but_system_kept(mock_http):
    client = mock_http(lambda request: chat_reply("r"))
    chat = AIChat(
        AIChatConfig(
            provider="groq",
            api_key="k",
            max_history=2,
            initial_messages=[ChatMessage(role="system", content="rules")],
        ),
        client=client,
    )

    await chat.send_message("a")
    await chat.send_message("b")

    assert [(m.role, m.content) for m in chat.messages] == [
        ("system", "rules"),
        ("user", "b"),
        ("assistant", "r"),
    ]


@pytest.mark.asyncio
async def test_failed_message_keeps_user_turn(mock_http):
    client = mock_http(lambda request: httpx.Response(503, json={}))
    chat = AIChat(AIChatConfig(provider="groq", api_key="k"), client=client)

    reply = await chat.send_message("hello?")

    assert reply is None
    assert [m.role for m in chat.messages] == ["user"]
    assert isinstance(chat.error, HTTPStatusError)
    assert str(chat.error) == "HTTP error! status: 503"
    assert chat.loading is False


def test_clear_chat_keeps_system_messages():
    chat = AIChat(
        AIChatConfig(
            provider="groq",
            api_key="k",
            initial_messages=[
                ChatMessage(role="system", content="rules"),
                ChatMessage(role="user", content="Hi"),
            ],
        )
    )

    chat.clear_chat()

    assert [m.content for m in chat.messages] == ["rules"]


def test_remove_message_ignores_bad_index():
    chat = AIChat(
        AIChatConfig(
            provider="groq",
            api_key="k",
            initial_messages=[
                ChatMessage(role="user", content="a"),
                ChatMessage(role="user", content="b"),
            ],
        )
    )

    chat.remove_message(5)
    chat.remove_message(0)

    assert [m.content for m in chat.messages] == ["b"]


@pytest.mark.asyncio
async def test_prompter_config_error_is_reported_not_raised(recorder):
    prompter = AIPrompter(
        AIConfig(provider="together", api_key=None), on_error=recorder("error")
    )

    reply = await prompter.send_prompt("q")

    assert reply is None
    assert isinstance(prompter.error, ProviderConfigError)
    assert recorder.values("error") == [prompter.error]
