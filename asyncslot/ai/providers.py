"""
AI provider table: endpoints, model aliases and request/response shapes.
"""

from dataclasses import dataclass
from typing import Any, Callable, Literal

from pydantic import BaseModel, Field

from asyncslot.services.errors import ProviderConfigError
from asyncslot.settings import global_settings

ProviderName = Literal["groq", "huggingface", "together", "custom"]

DEFAULT_MODEL = "llama-3.1-8b"


class AIConfig(BaseModel):
    """Settings for one AI prompt slot. Unset fields fall back to global settings."""

    provider: ProviderName = Field(default_factory=lambda: global_settings.ai_provider)
    model: str = Field(default_factory=lambda: global_settings.ai_model)
    api_key: str | None = Field(default_factory=lambda: global_settings.ai_api_key)
    api_url: str | None = Field(default_factory=lambda: global_settings.ai_api_url)
    system_prompt: str | None = None
    temperature: float = Field(default_factory=lambda: global_settings.ai_temperature)
    max_tokens: int = Field(default_factory=lambda: global_settings.ai_max_tokens)


def _chat_messages(prompt: str, config: AIConfig) -> list[dict[str, str]]:
    messages = []
    if config.system_prompt:
        messages.append({"role": "system", "content": config.system_prompt})
    messages.append({"role": "user", "content": prompt})
    return messages


def _message_content(data: Any) -> str:
    try:
        return data["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def _generated_text(data: Any) -> str:
    if isinstance(data, list):
        data = data[0] if data else {}
    if isinstance(data, dict):
        return data.get("generated_text") or ""
    return ""


@dataclass(frozen=True)
class ProviderSpec:
    """How to talk to one hosted provider."""

    name: str
    url: str
    models: dict[str, str]
    format_request: Callable[[str, AIConfig], dict[str, Any]]
    parse_response: Callable[[Any], str]
    model_in_path: bool = False

    def model_id(self, alias: str | None) -> str:
        """Resolve a short alias; unknown names are passed through as-is."""
        alias = alias or DEFAULT_MODEL
        return self.models.get(alias, alias)

    def endpoint(self, config: AIConfig) -> str:
        if self.model_in_path:
            return f"{self.url}{self.model_id(config.model)}"
        return self.url


def _openai_chat_format(models: dict[str, str]) -> Callable[[str, AIConfig], dict[str, Any]]:
    def format_request(prompt: str, config: AIConfig) -> dict[str, Any]:
        return {
            "model": models.get(config.model or DEFAULT_MODEL, config.model),
            "messages": _chat_messages(prompt, config),
            "temperature": config.temperature,
            "max_tokens": config.max_tokens,
        }

    return format_request


def _huggingface_format(prompt: str, config: AIConfig) -> dict[str, Any]:
    inputs = f"{config.system_prompt}\n\nUser: {prompt}" if config.system_prompt else prompt
    return {
        "inputs": inputs,
        "parameters": {
            "temperature": config.temperature,
            "max_new_tokens": config.max_tokens,
        },
    }


GROQ_MODELS = {
    "llama-3.1-8b": "llama-3.1-8b-instant",
    "llama-3.1-70b": "llama-3.1-70b-versatile",
    "mixtral-8x7b": "mixtral-8x7b-32768",
    "gemma-7b": "gemma-7b-it",
}

HUGGINGFACE_MODELS = {
    "llama-3.1-8b": "meta-llama/Meta-Llama-3.1-8B-Instruct",
    "mixtral-8x7b": "mistralai/Mixtral-8x7B-Instruct-v0.1",
    "gemma-7b": "google/gemma-7b-it",
}

TOGETHER_MODELS = {
    "llama-3.1-8b": "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo",
    "llama-3.1-70b": "meta-llama/Meta-Llama-3.1-70B-Instruct-Turbo",
    "mixtral-8x7b": "mistralai/Mixtral-8x7B-Instruct-v0.1",
}

PROVIDERS: dict[str, ProviderSpec] = {
    "groq": ProviderSpec(
        name="groq",
        url="https://api.groq.com/openai/v1/chat/completions",
        models=GROQ_MODELS,
        format_request=_openai_chat_format(GROQ_MODELS),
        parse_response=_message_content,
    ),
    "huggingface": ProviderSpec(
        name="huggingface",
        url="https://api-inference.huggingface.co/models/",
        models=HUGGINGFACE_MODELS,
        format_request=_huggingface_format,
        parse_response=_generated_text,
        model_in_path=True,
    ),
    "together": ProviderSpec(
        name="together",
        url="https://api.together.xyz/v1/chat/completions",
        models=TOGETHER_MODELS,
        format_request=_openai_chat_format(TOGETHER_MODELS),
        parse_response=_message_content,
    ),
}


def get_provider(name: str) -> ProviderSpec:
    """Look up a hosted provider by name."""
    spec = PROVIDERS.get(name)
    if spec is None:
        raise ProviderConfigError(f"Unknown provider: {name}", service_id=name)
    return spec
