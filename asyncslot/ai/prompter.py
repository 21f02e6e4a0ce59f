"""
AIPrompter - Single-prompt AI request slot.

Sends one prompt to a hosted provider (groq, huggingface, together) or a
custom endpoint and exposes the reply through an OperationController, so a
new prompt supersedes one still in flight.
"""

from typing import Any, Callable

import httpx
from loguru import logger

from asyncslot.ai.providers import AIConfig, get_provider
from asyncslot.services.controller import (
    OperationConfig,
    OperationController,
    OperationHandlers,
)
from asyncslot.services.errors import ProviderConfigError
from asyncslot.services.http import request_json


async def request_completion(
    prompt: str,
    config: AIConfig,
    client: httpx.AsyncClient | None = None,
) -> str:
    """
    Send prompt with config and return the reply text.

    Raises:
        ProviderConfigError: Unknown provider, missing API key or URL
        ServiceError: Transport or HTTP failures (see request_json)
    """
    if config.provider == "custom":
        if not config.api_url:
            raise ProviderConfigError("api_url is required for custom provider", "custom")

        headers = {"Content-Type": "application/json"}
        if config.api_key:
            headers["Authorization"] = f"Bearer {config.api_key}"

        data = await request_json(
            config.api_url,
            headers=headers,
            json_data={
                "prompt": prompt,
                "systemPrompt": config.system_prompt,
                "temperature": config.temperature,
                "maxTokens": config.max_tokens,
            },
            service_id="custom",
            client=client,
        )
        if not isinstance(data, dict):
            return ""
        return data.get("response") or data.get("text") or data.get("content") or ""

    spec = get_provider(config.provider)
    if not config.api_key:
        raise ProviderConfigError(
            f"API key is required for {spec.name} provider", spec.name
        )

    data = await request_json(
        spec.endpoint(config),
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        },
        json_data=spec.format_request(prompt, config),
        service_id=spec.name,
        client=client,
    )
    text = spec.parse_response(data)
    logger.debug(f"[{spec.name}] reply received ({len(text)} chars)")
    return text


class AIPrompter:
    """
    Prompt slot with loading/error state.

    Usage:
        ai = AIPrompter(AIConfig(provider="groq", api_key="gsk_..."))

        reply = await ai.send_prompt("Explain asyncio in simple terms")
        ai.response  # same text

        # Per-call overrides
        await ai.send_prompt("Be brief.", temperature=0.2)
    """

    def __init__(
        self,
        config: AIConfig | None = None,
        on_success: Callable[[str], Any] | None = None,
        on_error: Callable[[BaseException], Any] | None = None,
        client: httpx.AsyncClient | None = None,
        debug: bool = False,
    ):
        self.config = config or AIConfig()
        self._client = client
        self._controller: OperationController[str] = OperationController(
            self._complete,
            OperationConfig(retry_count=0),
            OperationHandlers(on_success=on_success, on_error=on_error),
            name=f"ai:{self.config.provider}",
            debug=debug,
        )

    @property
    def response(self) -> str | None:
        return self._controller.data

    @property
    def loading(self) -> bool:
        return self._controller.loading

    @property
    def error(self) -> BaseException | None:
        return self._controller.error

    @property
    def controller(self) -> OperationController[str]:
        return self._controller

    async def send_prompt(self, prompt: str, **overrides: Any) -> str | None:
        """
        Send prompt, with optional AIConfig field overrides for this call only.

        Returns:
            The reply, or None if the request failed or was superseded by a
            newer prompt. Failures are reported through `error` and on_error.
        """
        config = self.config.model_copy(update=overrides) if overrides else self.config
        try:
            return await self._controller.execute(prompt, config)
        except Exception as e:
            logger.warning(f"[AIPrompter] {config.provider} request failed: {e}")
            return None

    def clear(self) -> None:
        """Drop the response and error, cancelling any request in flight."""
        self._controller.reset()

    async def _complete(self, prompt: str, config: AIConfig) -> str:
        return await request_completion(prompt, config, client=self._client)
