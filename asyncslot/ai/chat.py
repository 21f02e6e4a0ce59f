"""
AIChat - Conversation history on top of AIPrompter.
"""

from datetime import datetime
from typing import Any, Callable, Literal

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from asyncslot.ai.prompter import AIPrompter
from asyncslot.ai.providers import AIConfig


class ChatMessage(BaseModel):
    """One message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: datetime | None = None


class AIChatConfig(AIConfig):
    """AIConfig plus history settings."""

    initial_messages: list[ChatMessage] = Field(default_factory=list)
    max_history: int = 50


class AIChat:
    """
    Chat slot keeping a bounded message history.

    System messages are never trimmed; at most max_history other messages are
    kept, oldest dropped first.

    Usage:
        chat = AIChat(AIChatConfig(provider="groq", api_key="gsk_..."))
        await chat.send_message("Hello!")
        chat.messages  # [user, assistant]
    """

    def __init__(
        self,
        config: AIChatConfig | None = None,
        on_success: Callable[[str], Any] | None = None,
        on_error: Callable[[BaseException], Any] | None = None,
        client: httpx.AsyncClient | None = None,
        debug: bool = False,
    ):
        self.config = config or AIChatConfig()
        self.messages: list[ChatMessage] = list(self.config.initial_messages)
        self._on_success = on_success
        self._prompter = AIPrompter(
            self.config,
            on_success=self._append_reply,
            on_error=on_error,
            client=client,
            debug=debug,
        )

    @property
    def loading(self) -> bool:
        return self._prompter.loading

    @property
    def error(self) -> BaseException | None:
        return self._prompter.error

    async def send_message(self, message: str) -> str | None:
        """
        Append a user message and ask for the assistant's reply.

        Returns:
            The reply, or None if the request failed or was superseded by a
            newer message
        """
        prompt = self.build_prompt(message)
        self.messages.append(
            ChatMessage(role="user", content=message, timestamp=datetime.now())
        )
        return await self._prompter.send_prompt(prompt)

    def build_prompt(self, message: str) -> str:
        """Render the non-system history followed by the new user message."""
        history = "\n\n".join(
            f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}"
            for m in self.get_chat_history()
        )
        return f"{history}\n\nUser: {message}" if history else message

    def clear_chat(self) -> None:
        """Keep only system messages and clear the prompt slot."""
        self.messages = [m for m in self.messages if m.role == "system"]
        self._prompter.clear()

    def remove_message(self, index: int) -> None:
        if 0 <= index < len(self.messages):
            del self.messages[index]

    def get_chat_history(self) -> list[ChatMessage]:
        """Messages excluding system messages."""
        return [m for m in self.messages if m.role != "system"]

    def _append_reply(self, reply: str) -> None:
        self.messages.append(
            ChatMessage(role="assistant", content=reply, timestamp=datetime.now())
        )
        self._trim()
        if self._on_success is not None:
            self._on_success(reply)

    def _trim(self) -> None:
        if len(self.messages) <= self.config.max_history:
            return
        system = [m for m in self.messages if m.role == "system"]
        others = [m for m in self.messages if m.role != "system"]
        dropped = len(others) - self.config.max_history
        if dropped > 0:
            logger.debug(f"[AIChat] trimming {dropped} oldest messages")
        self.messages = system + others[-self.config.max_history:]
