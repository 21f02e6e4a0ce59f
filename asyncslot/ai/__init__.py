"""
AI slots built on the operation controller.
"""

from asyncslot.ai.chat import AIChat, AIChatConfig, ChatMessage
from asyncslot.ai.prompter import AIPrompter, request_completion
from asyncslot.ai.providers import PROVIDERS, AIConfig, ProviderSpec, get_provider

__all__ = [
    "AIChat",
    "AIChatConfig",
    "ChatMessage",
    "AIPrompter",
    "request_completion",
    "PROVIDERS",
    "AIConfig",
    "ProviderSpec",
    "get_provider",
]
