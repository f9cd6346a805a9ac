"""Ollama access for summarization and tag extraction."""

from .capability import CapabilityState, CapabilityUnavailableError, LanguageCapability
from .ollama_client import ChatMessage, OllamaClient, OllamaClientError

__all__ = [
    "CapabilityState",
    "CapabilityUnavailableError",
    "ChatMessage",
    "LanguageCapability",
    "OllamaClient",
    "OllamaClientError",
]
