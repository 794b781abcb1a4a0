"""
LLM module - language model client abstraction.

Clients:
- ollama: Ollama chat API (local or hosted), streaming with 503 fallback
"""

from zap.llm.base import ChatClient
from zap.llm.ollama import OllamaClient

__all__ = ["ChatClient", "OllamaClient"]
