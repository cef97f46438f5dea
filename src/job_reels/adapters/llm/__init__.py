"""LLM provider adapters."""

from job_reels.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from job_reels.adapters.llm.openai import OpenAIProvider
from job_reels.adapters.llm.stub import StubLLMProvider

__all__ = [
    "LLMMessage",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "StubLLMProvider",
]
