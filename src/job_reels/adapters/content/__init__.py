"""Manifest content generators."""

from job_reels.adapters.content.base import ContentDraft, ContentGenerator, GenerationContext
from job_reels.adapters.content.llm import LLMContentGenerator
from job_reels.adapters.content.stub import StubContentGenerator

__all__ = [
    "ContentDraft",
    "ContentGenerator",
    "GenerationContext",
    "LLMContentGenerator",
    "StubContentGenerator",
]
