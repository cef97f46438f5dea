"""Video render strategies."""

from job_reels.adapters.renderer.base import (
    HTTP_ACCEPTED,
    HTTP_CREATED,
    HTTP_OK,
    HTTP_PROVIDER_FAILED,
    Renderer,
    RenderOutcome,
    build_director_prompt,
    build_dry_run_task,
    build_pending_task,
)
from job_reels.adapters.renderer.dry_run import DryRunRenderer
from job_reels.adapters.renderer.registry import RendererRegistry, default_registry
from job_reels.adapters.renderer.sora import SoraRenderer
from job_reels.adapters.renderer.veo import VeoRenderer

__all__ = [
    "HTTP_ACCEPTED",
    "HTTP_CREATED",
    "HTTP_OK",
    "HTTP_PROVIDER_FAILED",
    "DryRunRenderer",
    "Renderer",
    "RenderOutcome",
    "RendererRegistry",
    "SoraRenderer",
    "VeoRenderer",
    "build_director_prompt",
    "build_dry_run_task",
    "build_pending_task",
    "default_registry",
]
