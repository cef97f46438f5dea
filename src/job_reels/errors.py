"""Error taxonomy for the video asset pipeline.

Validation errors are caller mistakes and are never retried. Provider errors
come from a renderer or publisher collaborator and map to a gateway-style
failure. Content generation problems never leave the manifest builder; they
degrade to the deterministic fallback manifest.
"""

from typing import Any


class VideoPipelineError(Exception):
    """Base class for pipeline errors."""

    code = "VIDEO_PIPELINE_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logs and API-style error bodies."""
        return {"code": self.code, "message": self.message, "context": self.context}


class VideoValidationError(VideoPipelineError):
    """Bad channel, manifest or request input. Rejected before any provider call."""

    code = "VALIDATION_ERROR"
    http_status = 400


class InvalidTransitionError(VideoValidationError):
    """A status change that the lifecycle table does not allow."""

    code = "INVALID_TRANSITION"
    http_status = 409

    def __init__(self, current: str, target: str, *, action: str | None = None) -> None:
        message = f"Cannot move video item from '{current}' to '{target}'"
        if action:
            message = f"{message} ({action})"
        super().__init__(
            message,
            context={"current": current, "target": target, "action": action},
        )
        self.current = current
        self.target = target


class ProviderError(VideoPipelineError):
    """A render or publish provider failed. Retryable by the user."""

    code = "PROVIDER_ERROR"
    http_status = 502


class ContentGenerationError(VideoPipelineError):
    """The content generator failed or returned something unusable."""

    code = "CONTENT_GENERATION_FAILED"
