"""Base interface for manifest content generators."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from job_reels.domain.models import JobSnapshot, RenderPlan, VideoSpec


@dataclass
class GenerationContext:
    """What the generator needs to know beyond the job and the channel spec."""

    channel_id: str
    channel_name: str
    recommended_medium: str | None = None
    target_seconds: float | None = None
    render_plan: RenderPlan | None = None
    capabilities_text: str | None = None


@dataclass
class ContentDraft:
    """Unvalidated storyboard/caption/compliance payload from a generator.

    The manifest builder validates the draft and throws it away as a whole
    if any part is unusable.
    """

    storyboard: list[Any] = field(default_factory=list)
    caption: Any = None
    thumbnail: Any = None
    compliance_flags: list[Any] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    provider: str | None = None
    model: str | None = None


class ContentGenerator(ABC):
    """Abstract base class for manifest content generators.

    Implementations:
    - LLMContentGenerator: Asks an LLM provider for JSON content
    - StubContentGenerator: Returns fixed content for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Generator name identifier."""
        ...

    @abstractmethod
    async def generate(
        self,
        job_snapshot: JobSnapshot,
        spec: VideoSpec,
        context: GenerationContext,
    ) -> ContentDraft:
        """Generate storyboard, caption, thumbnail and compliance flags.

        Args:
            job_snapshot: Denormalised job fields
            spec: Placement rules for the target channel
            context: Channel and render plan details

        Returns:
            ContentDraft (may be malformed; callers must validate)

        Raises:
            ContentGenerationError: If the generator cannot produce a draft
        """
        ...

    async def health_check(self) -> bool:
        return True
