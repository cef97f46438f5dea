"""Domain enumerations."""

from enum import StrEnum


class VideoStatus(StrEnum):
    """Status of a video library item."""

    PLANNED = "planned"
    GENERATING = "generating"
    EXTENDING = "extending"
    READY = "ready"
    APPROVED = "approved"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class RenderMode(StrEnum):
    """What a render attempt produced."""

    FILE = "file"  # Playable video file
    DRY_RUN = "dry_run"  # Storyboard bundle only


class RenderStatus(StrEnum):
    """Status of a single render attempt."""

    PENDING = "pending"
    RENDERING = "rendering"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self in (RenderStatus.COMPLETED, RenderStatus.FAILED, RenderStatus.SKIPPED)


class VeoStatus(StrEnum):
    """Progress of a long-running Veo operation."""

    NONE = "none"
    PREDICTING = "predicting"
    FETCHING = "fetching"
    READY = "ready"
    FAILED = "failed"
    RATE_LIMITED = "rate_limited"


class PublishStatus(StrEnum):
    """Status of a publish hand-off."""

    IDLE = "idle"
    READY = "ready"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    FAILED = "failed"


class RenderTier(StrEnum):
    """Quality/cost level for generation."""

    FAST = "fast"
    STANDARD = "standard"


class GeneratorMode(StrEnum):
    """How a manifest's content was produced."""

    LLM = "llm"
    FALLBACK = "fallback"


class ShotPhase(StrEnum):
    """Narrative phase of a storyboard shot."""

    HOOK = "HOOK"
    PROOF = "PROOF"
    OFFER = "OFFER"
    ACTION = "ACTION"
    BRIDGE = "BRIDGE"


class QAStatus(StrEnum):
    """Result of a manifest QA checklist item."""

    PASS = "pass"
    FAIL = "fail"
    ATTENTION = "attention"


class ComplianceSeverity(StrEnum):
    """Severity of a compliance flag."""

    INFO = "info"
    WARNING = "warning"
    BLOCKING = "blocking"


class RenderStrategy(StrEnum):
    """How a target duration is reached with a given provider."""

    SINGLE_SHOT = "single_shot"
    MULTI_EXTEND = "multi_extend"
    FALLBACK_SHORTER = "fallback_shorter"


class BulkAction(StrEnum):
    """Actions accepted by bulk updates."""

    APPROVE = "approve"
    ARCHIVE = "archive"
