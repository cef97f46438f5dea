"""Domain models for the video library.

Everything here is persisted as a JSON document, so the models are pydantic
rather than plain dataclasses: parsing a stored document re-validates the
manifest history invariants and normalises legacy status values.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from job_reels.domain.enums import (
    ComplianceSeverity,
    GeneratorMode,
    PublishStatus,
    QAStatus,
    RenderMode,
    RenderStatus,
    RenderStrategy,
    RenderTier,
    ShotPhase,
    VeoStatus,
    VideoStatus,
)

CAPTION_MAX_CHARS = 400
CAPTION_MAX_HASHTAGS = 8
MIN_STORYBOARD_SHOTS = 4

# Older documents used these names before the library statuses settled.
LEGACY_STATUS_MAP = {
    "rendered": VideoStatus.READY,
    "rendering": VideoStatus.GENERATING,
    "draft": VideoStatus.PLANNED,
}


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid4())


# =============================================================================
# Inputs
# =============================================================================


class JobPosting(BaseModel):
    """The job posting a video is made for (owned by the jobs service)."""

    id: str
    owner_user_id: str | None = None
    role_title: str | None = None
    company_name: str | None = None
    location: str | None = None
    work_model: str | None = None
    salary: str | None = None
    salary_period: str | None = None
    benefits: list[str] = Field(default_factory=list)
    industry: str | None = None
    job_description: str | None = None


class JobSnapshot(BaseModel):
    """Job fields denormalised into a manifest at build time."""

    job_id: str
    title: str
    company: str | None = None
    geo: str = "global"
    location_policy: str | None = None
    pay_range: str | None = None
    benefits: list[str] = Field(default_factory=list)
    role_family: str | None = None
    description: str | None = None


# =============================================================================
# Channel placement rules
# =============================================================================


class VideoDuration(BaseModel):
    min_seconds: float = Field(default=3, ge=1)
    max_seconds: float = Field(default=60, ge=3)
    recommended_seconds: float | None = None


class SafeZones(BaseModel):
    top: int = 250
    bottom: int = 250


class EndCard(BaseModel):
    required: bool = False
    recommended: bool = True
    guidance: str | None = None


class VideoSpec(BaseModel):
    """Placement rules for one video channel."""

    channel_id: str
    placement_id: str
    placement_name: str
    availability: str = "global"
    medium: str = "short_video"
    aspect_ratio: str = "9:16"
    resolution: str = "1080x1920"
    duration: VideoDuration
    captions_required: bool = True
    safe_zones: SafeZones = Field(default_factory=SafeZones)
    end_card: EndCard = Field(default_factory=EndCard)
    caption_notes: list[str] = Field(default_factory=list)
    compliance_notes: list[str] = Field(default_factory=list)
    default_hashtags: list[str] = Field(default_factory=list)
    default_call_to_action: str = "Apply now"
    notes: list[str] = Field(default_factory=list)
    display_text_strategy: str = "supers"
    preferred_tier: RenderTier = RenderTier.FAST


# =============================================================================
# Manifest
# =============================================================================


class StoryboardShot(BaseModel):
    id: str
    phase: ShotPhase
    order: int = Field(ge=1)
    start_seconds: float = Field(ge=0)
    duration_seconds: float = Field(gt=0)
    visual: str
    on_screen_text: str
    voice_over: str
    b_roll: str | None = None
    callout: str | None = None


class Caption(BaseModel):
    text: str = Field(max_length=CAPTION_MAX_CHARS)
    hashtags: list[str] = Field(default_factory=list, max_length=CAPTION_MAX_HASHTAGS)


class ComplianceFlag(BaseModel):
    id: str
    label: str
    severity: ComplianceSeverity = ComplianceSeverity.INFO
    details: str | None = None


class QAItem(BaseModel):
    id: str
    label: str
    status: QAStatus = QAStatus.PASS
    details: str | None = None


class Compliance(BaseModel):
    flags: list[ComplianceFlag] = Field(default_factory=list)
    qa_checklist: list[QAItem] = Field(default_factory=list)


class Tracking(BaseModel):
    utm_source: str
    utm_medium: str = "video"
    utm_campaign: str = "jobs"
    utm_content: str
    short_link: str | None = None

    def as_query_string(self) -> str:
        return (
            f"utm_source={self.utm_source}&utm_medium={self.utm_medium}"
            f"&utm_campaign={self.utm_campaign}&utm_content={self.utm_content}"
        )


class Thumbnail(BaseModel):
    description: str
    overlay_text: str | None = None


class RenderSegment(BaseModel):
    kind: str  # "initial" or "extend"
    seconds: float


class RenderPlan(BaseModel):
    """Deterministic execution plan for a render."""

    provider: str
    model_id: str
    strategy: RenderStrategy
    segments: list[RenderSegment]
    final_planned_seconds: float
    aspect_ratio: str = "9:16"
    resolution: str | None = None

    @property
    def extend_count(self) -> int:
        return sum(1 for segment in self.segments if segment.kind == "extend")


class GeneratorInfo(BaseModel):
    mode: GeneratorMode = GeneratorMode.LLM
    provider: str | None = None
    model: str | None = None
    prompt_version: str = "2024.12-video"
    warnings: list[str] = Field(default_factory=list)
    target_duration_seconds: float | None = None
    planned_extends: int = Field(default=0, ge=0)
    render_plan: RenderPlan | None = None


class VideoAssetManifest(BaseModel):
    """Immutable snapshot of everything needed to render one placement."""

    model_config = ConfigDict(frozen=True)

    manifest_id: str
    version: int = Field(ge=1)
    created_at: datetime
    channel_id: str
    channel_name: str
    placement_name: str
    medium: str = "short_video"
    spec: VideoSpec
    job: JobSnapshot
    storyboard: list[StoryboardShot] = Field(min_length=MIN_STORYBOARD_SHOTS)
    caption: Caption
    thumbnail: Thumbnail
    compliance: Compliance
    tracking: Tracking
    generator: GeneratorInfo

    @property
    def provider(self) -> str | None:
        plan = self.generator.render_plan
        return plan.provider if plan else None

    @property
    def storyboard_seconds(self) -> float:
        return sum(shot.duration_seconds for shot in self.storyboard)


# =============================================================================
# Render / Veo / Publish state
# =============================================================================


class GenerationMetrics(BaseModel):
    seconds_generated: float = Field(default=0, ge=0)
    extends_requested: int = Field(default=0, ge=0)
    extends_completed: int = Field(default=0, ge=0)
    model: str | None = None
    tier: RenderTier | None = None
    cost_estimate_usd: float | None = Field(default=None, ge=0)
    synth_id_watermark: bool = True


class ExtendHop(BaseModel):
    hop: int = Field(ge=0)
    clip_id: str | None = None


class Synthesis(BaseModel):
    clip_id: str | None = None
    source_uri: str | None = None
    extends: list[ExtendHop] = Field(default_factory=list)


class DryRunBundle(BaseModel):
    storyboard: list[StoryboardShot] = Field(default_factory=list)
    caption: Caption | None = None
    thumbnail: Thumbnail | None = None
    checklist: list[QAItem] = Field(default_factory=list)


class RenderQA(BaseModel):
    notes: list[str] = Field(default_factory=list)
    flags: list[str] = Field(default_factory=list)


class RenderResult(BaseModel):
    video_url: str | None = None
    poster_url: str | None = None
    caption_file_url: str | None = None
    synthesis: Synthesis | None = None
    dry_run_bundle: DryRunBundle | None = None
    qa: RenderQA | None = None


class TaskError(BaseModel):
    reason: str
    message: str | None = None


class RenderTask(BaseModel):
    """One attempt to turn a manifest into a playable asset."""

    id: str = Field(default_factory=new_id)
    manifest_version: int = Field(ge=1)
    mode: RenderMode = RenderMode.DRY_RUN
    status: RenderStatus = RenderStatus.PENDING
    renderer: str | None = None
    requested_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    metrics: GenerationMetrics | None = None
    result: RenderResult | None = None
    error: TaskError | None = None

    @property
    def has_video_file(self) -> bool:
        return (
            self.mode == RenderMode.FILE
            and self.status == RenderStatus.COMPLETED
            and self.result is not None
            and bool(self.result.video_url)
        )


class VeoState(BaseModel):
    """Tracking record for a long-running Veo operation."""

    operation_name: str | None = None
    status: VeoStatus = VeoStatus.NONE
    attempts: int = Field(default=0, ge=0)
    last_fetch_at: datetime | None = None
    hash: str | None = None

    @classmethod
    def empty(cls) -> "VeoState":
        return cls()


class PublishTask(BaseModel):
    id: str = Field(default_factory=new_id)
    channel_id: str
    adapter: str
    status: PublishStatus = PublishStatus.IDLE
    payload: dict[str, Any] = Field(default_factory=dict)
    response: dict[str, Any] | None = None
    error: TaskError | None = None
    requested_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class AuditEntry(BaseModel):
    id: str = Field(default_factory=new_id)
    type: str
    message: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utcnow)


class Analytics(BaseModel):
    """Attribution counters, written by external collaborators only."""

    impressions: int = 0
    clicks: int = 0
    applies: int = 0


# =============================================================================
# Aggregate root
# =============================================================================


class VideoLibraryItem(BaseModel):
    """A video asset for one job on one channel, with its full history."""

    id: str
    job_id: str
    owner_user_id: str
    channel_id: str
    channel_name: str
    placement_name: str
    status: VideoStatus = VideoStatus.PLANNED
    manifest_version: int = Field(ge=1)
    manifests: list[VideoAssetManifest]
    active_manifest: VideoAssetManifest
    job_snapshot: JobSnapshot
    veo: VeoState = Field(default_factory=VeoState)
    render_task: RenderTask | None = None
    publish_task: PublishTask | None = None
    analytics: Analytics = Field(default_factory=Analytics)
    audit_log: list[AuditEntry] = Field(default_factory=list)
    next_poll_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("status", mode="before")
    @classmethod
    def _normalise_status(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.lower()
            return LEGACY_STATUS_MAP.get(lowered, lowered)
        return value

    @field_validator("veo", mode="before")
    @classmethod
    def _default_veo(cls, value: Any) -> Any:
        return VeoState() if value is None else value

    @model_validator(mode="after")
    def _check_manifest_history(self) -> "VideoLibraryItem":
        if len(self.manifests) != self.manifest_version:
            raise ValueError(
                f"manifest history has {len(self.manifests)} entries "
                f"but manifest_version is {self.manifest_version}"
            )
        for index, manifest in enumerate(self.manifests, start=1):
            if manifest.version != index:
                raise ValueError(f"manifest at position {index} has version {manifest.version}")
        if self.active_manifest != self.manifests[-1]:
            raise ValueError("active_manifest must be the latest manifest")
        return self

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "VideoLibraryItem":
        return cls.model_validate(document)


class ListFilters(BaseModel):
    """Filters accepted by the list operation."""

    status: VideoStatus | None = None
    channel_id: str | None = None
    geo: str | None = None
    role_family: str | None = None

    def matches(self, item: VideoLibraryItem) -> bool:
        if self.status and item.status != self.status:
            return False
        if self.channel_id and item.channel_id != self.channel_id:
            return False
        snapshot = item.job_snapshot
        if self.geo and snapshot.geo and self.geo.lower() not in snapshot.geo.lower():
            return False
        if self.role_family and snapshot.role_family and snapshot.role_family != self.role_family:
            return False
        return True
