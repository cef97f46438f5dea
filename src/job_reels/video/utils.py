"""Helpers shared by the manifest builder and the fallbacks."""

import re
from typing import Any

from pydantic import ValidationError

from job_reels.domain.enums import ComplianceSeverity, QAStatus, ShotPhase
from job_reels.domain.models import (
    Caption,
    ComplianceFlag,
    JobPosting,
    JobSnapshot,
    QAItem,
    StoryboardShot,
    Tracking,
    VideoSpec,
)
from job_reels.logging import get_logger

logger = get_logger(__name__)

MAX_BENEFITS = 8
MAX_DESCRIPTION_CHARS = 600
MIN_SHOT_SECONDS = 2.0
CTA_PATTERN = re.compile(r"apply|join|tap|swipe|learn|start", re.IGNORECASE)


def slugify(value: Any, max_length: int = 60) -> str:
    text = str(value or "").strip().lower()
    slug = re.sub(r"[^a-z0-9]+", "-", text).strip("-")
    return slug[:max_length] or "role"


def humanize_work_model(work_model: str | None) -> str | None:
    if not work_model:
        return None
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), work_model.replace("_", " "))


def _clean(value: str | None) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def derive_job_snapshot(job: JobPosting) -> JobSnapshot:
    """Denormalise the job fields a manifest needs."""
    salary = _clean(job.salary)
    period = _clean(job.salary_period)
    pay_range = f"{salary}/{period}" if salary and period else salary
    description = _clean(job.job_description)

    return JobSnapshot(
        job_id=job.id or "unknown",
        title=_clean(job.role_title) or "Open role",
        company=_clean(job.company_name),
        geo=_clean(job.location) or "global",
        location_policy=humanize_work_model(job.work_model),
        pay_range=pay_range,
        benefits=[b.strip() for b in job.benefits if isinstance(b, str) and b.strip()][
            :MAX_BENEFITS
        ],
        role_family=job.industry,
        description=description[:MAX_DESCRIPTION_CHARS] if description else None,
    )


def storyboard_duration(shots: list[StoryboardShot]) -> float:
    return sum(shot.duration_seconds for shot in shots)


def _coerce_phase(value: Any) -> ShotPhase:
    try:
        return ShotPhase(str(value).upper())
    except ValueError:
        return ShotPhase.BRIDGE


def normalise_shots(shots: list[dict[str, Any]], spec: VideoSpec) -> list[StoryboardShot]:
    """Fit raw shots into the channel's duration window.

    Each shot is clamped to [2s, max], ordered and given a start offset. If
    the total runs past the channel maximum every shot is scaled down; if it
    falls short of the minimum the last shot absorbs the difference. Shots
    that cannot be parsed are dropped.

    Args:
        shots: Raw shot payloads (LLM output or fallback template)
        spec: Channel placement rules

    Returns:
        Validated, ordered storyboard shots
    """
    max_duration = spec.duration.max_seconds
    min_duration = spec.duration.min_seconds
    fallback_duration = max(min_duration / max(len(shots), 1), MIN_SHOT_SECONDS)

    normalised: list[StoryboardShot] = []
    running = 0.0
    for raw in shots:
        if not isinstance(raw, dict):
            continue
        try:
            requested = float(raw.get("duration_seconds") or 0)
        except (TypeError, ValueError):
            requested = 0.0
        duration = max(
            MIN_SHOT_SECONDS,
            min(max_duration, requested if requested > 0 else fallback_duration),
        )
        order = len(normalised) + 1
        try:
            shot = StoryboardShot(
                id=raw.get("id") or f"shot-{order}",
                phase=_coerce_phase(raw.get("phase")),
                order=order,
                start_seconds=running,
                duration_seconds=duration,
                visual=raw["visual"],
                on_screen_text=raw.get("on_screen_text") or "",
                voice_over=raw.get("voice_over") or "",
                b_roll=raw.get("b_roll"),
                callout=raw.get("callout"),
            )
        except (KeyError, ValidationError) as e:
            logger.debug("storyboard_shot_dropped", order=order, error=str(e))
            continue
        normalised.append(shot)
        running += duration

    if running > max_duration:
        scale = max_duration / running
        running = 0.0
        rescaled = []
        for shot in normalised:
            duration = round(shot.duration_seconds * scale, 2)
            rescaled.append(
                shot.model_copy(
                    update={"duration_seconds": duration, "start_seconds": round(running, 2)}
                )
            )
            running += duration
        normalised = rescaled
    elif running < min_duration and normalised:
        last = normalised[-1]
        normalised[-1] = last.model_copy(
            update={"duration_seconds": round(last.duration_seconds + min_duration - running, 2)}
        )

    return normalised


def build_qa_checklist(
    spec: VideoSpec,
    storyboard: list[StoryboardShot],
    caption: Caption,
    job_snapshot: JobSnapshot,
) -> list[QAItem]:
    total = storyboard_duration(storyboard)
    minimum = spec.duration.min_seconds
    maximum = spec.duration.max_seconds
    duration_ok = minimum <= total <= maximum

    caption_ok = bool(caption.text and caption.text.strip())
    has_cta = any(
        CTA_PATTERN.search(f"{shot.on_screen_text} {shot.voice_over}") for shot in storyboard
    )
    pay_ok = bool(job_snapshot.pay_range)
    location_ok = bool(job_snapshot.geo and job_snapshot.geo != "global")

    return [
        QAItem(
            id="duration",
            label=f"Duration {minimum:g}-{maximum:g}s",
            status=QAStatus.PASS if duration_ok else QAStatus.ATTENTION,
            details=None if duration_ok else f"Current duration {total:.1f}s",
        ),
        QAItem(id="aspect_ratio", label=f"Aspect {spec.aspect_ratio}", status=QAStatus.PASS),
        QAItem(
            id="captions",
            label="Captions ready",
            status=QAStatus.PASS if caption_ok else QAStatus.FAIL,
            details=None if caption_ok else "Add captions to meet accessibility requirements",
        ),
        QAItem(
            id="cta",
            label="CTA present",
            status=QAStatus.PASS if has_cta else QAStatus.FAIL,
            details=None if has_cta else "Add a CTA in the final shot or caption",
        ),
        QAItem(
            id="pay_location",
            label="Pay + location disclosed",
            status=QAStatus.PASS if pay_ok and location_ok else QAStatus.ATTENTION,
            details=None if pay_ok and location_ok else "Add missing pay or city per policy",
        ),
    ]


def build_compliance_flags(
    base_flags: list[Any],
    job_snapshot: JobSnapshot,
    spec: VideoSpec,
) -> list[ComplianceFlag]:
    """Merge generator flags with pay/location and channel notes, first id wins."""
    flags: list[ComplianceFlag] = []
    for raw in base_flags:
        try:
            flags.append(ComplianceFlag.model_validate(raw))
        except ValidationError:
            logger.debug("compliance_flag_dropped", flag=raw)

    if not job_snapshot.pay_range:
        flags.append(
            ComplianceFlag(
                id="missing_pay",
                label="Add pay disclosure",
                severity=ComplianceSeverity.BLOCKING,
                details="Channel rules recommend sharing pay for employment transparency",
            )
        )
    if not job_snapshot.geo or job_snapshot.geo == "global":
        flags.append(
            ComplianceFlag(
                id="missing_location",
                label="Add city or territory",
                severity=ComplianceSeverity.WARNING,
                details="Location is required by most local advertising policies",
            )
        )
    for index, note in enumerate(spec.compliance_notes):
        if note.strip():
            flags.append(
                ComplianceFlag(
                    id=f"spec_{index}", label=note.strip(), severity=ComplianceSeverity.INFO
                )
            )

    seen: set[str] = set()
    unique = []
    for flag in flags:
        if flag.id in seen:
            continue
        seen.add(flag.id)
        unique.append(flag)
    return unique


def build_tracking(channel_id: str, job_snapshot: JobSnapshot) -> Tracking:
    return Tracking(
        utm_source=channel_id,
        utm_medium="video",
        utm_campaign="jobs",
        utm_content=slugify(job_snapshot.title),
    )


def job_posting_from_snapshot(
    snapshot: JobSnapshot, owner_user_id: str | None = None
) -> JobPosting:
    """Rebuild the job input a snapshot was derived from (salary kept pre-formatted)."""
    return JobPosting(
        id=snapshot.job_id,
        owner_user_id=owner_user_id,
        role_title=snapshot.title,
        company_name=snapshot.company,
        location=snapshot.geo,
        work_model=snapshot.location_policy,
        salary=snapshot.pay_range,
        benefits=list(snapshot.benefits),
        industry=snapshot.role_family,
        job_description=snapshot.description,
    )
