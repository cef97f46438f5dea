"""Deterministic manifest content used when the content generator fails."""

from typing import Any

from job_reels.domain.enums import ShotPhase
from job_reels.domain.models import (
    CAPTION_MAX_CHARS,
    Caption,
    JobSnapshot,
    StoryboardShot,
    Thumbnail,
    VideoSpec,
)
from job_reels.video.utils import normalise_shots, slugify

CAPTION_MIN_WORDS = 20
CAPTION_MAX_WORDS = 30
CAPTION_FILLER = ("Apply with one tap.", "Interviews moving fast.")
FALLBACK_HASHTAG_COUNT = 3


def _pick_benefit(benefits: list[str]) -> str:
    return benefits[0] if benefits else "flexible schedules"


def _location_text(job_snapshot: JobSnapshot) -> str | None:
    if job_snapshot.geo and job_snapshot.geo != "global":
        return job_snapshot.geo
    return None


def _shot_template(job_snapshot: JobSnapshot, spec: VideoSpec) -> list[dict[str, Any]]:
    location = _location_text(job_snapshot) or "your city"
    pay = job_snapshot.pay_range or "Competitive pay"
    benefit = _pick_benefit(job_snapshot.benefits)
    company = job_snapshot.company

    return [
        {
            "phase": ShotPhase.HOOK,
            "visual": "Fast cut of workplace/b-roll",
            "on_screen_text": f"{job_snapshot.title.upper()} · {location.upper()}",
            "voice_over": f"Imagine doing your best work as {job_snapshot.title} in {location}.",
            "b_roll": "Exterior + product detail",
        },
        {
            "phase": ShotPhase.PROOF,
            "visual": "Show real team moments or product impact",
            "on_screen_text": f"Impact · {company or 'Great team'}",
            "voice_over": f"{company or 'Our team'} powers meaningful work every day.",
            "b_roll": "Team collaboration",
        },
        {
            "phase": ShotPhase.OFFER,
            "visual": "Overlay benefits + comp",
            "on_screen_text": f"{pay} | {benefit}",
            "voice_over": f"Earn {pay} and enjoy {benefit}.",
            "b_roll": "Benefits icons",
        },
        {
            "phase": ShotPhase.ACTION,
            "visual": "Clear CTA card",
            "on_screen_text": "Apply in under a minute",
            "voice_over": f"Ready to apply? Tap and complete the {spec.placement_name} form now.",
            "b_roll": "CTA end card",
        },
    ]


def ensure_word_count(
    text: str, min_words: int = CAPTION_MIN_WORDS, max_words: int = CAPTION_MAX_WORDS
) -> str:
    """Pad short text with filler sentences and cut long text at ``max_words``."""
    words = text.split()
    if min_words <= len(words) <= max_words:
        return text.strip()
    filler = list(CAPTION_FILLER)
    while len(words) < min_words and filler:
        words.extend(filler.pop(0).split())
    return " ".join(words[:max_words])


def build_fallback_storyboard(job_snapshot: JobSnapshot, spec: VideoSpec) -> list[StoryboardShot]:
    return normalise_shots(_shot_template(job_snapshot, spec), spec)


def build_fallback_caption(job_snapshot: JobSnapshot, spec: VideoSpec) -> Caption:
    company = f"{job_snapshot.company} " if job_snapshot.company else "Our team "
    location = _location_text(job_snapshot)
    location_text = f" in {location}" if location else ""
    benefit = _pick_benefit(job_snapshot.benefits)
    pay_text = f" Pay: {job_snapshot.pay_range}." if job_snapshot.pay_range else ""
    base = (
        f"{company}is hiring a {job_snapshot.title}{location_text}. "
        f"Own real impact, enjoy {benefit}, and grow fast.{pay_text} "
        "Tap to apply in under a minute."
    )
    hashtags = (spec.default_hashtags or ["nowhiring"])[:FALLBACK_HASHTAG_COUNT]
    return Caption(text=ensure_word_count(base)[:CAPTION_MAX_CHARS], hashtags=hashtags)


def build_fallback_thumbnail(job_snapshot: JobSnapshot) -> Thumbnail:
    overlay = f"{job_snapshot.title} · {slugify(job_snapshot.geo or 'global')}".replace("-", " ")
    return Thumbnail(
        description="High-contrast frame showing teammate smiling with overlay text",
        overlay_text=overlay,
    )
