"""Duration and render planning.

Turns a channel's duration window and a model's capabilities into a
deterministic RenderPlan: how long the first clip is, how many extend hops
follow it and what total length to expect.
"""

import math
from dataclasses import dataclass

from job_reels.domain.enums import RenderStrategy
from job_reels.domain.models import RenderPlan, RenderSegment, VideoSpec
from job_reels.video.capabilities import VideoModelCapabilities

BASE_SECONDS = 8
EXTEND_SECONDS = 7
MIN_CLIP_SECONDS = 4


@dataclass
class DurationPlan:
    """Target length for a channel, expressed in base clip + extend hops."""

    target_seconds: float
    extends_needed: int
    base_seconds: int = BASE_SECONDS
    extend_seconds: int = EXTEND_SECONDS


def snap_to_supported_duration(
    seconds: float,
    supported: tuple[int, ...] | list[int] | None,
    max_seconds: float = 60,
) -> int:
    """Snap a duration to the closest allowed value.

    The input is clamped to [4, max_seconds] first. Ties resolve to the
    earlier entry in ``supported``.
    """
    clamped = max(MIN_CLIP_SECONDS, min(seconds, max_seconds))
    if not supported:
        return round(clamped)
    closest = supported[0]
    for candidate in supported:
        if abs(clamped - candidate) < abs(clamped - closest):
            closest = candidate
    return closest


def compute_duration_plan(
    spec: VideoSpec,
    min_seconds: float | None = None,
    max_seconds: float | None = None,
) -> DurationPlan:
    minimum = min_seconds if min_seconds is not None else spec.duration.min_seconds
    maximum = max_seconds if max_seconds is not None else spec.duration.max_seconds

    extends_needed = 0
    if minimum > BASE_SECONDS:
        extends_needed = math.ceil((minimum - BASE_SECONDS) / EXTEND_SECONDS)
    planned = BASE_SECONDS + extends_needed * EXTEND_SECONDS
    while planned > maximum and extends_needed > 0:
        extends_needed -= 1
        planned = BASE_SECONDS + extends_needed * EXTEND_SECONDS
    planned = min(max(planned, minimum), maximum)
    return DurationPlan(target_seconds=planned, extends_needed=extends_needed)


def plan_render(
    target_seconds: float | None,
    caps: VideoModelCapabilities,
    provider: str,
    model_id: str,
    aspect_ratio: str = "9:16",
    resolution: str | None = None,
) -> RenderPlan:
    """Plan how to reach ``target_seconds`` with the given model.

    Strategies:
    - single_shot: the target fits in one clip
    - multi_extend: the model can extend, so a base clip is followed by hops
    - fallback_shorter: the target is too long and the model cannot extend

    Args:
        target_seconds: Desired length (defaults to 8 when missing)
        caps: Capabilities of the model that will render
        provider: Provider id recorded in the plan
        model_id: Model id recorded in the plan
        aspect_ratio: Target aspect ratio
        resolution: Target resolution, if any

    Returns:
        RenderPlan with segments and final planned seconds
    """
    desired = target_seconds if target_seconds is not None else BASE_SECONDS
    clamped = min(max(desired, MIN_CLIP_SECONDS), caps.max_total_seconds)
    single_cap = caps.max_single_shot_seconds

    def _plan(strategy: RenderStrategy, segments: list[RenderSegment]) -> RenderPlan:
        return RenderPlan(
            provider=provider,
            model_id=model_id,
            strategy=strategy,
            segments=segments,
            final_planned_seconds=sum(segment.seconds for segment in segments),
            aspect_ratio=aspect_ratio,
            resolution=resolution,
        )

    if clamped <= single_cap:
        snapped = snap_to_supported_duration(clamped, caps.supported_durations, single_cap)
        return _plan(RenderStrategy.SINGLE_SHOT, [RenderSegment(kind="initial", seconds=snapped)])

    base = snap_to_supported_duration(single_cap, caps.supported_durations, single_cap)

    if caps.can_extend:
        step = caps.extend_step_seconds or 0
        extends_needed = math.ceil((clamped - base) / step)
        while base + extends_needed * step > caps.max_total_seconds and extends_needed > 0:
            extends_needed -= 1
        if extends_needed == 0:
            return _plan(RenderStrategy.SINGLE_SHOT, [RenderSegment(kind="initial", seconds=base)])
        segments = [RenderSegment(kind="initial", seconds=base)]
        segments.extend(RenderSegment(kind="extend", seconds=step) for _ in range(extends_needed))
        return _plan(RenderStrategy.MULTI_EXTEND, segments)

    return _plan(RenderStrategy.FALLBACK_SHORTER, [RenderSegment(kind="initial", seconds=base)])
