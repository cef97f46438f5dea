"""What each video generation model can do.

Single source of truth for clip durations, extension support and accepted
aspect ratios. The renderers and the manifest builder both consult it before
anything is sent to a provider.
"""

import math
from dataclasses import dataclass, field, replace

SORA_ALLOWED_SECONDS = (4, 8, 12)
SORA_ALLOWED_SIZES = ("720x1280", "1280x720", "1024x1792", "1792x1024")
VEO_ALLOWED_DURATIONS = (4, 6, 8)
VEO_ALLOWED_ASPECT_RATIOS = ("16:9", "9:16")
VEO_ALLOWED_RESOLUTIONS = ("720p", "1080p")


@dataclass(frozen=True)
class VideoModelCapabilities:
    """Capabilities of one provider/model pair."""

    provider: str
    model_id: str
    supported_durations: tuple[int, ...]
    max_single_shot_seconds: int
    supports_extend: bool
    max_total_seconds: int
    supported_aspect_ratios: tuple[str, ...]
    supported_resolutions: tuple[str, ...]
    extend_step_seconds: int | None = None
    # Unknown providers get a conservative guess that callers must not enforce.
    is_fallback: bool = field(default=False, compare=False)

    @property
    def can_extend(self) -> bool:
        return self.supports_extend and bool(self.extend_step_seconds)

    def supports_aspect_ratio(self, aspect_ratio: str) -> bool:
        return aspect_ratio in self.supported_aspect_ratios


SORA_CAPABILITIES = VideoModelCapabilities(
    provider="sora",
    model_id="sora-2-pro",
    supported_durations=SORA_ALLOWED_SECONDS,
    max_single_shot_seconds=12,
    supports_extend=False,
    max_total_seconds=12,
    supported_aspect_ratios=("9:16", "16:9"),
    supported_resolutions=SORA_ALLOWED_SIZES,
)

VEO_CAPABILITIES = VideoModelCapabilities(
    provider="veo",
    model_id="veo-3.1-generate-preview",
    supported_durations=VEO_ALLOWED_DURATIONS,
    max_single_shot_seconds=8,
    supports_extend=True,
    extend_step_seconds=7,
    max_total_seconds=140,
    supported_aspect_ratios=VEO_ALLOWED_ASPECT_RATIOS,
    supported_resolutions=VEO_ALLOWED_RESOLUTIONS,
)

CAPABILITIES_BY_PROVIDER: dict[str, VideoModelCapabilities] = {
    "sora": SORA_CAPABILITIES,
    "veo": VEO_CAPABILITIES,
}


def capabilities(provider: str, model_id: str | None = None) -> VideoModelCapabilities:
    """Look up the capabilities for a provider.

    Args:
        provider: Provider id ("sora", "veo", ...)
        model_id: Optional model override

    Returns:
        The provider's capabilities, or a single 8s vertical clip with no
        extension for providers we know nothing about
    """
    base = CAPABILITIES_BY_PROVIDER.get(provider)
    if base is None:
        return VideoModelCapabilities(
            provider=provider,
            model_id=model_id or "unknown",
            supported_durations=(8,),
            max_single_shot_seconds=8,
            supports_extend=False,
            max_total_seconds=8,
            supported_aspect_ratios=("9:16",),
            supported_resolutions=("1080x1920",),
            is_fallback=True,
        )
    return replace(base, model_id=model_id or base.model_id)


def planned_extends(
    caps: VideoModelCapabilities, target_seconds: float, first_clip_seconds: float
) -> int:
    """Number of extend hops needed to reach ``target_seconds``."""
    if not caps.can_extend:
        return 0
    remaining = max(0.0, target_seconds - first_clip_seconds)
    return math.ceil(remaining / caps.extend_step_seconds)


def format_capabilities_for_prompt(caps: VideoModelCapabilities) -> str:
    durations = ", ".join(str(d) for d in caps.supported_durations) or str(
        caps.max_single_shot_seconds
    )
    lines = [
        f"Video Provider: {caps.provider}",
        f"Model: {caps.model_id}",
        f"Maximum single clip duration: {caps.max_single_shot_seconds} seconds",
        f"Supported durations: {durations} seconds",
        f"Can extend clips: {'Yes' if caps.supports_extend else 'No'}",
    ]
    if caps.can_extend:
        lines.append(f"Extension step: {caps.extend_step_seconds} seconds per extension")
        lines.append(f"Maximum total duration: {caps.max_total_seconds} seconds")
    lines.append(f"Supported aspect ratios: {', '.join(caps.supported_aspect_ratios)}")
    return "\n".join(lines)
