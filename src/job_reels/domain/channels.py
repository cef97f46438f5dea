"""Channel catalog and per-channel video placement rules."""

from job_reels.domain.enums import RenderTier
from job_reels.domain.models import EndCard, SafeZones, VideoDuration, VideoSpec

# Channel ids known to the distribution layer. Only some of them carry a
# dedicated video placement; the rest fall back to the generic short spec.
CHANNEL_NAMES: dict[str, str] = {
    "META_FB_IG_LEAD": "Facebook/Instagram Lead Ads",
    "TIKTOK_LEAD": "TikTok Lead Generation",
    "YOUTUBE_LEAD": "YouTube + Lead Form",
    "SNAPCHAT_LEADS": "Snapchat Leads",
    "X_HIRING": "X (Twitter) Hiring",
    "LINKEDIN_JOBS": "LinkedIn Jobs/Ads",
    "INDEED_SPONSORED": "Indeed (Sponsored Jobs)",
    "GOOGLE_FOR_JOBS": "Google for Jobs (via schema)",
    "REDDIT_ADS": "Reddit Ads (to niche communities)",
    "THREADS_ADS": "Threads (via Meta placements)",
}

DEFAULT_VIDEO_SPEC = VideoSpec(
    channel_id="TIKTOK_LEAD",
    placement_id="GENERIC_SHORT",
    placement_name="Short video",
    duration=VideoDuration(min_seconds=10, max_seconds=45, recommended_seconds=30),
    safe_zones=SafeZones(top=220, bottom=220),
    end_card=EndCard(guidance="Reserve last 3s for CTA with logo"),
    caption_notes=["Keep under 2 lines on-screen"],
    compliance_notes=["Include pay/location when regulations require it"],
    default_hashtags=["hiring", "careers"],
    default_call_to_action="Apply now",
    notes=["Deliver Hook → Proof → Offer → Action within spec"],
)

VIDEO_CHANNEL_SPECS: dict[str, VideoSpec] = {
    spec.channel_id: spec
    for spec in (
        VideoSpec(
            channel_id="META_FB_IG_LEAD",
            placement_id="INSTAGRAM_REELS",
            placement_name="Instagram Reels",
            duration=VideoDuration(min_seconds=15, max_seconds=45, recommended_seconds=30),
            safe_zones=SafeZones(top=220, bottom=300),
            end_card=EndCard(guidance="Include CTA + compliance text within final 3 seconds"),
            caption_notes=["Auto-captions required for accessibility"],
            compliance_notes=[
                "Meta employment category: mention 'Equal Opportunity Employer' when possible",
                "No discriminatory targeting",
            ],
            default_hashtags=["hiring", "instajobs", "reels"],
            default_call_to_action="Apply on Instagram",
            notes=[
                "Use bold on-screen text for ROLE + CITY + PAY",
                "Keep essential text within safe zones",
                "Flag as Meta Employment ad category",
            ],
        ),
        VideoSpec(
            channel_id="TIKTOK_LEAD",
            placement_id="TIKTOK_SHORT",
            placement_name="TikTok Short Video",
            duration=VideoDuration(min_seconds=21, max_seconds=34, recommended_seconds=28),
            safe_zones=SafeZones(top=230, bottom=330),
            end_card=EndCard(guidance="Flash CTA + apply link handle"),
            caption_notes=["Use 2-3 short hashtags", "Avoid corporate jargon"],
            compliance_notes=["HEC (employment) category requires transparent pay/location"],
            default_hashtags=["nowhiring", "careers", "tiktokjobs"],
            default_call_to_action="Tap to apply",
            notes=[
                "Hook fast within first 2 seconds",
                "Use pattern interrupts and text overlays",
                "HEC (employment) targeting rules apply",
            ],
        ),
        VideoSpec(
            channel_id="YOUTUBE_LEAD",
            placement_id="YOUTUBE_SHORTS",
            placement_name="YouTube Shorts",
            duration=VideoDuration(min_seconds=15, max_seconds=60, recommended_seconds=45),
            safe_zones=SafeZones(top=200, bottom=280),
            end_card=EndCard(guidance="End screen with CTA + logo is recommended"),
            caption_notes=["Use 1-2 branded hashtags"],
            compliance_notes=["Follow employment ad disclosures if targeting regulated regions"],
            default_hashtags=["Shorts", "jobs"],
            default_call_to_action="Swipe to learn more",
            notes=["Recommend dedicated end card", "Ensure audio mix leaves room for captions"],
            display_text_strategy="clean",
            preferred_tier=RenderTier.STANDARD,
        ),
        VideoSpec(
            channel_id="SNAPCHAT_LEADS",
            placement_id="SNAP_SPOTLIGHT",
            placement_name="Snapchat Spotlight",
            duration=VideoDuration(min_seconds=3, max_seconds=15, recommended_seconds=9),
            safe_zones=SafeZones(top=260, bottom=280),
            end_card=EndCard(guidance="Use branded end card under 2 seconds"),
            caption_notes=["Short, high-contrast captions"],
            compliance_notes=["Mention pay/location when regulated", "Avoid fine print"],
            default_hashtags=["snapjobs"],
            default_call_to_action="Swipe up to apply",
            notes=["Keep scenes kinetic", "Use bold overlays with ROLE + CITY"],
        ),
        VideoSpec(
            channel_id="X_HIRING",
            placement_id="X_VIDEO_POST",
            placement_name="X Video Post",
            medium="video",
            aspect_ratio="1:1",
            resolution="1080x1080",
            duration=VideoDuration(min_seconds=6, max_seconds=15, recommended_seconds=12),
            safe_zones=SafeZones(top=200, bottom=220),
            end_card=EndCard(guidance="Overlay CTA + short URL"),
            caption_notes=["Stay under 280 characters", "Add short tracking URL"],
            compliance_notes=["Avoid sensational claims; mention pay if company policy"],
            default_hashtags=["NowHiring"],
            default_call_to_action="Apply via link",
            notes=["Square aspect works best inside feed", "Pair with concise copy"],
            display_text_strategy="clean",
        ),
    )
}


def is_known_channel(channel_id: str | None) -> bool:
    return bool(channel_id) and channel_id in CHANNEL_NAMES


def channel_name(channel_id: str) -> str:
    return CHANNEL_NAMES.get(channel_id, channel_id)


def resolve_video_spec(channel_id: str | None = None) -> VideoSpec:
    """Return the placement rules for a channel.

    Channels without a dedicated video placement get the generic short spec
    re-keyed to their id.

    Args:
        channel_id: Channel identifier, or None for the generic spec

    Returns:
        A copy of the channel's VideoSpec
    """
    if not channel_id:
        return DEFAULT_VIDEO_SPEC.model_copy(deep=True)
    spec = VIDEO_CHANNEL_SPECS.get(channel_id)
    if spec is not None:
        return spec.model_copy(deep=True)
    return DEFAULT_VIDEO_SPEC.model_copy(update={"channel_id": channel_id}, deep=True)
