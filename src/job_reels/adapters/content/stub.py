"""Stub content generator for testing."""

from job_reels.adapters.content.base import ContentDraft, ContentGenerator, GenerationContext
from job_reels.domain.models import JobSnapshot, VideoSpec
from job_reels.logging import get_logger

logger = get_logger(__name__)


class StubContentGenerator(ContentGenerator):
    """Returns a fixed five-shot storyboard built from the job snapshot."""

    def __init__(self, draft: ContentDraft | None = None) -> None:
        self._draft = draft

    @property
    def name(self) -> str:
        return "stub"

    async def generate(
        self,
        job_snapshot: JobSnapshot,
        spec: VideoSpec,
        context: GenerationContext,
    ) -> ContentDraft:
        logger.info(
            "stub_content_generate",
            job_id=job_snapshot.job_id,
            channel_id=context.channel_id,
        )
        if self._draft is not None:
            return self._draft

        title = job_snapshot.title
        where = job_snapshot.geo if job_snapshot.geo != "global" else "anywhere"
        return ContentDraft(
            storyboard=[
                {
                    "phase": "HOOK",
                    "visual": "Quick pan across the workplace",
                    "on_screen_text": f"{title} wanted",
                    "voice_over": f"Looking for your next move as {title}?",
                    "duration_seconds": 4,
                },
                {
                    "phase": "PROOF",
                    "visual": "Team members at work",
                    "on_screen_text": "Work that matters",
                    "voice_over": "Your work ships to real customers.",
                    "duration_seconds": 6,
                },
                {
                    "phase": "OFFER",
                    "visual": "Benefit icons over b-roll",
                    "on_screen_text": job_snapshot.pay_range or "Competitive pay",
                    "voice_over": "Great pay and real growth.",
                    "duration_seconds": 6,
                },
                {
                    "phase": "BRIDGE",
                    "visual": "Street view of the office",
                    "on_screen_text": f"Based {where}",
                    "voice_over": f"Join us {where}.",
                    "duration_seconds": 4,
                },
                {
                    "phase": "ACTION",
                    "visual": "End card with logo",
                    "on_screen_text": spec.default_call_to_action,
                    "voice_over": "Tap to apply today.",
                    "duration_seconds": 4,
                },
            ],
            caption={
                "text": f"Now hiring: {title}. {spec.default_call_to_action}.",
                "hashtags": spec.default_hashtags[:3],
            },
            thumbnail={"description": "Team photo with bold title", "overlay_text": title},
            compliance_flags=[],
            provider=self.name,
            model="stub-content",
        )
