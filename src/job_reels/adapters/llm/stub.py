"""Offline LLM provider that answers with a fixed recruiting storyboard."""

import json

from job_reels.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from job_reels.logging import get_logger

logger = get_logger(__name__)

STUB_MODEL = "stub-model"

# phase, visual, on-screen text, seconds
STUB_SHOTS = [
    ("HOOK", "Close-up of a hand switching on the shop lights", "NOW HIRING", 4.0),
    ("PROOF", "Team laughing over a whiteboard sketch", "Real projects, real impact", 6.0),
    ("OFFER", "Benefits icons sliding in over b-roll", "Great pay + benefits", 6.0),
    ("BRIDGE", "Walk-through of the workspace", "Meet your future team", 5.0),
    ("ACTION", "Bold end card with logo", "Tap to apply today", 4.0),
]

STUB_CAPTION = (
    "We're hiring! Join a crew that ships real work every week. Tap to apply in under a minute."
)


def stub_draft() -> dict:
    """The JSON object returned for every JSON-mode request."""
    return {
        "storyboard": [
            {
                "phase": phase,
                "visual": visual,
                "onScreenText": text,
                "voiceOver": f"{text}.",
                "durationSeconds": seconds,
            }
            for phase, visual, text, seconds in STUB_SHOTS
        ],
        "caption": {"text": STUB_CAPTION, "hashtags": ["hiring", "careers"]},
        "thumbnail": {
            "description": "Smiling teammate in front of the storefront",
            "overlayText": "Now hiring",
        },
        "complianceFlags": [
            {"id": "eeo", "label": "Mention Equal Opportunity Employer", "severity": "info"}
        ],
        "warnings": [],
    }


class StubLLMProvider(LLMProvider):
    @property
    def name(self) -> str:
        return "stub"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,  # noqa: ARG002
        max_tokens: int = 2048,  # noqa: ARG002
        json_mode: bool = False,
    ) -> LLMResponse:
        prompt = next((m.content for m in reversed(messages) if m.role == "user"), "")
        if json_mode:
            content = json.dumps(stub_draft())
        else:
            content = f"Stub answer for: {prompt[:100]}"

        logger.debug("stub_llm_complete", json_mode=json_mode, prompt_chars=len(prompt))
        return LLMResponse(
            content=content,
            model=STUB_MODEL,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(content.split()),
            finish_reason="stop",
        )
