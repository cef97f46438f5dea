"""Video item lifecycle: legal status transitions and audit log bookkeeping."""

from job_reels.domain.enums import VideoStatus
from job_reels.domain.models import AuditEntry
from job_reels.errors import InvalidTransitionError

AUDIT_LOG_LIMIT = 50

# Exhaustive edge list. Same-state moves are no-ops and never listed here.
TRANSITIONS: dict[VideoStatus, frozenset[VideoStatus]] = {
    VideoStatus.PLANNED: frozenset({VideoStatus.GENERATING, VideoStatus.ARCHIVED}),
    VideoStatus.GENERATING: frozenset(
        {
            VideoStatus.EXTENDING,
            VideoStatus.READY,
            VideoStatus.PLANNED,
            VideoStatus.ARCHIVED,
        }
    ),
    VideoStatus.EXTENDING: frozenset({VideoStatus.GENERATING, VideoStatus.ARCHIVED}),
    VideoStatus.READY: frozenset({VideoStatus.APPROVED, VideoStatus.ARCHIVED}),
    VideoStatus.APPROVED: frozenset(
        {VideoStatus.GENERATING, VideoStatus.PUBLISHED, VideoStatus.ARCHIVED}
    ),
    VideoStatus.PUBLISHED: frozenset({VideoStatus.ARCHIVED}),
    VideoStatus.ARCHIVED: frozenset(),
}

# A new manifest invalidates whatever render state came before it.
REGENERATE_SOURCES = frozenset(status for status in VideoStatus if status != VideoStatus.ARCHIVED)

RENDERING_STATES = frozenset({VideoStatus.GENERATING, VideoStatus.EXTENDING})


def can_transition(current: VideoStatus, target: VideoStatus) -> bool:
    if current == target:
        return True
    return target in TRANSITIONS[current]


def ensure_transition(
    current: VideoStatus, target: VideoStatus, *, action: str | None = None
) -> None:
    """Raise InvalidTransitionError unless current -> target is a legal edge."""
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value, action=action)


def ensure_regenerable(current: VideoStatus) -> None:
    if current not in REGENERATE_SOURCES:
        raise InvalidTransitionError(
            current.value, VideoStatus.PLANNED.value, action="regenerate"
        )


def render_path(current: VideoStatus, outcome: VideoStatus) -> list[VideoStatus]:
    """Walk the statuses between the current one and a render outcome.

    A sync render goes planned -> generating -> ready in one call, and a poll
    on an extending item re-enters generating before anything else. Every
    edge walked is checked against the transition table.

    Args:
        current: Status before the render attempt
        outcome: Status the render result maps to

    Returns:
        The statuses visited after ``current``, ending in ``outcome``

    Raises:
        InvalidTransitionError: If any edge on the way is illegal
    """
    path: list[VideoStatus] = []
    status = current
    if status != outcome and status not in RENDERING_STATES:
        ensure_transition(status, VideoStatus.GENERATING, action="render")
        status = VideoStatus.GENERATING
        path.append(status)
    if status == VideoStatus.EXTENDING and outcome != VideoStatus.EXTENDING:
        ensure_transition(status, VideoStatus.GENERATING, action="render")
        status = VideoStatus.GENERATING
        path.append(status)
    if status != outcome:
        ensure_transition(status, outcome, action="render")
        path.append(outcome)
    return path


def append_audit(
    audit_log: list[AuditEntry], entry: AuditEntry, limit: int = AUDIT_LOG_LIMIT
) -> list[AuditEntry]:
    """Return a new audit log with ``entry`` appended, oldest entries evicted first."""
    updated = [*audit_log, entry]
    if len(updated) > limit:
        updated = updated[-limit:]
    return updated
