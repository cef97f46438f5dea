"""Tests for the logging helpers."""

import structlog

from job_reels.logging import bind_item_context, clear_item_context, redact_secrets


def test_redact_secrets() -> None:
    event = {"event": "veo_request", "api_key": "g-key", "headers": {"x": "y"}, "item_id": "a"}

    redacted = redact_secrets(None, "info", event)

    assert redacted["api_key"] == "***"
    assert redacted["headers"] == "***"
    assert redacted["item_id"] == "a"


def test_item_context_bound_and_cleared() -> None:
    bind_item_context("item-1", "user-1")
    bound = structlog.contextvars.get_contextvars()
    assert bound["item_id"] == "item-1"
    assert bound["owner_user_id"] == "user-1"

    clear_item_context()
    assert "item_id" not in structlog.contextvars.get_contextvars()
