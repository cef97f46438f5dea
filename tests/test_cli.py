"""Tests for the command-line interface."""

import json

from typer.testing import CliRunner

from job_reels import __version__
from job_reels.cli import app

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_channels() -> None:
    result = runner.invoke(app, ["channels"])
    assert result.exit_code == 0
    assert "Video Channels" in result.output
    assert "TIKTOK_LEAD" in result.output


def test_health_reports_missing_credentials() -> None:
    """Test that renderers without API keys make the check fail."""
    result = runner.invoke(app, ["health"])
    assert result.exit_code == 1
    assert "renderer:dry_run" in result.output
    assert "Some services unhealthy" in result.output


def test_capabilities_known_provider() -> None:
    result = runner.invoke(app, ["capabilities", "veo"])
    assert result.exit_code == 0
    assert "Capabilities: veo" in result.output
    assert "conservative guess" not in result.output


def test_capabilities_unknown_provider() -> None:
    result = runner.invoke(app, ["capabilities", "kling"])
    assert result.exit_code == 0
    assert "conservative guess" in result.output


def test_create_video_from_job_file(tmp_path) -> None:
    job_file = tmp_path / "job.json"
    job_file.write_text(
        json.dumps(
            {
                "id": "job-42",
                "owner_user_id": "user-1",
                "role_title": "Line Cook",
                "company_name": "Harbor Kitchen",
                "location": "Austin, TX",
            }
        )
    )

    result = runner.invoke(
        app, ["videos", "create", "-o", "user-1", "-c", "TIKTOK_LEAD", "-f", str(job_file)]
    )

    assert result.exit_code == 0, result.output
    assert "Video item created" in result.output


def test_create_video_unknown_channel() -> None:
    result = runner.invoke(
        app, ["videos", "create", "-o", "user-1", "-c", "MYSPACE", "--title", "Line Cook"]
    )

    assert result.exit_code == 1
    assert "VALIDATION_ERROR" in result.output


def test_list_rejects_unknown_status() -> None:
    result = runner.invoke(app, ["videos", "list", "-o", "user-1", "--status", "lost"])
    assert result.exit_code == 1
    assert "Invalid status" in result.output


def test_show_missing_item() -> None:
    result = runner.invoke(app, ["videos", "show", "nope", "-o", "user-1"])
    assert result.exit_code == 1
    assert "not found" in result.output


def test_bulk_rejects_unknown_action() -> None:
    result = runner.invoke(app, ["videos", "bulk", "delete", "item-1", "-o", "user-1"])
    assert result.exit_code == 1
    assert "Unknown bulk action" in result.output
