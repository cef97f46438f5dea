"""Pytest configuration and fixtures."""

import os
import tempfile

import pytest

# Set test environment before importing app modules
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["CELERY_RESULT_BACKEND"] = "cache+memory://"
os.environ["VIDEO_STORE"] = "memory"
os.environ["VIDEO_RENDER_PROVIDER"] = "dry_run"
os.environ["VIDEO_RENDER_AUTOSTART"] = "true"
os.environ["VIDEO_RENDER_OUTPUT_DIR"] = tempfile.mkdtemp(prefix="job-reels-")
os.environ["LLM_PROVIDER"] = "stub"
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_API_KEY"] = ""
os.environ["METRICS_ENABLED"] = "true"
os.environ["LOG_FORMAT"] = "console"
os.environ["LOG_LEVEL"] = "WARNING"

OWNER = "user-1"


@pytest.fixture
def job():
    """A complete job posting."""
    from job_reels.domain.models import JobPosting

    return JobPosting(
        id="job-42",
        owner_user_id=OWNER,
        role_title="Line Cook",
        company_name="Harbor Kitchen",
        location="Austin, TX",
        work_model="on_site",
        salary="$22-$26",
        salary_period="hour",
        benefits=["Free meals", "Paid time off"],
        industry="hospitality",
        job_description="Prep and cook dishes on a busy line.",
    )


@pytest.fixture
def bare_job():
    """A job posting with no pay or location."""
    from job_reels.domain.models import JobPosting

    return JobPosting(id="job-7", role_title="Barista")


@pytest.fixture
def content_generator():
    """Get a stub content generator."""
    from job_reels.adapters.content.stub import StubContentGenerator

    return StubContentGenerator()


@pytest.fixture
def manifest_builder(content_generator):
    """Manifest builder planning for the dry-run renderer."""
    from job_reels.video.manifest_builder import ManifestBuilder

    return ManifestBuilder(content_generator, provider="dry_run")


@pytest.fixture
def store():
    """Get an empty in-memory item store."""
    from job_reels.services.store import InMemoryVideoItemStore

    return InMemoryVideoItemStore()


@pytest.fixture
def metrics():
    from job_reels.services.metrics import MetricsCollector

    return MetricsCollector(enabled=True)


@pytest.fixture
def make_service(store, content_generator, metrics):
    """Build a library service around the given renderers.

    The manifest builder plans for ``provider``, which must be the name of
    one of the renderers.
    """
    from job_reels.adapters.renderer.dry_run import DryRunRenderer
    from job_reels.adapters.renderer.registry import RendererRegistry
    from job_reels.services.library import VideoLibraryService
    from job_reels.services.render_orchestrator import RenderOrchestrator
    from job_reels.video.manifest_builder import ManifestBuilder

    services = []

    def _make(renderers=None, provider="dry_run", autostart=True, publisher=None):
        registry = RendererRegistry(renderers or [DryRunRenderer()])
        service = VideoLibraryService(
            store=store,
            manifest_builder=ManifestBuilder(content_generator, provider=provider),
            orchestrator=RenderOrchestrator(registry),
            publisher=publisher,
            metrics=metrics,
            autostart=autostart,
        )
        services.append(service)
        return service

    yield _make

    for service in services:
        service.poller.cancel_all()


@pytest.fixture
def make_item():
    """Wrap a manifest in a fresh library item."""
    from job_reels.domain.models import VideoLibraryItem, utcnow

    def _make(manifest, **overrides):
        now = utcnow()
        fields = {
            "id": "item-1",
            "job_id": manifest.job.job_id,
            "owner_user_id": OWNER,
            "channel_id": manifest.channel_id,
            "channel_name": manifest.channel_name,
            "placement_name": manifest.placement_name,
            "manifest_version": 1,
            "manifests": [manifest],
            "active_manifest": manifest,
            "job_snapshot": manifest.job,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return VideoLibraryItem(**fields)

    return _make
