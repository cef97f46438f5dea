"""Lookup of render strategies by provider id."""

from job_reels.adapters.renderer.base import Renderer
from job_reels.adapters.renderer.dry_run import DryRunRenderer
from job_reels.logging import get_logger
from job_reels.video.assets import AssetStore

logger = get_logger(__name__)


class RendererRegistry:
    """Maps provider ids (``dry_run``, ``sora``, ``veo``) to renderers."""

    def __init__(self, renderers: list[Renderer] | None = None) -> None:
        self._renderers: dict[str, Renderer] = {}
        for renderer in renderers or []:
            self.register(renderer)

    def register(self, renderer: Renderer) -> None:
        self._renderers[renderer.name] = renderer

    def get(self, provider: str | None) -> Renderer | None:
        if not provider:
            return None
        return self._renderers.get(provider.lower())

    def __contains__(self, provider: str) -> bool:
        return self.get(provider) is not None

    @property
    def names(self) -> list[str]:
        return sorted(self._renderers)


def default_registry(asset_store: AssetStore | None = None) -> RendererRegistry:
    """Registry with every built-in renderer, sharing one asset store."""
    from job_reels.adapters.renderer.sora import SoraRenderer
    from job_reels.adapters.renderer.veo import VeoRenderer

    store = asset_store or AssetStore()
    registry = RendererRegistry(
        [
            DryRunRenderer(),
            SoraRenderer(asset_store=store),
            VeoRenderer(asset_store=store),
        ]
    )
    logger.debug("renderer_registry_built", renderers=registry.names)
    return registry
