"""Source classifier for reelcast.

Each provider (Google Drive, Archive.org, YouTube, direct files) has a handler
that recognizes its URLs and derives the addresses to try, in priority order.
Handlers are consulted in a fixed precedence order; the direct handler is the
fallback so classification never fails.
"""

from reelcast.server.sources.archive import ArchiveSource
from reelcast.server.sources.base import (
    ProviderKind,
    RenderMode,
    SourceDescriptor,
    SourceHandler,
    SourceRegistry,
    Strategy,
)
from reelcast.server.sources.direct import DirectSource
from reelcast.server.sources.google_drive import GoogleDriveSource
from reelcast.server.sources.youtube import YouTubeSource

__all__ = [
    "ProviderKind",
    "RenderMode",
    "SourceDescriptor",
    "SourceHandler",
    "SourceRegistry",
    "Strategy",
    "GoogleDriveSource",
    "ArchiveSource",
    "YouTubeSource",
    "DirectSource",
    "default_registry",
    "classify",
]


def default_registry() -> SourceRegistry:
    """Registry with the built-in handlers in precedence order."""
    registry = SourceRegistry(fallback=DirectSource())
    registry.register(GoogleDriveSource())
    registry.register(ArchiveSource())
    registry.register(YouTubeSource())
    return registry


_default = default_registry()


def classify(url: str) -> SourceDescriptor:
    """Classify a URL with the built-in handlers."""
    return _default.classify(url)
