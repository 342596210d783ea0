"""Direct file source handler. Catches everything the other handlers skip."""

import logging
import os
from urllib.parse import urlparse

from reelcast.server.sources.base import ProviderKind, RenderMode, SourceDescriptor, SourceHandler

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = {
    ".mp4", ".mkv", ".avi", ".mov", ".wmv", ".flv", ".webm",
    ".m4v", ".mpg", ".mpeg", ".ts", ".3gp", ".ogv", ".m3u8",
}

AUDIO_EXTENSIONS = {
    ".mp3", ".flac", ".wav", ".aac", ".ogg", ".m4a", ".opus",
}

MEDIA_EXTENSIONS = VIDEO_EXTENSIONS | AUDIO_EXTENSIONS


def has_media_extension(url: str) -> bool:
    """True if the URL path ends in a known media file extension."""
    try:
        path = urlparse(url).path
    except ValueError:
        return False
    return os.path.splitext(path)[1].lower() in MEDIA_EXTENSIONS


class DirectSource(SourceHandler):
    """Handler for plain media file URLs, played by the native element.

    Never rejects input: an empty or malformed URL still gets a descriptor and
    the media element reports the load error.
    """

    kind = ProviderKind.DIRECT

    def matches(self, url: str) -> bool:
        return True

    def describe(self, url: str) -> SourceDescriptor:
        if not has_media_extension(url):
            logger.debug("Direct URL without a known media extension: %r", url)
        return SourceDescriptor(
            kind=self.kind,
            raw_url=url,
            candidate_addresses=(url,),
            render_modes=(RenderMode.NATIVE,),
        )
