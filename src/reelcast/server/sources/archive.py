"""Internet Archive (archive.org) source handler."""

import logging
from urllib.parse import urlparse

from reelcast.server.sources.base import ProviderKind, RenderMode, SourceDescriptor, SourceHandler

logger = logging.getLogger(__name__)


class ArchiveSource(SourceHandler):
    """Handler for Internet Archive URLs.

    Items are embedded as-is in a frame; archive.org serves its own player
    for /details/ and /embed/ pages.
    """

    kind = ProviderKind.ARCHIVE_ORG

    def matches(self, url: str) -> bool:
        return "archive.org" in url

    def describe(self, url: str) -> SourceDescriptor:
        path = urlparse(url).path
        if "/details/" not in path and "/embed/" not in path:
            logger.debug("archive.org URL is not a /details/ or /embed/ page: %s", url)
        return SourceDescriptor(
            kind=self.kind,
            raw_url=url,
            candidate_addresses=(url,),
            render_modes=(RenderMode.FRAME,),
        )
