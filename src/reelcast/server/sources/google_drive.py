"""Google Drive source handler.

Drive share links are tried first as a direct download address through the
native media element, then as the /preview embed page in a frame.
"""

import logging
import re

from reelcast.server.sources.base import ProviderKind, RenderMode, SourceDescriptor, SourceHandler

logger = logging.getLogger(__name__)

DRIVE_HOST_MARKERS = ("drive.google.com", "docs.google.com")

# Checked in order: /file/d/ID/..., ?id=ID, /d/ID
DRIVE_ID_PATTERNS = (
    re.compile(r"/file/d/([a-zA-Z0-9_-]+)"),
    re.compile(r"id=([a-zA-Z0-9_-]+)"),
    re.compile(r"/d/([a-zA-Z0-9_-]+)"),
)


def is_drive_url(url: str) -> bool:
    return any(marker in url for marker in DRIVE_HOST_MARKERS)


def extract_drive_id(url: str) -> str | None:
    """Extract a Drive file id from the common share URL shapes."""
    for pattern in DRIVE_ID_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def direct_url(file_id: str) -> str:
    """Address playable by an HTML5-style media element."""
    return f"https://drive.google.com/uc?id={file_id}"


def preview_url(file_id: str) -> str:
    """Embed page for a frame."""
    return f"https://drive.google.com/file/d/{file_id}/preview"


class GoogleDriveSource(SourceHandler):
    """Handler for drive.google.com and docs.google.com links."""

    kind = ProviderKind.GOOGLE_DRIVE

    def matches(self, url: str) -> bool:
        return is_drive_url(url)

    def describe(self, url: str) -> SourceDescriptor:
        file_id = extract_drive_id(url)
        if file_id is None:
            logger.warning("Drive URL without a recognizable file id, embedding as-is: %s", url)
            return SourceDescriptor(
                kind=self.kind,
                raw_url=url,
                candidate_addresses=(url,),
                render_modes=(RenderMode.FRAME,),
                ambiguous=True,
            )
        return SourceDescriptor(
            kind=self.kind,
            raw_url=url,
            provider_id=file_id,
            candidate_addresses=(direct_url(file_id), preview_url(file_id)),
            render_modes=(RenderMode.NATIVE, RenderMode.FRAME),
        )
