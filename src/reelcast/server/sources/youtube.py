"""YouTube source handler."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlencode

from reelcast.server.sources.base import ProviderKind, RenderMode, SourceDescriptor, SourceHandler

logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = ("youtube.com", "youtu.be", "youtube-nocookie.com")

# Greedy prefix: the last marker in the URL wins.
_VIDEO_ID_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|shorts/|watch\?v=|&v=)([^#&?]*).*")

VIDEO_ID_LENGTH = 11

# Autoplay, no related videos, no keyboard shortcuts, fullscreen allowed.
EMBED_PARAMS = {
    "autoplay": 1,
    "rel": 0,
    "modestbranding": 1,
    "controls": 0,
    "showinfo": 0,
    "fs": 1,
    "iv_load_policy": 3,
    "disablekb": 1,
}


def extract_video_id(url: str) -> str | None:
    """Extract an 11-character video id, or None if the URL carries none."""
    match = _VIDEO_ID_RE.match(url)
    if not match:
        return None
    video_id = match.group(2)
    if len(video_id) != VIDEO_ID_LENGTH:
        return None
    return video_id


def embed_url(video_id: str) -> str:
    return f"https://www.youtube.com/embed/{video_id}?{urlencode(EMBED_PARAMS)}"


class YouTubeSource(SourceHandler):
    """Handler for YouTube watch, short-link and embed URLs."""

    kind = ProviderKind.YOUTUBE

    def matches(self, url: str) -> bool:
        return any(host in url for host in YOUTUBE_HOSTS)

    def describe(self, url: str) -> SourceDescriptor | None:
        video_id = extract_video_id(url)
        if video_id is None:
            logger.debug("YouTube host without an 11-character video id: %s", url)
            return None
        return SourceDescriptor(
            kind=self.kind,
            raw_url=url,
            provider_id=video_id,
            candidate_addresses=(embed_url(video_id),),
            render_modes=(RenderMode.FRAME,),
        )
