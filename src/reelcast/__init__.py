"""reelcast - unified playback core for mixed-provider video links."""

from reelcast.__about__ import __version__

__all__ = ["__version__"]
