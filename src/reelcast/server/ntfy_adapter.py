"""ntfy.sh notification adapter for reelcast.

Provides a send_fn(notice) callable that routes playback notices to an ntfy
server, matching the interface expected by NotificationManager.
"""

import logging
import urllib.request

from reelcast.server.notifications import Notice, Severity

logger = logging.getLogger(__name__)

_PRIORITY = {
    Severity.INFO: "2",
    Severity.WARNING: "3",
    Severity.DESTRUCTIVE: "4",
}

_TAGS = {
    Severity.INFO: "tv",
    Severity.WARNING: "hourglass",
    Severity.DESTRUCTIVE: "warning",
}


def create_ntfy_send_fn(server_url: str, topic: str = "reelcast", min_severity: str = Severity.INFO):
    """Create a send_fn compatible with NotificationManager.

    Args:
        server_url: ntfy server base URL (e.g. "https://ntfy.sh")
        topic: Topic to publish to
        min_severity: Notices below this severity are not forwarded

    Returns:
        Callable(notice) that posts to ntfy.
    """
    base = server_url.rstrip("/")
    threshold = int(_PRIORITY.get(min_severity, "2"))

    def send_fn(notice: Notice):
        priority = _PRIORITY.get(notice.severity, "3")
        if int(priority) < threshold:
            return

        req = urllib.request.Request(
            f"{base}/{topic}",
            data=notice.description.encode("utf-8"),
            headers={
                "Title": notice.title,
                "Priority": priority,
                "Tags": _TAGS.get(notice.severity, "tv"),
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=10) as resp:
                resp.read()
        except Exception as e:
            logger.warning("Failed to send ntfy notification: %s", e)

    return send_fn
