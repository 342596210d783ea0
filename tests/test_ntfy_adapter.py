"""Tests for ntfy.sh notification adapter."""

from unittest.mock import MagicMock, patch

from reelcast.server.notifications import Notice, Severity
from reelcast.server.ntfy_adapter import create_ntfy_send_fn


def _mock_response(mock_urlopen):
    mock_urlopen.return_value.__enter__ = MagicMock(return_value=MagicMock(read=MagicMock(return_value=b"")))
    mock_urlopen.return_value.__exit__ = MagicMock(return_value=False)


class TestNtfyAdapter:
    """Test create_ntfy_send_fn routing and behavior."""

    @patch("reelcast.server.ntfy_adapter.urllib.request.urlopen")
    def test_terminal_error_posts_high_priority(self, mock_urlopen):
        _mock_response(mock_urlopen)
        send_fn = create_ntfy_send_fn("http://localhost:5555/", topic="tv")
        send_fn(Notice("Problem with Google Drive video", "Share it publicly", Severity.DESTRUCTIVE))

        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "http://localhost:5555/tv"
        assert req.get_header("Priority") == "4"
        assert req.get_header("Tags") == "warning"
        assert req.get_header("Title") == "Problem with Google Drive video"
        assert req.data == b"Share it publicly"

    @patch("reelcast.server.ntfy_adapter.urllib.request.urlopen")
    def test_info_notice_low_priority(self, mock_urlopen):
        _mock_response(mock_urlopen)
        send_fn = create_ntfy_send_fn("http://localhost:5555")
        send_fn(Notice("Trying an alternate method", "Loading..."))

        req = mock_urlopen.call_args[0][0]
        assert req.full_url == "http://localhost:5555/reelcast"
        assert req.get_header("Priority") == "2"
        assert req.get_header("Tags") == "tv"

    @patch("reelcast.server.ntfy_adapter.urllib.request.urlopen")
    def test_below_min_severity_skipped(self, mock_urlopen):
        send_fn = create_ntfy_send_fn("http://localhost:5555", min_severity=Severity.DESTRUCTIVE)
        send_fn(Notice("Trying an alternate method", "Loading..."))
        mock_urlopen.assert_not_called()

    @patch("reelcast.server.ntfy_adapter.urllib.request.urlopen")
    def test_network_error_swallowed(self, mock_urlopen):
        mock_urlopen.side_effect = OSError("Connection refused")
        send_fn = create_ntfy_send_fn("http://localhost:5555")
        send_fn(Notice("Error loading video", "Check the link", Severity.DESTRUCTIVE))
        mock_urlopen.assert_called_once()
