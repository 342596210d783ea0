"""Configuration loader for reelcast."""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class PlayerConfig:
    """Playback orchestrator policy."""

    fallback_timeout: float = 8.0        # Drive direct address, seconds (0 = disabled)
    stall_timeout: float = 0.0           # Other native-element attempts (0 = disabled)
    notice_duration_ms: int = 3000       # Fallback toast duration
    drive_error_duration_ms: int = 10000 # Drive sharing instructions toast
    error_duration_ms: int = 5000        # Other terminal error toasts
    exclusive_sessions: bool = True      # Opening a session closes the previous one
    home_path: str = "/"                 # Where the shell goes after a dismissal


@dataclass
class NtfyConfig:
    """Configuration for forwarding notices to an ntfy server."""

    enabled: bool = False
    server_url: str = "https://ntfy.sh"
    topic: str = "reelcast"
    min_severity: str = "destructive"    # Only terminal errors by default


@dataclass
class ServerConfig:
    """Configuration for the HTTP server."""

    host: str = "0.0.0.0"
    port: int = 5060
    data_dir: str = ""
    db_file: str = ""

    def __post_init__(self):
        if not self.data_dir:
            self.data_dir = "~/.reelcast"
        self.data_dir = os.path.expanduser(self.data_dir)
        if not self.db_file:
            self.db_file = os.path.join(self.data_dir, "reelcast.db")
        self.db_file = os.path.expanduser(self.db_file)


@dataclass
class Config:
    """Top-level reelcast configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    player: PlayerConfig = field(default_factory=PlayerConfig)
    ntfy: NtfyConfig = field(default_factory=NtfyConfig)


def load_config(path: str | None = None) -> Config:
    """Load configuration from reelcast.toml.

    Search order:
    1. Explicit path argument
    2. ./reelcast.toml
    3. ~/.config/reelcast/reelcast.toml
    4. Defaults
    """
    search_paths = []
    if path:
        search_paths.append(Path(path))
    search_paths.extend([
        Path("reelcast.toml"),
        Path.home() / ".config" / "reelcast" / "reelcast.toml",
    ])

    for p in search_paths:
        if p.exists():
            with open(p, "rb") as f:
                data = tomllib.load(f)
            return _parse_config(data)

    return Config()


def _parse_config(data: dict) -> Config:
    """Parse a TOML dict into Config."""
    config = Config()

    if "server" in data:
        s = data["server"]
        config.server = ServerConfig(
            host=s.get("host", config.server.host),
            port=s.get("port", config.server.port),
            data_dir=s.get("data_dir", config.server.data_dir),
            db_file=s.get("db_file", ""),
        )

    if "player" in data:
        p = data["player"]
        defaults = config.player
        config.player = PlayerConfig(
            fallback_timeout=float(p.get("fallback_timeout", defaults.fallback_timeout)),
            stall_timeout=float(p.get("stall_timeout", defaults.stall_timeout)),
            notice_duration_ms=p.get("notice_duration_ms", defaults.notice_duration_ms),
            drive_error_duration_ms=p.get("drive_error_duration_ms", defaults.drive_error_duration_ms),
            error_duration_ms=p.get("error_duration_ms", defaults.error_duration_ms),
            exclusive_sessions=p.get("exclusive_sessions", defaults.exclusive_sessions),
            home_path=p.get("home_path", defaults.home_path),
        )

    if "ntfy" in data:
        n = data["ntfy"]
        config.ntfy = NtfyConfig(
            enabled=n.get("enabled", bool(n.get("server_url"))),
            server_url=n.get("server_url", config.ntfy.server_url),
            topic=n.get("topic", config.ntfy.topic),
            min_severity=n.get("min_severity", config.ntfy.min_severity),
        )

    return config
