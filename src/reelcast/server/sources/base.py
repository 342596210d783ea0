"""Base source handler, descriptor types and the ordered registry."""

import enum
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class ProviderKind(str, enum.Enum):
    """Provider a video URL belongs to."""

    DIRECT = "direct"
    YOUTUBE = "youtube"
    GOOGLE_DRIVE = "google_drive"
    ARCHIVE_ORG = "archive_org"


class RenderMode(str, enum.Enum):
    """How a candidate address is rendered."""

    NATIVE = "native"  # <video>-style media element
    FRAME = "frame"    # embedded frame


@dataclass(frozen=True)
class Strategy:
    """One candidate address plus the surface that renders it."""

    address: str
    mode: RenderMode

    def to_dict(self) -> dict:
        return {"address": self.address, "mode": self.mode.value}


@dataclass(frozen=True)
class SourceDescriptor:
    """Result of classifying a URL.

    candidate_addresses is ordered by fallback priority and never empty.
    render_modes runs parallel to it.
    """

    kind: ProviderKind
    raw_url: str
    candidate_addresses: tuple[str, ...]
    render_modes: tuple[RenderMode, ...]
    provider_id: str | None = None
    ambiguous: bool = False

    def __post_init__(self):
        if not self.candidate_addresses:
            raise ValueError("SourceDescriptor needs at least one candidate address")
        if len(self.render_modes) != len(self.candidate_addresses):
            raise ValueError("render_modes must match candidate_addresses")

    @property
    def strategies(self) -> tuple[Strategy, ...]:
        return tuple(
            Strategy(address, mode)
            for address, mode in zip(self.candidate_addresses, self.render_modes)
        )

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "raw_url": self.raw_url,
            "provider_id": self.provider_id,
            "candidate_addresses": list(self.candidate_addresses),
            "strategies": [s.to_dict() for s in self.strategies],
            "ambiguous": self.ambiguous,
        }


class SourceHandler:
    """Base class for source handlers."""

    kind: ProviderKind = ProviderKind.DIRECT

    def matches(self, url: str) -> bool:
        """Return True if this handler claims the given URL."""
        return False

    def describe(self, url: str) -> SourceDescriptor | None:
        """Build a descriptor for a URL this handler matched.

        Returning None hands the URL on to the next handler.
        """
        return None


class SourceRegistry:
    """Ordered registry of source handlers. First match wins."""

    def __init__(self, fallback: SourceHandler | None = None):
        self._handlers: list[SourceHandler] = []
        self._fallback = fallback

    def register(self, handler: SourceHandler):
        """Register a handler after the ones already registered."""
        self._handlers.append(handler)
        logger.debug("Registered source handler: %s", handler.kind.value)

    def classify(self, url: str) -> SourceDescriptor:
        """Classify a URL. Never fails; unmatched URLs go to the fallback."""
        for handler in self._handlers:
            if not handler.matches(url):
                continue
            descriptor = handler.describe(url)
            if descriptor is not None:
                logger.debug("Classified %r as %s", url, descriptor.kind.value)
                return descriptor
        if self._fallback is None:
            raise LookupError(f"No source handler for {url!r} and no fallback registered")
        descriptor = self._fallback.describe(url)
        logger.debug("Classified %r as %s (fallback)", url, descriptor.kind.value)
        return descriptor

    def list_sources(self) -> list[str]:
        """List provider kinds in precedence order."""
        kinds = [h.kind.value for h in self._handlers]
        if self._fallback is not None:
            kinds.append(self._fallback.kind.value)
        return kinds
