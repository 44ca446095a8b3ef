"""
Source protocol for curve ingestion.

A source knows how to produce the raw CSV text of one snapshot.  It does
not tokenize or validate; that belongs to the curve connector.  Failures
surface as ``FetchError`` so the pipeline can audit them as
``fetch_failed``.

Usage:
    source = source_for(settings.csv_url, timeout=settings.http_timeout)
    fetched = source.fetch()
    log.info("source.fetched", **fetched.metadata.to_dict())
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class SourceType(str, Enum):
    """Standard source types."""

    FILE = "file"
    HTTP = "http"
    TEXT = "text"


@dataclass
class SourceMetadata:
    """Metadata about one fetch, for logging and auditing."""

    source_name: str
    source_type: SourceType
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    content_hash: str | None = None
    bytes_fetched: int | None = None
    url: str | None = None
    path: str | None = None
    http_status: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {
            "source_name": self.source_name,
            "source_type": self.source_type.value,
            "fetched_at": self.fetched_at.isoformat(),
        }
        for attr in ["content_hash", "bytes_fetched", "url", "path", "http_status"]:
            val = getattr(self, attr)
            if val is not None:
                result[attr] = val
        return result


@dataclass
class FetchedText:
    """Raw snapshot text plus fetch metadata."""

    text: str
    metadata: SourceMetadata


def content_hash(text: str) -> str:
    """Short sha256 of the fetched text (for change tracing in logs)."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


@runtime_checkable
class Source(Protocol):
    """
    Protocol for snapshot sources.

    Implementations:
        - FileSource: local CSV file
        - HttpSource: CSV export over HTTP(S)
        - TextSource: in-memory text (tests, stdin)
    """

    @property
    def name(self) -> str:
        """Source identifier used in logs and audit detail."""
        ...

    @property
    def source_type(self) -> SourceType:
        ...

    def fetch(self) -> FetchedText:
        """
        Fetch the snapshot text.

        Raises:
            FetchError: if the content cannot be obtained.
        """
        ...


def source_for(location: str, *, timeout: float = 30.0) -> Source:
    """Pick an HTTP or file source for a configured location string."""
    from metals_spine.framework.sources.file import FileSource
    from metals_spine.framework.sources.http import HttpSource

    if location.lower().startswith(("http://", "https://")):
        return HttpSource(location, timeout=timeout)
    if location.lower().startswith("file://"):
        return FileSource(location[len("file://"):])
    return FileSource(location)
