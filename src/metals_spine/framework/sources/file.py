"""
Local sources: CSV file on disk, or text already in memory.

Usage:
    from metals_spine.framework.sources import FileSource

    fetched = FileSource("exports/metals_curve.csv").fetch()
"""

from __future__ import annotations

from pathlib import Path

from metals_spine.core.errors import FetchError
from metals_spine.framework.logging import get_logger
from metals_spine.framework.sources.protocol import (
    FetchedText,
    SourceMetadata,
    SourceType,
    content_hash,
)

log = get_logger(__name__)


class FileSource:
    """Reads a CSV export from the local filesystem (UTF-8, BOM tolerated)."""

    def __init__(self, path: str | Path, *, name: str | None = None, encoding: str = "utf-8-sig"):
        self._path = Path(path)
        self._name = name or self._path.name
        self._encoding = encoding

    @property
    def name(self) -> str:
        return self._name

    @property
    def source_type(self) -> SourceType:
        return SourceType.FILE

    @property
    def path(self) -> Path:
        return self._path

    def fetch(self) -> FetchedText:
        try:
            text = self._path.read_text(encoding=self._encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise FetchError(f"Cannot read {self._path}: {e}", cause=e).with_context(
                source_name=self._name, source_type=SourceType.FILE.value
            ) from e

        metadata = SourceMetadata(
            source_name=self._name,
            source_type=SourceType.FILE,
            content_hash=content_hash(text),
            bytes_fetched=len(text.encode("utf-8")),
            path=str(self._path),
        )
        log.debug("source.file.read", **metadata.to_dict())
        return FetchedText(text=text, metadata=metadata)

    def __repr__(self) -> str:
        return f"FileSource({str(self._path)!r})"


class TextSource:
    """Wraps CSV text already in memory."""

    def __init__(self, text: str, *, name: str = "inline"):
        self._text = text
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    @property
    def source_type(self) -> SourceType:
        return SourceType.TEXT

    def fetch(self) -> FetchedText:
        metadata = SourceMetadata(
            source_name=self._name,
            source_type=SourceType.TEXT,
            content_hash=content_hash(self._text),
            bytes_fetched=len(self._text.encode("utf-8")),
        )
        return FetchedText(text=self._text, metadata=metadata)
