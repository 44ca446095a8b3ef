"""
Source adapters: where raw CSV text comes from.

Usage:
    from metals_spine.framework.sources import FileSource, HttpSource, source_for

    result = source_for("https://example.com/curve.csv").fetch()
    result.text
"""

from metals_spine.framework.sources.file import FileSource, TextSource
from metals_spine.framework.sources.http import HttpSource
from metals_spine.framework.sources.protocol import (
    FetchedText,
    Source,
    SourceMetadata,
    SourceType,
    source_for,
)

__all__ = [
    "FetchedText",
    "FileSource",
    "HttpSource",
    "Source",
    "SourceMetadata",
    "SourceType",
    "TextSource",
    "source_for",
]
