"""
HTTP source: fetch a CSV export with httpx.

Non-2xx responses and transport failures raise ``FetchError`` carrying
the URL and, when there was a response, its status code.
"""

from __future__ import annotations

import httpx

from metals_spine.core.errors import FetchError
from metals_spine.framework.logging import get_logger
from metals_spine.framework.sources.protocol import (
    FetchedText,
    SourceMetadata,
    SourceType,
    content_hash,
)

log = get_logger(__name__)


class HttpSource:
    """GETs a published CSV export."""

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 30.0,
        name: str | None = None,
        client: httpx.Client | None = None,
    ):
        self._url = url
        self._timeout = timeout
        self._name = name or url
        self._client = client

    @property
    def name(self) -> str:
        return self._name

    @property
    def source_type(self) -> SourceType:
        return SourceType.HTTP

    @property
    def url(self) -> str:
        return self._url

    def fetch(self) -> FetchedText:
        try:
            if self._client is not None:
                response = self._client.get(self._url, timeout=self._timeout)
            else:
                with httpx.Client(follow_redirects=True) as client:
                    response = client.get(self._url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(f"HTTP {status} fetching {self._url}", cause=e).with_context(
                url=self._url, http_status=status, source_type=SourceType.HTTP.value
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {self._url}: {e}", cause=e).with_context(
                url=self._url, source_type=SourceType.HTTP.value
            ) from e

        text = response.text
        metadata = SourceMetadata(
            source_name=self._name,
            source_type=SourceType.HTTP,
            content_hash=content_hash(text),
            bytes_fetched=len(response.content),
            url=self._url,
            http_status=response.status_code,
        )
        log.debug("source.http.fetched", **metadata.to_dict())
        return FetchedText(text=text, metadata=metadata)

    def __repr__(self) -> str:
        return f"HttpSource({self._url!r})"
