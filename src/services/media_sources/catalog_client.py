"""HTTP client for the bridge catalog (format lists and playback URLs)."""

import logging
from dataclasses import dataclass, field
from typing import Optional
from urllib.parse import quote, urlencode

import httpx

from models.media_source import FormatDescriptor
from services.media_sources.errors import FetchFailed

logger = logging.getLogger(__name__)


@dataclass
class CatalogFetchResult:
    """Outcome of a format list fetch. `failure` is set when the fetch failed."""

    formats: list[FormatDescriptor] = field(default_factory=list)
    failure: Optional[FetchFailed] = None

    @property
    def failed(self) -> bool:
        return self.failure is not None


@dataclass(frozen=True)
class DirectPlayback:
    """A direct upstream URL returned by the bridge's resolve endpoint."""

    url: str
    container: str = "mp4"


class CatalogClient:
    """Talks to the bridge catalog over a shared httpx.AsyncClient.

    Builds the playback URLs handed to the host player and fetches the raw
    format list for a video. Fetch methods never raise (cancellation aside);
    failures come back as data.
    """

    def __init__(self, http_client: httpx.AsyncClient, base_url: str):
        self.http = http_client
        self.base_url = base_url.rstrip("/")

    # -- URL builders -------------------------------------------------------

    def formats_url(self, video_id: str) -> str:
        return f"{self.base_url}/formats/{quote(video_id, safe='')}"

    def play_url(self, video_id: str, format_id: str) -> str:
        return f"{self.base_url}/play/{quote(video_id, safe='')}?{urlencode({'itag': format_id})}"

    def policy_url(self, video_id: str, format_policy: str) -> str:
        return (
            f"{self.base_url}/play/{quote(video_id, safe='')}"
            f"?{urlencode({'policy': format_policy})}"
        )

    def resolve_url(self, video_id: str, format_policy: str) -> str:
        return f"{self.base_url}/resolve?{urlencode({'video_id': video_id, 'policy': format_policy})}"

    # -- fetches ------------------------------------------------------------

    async def fetch_formats(self, video_id: str, timeout: float) -> CatalogFetchResult:
        """Fetch the format list for a video.

        Args:
            video_id: Catalog video identifier
            timeout: Overall request timeout in seconds

        Returns:
            CatalogFetchResult with parsed descriptors, or an empty list and
            a FetchFailed describing why
        """
        try:
            formats = await self._fetch_formats(video_id, timeout)
        except FetchFailed as e:
            logger.warning(f"[Catalog] Formats fetch failed for '{video_id}': {e} ({e.reason})")
            return CatalogFetchResult(failure=e)

        logger.info(f"[Catalog] {len(formats)} formats for '{video_id}'")
        return CatalogFetchResult(formats=formats)

    async def _fetch_formats(self, video_id: str, timeout: float) -> list[FormatDescriptor]:
        url = self.formats_url(video_id)
        try:
            response = await self.http.get(url, timeout=timeout)
        except httpx.TimeoutException as e:
            raise FetchFailed(
                f"Timed out after {timeout:.1f}s", FetchFailed.TIMEOUT
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchFailed(
                f"{type(e).__name__}: {e}", FetchFailed.TRANSPORT
            ) from e

        if not response.is_success:
            raise FetchFailed(
                f"Catalog returned status {response.status_code}",
                FetchFailed.HTTP_STATUS,
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise FetchFailed(
                f"Catalog returned invalid JSON: {e}",
                FetchFailed.INVALID_PAYLOAD,
                status_code=response.status_code,
            ) from e

        return self._parse_formats(payload)

    def _parse_formats(self, payload) -> list[FormatDescriptor]:
        """Parse the `formats` array, skipping entries that are not objects."""
        if isinstance(payload, dict):
            raw_formats = payload.get("formats") or []
        elif isinstance(payload, list):
            raw_formats = payload
        else:
            raise FetchFailed(
                f"Unexpected catalog payload type {type(payload).__name__}",
                FetchFailed.INVALID_PAYLOAD,
            )

        if not isinstance(raw_formats, list):
            raise FetchFailed(
                "Catalog 'formats' is not a list", FetchFailed.INVALID_PAYLOAD
            )

        formats = []
        for entry in raw_formats:
            if not isinstance(entry, dict):
                logger.debug(f"[Catalog] Skipping non-object format entry: {entry!r}")
                continue
            formats.append(FormatDescriptor.from_dict(entry))
        return formats

    async def resolve_direct(
        self, video_id: str, format_policy: str, timeout: float
    ) -> Optional[DirectPlayback]:
        """Ask the bridge for a direct upstream URL under a format policy.

        Returns:
            DirectPlayback, or None if the bridge could not provide one
        """
        url = self.resolve_url(video_id, format_policy)
        try:
            response = await self.http.get(url, timeout=timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException:
            logger.warning(f"[Catalog] Direct resolve timed out for '{video_id}'")
            return None
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"[Catalog] Direct resolve returned {e.response.status_code} for '{video_id}'"
            )
            return None
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.warning(f"[Catalog] Direct resolve failed for '{video_id}': {e}")
            return None

        direct_url = payload.get("url") if isinstance(payload, dict) else None
        if not direct_url:
            logger.warning(f"[Catalog] Direct resolve for '{video_id}' had no url")
            return None

        try:
            parsed = httpx.URL(str(direct_url))
        except httpx.InvalidURL as e:
            logger.warning(f"[Catalog] Direct resolve for '{video_id}' returned a bad url: {e}")
            return None
        if parsed.scheme not in ("http", "https") or not parsed.host:
            logger.warning(
                f"[Catalog] Direct resolve for '{video_id}' returned a non-http url: {direct_url}"
            )
            return None

        return DirectPlayback(url=str(direct_url), container=str(payload.get("container") or "mp4"))
