"""Media source data models.

Covers both sides of a resolution: the encoding variants reported by the
bridge catalog and the playable sources handed to the host player.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

# Well-known format ids with an empirically reliable delivery path
BASELINE_FORMAT_ID = "18"  # 360p progressive mp4/avc
HIGH_TIER_FORMAT_ID = "22"  # 720p progressive mp4/avc

POLICY_SUFFIX = "policy"


def _coerce_int(value: Any) -> Optional[int]:
    """Best-effort conversion of a JSON number or numeric string to int."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            try:
                return int(float(text))
            except ValueError:
                return None
    return None


def _coerce_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _coerce_bool(value: Any) -> bool:
    """JSON booleans as-is; numbers by non-zero; strings by 1/true/yes."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return False


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


class StreamLayout(str, Enum):
    """What a candidate source is known to carry."""

    PROGRESSIVE = "progressive"  # audio and video in one stream
    VIDEO_ONLY = "video-only"  # player must bind a separate audio track
    NEGOTIATED = "negotiated"  # server picks the encoding, layout unknown


@dataclass(frozen=True)
class FormatDescriptor:
    """One encoding variant reported by the catalog for a video."""

    format_id: str
    container: str = "mp4"
    has_video: bool = False
    has_audio: bool = False
    video_codec: str = ""
    audio_codec: str = ""
    height: Optional[int] = None
    bitrate: Optional[float] = None
    quality_label: Optional[str] = None

    @property
    def is_progressive(self) -> bool:
        return self.has_video and self.has_audio

    @property
    def is_video_only(self) -> bool:
        return self.has_video and not self.has_audio

    @property
    def is_avc(self) -> bool:
        codec = self.video_codec.lower()
        return "avc" in codec or "h264" in codec

    @property
    def is_mp4(self) -> bool:
        return self.container.lower() == "mp4"

    @classmethod
    def from_dict(cls, data: dict) -> "FormatDescriptor":
        """Build a descriptor from one entry of the catalog `formats` array.

        Accepts either `itag` or `format_id` as the id key. Numeric ids are
        coerced to strings. Negative heights are treated as unknown.
        """
        raw_id = data.get("itag")
        if raw_id is None or _coerce_str(raw_id) == "":
            raw_id = data.get("format_id")

        height = _coerce_int(data.get("height"))
        if height is not None and height < 0:
            height = None

        label = data.get("quality_label")

        return cls(
            format_id=_coerce_str(raw_id),
            container=_coerce_str(data.get("ext")) or "mp4",
            has_video=_coerce_bool(data.get("has_video")),
            has_audio=_coerce_bool(data.get("has_audio")),
            video_codec=_coerce_str(data.get("vcodec")),
            audio_codec=_coerce_str(data.get("acodec")),
            height=height,
            bitrate=_coerce_float(data.get("tbr")),
            quality_label=str(label) if label else None,
        )


@dataclass(frozen=True)
class MediaStreamInfo:
    """A stream declared to the host player ahead of playback."""

    type: str  # "video" or "audio"
    codec: str
    index: int

    def to_dict(self) -> dict:
        return {"type": self.type, "codec": self.codec, "index": self.index}


@dataclass(frozen=True)
class CandidateSource:
    """A playable source candidate, derived from a format or synthesized.

    `priority` orders preflight probing (higher first). The order the host
    player finally sees is decided separately by the assembler.
    """

    source_id: str
    url: str
    container: str
    layout: StreamLayout
    priority: int
    name: str = ""
    format_id: Optional[str] = None
    streams: tuple[MediaStreamInfo, ...] = ()
    synthesized: bool = False

    @property
    def streams_declared(self) -> bool:
        return bool(self.streams)

    @property
    def is_policy(self) -> bool:
        return self.layout is StreamLayout.NEGOTIATED

    def to_dict(self) -> dict:
        """Serialize in the shape the host player consumes."""
        data: dict[str, Any] = {
            "id": self.source_id,
            "path": self.url,
            "protocol": "http",
            "container": self.container,
            "name": self.name,
            "supports_direct_play": True,
            "supports_direct_stream": True,
            "supports_transcoding": True,
            "is_infinite_stream": False,
            "requires_opening": False,
        }
        if self.streams_declared:
            data["media_streams"] = [s.to_dict() for s in self.streams]
        return data


@dataclass(frozen=True)
class PreflightOutcome:
    """Result of probing one candidate.

    Only `reachable` feeds back into resolution. Everything else is
    diagnostic detail for logs and observers.
    """

    source_id: str
    reachable: bool
    status_code: Optional[int] = None
    content_length: Optional[int] = None
    content_range: Optional[str] = None
    accept_ranges: Optional[str] = None
    chunked: bool = False
    bytes_read: int = 0
    error: Optional[str] = None
    elapsed_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "reachable": self.reachable,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "content_range": self.content_range,
            "accept_ranges": self.accept_ranges,
            "chunked": self.chunked,
            "bytes_read": self.bytes_read,
            "error": self.error,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }


@dataclass
class ResolutionResult:
    """Ordered playable sources for one video plus resolution diagnostics.

    An empty `sources` list means "no playable source", not a retryable error.
    """

    video_id: str
    sources: list[CandidateSource] = field(default_factory=list)
    soft_fallback: bool = False
    fetch_failure: Optional[Exception] = None
    failure: Optional[Exception] = None
    preflight: list[PreflightOutcome] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.sources

    @property
    def source_ids(self) -> list[str]:
        return [s.source_id for s in self.sources]

    def to_dict(self) -> dict:
        return {
            "video_id": self.video_id,
            "sources": [s.to_dict() for s in self.sources],
            "soft_fallback": self.soft_fallback,
            "fetch_failed": self.fetch_failure is not None,
        }
