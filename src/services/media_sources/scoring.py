"""Candidate building and priority scoring.

Turns the raw catalog format list into scored, deduplicated candidates.
Bonuses for the well-known progressive ids dwarf the height and codec
terms; every other variant, progressive or video-only, competes on
height and codec alone.
"""

import logging
from typing import Callable, Iterable

from models.media_source import (
    BASELINE_FORMAT_ID,
    HIGH_TIER_FORMAT_ID,
    CandidateSource,
    FormatDescriptor,
    MediaStreamInfo,
    StreamLayout,
)
from models.resolution_policy import ResolutionPolicy

logger = logging.getLogger(__name__)

# Progressive band
AVC_BONUS = 50_000
MP4_BONUS = 10_000
HIGH_TIER_BONUS = 1_000_000
BASELINE_BONUS = 500_000
# Used instead of the two above when the baseline variant is preferred
STABLE_BASELINE_BONUS = 1_000_000
STABLE_HIGH_TIER_ADJUSTMENT = -100_000

# Video-only band
VIDEO_ONLY_AVC_BONUS = 100_000
VIDEO_ONLY_720_BONUS = 10_000
VIDEO_ONLY_MP4_BONUS = 5_000

# Synthesized fallbacks
PREFERRED_FALLBACK_SCORE = 900_000
SECONDARY_FALLBACK_SCORE = 800_000

KNOWN_FORMAT_HEIGHTS = {BASELINE_FORMAT_ID: 360, HIGH_TIER_FORMAT_ID: 720}

UrlBuilder = Callable[[str], str]


def score_progressive(fmt: FormatDescriptor, prefer_baseline_stable: bool = False) -> int:
    """Priority for a progressive (audio+video) variant."""
    score = fmt.height or 0
    if fmt.is_avc:
        score += AVC_BONUS
    if fmt.is_mp4:
        score += MP4_BONUS

    if prefer_baseline_stable:
        if fmt.format_id == BASELINE_FORMAT_ID:
            score += STABLE_BASELINE_BONUS
        elif fmt.format_id == HIGH_TIER_FORMAT_ID:
            score += STABLE_HIGH_TIER_ADJUSTMENT
    else:
        if fmt.format_id == HIGH_TIER_FORMAT_ID:
            score += HIGH_TIER_BONUS
        elif fmt.format_id == BASELINE_FORMAT_ID:
            score += BASELINE_BONUS

    return score


def score_video_only(fmt: FormatDescriptor) -> int:
    """Priority for a video-only variant."""
    height = fmt.height or 0
    score = height
    if fmt.is_avc:
        score += VIDEO_ONLY_AVC_BONUS
    if height == 720:
        score += VIDEO_ONLY_720_BONUS
    if fmt.is_mp4:
        score += VIDEO_ONLY_MP4_BONUS
    return score


def _video_codec_label(fmt: FormatDescriptor) -> str:
    if not fmt.video_codec or fmt.is_avc:
        return "h264"
    return fmt.video_codec.split(".")[0].lower()


def _audio_codec_label(fmt: FormatDescriptor) -> str:
    codec = fmt.audio_codec.lower()
    if not codec or codec.startswith("mp4a") or codec == "aac":
        return "aac"
    return codec.split(".")[0]


def _describe(height: int | None, layout: StreamLayout, format_id: str) -> str:
    resolution = f"{height}p" if height else "auto"
    return f"YouTube {resolution} {layout.value} (itag {format_id})"


def _rank(candidates: Iterable[CandidateSource]) -> list[CandidateSource]:
    # sorted() is stable, so equal priorities keep catalog order
    return sorted(candidates, key=lambda c: c.priority, reverse=True)


class CandidateScorer:
    """Builds scored candidates for one video under one policy."""

    def __init__(self, policy: ResolutionPolicy):
        self.policy = policy

    def score(
        self,
        video_id: str,
        formats: Iterable[FormatDescriptor],
        url_for: UrlBuilder,
    ) -> list[CandidateSource]:
        """Score and deduplicate the catalog formats, without fallbacks.

        Args:
            video_id: Video the candidates belong to
            formats: Raw descriptors from the catalog
            url_for: Maps a format id to its playback URL

        Returns:
            Candidates sorted by priority, highest first. May be empty.
        """
        candidates: dict[str, CandidateSource] = {}
        dropped = 0

        for fmt in formats:
            format_id = fmt.format_id.strip()
            if not format_id or self.policy.is_blocked(format_id):
                dropped += 1
                continue

            candidate = self._candidate_for(video_id, fmt, format_id, url_for)
            if candidate is None:
                dropped += 1
                continue

            # First write wins
            candidates.setdefault(candidate.source_id, candidate)

        logger.debug(
            f"[Scorer] '{video_id}': {len(candidates)} candidates, {dropped} formats dropped"
        )
        return _rank(candidates.values())

    def with_fallbacks(
        self,
        video_id: str,
        scored: list[CandidateSource],
        url_for: UrlBuilder,
    ) -> list[CandidateSource]:
        """Add synthesized fallbacks for well-known ids missing from `scored`.

        An id the catalog reported but that did not survive filtering (e.g.
        a 22 listed without audio) still gets its fallback. Blocked ids never
        do.
        """
        present = {c.format_id for c in scored}
        candidates = {c.source_id: c for c in scored}
        for fallback in self._synthesize_fallbacks(video_id, present, url_for):
            candidates.setdefault(fallback.source_id, fallback)
        return _rank(candidates.values())

    def _candidate_for(
        self, video_id: str, fmt: FormatDescriptor, format_id: str, url_for: UrlBuilder
    ) -> CandidateSource | None:
        if fmt.is_progressive:
            layout = StreamLayout.PROGRESSIVE
            priority = score_progressive(fmt, self.policy.prefer_baseline_stable)
            streams = (
                MediaStreamInfo("video", _video_codec_label(fmt), 0),
                MediaStreamInfo("audio", _audio_codec_label(fmt), 1),
            )
        elif fmt.is_video_only:
            if self.policy.progressive_only:
                return None
            layout = StreamLayout.VIDEO_ONLY
            priority = score_video_only(fmt)
            streams = (MediaStreamInfo("video", _video_codec_label(fmt), 0),)
        else:
            # Audio-only or no video at all
            return None

        return CandidateSource(
            source_id=f"{video_id}@{format_id}",
            url=url_for(format_id),
            container=fmt.container or "mp4",
            layout=layout,
            priority=priority,
            name=_describe(fmt.height, layout, format_id),
            format_id=format_id,
            streams=streams,
        )

    def _synthesize_fallbacks(
        self, video_id: str, present_format_ids: set[str], url_for: UrlBuilder
    ) -> list[CandidateSource]:
        """Progressive fallbacks for well-known ids with no surviving candidate."""
        if self.policy.prefer_baseline_stable:
            preferred, secondary = BASELINE_FORMAT_ID, HIGH_TIER_FORMAT_ID
        else:
            preferred, secondary = HIGH_TIER_FORMAT_ID, BASELINE_FORMAT_ID

        fallbacks = []
        for format_id, score in (
            (preferred, PREFERRED_FALLBACK_SCORE),
            (secondary, SECONDARY_FALLBACK_SCORE),
        ):
            if format_id in present_format_ids or self.policy.is_blocked(format_id):
                continue
            height = KNOWN_FORMAT_HEIGHTS[format_id]
            fallbacks.append(
                CandidateSource(
                    source_id=f"{video_id}@{format_id}",
                    url=url_for(format_id),
                    container="mp4",
                    layout=StreamLayout.PROGRESSIVE,
                    priority=score,
                    name=_describe(height, StreamLayout.PROGRESSIVE, format_id),
                    format_id=format_id,
                    streams=(
                        MediaStreamInfo("video", "h264", 0),
                        MediaStreamInfo("audio", "aac", 1),
                    ),
                    synthesized=True,
                )
            )

        if fallbacks:
            logger.info(
                f"[Scorer] '{video_id}': synthesized fallbacks for "
                f"{', '.join(c.format_id for c in fallbacks)}"
            )
        return fallbacks
