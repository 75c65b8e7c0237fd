# Data models for tubesource
from .media_source import (
    BASELINE_FORMAT_ID,
    HIGH_TIER_FORMAT_ID,
    CandidateSource,
    FormatDescriptor,
    MediaStreamInfo,
    PreflightOutcome,
    ResolutionResult,
    StreamLayout,
)
from .resolution_policy import ResolutionPolicy

__all__ = [
    "BASELINE_FORMAT_ID",
    "HIGH_TIER_FORMAT_ID",
    "CandidateSource",
    "FormatDescriptor",
    "MediaStreamInfo",
    "PreflightOutcome",
    "ResolutionResult",
    "StreamLayout",
    "ResolutionPolicy",
]
