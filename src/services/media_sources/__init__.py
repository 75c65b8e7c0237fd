"""Media source resolution components (catalog, scoring, policy, preflight, assembly)."""

from services.media_sources.assembler import assemble, delivery_rank, final_order
from services.media_sources.catalog_client import CatalogClient, CatalogFetchResult, DirectPlayback
from services.media_sources.errors import FetchFailed, MediaSourceError, NoCandidates, ProbeFailed
from services.media_sources.policy_candidate import PolicyPlacement, inject
from services.media_sources.preflight import PreflightObserver, PreflightReport, PreflightValidator
from services.media_sources.scoring import CandidateScorer

__all__ = [
    "assemble",
    "delivery_rank",
    "final_order",
    "CatalogClient",
    "CatalogFetchResult",
    "DirectPlayback",
    "FetchFailed",
    "MediaSourceError",
    "NoCandidates",
    "ProbeFailed",
    "PolicyPlacement",
    "inject",
    "PreflightObserver",
    "PreflightReport",
    "PreflightValidator",
    "CandidateScorer",
]
