"""Resolution assembly: soft-fallback, policy backup and final ordering.

Preflight spends its probe budget in priority order (resolution and codec
first). The order the host player sees is a separate delivery-reliability
rank where the empirically most stable encodings lead.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from models.media_source import BASELINE_FORMAT_ID, HIGH_TIER_FORMAT_ID, CandidateSource
from services.media_sources.preflight import PreflightReport

logger = logging.getLogger(__name__)

BASELINE_RANK = 0
HIGH_TIER_RANK = 1
OTHER_RANK = 2
POLICY_RANK = 9
POLICY_FIRST_RANK = -1


@dataclass
class Assembly:
    sources: list[CandidateSource]
    soft_fallback: bool = False


def delivery_rank(candidate: CandidateSource, policy_first: bool = False) -> int:
    """Rank used for the final ordering (lower first)."""
    if candidate.is_policy:
        return POLICY_FIRST_RANK if policy_first else POLICY_RANK
    if candidate.format_id == BASELINE_FORMAT_ID:
        return BASELINE_RANK
    if candidate.format_id == HIGH_TIER_FORMAT_ID:
        return HIGH_TIER_RANK
    return OTHER_RANK


def final_order(sources: list[CandidateSource], policy_first: bool = False) -> list[CandidateSource]:
    """Stable re-rank by delivery reliability."""
    return sorted(sources, key=lambda c: delivery_rank(c, policy_first))


def _dedupe(sources: list[CandidateSource]) -> list[CandidateSource]:
    seen: set[str] = set()
    unique = []
    for source in sources:
        if source.source_id in seen:
            continue
        seen.add(source.source_id)
        unique.append(source)
    return unique


def assemble(
    ranked: list[CandidateSource],
    report: PreflightReport,
    policy_candidate: Optional[CandidateSource],
    policy_first: bool = False,
) -> Assembly:
    """Combine preflight results into the final ordered source list.

    Args:
        ranked: Candidates in preflight order (what was offered for probing)
        report: Preflight outcome for `ranked`
        policy_candidate: The policy source, or None when disabled
        policy_first: Keep the policy source ahead of everything

    Returns:
        Assembly with the ordered sources. Empty only when there was no
        candidate at all and the policy source is disabled.
    """
    validated = list(report.validated)

    if not validated and ranked and report.probed:
        # Nothing passed preflight: an unverified guess beats no playback
        sources = list(ranked)
        if policy_candidate is not None:
            sources = [policy_candidate, *[s for s in sources if s.source_id != policy_candidate.source_id]]
        logger.warning(
            f"[Assembler] No candidate passed preflight; soft-fallback with {len(sources)} unvalidated"
        )
        return Assembly(sources=_dedupe(sources), soft_fallback=True)

    if validated:
        if policy_candidate is not None and all(
            s.source_id != policy_candidate.source_id for s in validated
        ):
            validated.append(policy_candidate)
        return Assembly(sources=final_order(_dedupe(validated), policy_first))

    # No candidates reached preflight at all
    if policy_candidate is not None:
        return Assembly(sources=[policy_candidate])
    if ranked:
        return Assembly(sources=[ranked[0]])
    return Assembly(sources=[])
