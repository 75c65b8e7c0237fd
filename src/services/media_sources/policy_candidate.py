"""Policy candidate: a source the bridge negotiates server-side."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.media_source import POLICY_SUFFIX, CandidateSource, StreamLayout
from models.resolution_policy import ResolutionPolicy
from services.media_sources.catalog_client import DirectPlayback

logger = logging.getLogger(__name__)

POLICY_PRIORITY = 100


class PolicyPlacement(str, Enum):
    """Where the policy candidate goes relative to the scored candidates."""

    NONE = "none"  # disabled by policy
    FIRST = "first"  # leads the preflight list
    FETCH_ERROR = "fetch_error"  # replaces synthesized fallbacks after a failed fetch
    BACKUP = "backup"  # appended after preflight only


@dataclass(frozen=True)
class PolicyInjection:
    candidate: Optional[CandidateSource]
    placement: PolicyPlacement

    @property
    def suppresses_fallbacks(self) -> bool:
        return self.placement is PolicyPlacement.FETCH_ERROR

    @property
    def leads_preflight(self) -> bool:
        return self.placement in (PolicyPlacement.FIRST, PolicyPlacement.FETCH_ERROR)


def decide_placement(policy: ResolutionPolicy, catalog_unusable: bool) -> PolicyPlacement:
    """Pick the policy candidate placement.

    Args:
        policy: Resolution policy
        catalog_unusable: The fetch failed or returned no usable formats.
            Transport errors and non-success statuses count the same.
    """
    if not policy.include_policy_candidate:
        return PolicyPlacement.NONE
    if policy.policy_first:
        return PolicyPlacement.FIRST
    if catalog_unusable and policy.policy_on_fetch_error:
        return PolicyPlacement.FETCH_ERROR
    return PolicyPlacement.BACKUP


def build_policy_candidate(
    video_id: str,
    policy: ResolutionPolicy,
    proxy_url: str,
    direct: Optional[DirectPlayback] = None,
) -> CandidateSource:
    """Create the `<video>@policy` candidate.

    No streams are declared: the negotiated layout is unknown ahead of time
    and a wrong declaration can make the host player fail outright.
    """
    url = direct.url if direct else proxy_url
    container = direct.container if direct else "mp4"
    return CandidateSource(
        source_id=f"{video_id}@{POLICY_SUFFIX}",
        url=url,
        container=container,
        layout=StreamLayout.NEGOTIATED,
        priority=POLICY_PRIORITY,
        name=f"YouTube Policy: {policy.format_policy}",
        streams=(),
    )


def inject(
    video_id: str,
    policy: ResolutionPolicy,
    catalog_unusable: bool,
    proxy_url: str,
    direct: Optional[DirectPlayback] = None,
) -> PolicyInjection:
    """Build the policy candidate (if enabled) together with its placement."""
    placement = decide_placement(policy, catalog_unusable)
    if placement is PolicyPlacement.NONE:
        return PolicyInjection(candidate=None, placement=placement)

    candidate = build_policy_candidate(video_id, policy, proxy_url, direct)
    logger.debug(f"[Policy] '{video_id}': placement={placement.value} url={candidate.url}")
    return PolicyInjection(candidate=candidate, placement=placement)


def preflight_order(
    scored: list[CandidateSource], injection: PolicyInjection
) -> list[CandidateSource]:
    """Ranked list handed to the preflight validator."""
    if injection.candidate is not None and injection.leads_preflight:
        return [injection.candidate, *scored]
    return list(scored)
