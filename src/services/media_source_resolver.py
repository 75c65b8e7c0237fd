"""Media Source Resolver - turns a video id into an ordered list of playable sources.

Pipeline per call: fetch formats -> score candidates -> place the policy
candidate -> preflight -> assemble. Nothing is cached between calls; the only
shared resource is the HTTP connection pool.
"""

import logging
from typing import Optional

import httpx

from models.media_source import ResolutionResult
from models.resolution_policy import ResolutionPolicy
from services.media_sources import policy_candidate as policy_injector
from services.media_sources.assembler import assemble
from services.media_sources.catalog_client import CatalogClient, CatalogFetchResult
from services.media_sources.errors import NoCandidates
from services.media_sources.preflight import PreflightObserver, PreflightValidator
from services.media_sources.scoring import CandidateScorer
from utils.logging import resolution_context

logger = logging.getLogger(__name__)

ITEM_ID_PREFIX = "vid:"


def normalize_video_id(raw: Optional[str]) -> str:
    """Strip whitespace and the host's `vid:` item prefix."""
    video_id = (raw or "").strip()
    if video_id.startswith(ITEM_ID_PREFIX):
        video_id = video_id[len(ITEM_ID_PREFIX):].strip()
    return video_id


class MediaSourceResolver:
    """Resolves video ids into validated, ordered media sources.

    Safe to share between concurrent resolutions: every call builds its own
    candidates and reads its policy once. Use as an async context manager or
    call `aclose()` when done if the resolver created its own HTTP client.
    """

    def __init__(
        self,
        policy: Optional[ResolutionPolicy] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the resolver.

        Args:
            policy: Default policy for calls that do not pass one. Loaded
                from the environment when omitted.
            http_client: Shared client. A new one is created (and owned)
                when omitted.
        """
        self.policy = policy or ResolutionPolicy.from_config()
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=self.policy.fetch_timeout, follow_redirects=True
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "MediaSourceResolver":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def resolve(
        self,
        video_id: str,
        policy: Optional[ResolutionPolicy] = None,
        observer: Optional[PreflightObserver] = None,
    ) -> ResolutionResult:
        """Resolve a video id into ordered playable sources.

        Never raises for upstream or internal failures; cancel the awaiting
        task to abort in-flight requests.

        Args:
            video_id: Catalog video id (a `vid:` prefix is accepted)
            policy: Policy for this call, defaults to the resolver's
            observer: Optional callback receiving every preflight outcome

        Returns:
            ResolutionResult; `sources` is empty only when nothing is playable
        """
        policy = policy or self.policy
        vid = normalize_video_id(video_id)
        if not vid:
            logger.warning(f"[Resolver] Blank video id {video_id!r}; nothing to resolve")
            return ResolutionResult(video_id="", failure=NoCandidates(""))

        with resolution_context(vid):
            try:
                return await self._resolve(vid, policy, observer)
            except Exception as e:
                logger.exception(f"[Resolver] Unexpected failure resolving '{vid}': {e}")
                return self._emergency_result(vid, policy, e)

    async def _resolve(
        self,
        vid: str,
        policy: ResolutionPolicy,
        observer: Optional[PreflightObserver],
    ) -> ResolutionResult:
        logger.info(
            f"[Resolver] '{vid}' base={policy.base_url} policy={policy.format_policy} "
            f"progressive_only={policy.progressive_only} preflight={policy.preflight_enabled} "
            f"preflight_max={policy.preflight_max_candidates}"
        )
        catalog = CatalogClient(self.client, policy.base_url)

        fetch: CatalogFetchResult = await catalog.fetch_formats(vid, policy.fetch_timeout)

        def url_for(format_id: str) -> str:
            return catalog.play_url(vid, format_id)

        scorer = CandidateScorer(policy)
        scored = scorer.score(vid, fetch.formats, url_for)
        catalog_unusable = fetch.failed or not scored

        direct = None
        if policy.include_policy_candidate and not policy.use_proxy_playback:
            direct = await catalog.resolve_direct(vid, policy.format_policy, policy.list_timeout)

        injection = policy_injector.inject(
            vid,
            policy,
            catalog_unusable,
            proxy_url=catalog.policy_url(vid, policy.format_policy),
            direct=direct,
        )
        if not injection.suppresses_fallbacks:
            scored = scorer.with_fallbacks(vid, scored, url_for)

        ranked = policy_injector.preflight_order(scored, injection)

        validator = PreflightValidator(self.client, policy, observer=observer)
        report = await validator.validate(ranked)

        assembly = assemble(
            ranked,
            report,
            injection.candidate,
            policy_first=injection.placement is policy_injector.PolicyPlacement.FIRST,
        )

        result = ResolutionResult(
            video_id=vid,
            sources=assembly.sources,
            soft_fallback=assembly.soft_fallback,
            fetch_failure=fetch.failure,
            preflight=report.outcomes,
        )
        if result.is_empty:
            result.failure = NoCandidates(vid)
            logger.warning(f"[Resolver] '{vid}': no playable sources")
        else:
            logger.info(
                f"[Resolver] '{vid}': candidates={len(ranked)} returned={len(result.sources)} "
                f"soft_fallback={result.soft_fallback} first={result.sources[0].source_id}"
            )
        return result

    def _emergency_result(
        self, vid: str, policy: ResolutionPolicy, error: Exception
    ) -> ResolutionResult:
        """Policy-only result for when the pipeline itself broke."""
        result = ResolutionResult(video_id=vid, failure=error)
        if policy.include_policy_candidate:
            catalog = CatalogClient(self.client, policy.base_url)
            result.sources = [
                policy_injector.build_policy_candidate(
                    vid, policy, catalog.policy_url(vid, policy.format_policy)
                )
            ]
        return result
