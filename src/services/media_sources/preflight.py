"""Preflight validation: cheap Range probes before handing sources to the player.

Candidates are probed one at a time, in rank order, to bound how many
connections a single resolution opens against the upstream.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from models.media_source import CandidateSource, PreflightOutcome
from models.resolution_policy import UNVALIDATED_TAKE, ResolutionPolicy
from services.media_sources.errors import ProbeFailed

logger = logging.getLogger(__name__)

OK_STATUSES = (200, 206)

PreflightObserver = Callable[[CandidateSource, PreflightOutcome], None]


def range_header(probe_bytes: int) -> str:
    """Range header value for a probe. Zero bytes means a 1-byte probe."""
    if probe_bytes <= 0:
        return "bytes=0-0"
    return f"bytes=0-{probe_bytes - 1}"


def classify_probe(
    status_code: Optional[int],
    probe_bytes: int,
    bytes_read: int = 0,
    content_length: Optional[int] = None,
    chunked: bool = False,
) -> bool:
    """Decide whether a probe response proves the source is streamable.

    With a byte budget, at least one body byte must have arrived. Without
    one, the headers alone must show a partial or non-empty body.
    """
    if status_code not in OK_STATUSES:
        return False
    if probe_bytes > 0:
        return bytes_read > 0
    return status_code == 206 or (content_length or 0) > 0 or chunked


@dataclass
class _ProbeState:
    """Filled in as the probe progresses so a timeout keeps what was seen."""

    status_code: Optional[int] = None
    content_length: Optional[int] = None
    content_range: Optional[str] = None
    accept_ranges: Optional[str] = None
    chunked: bool = False
    bytes_read: int = 0


@dataclass
class PreflightReport:
    """Validated candidates (rank order kept) and per-probe outcomes."""

    validated: list[CandidateSource] = field(default_factory=list)
    outcomes: list[PreflightOutcome] = field(default_factory=list)
    probed: bool = True

    @property
    def reachable_count(self) -> int:
        return sum(1 for o in self.outcomes if o.reachable)


class PreflightValidator:
    """Probes ranked candidates with partial-content requests."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        policy: ResolutionPolicy,
        observer: Optional[PreflightObserver] = None,
    ):
        self.http = http_client
        self.policy = policy
        self.observer = observer

    async def validate(self, ranked: list[CandidateSource]) -> PreflightReport:
        """Validate up to `preflight_max_candidates` candidates, sequentially.

        When preflight is disabled the top few candidates are returned
        unprobed.
        """
        if not self.policy.preflight_enabled:
            logger.info("[Preflight] Disabled; serving top candidates unprobed")
            return PreflightReport(validated=list(ranked[:UNVALIDATED_TAKE]), probed=False)

        report = PreflightReport()
        for candidate in ranked[: self.policy.preflight_max_candidates]:
            if not candidate.url:
                continue
            outcome = await self.probe(candidate)
            report.outcomes.append(outcome)
            if outcome.reachable:
                report.validated.append(candidate)

        logger.info(
            f"[Preflight] {report.reachable_count}/{len(report.outcomes)} probed candidates reachable"
        )
        return report

    async def probe(self, candidate: CandidateSource) -> PreflightOutcome:
        """Probe one candidate. Never raises, except on cancellation."""
        state = _ProbeState()
        budget = self.policy.preflight_probe_bytes
        error: Optional[str] = None
        timed_out = False
        started = time.monotonic()

        try:
            await asyncio.wait_for(
                self._probe(candidate.url, state), timeout=self.policy.preflight_timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            timed_out = True
            error = f"timeout: {type(e).__name__}"
        except ProbeFailed as e:
            error = f"ProbeFailed: {e}"
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            error = f"{type(e).__name__}: {e}"

        if error and not timed_out:
            reachable = False
        else:
            reachable = classify_probe(
                state.status_code,
                budget,
                bytes_read=state.bytes_read,
                content_length=state.content_length,
                chunked=state.chunked,
            )

        outcome = PreflightOutcome(
            source_id=candidate.source_id,
            reachable=reachable,
            status_code=state.status_code,
            content_length=state.content_length,
            content_range=state.content_range,
            accept_ranges=state.accept_ranges,
            chunked=state.chunked,
            bytes_read=state.bytes_read,
            error=error,
            elapsed_ms=(time.monotonic() - started) * 1000,
        )

        logger.debug(
            f"[Preflight] {candidate.source_id}: reachable={reachable} "
            f"status={state.status_code} len={state.content_length} "
            f"range={state.content_range} accept={state.accept_ranges} "
            f"read={state.bytes_read} error={error}"
        )
        self._notify(candidate, outcome)
        return outcome

    async def _probe(self, url: str, state: _ProbeState) -> None:
        budget = self.policy.preflight_probe_bytes
        headers = {"Range": range_header(budget)}

        async with self.http.stream(
            "GET",
            url,
            headers=headers,
            timeout=self.policy.preflight_timeout,
            follow_redirects=True,
        ) as response:
            state.status_code = response.status_code
            state.content_length = _parse_length(response.headers.get("content-length"))
            state.content_range = response.headers.get("content-range")
            state.accept_ranges = response.headers.get("accept-ranges")
            state.chunked = "chunked" in response.headers.get("transfer-encoding", "").lower()

            if response.status_code not in OK_STATUSES:
                raise ProbeFailed(
                    f"status {response.status_code}", status_code=response.status_code
                )

            if budget <= 0:
                return

            # Never read past the budget
            async for chunk in response.aiter_bytes():
                state.bytes_read += len(chunk)
                if state.bytes_read >= budget:
                    break

    def _notify(self, candidate: CandidateSource, outcome: PreflightOutcome) -> None:
        if self.observer is None:
            return
        try:
            self.observer(candidate, outcome)
        except Exception as e:
            logger.warning(f"[Preflight] Observer failed for {candidate.source_id}: {e}")


def _parse_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
