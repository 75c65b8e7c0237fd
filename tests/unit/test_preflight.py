"""Unit tests for the preflight validator.

HTTP traffic is mocked with respx; no real network access.
"""

import httpx
import pytest
import respx

from models.media_source import CandidateSource, StreamLayout
from services.media_sources.preflight import (
    PreflightValidator,
    classify_probe,
    range_header,
)

PLAY = "http://bridge.test/play/abc123"


def candidate(format_id: str, priority: int = 1) -> CandidateSource:
    return CandidateSource(
        source_id=f"abc123@{format_id}",
        url=f"{PLAY}?itag={format_id}",
        container="mp4",
        layout=StreamLayout.PROGRESSIVE,
        priority=priority,
        format_id=format_id,
    )


class TestClassifyProbe:
    """Tests for the reachability rules."""

    def test_rejects_non_success_status(self):
        """Only 200 and 206 can be reachable."""
        for status in (None, 301, 403, 404, 416, 500):
            assert classify_probe(status, 1024, bytes_read=10, content_length=10) is False

    def test_byte_budget_requires_body_bytes(self):
        """With a byte budget at least one body byte must arrive."""
        assert classify_probe(206, 1024, bytes_read=1) is True
        assert classify_probe(200, 1024, bytes_read=512) is True
        assert classify_probe(206, 1024, bytes_read=0, content_length=1024) is False

    def test_zero_budget_uses_headers(self):
        """Without a budget the headers decide."""
        assert classify_probe(206, 0) is True
        assert classify_probe(200, 0, content_length=5_000_000) is True
        assert classify_probe(200, 0, chunked=True) is True
        assert classify_probe(200, 0) is False
        assert classify_probe(200, 0, content_length=0) is False

    def test_range_header(self):
        """The Range header covers exactly the byte budget."""
        assert range_header(0) == "bytes=0-0"
        assert range_header(1) == "bytes=0-0"
        assert range_header(65536) == "bytes=0-65535"


class TestPreflightValidator:
    """Tests for PreflightValidator probing."""

    @pytest.mark.asyncio
    async def test_partial_content_is_reachable(self, policy):
        """A 206 with body bytes is reachable and its headers are recorded."""
        async with respx.mock() as router:
            route = router.get(f"{PLAY}?itag=18").mock(
                return_value=httpx.Response(
                    206,
                    content=b"\x00" * 1024,
                    headers={"Content-Range": "bytes 0-1023/99999", "Accept-Ranges": "bytes"},
                )
            )
            async with httpx.AsyncClient() as client:
                outcome = await PreflightValidator(client, policy).probe(candidate("18"))

        assert outcome.reachable is True
        assert outcome.status_code == 206
        assert outcome.bytes_read == 1024
        assert outcome.content_range == "bytes 0-1023/99999"
        assert outcome.accept_ranges == "bytes"
        assert outcome.error is None
        assert route.calls.last.request.headers["Range"] == "bytes=0-1023"

    @pytest.mark.asyncio
    async def test_forbidden_is_not_reachable(self, policy):
        """A 403 is unreachable and nothing is read."""
        async with respx.mock() as router:
            router.get(f"{PLAY}?itag=22").mock(return_value=httpx.Response(403, content=b"nope"))
            async with httpx.AsyncClient() as client:
                outcome = await PreflightValidator(client, policy).probe(candidate("22"))

        assert outcome.reachable is False
        assert outcome.status_code == 403
        assert outcome.bytes_read == 0
        assert "ProbeFailed" in outcome.error

    @pytest.mark.asyncio
    async def test_empty_body_is_not_reachable_with_budget(self, policy):
        """A 200 with an empty body fails when bytes were requested."""
        async with respx.mock() as router:
            router.get(f"{PLAY}?itag=18").mock(return_value=httpx.Response(200, content=b""))
            async with httpx.AsyncClient() as client:
                outcome = await PreflightValidator(client, policy).probe(candidate("18"))

        assert outcome.reachable is False
        assert outcome.status_code == 200

    @pytest.mark.asyncio
    async def test_zero_budget_accepts_content_length(self, policy):
        """A zero budget sends a 1-byte range and accepts a positive length."""
        zero_budget = policy.with_overrides(preflight_probe_bytes=0)
        async with respx.mock() as router:
            route = router.get(f"{PLAY}?itag=18").mock(
                return_value=httpx.Response(200, content=b"x")
            )
            async with httpx.AsyncClient() as client:
                outcome = await PreflightValidator(client, zero_budget).probe(candidate("18"))

        assert outcome.reachable is True
        assert outcome.content_length == 1
        assert route.calls.last.request.headers["Range"] == "bytes=0-0"

    @pytest.mark.asyncio
    async def test_transport_error_is_not_reachable(self, policy):
        """Connection errors become unreachable outcomes."""
        async with respx.mock() as router:
            router.get(f"{PLAY}?itag=18").mock(side_effect=httpx.ConnectError("refused"))
            async with httpx.AsyncClient() as client:
                outcome = await PreflightValidator(client, policy).probe(candidate("18"))

        assert outcome.reachable is False
        assert outcome.status_code is None
        assert outcome.error.startswith("ConnectError")

    @pytest.mark.asyncio
    async def test_timeout_is_not_reachable(self, policy):
        """Timeouts become unreachable outcomes."""
        async with respx.mock() as router:
            router.get(f"{PLAY}?itag=18").mock(side_effect=httpx.ReadTimeout("slow"))
            async with httpx.AsyncClient() as client:
                outcome = await PreflightValidator(client, policy).probe(candidate("18"))

        assert outcome.reachable is False
        assert outcome.error.startswith("timeout")

    @pytest.mark.asyncio
    async def test_validate_is_sequential_capped_and_ordered(self, policy):
        """Probes run in rank order and stop at the candidate cap."""
        capped = policy.with_overrides(preflight_max_candidates=2)
        ranked = [candidate("22", 3), candidate("18", 2), candidate("43", 1)]

        async with respx.mock(assert_all_called=False) as router:
            router.get(f"{PLAY}?itag=22").mock(return_value=httpx.Response(404))
            router.get(f"{PLAY}?itag=18").mock(return_value=httpx.Response(206, content=b"ok"))
            third = router.get(f"{PLAY}?itag=43").mock(return_value=httpx.Response(206, content=b"ok"))
            async with httpx.AsyncClient() as client:
                report = await PreflightValidator(client, capped).validate(ranked)

        assert [o.source_id for o in report.outcomes] == ["abc123@22", "abc123@18"]
        assert [c.format_id for c in report.validated] == ["18"]
        assert report.reachable_count == 1
        assert third.called is False

    @pytest.mark.asyncio
    async def test_disabled_preflight_takes_top_three_without_probing(self, policy):
        """Disabled preflight serves the top three unprobed."""
        disabled = policy.with_overrides(preflight_enabled=False)
        ranked = [candidate(str(i), 10 - i) for i in range(5)]

        async with respx.mock() as router:
            async with httpx.AsyncClient() as client:
                report = await PreflightValidator(client, disabled).validate(ranked)
            assert not router.calls

        assert report.probed is False
        assert [c.format_id for c in report.validated] == ["0", "1", "2"]
        assert report.outcomes == []

    @pytest.mark.asyncio
    async def test_observer_receives_outcomes_and_errors_are_contained(self, policy):
        """Observer errors do not affect validation."""
        seen = []

        def observer(source, outcome):
            seen.append((source.source_id, outcome.reachable))
            raise RuntimeError("observer bug")

        async with respx.mock() as router:
            router.get(f"{PLAY}?itag=18").mock(return_value=httpx.Response(206, content=b"ok"))
            async with httpx.AsyncClient() as client:
                report = await PreflightValidator(client, policy, observer=observer).validate(
                    [candidate("18")]
                )

        assert seen == [("abc123@18", True)]
        assert [c.format_id for c in report.validated] == ["18"]

    @pytest.mark.asyncio
    async def test_malformed_url_is_not_reachable(self, policy):
        """A URL httpx cannot parse is an unreachable outcome, not an exception."""
        broken = CandidateSource(
            source_id="abc123@policy",
            url="http://cdn.test:abc/v.mp4",
            container="mp4",
            layout=StreamLayout.NEGOTIATED,
            priority=100,
        )

        async with httpx.AsyncClient() as client:
            outcome = await PreflightValidator(client, policy).probe(broken)

        assert outcome.reachable is False
        assert outcome.status_code is None
        assert outcome.error.startswith("InvalidURL")

    @pytest.mark.asyncio
    async def test_malformed_url_does_not_stop_validation(self, policy):
        """Candidates after a malformed URL are still probed and validated."""
        broken = CandidateSource(
            source_id="abc123@policy",
            url="http://cdn.test:abc/v.mp4",
            container="mp4",
            layout=StreamLayout.NEGOTIATED,
            priority=100,
        )

        async with respx.mock() as router:
            router.get(f"{PLAY}?itag=18").mock(return_value=httpx.Response(206, content=b"ok"))
            async with httpx.AsyncClient() as client:
                report = await PreflightValidator(client, policy).validate([broken, candidate("18")])

        assert [o.reachable for o in report.outcomes] == [False, True]
        assert [c.source_id for c in report.validated] == ["abc123@18"]
