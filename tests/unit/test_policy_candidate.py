"""Unit tests for policy candidate placement."""

from models.media_source import CandidateSource, StreamLayout
from models.resolution_policy import ResolutionPolicy
from services.media_sources.catalog_client import DirectPlayback
from services.media_sources.policy_candidate import (
    POLICY_PRIORITY,
    PolicyPlacement,
    build_policy_candidate,
    decide_placement,
    inject,
    preflight_order,
)

PROXY_URL = "http://bridge.test/play/abc123?policy=h264_mp4"


def scored_candidate(format_id: str) -> CandidateSource:
    return CandidateSource(
        source_id=f"abc123@{format_id}",
        url=f"http://bridge.test/play/abc123?itag={format_id}",
        container="mp4",
        layout=StreamLayout.PROGRESSIVE,
        priority=1,
        format_id=format_id,
    )


class TestDecidePlacement:
    """Tests for decide_placement."""

    def test_disabled(self):
        """A disabled policy candidate is never placed."""
        policy = ResolutionPolicy(include_policy_candidate=False, policy_first=True)
        assert decide_placement(policy, catalog_unusable=True) is PolicyPlacement.NONE

    def test_policy_first_wins_over_fetch_error(self):
        """Policy-first applies whether or not the catalog is usable."""
        policy = ResolutionPolicy(policy_first=True)
        assert decide_placement(policy, catalog_unusable=True) is PolicyPlacement.FIRST
        assert decide_placement(policy, catalog_unusable=False) is PolicyPlacement.FIRST

    def test_fetch_error(self):
        """An unusable catalog places the policy candidate for the fetch error."""
        policy = ResolutionPolicy()
        assert decide_placement(policy, catalog_unusable=True) is PolicyPlacement.FETCH_ERROR

    def test_fetch_error_placement_can_be_disabled(self):
        """Without fetch-error placement the candidate is a backup."""
        policy = ResolutionPolicy(policy_on_fetch_error=False)
        assert decide_placement(policy, catalog_unusable=True) is PolicyPlacement.BACKUP

    def test_backup_when_catalog_usable(self):
        """A usable catalog makes the policy candidate a backup."""
        assert decide_placement(ResolutionPolicy(), catalog_unusable=False) is PolicyPlacement.BACKUP


class TestBuildPolicyCandidate:
    """Tests for the policy candidate itself."""

    def test_proxy_candidate(self):
        """The proxy candidate carries the policy id, URL, priority and label."""
        policy = ResolutionPolicy(format_policy="h264_mp4")

        candidate = build_policy_candidate("abc123", policy, PROXY_URL)

        assert candidate.source_id == "abc123@policy"
        assert candidate.url == PROXY_URL
        assert candidate.container == "mp4"
        assert candidate.priority == POLICY_PRIORITY
        assert candidate.name == "YouTube Policy: h264_mp4"
        assert candidate.is_policy is True
        assert candidate.streams == ()

    def test_direct_playback_replaces_proxy_url(self):
        """A direct URL and its container replace the proxy values."""
        direct = DirectPlayback(url="https://cdn.test/v.webm", container="webm")

        candidate = build_policy_candidate("abc123", ResolutionPolicy(), PROXY_URL, direct)

        assert candidate.url == "https://cdn.test/v.webm"
        assert candidate.container == "webm"


class TestInjection:
    """Tests for inject and preflight_order."""

    def test_disabled_injection_has_no_candidate(self):
        """Disabled injection leaves the preflight order untouched."""
        injection = inject("abc123", ResolutionPolicy(include_policy_candidate=False), True, PROXY_URL)

        assert injection.candidate is None
        assert injection.suppresses_fallbacks is False
        assert preflight_order([scored_candidate("18")], injection)[0].format_id == "18"

    def test_fetch_error_leads_and_suppresses_fallbacks(self):
        """Fetch-error placement leads preflight and drops fallbacks."""
        injection = inject("abc123", ResolutionPolicy(), True, PROXY_URL)

        assert injection.placement is PolicyPlacement.FETCH_ERROR
        assert injection.suppresses_fallbacks is True
        assert [c.source_id for c in preflight_order([], injection)] == ["abc123@policy"]

    def test_policy_first_leads_preflight(self):
        """Policy-first puts the policy candidate ahead of scored ones."""
        injection = inject("abc123", ResolutionPolicy(policy_first=True), False, PROXY_URL)
        ranked = preflight_order([scored_candidate("18"), scored_candidate("22")], injection)

        assert [c.source_id for c in ranked] == ["abc123@policy", "abc123@18", "abc123@22"]
        assert injection.suppresses_fallbacks is False

    def test_backup_is_not_probed(self):
        """A backup policy candidate is kept out of preflight."""
        injection = inject("abc123", ResolutionPolicy(), False, PROXY_URL)
        ranked = preflight_order([scored_candidate("18")], injection)

        assert injection.placement is PolicyPlacement.BACKUP
        assert [c.source_id for c in ranked] == ["abc123@18"]
