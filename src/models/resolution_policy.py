"""Resolution policy: the tuning knobs read once per resolution."""

from dataclasses import dataclass, field, replace
from typing import Optional

from utils.config import (
    DEFAULT_BRIDGE_BASE_URL,
    DEFAULT_FORMAT_POLICY,
    DEFAULT_FORMATS_TIMEOUT,
    DEFAULT_LIST_TIMEOUT,
    DEFAULT_PREFLIGHT_TIMEOUT,
    load_config,
)

# Number of top-ranked candidates served unprobed when preflight is disabled
UNVALIDATED_TAKE = 3


@dataclass(frozen=True)
class ResolutionPolicy:
    """Configuration for a single media source resolution.

    Passed explicitly into the resolver so different policies can be used
    side by side in the same process.
    """

    base_url: str = DEFAULT_BRIDGE_BASE_URL
    format_policy: str = DEFAULT_FORMAT_POLICY
    use_proxy_playback: bool = True
    progressive_only: bool = True
    blocked_format_ids: frozenset[str] = field(default_factory=frozenset)
    prefer_baseline_stable: bool = True
    include_policy_candidate: bool = True
    policy_first: bool = False
    policy_on_fetch_error: bool = True
    preflight_enabled: bool = True
    preflight_max_candidates: int = 5
    preflight_probe_bytes: int = 65536
    fetch_timeout: float = DEFAULT_FORMATS_TIMEOUT
    list_timeout: float = DEFAULT_LIST_TIMEOUT
    preflight_timeout: float = DEFAULT_PREFLIGHT_TIMEOUT

    def __post_init__(self):
        # Normalise values that may arrive from loose config sources
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))
        object.__setattr__(
            self,
            "blocked_format_ids",
            frozenset(str(fid).strip() for fid in self.blocked_format_ids if str(fid).strip()),
        )
        object.__setattr__(
            self, "preflight_max_candidates", max(1, int(self.preflight_max_candidates))
        )
        object.__setattr__(
            self, "preflight_probe_bytes", max(0, int(self.preflight_probe_bytes))
        )

    def is_blocked(self, format_id: str) -> bool:
        return format_id in self.blocked_format_ids

    def with_overrides(self, **changes) -> "ResolutionPolicy":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_config(cls, config: Optional[dict] = None) -> "ResolutionPolicy":
        """Create a ResolutionPolicy from application config or environment variables."""
        if config is None:
            config = load_config()

        defaults = cls()
        return cls(
            base_url=config.get("bridge_base_url", defaults.base_url),
            format_policy=config.get("format_policy", defaults.format_policy),
            use_proxy_playback=config.get("use_proxy_playback", defaults.use_proxy_playback),
            progressive_only=config.get("progressive_only", defaults.progressive_only),
            blocked_format_ids=frozenset(config.get("blocked_format_ids", ())),
            prefer_baseline_stable=config.get(
                "prefer_baseline_stable", defaults.prefer_baseline_stable
            ),
            include_policy_candidate=config.get(
                "include_policy_candidate", defaults.include_policy_candidate
            ),
            policy_first=config.get("policy_first", defaults.policy_first),
            policy_on_fetch_error=config.get(
                "policy_on_fetch_error", defaults.policy_on_fetch_error
            ),
            preflight_enabled=config.get("preflight_enabled", defaults.preflight_enabled),
            preflight_max_candidates=config.get(
                "preflight_max_candidates", defaults.preflight_max_candidates
            ),
            preflight_probe_bytes=config.get(
                "preflight_probe_bytes", defaults.preflight_probe_bytes
            ),
            fetch_timeout=config.get("fetch_timeout", defaults.fetch_timeout),
            list_timeout=config.get("list_timeout", defaults.list_timeout),
            preflight_timeout=config.get("preflight_timeout", defaults.preflight_timeout),
        )
