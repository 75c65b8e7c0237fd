"""Service singletons and dependency injection for the tubesource API."""

from models.resolution_policy import ResolutionPolicy
from services.media_source_resolver import MediaSourceResolver
from utils.config import load_config

# Service singletons
_resolver: MediaSourceResolver | None = None


def get_resolution_policy() -> ResolutionPolicy:
    """Read the resolution policy from configuration.

    Read on every request so configuration changes apply to the next
    resolution without a restart.
    """
    return ResolutionPolicy.from_config(load_config())


def get_media_source_resolver() -> MediaSourceResolver:
    """Get or create the media source resolver instance."""
    global _resolver
    if _resolver is None:
        _resolver = MediaSourceResolver(policy=get_resolution_policy())
    return _resolver


async def close_media_source_resolver() -> None:
    """Close the shared resolver (and its connection pool) if it was created."""
    global _resolver
    if _resolver is not None:
        await _resolver.aclose()
        _resolver = None
