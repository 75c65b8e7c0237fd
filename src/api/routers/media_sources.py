"""Media source routes: resolve a video id into ordered playable sources."""

import logging

from api.dependencies import get_media_source_resolver, get_resolution_policy
from api.schemas import MediaSourcesResponse
from fastapi import APIRouter, Depends
from models.resolution_policy import ResolutionPolicy
from services.media_source_resolver import MediaSourceResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Media Sources"])


@router.get(
    "/api/media-sources/{video_id}",
    response_model=MediaSourcesResponse,
    summary="Resolve media sources",
    description=(
        "Resolves a video id into a ranked, preflighted list of playable sources. "
        "An empty list means no playable source; it is not an error."
    ),
)
async def get_media_sources(
    video_id: str,
    resolver: MediaSourceResolver = Depends(get_media_source_resolver),
    policy: ResolutionPolicy = Depends(get_resolution_policy),
) -> dict:
    """Resolve media sources for a video."""
    result = await resolver.resolve(video_id, policy=policy)
    if result.fetch_failure is not None:
        logger.info(f"Catalog fetch failed for '{video_id}'; served degraded sources")
    return result.to_dict()
