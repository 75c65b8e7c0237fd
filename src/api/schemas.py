"""Pydantic request/response models for the tubesource API."""

from pydantic import BaseModel, Field

# =============================================================================
# Response Models
# =============================================================================


class RootResponse(BaseModel):
    """Root endpoint response."""

    message: str
    version: str

    model_config = {"json_schema_extra": {"examples": [{"message": "tubesource API", "version": "1.0.0"}]}}


class HealthResponse(BaseModel):
    """Health check response."""

    status: str

    model_config = {"json_schema_extra": {"examples": [{"status": "healthy"}]}}


class MediaStreamResponse(BaseModel):
    """A stream declared ahead of playback."""

    type: str
    codec: str
    index: int = Field(ge=0)


class MediaSourceResponse(BaseModel):
    """One playable source, in the shape the host player consumes."""

    id: str
    path: str
    protocol: str = "http"
    container: str
    name: str
    supports_direct_play: bool = True
    supports_direct_stream: bool = True
    supports_transcoding: bool = True
    is_infinite_stream: bool = False
    requires_opening: bool = False
    media_streams: list[MediaStreamResponse] | None = None


class MediaSourcesResponse(BaseModel):
    """Ordered sources for a video. Index 0 is the first choice."""

    video_id: str
    sources: list[MediaSourceResponse]
    soft_fallback: bool = False
    fetch_failed: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "video_id": "aqz-KE-bpKQ",
                    "sources": [
                        {
                            "id": "aqz-KE-bpKQ@18",
                            "path": "http://localhost:8080/play/aqz-KE-bpKQ?itag=18",
                            "protocol": "http",
                            "container": "mp4",
                            "name": "YouTube 360p progressive (itag 18)",
                            "media_streams": [
                                {"type": "video", "codec": "h264", "index": 0},
                                {"type": "audio", "codec": "aac", "index": 1},
                            ],
                        },
                        {
                            "id": "aqz-KE-bpKQ@policy",
                            "path": "http://localhost:8080/play/aqz-KE-bpKQ?policy=h264_mp4",
                            "protocol": "http",
                            "container": "mp4",
                            "name": "YouTube Policy: h264_mp4",
                        },
                    ],
                    "soft_fallback": False,
                    "fetch_failed": False,
                }
            ]
        }
    }
