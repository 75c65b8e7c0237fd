"""Shared pytest fixtures for tubesource tests."""

import sys
from pathlib import Path
from typing import Dict, List

import pytest

# Add src directory to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

BRIDGE = "http://bridge.test"
VIDEO_ID = "abc123"


@pytest.fixture
def bridge() -> str:
    """Base URL of the mocked bridge."""
    return BRIDGE


@pytest.fixture
def video_id() -> str:
    return VIDEO_ID


@pytest.fixture
def policy():
    """Resolution policy pointed at the mocked bridge with short timeouts."""
    from models.resolution_policy import ResolutionPolicy

    return ResolutionPolicy(
        base_url=BRIDGE,
        format_policy="h264_mp4",
        fetch_timeout=1.0,
        list_timeout=1.0,
        preflight_timeout=1.0,
        preflight_probe_bytes=1024,
    )


@pytest.fixture
def sample_formats_payload() -> Dict:
    """Catalog response with progressive, video-only and audio-only entries."""
    return {
        "id": VIDEO_ID,
        "formats": [
            {
                "itag": 18,
                "ext": "mp4",
                "has_video": True,
                "has_audio": True,
                "vcodec": "avc1.42001E",
                "acodec": "mp4a.40.2",
                "height": 360,
                "quality_label": "360p",
            },
            {
                "itag": 22,
                "ext": "mp4",
                "has_video": True,
                "has_audio": True,
                "vcodec": "avc1.64001F",
                "acodec": "mp4a.40.2",
                "height": 720,
                "quality_label": "720p",
            },
            {
                "itag": 137,
                "ext": "mp4",
                "has_video": True,
                "has_audio": False,
                "vcodec": "avc1.640028",
                "height": 1080,
            },
            {
                "itag": 248,
                "ext": "webm",
                "has_video": True,
                "has_audio": False,
                "vcodec": "vp9",
                "height": 1080,
            },
            {
                "itag": 140,
                "ext": "m4a",
                "has_video": False,
                "has_audio": True,
                "acodec": "mp4a.40.2",
            },
        ],
    }


@pytest.fixture
def sample_formats(sample_formats_payload) -> List:
    """Parsed FormatDescriptor list for sample_formats_payload."""
    from models.media_source import FormatDescriptor

    return [FormatDescriptor.from_dict(entry) for entry in sample_formats_payload["formats"]]
