"""Error types for media source resolution.

None of these escape `MediaSourceResolver.resolve`. They are raised inside a
component, caught at its boundary and recorded on the returned result.
"""

from typing import Optional


class MediaSourceError(Exception):
    """Base error for media source resolution."""

    pass


class FetchFailed(MediaSourceError):
    """The catalog could not be reached or answered with a non-success status."""

    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    INVALID_PAYLOAD = "invalid_payload"

    def __init__(self, message: str, reason: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.reason = reason
        self.status_code = status_code


class ProbeFailed(MediaSourceError):
    """A preflight probe did not confirm the candidate is streamable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoCandidates(MediaSourceError):
    """Resolution produced nothing playable for the video."""

    def __init__(self, video_id: str):
        super().__init__(f"No playable source candidates for '{video_id}'")
        self.video_id = video_id
