"""
Error Taxonomy
==============

Exceptions raised across the ingest service.

Propagation:
    - ConfigurationError, ConnectFailure: escape to the process boundary
      and map to a non-zero exit code
    - SourceOpenError: absorbed by ConnectionManager retries
    - PersistFailure, ImageEncodeError: absorbed by FrameScheduler, the
      frame is skipped

Read failures are not exceptions. FrameScheduler reports them as
EmitResult.READ_FAILURE so the control loop can hand over to recovery.
"""


class IngestError(Exception):
    """Base class for all ingest service errors."""
    pass


class ConfigurationError(IngestError):
    """Raised when configuration is invalid or the output directory is unusable."""
    pass


class ConnectFailure(IngestError):
    """Raised when the bounded connection attempt budget is exhausted."""

    def __init__(self, endpoint: str, attempts: int) -> None:
        super().__init__(
            f"Could not connect to {endpoint} after {attempts} attempts"
        )
        self.endpoint = endpoint
        self.attempts = attempts


class SourceOpenError(IngestError):
    """Raised by a frame source when the endpoint cannot be opened."""
    pass


class ImageEncodeError(IngestError):
    """Raised when a frame cannot be encoded to JPEG."""
    pass


class PersistFailure(IngestError):
    """Raised when a selected frame cannot be encoded or written."""
    pass
