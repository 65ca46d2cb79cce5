"""
Error taxonomy for the tracker core.

Per-entry failures (MalformedRecord, PropagationFailure) are caught where a
batch is processed and never abort it. PersistenceFailure is caught by the
stores and logged. UpstreamUnavailable and NotFound reach the caller.
"""


class TrackerError(Exception):
    """Base class for all tracker errors."""

    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class UpstreamUnavailable(TrackerError):
    """Upstream catalog source is unavailable."""

    status_code = 503


class MalformedRecord(TrackerError, ValueError):
    """Element set record is malformed."""

    status_code = 422


class PropagationFailure(TrackerError):
    """Element set could not be propagated."""


class PersistenceFailure(TrackerError):
    """Persisted document could not be written."""


class NotFound(TrackerError):
    """No satellite selection exists yet; trigger a refresh first."""

    status_code = 404
