"""Failures reported to the viewer.

None of these are fatal to a session: callers show ``message`` and carry on.
Nothing is retried automatically.
"""
from typing import Optional

CONNECTION_NOTICE = "Please check your network connection"


class ComplaintDeskError(Exception):
    """Base class; ``message`` is what the viewer is shown."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailure(ComplaintDeskError):
    """Malformed input, rejected before any network call."""


class Busy(ComplaintDeskError):
    """A status change is already in flight for this complaint."""

    def __init__(self, complaint_id: str):
        super().__init__(f"Complaint {complaint_id} already has a status change in progress")
        self.complaint_id = complaint_id


class TransportFailure(ComplaintDeskError):
    """Network unreachable or no structured response obtained."""

    def __init__(self, message: str = CONNECTION_NOTICE):
        super().__init__(message)


class RemoteRejection(ComplaintDeskError):
    """The server answered with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
