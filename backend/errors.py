"""
Error taxonomy shared by the store, the lifecycle helpers, the session stub
and the offline queue. Every error is recoverable at the caller boundary.
"""


class CivicPulseError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(CivicPulseError):
    """Missing or out-of-range required field on create."""
    status_code = 400


class NotFound(CivicPulseError):
    status_code = 404


class InvalidStatus(CivicPulseError):
    status_code = 400


class InvalidCode(CivicPulseError):
    status_code = 400


class SyncFailure(CivicPulseError):
    """A queued report could not be submitted during a flush."""
    status_code = 503

    def __init__(self, message: str, item_index: int):
        super().__init__(message)
        self.item_index = item_index
