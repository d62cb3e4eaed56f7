"""Domain errors raised by the scheduling core."""


class SchedulingError(Exception):
    """Base class for all scheduling domain errors."""

    pass


class ValidationError(SchedulingError):
    """Input is malformed or violates a creation/update rule (HTTP 400)."""

    pass


class NotFoundError(SchedulingError):
    """Item does not exist or is not owned by the caller (HTTP 404)."""

    pass


class InvalidStateError(SchedulingError):
    """Operation is not permitted in the item's current status (HTTP 400)."""

    pass


class AdapterError(SchedulingError):
    """
    A single target platform call failed.

    Never surfaced to HTTP callers; the worker records it in the
    item's per-target result instead.
    """

    def __init__(self, platform: str, detail: str):
        self.platform = platform
        self.detail = detail
        super().__init__(f"{platform}: {detail}")


class StoreUnavailableError(SchedulingError):
    """Backing storage could not be reached (HTTP 500, safe to retry)."""

    pass
