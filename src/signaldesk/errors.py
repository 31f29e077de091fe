"""Exception taxonomy shared by the stores, the dispatcher and the API."""

from __future__ import annotations


class SignalDeskError(Exception):
    """Base exception for all Signal Desk errors."""

    code = "error"

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(message)


class ValidationError(SignalDeskError):
    """Raised when a request is missing required fields or is malformed."""

    code = "validation_error"

    def __init__(self, message: str, field: str | None = None, detail: str | None = None) -> None:
        if field:
            message = f"Validation error for field '{field}': {message}"
        super().__init__(message, detail)
        self.field = field


class InvalidTransitionError(ValidationError):
    """Raised when a status change is not allowed from the current status."""

    code = "invalid_transition"

    def __init__(self, kind: str, current: str, target: str) -> None:
        super().__init__(f"Cannot move {kind} from '{current}' to '{target}'")
        self.current = current
        self.target = target


class NotFoundError(SignalDeskError):
    """Raised when a referenced record does not exist."""

    code = "not_found"

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} not found: {identifier}")
        self.kind = kind
        self.identifier = identifier


class DispatchError(SignalDeskError):
    """Base class for outbound webhook failures."""

    code = "dispatch_error"


class NotConfiguredError(DispatchError):
    """The webhook for a job has not been registered yet."""

    code = "not_configured"

    def __init__(self, job: str) -> None:
        super().__init__(
            f"{job.capitalize()} webhook URL not configured. Please set it up in Settings."
        )
        self.job = job


class DispatchTimeoutError(DispatchError):
    code = "dispatch_timeout"

    def __init__(self, job: str, timeout: float) -> None:
        super().__init__(
            f"{job.capitalize()} webhook timed out after {timeout:g} seconds. "
            "The workflow may still be processing."
        )
        self.job = job


class DispatchHttpError(DispatchError):
    code = "dispatch_http_error"

    def __init__(self, job: str, status_code: int, body: str) -> None:
        super().__init__(f"Webhook returned {status_code}", detail=body or None)
        self.job = job
        self.status_code = status_code
        self.body = body


class DispatchNetworkError(DispatchError):
    code = "dispatch_network_error"

    def __init__(self, job: str, reason: str) -> None:
        super().__init__(f"Failed to reach {job} webhook: {reason}")
        self.job = job
