from typing import Any, Optional


class LiblibError(RuntimeError):
    """Base class for every failure raised by the LiblibAI client."""


class ValidationError(LiblibError, ValueError):
    """Raised for bad input before any network call is made."""


class RemoteRejection(LiblibError):
    """The signed API or object storage answered with a non-success status or code."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        code: Optional[int] = None,
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.body = body


class TransportError(LiblibError):
    """Network failure, or a response that could not be parsed."""


class TerminalJobFailure(LiblibError):
    """The remote system reported the job as failed or timed out."""

    def __init__(self, status, reason: Optional[str]):
        self.status = status
        self.reason = reason
        super().__init__(f"Generation {status.name.lower()}: {reason or 'Unknown reason'}")


class JobResultMissing(LiblibError):
    """The job finished successfully but carried no result images."""


class PollingExhausted(LiblibError):
    def __init__(self, attempts: int, last_status=None, last_error: Optional[BaseException] = None):
        self.attempts = attempts
        self.last_status = last_status
        self.last_error = last_error
        super().__init__(f"Max polling attempts reached ({attempts})")


class PollingCancelled(LiblibError):
    """Raised when the caller's stop event is set while waiting for a job."""
