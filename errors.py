from __future__ import annotations


class TypingError(Exception):
    """Base class for errors scoped to one request or one session."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TypingError):
    status_code = 400


class ConflictError(TypingError):
    status_code = 409


class StorageUnavailable(TypingError):
    """Counter or record write failed. The caller may retry."""

    status_code = 503


class UpstreamUnavailable(TypingError):
    """The prompt source could not be reached or returned garbage."""

    status_code = 502


class SessionStateError(RuntimeError):
    """Raised when the session controller is asked for a transition it doesn't allow."""


_BY_STATUS = {
    cls.status_code: cls
    for cls in (ValidationError, ConflictError, StorageUnavailable, UpstreamUnavailable)
}


def error_for_status(status_code: int, message: str) -> TypingError:
    cls = _BY_STATUS.get(status_code)
    if cls is None:
        error = TypingError(message)
        error.status_code = status_code
        return error
    return cls(message)
