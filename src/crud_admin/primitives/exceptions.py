"""Exception hierarchy for crud-admin."""

from __future__ import annotations

from typing import Any


class CrudAdminError(Exception):
    """Root exception for the entire crud-admin package."""


class InvalidMutationRequestError(CrudAdminError):
    """Raised when a mutation request fails its preconditions.

    This is a caller bug (missing resource, identifier, payload or rollback
    baseline). It is never retried and is detected before any cache write.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))


class ProviderFailureError(CrudAdminError):
    """Raised (or returned as a cause) when a data provider call fails.

    The original provider exception is kept as ``cause`` and chained as
    ``__cause__`` so tracebacks stay intact.
    """

    def __init__(self, action: str, resource: str, cause: BaseException) -> None:
        self.action = action
        self.resource = resource
        self.cause = cause
        self.message = get_error_message(cause, "notification.http_error")
        super().__init__(f"{action} on {resource!r} failed: {self.message}")
        self.__cause__ = cause


class QueueConflictError(CrudAdminError):
    """Raised when an undoable mutation collides with a live entry.

    Only raised under ``ConflictPolicy.REJECT``.
    """

    def __init__(self, stream: str) -> None:
        self.stream = stream
        super().__init__(f"An undoable mutation is already pending on {stream!r}")


class EntryStateError(CrudAdminError):
    """Raised when a pending mutation is used outside its state machine."""


class HttpError(CrudAdminError):
    """Error shape raised by HTTP-backed data providers."""

    def __init__(self, message: str, status: int, body: Any = None) -> None:
        self.message = message
        self.status = status
        self.body = body
        super().__init__(message)


def get_error_message(error: Any, default_message: str) -> str:
    """Return a human readable message for any error value.

    Strings are returned as-is, objects exposing a non-empty ``message``
    attribute (or exception args) use it, everything else falls back to
    *default_message*.
    """
    if isinstance(error, str):
        return error
    if not error:
        return default_message
    message = getattr(error, "message", None)
    if message:
        return str(message)
    if isinstance(error, BaseException) and error.args and error.args[0]:
        return str(error.args[0])
    return default_message
