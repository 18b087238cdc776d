"""Primitives: exceptions, record identity."""

from __future__ import annotations

from .exceptions import (
    CrudAdminError,
    EntryStateError,
    HttpError,
    InvalidMutationRequestError,
    ProviderFailureError,
    QueueConflictError,
    get_error_message,
)
from .identifiers import Identifier, RecordKey, same_id

__all__ = [
    "CrudAdminError",
    "EntryStateError",
    "HttpError",
    "Identifier",
    "InvalidMutationRequestError",
    "ProviderFailureError",
    "QueueConflictError",
    "RecordKey",
    "get_error_message",
    "same_id",
]
