"""Record identity primitives."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

Identifier = Union[str, int]


@dataclass(frozen=True)
class RecordKey:
    """
    Identifies a single record of a resource.

    Identifiers are compared as strings so that ``1`` and ``"1"`` address the
    same record, matching what most data providers return.

    Examples:
        >>> RecordKey.of("posts", 1) == RecordKey.of("posts", "1")
        True
    """

    resource: str
    record_id: str

    @classmethod
    def of(cls, resource: str, record_id: Identifier) -> RecordKey:
        return cls(resource, str(record_id))

    def __lt__(self, other: RecordKey) -> bool:
        return (self.resource, self.record_id) < (other.resource, other.record_id)

    def __str__(self) -> str:
        return f"{self.resource}:{self.record_id}"


def same_id(left: Identifier | None, right: Identifier | None) -> bool:
    """Compare two identifiers loosely (``1 == "1"``)."""
    if left is None or right is None:
        return False
    return str(left) == str(right)
