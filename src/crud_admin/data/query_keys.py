"""Query keys shared by readers and the mutation coordinator.

Every key starts with ``(resource, query_name)`` so that a prefix addresses
all cached variants of one query for one resource.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydantic import BaseModel

    from ..ports.query_cache import QueryKey
    from ..primitives.identifiers import Identifier

GET_ONE = "getOne"
GET_LIST = "getList"
GET_MANY = "getMany"
GET_MANY_REFERENCE = "getManyReference"

LIST_QUERIES = (GET_LIST, GET_MANY, GET_MANY_REFERENCE)


def _params_fingerprint(params: BaseModel) -> str:
    return json.dumps(params.model_dump(mode="json"), sort_keys=True, default=str)


def get_one_key(resource: str, record_id: Identifier) -> QueryKey:
    return (resource, GET_ONE, str(record_id))


def get_list_key(resource: str, params: BaseModel) -> QueryKey:
    return (resource, GET_LIST, _params_fingerprint(params))


def get_many_key(resource: str, ids: list[Identifier]) -> QueryKey:
    return (resource, GET_MANY, tuple(str(i) for i in ids))


def get_many_reference_key(resource: str, params: BaseModel) -> QueryKey:
    return (resource, GET_MANY_REFERENCE, _params_fingerprint(params))


def resource_prefix(resource: str) -> QueryKey:
    return (resource,)


def list_prefixes(resource: str) -> list[QueryKey]:
    """Prefixes of every multi-record query of *resource*."""
    return [(resource, name) for name in LIST_QUERIES]
