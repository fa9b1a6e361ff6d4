"""Document persistence: the store protocol and the in-memory implementation.

The in-memory store speaks a small Mongo-flavoured dialect (filter operators,
inclusion/exclusion projections, multi-key sort, skip/limit, population of
reference fields and ``$set``/``$addToSet``/``$pull`` updates). It backs local
development and the test-suite.
"""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence, runtime_checkable
from uuid import uuid4

Document = dict[str, Any]

_COMPARISON_OPERATORS = frozenset(
    {"$eq", "$ne", "$gt", "$gte", "$lt", "$lte", "$in", "$nin", "$exists", "$regex", "$options"}
)
_LOGICAL_OPERATORS = frozenset({"$and", "$or"})
_UPDATE_OPERATORS = frozenset({"$set", "$addToSet", "$pull"})


@dataclass(frozen=True, slots=True)
class Population:
    """Expand ``path`` with the referenced document from ``collection``.

    ``match`` filters referenced documents (non-matching references become
    ``None``) and ``select`` projects them.
    """

    path: str
    collection: str
    match: Document | None = None
    select: Document | None = None


@runtime_checkable
class DocumentStore(Protocol):
    """Interface every persistence backend must implement."""

    supported_operators: frozenset[str]

    async def count(self, collection: str, filter: Document) -> int: ...

    async def find(
        self,
        collection: str,
        filter: Document,
        *,
        projection: Document | None = None,
        sort: Document | None = None,
        skip: int = 0,
        limit: int = 0,
        population: Sequence[Population] = (),
    ) -> list[Document]: ...

    async def find_one(
        self,
        collection: str,
        filter: Document,
        *,
        projection: Document | None = None,
        population: Sequence[Population] = (),
    ) -> Document | None: ...

    async def insert_many(self, collection: str, documents: Sequence[Document]) -> list[Document]: ...

    async def find_one_and_update(
        self,
        collection: str,
        filter: Document,
        update: Document,
        *,
        return_new: bool = False,
        projection: Document | None = None,
        population: Sequence[Population] = (),
    ) -> Document | None: ...

    async def update_many(self, collection: str, filter: Document, update: Document) -> int: ...


@dataclass(slots=True)
class InMemoryDocumentStore:
    """Deterministic document store keyed by collection name and ``_id``."""

    collections: dict[str, dict[str, Document]] = field(default_factory=dict)
    supported_operators: frozenset[str] = _COMPARISON_OPERATORS | _LOGICAL_OPERATORS
    write_count: int = 0
    failure_message: str | None = None

    async def count(self, collection: str, filter: Document) -> int:
        self._maybe_fail()
        return sum(1 for document in self._documents(collection) if matches(document, filter))

    async def find(
        self,
        collection: str,
        filter: Document,
        *,
        projection: Document | None = None,
        sort: Document | None = None,
        skip: int = 0,
        limit: int = 0,
        population: Sequence[Population] = (),
    ) -> list[Document]:
        self._maybe_fail()
        selected = [document for document in self._documents(collection) if matches(document, filter)]
        if sort:
            selected = _sorted(selected, sort)
        if skip:
            selected = selected[skip:]
        if limit:
            selected = selected[:limit]
        return [self._render(document, projection, population) for document in selected]

    async def find_one(
        self,
        collection: str,
        filter: Document,
        *,
        projection: Document | None = None,
        population: Sequence[Population] = (),
    ) -> Document | None:
        self._maybe_fail()
        document = self._first(collection, filter)
        if document is None:
            return None
        return self._render(document, projection, population)

    async def insert_many(self, collection: str, documents: Sequence[Document]) -> list[Document]:
        self._maybe_fail()
        bucket = self.collections.setdefault(collection, {})
        inserted: list[Document] = []
        for document in documents:
            stored = copy.deepcopy(document)
            stored.setdefault("_id", uuid4().hex)
            bucket[stored["_id"]] = stored
            self.write_count += 1
            inserted.append(copy.deepcopy(stored))
        return inserted

    async def find_one_and_update(
        self,
        collection: str,
        filter: Document,
        update: Document,
        *,
        return_new: bool = False,
        projection: Document | None = None,
        population: Sequence[Population] = (),
    ) -> Document | None:
        self._maybe_fail()
        document = self._first(collection, filter)
        if document is None:
            return None

        before = copy.deepcopy(document)
        _apply_update(document, update)
        self.write_count += 1
        return self._render(document if return_new else before, projection, population)

    async def update_many(self, collection: str, filter: Document, update: Document) -> int:
        self._maybe_fail()
        updated = 0
        for document in self._documents(collection):
            if matches(document, filter):
                _apply_update(document, update)
                updated += 1
        self.write_count += updated
        return updated

    def _documents(self, collection: str) -> list[Document]:
        return list(self.collections.get(collection, {}).values())

    def _first(self, collection: str, filter: Document) -> Document | None:
        for document in self._documents(collection):
            if matches(document, filter):
                return document
        return None

    def _render(
        self,
        document: Document,
        projection: Document | None,
        population: Sequence[Population],
    ) -> Document:
        rendered = project(copy.deepcopy(document), projection)
        for rule in population:
            if rule.path in rendered:
                rendered[rule.path] = self._populate(rendered[rule.path], rule)
        return rendered

    def _populate(self, reference: Any, rule: Population) -> Any:
        if isinstance(reference, list):
            expanded = [self._populate(item, rule) for item in reference]
            return [item for item in expanded if item is not None]

        target = self.collections.get(rule.collection, {}).get(reference) if reference is not None else None
        if target is None or not matches(target, rule.match or {}):
            return None
        return project(copy.deepcopy(target), rule.select)

    def _maybe_fail(self) -> None:
        if self.failure_message is None:
            return
        message = self.failure_message
        self.failure_message = None
        raise RuntimeError(message)


def matches(document: Document, filter: Document) -> bool:
    """Return whether ``document`` satisfies a Mongo-style filter."""
    for key, condition in filter.items():
        if key == "$and":
            if not all(matches(document, clause) for clause in condition):
                return False
            continue
        if key == "$or":
            if not any(matches(document, clause) for clause in condition):
                return False
            continue

        present, value = _lookup(document, key)
        if is_operator_expression(condition):
            if not _match_operators(present, value, condition):
                return False
        elif not _equals(value, condition):
            return False
    return True


def is_operator_expression(condition: Any) -> bool:
    return isinstance(condition, dict) and bool(condition) and all(key.startswith("$") for key in condition)


def project(document: Document, projection: Document | None) -> Document:
    if not projection:
        return document

    included = [key for key, flag in projection.items() if flag and key != "_id"]
    if included:
        result: Document = {}
        if projection.get("_id", 1) and "_id" in document:
            result["_id"] = document["_id"]
        for key in included:
            if key in document:
                result[key] = document[key]
        return result

    return {key: value for key, value in document.items() if projection.get(key, 1)}


def _lookup(document: Document, path: str) -> tuple[bool, Any]:
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return False, None
        current = current[part]
    return True, current


def _equals(value: Any, expected: Any) -> bool:
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _compare(value: Any, expected: Any, operator: str) -> bool:
    if value is None or expected is None:
        return False
    try:
        if operator == "$gt":
            return value > expected
        if operator == "$gte":
            return value >= expected
        if operator == "$lt":
            return value < expected
        return value <= expected
    except TypeError:
        return False


def _match_operators(present: bool, value: Any, condition: Document) -> bool:
    for operator, expected in condition.items():
        if operator == "$eq" and not _equals(value, expected):
            return False
        if operator == "$ne" and _equals(value, expected):
            return False
        if operator in {"$gt", "$gte", "$lt", "$lte"} and not _compare(value, expected, operator):
            return False
        if operator == "$in" and not any(_equals(value, candidate) for candidate in expected):
            return False
        if operator == "$nin" and any(_equals(value, candidate) for candidate in expected):
            return False
        if operator == "$exists" and present != bool(expected):
            return False
        if operator == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or re.search(expected, value, flags) is None:
                return False
    return True


def _sorted(documents: list[Document], sort: Document) -> list[Document]:
    ordered = list(documents)
    # Stable sorts applied from the least significant key upwards.
    for key, direction in reversed(list(sort.items())):
        ordered.sort(key=lambda document: _sort_key(document, key), reverse=direction == -1)
    return ordered


def _sort_key(document: Document, key: str) -> tuple[int, Any]:
    _, value = _lookup(document, key)
    return _ranked(value)


def _ranked(value: Any) -> tuple[int, Any]:
    # Mongo's cross-type order: null < numbers < strings < objects < arrays < booleans.
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (5, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, dict):
        return (3, tuple((str(name), _ranked(item)) for name, item in value.items()))
    if isinstance(value, (list, tuple)):
        return (4, tuple(_ranked(item) for item in value))
    return (6, str(value))


def _apply_update(document: Document, update: Document) -> None:
    if not any(key in _UPDATE_OPERATORS for key in update):
        update = {"$set": update}

    for key, value in update.get("$set", {}).items():
        document[key] = copy.deepcopy(value)
    for key, value in update.get("$addToSet", {}).items():
        members = document.setdefault(key, [])
        if value not in members:
            members.append(copy.deepcopy(value))
    for key, value in update.get("$pull", {}).items():
        members = document.get(key)
        if isinstance(members, list):
            document[key] = [member for member in members if member != value]


__all__ = [
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Population",
    "is_operator_expression",
    "matches",
    "project",
]
