"""
Metadata predicate language for mentor retrieval.

Predicates are small immutable trees over the flat mentor metadata stored in
the vector index. Every node can evaluate itself against a metadata dict
(``matches``), which is what the in-memory index and the tests use; the
Qdrant adapter translates the same tree into a qdrant ``Filter``.

Missing fields: ``Ne`` passes, every other leaf fails. This mirrors how a
payload filter treats points that lack the key.
"""

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Tuple, Union

Scalar = Union[str, int, float, bool]


def terms_overlap(a: str, b: str) -> bool:
    """Case-insensitive two-way substring match between two free-text terms."""
    left = (a or "").strip().lower()
    right = (b or "").strip().lower()
    if not left or not right:
        return False
    return left in right or right in left


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass(frozen=True)
class Eq:
    field: str
    value: Scalar

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        return self.field in metadata and metadata[self.field] == self.value


@dataclass(frozen=True)
class Ne:
    field: str
    value: Scalar

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        return metadata.get(self.field) != self.value


@dataclass(frozen=True)
class Gte:
    field: str
    value: float

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        actual = metadata.get(self.field)
        return _is_number(actual) and actual >= self.value


@dataclass(frozen=True)
class Lte:
    field: str
    value: float

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        actual = metadata.get(self.field)
        return _is_number(actual) and actual <= self.value


@dataclass(frozen=True)
class In:
    """Field value is one of ``values``; list-valued fields match on any element."""

    field: str
    values: Tuple[Scalar, ...]

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        actual = metadata.get(self.field)
        if actual is None:
            return False
        if isinstance(actual, (list, tuple)):
            return any(item in self.values for item in actual)
        return actual in self.values


@dataclass(frozen=True)
class Contains:
    """Some element of a list field overlaps ``term`` (see ``terms_overlap``)."""

    field: str
    term: str

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        actual = metadata.get(self.field)
        if not isinstance(actual, (list, tuple)):
            return False
        return any(
            isinstance(item, str) and terms_overlap(item, self.term) for item in actual
        )


@dataclass(frozen=True)
class And:
    clauses: Tuple["Predicate", ...] = ()

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        return all(clause.matches(metadata) for clause in self.clauses)

    def extend(self, *clauses: "Predicate") -> "And":
        return And(self.clauses + tuple(clauses))


@dataclass(frozen=True)
class Or:
    clauses: Tuple["Predicate", ...] = ()

    def matches(self, metadata: Mapping[str, Any]) -> bool:
        return any(clause.matches(metadata) for clause in self.clauses)


Predicate = Union[Eq, Ne, Gte, Lte, In, Contains, And, Or]


def in_(field: str, values: Iterable[Scalar]) -> In:
    return In(field, tuple(values))
