"""
Vector index adapters.

A namespace partitions the mentor population (one per archetype plus "all").
Both backends keep one record per (namespace, mentor) pair so that upserting
into one namespace never touches another.
"""

import math
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, Union

from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    VectorParams,
)

from mentormatch.shared.errors import VectorIndexUnavailable
from mentormatch.shared.observability import get_logger
from mentormatch.shared.observability.metrics import vector_index_operations_total
from mentormatch.shared.resilience import CircuitBreaker

from .filters import And, Contains, Eq, Gte, In, Lte, Ne, Or, Predicate

logger = get_logger(__name__)

NAMESPACE_FIELD = "namespace"
VECTOR_ID_FIELD = "vector_id"
_BOOKKEEPING_FIELDS = (NAMESPACE_FIELD, VECTOR_ID_FIELD)


@dataclass
class VectorHit:
    """A single nearest-neighbour result."""

    id: str
    score: float
    metadata: Dict[str, Any]


@dataclass
class VectorPoint:
    id: str
    vector: List[float]
    metadata: Dict[str, Any] = field(default_factory=dict)


class VectorIndex(Protocol):
    backend_name: str

    def query(
        self,
        namespace: str,
        vector: List[float],
        top_k: int,
        predicate: Optional[Predicate] = None,
    ) -> List[VectorHit]: ...

    def upsert(self, namespace: str, points: Sequence[VectorPoint]) -> int: ...

    def delete(self, namespace: str, ids: Sequence[str]) -> None: ...


# ---------------------------------------------------------------------------
# Qdrant
# ---------------------------------------------------------------------------

QdrantCondition = Union[FieldCondition, Filter]


def has_contains(predicate: Optional[Predicate]) -> bool:
    if isinstance(predicate, Contains):
        return True
    if isinstance(predicate, (And, Or)):
        return any(has_contains(c) for c in predicate.clauses)
    return False


def server_side_predicate(predicate: Optional[Predicate]) -> Optional[Predicate]:
    """
    The part of ``predicate`` that qdrant can evaluate exactly.

    ``Contains`` is a two-way substring overlap (``terms_overlap``) with no
    qdrant equivalent, so every clause that depends on one is dropped here and
    checked on the returned payloads instead. Dropping a conjunct only widens
    the server result.
    """
    if not has_contains(predicate):
        return predicate
    if isinstance(predicate, And):
        kept = [server_side_predicate(c) for c in predicate.clauses]
        kept = [c for c in kept if c is not None]
        return And(tuple(kept)) if kept else None
    return None


def to_qdrant_condition(predicate: Predicate) -> QdrantCondition:
    """Translate a predicate tree without ``Contains`` into qdrant conditions."""
    if isinstance(predicate, Eq):
        return FieldCondition(key=predicate.field, match=MatchValue(value=predicate.value))
    if isinstance(predicate, Ne):
        return Filter(
            must_not=[
                FieldCondition(
                    key=predicate.field, match=MatchValue(value=predicate.value)
                )
            ]
        )
    if isinstance(predicate, Gte):
        return FieldCondition(key=predicate.field, range=Range(gte=predicate.value))
    if isinstance(predicate, Lte):
        return FieldCondition(key=predicate.field, range=Range(lte=predicate.value))
    if isinstance(predicate, In):
        return FieldCondition(
            key=predicate.field, match=MatchAny(any=list(predicate.values))
        )
    if isinstance(predicate, And):
        return Filter(must=[to_qdrant_condition(c) for c in predicate.clauses])
    if isinstance(predicate, Or):
        return Filter(should=[to_qdrant_condition(c) for c in predicate.clauses])
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def build_qdrant_filter(namespace: str, predicate: Optional[Predicate]) -> Filter:
    must: List[QdrantCondition] = [
        FieldCondition(key=NAMESPACE_FIELD, match=MatchValue(value=namespace))
    ]
    server_predicate = server_side_predicate(predicate)
    if server_predicate is not None:
        must.append(to_qdrant_condition(server_predicate))
    return Filter(must=must)


def _point_uuid(namespace: str, vector_id: str) -> str:
    # Qdrant ids must be UUIDs or unsigned ints
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"{namespace}/{vector_id}"))


class QdrantVectorIndex:
    """Single-collection Qdrant index; namespaces live in the payload."""

    backend_name = "qdrant"

    PAYLOAD_INDEXES: List[Tuple[str, PayloadSchemaType]] = [
        (NAMESPACE_FIELD, PayloadSchemaType.KEYWORD),
        ("mentor_id", PayloadSchemaType.KEYWORD),
        ("primary_archetype", PayloadSchemaType.KEYWORD),
        ("is_available", PayloadSchemaType.BOOL),
        ("years_in_crypto", PayloadSchemaType.FLOAT),
        ("community_reputation", PayloadSchemaType.FLOAT),
        ("successful_mentees", PayloadSchemaType.INTEGER),
        ("response_time", PayloadSchemaType.KEYWORD),
        ("communication_style", PayloadSchemaType.KEYWORD),
        ("preferred_mentee_level", PayloadSchemaType.KEYWORD),
    ]

    def __init__(
        self,
        qdrant_client,
        collection_name: str,
        upsert_batch_size: int = 100,
        contains_overfetch: int = 10,
    ):
        self.client = qdrant_client
        self.collection_name = collection_name
        self.upsert_batch_size = upsert_batch_size
        self.contains_overfetch = contains_overfetch

    def ensure_collection(self, dims: int) -> None:
        collections = self.client.get_collections()
        if self.collection_name not in [c.name for c in collections.collections]:
            logger.info(
                "Creating mentor collection",
                collection=self.collection_name,
                dims=dims,
            )
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=dims, distance=Distance.COSINE),
            )
        for field_name, schema in self.PAYLOAD_INDEXES:
            try:
                self.client.create_payload_index(
                    collection_name=self.collection_name,
                    field_name=field_name,
                    field_schema=schema,
                )
            except Exception as exc:
                # Already present on an existing collection
                logger.debug(
                    "Payload index not created", field=field_name, error=str(exc)
                )

    def query(
        self,
        namespace: str,
        vector: List[float],
        top_k: int,
        predicate: Optional[Predicate] = None,
    ) -> List[VectorHit]:
        """
        Nearest points in ``namespace`` that satisfy ``predicate``.

        When the predicate holds ``Contains`` clauses the server query is widened
        and over-fetched by ``contains_overfetch``, then the full predicate is
        applied to the payloads before cutting to ``top_k``.
        """
        post_filter = predicate if has_contains(predicate) else None
        limit = top_k * self.contains_overfetch if post_filter is not None else top_k
        response = self.client.query_points(
            collection_name=self.collection_name,
            query=vector,
            limit=limit,
            query_filter=build_qdrant_filter(namespace, predicate),
            with_payload=True,
        )
        hits: List[VectorHit] = []
        for point in response.points:
            payload = dict(point.payload or {})
            vector_id = payload.get(VECTOR_ID_FIELD) or str(point.id)
            for key in _BOOKKEEPING_FIELDS:
                payload.pop(key, None)
            if post_filter is not None and not post_filter.matches(payload):
                continue
            hits.append(
                VectorHit(id=vector_id, score=float(point.score or 0.0), metadata=payload)
            )
        return hits[:top_k]

    def upsert(self, namespace: str, points: Sequence[VectorPoint]) -> int:
        structs = [
            PointStruct(
                id=_point_uuid(namespace, point.id),
                vector=list(point.vector),
                payload={
                    **point.metadata,
                    NAMESPACE_FIELD: namespace,
                    VECTOR_ID_FIELD: point.id,
                },
            )
            for point in points
        ]
        for start in range(0, len(structs), self.upsert_batch_size):
            self.client.upsert(
                collection_name=self.collection_name,
                points=structs[start : start + self.upsert_batch_size],
                wait=True,
            )
        return len(structs)

    def delete(self, namespace: str, ids: Sequence[str]) -> None:
        if not ids:
            return
        self.client.delete(
            collection_name=self.collection_name,
            points_selector=FilterSelector(
                filter=Filter(
                    must=[
                        FieldCondition(
                            key=NAMESPACE_FIELD, match=MatchValue(value=namespace)
                        ),
                        FieldCondition(
                            key=VECTOR_ID_FIELD, match=MatchAny(any=list(ids))
                        ),
                    ]
                )
            ),
            wait=True,
        )


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Vector dimension mismatch: {len(a)} vs {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryVectorIndex:
    """Brute-force cosine index for development, tests and the CLI."""

    backend_name = "memory"

    def __init__(self) -> None:
        self._namespaces: Dict[str, Dict[str, VectorPoint]] = {}
        self._lock = threading.Lock()

    def count(self, namespace: str) -> int:
        with self._lock:
            return len(self._namespaces.get(namespace, {}))

    def is_empty(self) -> bool:
        with self._lock:
            return not any(self._namespaces.values())

    def query(
        self,
        namespace: str,
        vector: List[float],
        top_k: int,
        predicate: Optional[Predicate] = None,
    ) -> List[VectorHit]:
        with self._lock:
            points = list(self._namespaces.get(namespace, {}).values())

        scored = [
            VectorHit(
                id=point.id,
                score=cosine_similarity(vector, point.vector),
                metadata=dict(point.metadata),
            )
            for point in points
            if predicate is None or predicate.matches(point.metadata)
        ]
        scored.sort(key=lambda hit: (-hit.score, hit.id))
        return scored[:top_k]

    def upsert(self, namespace: str, points: Sequence[VectorPoint]) -> int:
        with self._lock:
            bucket = self._namespaces.setdefault(namespace, {})
            for point in points:
                bucket[point.id] = VectorPoint(
                    id=point.id, vector=list(point.vector), metadata=dict(point.metadata)
                )
        return len(points)

    def delete(self, namespace: str, ids: Sequence[str]) -> None:
        with self._lock:
            bucket = self._namespaces.get(namespace, {})
            for vector_id in ids:
                bucket.pop(vector_id, None)


# ---------------------------------------------------------------------------
# Circuit breaker wrapper
# ---------------------------------------------------------------------------


class GuardedVectorIndex:
    """Wraps any index with a circuit breaker and operation metrics."""

    def __init__(self, inner: VectorIndex, breaker: CircuitBreaker):
        self.inner = inner
        self.breaker = breaker
        self.backend_name = inner.backend_name

    def _call(self, operation: str, fn, *args):
        if not self.breaker.allow_request():
            vector_index_operations_total.labels(
                backend=self.backend_name, operation=operation, status="rejected"
            ).inc()
            raise VectorIndexUnavailable(
                f"{self.backend_name} vector index circuit is open"
            )
        start = time.time()
        try:
            result = fn(*args)
        except Exception:
            self.breaker.record_failure()
            vector_index_operations_total.labels(
                backend=self.backend_name, operation=operation, status="error"
            ).inc()
            raise
        self.breaker.record_success()
        vector_index_operations_total.labels(
            backend=self.backend_name, operation=operation, status="success"
        ).inc()
        logger.debug(
            "Vector index operation",
            backend=self.backend_name,
            operation=operation,
            duration_ms=round((time.time() - start) * 1000, 2),
        )
        return result

    def query(
        self,
        namespace: str,
        vector: List[float],
        top_k: int,
        predicate: Optional[Predicate] = None,
    ) -> List[VectorHit]:
        return self._call("query", self.inner.query, namespace, vector, top_k, predicate)

    def upsert(self, namespace: str, points: Sequence[VectorPoint]) -> int:
        return self._call("upsert", self.inner.upsert, namespace, points)

    def delete(self, namespace: str, ids: Sequence[str]) -> None:
        self._call("delete", self.inner.delete, namespace, ids)
