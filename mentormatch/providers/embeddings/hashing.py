"""
Deterministic hashing embeddings for development and tests.

Each lowercased token is hashed into one of ``dims`` buckets with a sign bit
and the bag is L2-normalized, so texts that share vocabulary have a positive
cosine similarity. No network, no model download.
"""

import hashlib
import math
import re
from typing import List

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class HashingEmbeddingProvider:
    def __init__(self, dims: int = 64, model_id: str = "hashing-bow-v1") -> None:
        if dims <= 0:
            raise ValueError("dims must be positive")
        self._dims = dims
        self._model_id = model_id

    @property
    def dims(self) -> int:
        return self._dims

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def provider_name(self) -> str:
        return "hashing"

    def close(self) -> None:
        pass

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            raise ValueError("Cannot embed an empty list of documents.")
        return [self._embed(text) for text in texts]

    def embed_query(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Query text must be non-empty.")
        return self._embed(text)

    def _embed(self, text: str) -> List[float]:
        vector = [0.0] * self._dims
        for token in _TOKEN_RE.findall(text.lower()):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            value = int.from_bytes(digest, "big")
            bucket = value % self._dims
            sign = 1.0 if (value >> 63) & 1 else -1.0
            vector[bucket] += sign

        norm = math.sqrt(sum(v * v for v in vector))
        if norm == 0.0:
            # No tokens: fixed unit vector so cosine stays defined
            vector[0] = 1.0
            return vector
        return [v / norm for v in vector]
