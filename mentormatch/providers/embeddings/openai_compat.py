from __future__ import annotations

import random
import time
from typing import Any, Dict, List, Optional

import httpx

from mentormatch.shared.config import EmbeddingConfig
from mentormatch.shared.observability import get_logger
from mentormatch.shared.observability.metrics import (
    embedding_error_total,
    embedding_latency_ms,
    embedding_request_total,
)

logger = get_logger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class OpenAICompatibleEmbeddingProvider:
    """EmbeddingProvider for any endpoint speaking the OpenAI /embeddings API."""

    EMBEDDINGS_ENDPOINT = "/embeddings"

    def __init__(
        self,
        config: EmbeddingConfig,
        *,
        api_key: Optional[str],
        client: Optional[httpx.Client] = None,
        app_url: str = "http://localhost:3000",
        app_title: str = "mentormatch",
        min_backoff: float = 0.5,
        max_backoff: float = 8.0,
    ) -> None:
        if not api_key:
            raise RuntimeError(
                "An API key is required for the openai-compatible embedding provider."
            )

        self._dims = config.dims
        self._model_id = config.model_name
        self._base_url = config.base_url.rstrip("/")
        self._max_attempts = config.max_retries + 1
        self._batch_size = config.batch_size
        self._min_backoff = min_backoff
        self._max_backoff = max_backoff

        headers = {
            "Authorization": f"Bearer {api_key}",
            "content-type": "application/json",
            # OpenRouter attribution headers; ignored by other endpoints
            "HTTP-Referer": app_url,
            "X-Title": app_title,
        }
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(config.timeout_seconds)
        )
        self._headers = headers

    @property
    def dims(self) -> int:
        return self._dims

    @property
    def model_id(self) -> str:
        return self._model_id

    @property
    def provider_name(self) -> str:
        return "openai-compatible"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            raise ValueError("Cannot embed an empty list of documents.")
        results: List[List[float]] = []
        for start in range(0, len(texts), self._batch_size):
            batch = texts[start : start + self._batch_size]
            results.extend(self._embed(batch, operation="documents"))
        return results

    def embed_query(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise ValueError("Query text must be non-empty.")
        return self._embed([text], operation="query")[0]

    def _embed(self, batch: List[str], *, operation: str) -> List[List[float]]:
        embedding_request_total.labels(
            model_id=self._model_id, operation=operation
        ).inc()
        start = time.time()
        try:
            payload = self._post_json({"model": self._model_id, "input": batch})
            vectors = self._parse_embeddings(payload, expected=len(batch))
            self._validate_dimensions(vectors)
        except Exception as exc:
            embedding_error_total.labels(
                model_id=self._model_id, error_type=type(exc).__name__
            ).inc()
            raise
        finally:
            embedding_latency_ms.labels(
                model_id=self._model_id, operation=operation
            ).observe((time.time() - start) * 1000)
        return vectors

    def _post_json(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}{self.EMBEDDINGS_ENDPOINT}"
        last_error: Optional[Exception] = None
        for attempt in range(self._max_attempts):
            try:
                response = self._client.post(url, json=payload, headers=self._headers)
                if response.status_code in RETRYABLE_STATUS:
                    raise httpx.HTTPStatusError(
                        f"Embedding API retryable error {response.status_code}",
                        request=response.request,
                        response=response,
                    )
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                last_error = exc
                status = exc.response.status_code
                if status in RETRYABLE_STATUS:
                    self._sleep_backoff(attempt)
                    continue
                detail = self._extract_error_detail(exc.response)
                raise RuntimeError(
                    f"Embedding API error ({status}): {detail}"
                ) from exc
            except httpx.TransportError as exc:
                last_error = exc
                self._sleep_backoff(attempt)
        raise RuntimeError(
            f"Embedding API request failed after {self._max_attempts} attempts: {last_error}"
        )

    def _sleep_backoff(self, attempt: int) -> None:
        if attempt + 1 >= self._max_attempts:
            return
        base = min(self._max_backoff, self._min_backoff * (2**attempt))
        delay = base + random.uniform(0, base / 4.0)
        logger.warning(
            "Embedding API retrying after backoff",
            attempt=attempt + 1,
            delay_sec=round(delay, 2),
        )
        time.sleep(delay)

    def _extract_error_detail(self, response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
        return str(payload)[:200]

    def _parse_embeddings(
        self, payload: Dict[str, Any], *, expected: int
    ) -> List[List[float]]:
        data = payload.get("data")
        if not isinstance(data, list):
            raise RuntimeError("Embedding response missing 'data' list.")
        if len(data) != expected:
            raise RuntimeError(
                f"Embedding response returned {len(data)} vectors for {expected} inputs."
            )
        sorted_items = sorted(data, key=lambda item: item.get("index", 0))
        embeddings: List[List[float]] = []
        for item in sorted_items:
            embedding = item.get("embedding")
            if embedding is None:
                raise RuntimeError("Embedding response missing embedding data.")
            embeddings.append([float(value) for value in embedding])
        return embeddings

    def _validate_dimensions(self, vectors: List[List[float]]) -> None:
        for vector in vectors:
            if len(vector) != self._dims:
                raise RuntimeError(
                    f"Embedding dimension mismatch: expected {self._dims}, got {len(vector)}"
                )
