from __future__ import annotations

import json

import httpx
import pytest

from mentormatch.providers.embeddings.openai_compat import OpenAICompatibleEmbeddingProvider
from mentormatch.shared.config import EmbeddingConfig


def _config(**overrides) -> EmbeddingConfig:
    values = {
        "provider": "openai-compatible",
        "model_name": "openai/text-embedding-3-small",
        "dims": 2,
        "base_url": "https://embeddings.test/api/v1/",
        "max_retries": 2,
        "batch_size": 2,
    }
    values.update(overrides)
    return EmbeddingConfig(**values)


def _embeddings_payload(vectors):
    return {
        "object": "list",
        "data": [
            {"object": "embedding", "index": i, "embedding": vector}
            for i, vector in enumerate(vectors)
        ],
    }


def _provider(handler, **config_overrides) -> OpenAICompatibleEmbeddingProvider:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return OpenAICompatibleEmbeddingProvider(
        _config(**config_overrides),
        api_key="sk-test",
        client=client,
        app_title="mentormatch",
        min_backoff=0.0,
        max_backoff=0.0,
    )


def test_query_request_shape():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["authorization"]
        captured["title"] = request.headers["x-title"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_embeddings_payload([[0.6, 0.8]]))

    vector = _provider(handler).embed_query("solidity mentor")

    assert vector == [0.6, 0.8]
    assert captured["url"] == "https://embeddings.test/api/v1/embeddings"
    assert captured["auth"] == "Bearer sk-test"
    assert captured["title"] == "mentormatch"
    assert captured["body"] == {
        "model": "openai/text-embedding-3-small",
        "input": ["solidity mentor"],
    }


def test_documents_are_batched_and_reordered_by_index():
    batches = []

    def handler(request: httpx.Request) -> httpx.Response:
        inputs = json.loads(request.content)["input"]
        batches.append(inputs)
        data = [
            {"index": i, "embedding": [float(len(text)), 0.0]}
            for i, text in enumerate(inputs)
        ]
        return httpx.Response(200, json={"data": list(reversed(data))})

    vectors = _provider(handler).embed_documents(["a", "bb", "ccc"])

    assert batches == [["a", "bb"], ["ccc"]]
    assert vectors == [[1.0, 0.0], [2.0, 0.0], [3.0, 0.0]]


def test_retries_transient_status_then_succeeds():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] < 3:
            return httpx.Response(503, json={"error": {"message": "overloaded"}})
        return httpx.Response(200, json=_embeddings_payload([[1.0, 0.0]]))

    assert _provider(handler).embed_query("q") == [1.0, 0.0]
    assert calls["count"] == 3


def test_retries_exhausted():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(429, json={"error": {"message": "rate limited"}})

    with pytest.raises(RuntimeError, match="failed after 3 attempts"):
        _provider(handler).embed_query("q")
    assert calls["count"] == 3


def test_transport_errors_are_retried():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        if calls["count"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json=_embeddings_payload([[0.0, 1.0]]))

    assert _provider(handler).embed_query("q") == [0.0, 1.0]
    assert calls["count"] == 2


def test_client_error_is_not_retried():
    calls = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["count"] += 1
        return httpx.Response(401, json={"error": {"message": "invalid api key"}})

    with pytest.raises(RuntimeError, match=r"Embedding API error \(401\): invalid api key"):
        _provider(handler).embed_query("q")
    assert calls["count"] == 1


def test_dimension_mismatch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_embeddings_payload([[1.0, 0.0, 0.0]]))

    with pytest.raises(RuntimeError, match="dimension mismatch"):
        _provider(handler).embed_query("q")


def test_vector_count_mismatch():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_embeddings_payload([[1.0, 0.0], [0.0, 1.0]]))

    with pytest.raises(RuntimeError, match="2 vectors for 1 inputs"):
        _provider(handler).embed_query("q")


def test_requires_api_key():
    with pytest.raises(RuntimeError, match="API key"):
        OpenAICompatibleEmbeddingProvider(_config(), api_key=None)


def test_rejects_empty_input():
    provider = _provider(lambda request: httpx.Response(500))

    with pytest.raises(ValueError):
        provider.embed_query("   ")
    with pytest.raises(ValueError):
        provider.embed_documents([])
