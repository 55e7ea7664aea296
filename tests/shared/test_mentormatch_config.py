import pytest

from mentormatch.shared.config import (
    Config,
    NamespaceConfig,
    get_config,
    load_config,
    reload_config,
)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    for name in ("CONFIG_PATH", "EMBEDDINGS_API_KEY", "OPENROUTER_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("ENV", "test")
    yield
    monkeypatch.setenv("ENV", "test")
    monkeypatch.delenv("CONFIG_PATH", raising=False)
    reload_config()


def test_load_test_environment():
    config, settings = load_config()

    assert settings.env == "test"
    assert config.embedding.provider == "hashing"
    assert config.embedding.dims == 64
    assert config.vector_index.backend == "memory"
    assert config.monitoring.tracing_enabled is False
    assert config.matching.strategies.exact_archetype.top_k == 10


def test_config_path_override(tmp_path, monkeypatch):
    path = tmp_path / "custom.yaml"
    path.write_text(
        "embedding:\n"
        "  provider: hashing\n"
        "  dims: 16\n"
        "matching:\n"
        "  default_max_results: 3\n"
    )
    monkeypatch.setenv("CONFIG_PATH", str(path))

    config, settings = load_config()

    assert settings.config_path == str(path)
    assert config.embedding.dims == 16
    assert config.matching.default_max_results == 3
    # untouched sections keep their defaults
    assert config.matching.default_min_score == 0.3


def test_missing_file(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))

    with pytest.raises(FileNotFoundError):
        load_config()


def test_invalid_provider_fails_fast(tmp_path, monkeypatch):
    path = tmp_path / "bad.yaml"
    path.write_text("embedding:\n  provider: word2vec\n")
    monkeypatch.setenv("CONFIG_PATH", str(path))

    with pytest.raises(ValueError):
        load_config()


def test_invalid_backend_fails_fast(tmp_path, monkeypatch):
    path = tmp_path / "bad.yaml"
    path.write_text("vector_index:\n  backend: faiss\n")
    monkeypatch.setenv("CONFIG_PATH", str(path))

    with pytest.raises(ValueError):
        load_config()


def test_production_requires_embeddings_key(monkeypatch):
    monkeypatch.setenv("ENV", "production")

    with pytest.raises(ValueError, match="EMBEDDINGS_API_KEY"):
        load_config()


def test_production_accepts_openrouter_key(monkeypatch):
    monkeypatch.setenv("ENV", "production")
    monkeypatch.setenv("OPENROUTER_API_KEY", "or-key")

    config, settings = load_config()

    assert config.embedding.provider == "openai-compatible"
    assert settings.resolved_embeddings_api_key == "or-key"


def test_reload_config_picks_up_environment(tmp_path, monkeypatch):
    reload_config()
    assert get_config().embedding.dims == 64

    path = tmp_path / "reload.yaml"
    path.write_text("embedding:\n  provider: hashing\n  dims: 8\n")
    monkeypatch.setenv("CONFIG_PATH", str(path))
    assert get_config().embedding.dims == 64

    reload_config()
    assert get_config().embedding.dims == 8


def test_namespaces_by_archetype():
    namespaces = NamespaceConfig()

    assert namespaces.for_archetype("social_user") == "mentors-social-user"
    assert namespaces.for_archetype("all") == "mentors-all"


def test_strategy_weight_bounds():
    with pytest.raises(ValueError):
        Config(matching={"strategies": {"exact_archetype": {"top_k": 10, "weight": 1.5}}})
