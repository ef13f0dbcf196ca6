"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from pathclass.config import (
    ConfigError,
    ConfigManager,
    PathclassConfig,
    extract_env_overrides,
    flatten_for_env,
    resolve_with_precedence,
)


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager()


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".pathclass" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "pathclass configuration file" in text
    assert "Last updated:" in text

    config = manager.load(include_env=False)
    assert config == PathclassConfig()


def test_resolve_with_precedence_respects_order(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.save({"llm": {"model": "gpt-4o-mini"}, "classification": {"batch_size": 20}})

    env = {
        "PATHCLASS__CLASSIFICATION__BATCH_SIZE": "30",
        "PATHCLASS__CLASSIFICATION__CONCURRENCY": "3",
    }
    cli = {"classification.concurrency": 2}

    config = manager.load(cli_overrides=cli, env_overrides=env)

    assert config.llm.model == "gpt-4o-mini"
    assert config.classification.batch_size == 30
    # CLI overrides take precedence over environment
    assert config.classification.concurrency == 2


def test_legacy_redis_url_yields_to_namespaced_variable() -> None:
    legacy_only = extract_env_overrides({"REDIS_URL": "redis://cache:6379"})
    both = extract_env_overrides(
        {"REDIS_URL": "redis://cache:6379", "PATHCLASS__CACHE__REDIS_URL": "redis://other:6380"}
    )

    assert legacy_only == {"cache": {"redis_url": "redis://cache:6379"}}
    assert both["cache"]["redis_url"] == "redis://other:6380"


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_round_trips_defaults() -> None:
    flat = flatten_for_env(PathclassConfig())

    assert flat["PATHCLASS__LLM__PROVIDER"] == "openai"
    assert flat["PATHCLASS__CLASSIFICATION__BATCH_SIZE"] == "50"
    assert flat["PATHCLASS__CACHE__KEY_PREFIX"] == "pathway:cls:v1:"
    restored = extract_env_overrides(flat)
    assert restored["cache"]["ttl_seconds"] == 2592000
    assert restored["cache"]["key_prefix"] == "pathway:cls:v1:"
    assert resolve_with_precedence(defaults=PathclassConfig(), env_overrides=restored) == PathclassConfig()


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=PathclassConfig(),
            file_overrides={"classification": {"batch_size": "not-an-int"}},
        )


def test_unknown_keys_are_rejected() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(defaults=PathclassConfig(), file_overrides={"llm": {"modle": "x"}})
