"""Tests for environment configuration and storage backend selection."""

from __future__ import annotations

import pytest

from webide.config import DEFAULT_PISTON_URL, Config
from webide.languages import LANGUAGE_SPECS, Language, _check_complete, language_for_filename, parse_language
from webide.errors import UnsupportedLanguage
from webide.storage import LocalKeyValueStore, MemoryKeyValueStore, build_store


@pytest.fixture
def clean_env(monkeypatch):
    for name in [
        "WEBIDE_API_KEY",
        "WEBIDE_STORAGE_BACKEND",
        "WEBIDE_STORAGE_PATH",
        "WEBIDE_GCS_BUCKET",
        "WEBIDE_AUTOSAVE_DELAY_MS",
        "WEBIDE_PISTON_URL",
        "WEBIDE_COMPLETION_API_KEY",
        "GEMINI_API_KEY",
        "PORT",
    ]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = Config.from_env()
    assert config.storage_backend == "local"
    assert config.autosave_delay_seconds == 1.0
    assert config.piston_url == DEFAULT_PISTON_URL
    assert config.completion_api_key is None
    assert config.port == 8080


def test_overrides(clean_env):
    clean_env.setenv("WEBIDE_STORAGE_BACKEND", "MEMORY")
    clean_env.setenv("WEBIDE_AUTOSAVE_DELAY_MS", "250")
    clean_env.setenv("GEMINI_API_KEY", "g-key")
    clean_env.setenv("PORT", "9000")
    config = Config.load()
    assert config.storage_backend == "memory"
    assert config.autosave_delay_seconds == 0.25
    assert config.completion_api_key == "g-key"
    assert config.port == 9000


def test_invalid_values(clean_env):
    clean_env.setenv("PORT", "eighty")
    with pytest.raises(ValueError, match="PORT"):
        Config.load()
    clean_env.setenv("PORT", "80")
    clean_env.setenv("WEBIDE_STORAGE_BACKEND", "redis")
    with pytest.raises(ValueError):
        Config.load()
    clean_env.setenv("WEBIDE_STORAGE_BACKEND", "gcs")
    with pytest.raises(RuntimeError):
        Config.load()


def test_build_store(clean_env, tmp_path):
    clean_env.setenv("WEBIDE_STORAGE_BACKEND", "memory")
    assert isinstance(build_store(Config.load()), MemoryKeyValueStore)
    clean_env.setenv("WEBIDE_STORAGE_BACKEND", "local")
    clean_env.setenv("WEBIDE_STORAGE_PATH", str(tmp_path / "kv"))
    store = build_store(Config.load())
    assert isinstance(store, LocalKeyValueStore)
    assert (tmp_path / "kv").is_dir()


def test_every_language_is_wired():
    assert set(LANGUAGE_SPECS) == set(Language)
    for language, spec in LANGUAGE_SPECS.items():
        assert spec.template
        if spec.runner.value == "remote":
            assert spec.remote_language and spec.remote_version


def test_incomplete_language_table_is_rejected():
    partial = {lang: spec for lang, spec in LANGUAGE_SPECS.items() if lang is not Language.C}
    with pytest.raises(RuntimeError, match=r"missing: \['c'\]"):
        _check_complete(partial)


def test_language_lookup():
    assert parse_language(" Python ") is Language.PYTHON
    with pytest.raises(UnsupportedLanguage):
        parse_language("brainfuck")
    assert language_for_filename("Main.JAVA") is Language.JAVA
    assert language_for_filename("lib.mjs") is Language.JAVASCRIPT
    assert language_for_filename("Makefile") is Language.JAVASCRIPT
