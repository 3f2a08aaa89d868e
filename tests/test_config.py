"""Tests for configuration loading and the application context."""

import pytest

from simgraph.config import DEFAULT_CONFIG, load_config
from simgraph.connections import ThresholdStrategy
from simgraph.context import create_context
from simgraph.similarity import NeighborPairs


def test_defaults_without_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("SIMGRAPH_LOG_LEVEL", raising=False)

    cfg = load_config()
    assert cfg == DEFAULT_CONFIG
    assert cfg is not DEFAULT_CONFIG


def test_file_is_deep_merged(tmp_path, monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    path = tmp_path / "simgraph.yaml"
    path.write_text("embedding:\n  batch_size: 10\ncolors:\n  Pets: '#123456'\n")

    cfg = load_config(path)
    assert cfg["embedding"]["batch_size"] == 10
    assert cfg["embedding"]["model"] == "text-embedding-3-small"
    assert cfg["colors"]["Pets"] == "#123456"
    assert cfg["colors"]["World"] == "#ef4444"
    assert DEFAULT_CONFIG["embedding"]["batch_size"] == 50


def test_config_found_in_cwd(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "simgraph.yaml").write_text("default_connection_strategy: top5\n")
    assert load_config()["default_connection_strategy"] == "top5"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("SIMGRAPH_LOG_LEVEL", "debug")

    cfg = load_config()
    assert cfg["openai_api_key"] == "sk-test"
    assert cfg["log_level"] == "DEBUG"


def test_missing_explicit_config(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_config_must_be_mapping(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ValueError):
        load_config(path)


def test_context_uses_config():
    config = {**DEFAULT_CONFIG, "similarity": {"enumerator": "neighbors"}, "connections": {"threshold": 0.9}}
    context = create_context(config)
    assert isinstance(context.graph.enumerator, NeighborPairs)
    assert context.connection_options().threshold == 0.9
    assert context.connection_options(threshold=0.4).threshold == 0.4
    assert context.search_options().max_results == 5


def test_contexts_are_independent():
    first = create_context()
    second = create_context()

    class Strict(ThresholdStrategy):
        name = "strict"

    first.register_connection_strategy(Strict())
    assert "strict" in first.connections
    assert "strict" not in second.connections
    names = [s["name"] for s in first.strategies()["connection"]]
    assert "strict" in names
