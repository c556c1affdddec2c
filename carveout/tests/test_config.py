"""Tests for the configuration loader."""

from carveout.core.config import get_config_value, get_oracle_config, load_config


def _use_config(tmp_path, monkeypatch, text):
    path = tmp_path / "carveout.yaml"
    path.write_text(text)
    monkeypatch.setenv("CARVEOUT_CONFIG", str(path))
    return path


class TestConfigLoader:

    def test_nested_lookup(self, tmp_path, monkeypatch):
        _use_config(tmp_path, monkeypatch, "oracle:\n  timeout_seconds: 30\n")
        assert get_config_value("oracle", "timeout_seconds", default=120) == 30
        assert get_config_value("oracle", "missing", default="x") == "x"
        assert get_config_value("nothing", "here") is None

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CARVEOUT_CONFIG", str(tmp_path / "absent.yaml"))
        assert load_config() == {}
        assert get_config_value("planner", "validation", default={}) == {}

    def test_null_value_falls_back_to_default(self, tmp_path, monkeypatch):
        _use_config(tmp_path, monkeypatch, "refactor:\n  exclude_patterns:\n")
        assert get_config_value("refactor", "exclude_patterns", default=["*Test.java"]) == ["*Test.java"]

    def test_non_mapping_rejected(self, tmp_path, monkeypatch):
        _use_config(tmp_path, monkeypatch, "- just\n- a list\n")
        try:
            load_config()
        except ValueError as e:
            assert "mapping" in str(e)
        else:
            raise AssertionError("expected ValueError")

    def test_oracle_env_overrides(self, tmp_path, monkeypatch):
        _use_config(tmp_path, monkeypatch, "oracle:\n  provider: none\n  model: llama3.1\n")
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("LLM_MODEL", "gpt-4o-mini")
        cfg = get_oracle_config()
        assert cfg["provider"] == "openai"
        assert cfg["model"] == "gpt-4o-mini"

    def test_oracle_without_env(self, tmp_path, monkeypatch):
        _use_config(tmp_path, monkeypatch, "oracle:\n  provider: none\n")
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        monkeypatch.delenv("LLM_MODEL", raising=False)
        assert get_oracle_config()["provider"] == "none"
