"""Tests for configuration loading."""

import pytest

from engdigest_core.config import DEFAULT_CONFIG, load_config, validate_config


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["since_hours"] == 24
    assert config["ai_risk"] is False
    assert config["ai_risk_threshold"] == 0.5
    assert config["ai_risk_concurrency"] == 3
    assert config["ai_risk_delay_ms"] == 500
    assert config["ai_risk_timeout"] is None
    assert config["output"] is None


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".engdigest.yml"
    cfg.write_text("since_hours: 72\nai_risk: true\nai_risk_threshold: 0.6\n")
    config = load_config(config_path=str(cfg))
    assert config["since_hours"] == 72
    assert config["ai_risk"] is True
    assert config["ai_risk_threshold"] == 0.6


def test_empty_config_file_uses_defaults(tmp_path):
    cfg = tmp_path / ".engdigest.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["model"] == DEFAULT_CONFIG["model"]


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".engdigest.yml"
    cfg.write_text("model: gpt-4o-mini\n")
    config = load_config(config_path=str(cfg), cli_overrides={"model": "gpt-4o"})
    assert config["model"] == "gpt-4o"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".engdigest.yml"
    cfg.write_text("ai_risk_concurrency: 5\n")
    config = load_config(config_path=str(cfg), cli_overrides={"ai_risk_concurrency": None})
    assert config["ai_risk_concurrency"] == 5


def test_env_vars_loaded(tmp_path, monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    monkeypatch.setenv("OPENAI_API_KEY", "oai-key")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["github_token"] == "gh-token"
    assert config["openai_api_key"] == "oai-key"


def test_defaults_not_mutated(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"), cli_overrides={"since_hours": 5})
    assert config["since_hours"] == 5
    assert DEFAULT_CONFIG["since_hours"] == 24


class TestValidateConfig:
    def _config(self, **overrides):
        return {**DEFAULT_CONFIG, **overrides}

    def test_defaults_are_valid(self):
        validate_config(self._config())

    @pytest.mark.parametrize("threshold", [-0.01, 1.01])
    def test_threshold_out_of_range(self, threshold):
        with pytest.raises(ValueError, match="ai_risk_threshold"):
            validate_config(self._config(ai_risk_threshold=threshold))

    @pytest.mark.parametrize("threshold", [0, 1])
    def test_threshold_bounds_inclusive(self, threshold):
        validate_config(self._config(ai_risk_threshold=threshold))

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValueError, match="ai_risk_concurrency"):
            validate_config(self._config(ai_risk_concurrency=0))

    def test_delay_must_be_non_negative(self):
        with pytest.raises(ValueError, match="ai_risk_delay_ms"):
            validate_config(self._config(ai_risk_delay_ms=-5))

    def test_timeout_must_be_positive_when_set(self):
        with pytest.raises(ValueError, match="ai_risk_timeout"):
            validate_config(self._config(ai_risk_timeout=0))

    def test_since_hours_must_be_positive(self):
        with pytest.raises(ValueError, match="since_hours"):
            validate_config(self._config(since_hours=0))
