"""
Tests for config.py - Configuration management module.

Test Areas:
1. Environment Loading
2. Model Specs Loading
3. get_model_info()
4. Pricing and token limits
"""

import os
from unittest.mock import mock_open, patch

import pytest

import json_utils as json
from config import Config, ConfigError


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def minimal_model_specs():
    """Minimal valid model catalogue for testing."""
    return {
        "model_specifications": {
            "openai": {
                "gpt-4o": {
                    "model_id": "gpt-4o",
                    "name": "GPT-4o",
                    "description": "Test model",
                    "max_tokens": 4000,
                    "pricing": {"per_token": 0.000005},
                },
            },
            "deepseek": {
                "deepseek-chat": {
                    "model_id": "deepseek-chat",
                    "name": "DeepSeek Chat",
                    "description": "DeepSeek test model",
                    "max_tokens": 2000,
                },
            },
        },
        "providers": {
            "openai": {"base_url": "https://api.openai.com/v1", "env_hint": "OPENAI_API_KEY"},
            "deepseek": {"base_url": "https://api.deepseek.com", "env_hint": "DEEPSEEK_API_KEY"},
        },
        "aliases": {"deepseek": "deepseek-chat"},
        "default_pricing": {"per_token": 0.000003},
    }


def _build_config(specs, env=None):
    specs_json = json.dumps(specs)
    with patch.dict(os.environ, env or {}, clear=False):
        with patch("builtins.open", mock_open(read_data=specs_json)):
            return Config()


# ============================================================================
# Test Class: Environment Loading
# ============================================================================

class TestEnvironmentLoading:
    """Tests for environment variable loading."""

    def test_loads_openai_api_key_from_env(self, minimal_model_specs, mock_env_vars):
        """Given: OPENAI_API_KEY in env, Then: Config loads it"""
        cfg = _build_config(minimal_model_specs, mock_env_vars)
        assert cfg.OPENAI_API_KEY == "sk-test-openai-key-12345"
        assert cfg.DEEPSEEK_API_KEY == "sk-test-deepseek-key-12345"

    def test_loads_openai_key_from_legacy_env(self, minimal_model_specs, clean_env):
        """Given: OPENAI_KEY (legacy) in env, Then: Config loads it"""
        cfg = _build_config(minimal_model_specs, {"OPENAI_KEY": "sk-legacy"})
        assert cfg.OPENAI_API_KEY == "sk-legacy"

    def test_loads_numeric_overrides(self, minimal_model_specs):
        env = {
            "STANDARD_TIMEOUT_SECONDS": "30",
            "ESCALATED_TIMEOUT_SECONDS": "45.5",
            "DEFAULT_TOLERANCE_PERCENT": "10",
            "DEFAULT_NUM_HEADLINES": "5",
        }
        cfg = _build_config(minimal_model_specs, env)

        assert cfg.STANDARD_TIMEOUT_SECONDS == 30.0
        assert cfg.ESCALATED_TIMEOUT_SECONDS == 45.5
        assert cfg.DEFAULT_TOLERANCE_PERCENT == 10.0
        assert cfg.DEFAULT_NUM_HEADLINES == 5

    def test_invalid_numeric_env_ignored(self, minimal_model_specs):
        """Given: Garbage and out-of-range values, Then: Defaults kept"""
        env = {
            "STANDARD_TIMEOUT_SECONDS": "soon",
            "ESCALATED_TIMEOUT_SECONDS": "-5",
            "DEFAULT_TOLERANCE_PERCENT": "150",
            "DEFAULT_NUM_HEADLINES": "0",
        }
        cfg = _build_config(minimal_model_specs, env)

        assert cfg.STANDARD_TIMEOUT_SECONDS == 60.0
        assert cfg.ESCALATED_TIMEOUT_SECONDS == 90.0
        assert cfg.DEFAULT_TOLERANCE_PERCENT == 5.0
        assert cfg.DEFAULT_NUM_HEADLINES == 3

    def test_extra_verbose_implies_verbose(self, minimal_model_specs):
        cfg = _build_config(minimal_model_specs, {"VERBOSE": "", "EXTRA_VERBOSE": "yes"})
        assert cfg.EXTRA_VERBOSE is True
        assert cfg.VERBOSE is True

    def test_log_level_uppercased(self, minimal_model_specs):
        cfg = _build_config(minimal_model_specs, {"LOG_LEVEL": "debug"})
        assert cfg.LOG_LEVEL == "DEBUG"


# ============================================================================
# Test Class: Model Specs Loading
# ============================================================================

class TestModelSpecsLoading:
    def test_missing_file_raises_config_error(self):
        with patch("builtins.open", side_effect=FileNotFoundError()):
            with pytest.raises(ConfigError, match="model_specs.json not found"):
                Config()

    def test_invalid_json_raises_config_error(self):
        with patch("builtins.open", mock_open(read_data="{not json")):
            with pytest.raises(ConfigError, match="could not be parsed"):
                Config()

    def test_shipped_catalogue_loads(self):
        """Given: The real model_specs.json, Then: Default model is declared"""
        cfg = Config()
        assert cfg.get_max_tokens(cfg.DEFAULT_MODEL) > 0


# ============================================================================
# Test Class: get_model_info()
# ============================================================================

class TestGetModelInfo:
    def test_resolves_openai_model(self, minimal_model_specs, mock_env_vars):
        cfg = _build_config(minimal_model_specs, mock_env_vars)
        info = cfg.get_model_info("gpt-4o")

        assert info["provider"] == "openai"
        assert info["model_id"] == "gpt-4o"
        assert info["base_url"] == "https://api.openai.com/v1"
        assert info["api_key"] == "sk-test-openai-key-12345"
        assert info["max_tokens"] == 4000

    def test_resolves_alias(self, minimal_model_specs, mock_env_vars):
        cfg = _build_config(minimal_model_specs, mock_env_vars)
        info = cfg.get_model_info("deepseek")

        assert info["provider"] == "deepseek"
        assert info["model_id"] == "deepseek-chat"
        assert info["max_tokens"] == 2000

    def test_unknown_model_raises(self, minimal_model_specs, mock_env_vars):
        cfg = _build_config(minimal_model_specs, mock_env_vars)
        with pytest.raises(ConfigError, match="Unknown model"):
            cfg.get_model_info("gpt-99")

    def test_missing_key_raises(self, minimal_model_specs, clean_env):
        """Given: No DeepSeek key, Then: ConfigError naming the env var"""
        cfg = _build_config(minimal_model_specs)
        with pytest.raises(ConfigError, match="DEEPSEEK_API_KEY"):
            cfg.get_model_info("deepseek-chat")


# ============================================================================
# Test Class: Pricing and token limits
# ============================================================================

class TestPricingAndLimits:
    def test_model_price(self, minimal_model_specs):
        cfg = _build_config(minimal_model_specs)
        assert cfg.get_cost_per_token("gpt-4o") == pytest.approx(0.000005)

    def test_model_without_pricing_uses_default(self, minimal_model_specs):
        cfg = _build_config(minimal_model_specs)
        assert cfg.get_cost_per_token("deepseek") == pytest.approx(0.000003)

    def test_unknown_model_uses_default(self, minimal_model_specs):
        cfg = _build_config(minimal_model_specs)
        assert cfg.get_cost_per_token("mystery") == pytest.approx(0.000003)
        assert cfg.get_cost_per_token(None) == pytest.approx(0.000003)

    def test_max_tokens_needs_no_key(self, minimal_model_specs, clean_env):
        cfg = _build_config(minimal_model_specs)
        assert cfg.get_max_tokens("deepseek") == 2000
        assert cfg.get_max_tokens("unknown", default=1234) == 1234
