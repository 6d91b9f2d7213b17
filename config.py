"""
Configuration for the Copy Revision Engine (fallback-free)
==========================================================

Central configuration for API keys, timeouts, tolerance defaults and the
model catalogue. If something is missing or misconfigured, this module prints
a clear error to stderr and raises ConfigError.
"""

import os
import sys
from typing import Dict, Any, Optional
# Use optimized JSON (orjson)
import json_utils as json
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

TRUTHY_ENV_VALUES = {"1", "true", "yes", "on"}


class ConfigError(RuntimeError):
    """Raised when an API key, model or catalogue entry is missing or invalid."""


def _fail(msg: str) -> None:
    print(msg, file=sys.stderr, flush=True)
    raise ConfigError(msg)


class Config(BaseModel):
    """Configuration settings for the Copy Revision Engine (no fallbacks)."""

    model_config = {"populate_by_name": True}

    # API Keys (loaded from environment variables)
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")
    DEEPSEEK_API_KEY: str = Field(default="", description="DeepSeek API key")

    DEFAULT_MODEL: str = Field(default="gpt-4o", description="Model used when a request does not name one")

    # Per-call timeouts enforced by the generation client
    STANDARD_TIMEOUT_SECONDS: float = Field(default=60.0, description="Timeout for drafts and first revisions")
    ESCALATED_TIMEOUT_SECONDS: float = Field(default=90.0, description="Timeout for aggressive and emergency revisions")

    DEFAULT_TOLERANCE_PERCENT: float = Field(
        default=5.0,
        ge=0.0,
        le=100.0,
        description="Allowed undershoot below the target word count before a revision is triggered",
    )
    MAX_REVISION_ATTEMPTS: int = Field(default=3, ge=0, le=3, description="Upper bound on revision calls per request")
    DEFAULT_NUM_HEADLINES: int = Field(default=3, ge=1, description="Headline options generated when a request does not say")

    LOG_LEVEL: str = Field(default="INFO", description="Root logging level")
    VERBOSE: bool = Field(default=False, description="Verbose phase logging")
    EXTRA_VERBOSE: bool = Field(default=False, description="Log full prompts and responses")

    # Model catalogue loaded from external JSON file (mandatory)
    model_specs: Dict[str, Any] = Field(default_factory=dict, description="Model catalogue with limits and pricing")

    def __init__(self):
        super().__init__()
        self.load_model_specifications()
        self.load_from_environment()

    def load_from_environment(self):
        """Load configuration from environment variables."""
        self.OPENAI_API_KEY = os.getenv("OPENAI_KEY", "") or os.getenv("OPENAI_API_KEY", "")
        self.DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY", "")
        self.DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", self.DEFAULT_MODEL)
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", self.LOG_LEVEL).upper()

        for env_name, attr in (
            ("STANDARD_TIMEOUT_SECONDS", "STANDARD_TIMEOUT_SECONDS"),
            ("ESCALATED_TIMEOUT_SECONDS", "ESCALATED_TIMEOUT_SECONDS"),
        ):
            raw = os.getenv(env_name)
            if raw:
                try:
                    parsed = float(raw)
                    if parsed > 0:
                        setattr(self, attr, parsed)
                except ValueError:
                    pass

        tolerance_override = os.getenv("DEFAULT_TOLERANCE_PERCENT")
        if tolerance_override:
            try:
                parsed = float(tolerance_override)
                if 0 <= parsed <= 100:
                    self.DEFAULT_TOLERANCE_PERCENT = parsed
            except ValueError:
                pass

        headlines_override = os.getenv("DEFAULT_NUM_HEADLINES")
        if headlines_override:
            try:
                parsed = int(headlines_override)
                if parsed > 0:
                    self.DEFAULT_NUM_HEADLINES = parsed
            except ValueError:
                pass

        self.VERBOSE = os.getenv("VERBOSE", "").strip().lower() in TRUTHY_ENV_VALUES
        self.EXTRA_VERBOSE = os.getenv("EXTRA_VERBOSE", "").strip().lower() in TRUTHY_ENV_VALUES
        if self.EXTRA_VERBOSE:
            self.VERBOSE = True

    def load_model_specifications(self):
        """Load the model catalogue from JSON file (no fallbacks)."""
        specs_file = os.path.join(os.path.dirname(__file__), "model_specs.json")
        try:
            with open(specs_file, "r", encoding="utf-8") as f:
                self.model_specs = json.load(f)
        except FileNotFoundError:
            _fail(
                f"[CONFIG ERROR] model_specs.json not found at '{specs_file}'. "
                "Provide a valid model_specs.json."
            )
        except json.JSONDecodeError as e:
            _fail(f"[CONFIG ERROR] model_specs.json could not be parsed: {e}.")

    def _api_key_for(self, provider: str) -> str:
        if provider == "openai":
            return self.OPENAI_API_KEY
        if provider == "deepseek":
            return self.DEEPSEEK_API_KEY
        return ""

    def get_model_info(self, model_name: str) -> Dict[str, Any]:
        """
        Resolve a model name to provider, model ID, endpoint, key and limits.

        - No silent fallbacks.
        - Raises ConfigError if the model is unknown or the provider key is missing.
        """
        aliases = self.model_specs.get("aliases", {})
        resolved_name = aliases.get(model_name, model_name)
        specs = self.model_specs.get("model_specifications", {})
        providers = self.model_specs.get("providers", {})

        for provider, models in specs.items():
            model_data = models.get(resolved_name)
            if model_data is None:
                continue

            provider_data = providers.get(provider, {})
            api_key = self._api_key_for(provider)
            if not api_key:
                env_hint = provider_data.get("env_hint", "PROVIDER_API_KEY")
                _fail(
                    f"[CONFIG ERROR] Missing API key for provider '{provider}' "
                    f"while resolving model '{resolved_name}'. Set '{env_hint}' in your environment."
                )

            base_url = provider_data.get("base_url")
            if not base_url:
                _fail(f"[CONFIG ERROR] Provider '{provider}' has no base_url in model_specs.json.")

            return {
                "provider": provider,
                "model_id": model_data.get("model_id", resolved_name),
                "api_key": api_key,
                "base_url": base_url,
                "max_tokens": int(model_data.get("max_tokens", 4000)),
                "name": model_data.get("name", resolved_name),
                "description": model_data.get("description", ""),
                "cost_per_token": self.get_cost_per_token(resolved_name),
            }

        _fail(
            f"[CONFIG ERROR] Unknown model '{model_name}'. "
            "Declare it under 'model_specifications' or add an alias in 'aliases' within model_specs.json."
        )

    def get_max_tokens(self, model_name: str, default: int = 4000) -> int:
        """Catalogue output-token limit, without requiring the provider key."""
        aliases = self.model_specs.get("aliases", {})
        resolved_name = aliases.get(model_name, model_name)
        for models in self.model_specs.get("model_specifications", {}).values():
            model_data = models.get(resolved_name)
            if model_data is not None:
                return int(model_data.get("max_tokens", default))
        return default

    def get_cost_per_token(self, model_name: Optional[str]) -> float:
        """Blended USD cost per token; unknown models use the default price."""
        default_price = float(self.model_specs.get("default_pricing", {}).get("per_token", 0.0))
        if not model_name:
            return default_price

        aliases = self.model_specs.get("aliases", {})
        resolved_name = aliases.get(model_name, model_name)
        for models in self.model_specs.get("model_specifications", {}).values():
            model_data = models.get(resolved_name)
            if model_data is not None:
                return float(model_data.get("pricing", {}).get("per_token", default_price))
        return default_price


# Global configuration instance
config = Config()
