"""Shared pytest fixtures for Copy Revision Engine tests."""

import os
import sys
from types import SimpleNamespace
from typing import Callable, List, Optional, Union
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ai_service import CompletionResult  # noqa: E402
from models import GenerationRequest, PromptPair  # noqa: E402


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture
def mock_env_vars():
    """Provide test environment variables."""
    env = {
        "OPENAI_API_KEY": "sk-test-openai-key-12345",
        "DEEPSEEK_API_KEY": "sk-test-deepseek-key-12345",
        "DEFAULT_TOLERANCE_PERCENT": "5",
        "STANDARD_TIMEOUT_SECONDS": "60",
        "ESCALATED_TIMEOUT_SECONDS": "90",
    }
    with patch.dict(os.environ, env, clear=False):
        yield env


@pytest.fixture
def clean_env():
    """Provide clean environment without API keys."""
    with patch.dict(os.environ, {}, clear=False):
        for key in ("OPENAI_API_KEY", "OPENAI_KEY", "DEEPSEEK_API_KEY"):
            os.environ.pop(key, None)
        yield


# ============================================================================
# Content helpers
# ============================================================================

def words(n: int, word: str = "word") -> str:
    """Plain text with exactly n words."""
    return " ".join([word] * n)


@pytest.fixture
def make_words() -> Callable[[int], str]:
    return words


# ============================================================================
# Fake generation client
# ============================================================================

class FakeGenerationClient:
    """
    Stand-in for GenerationClient that replays scripted responses.

    Each entry in ``responses`` is a string (returned as content), an
    exception instance (raised), or a callable taking the PromptPair and
    returning either of those.
    """

    def __init__(self, responses: List[Union[str, Exception, Callable[[PromptPair], Union[str, Exception]]]]):
        self._responses = list(responses)
        self.calls = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def prompts(self) -> List[PromptPair]:
        return [call["prompts"] for call in self.calls]

    async def complete(self, prompts: PromptPair, **kwargs) -> CompletionResult:
        self.calls.append({"prompts": prompts, **kwargs})
        if not self._responses:
            raise AssertionError("FakeGenerationClient ran out of scripted responses")
        response = self._responses.pop(0) if len(self._responses) > 1 else self._responses[0]
        if callable(response) and not isinstance(response, Exception):
            response = response(prompts)
        if isinstance(response, Exception):
            raise response
        usage_callback = kwargs.get("usage_callback")
        if usage_callback:
            usage_callback({"tokens_used": 10, "model": kwargs.get("model") or "gpt-4o", "purpose": kwargs.get("purpose")})
        return CompletionResult(content=response, tokens_used=10, model=kwargs.get("model") or "gpt-4o")


@pytest.fixture
def fake_client_factory():
    """Build a FakeGenerationClient from scripted responses."""
    return FakeGenerationClient


# ============================================================================
# Request Fixtures
# ============================================================================

@pytest.fixture
def make_request():
    """Build a GenerationRequest with test-friendly defaults."""

    def _make(**overrides) -> GenerationRequest:
        data = {
            "mode": "create",
            "model": "gpt-4o",
            "business_description": "A meal-kit service for busy parents",
            "target_audience": "Working parents",
        }
        data.update(overrides)
        return GenerationRequest(**data)

    return _make


# ============================================================================
# OpenAI response fixtures
# ============================================================================

def make_openai_response(content: Optional[str], total_tokens: Optional[int] = 120):
    """Object shaped like an openai ChatCompletion."""
    usage = SimpleNamespace(total_tokens=total_tokens, prompt_tokens=80, completion_tokens=40)
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)], usage=usage)


@pytest.fixture
def mock_openai_response():
    return make_openai_response
