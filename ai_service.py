"""
AI Service Module for the Copy Revision Engine
==============================================

Single-call wrapper around OpenAI-compatible chat completion endpoints
(OpenAI and DeepSeek). Builds the request, enforces a per-call timeout,
extracts content and token usage, and reports usage to an optional sink.

Retry and escalation policy lives in the revision escalator; this client
never retries on its own.
"""

import asyncio
import inspect
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set, TYPE_CHECKING

import openai

from config import ConfigError, config
from models import PromptPair

if TYPE_CHECKING:
    from logging_utils import PhaseLogger

logger = logging.getLogger(__name__)

UsageSink = Callable[[Dict[str, Any]], Any]


class NetworkOrTimeoutError(RuntimeError):
    """A completion call failed in transit or returned nothing usable."""

    def __init__(
        self,
        message: str,
        *,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.model = model
        self.status_code = status_code
        self.cause = cause


class GenerationTimeoutError(NetworkOrTimeoutError):
    """A completion call exceeded its timeout and was cancelled."""


@dataclass
class CompletionResult:
    content: str
    tokens_used: int
    model: str


def describe_error(exc: BaseException) -> str:
    """User-facing message for a failed generation."""
    if isinstance(exc, ConfigError):
        return f"Configuration problem: {exc}"
    if isinstance(exc, GenerationTimeoutError):
        return "The request timed out. Please try again, or request shorter content."

    status = getattr(exc, "status_code", None)
    if status == 429:
        return "Rate limit exceeded. Please wait a moment before trying again."
    if status in (401, 403):
        return "Authentication failed. Check the API key configured for this model."
    if isinstance(status, int) and status >= 500:
        return "The AI service is temporarily unavailable. Please try again later."
    if isinstance(exc, NetworkOrTimeoutError):
        return f"Could not reach the AI service: {exc}"
    return f"Generation failed: {exc}"


def _build_chat_params(
    model_id: str,
    prompts: PromptPair,
    temperature: float,
    max_tokens: int,
    json_output: bool,
) -> Dict[str, Any]:
    """Request body for a chat completion call."""
    params: Dict[str, Any] = {
        "model": model_id,
        "messages": [
            {"role": "system", "content": prompts.system_prompt},
            {"role": "user", "content": prompts.user_prompt},
        ],
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    if json_output:
        params["response_format"] = {"type": "json_object"}
    return params


_shared_client: Optional["GenerationClient"] = None
_client_init_lock = threading.Lock()


def get_generation_client() -> "GenerationClient":
    """Return the shared GenerationClient, creating it on first use."""
    global _shared_client
    if _shared_client is None:
        with _client_init_lock:
            if _shared_client is None:
                _shared_client = GenerationClient()
    return _shared_client


class GenerationClient:
    """Issues one completion call per ``complete()``; no internal retries."""

    def __init__(self, usage_callback: Optional[UsageSink] = None):
        self.usage_callback = usage_callback
        self._clients: Dict[str, openai.AsyncOpenAI] = {}
        self._pending_sinks: Set[asyncio.Future] = set()

    def _get_client(self, model_info: Dict[str, Any]) -> openai.AsyncOpenAI:
        provider = model_info["provider"]
        client = self._clients.get(provider)
        if client is None:
            client = openai.AsyncOpenAI(
                api_key=model_info["api_key"],
                base_url=model_info["base_url"],
                max_retries=0,
            )
            self._clients[provider] = client
            logger.info("Initialized %s client at %s", provider, model_info["base_url"])
        return client

    @staticmethod
    def _extract_total_tokens(usage_obj: Any) -> int:
        """Total tokens from a usage object or dict; 0 when absent."""
        if usage_obj is None:
            return 0

        def _pluck(name: str) -> Optional[int]:
            if isinstance(usage_obj, dict):
                return usage_obj.get(name)
            return getattr(usage_obj, name, None)

        total = _pluck("total_tokens")
        if total is not None:
            return int(total)
        return int(_pluck("prompt_tokens") or 0) + int(_pluck("completion_tokens") or 0)

    def _emit_usage(
        self,
        usage_callback: Optional[UsageSink],
        tokens_used: int,
        model: str,
        purpose: Optional[str],
    ) -> None:
        """Hand usage to the sink; sink failures never reach the caller."""
        if not usage_callback:
            return

        payload = {"tokens_used": tokens_used, "model": model, "purpose": purpose or "completion"}
        try:
            result = usage_callback(payload)
        except Exception:
            logger.exception("Usage callback failed for model %s", model)
            return

        if inspect.isawaitable(result):
            future = asyncio.ensure_future(result)
            self._pending_sinks.add(future)
            future.add_done_callback(self._finish_sink)

    def _finish_sink(self, future: asyncio.Future) -> None:
        self._pending_sinks.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Async usage callback failed: %s", exc, exc_info=exc)

    async def complete(
        self,
        prompts: PromptPair,
        *,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_output: bool = False,
        timeout: Optional[float] = None,
        purpose: Optional[str] = None,
        usage_callback: Optional[UsageSink] = None,
        phase_logger: Optional["PhaseLogger"] = None,
    ) -> CompletionResult:
        """
        Issue one chat completion call.

        Args:
            prompts: System and user prompt
            model: Catalogue model name (defaults to config.DEFAULT_MODEL)
            temperature: Sampling temperature
            max_tokens: Output token cap (defaults to the model's catalogue limit)
            json_output: Force a JSON object response
            timeout: Seconds before the call is cancelled (defaults to the standard timeout)
            purpose: Label reported to the usage sink
            usage_callback: Overrides the client-level usage sink for this call
            phase_logger: Optional phase logger for prompt/response tracing

        Raises:
            ConfigError: unknown model or missing API key
            GenerationTimeoutError: the call exceeded ``timeout``
            NetworkOrTimeoutError: transport/API failure or empty content
        """
        model_name = model or config.DEFAULT_MODEL
        model_info = config.get_model_info(model_name)
        model_id = model_info["model_id"]
        limit = max_tokens if max_tokens is not None else model_info["max_tokens"]
        call_timeout = timeout if timeout is not None else config.STANDARD_TIMEOUT_SECONDS

        params = _build_chat_params(model_id, prompts, temperature, limit, json_output)
        if phase_logger:
            phase_logger.log_prompt(
                model_id,
                prompts.system_prompt,
                prompts.user_prompt,
                temperature=temperature,
                max_tokens=limit,
                json_output=json_output,
                timeout=call_timeout,
            )

        client = self._get_client(model_info)
        try:
            response = await asyncio.wait_for(
                client.chat.completions.create(**params),
                timeout=call_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise GenerationTimeoutError(
                f"Completion call to {model_id} timed out after {call_timeout:.0f}s",
                model=model_id,
                cause=exc,
            ) from exc
        except openai.APITimeoutError as exc:
            raise GenerationTimeoutError(
                f"Completion call to {model_id} timed out: {exc}",
                model=model_id,
                cause=exc,
            ) from exc
        except openai.APIStatusError as exc:
            raise NetworkOrTimeoutError(
                f"{model_info['provider']} API error {exc.status_code}: {exc.message}",
                model=model_id,
                status_code=exc.status_code,
                cause=exc,
            ) from exc
        except openai.APIError as exc:
            raise NetworkOrTimeoutError(
                f"{model_info['provider']} request failed: {exc}",
                model=model_id,
                cause=exc,
            ) from exc

        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        content = getattr(message, "content", None) if message else None
        if not content:
            raise NetworkOrTimeoutError("No content in response", model=model_id)

        tokens_used = self._extract_total_tokens(getattr(response, "usage", None))
        if phase_logger:
            phase_logger.log_response(model_id, content, {"tokens_used": tokens_used})

        self._emit_usage(usage_callback or self.usage_callback, tokens_used, model_id, purpose)
        return CompletionResult(content=content, tokens_used=tokens_used, model=model_id)
