"""
Copy generation orchestration.

One CopyGenerator method per mode. Each composes the draft prompt, makes the
draft call, decodes the result and hands it to the RevisionEscalator with the
mode's prompt strengthener. Stages run strictly in sequence; the only await
points are completion calls.

Two single-call helpers sit beside the modes: evaluate_prompt scores the
input of a create/improve request and get_suggestions proposes field values.
"""

import logging
from contextlib import nullcontext
from typing import List, Optional, Tuple

from ai_service import (
    GenerationClient,
    NetworkOrTimeoutError,
    UsageSink,
    describe_error,
    get_generation_client,
)
from config import config
from content_codec import (
    KIND_HEADLINES,
    KIND_PLAIN,
    KIND_STRUCTURED,
    ParseError,
    decode_payload,
    pad_headlines,
    parse_headlines,
    parse_prompt_evaluation,
    parse_suggestions,
)
from logging_utils import Phase, PhaseLogger
from models import (
    ContentPayload,
    GenerationMode,
    GenerationRequest,
    GenerationResult,
    HeadlineList,
    PlainText,
    PromptEvaluation,
    PromptPair,
    Structured,
)
from prompt_composer import (
    MODE_TEMPERATURES,
    build_alternative_prompts,
    build_copy_prompts,
    build_evaluation_prompts,
    build_headline_prompts,
    build_humanize_prompts,
    build_restyle_prompts,
    build_suggestion_prompts,
    strengthener_for,
)
from revision_escalator import ProgressSink, RevisionEscalator
from word_count_utils import (
    count_payload_words,
    distribute_structure_word_counts,
    resolve_target_word_count,
)

logger = logging.getLogger(__name__)

EVALUATION_TEMPERATURE = 0.7
SUGGESTION_TEMPERATURE = 0.8

EVALUATION_FAILED_TIPS = (
    "There was an error evaluating your input.",
    "Please check your API keys and internet connection.",
    "Try again or proceed with generating content.",
)


def prepare_request(request: GenerationRequest) -> Tuple[GenerationRequest, int]:
    """
    Resolve the target once and fill in per-section counts when none are given.

    Returns a new request; the caller's request is left untouched.
    """
    target = resolve_target_word_count(request.word_count, request.custom_word_count, request.output_structure)
    if request.output_structure:
        distributed = distribute_structure_word_counts(request.output_structure, target)
        request = request.model_copy(update={"output_structure": distributed})
    return request, target


def expected_kind(request: GenerationRequest, source: Optional[ContentPayload] = None) -> str:
    """Payload shape the model should return for this request."""
    if request.mode == GenerationMode.HEADLINE:
        return KIND_HEADLINES
    if source is None:
        return KIND_STRUCTURED if request.expects_structured else KIND_PLAIN
    if isinstance(source, Structured):
        return KIND_STRUCTURED
    if isinstance(source, HeadlineList):
        return KIND_HEADLINES
    if isinstance(source, PlainText):
        return KIND_STRUCTURED if request.expects_structured else KIND_PLAIN
    raise TypeError(f"Unsupported payload type: {type(source).__name__}")


class CopyGenerator:
    """Runs one generation request end to end and returns a GenerationResult."""

    def __init__(
        self,
        client: Optional[GenerationClient] = None,
        *,
        progress_callback: Optional[ProgressSink] = None,
        usage_callback: Optional[UsageSink] = None,
        phase_logger: Optional[PhaseLogger] = None,
    ):
        self.client = client or get_generation_client()
        self.progress_callback = progress_callback
        self.usage_callback = usage_callback
        self.phase_logger = phase_logger

    def _progress(self, message: str) -> None:
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message)

    def _phase(self, name: str, sub_label: Optional[str] = None):
        if self.phase_logger is None:
            return nullcontext()
        return self.phase_logger.phase(name, sub_label=sub_label)

    async def generate(self, request: GenerationRequest, source: Optional[ContentPayload] = None) -> GenerationResult:
        """Dispatch on ``request.mode``."""
        mode = request.mode
        if mode in (GenerationMode.CREATE, GenerationMode.IMPROVE):
            return await self.generate_copy(request)
        if mode == GenerationMode.ALTERNATIVE:
            return await self.generate_alternative(request, self._require_source(source, mode))
        if mode == GenerationMode.HUMANIZE:
            return await self.generate_humanized(request, self._require_source(source, mode))
        if mode == GenerationMode.RESTYLE:
            return await self.restyle_with_persona(request, self._require_source(source, mode))
        if mode == GenerationMode.HEADLINE:
            return await self.generate_headlines(request, source)
        raise ValueError(f"Unsupported generation mode: {mode}")

    @staticmethod
    def _require_source(source: Optional[ContentPayload], mode: GenerationMode) -> ContentPayload:
        if source is None:
            raise ValueError(f"Mode '{mode.value}' needs existing content to work from")
        return source

    async def _draft_and_revise(
        self,
        request: GenerationRequest,
        target: int,
        prompts: PromptPair,
        expected: str,
        purpose: str,
        label: str,
    ) -> GenerationResult:
        """Draft call, then escalation. Draft failures propagate to the caller."""
        fallback_persona = request.persona if request.mode == GenerationMode.RESTYLE else None

        with self._phase(Phase.DRAFT, sub_label=label):
            self._progress(f"Generating {label} (target {target} words)...")
            try:
                completion = await self.client.complete(
                    prompts,
                    model=request.model,
                    temperature=MODE_TEMPERATURES[request.mode],
                    json_output=expected in (KIND_STRUCTURED, KIND_HEADLINES),
                    timeout=config.STANDARD_TIMEOUT_SECONDS,
                    purpose=purpose,
                    usage_callback=self.usage_callback,
                    phase_logger=self.phase_logger,
                )
            except NetworkOrTimeoutError as exc:
                self._progress(f"Error generating {label}: {describe_error(exc)}")
                raise

            draft = decode_payload(completion.content, expected, persona=fallback_persona)
            draft_count = count_payload_words(draft)
            self._progress(f"Draft generated: {draft_count} words (target {target})")

        escalator = RevisionEscalator(
            self.client,
            strengthener_for(request.mode),
            progress_callback=self.progress_callback,
            usage_callback=self.usage_callback,
            phase_logger=self.phase_logger,
        )
        with self._phase(Phase.EVALUATION):
            outcome = await escalator.run(request, draft, target, expected)

        with self._phase(Phase.COMPLETION):
            self._progress(
                f"Finished {label}: {outcome.word_count} words after {outcome.attempts_used} revision(s)"
            )
        if self.phase_logger:
            self.phase_logger.log_timing_summary()

        return GenerationResult(
            content=outcome.content,
            attempts_used=outcome.attempts_used,
            final_word_count=outcome.word_count,
            within_tolerance=outcome.within_tolerance,
            target_word_count=target,
            prompts=outcome.prompts or prompts,
            attempts=outcome.attempts,
            persona_used=request.persona,
        )

    async def generate_copy(self, request: GenerationRequest) -> GenerationResult:
        """Create new copy or improve existing copy."""
        request, target = prepare_request(request)
        expected = expected_kind(request)
        with self._phase(Phase.COMPOSE):
            prompts = build_copy_prompts(request, target, expected)
        return await self._draft_and_revise(
            request, target, prompts, expected,
            purpose=f"generate_{request.mode.value}_copy",
            label=f"{request.mode.value} copy",
        )

    async def generate_alternative(self, request: GenerationRequest, source: ContentPayload) -> GenerationResult:
        request = request.model_copy(update={"mode": GenerationMode.ALTERNATIVE})
        request, target = prepare_request(request)
        expected = self._text_kind(request, source)
        prompts = build_alternative_prompts(request, source, target, expected)
        return await self._draft_and_revise(
            request, target, prompts, expected,
            purpose="generate_alternative_copy",
            label="alternative copy",
        )

    async def generate_humanized(self, request: GenerationRequest, source: ContentPayload) -> GenerationResult:
        request = request.model_copy(update={"mode": GenerationMode.HUMANIZE})
        request, target = prepare_request(request)
        expected = self._text_kind(request, source)
        prompts = build_humanize_prompts(request, source, target, expected)
        return await self._draft_and_revise(
            request, target, prompts, expected,
            purpose="generate_humanized_copy",
            label="humanized copy",
        )

    async def restyle_with_persona(self, request: GenerationRequest, source: ContentPayload) -> GenerationResult:
        """
        Rewrite content in the request's persona voice.

        Headline lists keep their shape and skip escalation; text and
        structured content go through the usual draft and revision flow.
        """
        if not request.persona:
            raise ValueError("Restyling requires a persona")

        request = request.model_copy(update={"mode": GenerationMode.RESTYLE})
        request, target = prepare_request(request)
        expected = expected_kind(request, source)
        prompts = build_restyle_prompts(request, source, target, expected)

        if isinstance(source, HeadlineList):
            return await self._restyle_headlines(request, source, prompts)

        return await self._draft_and_revise(
            request, target, prompts, expected,
            purpose="restyle_with_persona",
            label=f"{request.persona}-styled copy",
        )

    def _text_kind(self, request: GenerationRequest, source: ContentPayload) -> str:
        kind = expected_kind(request, source)
        if kind == KIND_HEADLINES:
            raise ValueError(f"Mode '{request.mode.value}' works on copy, not headline lists")
        return kind

    async def _restyle_headlines(
        self,
        request: GenerationRequest,
        source: HeadlineList,
        prompts: PromptPair,
    ) -> GenerationResult:
        persona = request.persona
        count = request.num_headlines
        originals = source.headlines

        with self._phase(Phase.HEADLINES, sub_label=f"{persona} restyle"):
            self._progress(f"Generating {persona}-styled headlines...")
            completion = await self.client.complete(
                prompts,
                model=request.model,
                temperature=MODE_TEMPERATURES[GenerationMode.RESTYLE],
                max_tokens=max(1, config.get_max_tokens(request.model) // 4),
                json_output=True,
                timeout=config.STANDARD_TIMEOUT_SECONDS,
                purpose="restyle_with_persona",
                usage_callback=self.usage_callback,
                phase_logger=self.phase_logger,
            )
            try:
                headlines = parse_headlines(completion.content)
            except ParseError as exc:
                logger.warning("Could not parse restyled headlines: %s", exc)
                headlines = []

        def _filler(i: int) -> str:
            original = originals[i - 1] if i - 1 < len(originals) else f"Headline {i}"
            return f"{persona}'s style: {original}"

        payload = HeadlineList(headlines=pad_headlines(headlines, count, _filler))
        return self._headline_result(payload, prompts, persona)

    async def generate_headlines(
        self,
        request: GenerationRequest,
        source: Optional[ContentPayload] = None,
    ) -> GenerationResult:
        """
        Generate ``num_headlines`` headline options.

        Network failures and unparseable output degrade to placeholder
        headlines rather than raising; ConfigError still propagates.
        """
        request = request.model_copy(update={"mode": GenerationMode.HEADLINE})
        count = request.num_headlines
        prompts = build_headline_prompts(request, source)

        with self._phase(Phase.HEADLINES):
            self._progress(f"Generating {count} headline options...")
            try:
                completion = await self.client.complete(
                    prompts,
                    model=request.model,
                    temperature=MODE_TEMPERATURES[GenerationMode.HEADLINE],
                    max_tokens=max(1, config.get_max_tokens(request.model) // 4),
                    json_output=True,
                    timeout=config.STANDARD_TIMEOUT_SECONDS,
                    purpose="generate_headlines",
                    usage_callback=self.usage_callback,
                    phase_logger=self.phase_logger,
                )
                headlines = parse_headlines(completion.content)
            except (NetworkOrTimeoutError, ParseError) as exc:
                logger.error("Headline generation failed: %s", exc)
                self._progress(f"Error generating headlines: {describe_error(exc)}")
                placeholders = [f"Headline Option {i}" for i in range(1, count + 1)]
                return self._headline_result(HeadlineList(headlines=placeholders), prompts, request.persona)

        payload = HeadlineList(
            headlines=pad_headlines(headlines, count, lambda i: f"Additional Headline Option {i}")
        )
        self._progress(f"Generated {len(payload.headlines)} headlines")
        return self._headline_result(payload, prompts, request.persona)

    @staticmethod
    def _headline_result(payload: HeadlineList, prompts: PromptPair, persona: Optional[str]) -> GenerationResult:
        return GenerationResult(
            content=payload,
            attempts_used=0,
            final_word_count=count_payload_words(payload),
            within_tolerance=True,
            target_word_count=0,
            prompts=prompts,
            persona_used=persona,
        )

    async def evaluate_prompt(self, request: GenerationRequest) -> PromptEvaluation:
        """
        Score the input a create/improve request would be generated from.

        The business description is evaluated for create, the original copy
        otherwise. Network failures and unreadable responses give a zero score
        with generic tips; ConfigError still propagates.
        """
        creating = request.mode == GenerationMode.CREATE
        text = request.business_description if creating else request.original_copy
        if not text.strip():
            raise ValueError("No text provided for evaluation")

        request, target = prepare_request(request)
        prompts = build_evaluation_prompts(request, target)

        with self._phase(Phase.COMPOSE, sub_label="input evaluation"):
            self._progress("Evaluating input quality...")
            try:
                completion = await self.client.complete(
                    prompts,
                    model=request.model,
                    temperature=EVALUATION_TEMPERATURE,
                    max_tokens=max(1, config.get_max_tokens(request.model) // 4),
                    json_output=True,
                    timeout=config.STANDARD_TIMEOUT_SECONDS,
                    purpose="evaluate_prompt",
                    usage_callback=self.usage_callback,
                    phase_logger=self.phase_logger,
                )
                evaluation = parse_prompt_evaluation(completion.content)
            except (NetworkOrTimeoutError, ParseError) as exc:
                logger.error("Input evaluation failed: %s", exc)
                self._progress(f"Error evaluating input: {describe_error(exc)}")
                return PromptEvaluation(score=0, tips=list(EVALUATION_FAILED_TIPS))

        self._progress(f"Input evaluation complete: {evaluation.score}/100")
        return evaluation

    async def get_suggestions(
        self,
        text: str,
        field_type: str,
        *,
        language: str = "English",
        model: Optional[str] = None,
    ) -> List[str]:
        """
        Suggest 6-8 values for a request field (``keyMessage``, ``keywords``, ...).

        Unlike headline generation there is no placeholder fallback: call and
        parse failures are reported through progress and raised.
        """
        if not text or not text.strip() or not field_type:
            raise ValueError("Text and field type are required")

        model = model or config.DEFAULT_MODEL
        prompts = build_suggestion_prompts(text, field_type, language)

        self._progress(f"Generating suggestions for {field_type}...")
        try:
            completion = await self.client.complete(
                prompts,
                model=model,
                temperature=SUGGESTION_TEMPERATURE,
                max_tokens=max(1, config.get_max_tokens(model) // 4),
                json_output=True,
                timeout=config.STANDARD_TIMEOUT_SECONDS,
                purpose="get_suggestions",
                usage_callback=self.usage_callback,
                phase_logger=self.phase_logger,
            )
            suggestions = parse_suggestions(completion.content)
        except (NetworkOrTimeoutError, ParseError) as exc:
            self._progress(f"Error generating suggestions: {describe_error(exc)}")
            raise

        self._progress(f"Generated {len(suggestions)} suggestions for {field_type}")
        return suggestions
