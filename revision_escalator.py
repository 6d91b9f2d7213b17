"""
Revision escalation for word-count enforcement.

Draft -> Evaluate -> Accepted | Revise(n), n = 1..3.

Each revision is built from the previous attempt's output with a prompt from
the mode's PromptStrengthener, and each step is stronger than the last:

    1  normal      temperature 0.5   standard timeout
    2  aggressive  temperature 0.6   escalated timeout, elaboration + keyword flags
    3  emergency   max temperature   escalated timeout, expansion is the only goal

A failed revision (network, timeout, unparseable output) ends the chain and
the last successfully parsed content is returned. Only ConfigError escapes.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ai_service import GenerationClient, NetworkOrTimeoutError, UsageSink, describe_error
from config import config
from content_codec import KIND_HEADLINES, KIND_STRUCTURED, ParseError, decode_payload_strict, payload_kind
from logging_utils import Phase, PhaseLogger
from models import (
    ContentPayload,
    GenerationRequest,
    PromptPair,
    PromptStrength,
    RevisionAttempt,
    RevisionContext,
)
from prompt_composer import PromptStrengthener
from word_count_utils import count_payload_words, is_within_tolerance, minimum_acceptable_word_count

logger = logging.getLogger(__name__)

ProgressSink = Callable[[str], None]


@dataclass(frozen=True)
class RevisionStep:
    attempt_number: int
    strength: PromptStrength
    temperature: float
    escalated_timeout: bool
    purpose: str


REVISION_STEPS = (
    RevisionStep(1, PromptStrength.NORMAL, 0.5, False, "revise_word_count"),
    RevisionStep(2, PromptStrength.AGGRESSIVE, 0.6, True, "revise_word_count_second_attempt"),
    RevisionStep(3, PromptStrength.EMERGENCY, 1.0, True, "revise_word_count_emergency"),
)

# Emergency temperature when no persona voice has to be held
EMERGENCY_TEMPERATURE_NO_PERSONA = 0.9


@dataclass
class EscalationOutcome:
    content: ContentPayload
    word_count: int
    within_tolerance: bool
    attempts: List[RevisionAttempt] = field(default_factory=list)
    attempts_used: int = 0
    prompts: Optional[PromptPair] = None


class RevisionEscalator:
    """Bounded chain of revision calls that never loses usable content."""

    def __init__(
        self,
        client: GenerationClient,
        strengthener: PromptStrengthener,
        *,
        max_attempts: Optional[int] = None,
        progress_callback: Optional[ProgressSink] = None,
        usage_callback: Optional[UsageSink] = None,
        phase_logger: Optional[PhaseLogger] = None,
    ):
        self.client = client
        self.strengthener = strengthener
        limit = config.MAX_REVISION_ATTEMPTS if max_attempts is None else max_attempts
        self.max_attempts = max(0, min(limit, len(REVISION_STEPS)))
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

    def _temperature(self, step: RevisionStep, request: GenerationRequest) -> float:
        if step.strength == PromptStrength.EMERGENCY and not request.persona:
            return EMERGENCY_TEMPERATURE_NO_PERSONA
        return step.temperature

    async def run(
        self,
        request: GenerationRequest,
        draft: ContentPayload,
        target: int,
        expected: Optional[str] = None,
    ) -> EscalationOutcome:
        """
        Evaluate the draft and revise it until it is long enough or attempts run out.

        Args:
            request: Originating request (persona, tolerance, strict flag, model)
            draft: Parsed first draft
            target: Resolved target word count, constant across attempts
            expected: Payload kind every revision must return. Defaults to the
                draft's own kind; pass the request's kind so a draft that fell
                back to plain text is still revised into the structured shape.

        Returns:
            EscalationOutcome holding the last successfully parsed content
        """
        current = draft
        current_count = count_payload_words(draft)
        minimum = minimum_acceptable_word_count(target, request.tolerance_percent)
        accepted = is_within_tolerance(current_count, target, request.tolerance_percent)

        if self.phase_logger:
            self.phase_logger.log_decision("ACCEPTED" if accepted else "REVISE", current_count, minimum)

        outcome = EscalationOutcome(content=current, word_count=current_count, within_tolerance=accepted)

        expected = expected or payload_kind(draft)
        if accepted or not request.strict_adherence or expected == KIND_HEADLINES:
            return outcome

        for step in REVISION_STEPS[: self.max_attempts]:
            ctx = RevisionContext(
                request=request,
                content=current,
                current_word_count=current_count,
                target_word_count=target,
                attempt_number=step.attempt_number,
                strength=step.strength,
                expected_kind=expected,
                force_elaborations_examples=request.force_elaborations_examples
                or step.strength == PromptStrength.AGGRESSIVE,
                force_keyword_integration=request.force_keyword_integration
                or step.strength == PromptStrength.AGGRESSIVE,
            )
            prompts = self.strengthener(ctx)
            outcome.prompts = prompts
            outcome.attempts_used += 1

            phase_name = Phase.EMERGENCY if step.strength == PromptStrength.EMERGENCY else Phase.REVISION
            if self.phase_logger:
                self.phase_logger.set_attempt(step.attempt_number)

            self._progress(
                f"Revision {step.attempt_number} started ({step.strength.value}): "
                f"{current_count} of {target} words"
            )

            with self._phase(phase_name, sub_label=step.strength.value):
                try:
                    completion = await self.client.complete(
                        prompts,
                        model=request.model,
                        temperature=self._temperature(step, request),
                        json_output=expected == KIND_STRUCTURED,
                        timeout=config.ESCALATED_TIMEOUT_SECONDS if step.escalated_timeout
                        else config.STANDARD_TIMEOUT_SECONDS,
                        purpose=step.purpose,
                        usage_callback=self.usage_callback,
                        phase_logger=self.phase_logger,
                    )
                    revised = decode_payload_strict(completion.content, expected)
                except (NetworkOrTimeoutError, ParseError) as exc:
                    logger.warning(
                        "Revision %d failed, keeping previous content (%d words): %s",
                        step.attempt_number, current_count, exc,
                    )
                    self._progress(
                        f"Revision {step.attempt_number} failed ({describe_error(exc)}); "
                        f"keeping previous version with {current_count} words"
                    )
                    break

            revised_count = count_payload_words(revised)
            accepted = is_within_tolerance(revised_count, target, request.tolerance_percent)
            outcome.attempts.append(
                RevisionAttempt(
                    attempt_number=step.attempt_number,
                    prompt_strength=step.strength,
                    result_payload=revised,
                    result_word_count=revised_count,
                    accepted=accepted,
                )
            )
            current, current_count = revised, revised_count
            outcome.content = current
            outcome.word_count = current_count
            outcome.within_tolerance = accepted

            if self.phase_logger:
                self.phase_logger.log_decision("ACCEPTED" if accepted else "REVISE", current_count, minimum)
            self._progress(
                f"Revision {step.attempt_number} completed: {current_count} of {target} words"
                + (" (within tolerance)" if accepted else "")
            )
            if accepted:
                break

        if self.phase_logger:
            self.phase_logger.set_attempt(None)
        if not outcome.within_tolerance:
            logger.warning(
                "Copy still short after %d revision(s): %d of %d words",
                outcome.attempts_used, outcome.word_count, target,
            )
        return outcome
