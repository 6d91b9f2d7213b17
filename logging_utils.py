"""
Phase Logging for the Copy Revision Engine
==========================================

Colored console output that follows one request through
compose -> draft -> evaluate -> revise -> complete.

Phase banners and tolerance verdicts are logged with verbose. Full prompts
and raw responses only appear with extra_verbose. Phase timing is recorded
either way.
IMPORTANT: No emojis in console output (Windows encoding issues).
"""

import logging
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from colorama import Fore, Style, init

# Initialize colorama for Windows
init(autoreset=True)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Low-level HTTP loggers that would otherwise flood the console
NOISY_LOGGERS = (
    "httpcore",
    "httpcore.connection",
    "httpcore.http11",
    "httpx",
    "openai._base_client",
)


class Phase:
    """Pipeline stages a request passes through"""
    COMPOSE = "PROMPT_COMPOSITION"
    DRAFT = "DRAFT_GENERATION"
    EVALUATION = "TOLERANCE_EVALUATION"
    REVISION = "WORD_COUNT_REVISION"
    EMERGENCY = "EMERGENCY_REVISION"
    HEADLINES = "HEADLINE_GENERATION"
    COMPLETION = "COMPLETION"


# (color, text icon, short label) per phase
PHASE_STYLES: Dict[str, Tuple[str, str, str]] = {
    Phase.COMPOSE: (Fore.CYAN, "[CMP]", "COMPOSE"),
    Phase.DRAFT: (Fore.GREEN, "[DRF]", "DRAFT"),
    Phase.EVALUATION: (Fore.BLUE, "[EVL]", "EVALUATION"),
    Phase.REVISION: (Fore.YELLOW, "[REV]", "REVISION"),
    Phase.EMERGENCY: (Fore.RED, "[EMG]", "EMERGENCY"),
    Phase.HEADLINES: (Fore.MAGENTA, "[HDL]", "HEADLINES"),
    Phase.COMPLETION: (Fore.GREEN + Style.BRIGHT, "[OK ]", "COMPLETION"),
}
_UNKNOWN_STYLE = (Fore.WHITE, "[???]", "UNKNOWN")

ACCEPT_DECISIONS = ("ACCEPTED", "PASS")


def phase_style(phase_name: Optional[str]) -> Tuple[str, str, str]:
    return PHASE_STYLES.get(phase_name, _UNKNOWN_STYLE)


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler format and silence noisy HTTP loggers."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler()],
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class PhaseTimer:
    """Accumulates wall-clock seconds per phase; re-entering a phase adds to its total."""

    def __init__(self):
        self._totals: Dict[str, float] = {}

    @contextmanager
    def measure(self, key: str) -> Iterator[Dict[str, float]]:
        started = time.perf_counter()
        result = {"elapsed": 0.0}
        try:
            yield result
        finally:
            result["elapsed"] = time.perf_counter() - started
            self._totals[key] = self._totals.get(key, 0.0) + result["elapsed"]

    def totals(self) -> Dict[str, float]:
        return dict(self._totals)


class PhaseLogger:
    """
    Per-request logger with phase banners and timing

    Usage:
        phase_logger = create_phase_logger("a1b2c3d4", extra_verbose=True)

        with phase_logger.phase(Phase.REVISION, sub_label="aggressive"):
            phase_logger.log_prompt("gpt-4o", system_prompt, user_prompt, temperature=0.6)
            phase_logger.log_decision("REVISE", 120, 190)
    """

    def __init__(
        self,
        session_id: str,
        verbose: bool = False,
        extra_verbose: bool = False,
        logger: Optional[logging.Logger] = None
    ):
        self.session_id = session_id
        self.verbose = verbose or extra_verbose
        self.extra_verbose = extra_verbose
        self.logger = logger or logging.getLogger(__name__)
        self.timer = PhaseTimer()
        self._stack = []
        self._attempt: Optional[int] = None

    @property
    def current_phase(self) -> Optional[str]:
        return self._stack[-1] if self._stack else None

    def set_attempt(self, attempt: Optional[int]):
        """Revision attempt shown in phase banners; None clears it"""
        self._attempt = attempt

    def _emit(self, color: str, text: str):
        self.logger.info(f"{color}{text}{Style.RESET_ALL}")

    def _label(self) -> str:
        return phase_style(self.current_phase)[2]

    @contextmanager
    def phase(self, phase_name: str, sub_label: Optional[str] = None):
        color, icon, _ = phase_style(phase_name)
        details = ""
        if self._attempt:
            details += f" [Attempt {self._attempt}]"
        if sub_label:
            details += f" - {sub_label}"
        stamp = datetime.now().strftime("%H:%M:%S")

        if self.verbose:
            rule = "=" * 60
            self._emit(color, rule)
            self._emit(color, f"{icon} {phase_name}{details} [{self.session_id}] [{stamp}]")
            self._emit(color, rule)

        self._stack.append(phase_name)
        try:
            with self.timer.measure(phase_name) as timing:
                yield self
        finally:
            self._stack.pop()
            if self.verbose:
                self._emit(color, f"{icon} {phase_name} done in {timing['elapsed']:.2f}s")

    def _dump(self, title: str, sections: Iterable[Tuple[str, str, Any]]):
        """Framed multi-part block for extra-verbose traces."""
        color = phase_style(self.current_phase)[0]
        rule = "~" * 60
        self._emit(color, rule)
        self._emit(color, f"[EXTRA_VERBOSE] {title}")
        for header_color, header, body in sections:
            if not body:
                continue
            self._emit(header_color, f"[{header}]")
            if isinstance(body, dict):
                for key, value in body.items():
                    self.logger.info(f"  {key}: {value}")
            else:
                self.logger.info(body)
        self._emit(color, rule)

    def log_prompt(
        self,
        model: str,
        system_prompt: Optional[str],
        user_prompt: str,
        **params
    ):
        """Full prompt pair and call parameters (extra_verbose only)"""
        if not self.extra_verbose:
            return
        self._dump(f"PROMPT FOR {self._label()} ({model})", [
            (Fore.CYAN, "SYSTEM PROMPT", system_prompt),
            (Fore.GREEN, "USER PROMPT", user_prompt),
            (Fore.YELLOW, "PARAMETERS", params),
        ])

    def log_response(
        self,
        model: str,
        response: str,
        metadata: Optional[Dict[str, Any]] = None
    ):
        """Raw model output (extra_verbose only)"""
        if not self.extra_verbose:
            return
        self._dump(f"RESPONSE FROM {self._label()} ({model})", [
            (Fore.YELLOW, "METADATA", metadata),
            (Fore.GREEN, "RESPONSE", response),
        ])

    def log_decision(
        self,
        decision: str,
        word_count: Optional[int] = None,
        minimum: Optional[int] = None,
        reason: Optional[str] = None
    ):
        """
        Log a tolerance verdict (verbose only)

        Args:
            decision: "ACCEPTED" or "REVISE"
            word_count: Current word count
            minimum: Lowest acceptable word count
            reason: Optional explanation
        """
        if not self.verbose:
            return
        accepted = decision.upper() in ACCEPT_DECISIONS
        color = (Fore.GREEN if accepted else Fore.YELLOW) + Style.BRIGHT
        tag = "[OK]" if accepted else "[SHORT]"
        counts = f" ({word_count} words, minimum {minimum})" if word_count is not None and minimum is not None else ""
        self._emit(color, f"{tag} DECISION: {decision}{counts}")
        if reason:
            self.logger.info(f"  Reason: {reason}")

    def log_timing_summary(self):
        """Per-phase totals (extra_verbose only)"""
        if not self.extra_verbose:
            return
        totals = self.timer.totals()
        if not totals:
            return

        header = Fore.WHITE + Style.BRIGHT
        self._emit(header, "=" * 60)
        self._emit(header, f"TIMING SUMMARY [{self.session_id}]")
        for phase_name, seconds in sorted(totals.items()):
            self._emit(phase_style(phase_name)[0], f"{phase_name:30s} {seconds:8.2f}s")
        self._emit(header, f"TOTAL TIME: {sum(totals.values()):.2f}s")
        self._emit(header, "=" * 60)


def create_phase_logger(
    session_id: str,
    verbose: bool = False,
    extra_verbose: bool = False
) -> PhaseLogger:
    return PhaseLogger(session_id=session_id, verbose=verbose, extra_verbose=extra_verbose)
