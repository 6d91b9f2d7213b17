"""
Command-line entrypoint for the Copy Revision Engine.

Reads a GenerationRequest from a JSON file, runs it, and prints the
GenerationResult as JSON. Progress messages and the token usage summary go
to the log.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import uuid
from typing import Optional

# Use optimized JSON (orjson)
import json_utils as json
from ai_service import NetworkOrTimeoutError, describe_error
from config import ConfigError, config
from content_codec import ParseError, parse_structured
from copy_generator import CopyGenerator
from logging_utils import configure_logging, create_phase_logger
from models import ContentPayload, GenerationRequest, HeadlineList, PlainText
from usage_tracking import UsageTracker

logger = logging.getLogger("copy_engine")


def load_source_payload(text: str) -> ContentPayload:
    """Structured JSON, a JSON array of headlines, or plain text."""
    try:
        return parse_structured(text)
    except ParseError:
        pass

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if isinstance(data, list) and all(isinstance(item, str) for item in data):
        return HeadlineList(headlines=data)
    return PlainText(text=text.strip())


def _read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


async def run(request: GenerationRequest, source: Optional[ContentPayload], verbose: bool, extra_verbose: bool):
    tracker = UsageTracker(metadata={"mode": request.mode.value})
    phase_logger = create_phase_logger(
        session_id=uuid.uuid4().hex[:8],
        verbose=verbose,
        extra_verbose=extra_verbose,
    )
    generator = CopyGenerator(
        progress_callback=lambda message: logger.info("[progress] %s", message),
        usage_callback=tracker.create_callback(),
        phase_logger=phase_logger,
    )
    result = await generator.generate(request, source)
    logger.info("Token usage:\n%s", tracker.render_text())
    return result


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Copy Revision Engine")
    parser.add_argument("request", help="Path to a JSON file holding a GenerationRequest")
    parser.add_argument(
        "--source",
        help="Existing content for alternative/humanize/restyle/headline modes (text or JSON)",
    )
    parser.add_argument("--output", help="Write the result JSON here instead of stdout")
    parser.add_argument("--verbose", action="store_true", help="Verbose phase logs")
    parser.add_argument(
        "--extra-verbose",
        action="store_true",
        help="Log full prompts and responses (includes --verbose)",
    )
    args = parser.parse_args(argv)

    configure_logging(config.LOG_LEVEL)

    try:
        request = GenerationRequest.model_validate(json.loads(_read_file(args.request)))
    except (OSError, json.JSONDecodeError, ValueError) as exc:
        logger.error("Could not load request from %s: %s", args.request, exc)
        return 2

    source = load_source_payload(_read_file(args.source)) if args.source else None

    try:
        result = asyncio.run(
            run(
                request,
                source,
                verbose=args.verbose or config.VERBOSE,
                extra_verbose=args.extra_verbose or config.EXTRA_VERBOSE,
            )
        )
    except (ConfigError, NetworkOrTimeoutError) as exc:
        logger.error(describe_error(exc))
        return 1

    output = json.dumps(result.model_dump(mode="json"), indent=2)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(output)
        logger.info("Result written to %s", args.output)
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
