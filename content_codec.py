"""
Content Codec for the Copy Revision Engine
==========================================

Converts between model output (wire JSON or free text) and the internal
ContentPayload union:

- Markdown fence stripping as an explicit normalization step
- Structured ``{headline, sections:[{title, content?, listItems?}]}`` parsing
- Headline list parsing from arrays, objects or numbered lines
- Suggestion lists and input-quality evaluations
- Flattening, the one text-extraction path used for word counting

Models do not always honour JSON mode; anything that cannot be parsed falls
back to a usable payload instead of raising to the caller.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Optional, Union

# Use optimized JSON (orjson)
import json_utils as json
from models import ContentPayload, HeadlineList, PlainText, PromptEvaluation, Section, Structured

logger = logging.getLogger(__name__)

KIND_PLAIN = "plain"
KIND_STRUCTURED = "structured"
KIND_HEADLINES = "headlines"

FALLBACK_SECTION_TITLE = "Restyled Content"

_FENCED_BLOCK = re.compile(r"```(?:json|JSON)?\s*([\s\S]*?)```")
_LIST_MARKER = re.compile(r"^\s*(?:\d+\s*[.):-]|[-*•])\s*")


class ParseError(ValueError):
    """Model output could not be read as the expected payload shape."""


# =============================================================================
# Normalization
# =============================================================================

def strip_code_fences(raw: str) -> str:
    """
    Remove markdown code fences that models wrap around JSON.

    Examples:
        '{"a": 1}'                    -> '{"a": 1}' (already valid, untouched)
        '```json\\n{"a": 1}\\n```'    -> '{"a": 1}'
        'Here you go:\\n```\\n[1]\\n```' -> '[1]'
        '`json {"a": 1}`'             -> '{"a": 1}'
    """
    if raw is None:
        return ""

    stripped = raw.strip()
    if not stripped or json.is_valid_json(stripped):
        return stripped

    match = _FENCED_BLOCK.search(stripped)
    if match:
        return match.group(1).strip()

    if not (stripped.startswith("`") or stripped.endswith("`")):
        return stripped

    cleaned = stripped.strip("`").strip()
    if cleaned[:4].lower() == "json":
        cleaned = cleaned[4:].strip()
    return cleaned


# =============================================================================
# Structured content
# =============================================================================

def _section_from_wire(entry: Any) -> Section:
    if isinstance(entry, str):
        return Section(title="", body=_paragraphs(entry))
    if not isinstance(entry, dict):
        raise ParseError(f"Section entries must be objects, got {type(entry).__name__}")

    title = str(entry.get("title") or "")
    list_items = entry.get("listItems")
    if isinstance(list_items, list) and list_items:
        items = [str(item).strip() for item in list_items if str(item).strip()]
        return Section(title=title, body=items, is_list=True)

    content = entry.get("content")
    if isinstance(content, list):
        return Section(title=title, body=[str(item).strip() for item in content if str(item).strip()])
    return Section(title=title, body=_paragraphs(str(content or "")))


def _paragraphs(text: str) -> List[str]:
    return [block.strip() for block in re.split(r"\n\s*\n", text) if block.strip()]


def parse_structured(raw: str) -> Structured:
    """
    Parse wire JSON into a Structured payload.

    Raises:
        ParseError: invalid JSON, or ``headline``/``sections`` missing
    """
    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ParseError("Structured content must be a JSON object")

    headline = data.get("headline")
    sections = data.get("sections")
    if not isinstance(headline, str) or not isinstance(sections, list):
        raise ParseError("Structured content requires 'headline' and 'sections'")

    return Structured(
        headline=headline.strip(),
        sections=[_section_from_wire(entry) for entry in sections],
    )


# =============================================================================
# Headlines
# =============================================================================

def _string_items(values: Any) -> List[str]:
    if not isinstance(values, list):
        return []
    return [item.strip() for item in values if isinstance(item, str) and item.strip()]


def _headlines_from_json(data: Any) -> List[str]:
    if isinstance(data, list):
        return _string_items(data)
    if isinstance(data, str):
        return [data.strip()] if data.strip() else []
    if not isinstance(data, dict):
        return []

    headlines = _string_items(data.get("headlines"))
    if headlines:
        return headlines

    for value in data.values():
        items = _string_items(value)
        if items:
            return items

    return [value.strip() for value in data.values() if isinstance(value, str) and value.strip()]


def _headlines_from_lines(text: str) -> List[str]:
    headlines = []
    for line in text.splitlines():
        line = _LIST_MARKER.sub("", line).strip().strip('",').strip()
        if line and line not in ("[", "]", "{", "}"):
            headlines.append(line)
    return headlines


def parse_headlines(raw: str) -> List[str]:
    """
    Extract headline strings from model output.

    Accepts a JSON array, an object with a ``headlines`` array, an object with
    any array of strings, an object's string values, or plain lines.

    Raises:
        ParseError: nothing usable was found
    """
    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        data = None

    if data is not None:
        headlines = _headlines_from_json(data)
        if headlines:
            return headlines

    headlines = _headlines_from_lines(cleaned)
    if headlines:
        return headlines
    raise ParseError("No headlines found in response")


def pad_headlines(headlines: List[str], count: int, filler: Callable[[int], str]) -> List[str]:
    """Pad to ``count`` entries with ``filler(i)`` (1-based) and truncate to ``count``."""
    padded = list(headlines[:count])
    while len(padded) < count:
        padded.append(filler(len(padded) + 1))
    return padded


# =============================================================================
# Suggestions and input evaluation
# =============================================================================

def _load_json(raw: str) -> Any:
    try:
        return json.loads(strip_code_fences(raw))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Response is not valid JSON: {exc}") from exc


def parse_suggestions(raw: str) -> List[str]:
    """
    Extract field-value suggestions from model output.

    JSON mode forces an object, so the list may arrive bare, under
    ``suggestions``, or under whatever key the model picked. Unknown shapes
    give an empty list.

    Raises:
        ParseError: the response is not JSON
    """
    data = _load_json(raw)
    if isinstance(data, list):
        return _string_items(data)
    if not isinstance(data, dict):
        logger.warning("Unexpected suggestions format: %s", type(data).__name__)
        return []

    suggestions = _string_items(data.get("suggestions"))
    if suggestions:
        return suggestions
    for value in data.values():
        if isinstance(value, list):
            return _string_items(value)

    logger.warning("No suggestion list in response keys: %s", list(data))
    return []


def parse_prompt_evaluation(raw: str) -> PromptEvaluation:
    """
    Parse ``{"score": 0-100, "tips": [...]}``.

    Scores outside 0-100 are clamped.

    Raises:
        ParseError: invalid JSON or a missing/non-numeric score
    """
    data = _load_json(raw)
    if not isinstance(data, dict):
        raise ParseError("Evaluation must be a JSON object")

    score = data.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ParseError("Evaluation requires a numeric 'score'")

    return PromptEvaluation(
        score=max(0, min(100, int(round(score)))),
        tips=_string_items(data.get("tips")),
    )


# =============================================================================
# Payload conversion
# =============================================================================

def decode_payload(raw: str, expected: str, persona: Optional[str] = None) -> ContentPayload:
    """
    Decode model output into the expected payload kind without raising.

    Fallbacks:
        structured -> single "Restyled Content" section when a persona is set,
                      plain text otherwise
        headlines  -> HeadlineList from non-empty lines
        plain      -> fence-stripped text
    """
    if expected == KIND_STRUCTURED:
        try:
            return parse_structured(raw)
        except ParseError as exc:
            logger.warning("Structured parse failed, falling back: %s", exc)
            text = strip_code_fences(raw)
            return wrap_as_structured(text, persona) if persona else PlainText(text=text)

    if expected == KIND_HEADLINES:
        try:
            return HeadlineList(headlines=parse_headlines(raw))
        except ParseError as exc:
            logger.warning("Headline parse failed: %s", exc)
            return HeadlineList(headlines=[])

    if expected == KIND_PLAIN:
        return PlainText(text=strip_code_fences(raw))

    raise ValueError(f"Unknown payload kind: {expected}")


def decode_payload_strict(raw: str, expected: str) -> ContentPayload:
    """
    Decode model output, raising ParseError when the expected shape is missing.

    Used for revision attempts, where an unparseable response must not
    replace a previously parsed one.
    """
    if expected == KIND_STRUCTURED:
        return parse_structured(raw)
    if expected == KIND_HEADLINES:
        return HeadlineList(headlines=parse_headlines(raw))
    if expected == KIND_PLAIN:
        text = strip_code_fences(raw)
        if not text:
            raise ParseError("Empty response")
        return PlainText(text=text)
    raise ValueError(f"Unknown payload kind: {expected}")


def wrap_as_structured(text: str, persona: Optional[str] = None) -> Structured:
    headline = f"{persona}'s Version" if persona else ""
    return Structured(
        headline=headline,
        sections=[Section(title=FALLBACK_SECTION_TITLE, body=_paragraphs(text))],
    )


def payload_kind(payload: ContentPayload) -> str:
    if isinstance(payload, PlainText):
        return KIND_PLAIN
    if isinstance(payload, Structured):
        return KIND_STRUCTURED
    if isinstance(payload, HeadlineList):
        return KIND_HEADLINES
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def _section_to_wire(section: Section) -> Dict[str, Any]:
    if section.is_list:
        return {"title": section.title, "listItems": list(section.body)}
    return {"title": section.title, "content": "\n\n".join(section.body)}


def serialize_payload(payload: ContentPayload) -> Union[str, Dict[str, Any], List[str]]:
    """Convert a payload to its wire form (text, JSON object or array)."""
    if isinstance(payload, PlainText):
        return payload.text
    if isinstance(payload, Structured):
        return {
            "headline": payload.headline,
            "sections": [_section_to_wire(section) for section in payload.sections],
        }
    if isinstance(payload, HeadlineList):
        return list(payload.headlines)
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def payload_to_prompt_text(payload: ContentPayload) -> str:
    """Render a payload for inclusion in a prompt (JSON for structured shapes)."""
    wire = serialize_payload(payload)
    if isinstance(wire, str):
        return wire
    return json.dumps(wire, indent=2)


def flatten_payload(payload: ContentPayload) -> str:
    """
    Flatten a payload into plain text.

    Structured: headline, blank line, then each section as its title followed
    by its body lines, sections separated by blank lines.
    """
    if isinstance(payload, PlainText):
        return payload.text
    if isinstance(payload, Structured):
        blocks = [f"{section.title}\n" + "\n".join(section.body) for section in payload.sections]
        return f"{payload.headline}\n\n" + "\n\n".join(blocks)
    if isinstance(payload, HeadlineList):
        return "\n".join(payload.headlines)
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")
