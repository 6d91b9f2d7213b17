"""
JSON helpers backed by orjson
=============================

Mirrors the subset of the standard json interface the engine uses
(dumps/loads/load) so modules can ``import json_utils as json``.
"""

import orjson
from typing import Any, Callable, Optional


def dumps(obj: Any, indent: Optional[int] = None, default: Optional[Callable[[Any], Any]] = None) -> str:
    """
    Serialize obj to a JSON string.

    orjson always emits UTF-8 without ASCII escaping; ``indent`` switches on
    its fixed two-space pretty printing.
    """
    option = orjson.OPT_NON_STR_KEYS
    if indent is not None:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(obj, default=default, option=option).decode("utf-8")


def loads(s: Any) -> Any:
    """Deserialize a JSON string or bytes."""
    return orjson.loads(s)


def load(fp) -> Any:
    """Deserialize JSON read from a file object."""
    return loads(fp.read())


def is_valid_json(s: str) -> bool:
    """True when ``s`` parses as JSON."""
    try:
        orjson.loads(s)
    except orjson.JSONDecodeError:
        return False
    return True


# Compatibility constant so callers can catch decode failures
JSONDecodeError = orjson.JSONDecodeError
