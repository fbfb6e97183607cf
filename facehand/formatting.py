"""
String helpers for result log lines.
"""
from __future__ import annotations
from typing import Any, Dict, Optional
import json
import re

_STRIP = re.compile(r'[{}"\[\]]')


def compact_str(value: Any) -> str:
    """Render a JSON-able value as a flat, human-readable string.

    Braces, brackets and quotes are dropped and commas get a trailing space:
    ``{"a": 1, "b": [2, 3]}`` -> ``a:1, b:2, 3``. Falsy values render empty.
    Values JSON cannot encode fall back to ``str()``.
    """
    if not value:
        return ""
    text = json.dumps(value, separators=(",", ":"), default=str)
    return _STRIP.sub("", text).replace(",", ", ")


def format_scores(scores: Optional[Dict[str, float]], digits: int = 2) -> str:
    if not scores:
        return ""
    return compact_str({k: round(float(v), digits) for k, v in scores.items()})


def format_error(err: BaseException) -> str:
    # exceptions are not JSON-encodable; mirror what a serialised error would show
    return compact_str({"name": type(err).__name__, "message": str(err)})
