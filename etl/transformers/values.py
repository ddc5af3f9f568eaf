"""
Value coercion helpers shared by the transformers.

All string comparisons in the pipeline go through `stringify` so that a
number read from JSON (``2``) and the same number typed in a filter
(``"2"``) compare equal.
"""

import json
import math
import re
from typing import Any, Dict, Optional

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")


def stringify(value: Any) -> str:
    """String form of a record value"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


def parse_float(text: str) -> Optional[float]:
    """Strictly parse a numeric string; None when it is not a plain number"""
    if not text or text != text.strip() or "_" in text:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def to_float_safe(value: Any) -> Optional[float]:
    """Numeric value of numbers and numeric strings, else None"""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return parse_float(value)
    return None


def to_float(value: Any) -> float:
    """Numeric coercion; anything unparsable becomes 0.0"""
    number = to_float_safe(value)
    return 0.0 if number is None else number


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    if isinstance(value, (int, float)):
        return value != 0
    return False


def substitute_placeholders(template: str, data: Dict[str, Any]) -> str:
    """Replace {field} references with the string form of present fields"""
    def replace(match):
        name = match.group(1)
        if name in data:
            return stringify(data[name])
        return match.group(0)

    return _PLACEHOLDER.sub(replace, template)
