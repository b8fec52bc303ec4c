"""Coercion helpers for form and JSON input.

Multipart forms deliver every field as a string, so these helpers turn the raw
values into what the database columns expect and raise ValidationError for
values that cannot be coerced.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from errors import ValidationError

logger = logging.getLogger(__name__)

MAX_PHONE_DIGITS = 20
SCHEDULE_ITEM_KEYS = ("time", "activity")

_WHITESPACE = re.compile(r"\s+")
_NON_SLUG = re.compile(r"[^a-z0-9-]")
_SLUG_CHAR = re.compile(r"[a-z0-9]")
_NON_DIGIT = re.compile(r"\D")
_TIME_HH_MM = re.compile(r"^\d{2}:\d{2}$")


def slugify(title: str) -> str:
    """Derive the public identifier of an event or fest from its title.

    Titles without a single letter or digit yield ``""``.
    """
    slug = _WHITESPACE.sub("-", str(title).strip().lower())
    slug = _NON_SLUG.sub("", slug)
    return slug if _SLUG_CHAR.search(slug) else ""


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def empty_to_none(value: Any) -> Optional[str]:
    if value is None or str(value).strip() == "":
        return None
    return value


def parse_optional_float(value: Any, field: str = "value") -> Optional[float]:
    if value is None or str(value).strip() == "":
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {field} format. Must be a number.")
    if not math.isfinite(number):
        raise ValidationError(f"Invalid {field} format. Must be a number.")
    return number


def parse_optional_int(value: Any, field: str = "value") -> Optional[int]:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(str(value).strip(), 10)
    except ValueError:
        raise ValidationError(f"Invalid {field} format. Must be a whole number.")


def parse_phone(value: Any) -> Optional[str]:
    """Reduce a phone number to its digits; empty input means no phone."""
    if value is None or str(value).strip() == "":
        return None
    digits = _NON_DIGIT.sub("", str(value))
    if not digits:
        raise ValidationError("Invalid characters in contact phone number.")
    if len(digits) >= MAX_PHONE_DIGITS:
        raise ValidationError("Contact phone number is too long.")
    return digits


def parse_json_field(value: Any, default: Any) -> Any:
    """Parse a JSON-encoded array field, falling back to ``default``.

    Malformed input is accepted and replaced by the default; the fallback is
    logged so bad clients can be spotted.
    """
    if isinstance(value, list):
        return value
    if not isinstance(value, str) or value.strip() == "":
        return default
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        logger.warning(f"Malformed JSON field value {value!r}; using default")
        return default
    if not isinstance(parsed, list):
        logger.warning(f"JSON field value {value!r} is not an array; using default")
        return default
    return parsed


def parse_string_list(value: Any, field: str) -> List[str]:
    """JSON array of strings; a malformed array falls back to ``[]``."""
    items = parse_json_field(value, [])
    if not all(isinstance(item, str) for item in items):
        raise ValidationError(f"Invalid {field} format. Must be a list of strings.")
    return items


def parse_schedule(value: Any) -> List[Dict[str, str]]:
    """JSON array of ``{"time": ..., "activity": ...}`` objects."""
    items = parse_json_field(value, [])
    for item in items:
        if not isinstance(item, dict) or not all(
            isinstance(item.get(key), str) for key in SCHEDULE_ITEM_KEYS
        ):
            raise ValidationError("Invalid schedule format. Each item needs a time and an activity.")
    return [{key: item[key] for key in SCHEDULE_ITEM_KEYS} for item in items]


def parse_fest_reference(value: Any) -> Optional[str]:
    if value is None or str(value).strip() in ("", "none"):
        return None
    return str(value)


def parse_bool_flag(value: Any) -> bool:
    return str(value).strip().lower() == "true"


def normalize_time(value: Any) -> Optional[str]:
    """HTML time inputs send HH:MM; the events table stores HH:MM:SS."""
    if value is None or str(value).strip() == "":
        return None
    value = str(value).strip()
    if _TIME_HH_MM.match(value):
        return f"{value}:00"
    return value
