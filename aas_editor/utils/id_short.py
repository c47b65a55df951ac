"""
idShort pattern checks and sanitization.
"""

import re

ID_SHORT_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*[a-zA-Z0-9]$|^[a-zA-Z]$")
ID_SHORT_FALLBACK = "Element"

_DISALLOWED = re.compile(r"[^a-zA-Z0-9_-]")
_TRAILING = re.compile(r"[^a-zA-Z0-9]+$")


def is_valid_id_short(value: str | None) -> bool:
    return bool(value) and bool(ID_SHORT_PATTERN.match(value))


def sanitize_id_short(value: str | None) -> str:
    """
    Coerce a user-entered idShort into the identifier pattern.

    Disallowed characters are stripped, a leading non-letter gets an "X"
    prefix and a trailing run of "_"/"-" is removed. An empty result becomes
    the fallback token. Sanitizing a sanitized value returns it unchanged.

    Examples:
        "My Sensor!!" -> "MySensor"
        "2ndStage" -> "X2ndStage"
        "!!!" -> "Element"
    """
    cleaned = _DISALLOWED.sub("", value or "")
    cleaned = _TRAILING.sub("", cleaned)
    if not cleaned:
        return ID_SHORT_FALLBACK
    if not cleaned[0].isascii() or not cleaned[0].isalpha():
        cleaned = f"X{cleaned}"
    return cleaned


def unique_id_shorts(values: list[str | None]) -> list[str]:
    """
    Sanitize a set of sibling idShorts so that no two of them collide.

    Values that already match the pattern keep their name (the first one
    wins among exact duplicates). Every other value is sanitized and, when
    the result is taken, gets the smallest free "_2", "_3", ... suffix.
    Applying this to its own output returns it unchanged.

    Examples:
        ["Temp!", "Temp"] -> ["Temp_2", "Temp"]
        ["A b", "A-b!", "Ab"] -> ["Ab_2", "A-b", "Ab"]
    """
    result: list[str | None] = [None] * len(values)
    taken: set[str] = set()

    for index, value in enumerate(values):
        if is_valid_id_short(value) and value not in taken:
            result[index] = value
            taken.add(value)

    for index, value in enumerate(values):
        if result[index] is not None:
            continue
        base = sanitize_id_short(value)
        candidate = base
        suffix = 2
        while candidate in taken:
            candidate = f"{base}_{suffix}"
            suffix += 1
        result[index] = candidate
        taken.add(candidate)

    return result
