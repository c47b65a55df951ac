"""
Value type normalization.

Maps free-form type tokens onto the canonical XSD primitive types known to
the BaSyx SDK, derives a primitive type from an IEC 61360 data type
classification, and checks literal values against a type's lexical rules.
"""

import re

from basyx.aas import model

# "string" -> "xs:string", "datetime" -> "xs:dateTime", ...
CANONICAL_TYPES: dict[str, str] = {
    name.split(":", 1)[1].lower(): name for name in model.datatypes.XSD_TYPE_CLASSES
}

TYPE_ALIASES: dict[str, str] = {
    "str": "xs:string",
    "text": "xs:string",
    "bool": "xs:boolean",
    "number": "xs:double",
    "real": "xs:double",
    "uint": "xs:unsignedInt",
    "ulong": "xs:unsignedLong",
    "timestamp": "xs:dateTime",
    "uri": "xs:anyURI",
    "url": "xs:anyURI",
    "iri": "xs:anyURI",
}

# IEC 61360 data types -> XSD primitive types
DATA_TYPE_TO_XSD: dict[str, str] = {
    "DATE": "xs:date",
    "STRING": "xs:string",
    "STRING_TRANSLATABLE": "xs:string",
    "INTEGER_MEASURE": "xs:integer",
    "INTEGER_COUNT": "xs:integer",
    "INTEGER_CURRENCY": "xs:integer",
    "REAL_MEASURE": "xs:double",
    "REAL_COUNT": "xs:double",
    "REAL_CURRENCY": "xs:decimal",
    "BOOLEAN": "xs:boolean",
    "IRI": "xs:anyURI",
    "IRDI": "xs:string",
    "RATIONAL": "xs:string",
    "RATIONAL_MEASURE": "xs:string",
    "TIME": "xs:time",
    "TIMESTAMP": "xs:dateTime",
    "FILE": "xs:anyURI",
    "HTML": "xs:string",
    "BLOB": "xs:base64Binary",
}

# Fallbacks for free-text classifications, checked in order
DATA_TYPE_KEYWORDS: list[tuple[str, str]] = [
    ("currency", "xs:decimal"),
    ("count", "xs:integer"),
    ("integer", "xs:integer"),
    ("timestamp", "xs:dateTime"),
    ("datetime", "xs:dateTime"),
    ("date", "xs:date"),
    ("time", "xs:time"),
    ("bool", "xs:boolean"),
    ("real", "xs:double"),
    ("measure", "xs:double"),
    ("iri", "xs:anyURI"),
    ("url", "xs:anyURI"),
]

BOOLEAN_LITERALS = {"true", "false", "1", "0"}
INTEGER_PATTERN = re.compile(r"^-?\d+$")
UNSIGNED_PATTERN = re.compile(r"^\d+$")
FLOAT_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")

PLACEHOLDER_URI = "urn:placeholder"


def normalize_value_type(token: str | None) -> str | None:
    """
    Map a free-form type token to a canonical XSD type.

    Args:
        token: Type name such as "xs:int", "XSD:Integer" or "bool"

    Returns:
        Canonical type (e.g. "xs:int") or None if the token is unknown
    """
    if token is None:
        return None

    type_str = str(token).strip()
    if not type_str:
        return None

    lowered = type_str.lower()
    for prefix in ("xsd:", "xs:"):
        if lowered.startswith(prefix):
            lowered = lowered[len(prefix):]
            break

    return CANONICAL_TYPES.get(lowered) or TYPE_ALIASES.get(lowered)


def value_type_from_data_type(data_type: str | None) -> str | None:
    """Derive a primitive type from an IEC 61360 data type classification."""
    if data_type is None or not data_type.strip():
        return None

    key = data_type.strip().upper()
    if key in DATA_TYPE_TO_XSD:
        return DATA_TYPE_TO_XSD[key]

    lowered = key.lower()
    for keyword, xsd_type in DATA_TYPE_KEYWORDS:
        if keyword in lowered:
            return xsd_type
    return "xs:string"


def resolve_value_type(value_type: str | None, data_type: str | None = None) -> str | None:
    """Explicit value type first, derived from the data type otherwise."""
    return normalize_value_type(value_type) or value_type_from_data_type(data_type)


def _type_class(value_type: str | None) -> type | None:
    canonical = normalize_value_type(value_type)
    if canonical is None:
        return None
    return model.datatypes.XSD_TYPE_CLASSES[canonical]


def is_boolean_type(value_type: str | None) -> bool:
    return _type_class(value_type) is model.datatypes.Boolean


def is_integer_type(value_type: str | None) -> bool:
    cls = _type_class(value_type)
    return cls is not None and cls is not model.datatypes.Boolean and issubclass(cls, int)


def is_unsigned_type(value_type: str | None) -> bool:
    cls = _type_class(value_type)
    return cls is not None and issubclass(cls, model.datatypes.NonNegativeInteger)


def is_float_type(value_type: str | None) -> bool:
    canonical = normalize_value_type(value_type)
    return canonical in ("xs:decimal", "xs:float", "xs:double")


def is_numeric_type(value_type: str | None) -> bool:
    return is_integer_type(value_type) or is_float_type(value_type)


def value_matches_type(value: str | None, value_type: str | None) -> bool:
    """
    Check a literal against the lexical rules of a primitive type.

    Empty values always pass; whether a value is needed at all is a
    cardinality question, not a typing one.
    """
    if value is None:
        return True
    text = str(value).strip()
    if not text:
        return True

    if is_boolean_type(value_type):
        return text.lower() in BOOLEAN_LITERALS
    if is_unsigned_type(value_type):
        return bool(UNSIGNED_PATTERN.match(text))
    if is_integer_type(value_type):
        return bool(INTEGER_PATTERN.match(text))
    if is_float_type(value_type):
        return bool(FLOAT_PATTERN.match(text))
    return True


def placeholder_value(value_type: str | None) -> str:
    """Type-appropriate, non-blank stand-in for a missing required value."""
    canonical = normalize_value_type(value_type)
    if canonical is None:
        return "n/a"
    if is_boolean_type(canonical):
        return "false"
    if canonical == "xs:positiveInteger":
        return "1"
    if canonical == "xs:negativeInteger":
        return "-1"
    if is_numeric_type(canonical):
        return "0"
    if canonical == "xs:anyURI":
        return PLACEHOLDER_URI
    return {
        "xs:date": "1970-01-01",
        "xs:dateTime": "1970-01-01T00:00:00Z",
        "xs:time": "00:00:00",
        "xs:gYear": "1970",
        "xs:duration": "PT0S",
    }.get(canonical, "n/a")
