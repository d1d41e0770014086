"""Flatten pydantic error lists into the {field: message} map used in error envelopes."""
from typing import Any, Iterable

# Leading loc segments FastAPI adds for where the value came from
_SOURCES = {"body", "query", "path", "header", "cookie"}


def error_field(loc: Iterable[Any]) -> str:
    parts = [str(p) for p in loc]
    if parts and parts[0] in _SOURCES:
        parts = parts[1:]
    return ".".join(parts) or "body"


def format_validation_errors(errors: Iterable[dict[str, Any]]) -> dict[str, str]:
    """First message per field wins."""
    out: dict[str, str] = {}
    for err in errors:
        out.setdefault(error_field(err.get("loc", ())), err.get("msg", "Invalid value"))
    return out
