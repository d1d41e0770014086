"""
Case conversion for API responses.
Services and models speak snake_case; the JSON envelope speaks camelCase.
"""
from datetime import datetime
from typing import Any

from pydantic.alias_generators import to_camel


def to_camel_key(s: str) -> str:
    """Convert a single snake_case key to camelCase (first letter lower)."""
    return to_camel(s)


def dict_keys_to_camel(obj: Any) -> Any:
    """Recursively convert dict keys to camelCase and datetimes to ISO strings."""
    if isinstance(obj, dict):
        return {to_camel_key(k): dict_keys_to_camel(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [dict_keys_to_camel(x) for x in obj]
    if isinstance(obj, datetime):
        return obj.isoformat()
    return obj
