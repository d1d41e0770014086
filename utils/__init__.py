"""Shared utilities for the backend."""
from utils.case import dict_keys_to_camel, to_camel_key
from utils.dates import ensure_utc, utcnow
from utils.validation import error_field, format_validation_errors

__all__ = [
    "to_camel_key",
    "dict_keys_to_camel",
    "ensure_utc",
    "utcnow",
    "error_field",
    "format_validation_errors",
]
