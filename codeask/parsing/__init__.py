"""Sanitization and decoding of structured model output."""

from .decoder import DecodeError, decode_file_summary, decode_relevant_files
from .sanitizer import DEFAULT_RULES, SanitizeRule, sanitize_response

__all__ = [
    "DEFAULT_RULES",
    "DecodeError",
    "SanitizeRule",
    "decode_file_summary",
    "decode_relevant_files",
    "sanitize_response",
]
