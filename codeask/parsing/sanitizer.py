"""Mechanical repair of model output before YAML decoding.

Models asked for YAML frequently wrap it in a Markdown fence, emit empty
placeholder fields, or start a scalar with ``*`` (which YAML reads as an alias).
Each known failure mode is one rule; rules are pure ``str -> str`` functions
applied in order, and every rule leaves unmatched input untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Sequence

FENCE_OPENERS: tuple[str, ...] = ("```yaml", "```yml", "```")
FENCE_CLOSER = "```"

DEGENERATE_LINES: frozenset[str] = frozenset(
    {
        "structs: []",
        "structs: ''",
        "constants: ''",
        "constants: []",
        "interfaces: ''",
        "interfaces: []",
        "params: ''",
        "return_values: ''",
        "- []",
    }
)

_ALIAS_ITEM_PATTERN = re.compile(r"- (\w+): \*(.*)")


@dataclass(frozen=True)
class SanitizeRule:
    """A named text transformation."""

    name: str
    apply: Callable[[str], str]

    def __call__(self, text: str) -> str:
        return self.apply(text)


def strip_whitespace(text: str) -> str:
    return text.strip()


def strip_fences(text: str) -> str:
    stripped = text.strip()
    for opener in FENCE_OPENERS:
        if stripped.startswith(opener):
            stripped = stripped[len(opener):]
            break
    if stripped.endswith(FENCE_CLOSER):
        stripped = stripped[: -len(FENCE_CLOSER)]
    return stripped.strip()


def drop_degenerate_lines(text: str) -> str:
    lines = text.splitlines(keepends=True)
    kept = [line for line in lines if line.strip() not in DEGENERATE_LINES]
    if len(kept) == len(lines):
        return text
    return "".join(kept)


def quote_alias_items(text: str) -> str:
    def _quote(match: re.Match[str]) -> str:
        value = match.group(2).rstrip("\r").replace("'", "''")
        return f"- {match.group(1)}: '*{value}'"

    return _ALIAS_ITEM_PATTERN.sub(_quote, text)


DEFAULT_RULES: tuple[SanitizeRule, ...] = (
    SanitizeRule("strip_whitespace", strip_whitespace),
    SanitizeRule("strip_fences", strip_fences),
    SanitizeRule("drop_degenerate_lines", drop_degenerate_lines),
    SanitizeRule("quote_alias_items", quote_alias_items),
)


def sanitize_response(text: str, rules: Sequence[SanitizeRule] | None = None) -> str:
    """Apply each sanitize rule in order and return the cleaned text."""
    cleaned = text
    for rule in rules if rules is not None else DEFAULT_RULES:
        cleaned = rule(cleaned)
    return cleaned


def extend_rules(*extra: SanitizeRule, base: Iterable[SanitizeRule] = DEFAULT_RULES) -> tuple[SanitizeRule, ...]:
    """Return ``base`` followed by ``extra`` rules."""
    return tuple(base) + tuple(extra)


__all__ = [
    "DEFAULT_RULES",
    "DEGENERATE_LINES",
    "SanitizeRule",
    "drop_degenerate_lines",
    "extend_rules",
    "quote_alias_items",
    "sanitize_response",
    "strip_fences",
    "strip_whitespace",
]
