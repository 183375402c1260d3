"""
Rule templates — "if {A} then {B}" style patterns.

A template is split on ``{Name}`` boundaries into literal and placeholder
segments, then compiled two ways:

- EXACT: the whole text must match. Literal segments match exactly (ignoring
  case), each placeholder captures the shortest free text that still lets the
  rest match, and a placeholder used twice must capture the same text twice.
  This is what variable extraction uses.
- LOOSE: placeholders become greedy wildcards and the template may match
  anywhere in the text. Cheap pre-filter only.

Compiled matchers are cached per template string.
"""

from __future__ import annotations

import functools
import re
from typing import Any, Optional

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")

_CACHE_SIZE = 512


class TemplateError(ValueError):
    """A rule template (or conclusion) cannot be compiled or filled in."""


def split_template(template: Any) -> list[tuple[str, str]]:
    """Split into ``("literal", text)`` and ``("placeholder", name)`` segments."""
    if not isinstance(template, str):
        raise TemplateError(f"template must be a string, got {type(template).__name__}")
    segments: list[tuple[str, str]] = []
    pos = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        if match.start() > pos:
            segments.append(("literal", template[pos:match.start()]))
        segments.append(("placeholder", match.group(1)))
        pos = match.end()
    if pos < len(template):
        segments.append(("literal", template[pos:]))
    return segments


class ExactMatcher:
    """Anchored matcher that extracts placeholder values by name."""

    def __init__(self, template: str):
        self.template = template
        self.names: list[str] = []
        group_numbers: dict[str, int] = {}
        parts: list[str] = []
        for kind, value in split_template(template):
            if kind == "literal":
                parts.append(re.escape(value))
            elif value in group_numbers:
                parts.append(f"(?:\\{group_numbers[value]})")
            else:
                group_numbers[value] = len(group_numbers) + 1
                self.names.append(value)
                parts.append("(.+?)")
        self._regex = re.compile("".join(parts), re.IGNORECASE | re.DOTALL)

    def extract(self, text: Any) -> Optional[dict[str, str]]:
        """Return ``{name: captured}`` or None when the text does not match."""
        if not isinstance(text, str):
            return None
        match = self._regex.fullmatch(text)
        if match is None:
            return None
        return {name: match.group(i + 1) for i, name in enumerate(self.names)}


class LooseMatcher:
    """Unanchored matcher with placeholders as greedy wildcards."""

    def __init__(self, template: str):
        self.template = template
        parts = [
            re.escape(value) if kind == "literal" else "(.+)"
            for kind, value in split_template(template)
        ]
        self._regex = re.compile("".join(parts), re.IGNORECASE | re.DOTALL)

    def matches(self, text: Any) -> bool:
        return isinstance(text, str) and self._regex.search(text) is not None


@functools.lru_cache(maxsize=_CACHE_SIZE)
def _exact(template: str) -> ExactMatcher:
    return ExactMatcher(template)


@functools.lru_cache(maxsize=_CACHE_SIZE)
def _loose(template: str) -> LooseMatcher:
    return LooseMatcher(template)


def exact_matcher(template: Any) -> ExactMatcher:
    if not isinstance(template, str):
        raise TemplateError(f"template must be a string, got {type(template).__name__}")
    try:
        return _exact(template)
    except re.error as e:
        raise TemplateError(f"cannot compile template {template!r}: {e}") from e


def loose_matcher(template: Any) -> LooseMatcher:
    if not isinstance(template, str):
        raise TemplateError(f"template must be a string, got {type(template).__name__}")
    try:
        return _loose(template)
    except re.error as e:
        raise TemplateError(f"cannot compile template {template!r}: {e}") from e


def substitute(template: Any, variables: dict[str, str]) -> str:
    """Replace every ``{Name}`` occurrence with its captured value."""
    if not isinstance(template, str):
        raise TemplateError(f"conclusion must be a string, got {type(template).__name__}")
    result = template
    for name, value in variables.items():
        result = result.replace("{" + name + "}", value)
    return result
