"""
Collaborator interfaces shared across Mnemos subsystems.

Text processing lives outside the core. The reasoning layer only needs a
tokenizer for overlap computations, so it depends on this small protocol
rather than on any concrete NLP engine. They live here rather than in a
specific subsystem to avoid circular imports.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextProcessor(Protocol):
    """What the core consumes from the text-processing collaborator."""

    def tokenize(self, text: str) -> list[str]: ...

    def detect_language(self, text: str) -> str: ...


class WhitespaceTextProcessor:
    """Default processor: lowercase whitespace split.

    Used when the host does not plug in a real text-processing service.
    """

    # Vietnamese-specific letters; anything containing one is tagged "vi".
    _VI_CHARS = frozenset(
        "áàảãạăắằẳẵặâấầẩẫậđéèẻẽẹêếềểễệíìỉĩịóòỏõọôốồổỗộơớờởỡợúùủũụưứừửữựýỳỷỹỵ"
    )

    def tokenize(self, text: str) -> list[str]:
        if not isinstance(text, str):
            return []
        return text.lower().split()

    def detect_language(self, text: str) -> str:
        if isinstance(text, str) and any(ch in self._VI_CHARS for ch in text.lower()):
            return "vi"
        return "en"
