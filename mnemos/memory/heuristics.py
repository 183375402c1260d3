"""
Content heuristics — cheap keyword signals used when memories are formed.

Three signals, all keyword tables covering Vietnamese and English:

- importance: how much a piece of content deserves to be kept
- emotions: which coarse emotions an event mentions (0 or 1 each)
- active topics: which broad topics the recent conversation is about

These are stand-ins for a real sentiment/topic classifier. They never raise;
anything that is not a string gets neutral defaults.
"""

from __future__ import annotations

from typing import Any, Iterable

BASE_IMPORTANCE = 0.5

IMPORTANCE_KEYWORDS = ("quan trọng", "cần nhớ", "important", "remember", "critical")
IMPORTANCE_KEYWORD_BONUS = 0.3

LONG_CONTENT_CHARS = 100
LONG_CONTENT_BONUS = 0.1

STRONG_EMOTION_KEYWORDS = ("yêu", "ghét", "tuyệt vời", "tệ hại", "love", "hate")
STRONG_EMOTION_BONUS = 0.2

EMOTION_KEYWORDS: dict[str, tuple[str, ...]] = {
    "happy": ("vui", "hạnh phúc", "vui vẻ", "happy", "joy", "excited"),
    "sad": ("buồn", "khóc", "sad", "cry", "depressed"),
    "angry": ("tức giận", "tức", "angry", "mad", "furious"),
    "surprised": ("ngạc nhiên", "surprised", "amazed", "shocked"),
}

TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "technology": ("công nghệ", "ai", "robot", "computer", "technology"),
    "health": ("sức khỏe", "bệnh", "thuốc", "health", "medicine"),
    "education": ("học", "giáo dục", "trường", "education", "school"),
    "entertainment": ("phim", "nhạc", "game", "movie", "music"),
}


def _contains_any(text: str, keywords: Iterable[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def calculate_importance(content: Any) -> float:
    """Score how important a piece of content is, in [0.5, 1.0].

    Non-string content (structured events) gets the base score.
    """
    importance = BASE_IMPORTANCE
    if not isinstance(content, str):
        return importance

    lowered = content.lower()
    if _contains_any(lowered, IMPORTANCE_KEYWORDS):
        importance += IMPORTANCE_KEYWORD_BONUS
    if len(content) > LONG_CONTENT_CHARS:
        importance += LONG_CONTENT_BONUS
    if _contains_any(lowered, STRONG_EMOTION_KEYWORDS):
        importance += STRONG_EMOTION_BONUS

    return min(importance, 1.0)


def analyze_emotions(content: Any) -> dict[str, int]:
    """Tag each known emotion 1 if the content mentions it, else 0."""
    lowered = content.lower() if isinstance(content, str) else ""
    return {
        emotion: 1 if lowered and _contains_any(lowered, keywords) else 0
        for emotion, keywords in EMOTION_KEYWORDS.items()
    }


def detect_active_topics(texts: Iterable[Any]) -> list[str]:
    """Return topics whose keywords appear anywhere in the given texts.

    Substring matching, so short keywords like "ai" also fire inside longer
    words. Non-string entries are ignored.
    """
    joined = " ".join(t for t in texts if isinstance(t, str)).lower()
    if not joined:
        return []
    return [
        topic
        for topic, keywords in TOPIC_KEYWORDS.items()
        if _contains_any(joined, keywords)
    ]
