"""Text helpers used to derive the text a bookmark's embedding is computed from.

Two bookmarks whose derived text is identical can share an embedding vector,
so this derivation must be deterministic across devices.
"""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

EMBEDDING_TEXT_MAX_LENGTH = 4096
EXCERPT_MAX_LENGTH = 200

_SCRIPT_THRESHOLD = 0.6
_CJK_PUNCTUATION = set("，。！？；,!?;")
_WS_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse multiple whitespace characters into a single space."""
    if not isinstance(text, str):
        return ""
    return " ".join(text.split()).strip()


def _char_script(char: str) -> str | None:
    if char.isspace() or unicodedata.category(char).startswith("P"):
        return None
    name = unicodedata.name(char, "")
    if name.startswith("LATIN"):
        return "latin"
    if name.startswith(("CJK", "HIRAGANA", "KATAKANA", "HANGUL")):
        return "cjk"
    if name.startswith("CYRILLIC"):
        return "cyrillic"
    if name.startswith("ARABIC"):
        return "arabic"
    return "other"


def detect_text_type(text: str) -> str:
    """Classify the dominant script of the first 100 characters."""
    stats: dict[str, int] = {"latin": 0, "cjk": 0, "cyrillic": 0, "arabic": 0, "other": 0}
    for char in text[:100]:
        script = _char_script(char)
        if script is not None:
            stats[script] += 1

    total = sum(stats.values())
    if total == 0:
        return "mixed"
    for script in ("latin", "cjk", "cyrillic", "arabic"):
        if stats[script] / total > _SCRIPT_THRESHOLD:
            return script
    return "mixed"


def smart_truncate(text: str, max_length: int = 500) -> str:
    """Truncate *text* using a strategy suited to its script.

    Alphabetic scripts keep whole words (up to half of ``max_length`` words),
    CJK text is cut at the last punctuation mark near the limit, mixed text at
    the last whitespace near the limit.
    """
    if not text or len(text) <= max_length:
        return text

    text_type = detect_text_type(text)
    if text_type in ("latin", "cyrillic", "arabic"):
        max_words = round(max_length * 0.5)
        words = [word for word in _WS_RE.split(text) if word]
        if len(words) <= max_words:
            return text
        return " ".join(words[:max_words])

    truncated = text[:max_length]
    if text_type == "cjk":
        for i in range(len(truncated) - 1, max(max_length - 51, -1), -1):
            if truncated[i] in _CJK_PUNCTUATION:
                return truncated[: i + 1]
        return truncated

    for i in range(len(truncated) - 1, max(max_length - 31, -1), -1):
        if truncated[i].isspace():
            return truncated[:i]
    return truncated


def make_embedding_text(
    title: str | None, tags: Iterable[str] | None, excerpt: str | None
) -> str:
    """Build the text an embedding vector is derived from."""
    text = ""
    if title:
        text += f"title: {title};"
    tag_list = list(tags or [])
    if tag_list:
        text += f"tags: {','.join(tag_list)};"
    if excerpt:
        text += f"excerpt: {smart_truncate(excerpt, EXCERPT_MAX_LENGTH)};"

    text = normalize_whitespace(text)

    if len(text) > EMBEDDING_TEXT_MAX_LENGTH:
        truncated = text[:EMBEDDING_TEXT_MAX_LENGTH]
        last_space = truncated.rfind(" ")
        if last_space > EMBEDDING_TEXT_MAX_LENGTH * 0.8:
            text = truncated[:last_space]
        else:
            text = truncated
    return text


def embedding_text_for(record: Any) -> str:
    """Embedding text for any object exposing ``title``/``tags``/``excerpt``."""
    if record is None:
        return ""
    return make_embedding_text(
        getattr(record, "title", None),
        getattr(record, "tags", None),
        getattr(record, "excerpt", None),
    )
