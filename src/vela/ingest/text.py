"""Answer normalisation and embedding-input construction for Q&A sources.

What is embedded for each question:  f"Q: {question}\\nA: {normalize(answer)}"
The same string is stored verbatim in qa_source_chunks.content, so it can be
rebuilt byte-for-byte from the stored question and the parent's answer.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")

# Fixed set; any other entity is left as text.
_ENTITIES: tuple[tuple[str, str], ...] = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)


def _normalize_once(text: str) -> str:
    text = _SCRIPT_RE.sub("", text)
    text = _STYLE_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def normalize(raw: str) -> str:
    """Strip markup from *raw* and return comparable plain text.

    Removes script/style blocks with their contents, replaces remaining tags
    with a space, decodes a fixed set of named entities, collapses whitespace
    and trims. Never raises: malformed markup is left as text.

    The pass is repeated until the output is stable, so entity-escaped markup
    (``&lt;b&gt;``) is stripped too and ``normalize(normalize(x)) == normalize(x)``.
    Every pass that changes the text either shortens it or only rewrites
    whitespace, so the loop terminates.
    """
    text = _normalize_once(raw or "")
    while True:
        again = _normalize_once(text)
        if again == text:
            return text
        text = again


def embedding_text(question: str, normalized_answer: str) -> str:
    """Return the embedding input for one question."""
    return f"Q: {question}\nA: {normalized_answer}"


def build_embedding_texts(normalized_answer: str, questions: Sequence[str]) -> list[str]:
    """Return one embedding input per question, in question order.

    Args:
        normalized_answer: Output of :func:`normalize` for the source's answer.
        questions: Ordered question variants of the source.
    """
    return [embedding_text(q, normalized_answer) for q in questions]
