"""Prefix autocompletion of the chat composer against a question catalog.

The index is a lowercase character trie. Every node remembers the position
of the first catalog question that passes through it, so a lookup costs one
step per typed character regardless of catalog size, and ties always resolve
to the question declared first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Sequence

from .message_model import Suggestion

LOGGER = logging.getLogger(__name__)

DEFAULT_QUESTION_CATALOG: tuple[str, ...] = (
    "How can I tell if they're really into me?",
    "Tips for a great first date?",
    "We've been arguing a lot - what can we do?",
    "How can I tell if they're really into me romantically?",
    "How do I talk about boundaries in relationships?",
    "What are the red flags that I should watch for?",
    "How to navigate the dating world with confidence?",
    "How to heal gently and grow stronger within yourself?",
    "How to deepen love and elevate romance in relationships?",
    "How to express yourself and understand better in communication?",
    "What should I do when we keep having the same arguments?",
    "How do I know if someone is genuinely interested in me?",
    "What are some conversation starters for first dates?",
    "How to maintain healthy boundaries while dating?",
    "Signs that someone is emotionally unavailable?",
    "How to build trust after a breakup?",
    "What to do when you feel like you're not ready to date?",
    "How to handle rejection gracefully?",
    "Tips for long-distance relationships?",
    "How to know when to end a relationship?",
)


@dataclass(slots=True)
class _TrieNode:
    first: int
    children: Dict[str, "_TrieNode"] = field(default_factory=dict)


class SuggestionIndex:
    """Read-only catalog answering "best completion for this prefix" queries."""

    def __init__(self, catalog: Iterable[str] = DEFAULT_QUESTION_CATALOG) -> None:
        self._catalog: list[str] = []
        self._root = _TrieNode(first=-1)
        seen: set[str] = set()
        for question in catalog:
            text = (question or "").strip()
            key = text.lower()
            if not text or key in seen:
                continue
            seen.add(key)
            self._insert(key, len(self._catalog))
            self._catalog.append(text)
        LOGGER.debug("Suggestion index built with %d question(s)", len(self._catalog))

    @property
    def catalog(self) -> tuple[str, ...]:
        return tuple(self._catalog)

    def __len__(self) -> int:
        return len(self._catalog)

    def suggest(self, text: str) -> Optional[Suggestion]:
        """Return the completion for ``text`` or ``None`` when nothing matches."""

        needle = (text or "").strip()
        if not needle:
            return None
        node = self._root
        for char in needle.lower():
            child = node.children.get(char)
            if child is None:
                return None
            node = child
        full = self._catalog[node.first]
        return Suggestion(remainder=full[len(needle):], full=full)

    def matches(self, text: str, *, limit: int | None = None) -> Sequence[str]:
        """Return every catalog question starting with ``text``, in declared order."""

        needle = (text or "").strip().lower()
        if not needle:
            return []
        found = [question for question in self._catalog if question.lower().startswith(needle)]
        return found if limit is None else found[: max(0, limit)]

    def _insert(self, key: str, index: int) -> None:
        node = self._root
        for char in key:
            child = node.children.get(char)
            if child is None:
                child = _TrieNode(first=index)
                node.children[char] = child
            node = child


__all__ = ["DEFAULT_QUESTION_CATALOG", "SuggestionIndex"]
