"""Editable text buffer and its bounded history."""

from __future__ import annotations

import logging

from models import Provenance, TextMetrics

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10


def compute_metrics(text: str) -> TextMetrics:
    trimmed = text.strip()
    if not trimmed:
        return TextMetrics(word_count=0, char_count=0)
    return TextMetrics(word_count=len(trimmed.split()), char_count=len(trimmed))


class TextBuffer:
    def __init__(self, text: str = "", provenance: Provenance = Provenance.MANUAL) -> None:
        self._text = text
        self._provenance = provenance
        self._metrics = compute_metrics(text)

    @property
    def text(self) -> str:
        return self._text

    @property
    def provenance(self) -> Provenance:
        return self._provenance

    @property
    def metrics(self) -> TextMetrics:
        return self._metrics

    def set_text(self, value: str, provenance: Provenance) -> None:
        """Replace the buffer unconditionally; the only mutator."""
        self._text = value
        self._provenance = provenance
        self._metrics = compute_metrics(value)
        logger.debug(
            "Buffer set from %s: %d words, %d chars",
            provenance.value,
            self._metrics.word_count,
            self._metrics.char_count,
        )


class TextHistory:
    """Newest-first list of committed values, deduplicated by trimmed text."""

    def __init__(self, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("history limit must be positive")
        self._limit = limit
        self._entries: list[str] = []

    @property
    def entries(self) -> tuple[str, ...]:
        return tuple(self._entries)

    @property
    def limit(self) -> int:
        return self._limit

    def __len__(self) -> int:
        return len(self._entries)

    def commit(self, value: str) -> bool:
        """Prepend the trimmed value unless blank or already present."""
        trimmed = value.strip()
        if not trimmed or trimmed in self._entries:
            return False
        self._entries.insert(0, trimmed)
        del self._entries[self._limit:]
        return True

    def select(self, index: int) -> str:
        return self._entries[index]

    def clear(self) -> None:
        self._entries.clear()
