"""Clipboard copy service."""

from __future__ import annotations

import logging

from models import ClipboardResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

logger = logging.getLogger(__name__)


class PyperclipClipboard:
    def copy_text(self, text: str) -> ClipboardResult:
        if not text:
            return ClipboardResult(success=False, reason="empty text")
        if pyperclip is None:
            return ClipboardResult(success=False, reason="clipboard dependency missing")
        try:
            pyperclip.copy(text)
        except Exception as exc:
            logger.warning("Clipboard copy failed: %s", exc)
            return ClipboardResult(success=False, reason=str(exc))
        return ClipboardResult(success=True, reason="ok")
