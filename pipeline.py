"""Facade over the ingestion pipeline, as seen by a UI layer.

Speech transcripts and extraction jobs are independent producers.  Their
results are held as candidates until the caller explicitly moves one into
the buffer.  Only direct user edits are committed to history.  Translation
and extraction results apply when they resolve, even if the buffer changed
in the meantime: the last write wins.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from buffer import HISTORY_LIMIT, TextBuffer, TextHistory
from clipboard import PyperclipClipboard
from errors import ENGINE_UNAVAILABLE, ERROR_MESSAGES, EngineUnavailableError
from extraction import ExtractionJobRunner, display_text
from interfaces import ClipboardService, RecognitionEngine, SynthesisEngine
from models import (
    EMPTY_TRANSCRIPT,
    ClipboardResult,
    ExtractionResult,
    Provenance,
    SessionState,
    SourceKind,
    TextMetrics,
    TranscriptState,
)
from session_controller import ErrorCallback, SessionController, StateCallback
from synthesis import SpeechPlayback
from transforms import EXPORT_FILENAMES, SearchReplaceResult, Translator, export_as_file, search_and_replace

logger = logging.getLogger(__name__)

_PROVENANCE = {
    SourceKind.DOCUMENT: Provenance.DOCUMENT,
    SourceKind.IMAGE: Provenance.IMAGE,
}


class TextPipeline:
    def __init__(
        self,
        recognition_engine: Optional[RecognitionEngine] = None,
        synthesis_engine: Optional[SynthesisEngine] = None,
        runner: Optional[ExtractionJobRunner] = None,
        translator: Optional[Translator] = None,
        clipboard: Optional[ClipboardService] = None,
        history_limit: int = HISTORY_LIMIT,
        language: str = "en-US",
        on_transcript: Optional[Callable[[str], None]] = None,
        on_state_change: Optional[StateCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._buffer = TextBuffer()
        self._history = TextHistory(limit=history_limit)
        self._runner = runner or ExtractionJobRunner()
        self._translator = translator or Translator()
        self._clipboard = clipboard or PyperclipClipboard()
        self._extractions: dict[SourceKind, ExtractionResult] = {}
        self._session: Optional[SessionController] = None
        if recognition_engine is not None:
            self._session = SessionController(
                recognition_engine,
                language=language,
                on_state_change=on_state_change,
                on_transcript=on_transcript,
                on_error=on_error,
            )
        self._playback = SpeechPlayback(synthesis_engine) if synthesis_engine is not None else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def check_capabilities(self) -> None:
        missing = []
        if self._session is None:
            missing.append("speech recognition")
        if self._playback is None:
            missing.append("speech synthesis")
        if missing:
            message = f"{ERROR_MESSAGES[ENGINE_UNAVAILABLE]} Missing: {', '.join(missing)}."
            logger.error(message)
            raise EngineUnavailableError(message)
        self._playback.refresh_voices()

    async def aclose(self) -> None:
        if self._session is not None:
            self._session.close()
        if self._playback is not None:
            self._playback.stop()
        await self._translator.aclose()

    async def __aenter__(self) -> "TextPipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return self._buffer.text

    @property
    def provenance(self) -> Provenance:
        return self._buffer.provenance

    @property
    def metrics(self) -> TextMetrics:
        return self._buffer.metrics

    @property
    def history(self) -> tuple[str, ...]:
        return self._history.entries

    @property
    def transcript(self) -> TranscriptState:
        return self._session.transcript if self._session else EMPTY_TRANSCRIPT

    @property
    def listening_state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def playback(self) -> Optional[SpeechPlayback]:
        return self._playback

    def last_extraction(self, kind: SourceKind) -> Optional[ExtractionResult]:
        return self._extractions.get(kind)

    def extraction_text(self, kind: SourceKind) -> str:
        result = self._extractions.get(kind)
        return display_text(result) if result else ""

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def start_listening(self, language: Optional[str] = None) -> bool:
        return self._require_session().start_listening(language)

    def stop_listening(self) -> None:
        self._require_session().stop_listening()

    def clear_transcript(self) -> None:
        if self._session is not None:
            self._session.clear_transcript()

    def speak(self) -> bool:
        if self._playback is None:
            raise EngineUnavailableError("speech synthesis is not available")
        return self._playback.speak(self._buffer.text)

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    async def extract(self, data: bytes, kind: SourceKind) -> ExtractionResult:
        result = await self._runner.extract(data, kind)
        self._extractions[kind] = result
        return result

    def extract_file(
        self,
        path: Path,
        kind: SourceKind,
        media_type: Optional[str] = None,
    ) -> Awaitable[ExtractionResult]:
        """Validate and read ``path`` now; the returned awaitable runs the job."""
        data = self._runner.prepare(path, kind, media_type)
        return self.extract(data, kind)

    # ------------------------------------------------------------------
    # Buffer
    # ------------------------------------------------------------------

    def edit(self, text: str) -> None:
        self._buffer.set_text(text, Provenance.MANUAL)
        self._history.commit(text)

    def use_transcript(self) -> None:
        self._buffer.set_text(self.transcript.live_view, Provenance.SPEECH)

    def use_extraction(self, kind: SourceKind) -> bool:
        result = self._extractions.get(kind)
        if result is None or not result.ok:
            return False
        self._buffer.set_text(result.text, _PROVENANCE[kind])
        return True

    def select_history(self, index: int) -> None:
        self._buffer.set_text(self._history.select(index), Provenance.MANUAL)

    def clear_history(self) -> None:
        self._history.clear()

    def clear_all(self) -> None:
        if self._session is not None:
            self._session.stop_listening()
            self._session.clear_transcript()
        if self._playback is not None:
            self._playback.stop()
        self._extractions.clear()
        self._buffer.set_text("", Provenance.MANUAL)

    # ------------------------------------------------------------------
    # Transforms
    # ------------------------------------------------------------------

    def search_and_replace(self, search: str, replace: str) -> SearchReplaceResult:
        result = search_and_replace(self._buffer.text, search, replace)
        if result.changed:
            self._buffer.set_text(result.text, Provenance.MANUAL)
        return result

    async def translate(self, target_lang: str) -> Optional[str]:
        source = self._buffer.text
        if not source.strip():
            return None
        translated = await self._translator.translate(source, target_lang)
        if self._buffer.text != source:
            logger.info("Buffer changed during translation; applying the translation anyway")
        self._buffer.set_text(translated, Provenance.TRANSLATION)
        return translated

    def source_text(self, which: str) -> str:
        if which == "buffer":
            return self._buffer.text
        if which == "transcript":
            return self.transcript.live_view
        if which == "document":
            return self.extraction_text(SourceKind.DOCUMENT)
        if which == "image":
            return self.extraction_text(SourceKind.IMAGE)
        raise ValueError(f"unknown text source: {which}")

    def export(self, which: str = "buffer", directory: Optional[Path] = None) -> Path:
        return export_as_file(self.source_text(which), EXPORT_FILENAMES[which], directory)

    def copy(self, which: str = "buffer") -> ClipboardResult:
        return self._clipboard.copy_text(self.source_text(which))

    def _require_session(self) -> SessionController:
        if self._session is None:
            raise EngineUnavailableError("speech recognition is not available")
        return self._session
