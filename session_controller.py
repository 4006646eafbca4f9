"""State-machine based listening session orchestration."""

from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Callable, Optional

from errors import RECOGNITION_ERROR
from interfaces import RecognitionEngine
from models import RecognitionEvent, RecognitionKind, SessionState, TranscriptState
from transcript import TranscriptMerger

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TranscriptCallback = Callable[[str], None]
ErrorCallback = Callable[[str, str], None]


class SessionController:
    def __init__(
        self,
        engine: RecognitionEngine,
        language: str = "en-US",
        merger: Optional[TranscriptMerger] = None,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._engine = engine
        self._language = language
        self._merger = merger or TranscriptMerger()
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_error = on_error

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session_id = 0

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transcript(self) -> TranscriptState:
        return self._merger.state

    @property
    def language(self) -> str:
        return self._language

    @language.setter
    def language(self, value: str) -> None:
        self._language = value

    def start_listening(self, language: Optional[str] = None) -> bool:
        with self._lock:
            if self._state != SessionState.IDLE:
                return False
            if language:
                self._language = language
            self._session_id += 1
            self._merger.reset()
            self._publish_transcript()
            self._transition(SessionState.LISTENING)
            try:
                self._engine.configure(
                    continuous=True,
                    interim_results=True,
                    language=self._language,
                )
                self._engine.start(partial(self._handle_recognition_event, self._session_id))
            except Exception as exc:
                self._fail(RECOGNITION_ERROR, f"start failed: {exc}")
                return False
            if self._state != SessionState.LISTENING:
                # the engine reported an error from inside start()
                return False
            logger.info("Listening session %d started (%s)", self._session_id, self._language)
            return True

    def stop_listening(self) -> None:
        """Ask the engine to finish; late final results are still merged."""
        with self._lock:
            if self._state != SessionState.LISTENING:
                return
            self._transition(SessionState.STOPPING)
            self._safe_stop_engine()

    def clear_transcript(self) -> None:
        with self._lock:
            self._merger.reset()
            if self._state == SessionState.IDLE:
                self._merger.close()
            self._publish_transcript()

    def close(self) -> None:
        with self._lock:
            self._merger.close()
            try:
                self._engine.close()
            except Exception as exc:
                logger.warning("Recognition engine release failed: %s", exc)
            self._transition(SessionState.IDLE)

    def _handle_recognition_event(self, session_id: int, event: RecognitionEvent) -> None:
        with self._lock:
            if session_id != self._session_id or self._state not in (
                SessionState.LISTENING,
                SessionState.STOPPING,
            ):
                logger.debug("Ignoring %s event from stale session %d", event.kind, session_id)
                return
            kind = event.kind
            if kind == RecognitionKind.BATCH.value:
                self._merger.ingest_batch(event.segments, event.result_index)
                self._publish_transcript()
                return
            if kind == RecognitionKind.ERROR.value:
                self._fail(event.code or RECOGNITION_ERROR, event.message)
                return
            if kind == RecognitionKind.END.value:
                self._merger.close()
                self._transition(SessionState.IDLE)
                logger.info("Listening session %d ended", session_id)

    def _fail(self, code: str, message: str) -> None:
        logger.warning("Listening session failed (%s): %s", code, message)
        self._transition(SessionState.ERROR)
        self._merger.close()
        self._emit_error(code, message)
        self._safe_stop_engine()
        self._transition(SessionState.IDLE)

    def _publish_transcript(self) -> None:
        if self._on_transcript:
            self._on_transcript(self._merger.live_view)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _safe_stop_engine(self) -> None:
        try:
            self._engine.stop()
        except Exception as exc:
            logger.warning("Recognition engine stop failed: %s", exc)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
