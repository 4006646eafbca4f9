"""Playback state around an injected speech-synthesis engine."""

from __future__ import annotations

import logging
from typing import Optional

from interfaces import SynthesisEngine
from models import SpeechOptions, Voice

logger = logging.getLogger(__name__)


class SpeechPlayback:
    def __init__(self, engine: SynthesisEngine, options: Optional[SpeechOptions] = None) -> None:
        self._engine = engine
        self._options = options or SpeechOptions()
        self._voices: list[Voice] = []
        self._speaking = False

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    @property
    def selected_voice(self) -> Voice | None:
        return self._options.voice

    def voices(self) -> list[Voice]:
        return list(self._voices)

    def refresh_voices(self) -> list[Voice]:
        """Re-read the engine's voice list; it may populate after startup."""
        self._voices = list(self._engine.voices())
        if self._voices and self._options.voice is None:
            self._options.voice = self._voices[0]
        return self.voices()

    def select_voice(self, name: str) -> Voice | None:
        self._options.voice = next((v for v in self._voices if v.name == name), None)
        return self._options.voice

    def speak(self, text: str) -> bool:
        if not text.strip():
            return False
        self._engine.cancel()
        self._engine.speak(
            text,
            self._options,
            on_start=self._on_start,
            on_end=self._on_end,
            on_error=self._on_error,
        )
        return True

    def pause(self) -> None:
        if self._speaking:
            self._engine.pause()

    def resume(self) -> None:
        self._engine.resume()

    def stop(self) -> None:
        self._engine.cancel()
        self._speaking = False

    def _on_start(self) -> None:
        self._speaking = True

    def _on_end(self) -> None:
        self._speaking = False

    def _on_error(self, message: str) -> None:
        logger.warning("Speech synthesis error: %s", message)
        self._speaking = False
