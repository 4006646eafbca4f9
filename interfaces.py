"""Protocol interfaces for the engines the pipeline consumes."""

from __future__ import annotations

from queue import Queue
from typing import Callable, Optional, Protocol

from models import AudioFrame, ClipboardResult, RecognitionEvent, SpeechOptions, Voice

ProgressCallback = Callable[[dict], None]


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...


class RecognitionEngine(Protocol):
    def configure(self, *, continuous: bool, interim_results: bool, language: str) -> None: ...

    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class SynthesisEngine(Protocol):
    def speak(
        self,
        text: str,
        options: SpeechOptions,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def cancel(self) -> None: ...

    def voices(self) -> list[Voice]: ...


class DocumentEngine(Protocol):
    async def page_texts(self, data: bytes) -> list[str]: ...


class OcrEngine(Protocol):
    async def recognize(
        self,
        data: bytes,
        language: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str: ...


class ClipboardService(Protocol):
    def copy_text(self, text: str) -> ClipboardResult: ...

