"""Microphone capture for the recognition engine.

Frames reach the queue as 16-bit mono PCM whatever the device delivers:
multi-channel blocks are averaged down first, since the ASR model takes mono.
A ``None`` frame marks the end of capture.
"""

from __future__ import annotations

import logging
import threading
import time
from queue import Full, Queue
from typing import TYPE_CHECKING, Any, Optional, Union

from errors import EngineUnavailableError
from models import AudioFrame

if TYPE_CHECKING:
    from config import JsonConfigStore

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)

Device = Union[int, str, None]


def parse_device(value: str) -> Device:
    """Config value -> sounddevice device: ``""`` default, ``"3"`` index, else a name."""
    value = value.strip()
    if not value:
        return None
    return int(value) if value.isdigit() else value


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        chunk_ms: int = 100,
        device: Device = None,
        input_channels: int = 1,
    ) -> None:
        self.sample_rate = sample_rate
        self.chunk_ms = chunk_ms
        self.device = device
        self.input_channels = input_channels
        self.frames_captured = 0
        self.dropped_chunks = 0
        self.overflows = 0
        self._stream: Any = None
        self._lock = threading.Lock()
        self._audio_queue: Optional[Queue[AudioFrame | None]] = None

    @classmethod
    def from_config(cls, store: "JsonConfigStore") -> "SoundDeviceRecorder":
        return cls(
            sample_rate=store.audio_sample_rate,
            chunk_ms=store.audio_chunk_ms,
            device=parse_device(store.audio_device),
        )

    @property
    def blocksize(self) -> int:
        return self.sample_rate * self.chunk_ms // 1000

    @property
    def running(self) -> bool:
        return self._stream is not None

    @property
    def captured_seconds(self) -> float:
        return self.frames_captured * self.chunk_ms / 1000

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        """Open the input stream; raises ``EngineUnavailableError`` if it cannot."""
        with self._lock:
            if self._stream is not None:
                return
            if sd is None or np is None:
                raise EngineUnavailableError("sounddevice/numpy is not installed")
            self._audio_queue = audio_queue
            self.frames_captured = self.dropped_chunks = self.overflows = 0
            try:
                stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.input_channels,
                    dtype="int16",
                    blocksize=self.blocksize,
                    device=self.device,
                    callback=self._on_audio,
                )
                stream.start()
            except Exception as exc:
                raise EngineUnavailableError(f"cannot open microphone {self.device!r}: {exc}") from exc
            self._stream = stream
            logger.debug("Capturing from %r at %d Hz", self.device, self.sample_rate)

    def stop(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
            if stream is not None:
                stream.stop()
                stream.close()
                logger.debug(
                    "Captured %.1fs of audio (%d chunks dropped, %d overflows)",
                    self.captured_seconds,
                    self.dropped_chunks,
                    self.overflows,
                )
            self._signal_end()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if self._stream is None or self._audio_queue is None:
            return
        if status:
            self.overflows += 1
        samples = np.asarray(indata, dtype=np.int16)
        if samples.ndim == 2 and samples.shape[1] > 1:
            samples = samples.mean(axis=1).astype(np.int16)
        frame = AudioFrame(
            pcm16_bytes=samples.tobytes(),
            sample_rate=self.sample_rate,
            channels=1,
            timestamp_ms=int(time.time() * 1000),
        )
        try:
            self._audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1
        else:
            self.frames_captured += 1

    def _signal_end(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            logger.warning("Audio queue full; recognizer will notice the stop on close")
