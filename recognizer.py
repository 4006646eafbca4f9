"""Recognition engine backed by the microphone and DashScope qwen3-asr-flash.

The qwen3-asr-flash model accepts complete audio and streams back a growing
hypothesis via ``stream=True``.  Frames are collected from the recorder into
utterance windows of ``utterance_s`` seconds; each window is sent as base64 WAV.
Every streamed hypothesis is delivered as a tentative segment whose index is the
utterance number, and the last one is re-delivered as final.

In continuous mode every full window is recognized while capture goes on, so
a long dictation produces results 0, 1, 2, ...  In single-utterance mode the
recorder is stopped as soon as the first window is full.  Either way the ``end``
event follows the last result.
"""

from __future__ import annotations

import base64
import io
import logging
import threading
import wave
from queue import Empty, Queue
from typing import Callable, Optional

from errors import AUTH_FAILED, ENGINE_UNAVAILABLE, NETWORK_ERROR, RECOGNITION_ERROR
from interfaces import Recorder
from models import AudioFrame, RecognitionEvent, RecognitionKind, RecognitionSegment
from recorder import SoundDeviceRecorder

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger(__name__)

EventCallback = Callable[[RecognitionEvent], None]


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _language_code(tag: str) -> str:
    """``en-US`` -> ``en``; the ASR model takes bare language codes."""
    return tag.split("-", 1)[0].lower()


class DashscopeRecognitionEngine:
    def __init__(
        self,
        api_key: str,
        recorder: Optional[Recorder] = None,
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
        utterance_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._recorder = recorder or SoundDeviceRecorder()
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._utterance_s = utterance_s
        self._continuous = True
        self._interim_results = True
        self._language = "en-US"
        self._thread: Optional[threading.Thread] = None
        self._closed = threading.Event()
        self._audio_queue: Queue[AudioFrame | None] = Queue(maxsize=600)
        self._on_event: Optional[EventCallback] = None

    def configure(self, *, continuous: bool, interim_results: bool, language: str) -> None:
        self._continuous = continuous
        self._interim_results = interim_results
        self._language = language
        logger.debug(
            "Recognizer configured: continuous=%s interim=%s language=%s",
            continuous,
            interim_results,
            language,
        )

    def start(self, on_event: EventCallback) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._on_event = on_event
        self._closed.clear()
        self._audio_queue = Queue(maxsize=self._audio_queue.maxsize)
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()
        try:
            self._recorder.start(self._audio_queue)
        except Exception as exc:
            self._closed.set()
            self._emit(self._error(ENGINE_UNAVAILABLE, f"microphone unavailable: {exc}"))

    def stop(self) -> None:
        """Stop capturing; the captured audio is still recognized."""
        self._recorder.stop()

    def close(self) -> None:
        """Stop capturing and drop any pending results."""
        self._closed.set()
        self._recorder.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _emit(self, event: RecognitionEvent) -> None:
        if self._on_event is not None:
            self._on_event(event)

    def _error(self, code: str, message: str) -> RecognitionEvent:
        return RecognitionEvent(kind=RecognitionKind.ERROR.value, code=code, message=message)

    def _batch(self, text: str, is_final: bool, index: int) -> RecognitionEvent:
        if index and not text[:1].isspace():
            text = " " + text
        return RecognitionEvent(
            kind=RecognitionKind.BATCH.value,
            segments=[RecognitionSegment(index=index, text=text, is_final=is_final)],
            result_index=index,
        )

    def _worker(self) -> None:
        pcm = bytearray()
        sample_rate = 16000
        channels = 1
        utterance = 0
        capped = False

        while not self._closed.is_set():
            try:
                frame = self._audio_queue.get(timeout=0.2)
            except Empty:
                continue
            if frame is None:
                break
            if capped:
                continue
            pcm.extend(frame.pcm16_bytes)
            sample_rate = frame.sample_rate
            channels = frame.channels
            if len(pcm) < int(self._utterance_s * sample_rate * channels * 2):
                continue
            if self._continuous:
                if not self._recognize_utterance(bytes(pcm), sample_rate, channels, utterance):
                    return
                pcm.clear()
                utterance += 1
            else:
                logger.debug("Single utterance complete, stopping capture")
                capped = True
                self._recorder.stop()

        if self._closed.is_set():
            return
        if pcm and not self._recognize_utterance(bytes(pcm), sample_rate, channels, utterance):
            return
        self._emit(RecognitionEvent(kind=RecognitionKind.END.value))

    def _recognize_utterance(self, pcm: bytes, sample_rate: int, channels: int, index: int) -> bool:
        logger.debug("Recognizing utterance %d (%d bytes)", index, len(pcm))
        return self._recognize_stream(_pcm_to_wav_base64(pcm, sample_rate, channels), index)

    def _recognize_stream(self, wav_base64: str, index: int = 0) -> bool:
        """Stream hypotheses; returns False when an error event was emitted."""
        if dashscope is None:
            self._emit(self._error(ENGINE_UNAVAILABLE, "dashscope is not installed"))
            return False
        if not self._api_key:
            self._emit(self._error(AUTH_FAILED, "No API key configured"))
            return False

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=self._api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_base64}]},
                ],
                result_format="message",
                asr_options={"enable_itn": False, "language": _language_code(self._language)},
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            self._emit(self._to_error_event(exc))
            return False

        latest_text = ""
        try:
            for chunk in response:
                if self._closed.is_set():
                    return False
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
                    if self._interim_results:
                        self._emit(self._batch(text, is_final=False, index=index))
        except Exception as exc:
            self._emit(self._to_error_event(exc))
            return False

        if latest_text:
            self._emit(self._batch(latest_text, is_final=True, index=index))
        return True

    def _extract_text(self, chunk: object) -> str:
        if not isinstance(chunk, dict):
            return ""
        choices = chunk.get("output", {}).get("choices", [])
        if not choices:
            return ""
        content = choices[0].get("message", {}).get("content", [])
        if not content or not isinstance(content[0], dict):
            return ""
        return str(content[0].get("text", ""))

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        message = str(exc)
        low = message.lower()
        if "401" in low or "auth" in low or "api key" in low:
            code = AUTH_FAILED
        elif "timeout" in low or "network" in low or "connection" in low:
            code = NETWORK_ERROR
        else:
            code = RECOGNITION_ERROR
        logger.warning("Recognition failed (%s): %s", code, message)
        return self._error(code, message)
