"""Tests for DashscopeRecognitionEngine."""

from __future__ import annotations

import base64
import time
from queue import Queue
from unittest.mock import MagicMock, patch

from errors import AUTH_FAILED, ENGINE_UNAVAILABLE, NETWORK_ERROR
from models import AudioFrame, RecognitionEvent, RecognitionKind
from recognizer import DashscopeRecognitionEngine, _language_code, _pcm_to_wav_base64


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class FakeRecorder:
    def __init__(self, frames: int = 1, fail: bool = False) -> None:
        self.frames = frames
        self.fail = fail
        self.queue: Queue[AudioFrame | None] | None = None
        self.stops = 0

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        if self.fail:
            raise RuntimeError("device busy")
        self.queue = audio_queue
        for _ in range(self.frames):
            audio_queue.put(AudioFrame(pcm16_bytes=b"\x00\x00" * 1600))

    def stop(self) -> None:
        self.stops += 1
        if self.queue is not None:
            self.queue.put(None)


def _wait_for_terminal(events: list, *, timeout: float = 3.0) -> None:
    terminal = (RecognitionKind.END.value, RecognitionKind.ERROR.value)
    deadline = time.time() + timeout
    while time.time() < deadline:
        if any(e.kind in terminal for e in events):
            return
        time.sleep(0.05)


def _chunk(text: str) -> dict:
    return {"output": {"choices": [{"message": {"content": [{"text": text}]}}]}}


def _run(engine: DashscopeRecognitionEngine) -> list[RecognitionEvent]:
    events: list[RecognitionEvent] = []
    engine.configure(continuous=True, interim_results=True, language="en-US")
    engine.start(events.append)
    engine.stop()
    _wait_for_terminal(events)
    engine.close()
    return events


# ---------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------

def test_pcm_to_wav_base64_produces_riff() -> None:
    decoded = base64.b64decode(_pcm_to_wav_base64(b"\x00\x00" * 1600))
    assert decoded[:4] == b"RIFF"


def test_language_code() -> None:
    assert _language_code("en-US") == "en"
    assert _language_code("zh-CN") == "zh"
    assert _language_code("fr") == "fr"


# ---------------------------------------------------------------
# Streaming
# ---------------------------------------------------------------

@patch("recognizer.dashscope")
def test_streaming_emits_tentative_batches_then_final_and_end(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = iter(
        [_chunk("hel"), _chunk("hello"), _chunk("hello world")]
    )

    events = _run(DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder()))

    batches = [e for e in events if e.kind == RecognitionKind.BATCH.value]
    assert [b.segments[0].text for b in batches] == ["hel", "hello", "hello world", "hello world"]
    assert [b.segments[0].is_final for b in batches] == [False, False, False, True]
    assert all(b.result_index == 0 for b in batches)
    assert events[-1].kind == RecognitionKind.END.value
    kwargs = mock_ds.MultiModalConversation.call.call_args.kwargs
    assert kwargs["asr_options"]["language"] == "en"


@patch("recognizer.dashscope")
def test_interim_results_disabled_only_emits_final(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = iter([_chunk("a"), _chunk("ab")])
    engine = DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder())
    events: list[RecognitionEvent] = []
    engine.configure(continuous=True, interim_results=False, language="en-US")
    engine.start(events.append)
    engine.stop()
    _wait_for_terminal(events)

    batches = [e for e in events if e.kind == RecognitionKind.BATCH.value]
    assert len(batches) == 1
    assert batches[0].segments[0].is_final is True
    assert batches[0].segments[0].text == "ab"


def test_no_audio_emits_end_only() -> None:
    events = _run(DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder(frames=0)))

    assert [e.kind for e in events] == [RecognitionKind.END.value]


# ---------------------------------------------------------------
# Errors
# ---------------------------------------------------------------

@patch("recognizer.dashscope", MagicMock())
def test_missing_api_key_emits_error() -> None:
    events = _run(DashscopeRecognitionEngine(api_key="", recorder=FakeRecorder()))

    assert [e.code for e in events if e.kind == RecognitionKind.ERROR.value] == [AUTH_FAILED]


@patch("recognizer.dashscope", None)
def test_dashscope_not_installed_emits_engine_unavailable() -> None:
    events = _run(DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder()))

    errors = [e for e in events if e.kind == RecognitionKind.ERROR.value]
    assert len(errors) == 1
    assert errors[0].code == ENGINE_UNAVAILABLE
    assert not any(e.kind == RecognitionKind.END.value for e in events)


@patch("recognizer.dashscope")
def test_network_error_maps_correctly(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = ConnectionError("network timeout")

    events = _run(DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder()))

    errors = [e for e in events if e.kind == RecognitionKind.ERROR.value]
    assert len(errors) == 1
    assert errors[0].code == NETWORK_ERROR


@patch("recognizer.dashscope")
def test_auth_error_maps_correctly(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = Exception("401 Unauthorized: invalid api key")

    events = _run(DashscopeRecognitionEngine(api_key="bad-key", recorder=FakeRecorder()))

    assert [e.code for e in events if e.kind == RecognitionKind.ERROR.value] == [AUTH_FAILED]


def test_recorder_failure_emits_engine_unavailable() -> None:
    engine = DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder(fail=True))
    events: list[RecognitionEvent] = []
    engine.start(events.append)

    assert len(events) == 1
    assert events[0].code == ENGINE_UNAVAILABLE
    assert "device busy" in events[0].message


@patch("recognizer.dashscope")
def test_close_during_streaming_drops_results(mock_ds: MagicMock) -> None:
    def slow_response():
        yield _chunk("hello")
        time.sleep(1.0)
        yield _chunk("hello world")

    mock_ds.MultiModalConversation.call.return_value = slow_response()

    engine = DashscopeRecognitionEngine(api_key="test-key", recorder=FakeRecorder())
    events: list[RecognitionEvent] = []
    engine.start(events.append)
    engine.stop()
    time.sleep(0.3)
    engine.close()
    time.sleep(1.2)

    finals = [e for e in events if e.kind == RecognitionKind.BATCH.value and e.segments[0].is_final]
    assert finals == []
    assert not any(e.kind == RecognitionKind.END.value for e in events)


# ---------------------------------------------------------------
# Utterance windows
# ---------------------------------------------------------------

@patch("recognizer.dashscope")
def test_continuous_mode_recognizes_each_full_window(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = [
        iter([_chunk("one")]),
        iter([_chunk("two")]),
        iter([_chunk("three")]),
    ]
    # each FakeRecorder frame is 0.1 s of 16 kHz mono audio
    engine = DashscopeRecognitionEngine(
        api_key="test-key", recorder=FakeRecorder(frames=3), utterance_s=0.1
    )

    events = _run(engine)

    finals = [e for e in events if e.kind == RecognitionKind.BATCH.value and e.segments[0].is_final]
    assert [e.result_index for e in finals] == [0, 1, 2]
    assert [e.segments[0].text for e in finals] == ["one", " two", " three"]
    assert mock_ds.MultiModalConversation.call.call_count == 3
    assert events[-1].kind == RecognitionKind.END.value


@patch("recognizer.dashscope")
def test_single_utterance_mode_stops_capture_when_window_fills(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = iter([_chunk("only this")])
    recorder = FakeRecorder(frames=3)
    engine = DashscopeRecognitionEngine(api_key="test-key", recorder=recorder, utterance_s=0.1)
    events: list[RecognitionEvent] = []
    engine.configure(continuous=False, interim_results=False, language="en-US")
    engine.start(events.append)
    _wait_for_terminal(events)
    assert recorder.stops == 1
    engine.close()

    batches = [e for e in events if e.kind == RecognitionKind.BATCH.value]
    assert [b.segments[0].text for b in batches] == ["only this"]
    assert mock_ds.MultiModalConversation.call.call_count == 1
    assert events[-1].kind == RecognitionKind.END.value
