"""Tests for SoundDeviceRecorder."""

from __future__ import annotations

import logging
from pathlib import Path
from queue import Queue
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from config import JsonConfigStore
from errors import EngineUnavailableError
from models import AudioFrame
from recorder import SoundDeviceRecorder, parse_device


def _capture(recorder: SoundDeviceRecorder, block: np.ndarray, status: object = None) -> None:
    recorder._on_audio(block, frames=len(block), time_info=None, status=status)


def test_parse_device() -> None:
    assert parse_device("") is None
    assert parse_device("  ") is None
    assert parse_device("3") == 3
    assert parse_device("USB Audio") == "USB Audio"


@patch("recorder.sd")
def test_from_config_opens_configured_device(mock_sd: MagicMock, tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")
    store.set("audio_device", "USB Audio")
    store.set("audio_sample_rate", 48000)
    store.set("audio_chunk_ms", 20)

    recorder = SoundDeviceRecorder.from_config(store)
    recorder.start(Queue())

    kwargs = mock_sd.InputStream.call_args.kwargs
    assert kwargs["device"] == "USB Audio"
    assert kwargs["samplerate"] == 48000
    assert kwargs["blocksize"] == 960
    assert recorder.running is True
    recorder.stop()
    assert recorder.running is False


@patch("recorder.sd")
def test_stereo_input_is_downmixed_to_mono(mock_sd: MagicMock) -> None:
    recorder = SoundDeviceRecorder(input_channels=2)
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)

    _capture(recorder, np.array([[100, 300], [-200, -400]], dtype=np.int16))

    frame = q.get_nowait()
    assert frame.channels == 1
    assert np.frombuffer(frame.pcm16_bytes, dtype=np.int16).tolist() == [200, -300]
    assert mock_sd.InputStream.call_args.kwargs["channels"] == 2
    recorder.stop()


@patch("recorder.sd")
def test_stop_ends_capture_with_sentinel(mock_sd: MagicMock) -> None:
    recorder = SoundDeviceRecorder()
    q: Queue[AudioFrame | None] = Queue()
    recorder.start(q)
    _capture(recorder, np.zeros((1600, 1), dtype=np.int16))
    recorder.stop()
    _capture(recorder, np.zeros((1600, 1), dtype=np.int16))

    assert isinstance(q.get_nowait(), AudioFrame)
    assert q.get_nowait() is None
    assert q.empty()
    assert recorder.captured_seconds == pytest.approx(0.1)
    mock_sd.InputStream.return_value.close.assert_called_once()


@patch("recorder.sd")
def test_full_queue_drops_chunks_and_still_stops(mock_sd: MagicMock, caplog) -> None:  # noqa: ANN001
    recorder = SoundDeviceRecorder()
    recorder.start(Queue(maxsize=1))

    _capture(recorder, np.zeros((1600, 1), dtype=np.int16))
    _capture(recorder, np.zeros((1600, 1), dtype=np.int16), status="input overflow")
    with caplog.at_level(logging.WARNING, logger="recorder"):
        recorder.stop()

    assert recorder.frames_captured == 1
    assert recorder.dropped_chunks == 1
    assert recorder.overflows == 1
    assert "Audio queue full" in caplog.text


@patch("recorder.sd")
def test_unopenable_device_raises_engine_unavailable(mock_sd: MagicMock) -> None:
    mock_sd.InputStream.side_effect = RuntimeError("Invalid device")
    recorder = SoundDeviceRecorder(device=7)

    with pytest.raises(EngineUnavailableError, match="cannot open microphone 7"):
        recorder.start(Queue())
    assert recorder.running is False


@patch("recorder.np", None)
def test_start_without_numpy_raises_engine_unavailable() -> None:
    with pytest.raises(EngineUnavailableError, match="not installed"):
        SoundDeviceRecorder().start(Queue())
