"""Core data models for the text pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class SessionState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    STOPPING = "STOPPING"
    ERROR = "ERROR"


class RecognitionKind(str, Enum):
    BATCH = "batch"
    ERROR = "error"
    END = "end"


class SourceKind(str, Enum):
    DOCUMENT = "document"
    IMAGE = "image"


class ExtractionStatus(str, Enum):
    SUCCESS = "success"
    EMPTY_NO_TEXT = "empty_no_text"
    FAILED = "failed"


class Provenance(str, Enum):
    SPEECH = "speech"
    DOCUMENT = "document"
    IMAGE = "image"
    MANUAL = "manual"
    TRANSLATION = "translation"


@dataclass(frozen=True)
class RecognitionSegment:
    index: int
    text: str
    is_final: bool = False


@dataclass(frozen=True)
class TranscriptState:
    finalized: str = ""
    live_view: str = ""


EMPTY_TRANSCRIPT = TranscriptState()


@dataclass
class RecognitionEvent:
    kind: str
    segments: list[RecognitionSegment] = field(default_factory=list)
    result_index: int = 0
    code: str = ""
    message: str = ""


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0


@dataclass(frozen=True)
class ExtractionResult:
    text: str
    source_kind: SourceKind
    status: ExtractionStatus
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ExtractionStatus.SUCCESS


@dataclass(frozen=True)
class TextMetrics:
    word_count: int = 0
    char_count: int = 0


@dataclass(frozen=True)
class PendingTranslation:
    source_text: str
    target_lang: str


@dataclass(frozen=True)
class Voice:
    name: str
    lang: str = ""


@dataclass
class SpeechOptions:
    voice: Voice | None = None
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0


@dataclass
class ClipboardResult:
    success: bool
    reason: str
