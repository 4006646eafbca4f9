"""Extraction jobs for documents and images.

A job runs an ordered list of strategies against the raw bytes.  The first
strategy to return non-empty text wins.  Engine failures never escape the
runner: they become ``ExtractionResult`` values with ``FAILED`` status, while
an engine that ran cleanly but found nothing yields ``EMPTY_NO_TEXT``.
"""

from __future__ import annotations

import asyncio
import io
import logging
import mimetypes
import re
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from errors import (
    DOCUMENT_EMPTY_MESSAGE,
    DOCUMENT_FAILED_MESSAGE,
    IMAGE_EMPTY_MESSAGE,
    IMAGE_FAILED_MESSAGE,
    INVALID_DOCUMENT_MESSAGE,
    INVALID_IMAGE_MESSAGE,
    EngineUnavailableError,
    InvalidInputError,
)
from interfaces import DocumentEngine, OcrEngine
from models import ExtractionResult, ExtractionStatus, SourceKind

try:
    from pypdf import PdfReader
except Exception:  # pragma: no cover
    PdfReader = None  # type: ignore

try:
    import pytesseract
    from PIL import Image
except Exception:  # pragma: no cover
    pytesseract = None  # type: ignore
    Image = None  # type: ignore

logger = logging.getLogger(__name__)

ExtractionStrategy = Callable[[bytes], Awaitable[str]]

DEFAULT_OCR_LANGUAGE = "eng"

_WHITESPACE = re.compile(r"\s+")

_EMPTY_MESSAGES = {
    SourceKind.DOCUMENT: DOCUMENT_EMPTY_MESSAGE,
    SourceKind.IMAGE: IMAGE_EMPTY_MESSAGE,
}
_FAILED_MESSAGES = {
    SourceKind.DOCUMENT: DOCUMENT_FAILED_MESSAGE,
    SourceKind.IMAGE: IMAGE_FAILED_MESSAGE,
}


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip()


class PypdfDocumentEngine:
    """Text-layer extraction with pypdf, one string per page in page order."""

    async def page_texts(self, data: bytes) -> list[str]:
        return await asyncio.to_thread(self._read_pages, data)

    def _read_pages(self, data: bytes) -> list[str]:
        if PdfReader is None:
            raise EngineUnavailableError("pypdf is not installed")
        reader = PdfReader(io.BytesIO(data))
        if reader.is_encrypted and not reader.decrypt(""):
            logger.info("Document is password protected, no text layer readable")
            return []
        pages = []
        for number, page in enumerate(reader.pages, start=1):
            raw = page.extract_text() or ""
            # Text items on a page are joined with a single space.
            pages.append(" ".join(line for line in raw.splitlines() if line.strip()))
            logger.debug("Read page %d (%d chars)", number, len(pages[-1]))
        return pages


class TesseractOcrEngine:
    """Full-image OCR with pytesseract."""

    def __init__(self, tesseract_cmd: Optional[str] = None) -> None:
        self._tesseract_cmd = tesseract_cmd

    async def recognize(
        self,
        data: bytes,
        language: str,
        on_progress: Optional[Callable[[dict], None]] = None,
    ) -> str:
        return await asyncio.to_thread(self._recognize, data, language, on_progress)

    def _recognize(
        self,
        data: bytes,
        language: str,
        on_progress: Optional[Callable[[dict], None]],
    ) -> str:
        if pytesseract is None or Image is None:
            raise EngineUnavailableError("pytesseract/Pillow is not installed")
        if self._tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = self._tesseract_cmd
        if on_progress:
            on_progress({"status": "loading image", "progress": 0.0})
        with Image.open(io.BytesIO(data)) as img:
            if on_progress:
                on_progress({"status": "recognizing text", "progress": 0.5})
            text = pytesseract.image_to_string(img, lang=language)
        if on_progress:
            on_progress({"status": "done", "progress": 1.0})
        return text


def text_layer_strategy(engine: DocumentEngine) -> ExtractionStrategy:
    async def text_layer(data: bytes) -> str:
        pages = await engine.page_texts(data)
        return collapse_whitespace("\n".join(pages))

    return text_layer


def ocr_strategy(engine: OcrEngine, language: str = DEFAULT_OCR_LANGUAGE) -> ExtractionStrategy:
    def log_progress(update: dict) -> None:
        logger.debug("OCR progress: %s", update)

    async def ocr(data: bytes) -> str:
        text = await engine.recognize(data, language, log_progress)
        return text.strip()

    return ocr


def guess_media_type(filename: str) -> str:
    media_type, _ = mimetypes.guess_type(filename)
    return media_type or "application/octet-stream"


def validate_payload(filename: str, kind: SourceKind, media_type: Optional[str] = None) -> None:
    """Reject inputs of the wrong type before any extraction work starts."""
    media_type = media_type or guess_media_type(filename)
    if kind == SourceKind.DOCUMENT and media_type != "application/pdf":
        raise InvalidInputError(INVALID_DOCUMENT_MESSAGE)
    if kind == SourceKind.IMAGE and not media_type.startswith("image/"):
        raise InvalidInputError(INVALID_IMAGE_MESSAGE)


def display_text(result: ExtractionResult) -> str:
    """The string shown to the user for a finished job."""
    if result.status == ExtractionStatus.SUCCESS:
        return result.text
    if result.status == ExtractionStatus.EMPTY_NO_TEXT:
        return _EMPTY_MESSAGES[result.source_kind]
    return _FAILED_MESSAGES[result.source_kind]


class ExtractionJobRunner:
    def __init__(
        self,
        document_strategies: Optional[Sequence[ExtractionStrategy]] = None,
        image_strategies: Optional[Sequence[ExtractionStrategy]] = None,
        ocr_language: str = DEFAULT_OCR_LANGUAGE,
    ) -> None:
        if document_strategies is None:
            document_strategies = [text_layer_strategy(PypdfDocumentEngine())]
        if image_strategies is None:
            image_strategies = [ocr_strategy(TesseractOcrEngine(), ocr_language)]
        self._strategies: dict[SourceKind, list[ExtractionStrategy]] = {
            SourceKind.DOCUMENT: list(document_strategies),
            SourceKind.IMAGE: list(image_strategies),
        }
        for kind, strategies in self._strategies.items():
            if not strategies:
                raise ValueError(f"no extraction strategy configured for {kind.value}")

    def prepare(self, path: Path, kind: SourceKind, media_type: Optional[str] = None) -> bytes:
        validate_payload(path.name, kind, media_type)
        return path.read_bytes()

    async def extract_file(
        self,
        path: Path,
        kind: SourceKind,
        media_type: Optional[str] = None,
    ) -> ExtractionResult:
        return await self.extract(self.prepare(path, kind, media_type), kind)

    async def extract(self, data: bytes, kind: SourceKind) -> ExtractionResult:
        diagnostics: list[str] = []
        ran_cleanly = False
        for strategy in self._strategies[kind]:
            name = getattr(strategy, "__name__", repr(strategy))
            try:
                text = await strategy(data)
            except Exception as exc:
                logger.warning("%s extraction strategy %s failed: %s", kind.value, name, exc)
                diagnostics.append(f"{type(exc).__name__}: {exc}")
                continue
            ran_cleanly = True
            if text:
                logger.info("Extracted %d chars from %s via %s", len(text), kind.value, name)
                return ExtractionResult(text=text, source_kind=kind, status=ExtractionStatus.SUCCESS)
            logger.info("%s extraction strategy %s found no text", kind.value, name)

        if ran_cleanly:
            return ExtractionResult(
                text="",
                source_kind=kind,
                status=ExtractionStatus.EMPTY_NO_TEXT,
                message=_EMPTY_MESSAGES[kind],
            )
        return ExtractionResult(
            text="",
            source_kind=kind,
            status=ExtractionStatus.FAILED,
            message="; ".join(diagnostics) or _FAILED_MESSAGES[kind],
        )
