"""Pure text transforms: search/replace, translation and export."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import httpx

from errors import TRANSLATION_SENTINEL
from models import PendingTranslation

logger = logging.getLogger(__name__)

DEFAULT_TRANSLATION_ENDPOINT = "https://api.mymemory.translated.net/get"
DEFAULT_SOURCE_LANGUAGE = "en"

SUPPORTED_TARGET_LANGUAGES = {
    "es": "Spanish",
    "fr": "French",
    "de": "German",
    "it": "Italian",
    "pt": "Portuguese",
    "ja": "Japanese",
    "ko": "Korean",
    "zh": "Chinese",
    "en": "English",
}

RECOGNITION_LANGUAGES = {
    "en-US": "English (US)",
    "en-GB": "English (UK)",
    "es-ES": "Spanish",
    "fr-FR": "French",
    "de-DE": "German",
    "it-IT": "Italian",
    "pt-BR": "Portuguese",
    "ja-JP": "Japanese",
    "ko-KR": "Korean",
    "zh-CN": "Chinese (Simplified)",
}

EXPORT_FILENAMES = {
    "buffer": "text-to-speech.txt",
    "transcript": "transcript.txt",
    "document": "pdf-text.txt",
    "image": "ocr-text.txt",
}


@dataclass(frozen=True)
class SearchReplaceResult:
    text: str
    search: str
    replace: str
    changed: bool


def search_and_replace(text: str, search: str, replace: str) -> SearchReplaceResult:
    """Replace every occurrence of ``search``; clear the inputs only on a hit."""
    if not search or search not in text:
        return SearchReplaceResult(text=text, search=search, replace=replace, changed=False)
    return SearchReplaceResult(
        text=text.replace(search, replace),
        search="",
        replace="",
        changed=True,
    )


def export_as_file(text: str, filename: str, directory: Optional[Path] = None) -> Path:
    target = (directory or Path.cwd()) / filename
    target.write_text(text, encoding="utf-8")
    logger.info("Exported %d chars to %s", len(text), target)
    return target


class Translator:
    """One GET round trip per request; failures become a sentinel string."""

    def __init__(
        self,
        endpoint: str = DEFAULT_TRANSLATION_ENDPOINT,
        source_lang: str = DEFAULT_SOURCE_LANGUAGE,
        timeout_s: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._endpoint = endpoint
        self._source_lang = source_lang
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_s))

    def request_for(self, text: str, target_lang: str) -> PendingTranslation:
        return PendingTranslation(source_text=text, target_lang=target_lang)

    async def translate(self, text: str, target_lang: str) -> str:
        if not text.strip():
            return text
        return await self.run(self.request_for(text, target_lang))

    async def run(self, request: PendingTranslation) -> str:
        params = {
            "q": request.source_text,
            "langpair": f"{self._source_lang}|{request.target_lang}",
        }
        try:
            response = await self._client.get(self._endpoint, params=params)
            response.raise_for_status()
            translated = response.json()["responseData"]["translatedText"]
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Translation to %s failed: %s", request.target_lang, exc)
            return TRANSLATION_SENTINEL
        if not isinstance(translated, str):
            logger.warning("Translation response had no text field: %r", translated)
            return TRANSLATION_SENTINEL
        return translated

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
