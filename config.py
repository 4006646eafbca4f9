"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, object] = {
    "api_key": "",
    "recognition_language": "en-US",
    "translate_source": "en",
    "translate_target": "es",
    "ocr_language": "eng",
    "history_limit": 10,
    "translation_endpoint": "https://api.mymemory.translated.net/get",
    "audio_device": "",
    "audio_sample_rate": 16000,
    "audio_chunk_ms": 100,
}


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "textdesk" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        key = str(self.get("api_key"))
        return key or os.getenv("DASHSCOPE_API_KEY", "")

    def set_api_key(self, key: str) -> None:
        self.set("api_key", key)

    def get(self, key: str) -> object:
        if key not in DEFAULTS:
            raise KeyError(key)
        default = DEFAULTS[key]
        value = self._read_all().get(key, default)
        try:
            return type(default)(value)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value for %s: %r", key, value)
            return default

    def set(self, key: str, value: object) -> None:
        if key not in DEFAULTS:
            raise KeyError(key)
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    @property
    def recognition_language(self) -> str:
        return str(self.get("recognition_language"))

    @property
    def translate_source(self) -> str:
        return str(self.get("translate_source"))

    @property
    def translate_target(self) -> str:
        return str(self.get("translate_target"))

    @property
    def ocr_language(self) -> str:
        return str(self.get("ocr_language"))

    @property
    def history_limit(self) -> int:
        return int(self.get("history_limit"))  # type: ignore[arg-type]

    @property
    def translation_endpoint(self) -> str:
        return str(self.get("translation_endpoint"))

    @property
    def audio_device(self) -> str:
        return str(self.get("audio_device"))

    @property
    def audio_sample_rate(self) -> int:
        return int(self.get("audio_sample_rate"))  # type: ignore[arg-type]

    @property
    def audio_chunk_ms(self) -> int:
        return int(self.get("audio_chunk_ms"))  # type: ignore[arg-type]

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Config file %s unreadable, using defaults: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
