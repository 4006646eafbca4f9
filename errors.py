"""Shared error codes, user-facing messages and pipeline exceptions."""

from __future__ import annotations

ENGINE_UNAVAILABLE = "ENGINE_UNAVAILABLE"
RECOGNITION_ERROR = "RECOGNITION_ERROR"
EXTRACTION_EMPTY = "EXTRACTION_EMPTY"
EXTRACTION_FAILED = "EXTRACTION_FAILED"
TRANSLATION_UNAVAILABLE = "TRANSLATION_UNAVAILABLE"
INVALID_INPUT = "INVALID_INPUT"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"

ERROR_MESSAGES = {
    ENGINE_UNAVAILABLE: "Your environment doesn't support speech recognition or synthesis.",
    RECOGNITION_ERROR: "Speech recognition stopped because of an error.",
    EXTRACTION_EMPTY: "No readable text was found.",
    EXTRACTION_FAILED: "The file could not be processed.",
    TRANSLATION_UNAVAILABLE: "Translation service unavailable",
    INVALID_INPUT: "Unsupported file type.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
}

DOCUMENT_EMPTY_MESSAGE = (
    "No readable text found in this PDF. "
    "The PDF may contain only images or be password protected."
)
DOCUMENT_FAILED_MESSAGE = (
    "Error processing PDF. Please ensure the file is a valid PDF and try again."
)
IMAGE_EMPTY_MESSAGE = (
    "No readable text found in this image. Please try an image with clearer text."
)
IMAGE_FAILED_MESSAGE = "Error processing image. Please try again with a different image."
INVALID_DOCUMENT_MESSAGE = "Please select a valid PDF file."
INVALID_IMAGE_MESSAGE = "Please select a valid image file (PNG, JPG, JPEG, etc.)."

TRANSLATION_SENTINEL = ERROR_MESSAGES[TRANSLATION_UNAVAILABLE]


class PipelineError(Exception):
    code = "PIPELINE_ERROR"

    def __init__(self, message: str = "", code: str | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message or ERROR_MESSAGES.get(self.code, self.code))


class EngineUnavailableError(PipelineError):
    """A required recognition/synthesis capability is missing."""

    code = ENGINE_UNAVAILABLE


class InvalidInputError(PipelineError):
    """Raised before any async work when an input has the wrong media type."""

    code = INVALID_INPUT
