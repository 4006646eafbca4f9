"""Command-line entrypoint for the text pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import Annotated, Optional

import typer

from config import JsonConfigStore
from errors import InvalidInputError
from extraction import ExtractionJobRunner, display_text
from logging_config import configure_logging
from models import SessionState, SourceKind
from recognizer import DashscopeRecognitionEngine
from recorder import SoundDeviceRecorder
from session_controller import SessionController
from transforms import (
    RECOGNITION_LANGUAGES,
    SUPPORTED_TARGET_LANGUAGES,
    Translator,
    export_as_file,
    search_and_replace,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="textdesk",
    help="Collect text from speech, PDFs and images, then transform and export it.",
    add_completion=False,
)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging.")] = False,
    quiet: Annotated[bool, typer.Option("--quiet", "-q", help="Only critical logs.")] = False,
) -> None:
    configure_logging(verbose=verbose, quiet=quiet)


@app.command()
def extract(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="PDF or image file.")],
    kind: Annotated[
        Optional[SourceKind],
        typer.Option("--kind", help="Force document or image extraction."),
    ] = None,
    output: Annotated[Optional[Path], typer.Option("--output", "-o", help="Write text to a file.")] = None,
) -> None:
    """Extract text from a PDF text layer or an image via OCR."""
    store = JsonConfigStore()
    if kind is None:
        kind = SourceKind.DOCUMENT if path.suffix.lower() == ".pdf" else SourceKind.IMAGE
    runner = ExtractionJobRunner(ocr_language=store.ocr_language)
    try:
        data = runner.prepare(path, kind)
    except InvalidInputError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)

    result = asyncio.run(runner.extract(data, kind))
    text = display_text(result)
    if output is not None and result.ok:
        export_as_file(text, output.name, output.parent)
    else:
        typer.echo(text)
    if not result.ok:
        logger.debug("Extraction diagnostic: %s", result.message)
        raise typer.Exit(code=1)


@app.command()
def translate(
    text: Annotated[str, typer.Argument(help="Text to translate.")],
    to: Annotated[Optional[str], typer.Option("--to", help="Target language code.")] = None,
    source: Annotated[Optional[str], typer.Option("--source", help="Source language code.")] = None,
) -> None:
    """Translate text through the public translation endpoint."""
    store = JsonConfigStore()
    target = to or store.translate_target
    if target not in SUPPORTED_TARGET_LANGUAGES:
        typer.echo(f"Unsupported target language: {target}", err=True)
        raise typer.Exit(code=2)

    async def run() -> str:
        translator = Translator(
            endpoint=store.translation_endpoint,
            source_lang=source or store.translate_source,
        )
        try:
            return await translator.translate(text, target)
        finally:
            await translator.aclose()

    typer.echo(asyncio.run(run()))


@app.command()
def replace(
    path: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="UTF-8 text file.")],
    search: Annotated[str, typer.Argument(help="Text to search for.")],
    replacement: Annotated[str, typer.Argument(help="Replacement text.")],
    in_place: Annotated[bool, typer.Option("--in-place", "-i", help="Rewrite the file.")] = False,
) -> None:
    """Replace every occurrence of SEARCH in a text file."""
    result = search_and_replace(path.read_text(encoding="utf-8"), search, replacement)
    if not result.changed:
        typer.echo(f"'{search}' not found", err=True)
        raise typer.Exit(code=1)
    if in_place:
        export_as_file(result.text, path.name, path.parent)
    else:
        typer.echo(result.text)


@app.command()
def listen(
    seconds: Annotated[float, typer.Option("--seconds", "-s", min=0.5, help="Recording length.")] = 5.0,
    language: Annotated[Optional[str], typer.Option("--language", "-l", help="BCP-47 tag.")] = None,
    timeout: Annotated[float, typer.Option("--timeout", help="Wait for final result.")] = 15.0,
) -> None:
    """Record from the microphone and print the recognized transcript."""
    store = JsonConfigStore()
    language = language or store.recognition_language
    if language not in RECOGNITION_LANGUAGES:
        typer.echo(f"Unsupported recognition language: {language}", err=True)
        raise typer.Exit(code=2)
    errors: list[str] = []
    controller = SessionController(
        DashscopeRecognitionEngine(
            api_key=store.get_api_key(),
            recorder=SoundDeviceRecorder.from_config(store),
        ),
        language=language,
        on_transcript=lambda live: logger.info("Live: %s", live),
        on_error=lambda code, message: errors.append(f"{code}: {message}"),
    )
    if not controller.start_listening():
        typer.echo(errors[0] if errors else "Could not start listening", err=True)
        raise typer.Exit(code=1)

    time.sleep(seconds)
    controller.stop_listening()
    deadline = time.monotonic() + timeout
    while controller.state != SessionState.IDLE and time.monotonic() < deadline:
        time.sleep(0.1)
    controller.close()

    if errors:
        typer.echo(errors[0], err=True)
        raise typer.Exit(code=1)
    typer.echo(controller.transcript.live_view)


if __name__ == "__main__":
    app()
