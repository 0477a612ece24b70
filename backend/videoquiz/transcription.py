from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from .config import Settings
from .errors import AppError, ExternalToolError, ValidationError
from .process import run_process
from .segmentation import segment_transcript
from .store import SegmentRecord

logger = logging.getLogger(__name__)

WHISPER_OUTPUT_EXTENSIONS = (".json", ".txt", ".srt", ".vtt")


@dataclass
class TranscriptionResult:
    full_transcript: str
    segments: List[SegmentRecord]


class Transcriber:
    async def transcribe(self, media_path: str) -> TranscriptionResult:
        raise NotImplementedError


class WhisperTranscriber(Transcriber):
    def __init__(self, executable: str = "whisper", language: str = "en", timeout: float = 30 * 60) -> None:
        self.executable = executable
        self.language = language
        self.timeout = timeout

    async def transcribe(self, media_path: str) -> TranscriptionResult:
        logger.info("Starting transcription for: %s", media_path)
        source = Path(media_path)
        try:
            await self.run_whisper(source, source.parent)
            transcript = self.read_transcript(source)
            segments = segment_transcript(transcript)
        except AppError as exc:
            logger.error("Transcription error for %s: %s", media_path, exc.message)
            raise type(exc)(f"Transcription failed: {exc.message}") from exc
        finally:
            self.cleanup(source)

        return TranscriptionResult(
            full_transcript=" ".join(segment.text for segment in segments),
            segments=segments,
        )

    async def run_whisper(self, source: Path, output_dir: Path) -> None:
        args = [
            self.executable,
            str(source),
            "--output_dir",
            str(output_dir),
            "--output_format",
            "json",
            "--verbose",
            "False",
            "--language",
            self.language,
        ]
        logger.info("Running Whisper command: %s", " ".join(args))
        await run_process(args, self.timeout, "Whisper")
        logger.info("Whisper transcription completed successfully")

    def read_transcript(self, source: Path) -> Any:
        candidates = [
            source.parent / f"{source.stem}_transcript.json",
            source.parent / f"{source.stem}.json",
        ]
        for path in candidates:
            if path.exists():
                logger.info("Reading transcript from: %s", path)
                try:
                    return json.loads(path.read_text(encoding="utf-8"))
                except json.JSONDecodeError as exc:
                    raise ValidationError(f"Failed to read transcript file: {exc}") from exc
        checked = ", ".join(str(path) for path in candidates)
        raise ExternalToolError(f"Transcript file not found. Checked paths: {checked}")

    def cleanup(self, source: Path) -> None:
        for extension in WHISPER_OUTPUT_EXTENSIONS:
            for name in (source.stem, f"{source.stem}_transcript"):
                path = source.parent / f"{name}{extension}"
                if path == source:
                    continue
                try:
                    path.unlink(missing_ok=True)
                except OSError as exc:
                    logger.warning("Failed to cleanup temp file %s: %s", path, exc)


class MockTranscriber(Transcriber):
    """Returns a fixed three-segment transcript without running Whisper."""

    SEGMENTS = [
        (
            0.0,
            300.0,
            "This is the first segment of the video transcript. It contains important information about "
            "the topic being discussed. The speaker explains various concepts and provides examples to "
            "illustrate their points. This segment covers the introduction and overview of the main "
            "subject matter.",
        ),
        (
            300.0,
            600.0,
            "In this second segment, we dive deeper into the technical details. The explanation becomes "
            "more specific and includes practical applications. Various methodologies are discussed along "
            "with their advantages and disadvantages. Real-world examples are provided to demonstrate the "
            "concepts.",
        ),
        (
            600.0,
            900.0,
            "The final segment concludes the presentation with a summary of key points. Important "
            "takeaways are highlighted and future directions are discussed. The speaker provides "
            "recommendations and best practices based on the information presented throughout the video.",
        ),
    ]

    async def transcribe(self, media_path: str) -> TranscriptionResult:
        logger.info("Mock transcription for: %s", media_path)
        segments = [
            SegmentRecord(start_time=start, end_time=end, text=text, segment_index=index)
            for index, (start, end, text) in enumerate(self.SEGMENTS)
        ]
        return TranscriptionResult(
            full_transcript=" ".join(segment.text for segment in segments),
            segments=segments,
        )


def build_transcriber(settings: Settings) -> Transcriber:
    if settings.TRANSCRIBER == "mock":
        return MockTranscriber()
    return WhisperTranscriber(settings.WHISPER_PATH, settings.WHISPER_LANGUAGE, settings.WHISPER_TIMEOUT_SECONDS)
