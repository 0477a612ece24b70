from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from .errors import ValidationError
from .store import SegmentRecord

logger = logging.getLogger(__name__)

SEGMENT_DURATION_SECONDS = 300.0
MIN_SEGMENT_WORDS = 50


def word_count(text: str) -> int:
    return len(text.split(" "))


def segment_transcript(transcript: Any) -> List[SegmentRecord]:
    """Turn a Whisper JSON result into merged, re-indexed segments."""
    fragments = transcript.get("segments") if isinstance(transcript, Mapping) else None
    if not isinstance(fragments, list):
        raise ValidationError("Invalid transcript format: missing segments array")

    segments = ensure_minimum_length(merge_fragments(fragments))
    logger.info("Created %d segments from %d fragments", len(segments), len(fragments))
    return segments


def merge_fragments(
    fragments: Iterable[Mapping[str, Any]],
    max_duration: float = SEGMENT_DURATION_SECONDS,
) -> List[SegmentRecord]:
    segments: List[SegmentRecord] = []
    current: Optional[SegmentRecord] = None

    for fragment in fragments:
        if not isinstance(fragment, Mapping):
            raise ValidationError("Invalid transcript format: segment is not an object")
        try:
            start_time = float(fragment.get("start") or 0)
            end_time = max(float(fragment.get("end") or start_time + 1), start_time)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"Invalid transcript format: bad segment time ({exc})") from exc
        text = str(fragment.get("text") or "").strip()
        if not text:
            continue

        if current is None:
            current = SegmentRecord(start_time, end_time, text, len(segments))
        elif current.end_time - current.start_time >= max_duration:
            segments.append(current)
            current = SegmentRecord(start_time, end_time, text, len(segments))
        else:
            current.end_time = max(end_time, current.start_time)
            current.text += " " + text

    if current is not None:
        segments.append(current)
    return segments


def ensure_minimum_length(
    segments: Iterable[SegmentRecord],
    min_words: int = MIN_SEGMENT_WORDS,
) -> List[SegmentRecord]:
    # A short segment absorbs the ones after it until it reaches min_words;
    # a trailing short segment is kept as is.
    result: List[SegmentRecord] = []
    current: Optional[SegmentRecord] = None

    for segment in segments:
        if current is None:
            current = SegmentRecord(segment.start_time, segment.end_time, segment.text, 0)
        else:
            current.end_time = max(segment.end_time, current.start_time)
            current.text += " " + segment.text

        if word_count(current.text) >= min_words:
            result.append(current)
            current = None

    if current is not None:
        result.append(current)

    for index, segment in enumerate(result):
        segment.segment_index = index
    return result
