from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .store import SegmentRecord, VideoRecord
from .utils import format_minutes, format_srt_time, format_vtt_time, round_half_up


def to_srt(segments: Iterable[SegmentRecord]) -> str:
    cues: List[str] = []
    for number, segment in enumerate(segments, start=1):
        cues.append(
            f"{number}\n"
            f"{format_srt_time(segment.start_time)} --> {format_srt_time(segment.end_time)}\n"
            f"{segment.text}\n\n"
        )
    return "".join(cues)


def to_vtt(segments: Iterable[SegmentRecord]) -> str:
    cues = ["WEBVTT\n\n"]
    for segment in segments:
        cues.append(
            f"{format_vtt_time(segment.start_time)} --> {format_vtt_time(segment.end_time)}\n"
            f"{segment.text}\n\n"
        )
    return "".join(cues)


def to_text(video: VideoRecord, generated_at: Optional[datetime] = None) -> str:
    generated_at = generated_at or datetime.now(timezone.utc)
    if video.duration:
        duration = f"{int(round_half_up(video.duration / 60))} minutes"
    else:
        duration = "Unknown"

    lines = [
        f"Transcript for: {video.original_name}\n",
        f"Generated on: {generated_at.isoformat()}\n",
        f"Duration: {duration}\n",
        f"\n{'=' * 50}\n\n",
    ]
    if video.segments:
        for segment in video.segments:
            lines.append(f"[{format_minutes(segment.start_time)} - {format_minutes(segment.end_time)}]\n")
            lines.append(f"{segment.text}\n\n")
    else:
        lines.append(video.full_transcript or "No transcript available")
    return "".join(lines)
