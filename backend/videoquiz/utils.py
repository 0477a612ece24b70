from __future__ import annotations

import math


def _split_seconds(seconds: float) -> tuple:
    seconds = max(0.0, float(seconds))
    whole = int(math.floor(seconds))
    millis = int(math.floor((seconds % 1) * 1000))
    return whole // 3600, (whole % 3600) // 60, whole % 60, millis


def format_timestamp(seconds: float) -> str:
    hours, minutes, secs, _ = _split_seconds(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_srt_time(seconds: float) -> str:
    hours, minutes, secs, millis = _split_seconds(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def format_vtt_time(seconds: float) -> str:
    hours, minutes, secs, millis = _split_seconds(seconds)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"


def format_minutes(seconds: float) -> str:
    """``m:ss`` with unbounded minutes, as used in plain-text exports."""
    seconds = max(0.0, float(seconds))
    return f"{int(seconds // 60)}:{int(seconds % 60):02d}"


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor
