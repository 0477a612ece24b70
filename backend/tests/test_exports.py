from datetime import datetime, timezone

from videoquiz.exports import to_srt, to_text, to_vtt
from videoquiz.store import SegmentRecord, VideoRecord
from videoquiz.utils import format_minutes, format_srt_time, format_timestamp, format_vtt_time, round_half_up


SEGMENTS = [
    SegmentRecord(start_time=0.0, end_time=61.5, text="Hello world", segment_index=0),
    SegmentRecord(start_time=61.5, end_time=3725.25, text="Second part", segment_index=1),
]


def test_timestamp_formats():
    assert format_timestamp(3725.9) == "01:02:05"
    assert format_srt_time(3725.25) == "01:02:05,250"
    assert format_vtt_time(3725.25) == "01:02:05.250"
    assert format_srt_time(0) == "00:00:00,000"
    assert format_minutes(125.75) == "2:05"


def test_milliseconds_are_truncated():
    assert format_srt_time(1.9995) == "00:00:01,999"


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.25, 1) == 0.3
    assert round_half_up(2.4) == 2


def test_srt_output():
    assert to_srt(SEGMENTS) == (
        "1\n00:00:00,000 --> 00:01:01,500\nHello world\n\n"
        "2\n00:01:01,500 --> 01:02:05,250\nSecond part\n\n"
    )


def test_vtt_output():
    assert to_vtt(SEGMENTS) == (
        "WEBVTT\n\n"
        "00:00:00.000 --> 00:01:01.500\nHello world\n\n"
        "00:01:01.500 --> 01:02:05.250\nSecond part\n\n"
    )


def make_video(**fields):
    return VideoRecord(
        id="v",
        filename="video-1.mp4",
        original_name="talk.mp4",
        filepath="/tmp/video-1.mp4",
        size=1,
        mimetype="video/mp4",
        uploaded_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        **fields,
    )


def test_text_export_lists_segments():
    generated = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    text = to_text(make_video(duration=3725.25, segments=list(SEGMENTS)), generated_at=generated)
    lines = text.split("\n")
    assert lines[0] == "Transcript for: talk.mp4"
    assert lines[1] == "Generated on: 2024-05-01T12:00:00+00:00"
    assert lines[2] == "Duration: 62 minutes"
    assert lines[4] == "=" * 50
    assert "[0:00 - 1:01]\nHello world\n\n" in text
    assert "[1:01 - 62:05]\nSecond part\n\n" in text


def test_text_export_without_segments_uses_full_transcript():
    text = to_text(make_video(full_transcript="just words"))
    assert "Duration: Unknown" in text
    assert text.endswith("just words")
