import asyncio
import json
import stat
import sys

import pytest

from videoquiz.config import Settings
from videoquiz.errors import ExternalToolError, ValidationError
from videoquiz.transcription import MockTranscriber, WhisperTranscriber, build_transcriber

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as the whisper binary")


def fake_whisper(tmp_path, body):
    """Write an executable that stands in for the whisper CLI.

    It receives ``<media> --output_dir <dir> ...`` like the real tool.
    """
    script = tmp_path / "whisper"
    script.write_text("#!/bin/sh\n" + body)
    script.chmod(script.stat().st_mode | stat.S_IEXEC)
    return str(script)


def write_json_script(payload):
    return (
        'base=$(basename "$1")\n'
        'name="${base%.*}"\n'
        f"cat > \"$3/$name.json\" <<'EOF'\n{json.dumps(payload)}\nEOF\n"
        'echo "done" > "$3/$name.txt"\n'
    )


def test_whisper_output_is_merged_and_cleaned_up(tmp_path):
    media = tmp_path / "lecture.mp4"
    media.write_bytes(b"fake")
    payload = {
        "segments": [
            {"start": 0.0, "end": 310.0, "text": " ".join(["word"] * 60)},
            {"start": 310.0, "end": 320.0, "text": "tail"},
        ]
    }
    transcriber = WhisperTranscriber(fake_whisper(tmp_path, write_json_script(payload)))

    result = asyncio.run(transcriber.transcribe(str(media)))

    assert [s.segment_index for s in result.segments] == [0, 1]
    assert result.segments[1].text == "tail"
    assert result.full_transcript.endswith(" tail")
    assert not (tmp_path / "lecture.json").exists()
    assert not (tmp_path / "lecture.txt").exists()
    assert media.exists()


def test_whisper_nonzero_exit_is_external_failure(tmp_path):
    media = tmp_path / "clip.wav"
    media.write_bytes(b"fake")
    transcriber = WhisperTranscriber(fake_whisper(tmp_path, 'echo "bad audio" >&2\nexit 3\n'))

    with pytest.raises(ExternalToolError, match="Transcription failed: Whisper process exited with code 3: bad audio"):
        asyncio.run(transcriber.transcribe(str(media)))


def test_whisper_timeout_kills_process(tmp_path):
    media = tmp_path / "clip.wav"
    media.write_bytes(b"fake")
    transcriber = WhisperTranscriber(fake_whisper(tmp_path, "exec sleep 5\n"), timeout=0.2)

    with pytest.raises(ExternalToolError, match="timeout"):
        asyncio.run(transcriber.transcribe(str(media)))


def test_whisper_missing_output_file(tmp_path):
    media = tmp_path / "clip.wav"
    media.write_bytes(b"fake")
    transcriber = WhisperTranscriber(fake_whisper(tmp_path, "exit 0\n"))

    with pytest.raises(ExternalToolError, match="Transcript file not found"):
        asyncio.run(transcriber.transcribe(str(media)))


def test_whisper_output_without_segments_is_invalid(tmp_path):
    media = tmp_path / "clip.wav"
    media.write_bytes(b"fake")
    transcriber = WhisperTranscriber(fake_whisper(tmp_path, write_json_script({"text": "no segments"})))

    with pytest.raises(ValidationError, match="missing segments array"):
        asyncio.run(transcriber.transcribe(str(media)))


def test_mock_transcriber_returns_three_segments():
    result = asyncio.run(MockTranscriber().transcribe("anything.mp4"))
    assert [(s.start_time, s.end_time) for s in result.segments] == [(0, 300), (300, 600), (600, 900)]
    assert result.full_transcript.startswith("This is the first segment")


def test_build_transcriber_from_settings():
    assert isinstance(build_transcriber(Settings(TRANSCRIBER="mock")), MockTranscriber)
    whisper = build_transcriber(Settings(WHISPER_PATH="/opt/whisper", WHISPER_LANGUAGE="de"))
    assert isinstance(whisper, WhisperTranscriber)
    assert whisper.executable == "/opt/whisper"
    assert whisper.language == "de"


def test_whisper_output_with_bad_times_is_invalid(tmp_path):
    media = tmp_path / "clip.wav"
    media.write_bytes(b"fake")
    payload = {"segments": [{"start": "abc", "end": 3, "text": "hi"}]}
    transcriber = WhisperTranscriber(fake_whisper(tmp_path, write_json_script(payload)))

    with pytest.raises(ValidationError, match="Transcription failed: Invalid transcript format"):
        asyncio.run(transcriber.transcribe(str(media)))
