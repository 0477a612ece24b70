from __future__ import annotations

import copy
import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"


@dataclass
class SegmentRecord:
    start_time: float
    end_time: float
    text: str
    segment_index: int


@dataclass
class QuestionRecord:
    question: str
    options: List[str]
    correct_answer: int
    segment_index: int
    explanation: Optional[str] = None


@dataclass
class VideoRecord:
    id: str
    filename: str
    original_name: str
    filepath: str
    size: int
    mimetype: str
    uploaded_at: datetime
    duration: Optional[float] = None
    transcription_status: str = PENDING
    question_generation_status: str = PENDING
    full_transcript: Optional[str] = None
    segments: List[SegmentRecord] = field(default_factory=list)
    questions: List[QuestionRecord] = field(default_factory=list)
    transcription_error: Optional[str] = None
    question_generation_error: Optional[str] = None
    processed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["uploaded_at"] = self.uploaded_at.isoformat()
        data["processed_at"] = self.processed_at.isoformat() if self.processed_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VideoRecord":
        data = dict(data)
        data["uploaded_at"] = datetime.fromisoformat(data["uploaded_at"])
        if data.get("processed_at"):
            data["processed_at"] = datetime.fromisoformat(data["processed_at"])
        data["segments"] = [SegmentRecord(**item) for item in data.get("segments", [])]
        data["questions"] = [QuestionRecord(**item) for item in data.get("questions", [])]
        return cls(**data)


@dataclass
class Store:
    """Video records keyed by id, read and written as whole documents.

    Records handed out by ``get``/``list`` are copies, so a caller must
    ``save`` a record for its changes to become visible. When ``data_dir``
    is set every saved record is mirrored to ``<data_dir>/<id>.json``.
    """

    data_dir: Optional[Path] = None
    videos: Dict[str, VideoRecord] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.data_dir is None:
            return
        self.data_dir.mkdir(parents=True, exist_ok=True)
        for path in sorted(self.data_dir.glob("*.json")):
            try:
                record = VideoRecord.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (ValueError, TypeError, KeyError) as exc:
                logger.warning("Skipping unreadable video record %s: %s", path, exc)
                continue
            self.videos[record.id] = record
        logger.info("Loaded %d video records from %s", len(self.videos), self.data_dir)

    def get(self, video_id: str) -> Optional[VideoRecord]:
        video = self.videos.get(video_id)
        return copy.deepcopy(video) if video else None

    def save(self, video: VideoRecord) -> None:
        self.videos[video.id] = copy.deepcopy(video)
        if self.data_dir is not None:
            path = self.data_dir / f"{video.id}.json"
            path.write_text(json.dumps(video.to_dict(), indent=2), encoding="utf-8")

    def delete(self, video_id: str) -> bool:
        removed = self.videos.pop(video_id, None) is not None
        if self.data_dir is not None:
            (self.data_dir / f"{video_id}.json").unlink(missing_ok=True)
        return removed

    def list(self, transcription_status: Optional[str] = None) -> List[VideoRecord]:
        videos = [
            video
            for video in self.videos.values()
            if transcription_status is None or video.transcription_status == transcription_status
        ]
        videos.sort(key=lambda video: video.uploaded_at, reverse=True)
        return [copy.deepcopy(video) for video in videos]
