from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from .errors import NotFoundError
from .questions import QuestionGenerator
from .store import COMPLETED, FAILED, PENDING, PROCESSING, Store, VideoRecord
from .tasks import ProcessingQueue
from .transcription import Transcriber

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Processing cancelled"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VideoPipeline:
    """Transcribes videos and generates their questions, persisting each step."""

    def __init__(
        self,
        store: Store,
        transcriber: Transcriber,
        questions: QuestionGenerator,
        queue: ProcessingQueue,
    ) -> None:
        self.store = store
        self.transcriber = transcriber
        self.questions = questions
        self.queue = queue

    def enqueue_processing(self, video_id: str) -> None:
        self.queue.submit(video_id, lambda: self.process_video(video_id))

    def enqueue_transcription(self, video_id: str) -> None:
        self.queue.submit(video_id, lambda: self.retranscribe(video_id))

    def reset(self, video: VideoRecord) -> VideoRecord:
        video.transcription_status = PENDING
        video.question_generation_status = PENDING
        video.full_transcript = None
        video.segments = []
        video.questions = []
        video.duration = None
        video.transcription_error = None
        video.question_generation_error = None
        video.processed_at = None
        self.store.save(video)
        return video

    def reset_transcript(self, video: VideoRecord) -> VideoRecord:
        # Questions point at segment indexes, so they go with the old segments.
        video.transcription_status = PROCESSING
        video.full_transcript = None
        video.segments = []
        video.duration = None
        video.transcription_error = None
        video.questions = []
        video.question_generation_status = PENDING
        video.question_generation_error = None
        video.processed_at = None
        self.store.save(video)
        return video

    def mark_cancelled(self, video_id: str) -> None:
        """Fail whichever phase was still running when a job was cancelled."""
        video = self.store.get(video_id)
        if video is None:
            return
        interrupted = False
        if video.transcription_status == PROCESSING:
            video.transcription_status = FAILED
            video.transcription_error = CANCELLED_MESSAGE
            interrupted = True
        if video.question_generation_status == PROCESSING:
            video.question_generation_status = FAILED
            video.question_generation_error = CANCELLED_MESSAGE
            interrupted = True
        if interrupted:
            self.store.save(video)
            logger.warning("Processing cancelled for video %s", video.original_name)

    async def process_video(self, video_id: str) -> None:
        try:
            await self._process(video_id)
        except asyncio.CancelledError:
            self.mark_cancelled(video_id)
            raise

    async def _process(self, video_id: str) -> None:
        video = self.store.get(video_id)
        if video is None:
            logger.error("Video not found: %s", video_id)
            return

        logger.info("Starting processing for video: %s", video.original_name)
        if not await self._transcribe(video):
            return

        video.question_generation_status = PROCESSING
        self.store.save(video)
        try:
            video.questions = await self.questions.generate(video.segments)
        except Exception as exc:
            logger.exception("Question generation failed for video %s", video.original_name)
            video.question_generation_status = FAILED
            video.question_generation_error = str(exc)
            self.store.save(video)
            return

        video.question_generation_status = COMPLETED
        video.question_generation_error = None
        video.processed_at = _utcnow()
        self.store.save(video)
        logger.info("Question generation completed for video: %s", video.original_name)

    async def retranscribe(self, video_id: str) -> None:
        video = self.store.get(video_id)
        if video is None:
            logger.error("Video not found for retranscription: %s", video_id)
            return
        logger.info("Starting retranscription for: %s", video.original_name)
        try:
            await self._transcribe(video)
        except asyncio.CancelledError:
            self.mark_cancelled(video_id)
            raise

    async def _transcribe(self, video: VideoRecord) -> bool:
        video.transcription_status = PROCESSING
        video.transcription_error = None
        self.store.save(video)

        try:
            result = await self.transcriber.transcribe(video.filepath)
        except Exception as exc:
            logger.exception("Transcription failed for video %s", video.original_name)
            video.transcription_status = FAILED
            video.transcription_error = str(exc)
            self.store.save(video)
            return False

        video.full_transcript = result.full_transcript
        video.segments = result.segments
        video.duration = result.segments[-1].end_time if result.segments else None
        video.transcription_status = COMPLETED
        self.store.save(video)
        logger.info("Transcription completed for video: %s", video.original_name)
        return True

    async def regenerate_questions(
        self,
        video_id: str,
        segment_index: Optional[int] = None,
        questions_per_segment: Optional[int] = None,
    ) -> int:
        video = self.store.get(video_id)
        if video is None:
            raise NotFoundError("Video not found")
        if not video.segments:
            raise NotFoundError("No transcript segments available")

        segments = video.segments
        if segment_index is not None:
            segments = [segment for segment in segments if segment.segment_index == segment_index]
            if not segments:
                raise NotFoundError("Segment not found")

        video.question_generation_status = PROCESSING
        self.store.save(video)
        try:
            generated = await self.questions.generate(segments, questions_per_segment)
        except asyncio.CancelledError:
            self.mark_cancelled(video_id)
            raise
        except Exception as exc:
            video.question_generation_status = FAILED
            video.question_generation_error = str(exc)
            self.store.save(video)
            raise

        if segment_index is None:
            video.questions = generated
        else:
            video.questions = [q for q in video.questions if q.segment_index != segment_index] + generated
        video.question_generation_status = COMPLETED
        video.question_generation_error = None
        video.processed_at = _utcnow()
        self.store.save(video)
        logger.info("Regenerated %d questions for video %s", len(generated), video.original_name)
        return len(generated)
