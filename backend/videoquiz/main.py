from __future__ import annotations

import logging
import random
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import uvicorn
from fastapi import APIRouter, Body, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from . import exports
from .config import Settings, configure_logging
from .errors import FileTooLargeError, InvalidFileTypeError, NotFoundError, ValidationError, install_error_handlers
from .llm import TextGenerator, build_generator
from .models import (
    LLMStatusOut,
    MessageOut,
    QuestionListOut,
    QuestionOut,
    QuestionStatsOut,
    QuestionUpdate,
    QuestionUpdateOut,
    QuizOut,
    QuizResultOut,
    QuizSubmission,
    RegenerateOut,
    RegenerateRequest,
    SegmentListOut,
    SegmentOut,
    SegmentQuestionsOut,
    SrtOut,
    TranscriptExportOut,
    TranscriptOut,
    VideoListOut,
    VideoOut,
    VideoStatusOut,
    VideoUploadResponse,
    VttOut,
)
from .pipeline import VideoPipeline
from .questions import QuestionGenerator
from .quiz import assemble_quiz, filter_questions, grade_quiz, question_stats
from .store import Store, VideoRecord
from .tasks import ProcessingQueue
from .transcription import Transcriber, build_transcriber

logger = logging.getLogger(__name__)

ALLOWED_MIMETYPES = {
    "video/mp4",
    "video/avi",
    "video/mov",
    "video/wmv",
    "video/flv",
    "audio/mp3",
    "audio/wav",
    "audio/m4a",
}
UPLOAD_CHUNK_BYTES = 1024 * 1024


@dataclass
class Services:
    settings: Settings
    store: Store
    queue: ProcessingQueue
    questions: QuestionGenerator
    pipeline: VideoPipeline


def build_services(
    settings: Settings,
    transcriber: Optional[Transcriber] = None,
    generator: Optional[TextGenerator] = None,
) -> Services:
    store = Store(data_dir=settings.DATA_DIR)
    queue = ProcessingQueue()
    questions = QuestionGenerator(
        generator or build_generator(settings),
        questions_per_segment=settings.QUESTIONS_PER_SEGMENT,
        delay_seconds=settings.GENERATION_DELAY_SECONDS,
    )
    pipeline = VideoPipeline(store, transcriber or build_transcriber(settings), questions, queue)
    return Services(settings=settings, store=store, queue=queue, questions=questions, pipeline=pipeline)


def get_services(request: Request) -> Services:
    return request.app.state.services


def _get_video(services: Services, video_id: str) -> VideoRecord:
    video = services.store.get(video_id)
    if not video:
        raise NotFoundError("Video not found")
    return video


video_router = APIRouter(prefix="/api/videos", tags=["videos"])
transcription_router = APIRouter(prefix="/api/transcriptions", tags=["transcriptions"])
question_router = APIRouter(prefix="/api/questions", tags=["questions"])


# Videos


async def _save_upload(file: UploadFile, destination: Path, max_bytes: int) -> int:
    size = 0
    with destination.open("wb") as buffer:
        while True:
            chunk = await file.read(UPLOAD_CHUNK_BYTES)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                buffer.close()
                destination.unlink(missing_ok=True)
                raise FileTooLargeError("File too large")
            buffer.write(chunk)
    return size


@video_router.post("/upload", response_model=VideoUploadResponse)
async def upload_video(
    video: Optional[UploadFile] = File(None),
    services: Services = Depends(get_services),
) -> VideoUploadResponse:
    if video is None or not video.filename:
        raise ValidationError("No file uploaded")
    if video.content_type not in ALLOWED_MIMETYPES:
        raise InvalidFileTypeError("Invalid file type. Only video and audio files are allowed.")

    upload_dir = services.settings.UPLOAD_DIR
    upload_dir.mkdir(parents=True, exist_ok=True)
    suffix = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}"
    filename = f"video-{suffix}{Path(video.filename).suffix}"
    destination = upload_dir / filename
    size = await _save_upload(video, destination, services.settings.MAX_UPLOAD_BYTES)

    record = VideoRecord(
        id=uuid.uuid4().hex,
        filename=filename,
        original_name=video.filename,
        filepath=str(destination),
        size=size,
        mimetype=video.content_type,
        uploaded_at=datetime.now(timezone.utc),
    )
    services.store.save(record)
    services.pipeline.enqueue_processing(record.id)
    logger.info("Uploaded %s as video %s (%d bytes)", record.original_name, record.id, size)

    return VideoUploadResponse(
        message="Video uploaded successfully",
        video_id=record.id,
        video=VideoOut.from_record(record),
    )


@video_router.get("", response_model=VideoListOut)
async def list_videos(
    status: Optional[str] = None,
    limit: int = Query(10, ge=0, description="0 returns every video"),
    skip: int = Query(0, ge=0),
    services: Services = Depends(get_services),
) -> VideoListOut:
    records = services.store.list(transcription_status=status)
    page = records[skip : skip + limit] if limit else records[skip:]
    return VideoListOut(videos=[VideoOut.from_record(record) for record in page], total=len(records))


@video_router.get("/{video_id}", response_model=VideoOut)
async def get_video(video_id: str, services: Services = Depends(get_services)) -> VideoOut:
    return VideoOut.from_record(_get_video(services, video_id))


@video_router.get("/{video_id}/status", response_model=VideoStatusOut)
async def get_video_status(video_id: str, services: Services = Depends(get_services)) -> VideoStatusOut:
    video = _get_video(services, video_id)
    return VideoStatusOut(
        transcription_status=video.transcription_status,
        question_generation_status=video.question_generation_status,
        transcription_error=video.transcription_error,
        question_generation_error=video.question_generation_error,
        segments_count=len(video.segments),
        questions_count=len(video.questions),
        is_processing=services.queue.is_running(video_id),
    )


@video_router.delete("/{video_id}", response_model=MessageOut)
async def delete_video(video_id: str, services: Services = Depends(get_services)) -> MessageOut:
    video = _get_video(services, video_id)
    await services.queue.cancel(video_id)
    Path(video.filepath).unlink(missing_ok=True)
    services.store.delete(video_id)
    return MessageOut(message="Video deleted successfully")


@video_router.post("/{video_id}/reprocess", response_model=MessageOut)
async def reprocess_video(video_id: str, services: Services = Depends(get_services)) -> MessageOut:
    _get_video(services, video_id)
    await services.queue.cancel(video_id)
    services.pipeline.reset(_get_video(services, video_id))
    services.pipeline.enqueue_processing(video_id)
    return MessageOut(message="Video reprocessing started")


# Transcriptions


@transcription_router.get("/{video_id}", response_model=TranscriptOut)
async def get_transcription(video_id: str, services: Services = Depends(get_services)) -> TranscriptOut:
    video = _get_video(services, video_id)
    return TranscriptOut(
        full_transcript=video.full_transcript or "",
        segments=[SegmentOut.from_record(segment) for segment in video.segments],
        status=video.transcription_status,
    )


@transcription_router.get("/{video_id}/segments", response_model=SegmentListOut)
async def get_transcript_segments(video_id: str, services: Services = Depends(get_services)) -> SegmentListOut:
    video = _get_video(services, video_id)
    return SegmentListOut(
        segments=[SegmentOut.from_record(segment) for segment in video.segments],
        total_segments=len(video.segments),
    )


@transcription_router.get("/{video_id}/segments/{segment_index}", response_model=SegmentOut)
async def get_segment(video_id: str, segment_index: int, services: Services = Depends(get_services)) -> SegmentOut:
    video = _get_video(services, video_id)
    for segment in video.segments:
        if segment.segment_index == segment_index:
            return SegmentOut.from_record(segment)
    raise NotFoundError("Segment not found")


@transcription_router.post("/{video_id}/retranscribe", response_model=MessageOut)
async def retranscribe_video(video_id: str, services: Services = Depends(get_services)) -> MessageOut:
    _get_video(services, video_id)
    await services.queue.cancel(video_id)
    services.pipeline.reset_transcript(_get_video(services, video_id))
    services.pipeline.enqueue_transcription(video_id)
    return MessageOut(message="Retranscription started")


@transcription_router.get("/{video_id}/export", response_model=TranscriptExportOut)
async def export_transcript(video_id: str, services: Services = Depends(get_services)) -> TranscriptExportOut:
    video = _get_video(services, video_id)
    if not video.full_transcript:
        raise NotFoundError("No transcript available")
    return TranscriptExportOut(
        transcript=exports.to_text(video),
        format="text",
        filename=f"{video.original_name}_transcript.txt",
    )


@transcription_router.get("/{video_id}/srt", response_model=SrtOut)
async def get_transcript_srt(video_id: str, services: Services = Depends(get_services)) -> SrtOut:
    video = _get_video(services, video_id)
    if not video.segments:
        raise NotFoundError("No segments available")
    return SrtOut(srt=exports.to_srt(video.segments), filename=f"{video.original_name}_subtitles.srt")


@transcription_router.get("/{video_id}/vtt", response_model=VttOut)
async def get_transcript_vtt(video_id: str, services: Services = Depends(get_services)) -> VttOut:
    video = _get_video(services, video_id)
    if not video.segments:
        raise NotFoundError("No segments available")
    return VttOut(vtt=exports.to_vtt(video.segments), filename=f"{video.original_name}_subtitles.vtt")


# Questions


@question_router.get("/test-llm", response_model=LLMStatusOut)
async def test_llm_connection(services: Services = Depends(get_services)) -> LLMStatusOut:
    return LLMStatusOut(**await services.questions.test_connection())


@question_router.post("/quiz/submit", response_model=QuizResultOut)
async def submit_quiz(submission: QuizSubmission, services: Services = Depends(get_services)) -> QuizResultOut:
    return grade_quiz(services.store.get(submission.video_id), submission.answers)


@question_router.get("/{video_id}", response_model=QuestionListOut)
async def get_questions(
    video_id: str,
    segment_index: Optional[int] = Query(None, alias="segmentIndex"),
    limit: Optional[int] = Query(None, ge=0),
    shuffle: bool = False,
    services: Services = Depends(get_services),
) -> QuestionListOut:
    video = _get_video(services, video_id)
    selected = filter_questions(video.questions, segment_index=segment_index, limit=limit, shuffle=shuffle)
    return QuestionListOut(
        questions=[QuestionOut.from_record(question) for question in selected],
        total_questions=len(selected),
        segment_index=segment_index,
    )


@question_router.get("/{video_id}/segments/{segment_index}", response_model=SegmentQuestionsOut)
async def get_segment_questions(
    video_id: str,
    segment_index: int,
    services: Services = Depends(get_services),
) -> SegmentQuestionsOut:
    video = _get_video(services, video_id)
    segment_text = next(
        (segment.text for segment in video.segments if segment.segment_index == segment_index),
        None,
    )
    return SegmentQuestionsOut(
        questions=[QuestionOut.from_record(q) for q in filter_questions(video.questions, segment_index)],
        segment_index=segment_index,
        segment_text=segment_text,
    )


@question_router.get("/{video_id}/quiz", response_model=QuizOut)
async def get_quiz(
    video_id: str,
    questions_per_segment: int = Query(2, alias="questionsPerSegment", ge=1),
    total_questions: Optional[int] = Query(None, alias="totalQuestions", ge=0),
    shuffle: bool = True,
    services: Services = Depends(get_services),
) -> QuizOut:
    return assemble_quiz(
        services.store.get(video_id),
        questions_per_segment=questions_per_segment,
        total_questions=total_questions,
        shuffle=shuffle,
    )


@question_router.post("/{video_id}/regenerate", response_model=RegenerateOut)
async def regenerate_questions(
    video_id: str,
    options: Optional[RegenerateRequest] = Body(None),
    services: Services = Depends(get_services),
) -> RegenerateOut:
    options = options or RegenerateRequest()
    generated = await services.pipeline.regenerate_questions(
        video_id,
        segment_index=options.segment_index,
        questions_per_segment=options.questions_per_segment,
    )
    return RegenerateOut(message="Questions regenerated successfully", questions_generated=generated)


def _get_question_offset(video: VideoRecord, question_index: int) -> int:
    if not 0 <= question_index < len(video.questions):
        raise NotFoundError("Question not found")
    return question_index


@question_router.put("/{video_id}/questions/{question_index}", response_model=QuestionUpdateOut)
async def update_question(
    video_id: str,
    question_index: int,
    update: QuestionUpdate,
    services: Services = Depends(get_services),
) -> QuestionUpdateOut:
    video = _get_video(services, video_id)
    question = video.questions[_get_question_offset(video, question_index)]
    if update.question:
        question.question = update.question
    if update.options:
        question.options = list(update.options)
    if update.correct_answer is not None:
        question.correct_answer = update.correct_answer
    if update.explanation:
        question.explanation = update.explanation
    services.store.save(video)
    return QuestionUpdateOut(message="Question updated successfully", question=QuestionOut.from_record(question))


@question_router.delete("/{video_id}/questions/{question_index}", response_model=MessageOut)
async def delete_question(video_id: str, question_index: int, services: Services = Depends(get_services)) -> MessageOut:
    video = _get_video(services, video_id)
    del video.questions[_get_question_offset(video, question_index)]
    services.store.save(video)
    return MessageOut(message="Question deleted successfully")


@question_router.get("/{video_id}/stats", response_model=QuestionStatsOut)
async def get_question_stats(video_id: str, services: Services = Depends(get_services)) -> QuestionStatsOut:
    return question_stats(_get_video(services, video_id))


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    settings = settings or (services.settings if services else Settings())
    configure_logging(settings.LOG_LEVEL)
    services = services or build_services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Uploads directory: %s", settings.UPLOAD_DIR)
        yield
        await services.queue.shutdown()

    app = FastAPI(title="Video Transcription & Quiz API", version="1.0.0", lifespan=lifespan)
    app.state.services = services
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    @app.get("/health")
    async def health_check() -> Dict[str, str]:
        return {"status": "OK", "message": "Server is running"}

    for router in (video_router, transcription_router, question_router):
        app.include_router(router)
    return app


def run() -> None:
    settings = Settings()
    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
