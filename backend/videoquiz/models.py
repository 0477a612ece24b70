from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .store import QuestionRecord, SegmentRecord, VideoRecord


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SegmentOut(ApiModel):
    start_time: float
    end_time: float
    text: str
    segment_index: int

    @classmethod
    def from_record(cls, segment: SegmentRecord) -> "SegmentOut":
        return cls(
            start_time=segment.start_time,
            end_time=segment.end_time,
            text=segment.text,
            segment_index=segment.segment_index,
        )


class QuestionOut(ApiModel):
    question: str
    options: List[str]
    correct_answer: int
    explanation: Optional[str] = None
    segment_index: int

    @classmethod
    def from_record(cls, question: QuestionRecord) -> "QuestionOut":
        return cls(
            question=question.question,
            options=list(question.options),
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            segment_index=question.segment_index,
        )


class VideoOut(ApiModel):
    id: str
    filename: str
    original_name: str
    filepath: str
    size: int
    mimetype: str
    duration: Optional[float] = None
    uploaded_at: datetime
    transcription_status: str
    question_generation_status: str
    full_transcript: Optional[str] = None
    segments: List[SegmentOut]
    questions: List[QuestionOut]
    transcription_error: Optional[str] = None
    question_generation_error: Optional[str] = None
    processed_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, video: VideoRecord) -> "VideoOut":
        return cls(
            id=video.id,
            filename=video.filename,
            original_name=video.original_name,
            filepath=video.filepath,
            size=video.size,
            mimetype=video.mimetype,
            duration=video.duration,
            uploaded_at=video.uploaded_at,
            transcription_status=video.transcription_status,
            question_generation_status=video.question_generation_status,
            full_transcript=video.full_transcript,
            segments=[SegmentOut.from_record(segment) for segment in video.segments],
            questions=[QuestionOut.from_record(question) for question in video.questions],
            transcription_error=video.transcription_error,
            question_generation_error=video.question_generation_error,
            processed_at=video.processed_at,
        )


class MessageOut(ApiModel):
    message: str


class VideoUploadResponse(ApiModel):
    message: str
    video_id: str
    video: VideoOut


class VideoListOut(ApiModel):
    videos: List[VideoOut]
    total: int


class VideoStatusOut(ApiModel):
    transcription_status: str
    question_generation_status: str
    transcription_error: Optional[str] = None
    question_generation_error: Optional[str] = None
    segments_count: int
    questions_count: int
    is_processing: bool = False


class TranscriptOut(ApiModel):
    full_transcript: str
    segments: List[SegmentOut]
    status: str


class SegmentListOut(ApiModel):
    segments: List[SegmentOut]
    total_segments: int


class TranscriptExportOut(ApiModel):
    transcript: str
    format: str
    filename: str


class SrtOut(ApiModel):
    srt: str
    filename: str


class VttOut(ApiModel):
    vtt: str
    filename: str


class QuestionListOut(ApiModel):
    questions: List[QuestionOut]
    total_questions: int
    segment_index: Optional[int] = None


class SegmentQuestionsOut(ApiModel):
    questions: List[QuestionOut]
    segment_index: int
    segment_text: Optional[str] = None


class QuizQuestionOut(QuestionOut):
    question_index: int
    source_index: int


class QuizOut(ApiModel):
    quiz_id: str
    questions: List[QuizQuestionOut]
    total_questions: int
    instructions: str


class QuizAnswer(ApiModel):
    question_index: int
    selected_answer: int


class QuizSubmission(ApiModel):
    video_id: str
    answers: List[QuizAnswer]


class GradedAnswerOut(ApiModel):
    question_index: int
    question: str
    selected_answer: int
    correct_answer: int
    is_correct: bool
    explanation: str


class QuizResultOut(ApiModel):
    score: int
    total_questions: int
    percentage: int
    answers: List[GradedAnswerOut]


class RegenerateRequest(ApiModel):
    segment_index: Optional[int] = None
    questions_per_segment: Optional[int] = Field(None, ge=1, le=10)


class RegenerateOut(ApiModel):
    message: str
    questions_generated: int


class QuestionUpdate(ApiModel):
    question: Optional[str] = None
    options: Optional[List[str]] = Field(None, min_length=4, max_length=4)
    correct_answer: Optional[int] = Field(None, ge=0, le=3)
    explanation: Optional[str] = None


class QuestionUpdateOut(ApiModel):
    message: str
    question: QuestionOut


class SegmentQuestionCount(ApiModel):
    segment_index: int
    question_count: int


class QuestionStatsOut(ApiModel):
    total_questions: int
    questions_by_segment: List[SegmentQuestionCount]
    average_questions_per_segment: float
    generation_status: str


class LLMStatusOut(ApiModel):
    status: str
    model: str
    response: Optional[str] = None
    error: Optional[str] = None
