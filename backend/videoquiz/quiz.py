from __future__ import annotations

import random
import time
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import NotFoundError
from .models import (
    GradedAnswerOut,
    QuestionStatsOut,
    QuizAnswer,
    QuizOut,
    QuizQuestionOut,
    QuizResultOut,
    SegmentQuestionCount,
)
from .store import QuestionRecord, VideoRecord
from .utils import round_half_up

QUIZ_INSTRUCTIONS = "Select the best answer for each question. Click 'Submit Quiz' when you're done."
MISSING_EXPLANATION = "No explanation provided"


def sample(items: Sequence, count: int, rng: Optional[random.Random] = None) -> list:
    """Uniform sample without replacement; the whole group when count exceeds it."""
    rng = rng or random.Random()
    return rng.sample(list(items), min(count, len(items)))


def group_by_segment(indexed: Iterable[Tuple[int, QuestionRecord]]) -> Dict[int, List[Tuple[int, QuestionRecord]]]:
    groups: Dict[int, List[Tuple[int, QuestionRecord]]] = {}
    for offset, question in indexed:
        groups.setdefault(question.segment_index, []).append((offset, question))
    return groups


def require_questions(video: Optional[VideoRecord], action: str) -> List[QuestionRecord]:
    if video is None:
        raise NotFoundError("Video not found")
    if not video.questions:
        raise NotFoundError(f"No questions available for {action}")
    return video.questions


def assemble_quiz(
    video: Optional[VideoRecord],
    questions_per_segment: int = 2,
    total_questions: Optional[int] = None,
    shuffle: bool = True,
    rng: Optional[random.Random] = None,
) -> QuizOut:
    questions = require_questions(video, "this video")
    rng = rng or random.Random()
    indexed = list(enumerate(questions))

    if total_questions:
        selected = sample(indexed, total_questions, rng)
    else:
        selected = []
        for group in group_by_segment(indexed).values():
            selected.extend(sample(group, questions_per_segment, rng))

    if shuffle:
        rng.shuffle(selected)

    quiz_questions = [
        QuizQuestionOut(
            question=question.question,
            options=list(question.options),
            correct_answer=question.correct_answer,
            explanation=question.explanation,
            segment_index=question.segment_index,
            question_index=position,
            source_index=offset,
        )
        for position, (offset, question) in enumerate(selected)
    ]
    return QuizOut(
        quiz_id=f"{video.id}_{int(time.time() * 1000)}",
        questions=quiz_questions,
        total_questions=len(quiz_questions),
        instructions=QUIZ_INSTRUCTIONS,
    )


def grade_quiz(video: Optional[VideoRecord], answers: Sequence[QuizAnswer]) -> QuizResultOut:
    # questionIndex is an offset into the stored question list, not the quiz.
    questions = require_questions(video, "grading")
    results: List[GradedAnswerOut] = []
    score = 0

    for answer in answers:
        if not 0 <= answer.question_index < len(questions):
            continue
        question = questions[answer.question_index]
        is_correct = answer.selected_answer == question.correct_answer
        if is_correct:
            score += 1
        results.append(
            GradedAnswerOut(
                question_index=answer.question_index,
                question=question.question,
                selected_answer=answer.selected_answer,
                correct_answer=question.correct_answer,
                is_correct=is_correct,
                explanation=question.explanation or MISSING_EXPLANATION,
            )
        )

    submitted = len(answers)
    percentage = int(round_half_up(score / submitted * 100)) if submitted else 0
    return QuizResultOut(score=score, total_questions=submitted, percentage=percentage, answers=results)


def question_stats(video: VideoRecord) -> QuestionStatsOut:
    counts: Dict[int, int] = {}
    for question in video.questions:
        counts[question.segment_index] = counts.get(question.segment_index, 0) + 1

    total = len(video.questions)
    average = round_half_up(total / len(counts), 1) if counts else 0
    return QuestionStatsOut(
        total_questions=total,
        questions_by_segment=[
            SegmentQuestionCount(segment_index=index, question_count=count) for index, count in counts.items()
        ],
        average_questions_per_segment=average,
        generation_status=video.question_generation_status,
    )


def filter_questions(
    questions: Sequence[QuestionRecord],
    segment_index: Optional[int] = None,
    limit: Optional[int] = None,
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
) -> List[QuestionRecord]:
    selected = [q for q in questions if segment_index is None or q.segment_index == segment_index]
    if shuffle:
        (rng or random.Random()).shuffle(selected)
    if limit and limit > 0:
        selected = selected[:limit]
    return selected
