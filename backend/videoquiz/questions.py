from __future__ import annotations

import asyncio
import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .errors import AppError
from .llm import TextGenerator
from .store import QuestionRecord, SegmentRecord

logger = logging.getLogger(__name__)

TEST_PROMPT = "Generate a simple test response. Just say 'LLM is working correctly.'"

PROMPT_TEMPLATE = """Based on the following text, generate {count} multiple-choice questions with 4 options each.

Instructions:
- Create objective, knowledge-based questions about the content
- Provide 4 options (A, B, C, D) for each question
- Indicate the correct answer
- Questions should test understanding of key concepts
- Return the response in JSON format

Text: "{text}"

Required JSON format:
{{
  "questions": [
    {{
      "question": "What is the main topic discussed?",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_answer": 0,
      "explanation": "Brief explanation of why this is correct"
    }}
  ]
}}

Generate {count} questions now:"""


def create_prompt(text: str, count: int) -> str:
    return PROMPT_TEMPLATE.format(text=text, count=count)


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    match = re.search(r"\{.*\}", text, flags=re.DOTALL)
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def is_valid_question(question: QuestionRecord) -> bool:
    if len(question.question.strip()) < 10:
        return False
    if len(question.options) != 4:
        return False
    if not 0 <= question.correct_answer <= 3:
        return False
    return len({option.strip().lower() for option in question.options}) == 4


def parse_questions(response: str, segment_index: int) -> List[QuestionRecord]:
    parsed = extract_json(response)
    if parsed is None or not isinstance(parsed.get("questions"), list):
        logger.warning("No usable JSON in LLM response for segment %s", segment_index)
        return []

    questions: List[QuestionRecord] = []
    for item in parsed["questions"]:
        if not isinstance(item, dict):
            continue
        options = item.get("options") or []
        try:
            correct_answer = int(item.get("correct_answer") or 0)
        except (TypeError, ValueError):
            continue
        question = QuestionRecord(
            question=str(item.get("question") or ""),
            options=[str(option) for option in options] if isinstance(options, list) else [],
            correct_answer=correct_answer,
            explanation=str(item.get("explanation") or ""),
            segment_index=segment_index,
        )
        if is_valid_question(question):
            questions.append(question)
    return questions


def fallback_questions(segment: SegmentRecord, count: int = 3) -> List[QuestionRecord]:
    index = segment.segment_index
    questions = [
        QuestionRecord(
            question=f"What is the main topic discussed in segment {index + 1}?",
            options=[
                "Technical implementation details",
                "General overview and introduction",
                "Practical applications and examples",
                "Summary and conclusions",
            ],
            correct_answer=1,
            explanation="This question tests understanding of the segment's primary focus.",
            segment_index=index,
        ),
        QuestionRecord(
            question="Which concept is emphasized in this part of the content?",
            options=[
                "Historical background",
                "Current methodologies",
                "Future predictions",
                "Key principles and fundamentals",
            ],
            correct_answer=3,
            explanation="The segment focuses on explaining fundamental concepts.",
            segment_index=index,
        ),
        QuestionRecord(
            question="What type of information is provided in this segment?",
            options=[
                "Statistical data only",
                "Theoretical concepts with examples",
                "Personal opinions",
                "Marketing content",
            ],
            correct_answer=1,
            explanation="The content combines theory with practical examples for better understanding.",
            segment_index=index,
        ),
    ]
    return questions[:count]


class QuestionGenerator:
    def __init__(
        self,
        generator: TextGenerator,
        questions_per_segment: int = 3,
        delay_seconds: float = 1.0,
    ) -> None:
        self.generator = generator
        self.questions_per_segment = questions_per_segment
        self.delay_seconds = delay_seconds

    async def generate_for_segment(self, segment: SegmentRecord, count: Optional[int] = None) -> List[QuestionRecord]:
        count = count or self.questions_per_segment
        prompt = create_prompt(segment.text, count)
        try:
            response = await self.generator.generate(prompt)
            questions = parse_questions(response, segment.segment_index)
            if questions:
                return questions
        except AppError as exc:
            logger.warning("LLM failed for segment %s, using fallback: %s", segment.segment_index, exc)

        return fallback_questions(segment, count)

    async def generate(self, segments: Iterable[SegmentRecord], count: Optional[int] = None) -> List[QuestionRecord]:
        segments = list(segments)
        logger.info("Generating questions for %d segments", len(segments))
        questions: List[QuestionRecord] = []

        for position, segment in enumerate(segments):
            if position and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            try:
                generated = await self.generate_for_segment(segment, count)
            except Exception:
                logger.exception("Failed to generate questions for segment %s", segment.segment_index)
                continue
            questions.extend(generated)
            logger.info("Generated %d questions for segment %s", len(generated), segment.segment_index)

        logger.info("Total questions generated: %d", len(questions))
        return questions

    async def test_connection(self) -> Dict[str, Optional[str]]:
        try:
            response = await self.generator.generate(TEST_PROMPT)
        except AppError as exc:
            return {"status": "disconnected", "model": self.generator.model, "error": exc.message}

        preview = response[:100] + ("..." if len(response) > 100 else "")
        return {"status": "connected", "model": self.generator.model, "response": preview}
