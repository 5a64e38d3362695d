import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from .anthropic_client import AnthropicClient
from .content_service import ContentService, build_document_strategies
from .errors import ContentUnavailableError
from .models import GeneratedTest, QuizRequest
from .prompts import (
    CONVERSATION_SYSTEM_PROMPT,
    TEACHING_TIPS_SYSTEM_PROMPT,
    TEST_SYSTEM_PROMPT,
    conversation_prompt,
    teaching_tips_prompt,
    test_generation_prompt,
    video_instructions,
)
from .quiz_parser import parse_test_content, split_test_sections
from .subject import DEFAULT_SUBJECT, SubjectExtractor, heuristic_subject
from .utils import detect_content_type

load_dotenv()

logger = logging.getLogger(__name__)

MIN_CONTENT_LENGTH = 100


def format_test_date(now: Optional[datetime] = None) -> str:
    """Dates read like "October 18, 2026"."""
    now = now or datetime.now()
    return f"{now:%B} {now.day}, {now.year}"


class QuizGenerator:
    """Generates a test from a content URL (or a transcript) using Claude."""

    def __init__(self, client: Optional[AnthropicClient] = None,
                 content_service: Optional[ContentService] = None,
                 subject_extractor: Optional[SubjectExtractor] = None,
                 progress_callback=None):
        """
        Args:
            client: Completion client used for the test itself.
            content_service: Turns the request URL into text.
            subject_extractor: Derives the test subject.
            progress_callback: Optional callback function for progress updates.
        """
        self.client = client or AnthropicClient()
        self.content_service = content_service or ContentService(
            document_strategies=build_document_strategies(completion_client=self.client),
            progress_callback=progress_callback,
        )
        self.subject_extractor = subject_extractor or SubjectExtractor(client=self.client)
        self.progress_callback = progress_callback

    def _report(self, message: str) -> None:
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message)

    async def generate(self, request: QuizRequest) -> GeneratedTest:
        """
        Acquire the content behind request.content_url and build a test from it.

        Raises:
            ValueError: If the URL is missing or not usable.
            AllStrategiesFailedError: If no strategy could provide content.
            ContentUnavailableError: If the content is too short to test on.
        """
        if not request.content_url:
            raise ValueError("Content URL is required")

        content_type, _ = detect_content_type(request.content_url)
        self._report(f"Fetching {content_type} content...")
        outcome = await self.content_service.acquire(request.content_url)

        if len(outcome.text.strip()) <= MIN_CONTENT_LENGTH:
            raise ContentUnavailableError(
                f"Content from {outcome.source_id} is too short or empty to generate a test"
            )

        self._report(f"Using content from {outcome.source_id} ({len(outcome.text)} chars)")
        subject = await self.subject_extractor.extract(request.content_url, outcome.text, outcome.title)

        is_video = content_type == 'video'
        label = 'Video transcript' if is_video else 'Article content'
        test = await self._generate_test(
            request,
            content_info=f"{label}: {outcome.text}",
            subject=subject,
            instructions=video_instructions(is_video, outcome.is_authoritative),
        )
        test.source_id = outcome.source_id
        test.is_authoritative = outcome.is_authoritative
        return test

    async def generate_from_transcript(self, transcript: str, request: QuizRequest) -> GeneratedTest:
        """
        Build a test from a transcript the caller already has.

        Raises:
            ContentUnavailableError: If the transcript is too short.
        """
        if not transcript or len(transcript.strip()) <= MIN_CONTENT_LENGTH:
            raise ContentUnavailableError("Transcript is too short or empty to generate a test")

        subject = heuristic_subject(transcript) or DEFAULT_SUBJECT
        return await self._generate_test(
            request,
            content_info=f"Video transcript: {transcript}",
            subject=subject,
            instructions=video_instructions(True, True),
        )

    async def generate_conversation_topics(self, subject: str, student_level: str = 'Medium') -> str:
        """
        Numbered conversation starters on the general subject, for the start of a class.

        Raises:
            ValueError: If the subject is empty.
            RuntimeError: If the model returns nothing.
        """
        if not subject or not subject.strip():
            raise ValueError("Subject is required")

        self._report(f"Generating conversation questions about '{subject}'...")
        text = await self.client.generate_text(
            conversation_prompt(subject, student_level),
            max_tokens=500,
            temperature=0.7,
            system_prompt=CONVERSATION_SYSTEM_PROMPT,
        )
        if not text or not text.strip():
            raise RuntimeError("Failed to generate conversation questions")
        return text.strip()

    async def generate_teaching_tips(self, subject: str, student_level: str = 'Medium') -> str:
        """
        Vocabulary, grammar and pronunciation tips for teaching the subject.

        Raises:
            ValueError: If the subject is empty.
            RuntimeError: If the model returns nothing.
        """
        if not subject or not subject.strip():
            raise ValueError("Subject is required")

        self._report(f"Generating teaching tips for '{subject}'...")
        text = await self.client.generate_text(
            teaching_tips_prompt(subject, student_level),
            max_tokens=1000,
            temperature=0.7,
            system_prompt=TEACHING_TIPS_SYSTEM_PROMPT,
        )
        if not text or not text.strip():
            raise RuntimeError("Failed to generate teaching tips")
        return text.strip()

    async def _generate_test(self, request: QuizRequest, content_info: str, subject: str,
                             instructions: str) -> GeneratedTest:
        prompt = test_generation_prompt(request, content_info, subject, format_test_date(), instructions)

        self._report(f"Generating {request.number_of_questions} questions about '{subject}'...")
        raw_text = await self.client.generate_text(
            prompt,
            max_tokens=4000,
            temperature=0.7,
            system_prompt=TEST_SYSTEM_PROMPT,
        )
        if not raw_text or not raw_text.strip():
            raise RuntimeError("Failed to generate test content")

        questions_text, answers_text = split_test_sections(raw_text)
        questions = parse_test_content(raw_text)
        unanswered = sum(1 for question in questions if question.answer is None)
        self._report(f"Parsed {len(questions)} questions ({unanswered} need manual answer review)")

        return GeneratedTest(
            raw_text=raw_text,
            questions_text=questions_text,
            answers_text=answers_text,
            questions=questions,
            subject=subject,
        )


def save_test_files(test: GeneratedTest, output_dir: Path) -> Path:
    """
    Write test.txt (the model's text) and questions.yml (parsed questions).

    Args:
        test: Generated test
        output_dir: Directory for the files; created when missing

    Returns:
        The output directory
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    (output_dir / 'test.txt').write_text(test.raw_text, encoding='utf-8')

    data = {
        'subject': test.subject,
        'source': test.source_id,
        'authoritative_timestamps': test.is_authoritative,
        'generated': datetime.now().strftime('%Y-%m-%d'),
        'questions': [question.to_dict() for question in test.questions],
    }
    with open(output_dir / 'questions.yml', 'w', encoding='utf-8') as f:
        yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)

    return output_dir
