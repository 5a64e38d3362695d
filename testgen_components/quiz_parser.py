"""
Parse the semi-structured text a model returns for a test into typed,
gradable questions.

The expected layout is a numbered question list ("1) ..."), with "A)".."D)"
option lines under multiple-choice questions, then a divider ("---" or an
"Answers:" header) followed by an answer key ("1) B", "2) True", ...).

Parsing is tolerant: lines that fit nothing are skipped, and questions whose
answers cannot be matched keep answer=None so a person can review them.
"""

import re
from typing import List, Optional, Tuple

from .models import MULTIPLE_CHOICE, OPEN_ENDED, TRUE_FALSE, Question

QUESTION_LINE_RE = re.compile(r'^(\d+)\)\s*(.+)$')
OPTION_LINE_RE = re.compile(r'^([A-D])\)\s*(.*)$')
LETTER_ANSWER_RE = re.compile(r'^(\d+)\)\s*([A-D])(?:\)|\.)?(?=\s|$)')
BOOLEAN_ANSWER_RE = re.compile(r'^(\d+)\)\s*(true|false)\b', re.IGNORECASE)
ANSWERS_HEADER_RE = re.compile(r'^answers?\s*:\s*$', re.IGNORECASE)
REFERENCE_RE = re.compile(r'\s*\[Ref:\s*(\d{1,2}:\d{2}(?::\d{2})?)\]\s*', re.IGNORECASE)

SECTION_DIVIDER = '---'
TRUE_FALSE_MARKERS = ('true or false', '(true/false)', 'true/false')

# Legal type changes while a question is being assembled.
PROMOTIONS = {
    (OPEN_ENDED, MULTIPLE_CHOICE),
    (TRUE_FALSE, MULTIPLE_CHOICE),
    (OPEN_ENDED, TRUE_FALSE),
}

QUESTIONS_STATE = 'questions'
ANSWERS_STATE = 'answers'


def split_test_sections(text: str) -> Tuple[str, str]:
    """
    Split raw test text on the first "---" divider.

    Returns:
        Tuple of (questions_text, answers_text); answers_text is empty when
        there is no divider.
    """
    parts = (text or '').split(SECTION_DIVIDER)
    questions = parts[0].strip()
    answers = parts[1].strip() if len(parts) > 1 else ''
    return questions, answers


class QuestionBuilder:
    """Accumulates one question while its lines are being read."""

    def __init__(self, text: str):
        self.text, self.reference = self._split_reference(text)
        self.type = OPEN_ENDED
        self.options: List[str] = []

        lowered = self.text.lower()
        if any(marker in lowered for marker in TRUE_FALSE_MARKERS):
            self.promote(TRUE_FALSE)

    @staticmethod
    def _split_reference(text: str) -> Tuple[str, Optional[str]]:
        match = REFERENCE_RE.search(text)
        if not match:
            return text.strip(), None
        cleaned = REFERENCE_RE.sub(' ', text).strip()
        return cleaned, match.group(1)

    def promote(self, question_type: str) -> None:
        """
        Change the question's type.

        Raises:
            ValueError: If the change is not one of the allowed promotions.
        """
        if question_type == self.type:
            return
        if (self.type, question_type) not in PROMOTIONS:
            raise ValueError(f"Cannot change question type from {self.type} to {question_type}")
        self.type = question_type

    def add_option(self, option: str) -> None:
        if self.type != MULTIPLE_CHOICE:
            self.promote(MULTIPLE_CHOICE)
        self.options.append(option)

    def build(self) -> Question:
        return Question(
            type=self.type,
            text=self.text,
            options=list(self.options) if self.type == MULTIPLE_CHOICE and self.options else None,
            reference=self.reference,
        )


class QuizTextParser:
    """
    Two-state line scanner over generated test text.

    Starts in the questions state and moves to the answers state on the
    divider line; it never moves back.
    """

    def parse(self, text: str) -> List[Question]:
        questions: List[Question] = []
        current: Optional[QuestionBuilder] = None
        state = QUESTIONS_STATE

        for raw_line in (text or '').splitlines():
            line = raw_line.strip()
            if not line:
                continue

            if line == SECTION_DIVIDER or ANSWERS_HEADER_RE.match(line):
                if current is not None:
                    questions.append(current.build())
                    current = None
                state = ANSWERS_STATE
                continue

            if state == QUESTIONS_STATE:
                current = self._read_question_line(line, current, questions)
            else:
                self._read_answer_line(line, questions)

        if current is not None:
            questions.append(current.build())

        return questions

    @staticmethod
    def _read_question_line(line: str, current: Optional[QuestionBuilder],
                            questions: List[Question]) -> Optional[QuestionBuilder]:
        question_match = QUESTION_LINE_RE.match(line)
        if question_match:
            if current is not None:
                questions.append(current.build())
            return QuestionBuilder(question_match.group(2))

        option_match = OPTION_LINE_RE.match(line)
        if option_match and current is not None:
            current.add_option(option_match.group(2).strip())

        return current

    @staticmethod
    def _read_answer_line(line: str, questions: List[Question]) -> None:
        letter_match = LETTER_ANSWER_RE.match(line)
        if letter_match:
            question = _question_at(questions, letter_match.group(1))
            if question is not None and question.type == MULTIPLE_CHOICE:
                question.answer = letter_match.group(2).lower()
                return

        boolean_match = BOOLEAN_ANSWER_RE.match(line)
        if boolean_match:
            question = _question_at(questions, boolean_match.group(1))
            if question is not None:
                question.answer = boolean_match.group(2).lower() == 'true'


def _question_at(questions: List[Question], ordinal: str) -> Optional[Question]:
    index = int(ordinal) - 1
    if 0 <= index < len(questions):
        return questions[index]
    return None


def parse_test_content(text: str) -> List[Question]:
    """Parse generated test text into questions."""
    return QuizTextParser().parse(text)
