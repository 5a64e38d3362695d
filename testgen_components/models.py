from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

MULTIPLE_CHOICE = "multiple-choice"
OPEN_ENDED = "open-ended"
TRUE_FALSE = "true-false"

QUESTION_TYPES = (MULTIPLE_CHOICE, OPEN_ENDED, TRUE_FALSE)


@dataclass
class TranscriptSegment:
    """A timed caption line."""
    start_seconds: float
    duration_seconds: float
    text: str


@dataclass
class AcquisitionOutcome:
    """
    Text produced by the first strategy that succeeded.

    is_authoritative is False when the text was reconstructed (speech-to-text,
    model extraction) rather than retrieved, so its timestamps should not be
    trusted.
    """
    source_id: str
    text: str
    is_authoritative: bool = True
    title: Optional[str] = None


@dataclass
class AcquisitionError:
    """Why one strategy failed."""
    source_id: str
    message: str


@dataclass
class Question:
    """A parsed, gradable question."""
    type: str
    text: str
    options: Optional[List[str]] = None
    answer: Optional[Union[str, bool]] = None
    reference: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the question as a plain dict, leaving out absent fields."""
        data: Dict[str, Any] = {'type': self.type, 'text': self.text}
        if self.options:
            data['options'] = list(self.options)
        if self.answer is not None:
            data['answer'] = self.answer
        if self.reference:
            data['reference'] = self.reference
        return data


@dataclass
class QuizRequest:
    """Parameters of one test-generation request."""
    content_url: str
    professor_name: str = ''
    student_name: str = ''
    student_level: str = 'Medium'
    question_types: List[str] = field(default_factory=lambda: [MULTIPLE_CHOICE, OPEN_ENDED])
    number_of_questions: int = 5
    additional_notes: str = ''

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'QuizRequest':
        """Build a request from the camelCase JSON the web form posts."""
        return cls(
            content_url=data.get('contentUrl', ''),
            professor_name=data.get('professorName', ''),
            student_name=data.get('studentName', ''),
            student_level=data.get('studentLevel') or 'Medium',
            question_types=list(data.get('questionTypes') or [MULTIPLE_CHOICE, OPEN_ENDED]),
            number_of_questions=int(data.get('numberOfQuestions') or 5),
            additional_notes=data.get('additionalNotes', ''),
        )


@dataclass
class GeneratedTest:
    """Model output kept alongside the questions parsed out of it."""
    raw_text: str
    questions_text: str
    answers_text: str
    questions: List[Question]
    subject: str
    source_id: Optional[str] = None
    is_authoritative: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'test': self.raw_text,
            'questions': self.questions_text,
            'answers': self.answers_text,
            'subject': self.subject,
            'sourceId': self.source_id,
            'isAuthoritative': self.is_authoritative,
            'parsedQuestions': [q.to_dict() for q in self.questions],
        }
