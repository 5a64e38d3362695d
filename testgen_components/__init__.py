"""
Test Generator Components Package

This package turns a content URL (a video or an article) into clean text
through an ordered chain of acquisition strategies, generates a test from it
with Claude, and parses the result into structured questions.
"""

from .acquisition import AcquisitionStrategy, FallbackOrchestrator
from .content_service import ContentService, build_document_strategies, build_video_strategies
from .errors import (
    AcquisitionStrategyError,
    AllStrategiesFailedError,
    CaptionsDisabledError,
    ContentExtractionError,
    ContentUnavailableError,
)
from .models import AcquisitionError, AcquisitionOutcome, GeneratedTest, Question, QuizRequest, TranscriptSegment
from .quiz_generator import QuizGenerator, save_test_files
from .quiz_parser import QuestionBuilder, QuizTextParser, parse_test_content
from .subject import SubjectExtractor
from .utils import detect_content_type, extract_video_id

__all__ = [
    'AcquisitionStrategy',
    'FallbackOrchestrator',
    'ContentService',
    'build_document_strategies',
    'build_video_strategies',
    'AcquisitionStrategyError',
    'AllStrategiesFailedError',
    'CaptionsDisabledError',
    'ContentExtractionError',
    'ContentUnavailableError',
    'AcquisitionError',
    'AcquisitionOutcome',
    'GeneratedTest',
    'Question',
    'QuizRequest',
    'TranscriptSegment',
    'QuizGenerator',
    'save_test_files',
    'QuestionBuilder',
    'QuizTextParser',
    'parse_test_content',
    'SubjectExtractor',
    'detect_content_type',
    'extract_video_id',
]
