import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import yaml

from testgen_components.errors import ContentUnavailableError
from testgen_components.models import AcquisitionOutcome, QuizRequest, TRUE_FALSE
from testgen_components.quiz_generator import QuizGenerator, format_test_date, save_test_files
from testgen_components.subject import SubjectExtractor

VIDEO_URL = 'https://www.youtube.com/watch?v=dQw4w9WgXcQ'
TRANSCRIPT = ' '.join(f'[00:{i * 5:02d}] Ocean currents move heat around the planet.' for i in range(6))

MODEL_OUTPUT = """Professor: Ana Souza
Student: Bruno
Test about Ocean Currents
Date: October 18, 2026

Questions:

1) What do ocean currents move around the planet? [Ref: 00:05]
A) Sand
B) Heat
C) Ships
D) Light

2) Currents only exist near the poles. (True/False) [Ref: 00:10]

3) Name one thing currents carry.

---

Answers:

1) B
2) False
3) Heat
"""


class FakeContentService:
    def __init__(self, outcome):
        self.outcome = outcome
        self.urls = []

    async def acquire(self, url):
        self.urls.append(url)
        return self.outcome


class TestQuizGenerator(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.client.generate_text = AsyncMock(return_value=MODEL_OUTPUT)

    def _generator(self, outcome):
        return QuizGenerator(
            client=self.client,
            content_service=FakeContentService(outcome),
            subject_extractor=SubjectExtractor(use_model=False),
        )

    async def test_generate_from_video(self):
        outcome = AcquisitionOutcome('captions-api', TRANSCRIPT, title='Ocean Currents - YouTube')
        request = QuizRequest(content_url=VIDEO_URL, professor_name='Ana Souza', number_of_questions=3)

        test = await self._generator(outcome).generate(request)

        self.assertEqual(test.subject, 'Ocean Currents')
        self.assertEqual(test.source_id, 'captions-api')
        self.assertTrue(test.is_authoritative)
        self.assertEqual(len(test.questions), 3)
        self.assertEqual(test.questions[0].answer, 'b')
        self.assertEqual(test.questions[1].type, TRUE_FALSE)
        self.assertIsNone(test.questions[2].answer)
        self.assertIn('Answers:', test.answers_text)

        prompt = self.client.generate_text.await_args.args[0]
        self.assertIn('Video transcript: [00:00]', prompt)
        self.assertIn('[Ref: MM:SS]', prompt)
        self.assertIn('Professor: Ana Souza', prompt)
        self.assertIn('EXACTLY', prompt)

    async def test_reconstructed_transcript_is_flagged(self):
        outcome = AcquisitionOutcome('speech-to-text', TRANSCRIPT, is_authoritative=False)
        test = await self._generator(outcome).generate(QuizRequest(content_url=VIDEO_URL))

        self.assertFalse(test.is_authoritative)
        self.assertIn('approximate', self.client.generate_text.await_args.args[0])

    async def test_article_has_no_timestamp_instructions(self):
        outcome = AcquisitionOutcome('direct-fetch', 'Tides are caused by the moon. ' * 10, title='Tides')
        await self._generator(outcome).generate(QuizRequest(content_url='https://blog.example.com/tides'))

        prompt = self.client.generate_text.await_args.args[0]
        self.assertIn('Article content: Tides', prompt)
        self.assertNotIn('[Ref: MM:SS]', prompt)

    async def test_short_content_is_rejected(self):
        outcome = AcquisitionOutcome('direct-fetch', 'Too short.')
        with self.assertRaises(ContentUnavailableError):
            await self._generator(outcome).generate(QuizRequest(content_url='https://blog.example.com/x'))
        self.client.generate_text.assert_not_awaited()

    async def test_missing_url(self):
        with self.assertRaises(ValueError):
            await self._generator(None).generate(QuizRequest(content_url=''))

    async def test_empty_model_output(self):
        self.client.generate_text = AsyncMock(return_value='  ')
        outcome = AcquisitionOutcome('captions-api', TRANSCRIPT)
        with self.assertRaises(RuntimeError):
            await self._generator(outcome).generate(QuizRequest(content_url=VIDEO_URL))

    async def test_generate_from_transcript(self):
        generator = self._generator(None)
        test = await generator.generate_from_transcript(TRANSCRIPT, QuizRequest(content_url=VIDEO_URL))

        self.assertEqual(len(test.questions), 3)
        self.assertTrue(test.subject.startswith('Ocean currents move heat'))
        self.assertEqual(generator.content_service.urls, [])

    async def test_generate_from_short_transcript(self):
        with self.assertRaises(ContentUnavailableError):
            await self._generator(None).generate_from_transcript('[00:00] hi', QuizRequest(content_url=VIDEO_URL))


class TestClassPreparation(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.client = MagicMock()
        self.generator = QuizGenerator(
            client=self.client,
            content_service=FakeContentService(None),
            subject_extractor=SubjectExtractor(use_model=False),
        )

    async def test_conversation_topics(self):
        self.client.generate_text = AsyncMock(return_value='  1) Do you like the sea?\n2) Have you seen a tide?  ')

        text = await self.generator.generate_conversation_topics('Ocean Currents', 'Advanced')

        self.assertEqual(text, '1) Do you like the sea?\n2) Have you seen a tide?')
        call = self.client.generate_text.await_args
        self.assertIn('"Ocean Currents"', call.args[0])
        self.assertIn('Advanced level', call.args[0])
        self.assertEqual(call.kwargs['max_tokens'], 500)
        self.assertIn('conversation starters', call.kwargs['system_prompt'])

    async def test_teaching_tips(self):
        self.client.generate_text = AsyncMock(return_value='Vocabulary:\n- current: a flow of water')

        text = await self.generator.generate_teaching_tips('Ocean Currents')

        self.assertTrue(text.startswith('Vocabulary:'))
        call = self.client.generate_text.await_args
        self.assertIn('Medium level', call.args[0])
        self.assertEqual(call.kwargs['max_tokens'], 1000)

    async def test_subject_is_required(self):
        self.client.generate_text = AsyncMock(return_value='unused')
        with self.assertRaises(ValueError):
            await self.generator.generate_conversation_topics('  ')
        with self.assertRaises(ValueError):
            await self.generator.generate_teaching_tips('')
        self.client.generate_text.assert_not_awaited()

    async def test_empty_reply_is_an_error(self):
        self.client.generate_text = AsyncMock(return_value='')
        with self.assertRaises(RuntimeError):
            await self.generator.generate_teaching_tips('Ocean Currents')


class TestSaveTestFiles(unittest.IsolatedAsyncioTestCase):
    async def test_writes_text_and_questions(self):
        client = MagicMock()
        client.generate_text = AsyncMock(return_value=MODEL_OUTPUT)
        generator = QuizGenerator(
            client=client,
            content_service=FakeContentService(AcquisitionOutcome('captions-api', TRANSCRIPT)),
            subject_extractor=SubjectExtractor(use_model=False),
        )
        test = await generator.generate(QuizRequest(content_url=VIDEO_URL))

        with tempfile.TemporaryDirectory() as temp_dir:
            output_dir = save_test_files(test, Path(temp_dir) / 'run')

            self.assertEqual((output_dir / 'test.txt').read_text(encoding='utf-8'), MODEL_OUTPUT)
            with open(output_dir / 'questions.yml', encoding='utf-8') as f:
                data = yaml.safe_load(f)

        self.assertEqual(data['source'], 'captions-api')
        self.assertTrue(data['authoritative_timestamps'])
        self.assertEqual(len(data['questions']), 3)
        self.assertEqual(data['questions'][0]['options'], ['Sand', 'Heat', 'Ships', 'Light'])
        self.assertIs(data['questions'][1]['answer'], False)


class TestFormatTestDate(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_test_date(datetime(2026, 10, 8)), 'October 8, 2026')


if __name__ == '__main__':
    unittest.main()
