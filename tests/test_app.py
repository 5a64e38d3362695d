import os
import unittest
from unittest.mock import patch, AsyncMock, MagicMock

import app as app_module
from testgen_components.acquisition import AcquisitionStrategy
from testgen_components.errors import AcquisitionStrategyError, ContentUnavailableError
from testgen_components.models import GeneratedTest, Question, MULTIPLE_CHOICE
from testgen_components.quiz_generator import MIN_CONTENT_LENGTH

VIDEO_ID = 'dQw4w9WgXcQ'


class StubStrategy(AcquisitionStrategy):
    def __init__(self, source_id, text=None, error=None):
        self.source_id = source_id
        self.text = text
        self.error = error

    async def attempt(self, identifier, timeout):
        if self.error is not None:
            raise self.error
        return self._outcome(self.text)


def generated_test():
    return GeneratedTest(
        raw_text='Questions:\n1) Pick one\nA) x\nB) y\n---\nAnswers:\n1) A',
        questions_text='Questions:\n1) Pick one\nA) x\nB) y',
        answers_text='Answers:\n1) A',
        questions=[Question(MULTIPLE_CHOICE, 'Pick one', options=['x', 'y'], answer='a')],
        subject='Choices',
        source_id='direct-fetch',
    )


class TestApp(unittest.TestCase):
    def setUp(self):
        app_module.app.config['TESTING'] = True
        self.client = app_module.app.test_client()

    def test_health(self):
        response = self.client.get('/api/health')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'status': 'ok'})

    def test_parse(self):
        response = self.client.post('/api/test-generator/parse', json={
            'test': 'Questions:\n1) The sky is blue. (True/False)\n---\nAnswers:\n1) True',
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'questions': [
            {'type': 'true-false', 'text': 'The sky is blue. (True/False)', 'answer': True},
        ]})

    def test_generate_requires_url(self):
        response = self.client.post('/api/test-generator/generate', json={})
        self.assertEqual(response.status_code, 400)

    @patch('app.QuizGenerator')
    def test_generate(self, mock_generator):
        mock_generator.return_value.generate = AsyncMock(return_value=generated_test())

        response = self.client.post('/api/test-generator/generate', json={
            'contentUrl': 'https://blog.example.com/tides',
            'professorName': 'Ana',
            'numberOfQuestions': 1,
        })

        self.assertEqual(response.status_code, 200)
        data = response.get_json()
        self.assertEqual(data['subject'], 'Choices')
        self.assertEqual(data['sourceId'], 'direct-fetch')
        self.assertEqual(data['parsedQuestions'][0]['answer'], 'a')
        request = mock_generator.return_value.generate.await_args.args[0]
        self.assertEqual(request.professor_name, 'Ana')
        self.assertEqual(request.number_of_questions, 1)

    @patch('app.QuizGenerator')
    def test_generate_error_mapping(self, mock_generator):
        cases = [
            (ContentUnavailableError('nothing there'), 422),
            (ValueError('Not a valid content URL: x'), 400),
            (RuntimeError('Failed after 4 attempts: overloaded'), 500),
        ]
        for error, status in cases:
            with self.subTest(status=status):
                mock_generator.return_value.generate = AsyncMock(side_effect=error)
                response = self.client.post('/api/test-generator/generate', json={'contentUrl': 'https://x.test/a'})
                self.assertEqual(response.status_code, status)
                self.assertIn(str(error), response.get_json()['error'])

    def test_generate_from_short_transcript(self):
        response = self.client.post('/api/test-generator/generate-from-transcript', json={'transcript': 'hi'})
        self.assertEqual(response.status_code, 400)

    @patch('app.QuizGenerator')
    def test_generate_from_transcript(self, mock_generator):
        mock_generator.return_value.generate_from_transcript = AsyncMock(return_value=generated_test())
        transcript = '[00:00] ' + 'words ' * 40

        response = self.client.post('/api/test-generator/generate-from-transcript', json={
            'transcript': transcript, 'contentUrl': f'https://youtu.be/{VIDEO_ID}',
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(mock_generator.return_value.generate_from_transcript.await_args.args[0], transcript)

    @patch('app.QuizGenerator')
    def test_transcript_at_length_threshold_is_rejected_up_front(self, mock_generator):
        response = self.client.post('/api/test-generator/generate-from-transcript',
                                    json={'transcript': 'x' * MIN_CONTENT_LENGTH})
        self.assertEqual(response.status_code, 400)
        mock_generator.assert_not_called()

    @patch('app.QuizGenerator')
    def test_conversation(self, mock_generator):
        mock_generator.return_value.generate_conversation_topics = AsyncMock(return_value='1) Do you swim?')

        response = self.client.post('/api/test-generator/conversation',
                                    json={'subject': 'Ocean Currents', 'studentLevel': 'Beginner'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'conversationQuestions': '1) Do you swim?'})
        mock_generator.return_value.generate_conversation_topics.assert_awaited_once_with('Ocean Currents', 'Beginner')

    @patch('app.QuizGenerator')
    def test_teacher_tips(self, mock_generator):
        mock_generator.return_value.generate_teaching_tips = AsyncMock(return_value='Vocabulary:\n- tide')

        response = self.client.post('/api/test-generator/teacher-tips', json={'subject': 'Ocean Currents'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'teacherTips': 'Vocabulary:\n- tide'})
        mock_generator.return_value.generate_teaching_tips.assert_awaited_once_with('Ocean Currents', 'Medium')

    @patch('app.QuizGenerator')
    def test_class_prep_errors(self, mock_generator):
        for path in ('/api/test-generator/conversation', '/api/test-generator/teacher-tips'):
            with self.subTest(path=path):
                self.assertEqual(self.client.post(path, json={}).status_code, 400)

        mock_generator.return_value.generate_teaching_tips = AsyncMock(
            side_effect=RuntimeError('Failed after 4 attempts: overloaded'))
        response = self.client.post('/api/test-generator/teacher-tips', json={'subject': 'Tides'})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.get_json()['error'],
                         'Failed to generate teacher tips: Failed after 4 attempts: overloaded')


@patch.dict(os.environ, {'TRANSCRIPT_API_KEY': 'service-key'})
class TestTranscriptEndpoint(unittest.TestCase):
    def setUp(self):
        self.client = app_module.app.test_client()

    def test_requires_api_key(self):
        response = self.client.post('/api/transcript', json={'videoId': VIDEO_ID}, headers={'x-api-key': 'wrong'})
        self.assertEqual(response.status_code, 401)

    def test_requires_valid_video_id(self):
        response = self.client.post('/api/transcript', json={'videoId': 'nope'},
                                    headers={'x-api-key': 'service-key'})
        self.assertEqual(response.status_code, 400)

    @patch('app.build_video_strategies')
    def test_returns_first_successful_transcript(self, mock_build):
        mock_build.return_value = [
            StubStrategy('captions-api', error=AcquisitionStrategyError('HTTP error: 500')),
            StubStrategy('direct-scrape', text='[00:00] hello'),
        ]

        response = self.client.post('/api/transcript', json={'videoId': VIDEO_ID},
                                    headers={'x-api-key': 'service-key'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['transcript'], '[00:00] hello')
        self.assertEqual(response.get_json()['sourceId'], 'direct-scrape')
        mock_build.assert_called_once_with(include_managed=False)

    @patch('app.build_video_strategies')
    def test_reports_every_failure(self, mock_build):
        mock_build.return_value = [
            StubStrategy('captions-api', error=AcquisitionStrategyError('HTTP error: 500')),
            StubStrategy('direct-scrape', error=AcquisitionStrategyError('no captions')),
        ]

        response = self.client.post('/api/transcript', json={'videoId': VIDEO_ID},
                                    headers={'x-api-key': 'service-key'})

        self.assertEqual(response.status_code, 502)
        self.assertEqual([a['sourceId'] for a in response.get_json()['attempts']], ['captions-api', 'direct-scrape'])


class TestProxyEndpoint(unittest.TestCase):
    def setUp(self):
        self.client = app_module.app.test_client()

    def test_requires_url(self):
        response = self.client.post('/api/proxy', json={})
        self.assertEqual(response.status_code, 400)

    @patch.object(app_module.httpx, 'Client')
    def test_returns_upstream_response(self, mock_client_class):
        upstream = MagicMock(status_code=200, text='<html>hello</html>', headers={'content-type': 'text/html'})
        mock_client_class.return_value.__enter__.return_value.get.return_value = upstream

        response = self.client.post('/api/proxy', json={'url': 'https://blog.example.com/tides'})

        data = response.get_json()
        self.assertTrue(data['success'])
        self.assertEqual(data['status'], 200)
        self.assertEqual(data['body'], '<html>hello</html>')
        self.assertEqual(data['bodyLength'], len('<html>hello</html>'))


if __name__ == '__main__':
    unittest.main()
