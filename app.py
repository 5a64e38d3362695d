from flask import Flask, request, jsonify
from flask_cors import CORS
import asyncio
import logging
import os
import httpx
from dotenv import load_dotenv

from testgen_components.acquisition import FallbackOrchestrator
from testgen_components.content_service import build_video_strategies
from testgen_components.document_sources import BROWSER_HEADERS
from testgen_components.errors import AllStrategiesFailedError, ContentUnavailableError
from testgen_components.models import QuizRequest
from testgen_components.quiz_generator import MIN_CONTENT_LENGTH, QuizGenerator
from testgen_components.quiz_parser import parse_test_content
from testgen_components.utils import VIDEO_ID_PATTERN

# Load environment variables
load_dotenv()

logging.basicConfig(
    level=logging.DEBUG if os.getenv('DEBUG_LOGS', '').lower() in ('1', 'true', 'yes') else logging.INFO,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

PROXY_TIMEOUT = 20.0
PREVIEW_LENGTH = 1000


@app.route('/api/health', methods=['GET'])
def health():
    return jsonify({"status": "ok"})


@app.route('/api/proxy', methods=['POST'])
def proxy():
    """Fetch a URL on the caller's behalf and return the raw response."""
    data = request.get_json(silent=True) or {}
    url = data.get('url')
    if not url:
        return jsonify({'error': 'URL is required'}), 400

    headers = dict(BROWSER_HEADERS)
    headers.update(data.get('headers') or {})
    logger.info("Proxy fetching %s", url)

    try:
        with httpx.Client(timeout=PROXY_TIMEOUT, follow_redirects=True) as client:
            response = client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("Proxy fetch failed for %s: %s", url, e)
        return jsonify({'success': False, 'error': f'Error fetching content: {e}'}), 500

    body = response.text
    logger.debug("Proxy got %d with %d chars", response.status_code, len(body))
    return jsonify({
        'success': True,
        'url': url,
        'status': response.status_code,
        'headers': dict(response.headers),
        'bodyLength': len(body),
        'bodyPreview': body[:PREVIEW_LENGTH],
        'body': body,
    })


@app.route('/api/transcript', methods=['POST'])
def transcript():
    """Managed transcript service: video id in, normalized transcript out."""
    expected_key = os.getenv('TRANSCRIPT_API_KEY')
    if not expected_key or request.headers.get('x-api-key') != expected_key:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    data = request.get_json(silent=True) or {}
    video_id = (data.get('videoId') or '').strip()
    if not VIDEO_ID_PATTERN.match(video_id):
        return jsonify({'success': False, 'error': 'A valid videoId is required'}), 400

    orchestrator = FallbackOrchestrator(build_video_strategies(include_managed=False))
    try:
        outcome = asyncio.run(orchestrator.acquire(video_id))
    except AllStrategiesFailedError as e:
        logger.error("Transcript service failed for %s: %s", video_id, e)
        return jsonify({
            'success': False,
            'error': str(e),
            'attempts': [{'sourceId': err.source_id, 'message': err.message} for err in e.errors],
        }), 502

    return jsonify({
        'success': True,
        'transcript': outcome.text,
        'sourceId': outcome.source_id,
        'isAuthoritative': outcome.is_authoritative,
    })


def _generation_error(error: Exception, what: str = 'test'):
    if isinstance(error, ContentUnavailableError):
        return jsonify({'error': str(error)}), 422
    if isinstance(error, ValueError):
        return jsonify({'error': str(error)}), 400
    logger.error("Error generating %s: %s", what, error)
    return jsonify({'error': f'Failed to generate {what}: {error}'}), 500


@app.route('/api/test-generator/generate', methods=['POST'])
def generate_test():
    data = request.get_json(silent=True) or {}
    if not data.get('contentUrl'):
        return jsonify({'error': 'Content URL is required'}), 400

    try:
        quiz_request = QuizRequest.from_dict(data)
        test = asyncio.run(QuizGenerator().generate(quiz_request))
    except (ValueError, ContentUnavailableError, AllStrategiesFailedError, RuntimeError) as e:
        return _generation_error(e)

    return jsonify(test.to_dict())


@app.route('/api/test-generator/generate-from-transcript', methods=['POST'])
def generate_from_transcript():
    data = request.get_json(silent=True) or {}
    transcript_text = data.get('transcript') or ''
    if len(transcript_text.strip()) <= MIN_CONTENT_LENGTH:
        return jsonify({'error': 'Transcript is too short or empty'}), 400

    try:
        quiz_request = QuizRequest.from_dict(data)
        test = asyncio.run(QuizGenerator().generate_from_transcript(transcript_text, quiz_request))
    except (ValueError, ContentUnavailableError, RuntimeError) as e:
        return _generation_error(e)

    return jsonify(test.to_dict())


@app.route('/api/test-generator/conversation', methods=['POST'])
def generate_conversation():
    data = request.get_json(silent=True) or {}
    subject = (data.get('subject') or '').strip()
    if not subject:
        return jsonify({'error': 'Subject is required'}), 400

    try:
        questions = asyncio.run(
            QuizGenerator().generate_conversation_topics(subject, data.get('studentLevel') or 'Medium')
        )
    except (ValueError, RuntimeError) as e:
        return _generation_error(e, 'conversation questions')

    return jsonify({'conversationQuestions': questions})


@app.route('/api/test-generator/teacher-tips', methods=['POST'])
def generate_teacher_tips():
    data = request.get_json(silent=True) or {}
    subject = (data.get('subject') or '').strip()
    if not subject:
        return jsonify({'error': 'Subject is required'}), 400

    try:
        tips = asyncio.run(QuizGenerator().generate_teaching_tips(subject, data.get('studentLevel') or 'Medium'))
    except (ValueError, RuntimeError) as e:
        return _generation_error(e, 'teacher tips')

    return jsonify({'teacherTips': tips})


@app.route('/api/test-generator/parse', methods=['POST'])
def parse_test():
    data = request.get_json(silent=True) or {}
    questions = parse_test_content(data.get('test') or '')
    return jsonify({'questions': [question.to_dict() for question in questions]})


if __name__ == '__main__':
    app.run(debug=True, port=5000)
