"""
Strategies that turn a video id into a normalized transcript.

Chain order (see content_service.build_video_strategies):

1. managed-service      our own transcript microservice
2. captions-api         third-party captions API
3. direct-scrape        the public watch page and its timedtext endpoints
4. transcript-library   youtube_transcript_api in a worker thread
5. speech-to-text       download the audio and run Whisper over it
"""

import asyncio
import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx
from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled, YouTubeTranscriptApi

from .acquisition import AcquisitionStrategy, HttpStrategy
from .downloader import YouTubeDownloader
from .errors import AcquisitionStrategyError, CaptionsDisabledError, ContentUnavailableError
from .models import AcquisitionOutcome, TranscriptSegment
from .normalizer import (
    extract_page_title,
    normalize_plain_lines,
    normalize_segments,
    parse_json3_events,
    parse_xml_captions,
)
from .transcription import TranscriptionService
from .utils import watch_url

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36'
)

WATCH_PAGE_HEADERS = {
    'User-Agent': BROWSER_USER_AGENT,
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9,pt;q=0.8',
    'Cache-Control': 'no-cache',
    'Pragma': 'no-cache',
    'Cookie': 'CONSENT=YES+; GPS=1; VISITOR_INFO1_LIVE=somevalue',
}

TIMEDTEXT_URL = 'https://www.youtube.com/api/timedtext'
DEFAULT_CAPTIONS_API_URL = 'https://api.supadata.ai/v1'
CAPTION_LANGUAGE_SWEEP = ('en', 'en-US', 'en-GB', 'pt', 'pt-BR', 'es', 'fr', '')


# ---------------------------------------------------------------------------
# managed-service
# ---------------------------------------------------------------------------

class ManagedServiceStrategy(HttpStrategy):
    """POSTs the video id to the transcript microservice."""

    source_id = 'managed-service'
    timeout = 30.0

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None,
                 http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        super().__init__(http_client, timeout)
        self.api_url = api_url or os.getenv('TRANSCRIPT_API_URL')
        self.api_key = api_key or os.getenv('TRANSCRIPT_API_KEY', '')

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        if not self.api_url:
            raise AcquisitionStrategyError("TRANSCRIPT_API_URL is not configured")

        endpoint = f"{self.api_url.rstrip('/')}/api/transcript"
        async with self._client(timeout) as client:
            response = await client.post(
                endpoint,
                json={'videoId': identifier},
                headers={'x-api-key': self.api_key},
                timeout=timeout,
            )

        if not response.is_success:
            raise AcquisitionStrategyError(
                f"Transcript service error: {response.status_code} {response.text[:200]}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AcquisitionStrategyError("Transcript service returned malformed JSON") from e

        if not isinstance(data, dict) or not data.get('success') or not data.get('transcript'):
            raise AcquisitionStrategyError("No transcript returned from transcript service")

        return self._outcome(data['transcript'])


# ---------------------------------------------------------------------------
# captions-api
# ---------------------------------------------------------------------------

@dataclass
class PlainText:
    content: str


@dataclass
class SegmentArray:
    segments: List[TranscriptSegment]


@dataclass
class Unrecognized:
    reason: str


CaptionsPayload = Union[PlainText, SegmentArray, Unrecognized]


def decode_captions_payload(data: Any) -> CaptionsPayload:
    """
    Classify a captions API response body.

    The API answers either {"content": "line\\nline"} or
    {"content": [{"text", "offset", "duration"}, ...]} with times in ms.
    """
    if not isinstance(data, dict):
        return Unrecognized('response is not a JSON object')

    content = data.get('content')
    if isinstance(content, str):
        if content.strip():
            return PlainText(content)
        return Unrecognized('plain-text content is empty')

    if isinstance(content, list):
        segments = []
        for item in content:
            if not isinstance(item, dict) or not str(item.get('text') or '').strip():
                continue
            try:
                start = float(item.get('offset') or 0) / 1000
                duration = float(item.get('duration') or 0) / 1000
            except (TypeError, ValueError):
                continue
            segments.append(TranscriptSegment(start_seconds=start, duration_seconds=duration, text=str(item['text'])))
        if segments:
            return SegmentArray(segments)
        return Unrecognized('segment array is empty')

    return Unrecognized('no content field in response')


def render_captions_payload(payload: CaptionsPayload) -> str:
    if isinstance(payload, PlainText):
        return normalize_plain_lines(payload.content)
    if isinstance(payload, SegmentArray):
        return normalize_segments(payload.segments)
    raise AcquisitionStrategyError(f"No transcript content in captions API response ({payload.reason})")


class CaptionsApiStrategy(HttpStrategy):
    """Third-party captions API, plain text first and structured second."""

    source_id = 'captions-api'
    timeout = 20.0

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None,
                 http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None,
                 request_timeout: float = 8.0, language: str = 'en'):
        super().__init__(http_client, timeout)
        self.api_key = api_key or os.getenv('SUPADATA_API_KEY')
        self.api_url = (api_url or os.getenv('SUPADATA_API_URL') or DEFAULT_CAPTIONS_API_URL).rstrip('/')
        self.request_timeout = request_timeout
        self.language = language

    async def _get(self, client: httpx.AsyncClient, params: Dict[str, str], timeout: float) -> httpx.Response:
        try:
            return await client.get(
                f"{self.api_url}/youtube/transcript",
                params=params,
                headers={'x-api-key': self.api_key},
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            raise AcquisitionStrategyError("Captions API request timed out") from e

    @staticmethod
    def _decode(response: httpx.Response) -> CaptionsPayload:
        try:
            return decode_captions_payload(response.json())
        except ValueError:
            return Unrecognized('response is not valid JSON')

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        if not self.api_key:
            raise AcquisitionStrategyError("SUPADATA_API_KEY is not configured")

        video_url = watch_url(identifier)
        request_timeout = min(self.request_timeout, timeout)

        async with self._client(request_timeout) as client:
            response = await self._get(client, {'url': video_url, 'text': 'true'}, request_timeout)

            if not response.is_success:
                error_text = response.text
                if response.status_code != 404 and 'language' not in error_text.lower():
                    raise AcquisitionStrategyError(
                        f"Captions API error: {response.status_code} {error_text[:200]}"
                    )

                logger.info("Captions API rejected default language, retrying with lang=%s", self.language)
                response = await self._get(
                    client, {'url': video_url, 'text': 'true', 'lang': self.language}, request_timeout
                )
                if not response.is_success:
                    raise AcquisitionStrategyError(
                        f"Captions API error with explicit language: {response.status_code}"
                    )
                return self._outcome(render_captions_payload(self._decode(response)))

            payload = self._decode(response)
            if isinstance(payload, Unrecognized):
                logger.info("Captions API plain text unusable (%s), requesting segments", payload.reason)
                structured = await self._get(client, {'url': video_url}, request_timeout)
                if not structured.is_success:
                    raise AcquisitionStrategyError(
                        f"Captions API error on structured request: {structured.status_code}"
                    )
                payload = self._decode(structured)

        return self._outcome(render_captions_payload(payload))


# ---------------------------------------------------------------------------
# direct-scrape
# ---------------------------------------------------------------------------

CAPTION_URL_PATTERNS = (
    re.compile(r'https://www\.youtube\.com/api/timedtext[^"\'\s]+'),
    re.compile(r'playerCaptionsTracklistRenderer.*?url":"(https://www\.youtube\.com/api/timedtext[^"]+)"'),
    re.compile(r'"captionTracks":\s*\[\s*\{\s*"baseUrl":\s*"([^"]+)"'),
    re.compile(r'"captionTracks":.*?"kind":"asr".*?"baseUrl":"([^"]+)"'),
)

CAPTIONS_DISABLED_MARKERS = ('"playerCaptionsTracklistRenderer":{}', '"captionTracks":[]')


def clean_caption_url(url: str) -> str:
    """Undo the JSON escaping caption URLs carry inside page source."""
    url = url.replace('\\u0026', '&').replace('\\/', '/').replace('\\', '')
    return url.replace('&amp;', '&')


def find_caption_url_by_pattern(page_html: str) -> Optional[str]:
    for pattern in CAPTION_URL_PATTERNS:
        match = pattern.search(page_html)
        if match:
            url = match.group(1) if pattern.groups else match.group(0)
            return clean_caption_url(url)
    return None


def extract_player_response(page_html: str) -> Optional[Dict[str, Any]]:
    """Parse the player response JSON embedded in a watch page."""
    match = re.search(r'ytInitialPlayerResponse\s*=\s*\{', page_html)
    if match:
        try:
            data, _ = json.JSONDecoder().raw_decode(page_html, match.end() - 1)
            return data
        except ValueError:
            logger.debug("ytInitialPlayerResponse is not valid JSON")

    match = re.search(r'"player_response"\s*:\s*"((?:[^"\\]|\\.)*)"', page_html)
    if match:
        try:
            return json.loads(json.loads(f'"{match.group(1)}"'))
        except ValueError:
            logger.debug("player_response is not valid JSON")

    return None


def find_caption_tracks(data: Any) -> Optional[List[Dict[str, Any]]]:
    """Search parsed JSON, including JSON nested in strings, for captionTracks."""
    if isinstance(data, dict):
        tracks = data.get('captionTracks')
        if isinstance(tracks, list) and tracks:
            return tracks
        for value in data.values():
            found = find_caption_tracks(value)
            if found:
                return found
    elif isinstance(data, list):
        for item in data:
            found = find_caption_tracks(item)
            if found:
                return found
    elif isinstance(data, str) and 'captionTracks' in data and data.lstrip().startswith('{'):
        try:
            return find_caption_tracks(json.loads(data))
        except ValueError:
            return None
    return None


def _tracks_at_known_locations(data: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
    for root in (data, data.get('playerResponse'), (data.get('playerConfig') or {})):
        if not isinstance(root, dict):
            continue
        renderer = (root.get('captions') or {}).get('playerCaptionsTracklistRenderer') or {}
        tracks = renderer.get('captionTracks')
        if isinstance(tracks, list) and tracks:
            return tracks
    return None


def pick_caption_track(tracks: Sequence[Dict[str, Any]]) -> Optional[str]:
    """Prefer the auto-generated track, else the first one with a URL."""
    with_url = [track for track in tracks if isinstance(track, dict) and track.get('baseUrl')]
    if not with_url:
        return None
    for track in with_url:
        if track.get('kind') == 'asr':
            return clean_caption_url(track['baseUrl'])
    return clean_caption_url(with_url[0]['baseUrl'])


def set_query_params(url: str, **params: str) -> str:
    parsed = urlparse(url)
    query = dict(parse_qsl(parsed.query, keep_blank_values=True))
    query.update(params)
    return urlunparse(parsed._replace(query=urlencode(query)))


def with_default_language(url: str, language: str = 'en') -> str:
    query = dict(parse_qsl(urlparse(url).query, keep_blank_values=True))
    if 'lang' in query or 'tlang' in query:
        return url
    return set_query_params(url, lang=language)


def _json3_segments(response: httpx.Response) -> List[TranscriptSegment]:
    return parse_json3_events(response.json())


def _xml_segments(response: httpx.Response) -> List[TranscriptSegment]:
    return parse_xml_captions(response.text)


class DirectScrapeStrategy(HttpStrategy):
    """Reads caption tracks straight off the public watch page."""

    source_id = 'direct-scrape'
    timeout = 30.0

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None,
                 request_timeout: float = 8.0, languages: Sequence[str] = CAPTION_LANGUAGE_SWEEP):
        super().__init__(http_client, timeout)
        self.request_timeout = request_timeout
        self.languages = tuple(languages)

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        request_timeout = min(self.request_timeout, timeout)

        async with self._client(request_timeout) as client:
            page = await client.get(watch_url(identifier), headers=WATCH_PAGE_HEADERS, timeout=request_timeout)
            if not page.is_success:
                raise AcquisitionStrategyError(f"Failed to fetch YouTube page: {page.status_code}")

            page_html = page.text
            logger.debug("Received YouTube page HTML (%d chars)", len(page_html))

            caption_url = await self.find_caption_url(client, page_html, identifier, request_timeout)
            if caption_url is None:
                if any(marker in page_html for marker in CAPTIONS_DISABLED_MARKERS):
                    raise CaptionsDisabledError()
                raise AcquisitionStrategyError("Could not find transcript URL in the YouTube page")

            segments = await self.fetch_segments(client, caption_url, identifier, request_timeout)

        if not segments:
            raise AcquisitionStrategyError("Could not retrieve caption data after multiple attempts")

        return self._outcome(normalize_segments(segments), title=self._video_title(page_html))

    @staticmethod
    def _video_title(page_html: str) -> Optional[str]:
        title = extract_page_title(page_html)
        if title:
            title = re.sub(r'\s*-\s*YouTube$', '', title).strip()
        return title or None

    async def find_caption_url(self, client: httpx.AsyncClient, page_html: str, video_id: str,
                               request_timeout: float) -> Optional[str]:
        """
        Locate a timedtext URL in the page.

        Tries, in order: direct patterns over the page source, known
        locations in the embedded player response, a full scan of that
        response for captionTracks, and finally a probe of the bare
        timedtext endpoint when the page mentions it.
        """
        url = find_caption_url_by_pattern(page_html)
        if url:
            logger.debug("Caption URL found by pattern")
            return url

        player_response = extract_player_response(page_html)
        if player_response is not None:
            tracks = _tracks_at_known_locations(player_response) or find_caption_tracks(player_response)
            if tracks:
                url = pick_caption_track(tracks)
                if url:
                    logger.debug("Caption URL found in player response (%d tracks)", len(tracks))
                    return url

        if f"timedtext?v={video_id}" in page_html:
            probe_url = f"{TIMEDTEXT_URL}?v={video_id}&lang=en&fmt=json3"
            try:
                response = await client.get(probe_url, timeout=request_timeout)
            except httpx.HTTPError as e:
                logger.debug("Bare timedtext probe failed: %s", e)
            else:
                if response.is_success:
                    return probe_url
                logger.debug("Bare timedtext probe returned %d", response.status_code)

        return None

    def _fetch_plan(self, caption_url: str, video_id: str):
        caption_url = with_default_language(caption_url)
        probe_headers = {
            'User-Agent': BROWSER_USER_AGENT,
            'Referer': watch_url(video_id),
            'Origin': 'https://www.youtube.com',
        }

        plan = [
            ('json3', set_query_params(caption_url, fmt='json3'), None, _json3_segments),
            ('srv1', set_query_params(caption_url, fmt='srv1'), None, _xml_segments),
            ('api probe',
             f"{TIMEDTEXT_URL}?v={video_id}&lang=en&fmt=srv3&xorb=2&xobt=3&xovt=3",
             probe_headers, _xml_segments),
        ]
        for language in self.languages:
            lang_param = f"&lang={language}" if language else ''
            plan.append((
                f"language {language or 'default'}",
                f"{TIMEDTEXT_URL}?v={video_id}{lang_param}&fmt=json3",
                None,
                _json3_segments,
            ))
        return plan

    async def fetch_segments(self, client: httpx.AsyncClient, caption_url: str, video_id: str,
                             request_timeout: float) -> List[TranscriptSegment]:
        """Walk the fetch plan until one response yields at least one segment."""
        for label, url, headers, parse in self._fetch_plan(caption_url, video_id):
            try:
                response = await client.get(url, headers=headers, timeout=request_timeout)
                if not response.is_success:
                    logger.debug("Caption fetch (%s) returned %d", label, response.status_code)
                    continue
                segments = parse(response)
            except (httpx.HTTPError, ValueError) as e:
                logger.debug("Caption fetch (%s) failed: %s", label, e)
                continue

            if segments:
                logger.debug("Caption fetch (%s) produced %d segments", label, len(segments))
                return segments

        return []


# ---------------------------------------------------------------------------
# transcript-library
# ---------------------------------------------------------------------------

class TranscriptLibraryStrategy(AcquisitionStrategy):
    """youtube_transcript_api, run in a worker thread."""

    source_id = 'transcript-library'
    timeout = 15.0

    def __init__(self, languages: Sequence[str] = ('en', 'en-US', 'en-GB'),
                 api: Optional[YouTubeTranscriptApi] = None, timeout: Optional[float] = None):
        self.languages = list(languages)
        self.api = api
        if timeout is not None:
            self.timeout = timeout

    def _fetch(self, video_id: str) -> List[TranscriptSegment]:
        api = self.api or YouTubeTranscriptApi()
        try:
            try:
                fetched = api.fetch(video_id, languages=self.languages)
            except NoTranscriptFound:
                logger.info("No transcript in %s, taking the first available one", self.languages)
                transcript = next(iter(api.list(video_id)), None)
                if transcript is None:
                    raise ContentUnavailableError("No transcript available for this video")
                fetched = transcript.fetch()
        except TranscriptsDisabled as e:
            raise CaptionsDisabledError() from e

        return [
            TranscriptSegment(start_seconds=snippet.start, duration_seconds=snippet.duration, text=snippet.text)
            for snippet in fetched
        ]

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        segments = await asyncio.to_thread(self._fetch, identifier)
        return self._outcome(normalize_segments(segments))


# ---------------------------------------------------------------------------
# speech-to-text
# ---------------------------------------------------------------------------

class SpeechToTextStrategy(AcquisitionStrategy):
    """
    Downloads the audio into a temporary directory and transcribes it.

    The directory is removed on every exit path, including cancellation by
    the orchestrator's timeout.
    """

    source_id = 'speech-to-text'
    timeout = 180.0
    is_authoritative = False

    def __init__(self, downloader: Optional[YouTubeDownloader] = None,
                 transcriber: Optional[TranscriptionService] = None, timeout: Optional[float] = None):
        self.downloader = downloader
        self.transcriber = transcriber
        if timeout is not None:
            self.timeout = timeout

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        downloader = self.downloader or YouTubeDownloader()
        transcriber = self.transcriber or TranscriptionService()
        cancel_event = threading.Event()

        with tempfile.TemporaryDirectory(prefix='yt-') as tmp_dir:
            try:
                audio_path = await asyncio.to_thread(
                    downloader.download_audio, identifier, tmp_dir, cancel_event=cancel_event
                )
            except asyncio.CancelledError:
                cancel_event.set()
                raise

            audio_path = Path(audio_path)
            if not audio_path.exists() or audio_path.stat().st_size == 0:
                raise AcquisitionStrategyError(
                    f"Downloaded audio file is empty or does not exist at path: {audio_path}"
                )
            logger.info("Audio downloaded (%d bytes), transcribing", audio_path.stat().st_size)

            result = await transcriber.transcribe(audio_path)

        text = normalize_segments(result.segments) if result.segments else normalize_plain_lines(result.text)
        return self._outcome(text)
