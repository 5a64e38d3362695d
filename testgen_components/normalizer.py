"""
Turn every source's native payload into one normalized string of the form
"[mm:ss] text [mm:ss] text ...", and article HTML into a budgeted plain-text
excerpt.
"""

import html
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from bs4 import BeautifulSoup

from .errors import ContentExtractionError
from .models import TranscriptSegment

logger = logging.getLogger(__name__)

# Seconds between pseudo-timestamps for transcripts that carry no timing.
PSEUDO_TIMESTAMP_INTERVAL = 5.0

MIN_ARTICLE_LENGTH = 100
MAX_EXCERPT_LENGTH = 6000
TRUNCATION_MARKER = '...[content truncated]...'

_TAG_RE = re.compile(r'<[^>]*>')
_WHITESPACE_RE = re.compile(r'\s+')


def _clean_text(text: str) -> str:
    return _WHITESPACE_RE.sub(' ', text).strip()


def format_timestamp(seconds: float) -> str:
    """Format seconds as zero-padded mm:ss."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def normalize_segments(segments: Iterable[TranscriptSegment]) -> str:
    """
    Join timed segments into "[mm:ss] text" form, ordered by start time.

    Segments whose text is blank are dropped.
    """
    ordered = sorted(segments, key=lambda segment: segment.start_seconds)
    parts = []
    for segment in ordered:
        text = _clean_text(segment.text)
        if text:
            parts.append(f"[{format_timestamp(segment.start_seconds)}] {text}")
    return ' '.join(parts)


def plain_lines_to_segments(text: str, interval: float = PSEUDO_TIMESTAMP_INTERVAL) -> List[TranscriptSegment]:
    """
    Give each non-empty line a pseudo-timestamp of index * interval.

    The resulting times only keep the formatting uniform; they have no
    relation to when the words are spoken.
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return [
        TranscriptSegment(start_seconds=index * interval, duration_seconds=interval, text=line)
        for index, line in enumerate(lines)
    ]


def normalize_plain_lines(text: str, interval: float = PSEUDO_TIMESTAMP_INTERVAL) -> str:
    return normalize_segments(plain_lines_to_segments(text, interval))


def parse_json3_events(data: Dict[str, Any]) -> List[TranscriptSegment]:
    """Read segments from a timedtext fmt=json3 payload ({"events": [...]})."""
    segments = []
    for event in data.get('events') or []:
        segs = event.get('segs') or []
        if not segs:
            continue
        text = _clean_text(' '.join(seg.get('utf8', '') for seg in segs))
        if not text:
            continue
        segments.append(TranscriptSegment(
            start_seconds=float(event.get('tStartMs', 0)) / 1000,
            duration_seconds=float(event.get('dDurationMs', 1000)) / 1000,
            text=text,
        ))
    return segments


def _node_text(node) -> str:
    # Caption XML often escapes twice and embeds <font> tags inside the text.
    text = html.unescape(node.get_text())
    return _clean_text(_TAG_RE.sub('', text))


def parse_xml_captions(xml_text: str) -> List[TranscriptSegment]:
    """
    Read segments from timedtext XML.

    Handles both the srv1 shape (<text start="1.2" dur="3.4">) and the srv3
    shape (<p t="1200" d="3400">, milliseconds).
    """
    if not xml_text:
        return []

    soup = BeautifulSoup(xml_text, 'html.parser')
    segments = []

    for node in soup.find_all('text'):
        text = _node_text(node)
        if not text:
            continue
        try:
            start = float(node.get('start', 0))
            duration = float(node.get('dur', 0))
        except ValueError:
            logger.debug("Skipping caption node with bad timing: %s", node.attrs)
            continue
        segments.append(TranscriptSegment(start_seconds=start, duration_seconds=duration, text=text))

    if segments:
        return segments

    for node in soup.find_all('p'):
        if node.get('t') is None:
            continue
        text = _node_text(node)
        if not text:
            continue
        try:
            start = float(node.get('t', 0)) / 1000
            duration = float(node.get('d', 0)) / 1000
        except ValueError:
            logger.debug("Skipping caption node with bad timing: %s", node.attrs)
            continue
        segments.append(TranscriptSegment(start_seconds=start, duration_seconds=duration, text=text))

    return segments


def extract_page_title(page_html: str) -> Optional[str]:
    """Return the <title> of an HTML page, if it has a non-empty one."""
    if not page_html:
        return None
    soup = BeautifulSoup(page_html, 'html.parser')
    if soup.title and soup.title.string:
        title = _clean_text(soup.title.string)
        return title or None
    return None


def html_to_text(page_html: str) -> str:
    """
    Strip an article page down to its visible text.

    Raises:
        ContentExtractionError: If fewer than 100 characters survive.
    """
    soup = BeautifulSoup(page_html or '', 'html.parser')
    for tag in soup(['script', 'style']):
        tag.decompose()

    text = _clean_text(soup.get_text(' '))
    logger.debug("Extracted text content of length: %d", len(text))

    if len(text) < MIN_ARTICLE_LENGTH:
        raise ContentExtractionError(
            f"Article content is too short or empty ({len(text)} characters after extraction)"
        )
    return text


def budget_excerpt(text: str, max_length: int = MAX_EXCERPT_LENGTH) -> str:
    """
    Keep a budgeted excerpt of a long document.

    Documents longer than 1.5x the budget keep their beginning, middle and end
    so that questions can draw on the whole source; shorter ones are cut at
    the budget.
    """
    if len(text) <= max_length * 1.5:
        return text[:max_length]

    edge = int(max_length * 0.4)
    half_middle = int(max_length * 0.3)
    centre = len(text) // 2

    beginning = text[:edge]
    middle = text[centre - half_middle:centre + half_middle]
    end = text[len(text) - edge:]

    logger.debug("Content too long (%d chars), using segmented excerpt", len(text))
    return TRUNCATION_MARKER.join([beginning, middle, end])


def normalize_article_html(page_html: str, max_length: int = MAX_EXCERPT_LENGTH) -> str:
    """HTML page to budgeted plain text."""
    return budget_excerpt(html_to_text(page_html), max_length)
