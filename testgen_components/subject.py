import logging
import re
from typing import Optional
from urllib.parse import parse_qs, urlparse

from .anthropic_client import AnthropicClient
from .prompts import subject_prompt

logger = logging.getLogger(__name__)

DEFAULT_SUBJECT = 'Content Analysis'
MAX_SUBJECT_LENGTH = 100

_TIMESTAMP_RE = re.compile(r'\[\d{1,2}:\d{2}(?::\d{2})?\]')
_SITE_SUFFIX_RE = re.compile(r'\s*(?:-\s*YouTube|[|\u2013\u2014]\s*[^|\u2013\u2014]+)$')


def clean_title(title: Optional[str]) -> Optional[str]:
    """Strip a trailing site name ("... | Site", "... - YouTube") from a page title."""
    if not title:
        return None
    title = ' '.join(title.split())
    cleaned = _SITE_SUFFIX_RE.sub('', title).strip()
    title = cleaned or title
    return title[:MAX_SUBJECT_LENGTH] or None


def title_from_url(url: str) -> Optional[str]:
    values = parse_qs(urlparse(url or '').query).get('title')
    if values and values[0].strip():
        return clean_title(values[0].replace('_', ' ').replace('+', ' '))
    return None


def heuristic_subject(content: str) -> Optional[str]:
    """First three sentences of the content with timestamps removed, capped at 100 chars."""
    text = ' '.join(_TIMESTAMP_RE.sub(' ', content or '').split())
    if not text:
        return None
    sentences = re.split(r'(?<=[.!?])\s+', text)
    summary = ' '.join(sentences[:3]).strip()
    if len(summary) > MAX_SUBJECT_LENGTH:
        summary = summary[:MAX_SUBJECT_LENGTH - 3].rstrip() + '...'
    return summary or None


class SubjectExtractor:
    """
    Best-effort short title for a piece of content.

    Tries the page title, a title= URL parameter, the model and a heuristic
    over the content, in that order, and falls back to a fixed label. Never
    raises.
    """

    def __init__(self, client: Optional[AnthropicClient] = None, use_model: bool = True):
        self.client = client
        self.use_model = use_model

    def _get_client(self) -> Optional[AnthropicClient]:
        if self.client is None and self.use_model:
            try:
                self.client = AnthropicClient()
            except ValueError as e:
                logger.info("Skipping model subject extraction: %s", e)
                self.use_model = False
        return self.client

    async def _model_subject(self, content: str) -> Optional[str]:
        client = self._get_client()
        if client is None:
            return None
        try:
            reply = await client.generate_text(subject_prompt(content), max_tokens=50, temperature=0.3, retries=0)
        except Exception as e:
            logger.warning("Model subject extraction failed: %s", e)
            return None

        if not isinstance(reply, str):
            return None
        lines = reply.strip().splitlines()
        subject = lines[0].strip().strip('"\'').strip() if lines else ''
        return subject[:MAX_SUBJECT_LENGTH] if len(subject) > 3 else None

    async def extract(self, url: str, content: str, page_title: Optional[str] = None) -> str:
        subject = clean_title(page_title) or title_from_url(url)
        if subject:
            return subject

        if content:
            subject = await self._model_subject(content)
            if subject:
                return subject

        return heuristic_subject(content) or DEFAULT_SUBJECT
