"""
Strategies that turn an article URL into a budgeted plain-text excerpt.

Chain order: direct-fetch, proxied-fetch, generative-extraction.
"""

import logging
import os
from typing import Optional

import httpx

from .acquisition import AcquisitionStrategy, HttpStrategy
from .anthropic_client import AnthropicClient
from .errors import AcquisitionStrategyError, ContentUnavailableError
from .models import AcquisitionOutcome
from .normalizer import MAX_EXCERPT_LENGTH, MIN_ARTICLE_LENGTH, budget_excerpt, extract_page_title, normalize_article_html
from .prompts import CANNOT_ACCESS_CONTENT, CONTENT_EXTRACTION_SYSTEM_PROMPT, content_extraction_prompt

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    'User-Agent': (
        'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
        '(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36'
    ),
    'Accept': 'text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8',
    'Accept-Language': 'en-US,en;q=0.9',
}

DEFAULT_PROXY_URL = 'http://localhost:5000/api/proxy'


class DirectFetchStrategy(HttpStrategy):
    source_id = 'direct-fetch'
    timeout = 15.0

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None,
                 max_length: int = MAX_EXCERPT_LENGTH):
        super().__init__(http_client, timeout)
        self.max_length = max_length

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        async with self._client(timeout) as client:
            response = await client.get(identifier, headers=BROWSER_HEADERS, timeout=timeout)

        if not response.is_success:
            raise AcquisitionStrategyError(f"HTTP error: {response.status_code}")

        page_html = response.text
        logger.debug("Fetched %d chars of HTML from %s", len(page_html), identifier)
        text = normalize_article_html(page_html, self.max_length)
        return self._outcome(text, title=extract_page_title(page_html))


class ProxiedFetchStrategy(HttpStrategy):
    """
    Fetches the page through the /api/proxy endpoint.

    Some sites refuse requests from the generating host but not from the
    proxy's.
    """

    source_id = 'proxied-fetch'
    timeout = 20.0

    def __init__(self, proxy_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None,
                 timeout: Optional[float] = None, max_length: int = MAX_EXCERPT_LENGTH):
        super().__init__(http_client, timeout)
        self.proxy_url = proxy_url or os.getenv('CONTENT_PROXY_URL') or DEFAULT_PROXY_URL
        self.max_length = max_length

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        async with self._client(timeout) as client:
            response = await client.post(
                self.proxy_url,
                json={'url': identifier, 'headers': BROWSER_HEADERS},
                timeout=timeout,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise AcquisitionStrategyError(f"Proxy returned malformed JSON (HTTP {response.status_code})") from e

        if not isinstance(data, dict) or not data.get('success'):
            error = data.get('error') if isinstance(data, dict) else None
            raise AcquisitionStrategyError(f"Proxy fetch failed: {error or response.status_code}")

        upstream_status = data.get('status')
        if isinstance(upstream_status, int) and upstream_status >= 400:
            raise AcquisitionStrategyError(f"Proxied HTTP error: {upstream_status}")

        page_html = data.get('body') or ''
        logger.debug("Proxy returned %s chars of HTML", data.get('bodyLength', len(page_html)))
        text = normalize_article_html(page_html, self.max_length)
        return self._outcome(text, title=extract_page_title(page_html))


class GenerativeExtractionStrategy(AcquisitionStrategy):
    """
    Asks the model for the article text.

    Output is a reconstruction, so it is never authoritative, and a refusal
    or a very short answer is treated as no content at all.
    """

    source_id = 'generative-extraction'
    timeout = 45.0
    is_authoritative = False

    def __init__(self, client: Optional[AnthropicClient] = None, timeout: Optional[float] = None,
                 max_length: int = MAX_EXCERPT_LENGTH):
        self.client = client
        self.max_length = max_length
        if timeout is not None:
            self.timeout = timeout

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        client = self.client or AnthropicClient()
        text = await client.generate_text(
            content_extraction_prompt(identifier),
            max_tokens=1500,
            temperature=0.2,
            system_prompt=CONTENT_EXTRACTION_SYSTEM_PROMPT,
            retries=0,
        )
        text = (text or '').strip()

        if CANNOT_ACCESS_CONTENT in text or len(text) < MIN_ARTICLE_LENGTH:
            raise ContentUnavailableError("Unable to extract article content - model could not access the content")

        return self._outcome(budget_excerpt(text, self.max_length))
