import logging
from typing import Callable, List, Optional

import httpx

from .acquisition import AcquisitionStrategy, FallbackOrchestrator
from .anthropic_client import AnthropicClient
from .document_sources import DirectFetchStrategy, GenerativeExtractionStrategy, ProxiedFetchStrategy
from .models import AcquisitionOutcome
from .utils import detect_content_type
from .video_sources import (
    CaptionsApiStrategy,
    DirectScrapeStrategy,
    ManagedServiceStrategy,
    SpeechToTextStrategy,
    TranscriptLibraryStrategy,
)

logger = logging.getLogger(__name__)


def build_video_strategies(include_managed: bool = True,
                           http_client: Optional[httpx.AsyncClient] = None) -> List[AcquisitionStrategy]:
    """
    Video strategies in priority order.

    Args:
        include_managed: Leave out the managed transcript service; the service
            itself uses this when it builds its own chain.
        http_client: Shared client for the HTTP strategies.
    """
    strategies: List[AcquisitionStrategy] = []
    if include_managed:
        strategies.append(ManagedServiceStrategy(http_client=http_client))
    strategies.extend([
        CaptionsApiStrategy(http_client=http_client),
        DirectScrapeStrategy(http_client=http_client),
        TranscriptLibraryStrategy(),
        SpeechToTextStrategy(),
    ])
    return strategies


def build_document_strategies(http_client: Optional[httpx.AsyncClient] = None,
                              completion_client: Optional[AnthropicClient] = None) -> List[AcquisitionStrategy]:
    """Document strategies in priority order."""
    return [
        DirectFetchStrategy(http_client=http_client),
        ProxiedFetchStrategy(http_client=http_client),
        GenerativeExtractionStrategy(client=completion_client),
    ]


class ContentService:
    """Classifies a URL and runs the matching strategy chain over it."""

    def __init__(self, video_strategies: Optional[List[AcquisitionStrategy]] = None,
                 document_strategies: Optional[List[AcquisitionStrategy]] = None,
                 progress_callback: Optional[Callable[[str], None]] = None):
        self.video_strategies = video_strategies if video_strategies is not None else build_video_strategies()
        self.document_strategies = (
            document_strategies if document_strategies is not None else build_document_strategies()
        )
        self.progress_callback = progress_callback

    async def acquire(self, url: str) -> AcquisitionOutcome:
        """
        Get normalized text for a content URL.

        Raises:
            ValueError: If the URL is not http(s) or is a video URL without an id.
            AllStrategiesFailedError: If every strategy in the chain failed.
        """
        content_type, identifier = detect_content_type(url)

        if content_type == 'invalid':
            raise ValueError(f"Not a valid content URL: {url}")
        if content_type == 'video':
            if not identifier:
                raise ValueError("Could not extract video ID from URL")
            strategies = self.video_strategies
        else:
            strategies = self.document_strategies

        logger.info("Acquiring %s content for %s", content_type, identifier)
        orchestrator = FallbackOrchestrator(strategies, progress_callback=self.progress_callback)
        return await orchestrator.acquire(identifier)
