"""
Ordered fallback over content-acquisition strategies.

Each strategy knows how to pull text for an identifier (a video id or a URL)
from one external source. The orchestrator tries them one at a time, in the
order given, each bounded by its own timeout, and returns the first success.
When every strategy fails it raises a single error that lists every source
and what went wrong with it.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional, Sequence

import httpx

from .errors import AllStrategiesFailedError
from .models import AcquisitionError, AcquisitionOutcome

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_TIMEOUT = 15.0


class AcquisitionStrategy:
    """
    One way of getting text for an identifier.

    Subclasses set source_id, optionally timeout (seconds) and
    is_authoritative, and implement attempt(). A strategy signals failure by
    raising; the message should be readable by an operator.
    """

    source_id = 'unknown'
    timeout: Optional[float] = None
    is_authoritative = True

    async def attempt(self, identifier: str, timeout: float) -> AcquisitionOutcome:
        raise NotImplementedError

    def _outcome(self, text: str, title: Optional[str] = None) -> AcquisitionOutcome:
        return AcquisitionOutcome(
            source_id=self.source_id,
            text=text,
            is_authoritative=self.is_authoritative,
            title=title,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.source_id}>"


class HttpStrategy(AcquisitionStrategy):
    """Base for strategies that talk HTTP through an httpx.AsyncClient."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None, timeout: Optional[float] = None):
        """
        Args:
            http_client: Shared client to use. When None, a client is opened
                and closed around each attempt.
            timeout: Overall budget for one attempt, in seconds.
        """
        self.http_client = http_client
        if timeout is not None:
            self.timeout = timeout

    @asynccontextmanager
    async def _client(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        if self.http_client is not None:
            yield self.http_client
        else:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                yield client


class FallbackOrchestrator:
    """Runs strategies strictly in order and returns the first success."""

    def __init__(
        self,
        strategies: Sequence[AcquisitionStrategy],
        default_timeout: float = DEFAULT_STRATEGY_TIMEOUT,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> None:
        """
        Args:
            strategies: Strategies in priority order.
            default_timeout: Budget for strategies that do not set their own.
            progress_callback: Optional callback for progress updates.
        """
        if not strategies:
            raise ValueError("At least one acquisition strategy is required")
        self.strategies = tuple(strategies)
        self.default_timeout = default_timeout
        self.progress_callback = progress_callback

    @property
    def source_ids(self) -> List[str]:
        """Source ids in the order they will be tried."""
        return [strategy.source_id for strategy in self.strategies]

    def timeout_for(self, strategy: AcquisitionStrategy) -> float:
        return strategy.timeout or self.default_timeout

    def _report(self, message: str) -> None:
        logger.info(message)
        if self.progress_callback:
            self.progress_callback(message)

    async def acquire(self, identifier: str) -> AcquisitionOutcome:
        """
        Try each strategy once for the identifier.

        Returns:
            The outcome of the first strategy that produced non-empty text.

        Raises:
            AllStrategiesFailedError: If every strategy failed or timed out.
        """
        errors: List[AcquisitionError] = []
        total = len(self.strategies)

        for position, strategy in enumerate(self.strategies, 1):
            timeout = self.timeout_for(strategy)
            self._report(f"[{position}/{total}] Trying {strategy.source_id} (timeout {timeout:g}s)...")
            started = time.monotonic()

            try:
                outcome = await asyncio.wait_for(strategy.attempt(identifier, timeout), timeout=timeout)
            except asyncio.TimeoutError:
                message = f"timed out after {timeout:g}s"
            except Exception as e:
                message = str(e) or e.__class__.__name__
            else:
                if outcome.text and outcome.text.strip():
                    elapsed = time.monotonic() - started
                    self._report(
                        f"[{position}/{total}] {strategy.source_id} succeeded in {elapsed:.1f}s "
                        f"({len(outcome.text)} chars)"
                    )
                    return outcome
                message = "returned empty content"

            self._report(f"[{position}/{total}] {strategy.source_id} failed: {message}")
            errors.append(AcquisitionError(source_id=strategy.source_id, message=message))

        raise AllStrategiesFailedError(errors)
