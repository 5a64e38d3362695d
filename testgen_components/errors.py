"""
Error types raised while acquiring content for test generation.
"""

from typing import List

from .models import AcquisitionError


class AcquisitionStrategyError(RuntimeError):
    """A single strategy failed (non-2xx, malformed payload, nothing usable)."""


class ContentUnavailableError(AcquisitionStrategyError):
    """The source answered, but there is no real content to be had."""


class CaptionsDisabledError(ContentUnavailableError):
    """The video page says captions are disabled."""

    def __init__(self, message: str = "Captions are disabled for this video"):
        super().__init__(message)


class ContentExtractionError(AcquisitionStrategyError):
    """HTML was fetched but too little text survived extraction."""


class AllStrategiesFailedError(RuntimeError):
    """
    Every strategy in the chain failed.

    The message lists each source id with its failure reason, in the order the
    strategies were tried.
    """

    def __init__(self, errors: List[AcquisitionError]):
        self.errors = list(errors)
        details = "; ".join(f"{error.source_id}: {error.message}" for error in self.errors)
        super().__init__(f"All acquisition strategies failed. {details}")
