"""Exception taxonomy for the analysis pipeline.

Only the errors defined here ever reach the caller of ``perform_analysis``.
Page fetch, JSON-LD and scoring failures are recovered where they happen.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for every error surfaced by the pipeline."""


class InvalidAnalysisRequest(AnalysisError, ValueError):
    """Topic or location missing / unusable."""


class SearchFailure(AnalysisError):
    """Search endpoint unreachable or returned unusable content."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PageFetchFailure(AnalysisError):
    """A single competitor page could not be fetched."""

    def __init__(self, url: str, reason: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{url}: {reason}")
        self.url = url
        self.reason = reason
        self.status_code = status_code


class AllModelsUnavailable(AnalysisError):
    """Every model in the fallback chain reported overload or was unreachable."""

    def __init__(self, models: list[str], last_error: Optional[BaseException] = None) -> None:
        super().__init__(
            "All AI models are currently unavailable: " + ", ".join(models)
        )
        self.models = models
        self.last_error = last_error
