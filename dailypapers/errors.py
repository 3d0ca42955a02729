"""Error taxonomy for the ingestion and enrichment pipeline."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every error raised by the pipeline."""


class ValidationError(PipelineError, ValueError):
    """Bad trigger parameters; raised before any job state changes."""


class FetchError(PipelineError):
    """Network failure, timeout or malformed payload for one listing date."""

    def __init__(self, message: str, *, day: object | None = None) -> None:
        super().__init__(message)
        self.day = day


class PersistenceError(PipelineError):
    """A store round-trip failed."""


class GenerationError(PipelineError):
    """The text-generation API call itself failed."""
