"""
Custom exceptions for the story pipeline.

Only ConfigurationError aborts a stage. Every other error is scoped to one
unit of work (one URL, one document, one row) and is recovered by the
stage that raised it.
"""


class PipelineError(Exception):
    """Base exception for pipeline errors."""


class ConfigurationError(PipelineError):
    """Required input or setting is missing or invalid."""


class FetchFailure(PipelineError):
    """Error while fetching a single target."""

    def __init__(self, url: str, message: str):
        self.url = url
        self.message = message
        super().__init__(f"Failed to fetch {url}: {message}")


class NavigationTimeout(FetchFailure):
    """Page did not load within the navigation timeout."""


class BotChallengeUnresolved(FetchFailure):
    """Bot challenge page was still showing after the grace period."""


class TransientNetworkError(FetchFailure):
    """Network or browser error while loading the page."""


class ExtractionFailure(PipelineError):
    """Raw document could not be turned into a record."""

    def __init__(self, source_identifier: str, message: str):
        self.source_identifier = source_identifier
        super().__init__(f"Failed to extract {source_identifier}: {message}")


class PersistenceConflict(PipelineError):
    """Row violated a unique constraint that slug resolution did not prevent."""

    def __init__(self, source_identifier: str, slug: str, message: str):
        self.source_identifier = source_identifier
        self.slug = slug
        super().__init__(f"Conflict storing {source_identifier} as {slug}: {message}")
