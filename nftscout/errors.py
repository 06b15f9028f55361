"""Exception hierarchy shared by the pipeline and its collaborators."""

from __future__ import annotations


class ScoutError(Exception):
    """Base class for every error raised by :mod:`nftscout`."""


class ConfigError(ScoutError):
    """Raised when required configuration is missing or malformed."""


class StartupError(ScoutError):
    """Raised when a collaborator cannot be reached before the pipeline starts."""


class ProviderError(ScoutError):
    """Raised by collection and candidate sources when an upstream fetch fails."""


class SelectionError(ScoutError):
    """Raised when no candidate can be selected for a collection."""

    kind = "selection"


class NoCandidatesError(SelectionError):
    kind = "no_items"

    def __init__(self, message: str = "no items provided") -> None:
        super().__init__(message)


class InvalidUnitCountError(SelectionError):
    kind = "invalid_unit_count"

    def __init__(self, value: object) -> None:
        super().__init__(f"invalid NFT count: {value!r}")
        self.value = value


class SubmissionError(ScoutError):
    """Failure of one step of the submission state machine."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class PipelineCancelled(ScoutError):
    """Raised when the shared cancellation signal fires during a suspension point."""
