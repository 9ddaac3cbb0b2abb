"""
Detox Error Taxonomy

Every failure inside a run derives from DetoxError so the orchestrator
can map it onto a single detoxError event with the underlying message.
"""


class DetoxError(Exception):
    """Base class for failures that end a detox run."""


class InvalidCredentialFormat(DetoxError):
    """Raw cookie blob is missing or not a list of cookie records."""


class InvalidDuration(DetoxError):
    """Session duration is not a finite number of seconds."""


class ResolutionFailed(DetoxError):
    """Content lookup for a topic failed."""


class NoContentFound(ResolutionFailed):
    """Content lookup succeeded but returned nothing to watch."""


class EngineLaunchFailure(DetoxError):
    """Browser engine could not be started or prepared."""


class NavigationFailure(DetoxError):
    """A page navigation failed."""

    def __init__(self, message: str, url: str = ""):
        super().__init__(message)
        self.url = url


class NavigationTimeout(NavigationFailure):
    """A page navigation did not settle within its timeout."""
