"""Error types raised by Pushr and helpers for rendering them as output."""

from typing import Optional


class PushrError(Exception):
    """Base class for all errors raised by Pushr."""

    def __init__(self, message: str, application: Optional[str] = None):
        super().__init__(message)
        self.application = application


class ConfigurationError(PushrError):
    """Invalid or missing required setting. Fatal for the affected application."""


class VersionControlError(PushrError):
    """A version control read could not be completed."""


def describe_error(error: BaseException) -> str:
    """Render an error as the text that flows through output classification.

    The text always contains the word ``failed`` so that the output
    classifier reports it as a failure.
    """
    detail = str(error).strip() or type(error).__name__
    return f"Execution failed: {detail}"
