"""Exception types raised by the MindWell core.

Persistence problems are not raised here: the slice store logs them and
degrades to defaults instead of raising.
"""

from __future__ import annotations


class MindWellError(Exception):
    """Base class for MindWell errors."""


class ValidationError(MindWellError, ValueError):
    """A malformed entity or argument was rejected before any mutation."""

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class ExternalServiceError(MindWellError):
    """The AI collaborator failed or returned an unusable payload. Retryable."""

    def __init__(self, message: str = "analysis unavailable"):
        super().__init__(message)
