"""
Exception types shared across the package.

- ValidationError: form input rejected before any network call
- StoreError: the document store could not complete a request
- ConfigError: the process configuration is unusable

Not-found is not an error here: repositories return None and the views
render an empty state.
"""

from __future__ import annotations


class CoursebookError(Exception):
    """Base class for all errors raised by coursebook."""


class ValidationError(CoursebookError):
    """
    Raised when submitted form values are invalid.

    `errors` maps a form field name to a user-facing message, so templates
    can render one message next to each field.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class StoreError(CoursebookError):
    """Transport, HTTP or permission failure while talking to the document store."""

    def __init__(self, message: str, status: int | None = None):
        self.status = status
        super().__init__(message)


class ConfigError(CoursebookError):
    """Invalid or incomplete configuration."""
