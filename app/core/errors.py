# app/core/errors.py
from __future__ import annotations


class PodpageError(Exception):
    """Base class for errors raised by the page pipeline."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PodpageError):
    """A required query parameter is missing or malformed. No upstream call is made."""


class FetchError(PodpageError):
    """
    Retrieving or parsing a feed failed.
    `message` carries the upstream error text verbatim, it is shown to the user.
    """

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class SearchError(PodpageError):
    """Empty search term or the search upstream failed."""


class CacheUnavailableError(PodpageError):
    """The response cache store could not be reached. Never surfaced to users."""
