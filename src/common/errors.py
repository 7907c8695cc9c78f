"""Exception types raised by the version resolution layer."""
from __future__ import annotations

from typing import Optional


class RegistryError(Exception):
    """Base class for registry and version resolution failures."""


class ClassificationError(RegistryError):
    """No registry dialect recognises a specifier."""

    def __init__(self, specifier: str):
        super().__init__(f"No registry matches {specifier}")
        self.specifier = specifier


class ParseError(RegistryError):
    """A specifier or registry document is missing a required field."""


class VersionNotFoundError(ParseError):
    """A specifier carries no pinned version."""

    def __init__(self, specifier: str):
        super().__init__(f"Unable to find version in {specifier}")
        self.specifier = specifier


class NetworkError(RegistryError):
    """A registry endpoint failed or returned an unusable body."""

    def __init__(self, message: str, *, url: str, status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status
