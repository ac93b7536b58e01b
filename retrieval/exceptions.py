"""Common exception classes for the retrieval package.

All exceptions ultimately inherit from :class:`PromptLibraryError`, allowing
callers to catch a single base class for any library failure while still
distinguishing individual error categories when needed.

Updates:
  v0.2.0 - 2026-10-15 - Add mutation and fingerprint collision errors.
  v0.1.0 - 2026-10-10 - Created module with remote and cache error classes.
"""

from __future__ import annotations


class PromptLibraryError(Exception):
    """Base exception for prompt library failures."""


class RemoteSourceError(PromptLibraryError):
    """Raised when the remote prompt store fails (network, timeout, auth, server)."""


class PromptNotFoundError(PromptLibraryError):
    """Raised when a prompt cannot be located in the remote store."""


class PromptMutationUnavailable(PromptLibraryError):
    """Raised when a mutation is requested without an authenticated user."""


class PromptCacheError(PromptLibraryError):
    """Raised when Redis snapshot lookups or writes fail."""


class FingerprintCollisionError(PromptLibraryError):
    """Raised when two different queries map to the same cache fingerprint.

    This signals a defect in query canonicalisation and is never recovered.
    """


__all__ = [
    "FingerprintCollisionError",
    "PromptCacheError",
    "PromptLibraryError",
    "PromptMutationUnavailable",
    "PromptNotFoundError",
    "RemoteSourceError",
]
