"""
Exceptions raised by nps and the process exit codes they map to.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_OPTION = 1
    USAGE = 2
    NO_SEARCH_TERM = 3
    REFRESH_FAILED = 4
    CACHE_UNAVAILABLE = 5
    INTERNAL = 6
    INTERRUPTED = 130


class NpsError(Exception):
    """Base exception for all application-specific errors."""

    exit_code = ExitCode.INTERNAL


class InvalidOptionError(NpsError):
    """Raised when a CLI flag or environment variable holds an unusable value."""

    exit_code = ExitCode.INVALID_OPTION

    def __init__(self, option: str, value, choices=None):
        self.option = option
        self.value = value
        self.choices = list(choices) if choices else []
        message = f"invalid value '{value}' for '{option}'"
        if self.choices:
            message += f" [possible values: {', '.join(self.choices)}]"
        super().__init__(message)


class UsageError(NpsError):
    exit_code = ExitCode.USAGE


class MissingSearchTermError(UsageError):
    """Raised when neither a search term nor a refresh was requested."""

    exit_code = ExitCode.NO_SEARCH_TERM


class CacheUnavailableError(NpsError):
    """Raised when the cache file is absent or cannot be read."""

    exit_code = ExitCode.CACHE_UNAVAILABLE


class RefreshError(NpsError):
    """Raised when the cache could not be refreshed. The previous cache is left in place."""

    exit_code = ExitCode.REFRESH_FAILED


class SourceFailedError(RefreshError):
    """The listing command failed to run, exited non-zero or printed unreadable output."""


class EmptyResultError(RefreshError):
    """The listing command succeeded but produced zero records."""


class CacheWriteError(RefreshError):
    """The new listing could not be written into the cache folder."""


class MalformedLineError(ValueError):
    """A single cache line could not be parsed. Callers skip the line."""
