"""Exception hierarchy for SnapVCS.

Every failure the engine reports to its caller derives from ``SnapVCSError``,
so porcelain code can catch one type and print a clean message.
"""


class SnapVCSError(Exception):
    """Base exception for all SnapVCS errors."""


class StorageIOError(SnapVCSError, OSError):
    """Raised when a filesystem read, write or mkdir fails."""


class NotFoundError(SnapVCSError):
    """Raised when a lookup targets something that does not exist."""


class ObjectNotFoundError(NotFoundError):
    """Raised when an object id is not present in the object store."""


class IndexEntryNotFoundError(NotFoundError):
    """Raised when the index has no entry for a path."""


class ObjectCorruptedError(SnapVCSError):
    """Raised when stored object bytes do not hash to their id."""


class PreconditionError(SnapVCSError):
    """Raised when an operation runs against an uninitialized repository."""


class ConfigError(PreconditionError):
    """Raised when repository configuration is unreadable or inconsistent."""


class InvalidInputError(SnapVCSError, ValueError):
    """Raised for malformed ids, paths, or non-directory snapshot targets."""
