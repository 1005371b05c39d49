"""
Exception hierarchy for Kanri.

Every error raised on purpose by the package derives from KanriError so the
command line can report it at a single boundary.
"""

from typing import List, Optional


class KanriError(Exception):
    """Base exception for all Kanri errors."""
    pass


class CleanerError(KanriError):
    """Base exception for cleaner-related errors."""
    pass


class ScanError(CleanerError):
    """Raised when a search root or one of its subdirectories cannot be read."""
    pass


class CleanError(CleanerError):
    """Raised when removing a cleanable item fails."""
    pass


class ConfigError(KanriError):
    """Raised when required configuration (bucket, credentials, remote) is missing or invalid."""
    pass


class StorageError(KanriError):
    """Raised when the remote storage backend reports a failure."""
    pass


class CommandError(StorageError):
    """Raised when an external command cannot be run or exits unsuccessfully."""

    def __init__(self, command: List[str], returncode: Optional[int] = None, stderr: str = ""):
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() if stderr else f"exit code {returncode}"
        super().__init__(f"Command failed: {' '.join(command)}: {detail}")


class ArchiveError(KanriError):
    """Base exception for archive-related errors."""
    pass


class CatalogError(ArchiveError):
    """Raised when the archive catalog cannot be read, parsed or written."""
    pass


class ArchiveNotFound(ArchiveError):
    """Raised when an archive id is not present in the catalog."""

    def __init__(self, archive_id: str):
        self.archive_id = archive_id
        super().__init__(f"Archive not found: {archive_id}")


class RestoreError(ArchiveError):
    """Raised when a restore request cannot be resolved."""
    pass
