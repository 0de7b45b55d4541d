"""Exception classes for dotlink - a symlinking dotfiles installer."""

from typing import List, Tuple, TypedDict


# Type definitions for structured data
class LinkSpecDict(TypedDict):
    """Type definition for the link configuration."""

    content_dirs: List[str]
    direct_links: List[str]


class SetupResultDict(TypedDict):
    """Type definition for the outcome of a setup run."""

    backup_root: str
    linked: List[str]
    backed_up: List[Tuple[str, str]]  # (original path, backup location)
    skipped: List[str]


class DotlinkError(Exception):
    """Base exception for all dotlink-related errors."""

    pass


class DotlinkFileOperationError(DotlinkError):
    """Errors related to file operations during setup."""

    pass


class DotlinkSymlinkError(DotlinkFileOperationError):
    """Raised when a symlink cannot be created."""

    pass


class DotlinkBackupError(DotlinkFileOperationError):
    """Raised when an existing entry cannot be moved into the backup root."""

    pass


class DotlinkConfigurationError(DotlinkError):
    """Errors related to configuration management."""

    pass


class DotlinkValidationError(DotlinkConfigurationError):
    """Raised when link configuration entries are invalid."""

    pass


class DotlinkPackageError(DotlinkError):
    """Errors related to saving or restoring package lists."""

    pass
