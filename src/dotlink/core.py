"""Core functionality for dotlink - symlink a dotfiles repository into $HOME."""

import json
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import typer
from git import InvalidGitRepositoryError, NoSuchPathError, Repo

from .exceptions import (
    DotlinkBackupError,
    DotlinkFileOperationError,
    DotlinkSymlinkError,
    DotlinkValidationError,
    LinkSpecDict,
    SetupResultDict,
)

# Constants
CONFIG_FILENAME = "dotlink.json"
BACKUP_DIR_PREFIX = ".dotfiles_backup_"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
LINK_SPEC_KEYS = ("content_dirs", "direct_links")

# Directories whose CONTENTS are symlinked, and items linked directly into $HOME
DEFAULT_LINK_SPEC: LinkSpecDict = {
    "content_dirs": [".config", ".local/share/applications"],
    "direct_links": [".env"],
}


# ============================================================================
# PATH MANAGEMENT
# ============================================================================


def get_home_dir() -> Path:
    """Get the home directory, respecting environment variables for testing."""
    if "HOME" in os.environ:
        return Path(os.environ["HOME"])
    return Path.home()


def find_repo_root(start: Optional[Path] = None) -> Path:
    """
    Return the working tree of the git repository containing `start`.

    Falls back to `start` itself (default: the current directory) when it is
    not inside a git checkout or the repository is bare.
    """
    start = Path(os.path.abspath(start or Path.cwd()))
    try:
        repo = Repo(str(start), search_parent_directories=True)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return start
    if repo.working_tree_dir is None:
        return start
    return Path(repo.working_tree_dir)


def entry_exists(path: Path) -> bool:
    """True if anything occupies `path`, dangling symlinks included."""
    return path.is_symlink() or path.exists()


def same_path(target: Path, source: Path) -> bool:
    """True if `target` exists and resolves to the same path as `source`."""
    if not entry_exists(target):
        return False
    try:
        return target.resolve() == source.resolve()
    except (OSError, RuntimeError) as e:
        raise DotlinkFileOperationError(f"Could not resolve '{target}': {e}") from e


def new_backup_root(home: Path, now: Optional[datetime] = None) -> Path:
    """
    Compute the backup root for this run. The directory is not created.

    The name is `.dotfiles_backup_YYYYMMDDHHMMSS`; a numeric suffix is added
    when a run in the same second already left a backup behind.
    """
    stamp = (now or datetime.now()).strftime(BACKUP_TIMESTAMP_FORMAT)
    backup_root = home / f"{BACKUP_DIR_PREFIX}{stamp}"
    suffix = 0
    while entry_exists(backup_root):
        suffix += 1
        backup_root = home / f"{BACKUP_DIR_PREFIX}{stamp}_{suffix}"
    return backup_root


# ============================================================================
# LINK CONFIGURATION
# ============================================================================


def _warn(message: str) -> None:
    typer.secho(f"WARNING: {message}", fg=typer.colors.YELLOW, err=True)


def default_link_spec() -> LinkSpecDict:
    """Return a fresh copy of the default link configuration."""
    return {
        "content_dirs": list(DEFAULT_LINK_SPEC["content_dirs"]),
        "direct_links": list(DEFAULT_LINK_SPEC["direct_links"]),
    }


def _is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) for v in value)


def load_link_spec(repo_root: Path) -> LinkSpecDict:
    """
    Load the link configuration for a repository.

    Reads `dotlink.json` from the repository root and merges it over the
    defaults. A malformed file or key is reported and the defaults are used
    in its place.
    """
    link_spec = default_link_spec()
    config_file = repo_root / CONFIG_FILENAME
    if not config_file.exists():
        return link_spec

    try:
        with open(config_file, "r") as f:
            config = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        _warn(f"Error reading {config_file}: {e}. Using defaults.")
        return link_spec

    if not isinstance(config, dict):
        _warn(f"{config_file} must contain a JSON object. Using defaults.")
        return link_spec

    for key in LINK_SPEC_KEYS:
        if key not in config:
            continue
        if not _is_string_list(config[key]):
            _warn(f"'{key}' in {config_file} must be a list of strings. Using defaults.")
            continue
        link_spec[key] = list(config[key])  # type: ignore[literal-required]

    return link_spec


def validate_link_spec(link_spec: LinkSpecDict) -> None:
    """Reject entries that are empty, absolute, or escape the repository."""
    for key in LINK_SPEC_KEYS:
        for entry in link_spec[key]:  # type: ignore[literal-required]
            path = Path(entry)
            if not entry.strip() or path == Path("."):
                raise DotlinkValidationError(f"Empty entry in '{key}'")
            if path.is_absolute():
                raise DotlinkValidationError(
                    f"Entry '{entry}' in '{key}' must be relative to the repository"
                )
            if ".." in path.parts:
                raise DotlinkValidationError(
                    f"Entry '{entry}' in '{key}' must not contain '..'"
                )


# ============================================================================
# BACKUP AND SYMLINK PRIMITIVES
# ============================================================================


def backup_entry(
    target: Path, backup_root: Path, relative_parent: Path, quiet: bool = False
) -> Path:
    """
    Move whatever is at `target` into `backup_root / relative_parent`.

    Symlinks are moved as links, never followed. The backup subtree is
    created on demand and nothing already under it is ever replaced.

    Returns:
        The new location of the displaced entry.
    """
    destination_dir = backup_root / relative_parent
    destination = destination_dir / target.name

    if entry_exists(destination):
        raise DotlinkBackupError(
            f"Cannot back up '{target}': '{destination}' already exists"
        )

    if not quiet:
        typer.secho(f"    -> Backing up existing '{target}'", fg=typer.colors.BLUE)
    try:
        destination_dir.mkdir(parents=True, exist_ok=True)
        shutil.move(str(target), str(destination))
    except OSError as e:
        raise DotlinkBackupError(
            f"Could not back up '{target}' to '{destination_dir}': {e}"
        ) from e
    return destination


def link_entry(source: Path, target: Path, quiet: bool = False) -> None:
    """Create a symlink at `target` pointing to `source`."""
    if not quiet:
        typer.secho(
            f"    -> Creating symlink: {target} -> {source}", fg=typer.colors.GREEN
        )
    try:
        target.symlink_to(source)
    except OSError as e:
        raise DotlinkSymlinkError(f"Could not link '{target}': {e}") from e


def replace_with_symlink(
    source: Path,
    target: Path,
    backup_root: Path,
    relative_parent: Path,
    result: SetupResultDict,
    quiet: bool = False,
) -> None:
    """Back up anything at `target`, then link it to `source`."""
    if entry_exists(target):
        moved_to = backup_entry(target, backup_root, relative_parent, quiet=quiet)
        result["backed_up"].append((str(target), str(moved_to)))
    link_entry(source, target, quiet=quiet)
    result["linked"].append(str(target))


def ensure_target_dir(
    source_dir: Path,
    target_dir: Path,
    backup_root: Path,
    relative_parent: Path,
    result: SetupResultDict,
    quiet: bool = False,
) -> None:
    """
    Make sure `target_dir` is a directory that is not the source itself.

    A symlink at `target_dir` that resolves to `source_dir` is moved into
    the backup and replaced by a real directory. Any other symlink is
    followed.
    """
    if same_path(target_dir, source_dir):
        if not target_dir.is_symlink():
            raise DotlinkFileOperationError(
                f"'{target_dir}' is the same directory as '{source_dir}'"
            )
        moved_to = backup_entry(target_dir, backup_root, relative_parent, quiet=quiet)
        result["backed_up"].append((str(target_dir), str(moved_to)))

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DotlinkFileOperationError(
            f"Could not create directory '{target_dir}': {e}"
        ) from e


# ============================================================================
# SETUP
# ============================================================================


def _mirror_contents(
    repo_root: Path,
    home: Path,
    content_dir: str,
    backup_root: Path,
    result: SetupResultDict,
    quiet: bool = False,
) -> None:
    rel_dir = Path(content_dir)
    source_dir = repo_root / rel_dir
    target_dir = home / rel_dir

    if not source_dir.is_dir():
        _warn(f"Source directory '{source_dir}' not found, skipping.")
        result["skipped"].append(str(source_dir))
        return

    if not quiet:
        typer.secho(f"Processing contents of '{content_dir}'...", fg=typer.colors.WHITE)
    ensure_target_dir(
        source_dir, target_dir, backup_root, rel_dir.parent, result, quiet=quiet
    )

    for source_item in sorted(source_dir.iterdir()):
        target_item = target_dir / source_item.name

        if source_item.is_dir():
            if not quiet:
                typer.secho(f"  Processing config directory: '{source_item.name}'")
            ensure_target_dir(
                source_item, target_item, backup_root, rel_dir, result, quiet=quiet
            )
            # Entries one level down are linked as units, never descended into
            for source_entry in sorted(source_item.iterdir()):
                replace_with_symlink(
                    source_entry,
                    target_item / source_entry.name,
                    backup_root,
                    rel_dir / source_item.name,
                    result,
                    quiet=quiet,
                )
        elif source_item.is_file():
            if not quiet:
                typer.secho(f"  Processing config file: '{source_item.name}'")
            replace_with_symlink(
                source_item, target_item, backup_root, rel_dir, result, quiet=quiet
            )
        else:
            if not quiet:
                typer.secho(
                    f"  Skipping '{source_item.name}' (not a file or directory)",
                    fg=typer.colors.YELLOW,
                )
            result["skipped"].append(str(source_item))


def _link_direct(
    repo_root: Path,
    home: Path,
    item: str,
    backup_root: Path,
    result: SetupResultDict,
    quiet: bool = False,
) -> None:
    rel_item = Path(item)
    source = repo_root / rel_item
    target = home / rel_item

    if not source.exists():
        _warn(f"'{source}' not found, skipping.")
        result["skipped"].append(str(source))
        return

    if same_path(target, source) and not target.is_symlink():
        raise DotlinkFileOperationError(f"'{target}' is the same path as '{source}'")

    if not quiet:
        typer.secho(f"Linking '{item}'...", fg=typer.colors.WHITE)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DotlinkFileOperationError(
            f"Could not create directory '{target.parent}': {e}"
        ) from e
    replace_with_symlink(
        source, target, backup_root, rel_item.parent, result, quiet=quiet
    )


def setup_dotfiles(
    repo_root: Path,
    home: Path,
    link_spec: Optional[LinkSpecDict] = None,
    backup_root: Optional[Path] = None,
    quiet: bool = False,
) -> SetupResultDict:
    """
    Symlink the configured repository contents into the home directory.

    Every content directory has its immediate children mirrored: a child
    directory gets a real directory in $HOME whose entries are symlinks, a
    child file is symlinked directly. Direct-link items are symlinked as a
    whole. Anything already occupying a target is moved into `backup_root`
    at the same relative path before the symlink is created.

    Missing sources are skipped with a warning. Any filesystem failure
    raises a DotlinkFileOperationError and stops the run where it is.

    Args:
        repo_root: Root of the dotfiles repository
        home: Directory to mirror into
        link_spec: Link configuration, defaults to DEFAULT_LINK_SPEC
        backup_root: Backup directory for this run, computed if omitted
        quiet: If True, suppress progress output (warnings are still shown)

    Returns:
        Summary of linked, backed up and skipped paths
    """
    repo_root = Path(os.path.abspath(repo_root))
    home = Path(os.path.abspath(home))
    if link_spec is None:
        link_spec = default_link_spec()
    validate_link_spec(link_spec)
    if backup_root is None:
        backup_root = new_backup_root(home)

    result: SetupResultDict = {
        "backup_root": str(backup_root),
        "linked": [],
        "backed_up": [],
        "skipped": [],
    }

    if not quiet:
        typer.secho(
            f"Existing dotfiles will be backed up to: {backup_root}",
            fg=typer.colors.BLUE,
        )

    for content_dir in link_spec["content_dirs"]:
        _mirror_contents(repo_root, home, content_dir, backup_root, result, quiet=quiet)

    for item in link_spec["direct_links"]:
        _link_direct(repo_root, home, item, backup_root, result, quiet=quiet)

    if not quiet:
        typer.secho("Dotfiles setup complete.", fg=typer.colors.GREEN)
        typer.secho(
            "NOTE: You may need to log out and log back in for all changes "
            "to take effect.",
            fg=typer.colors.CYAN,
        )
    return result
