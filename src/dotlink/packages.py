"""Save and restore explicitly installed Arch Linux packages."""

import shutil
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import typer

from .exceptions import DotlinkPackageError

# Constants
PKG_LIST_FILENAME = "pkglist.txt"
AUR_PKG_LIST_FILENAME = "aur_pkglist.txt"

SAVE_OFFICIAL_COMMAND = ["pacman", "-Qe"]
SAVE_AUR_COMMAND = ["yay", "-Qem"]
RESTORE_OFFICIAL_COMMAND = ["sudo", "pacman", "-S", "--needed", "-"]
RESTORE_AUR_COMMAND = ["yay", "-S", "--needed", "-"]


def get_package_list_paths(repo_root: Path) -> Dict[str, Path]:
    """Get the package list files kept in the dotfiles repository."""
    return {
        "official": repo_root / PKG_LIST_FILENAME,
        "aur": repo_root / AUR_PKG_LIST_FILENAME,
    }


def _run_command(
    command: List[str], input_text: Optional[str] = None, capture: bool = True
) -> subprocess.CompletedProcess:
    """Run a package tool, raising DotlinkPackageError on any failure."""
    if shutil.which(command[0]) is None:
        raise DotlinkPackageError(f"Command not found: {command[0]}")
    try:
        result = subprocess.run(
            command,
            input=input_text,
            capture_output=capture,
            text=True,
            check=False,
        )
    except OSError as e:
        raise DotlinkPackageError(f"Could not run '{' '.join(command)}': {e}") from e

    if result.returncode != 0:
        message = f"Command '{' '.join(command)}' failed with exit code {result.returncode}"
        if capture and result.stderr:
            message += f": {result.stderr.strip()}"
        raise DotlinkPackageError(message)
    return result


def read_package_names(list_file: Path) -> List[str]:
    """
    Read package names from a saved list.

    Lists are saved as `pacman -Qe` output ("name version" per line); only
    the first field is a package name. Blank lines and comments are ignored.
    """
    try:
        content = list_file.read_text()
    except OSError as e:
        raise DotlinkPackageError(f"Could not read '{list_file}': {e}") from e

    names = []
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        names.append(line.split()[0])
    return names


def save_packages(repo_root: Path, quiet: bool = False) -> Dict[str, Path]:
    """Save explicitly installed official and AUR packages to the repository."""
    paths = get_package_list_paths(repo_root)

    if not quiet:
        typer.secho(
            f"Saving explicitly installed official packages to {paths['official']}...",
            fg=typer.colors.BLUE,
        )
    result = _run_command(SAVE_OFFICIAL_COMMAND)
    paths["official"].write_text(result.stdout)
    if not quiet:
        typer.secho("Official package list saved.", fg=typer.colors.GREEN)

    if not quiet:
        typer.secho(
            f"Saving explicitly installed AUR packages to {paths['aur']}...",
            fg=typer.colors.BLUE,
        )
    result = _run_command(SAVE_AUR_COMMAND)
    paths["aur"].write_text(result.stdout)
    if not quiet:
        typer.secho("AUR package list saved.", fg=typer.colors.GREEN)

    return paths


def _restore_from_list(
    list_file: Path, command: List[str], label: str, quiet: bool = False
) -> int:
    if not list_file.exists():
        raise DotlinkPackageError(
            f"{label} package list file '{list_file}' not found. "
            "Please run '--save-packages' first."
        )

    names = read_package_names(list_file)
    if not names:
        if not quiet:
            typer.secho(
                f"No packages listed in {list_file}, nothing to restore.",
                fg=typer.colors.YELLOW,
            )
        return 0

    if not quiet:
        typer.secho(
            f"Restoring {label.lower()} packages from {list_file}...",
            fg=typer.colors.BLUE,
        )
    # The package tool prompts on the terminal, so its output is not captured
    _run_command(command, input_text="\n".join(names) + "\n", capture=False)
    if not quiet:
        typer.secho(f"{label} packages restored.", fg=typer.colors.GREEN)
    return len(names)


def restore_packages(repo_root: Path, quiet: bool = False) -> int:
    """Install the official packages listed in pkglist.txt."""
    list_file = get_package_list_paths(repo_root)["official"]
    return _restore_from_list(list_file, RESTORE_OFFICIAL_COMMAND, "Official", quiet)


def restore_aur_packages(repo_root: Path, quiet: bool = False) -> int:
    """Install the AUR packages listed in aur_pkglist.txt."""
    list_file = get_package_list_paths(repo_root)["aur"]
    return _restore_from_list(list_file, RESTORE_AUR_COMMAND, "AUR", quiet)


def restore_all_packages(repo_root: Path, quiet: bool = False) -> int:
    """Install official packages, then AUR packages."""
    count = restore_packages(repo_root, quiet=quiet)
    count += restore_aur_packages(repo_root, quiet=quiet)
    return count
