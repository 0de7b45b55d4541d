"""CLI entry point for dotlink - symlink a dotfiles repository into $HOME."""

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from typing_extensions import Annotated

from .core import find_repo_root, get_home_dir, load_link_spec, setup_dotfiles
from .exceptions import DotlinkError, SetupResultDict
from .packages import (
    restore_all_packages,
    restore_aur_packages,
    restore_packages,
    save_packages,
)

# Constants
DEFAULT_VERSION = "0.1.0"
MAX_DISPLAYED_BACKUPS = 10

USAGE_LINES = [
    "Usage: dotlink {--setup|--save-packages|--restore-packages|"
    "--restore-aur-packages|--restore-all-packages}",
    "  --setup: Creates symlinks for dotfiles.",
    "  --save-packages: Saves lists of explicitly installed official and AUR packages.",
    "  --restore-packages: Installs official packages from pkglist.txt.",
    "  --restore-aur-packages: Installs AUR packages from aur_pkglist.txt.",
    "  --restore-all-packages: Installs both official and AUR packages.",
]

# Global app and console instances
app = typer.Typer(
    help="dotlink - symlink a dotfiles repository into your home directory",
    add_completion=False,
)
console = Console()


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================


def get_version_string() -> str:
    """Return the installed dotlink version."""
    try:
        from importlib.metadata import version as get_version

        return get_version("dotlink")
    except Exception:
        return DEFAULT_VERSION


def print_usage() -> None:
    for line in USAGE_LINES:
        typer.echo(line)


def print_setup_summary(result: SetupResultDict) -> None:
    """Print a short summary of a setup run."""
    console.print(
        f"[green]Linked {len(result['linked'])} item(s)[/green], "
        f"[blue]backed up {len(result['backed_up'])}[/blue], "
        f"[yellow]skipped {len(result['skipped'])}[/yellow]"
    )
    if not result["backed_up"]:
        return

    console.print(f"Backups stored in [bold]{result['backup_root']}[/bold]")
    for original, moved_to in result["backed_up"][:MAX_DISPLAYED_BACKUPS]:
        console.print(f"  {original} -> {moved_to}")
    remaining = len(result["backed_up"]) - MAX_DISPLAYED_BACKUPS
    if remaining > 0:
        console.print(f"  ... and {remaining} more")


def _version_callback(value: bool) -> None:
    if value:
        typer.secho(f"dotlink version {get_version_string()}", fg=typer.colors.GREEN)
        raise typer.Exit()


# ============================================================================
# COMMAND
# ============================================================================


@app.command()
def main(
    setup: Annotated[
        bool, typer.Option("--setup", help="Create symlinks for dotfiles.")
    ] = False,
    save: Annotated[
        bool,
        typer.Option(
            "--save-packages",
            help="Save lists of explicitly installed official and AUR packages.",
        ),
    ] = False,
    restore: Annotated[
        bool,
        typer.Option(
            "--restore-packages", help="Install official packages from pkglist.txt."
        ),
    ] = False,
    restore_aur: Annotated[
        bool,
        typer.Option(
            "--restore-aur-packages",
            help="Install AUR packages from aur_pkglist.txt.",
        ),
    ] = False,
    restore_all: Annotated[
        bool,
        typer.Option(
            "--restore-all-packages", help="Install both official and AUR packages."
        ),
    ] = False,
    repo: Annotated[
        Optional[Path],
        typer.Option(
            "--repo",
            help="Dotfiles repository (default: git checkout containing the "
            "current directory).",
            file_okay=False,
        ),
    ] = None,
    home: Annotated[
        Optional[Path],
        typer.Option("--home", help="Directory to link into (default: $HOME)."),
    ] = None,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Suppress progress output")
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show dotlink version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """
    Symlink dotfiles from the repository into your home directory, or save
    and restore the list of installed packages. Exactly one mode is required.
    """
    modes: List[str] = [
        name
        for name, chosen in (
            ("setup", setup),
            ("save-packages", save),
            ("restore-packages", restore),
            ("restore-aur-packages", restore_aur),
            ("restore-all-packages", restore_all),
        )
        if chosen
    ]
    if len(modes) != 1:
        print_usage()
        raise typer.Exit(code=1)

    mode = modes[0]
    try:
        repo_root = repo if repo is not None else find_repo_root()
        if mode == "setup":
            home_dir = home if home is not None else get_home_dir()
            result = setup_dotfiles(
                repo_root, home_dir, load_link_spec(repo_root), quiet=quiet
            )
            if not quiet:
                print_setup_summary(result)
        elif mode == "save-packages":
            save_packages(repo_root, quiet=quiet)
        elif mode == "restore-packages":
            restore_packages(repo_root, quiet=quiet)
        elif mode == "restore-aur-packages":
            restore_aur_packages(repo_root, quiet=quiet)
        else:
            restore_all_packages(repo_root, quiet=quiet)
    except DotlinkError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
