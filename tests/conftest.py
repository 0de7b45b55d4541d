"""Shared pytest fixtures and configuration."""

import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict, Generator

import pytest

from dotlink.core import new_backup_root


def create_test_files(base: Path, files: Dict[str, str]) -> None:
    """Create files (with parent directories) relative to `base`."""
    for rel_path, content in files.items():
        file_path = base / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)


@pytest.fixture
def temp_home() -> Generator[Path, None, None]:
    """Create a temporary home directory for testing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def dotfiles_repo() -> Generator[Path, None, None]:
    """Create a temporary dotfiles repository with the default layout."""
    with tempfile.TemporaryDirectory() as tmpdir:
        repo = Path(tmpdir)
        create_test_files(
            repo,
            {
                ".config/shell/rc.conf": "export EDITOR=vim\n",
                ".config/shell/aliases": "alias ll='ls -l'\n",
                ".config/hypr/hyprland.conf": "monitor=,preferred,auto,1\n",
                ".config/starship.toml": "add_newline = false\n",
                ".local/share/applications/Claude.desktop": "[Desktop Entry]\n",
                ".env": "EDITOR=vim\n",
            },
        )
        yield repo


@pytest.fixture
def backup_root(temp_home: Path) -> Path:
    """A fixed backup root for the run under test."""
    return new_backup_root(temp_home, datetime(2024, 1, 2, 3, 4, 5))


@pytest.fixture
def sample_link_spec() -> dict:
    """Sample link configuration for testing."""
    return {
        "content_dirs": [".config"],
        "direct_links": [".env"],
    }
