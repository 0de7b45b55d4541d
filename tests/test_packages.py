"""Tests for saving and restoring package lists."""

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from dotlink import packages
from dotlink.exceptions import DotlinkPackageError


def completed(command, returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(command, returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def tools_available():
    """Pretend pacman, yay and sudo are on PATH."""
    with patch("dotlink.packages.shutil.which", return_value="/usr/bin/tool"):
        yield


class TestReadPackageNames:
    """Test parsing of saved package lists."""

    def test_first_field_only(self, temp_home: Path):
        """Test that versions saved by pacman -Qe are dropped."""
        list_file = temp_home / "pkglist.txt"
        list_file.write_text("base 3-2\nneovim 0.10.0-1\n\n# pinned\ngit 2.45.0-1\n")

        assert packages.read_package_names(list_file) == ["base", "neovim", "git"]

    def test_empty_file(self, temp_home: Path):
        """Test that an empty list yields no names."""
        list_file = temp_home / "pkglist.txt"
        list_file.write_text("")

        assert packages.read_package_names(list_file) == []


@pytest.mark.usefixtures("tools_available")
class TestSavePackages:
    """Test saving package lists."""

    @patch("dotlink.packages.subprocess.run")
    def test_writes_both_lists(self, mock_run, temp_home: Path):
        """Test that pacman and yay output end up in the repository."""
        mock_run.side_effect = [
            completed(packages.SAVE_OFFICIAL_COMMAND, stdout="base 3-2\n"),
            completed(packages.SAVE_AUR_COMMAND, stdout="yay 12.3.5-1\n"),
        ]

        paths = packages.save_packages(temp_home, quiet=True)

        assert paths["official"].read_text() == "base 3-2\n"
        assert paths["aur"].read_text() == "yay 12.3.5-1\n"
        assert mock_run.call_args_list[0].args[0] == ["pacman", "-Qe"]
        assert mock_run.call_args_list[1].args[0] == ["yay", "-Qem"]

    @patch("dotlink.packages.subprocess.run")
    def test_command_failure(self, mock_run, temp_home: Path):
        """Test that a failing tool raises and leaves no list behind."""
        mock_run.return_value = completed(
            packages.SAVE_OFFICIAL_COMMAND, returncode=1, stderr="error: boom"
        )

        with pytest.raises(DotlinkPackageError, match="exit code 1: error: boom"):
            packages.save_packages(temp_home, quiet=True)

        assert not (temp_home / "pkglist.txt").exists()


class TestMissingTool:
    """Test behavior when package tools are not installed."""

    def test_command_not_found(self, temp_home: Path):
        """Test that a missing executable is reported."""
        with patch("dotlink.packages.shutil.which", return_value=None):
            with pytest.raises(DotlinkPackageError, match="Command not found: pacman"):
                packages.save_packages(temp_home, quiet=True)


@pytest.mark.usefixtures("tools_available")
class TestRestorePackages:
    """Test restoring package lists."""

    @patch("dotlink.packages.subprocess.run")
    def test_restore_official(self, mock_run, temp_home: Path):
        """Test that names are piped to pacman on stdin."""
        (temp_home / "pkglist.txt").write_text("base 3-2\nneovim 0.10.0-1\n")
        mock_run.return_value = completed(packages.RESTORE_OFFICIAL_COMMAND)

        count = packages.restore_packages(temp_home, quiet=True)

        assert count == 2
        mock_run.assert_called_once_with(
            ["sudo", "pacman", "-S", "--needed", "-"],
            input="base\nneovim\n",
            capture_output=False,
            text=True,
            check=False,
        )

    @patch("dotlink.packages.subprocess.run")
    def test_restore_aur(self, mock_run, temp_home: Path):
        """Test that AUR names are piped to yay."""
        (temp_home / "aur_pkglist.txt").write_text("spotify 1.2-1\n")
        mock_run.return_value = completed(packages.RESTORE_AUR_COMMAND)

        assert packages.restore_aur_packages(temp_home, quiet=True) == 1
        assert mock_run.call_args.args[0] == ["yay", "-S", "--needed", "-"]
        assert mock_run.call_args.kwargs["input"] == "spotify\n"

    def test_missing_list_file(self, temp_home: Path):
        """Test that restoring without a saved list fails."""
        with pytest.raises(DotlinkPackageError, match="--save-packages"):
            packages.restore_packages(temp_home, quiet=True)

    def test_unreadable_list_file(self, temp_home: Path):
        """Test that a list that cannot be read is a package error."""
        (temp_home / "pkglist.txt").mkdir()

        with pytest.raises(DotlinkPackageError, match="Could not read"):
            packages.restore_packages(temp_home, quiet=True)

    @patch("dotlink.packages.subprocess.run")
    def test_empty_list_runs_nothing(self, mock_run, temp_home: Path):
        """Test that an empty list does not invoke the package tool."""
        (temp_home / "pkglist.txt").write_text("\n")

        assert packages.restore_packages(temp_home, quiet=True) == 0
        mock_run.assert_not_called()

    @patch("dotlink.packages.subprocess.run")
    def test_restore_all_order(self, mock_run, temp_home: Path):
        """Test that official packages are restored before AUR packages."""
        (temp_home / "pkglist.txt").write_text("base 3-2\n")
        (temp_home / "aur_pkglist.txt").write_text("spotify 1.2-1\n")
        mock_run.return_value = completed([])

        assert packages.restore_all_packages(temp_home, quiet=True) == 2
        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands == [
            packages.RESTORE_OFFICIAL_COMMAND,
            packages.RESTORE_AUR_COMMAND,
        ]

    @patch("dotlink.packages.subprocess.run")
    def test_restore_all_stops_on_failure(self, mock_run, temp_home: Path):
        """Test that a failed official restore skips the AUR step."""
        (temp_home / "pkglist.txt").write_text("base 3-2\n")
        (temp_home / "aur_pkglist.txt").write_text("spotify 1.2-1\n")
        mock_run.return_value = completed([], returncode=1)

        with pytest.raises(DotlinkPackageError):
            packages.restore_all_packages(temp_home, quiet=True)

        mock_run.assert_called_once()
