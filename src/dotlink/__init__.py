"""
dotlink - symlink a dotfiles repository into your home directory.

dotlink mirrors the contents of selected repository directories into $HOME
as symlinks, moving anything it would overwrite into a timestamped backup
directory, and can save and restore the list of installed Arch packages.
"""

__version__ = "0.1.0"
__license__ = "GPL-3.0-or-later"

from .core import (
    find_repo_root,
    load_link_spec,
    new_backup_root,
    setup_dotfiles,
)
from .packages import (
    restore_all_packages,
    restore_aur_packages,
    restore_packages,
    save_packages,
)

__all__ = [
    "setup_dotfiles",
    "load_link_spec",
    "new_backup_root",
    "find_repo_root",
    # Package list functions
    "save_packages",
    "restore_packages",
    "restore_aur_packages",
    "restore_all_packages",
]
