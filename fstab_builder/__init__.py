"""Interactive fstab entry builder for ext4 and NTFS filesystems."""

from .__version__ import __version__

__all__ = ["__version__"]
