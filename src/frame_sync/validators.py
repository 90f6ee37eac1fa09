"""
Asset validation for files about to be committed.

A freshly uploaded asset can reach the working tree truncated to zero
bytes, or as an un-hydrated large-file pointer when it was copied out of
another clone. Either would be committed as a broken image, so such
files are reported and kept out of the commit.
"""

from pathlib import Path
from typing import Callable

LFS_POINTER_PREFIX = b"version https://git-lfs.github.com/spec/v1"

# Pointer files are tiny; anything larger is real content
_POINTER_MAX_SIZE = 1024

EMPTY_FILE_REASON = "File is empty after upload."
LFS_POINTER_REASON = "File appears to be a Git LFS pointer and was not hydrated."

# Takes an absolute path, returns (is_valid, reason)
Validator = Callable[[Path], tuple[bool, str]]


def is_lfs_pointer(path: Path) -> bool:
    """Return True when *path* holds large-file pointer text."""
    if path.stat().st_size > _POINTER_MAX_SIZE:
        return False
    return path.read_bytes().startswith(LFS_POINTER_PREFIX)


def validate_asset(path: Path) -> tuple[bool, str]:
    """
    Validate one staged asset file.

    Args:
        path: Absolute path to the file in the working tree.

    Returns:
        Tuple of (is_valid, reason).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not path.is_file():
        return (True, "")
    if path.stat().st_size == 0:
        return (False, EMPTY_FILE_REASON)
    if is_lfs_pointer(path):
        return (False, LFS_POINTER_REASON)
    return (True, "")


def thumbnail_for(asset_path: str, library_dir: str, thumbs_dir: str) -> str | None:
    """Return the repository path of an asset's thumbnail.

    ``library/photo.jpg`` maps to ``thumbs/thumb_photo.jpg``; paths outside
    the library have no thumbnail.
    """
    parts = Path(asset_path).parts
    if not parts or parts[0] != library_dir:
        return None
    return f"{thumbs_dir}/thumb_{Path(asset_path).name}"
