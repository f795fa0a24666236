"""Small filesystem helpers."""

from __future__ import annotations

import os
import shutil
from pathlib import Path


def file_exists(file: str | Path) -> bool:
    """True if ``file`` exists and is not a directory."""
    path = Path(file)
    return path.exists() and not path.is_dir()


def get_file_extension(file: str | Path) -> str:
    """The extension of ``file`` including the dot, or an empty string."""
    return Path(file).suffix


def directory_exists(directory: str | Path) -> bool:
    return Path(directory).is_dir()


def create_directory(directory: str | Path) -> bool:
    """Create ``directory`` with its parents; False if it already existed."""
    if Path(directory).exists():
        return False
    os.makedirs(directory)
    return True


def clear_directory_contents(directory: str | Path) -> bool:
    """Remove everything inside ``directory``; False on failure."""
    try:
        for entry in Path(directory).iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
        return True
    except OSError:
        return False


def prepare_output_directory(directory: str | Path) -> bool:
    """Create ``directory`` or empty it if it already exists."""
    if not directory_exists(directory):
        return create_directory(directory)
    return clear_directory_contents(directory)