"""Cleaner for large files and directories, the candidates for archiving."""

import logging
import os
import stat
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from kanri.core.cleaner import CleanableItem, Cleaner
from kanri.core.utils import calculate_dir_size, walk_tree
from kanri.cleaners import CLEANER_REGISTRY

logger = logging.getLogger("kanri.cleaners.large_files")

GIB = 1024 * 1024 * 1024

# Directories already reported by other cleaners
EXCLUDED_DIRS = (
    "node_modules",
    "target",
    ".git",
    ".stack-work",
    "dist",
    "dist-newstyle",
    "__pycache__",
)


class LargeItem:
    """A file or directory at or above the size threshold."""

    def __init__(self, path, size: int, is_dir: bool):
        self.path = Path(path)
        self.size = size
        self.is_dir = is_dir

    def __repr__(self) -> str:
        return f"LargeItem(path={str(self.path)!r}, size={self.size}, is_dir={self.is_dir})"


def resolve_include_flags(files_only: bool, dirs_only: bool) -> Tuple[bool, bool]:
    """
    Translate "files only" / "dirs only" options into include flags.

    Args:
        files_only: Only report files
        dirs_only: Only report directories

    Returns:
        (include_files, include_dirs)

    Raises:
        ValueError: If both options are set
    """
    if files_only and dirs_only:
        raise ValueError("--files-only and --dirs-only cannot be used together")
    if files_only:
        return True, False
    if dirs_only:
        return False, True
    return True, True


def _matches_extension(filename: str, extensions: Sequence[str]) -> bool:
    ext = os.path.splitext(filename)[1]
    if not ext:
        return False
    return any(ext == e or ext[1:] == e for e in extensions)


def find_large_items(search_path, min_size: int, extensions: Optional[Sequence[str]] = None,
                     include_dirs: bool = True, include_files: bool = True) -> List[LargeItem]:
    """
    Find files and directories under a path that are at least min_size bytes.

    The search path itself is never reported, and subtrees owned by other
    cleaners are skipped entirely.

    Args:
        search_path: Directory to search
        min_size: Minimum size in bytes
        extensions: Optional extension allowlist for files (".ckpt" or "ckpt")
        include_dirs: Report directories
        include_files: Report files

    Returns:
        Matching items, largest first

    Raises:
        ScanError: If the tree cannot be walked
    """
    items = []
    for dirpath, dirnames, filenames in walk_tree(search_path, EXCLUDED_DIRS):
        if include_dirs:
            for d in dirnames:
                full = os.path.join(dirpath, d)
                if os.path.islink(full):
                    continue
                size = calculate_dir_size(full)
                if size >= min_size:
                    items.append(LargeItem(full, size, True))

        if include_files:
            for f in filenames:
                if extensions is not None and not _matches_extension(f, extensions):
                    continue
                full = os.path.join(dirpath, f)
                try:
                    st = os.lstat(full)
                except OSError:
                    continue
                if not stat.S_ISREG(st.st_mode):
                    continue
                if st.st_size >= min_size:
                    items.append(LargeItem(full, st.st_size, False))

    items.sort(key=lambda item: item.size, reverse=True)
    logger.debug(f"Found {len(items)} items of at least {min_size} bytes under {search_path}")
    return items


class LargeFilesCleaner(Cleaner):
    """Cleaner that reports large files and directories under a search path."""

    def __init__(self, search_path=None, min_size: int = GIB,
                 extensions: Optional[Sequence[str]] = None,
                 include_dirs: bool = True, include_files: bool = True):
        self.search_path = Path(search_path) if search_path else Path.cwd()
        self.min_size = min_size
        self.extensions = list(extensions) if extensions else None
        self.include_dirs = include_dirs
        self.include_files = include_files

    @classmethod
    def from_args(cls, args) -> "LargeFilesCleaner":
        include_files, include_dirs = resolve_include_flags(
            getattr(args, "files_only", False), getattr(args, "dirs_only", False)
        )
        return cls(
            getattr(args, "path", None),
            min_size=int(getattr(args, "min_size_gb", 1) * GIB),
            extensions=parse_extensions(getattr(args, "extensions", None)),
            include_dirs=include_dirs,
            include_files=include_files,
        )

    @property
    def name(self) -> str:
        return "Large Files"

    @property
    def icon(self) -> str:
        return "📦"

    @property
    def description(self) -> str:
        return "Reports large files and directories (candidates for archiving)"

    def find(self) -> List[LargeItem]:
        return find_large_items(self.search_path, self.min_size, self.extensions,
                                self.include_dirs, self.include_files)

    def scan(self) -> List[CleanableItem]:
        items = []
        for item in self.find():
            type_label = "dir" if item.is_dir else "file"
            items.append(CleanableItem(f"{item.path} ({type_label})", item.path, item.size))
        return items


def parse_extensions(value: Optional[str]) -> Optional[List[str]]:
    """Split a comma-separated extension list such as ".ckpt,.bin"."""
    if not value:
        return None
    return [e.strip() for e in value.split(",") if e.strip()]


# Register this cleaner
CLEANER_REGISTRY["large-files"] = LargeFilesCleaner
