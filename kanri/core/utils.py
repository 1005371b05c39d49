"""Utility functions for the Kanri application."""

import hashlib
import logging
import os
import shutil
import stat
import subprocess
import time
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from kanri.core.errors import CommandError, ScanError

logger = logging.getLogger("kanri.utils")

PathLike = Union[str, os.PathLike]

HASH_CHUNK_SIZE = 8192


def run_command(command: List[str], cwd: Optional[str] = None,
                timeout: Optional[int] = None) -> subprocess.CompletedProcess:
    """
    Run an external command and return the completed process.

    Args:
        command: The command and its arguments
        cwd: The working directory to run the command in
        timeout: Timeout in seconds for the command (None waits forever)

    Returns:
        The completed process with captured stdout and stderr

    Raises:
        CommandError: If the command cannot be started, times out or exits non-zero
    """
    logger.debug(f"Running command: {' '.join(command)} in directory: {cwd or os.getcwd()}")

    start_time = time.time()
    try:
        result = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            cwd=cwd,
            timeout=timeout,
        )
    except FileNotFoundError as e:
        raise CommandError(command, stderr=f"{command[0]} is not installed or not in PATH") from e
    except subprocess.TimeoutExpired as e:
        raise CommandError(command, stderr=f"timed out after {timeout} seconds") from e
    except OSError as e:
        raise CommandError(command, stderr=str(e)) from e

    execution_time = time.time() - start_time
    logger.debug(f"Command completed in {execution_time:.2f} seconds with exit code {result.returncode}")

    if result.returncode != 0:
        raise CommandError(command, result.returncode, result.stderr)
    return result


def is_command_available(command: List[str]) -> bool:
    """
    Check whether an external tool can be run.

    Args:
        command: A cheap invocation of the tool, e.g. ["b2", "version"]

    Returns:
        True if the command ran successfully, False otherwise
    """
    try:
        run_command(command, timeout=10)
        return True
    except CommandError as e:
        logger.debug(f"Command not available: {e}")
        return False


def walk_tree(root: PathLike, prune: Iterable[str] = ()) -> Iterator[Tuple[str, List[str], List[str]]]:
    """
    Walk a directory tree top-down without descending into pruned names.

    Args:
        root: Directory to walk
        prune: Directory names that are never descended into

    Yields:
        (dirpath, dirnames, filenames) tuples as produced by os.walk

    Raises:
        ScanError: If the root or any visited directory cannot be listed
    """
    root = os.fspath(root)
    if not os.path.isdir(root):
        raise ScanError(f"Search path is not a readable directory: {root}")

    pruned = set(prune)

    def _raise(error: OSError) -> None:
        raise ScanError(f"Failed to walk directory {error.filename}: {error.strerror}") from error

    for dirpath, dirnames, filenames in os.walk(root, topdown=True, onerror=_raise):
        dirnames[:] = sorted(d for d in dirnames if d not in pruned)
        yield dirpath, dirnames, sorted(filenames)


def calculate_dir_size(path: PathLike) -> int:
    """
    Calculate the size of a file or directory in bytes.

    Only regular files are counted and symbolic links are never followed.
    Entries that disappear or cannot be read while walking are skipped, so the
    result is a best-effort snapshot rather than an exact figure.

    Args:
        path: Path to the file or directory

    Returns:
        Size in bytes
    """
    path = os.fspath(path)
    try:
        st = os.lstat(path)
    except OSError:
        return 0
    if stat.S_ISREG(st.st_mode):
        return st.st_size
    if not stat.S_ISDIR(st.st_mode):
        return 0

    total_size = 0
    for dirpath, dirnames, filenames in os.walk(path):
        for f in filenames:
            fp = os.path.join(dirpath, f)
            try:
                file_stat = os.lstat(fp)
            except OSError:
                continue
            if stat.S_ISREG(file_stat.st_mode):
                total_size += file_stat.st_size

    return total_size


def sha256_file(path: PathLike, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """
    Compute the SHA-256 hex digest of a file by streaming it in chunks.

    Args:
        path: Path to the file
        chunk_size: Number of bytes read per iteration

    Returns:
        Lowercase hex digest
    """
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


def remove_path(path: PathLike) -> None:
    """Remove a file, symlink or directory tree."""
    p = Path(path)
    if p.is_dir() and not p.is_symlink():
        shutil.rmtree(p)
    else:
        p.unlink()


def human_readable_size(size_bytes: int) -> str:
    """
    Convert size in bytes to human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Human-readable size string (e.g., "4.20 MB")
    """
    if size_bytes == 0:
        return "0 B"

    size_names = ["B", "KB", "MB", "GB", "TB"]
    size = float(size_bytes)
    i = 0
    while size >= 1024 and i < len(size_names) - 1:
        size /= 1024
        i += 1

    return f"{size:.2f} {size_names[i]}"
