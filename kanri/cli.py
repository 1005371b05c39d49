#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command-line interface for Kanri.

This module provides the main command-line interface for the Kanri tool, using
argparse to parse arguments and subcommands.
"""

import argparse
import logging
import os
import sys
from typing import Dict, List, Optional, Type

from kanri import __version__
from kanri.archive.archiver import archive_large_files
from kanri.archive.catalog import ArchiveIndex
from kanri.archive.restore import (
    RestoreMode,
    digests_for_index,
    resolve_restore_set,
    restore_archive_by_id,
    restore_files,
)
from kanri.archive.storage import B2Client, StorageClient
from kanri.cleaners import CLEANER_REGISTRY
from kanri.cleaners.large_files import GIB, parse_extensions, resolve_include_flags
from kanri.cleaners.projects import ProjectCleaner
from kanri.config import (
    KEY_ENV,
    KEY_ID_ENV,
    B2Config,
    Config,
    StorageConfig,
    default_config_path,
    load_config,
    save_config,
)
from kanri.core.cleaner import CleanableItem, Cleaner
from kanri.core.errors import ConfigError, KanriError, ScanError
from kanri.core.utils import human_readable_size

# Configure logging
logger = logging.getLogger("kanri")


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """
    Set up logging configuration.

    Args:
        verbose: Whether to enable verbose logging (INFO level)
        debug: Whether to enable debug logging (DEBUG level)
    """
    if debug:
        log_level = logging.DEBUG
    elif verbose:
        log_level = logging.INFO
    else:
        log_level = logging.ERROR

    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Configure root logger
    logging.basicConfig(level=log_level, format=log_format)


def get_available_cleaners() -> Dict[str, Type[Cleaner]]:
    """
    Get available cleaners.

    Returns:
        Dictionary mapping cleaner names to cleaner classes
    """
    return CLEANER_REGISTRY


def _add_size_filters(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path", type=str, default=None,
        help="Directory to search (default: current directory)"
    )
    parser.add_argument(
        "--min-size-gb", type=float, default=1.0,
        help="Minimum size in GiB (default: 1)"
    )
    parser.add_argument(
        "--extensions", type=str, default=None,
        help="Comma-separated file extensions to include, e.g. .ckpt,.bin"
    )
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--files-only", action="store_true", help="Only consider files")
    group.add_argument("--dirs-only", action="store_true", help="Only consider directories")


def create_parser() -> argparse.ArgumentParser:
    """
    Create the command-line argument parser.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description="Kanri - Reclaim disk space from build artifacts and caches, and archive large files"
    )
    parser.add_argument(
        "--version", action="version", version=f"Kanri {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging (INFO level)"
    )
    parser.add_argument(
        "-X", "--debug", action="store_true", help="Enable debug logging (DEBUG level)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # List command
    subparsers.add_parser("list", help="List available cleaners")

    # Clean command
    clean_parser = subparsers.add_parser("clean", help="Scan for and remove reclaimable items")
    clean_parser.add_argument(
        "cleaner", choices=sorted(get_available_cleaners().keys()),
        help="Cleaner to run"
    )
    clean_parser.add_argument(
        "--dry-run", action="store_true",
        help="Only report what would be removed"
    )
    clean_parser.add_argument(
        "-y", "--yes", action="store_true",
        help="Do not ask for confirmation before removing"
    )
    clean_parser.add_argument(
        "--safe-only", action="store_true",
        help="Only include caches known to be safe to delete (cache cleaner)"
    )
    _add_size_filters(clean_parser)

    # Archive command
    archive_parser = subparsers.add_parser("archive", help="Upload large items to remote storage")
    archive_subparsers = archive_parser.add_subparsers(
        dest="archive_target", required=True, help="What to archive"
    )
    large_parser = archive_subparsers.add_parser("large-files", help="Archive large files and directories")
    _add_size_filters(large_parser)
    large_parser.add_argument(
        "--to", dest="destination", required=True,
        help="Remote destination prefix"
    )
    large_parser.add_argument(
        "--delete-after", action="store_true",
        help="Delete local copies once the archive is recorded"
    )
    large_parser.add_argument(
        "--dry-run", action="store_true",
        help="Only show what would be uploaded"
    )
    large_parser.add_argument(
        "-y", "--yes", action="store_true",
        help="Do not ask for confirmation before deleting local copies"
    )

    # Restore command
    restore_parser = subparsers.add_parser("restore", help="Download archived files")
    source = restore_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--from", dest="source", help="Remote prefix to restore from")
    source.add_argument("--id", dest="archive_id", help="Restore exactly one catalogued archive")
    restore_parser.add_argument(
        "--to", dest="target", default=".",
        help="Local directory to restore into (default: current directory)"
    )
    restore_parser.add_argument(
        "--mode", choices=[mode.value for mode in RestoreMode], default=RestoreMode.LATEST.value,
        help="latest: newest generation of each file; version: one generation; raw: everything as stored"
    )
    restore_parser.add_argument(
        "--version", dest="generation",
        help="Generation to restore (YYYYMMDD_HHMMSS) with --mode version"
    )
    restore_parser.add_argument(
        "--dry-run", action="store_true",
        help="Only show what would be downloaded"
    )

    # Diagnose command
    diagnose_parser = subparsers.add_parser("diagnose", help="Summarize reclaimable space across all cleaners")
    diagnose_parser.add_argument(
        "--path", type=str, default=None,
        help="Directory to search for projects (default: current directory)"
    )
    diagnose_parser.add_argument(
        "--threshold-gb", type=float, default=None,
        help="Only show categories with at least this many GiB"
    )

    # List archives command
    subparsers.add_parser("list-archives", help="List recorded archives")

    # Config command
    config_parser = subparsers.add_parser("config", help="Show or edit configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_action", help="Config action")
    config_subparsers.add_parser("show", help="Show current configuration")
    init_parser = config_subparsers.add_parser("init", help="Write storage configuration")
    init_parser.add_argument("--bucket", required=True, help="Default bucket")
    init_parser.add_argument("--key-id", default=None, help=f"Application key id (prefer {KEY_ID_ENV})")
    init_parser.add_argument("--key", default=None, help=f"Application key (prefer {KEY_ENV})")
    init_parser.add_argument("--backend", choices=["b2", "rclone"], default="b2", help="Storage backend")
    init_parser.add_argument("--rclone-remote", default=None, help="Rclone remote, e.g. b2:my-bucket")
    config_subparsers.add_parser("test", help="Check that the storage backend accepts the credentials")

    return parser


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on the terminal. Anything but yes declines."""
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def print_items(cleaner: Cleaner, items: List[CleanableItem]) -> None:
    if not items:
        print(f"{cleaner.icon} {cleaner.name}: nothing to clean")
        return

    print(f"{cleaner.icon} {cleaner.name}: {len(items)} items")
    for item in items:
        label = f" [{item.safety_label}]" if item.safety_label else ""
        print(f"  {item.formatted_size():>12}  {item.name}{label}")
    total = sum(item.size for item in items)
    print(f"  Total: {human_readable_size(total)}")


def run_cleaner(cleaner_name: str, args: argparse.Namespace) -> bool:
    """
    Run a specific cleaner.

    Args:
        cleaner_name: Name of the cleaner to run
        args: Parsed command-line arguments

    Returns:
        True if cleaning was successful (or declined), False otherwise
    """
    cleaner_class = get_available_cleaners().get(cleaner_name)
    if not cleaner_class:
        logger.error(f"Cleaner '{cleaner_name}' not found")
        return False

    logger.info(f"Running cleaner: {cleaner_name}")

    try:
        cleaner = cleaner_class.from_args(args)
        items = cleaner.scan()
        print_items(cleaner, items)
        if not items:
            return True

        if args.dry_run:
            cleaner.clean(dry_run=True, items=items)
            print("Dry run: nothing was removed")
            return True

        if not args.yes and not confirm("Remove these items?"):
            print("Cancelled")
            return True

        cleaned = cleaner.clean(items=items)
        print(f"Removed {len(cleaned)}/{len(items)} items")
        return True
    except (KanriError, ValueError) as e:
        logger.error(f"Error running cleaner '{cleaner_name}': {e}")
        logger.debug("Exception details:", exc_info=True)
        return False


DIAGNOSE_SKIP = ("large-files",)


def run_diagnose(args: argparse.Namespace) -> int:
    """
    Scan with every cleaner and print how much each one could reclaim.

    Nothing is removed. A cleaner that fails to scan is logged and left out
    of the report.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    search_path = args.path or os.getcwd()
    threshold = int(args.threshold_gb * GIB) if args.threshold_gb is not None else None

    rows = []
    for name, cleaner_class in sorted(get_available_cleaners().items()):
        if name in DIAGNOSE_SKIP:
            continue
        cleaner = cleaner_class.from_args(args)
        try:
            items = cleaner.scan()
        except ScanError as e:
            logger.warning(f"Skipping {name}: {e}")
            continue

        total = sum(item.size for item in items)
        if not items or (threshold is not None and total < threshold):
            continue

        hint = f"kanri clean {name}"
        if isinstance(cleaner, ProjectCleaner):
            hint += f" --path {search_path}"
        rows.append((cleaner, len(items), total, hint))

    if not rows:
        print("Nothing to clean")
        return 0

    for cleaner, count, total, hint in rows:
        print(f"{cleaner.icon} {cleaner.name}: {count} items, {human_readable_size(total)}  ->  {hint}")
    print(f"Total reclaimable: {human_readable_size(sum(row[2] for row in rows))}")
    return 0


def create_client(config: Config) -> StorageClient:
    """Build the configured storage client, checking the b2 tool is installed."""
    if config.storage_backend() == "b2" and not B2Client.is_installed():
        raise ConfigError("The b2 command-line tool is not installed (pip install b2)")
    return config.create_storage_client()


def run_archive(args: argparse.Namespace) -> int:
    include_files, include_dirs = resolve_include_flags(args.files_only, args.dirs_only)
    config = load_config()
    client = create_client(config)
    bucket = config.storage_bucket()

    if args.delete_after and not args.dry_run and not args.yes:
        if not confirm("Local copies will be deleted after upload. Continue?"):
            print("Cancelled")
            return 0

    result = archive_large_files(
        client, bucket,
        search_path=args.path or os.getcwd(),
        destination=args.destination,
        min_size=int(args.min_size_gb * GIB),
        extensions=parse_extensions(args.extensions),
        include_files=include_files,
        include_dirs=include_dirs,
        delete_after=args.delete_after,
        dry_run=args.dry_run,
    )

    if result is None:
        print("No items matched")
    elif args.dry_run:
        for item, remote_path in result:
            print(f"  {human_readable_size(item.size):>12}  {item.path} -> {remote_path}")
        print("Dry run: nothing was uploaded")
    else:
        print(f"Archived {len(result.items)} items ({human_readable_size(result.total_size)})")
        print(f"Archive ID: {result.id}")
    return 0


def run_restore(args: argparse.Namespace) -> int:
    config = load_config()
    client = create_client(config)
    bucket = config.storage_bucket()
    index = ArchiveIndex.load()

    client.authorize()

    if args.archive_id:
        report = restore_archive_by_id(client, bucket, index, args.archive_id, args.target,
                                       dry_run=args.dry_run)
    else:
        remote_files = client.list_files(bucket, args.source)
        if not remote_files:
            print(f"No files found under {args.source}")
            return 0
        pairs = resolve_restore_set(remote_files, args.source, RestoreMode(args.mode), args.generation)
        if args.dry_run:
            for pair in pairs:
                print(f"  {pair.remote_path} -> {os.path.join(args.target, pair.local_path)}")
        report = restore_files(client, bucket, pairs, args.target, digests_for_index(index),
                               dry_run=args.dry_run)

    if args.dry_run:
        print("Dry run: nothing was downloaded")
        return 0

    print(f"Restored {len(report.restored)} files ({len(report.verified)} verified)")
    for path in report.mismatches:
        print(f"  Checksum mismatch: {path}")
    return 0


def list_archives() -> int:
    index = ArchiveIndex.load()
    if not index.archives:
        print("No archives found")
        return 0

    print(f"Archives ({len(index.archives)}):")
    for archive in index.archives:
        print("-" * 80)
        print(f"ID:          {archive.id}")
        print(f"Created:     {archive.created_at.strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"Cleaner:     {archive.cleaner}")
        print(f"Destination: {archive.destination}")
        print(f"Items:       {len(archive.items)}")
        print(f"Total size:  {human_readable_size(archive.total_size)}")
    return 0


def run_config(args: argparse.Namespace) -> int:
    if args.config_action == "init":
        config = load_config()
        config.b2 = B2Config(bucket=args.bucket, application_key_id=args.key_id,
                             application_key=args.key)
        config.storage = StorageConfig(backend=args.backend, rclone_remote=args.rclone_remote)
        path = save_config(config)
        print(f"Saved configuration to {path}")
        if not args.key_id or not args.key:
            print(f"Set credentials with {KEY_ID_ENV} and {KEY_ENV}")
        return 0

    if args.config_action == "test":
        config = load_config()
        create_client(config).authorize()
        print(f"Authorized with the {config.storage_backend()} backend")
        return 0

    config = load_config()
    print(f"Config file: {default_config_path()}")
    print(f"Backend:     {config.storage_backend()}")
    if config.b2:
        print(f"Bucket:      {config.b2.bucket}")
        print(f"Key ID:      {'****' if config.b2.application_key_id else '(environment)'}")
        print(f"Key:         {'****' if config.b2.application_key else '(environment)'}")
    else:
        print("B2 is not configured; run 'kanri config init --bucket <name>'")
    if config.storage and config.storage.rclone_remote:
        print(f"Rclone:      {config.storage.rclone_remote}")
    return 0


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the application.

    Args:
        args: Command-line arguments (if None, use sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if args is None:
        args = sys.argv[1:]

    parser = create_parser()
    parser.prog = "kanri"

    if len(args) == 0:
        parser.print_help()
        return 0

    parsed_args = parser.parse_args(args)

    # Set up logging
    setup_logging(parsed_args.verbose, parsed_args.debug)

    if parsed_args.command == "list":
        print("Available cleaners:")
        for name, cleaner_class in sorted(get_available_cleaners().items()):
            cleaner = cleaner_class()
            print(f"  - {name}: {cleaner.description}")
        return 0
    elif parsed_args.command == "clean":
        success = run_cleaner(parsed_args.cleaner, parsed_args)
        if not success:
            logger.warning(f"Cleaner '{parsed_args.cleaner}' failed")
        return 0 if success else 1

    handlers = {
        "archive": run_archive,
        "restore": run_restore,
        "diagnose": run_diagnose,
        "list-archives": lambda _args: list_archives(),
        "config": run_config,
    }
    handler = handlers.get(parsed_args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        return handler(parsed_args)
    except (KanriError, ValueError) as e:
        logger.error(f"{parsed_args.command} failed: {e}")
        logger.debug("Exception details:", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
