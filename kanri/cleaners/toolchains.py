"""Cleaners for toolchain caches that live at a single well-known location."""

import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from kanri.core.cleaner import CleanableItem, Cleaner
from kanri.core.utils import calculate_dir_size
from kanri.cleaners import CLEANER_REGISTRY

logger = logging.getLogger("kanri.cleaners.toolchains")


class LocationCleaner(Cleaner):
    """
    Cleaner for one cache directory at a fixed location.

    Subclasses list environment overrides as (variable, subpath) pairs, tried
    in order, and a fallback path relative to the home directory.
    """

    env_overrides: Sequence[Tuple[str, str]] = ()
    home_fallback: str = ""
    item_name: str = ""

    def __init__(self, home: Optional[str] = None):
        self.home = Path(home) if home else Path.home()

    def resolve_path(self) -> Path:
        """
        Resolve the cache directory for this toolchain.

        Returns:
            The first environment override that is set, otherwise the home fallback
        """
        for variable, subpath in self.env_overrides:
            value = os.environ.get(variable)
            if value:
                return Path(value) / subpath if subpath else Path(value)
        return self.home / self.home_fallback

    def scan(self) -> List[CleanableItem]:
        path = self.resolve_path()
        if not path.is_dir():
            logger.debug(f"{self.item_name} not found: {path}")
            return []

        size = calculate_dir_size(path)
        logger.info(f"Found {self.item_name}: {path} ({size} bytes)")
        return [CleanableItem(self.item_name, path, size)]


class GoCleaner(LocationCleaner):
    """Cleaner for the Go module cache."""

    env_overrides = (("GOMODCACHE", ""), ("GOPATH", os.path.join("pkg", "mod")))
    home_fallback = os.path.join("go", "pkg", "mod")
    item_name = "Go module cache"

    @property
    def name(self) -> str:
        return "Go"

    @property
    def icon(self) -> str:
        return "🐹"

    @property
    def description(self) -> str:
        return "Removes the Go module cache (GOMODCACHE, GOPATH/pkg/mod or ~/go/pkg/mod)"


class GradleCleaner(LocationCleaner):
    """Cleaner for the Gradle user home."""

    env_overrides = (("GRADLE_USER_HOME", ""),)
    home_fallback = ".gradle"
    item_name = "Gradle cache"

    @property
    def name(self) -> str:
        return "Gradle"

    @property
    def icon(self) -> str:
        return "🐘"

    @property
    def description(self) -> str:
        return "Removes the Gradle cache (GRADLE_USER_HOME or ~/.gradle)"


class XcodeCleaner(LocationCleaner):
    """Cleaner for Xcode DerivedData."""

    home_fallback = os.path.join("Library", "Developer", "Xcode", "DerivedData")
    item_name = "Xcode DerivedData"

    @property
    def name(self) -> str:
        return "Xcode"

    @property
    def icon(self) -> str:
        return "🔨"

    @property
    def description(self) -> str:
        return "Removes Xcode DerivedData (~/Library/Developer/Xcode/DerivedData)"


# Register these cleaners
CLEANER_REGISTRY["go"] = GoCleaner
CLEANER_REGISTRY["gradle"] = GradleCleaner
CLEANER_REGISTRY["xcode"] = XcodeCleaner
