"""
Marker-file cleaners for per-project build artifacts.

Every ecosystem handled here follows the same pattern: walk a directory tree,
recognise a project by a marker file, and report the artifact directories
that sit next to it. The ecosystems only differ in their ProjectRule, so a
single ProjectCleaner does the work and each registered cleaner just picks
its rule.
"""

import fnmatch
import logging
import os
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from kanri.core.cleaner import CleanableItem, Cleaner, clean_items
from kanri.core.utils import calculate_dir_size, walk_tree
from kanri.cleaners import CLEANER_REGISTRY

logger = logging.getLogger("kanri.cleaners.projects")

# Heavy directories no project scan ever descends into
DEFAULT_PRUNE = ("target", ".git", "node_modules", ".cache")


class ProjectRule:
    """
    Detection rule for one ecosystem.

    Args:
        project_markers: Glob patterns matched against file names in a
            directory to recognise a project root. None accepts any directory.
        artifacts: Names of artifact directories next to the marker
        artifact_markers: Relative paths of which at least one must exist
            inside an artifact directory for it to count. None accepts any.
        prune: Extra directory names never descended into, on top of
            DEFAULT_PRUNE
    """

    def __init__(self, project_markers: Optional[Sequence[str]], artifacts: Sequence[str],
                 artifact_markers: Optional[Sequence[str]] = None, prune: Sequence[str] = ()):
        self.project_markers = tuple(project_markers) if project_markers is not None else None
        self.artifacts = tuple(artifacts)
        self.artifact_markers = tuple(artifact_markers) if artifact_markers is not None else None
        self.prune = frozenset(DEFAULT_PRUNE) | frozenset(prune)

    def is_project(self, filenames: Sequence[str]) -> bool:
        if self.project_markers is None:
            return True
        return any(fnmatch.fnmatchcase(f, pattern)
                   for f in filenames for pattern in self.project_markers)

    def is_artifact(self, path: str) -> bool:
        if not os.path.isdir(path):
            return False
        if self.artifact_markers is None:
            return True
        return any(os.path.exists(os.path.join(path, marker)) for marker in self.artifact_markers)


RUST_RULE = ProjectRule(["Cargo.toml"], ["target"])
NODE_RULE = ProjectRule(["package.json"], ["node_modules"])
FLUTTER_RULE = ProjectRule(["pubspec.yaml"], ["build", ".dart_tool"], prune=["build", ".dart_tool"])
HASKELL_RULE = ProjectRule(["*.cabal", "stack.yaml"], [".stack-work", "dist", "dist-newstyle"])
PYTHON_RULE = ProjectRule(None, ["venv", ".venv", "env", ".env"],
                          artifact_markers=["pyvenv.cfg", os.path.join("bin", "activate")])


def find_projects(search_path, rule: ProjectRule) -> List[Tuple[Path, List[Path], int]]:
    """
    Find projects under a directory that have artifacts according to a rule.

    Args:
        search_path: Directory to search
        rule: Detection rule for the ecosystem

    Returns:
        (project_root, artifact_dirs, total_size) for every project found

    Raises:
        ScanError: If the tree cannot be walked
    """
    projects = []
    for dirpath, dirnames, filenames in walk_tree(search_path, rule.prune):
        if not rule.is_project(filenames):
            continue

        artifacts = [os.path.join(dirpath, name) for name in rule.artifacts]
        artifacts = [a for a in artifacts if rule.is_artifact(a)]
        if not artifacts:
            continue

        # Artifacts are reported whole, never searched for nested projects
        found = {os.path.basename(a) for a in artifacts}
        dirnames[:] = [d for d in dirnames if d not in found]

        size = sum(calculate_dir_size(a) for a in artifacts)
        logger.debug(f"Found project {dirpath} with artifacts {artifacts} ({size} bytes)")
        projects.append((Path(dirpath), [Path(a) for a in artifacts], size))

    return projects


def clean_projects(items: Sequence[CleanableItem]) -> List[str]:
    """Remove the artifacts of previously scanned projects."""
    return clean_items(items)


class ProjectCleaner(Cleaner):
    """Cleaner for build artifacts that live inside project directories."""

    rule: ProjectRule

    def __init__(self, search_path=None):
        self.search_path = Path(search_path) if search_path else Path.cwd()

    @classmethod
    def from_args(cls, args) -> "ProjectCleaner":
        return cls(getattr(args, "path", None))

    def scan(self) -> List[CleanableItem]:
        logger.info(f"Searching {self.search_path} for {self.name} projects")
        items = []
        for root, artifacts, size in find_projects(self.search_path, self.rule):
            path = artifacts[0] if len(artifacts) == 1 else root
            items.append(CleanableItem(str(root), path, size, targets=artifacts))
        logger.info(f"Found {len(items)} {self.name} projects with artifacts")
        return items


class RustCleaner(ProjectCleaner):
    """Cleaner for Cargo target directories."""

    rule = RUST_RULE

    @property
    def name(self) -> str:
        return "Rust"

    @property
    def icon(self) -> str:
        return "🦀"

    @property
    def description(self) -> str:
        return "Removes target/ directories of Cargo projects"


class NodeCleaner(ProjectCleaner):
    """Cleaner for node_modules directories."""

    rule = NODE_RULE

    @property
    def name(self) -> str:
        return "Node.js"

    @property
    def icon(self) -> str:
        return "📦"

    @property
    def description(self) -> str:
        return "Removes node_modules/ directories of projects with a package.json"


class FlutterCleaner(ProjectCleaner):
    """Cleaner for Flutter build outputs."""

    rule = FLUTTER_RULE

    @property
    def name(self) -> str:
        return "Flutter"

    @property
    def icon(self) -> str:
        return "🦋"

    @property
    def description(self) -> str:
        return "Removes build/ and .dart_tool/ directories of Flutter projects"


class HaskellCleaner(ProjectCleaner):
    """Cleaner for Stack and Cabal build directories."""

    rule = HASKELL_RULE

    @property
    def name(self) -> str:
        return "Haskell"

    @property
    def icon(self) -> str:
        return "λ"

    @property
    def description(self) -> str:
        return "Removes .stack-work/, dist/ and dist-newstyle/ of Stack and Cabal projects"


class PythonCleaner(ProjectCleaner):
    """Cleaner for Python virtual environments."""

    rule = PYTHON_RULE

    @property
    def name(self) -> str:
        return "Python"

    @property
    def icon(self) -> str:
        return "🐍"

    @property
    def description(self) -> str:
        return "Removes virtual environments (venv, .venv, env, .env)"


# Register these cleaners
CLEANER_REGISTRY["rust"] = RustCleaner
CLEANER_REGISTRY["node"] = NodeCleaner
CLEANER_REGISTRY["flutter"] = FlutterCleaner
CLEANER_REGISTRY["haskell"] = HaskellCleaner
CLEANER_REGISTRY["python"] = PythonCleaner
