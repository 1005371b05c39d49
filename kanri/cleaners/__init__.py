"""Cleaner implementations for various development ecosystems."""

from typing import Dict, Type

from kanri.core.cleaner import Cleaner

# This will be populated by each cleaner module
CLEANER_REGISTRY: Dict[str, Type[Cleaner]] = {}

# Import all cleaner modules to ensure they register themselves
from . import projects
from . import toolchains
from . import app_cache
from . import large_files
