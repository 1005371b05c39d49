"""
Kanri - Reclaim disk space used by local development environments

This tool finds build artifacts, package caches and application caches left
behind by Rust, Node.js, Flutter, Haskell, Python, Go, Gradle and Xcode,
and can archive large files to remote object storage before deleting them.
"""

__version__ = "0.1.0"
