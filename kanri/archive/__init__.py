"""Archiving to remote storage and restoring from it."""
