"""Core abstractions shared by all cleaners and the archive engine."""
