"""
Timestamp versioning of remote archive paths.

Every archive run uploads under ``<destination>/<YYYYMMDD_HHMMSS>/...``. The
timestamp segment ("generation") is the only thing that groups and orders
versions of the same file, so it is parsed once when a remote path is
ingested and carried around as a value instead of being re-parsed.
"""

import re
from datetime import datetime
from functools import total_ordering
from typing import Optional

GENERATION_FORMAT = "%Y%m%d_%H%M%S"

_TOKEN_RE = re.compile(r"[0-9]{8}_[0-9]{6}")


@total_ordering
class Generation:
    """A ``YYYYMMDD_HHMMSS`` token identifying one archive run."""

    __slots__ = ("token",)

    def __init__(self, token: str):
        if not self.is_token(token):
            raise ValueError(f"Not a generation token: {token!r}")
        self.token = token

    @staticmethod
    def is_token(segment: str) -> bool:
        """Check whether a path segment has the exact generation shape."""
        return _TOKEN_RE.fullmatch(segment) is not None

    @classmethod
    def now(cls) -> "Generation":
        """Create a generation for the current local time."""
        return cls(datetime.now().strftime(GENERATION_FORMAT))

    @property
    def timestamp(self) -> Optional[datetime]:
        """The timestamp as a datetime, or None if the digits are not a real date."""
        try:
            return datetime.strptime(self.token, GENERATION_FORMAT)
        except ValueError:
            return None

    def __eq__(self, other) -> bool:
        if not isinstance(other, Generation):
            return NotImplemented
        return self.token == other.token

    def __lt__(self, other) -> bool:
        if not isinstance(other, Generation):
            return NotImplemented
        # Fixed width and zero padded, so string order is chronological order
        return self.token < other.token

    def __hash__(self) -> int:
        return hash(self.token)

    def __str__(self) -> str:
        return self.token

    def __repr__(self) -> str:
        return f"Generation({self.token!r})"


class VersionedPath:
    """
    A remote path split around its generation segment.

    Attributes:
        raw: The remote path exactly as listed
        generation: The first segment shaped like a generation, or None
        normalized: The path with ``/<generation>/`` collapsed to ``/``
    """

    __slots__ = ("raw", "generation", "normalized")

    def __init__(self, raw: str, generation: Optional[Generation], normalized: str):
        self.raw = raw
        self.generation = generation
        self.normalized = normalized

    @classmethod
    def parse(cls, remote_path: str) -> "VersionedPath":
        generation = None
        for segment in remote_path.split("/"):
            if Generation.is_token(segment):
                generation = Generation(segment)
                break

        if generation is None:
            return cls(remote_path, None, remote_path)

        normalized = remote_path.replace(f"/{generation.token}/", "/")
        return cls(remote_path, generation, normalized)

    def __repr__(self) -> str:
        return f"VersionedPath({self.raw!r}, generation={self.generation!r})"


def versioned_destination(destination: str, generation: Generation) -> str:
    """Build ``<destination>/<generation>`` for a new archive run."""
    return f"{destination.rstrip('/')}/{generation.token}"
