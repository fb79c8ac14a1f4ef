"""
Shared types for the document store adapters.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class StoredObject:
    """One entry of a bucket listing; name is relative to the listed prefix."""
    name: str
    created_at: Optional[datetime] = None
    size: int = 0


class StoreError(Exception):
    """Object store call failed."""


class NotFoundError(StoreError):
    """Requested object does not exist."""

    def __init__(self, bucket: str, key: str):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object not found: {bucket}/{key}")


class ConflictError(StoreError):
    """Create-only upload hit an existing object."""

    def __init__(self, bucket: str, key: str):
        self.bucket = bucket
        self.key = key
        super().__init__(f"Object already exists: {bucket}/{key}")
