"""
Document store interface and the in-memory implementation.

Buckets are flat namespaces of keys; a key may contain '/' to group objects
under a prefix (knowledge-base/{process_id}/kb.md). Knowledge base and skill
writes are upserts; change log, pending change and chat log writes are
create-only and fail with ConflictError on collision.
"""

import itertools
import json
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .types import StoredObject, NotFoundError, ConflictError
from ..util.logging import logger


class IDocumentStore(ABC):
    """Abstract interface for object store operations."""

    @abstractmethod
    def download(self, bucket: str, key: str) -> bytes:
        """Return the object's bytes or raise NotFoundError."""
        pass

    @abstractmethod
    def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream",
               overwrite: bool = False, cache_control: Optional[str] = None) -> None:
        """Write an object. Raises ConflictError if it exists and overwrite is False."""
        pass

    @abstractmethod
    def list(self, bucket: str, prefix: str = "", limit: int = 100,
             sort_by: str = "created_at", order: str = "desc") -> List[StoredObject]:
        """List objects directly under prefix."""
        pass

    def download_text(self, bucket: str, key: str) -> str:
        return self.download(bucket, key).decode("utf-8")

    def download_json(self, bucket: str, key: str) -> Any:
        return json.loads(self.download(bucket, key).decode("utf-8"))

    def upload_text(self, bucket: str, key: str, text: str, content_type: str = "text/markdown",
                    overwrite: bool = False, cache_control: Optional[str] = None) -> None:
        self.upload(bucket, key, text.encode("utf-8"), content_type=content_type,
                    overwrite=overwrite, cache_control=cache_control)

    def upload_json(self, bucket: str, key: str, payload: Any, overwrite: bool = False,
                    cache_control: Optional[str] = None) -> None:
        body = json.dumps(payload, indent=2)
        self.upload(bucket, key, body.encode("utf-8"), content_type="application/json",
                    overwrite=overwrite, cache_control=cache_control)

    def health_check(self) -> bool:
        """Check if the store answers a listing."""
        try:
            self.list("skills", limit=1)
            return True
        except Exception:
            return False


def split_key(prefix: str, key: str) -> Optional[str]:
    """Return key relative to prefix if it sits directly under it, else None."""
    prefix = prefix.strip("/")
    if prefix:
        if not key.startswith(prefix + "/"):
            return None
        key = key[len(prefix) + 1:]
    if not key or "/" in key:
        return None
    return key


def sort_listing(entries: List[Tuple[StoredObject, int]], sort_by: str, order: str) -> List[StoredObject]:
    """Sort (object, insertion sequence) pairs by name or creation time."""
    reverse = order.lower() == "desc"
    if sort_by == "name":
        ordered = sorted(entries, key=lambda e: e[0].name, reverse=reverse)
    else:
        # Insertion sequence breaks ties between objects created in the same instant
        ordered = sorted(entries, key=lambda e: (e[0].created_at, e[1]), reverse=reverse)
    return [obj for obj, _ in ordered]


class InMemoryDocumentStore(IDocumentStore):
    """Process-local store used for development and tests."""

    def __init__(self):
        self._objects: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._sequence = itertools.count()

    def download(self, bucket: str, key: str) -> bytes:
        entry = self._objects.get(bucket, {}).get(key)
        if entry is None:
            logger.log_store_operation("download", bucket, key, status="not_found")
            raise NotFoundError(bucket, key)
        logger.log_store_operation("download", bucket, key)
        return entry["data"]

    def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream",
               overwrite: bool = False, cache_control: Optional[str] = None) -> None:
        objects = self._objects.setdefault(bucket, {})
        existing = objects.get(key)
        if existing is not None and not overwrite:
            logger.log_store_operation("upload", bucket, key, status="conflict")
            raise ConflictError(bucket, key)

        objects[key] = {
            "data": bytes(data),
            "content_type": content_type,
            "cache_control": cache_control,
            "created_at": existing["created_at"] if existing else datetime.now(timezone.utc),
            "sequence": existing["sequence"] if existing else next(self._sequence),
        }
        logger.log_store_operation("upload", bucket, key, details={"bytes": len(data), "overwrite": overwrite})

    def list(self, bucket: str, prefix: str = "", limit: int = 100,
             sort_by: str = "created_at", order: str = "desc") -> List[StoredObject]:
        entries = []
        for key, entry in self._objects.get(bucket, {}).items():
            name = split_key(prefix, key)
            if name is None:
                continue
            obj = StoredObject(name=name, created_at=entry["created_at"], size=len(entry["data"]))
            entries.append((obj, entry["sequence"]))

        listing = sort_listing(entries, sort_by, order)[:limit]
        logger.log_store_operation("list", bucket, prefix, details={"count": len(listing)})
        return listing
