"""
Filesystem-backed document store: one directory per bucket under a root.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .index import IDocumentStore, sort_listing
from .types import StoredObject, StoreError, NotFoundError, ConflictError
from ..util.logging import logger


class LocalDocumentStore(IDocumentStore):
    """Stores each object as a file at {root}/{bucket}/{key}."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, bucket: str, key: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        path = (bucket_dir / key).resolve()
        # Keys come from LLM tool arguments; keep them inside the bucket
        if bucket_dir not in path.parents:
            raise StoreError(f"Invalid object key: {key}")
        return path

    def download(self, bucket: str, key: str) -> bytes:
        path = self._path(bucket, key)
        try:
            data = path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            logger.log_store_operation("download", bucket, key, status="not_found")
            raise NotFoundError(bucket, key)
        except OSError as e:
            logger.log_store_operation("download", bucket, key, status="failed", details={"error": str(e)})
            raise StoreError(str(e)) from e

        logger.log_store_operation("download", bucket, key)
        return data

    def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream",
               overwrite: bool = False, cache_control: Optional[str] = None) -> None:
        path = self._path(bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if overwrite:
                tmp_path = path.with_name(path.name + ".tmp")
                tmp_path.write_bytes(data)
                os.replace(tmp_path, path)
            else:
                # 'x' fails if the file exists, which makes the create atomic
                with open(path, "xb") as f:
                    f.write(data)
        except FileExistsError:
            logger.log_store_operation("upload", bucket, key, status="conflict")
            raise ConflictError(bucket, key)
        except OSError as e:
            logger.log_store_operation("upload", bucket, key, status="failed", details={"error": str(e)})
            raise StoreError(str(e)) from e

        logger.log_store_operation("upload", bucket, key, details={"bytes": len(data), "overwrite": overwrite})

    def list(self, bucket: str, prefix: str = "", limit: int = 100,
             sort_by: str = "created_at", order: str = "desc") -> List[StoredObject]:
        prefix = prefix.strip("/")
        directory = self._path(bucket, prefix) if prefix else (self.root / bucket)
        if not directory.is_dir():
            logger.log_store_operation("list", bucket, prefix, details={"count": 0})
            return []

        entries = []
        for path in directory.iterdir():
            if not path.is_file() or path.name.endswith(".tmp"):
                continue
            stat = path.stat()
            created_at = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            # Nanosecond mtime orders files written within the same second
            entries.append((StoredObject(name=path.name, created_at=created_at, size=stat.st_size),
                            stat.st_mtime_ns))

        listing = sort_listing(entries, sort_by, order)[:limit]
        logger.log_store_operation("list", bucket, prefix, details={"count": len(listing)})
        return listing
