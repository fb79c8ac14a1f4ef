"""
Supabase Storage backend over its REST API.

Endpoints used:
- GET  {url}/storage/v1/object/{bucket}/{key}       download
- POST {url}/storage/v1/object/{bucket}/{key}       upload (x-upsert header)
- POST {url}/storage/v1/object/list/{bucket}        list
"""

from datetime import datetime
from typing import List, Optional

import requests

from .index import IDocumentStore
from .types import StoredObject, StoreError, NotFoundError, ConflictError
from ..util.logging import logger


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _error_text(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


class SupabaseDocumentStore(IDocumentStore):
    """Document store backed by Supabase Storage buckets."""

    def __init__(self, url: str, service_role_key: str, timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        if not url or not service_role_key:
            raise StoreError("Supabase store requires SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")
        self.base_url = url.rstrip("/") + "/storage/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        })

    def _object_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}/object/{bucket}/{key.lstrip('/')}"

    def download(self, bucket: str, key: str) -> bytes:
        try:
            response = self.session.get(self._object_url(bucket, key), timeout=self.timeout)
        except requests.RequestException as e:
            logger.log_store_operation("download", bucket, key, status="failed", details={"error": str(e)})
            raise StoreError(str(e)) from e

        if response.status_code == 404 or (
                response.status_code == 400 and "not found" in _error_text(response).lower()):
            logger.log_store_operation("download", bucket, key, status="not_found")
            raise NotFoundError(bucket, key)
        if not response.ok:
            message = _error_text(response)
            logger.log_store_operation("download", bucket, key, status="failed", details={"error": message})
            raise StoreError(message)

        logger.log_store_operation("download", bucket, key)
        return response.content

    def upload(self, bucket: str, key: str, data: bytes, content_type: str = "application/octet-stream",
               overwrite: bool = False, cache_control: Optional[str] = None) -> None:
        headers = {
            "Content-Type": content_type,
            "x-upsert": "true" if overwrite else "false",
        }
        if cache_control:
            headers["cache-control"] = cache_control

        try:
            response = self.session.post(self._object_url(bucket, key), data=data,
                                         headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.log_store_operation("upload", bucket, key, status="failed", details={"error": str(e)})
            raise StoreError(str(e)) from e

        if not response.ok:
            message = _error_text(response)
            lowered = message.lower()
            if response.status_code == 409 or "duplicate" in lowered or "already exists" in lowered:
                logger.log_store_operation("upload", bucket, key, status="conflict")
                raise ConflictError(bucket, key)
            logger.log_store_operation("upload", bucket, key, status="failed", details={"error": message})
            raise StoreError(message)

        logger.log_store_operation("upload", bucket, key, details={"bytes": len(data), "overwrite": overwrite})

    def list(self, bucket: str, prefix: str = "", limit: int = 100,
             sort_by: str = "created_at", order: str = "desc") -> List[StoredObject]:
        body = {
            "prefix": prefix.strip("/"),
            "limit": limit,
            "offset": 0,
            "sortBy": {"column": sort_by, "order": order},
        }
        try:
            response = self.session.post(f"{self.base_url}/object/list/{bucket}", json=body,
                                         timeout=self.timeout)
        except requests.RequestException as e:
            logger.log_store_operation("list", bucket, prefix, status="failed", details={"error": str(e)})
            raise StoreError(str(e)) from e

        if not response.ok:
            message = _error_text(response)
            logger.log_store_operation("list", bucket, prefix, status="failed", details={"error": message})
            raise StoreError(message)

        listing = []
        for item in response.json() or []:
            # Folder placeholders come back without an id
            if item.get("id") is None:
                continue
            metadata = item.get("metadata") or {}
            listing.append(StoredObject(
                name=item.get("name", ""),
                created_at=_parse_timestamp(item.get("created_at")),
                size=int(metadata.get("size") or 0),
            ))

        logger.log_store_operation("list", bucket, prefix, details={"count": len(listing)})
        return listing
