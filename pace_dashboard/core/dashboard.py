"""
Read-only access to dashboard state: organizations, their processes and
activity runs. Feeds the chat system prompt.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import requests

from .db import get_db, init_db, health_check as db_health_check
from ..util.logging import logger

RUN_COLUMNS = "id, name, document_name, status, current_status_text, created_at"


class IDashboardSource(ABC):
    """Abstract interface for dashboard table reads."""

    @abstractmethod
    def list_recent_runs(self, process_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recently updated runs, optionally for one process."""
        pass

    @abstractmethod
    def list_organizations(self) -> List[Dict[str, Any]]:
        """All organizations, oldest first."""
        pass

    @abstractmethod
    def list_processes(self, org_id: str) -> List[Dict[str, Any]]:
        """Processes of an organization, oldest first."""
        pass

    @abstractmethod
    def count_runs(self, process_id: str) -> int:
        """Number of runs recorded for a process."""
        pass

    def health_check(self) -> bool:
        """Check if the dashboard tables are reachable."""
        return True


class NullDashboardSource(IDashboardSource):
    """Used when no dashboard backend is configured."""

    def list_recent_runs(self, process_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        return []

    def list_organizations(self) -> List[Dict[str, Any]]:
        return []

    def list_processes(self, org_id: str) -> List[Dict[str, Any]]:
        return []

    def count_runs(self, process_id: str) -> int:
        return 0


class SqliteDashboardSource(IDashboardSource):
    """Dashboard tables in a local SQLite file."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        init_db(db_path)

    def health_check(self) -> bool:
        return db_health_check(self.db_path)

    def list_recent_runs(self, process_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        query = f"SELECT {RUN_COLUMNS} FROM activity_runs"
        params: List[Any] = []
        if process_id:
            query += " WHERE process_id = ?"
            params.append(process_id)
        query += " ORDER BY updated_at DESC LIMIT ?"
        params.append(limit)

        with get_db(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]

    def list_organizations(self) -> List[Dict[str, Any]]:
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT id, name, avatar_letter FROM organizations ORDER BY created_at ASC"
            ).fetchall()
        return [dict(row) for row in rows]

    def list_processes(self, org_id: str) -> List[Dict[str, Any]]:
        with get_db(self.db_path) as conn:
            rows = conn.execute(
                "SELECT id, name FROM processes WHERE org_id = ? ORDER BY created_at ASC",
                (org_id,)
            ).fetchall()
        return [dict(row) for row in rows]

    def count_runs(self, process_id: str) -> int:
        with get_db(self.db_path) as conn:
            row = conn.execute(
                "SELECT COUNT(*) FROM activity_runs WHERE process_id = ?", (process_id,)
            ).fetchone()
        return int(row[0]) if row else 0


class SupabaseDashboardSource(IDashboardSource):
    """Dashboard tables read through Supabase's PostgREST endpoint."""

    def __init__(self, url: str, service_role_key: str, timeout: float = 15.0,
                 session: Optional[requests.Session] = None):
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        })

    def _select(self, table: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        response = self.session.get(f"{self.base_url}/{table}", params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json() or []

    def health_check(self) -> bool:
        try:
            self._select("organizations", {"select": "id", "limit": 1})
            return True
        except requests.RequestException as e:
            logger.warning(f"Dashboard health check failed: {e}")
            return False

    def list_recent_runs(self, process_id: Optional[str] = None, limit: int = 10) -> List[Dict[str, Any]]:
        params = {
            "select": RUN_COLUMNS.replace(" ", ""),
            "order": "updated_at.desc",
            "limit": limit,
        }
        if process_id:
            params["process_id"] = f"eq.{process_id}"
        return self._select("activity_runs", params)

    def list_organizations(self) -> List[Dict[str, Any]]:
        return self._select("organizations", {"select": "id,name,avatar_letter", "order": "created_at.asc"})

    def list_processes(self, org_id: str) -> List[Dict[str, Any]]:
        return self._select("processes", {
            "select": "id,name",
            "org_id": f"eq.{org_id}",
            "order": "created_at.asc",
        })

    def count_runs(self, process_id: str) -> int:
        response = self.session.head(
            f"{self.base_url}/activity_runs",
            params={"select": "id", "process_id": f"eq.{process_id}"},
            headers={"Prefer": "count=exact"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        # Content-Range looks like "0-24/57" or "*/0"
        content_range = response.headers.get("Content-Range", "")
        total = content_range.rsplit("/", 1)[-1]
        if not total.isdigit():
            logger.debug(f"Unparseable Content-Range for run count: {content_range!r}")
            return 0
        return int(total)
