"""
Records persisted in the document store: skills, change log entries and
pending changes. Knowledge bases are plain markdown and have no record type.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List

from .config import PERFORMED_BY

PRIORITIES = ["low", "medium", "high"]
CHANGE_STATUSES = ["pending", "approved", "applied", "rejected"]

SKILL_FIELDS = ["name", "title", "description", "category", "triggers", "example_prompts", "enabled"]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def filename_timestamp(ts: str) -> str:
    """Make an ISO timestamp safe for object keys (':' and '.' become '-')."""
    return ts.replace(":", "-").replace(".", "-")


@dataclass
class Skill:
    name: str
    title: str = ""
    description: str = ""
    category: str = ""
    triggers: List[str] = field(default_factory=list)
    example_prompts: List[str] = field(default_factory=list)
    enabled: bool = True
    # Keys not modelled above, kept so a merge never drops them
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Skill":
        extra = {k: v for k, v in data.items() if k not in SKILL_FIELDS}
        return cls(
            name=data.get("name", ""),
            title=data.get("title", ""),
            description=data.get("description", ""),
            category=data.get("category", ""),
            triggers=list(data.get("triggers") or []),
            example_prompts=list(data.get("example_prompts") or []),
            # Only an explicit false disables a skill
            enabled=data.get("enabled") is not False,
            extra=extra,
        )

    def summary(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "enabled": self.enabled,
        }


@dataclass
class ChangeLogEntry:
    id: str
    action: str
    entity_type: str
    entity_name: str
    details: str
    performed_by: str
    created_at: str

    @classmethod
    def new(cls, action: str, entity_type: str, entity_name: str = "", details: str = "") -> "ChangeLogEntry":
        return cls(
            id=str(uuid.uuid4()),
            action=action,
            entity_type=entity_type,
            entity_name=entity_name or "",
            details=details or "",
            performed_by=PERFORMED_BY,
            created_at=utc_timestamp(),
        )

    @property
    def object_key(self) -> str:
        """Key that sorts entries chronologically by filename."""
        return f"{filename_timestamp(self.created_at)}_{self.id[:8]}.json"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PendingChange:
    id: str
    change_type: str
    description: str
    details: str = ""
    priority: str = "medium"
    status: str = "pending"
    requested_by: str = PERFORMED_BY
    created_at: str = ""

    @classmethod
    def new(cls, change_type: str, description: str, details: str = "", priority: str = None) -> "PendingChange":
        priority = priority or "medium"
        if priority not in PRIORITIES:
            raise ValueError(f"priority must be one of: {PRIORITIES}")
        return cls(
            id=str(uuid.uuid4()),
            change_type=change_type,
            description=description,
            details=details or "",
            priority=priority,
            status="pending",
            requested_by=PERFORMED_BY,
            created_at=utc_timestamp(),
        )

    @property
    def object_key(self) -> str:
        return f"{self.id}.json"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
