"""
Tool executor for the dashboard chat assistant.

Turns a tool call requested by the model into document store operations and
returns a JSON-serialisable result. Failures come back as {"error": ...}
payloads so the model can explain them; nothing raised by a tool escapes
execute().

Mutating tools write an implicit change log entry once their primary write
succeeds. That entry is best effort: if it cannot be written the tool still
reports success.
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional

from ..core.config import (
    DEFAULT_PROCESS_ID,
    KB_BUCKET,
    SKILLS_BUCKET,
    SKILLS_INDEX_KEY,
    CHANGE_LOG_BUCKET,
    PENDING_CHANGES_BUCKET,
)
from ..core.schema import Skill, ChangeLogEntry, PendingChange, CHANGE_STATUSES
from ..store.index import IDocumentStore
from ..store.types import NotFoundError, StoreError
from ..util.logging import logger
from .catalog import get_tool

KB_CACHE_CONTROL = "no-cache"
DEFAULT_CHANGE_LOG_LIMIT = 10
CHANGE_LOG_SCAN_LIMIT = 100
PENDING_CHANGES_SCAN_LIMIT = 50


def kb_key(process_id: str) -> str:
    return f"{process_id}/kb.md"


def append_separator(section: Optional[str]) -> str:
    """Separator placed between existing KB text and appended content."""
    return f"\n\n## {section}\n\n" if section else "\n\n"


class ToolExecutor:
    """
    Executes catalog tools against the document store.

    The store is passed in at construction; the executor holds no other state,
    so one instance serves every request.
    """

    def __init__(self, store: IDocumentStore, default_process_id: str = DEFAULT_PROCESS_ID):
        self.store = store
        self.default_process_id = default_process_id
        self.handlers: Dict[str, Callable[[Dict[str, Any], str], Dict[str, Any]]] = {
            "read_knowledge_base": self._read_knowledge_base,
            "update_knowledge_base": self._update_knowledge_base,
            "append_to_knowledge_base": self._append_to_knowledge_base,
            "list_skills": self._list_skills,
            "get_skill_details": self._get_skill_details,
            "update_skill": self._update_skill,
            "log_change": self._log_change,
            "queue_pending_change": self._queue_pending_change,
            "get_change_log": self._get_change_log,
            "get_pending_changes": self._get_pending_changes,
        }

    def resolve_process_id(self, args: Dict[str, Any], default_process_id: Optional[str] = None) -> str:
        """Process named in the call, else the caller's current process, else the fallback."""
        return args.get("process_id") or default_process_id or self.default_process_id

    async def execute(self, tool_name: str, args: Optional[Dict[str, Any]] = None,
                      default_process_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Execute a tool by name.

        Args:
            tool_name: Catalog tool name
            args: Arguments supplied by the model
            default_process_id: Process the user is currently viewing

        Returns:
            Tool result, or {"error": message}
        """
        args = args if isinstance(args, dict) else {}
        start_time = time.perf_counter()

        handler = self.handlers.get(tool_name)
        spec = get_tool(tool_name)
        if handler is None or spec is None:
            result = {"error": f"Unknown tool: {tool_name}"}
            logger.log_tool_call(tool_name, args, status="failed", error=result["error"])
            return result

        missing = spec.missing_arguments(args)
        if missing:
            result = {"error": f"Missing required argument '{missing[0]}' for tool '{tool_name}'"}
            logger.log_tool_call(tool_name, args, status="failed", error=result["error"], mutating=spec.mutating)
            return result

        process_id = self.resolve_process_id(args, default_process_id)
        try:
            result = await asyncio.to_thread(handler, args, process_id)
        except Exception as e:
            result = {"error": str(e) or e.__class__.__name__}
        if not isinstance(result, dict):
            result = {"error": f"Tool {tool_name} returned an invalid result"}

        duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
        status = "failed" if "error" in result else "success"
        logger.log_tool_call(tool_name, args, status=status, duration_ms=duration_ms,
                             error=result.get("error"), mutating=spec.mutating)
        return result

    # Change log

    def log_change_entry(self, action: str, entity_type: str, entity_name: str = "",
                         details: str = "") -> Dict[str, Any]:
        """Write an immutable change log entry."""
        entry = ChangeLogEntry.new(action, entity_type, entity_name, details)
        try:
            self.store.upload_json(CHANGE_LOG_BUCKET, entry.object_key, entry.to_dict(), overwrite=False)
        except StoreError as e:
            return {"error": str(e)}
        return {"success": True, "id": entry.id}

    def record_change(self, action: str, entity_type: str, entity_name: str = "", details: str = "") -> None:
        """Implicit audit entry after a mutation. Never fails observably."""
        try:
            result = self.log_change_entry(action, entity_type, entity_name, details)
        except Exception as e:
            result = {"error": str(e)}
        if "error" in result:
            logger.warning(f"Implicit change log for {action} failed: {result['error']}")

    # Knowledge base tools

    def _read_knowledge_base(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        try:
            content = self.store.download_text(KB_BUCKET, kb_key(process_id))
        except StoreError as e:
            return {"error": f"KB not found: {e}"}
        return {"content": content, "process_id": process_id}

    def _update_knowledge_base(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        self.store.upload_text(KB_BUCKET, kb_key(process_id), str(args["content"]),
                               content_type="text/markdown", overwrite=True, cache_control=KB_CACHE_CONTROL)
        self.record_change("updated_kb", "knowledge_base", f"Process {process_id} KB",
                           "Knowledge base content was replaced.")
        return {"success": True, "action": "replaced", "process_id": process_id}

    def _append_to_knowledge_base(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        section = args.get("section")
        try:
            existing = self.store.download_text(KB_BUCKET, kb_key(process_id))
        except NotFoundError:
            existing = ""

        updated = existing + append_separator(section) + str(args["content"])
        self.store.upload_text(KB_BUCKET, kb_key(process_id), updated,
                               content_type="text/markdown", overwrite=True, cache_control=KB_CACHE_CONTROL)

        details = f"Appended content under section: {section}." if section else "Appended content."
        self.record_change("appended_kb", "knowledge_base", f"Process {process_id} KB", details)
        return {"success": True, "action": "appended", "process_id": process_id}

    # Skill tools

    def _list_skills(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        index = self.store.download_json(SKILLS_BUCKET, SKILLS_INDEX_KEY)
        skills = [Skill.from_dict(item) for item in index or [] if isinstance(item, dict)]
        category = args.get("category")
        if category:
            skills = [s for s in skills if s.category == category]
        return {"skills": [s.summary() for s in skills], "count": len(skills)}

    def _load_skill(self, skill_name: str) -> Optional[Dict[str, Any]]:
        """Individual skill record, or None. The index object is not a skill."""
        key = f"{skill_name}.json"
        if key == SKILLS_INDEX_KEY:
            return None
        try:
            skill = self.store.download_json(SKILLS_BUCKET, key)
        except NotFoundError:
            return None
        return skill if isinstance(skill, dict) else None

    def _get_skill_details(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        skill_name = args["skill_name"]
        skill = self._load_skill(skill_name)
        if skill is None:
            return {"error": f"Skill not found: {skill_name}"}
        return skill

    def _update_skill(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        skill_name = args["skill_name"]
        updates = args["updates"]
        if not isinstance(updates, dict):
            return {"error": "updates must be an object"}
        # The name is the storage key; it cannot be changed through an update
        updates = {k: v for k, v in updates.items() if k != "name"}

        skill = self._load_skill(skill_name)
        if skill is None:
            return {"error": f"Skill not found: {skill_name}"}

        updated = {**skill, **updates}
        self.store.upload_json(SKILLS_BUCKET, f"{skill_name}.json", updated,
                               overwrite=True, cache_control=KB_CACHE_CONTROL)

        # Mirror into the index. A missing or unreadable index is skipped,
        # leaving it out of step with the individual record.
        try:
            index = self.store.download_json(SKILLS_BUCKET, SKILLS_INDEX_KEY)
        except (StoreError, ValueError) as e:
            logger.warning(f"Skill index not updated for {skill_name}: {e}")
            index = None

        if isinstance(index, list):
            index = [updated if isinstance(s, dict) and s.get("name") == skill_name else s for s in index]
            try:
                self.store.upload_json(SKILLS_BUCKET, SKILLS_INDEX_KEY, index,
                                       overwrite=True, cache_control=KB_CACHE_CONTROL)
            except StoreError as e:
                logger.warning(f"Skill index write failed for {skill_name}: {e}")

        updated_fields = list(updates.keys())
        self.record_change("updated_skill", "skill", skill_name, f"Updated fields: {', '.join(updated_fields)}")
        return {"success": True, "skill_name": skill_name, "updated_fields": updated_fields}

    # Audit and queue tools

    def _log_change(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        return self.log_change_entry(args["action"], args["entity_type"],
                                     args.get("entity_name") or "", args.get("details") or "")

    def _queue_pending_change(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        try:
            change = PendingChange.new(args["change_type"], args["description"],
                                       args.get("details") or "", args.get("priority"))
        except ValueError as e:
            return {"error": str(e)}

        try:
            self.store.upload_json(PENDING_CHANGES_BUCKET, change.object_key, change.to_dict(), overwrite=False)
        except StoreError as e:
            return {"error": str(e)}

        self.record_change("queued_change", "pending_change", change.change_type, change.description)
        return {"success": True, "id": change.id, "status": "pending"}

    def _get_change_log(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        limit = _positive_int(args.get("limit"), DEFAULT_CHANGE_LOG_LIMIT)
        try:
            # Keys start with the creation timestamp, so name order is chronological
            files = self.store.list(CHANGE_LOG_BUCKET, "", limit=CHANGE_LOG_SCAN_LIMIT,
                                    sort_by="name", order="desc")
        except StoreError as e:
            return {"entries": [], "error": str(e)}

        entries = self._load_json_objects(CHANGE_LOG_BUCKET, [f.name for f in files[:limit]])
        return {"entries": entries, "count": len(entries)}

    def _get_pending_changes(self, args: Dict[str, Any], process_id: str) -> Dict[str, Any]:
        status = args.get("status")
        if status and status not in CHANGE_STATUSES:
            return {"changes": [], "error": f"status must be one of: {CHANGE_STATUSES}"}

        try:
            files = self.store.list(PENDING_CHANGES_BUCKET, "", limit=PENDING_CHANGES_SCAN_LIMIT,
                                    sort_by="created_at", order="desc")
        except StoreError as e:
            return {"changes": [], "error": str(e)}

        changes = [
            change for change in self._load_json_objects(PENDING_CHANGES_BUCKET, [f.name for f in files])
            if not status or change.get("status") == status
        ]
        return {"changes": changes, "count": len(changes)}

    def _load_json_objects(self, bucket: str, keys: List[str]) -> List[Dict[str, Any]]:
        """Download JSON objects, skipping any that cannot be read."""
        objects = []
        for key in keys:
            try:
                payload = self.store.download_json(bucket, key)
            except (StoreError, ValueError) as e:
                logger.debug(f"Skipping unreadable object {bucket}/{key}: {e}")
                continue
            if isinstance(payload, dict):
                objects.append(payload)
        return objects


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default
