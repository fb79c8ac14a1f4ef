"""
System prompt assembly for the dashboard chat assistant.

The prompt is the persona text followed by live context: the skills summary,
the organization/process listing, recent runs of the current process, and
recent dashboard chat exchanges. The context sources are fetched concurrently
and each one degrades to its fallback on failure, so a broken source never
blocks a chat turn.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..core.config import (
    DEFAULT_PROCESS_ID,
    DEFAULT_PROCESS_NAME,
    SKILLS_BUCKET,
    SKILLS_INDEX_KEY,
    CHAT_LOGS_BUCKET,
    CHAT_LOGS_PREFIX,
)
from ..core.dashboard import IDashboardSource
from ..core.schema import Skill
from ..store.index import IDocumentStore
from ..store.types import NotFoundError
from ..util.logging import logger

NO_SKILLS = "No skills loaded."
SKILLS_ERROR = "Error loading skills."
RECENT_RUNS_LIMIT = 10


@dataclass
class ChatContext:
    """What the user is looking at when they send a message."""
    org_id: Optional[str] = None
    org_name: Optional[str] = None
    process_id: Optional[str] = None
    process_name: Optional[str] = None


PERSONA_TEMPLATE = """You are Pace, a digital employee at Zamp. You are embedded in the Pace Live Dashboard as an interactive assistant.

Your personality: Direct, warm, genuinely helpful. No emojis, no filler. You speak like a sharp colleague.
{org_context}

WHAT YOU CAN DO:

1. KNOWLEDGE BASE MANAGEMENT
   - Read, update, or append to the Knowledge Base for any process
   - Always use the tools, don't just describe what you would do

2. SKILLS MANAGEMENT
   - List all available skills (the same skills the main Pace chat uses)
   - View skill details (description, triggers, examples)
   - Update skill definitions (description, triggers, examples, enabled status)
   - Skills you update here are immediately available

3. DASHBOARD ACTIONS (applied immediately)
   - KB changes, skill updates, workflow config changes
   - These take effect right away since the dashboard reads from the same store

4. QUEUED CHANGES (for the main Pace chat to apply)
   - Code changes, deployments, new features, external API integrations
   - Queue these as pending changes; they'll be reviewed and applied from the main Pace chat

5. AUDIT TRAIL
   - Every change you make is logged automatically
   - You can view the change log and pending changes queue

6. CONTEXT & INTELLIGENCE
   - Answer questions about processes, runs, organizations on the dashboard
   - You share context with the main Pace chat through the shared store

AVAILABLE SKILLS:
{skills_summary}

IMPORTANT RULES:
- When the user asks to modify something, USE THE TOOLS. Don't just describe what you would do.
- Log every significant action for auditability.
- If a requested change requires code deployment or external access, queue it as a pending change.
- Be honest about what you can and can't do from the dashboard.
- Default process is {default_process_name} (ID: {default_process_id})."""


def build_persona(context: ChatContext, skills_summary: str,
                  default_process_id: str = DEFAULT_PROCESS_ID,
                  default_process_name: str = DEFAULT_PROCESS_NAME) -> str:
    """Persona and instructions, with the user's current org/process when known."""
    org_context = ""
    if context.org_name:
        org_context = (
            "\nCURRENT CONTEXT:\n"
            f"- Organization: {context.org_name} (ID: {context.org_id})\n"
            f"- Process: {context.process_name or 'none selected'} (ID: {context.process_id or 'none'})\n\n"
            "The user is viewing this org and process on the Pace Live Dashboard."
        )

    return PERSONA_TEMPLATE.format(
        org_context=org_context,
        skills_summary=skills_summary,
        default_process_name=context.process_name or default_process_name,
        default_process_id=context.process_id or default_process_id,
    )


class ContextAssembler:
    """Builds the system prompt from the store and the dashboard tables."""

    def __init__(self, store: IDocumentStore, dashboard: IDashboardSource,
                 default_process_id: str = DEFAULT_PROCESS_ID,
                 default_process_name: str = DEFAULT_PROCESS_NAME,
                 chat_log_limit: int = 3):
        self.store = store
        self.dashboard = dashboard
        self.default_process_id = default_process_id
        self.default_process_name = default_process_name
        self.chat_log_limit = chat_log_limit

    async def build_system_prompt(self, context: ChatContext) -> str:
        """Fetch every context source concurrently and concatenate the prompt."""
        skills_summary, org_context, dashboard_context, chat_context = await asyncio.gather(
            self._fetch("skills", self.fetch_skills_summary, SKILLS_ERROR),
            self._fetch("organizations", self.fetch_org_context, ""),
            self._fetch("runs", lambda: self.fetch_dashboard_context(context.process_id), ""),
            self._fetch("chat_logs", self.fetch_shared_chat_context, ""),
        )

        persona = build_persona(context, skills_summary, self.default_process_id, self.default_process_name)
        return persona + org_context + dashboard_context + chat_context

    async def _fetch(self, source: str, fetcher: Callable[[], str], fallback: str) -> str:
        """Run one blocking fetch in a worker thread; any failure yields the fallback."""
        try:
            result = await asyncio.to_thread(fetcher)
        except Exception as e:
            logger.log_context_source(source, status="failed", error=str(e))
            return fallback
        logger.log_context_source(source)
        return result

    def fetch_skills_summary(self) -> str:
        """Bullet list of enabled skills from the skill index."""
        try:
            index = self.store.download_json(SKILLS_BUCKET, SKILLS_INDEX_KEY)
        except NotFoundError:
            return NO_SKILLS

        skills = [Skill.from_dict(item) for item in index or [] if isinstance(item, dict)]
        lines = [f"- **{s.title}** ({s.name}): {s.description}" for s in skills if s.enabled]
        return "\n".join(lines) if lines else NO_SKILLS

    def fetch_dashboard_context(self, process_id: Optional[str]) -> str:
        """The most recently updated runs, for the current process when one is selected."""
        runs = self.dashboard.list_recent_runs(process_id, limit=RECENT_RUNS_LIMIT)
        if not runs:
            return ""

        ctx = "\n\n--- Current Dashboard State ---\nRecent runs:\n"
        for run in runs:
            ctx += (f"- {run.get('name')} | Status: {run.get('status')} | "
                    f"{run.get('current_status_text') or ''} | {run.get('created_at')}\n")
        return ctx

    def fetch_org_context(self) -> str:
        """Every organization with its processes and their run counts."""
        orgs = self.dashboard.list_organizations()
        if not orgs:
            return ""

        ctx = "\n\n--- Available Organizations ---\n"
        for org in orgs:
            ctx += f"\n### {org.get('name')} (ID: {org.get('id')})\n"
            processes = self.dashboard.list_processes(org.get("id"))
            if processes:
                ctx += "Processes:\n"
                for process in processes:
                    count = self.dashboard.count_runs(process.get("id"))
                    ctx += f"- {process.get('name')} (ID: {process.get('id')}) — {count or 0} runs\n"
        return ctx

    def fetch_shared_chat_context(self) -> str:
        """Most recent dashboard chat exchanges, oldest first."""
        if self.chat_log_limit <= 0:
            return ""

        files = self.store.list(CHAT_LOGS_BUCKET, CHAT_LOGS_PREFIX, limit=self.chat_log_limit,
                                sort_by="name", order="desc")
        logs: List[str] = []
        for f in reversed(files):
            try:
                logs.append(self.store.download_text(CHAT_LOGS_BUCKET, f"{CHAT_LOGS_PREFIX}/{f.name}").strip())
            except NotFoundError:
                continue
        if not logs:
            return ""
        return "\n\n--- Recent Dashboard Chat ---\n" + "\n\n".join(logs) + "\n"
