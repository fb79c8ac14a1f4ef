"""
Shared fixtures for the dashboard chat tests.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from pace_dashboard.agents.executor import ToolExecutor, kb_key
from pace_dashboard.agents.providers import AnthropicProvider
from pace_dashboard.core.config import KB_BUCKET, SKILLS_BUCKET, SKILLS_INDEX_KEY
from pace_dashboard.core.dashboard import NullDashboardSource
from pace_dashboard.store.index import InMemoryDocumentStore

PROCESS_ID = "edbee70e-72bd-4573-ae80-cd3888f6a75f"

SAMPLE_SKILLS = [
    {
        "name": "invoice-extraction",
        "title": "Invoice Extraction",
        "description": "Extracts invoice fields.",
        "category": "customer-ops",
        "triggers": ["extract invoice"],
        "example_prompts": ["Extract this invoice"],
        "enabled": True,
    },
    {
        "name": "weekly-report",
        "title": "Weekly Report",
        "description": "Summarises the week.",
        "category": "analytics",
        "triggers": [],
        "example_prompts": [],
        "enabled": False,
    },
]


def text_response(text, stop_reason="end_turn"):
    """Anthropic-shaped response with a single text block."""
    return {"content": [{"type": "text", "text": text}], "stop_reason": stop_reason}


def tool_use_response(*calls, text=None):
    """Anthropic-shaped response requesting tools; calls are (id, name, input) tuples."""
    content = [{"type": "text", "text": text}] if text else []
    content += [{"type": "tool_use", "id": cid, "name": name, "input": args} for cid, name, args in calls]
    return {"content": content, "stop_reason": "tool_use"}


def scripted_provider(responses, max_rounds=10):
    """AnthropicProvider whose client replays canned responses in order."""
    client = MagicMock()
    client.messages.create = AsyncMock(side_effect=list(responses))
    return AnthropicProvider(model="test-model", max_rounds=max_rounds, client=client)


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def seeded_store(store):
    """Store with a KB for the default process and two skills (record + index)."""
    store.upload_text(KB_BUCKET, kb_key(PROCESS_ID), "# Invoice Processing\n\nInitial notes.", overwrite=True)
    for skill in SAMPLE_SKILLS:
        store.upload_json(SKILLS_BUCKET, f"{skill['name']}.json", skill, overwrite=True)
    store.upload_json(SKILLS_BUCKET, SKILLS_INDEX_KEY, SAMPLE_SKILLS, overwrite=True)
    return store


@pytest.fixture
def executor(seeded_store):
    return ToolExecutor(seeded_store, PROCESS_ID)


@pytest.fixture
def null_dashboard():
    return NullDashboardSource()
