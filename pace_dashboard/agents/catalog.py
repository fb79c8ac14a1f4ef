"""
Tool catalog for the dashboard chat assistant.

One provider-neutral table of tool descriptors. Each provider adapter
translates it into the function-calling format its API expects:

- Anthropic: flat list of {name, description, input_schema}
- Ollama (OpenAI style): list of {type: "function", function: {name, description, parameters}}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

SKILL_CATEGORIES = "analytics, engineering, customer-success, sales, meetings, customer-ops, internal, search, utility"

PROCESS_ID_PARAM = {"type": "string", "description": "The process ID. Defaults to current process context."}


@dataclass
class ToolSpec:
    """Provider-neutral tool descriptor."""
    name: str
    description: str
    properties: Dict[str, Any] = field(default_factory=dict)
    required: List[str] = field(default_factory=list)
    mutating: bool = False

    @property
    def parameters(self) -> Dict[str, Any]:
        """JSON schema of the tool's arguments."""
        schema = {"type": "object", "properties": self.properties}
        if self.required:
            schema["required"] = list(self.required)
        return schema

    def missing_arguments(self, arguments: Dict[str, Any]) -> List[str]:
        return [name for name in self.required if arguments.get(name) in (None, "")]


TOOL_CATALOG: List[ToolSpec] = [
    ToolSpec(
        name="read_knowledge_base",
        description="Read the current Knowledge Base for a process. Returns the full KB markdown content.",
        properties={"process_id": PROCESS_ID_PARAM},
    ),
    ToolSpec(
        name="update_knowledge_base",
        description=("Replace the entire Knowledge Base with new content. Use when user wants to overwrite "
                     "or completely rewrite the KB."),
        properties={
            "process_id": {"type": "string", "description": "The process ID."},
            "content": {"type": "string", "description": "The full new markdown content for the KB."},
        },
        required=["content"],
        mutating=True,
    ),
    ToolSpec(
        name="append_to_knowledge_base",
        description="Append new content to the end of the Knowledge Base, optionally under a new section heading.",
        properties={
            "process_id": {"type": "string", "description": "The process ID."},
            "content": {"type": "string", "description": "The markdown content to append."},
            "section": {"type": "string", "description": "Optional section heading to add before the content."},
        },
        required=["content"],
        mutating=True,
    ),
    ToolSpec(
        name="list_skills",
        description=("List all available skills that Pace can execute. Returns skill names, descriptions, "
                     "and example prompts."),
        properties={
            "category": {"type": "string", "description": f"Optional category filter: {SKILL_CATEGORIES}"},
        },
    ),
    ToolSpec(
        name="get_skill_details",
        description="Get full details for a specific skill including description, triggers, and example prompts.",
        properties={
            "skill_name": {"type": "string",
                           "description": "The skill name (e.g. 'reporting', 'data-query', 'weekly-changelog-pdf')"},
        },
        required=["skill_name"],
    ),
    ToolSpec(
        name="update_skill",
        description=("Update a skill's definition - change its description, triggers, example prompts, or "
                     "enabled status. Changes are applied immediately to the skills database."),
        properties={
            "skill_name": {"type": "string", "description": "The skill name to update."},
            "updates": {
                "type": "object",
                "description": ("Fields to update. Can include: title, description, category, triggers (array), "
                                "example_prompts (array), enabled (boolean)."),
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "category": {"type": "string"},
                    "triggers": {"type": "array", "items": {"type": "string"}},
                    "example_prompts": {"type": "array", "items": {"type": "string"}},
                    "enabled": {"type": "boolean"},
                },
            },
        },
        required=["skill_name", "updates"],
        mutating=True,
    ),
    ToolSpec(
        name="log_change",
        description=("Log an action or change to the audit trail. Use this whenever you make a modification "
                     "so we have a record."),
        properties={
            "action": {"type": "string",
                       "description": "What was done (e.g. 'updated_kb', 'modified_skill', 'queued_feature_request')"},
            "entity_type": {"type": "string",
                            "description": ("What was changed: 'knowledge_base', 'skill', 'workflow', 'ui', "
                                            "'feature_request'")},
            "entity_name": {"type": "string",
                            "description": "Name of the entity (e.g. 'Invoice Processing KB', 'reporting skill')"},
            "details": {"type": "string", "description": "Human-readable description of the change."},
        },
        required=["action", "entity_type"],
        mutating=True,
    ),
    ToolSpec(
        name="queue_pending_change",
        description=("Queue a change that requires the main Pace chat to apply (code deployments, GitHub changes, "
                     "external API calls, new features). These get reviewed and applied from the main chat."),
        properties={
            "change_type": {"type": "string",
                            "description": ("Type: 'code_change', 'deployment', 'feature_request', 'integration', "
                                            "'external_api'")},
            "description": {"type": "string", "description": "Clear description of what needs to be done."},
            "details": {"type": "string",
                        "description": "Technical details, specifications, or context needed to implement."},
            "priority": {"type": "string", "enum": ["low", "medium", "high"], "description": "Priority level."},
        },
        required=["change_type", "description"],
        mutating=True,
    ),
    ToolSpec(
        name="get_change_log",
        description=("Retrieve recent changes from the audit log. Shows what actions the dashboard chat "
                     "has taken."),
        properties={
            "limit": {"type": "number", "description": "Number of recent entries to return. Default 10."},
        },
    ),
    ToolSpec(
        name="get_pending_changes",
        description="List pending changes that are queued for the main Pace chat to review and apply.",
        properties={
            "status": {"type": "string", "enum": ["pending", "approved", "applied", "rejected"],
                       "description": "Filter by status. Default: all."},
        },
    ),
]

_TOOLS_BY_NAME = {tool.name: tool for tool in TOOL_CATALOG}


def get_tool(name: str) -> Optional[ToolSpec]:
    return _TOOLS_BY_NAME.get(name)


def to_anthropic_tools(catalog: List[ToolSpec] = None) -> List[Dict[str, Any]]:
    """Encode the catalog for the Anthropic Messages API."""
    return [
        {"name": tool.name, "description": tool.description, "input_schema": tool.parameters}
        for tool in (catalog if catalog is not None else TOOL_CATALOG)
    ]


def to_ollama_tools(catalog: List[ToolSpec] = None) -> List[Dict[str, Any]]:
    """Encode the catalog for Ollama's OpenAI-style function calling."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }
        for tool in (catalog if catalog is not None else TOOL_CATALOG)
    ]
