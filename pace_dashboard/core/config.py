"""
Configuration for the Pace dashboard chat service.

Values come from the environment (optionally a .env file). load_settings()
snapshots them into a Settings object once at startup; the app factory passes
that object to every component instead of reading globals.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()

VERSION = "1.0.0"

# Process used whenever a caller does not name one
DEFAULT_PROCESS_ID = "edbee70e-72bd-4573-ae80-cd3888f6a75f"
DEFAULT_PROCESS_NAME = "Invoice Processing"

# Identity stamped on change log entries and pending changes
PERFORMED_BY = "dashboard-chat"

# Object store buckets
KB_BUCKET = "knowledge-base"
SKILLS_BUCKET = "skills"
CHANGE_LOG_BUCKET = "change-log"
PENDING_CHANGES_BUCKET = "pending-changes"
CHAT_LOGS_BUCKET = "chat-logs"
CHAT_LOGS_PREFIX = "dashboard-chat"
SKILLS_INDEX_KEY = "index.json"

# Round budgets per provider
PROVIDER_ROUND_BUDGETS = {
    "anthropic": 10,
    "ollama": 5,
}

VALID_PROVIDERS = ["anthropic", "ollama"]
VALID_STORE_BACKENDS = ["memory", "local", "supabase"]
VALID_DASHBOARD_BACKENDS = ["none", "sqlite", "supabase"]


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass
class Settings:
    """Application configuration, built once at process startup."""
    default_process_id: str = DEFAULT_PROCESS_ID
    default_process_name: str = DEFAULT_PROCESS_NAME

    # LLM provider
    llm_provider: str = "anthropic"
    anthropic_api_key: Optional[str] = None
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_max_tokens: int = 4096
    ollama_model: str = "llama3.1:latest"
    ollama_host: Optional[str] = None
    chat_max_rounds: Optional[int] = None
    chat_history_limit: int = 20
    chat_context_logs: int = 3

    # Storage
    store_backend: str = "local"
    store_root: str = "./data/storage"
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Dashboard tables
    dashboard_backend: str = "sqlite"
    db_path: str = "./data/dashboard.db"

    # Recordings
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    aws_bucket: str = "zamp-prd-us-selenium-grid-bucket"
    recording_url_expiry_sec: int = 900

    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    debug: bool = False

    @property
    def max_rounds(self) -> int:
        """Round budget for the configured provider unless overridden."""
        if self.chat_max_rounds is not None:
            return self.chat_max_rounds
        return PROVIDER_ROUND_BUDGETS.get(self.llm_provider, 10)


def load_settings() -> Settings:
    """Read Settings from the environment."""
    origins = os.getenv("CORS_ORIGINS", "*")
    return Settings(
        default_process_id=os.getenv("DEFAULT_PROCESS_ID", DEFAULT_PROCESS_ID),
        default_process_name=os.getenv("DEFAULT_PROCESS_NAME", DEFAULT_PROCESS_NAME),
        llm_provider=os.getenv("LLM_PROVIDER", "anthropic").lower(),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-20250514"),
        anthropic_max_tokens=_env_int("ANTHROPIC_MAX_TOKENS", 4096),
        ollama_model=os.getenv("OLLAMA_MODEL", "llama3.1:latest"),
        ollama_host=os.getenv("OLLAMA_HOST"),
        chat_max_rounds=_env_int("CHAT_MAX_ROUNDS", None),
        chat_history_limit=_env_int("CHAT_HISTORY_LIMIT", 20),
        chat_context_logs=_env_int("CHAT_CONTEXT_LOGS", 3),
        store_backend=os.getenv("STORE_BACKEND", "local").lower(),
        store_root=os.getenv("STORE_ROOT", "./data/storage"),
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        dashboard_backend=os.getenv("DASHBOARD_BACKEND", "sqlite").lower(),
        db_path=os.getenv("DB_PATH", "./data/dashboard.db"),
        aws_access_key_id=os.getenv("AWS_S3_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_S3_SECRET_ACCESS_KEY"),
        aws_region=os.getenv("AWS_S3_REGION", "us-east-1"),
        aws_bucket=os.getenv("AWS_S3_BUCKET", "zamp-prd-us-selenium-grid-bucket"),
        recording_url_expiry_sec=_env_int("RECORDING_URL_EXPIRY_SEC", 900),
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        debug=_env_bool("DEBUG", "false"),
    )


def validate_settings(settings: Settings) -> List[str]:
    """Validate configuration and return any issues."""
    issues = []

    if settings.llm_provider not in VALID_PROVIDERS:
        issues.append(f"Invalid LLM_PROVIDER: {settings.llm_provider}")

    if settings.store_backend not in VALID_STORE_BACKENDS:
        issues.append(f"Invalid STORE_BACKEND: {settings.store_backend}")

    if settings.dashboard_backend not in VALID_DASHBOARD_BACKENDS:
        issues.append(f"Invalid DASHBOARD_BACKEND: {settings.dashboard_backend}")

    uses_supabase = "supabase" in (settings.store_backend, settings.dashboard_backend)
    if uses_supabase and not (settings.supabase_url and settings.supabase_service_role_key):
        issues.append("Supabase backends require SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY")

    if settings.chat_max_rounds is not None and settings.chat_max_rounds < 1:
        issues.append("CHAT_MAX_ROUNDS must be >= 1")

    if settings.chat_history_limit < 0:
        issues.append("CHAT_HISTORY_LIMIT must be >= 0")

    if settings.recording_url_expiry_sec < 1:
        issues.append("RECORDING_URL_EXPIRY_SEC must be >= 1")

    return issues


def ensure_data_directory(path: str) -> None:
    """Ensure the parent directory of a data file exists."""
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def get_document_store(settings: Settings):
    """Get the configured document store implementation."""
    if settings.store_backend == "memory":
        from ..store.index import InMemoryDocumentStore
        return InMemoryDocumentStore()
    elif settings.store_backend == "supabase":
        from ..store.supabase_store import SupabaseDocumentStore
        return SupabaseDocumentStore(settings.supabase_url, settings.supabase_service_role_key)
    else:
        from ..store.local_store import LocalDocumentStore
        return LocalDocumentStore(settings.store_root)


def get_dashboard_source(settings: Settings):
    """Get the configured dashboard table reader."""
    if settings.dashboard_backend == "sqlite":
        from .dashboard import SqliteDashboardSource
        return SqliteDashboardSource(settings.db_path)
    elif settings.dashboard_backend == "supabase":
        from .dashboard import SupabaseDashboardSource
        return SupabaseDashboardSource(settings.supabase_url, settings.supabase_service_role_key)
    else:
        from .dashboard import NullDashboardSource
        return NullDashboardSource()
