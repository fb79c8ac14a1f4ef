"""
SQLite storage for the dashboard tables (organizations, processes, activity runs).
"""

import sqlite3
from contextlib import contextmanager
from typing import Generator
from .config import ensure_data_directory


@contextmanager
def get_db(db_path: str) -> Generator[sqlite3.Connection, None, None]:
    """Get a SQLite database connection with dict-like rows."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def init_db(db_path: str):
    """Initialize the database with the dashboard tables."""
    ensure_data_directory(db_path)
    with get_db(db_path) as conn:
        cursor = conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS organizations (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                avatar_letter TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS processes (
                id TEXT PRIMARY KEY,
                org_id TEXT NOT NULL REFERENCES organizations(id),
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS activity_runs (
                id TEXT PRIMARY KEY,
                process_id TEXT NOT NULL REFERENCES processes(id),
                name TEXT NOT NULL,
                document_name TEXT,
                status TEXT,
                current_status_text TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        ''')

        cursor.execute('CREATE INDEX IF NOT EXISTS idx_processes_org ON processes(org_id, created_at)')
        cursor.execute('CREATE INDEX IF NOT EXISTS idx_runs_process_updated ON activity_runs(process_id, updated_at DESC)')

        conn.commit()


def health_check(db_path: str) -> bool:
    """Check if database is accessible."""
    try:
        with get_db(db_path) as conn:
            conn.execute("SELECT 1")
        return True
    except Exception:
        return False
