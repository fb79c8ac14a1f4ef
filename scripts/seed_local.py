#!/usr/bin/env python3
"""
Seed a local development environment.

Loads skill records (a directory of *.json files, or a built-in pair) and a
knowledge base markdown file into the configured document store, then creates
the SQLite dashboard tables with optional demo rows, so the chat assistant has
something to read without any hosted services.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from pace_dashboard.agents.executor import kb_key
from pace_dashboard.core.config import (
    DEFAULT_PROCESS_ID,
    DEFAULT_PROCESS_NAME,
    KB_BUCKET,
    SKILLS_BUCKET,
    SKILLS_INDEX_KEY,
    load_settings,
    get_document_store,
)
from pace_dashboard.core.db import get_db, init_db
from pace_dashboard.store.index import IDocumentStore

SEED_ORG_ID = "0f6d3f3c-6a55-4d7e-9c1b-2f1d8a9b7e10"
SEED_ORG_NAME = "Acme Corp"

SEED_KB = f"""# {DEFAULT_PROCESS_NAME}

## Overview
Invoices arrive by email, are extracted, matched against purchase orders and posted to the ERP.

## Rules
- Invoices above 10,000 USD need a second approver.
- Vendor names are matched case-insensitively.
"""

SEED_SKILLS: List[Dict[str, Any]] = [
    {
        "name": "invoice-extraction",
        "title": "Invoice Extraction",
        "description": "Extracts header and line items from invoice PDFs.",
        "category": "customer-ops",
        "triggers": ["new invoice", "extract invoice"],
        "example_prompts": ["Extract the line items from this invoice"],
        "enabled": True,
    },
    {
        "name": "po-matching",
        "title": "PO Matching",
        "description": "Matches invoices to open purchase orders.",
        "category": "customer-ops",
        "triggers": ["match po"],
        "example_prompts": ["Which PO does invoice 4411 belong to?"],
        "enabled": True,
    },
]

SEED_RUNS = [
    ("run-0001", "Invoice 4411", "invoice_4411.pdf", "completed", "Posted to ERP"),
    ("run-0002", "Invoice 4412", "invoice_4412.pdf", "needs_review", "Amount mismatch against PO"),
    ("run-0003", "Invoice 4413", "invoice_4413.pdf", "in_progress", "Extracting line items"),
]


def load_skill_files(directory: str) -> List[Dict[str, Any]]:
    """Read every *.json skill file in a directory, sorted by file name."""
    skills = []
    for path in sorted(Path(directory).glob("*.json")):
        if path.name == SKILLS_INDEX_KEY:
            continue
        with open(path, "r", encoding="utf-8") as f:
            skill = json.load(f)
        if not isinstance(skill, dict):
            raise ValueError(f"{path} does not contain a skill object")
        skill.setdefault("name", path.stem)
        skills.append(skill)
    return skills


def seed_store(store: IDocumentStore, process_id: str = DEFAULT_PROCESS_ID,
               skills: Optional[List[Dict[str, Any]]] = None,
               kb_text: Optional[str] = None) -> None:
    """Write the KB, each skill record and the skills index."""
    skills = SEED_SKILLS if skills is None else skills
    store.upload_text(KB_BUCKET, kb_key(process_id), SEED_KB if kb_text is None else kb_text,
                      content_type="text/markdown", overwrite=True, cache_control="no-cache")
    for skill in skills:
        store.upload_json(SKILLS_BUCKET, f"{skill['name']}.json", skill, overwrite=True)
    store.upload_json(SKILLS_BUCKET, SKILLS_INDEX_KEY, skills, overwrite=True)


def seed_dashboard(db_path: str, process_id: str = DEFAULT_PROCESS_ID,
                   process_name: str = DEFAULT_PROCESS_NAME, demo_rows: bool = True) -> None:
    """Create the dashboard tables; with demo_rows, insert one org, one process and a few runs."""
    init_db(db_path)
    if not demo_rows:
        return

    with get_db(db_path) as conn:
        conn.execute(
            "INSERT OR REPLACE INTO organizations (id, name, avatar_letter) VALUES (?, ?, ?)",
            (SEED_ORG_ID, SEED_ORG_NAME, SEED_ORG_NAME[0])
        )
        conn.execute(
            "INSERT OR REPLACE INTO processes (id, org_id, name) VALUES (?, ?, ?)",
            (process_id, SEED_ORG_ID, process_name)
        )
        for run_id, name, document, status, status_text in SEED_RUNS:
            conn.execute(
                """INSERT OR REPLACE INTO activity_runs
                   (id, process_id, name, document_name, status, current_status_text)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (run_id, process_id, name, document, status, status_text)
            )
        conn.commit()


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Seed the document store and dashboard tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                                  # Built-in KB, skills and demo rows
  %(prog)s --skills-dir ./skills --kb-file ./kb.md
  %(prog)s --no-demo-rows                   # Tables only
        """
    )
    parser.add_argument("--skills-dir", help="Directory of skill *.json files")
    parser.add_argument("--kb-file", help="Markdown file to use as the default process KB")
    parser.add_argument("--no-demo-rows", action="store_true", help="Create tables without demo rows")
    parser.add_argument("--skip-dashboard", action="store_true", help="Only seed the document store")
    args = parser.parse_args(argv)

    settings = load_settings()
    skills = load_skill_files(args.skills_dir) if args.skills_dir else None
    kb_text = Path(args.kb_file).read_text(encoding="utf-8") if args.kb_file else None

    store = get_document_store(settings)
    seed_store(store, settings.default_process_id, skills, kb_text)
    count = len(skills) if skills is not None else len(SEED_SKILLS)
    print(f"✓ Seeded knowledge base and {count} skills ({settings.store_backend} store)")

    if not args.skip_dashboard:
        seed_dashboard(settings.db_path, settings.default_process_id, settings.default_process_name,
                       demo_rows=not args.no_demo_rows)
        print(f"✓ Dashboard tables ready in {settings.db_path}")


if __name__ == "__main__":
    main()
