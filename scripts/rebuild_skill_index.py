#!/usr/bin/env python3
"""
Skill Index Rebuild Utility

Rebuilds skills/index.json from the individual skill records. The index is a
cached copy of every record, and the two can drift when an index write fails
after a skill update. Running this makes the index match the records again.
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict, List

# Allow running from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from pace_dashboard.core.config import (
    SKILLS_BUCKET,
    SKILLS_INDEX_KEY,
    load_settings,
    get_document_store,
)
from pace_dashboard.store.index import IDocumentStore
from pace_dashboard.store.types import StoreError
from pace_dashboard.util.logging import logger

# Upper bound on the number of skill records read in one pass
SKILL_SCAN_LIMIT = 1000


def collect_skill_records(store: IDocumentStore) -> List[Dict[str, Any]]:
    """Read every individual skill record, sorted by name. Unreadable records are skipped."""
    records = []
    for obj in store.list(SKILLS_BUCKET, limit=SKILL_SCAN_LIMIT, sort_by="name", order="asc"):
        if not obj.name.endswith(".json") or obj.name == SKILLS_INDEX_KEY:
            continue
        try:
            record = store.download_json(SKILLS_BUCKET, obj.name)
        except (StoreError, ValueError) as e:
            print(f"WARNING: Skipping unreadable skill record {obj.name}: {e}")
            continue
        if not isinstance(record, dict):
            print(f"WARNING: Skipping non-object skill record {obj.name}")
            continue
        # The record key is authoritative for the name
        record.setdefault("name", obj.name[:-len(".json")])
        records.append(record)
    return records


def rebuild_skill_index(store: IDocumentStore, dry_run: bool = False) -> List[Dict[str, Any]]:
    """Rebuild the skills index from the individual records and return it."""
    records = collect_skill_records(store)
    print(f"Found {len(records)} skill records")

    if dry_run:
        print("Dry run: index not written")
        return records

    store.upload_json(SKILLS_BUCKET, SKILLS_INDEX_KEY, records, overwrite=True, cache_control="no-cache")
    logger.log_operation("rebuild_skill_index", "success", {"skills": len(records)})
    print(f"✓ Wrote {SKILLS_BUCKET}/{SKILLS_INDEX_KEY} with {len(records)} skills")
    return records


def main(argv=None):
    parser = argparse.ArgumentParser(description="Rebuild the skills index from individual skill records")
    parser.add_argument("--dry-run", action="store_true", help="Report what would be written")
    args = parser.parse_args(argv)

    store = get_document_store(load_settings())
    try:
        rebuild_skill_index(store, dry_run=args.dry_run)
    except StoreError as e:
        print(f"ERROR: Failed to rebuild skill index: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
