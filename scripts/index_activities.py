"""
Batch embed and upsert catalog activities into the vector store.

Usage:
    # Requires GEMINI_API_KEY, SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY
    python scripts/index_activities.py data/activities.json

The catalog file is a JSON list of activities
({"title", "desc", "tags", "time", "peak_hours", "type", "image"}) or an
object with an "activities" list.
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List

from pydantic import ValidationError

from tarana.models.activity import Activity
from tarana.rag.retriever import get_retriever

logger = logging.getLogger("index_activities")


def load_catalog(path: Path) -> List[Activity]:
    """Read and validate a catalog file"""
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("activities", [])
    return [Activity(**item) for item in payload]


async def main(path: Path) -> int:
    try:
        activities = load_catalog(path)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Could not load catalog {path}: {e}")
        return 2

    logger.info(f"Indexing {len(activities)} activities from {path}")
    report = await get_retriever().index_catalog(activities)

    for title in report.failed_ids:
        logger.error(f"Failed upserting {title!r}")
    logger.info(f"Finished. Upserted {report.indexed}/{report.total} activities.")
    return 0 if report.failed == 0 else 1


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    parser = argparse.ArgumentParser(description="Embed catalog activities into the vector store")
    parser.add_argument("catalog", type=Path, help="Path to the JSON activity catalog")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.catalog)))
