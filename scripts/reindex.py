"""
Rebuild the search index from the tracker database.

Usage:
    python scripts/reindex.py                   # drop, recreate and import everything
    python scripts/reindex.py --type issues     # re-import one type, keep the index
    python scripts/reindex.py --batch-size 500

Runs in the foreground against the configured Elasticsearch cluster.
Use POST /api/search/reindex to run it in the arq worker instead.
"""

import argparse
import asyncio
import sys

# Add parent directory to path
sys.path.insert(0, ".")

from tracker_search.config import settings
from tracker_search.database import async_session_maker, engine as db_engine
from tracker_search.host import build_search_registry
from tracker_search.search import (
    IndexSchemaManager,
    ReindexOrchestrator,
    SearchEngine,
    UnknownSearchType,
)


class ProgressPrinter:
    """Prints a running ``done/total`` line for the import."""

    def __init__(self, total: int):
        self.total = total
        self.done = 0

    def __call__(self, count: int) -> None:
        self.done += count
        print(f"\r  {self.done}/{self.total} records", end="", flush=True)


async def run_reindex(search_type: str | None, batch_size: int) -> int:
    engine = SearchEngine.from_settings(settings)
    registry = build_search_registry(async_session_maker)
    schema = IndexSchemaManager(
        engine,
        registry,
        number_of_shards=settings.search_number_of_shards,
        number_of_replicas=settings.search_number_of_replicas,
    )
    orchestrator = ReindexOrchestrator(engine, schema, registry, batch_size=batch_size)

    try:
        total = await orchestrator.count_estimated_records(search_type)
        progress = ProgressPrinter(total)

        if search_type is None:
            print(f"-> Rebuilding index {engine.index_name} ({total} records)")
            errors = await orchestrator.reindex_all(on_progress=progress)
        else:
            print(f"-> Re-importing {search_type} into {engine.index_name} ({total} records)")
            errors = await orchestrator.reindex(search_type, on_progress=progress)
        print()
    finally:
        await engine.close()
        await db_engine.dispose()

    if errors:
        print(f"[WARN] {errors} documents failed to import, see the log for details")
    else:
        print("[OK] Reindex completed")
    return errors


def main() -> int:
    parser = argparse.ArgumentParser(description="Rebuild the tracker search index")
    parser.add_argument("--type", dest="search_type", default=None,
                        help="Only re-import this type (e.g. issues, wiki_pages, documents)")
    parser.add_argument("--batch-size", type=int, default=settings.search_batch_size)
    args = parser.parse_args()

    try:
        errors = asyncio.run(run_reindex(args.search_type, args.batch_size))
    except UnknownSearchType as e:
        print(f"[ERROR] {e}")
        return 2
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
