"""Full and per-type reindexing.

Records are streamed from each type's searchable scope in batches, turned
into documents by the transformer and written with bulk requests. Failed
bulk items are counted and returned to the caller; transport errors abort
the run and leave a partially imported index that has to be reindexed
again (``check_search_index_consistency`` reports the drift).
"""

import logging
from typing import Any, Callable

from .engine import SearchEngine
from .registry import SearchableType, SearchTypeRegistry
from .schema import IndexSchemaManager
from .transformer import (
    IndexDocument,
    build_index_document,
    build_parent_node,
    to_bulk_action,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
Transform = Callable[[SearchableType, Any], IndexDocument]


class ReindexOrchestrator:
    """Drives bulk imports of searchable scopes into the index."""

    def __init__(
        self,
        engine: SearchEngine,
        schema: IndexSchemaManager,
        registry: SearchTypeRegistry,
        batch_size: int = 300,
    ):
        self.engine = engine
        self.schema = schema
        self.registry = registry
        self.batch_size = batch_size

    async def reindex_all(
        self,
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """Recreate the index and import every searchable type.

        Parent project nodes are imported first so that child documents
        can be reached through the join relation as soon as they land.

        Returns:
            Total number of documents that failed to import.
        """
        errors = 0

        await self.schema.recreate_index()

        errors += await self._import_parents(batch_size, on_progress)

        for search_type in self.registry:
            errors += await self._import_type(search_type, batch_size, on_progress)

        # Refresh so the rebuilt index is searchable right away
        await self.engine.refresh()

        logger.info("Full reindex completed with %d errors", errors)
        return errors

    async def reindex(
        self,
        search_type: str,
        batch_size: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> int:
        """Import only the records of ``search_type``.

        The index is created when missing but never dropped, so documents
        of other types stay searchable.

        Raises:
            UnknownSearchType: If ``search_type`` is not registered.

        Returns:
            Number of documents that failed to import.
        """
        searchable = self.registry.get(search_type)

        errors = 0
        if not await self.schema.index_exists():
            await self.schema.create_index()
            errors += await self._import_parents(batch_size, on_progress)

        errors += await self._import_type(searchable, batch_size, on_progress)
        logger.info("Reindex of %s completed with %d errors", search_type, errors)
        return errors

    async def count_estimated_records(self, search_type: str | None = None) -> int:
        """Sum of the searchable scope sizes of one type or of all types."""
        if search_type is not None:
            return await self.registry.get(search_type).scope.count()
        total = 0
        for searchable in self.registry:
            total += await searchable.scope.count()
        return total

    async def _import_parents(
        self,
        batch_size: int | None,
        on_progress: ProgressCallback | None,
    ) -> int:
        return await self._import_scope(
            self.registry.parents,
            build_parent_node,
            batch_size,
            on_progress,
        )

    async def _import_type(
        self,
        search_type: SearchableType,
        batch_size: int | None,
        on_progress: ProgressCallback | None,
    ) -> int:
        return await self._import_scope(
            search_type,
            build_index_document,
            batch_size,
            on_progress,
        )

    async def _import_scope(
        self,
        searchable: SearchableType,
        transform: Transform,
        batch_size: int | None,
        on_progress: ProgressCallback | None,
    ) -> int:
        return await import_scope(
            self.engine,
            searchable,
            transform,
            batch_size or self.batch_size,
            on_progress=on_progress,
        )


async def import_scope(
    engine: SearchEngine,
    searchable: SearchableType,
    transform: Transform,
    batch_size: int,
    on_progress: ProgressCallback | None = None,
    project_id: Any | None = None,
) -> int:
    """Bulk-import the scope of ``searchable``, or only one project's part of it.

    Returns:
        Number of documents that failed to import.
    """
    errors = 0
    imported = 0
    async for records in searchable.scope.batches(batch_size, project_id=project_id):
        actions = [
            to_bulk_action(engine.index_name, transform(searchable, record))
            for record in records
        ]
        _, failed = await engine.bulk(actions, chunk_size=batch_size)
        errors += failed
        imported += len(records)
        if on_progress is not None:
            on_progress(len(records))
    logger.info(
        "Imported %d %s records (%d failed)", imported, searchable.name, errors
    )
    return errors
