"""Incremental index synchronization.

The host reports each committed change with ``on_record_committed``; the
dispatcher only enqueues a job. When the job runs, ``execute`` re-reads the
record through its searchable scope and writes whatever is true *now*:

- record no longer in scope (deleted, soft-deleted, hidden): delete its
  document; an already-absent document counts as success
- record in scope: make sure its project parent node exists, then upsert;
  a record moved from another project loses the copy routed to the old one
- project back in scope after being removed: its node and every child
  record still in scope are imported again

Jobs for the same record may run in any order or more than once. Each run
converges on the current database state, so no ordering is required.
Retries belong to the job queue: engine errors other than 404 propagate.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from elasticsearch import NotFoundError

from .engine import SearchEngine
from .registry import SearchableType, SearchTypeRegistry
from .reindex import import_scope
from .transformer import (
    PARENT_KEY,
    build_index_document,
    build_parent_node,
    composite_id,
    parent_node_id,
)

logger = logging.getLogger(__name__)


class ChangeKind(str, Enum):
    """Kind of committed change reported by the host."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class SyncTask:
    """Unit of work for one record.

    ``parent_id`` is the owning project id as known at commit time. It is
    the only way to route the delete of a record that is gone from the
    database. ``previous_parent_id`` is set when the commit moved the record
    to another project.
    """

    search_type: str
    record_id: Any
    parent_id: Any | None = None
    previous_parent_id: Any | None = None


class JobQueue(Protocol):
    async def enqueue(self, task: SyncTask) -> None:
        ...


class SyncOutcome(str, Enum):
    INDEXED = "indexed"
    DELETED = "deleted"


class SyncDispatcher:
    """Turns record commits into single-document index writes."""

    def __init__(
        self,
        engine: SearchEngine,
        registry: SearchTypeRegistry,
        queue: JobQueue,
        batch_size: int = 300,
    ):
        self.engine = engine
        self.registry = registry
        self.queue = queue
        self.batch_size = batch_size

    async def on_record_committed(
        self,
        search_type: str,
        record_id: Any,
        change_kind: ChangeKind,
        parent_id: Any | None = None,
        previous_parent_id: Any | None = None,
    ) -> None:
        """Enqueue a sync job for a committed record. Never raises."""
        if search_type != self.registry.parents.name and search_type not in self.registry:
            logger.debug("Ignoring commit of non-searchable type %s", search_type)
            return

        kind = change_kind.value if isinstance(change_kind, ChangeKind) else change_kind
        if previous_parent_id == parent_id:
            previous_parent_id = None
        task = SyncTask(
            search_type=search_type,
            record_id=record_id,
            parent_id=parent_id,
            previous_parent_id=previous_parent_id,
        )
        try:
            await self.queue.enqueue(task)
        except Exception as exc:
            # The record is saved either way; the consistency check reports drift
            logger.error(
                "Failed to enqueue search sync for %s %s (%s): %s",
                search_type, record_id, kind, exc,
            )

    async def execute(self, task: SyncTask) -> SyncOutcome:
        """Bring the index in line with the record's current state.

        Raises:
            UnknownSearchType: If the task names an unregistered type.
        """
        if task.search_type == self.registry.parents.name:
            return await self._sync_project(task.record_id)

        searchable = self.registry.get(task.search_type)
        records = await self._load(searchable, task.record_id)

        if not records:
            await self._remove(searchable, task)
            return SyncOutcome.DELETED

        record = records[0]
        parent_id = searchable.serializer(record)[PARENT_KEY]
        if task.previous_parent_id is not None and task.previous_parent_id != parent_id:
            # Moved between projects: the old copy lives under another routing
            await self._delete_routed(searchable, task.record_id, task.previous_parent_id)

        await self._ensure_parent_node(parent_id)
        document = build_index_document(searchable, record)
        await self.engine.index_document(document)
        logger.debug("Indexed %s", document.id)
        return SyncOutcome.INDEXED

    async def _load(self, searchable: SearchableType, record_id: Any) -> list:
        """Records of the scope restricted to ``record_id`` (zero or one)."""
        return [
            record
            async for batch in searchable.scope.batches(1, record_id=record_id)
            for record in batch
        ]

    async def _remove(self, searchable: SearchableType, task: SyncTask) -> None:
        parents = {task.parent_id, task.previous_parent_id} - {None}

        if not parents:
            # Unknown routing: match the id on every shard
            document_id = composite_id(searchable.singular, task.record_id)
            deleted = await self.engine.delete_by_query({"ids": {"values": [document_id]}})
            logger.debug("Removed %s by query (%d deleted)", document_id, deleted)
            return

        for parent_id in parents:
            await self._delete_routed(searchable, task.record_id, parent_id)

    async def _delete_routed(
        self, searchable: SearchableType, record_id: Any, parent_id: Any
    ) -> None:
        document_id = composite_id(searchable.singular, record_id)
        try:
            await self.engine.delete_document(document_id, parent_node_id(parent_id))
        except NotFoundError:
            logger.debug("%s already absent under project %s", document_id, parent_id)
            return
        logger.debug("Removed %s from project %s", document_id, parent_id)

    async def _ensure_parent_node(self, project_id: Any) -> None:
        node_id = parent_node_id(project_id)
        if await self.engine.document_exists(node_id, node_id):
            return

        parents = self.registry.parents
        projects = await self._load(parents, project_id)
        if not projects:
            logger.warning("Parent project %s is outside the searchable scope", project_id)
            return
        await self.engine.index_document(build_parent_node(parents, projects[0]))
        logger.info("Indexed missing parent node %s", node_id)
        # A missing node means the project's children were removed with it
        await self._import_children(project_id)

    async def _import_children(self, project_id: Any) -> int:
        errors = 0
        for searchable in self.registry:
            errors += await import_scope(
                self.engine,
                searchable,
                build_index_document,
                self.batch_size,
                project_id=project_id,
            )
        if errors:
            logger.warning("Re-import of project %s finished with %d errors", project_id, errors)
        return errors

    async def _sync_project(self, project_id: Any) -> SyncOutcome:
        parents = self.registry.parents
        projects = await self._load(parents, project_id)

        if projects:
            node = build_parent_node(parents, projects[0])
            restored = not await self.engine.document_exists(node.id, node.routing)
            await self.engine.index_document(node)
            if restored:
                await self._import_children(project_id)
            return SyncOutcome.INDEXED

        # A parent node is only ever removed together with its children
        node_id = parent_node_id(project_id)
        query = {
            "bool": {
                "should": [{"ids": {"values": [node_id]}}] + [
                    {"parent_id": {"type": singular, "id": node_id}}
                    for singular in self.registry.singulars
                ],
                "minimum_should_match": 1,
            }
        }
        deleted = await self.engine.delete_by_query(query, routing=node_id)
        logger.info("Removed project %s from index (%d documents)", project_id, deleted)
        return SyncOutcome.DELETED
