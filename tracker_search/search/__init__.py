"""Search index pipeline: schema, transformation, reindex, sync and queries."""

from .engine import SearchEngine
from .errors import SchemaConflict, SearchError, UnknownSearchType
from .query import SearchQueryBuilder, VIEW_PERMISSION
from .registry import PARENT_TYPE, SearchableType, SearchScope, SearchTypeRegistry
from .reindex import ReindexOrchestrator
from .schema import IndexSchemaManager
from .sync import ChangeKind, SyncDispatcher, SyncOutcome, SyncTask
from .transformer import (
    IndexDocument,
    build_index_document,
    build_parent_node,
    composite_id,
    parent_node_id,
)

__all__ = [
    # Engine
    "SearchEngine",
    # Errors
    "SchemaConflict",
    "SearchError",
    "UnknownSearchType",
    # Registry
    "PARENT_TYPE",
    "SearchableType",
    "SearchScope",
    "SearchTypeRegistry",
    # Transformer
    "IndexDocument",
    "build_index_document",
    "build_parent_node",
    "composite_id",
    "parent_node_id",
    # Components
    "IndexSchemaManager",
    "ReindexOrchestrator",
    "SyncDispatcher",
    "SearchQueryBuilder",
    "VIEW_PERMISSION",
    # Sync
    "ChangeKind",
    "SyncOutcome",
    "SyncTask",
]
