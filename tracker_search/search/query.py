"""Permission-scoped search queries."""

import logging
from typing import Any, Mapping, Protocol

from .engine import SearchEngine
from .registry import SearchTypeRegistry

logger = logging.getLogger(__name__)

# Permission an actor needs on the owning project to see a record
VIEW_PERMISSION = "view_project"

HIGHLIGHT = {
    "pre_tags": ["<mark>"],
    "post_tags": ["</mark>"],
    "fields": {"title": {}, "description": {"fragment_size": 150, "number_of_fragments": 3}},
}


class ProjectPermissionScope(Protocol):
    """Host-owned expansion of a permission requirement into a query clause."""

    async def allowed_query(self, actor: Any, options: Mapping[str, Any]) -> dict:
        """Return a query restricted to documents ``actor`` may see.

        ``options`` carries ``permission``, ``type`` and optionally the
        caller's base ``query``.
        """
        ...


class SearchQueryBuilder:
    """Builds queries that always carry the type and permission constraints."""

    def __init__(
        self,
        registry: SearchTypeRegistry,
        permissions: ProjectPermissionScope,
        engine: SearchEngine | None = None,
    ):
        self.registry = registry
        self.permissions = permissions
        self.engine = engine

    async def build_query(
        self,
        actor: Any,
        search_type: str,
        options: Mapping[str, Any] | None = None,
    ) -> dict:
        """Build the query for ``actor`` searching ``search_type``.

        Caller options are merged first, so they can add keys but never
        replace the permission or the document type.

        Raises:
            UnknownSearchType: If ``search_type`` is not registered.
        """
        searchable = self.registry.get(search_type)
        merged = {
            **(options or {}),
            "permission": VIEW_PERMISSION,
            "type": searchable.singular,
        }
        return await self.permissions.allowed_query(actor, merged)

    async def search(
        self,
        actor: Any,
        text: str,
        search_type: str,
        limit: int = 20,
        offset: int = 0,
    ) -> dict:
        """Run a full-text search over one type and return formatted hits."""
        if self.engine is None:
            raise RuntimeError("SearchQueryBuilder has no engine configured")

        base_query = {
            "simple_query_string": {
                "query": text,
                "fields": ["title^3", "description"],
                "default_operator": "and",
            }
        }
        query = await self.build_query(actor, search_type, {"query": base_query})
        response = await self.engine.search(
            query, size=limit, from_=offset, highlight=HIGHLIGHT
        )

        hits = []
        for hit in response["hits"]["hits"]:
            source = hit.get("_source", {})
            hits.append({
                "id": hit["_id"],
                "type": source.get("type"),
                "title": source.get("title"),
                "url": source.get("url"),
                "datetime": source.get("datetime"),
                "score": hit.get("_score"),
                "highlight": hit.get("highlight", {}),
            })

        total = response["hits"]["total"]
        logger.debug("Search %s for %r returned %d hits", search_type, text, len(hits))
        return {
            "hits": hits,
            "total": total["value"] if isinstance(total, dict) else total,
            "took": response.get("took"),
            "query": text,
        }
