"""Elasticsearch gateway.

Thin, explicitly constructed wrapper around ``AsyncElasticsearch`` bound to
one index. It exposes only the calls the indexing pipeline needs:

- index administration (exists / create / delete / refresh)
- bulk import with per-item failure accounting
- single-document index / delete / exists
- delete-by-query, count and search

Engine errors are not translated here: ``NotFoundError`` and transport
errors reach the caller, which decides what they mean.
"""

import logging
from typing import Any, AsyncIterable, Iterable

from elasticsearch import AsyncElasticsearch
from elasticsearch.helpers import async_streaming_bulk

from .transformer import IndexDocument

logger = logging.getLogger(__name__)

# Failed bulk items logged in full per bulk call; the rest are only counted
MAX_LOGGED_BULK_FAILURES = 10


class SearchEngine:
    """Index-bound gateway to the Elasticsearch cluster."""

    def __init__(self, client: AsyncElasticsearch, index_name: str):
        self.client = client
        self.index_name = index_name

    @classmethod
    def from_settings(cls, settings) -> "SearchEngine":
        """Build a gateway from application settings."""
        client = AsyncElasticsearch(
            settings.elasticsearch_url,
            basic_auth=settings.elasticsearch_basic_auth,
            request_timeout=settings.elasticsearch_timeout,
        )
        return cls(client, settings.search_index_name)

    async def close(self) -> None:
        await self.client.close()

    # ---- Administration ----

    async def index_exists(self) -> bool:
        return bool(await self.client.indices.exists(index=self.index_name))

    async def create_index(self, settings: dict, mappings: dict) -> None:
        await self.client.indices.create(
            index=self.index_name, settings=settings, mappings=mappings
        )

    async def delete_index(self) -> None:
        await self.client.indices.delete(index=self.index_name)

    async def refresh(self) -> None:
        await self.client.indices.refresh(index=self.index_name)

    # ---- Documents ----

    async def bulk(
        self,
        actions: Iterable[dict] | AsyncIterable[dict],
        chunk_size: int = 500,
    ) -> tuple[int, int]:
        """Send bulk actions and return ``(succeeded, failed)`` item counts.

        Item-level failures are logged and counted, never raised. Transport
        failures (connection errors, timeouts) propagate.
        """
        succeeded = 0
        failed = 0
        async for ok, item in async_streaming_bulk(
            self.client,
            actions,
            chunk_size=chunk_size,
            raise_on_error=False,
            raise_on_exception=True,
        ):
            if ok:
                succeeded += 1
                continue
            failed += 1
            if failed <= MAX_LOGGED_BULK_FAILURES:
                logger.warning("Bulk item failed: %s", item)
        if failed > MAX_LOGGED_BULK_FAILURES:
            logger.warning(
                "%d more bulk item failures not logged", failed - MAX_LOGGED_BULK_FAILURES
            )
        return succeeded, failed

    async def index_document(self, document: IndexDocument) -> None:
        """Create or replace one document under its id and routing."""
        await self.client.index(
            index=self.index_name,
            id=document.id,
            routing=document.routing,
            document=document.source,
        )

    async def delete_document(self, document_id: str, routing: str) -> None:
        """Delete one document. Raises ``NotFoundError`` if it is absent."""
        await self.client.delete(
            index=self.index_name, id=document_id, routing=routing
        )

    async def document_exists(self, document_id: str, routing: str) -> bool:
        return bool(
            await self.client.exists(
                index=self.index_name, id=document_id, routing=routing
            )
        )

    async def delete_by_query(self, query: dict, routing: str | None = None) -> int:
        """Delete every document matching ``query``; returns the deleted count."""
        response = await self.client.delete_by_query(
            index=self.index_name,
            query=query,
            routing=routing,
            conflicts="proceed",
            refresh=True,
        )
        return response["deleted"]

    async def count(self, query: dict | None = None) -> int:
        response = await self.client.count(index=self.index_name, query=query)
        return response["count"]

    async def search(
        self,
        query: dict,
        size: int = 20,
        from_: int = 0,
        highlight: dict | None = None,
    ) -> dict[str, Any]:
        response = await self.client.search(
            index=self.index_name,
            query=query,
            size=size,
            from_=from_,
            highlight=highlight,
        )
        return response.body

    async def health(self) -> dict[str, Any]:
        response = await self.client.cluster.health()
        return response.body
