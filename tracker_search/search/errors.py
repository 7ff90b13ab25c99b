"""Search indexing error types.

Document-level failures are not represented here: bulk item failures are
counted by the reindex orchestrator, and a 404 on delete is success. Engine
transport failures propagate as the Elasticsearch client's own exceptions.
"""


class SearchError(Exception):
    """Base class for search indexing errors."""


class UnknownSearchType(SearchError, LookupError):
    """Raised when a search type is not in the registry."""

    def __init__(self, search_type: str, available: list[str]):
        self.search_type = search_type
        self.available = available
        super().__init__(
            f"Wrong search type [{search_type}]. "
            f"Available search types are {available}"
        )


class SchemaConflict(SearchError):
    """Raised when creating an existing index or deleting a missing one."""

    def __init__(self, index_name: str, message: str):
        self.index_name = index_name
        super().__init__(f"{message}: {index_name}")
