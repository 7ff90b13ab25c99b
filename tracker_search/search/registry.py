"""Registry of searchable record types.

A searchable type ties a type name to the collaborators the indexer needs:
the scope that enumerates records currently eligible for the index, the
serializer that turns one record into a field bag, and an optional mapping
contribution merged into the index schema.

The registry is populated once at startup (see ``tracker_search.host``) and
keeps declaration order, which is the order types are imported in a full
reindex.
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Iterator, Protocol, Sequence

from .errors import UnknownSearchType

# Join relation name of the synthetic project parent documents
PARENT_TYPE = "parent_project"


class SearchScope(Protocol):
    """Host-owned view of the records currently eligible for indexing."""

    def batches(
        self,
        batch_size: int,
        record_id: Any | None = None,
        project_id: Any | None = None,
    ) -> AsyncIterator[Sequence[Any]]:
        """Yield eligible records in batches.

        ``record_id`` narrows the batches to that one record, ``project_id``
        to the records owned by that project.
        """
        ...

    async def count(self, record_id: Any | None = None) -> int:
        """Number of eligible records, optionally only the one with ``record_id``."""
        ...


Serializer = Callable[[Any], dict[str, Any]]


@dataclass(frozen=True)
class SearchableType:
    """A class of records participating in search.

    Attributes:
        name: Plural type name used by callers ("issues", "wiki_pages")
        singular: Singular form used in document ids and the ``type`` field
        scope: Searchable scope for this type
        serializer: record -> field bag. The bag must carry the owning
            project id under ``_parent``.
        mapping: Extra field mappings merged into the index properties
    """

    name: str
    singular: str
    scope: SearchScope
    serializer: Serializer
    mapping: dict[str, Any] = field(default_factory=dict)


class SearchTypeRegistry:
    """Ordered mapping from type name to SearchableType.

    ``parents`` describes the project parent nodes. It is not part of the
    searchable types: callers can neither reindex nor query it by name.
    """

    def __init__(
        self,
        parents: SearchableType,
        types: Sequence[SearchableType] = (),
    ):
        self.parents = parents
        self._types: dict[str, SearchableType] = {}
        for search_type in types:
            self.register(search_type)

    def register(self, search_type: SearchableType) -> None:
        if search_type.name in self._types:
            raise ValueError(f"Search type already registered: {search_type.name}")
        self._types[search_type.name] = search_type

    def get(self, name: str) -> SearchableType:
        """Look up a type by plural name.

        Raises:
            UnknownSearchType: If the name is not registered.
        """
        try:
            return self._types[name]
        except KeyError:
            raise UnknownSearchType(name, self.names) from None

    def find(self, name: str) -> SearchableType | None:
        """Look up a type by plural or singular name without raising."""
        search_type = self._types.get(name)
        if search_type is not None:
            return search_type
        for candidate in self._types.values():
            if candidate.singular == name:
                return candidate
        return None

    @property
    def names(self) -> list[str]:
        return list(self._types)

    @property
    def singulars(self) -> list[str]:
        return [t.singular for t in self._types.values()]

    def __iter__(self) -> Iterator[SearchableType]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, name: object) -> bool:
        return name in self._types
