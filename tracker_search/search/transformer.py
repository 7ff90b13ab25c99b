"""Record -> index document transformation.

Pure functions, no I/O. The document id scheme is a persisted contract:

    "<type-singular>-<record_id>"   entity documents
    "parent_project-<project_id>"   project parent nodes

and every document is routed by the id of its parent node, so children
share a shard with their project.
"""

from dataclasses import dataclass
from typing import Any

from .registry import PARENT_TYPE, SearchableType

# Field bag key holding the owning project id
PARENT_KEY = "_parent"

# Name of the join field declared in the index mappings
JOIN_FIELD = "parent_project"


@dataclass(frozen=True)
class IndexDocument:
    """A document ready to be written to the index."""

    id: str
    routing: str
    source: dict[str, Any]


def composite_id(singular: str, record_id: Any) -> str:
    return f"{singular}-{record_id}"


def parent_node_id(project_id: Any) -> str:
    return composite_id(PARENT_TYPE, project_id)


def build_index_document(search_type: SearchableType, record: Any) -> IndexDocument:
    """Build the child document for ``record`` of ``search_type``.

    The serializer's field bag is used as-is, except that the ``_parent``
    project reference is replaced by the join descriptor. A record without
    ``_parent`` is a scope defect and surfaces as a KeyError.
    """
    data = dict(search_type.serializer(record))
    data["type"] = search_type.singular
    parent = parent_node_id(data.pop(PARENT_KEY))
    data[JOIN_FIELD] = {"name": search_type.singular, "parent": parent}
    return IndexDocument(
        id=composite_id(search_type.singular, record.id),
        routing=parent,
        source=data,
    )


def build_parent_node(parents: SearchableType, project: Any) -> IndexDocument:
    """Build the parent node document for a project.

    Parent nodes are routed by their own id, the same value their children
    use as routing key.
    """
    data = dict(parents.serializer(project))
    data.pop(PARENT_KEY, None)
    data["type"] = PARENT_TYPE
    data[JOIN_FIELD] = {"name": PARENT_TYPE}
    node_id = parent_node_id(project.id)
    return IndexDocument(id=node_id, routing=node_id, source=data)


def to_bulk_action(index_name: str, document: IndexDocument) -> dict[str, Any]:
    """Express a document as an ``index`` item for the bulk helpers."""
    return {
        "_op_type": "index",
        "_index": index_name,
        "_id": document.id,
        "_routing": document.routing,
        "_source": document.source,
    }

