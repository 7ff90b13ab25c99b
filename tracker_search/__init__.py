"""Tracker search: Elasticsearch indexing and permission-scoped search for tracker projects."""

__version__ = "1.0.0"
