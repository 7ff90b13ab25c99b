"""Tracker bindings for the search pipeline: scopes, serializers, permissions and commit hooks."""

from .hooks import SearchCommitHook
from .permissions import ProjectPermissions
from .registry import MODEL_TYPE_NAMES, PROJECTS, build_search_registry

__all__ = [
    "MODEL_TYPE_NAMES",
    "PROJECTS",
    "ProjectPermissions",
    "SearchCommitHook",
    "build_search_registry",
]
