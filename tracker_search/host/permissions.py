"""Project permission scoping for search queries.

Expands the "actor must hold view_project on the owning project" rule into
an Elasticsearch clause: children are matched through ``has_parent`` on the
project parent nodes the actor may view.

Visible projects (active only):
- administrators: every project
- members: public projects plus projects they are a member of
- anonymous: public projects
"""

import logging
from typing import Any, Mapping

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import Project, ProjectMember, User
from ..search import PARENT_TYPE, VIEW_PERMISSION, parent_node_id

logger = logging.getLogger(__name__)


class ProjectPermissions:
    """Project-permission collaborator backed by the tracker database.

    Args:
        session_maker: Tracker database sessions
        cache: Optional ``ProjectIdsCache``; lookups go straight to the
            database while it is missing or disconnected
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        cache=None,
    ):
        self.session_maker = session_maker
        self.cache = cache

    async def load_allowed_project_ids(self, actor: User | None) -> list[int]:
        """Query the ids of active projects ``actor`` may view."""
        stmt = select(Project.id).where(Project.archived_at.is_(None))

        if actor is None:
            stmt = stmt.where(Project.is_public.is_(True))
        elif not actor.is_admin:
            member_projects = select(ProjectMember.project_id).where(
                ProjectMember.user_id == actor.id
            )
            stmt = stmt.where(
                or_(Project.is_public.is_(True), Project.id.in_(member_projects))
            )

        async with self.session_maker() as db:
            result = await db.execute(stmt.order_by(Project.id))
            return list(result.scalars().all())

    async def allowed_project_ids(self, actor: User | None) -> list[int]:
        """Allowed project ids, cached per actor when Redis is up."""
        if self.cache is None or not self.cache.available:
            return await self.load_allowed_project_ids(actor)

        actor_key = actor.id if actor is not None else "anonymous"
        try:
            cached = await self.cache.load(actor_key)
        except Exception:
            logger.warning("Redis unavailable for project scope cache, querying without cache")
            return await self.load_allowed_project_ids(actor)
        if cached is not None:
            return cached

        project_ids = await self.load_allowed_project_ids(actor)
        try:
            await self.cache.store(actor_key, project_ids)
        except Exception:
            logger.warning("Failed to cache project scope in Redis")
        return project_ids

    async def allowed_query(self, actor: User | None, options: Mapping[str, Any]) -> dict:
        """Wrap ``options["query"]`` with the type and project permission filters."""
        permission = options.get("permission")
        if permission != VIEW_PERMISSION:
            raise ValueError(f"Unsupported search permission: {permission}")

        project_ids = await self.allowed_project_ids(actor)
        return {
            "bool": {
                "must": [options.get("query") or {"match_all": {}}],
                "filter": [
                    {"term": {"type": options["type"]}},
                    {
                        "has_parent": {
                            "parent_type": PARENT_TYPE,
                            "query": {
                                "ids": {"values": [parent_node_id(pid) for pid in project_ids]}
                            },
                        }
                    },
                ],
            }
        }
