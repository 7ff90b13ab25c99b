"""SQLAlchemy searchable scopes.

A scope is a fixed set of WHERE criteria over one model. The same criteria
drive full reindexing (all rows, keyset-paginated) and single-record sync
(filtered to one id), so both paths agree on what belongs in the index.
"""

from typing import Any, AsyncIterator, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql import ColumnElement, Select

from ..models import Document, Issue, Project, WikiPage


class SqlAlchemySearchScope:
    """Searchable scope backed by a SELECT over one ORM model."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        model: type,
        *criteria: ColumnElement[bool],
    ):
        self.session_maker = session_maker
        self.model = model
        self.criteria = criteria
        # Projects own themselves
        self.project_column = getattr(model, "project_id", model.id)

    def statement(
        self, record_id: Any | None = None, project_id: Any | None = None
    ) -> Select:
        stmt = select(self.model).where(*self.criteria)
        if record_id is not None:
            stmt = stmt.where(self.model.id == record_id)
        if project_id is not None:
            stmt = stmt.where(self.project_column == project_id)
        return stmt

    async def batches(
        self,
        batch_size: int,
        record_id: Any | None = None,
        project_id: Any | None = None,
    ) -> AsyncIterator[Sequence[Any]]:
        """Yield in-scope rows ordered by id, ``batch_size`` at a time.

        Uses keyset pagination (``id > last_id``) so rows inserted during a
        long reindex do not shift later pages.
        """
        last_id = None
        async with self.session_maker() as db:
            while True:
                stmt = self.statement(record_id, project_id).order_by(self.model.id).limit(batch_size)
                if last_id is not None:
                    stmt = stmt.where(self.model.id > last_id)

                result = await db.execute(stmt)
                records = result.scalars().all()
                if not records:
                    break

                yield records

                if len(records) < batch_size:
                    break
                last_id = records[-1].id
                # Detach the batch so the identity map does not grow with the scope
                db.expunge_all()

    async def count(self, record_id: Any | None = None) -> int:
        async with self.session_maker() as db:
            result = await db.execute(
                select(func.count()).select_from(self.statement(record_id).subquery())
            )
            return result.scalar() or 0


def active_project_ids() -> Select:
    """Subquery of projects whose records may appear in search."""
    return select(Project.id).where(Project.archived_at.is_(None))


def project_scope(session_maker) -> SqlAlchemySearchScope:
    return SqlAlchemySearchScope(session_maker, Project, Project.archived_at.is_(None))


def issue_scope(session_maker) -> SqlAlchemySearchScope:
    return SqlAlchemySearchScope(
        session_maker,
        Issue,
        Issue.deleted_at.is_(None),
        Issue.is_private.is_(False),
        Issue.project_id.in_(active_project_ids()),
    )


def wiki_page_scope(session_maker) -> SqlAlchemySearchScope:
    return SqlAlchemySearchScope(
        session_maker,
        WikiPage,
        WikiPage.deleted_at.is_(None),
        WikiPage.project_id.in_(active_project_ids()),
    )


def document_scope(session_maker) -> SqlAlchemySearchScope:
    return SqlAlchemySearchScope(
        session_maker,
        Document,
        Document.deleted_at.is_(None),
        Document.project_id.in_(active_project_ids()),
    )
