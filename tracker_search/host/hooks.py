"""Commit hooks feeding the sync dispatcher.

SQLAlchemy session events collect searchable changes at flush time and
report them once the transaction commits. A rolled back transaction
reports nothing. Reporting is fire-and-forget: the commit is never delayed
or failed by the search side.

The hook runs inside the process that writes tracker records, for example::

    dispatcher = SyncDispatcher(engine, registry, ArqJobQueue(pool))
    SearchCommitHook(dispatcher, MODEL_TYPE_NAMES).install(TrackerSession)

Hosts that do not share these models report their commits to
``POST /api/search/records/{type}/{id}`` instead.
"""

import asyncio
import logging
from typing import Any, Mapping

from sqlalchemy import event
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from ..search import ChangeKind, SyncDispatcher

logger = logging.getLogger(__name__)

# session.info key holding changes flushed in the current transaction
PENDING_KEY = "search_changes"


class SearchCommitHook:
    """Reports committed changes of mapped models to a SyncDispatcher.

    Args:
        dispatcher: Dispatcher receiving ``on_record_committed`` calls
        type_names: Model class -> search type name. Children must expose
            ``project_id``; it is captured as the routing parent, together
            with its previous value when the record moved.
    """

    def __init__(self, dispatcher: SyncDispatcher, type_names: Mapping[type, str]):
        self.dispatcher = dispatcher
        self.type_names = dict(type_names)
        self._tasks: set[asyncio.Task] = set()
        self._targets: list[Any] = []

    # ---- Installation ----

    def install(self, target: Any = Session) -> None:
        """Listen on ``target`` (a Session class, sessionmaker or session)."""
        event.listen(target, "after_flush", self._after_flush)
        event.listen(target, "after_commit", self._after_commit)
        event.listen(target, "after_rollback", self._after_rollback)
        self._targets.append(target)

    def uninstall(self) -> None:
        for target in self._targets:
            event.remove(target, "after_flush", self._after_flush)
            event.remove(target, "after_commit", self._after_commit)
            event.remove(target, "after_rollback", self._after_rollback)
        self._targets.clear()

    # ---- Session events ----

    def _after_flush(self, session: Session, flush_context) -> None:
        pending = session.info.setdefault(PENDING_KEY, {})

        for obj in session.new:
            self._collect(pending, obj, ChangeKind.CREATE)
        for obj in session.dirty:
            if session.is_modified(obj, include_collections=False):
                self._collect(pending, obj, ChangeKind.UPDATE)
        for obj in session.deleted:
            self._collect(pending, obj, ChangeKind.DELETE)

    def _collect(self, pending: dict, obj: Any, kind: ChangeKind) -> None:
        search_type = self.type_names.get(type(obj))
        if search_type is None or obj.id is None:
            return

        key = (search_type, obj.id)
        previous = pending.get(key)
        # Created then updated in one transaction is still a create
        if previous is not None and previous[0] == ChangeKind.CREATE and kind == ChangeKind.UPDATE:
            kind = ChangeKind.CREATE

        moved_from = None
        if hasattr(obj, "project_id"):
            moved_from = next(iter(get_history(obj, "project_id").deleted), None)
        # Several flushes of one transaction: the first known project wins
        if previous is not None and previous[2] is not None:
            moved_from = previous[2]
        pending[key] = (kind, getattr(obj, "project_id", None), moved_from)

    def _after_commit(self, session: Session) -> None:
        pending = session.info.pop(PENDING_KEY, None)
        if not pending:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop, dropping %d search changes", len(pending))
            return

        for (search_type, record_id), (kind, parent_id, moved_from) in pending.items():
            task = loop.create_task(
                self.dispatcher.on_record_committed(
                    search_type, record_id, kind, parent_id, previous_parent_id=moved_from
                )
            )
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    def _after_rollback(self, session: Session) -> None:
        session.info.pop(PENDING_KEY, None)

    # ---- Lifecycle ----

    async def wait_pending(self) -> None:
        """Wait until every reported change has been handed to the dispatcher."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks))
