"""Record -> field bag serializers.

Each serializer emits the fields of the index schema plus the owning
project id under ``_parent``. Descriptions are passed through raw; the
index analyzer strips HTML.
"""

from datetime import datetime, timezone

from ..models import Document, Issue, Project, WikiPage

# Content size limit for indexing (~50K words)
MAX_CONTENT_LENGTH = 300_000


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    # Naive values are stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc).isoformat()
    return value.astimezone(timezone.utc).isoformat()


def _truncate(text: str | None) -> str:
    return (text or "")[:MAX_CONTENT_LENGTH]


def serialize_project(project: Project) -> dict:
    return {
        "title": project.name,
        "description": _truncate(project.description),
        "datetime": _isoformat(project.updated_at),
        "url": f"/projects/{project.identifier}",
        "is_public": bool(project.is_public),
    }


def serialize_issue(issue: Issue) -> dict:
    return {
        "title": f"#{issue.id}: {issue.subject}",
        "description": _truncate(issue.description),
        "datetime": _isoformat(issue.updated_at),
        "url": f"/issues/{issue.id}",
        "fixed_version": issue.fixed_version,
        "_parent": issue.project_id,
    }


def serialize_wiki_page(page: WikiPage) -> dict:
    return {
        "title": page.title,
        "description": _truncate(page.text),
        "datetime": _isoformat(page.updated_at),
        "url": f"/projects/{page.project_id}/wiki/{page.title}",
        "_parent": page.project_id,
    }


def serialize_document(document: Document) -> dict:
    return {
        "title": document.title,
        "description": _truncate(document.description),
        "datetime": _isoformat(document.updated_at),
        "url": f"/documents/{document.id}",
        "category": document.category,
        "_parent": document.project_id,
    }
