"""Tolerant mapping of Jira wire records to domain entities."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from jira_sync.core.adf import extract_text_from_adf
from jira_sync.core.entities import Issue, IssuePriority, IssueType, Project
from jira_sync.core.logging_utils import sanitize_for_logging


logger = logging.getLogger(__name__)

# Jira Cloud renders offsets without a colon ("+0000")
_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


class UnmappableRecord(ValueError):
    """A wire record that cannot be turned into a domain entity."""


def parse_positive_int(value: Any, field: str) -> int:
    """Parse a Jira numeric id (sent as a string) into a positive int."""
    if isinstance(value, bool) or value is None:
        raise UnmappableRecord(f"{field} is missing")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        number = int(value)
    else:
        raise UnmappableRecord(f"{field} is not an integer: {value!r}")
    if number <= 0:
        raise UnmappableRecord(f"{field} must be positive: {number}")
    return number


def parse_jira_datetime(value: Any, field: str) -> datetime:
    """
    Parse a Jira timestamp into a naive UTC datetime.

    Returns a naive UTC datetime to match our DB columns
    (TIMESTAMP WITHOUT TIME ZONE).
    """
    if not isinstance(value, str) or not value:
        raise UnmappableRecord(f"{field} is missing")
    cleaned = _COMPACT_OFFSET.sub(r"\1:\2", value.replace("Z", "+00:00"))
    try:
        dt = datetime.fromisoformat(cleaned)
    except ValueError:
        raise UnmappableRecord(f"{field} is not a timestamp: {value!r}")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _name_of(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        return value.get("name")
    return None


def _build_issue(raw: Dict[str, Any]) -> Issue:
    fields = raw.get("fields")
    if not isinstance(fields, dict):
        raise UnmappableRecord("fields object is missing")

    issue_id = parse_positive_int(raw.get("id"), "id")
    project = fields.get("project") if isinstance(fields.get("project"), dict) else {}
    project_id = parse_positive_int(project.get("id"), "fields.project.id")

    type_name = _name_of(fields.get("issuetype"))
    issue_type = IssueType.parse(type_name)
    if issue_type is None:
        raise UnmappableRecord(f"unknown issue type: {type_name!r}")

    priority_name = _name_of(fields.get("priority"))
    priority = IssuePriority.parse(priority_name)
    if priority is None:
        raise UnmappableRecord(f"unknown priority: {priority_name!r}")

    key = raw.get("key")
    if not isinstance(key, str) or not key:
        raise UnmappableRecord("key is missing")

    summary = fields.get("summary")
    if not isinstance(summary, str) or not summary:
        raise UnmappableRecord("summary is empty")

    description = None
    if fields.get("description") is not None:
        description = extract_text_from_adf(fields["description"])

    try:
        return Issue(
            id=issue_id,
            project_id=project_id,
            key=key,
            summary=summary,
            description=description,
            issue_type=issue_type,
            priority=priority,
            created_at=parse_jira_datetime(fields.get("created"), "fields.created"),
            updated_at=parse_jira_datetime(fields.get("updated"), "fields.updated"),
        )
    except ValueError as e:
        # InvalidIssueKeyError is a ValueError too
        raise UnmappableRecord(str(e)) from e


def map_issue(raw: Any) -> Optional[Issue]:
    """
    Convert one issue from a Jira search response into an Issue.

    Returns None when the record is unmappable (bad id, unknown issue type or
    priority, malformed key or timestamps). The caller drops such records
    from the batch; a warning is logged for each.
    """
    if not isinstance(raw, dict):
        logger.warning(f"Dropping Jira issue record of type {type(raw).__name__}")
        return None
    try:
        return _build_issue(raw)
    except UnmappableRecord as e:
        logger.warning(
            f"Dropping Jira issue {sanitize_for_logging(raw.get('key') or raw.get('id'), 100)}: "
            f"{sanitize_for_logging(e, 200)}"
        )
        return None


def map_project(raw: Any) -> Optional[Project]:
    """Convert one entry of /rest/api/3/project into a Project, or None."""
    if not isinstance(raw, dict):
        logger.warning(f"Dropping Jira project record of type {type(raw).__name__}")
        return None
    try:
        project_id = parse_positive_int(raw.get("id"), "id")
        name = raw.get("name")
        if not isinstance(name, str) or not name:
            raise UnmappableRecord("project name is empty")
        key = raw.get("key")
        if not isinstance(key, str):
            raise UnmappableRecord("project key is missing")
        return Project(id=project_id, key=key, name=name)
    except ValueError as e:
        logger.warning(
            f"Dropping Jira project {sanitize_for_logging(raw.get('key') or raw.get('id'), 100)}: "
            f"{sanitize_for_logging(e, 200)}"
        )
        return None
