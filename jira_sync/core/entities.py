"""Domain entities for replicated Jira data."""

import enum
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


ISSUE_KEY_PATTERN = re.compile(r"(?P<project>[^-\s]+)-(?P<number>\d+)")
PROJECT_NAME_MAX_LENGTH = 255


class InvalidIssueKeyError(ValueError):
    """Raised when an issue key does not follow the `<PROJECT>-<number>` format."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Issue key {key!r} does not match <PROJECT_KEY>-<number>")


def derive_project_key(issue_key: str) -> str:
    """
    Return the project key encoded in an issue key.

    Examples:
        >>> derive_project_key("PROJ-123")
        'PROJ'
    """
    match = ISSUE_KEY_PATTERN.fullmatch(issue_key) if isinstance(issue_key, str) else None
    if not match:
        raise InvalidIssueKeyError(issue_key)
    return match.group("project")


class IssueType(str, enum.Enum):
    """Closed set of issue types tracked locally."""

    EPIC = "epic"
    STORY = "story"
    TASK = "task"
    SUBTASK = "subtask"
    BUG = "bug"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["IssueType"]:
        """Resolve a Jira issue type name, case-insensitively."""
        if not isinstance(name, str):
            return None
        normalized = name.strip().lower()
        if normalized == "sub-task":
            normalized = "subtask"
        try:
            return cls(normalized)
        except ValueError:
            return None


class IssuePriority(str, enum.Enum):
    """Closed, ordered set of priorities (Lowest < ... < Highest)."""

    LOWEST = "lowest"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    HIGHEST = "highest"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, IssuePriority):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["IssuePriority"]:
        """Resolve a Jira priority name, case-insensitively."""
        if not isinstance(name, str):
            return None
        try:
            return cls(name.strip().lower())
        except ValueError:
            return None


_PRIORITY_RANK = {priority: rank for rank, priority in enumerate(IssuePriority)}


@dataclass(frozen=True)
class Project:
    """A Jira project. `name` is None for placeholder rows discovered via issues."""

    id: int
    key: str
    name: Optional[str] = None

    def __post_init__(self):
        if self.id <= 0:
            raise ValueError(f"Project ID must be positive: {self.id}")
        if not self.key:
            raise ValueError("Project key cannot be empty")
        if self.name is not None and len(self.name) > PROJECT_NAME_MAX_LENGTH:
            raise ValueError(
                f"Project name exceeds maximum length "
                f"({len(self.name)} > {PROJECT_NAME_MAX_LENGTH})"
            )


@dataclass(frozen=True)
class Issue:
    """A Jira issue as replicated into the local store."""

    id: int
    project_id: int
    key: str
    summary: str
    description: Optional[str]
    issue_type: IssueType
    priority: IssuePriority
    created_at: datetime
    updated_at: datetime

    def __post_init__(self):
        if self.id <= 0:
            raise ValueError(f"Issue ID must be positive: {self.id}")
        if self.project_id <= 0:
            raise ValueError(f"Project ID must be positive: {self.project_id}")
        if not self.summary:
            raise ValueError(f"Issue {self.key} has an empty summary")
        derive_project_key(self.key)

    @property
    def project_key(self) -> str:
        return derive_project_key(self.key)
