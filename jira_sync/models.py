from datetime import datetime
from typing import Optional
from sqlalchemy import BigInteger, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from jira_sync.core.entities import IssuePriority, IssueType


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class JiraProjectRow(Base):
    """A Jira project. Rows created during issue sync have no name yet."""
    __tablename__ = "jira_project"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    key: Mapped[str] = mapped_column(String(50), nullable=False)
    # Nullable: placeholder rows are registered from issue keys before the project sync names them
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class JiraIssueRow(Base):
    """A Jira issue replicated from the search API."""
    __tablename__ = "jira_issue"
    __table_args__ = (
        Index('idx_jira_issue_project_id', 'project_id'),
        Index('idx_jira_issue_updated_at', 'updated_at'),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    project_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("jira_project.id"), nullable=False
    )
    key: Mapped[str] = mapped_column(String(255), nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    issue_type: Mapped[IssueType] = mapped_column(
        Enum(IssueType, name="jira_issue_type", values_callable=_enum_values),
        nullable=False,
    )
    priority: Mapped[IssuePriority] = mapped_column(
        Enum(IssuePriority, name="jira_issue_priority", values_callable=_enum_values),
        nullable=False,
    )
    # Set on first insert only; upserts never overwrite it
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
