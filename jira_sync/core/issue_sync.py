"""
Issue synchronization pipeline.

Reads the tracked project keys, streams issue batches updated since a
watermark from the issue source and persists every non-empty batch in its
own transaction. The first failure aborts the run; batches committed before
it stay committed.
"""

import logging
from datetime import datetime
from typing import AsyncIterator, List, Protocol, Sequence

from jira_sync.core.entities import Issue


logger = logging.getLogger(__name__)


class ProjectKeySource(Protocol):
    async def find_all_project_keys(self) -> List[str]: ...


class IssueSource(Protocol):
    def fetch_issue_batches(
        self, project_keys: Sequence[str], since: datetime
    ) -> AsyncIterator[List[Issue]]: ...


class IssueStore(Protocol):
    async def bulk_upsert(self, issues: List[Issue]) -> List[Issue]: ...


class IssueSyncError(Exception):
    """Base class for issue sync failures. The underlying error is chained."""


class ProjectKeyFetchError(IssueSyncError):
    """The tracked project keys could not be read."""


class IssueFetchError(IssueSyncError):
    """Fetching a page of issues from Jira failed."""


class IssuePersistError(IssueSyncError):
    """Persisting a batch of issues failed."""


class IssueSyncService:
    """Runs one issue sync from a watermark to completion or first failure."""

    def __init__(
        self,
        project_keys: ProjectKeySource,
        issue_source: IssueSource,
        issue_store: IssueStore,
    ):
        self.project_keys = project_keys
        self.issue_source = issue_source
        self.issue_store = issue_store

    async def sync(self, since: datetime) -> int:
        """
        Sync all issues updated at or after `since`.

        Returns:
            Number of issues persisted across all batches.

        Raises:
            ProjectKeyFetchError: reading project keys failed; nothing was fetched.
            IssueFetchError: a page could not be fetched.
            IssuePersistError: a batch could not be persisted.
        """
        try:
            keys = await self.project_keys.find_all_project_keys()
        except Exception as e:
            logger.error(f"Failed to fetch project keys: {e}")
            raise ProjectKeyFetchError(f"Failed to fetch project keys: {e}") from e

        logger.info(f"Syncing issues updated since {since.isoformat()} for {len(keys)} projects")

        total = 0
        batch_number = 0
        batches = self.issue_source.fetch_issue_batches(keys, since)
        try:
            while True:
                try:
                    batch = await batches.__anext__()
                except StopAsyncIteration:
                    break
                except Exception as e:
                    logger.error(f"Failed to fetch issues after {total} persisted: {e}")
                    raise IssueFetchError(f"Failed to fetch issues: {e}") from e

                batch_number += 1
                if not batch:
                    logger.debug(f"Batch {batch_number} is empty, skipping")
                    continue

                try:
                    await self.issue_store.bulk_upsert(batch)
                except Exception as e:
                    logger.error(f"Failed to persist batch {batch_number} ({len(batch)} issues): {e}")
                    raise IssuePersistError(
                        f"Failed to persist batch of {len(batch)} issues: {e}"
                    ) from e

                total += len(batch)
                logger.info(f"Persisted batch {batch_number}: {len(batch)} issues (total {total})")
        finally:
            aclose = getattr(batches, "aclose", None)
            if aclose is not None:
                await aclose()

        logger.info(f"Issue sync complete: {total} issues synced")
        return total
