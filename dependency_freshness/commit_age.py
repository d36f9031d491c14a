"""
Commit distance and age of a consumed commit.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Optional, Tuple

from .errors import NotFoundError
from .interfaces import CommitHistoryProvider
from .models import Commit, CommitComparison, RepositoryRef


logger = logging.getLogger(__name__)


class CommitAgeResolver:
    """Resolve how far a consumed commit is behind its branch head."""

    def __init__(self, provider: CommitHistoryProvider, log: Optional[logging.Logger] = None) -> None:
        """Initialize the resolver.

        Args:
            provider: Source-control comparison provider
            log: Logger for recoverable conditions (defaults to the module logger)
        """
        self.provider = provider
        self.logger = log or logger

    def resolve(
        self, ref: RepositoryRef, consumed_sha: str, branch: str
    ) -> Tuple[Optional[int], Optional[datetime]]:
        """Return (commit distance, commit age) for a consumed commit.

        The branch is compared as the head, so "ahead by" is how far the
        branch is ahead of the consumed commit, i.e. how far behind the
        consumed commit is.

        Args:
            ref: Repository on the source-control host
            consumed_sha: Commit the consuming build used
            branch: Branch the consumed build was produced from

        Returns:
            Tuple of (distance, age); either may be None when unavailable
        """
        try:
            comparison = self.provider.compare(ref.owner, ref.repo, consumed_sha, branch)
        except NotFoundError:
            self.logger.warning(
                "Failed to compare commit history for '%s' between '%s' and '%s'.",
                ref.key, consumed_sha, branch,
            )
            return None, None

        distance = comparison.ahead_by
        if not comparison.commits:
            return distance, None

        first = self._first_commit_after(comparison, consumed_sha)
        if first is None:
            # Expected when the history is larger than the provider's comparison window.
            self.logger.debug(
                "Failed to follow first parents of %s back to %s; commit age unknown",
                ref.key, consumed_sha,
            )
            return distance, None
        return distance, first.committed_at

    def _first_commit_after(self, comparison: CommitComparison, consumed_sha: str) -> Optional[Commit]:
        """Walk first parents from the newest commit to the child of consumed_sha."""
        by_sha: Dict[str, Commit] = {commit.sha: commit for commit in comparison.commits}
        current = comparison.commits[-1]

        for _ in range(len(by_sha)):
            parent = current.first_parent
            if parent == consumed_sha:
                return current
            if parent is None or parent not in by_sha:
                return None
            current = by_sha[parent]
        return None
