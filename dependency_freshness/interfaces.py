"""
Interfaces for the build registry and source-control collaborators.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Protocol

from .models import Build, BuildGraph, CommitComparison, RateLimit


class BuildGraphSource(Protocol):
    """Supply builds and dependency graphs from the build-asset registry."""

    def get_latest_build(self, repo_url: str, channel_id: int) -> int:
        ...

    def get_build_graph(self, build_id: int) -> BuildGraph:
        ...

    def get_build(self, build_id: int) -> Build:
        ...

    def list_builds(
        self,
        repo_url: str,
        channel_id: Optional[int],
        not_before: Optional[datetime],
        not_after: Optional[datetime],
    ) -> List[Build]:
        """Published builds of a repository, newest first."""
        ...


class CommitHistoryProvider(Protocol):
    """Compare commit history on the source-control host."""

    def compare(self, owner: str, repo: str, base_sha: str, head_ref: str) -> CommitComparison:
        ...

    def remaining_quota(self) -> Optional[int]:
        ...

    def rate_limit(self) -> Optional[RateLimit]:
        ...
