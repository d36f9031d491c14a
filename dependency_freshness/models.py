"""
Core data models for dependency freshness.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Channel:
    """A channel a build was published to."""

    id: int
    name: str
    classification: str = ""


@dataclass(frozen=True)
class DependencyEdge:
    """A consuming build's dependency on a consumed build."""

    consuming_build_id: int
    consumed_build_id: int


@dataclass(frozen=True)
class Build:
    """A build produced by the build-asset registry."""

    id: int
    commit: str
    date_produced: datetime
    github_repository: Optional[str] = None
    github_branch: Optional[str] = None
    azdo_repository: Optional[str] = None
    azdo_branch: Optional[str] = None
    azdo_account: Optional[str] = None
    azdo_project: Optional[str] = None
    azdo_build_id: Optional[int] = None
    channels: Tuple[Channel, ...] = ()
    dependencies: Tuple[DependencyEdge, ...] = ()

    @property
    def repository(self) -> Optional[str]:
        """Repository URL the registry indexes this build under."""
        return self.github_repository or self.azdo_repository

    @property
    def branch(self) -> Optional[str]:
        return self.github_branch or self.azdo_branch


@dataclass(frozen=True)
class BuildGraph:
    """Builds reachable from a root build, keyed by id."""

    builds: Dict[int, Build]
    edges: Tuple[DependencyEdge, ...] = ()

    def __post_init__(self) -> None:
        for edge in self.edges:
            for build_id in (edge.consuming_build_id, edge.consumed_build_id):
                if build_id not in self.builds:
                    raise ValueError(f"Dependency edge references unknown build {build_id}")

    def get(self, build_id: int) -> Build:
        return self.builds[build_id]


@dataclass(frozen=True)
class Commit:
    """A commit with its committer date and ordered parent SHAs."""

    sha: str
    committed_at: Optional[datetime]
    parents: Tuple[str, ...] = ()

    @property
    def first_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None


@dataclass(frozen=True)
class CommitComparison:
    """Result of comparing a base commit with a head ref."""

    ahead_by: int
    commits: Tuple[Commit, ...] = ()


@dataclass(frozen=True)
class RepositoryRef:
    """Owner and name of a repository on the source-control host."""

    owner: str
    repo: str

    @property
    def key(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True)
class Sla:
    """Staleness thresholds in days."""

    warning_days: int
    fail_days: int


class SlaStatus(str, Enum):
    """Staleness classification of a dependency."""

    OK = "ok"
    WARNING = "warning"
    FAILING = "failing"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class RateLimit:
    """Rate-limit snapshot reported by the source-control host."""

    limit: int
    remaining: int
    reset: Optional[datetime] = None


@dataclass(frozen=True)
class FreshnessResult:
    """Freshness of one consumed dependency."""

    build: Build
    short_name: str
    commit_url: str
    build_url: str
    commit_distance: Optional[int] = None
    commit_age: Optional[datetime] = None
    oldest_unconsumed_build: Optional[Build] = None
    sla_status: SlaStatus = SlaStatus.UNKNOWN


@dataclass(frozen=True)
class EdgeFailure:
    """A dependency whose analysis raised."""

    consumed_build_id: int
    error: str


@dataclass
class FreshnessReport:
    """Aggregated freshness results for a consuming build."""

    build: Build
    results: list = field(default_factory=list)
    failures: list = field(default_factory=list)
    rate_limit: Optional[RateLimit] = None
    cancelled: bool = False
