"""
GitHub commit comparison client.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional
from urllib.parse import quote

import requests

from .errors import NotFoundError
from .models import Commit, CommitComparison, RateLimit
from .time_utils import parse_timestamp


logger = logging.getLogger(__name__)


def parse_comparison(data: Dict) -> CommitComparison:
    """Convert a compare API payload into a CommitComparison."""
    commits = []
    for item in data.get("commits") or []:
        committer = (item.get("commit") or {}).get("committer") or {}
        commits.append(Commit(
            sha=item["sha"],
            committed_at=parse_timestamp(committer.get("date")),
            parents=tuple(parent["sha"] for parent in item.get("parents") or []),
        ))
    return CommitComparison(ahead_by=int(data.get("ahead_by") or 0), commits=tuple(commits))


def parse_rate_limit(headers: Mapping[str, str]) -> Optional[RateLimit]:
    """Read the X-RateLimit-* headers of a response."""
    try:
        limit = int(headers["X-RateLimit-Limit"])
        remaining = int(headers["X-RateLimit-Remaining"])
    except (KeyError, TypeError, ValueError):
        return None
    reset = None
    if headers.get("X-RateLimit-Reset"):
        try:
            reset = datetime.fromtimestamp(int(headers["X-RateLimit-Reset"]), tz=timezone.utc)
        except ValueError:
            reset = None
    return RateLimit(limit=limit, remaining=remaining, reset=reset)


class GitHubClient:
    """Commit history provider backed by the GitHub REST API."""

    API_URL = "https://api.github.com"

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = API_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/vnd.github+json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        self._lock = threading.Lock()
        self._rate_limit: Optional[RateLimit] = None

    def compare(self, owner: str, repo: str, base_sha: str, head_ref: str) -> CommitComparison:
        """Compare base_sha with head_ref.

        Raises:
            NotFoundError: The repository, commit or ref does not exist
            requests.HTTPError: Any other unsuccessful response
        """
        url = (
            f"{self.api_url}/repos/{owner}/{repo}/compare/"
            f"{quote(base_sha, safe='')}...{quote(head_ref, safe='/')}"
        )
        logger.debug("Comparing %s/%s %s...%s", owner, repo, base_sha, head_ref)
        with self.session.get(url, timeout=self.timeout) as response:
            self._record_rate_limit(response.headers)
            if response.status_code == 404:
                raise NotFoundError(f"{owner}/{repo}: cannot compare {base_sha}...{head_ref}")
            response.raise_for_status()
            data = response.json()
        return parse_comparison(data)

    def remaining_quota(self) -> Optional[int]:
        with self._lock:
            return self._rate_limit.remaining if self._rate_limit else None

    def rate_limit(self) -> Optional[RateLimit]:
        with self._lock:
            return self._rate_limit

    def _record_rate_limit(self, headers: Mapping[str, str]) -> None:
        rate_limit = parse_rate_limit(headers)
        if rate_limit is None:
            return
        with self._lock:
            self._rate_limit = rate_limit
