"""
Repository URL parsing and link helpers.
"""

from __future__ import annotations

import re
from typing import Optional

from .models import Build, RepositoryRef


_REPO_URL_PATTERN = re.compile(
    r"https?://(www\.)?github\.com/(?P<owner>[A-Za-z0-9\-_.]+)/(?P<repo>[A-Za-z0-9\-_.]+)"
)
_REPO_REFERENCE_PATTERN = re.compile(r"^(?P<owner>[A-Za-z0-9\-_.]+)/(?P<repo>[A-Za-z0-9\-_.]+)")


def parse_repo_url(url: Optional[str]) -> Optional[RepositoryRef]:
    """Parse a GitHub repository URL into owner and repo."""
    if not url:
        return None
    match = _REPO_URL_PATTERN.search(url)
    if match is None:
        return None
    return RepositoryRef(owner=match.group("owner"), repo=match.group("repo"))


def parse_repo_reference(value: str) -> Optional[RepositoryRef]:
    """Parse an ``owner/repo`` reference or a full GitHub URL."""
    ref = parse_repo_url(value)
    if ref is not None:
        return ref
    match = _REPO_REFERENCE_PATTERN.match(value or "")
    if match is None:
        return None
    return RepositoryRef(owner=match.group("owner"), repo=match.group("repo"))


def repo_url(ref: RepositoryRef) -> str:
    return f"https://github.com/{ref.owner}/{ref.repo}"


def commit_url(build: Optional[Build]) -> str:
    """Link to the consumed commit on whichever host the build came from."""
    if build is None:
        return "unknown"
    if build.github_repository:
        return f"{build.github_repository}/commits/{build.commit}"
    return f"{build.azdo_repository}/commits?itemPath=%2F&itemVersion=GC{build.commit}"


def build_url(build: Optional[Build]) -> str:
    """Link to the Azure DevOps build results page."""
    if build is None:
        return "(unknown)"
    return (
        f"https://dev.azure.com/{build.azdo_account}/{build.azdo_project}"
        f"/_build/results?buildId={build.azdo_build_id}&view=results"
    )
