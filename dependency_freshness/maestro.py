"""
Build-asset registry (Maestro) client.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional

import requests

from .models import Build, BuildGraph, Channel, DependencyEdge
from .time_utils import parse_timestamp


logger = logging.getLogger(__name__)


def parse_build(data: Dict) -> Build:
    """Convert a registry build payload into a Build."""
    build_id = int(data["id"])
    date_produced = parse_timestamp(data.get("dateProduced"))
    if date_produced is None:
        raise ValueError(f"Build {build_id} has no valid dateProduced")

    channels = tuple(
        Channel(
            id=int(channel["id"]),
            name=channel.get("name") or "",
            classification=channel.get("classification") or "",
        )
        for channel in data.get("channels") or []
    )
    dependencies = tuple(
        DependencyEdge(
            consuming_build_id=build_id,
            consumed_build_id=int(dep["buildId"]),
        )
        for dep in data.get("dependencies") or []
    )
    azdo_build_id = data.get("azureDevOpsBuildId")
    return Build(
        id=build_id,
        commit=data.get("commit") or "",
        date_produced=date_produced,
        github_repository=data.get("gitHubRepository"),
        github_branch=data.get("gitHubBranch"),
        azdo_repository=data.get("azureDevOpsRepository"),
        azdo_branch=data.get("azureDevOpsBranch"),
        azdo_account=data.get("azureDevOpsAccount"),
        azdo_project=data.get("azureDevOpsProject"),
        azdo_build_id=int(azdo_build_id) if azdo_build_id is not None else None,
        channels=channels,
        dependencies=dependencies,
    )


def parse_build_graph(data: Dict, root_id: int) -> BuildGraph:
    """Convert a registry graph payload into a BuildGraph rooted at root_id."""
    builds = {int(key): parse_build(value) for key, value in (data.get("builds") or {}).items()}
    if root_id not in builds:
        raise ValueError(f"Build graph does not contain root build {root_id}")

    edges = []
    for edge in builds[root_id].dependencies:
        if edge.consumed_build_id not in builds:
            logger.warning("Dependency build %s missing from graph of %s", edge.consumed_build_id, root_id)
            continue
        edges.append(edge)
    return BuildGraph(builds=builds, edges=tuple(edges))


class MaestroClient:
    """Build graph source backed by the Maestro REST API."""

    BASE_URL = "https://maestro-prod.westus2.cloudapp.azure.com"
    API_VERSION = "2019-01-16"

    def __init__(
        self,
        base_url: str = BASE_URL,
        token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 60,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    def _get(self, path: str, params: Optional[Dict] = None):
        query = {key: value for key, value in (params or {}).items() if value is not None}
        query["api-version"] = self.API_VERSION
        url = f"{self.base_url}{path}"
        logger.debug("GET %s %s", url, query)
        with self.session.get(url, params=query, timeout=self.timeout) as response:
            response.raise_for_status()
            return response.json()

    def get_latest_build(self, repo_url: str, channel_id: int) -> int:
        data = self._get("/api/builds/latest", {"repository": repo_url, "channelId": channel_id})
        return int(data["id"])

    def get_build_graph(self, build_id: int) -> BuildGraph:
        logger.info("Fetching build graph of %s", build_id)
        return parse_build_graph(self._get(f"/api/builds/{build_id}/graph"), build_id)

    def get_build(self, build_id: int) -> Build:
        return parse_build(self._get(f"/api/builds/{build_id}"))

    def list_builds(
        self,
        repo_url: str,
        channel_id: Optional[int],
        not_before: Optional[datetime],
        not_after: Optional[datetime],
    ) -> List[Build]:
        """Published builds of a repository, newest first as the registry returns them."""
        data = self._get(
            "/api/builds",
            {
                "repository": repo_url,
                "channelId": channel_id,
                "notBefore": not_before.isoformat() if not_before else None,
                "notAfter": not_after.isoformat() if not_after else None,
                "loadCollections": "false",
            },
        )
        return [parse_build(item) for item in data or []]
