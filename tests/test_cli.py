"""Tests for the command-line entry point."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from dependency_freshness import cli
from dependency_freshness.models import Build, BuildGraph, CommitComparison, DependencyEdge


PRODUCED = datetime(2024, 1, 1, tzinfo=timezone.utc)
ROOT = Build(id=1, commit="root", date_produced=PRODUCED, github_repository="https://github.com/dotnet/installer",
             github_branch="main", dependencies=(DependencyEdge(1, 2),))
RUNTIME = Build(id=2, commit="abc", date_produced=PRODUCED, github_repository="https://github.com/dotnet/runtime",
                github_branch="main")


class FakeGitHubClient:
    def __init__(self, token=None):
        self.token = token

    def compare(self, owner, repo, base_sha, head_ref):
        return CommitComparison(ahead_by=0)

    def remaining_quota(self):
        return None

    def rate_limit(self):
        return None


class FakeMaestroClient:
    BASE_URL = "https://maestro.example"
    requested = []

    def __init__(self, base_url=None, token=None):
        self.base_url = base_url

    def get_latest_build(self, repo_url, channel_id):
        self.requested.append((repo_url, channel_id))
        return ROOT.id

    def get_build_graph(self, build_id):
        return BuildGraph(builds={1: ROOT, 2: RUNTIME}, edges=ROOT.dependencies)

    def get_build(self, build_id):
        return RUNTIME

    def list_builds(self, repo_url, channel_id, not_before, not_after):
        return [RUNTIME]


@pytest.fixture
def fake_clients(monkeypatch):
    monkeypatch.setattr(cli, "GitHubClient", FakeGitHubClient)
    monkeypatch.setattr(cli, "MaestroClient", FakeMaestroClient)
    FakeMaestroClient.requested = []


def test_main_writes_report(tmp_path: Path, fake_clients):
    cli.main(["--repo", "dotnet/installer", "--channel-id", "7", "--output-dir", str(tmp_path)])

    assert FakeMaestroClient.requested == [("https://github.com/dotnet/installer", 7)]
    data = json.loads((tmp_path / "dotnet_installer_freshness.json").read_text())
    assert [d["dependency"] for d in data["dependencies"]] == ["runtime"]
    assert data["dependencies"][0]["commit_distance"] == 0
    assert (tmp_path / "dotnet_installer_freshness.csv").exists()
    assert not (tmp_path / "dotnet_installer_freshness.xlsx").exists()


def test_main_honours_exclusions(tmp_path: Path, fake_clients):
    cli.main([
        "--repo", "https://github.com/dotnet/installer",
        "--channel-id", "7",
        "--exclude", "dotnet/runtime",
        "--output-dir", str(tmp_path),
    ])

    data = json.loads((tmp_path / "dotnet_installer_freshness.json").read_text())
    assert data["dependencies"] == []


def test_main_rejects_missing_default_sla(tmp_path: Path, fake_clients, capsys):
    sla_file = tmp_path / "sla.json"
    sla_file.write_text(json.dumps({"Repositories": {"dotnet/runtime": {"warning_days": 1, "fail_days": 2}}}))

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--repo", "dotnet/installer", "--channel-id", "7", "--sla-config", str(sla_file)])

    assert excinfo.value.code == 2
    assert "[Default]" in capsys.readouterr().err
    assert FakeMaestroClient.requested == []


def test_main_rejects_bad_repo_reference(fake_clients):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--repo", "installer", "--channel-id", "7"])

    assert excinfo.value.code == 2
