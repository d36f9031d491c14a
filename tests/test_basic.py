"""Tests for the dependency_freshness package."""

import pytest


def test_package_import():
    """Test that the package can be imported."""
    import dependency_freshness
    assert dependency_freshness.__version__ == "0.1.0"


def test_cli_import():
    """Test that CLI module can be imported."""
    from dependency_freshness.cli import main
    assert callable(main)


def test_aggregator_import():
    """Test that aggregator module can be imported."""
    from dependency_freshness.aggregator import FreshnessAggregator
    assert FreshnessAggregator is not None


def test_clients_satisfy_interfaces():
    """Test that the HTTP clients expose the collaborator operations."""
    from dependency_freshness.github import GitHubClient
    from dependency_freshness.maestro import MaestroClient

    for name in ("compare", "remaining_quota", "rate_limit"):
        assert callable(getattr(GitHubClient, name))
    for name in ("get_latest_build", "get_build_graph", "get_build", "list_builds"):
        assert callable(getattr(MaestroClient, name))


def test_parse_timestamp_normalizes_to_utc():
    """Test timestamp parsing across the formats the services emit."""
    from datetime import datetime, timezone
    from dependency_freshness.time_utils import parse_timestamp

    assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-01T02:00:00+02:00") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-01T00:00:00.1234567Z") == datetime(2024, 1, 1, 0, 0, 0, 123456, tzinfo=timezone.utc)
    assert parse_timestamp("") is None
    assert parse_timestamp("yesterday") is None


def test_elapsed_days():
    """Test fractional day computation."""
    from datetime import datetime, timezone
    from dependency_freshness.time_utils import elapsed_days

    now = datetime(2024, 1, 3, 12, tzinfo=timezone.utc)
    assert elapsed_days(datetime(2024, 1, 1, tzinfo=timezone.utc), now) == 2.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
