"""Tests for finding the oldest unconsumed build."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from dependency_freshness.models import Build, Channel
from dependency_freshness.unconsumed import OldestUnconsumedBuildFinder, select_channel_id


REPO = "https://github.com/dotnet/runtime"
PRODUCED = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_build(build_id, azdo_build_id, hours=0, channels=()):
    return Build(
        id=build_id,
        commit=f"sha{build_id}",
        date_produced=PRODUCED + timedelta(hours=hours),
        github_repository=REPO,
        github_branch="main",
        azdo_build_id=azdo_build_id,
        channels=tuple(channels),
    )


class FakeSource:
    def __init__(self, build, listing):
        self.build = build
        self.listing = listing
        self.list_calls = []

    def get_build(self, build_id):
        assert build_id == self.build.id
        return self.build

    def list_builds(self, repo_url, channel_id, not_before, not_after):
        self.list_calls.append((repo_url, channel_id, not_before, not_after))
        return list(self.listing)


CONSUMED = make_build(10, 1000, channels=[Channel(id=2, name=".NET Tools", classification="tools"),
                                          Channel(id=1, name=".NET 9", classification="product")])


def test_empty_listing_is_treated_as_up_to_date(caplog):
    finder = OldestUnconsumedBuildFinder(FakeSource(CONSUMED, []))

    with caplog.at_level(logging.WARNING):
        assert finder.find(CONSUMED) is None

    assert "treating dependency" in caplog.text


def test_single_build_listing_has_nothing_unconsumed():
    finder = OldestUnconsumedBuildFinder(FakeSource(CONSUMED, [CONSUMED]))

    assert finder.find(CONSUMED) is None


@pytest.mark.parametrize("count", [2, 3, 5])
def test_returns_second_to_last_build(count):
    # Newest first, consumed build last.
    newer = [make_build(10 + n, 1000 + n, hours=n) for n in range(count - 1, 0, -1)]
    listing = newer + [CONSUMED]

    result = OldestUnconsumedBuildFinder(FakeSource(CONSUMED, listing)).find(CONSUMED)

    assert result is listing[count - 2]
    assert result.id == 11


def test_mismatched_tail_is_logged_but_used(caplog):
    listing = [make_build(12, 1002, hours=2), make_build(11, 1001, hours=1)]

    with caplog.at_level(logging.WARNING):
        result = OldestUnconsumedBuildFinder(FakeSource(CONSUMED, listing)).find(CONSUMED)

    assert result.id == 12
    assert "didn't match last consumed build" in caplog.text


def test_listing_query_uses_refetched_build():
    # Graph builds have no channel memberships; the refetched copy does.
    graph_copy = make_build(10, 1000)
    source = FakeSource(CONSUMED, [CONSUMED])

    OldestUnconsumedBuildFinder(source).find(graph_copy)

    repo_url, channel_id, not_before, not_after = source.list_calls[0]
    assert repo_url == REPO
    assert channel_id == 1
    assert not_before == PRODUCED - timedelta(seconds=5)
    assert not_after is None


def test_select_channel_prefers_product_then_tools():
    tools = Channel(id=2, name="tools", classification="tools")
    product = Channel(id=1, name="product", classification="product")
    other = Channel(id=3, name="other", classification="internal")

    assert select_channel_id(make_build(1, 1, channels=[tools, product])) == 1
    assert select_channel_id(make_build(1, 1, channels=[other, tools])) == 2
    assert select_channel_id(make_build(1, 1, channels=[other])) is None
    assert select_channel_id(make_build(1, 1)) is None
