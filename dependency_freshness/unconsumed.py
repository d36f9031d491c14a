"""
Oldest published build of a dependency that has not been consumed yet.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Callable, Optional

from .interfaces import BuildGraphSource
from .models import Build


logger = logging.getLogger(__name__)

CHANNEL_PREFERENCE = ("product", "tools")
LISTING_TOLERANCE = timedelta(seconds=5)


def select_channel_id(build: Build) -> Optional[int]:
    """Pick the build's product channel, else its tools channel."""
    for classification in CHANNEL_PREFERENCE:
        for channel in build.channels:
            if channel.classification == classification:
                return channel.id
    return None


class OldestUnconsumedBuildFinder:
    """Find the build published right after the consumed one."""

    def __init__(self, source: BuildGraphSource, log: Optional[logging.Logger] = None) -> None:
        self.source = source
        self.logger = log or logger

    def find(self, consumed: Build, check_cancelled: Optional[Callable[[], None]] = None) -> Optional[Build]:
        """Return the oldest published build newer than the consumed build.

        Args:
            consumed: Build the consuming build depends on
            check_cancelled: Called before the listing request; raises to stop

        Returns:
            The oldest unconsumed build, or None when the dependency is up to date
        """
        # Builds coming from a graph carry no channel information.
        build = self.source.get_build(consumed.id)
        if check_cancelled is not None:
            check_cancelled()
        # The registry lists newest first, so the tail is the consumed build.
        published = self.source.list_builds(
            build.repository,
            select_channel_id(build),
            build.date_produced - LISTING_TOLERANCE,
            None,
        )

        if not published:
            self.logger.warning(
                "No published builds found, treating dependency '%s' as up to date",
                build.repository,
            )
            return None

        last = published[-1]
        if last.azdo_build_id != build.azdo_build_id:
            self.logger.warning(
                "Last build of '%s' (%s) didn't match last consumed build (%s)",
                build.repository, last.azdo_build_id, build.azdo_build_id,
            )

        if len(published) < 2:
            return None
        return published[-2]
