"""
SLA thresholds and staleness classification.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Mapping, Optional

from .errors import ConfigurationError
from .models import RepositoryRef, Sla, SlaStatus
from .time_utils import elapsed_days


logger = logging.getLogger(__name__)

DEFAULT_KEY = "[Default]"
DEFAULT_WARNING_DAYS = 7
DEFAULT_FAIL_DAYS = 14

# Key spellings accepted in the JSON file: the service's own, then ours.
_WARNING_KEYS = ("WarningUnconsumedCommitAge", "warning_days")
_FAIL_KEYS = ("FailUnconsumedCommitAge", "fail_days")


class SlaConfig:
    """Per-repository SLA thresholds with a mandatory default entry."""

    def __init__(self, repositories: Mapping[str, Sla]) -> None:
        if DEFAULT_KEY not in repositories:
            raise ConfigurationError(f"SLA configuration has no '{DEFAULT_KEY}' entry")
        for key, sla in repositories.items():
            if sla.warning_days < 0 or sla.fail_days < 0:
                raise ConfigurationError(f"SLA thresholds for '{key}' must not be negative")
            if sla.fail_days < sla.warning_days:
                raise ConfigurationError(
                    f"SLA for '{key}' fails at {sla.fail_days} days, before its warning at {sla.warning_days}"
                )
        self.repositories: Dict[str, Sla] = {key.lower(): sla for key, sla in repositories.items()}

    def get_for_repo(self, ref: RepositoryRef) -> Sla:
        """Thresholds for the repository, else the default entry."""
        return self.repositories.get(ref.key.lower(), self.repositories[DEFAULT_KEY.lower()])


def _read_threshold(entry: Mapping, keys, key: str) -> int:
    for name in keys:
        if name in entry:
            try:
                return int(entry[name])
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid SLA value for '{key}': {entry[name]!r}") from e
    raise ConfigurationError(f"SLA entry '{key}' is missing {keys[0]}")


def parse_sla_config(data: Mapping) -> SlaConfig:
    """Build an SlaConfig from its JSON representation."""
    repositories = data.get("Repositories", data) if isinstance(data, Mapping) else None
    if not isinstance(repositories, Mapping):
        raise ConfigurationError("SLA configuration must be a JSON object")

    slas = {}
    for key, entry in repositories.items():
        if not isinstance(entry, Mapping):
            raise ConfigurationError(f"SLA entry '{key}' must be an object")
        slas[key] = Sla(
            warning_days=_read_threshold(entry, _WARNING_KEYS, key),
            fail_days=_read_threshold(entry, _FAIL_KEYS, key),
        )
    return SlaConfig(slas)


def load_sla_config(path: Path) -> SlaConfig:
    """Load SLA thresholds from a JSON file."""
    logger.info("Loading SLA configuration from %s", path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read SLA configuration {path}: {e}") from e
    return parse_sla_config(data)


def default_sla_config() -> SlaConfig:
    return SlaConfig({DEFAULT_KEY: Sla(DEFAULT_WARNING_DAYS, DEFAULT_FAIL_DAYS)})


class SlaEvaluator:
    """Classify how stale a dependency is against its SLA."""

    def __init__(self, config: SlaConfig) -> None:
        self.config = config

    def classify(
        self,
        age: Optional[datetime],
        build_produced_at: Optional[datetime],
        sla: Sla,
        now: Optional[datetime] = None,
    ) -> SlaStatus:
        """Classify staleness from the commit age, else the build date.

        Args:
            age: Date of the first unconsumed commit
            build_produced_at: Date the consumed build was produced
            sla: Thresholds to apply
            now: Reference time (defaults to the current UTC time)

        Returns:
            The SLA status
        """
        anchor = age if age is not None else build_produced_at
        if anchor is None:
            return SlaStatus.UNKNOWN

        elapsed = elapsed_days(anchor, now)
        if elapsed <= sla.warning_days:
            return SlaStatus.OK
        if elapsed <= sla.fail_days:
            return SlaStatus.WARNING
        return SlaStatus.FAILING

    def classify_for_repo(
        self,
        ref: RepositoryRef,
        age: Optional[datetime],
        build_produced_at: Optional[datetime],
        now: Optional[datetime] = None,
    ) -> SlaStatus:
        return self.classify(age, build_produced_at, self.config.get_for_repo(ref), now)
