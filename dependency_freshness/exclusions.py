"""
Repositories left out of freshness reports.
"""

from __future__ import annotations

from typing import Iterable

from .models import RepositoryRef


# Blazor is not part of the automated dependency update process.
DEFAULT_EXCLUSIONS = frozenset({"dotnet/blazor"})


class ExclusionPolicy:
    """Predicate matching repositories by ``owner/repo``, ignoring case."""

    def __init__(self, keys: Iterable[str] = DEFAULT_EXCLUSIONS) -> None:
        self.keys = frozenset(key.strip().lower() for key in keys if key.strip())

    def __call__(self, ref: RepositoryRef) -> bool:
        return ref.key.lower() in self.keys

    def __repr__(self) -> str:
        return f"ExclusionPolicy({sorted(self.keys)!r})"
