"""
Freshness aggregation over the dependencies of a build.
"""

from __future__ import annotations

import logging
import threading
import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Tuple

from .commit_age import CommitAgeResolver
from .errors import AggregationCancelled, RateLimitExhaustedError
from .exclusions import ExclusionPolicy
from .interfaces import BuildGraphSource, CommitHistoryProvider
from .models import (
    Build,
    BuildGraph,
    EdgeFailure,
    FreshnessReport,
    FreshnessResult,
    RepositoryRef,
)
from .repo_urls import build_url, commit_url, parse_repo_url
from .sla import SlaConfig, SlaEvaluator, default_sla_config
from .unconsumed import OldestUnconsumedBuildFinder


logger = logging.getLogger(__name__)

# Source-control calls issued per dependency edge.
CALLS_PER_EDGE = 1

ExcludePredicate = Callable[[RepositoryRef], bool]


class FreshnessAggregator:
    """Compute freshness results for every dependency of a consuming build."""

    def __init__(
        self,
        provider: CommitHistoryProvider,
        source: BuildGraphSource,
        sla_config: Optional[SlaConfig] = None,
        exclude: Optional[ExcludePredicate] = None,
        max_workers: int = 4,
        quota_reserve: int = 10,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize the aggregator.

        Args:
            provider: Source-control comparison provider
            source: Build registry
            sla_config: SLA thresholds (defaults to a single default entry)
            exclude: Predicate for repositories to leave out of the report
            max_workers: Upper bound on dependencies analyzed concurrently
            quota_reserve: Remaining source-control quota at which edges stop issuing calls
            log: Logger shared with the per-edge components
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.provider = provider
        self.source = source
        self.logger = log or logger
        self.commit_resolver = CommitAgeResolver(provider, self.logger)
        self.unconsumed_finder = OldestUnconsumedBuildFinder(source, self.logger)
        self.sla_evaluator = SlaEvaluator(sla_config or default_sla_config())
        self.exclude = exclude or ExclusionPolicy()
        self.max_workers = max_workers
        self.quota_reserve = quota_reserve

    def aggregate_latest(self, repo_url: str, channel_id: int, **kwargs) -> FreshnessReport:
        """Analyze the latest build of a repository in a channel."""
        build_id = self.source.get_latest_build(repo_url, channel_id)
        self.logger.info("Latest build of %s in channel %s is %s", repo_url, channel_id, build_id)
        graph = self.source.get_build_graph(build_id)
        return self.aggregate(graph.get(build_id), graph, **kwargs)

    def aggregate(
        self,
        consuming_build: Build,
        graph: BuildGraph,
        exclude: Optional[ExcludePredicate] = None,
        cancel_event: Optional[threading.Event] = None,
        on_progress: Optional[Callable[[Build], None]] = None,
        on_start: Optional[Callable[[int], None]] = None,
    ) -> FreshnessReport:
        """Compute freshness of each dependency of consuming_build.

        Dependencies are analyzed concurrently. A dependency whose analysis
        raises is recorded in the report's failures; the others are still
        returned, in graph order.

        Args:
            consuming_build: Build whose dependencies are analyzed
            graph: Dependency graph containing consuming_build
            exclude: Overrides the configured exclusion predicate
            cancel_event: Set to stop issuing further external calls
            on_progress: Called with each consumed build once it is done
            on_start: Called with the number of dependencies to analyze

        Returns:
            FreshnessReport with results, failures and the rate-limit snapshot
        """
        exclude = exclude or self.exclude
        cancel_event = cancel_event or threading.Event()
        report = FreshnessReport(build=consuming_build)

        work = self.tracked_dependencies(consuming_build, graph, exclude)
        if on_start is not None:
            on_start(len(work))
        results: Dict[int, FreshnessResult] = {}
        failures: Dict[int, EdgeFailure] = {}

        if work:
            self.logger.info("Analyzing %d dependencies of build %s", len(work), consuming_build.id)
            executor = ThreadPoolExecutor(max_workers=self._pool_size(len(work)))
            cancelling = False
            try:
                futures = {
                    executor.submit(self._analyze, build, ref, cancel_event): index
                    for index, (build, ref) in enumerate(work)
                }
                for future in as_completed(futures):
                    index = futures[future]
                    build = work[index][0]
                    if future.cancelled():
                        continue
                    try:
                        results[index] = future.result()
                    except AggregationCancelled:
                        self.logger.debug("Cancelled before analyzing %s", build.repository)
                    except Exception as e:
                        self.logger.error("Error analyzing %s: %s", build.repository, e)
                        self.logger.error(traceback.format_exc())
                        failures[index] = EdgeFailure(consumed_build_id=build.id, error=str(e))
                    if on_progress is not None:
                        on_progress(build)
                    if cancel_event.is_set() and not cancelling:
                        cancelling = True
                        for pending in futures:
                            pending.cancel()
            except BaseException:
                # Interrupted caller: stop in-flight edges before their next external call.
                cancel_event.set()
                raise
            finally:
                executor.shutdown(wait=True, cancel_futures=True)

        if cancel_event.is_set():
            report.cancelled = True
        report.results = [results[index] for index in sorted(results)]
        report.failures = [failures[index] for index in sorted(failures)]
        report.rate_limit = self.provider.rate_limit()
        return report

    def tracked_dependencies(
        self, consuming_build: Build, graph: BuildGraph, exclude: ExcludePredicate
    ) -> List[Tuple[Build, RepositoryRef]]:
        """Consumed builds to analyze, in graph order."""
        tracked = []
        for edge in graph.edges:
            if edge.consuming_build_id != consuming_build.id:
                continue
            build = graph.get(edge.consumed_build_id)
            ref = parse_repo_url(build.github_repository)
            if ref is None:
                self.logger.debug("Build %s has no GitHub repository, not tracked", build.id)
                continue
            if exclude(ref):
                self.logger.info("Skipping excluded repository %s", ref.key)
                continue
            tracked.append((build, ref))
        return tracked

    def _analyze(self, build: Build, ref: RepositoryRef, cancel_event: threading.Event) -> FreshnessResult:
        self._check_cancelled(cancel_event)
        self._check_quota(ref)
        if build.branch:
            distance, age = self.commit_resolver.resolve(ref, build.commit, build.branch)
        else:
            self.logger.warning("Build %s of %s has no branch, commit info unknown", build.id, ref.key)
            distance, age = None, None

        self._check_cancelled(cancel_event)
        oldest = self.unconsumed_finder.find(build, lambda: self._check_cancelled(cancel_event))

        return FreshnessResult(
            build=build,
            short_name=ref.repo,
            commit_url=commit_url(build),
            build_url=build_url(build),
            commit_distance=distance,
            commit_age=age,
            oldest_unconsumed_build=oldest,
            sla_status=self.sla_evaluator.classify_for_repo(ref, age, build.date_produced),
        )

    def _check_cancelled(self, cancel_event: threading.Event) -> None:
        if cancel_event.is_set():
            raise AggregationCancelled("Aggregation cancelled")

    def _check_quota(self, ref: RepositoryRef) -> None:
        remaining = self.provider.remaining_quota()
        if remaining is not None and remaining <= self.quota_reserve:
            raise RateLimitExhaustedError(
                f"Rate limit headroom exhausted ({remaining} remaining), not comparing {ref.key}"
            )

    def _pool_size(self, edge_count: int) -> int:
        workers = min(self.max_workers, edge_count)
        remaining = self.provider.remaining_quota()
        if remaining is not None:
            workers = min(workers, (remaining - self.quota_reserve) // CALLS_PER_EDGE)
        return max(1, workers)
