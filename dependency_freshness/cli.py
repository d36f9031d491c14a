"""
Command-line interface for the dependency freshness tool.
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from tqdm import tqdm

from .aggregator import FreshnessAggregator
from .errors import ConfigurationError
from .exclusions import DEFAULT_EXCLUSIONS, ExclusionPolicy
from .github import GitHubClient
from .maestro import MaestroClient
from .reporting import export_results_csv, export_worksheets, print_summary, save_results_json
from .repo_urls import parse_repo_reference, repo_url
from .sla import default_sla_config, load_sla_config


logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Report how stale the consumed dependencies of a repository's latest build are"
    )

    parser.add_argument(
        "--repo",
        required=True,
        help="Repository to analyze, as owner/repo or a GitHub URL"
    )

    parser.add_argument(
        "--channel-id",
        type=int,
        required=True,
        help="Channel whose latest build of the repository is analyzed"
    )

    parser.add_argument(
        "--sla-config",
        default=None,
        help="JSON file with per-repository SLA thresholds and a [Default] entry"
    )

    parser.add_argument(
        "--exclude",
        action="append",
        default=None,
        metavar="OWNER/REPO",
        help=f"Repository to leave out of the report (repeatable). Default: {', '.join(sorted(DEFAULT_EXCLUSIONS))}"
    )

    parser.add_argument(
        "--max-workers",
        type=int,
        default=4,
        help="Dependencies analyzed concurrently. Default: 4"
    )

    parser.add_argument(
        "--quota-reserve",
        type=int,
        default=10,
        help="GitHub rate-limit headroom kept in reserve. Default: 10"
    )

    parser.add_argument(
        "--output-dir",
        default="./output",
        help="Output directory for results. Default: ./output"
    )

    parser.add_argument(
        "--get-worksheets",
        action="store_true",
        help="Also export the report to an Excel file"
    )

    parser.add_argument(
        "--github-token",
        default=os.environ.get("GITHUB_TOKEN"),
        help="GitHub token. Default: $GITHUB_TOKEN"
    )

    parser.add_argument(
        "--maestro-url",
        default=MaestroClient.BASE_URL,
        help=f"Build registry URL. Default: {MaestroClient.BASE_URL}"
    )

    parser.add_argument(
        "--maestro-token",
        default=os.environ.get("MAESTRO_TOKEN"),
        help="Build registry token. Default: $MAESTRO_TOKEN"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level. Default: INFO"
    )
    return parser


def main(argv=None):
    """Main entry point for the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    ref = parse_repo_reference(args.repo)
    if ref is None:
        parser.error(f"--repo must be owner/repo or a GitHub URL, got {args.repo!r}")
    if args.max_workers < 1:
        parser.error("--max-workers must be at least 1")

    try:
        sla_config = load_sla_config(Path(args.sla_config)) if args.sla_config else default_sla_config()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)

    exclusions = ExclusionPolicy(args.exclude if args.exclude is not None else DEFAULT_EXCLUSIONS)
    aggregator = FreshnessAggregator(
        provider=GitHubClient(token=args.github_token),
        source=MaestroClient(base_url=args.maestro_url, token=args.maestro_token),
        sla_config=sla_config,
        exclude=exclusions,
        max_workers=args.max_workers,
        quota_reserve=args.quota_reserve,
    )

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("Analyzing incoming dependencies of %s in channel %s", ref.key, args.channel_id)
    try:
        with tqdm(unit="dependency", desc=ref.repo) as pbar:
            report = aggregator.aggregate_latest(
                repo_url(ref),
                args.channel_id,
                on_progress=lambda build: pbar.update(1),
                on_start=lambda total: pbar.reset(total=total),
            )
    except KeyboardInterrupt:
        print("\nCancelled", file=sys.stderr)
        sys.exit(130)
    except Exception as e:
        print(f"\nError during analysis: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc()
        sys.exit(1)

    print_summary(report)

    name = f"{ref.owner}_{ref.repo}"
    results_file = save_results_json(report, output_dir, name)
    print(f"\nResults saved to: {results_file}")
    csv_file = export_results_csv(report, output_dir, name)
    print(f"Dependency table saved to: {csv_file}")

    if args.get_worksheets:
        excel_file = export_worksheets(report, output_dir, name)
        print(f"Worksheets saved to: {excel_file}")


if __name__ == "__main__":
    main()
