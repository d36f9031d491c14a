"""
Reporting and export utilities.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import humanize
import pandas as pd

from .models import FreshnessReport, FreshnessResult
from .time_utils import ensure_utc, utc_now


logger = logging.getLogger(__name__)

RESULT_COLUMNS = [
    "dependency",
    "repository",
    "branch",
    "commit",
    "build_id",
    "date_produced",
    "commit_distance",
    "commit_age",
    "oldest_unconsumed_build_id",
    "oldest_unconsumed_date_produced",
    "sla_status",
    "commit_url",
    "build_url",
]


def humanize_age(value: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render a past timestamp as e.g. '3 days ago'."""
    if value is None:
        return "unknown"
    now = ensure_utc(now) if now is not None else utc_now()
    return humanize.naturaltime(now - ensure_utc(value))


def result_to_row(result: FreshnessResult) -> Dict:
    oldest = result.oldest_unconsumed_build
    return {
        "dependency": result.short_name,
        "repository": result.build.repository,
        "branch": result.build.branch,
        "commit": result.build.commit,
        "build_id": result.build.id,
        "date_produced": result.build.date_produced,
        "commit_distance": result.commit_distance,
        "commit_age": result.commit_age,
        "oldest_unconsumed_build_id": oldest.id if oldest else None,
        "oldest_unconsumed_date_produced": oldest.date_produced if oldest else None,
        "sla_status": result.sla_status.value,
        "commit_url": result.commit_url,
        "build_url": result.build_url,
    }


def results_to_dataframe(report: FreshnessReport) -> pd.DataFrame:
    """One row per analyzed dependency, in report order."""
    return pd.DataFrame([result_to_row(r) for r in report.results], columns=RESULT_COLUMNS)


def report_to_dict(report: FreshnessReport) -> Dict:
    rate_limit = report.rate_limit
    return {
        "build_id": report.build.id,
        "repository": report.build.repository,
        "commit": report.build.commit,
        "cancelled": report.cancelled,
        "dependencies": [result_to_row(r) for r in report.results],
        "failures": [{"build_id": f.consumed_build_id, "error": f.error} for f in report.failures],
        "rate_limit": {
            "limit": rate_limit.limit,
            "remaining": rate_limit.remaining,
            "reset": rate_limit.reset,
        } if rate_limit else None,
    }


def print_summary(report: FreshnessReport, now: Optional[datetime] = None) -> None:
    logger.info("\n" + "=" * 60)
    logger.info("INCOMING DEPENDENCIES")
    logger.info("=" * 60)
    logger.info("Build: %s (%s @ %s)", report.build.id, report.build.repository, report.build.commit)
    logger.info("-" * 60)
    for result in report.results:
        oldest = result.oldest_unconsumed_build
        logger.info(
            "%-30s %-8s behind: %-6s oldest commit: %-16s unconsumed build: %s",
            result.short_name,
            result.sla_status.value.upper(),
            result.commit_distance if result.commit_distance is not None else "?",
            humanize_age(result.commit_age, now),
            humanize_age(oldest.date_produced, now) if oldest else "none",
        )
    for failure in report.failures:
        logger.info("Build %s failed: %s", failure.consumed_build_id, failure.error)
    logger.info("-" * 60)
    if report.rate_limit:
        logger.info("Rate limit: %s/%s remaining", report.rate_limit.remaining, report.rate_limit.limit)
    if report.cancelled:
        logger.info("Report is partial: aggregation was cancelled")
    logger.info("=" * 60)


def save_results_json(report: FreshnessReport, output_dir: Path, name: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    results_file = output_dir / f"{name}_freshness.json"
    with open(results_file, 'w') as f:
        json.dump(report_to_dict(report), f, indent=2, default=str)
    return results_file


def export_results_csv(report: FreshnessReport, output_dir: Path, name: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    csv_file = output_dir / f"{name}_freshness.csv"
    results_to_dataframe(report).to_csv(csv_file, index=False)
    return csv_file


def _strip_timezones(df: pd.DataFrame) -> pd.DataFrame:
    df_copy = df.copy()
    for col in df_copy.columns:
        if isinstance(df_copy[col].dtype, pd.DatetimeTZDtype):
            df_copy[col] = df_copy[col].dt.tz_convert('UTC').dt.tz_localize(None)
        elif df_copy[col].dtype == object:
            # Columns holding aware datetimes and None stay object dtype.
            df_copy[col] = df_copy[col].map(
                lambda v: ensure_utc(v).replace(tzinfo=None) if isinstance(v, datetime) else v
            )
    return df_copy


def export_worksheets(report: FreshnessReport, output_dir: Path, name: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    excel_file = output_dir / f"{name}_freshness.xlsx"
    failures = pd.DataFrame(
        [{"build_id": f.consumed_build_id, "error": f.error} for f in report.failures],
        columns=["build_id", "error"],
    )
    with pd.ExcelWriter(excel_file, engine='openpyxl') as writer:
        _strip_timezones(results_to_dataframe(report)).to_excel(writer, sheet_name="dependencies", index=False)
        failures.to_excel(writer, sheet_name="failures", index=False)
    return excel_file
