# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Industry benchmark comparison.

Each benchmarked metric is compared against three reference thresholds for
the company's industry category: the industry average, the top quartile and
the top decile. The reference values live in a TOML table
(``reference/benchmarks.toml``), keyed by industry then by metric; industry
categories inherit any metric they do not override from ``default``.

Performance tiers (higher-is-better metrics)
--------------------------------------------
    excellent      value >= top_quartile   (top decile collapsed into it)
    above_average  value >= industry_average
    average        value >= industry_average - |average| * average_band
    below_average  value >= industry_average - |average| * poor_band
    poor           otherwise

Lower-is-better metrics (e.g. debt_to_equity) mirror every comparison.
All bounds are inclusive, so a tie resolves to the higher tier.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, Optional

from .config import REFERENCE_DIR, load_toml

logger = logging.getLogger(__name__)

DEFAULT_BENCHMARKS_FILE = REFERENCE_DIR / "benchmarks.toml"
DEFAULT_INDUSTRY = "default"

PerformanceTier = Literal["excellent", "above_average", "average", "below_average", "poor"]

PERFORMANCE_TIERS: tuple[str, ...] = (
    "excellent",
    "above_average",
    "average",
    "below_average",
    "poor",
)


@dataclass(frozen=True)
class BenchmarkReference:
    """Reference thresholds for one metric in one industry category."""

    metric_name: str
    industry: str
    industry_average: float
    top_quartile: float
    top_decile: float
    higher_is_better: bool = True
    average_band: float = 0.10
    poor_band: float = 0.25
    label: str = ""


@dataclass(frozen=True)
class BenchmarkEntry:
    """Classification of one company metric against its industry reference."""

    metric_name: str
    company_value: float
    industry_average: float
    top_quartile: float
    top_decile: float
    performance_tier: str
    trend: str
    industry: str
    higher_is_better: bool
    label: str = ""


def _at_least(value: float, threshold: float, higher_is_better: bool) -> bool:
    """Inclusive 'meets threshold' test in the metric's favourable direction."""
    if higher_is_better:
        return value >= threshold
    return value <= threshold


def performance_tier(value: float, reference: BenchmarkReference) -> str:
    """Return the performance tier of ``value`` against ``reference``."""
    better = reference.higher_is_better
    average = reference.industry_average
    # Distance below (or above, for lower-is-better) the average.
    direction = -1.0 if better else 1.0
    average_floor = average + direction * abs(average) * reference.average_band
    poor_floor = average + direction * abs(average) * reference.poor_band

    if _at_least(value, reference.top_quartile, better):
        return "excellent"
    if _at_least(value, average, better):
        return "above_average"
    if _at_least(value, average_floor, better):
        return "average"
    if _at_least(value, poor_floor, better):
        return "below_average"
    return "poor"


def classify(
    metric_name: str,
    company_value: float,
    reference: BenchmarkReference,
    trend: str = "unknown",
) -> BenchmarkEntry:
    """Classify ``company_value`` for ``metric_name`` against ``reference``."""
    return BenchmarkEntry(
        metric_name=metric_name,
        company_value=company_value,
        industry_average=reference.industry_average,
        top_quartile=reference.top_quartile,
        top_decile=reference.top_decile,
        performance_tier=performance_tier(company_value, reference),
        trend=trend,
        industry=reference.industry,
        higher_is_better=reference.higher_is_better,
        label=reference.label or metric_name,
    )


class BenchmarkTable:
    """
    Reference bands per industry category and metric.

    Build it with ``load_benchmark_table()`` or directly from a mapping
    ``{industry -> {metric -> BenchmarkReference}}``. Metrics are compared in
    the order of ``metric_names``.
    """

    def __init__(
        self,
        references: Mapping[str, Mapping[str, BenchmarkReference]],
        metric_names: tuple[str, ...],
        version: str = "",
    ) -> None:
        if DEFAULT_INDUSTRY not in references:
            raise ValueError("Benchmark table must define a 'default' industry.")
        self._references = {k: dict(v) for k, v in references.items()}
        self.metric_names = metric_names
        self.version = version

    @property
    def industries(self) -> tuple[str, ...]:
        return tuple(self._references)

    def reference(self, industry: str, metric_name: str) -> Optional[BenchmarkReference]:
        """Return the reference for a metric, falling back to 'default'."""
        key = (industry or DEFAULT_INDUSTRY).strip().lower()
        by_metric = self._references.get(key)
        if by_metric is not None and metric_name in by_metric:
            return by_metric[metric_name]
        return self._references[DEFAULT_INDUSTRY].get(metric_name)


def _validate(ref: BenchmarkReference) -> None:
    if ref.higher_is_better:
        ordered = ref.industry_average <= ref.top_quartile <= ref.top_decile
    else:
        ordered = ref.industry_average >= ref.top_quartile >= ref.top_decile
    if not ordered:
        raise ValueError(
            f"Benchmark thresholds out of order for {ref.industry}.{ref.metric_name}"
        )


def _parse_reference(
    industry: str,
    metric_name: str,
    raw: Any,
    metric_meta: Mapping[str, Any],
    bands: Mapping[str, Any],
) -> BenchmarkReference:
    if not isinstance(raw, Mapping):
        raise ValueError(f"Benchmark entry {industry}.{metric_name} must be a table.")
    try:
        ref = BenchmarkReference(
            metric_name=metric_name,
            industry=industry,
            industry_average=float(raw["industry_average"]),
            top_quartile=float(raw["top_quartile"]),
            top_decile=float(raw["top_decile"]),
            higher_is_better=bool(metric_meta.get("higher_is_better", True)),
            average_band=float(raw.get("average_band", bands.get("average_band", 0.10))),
            poor_band=float(raw.get("poor_band", bands.get("poor_band", 0.25))),
            label=str(metric_meta.get("label", metric_name)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid benchmark entry {industry}.{metric_name}") from exc
    _validate(ref)
    return ref


def load_benchmark_table(path: Optional[Path] = None) -> BenchmarkTable:
    """
    Load industry reference bands from a TOML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the table is malformed or thresholds are out of order.
    """
    rules_file = path or DEFAULT_BENCHMARKS_FILE
    data = load_toml(rules_file)

    metrics_section = data.get("metrics") or {}
    industries_section = data.get("industries") or {}
    bands = data.get("bands") or {}
    if not isinstance(metrics_section, Mapping) or not isinstance(
        industries_section, Mapping
    ):
        raise ValueError(f"Invalid benchmark table layout in {rules_file}")

    references: dict[str, dict[str, BenchmarkReference]] = {}
    for industry, by_metric in industries_section.items():
        if not isinstance(by_metric, Mapping):
            raise ValueError(f"[industries.{industry}] must be a table in {rules_file}")
        industry_key = str(industry).lower()
        references[industry_key] = {}
        for metric_name, raw in by_metric.items():
            if metric_name not in metrics_section:
                raise ValueError(
                    f"Unknown benchmark metric {metric_name!r} in {rules_file}"
                )
            references[industry_key][str(metric_name)] = _parse_reference(
                industry_key,
                str(metric_name),
                raw,
                metrics_section[metric_name],
                bands,
            )

    return BenchmarkTable(
        references,
        metric_names=tuple(str(k) for k in metrics_section),
        version=str(data.get("version", "")),
    )


def compare(
    values: Mapping[str, float],
    industry: str,
    table: Optional[BenchmarkTable] = None,
    trends: Optional[Mapping[str, str]] = None,
) -> list[BenchmarkEntry]:
    """
    Classify every benchmarked metric present in ``values``.

    Args:
        values: Metric name -> company value (e.g. MetricSet.values_dict()
            plus 'revenue_growth' when a trend is available).
        industry: Industry category; unknown categories use 'default'.
        table: Reference table. Defaults to the table shipped with the package.
        trends: Optional metric name -> 'improving' | 'stable' | 'declining'.

    Returns:
        Benchmark entries in table metric order.
    """
    if table is None:
        table = load_benchmark_table()
    trends = trends or {}

    entries: list[BenchmarkEntry] = []
    for metric_name in table.metric_names:
        if metric_name not in values:
            continue
        reference = table.reference(industry, metric_name)
        if reference is None:
            logger.debug("No benchmark reference for %s", metric_name)
            continue
        entries.append(
            classify(
                metric_name,
                float(values[metric_name]),
                reference,
                trend=trends.get(metric_name, "unknown"),
            )
        )
    return entries
