# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
End-to-end analysis of one company.

This module provides the single entry point used by the CLI and by any
higher-level layer (sales dashboards, report generators) to compute the
complete financial narrative of a prospect in one pass.

Workflow
--------
``analyze()`` runs every stage in order, each a pure transform over the
previous stage's output plus the static reference tables:

1. Source resolution: providers are sorted by canonical tier priority and
   tried until one yields usable data. When none does, the
   ``DataUnavailable`` value is returned as-is and nothing else runs.
2. Derived metrics from the resolved snapshot (estimation policy table).
3. Trends: the resolved snapshot is appended to the supplied history to form
   a TrendSeries; growth metrics exist when the series has two points or
   more.
4. Health score.
5. Benchmark classification against the industry reference table, with a
   per-metric trend when a previous period is available.
6. Insight and risk rules, plus optional AI collaborator insights.

Reference tables
----------------
The estimation policy, benchmark table and rule table are loaded once into
a ``ReferenceTables`` bundle (``load_reference_tables(config)``), which can
be reused across many analyses.

Serialization
-------------
``analysis_to_dict()`` converts an AnalysisResult (or a DataUnavailable) into
JSON-safe dictionaries: dates become ISO strings, tuples become lists and
non-finite floats become None.
"""

import dataclasses
import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional, Union

from .benchmarks import BenchmarkEntry, BenchmarkTable, compare, load_benchmark_table
from .config import AppConfig, default_app_config
from .estimation import EstimationPolicy, load_estimation_policy
from .health import HealthScore, score
from .insights import Insight, InsightRule, RiskFactor, generate, load_insight_rules
from .metrics import MetricSet, compute_metrics
from .resolver import DataUnavailable, Provider, order_by_priority, resolve
from .snapshot import Attempt, FinancialSnapshot, data_quality_score
from .trends import TrendMetrics, TrendSeries, change_direction, growth

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceTables:
    """Static tables consumed by the metrics, benchmark and insight stages."""

    estimation: EstimationPolicy
    benchmarks: BenchmarkTable
    rules: tuple[InsightRule, ...]


def load_reference_tables(config: Optional[AppConfig] = None) -> ReferenceTables:
    """
    Load every reference table, honouring overrides from ``config``.

    Raises:
        FileNotFoundError / ValueError: if a table cannot be loaded.
    """
    if config is None:
        config = default_app_config()
    return ReferenceTables(
        estimation=load_estimation_policy(config.estimation_file),
        benchmarks=load_benchmark_table(config.benchmarks_file),
        rules=tuple(load_insight_rules(config.insight_rules_file)),
    )


@dataclass(frozen=True)
class AnalysisResult:
    """
    Every output computed for one company in one pass.

    Attributes:
        company_id: Company analysed.
        industry: Industry category used for benchmarks.
        tier: Provider tier that supplied the snapshot.
        attempts: Provider attempts made by the resolver.
        snapshot: Canonical snapshot.
        metrics: Derived metrics.
        health_score: Composite health score.
        benchmarks: Benchmark classifications, in table order.
        trends: Growth metrics, or None without a usable history.
        insights: Rule-triggered insights followed by AI insights.
        risks: Rule-triggered risk factors.
        data_quality_score: Completeness of the snapshot (0-100).
    """

    company_id: str
    industry: str
    tier: str
    attempts: tuple[Attempt, ...]
    snapshot: FinancialSnapshot
    metrics: MetricSet
    health_score: HealthScore
    benchmarks: tuple[BenchmarkEntry, ...]
    trends: Optional[TrendMetrics]
    insights: tuple[Insight, ...]
    risks: tuple[RiskFactor, ...]
    data_quality_score: int

    @property
    def is_partial(self) -> bool:
        return self.snapshot.provenance.is_partial


def _benchmark_values(
    metrics: MetricSet, trends: Optional[TrendMetrics]
) -> dict[str, float]:
    values = {
        key: metric.value for key, metric in metrics.items() if not metric.guarded
    }
    if trends is not None:
        revenue_growth = trends.latest_value("revenue")
        if revenue_growth is not None:
            values["revenue_growth"] = revenue_growth
    return values


def _benchmark_trends(
    series: TrendSeries,
    snapshot: FinancialSnapshot,
    metrics: MetricSet,
    trends: Optional[TrendMetrics],
    industry: str,
    tables: ReferenceTables,
) -> dict[str, str]:
    """Direction of each benchmarked metric versus the previous period."""
    position = list(series).index(snapshot)
    if position == 0:
        return {}

    previous = compute_metrics(series[position - 1], tables.estimation)
    directions: dict[str, str] = {}
    for name in tables.benchmarks.metric_names:
        reference = tables.benchmarks.reference(industry, name)
        higher_is_better = reference.higher_is_better if reference else True
        if name == "revenue_growth":
            if trends is None or len(trends.steps) < 2:
                continue
            before = trends.steps[-2].rates["revenue"]
            after = trends.steps[-1].rates["revenue"]
            if before.defined and after.defined:
                directions[name] = change_direction(
                    before.value, after.value, higher_is_better=higher_is_better
                )
            continue
        if name not in metrics or name not in previous:
            continue
        if metrics[name].guarded or previous[name].guarded:
            continue
        directions[name] = change_direction(
            previous[name].value,
            metrics[name].value,
            higher_is_better=higher_is_better,
        )
    return directions


def analyze(
    company_id: str,
    providers: Sequence[Provider],
    *,
    industry: Optional[str] = None,
    history: Sequence[FinancialSnapshot] = (),
    ai_insights: Sequence[str] = (),
    config: Optional[AppConfig] = None,
    tables: Optional[ReferenceTables] = None,
    period_id: Optional[str] = None,
) -> Union[AnalysisResult, DataUnavailable]:
    """
    Run the full analysis for ``company_id``.

    Args:
        company_id: Company to analyse.
        providers: Data providers, in any order; they are sorted by tier
            priority before resolution.
        industry: Industry category for benchmarks. Defaults to the
            configured industry.
        history: Earlier snapshots of the same company, used for trends.
        ai_insights: Free-text insights from the AI collaborator. Ignored when
            ``ai_insights_enabled`` is false in the configuration.
        config: Application configuration. Defaults to built-in defaults.
        tables: Pre-loaded reference tables. Loaded from ``config`` if None.
        period_id: Optional period identifier for the resolved snapshot.

    Returns:
        AnalysisResult, or DataUnavailable when no provider yielded data.

    Raises:
        ValueError: if ``history`` belongs to another company or cannot be
            ordered together with the resolved snapshot.
    """
    if config is None:
        config = default_app_config()
    if tables is None:
        tables = load_reference_tables(config)
    industry = (industry or config.industry).strip().lower()

    resolution = resolve(company_id, order_by_priority(providers), period_id=period_id)
    if isinstance(resolution, DataUnavailable):
        return resolution

    snapshot = resolution.snapshot
    metrics = compute_metrics(snapshot, tables.estimation)

    series = TrendSeries([*history, snapshot])
    trends = growth(series)

    health_score = score(snapshot)

    benchmarks = compare(
        _benchmark_values(metrics, trends),
        industry,
        tables.benchmarks,
        trends=_benchmark_trends(series, snapshot, metrics, trends, industry, tables),
    )

    insights, risks = generate(
        snapshot,
        metrics,
        health_score,
        benchmarks,
        trends=trends,
        ai_insights=ai_insights if config.ai_insights_enabled else (),
        rules=tables.rules,
    )

    logger.info(
        "Analysed %s: health %d (%s), %d insights, %d risks",
        company_id,
        health_score.total,
        health_score.category,
        len(insights),
        len(risks),
    )

    return AnalysisResult(
        company_id=company_id,
        industry=industry,
        tier=resolution.tier,
        attempts=resolution.attempts,
        snapshot=snapshot,
        metrics=metrics,
        health_score=health_score,
        benchmarks=tuple(benchmarks),
        trends=trends,
        insights=tuple(insights),
        risks=tuple(risks),
        data_quality_score=data_quality_score(snapshot),
    )


def _jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, MetricSet):
        return {key: _jsonable(metric) for key, metric in value.items()}
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def analysis_to_dict(result: Union[AnalysisResult, DataUnavailable]) -> dict[str, Any]:
    """
    Convert an analysis outcome into JSON-safe dictionaries.

    A DataUnavailable becomes ``{"status": "data_unavailable", ...}``; an
    AnalysisResult becomes ``{"status": "ok", ...}`` with every nested entity
    expanded.
    """
    if isinstance(result, DataUnavailable):
        return {
            "status": "data_unavailable",
            "company_id": result.company_id,
            "attempts": _jsonable(result.attempts),
        }

    payload = _jsonable(result)
    payload["status"] = "ok"
    payload["is_partial"] = result.is_partial
    payload["metrics_policy_version"] = result.metrics.policy_version
    return payload
