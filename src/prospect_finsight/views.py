# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Tabular views of analysis outputs.

Every helper returns a long-format pandas DataFrame (one row per item) with
a fixed column set, so outputs can be printed by the CLI, exported to CSV or
loaded by a dashboard without any further reshaping. Empty inputs yield an
empty DataFrame with the same columns.
"""

from collections.abc import Mapping, Sequence

import pandas as pd

from .benchmarks import PERFORMANCE_TIERS, BenchmarkEntry
from .health import HealthScore
from .insights import Insight, RiskFactor
from .metrics import MetricSet
from .snapshot import Attempt, FinancialSnapshot

SEVERITY_ORDER: Mapping[str, int] = {"critical": 0, "high": 1, "medium": 2, "low": 3}


def _round(value: float, decimals: int) -> float:
    return round(float(value), decimals)


def snapshot_to_dataframe(snapshot: FinancialSnapshot, decimals: int) -> pd.DataFrame:
    """
    Fields of a snapshot with their quality status.

    Columns: field, value, status ('ok', 'missing', 'malformed', 'derived').
    """
    columns = ["field", "value", "status"]
    flags = set(snapshot.provenance.quality_flags)

    rows: list[dict[str, object]] = []
    for name, value in snapshot.monetary_values().items():
        if f"malformed:{name}" in flags:
            status = "malformed"
        elif f"missing:{name}" in flags:
            status = "missing"
        elif name == "net_income" and "net_income_derived" in flags:
            status = "derived"
        else:
            status = "ok"
        rows.append({"field": name, "value": _round(value, decimals), "status": status})

    return pd.DataFrame(rows, columns=columns)


def metrics_to_dataframe(metrics: MetricSet, decimals: int) -> pd.DataFrame:
    """
    Convert a MetricSet into a DataFrame.

    Columns: metric, value, confidence, basis. Rows keep the catalogue order
    of the metrics engine.
    """
    columns = ["metric", "value", "confidence", "basis"]
    rows = [
        {
            "metric": key,
            "value": _round(metric.value, decimals),
            "confidence": metric.confidence,
            "basis": metric.basis,
        }
        for key, metric in metrics.items()
    ]
    return pd.DataFrame(rows, columns=columns)


def health_to_dataframe(health: HealthScore) -> pd.DataFrame:
    """Health score breakdown, one row per component plus base and total."""
    rows: list[dict[str, object]] = [{"component": "base", "points": health.base}]
    rows.extend(
        {"component": name, "points": points} for name, points in health.breakdown.items()
    )
    rows.append({"component": "total", "points": health.total})
    return pd.DataFrame(rows, columns=["component", "points"])


def benchmarks_to_dataframe(
    entries: Sequence[BenchmarkEntry], decimals: int
) -> pd.DataFrame:
    """
    Benchmark classifications.

    Columns: metric, label, company_value, industry_average, top_quartile,
    top_decile, tier, trend. Rows are sorted from the best tier to the worst,
    keeping table order within a tier.
    """
    columns = [
        "metric",
        "label",
        "company_value",
        "industry_average",
        "top_quartile",
        "top_decile",
        "tier",
        "trend",
    ]
    if not entries:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "metric": e.metric_name,
            "label": e.label,
            "company_value": _round(e.company_value, decimals),
            "industry_average": e.industry_average,
            "top_quartile": e.top_quartile,
            "top_decile": e.top_decile,
            "tier": e.performance_tier,
            "trend": e.trend,
        }
        for e in entries
    ]
    df = pd.DataFrame(rows, columns=columns)
    tier_order = {tier: i for i, tier in enumerate(PERFORMANCE_TIERS)}
    df["__tier_order__"] = df["tier"].map(lambda t: tier_order.get(t, 99))
    df = df.sort_values("__tier_order__", kind="stable").drop(columns="__tier_order__")
    return df.reset_index(drop=True)


def insights_to_dataframe(insights: Sequence[Insight], decimals: int) -> pd.DataFrame:
    columns = [
        "rule_id",
        "type",
        "category",
        "title",
        "impact",
        "financial_impact",
        "confidence",
    ]
    rows = [
        {
            "rule_id": i.rule_id,
            "type": i.type,
            "category": i.category,
            "title": i.title,
            "impact": i.impact,
            "financial_impact": _round(i.financial_impact_estimate, decimals),
            "confidence": i.confidence,
        }
        for i in insights
    ]
    return pd.DataFrame(rows, columns=columns)


def risks_to_dataframe(risks: Sequence[RiskFactor], decimals: int) -> pd.DataFrame:
    """
    Risk factors, most severe first.

    Columns: rule_id, category, title, severity, probability,
    financial_impact. The sort is stable, so rule order is kept within a
    severity level.
    """
    columns = [
        "rule_id",
        "category",
        "title",
        "severity",
        "probability",
        "financial_impact",
    ]
    if not risks:
        return pd.DataFrame(columns=columns)

    rows = [
        {
            "rule_id": r.rule_id,
            "category": r.category,
            "title": r.title,
            "severity": r.severity,
            "probability": r.probability,
            "financial_impact": _round(r.financial_impact_estimate, decimals),
        }
        for r in risks
    ]
    df = pd.DataFrame(rows, columns=columns)
    df["__severity_order__"] = df["severity"].map(lambda s: SEVERITY_ORDER.get(s, 99))
    df = df.sort_values("__severity_order__", kind="stable").drop(
        columns="__severity_order__"
    )
    return df.reset_index(drop=True)


def attempts_to_dataframe(attempts: Sequence[Attempt]) -> pd.DataFrame:
    rows = [
        {"tier": a.tier, "succeeded": a.succeeded, "reason": a.reason} for a in attempts
    ]
    return pd.DataFrame(rows, columns=["tier", "succeeded", "reason"])
