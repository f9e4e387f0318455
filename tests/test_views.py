import pytest

from prospect_finsight.benchmarks import BenchmarkEntry
from prospect_finsight.health import score
from prospect_finsight.insights import RiskFactor
from prospect_finsight.metrics import compute_metrics
from prospect_finsight.normalizer import normalize
from prospect_finsight.payloads import UploadPayload
from prospect_finsight.views import (
    benchmarks_to_dataframe,
    health_to_dataframe,
    metrics_to_dataframe,
    risks_to_dataframe,
    snapshot_to_dataframe,
)


@pytest.fixture
def snapshot():
    return normalize(
        UploadPayload(data={"revenue": "1000", "expenses": "n/a", "assets": 500}),
        company_id="acme",
    )


def _entry(name: str, tier: str) -> BenchmarkEntry:
    return BenchmarkEntry(
        metric_name=name,
        label=name,
        company_value=0.123456,
        industry_average=0.1,
        top_quartile=0.2,
        top_decile=0.3,
        performance_tier=tier,
        trend="unknown",
        industry="default",
        higher_is_better=True,
    )


def _risk(rule_id: str, severity: str) -> RiskFactor:
    return RiskFactor(
        id=f"acme:{rule_id}",
        rule_id=rule_id,
        category="leverage",
        title=rule_id,
        description="",
        severity=severity,
        probability=0.5,
        financial_impact_estimate=1234.5678,
        recommended_actions=(),
        metric="debt_to_equity",
        threshold=None,
        confidence="high",
    )


def test_snapshot_statuses(snapshot) -> None:
    df = snapshot_to_dataframe(snapshot, decimals=2)
    status = dict(zip(df["field"], df["status"]))

    assert list(df.columns) == ["field", "value", "status"]
    assert status["revenue"] == "ok"
    assert status["expenses"] == "malformed"
    assert status["liabilities"] == "missing"
    assert status["net_income"] == "derived"


def test_metrics_rounding(snapshot) -> None:
    df = metrics_to_dataframe(compute_metrics(snapshot), decimals=1)

    assert list(df.columns) == ["metric", "value", "confidence", "basis"]
    assert df.loc[df["metric"] == "asset_turnover", "value"].iloc[0] == 2.0


def test_health_rows(snapshot) -> None:
    df = health_to_dataframe(score(snapshot))

    assert df["component"].iloc[0] == "base"
    assert df["component"].iloc[-1] == "total"


def test_benchmarks_sorted_by_tier() -> None:
    entries = [_entry("a", "poor"), _entry("b", "excellent"), _entry("c", "poor")]

    df = benchmarks_to_dataframe(entries, decimals=3)

    assert list(df["metric"]) == ["b", "a", "c"]
    assert df["company_value"].iloc[0] == 0.123


def test_risks_sorted_by_severity() -> None:
    risks = [_risk("low_one", "low"), _risk("crit", "critical"), _risk("high_one", "high")]

    df = risks_to_dataframe(risks, decimals=0)

    assert list(df["rule_id"]) == ["crit", "high_one", "low_one"]


def test_empty_inputs_keep_columns() -> None:
    assert list(benchmarks_to_dataframe([], 2).columns)[0] == "metric"
    assert risks_to_dataframe([], 2).empty
