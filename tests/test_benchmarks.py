import pytest

from prospect_finsight.benchmarks import (
    BenchmarkReference,
    BenchmarkTable,
    classify,
    compare,
    load_benchmark_table,
    performance_tier,
)

CURRENT_RATIO = BenchmarkReference(
    metric_name="current_ratio",
    industry="default",
    industry_average=2.0,
    top_quartile=2.5,
    top_decile=3.0,
)

DEBT_TO_EQUITY = BenchmarkReference(
    metric_name="debt_to_equity",
    industry="default",
    industry_average=1.0,
    top_quartile=0.5,
    top_decile=0.3,
    higher_is_better=False,
)


@pytest.mark.parametrize(
    "value, tier",
    [
        (3.5, "excellent"),
        (3.0, "excellent"),
        (2.5, "excellent"),
        (2.49, "above_average"),
        (2.0, "above_average"),
        (1.8, "average"),
        (1.79, "below_average"),
        (1.5, "below_average"),
        (1.49, "poor"),
        (0.0, "poor"),
    ],
)
def test_tier_boundaries_resolve_to_higher_tier(value: float, tier: str) -> None:
    """Bounds are inclusive so ties go to the higher tier."""
    assert performance_tier(value, CURRENT_RATIO) == tier


@pytest.mark.parametrize(
    "value, tier",
    [
        (0.2, "excellent"),
        (0.5, "excellent"),
        (0.8, "above_average"),
        (1.0, "above_average"),
        (1.1, "average"),
        (1.2, "below_average"),
        (1.25, "below_average"),
        (1.3, "poor"),
    ],
)
def test_lower_is_better_metric_is_inverted(value: float, tier: str) -> None:
    assert performance_tier(value, DEBT_TO_EQUITY) == tier


def test_classify_builds_entry() -> None:
    entry = classify("current_ratio", 2.7, CURRENT_RATIO, trend="improving")

    assert entry.metric_name == "current_ratio"
    assert entry.company_value == pytest.approx(2.7)
    assert entry.performance_tier == "excellent"
    assert entry.trend == "improving"
    assert entry.top_decile == pytest.approx(3.0)
    assert entry.higher_is_better


def test_classify_default_trend_is_unknown() -> None:
    assert classify("current_ratio", 1.0, CURRENT_RATIO).trend == "unknown"


def test_shipped_table_industry_overrides_and_fallback() -> None:
    """Categories override some metrics and inherit the rest from default."""
    table = load_benchmark_table()

    tech_gross = table.reference("technology", "gross_margin")
    default_gross = table.reference("default", "gross_margin")
    tech_current = table.reference("technology", "current_ratio")
    unknown = table.reference("space_mining", "gross_margin")

    assert tech_gross.industry_average == pytest.approx(0.752)
    assert default_gross.industry_average == pytest.approx(0.658)
    assert tech_current.industry == "default"
    assert unknown == default_gross
    assert "healthcare" in table.industries
    assert table.reference("Manufacturing", "net_margin").industry_average == pytest.approx(0.08)


def test_shipped_table_marks_debt_to_equity_lower_is_better() -> None:
    table = load_benchmark_table()
    assert not table.reference("default", "debt_to_equity").higher_is_better


def test_compare_only_classifies_present_metrics_in_table_order() -> None:
    table = load_benchmark_table()

    entries = compare(
        {"current_ratio": 2.4, "net_margin": 0.3, "not_benchmarked": 1.0},
        "retail",
        table,
        trends={"net_margin": "declining"},
    )

    assert [e.metric_name for e in entries] == ["net_margin", "current_ratio"]
    assert entries[0].performance_tier == "excellent"
    assert entries[0].trend == "declining"
    assert entries[1].industry == "retail"
    assert entries[1].trend == "unknown"


def test_table_requires_default_industry() -> None:
    with pytest.raises(ValueError):
        BenchmarkTable({"technology": {}}, metric_names=())


def test_load_rejects_out_of_order_thresholds(tmp_path) -> None:
    path = tmp_path / "benchmarks.toml"
    path.write_text(
        "[metrics.current_ratio]\nhigher_is_better = true\n"
        "[industries.default]\n"
        "current_ratio = { industry_average = 2.0, top_quartile = 1.5, top_decile = 3.0 }\n",
        encoding="utf-8",
    )

    with pytest.raises(ValueError):
        load_benchmark_table(path)


def test_load_rejects_unknown_metric(tmp_path) -> None:
    path = tmp_path / "benchmarks.toml"
    path.write_text(
        "[metrics.current_ratio]\n"
        "[industries.default]\n"
        "quick_ratio = { industry_average = 1.0, top_quartile = 1.5, top_decile = 2.0 }\n",
        encoding="utf-8",
    )

    with pytest.raises(ValueError):
        load_benchmark_table(path)


def test_load_missing_file(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_benchmark_table(tmp_path / "missing.toml")
