import math

import pytest

from prospect_finsight.estimation import EstimationPolicy, load_estimation_policy
from prospect_finsight.metrics import compute_metrics, guarded_ratio
from prospect_finsight.snapshot import FinancialSnapshot, Provenance


def _snapshot(**overrides) -> FinancialSnapshot:
    values = dict(
        company_id="acme",
        period_id="2025",
        revenue=1_000_000.0,
        expenses=800_000.0,
        net_income=200_000.0,
        assets=2_000_000.0,
        liabilities=800_000.0,
        provenance=Provenance(tier="upload"),
    )
    values.update(overrides)
    return FinancialSnapshot(**values)


@pytest.mark.parametrize("denominator", [0.0, -5.0, float("nan"), float("inf")])
def test_guarded_ratio_defaults_on_invalid_denominator(denominator: float) -> None:
    """Zero, negative or non-finite denominators yield the default, estimated."""
    metric = guarded_ratio(10.0, denominator, basis="x / y")

    assert metric.value == 0.0
    assert metric.estimated
    assert metric.guarded
    assert "denominator not positive" in metric.basis


def test_guarded_ratio_custom_default() -> None:
    metric = guarded_ratio(10.0, 0.0, basis="x / y", default=1.0)
    assert metric.value == 1.0


def test_guarded_ratio_measured() -> None:
    metric = guarded_ratio(10.0, 4.0, basis="x / y")
    assert metric.value == pytest.approx(2.5)
    assert metric.confidence == "measured"
    assert not metric.guarded


def test_liquidity_falls_back_on_totals_and_estimates_quick_ratio() -> None:
    """Without a current split, totals are used and tagged estimated."""
    metrics = compute_metrics(_snapshot())

    assert metrics["current_ratio"].value == pytest.approx(2.5)
    assert metrics["current_ratio"].estimated
    assert metrics["quick_ratio"].value == pytest.approx(2.5 * 0.9)
    assert metrics["quick_ratio"].estimated
    assert metrics["working_capital"].value == pytest.approx(1_200_000)


def test_liquidity_uses_current_split_when_reported() -> None:
    snap = _snapshot(current_assets=600_000.0, current_liabilities=300_000.0, inventory=150_000.0, cash=90_000.0)

    metrics = compute_metrics(snap)

    assert metrics["current_ratio"].value == pytest.approx(2.0)
    assert metrics["current_ratio"].confidence == "measured"
    assert metrics["quick_ratio"].value == pytest.approx(1.5)
    assert metrics["quick_ratio"].confidence == "measured"
    assert metrics["cash_ratio"].value == pytest.approx(0.3)
    assert metrics["working_capital"].value == pytest.approx(300_000)


def test_gross_margin_estimates_cogs_from_expenses() -> None:
    """COGS defaults to 60% of expenses when not reported."""
    metrics = compute_metrics(_snapshot())

    assert metrics["gross_margin"].value == pytest.approx((1_000_000 - 480_000) / 1_000_000)
    assert metrics["gross_margin"].estimated
    assert "0.6" in metrics["gross_margin"].basis


def test_gross_margin_uses_reported_cogs() -> None:
    metrics = compute_metrics(_snapshot(cost_of_goods_sold=300_000.0))

    assert metrics["gross_margin"].value == pytest.approx(0.7)
    assert metrics["gross_margin"].confidence == "measured"


def test_profitability_and_leverage() -> None:
    metrics = compute_metrics(_snapshot())

    assert metrics["net_margin"].value == pytest.approx(0.2)
    assert metrics["operating_margin"].value == pytest.approx(0.2)
    assert metrics["return_on_assets"].value == pytest.approx(0.1)
    assert metrics["return_on_equity"].value == pytest.approx(200_000 / 1_200_000)
    assert metrics["debt_to_equity"].value == pytest.approx(800_000 / 1_200_000)
    assert metrics["debt_to_assets"].value == pytest.approx(0.4)
    assert metrics["asset_turnover"].value == pytest.approx(0.5)


def test_debt_to_equity_with_negative_equity_defaults_to_zero() -> None:
    """Liabilities above assets: the centralized guard returns 0, estimated."""
    metrics = compute_metrics(_snapshot(assets=0.0, liabilities=500_000.0))

    assert metrics["debt_to_equity"].value == 0.0
    assert metrics["debt_to_equity"].estimated
    assert metrics["debt_to_equity"].guarded
    assert metrics["current_ratio"].value == 0.0
    assert metrics["asset_turnover"].value == 0.0


def test_zero_revenue_never_produces_nan() -> None:
    metrics = compute_metrics(_snapshot(revenue=0.0, net_income=-800_000.0))

    for key, metric in metrics.items():
        assert math.isfinite(metric.value), key
    assert metrics["net_margin"].value == 0.0
    assert "net_margin" in metrics.guarded_keys()
    assert metrics["gross_margin"].value == 0.0
    assert metrics["gross_margin"].confidence == "estimated"


def test_operating_cash_flow_estimate_and_reported() -> None:
    estimated = compute_metrics(_snapshot())
    reported = compute_metrics(_snapshot(cash_flow=123_000.0))

    assert estimated["operating_cash_flow"].value == pytest.approx(170_000)
    assert estimated["operating_cash_flow"].estimated
    assert reported["operating_cash_flow"].value == pytest.approx(123_000)
    assert not reported["operating_cash_flow"].estimated


def test_revenue_per_employee() -> None:
    metrics = compute_metrics(_snapshot(employee_count=8.0))
    assert metrics["revenue_per_employee"].value == pytest.approx(125_000)

    without = compute_metrics(_snapshot())
    assert without["revenue_per_employee"].guarded


def test_custom_estimation_policy_is_applied() -> None:
    policy = EstimationPolicy(
        version="test",
        cogs_share_of_expenses=0.5,
        quick_ratio_factor=0.5,
        cash_flow_to_net_income=1.0,
    )

    metrics = compute_metrics(_snapshot(), policy)

    assert metrics.policy_version == "test"
    assert metrics["gross_margin"].value == pytest.approx(0.6)
    assert metrics["quick_ratio"].value == pytest.approx(1.25)
    assert metrics["operating_cash_flow"].value == pytest.approx(200_000)


def test_metric_set_helpers() -> None:
    metrics = compute_metrics(_snapshot())

    values = metrics.values_dict()
    assert values["net_margin"] == pytest.approx(0.2)
    assert "current_ratio" in metrics.estimated_keys()
    assert metrics.value("unknown", default=-1.0) == -1.0
    assert list(metrics)[0] == "current_ratio"


def test_shipped_estimation_policy() -> None:
    policy = load_estimation_policy()

    assert policy.cogs_share_of_expenses == pytest.approx(0.6)
    assert policy.quick_ratio_factor == pytest.approx(0.9)
    assert policy.cash_flow_to_net_income == pytest.approx(0.85)
    assert policy.version


def test_estimation_policy_missing_constant(tmp_path) -> None:
    path = tmp_path / "estimation.toml"
    path.write_text('version = "x"\n[constants]\nquick_ratio_factor = 0.9\n', encoding="utf-8")

    with pytest.raises(ValueError):
        load_estimation_policy(path)


def test_debt_to_equity_without_liabilities_is_zero() -> None:
    metrics = compute_metrics(_snapshot(liabilities=0.0))

    assert metrics["debt_to_equity"].value == 0.0
    assert not metrics["debt_to_equity"].guarded
    assert metrics["debt_to_assets"].value == 0.0
