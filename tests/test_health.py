import pytest

from prospect_finsight.health import (
    GROWTH_POTENTIAL_BANDS,
    LIQUIDITY_BANDS,
    PROFITABILITY_BANDS,
    REVENUE_SCALE_BANDS,
    band_points,
    category_for,
    score,
)
from prospect_finsight.snapshot import FinancialSnapshot, Provenance


def _snapshot(revenue: float, expenses: float, assets: float, liabilities: float) -> FinancialSnapshot:
    return FinancialSnapshot(
        company_id="acme",
        period_id="2025",
        revenue=revenue,
        expenses=expenses,
        net_income=revenue - expenses,
        assets=assets,
        liabilities=liabilities,
        provenance=Provenance(tier="upload"),
    )


@pytest.mark.parametrize(
    "revenue, points",
    [
        (5_000_001, 20),
        (5_000_000, 15),
        (1_000_000, 10),
        (500_001, 10),
        (500_000, 5),
        (1, 5),
        (0, 0),
        (-10, 0),
    ],
)
def test_revenue_scale_band_boundaries(revenue: float, points: int) -> None:
    """Bounds are strict: the first band strictly exceeded wins."""
    assert band_points(revenue, REVENUE_SCALE_BANDS) == points


@pytest.mark.parametrize(
    "margin, points",
    [(0.25, 25), (0.20, 20), (0.16, 20), (0.12, 15), (0.07, 10), (0.01, 5), (0.0, 0), (-0.3, 0)],
)
def test_profitability_band_boundaries(margin: float, points: int) -> None:
    assert band_points(margin, PROFITABILITY_BANDS) == points


@pytest.mark.parametrize(
    "coverage, points",
    [(2.51, 15), (2.5, 12), (2.01, 12), (2.0, 8), (1.51, 8), (1.5, 5), (1.01, 5), (1.0, 0), (0.5, 0)],
)
def test_liquidity_band_boundaries(coverage: float, points: int) -> None:
    assert band_points(coverage, LIQUIDITY_BANDS) == points


@pytest.mark.parametrize(
    "revenue, points",
    [(100_001, 10), (100_000, 5), (50_001, 5), (50_000, 0), (0, 0)],
)
def test_growth_potential_band_boundaries(revenue: float, points: int) -> None:
    assert band_points(revenue, GROWTH_POTENTIAL_BANDS) == points


def test_band_points_none_input() -> None:
    assert band_points(None, REVENUE_SCALE_BANDS) == 0


def test_scenario_a_is_clamped_to_100() -> None:
    """Revenue 2.84M, margin 24.1%, coverage 2.76: raw total above 100."""
    snap = _snapshot(2_840_000, 2_156_000, 10_500_000, 3_800_000)

    result = score(snap)

    assert snap.net_income == pytest.approx(684_000)
    assert result.breakdown == {
        "revenue_scale": 15,
        "profitability": 25,
        "liquidity": 15,
        "growth_potential": 10,
    }
    assert result.raw_total == 115
    assert result.total == 100
    assert result.category == "excellent"


def test_score_without_liabilities_skips_liquidity() -> None:
    """Liquidity needs both assets and liabilities above zero."""
    result = score(_snapshot(80_000, 70_000, 100_000, 0))

    assert result.breakdown["liquidity"] == 0
    assert result.breakdown["revenue_scale"] == 5
    assert result.breakdown["growth_potential"] == 5
    assert result.breakdown["profitability"] == 15
    assert result.total == 75


def test_score_of_loss_making_company() -> None:
    result = score(_snapshot(40_000, 90_000, 10_000, 50_000))

    assert result.breakdown["profitability"] == 0
    assert result.total == 55
    assert result.category == "fair"


def test_score_is_always_within_bounds() -> None:
    for args in [
        (0, 0, 0, 0),
        (10_000_000, 1, 1_000_000, 1),
        (1, 1_000_000, 1, 1_000_000),
    ]:
        total = score(_snapshot(*args)).total
        assert 0 <= total <= 100


def test_score_is_monotonic_in_revenue() -> None:
    """More revenue at the same margin and coverage never lowers the score."""
    previous = -1
    for revenue in (10_000, 60_000, 200_000, 700_000, 2_000_000, 6_000_000):
        total = score(_snapshot(revenue, revenue * 0.88, 300_000, 100_000)).total
        assert total >= previous
        previous = total


@pytest.mark.parametrize(
    "total, category",
    [(100, "excellent"), (85, "excellent"), (84, "good"), (75, "good"), (74, "fair"), (50, "fair"), (49, "poor")],
)
def test_category_thresholds(total: int, category: str) -> None:
    assert category_for(total) == category


def test_score_is_monotonic_in_net_income() -> None:
    """Higher net income at fixed revenue and coverage never lowers the score."""
    previous = -1
    for net_income in (-200_000, 0, 10_000, 60_000, 110_000, 160_000, 210_000, 400_000):
        snap = _snapshot(1_000_000, 1_000_000 - net_income, 300_000, 100_000)
        total = score(snap).total
        assert total >= previous
        previous = total


def test_breakdown_is_read_only() -> None:
    result = score(_snapshot(1_000_000, 800_000, 300_000, 100_000))

    with pytest.raises(TypeError):
        result.breakdown["liquidity"] = 99  # type: ignore[index]
