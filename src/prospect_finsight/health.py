# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Composite financial health score.

The score starts from a base of 50 and adds the points of four independent
components. Each component reads one input from the snapshot and looks it up
in an ordered band table; the first band whose lower bound is strictly
exceeded wins. The sum is clamped to [0, 100].

    component          input                                  bands (> bound: points)
    revenue_scale      revenue                                5M:20 1M:15 500K:10 0:5
    profitability      net_income / revenue  (revenue > 0)    20%:25 15%:20 10%:15 5%:10 0%:5
    liquidity          assets / liabilities  (both > 0)       2.5:15 2.0:12 1.5:8 1.0:5
    growth_potential   revenue                                100K:10 50K:5
"""

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional

from .snapshot import FinancialSnapshot

BASE_SCORE = 50
MIN_SCORE = 0
MAX_SCORE = 100


@dataclass(frozen=True)
class ScoreBand:
    """Points awarded when the component input is strictly above ``above``."""

    above: float
    points: int


REVENUE_SCALE_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(5_000_000, 20),
    ScoreBand(1_000_000, 15),
    ScoreBand(500_000, 10),
    ScoreBand(0, 5),
)

PROFITABILITY_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(0.20, 25),
    ScoreBand(0.15, 20),
    ScoreBand(0.10, 15),
    ScoreBand(0.05, 10),
    ScoreBand(0.0, 5),
)

LIQUIDITY_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(2.5, 15),
    ScoreBand(2.0, 12),
    ScoreBand(1.5, 8),
    ScoreBand(1.0, 5),
)

GROWTH_POTENTIAL_BANDS: tuple[ScoreBand, ...] = (
    ScoreBand(100_000, 10),
    ScoreBand(50_000, 5),
)

# (score >= threshold) -> category, highest first.
CATEGORY_THRESHOLDS: tuple[tuple[int, str], ...] = (
    (85, "excellent"),
    (75, "good"),
    (50, "fair"),
)


def band_points(value: Optional[float], bands: Sequence[ScoreBand]) -> int:
    """Return the points of the first band strictly exceeded by ``value``."""
    if value is None:
        return 0
    for band in bands:
        if value > band.above:
            return band.points
    return 0


def _revenue(snapshot: FinancialSnapshot) -> Optional[float]:
    return snapshot.revenue


def _net_margin(snapshot: FinancialSnapshot) -> Optional[float]:
    if snapshot.revenue <= 0:
        return None
    return snapshot.net_income / snapshot.revenue


def _asset_coverage(snapshot: FinancialSnapshot) -> Optional[float]:
    if snapshot.assets <= 0 or snapshot.liabilities <= 0:
        return None
    return snapshot.assets / snapshot.liabilities


@dataclass(frozen=True)
class ScoreComponent:
    name: str
    input_of: Callable[[FinancialSnapshot], Optional[float]]
    bands: tuple[ScoreBand, ...]


SCORE_COMPONENTS: tuple[ScoreComponent, ...] = (
    ScoreComponent("revenue_scale", _revenue, REVENUE_SCALE_BANDS),
    ScoreComponent("profitability", _net_margin, PROFITABILITY_BANDS),
    ScoreComponent("liquidity", _asset_coverage, LIQUIDITY_BANDS),
    ScoreComponent("growth_potential", _revenue, GROWTH_POTENTIAL_BANDS),
)


@dataclass(frozen=True)
class HealthScore:
    """
    Composite 0-100 health indicator.

    Attributes:
        total: Clamped score in [0, 100].
        base: Starting score before components are added.
        breakdown: Points per component, in component order.
        raw_total: Unclamped base + components.
        category: 'excellent', 'good', 'fair' or 'poor'.
    """

    total: int
    base: int
    breakdown: Mapping[str, int]
    raw_total: int
    category: str


def category_for(total: int) -> str:
    for threshold, category in CATEGORY_THRESHOLDS:
        if total >= threshold:
            return category
    return "poor"


def score(snapshot: FinancialSnapshot) -> HealthScore:
    """Compute the HealthScore of ``snapshot``."""
    breakdown = {
        component.name: band_points(component.input_of(snapshot), component.bands)
        for component in SCORE_COMPONENTS
    }
    raw_total = BASE_SCORE + sum(breakdown.values())
    total = min(max(raw_total, MIN_SCORE), MAX_SCORE)
    return HealthScore(
        total=total,
        base=BASE_SCORE,
        breakdown=MappingProxyType(breakdown),
        raw_total=raw_total,
        category=category_for(total),
    )
