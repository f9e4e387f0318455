# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period-over-period growth for a series of snapshots.

A TrendSeries is a non-empty, ordered sequence of FinancialSnapshots for one
company. Growth rates are only computed between adjacent points:

    growth = (latest - previous) / |previous|

for each tracked field (revenue, net_income, cash_flow, employee_count,
customer_count). Two guards keep every rate finite:

- previous == 0      -> 0.0 flagged 'undefined_baseline'
- either side absent -> 0.0 flagged 'missing_value'

A series with fewer than two points has no growth metrics; ``growth()``
returns None rather than raising.

``trend_frame()`` exposes the series as a long-format pandas DataFrame
(one row per period and field), the shape the tabular views use.
"""

from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Optional, Union

import pandas as pd

from .snapshot import FinancialSnapshot

TRACKED_FIELDS: tuple[str, ...] = (
    "revenue",
    "net_income",
    "cash_flow",
    "employee_count",
    "customer_count",
)

UNDEFINED_BASELINE = "undefined_baseline"
MISSING_VALUE = "missing_value"

DEFAULT_TOLERANCE = 0.02


class TrendSeries(Sequence[FinancialSnapshot]):
    """
    Ordered snapshots of one company.

    Snapshots are sorted by ``period_start`` when every snapshot carries one;
    when none does, the given order is kept.

    Raises:
        ValueError: if the series is empty, mixes companies, or mixes dated
            and undated snapshots.
    """

    def __init__(self, snapshots: Iterable[FinancialSnapshot]) -> None:
        points = list(snapshots)
        if not points:
            raise ValueError("A trend series needs at least one snapshot.")

        companies = {s.company_id for s in points}
        if len(companies) > 1:
            raise ValueError(
                f"A trend series covers one company, got: {sorted(companies)}"
            )

        dated = [s.period_start is not None for s in points]
        if all(dated):
            points.sort(key=lambda s: s.period_start)
        elif any(dated):
            raise ValueError("Cannot order a series mixing dated and undated snapshots.")

        self._points: tuple[FinancialSnapshot, ...] = tuple(points)

    def __getitem__(self, index):  # type: ignore[override]
        return self._points[index]

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[FinancialSnapshot]:
        return iter(self._points)

    @property
    def company_id(self) -> str:
        return self._points[0].company_id

    def pairs(self) -> Iterator[tuple[FinancialSnapshot, FinancialSnapshot]]:
        return zip(self._points, self._points[1:])


@dataclass(frozen=True)
class GrowthRate:
    value: float
    flags: tuple[str, ...] = ()

    @property
    def defined(self) -> bool:
        return not self.flags


@dataclass(frozen=True)
class GrowthStep:
    """Growth between two adjacent periods."""

    from_period: str
    to_period: str
    rates: Mapping[str, GrowthRate]


@dataclass(frozen=True)
class TrendMetrics:
    """
    Growth metrics for a series.

    Attributes:
        company_id: Company the series belongs to.
        steps: One GrowthStep per adjacent pair, oldest first.
        latest: Rates of the most recent step.
        average: Mean of the unflagged step rates per field; None when every
            step was flagged for that field.
    """

    company_id: str
    steps: tuple[GrowthStep, ...]
    latest: Mapping[str, GrowthRate]
    average: Mapping[str, Optional[float]]

    def latest_value(self, field_name: str) -> Optional[float]:
        """Latest rate for ``field_name``, or None when it was flagged."""
        rate = self.latest.get(field_name)
        if rate is None or not rate.defined:
            return None
        return rate.value


def growth_rate(previous: Optional[float], latest: Optional[float]) -> GrowthRate:
    """Relative change from ``previous`` to ``latest`` with guards."""
    if previous is None or latest is None:
        return GrowthRate(0.0, (MISSING_VALUE,))
    if previous == 0:
        return GrowthRate(0.0, (UNDEFINED_BASELINE,))
    return GrowthRate((latest - previous) / abs(previous))


def _step(previous: FinancialSnapshot, latest: FinancialSnapshot) -> GrowthStep:
    rates = {
        name: growth_rate(getattr(previous, name), getattr(latest, name))
        for name in TRACKED_FIELDS
    }
    return GrowthStep(
        from_period=previous.period_id,
        to_period=latest.period_id,
        rates=MappingProxyType(rates),
    )


def growth(
    series: Union[TrendSeries, Sequence[FinancialSnapshot]],
) -> Optional[TrendMetrics]:
    """
    Compute period-over-period growth for ``series``.

    Returns:
        TrendMetrics, or None when the series has fewer than two points.
    """
    if not isinstance(series, TrendSeries):
        if not series:
            return None
        series = TrendSeries(series)
    if len(series) < 2:
        return None

    steps = tuple(_step(prev, last) for prev, last in series.pairs())

    average: dict[str, Optional[float]] = {}
    for name in TRACKED_FIELDS:
        defined = [s.rates[name].value for s in steps if s.rates[name].defined]
        average[name] = sum(defined) / len(defined) if defined else None

    return TrendMetrics(
        company_id=series.company_id,
        steps=steps,
        latest=steps[-1].rates,
        average=MappingProxyType(average),
    )


def direction(rate: Optional[float], tolerance: float = DEFAULT_TOLERANCE) -> str:
    """Map a growth rate to 'improving', 'stable', 'declining' or 'unknown'."""
    if rate is None:
        return "unknown"
    if rate > tolerance:
        return "improving"
    if rate < -tolerance:
        return "declining"
    return "stable"


def change_direction(
    previous: Optional[float],
    latest: Optional[float],
    *,
    higher_is_better: bool = True,
    tolerance: float = DEFAULT_TOLERANCE,
) -> str:
    """
    Direction of a metric between two periods.

    For lower-is-better metrics a decrease is 'improving'. A flagged rate
    (missing side, zero baseline with a non-zero latest) is 'unknown'.
    """
    rate = growth_rate(previous, latest)
    if not rate.defined:
        if UNDEFINED_BASELINE in rate.flags and latest == 0:
            return "stable"
        return "unknown"
    value = rate.value if higher_is_better else -rate.value
    return direction(value, tolerance)


def trend_frame(
    series: Union[TrendSeries, Sequence[FinancialSnapshot]],
) -> pd.DataFrame:
    """
    Long-format view of a series.

    Columns: company_id, period_id, period_start, field, value, growth, flags.
    ``growth`` is NaN on the first period of the series.
    """
    columns = ["company_id", "period_id", "period_start", "field", "value", "growth", "flags"]
    if not isinstance(series, TrendSeries):
        if not series:
            return pd.DataFrame(columns=columns)
        series = TrendSeries(series)

    rows: list[dict[str, object]] = []
    previous: Optional[FinancialSnapshot] = None
    for snap in series:
        for name in TRACKED_FIELDS:
            value = getattr(snap, name)
            if previous is None:
                rate_value, flags = float("nan"), ""
            else:
                rate = growth_rate(getattr(previous, name), value)
                rate_value, flags = rate.value, ",".join(rate.flags)
            rows.append(
                {
                    "company_id": snap.company_id,
                    "period_id": snap.period_id,
                    "period_start": snap.period_start,
                    "field": name,
                    "value": float("nan") if value is None else float(value),
                    "growth": rate_value,
                    "flags": flags,
                }
            )
        previous = snap

    return pd.DataFrame(rows, columns=columns)
