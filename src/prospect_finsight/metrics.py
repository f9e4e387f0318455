# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Derived metrics engine for Prospect FinSight.

This module computes financial ratios from a single FinancialSnapshot. Every
result is a MetricValue carrying:

- the numeric value,
- a confidence tag: 'measured' when it comes directly from supplied data,
  'estimated' when a documented heuristic or a division guard was applied,
- a short 'basis' string explaining the formula actually used.

Division policy
---------------
All ratios go through ``guarded_ratio()``. A denominator that is zero,
negative or not finite yields the default value (0.0 unless stated otherwise)
tagged 'estimated' and marked ``guarded``. No formula performs its own
ad-hoc check. Rule tables skip guarded metrics, so a placeholder zero never
triggers an insight.

Estimation policy
-----------------
When a sub-component is not reported by the snapshot, the engine falls back
on the constants of the versioned EstimationPolicy (see estimation.py):

    gross_margin        cogs = expenses * cogs_share_of_expenses      (0.6)
    quick_ratio         current_ratio * quick_ratio_factor            (0.9)
    operating_cash_flow net_income * cash_flow_to_net_income          (0.85)

Liquidity ratios fall back on total assets / total liabilities when the
current / non-current split is unavailable, tagged 'estimated'.

Metric catalogue
----------------
    current_ratio, quick_ratio, cash_ratio, working_capital,
    gross_margin, net_margin, operating_margin,
    return_on_assets, return_on_equity,
    debt_to_equity, debt_to_assets, asset_turnover,
    operating_cash_flow, revenue_per_employee

Margins and returns are fractions (0.24 means 24 %).
"""

import math
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Literal, Optional

from .estimation import EstimationPolicy, load_estimation_policy
from .snapshot import NET_INCOME_DERIVED, FinancialSnapshot

Confidence = Literal["measured", "estimated"]


@dataclass(frozen=True)
class MetricValue:
    """One derived metric with its confidence tag and formula basis."""

    value: float
    confidence: Confidence
    basis: str
    guarded: bool = False

    @property
    def estimated(self) -> bool:
        return self.confidence == "estimated"


class MetricSet(Mapping[str, MetricValue]):
    """Read-only mapping of metric name -> MetricValue."""

    def __init__(
        self,
        metrics: Mapping[str, MetricValue],
        policy_version: str = "",
    ) -> None:
        self._metrics = dict(metrics)
        self.policy_version = policy_version

    def __getitem__(self, key: str) -> MetricValue:
        return self._metrics[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._metrics)

    def __len__(self) -> int:
        return len(self._metrics)

    def __repr__(self) -> str:
        return f"MetricSet({self._metrics!r})"

    def value(self, key: str, default: float = 0.0) -> float:
        metric = self._metrics.get(key)
        return metric.value if metric is not None else default

    def values_dict(self) -> dict[str, float]:
        return {key: metric.value for key, metric in self._metrics.items()}

    def estimated_keys(self) -> list[str]:
        return [key for key, metric in self._metrics.items() if metric.estimated]

    def guarded_keys(self) -> list[str]:
        """Metrics holding a placeholder default instead of a computed value."""
        return [key for key, metric in self._metrics.items() if metric.guarded]


def guarded_ratio(
    numerator: float,
    denominator: float,
    *,
    basis: str,
    default: float = 0.0,
    estimated: bool = False,
) -> MetricValue:
    """
    Divide ``numerator`` by ``denominator`` under the engine-wide guard.

    Args:
        numerator: Dividend.
        denominator: Divisor; must be strictly positive and finite.
        basis: Human-readable formula description.
        default: Value returned when the guard trips.
        estimated: True when an input was itself estimated.

    Returns:
        A MetricValue. When the guard trips, ``default`` is returned with
        confidence 'estimated' and the basis notes the guard.
    """
    if (
        not math.isfinite(numerator)
        or not math.isfinite(denominator)
        or denominator <= 0
    ):
        return MetricValue(
            value=default,
            confidence="estimated",
            basis=f"{basis}; denominator not positive, defaulted to {default:g}",
            guarded=True,
        )

    value = numerator / denominator
    return MetricValue(
        value=value,
        confidence="estimated" if estimated else "measured",
        basis=basis,
    )


def _amount(value: float, basis: str, estimated: bool = False) -> MetricValue:
    return MetricValue(
        value=value,
        confidence="estimated" if estimated else "measured",
        basis=basis,
    )


def _current_split(
    snapshot: FinancialSnapshot,
) -> tuple[float, float, bool]:
    """Return (current assets, current liabilities, estimated)."""
    if snapshot.current_assets is not None and snapshot.current_liabilities is not None:
        return snapshot.current_assets, snapshot.current_liabilities, False
    return snapshot.assets, snapshot.liabilities, True


def liquidity_metrics(
    snapshot: FinancialSnapshot, policy: EstimationPolicy
) -> dict[str, MetricValue]:
    current_assets, current_liabilities, split_estimated = _current_split(snapshot)
    split_basis = (
        "total_assets / total_liabilities"
        if split_estimated
        else "current_assets / current_liabilities"
    )

    current_ratio = guarded_ratio(
        current_assets,
        current_liabilities,
        basis=split_basis,
        estimated=split_estimated,
    )

    if not split_estimated and snapshot.inventory is not None:
        quick_ratio = guarded_ratio(
            current_assets - snapshot.inventory,
            current_liabilities,
            basis="(current_assets - inventory) / current_liabilities",
        )
    else:
        quick_ratio = MetricValue(
            value=current_ratio.value * policy.quick_ratio_factor,
            confidence="estimated",
            basis=f"current_ratio * {policy.quick_ratio_factor:g}",
            guarded=current_ratio.guarded,
        )

    if snapshot.cash is not None:
        cash_ratio = guarded_ratio(
            snapshot.cash,
            current_liabilities,
            basis=f"cash / {'total' if split_estimated else 'current'}_liabilities",
            estimated=split_estimated,
        )
    else:
        cash_ratio = MetricValue(0.0, "estimated", "cash not reported", guarded=True)

    working_capital = _amount(
        current_assets - current_liabilities,
        basis=(
            "total_assets - total_liabilities"
            if split_estimated
            else "current_assets - current_liabilities"
        ),
        estimated=split_estimated,
    )

    return {
        "current_ratio": current_ratio,
        "quick_ratio": quick_ratio,
        "cash_ratio": cash_ratio,
        "working_capital": working_capital,
    }


def profitability_metrics(
    snapshot: FinancialSnapshot, policy: EstimationPolicy
) -> dict[str, MetricValue]:
    revenue = snapshot.revenue

    if snapshot.cost_of_goods_sold is not None:
        gross_margin = guarded_ratio(
            revenue - snapshot.cost_of_goods_sold,
            revenue,
            basis="(revenue - cost_of_goods_sold) / revenue",
        )
    else:
        estimated_cogs = snapshot.expenses * policy.cogs_share_of_expenses
        gross_margin = guarded_ratio(
            revenue - estimated_cogs,
            revenue,
            basis=(
                f"(revenue - expenses * {policy.cogs_share_of_expenses:g}) / revenue"
            ),
            estimated=True,
        )

    net_income_derived = snapshot.provenance.has_flag(NET_INCOME_DERIVED)
    net_margin = guarded_ratio(
        snapshot.net_income,
        revenue,
        basis="net_income / revenue",
    )
    operating_margin = guarded_ratio(
        revenue - snapshot.expenses,
        revenue,
        basis="(revenue - expenses) / revenue",
    )
    return_on_assets = guarded_ratio(
        snapshot.net_income,
        snapshot.assets,
        basis="net_income / total_assets",
    )
    return_on_equity = guarded_ratio(
        snapshot.net_income,
        snapshot.equity,
        basis="net_income / (total_assets - total_liabilities)",
    )

    metrics = {
        "gross_margin": gross_margin,
        "net_margin": net_margin,
        "operating_margin": operating_margin,
        "return_on_assets": return_on_assets,
        "return_on_equity": return_on_equity,
    }
    # Derived net income stays measured; only the basis records it.
    if net_income_derived:
        for key in ("net_margin", "return_on_assets", "return_on_equity"):
            metric = metrics[key]
            metrics[key] = MetricValue(
                metric.value,
                metric.confidence,
                f"{metric.basis}; net_income = revenue - expenses",
                metric.guarded,
            )
    return metrics


def leverage_metrics(snapshot: FinancialSnapshot) -> dict[str, MetricValue]:
    return {
        "debt_to_equity": guarded_ratio(
            snapshot.liabilities,
            snapshot.equity,
            basis="total_liabilities / (total_assets - total_liabilities)",
        ),
        "debt_to_assets": guarded_ratio(
            snapshot.liabilities,
            snapshot.assets,
            basis="total_liabilities / total_assets",
        ),
    }


def efficiency_metrics(
    snapshot: FinancialSnapshot, policy: EstimationPolicy
) -> dict[str, MetricValue]:
    if snapshot.cash_flow is not None:
        operating_cash_flow = _amount(snapshot.cash_flow, "reported cash_flow")
    else:
        operating_cash_flow = _amount(
            snapshot.net_income * policy.cash_flow_to_net_income,
            basis=f"net_income * {policy.cash_flow_to_net_income:g}",
            estimated=True,
        )

    if snapshot.employee_count is not None:
        revenue_per_employee = guarded_ratio(
            snapshot.revenue,
            snapshot.employee_count,
            basis="revenue / employee_count",
        )
    else:
        revenue_per_employee = MetricValue(
            0.0, "estimated", "employee_count not reported", guarded=True
        )

    return {
        "asset_turnover": guarded_ratio(
            snapshot.revenue,
            snapshot.assets,
            basis="revenue / total_assets",
        ),
        "operating_cash_flow": operating_cash_flow,
        "revenue_per_employee": revenue_per_employee,
    }


def compute_metrics(
    snapshot: FinancialSnapshot,
    policy: Optional[EstimationPolicy] = None,
) -> MetricSet:
    """
    Compute every derived metric for ``snapshot``.

    Args:
        snapshot: The canonical snapshot.
        policy: Estimation constants. Defaults to the table shipped with the
            package.

    Returns:
        A MetricSet whose iteration order is the catalogue order above.
    """
    if policy is None:
        policy = load_estimation_policy()

    metrics: dict[str, MetricValue] = {}
    metrics.update(liquidity_metrics(snapshot, policy))
    metrics.update(profitability_metrics(snapshot, policy))
    metrics.update(leverage_metrics(snapshot))
    metrics.update(efficiency_metrics(snapshot, policy))
    return MetricSet(metrics, policy_version=policy.version)
