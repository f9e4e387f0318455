# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Canonical financial snapshot model.

A FinancialSnapshot is one period's set of financial totals for a company,
built by the normalizer from whatever a provider tier actually supplied.
Snapshots are frozen: a re-resolution produces a new snapshot rather than
mutating an existing one.

Optional sub-components (current assets, COGS, inventory, ...) stay ``None``
when the provider did not report them. Estimating them is the job of the
metrics engine, which tags its results as ``estimated``.
"""

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

Tier = Literal["enhanced", "statements", "upload"]

# Most to least authoritative.
TIER_PRIORITY: tuple[str, ...] = ("enhanced", "statements", "upload")

# Monetary fields that must all be present on a snapshot.
CORE_MONETARY_FIELDS: tuple[str, ...] = (
    "revenue",
    "expenses",
    "net_income",
    "assets",
    "liabilities",
)

# Monetary fields a provider may or may not report.
OPTIONAL_MONETARY_FIELDS: tuple[str, ...] = (
    "current_assets",
    "current_liabilities",
    "inventory",
    "cost_of_goods_sold",
    "cash",
    "cash_flow",
)

COUNT_FIELDS: tuple[str, ...] = ("customer_count", "employee_count")

NET_INCOME_DERIVED = "net_income_derived"


def missing_flag(field_name: str) -> str:
    return f"missing:{field_name}"


def malformed_flag(field_name: str) -> str:
    return f"malformed:{field_name}"


@dataclass(frozen=True)
class Attempt:
    """One provider attempt made by the resolver."""

    tier: str
    succeeded: bool
    reason: str = ""


@dataclass(frozen=True)
class Provenance:
    """
    Where a snapshot came from and how trustworthy its fields are.

    Attributes:
        tier: Provider tier that satisfied the resolution.
        quality_flags: Sorted, de-duplicated flags such as 'missing:cash',
            'malformed:revenue', 'net_income_derived' and provider caveats.
        attempts: Every provider attempt made before (and including) the
            satisfying one.
    """

    tier: str
    quality_flags: tuple[str, ...] = ()
    attempts: tuple[Attempt, ...] = ()

    @property
    def is_partial(self) -> bool:
        """True when at least one field was missing or coerced to zero."""
        return any(
            flag.startswith(("missing:", "malformed:")) for flag in self.quality_flags
        )

    def has_flag(self, flag: str) -> bool:
        return flag in self.quality_flags

    def with_attempts(self, attempts: tuple[Attempt, ...]) -> "Provenance":
        return Provenance(
            tier=self.tier,
            quality_flags=self.quality_flags,
            attempts=attempts,
        )

    def with_flags(self, extra: tuple[str, ...]) -> "Provenance":
        return Provenance(
            tier=self.tier,
            quality_flags=tuple(sorted(set(self.quality_flags) | set(extra))),
            attempts=self.attempts,
        )


@dataclass(frozen=True)
class FinancialSnapshot:
    """
    Canonical one-period financial totals for a company.

    All monetary fields share one currency and one period granularity.
    ``net_income`` is either the supplied value or ``revenue - expenses``;
    the latter case is recorded with the 'net_income_derived' flag.
    """

    company_id: str
    period_id: str
    revenue: float
    expenses: float
    net_income: float
    assets: float
    liabilities: float
    provenance: Provenance
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    current_assets: Optional[float] = None
    current_liabilities: Optional[float] = None
    inventory: Optional[float] = None
    cost_of_goods_sold: Optional[float] = None
    cash: Optional[float] = None
    cash_flow: Optional[float] = None
    customer_count: Optional[float] = None
    employee_count: Optional[float] = None

    @property
    def equity(self) -> float:
        return self.assets - self.liabilities

    @property
    def has_data(self) -> bool:
        """True when at least one monetary field is non-zero."""
        for name in CORE_MONETARY_FIELDS + OPTIONAL_MONETARY_FIELDS:
            value = getattr(self, name)
            if value:
                return True
        return False

    def monetary_values(self) -> dict[str, float]:
        """Return all monetary fields that are known for this snapshot."""
        values: dict[str, float] = {
            name: float(getattr(self, name)) for name in CORE_MONETARY_FIELDS
        }
        for name in OPTIONAL_MONETARY_FIELDS:
            value = getattr(self, name)
            if value is not None:
                values[name] = float(value)
        return values


# Ten fields used to grade how complete a snapshot is.
QUALITY_FIELDS: tuple[str, ...] = (
    "revenue",
    "expenses",
    "net_income",
    "assets",
    "liabilities",
    "cash",
    "cash_flow",
    "current_assets",
    "current_liabilities",
    "cost_of_goods_sold",
)


def data_quality_score(snapshot: FinancialSnapshot) -> int:
    """
    Share (0-100) of the quality fields that are present and non-zero.

    A derived net income does not count as supplied.
    """
    score = 0
    for name in QUALITY_FIELDS:
        if name == "net_income" and snapshot.provenance.has_flag(NET_INCOME_DERIVED):
            continue
        if snapshot.provenance.has_flag(malformed_flag(name)):
            continue
        value = getattr(snapshot, name)
        if value:
            score += 1
    return round(score / len(QUALITY_FIELDS) * 100)
