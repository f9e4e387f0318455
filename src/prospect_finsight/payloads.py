# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Provider payload variants.

Each provider tier returns its own payload shape. Rather than duck-typing
across shapes, every tier has a dedicated frozen dataclass; the normalizer
dispatches once on the variant type and no downstream stage ever inspects
raw provider data again.

- EnhancedFinancialsPayload:
    aggregated, multi-statement data (flat mapping of totals, possibly with
    pre-computed ratios which are kept for reference only).
- StatementsPayload:
    separate balance-sheet and profit-and-loss payloads. Each may be a flat
    mapping of totals or an accounting-report tree (Rows/Row, Header,
    Summary/ColData), combined by the normalizer.
- UploadPayload:
    rows extracted from a file or entered manually, as a flat mapping.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, ClassVar, Optional, Union


@dataclass(frozen=True)
class EnhancedFinancialsPayload:
    """Aggregated financials from the enhanced-financials provider."""

    tier: ClassVar[str] = "enhanced"

    data: Mapping[str, Any]
    ratios: Mapping[str, Any] = field(default_factory=dict)
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    caveats: tuple[str, ...] = ()


@dataclass(frozen=True)
class StatementsPayload:
    """Separate balance-sheet and profit-and-loss payloads."""

    tier: ClassVar[str] = "statements"

    balance_sheet: Optional[Mapping[str, Any]]
    profit_loss: Optional[Mapping[str, Any]]
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    caveats: tuple[str, ...] = ()


@dataclass(frozen=True)
class UploadPayload:
    """Values extracted from an uploaded file or entered manually."""

    tier: ClassVar[str] = "upload"

    data: Mapping[str, Any]
    source_name: str = ""
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    caveats: tuple[str, ...] = ()


SnapshotPayload = Union[EnhancedFinancialsPayload, StatementsPayload, UploadPayload]
