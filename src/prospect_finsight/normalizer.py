# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Snapshot normalization for Prospect FinSight.

This module maps a resolved provider payload into the canonical
FinancialSnapshot. It is organised in two steps:

1. Field extraction
   -----------------
   One adapter per payload variant turns the provider shape into a mapping
   ``{field_name -> FieldResult}``. A FieldResult is either a parsed value or
   an explicit absence (missing / malformed), so that no ``value or default``
   fallbacks leak into downstream code.

   - Enhanced and upload payloads are flat mappings whose keys may use
     snake_case or camelCase aliases (``totalAssets``, ``net_income``...).
   - Statement payloads are either flat mappings or accounting-report trees
     (``Rows/Row``, ``Header/ColData``, ``Summary/ColData``). Report rows are
     matched by their exact label (case-insensitive), e.g. 'Total Income'.

2. Snapshot assembly
   ------------------
   ``_assemble()`` converts field results into a frozen snapshot:
   - core monetary fields default to 0.0 and carry a 'missing:<field>' flag,
   - optional fields stay None when not supplied,
   - malformed values are coerced to 0.0 / None with 'malformed:<field>',
   - net income is taken as supplied, or derived as revenue - expenses with
     the 'net_income_derived' flag.

Nothing is estimated here: a missing current-assets split stays missing, and
the metrics engine decides how to estimate it.
"""

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from .parsing import parse_numeric_checked
from .payloads import (
    EnhancedFinancialsPayload,
    SnapshotPayload,
    StatementsPayload,
    UploadPayload,
)
from .snapshot import (
    CORE_MONETARY_FIELDS,
    COUNT_FIELDS,
    NET_INCOME_DERIVED,
    OPTIONAL_MONETARY_FIELDS,
    FinancialSnapshot,
    Provenance,
    malformed_flag,
    missing_flag,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldResult:
    """Outcome of extracting one field: a value, or why there is none."""

    name: str
    value: Optional[float] = None
    flag: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.value is not None


# Accepted keys for flat payloads, in lookup order.
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "revenue": ("revenue", "total_revenue", "totalrevenue", "total_income", "totalincome"),
    "expenses": (
        "expenses",
        "total_expenses",
        "totalexpenses",
        "operating_expenses",
        "operatingexpenses",
    ),
    "net_income": ("net_income", "netincome", "net_profit", "netprofit"),
    "assets": ("assets", "total_assets", "totalassets"),
    "liabilities": ("liabilities", "total_liabilities", "totalliabilities"),
    "current_assets": ("current_assets", "currentassets"),
    "current_liabilities": ("current_liabilities", "currentliabilities"),
    "inventory": ("inventory",),
    "cost_of_goods_sold": ("cost_of_goods_sold", "costofgoodssold", "cogs"),
    "cash": ("cash", "cash_and_equivalents", "cashandequivalents"),
    "cash_flow": (
        "cash_flow",
        "cashflow",
        "operating_cash_flow",
        "operatingcashflow",
    ),
    "customer_count": ("customer_count", "customercount", "customers"),
    "employee_count": ("employee_count", "employeecount", "employees"),
}

# Report row labels (lowercase) for accounting-report trees.
REPORT_LABELS: dict[str, tuple[str, ...]] = {
    "revenue": ("total income", "total revenue"),
    "expenses": ("total expenses", "total operating expenses"),
    "net_income": ("net income", "net profit", "net earnings"),
    "cost_of_goods_sold": ("total cost of goods sold", "total cogs"),
    "assets": ("total assets",),
    "liabilities": ("total liabilities",),
    "current_assets": ("total current assets",),
    "current_liabilities": ("total current liabilities",),
    "cash": ("total bank accounts", "cash and cash equivalents"),
    "inventory": ("total inventory", "inventory asset"),
    "cash_flow": (
        "net cash provided by operating activities",
        "net cash provided by (used in) operating activities",
        "net cash from operating activities",
    ),
}

PROFIT_LOSS_FIELDS: tuple[str, ...] = (
    "revenue",
    "expenses",
    "net_income",
    "cost_of_goods_sold",
    "cash_flow",
)
BALANCE_SHEET_FIELDS: tuple[str, ...] = (
    "assets",
    "liabilities",
    "current_assets",
    "current_liabilities",
    "inventory",
    "cash",
)

ALL_FIELDS: tuple[str, ...] = (
    CORE_MONETARY_FIELDS + OPTIONAL_MONETARY_FIELDS + COUNT_FIELDS
)


def _field_from_raw(name: str, raw: Any) -> FieldResult:
    parsed = parse_numeric_checked(raw)
    if parsed.status == "ok":
        return FieldResult(name=name, value=parsed.value)
    if parsed.status == "missing":
        return FieldResult(name=name, flag=missing_flag(name))
    return FieldResult(name=name, flag=malformed_flag(name))


def _extract_flat(
    data: Mapping[str, Any], names: Sequence[str]
) -> dict[str, FieldResult]:
    """Extract fields from a flat mapping using FIELD_ALIASES."""
    lowered = {str(k).strip().lower(): v for k, v in data.items()}
    fields: dict[str, FieldResult] = {}
    for name in names:
        for alias in FIELD_ALIASES.get(name, (name,)):
            if alias in lowered:
                fields[name] = _field_from_raw(name, lowered[alias])
                break
        else:
            fields[name] = FieldResult(name=name, flag=missing_flag(name))
    return fields


def _child_rows(node: Any) -> list[Any]:
    """Return the child rows of a report node ('Rows' may be a list or {'Row': [...]})."""
    if not isinstance(node, Mapping):
        return []
    rows = node.get("Rows")
    if isinstance(rows, Mapping):
        rows = rows.get("Row")
    if isinstance(rows, list):
        return rows
    return []


def _label_and_value(col_data: Any) -> Optional[tuple[str, Any]]:
    if not isinstance(col_data, list) or not col_data:
        return None
    first = col_data[0]
    label = str(first.get("value", "")) if isinstance(first, Mapping) else ""
    if len(col_data) < 2:
        return label, None
    cell = col_data[1]
    value = cell.get("value") if isinstance(cell, Mapping) else None
    return label, value


def _iter_report_lines(node: Any) -> Iterator[tuple[str, Any]]:
    """Yield (label, raw value) for every data and summary line of a report tree."""
    for row in _child_rows(node):
        if not isinstance(row, Mapping):
            continue
        line = _label_and_value(row.get("ColData"))
        if line is not None:
            yield line
        yield from _iter_report_lines(row)
        summary = row.get("Summary")
        if isinstance(summary, Mapping):
            line = _label_and_value(summary.get("ColData"))
            if line is not None:
                yield line


def is_report_tree(data: Any) -> bool:
    return isinstance(data, Mapping) and "Rows" in data


def _extract_report(
    report: Mapping[str, Any], names: Sequence[str]
) -> dict[str, FieldResult]:
    """Extract fields from an accounting-report tree, first matching label wins."""
    found: dict[str, Any] = {}
    label_to_field: dict[str, str] = {}
    for name in names:
        for label in REPORT_LABELS.get(name, ()):
            label_to_field[label] = name

    for label, raw in _iter_report_lines(report):
        name = label_to_field.get(label.strip().lower())
        if name is not None and name not in found:
            found[name] = raw

    fields: dict[str, FieldResult] = {}
    for name in names:
        if name in found:
            fields[name] = _field_from_raw(name, found[name])
        else:
            fields[name] = FieldResult(name=name, flag=missing_flag(name))
    return fields


def _extract_statement(
    statement: Optional[Mapping[str, Any]], names: Sequence[str]
) -> dict[str, FieldResult]:
    if statement is None:
        return {name: FieldResult(name=name, flag=missing_flag(name)) for name in names}
    if is_report_tree(statement):
        return _extract_report(statement, names)
    return _extract_flat(statement, names)


def extract_enhanced(payload: EnhancedFinancialsPayload) -> dict[str, FieldResult]:
    return _extract_flat(payload.data, ALL_FIELDS)


def extract_statements(payload: StatementsPayload) -> dict[str, FieldResult]:
    fields: dict[str, FieldResult] = {}
    fields.update(_extract_statement(payload.profit_loss, PROFIT_LOSS_FIELDS))
    fields.update(_extract_statement(payload.balance_sheet, BALANCE_SHEET_FIELDS))
    for name in COUNT_FIELDS:
        fields[name] = FieldResult(name=name, flag=missing_flag(name))
    return fields


def extract_upload(payload: UploadPayload) -> dict[str, FieldResult]:
    return _extract_flat(payload.data, ALL_FIELDS)


_EXTRACTORS = {
    EnhancedFinancialsPayload: extract_enhanced,
    StatementsPayload: extract_statements,
    UploadPayload: extract_upload,
}


def extract_fields(payload: SnapshotPayload) -> dict[str, FieldResult]:
    """Dispatch to the adapter registered for the payload variant."""
    extractor = _EXTRACTORS.get(type(payload))
    if extractor is None:
        raise TypeError(f"Unsupported payload type: {type(payload).__name__}")
    return extractor(payload)


def _assemble(
    fields: Mapping[str, FieldResult],
    *,
    tier: str,
    company_id: str,
    period_id: str,
    period_start: Optional[date],
    period_end: Optional[date],
    caveats: Sequence[str],
) -> FinancialSnapshot:
    flags: set[str] = set(caveats)
    values: dict[str, Optional[float]] = {}

    for name in CORE_MONETARY_FIELDS:
        result = fields.get(name, FieldResult(name=name, flag=missing_flag(name)))
        if name == "net_income" and not result.present:
            # Handled below: a missing net income is derived, not zero-filled.
            if result.flag and result.flag.startswith("malformed:"):
                flags.add(result.flag)
            continue
        if result.flag:
            flags.add(result.flag)
        values[name] = result.value if result.present else 0.0

    net_income = fields.get("net_income")
    if net_income is not None and net_income.present:
        values["net_income"] = net_income.value
    else:
        values["net_income"] = values["revenue"] - values["expenses"]
        flags.add(NET_INCOME_DERIVED)

    for name in OPTIONAL_MONETARY_FIELDS + COUNT_FIELDS:
        result = fields.get(name)
        if result is None:
            values[name] = None
            continue
        if result.flag and result.flag.startswith("malformed:"):
            flags.add(result.flag)
        values[name] = result.value

    provenance = Provenance(tier=tier, quality_flags=tuple(sorted(flags)))
    return FinancialSnapshot(
        company_id=company_id,
        period_id=period_id,
        provenance=provenance,
        period_start=period_start,
        period_end=period_end,
        **values,
    )


def normalize(
    payload: SnapshotPayload,
    *,
    company_id: str,
    period_id: Optional[str] = None,
) -> FinancialSnapshot:
    """
    Normalize a provider payload into a FinancialSnapshot.

    Args:
        payload: One of the tagged payload variants.
        company_id: Identifier of the company the payload belongs to.
        period_id: Optional explicit period identifier. Defaults to the
            payload period end date (ISO format) or 'current'.

    Returns:
        A frozen FinancialSnapshot whose provenance tier is the payload tier.

    Raises:
        TypeError: if the payload is not a known variant.
    """
    fields = extract_fields(payload)

    if period_id is None:
        period_id = payload.period_end.isoformat() if payload.period_end else "current"

    caveats = list(payload.caveats)
    if isinstance(payload, StatementsPayload):
        if payload.balance_sheet is None:
            caveats.append("statement_unavailable:balance_sheet")
        if payload.profit_loss is None:
            caveats.append("statement_unavailable:profit_loss")

    snapshot = _assemble(
        fields,
        tier=payload.tier,
        company_id=company_id,
        period_id=period_id,
        period_start=payload.period_start,
        period_end=payload.period_end,
        caveats=caveats,
    )
    logger.debug(
        "Normalized %s payload for %s (%d quality flags)",
        payload.tier,
        company_id,
        len(snapshot.provenance.quality_flags),
    )
    return snapshot
