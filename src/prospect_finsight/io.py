# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
File-based extraction for Prospect FinSight.

This module turns files on disk into provider payloads and file-backed
providers, so the whole resolution chain can run offline (CLI, tests,
manual uploads).

Supported inputs
----------------

1) JSON payloads (enhanced financials, balance sheet, profit and loss)
   --------------------------------------------------------------------
   Either a flat object of totals::

       {"revenue": "2,840,000", "totalExpenses": 2156000, ...}

   or an envelope carrying period bounds and caveats::

       {"data": {...}, "ratios": {...},
        "period_start": "2025-01-01", "period_end": "2025-12-31",
        "caveats": ["unaudited"]}

   Statement files may also be accounting-report trees (Rows / Row /
   Summary / ColData); they are passed to the normalizer untouched.

2) Upload files (CSV or JSON)
   ---------------------------
   CSV uploads are read with pandas in one of two layouts (column names are
   case-insensitive):

   - long format:  field, value           (one row per field)
   - wide format:  revenue, expenses, ... (a single row of values)

   Cell values are kept as strings; numeric parsing, currency symbols and
   accounting parentheses are handled by the normalizer.

3) History files (CSV)
   --------------------
   One row per period with ``period_id`` and optional ``period_start`` /
   ``period_end`` columns plus any snapshot fields. Each row is normalized
   as an upload payload to produce the snapshots of a TrendSeries.

Errors
------
Missing files raise FileNotFoundError (an OSError); malformed content raises
ValueError. Both are recorded as failed attempts when raised inside a
provider.
"""

import json
import os
from collections.abc import Mapping
from datetime import date
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd

from .normalizer import normalize
from .payloads import EnhancedFinancialsPayload, StatementsPayload, UploadPayload
from .resolver import CallableProvider
from .snapshot import FinancialSnapshot

PathLike = Union[str, "os.PathLike[str]"]

_ENVELOPE_KEYS = {"data", "period_start", "period_end", "caveats", "ratios"}
_PERIOD_COLUMNS = ("period_id", "period_start", "period_end")


def _parse_date(value: Any) -> Optional[date]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError as exc:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD.") from exc


def read_json_file(path: PathLike) -> Any:
    """Read a JSON document; FileNotFoundError / ValueError on failure."""
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"JSON file not found: {p}")
    return json.loads(p.read_text(encoding="utf-8"))


def _unwrap(document: Any, path: PathLike) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Return (data, envelope) for a flat or enveloped JSON payload."""
    if not isinstance(document, Mapping):
        raise ValueError(f"Expected a JSON object in {path}")
    if "data" in document and set(document) <= _ENVELOPE_KEYS:
        data = document["data"]
        if not isinstance(data, Mapping):
            raise ValueError(f"'data' must be an object in {path}")
        return data, document
    return document, {}


def _caveats(envelope: Mapping[str, Any]) -> tuple[str, ...]:
    raw = envelope.get("caveats") or ()
    if isinstance(raw, str):
        return (raw,)
    return tuple(str(c) for c in raw)


def load_enhanced_file(path: PathLike) -> EnhancedFinancialsPayload:
    """Build an enhanced-financials payload from a JSON file."""
    data, envelope = _unwrap(read_json_file(path), path)
    ratios = envelope.get("ratios") or {}
    return EnhancedFinancialsPayload(
        data=dict(data),
        ratios=dict(ratios) if isinstance(ratios, Mapping) else {},
        period_start=_parse_date(envelope.get("period_start")),
        period_end=_parse_date(envelope.get("period_end")),
        caveats=_caveats(envelope),
    )


def load_statements_files(
    balance_sheet_path: Optional[PathLike],
    profit_loss_path: Optional[PathLike],
) -> StatementsPayload:
    """
    Build a statements payload from up to two JSON files.

    Period bounds and caveats are taken from whichever file carries them,
    the profit and loss file first.
    """
    statements: dict[str, Optional[Mapping[str, Any]]] = {}
    envelopes: list[Mapping[str, Any]] = []
    for key, path in (("profit_loss", profit_loss_path), ("balance_sheet", balance_sheet_path)):
        if path is None:
            statements[key] = None
            continue
        data, envelope = _unwrap(read_json_file(path), path)
        statements[key] = dict(data)
        envelopes.append(envelope)

    def _first(key: str) -> Any:
        for envelope in envelopes:
            if envelope.get(key):
                return envelope[key]
        return None

    caveats: list[str] = []
    for envelope in envelopes:
        caveats.extend(_caveats(envelope))

    return StatementsPayload(
        balance_sheet=statements["balance_sheet"],
        profit_loss=statements["profit_loss"],
        period_start=_parse_date(_first("period_start")),
        period_end=_parse_date(_first("period_end")),
        caveats=tuple(caveats),
    )


def _read_csv_strings(path: PathLike) -> pd.DataFrame:
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"CSV file not found: {p}")
    df = pd.read_csv(p, dtype=str, keep_default_na=False)
    df.columns = [str(c).lower().strip() for c in df.columns]
    return df


def read_upload_table(path: PathLike) -> dict[str, str]:
    """
    Read an uploaded CSV into a flat {field -> raw value} mapping.

    Raises:
        ValueError: if the CSV matches neither the long nor the wide layout.
    """
    df = _read_csv_strings(path)
    cols = set(df.columns)

    if {"field", "value"}.issubset(cols):
        return {
            str(row["field"]).strip(): row["value"]
            for _, row in df.iterrows()
            if str(row["field"]).strip()
        }

    if len(df) == 1:
        return {col: df.iloc[0][col] for col in df.columns}

    raise ValueError(
        f"Invalid upload structure in {path}. Expected either:\n"
        "  - long format with 'field' and 'value' columns\n"
        "  - wide format with a single row of values"
    )


def load_upload_file(path: PathLike) -> UploadPayload:
    """Build an upload payload from a CSV or JSON file."""
    p = Path(path)
    if p.suffix.lower() == ".json":
        data, envelope = _unwrap(read_json_file(p), p)
        return UploadPayload(
            data=dict(data),
            source_name=p.name,
            period_start=_parse_date(envelope.get("period_start")),
            period_end=_parse_date(envelope.get("period_end")),
            caveats=_caveats(envelope),
        )

    data = read_upload_table(p)
    return UploadPayload(
        data={k: v for k, v in data.items() if k not in _PERIOD_COLUMNS},
        source_name=p.name,
        period_start=_parse_date(data.get("period_start")),
        period_end=_parse_date(data.get("period_end")),
    )


def read_history_file(path: PathLike, company_id: str) -> list[FinancialSnapshot]:
    """
    Read earlier periods of a company from a CSV file.

    Returns:
        One snapshot per row, in file order (TrendSeries re-orders them by
        period start when every row has one).
    """
    df = _read_csv_strings(path)
    if df.empty:
        return []

    snapshots: list[FinancialSnapshot] = []
    for position, row in df.iterrows():
        values = {k: v for k, v in row.items() if k not in _PERIOD_COLUMNS}
        payload = UploadPayload(
            data=values,
            source_name=Path(path).name,
            period_start=_parse_date(row.get("period_start")),
            period_end=_parse_date(row.get("period_end")),
        )
        period_id = str(row.get("period_id") or "").strip() or None
        if period_id is None and payload.period_end is None:
            period_id = f"history-{position}"
        snapshots.append(normalize(payload, company_id=company_id, period_id=period_id))
    return snapshots


def enhanced_file_provider(path: PathLike) -> CallableProvider:
    return CallableProvider("enhanced", lambda _company_id: load_enhanced_file(path))


def statements_file_provider(
    balance_sheet_path: Optional[PathLike],
    profit_loss_path: Optional[PathLike],
) -> CallableProvider:
    return CallableProvider(
        "statements",
        lambda _company_id: load_statements_files(balance_sheet_path, profit_loss_path),
    )


def upload_file_provider(path: PathLike) -> CallableProvider:
    return CallableProvider("upload", lambda _company_id: load_upload_file(path))
