# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Versioned estimation policy.

All constants used to estimate a missing sub-component are read from a
single TOML table (``reference/estimation.toml`` by default) so the policy is
auditable and identical across every metric that relies on it.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .config import REFERENCE_DIR, load_toml

DEFAULT_ESTIMATION_FILE = REFERENCE_DIR / "estimation.toml"

_REQUIRED_CONSTANTS = (
    "cogs_share_of_expenses",
    "quick_ratio_factor",
    "cash_flow_to_net_income",
)


@dataclass(frozen=True)
class EstimationPolicy:
    """
    Constants applied when a snapshot does not report a sub-component.

    Attributes:
        version: Version tag of the estimation table.
        cogs_share_of_expenses: Share of total expenses assumed to be COGS.
        quick_ratio_factor: Multiplier applied to the current ratio when no
            quick-asset breakdown is available.
        cash_flow_to_net_income: Multiplier applied to net income when no
            cash-flow figure is available.
    """

    version: str
    cogs_share_of_expenses: float
    quick_ratio_factor: float
    cash_flow_to_net_income: float


def load_estimation_policy(path: Optional[Path] = None) -> EstimationPolicy:
    """
    Load the estimation policy from a TOML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if a constant is missing or not numeric.
    """
    rules_file = path or DEFAULT_ESTIMATION_FILE
    data = load_toml(rules_file)

    constants = data.get("constants") or {}
    if not isinstance(constants, Mapping):
        raise ValueError(f"[constants] must be a table in {rules_file}")

    values: dict[str, float] = {}
    for key in _REQUIRED_CONSTANTS:
        if key not in constants:
            raise ValueError(f"Missing estimation constant {key!r} in {rules_file}")
        try:
            values[key] = float(constants[key])
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Estimation constant {key!r} must be numeric in {rules_file}"
            ) from exc

    return EstimationPolicy(version=str(data.get("version", "unversioned")), **values)
