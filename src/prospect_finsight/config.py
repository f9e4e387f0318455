# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Prospect FinSight.

This module is responsible for:
- loading TOML files (application config and reference tables),
- loading the main application configuration,
- exposing the typed AppConfig dataclass used by the pipeline and CLI.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

# Reference tables shipped with the package.
REFERENCE_DIR = Path(__file__).resolve().parent / "reference"

DEFAULT_CONFIG_FILE = "prospect_finsight_config.toml"


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Prospect FinSight.

    This aggregates:
    - the analysis options (industry category, AI insight splicing),
    - the reference tables used by the metrics, benchmark and insight
      stages (None means the table shipped with the package),
    - display and logging options.
    """

    industry: str
    currency: str
    ai_insights_enabled: bool
    estimation_file: Optional[Path]
    benchmarks_file: Optional[Path]
    insight_rules_file: Optional[Path]
    decimals: int
    log_level: str


def load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"TOML file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse TOML file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = raw.get(name) or {}
    if not isinstance(section, Mapping):
        return {}
    return section


def default_app_config() -> AppConfig:
    """Configuration used when no config file is available."""
    return AppConfig(
        industry="default",
        currency="USD",
        ai_insights_enabled=True,
        estimation_file=None,
        benchmarks_file=None,
        insight_rules_file=None,
        decimals=2,
        log_level="WARNING",
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Prospect FinSight configuration from a TOML file.

    Expected sections in the TOML file (all optional)
    -------------------------------------------------
    [analysis]
        industry            -> industry category for benchmarks
        currency            -> single presentation currency
        ai_insights_enabled -> splice AI collaborator insights into output

    [reference]
        estimation_file, benchmarks_file, insight_rules_file
        Override the reference tables shipped with the package. Paths are
        resolved relative to the directory of the config file.

    [display]
        decimals -> rounding used by the tabular views

    [logging]
        level -> root logging level used by the CLI

    Parameters
    ----------
    config_path :
        Path to the TOML configuration file. Defaults to
        'prospect_finsight_config.toml' in the current directory; when that
        default file does not exist, built-in defaults are returned.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        if not config_file.is_file():
            return default_app_config()
    else:
        config_file = Path(config_path).resolve()

    raw = load_toml(config_file)
    base_dir = config_file.parent
    defaults = default_app_config()

    analysis = _section(raw, "analysis")
    reference = _section(raw, "reference")
    display = _section(raw, "display")
    logging_section = _section(raw, "logging")

    def _resolve_optional(rel: Any) -> Optional[Path]:
        if not rel:
            return None
        return (base_dir / str(rel)).resolve()

    try:
        decimals = int(display.get("decimals", defaults.decimals))
    except (TypeError, ValueError):
        decimals = defaults.decimals

    return AppConfig(
        industry=str(analysis.get("industry") or defaults.industry).strip().lower(),
        currency=str(analysis.get("currency") or defaults.currency),
        ai_insights_enabled=bool(
            analysis.get("ai_insights_enabled", defaults.ai_insights_enabled)
        ),
        estimation_file=_resolve_optional(reference.get("estimation_file")),
        benchmarks_file=_resolve_optional(reference.get("benchmarks_file")),
        insight_rules_file=_resolve_optional(reference.get("insight_rules_file")),
        decimals=decimals,
        log_level=str(logging_section.get("level") or defaults.log_level).upper(),
    )
