# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Prospect FinSight
-----------------

A Python engine that pulls a prospect's accounting data and turns it into a
financial narrative for sales presentations.

Main capabilities:
- tolerant parsing of numeric fields from heterogeneous sources,
- resolution of a canonical financial snapshot from a prioritized chain of
  data providers (enhanced financials, basic statements, file upload),
- normalization of every provider payload into one snapshot model,
- derived ratios with an explicit measured / estimated confidence tag,
- a composite 0-100 health score built from ordered band tables,
- table-driven industry benchmark classification,
- period-over-period growth trends,
- rule-triggered insights and risk factors.

Prospect FinSight separates computation (pure stage functions), reference
data (TOML tables) and presentation (CLI / downstream dashboards).

Version: 0.2.0

Usage:
    python -m prospect_finsight.cli --help
"""

__all__ = [
    "parsing",
    "snapshot",
    "resolver",
    "normalizer",
    "metrics",
    "health",
    "benchmarks",
    "trends",
    "insights",
    "pipeline",
    "views",
    "io",
]

__version__ = "0.2.0"
