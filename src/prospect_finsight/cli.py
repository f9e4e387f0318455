# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Prospect FinSight.

The CLI is intentionally thin: it builds file-backed providers from the
command-line arguments, runs the analysis pipeline and renders the outputs.
It implements no financial logic itself.


High-level pipeline
-------------------

1) Load the main TOML configuration (prospect_finsight_config.toml by
   default, built-in defaults when absent) and configure logging.

2) Build one provider per supplied source, in canonical priority order:

   - ``--enhanced FILE``         enhanced financials (JSON)
   - ``--balance-sheet FILE`` /
     ``--profit-loss FILE``      basic statements (JSON, flat or report tree)
   - ``--upload FILE``           manual upload (CSV or JSON)

3) Optionally read earlier periods from ``--history FILE`` (CSV) to compute
   growth trends.

4) Run the pipeline and render the result:

   - ``--format table`` (default): console tables (pandas)
   - ``--format json``: the full analysis as JSON on stdout


Exit codes
----------
0   analysis completed
2   no provider yielded usable data (or invalid arguments)


Examples
--------

    python -m prospect_finsight.cli --company acme --upload data/acme.csv

    python -m prospect_finsight.cli --company acme \\
        --balance-sheet bs.json --profit-loss pl.json \\
        --history history.csv --industry technology --format json
"""

import argparse
import json
import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Optional

from . import __version__
from .config import AppConfig, load_app_config
from .io import (
    enhanced_file_provider,
    read_history_file,
    statements_file_provider,
    upload_file_provider,
)
from .pipeline import AnalysisResult, analysis_to_dict, analyze
from .resolver import DataUnavailable, Provider
from .snapshot import FinancialSnapshot
from .trends import trend_frame
from .views import (
    attempts_to_dataframe,
    benchmarks_to_dataframe,
    health_to_dataframe,
    insights_to_dataframe,
    metrics_to_dataframe,
    risks_to_dataframe,
    snapshot_to_dataframe,
)

EXIT_DATA_UNAVAILABLE = 2


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m prospect_finsight.cli",
        description=(
            "Prospect FinSight - Financial narrative engine. Resolves a "
            "company's financial snapshot from the supplied sources, derives "
            "ratios, a health score, industry benchmarks, trends, insights "
            "and risks."
        ),
    )

    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of prospect_finsight and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the main TOML configuration file. If omitted, "
            "'prospect_finsight_config.toml' in the current directory is used "
            "when present."
        ),
    )
    ap.add_argument(
        "--company",
        dest="company_id",
        default="company",
        help="Identifier of the company being analysed.",
    )

    # Sources, one per provider tier
    ap.add_argument(
        "--enhanced",
        dest="enhanced_path",
        metavar="JSON_PATH",
        help="Enhanced financials payload (JSON).",
    )
    ap.add_argument(
        "--balance-sheet",
        dest="balance_sheet_path",
        metavar="JSON_PATH",
        help="Balance sheet payload (JSON, flat or accounting-report tree).",
    )
    ap.add_argument(
        "--profit-loss",
        dest="profit_loss_path",
        metavar="JSON_PATH",
        help="Profit and loss payload (JSON, flat or accounting-report tree).",
    )
    ap.add_argument(
        "--upload",
        dest="upload_path",
        metavar="PATH",
        help="Manually uploaded financials (CSV or JSON).",
    )
    ap.add_argument(
        "--history",
        dest="history_path",
        metavar="CSV_PATH",
        help="Earlier periods of the company (CSV), used for growth trends.",
    )
    ap.add_argument(
        "--ai-insight",
        dest="ai_insights",
        action="append",
        default=[],
        metavar="TEXT",
        help="Free-text insight to append to the output (repeatable).",
    )

    # Analysis and display options
    ap.add_argument(
        "--industry",
        help="Industry category for benchmarks. Overrides analysis.industry.",
    )
    ap.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json"],
        default="table",
        help="'table' prints console tables, 'json' prints the full analysis.",
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override logging.level from the configuration file.",
    )

    return ap


def _build_providers(args: argparse.Namespace) -> list[Provider]:
    providers: list[Provider] = []
    if args.enhanced_path:
        providers.append(enhanced_file_provider(args.enhanced_path))
    if args.balance_sheet_path or args.profit_loss_path:
        providers.append(
            statements_file_provider(args.balance_sheet_path, args.profit_loss_path)
        )
    if args.upload_path:
        providers.append(upload_file_provider(args.upload_path))
    return providers


def _print_table(title: str, df) -> None:
    print(f"\n=== {title} ===")
    if df.empty:
        print("(none)")
    else:
        print(df.to_string(index=False))


def _render_tables(
    result: AnalysisResult,
    config: AppConfig,
    history: Sequence[FinancialSnapshot],
) -> None:
    decimals = config.decimals
    snapshot = result.snapshot

    print(
        f"{result.company_id} | period {snapshot.period_id} | "
        f"source tier: {result.tier} | industry: {result.industry} | "
        f"currency: {config.currency}"
    )
    print(
        f"Health score: {result.health_score.total}/100 "
        f"({result.health_score.category}) | "
        f"data quality: {result.data_quality_score}%"
    )
    if result.is_partial:
        print("Partial data: " + ", ".join(snapshot.provenance.quality_flags))

    _print_table("Snapshot", snapshot_to_dataframe(snapshot, decimals))
    _print_table("Metrics", metrics_to_dataframe(result.metrics, decimals))
    _print_table("Health score breakdown", health_to_dataframe(result.health_score))
    _print_table("Industry benchmarks", benchmarks_to_dataframe(result.benchmarks, decimals))
    if result.trends is not None:
        frame = trend_frame([*history, snapshot])
        _print_table("Trends", frame[frame["period_id"] == snapshot.period_id])
    _print_table("Insights", insights_to_dataframe(result.insights, decimals))
    _print_table("Risks", risks_to_dataframe(result.risks, decimals))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point for the Prospect FinSight CLI.

    Parses command-line arguments, loads the configuration, builds the
    file-backed providers, runs the analysis and renders it.

    Returns the process exit code.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"prospect_finsight version {__version__}")
        return 0

    config = load_app_config(args.config_path)

    logging.basicConfig(
        level=args.log_level or config.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )

    providers = _build_providers(args)
    if not providers:
        parser.error(
            "No data source given. Use --enhanced, --balance-sheet/--profit-loss "
            "or --upload."
        )

    history: list[FinancialSnapshot] = []
    if args.history_path:
        history_file = Path(args.history_path)
        if not history_file.is_file():
            parser.error(f"History file not found: {history_file}")
        history = read_history_file(history_file, args.company_id)

    try:
        result = analyze(
            args.company_id,
            providers,
            industry=args.industry,
            history=history,
            ai_insights=args.ai_insights,
            config=config,
        )
    except ValueError as exc:
        # History that cannot be ordered with the resolved period.
        parser.error(str(exc))

    if args.output_format == "json":
        print(json.dumps(analysis_to_dict(result), indent=2))
    elif isinstance(result, DataUnavailable):
        print(f"No usable financial data for {result.company_id}.")
        print(attempts_to_dataframe(result.attempts).to_string(index=False))
    else:
        _render_tables(result, config, history)

    if isinstance(result, DataUnavailable):
        return EXIT_DATA_UNAVAILABLE
    return 0


if __name__ == "__main__":
    sys.exit(main())
