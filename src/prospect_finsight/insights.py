# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Insight and risk generation.

This module turns the outputs of the earlier stages (snapshot, metrics,
health score, benchmarks, trends) into qualitative insights and risk
factors, driven by an ordered rule table (``reference/insight_rules.toml``).

How rules are evaluated
-----------------------
1. A flat variable context is built once per analysis:
   - every metric value (metrics whose guard tripped are left out),
   - health_score,
   - the snapshot's monetary fields and equity,
   - <field>_growth for each tracked field with a defined latest growth rate,
   - poor_benchmarks / excellent_benchmarks counts.

2. Each rule's ``when`` expression is evaluated against the context. A rule
   referencing a variable that is not in the context does not fire.

3. A firing rule produces exactly one Insight or RiskFactor, with its
   financial impact evaluated from the rule's ``financial_impact``
   expression and its description rendered from the context.

Output is ordered by rule declaration, then by financial impact descending.
Free-text insights from the AI collaborator are appended after every rule
insight with type 'ai' and confidence 'low'.

A snapshot without any non-zero monetary field yields no output at all.
"""

import logging
import string
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .benchmarks import BenchmarkEntry
from .config import REFERENCE_DIR, load_toml
from .expressions import (
    UnknownVariableError,
    evaluate_amount,
    evaluate_condition,
    names_in,
    parse_expression,
)
from .health import HealthScore
from .metrics import MetricSet
from .snapshot import FinancialSnapshot
from .trends import TRACKED_FIELDS, TrendMetrics

logger = logging.getLogger(__name__)

DEFAULT_INSIGHT_RULES_FILE = REFERENCE_DIR / "insight_rules.toml"

RULE_KINDS: tuple[str, ...] = ("insight", "risk")
INSIGHT_TYPES: tuple[str, ...] = (
    "opportunity",
    "concern",
    "trend",
    "recommendation",
    "warning",
    "growth",
)
IMPACT_LEVELS: tuple[str, ...] = ("high", "medium", "low")
SEVERITIES: tuple[str, ...] = ("critical", "high", "medium", "low")

AI_INSIGHT_TYPE = "ai"


@dataclass(frozen=True)
class InsightRule:
    """One row of the rule table."""

    id: str
    kind: str
    category: str
    title: str
    description: str
    when: str
    financial_impact: str = "0"
    type: str = ""
    impact: str = "medium"
    severity: str = "medium"
    probability: float = 0.0
    metric: str = ""
    threshold: Optional[float] = None
    actions: tuple[str, ...] = ()

    def variables(self) -> set[str]:
        """Names the rule needs in the context to fire."""
        needed = names_in(self.when) | names_in(self.financial_impact)
        for _, field_name, _, _ in string.Formatter().parse(self.description):
            if field_name:
                needed.add(field_name)
        return needed


@dataclass(frozen=True)
class Insight:
    id: str
    rule_id: str
    category: str
    type: str
    title: str
    description: str
    impact: str
    financial_impact_estimate: float
    recommended_actions: tuple[str, ...]
    metric: str
    threshold: Optional[float]
    confidence: str


@dataclass(frozen=True)
class RiskFactor:
    id: str
    rule_id: str
    category: str
    title: str
    description: str
    severity: str
    probability: float
    financial_impact_estimate: float
    recommended_actions: tuple[str, ...]
    metric: str
    threshold: Optional[float]
    confidence: str


def _rule_from_raw(raw: Mapping[str, Any], source: Path) -> InsightRule:
    try:
        rule_id = str(raw["id"])
        kind = str(raw["kind"])
        when = str(raw["when"])
        title = str(raw["title"])
    except KeyError as exc:
        raise ValueError(f"Rule missing required key {exc} in {source}") from exc

    if kind not in RULE_KINDS:
        raise ValueError(f"Rule {rule_id!r}: unknown kind {kind!r}")

    rule_type = str(raw.get("type", "recommendation" if kind == "insight" else ""))
    if kind == "insight" and rule_type not in INSIGHT_TYPES:
        raise ValueError(f"Rule {rule_id!r}: unknown insight type {rule_type!r}")

    impact = str(raw.get("impact", "medium"))
    if impact not in IMPACT_LEVELS:
        raise ValueError(f"Rule {rule_id!r}: unknown impact {impact!r}")

    severity = str(raw.get("severity", "medium"))
    if severity not in SEVERITIES:
        raise ValueError(f"Rule {rule_id!r}: unknown severity {severity!r}")

    threshold = raw.get("threshold")
    financial_impact = str(raw.get("financial_impact") or "0")

    # Fail at load time rather than silently never firing.
    parse_expression(when)
    parse_expression(financial_impact)

    actions = raw.get("actions") or ()
    if isinstance(actions, str):
        actions = (actions,)

    return InsightRule(
        id=rule_id,
        kind=kind,
        category=str(raw.get("category", "")),
        title=title,
        description=str(raw.get("description", "")),
        when=when,
        financial_impact=financial_impact,
        type=rule_type,
        impact=impact,
        severity=severity,
        probability=float(raw.get("probability", 0.0)),
        metric=str(raw.get("metric", "")),
        threshold=float(threshold) if threshold is not None else None,
        actions=tuple(str(a) for a in actions),
    )


def load_insight_rules(path: Optional[Path] = None) -> list[InsightRule]:
    """
    Load the ordered rule table from a TOML file.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if a rule is malformed or ids are duplicated.
    """
    rules_file = path or DEFAULT_INSIGHT_RULES_FILE
    data = load_toml(rules_file)

    raw_rules = data.get("rules") or []
    if not isinstance(raw_rules, list):
        raise ValueError(f"'rules' must be an array of tables in {rules_file}")

    rules: list[InsightRule] = []
    seen: set[str] = set()
    for raw in raw_rules:
        if not isinstance(raw, Mapping):
            raise ValueError(f"Invalid rule entry in {rules_file}")
        rule = _rule_from_raw(raw, rules_file)
        if rule.id in seen:
            raise ValueError(f"Duplicate rule id {rule.id!r} in {rules_file}")
        seen.add(rule.id)
        rules.append(rule)
    return rules


def build_context(
    snapshot: FinancialSnapshot,
    metrics: MetricSet,
    score: HealthScore,
    benchmarks: Sequence[BenchmarkEntry] = (),
    trends: Optional[TrendMetrics] = None,
) -> dict[str, float]:
    """Flat variable mapping the rule expressions are evaluated against."""
    context: dict[str, float] = dict(snapshot.monetary_values())
    context["equity"] = snapshot.equity
    for name in ("customer_count", "employee_count"):
        value = getattr(snapshot, name)
        if value is not None:
            context[name] = float(value)

    for key, metric in metrics.items():
        if not metric.guarded:
            context[key] = metric.value

    context["health_score"] = float(score.total)

    if trends is not None:
        for name in TRACKED_FIELDS:
            rate = trends.latest_value(name)
            if rate is not None:
                context[f"{name}_growth"] = rate

    context["poor_benchmarks"] = float(
        sum(1 for b in benchmarks if b.performance_tier == "poor")
    )
    context["excellent_benchmarks"] = float(
        sum(1 for b in benchmarks if b.performance_tier == "excellent")
    )
    return context


def _confidence(rule: InsightRule, metrics: MetricSet) -> str:
    estimated = set(metrics.estimated_keys())
    return "medium" if rule.variables() & estimated else "high"


def _fire(
    index: int,
    rule: InsightRule,
    snapshot: FinancialSnapshot,
    metrics: MetricSet,
    context: Mapping[str, float],
) -> Optional[tuple[int, float, Any]]:
    missing = rule.variables() - set(context)
    if missing:
        logger.debug("Rule %s skipped, unavailable: %s", rule.id, sorted(missing))
        return None

    try:
        if not evaluate_condition(rule.when, context):
            return None
        amount = evaluate_amount(rule.financial_impact, context)
    except (UnknownVariableError, ZeroDivisionError) as exc:
        logger.debug("Rule %s skipped: %r", rule.id, exc)
        return None

    common = dict(
        id=f"{snapshot.company_id}:{rule.id}",
        rule_id=rule.id,
        category=rule.category,
        title=rule.title,
        description=rule.description.format_map(context),
        financial_impact_estimate=amount,
        recommended_actions=rule.actions,
        metric=rule.metric,
        threshold=rule.threshold,
        confidence=_confidence(rule, metrics),
    )
    if rule.kind == "risk":
        record: Any = RiskFactor(
            severity=rule.severity, probability=rule.probability, **common
        )
    else:
        record = Insight(type=rule.type, impact=rule.impact, **common)
    return index, amount, record


def ai_insight(company_id: str, position: int, text: str) -> Insight:
    """Wrap a free-text AI collaborator insight."""
    return Insight(
        id=f"{company_id}:ai:{position}",
        rule_id="",
        category="ai",
        type=AI_INSIGHT_TYPE,
        title=text.strip().splitlines()[0][:80] if text.strip() else "",
        description=text,
        impact="low",
        financial_impact_estimate=0.0,
        recommended_actions=(),
        metric="",
        threshold=None,
        confidence="low",
    )


def generate(
    snapshot: FinancialSnapshot,
    metrics: MetricSet,
    score: HealthScore,
    benchmarks: Sequence[BenchmarkEntry] = (),
    trends: Optional[TrendMetrics] = None,
    ai_insights: Sequence[str] = (),
    rules: Optional[Sequence[InsightRule]] = None,
) -> tuple[list[Insight], list[RiskFactor]]:
    """
    Run the rule table and return (insights, risks).

    Args:
        snapshot: The resolved snapshot.
        metrics: Metrics derived from ``snapshot``.
        score: Health score of ``snapshot``.
        benchmarks: Benchmark classifications.
        trends: Growth metrics when a history is available.
        ai_insights: Free-text insights appended verbatim after rule insights.
        rules: Rule table. Defaults to the table shipped with the package.

    Returns:
        Insights and risk factors, each ordered by rule declaration then by
        financial impact descending.
    """
    if not snapshot.has_data:
        return [], []

    if rules is None:
        rules = load_insight_rules()

    context = build_context(snapshot, metrics, score, benchmarks, trends)

    fired: list[tuple[int, float, Any]] = []
    for index, rule in enumerate(rules):
        outcome = _fire(index, rule, snapshot, metrics, context)
        if outcome is not None:
            fired.append(outcome)

    fired.sort(key=lambda item: (item[0], -item[1]))
    insights = [record for _, _, record in fired if isinstance(record, Insight)]
    risks = [record for _, _, record in fired if isinstance(record, RiskFactor)]

    for position, text in enumerate(ai_insights):
        if text and text.strip():
            insights.append(ai_insight(snapshot.company_id, position, text))

    logger.debug(
        "%s: %d insights, %d risks", snapshot.company_id, len(insights), len(risks)
    )
    return insights, risks
