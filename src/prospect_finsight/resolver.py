# Prospect FinSight - Financial narrative engine for sales enablement
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Source resolution for Prospect FinSight.

The resolver walks an ordered chain of data providers and returns the first
snapshot that carries usable data:

    enhanced financials  ->  basic statements  ->  file upload  ->  nothing

Rules
-----
- Providers are invoked strictly in the order given; the first success
  short-circuits the chain.
- A provider succeeds when it returns a payload whose normalized snapshot
  has at least one non-zero monetary field. An all-zero payload is a soft
  failure and the next provider is tried.
- A provider may report failure by returning ``ProviderFailure`` or by
  raising; both are recorded as failed attempts with a reason.
- There are no retries within a tier. Timeouts, retries and backoff against
  the live accounting system belong to the provider itself.
- Every provider is closed after its attempt, whatever the outcome.

The outcome is always a value: ``Resolution`` on success, ``DataUnavailable``
when every tier failed. Neither is raised.
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Optional, Union

from .normalizer import normalize
from .payloads import SnapshotPayload
from .snapshot import TIER_PRIORITY, Attempt, FinancialSnapshot

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Raised by provider implementations when upstream data cannot be fetched."""


@dataclass(frozen=True)
class ProviderFailure:
    """Explicit failure value a provider may return instead of raising."""

    reason: str


FetchResult = Union[SnapshotPayload, ProviderFailure, None]


class Provider:
    """
    A data source for one tier of the resolution chain.

    Subclasses implement ``fetch()``; ``close()`` releases any resource held
    for the attempt (HTTP session, open file...). The resolver always calls
    ``close()`` after ``fetch()``, including when ``fetch()`` raised.
    """

    tier: str = ""

    def fetch(self, company_id: str) -> FetchResult:
        raise NotImplementedError

    def close(self) -> None:
        return None


class CallableProvider(Provider):
    """Adapt a plain callable ``(company_id) -> payload`` into a Provider."""

    def __init__(
        self,
        tier: str,
        func: Callable[[str], FetchResult],
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        self.tier = tier
        self._func = func
        self._on_close = on_close

    def fetch(self, company_id: str) -> FetchResult:
        return self._func(company_id)

    def close(self) -> None:
        if self._on_close is not None:
            self._on_close()

    def __repr__(self) -> str:
        return f"CallableProvider(tier={self.tier!r})"


@dataclass(frozen=True)
class Resolution:
    """Successful resolution: the snapshot and how it was obtained."""

    company_id: str
    tier: str
    snapshot: FinancialSnapshot
    attempts: tuple[Attempt, ...]

    @property
    def caveats(self) -> tuple[str, ...]:
        return self.snapshot.provenance.quality_flags


@dataclass(frozen=True)
class DataUnavailable:
    """No provider tier yielded usable data."""

    company_id: str
    attempts: tuple[Attempt, ...]

    @property
    def attempted_tiers(self) -> tuple[str, ...]:
        return tuple(a.tier for a in self.attempts)

    @property
    def reasons(self) -> dict[str, str]:
        return {a.tier: a.reason for a in self.attempts}


ResolutionResult = Union[Resolution, DataUnavailable]


def order_by_priority(providers: Iterable[Provider]) -> list[Provider]:
    """
    Sort providers by canonical tier priority.

    Unknown tiers are kept after the known ones, in their original order.
    """
    indexed = list(enumerate(providers))

    def _key(item: tuple[int, Provider]) -> tuple[int, int]:
        position, provider = item
        if provider.tier in TIER_PRIORITY:
            return TIER_PRIORITY.index(provider.tier), position
        return len(TIER_PRIORITY), position

    return [p for _, p in sorted(indexed, key=_key)]


def _attempt(
    provider: Provider,
    company_id: str,
    period_id: Optional[str],
) -> tuple[Optional[FinancialSnapshot], str]:
    """Run one provider; return (snapshot or None, failure reason)."""
    try:
        result = provider.fetch(company_id)
    except Exception as exc:
        logger.warning(
            "%s provider raised %s for %s: %s",
            provider.tier,
            type(exc).__name__,
            company_id,
            exc,
        )
        return None, f"error: {exc}"
    finally:
        provider.close()

    if result is None:
        return None, "no payload"
    if isinstance(result, ProviderFailure):
        return None, result.reason

    try:
        snapshot = normalize(result, company_id=company_id, period_id=period_id)
    except TypeError as exc:
        return None, f"unsupported payload: {exc}"
    if not snapshot.has_data:
        return None, "all monetary fields are zero"
    return snapshot, ""


def resolve(
    company_id: str,
    providers: Sequence[Provider],
    *,
    period_id: Optional[str] = None,
) -> ResolutionResult:
    """
    Resolve a FinancialSnapshot for ``company_id`` from ``providers``.

    Args:
        company_id: Identifier of the company to resolve.
        providers: Providers in priority order (see ``order_by_priority``).
        period_id: Optional period identifier forwarded to the normalizer.

    Returns:
        Resolution when a provider yielded usable data, otherwise
        DataUnavailable listing every attempted tier and its failure reason.
    """
    attempts: list[Attempt] = []

    for provider in providers:
        logger.debug("Trying %s provider for %s", provider.tier, company_id)
        snapshot, reason = _attempt(provider, company_id, period_id)

        if snapshot is None:
            logger.debug(
                "%s provider failed for %s: %s", provider.tier, company_id, reason
            )
            attempts.append(Attempt(tier=provider.tier, succeeded=False, reason=reason))
            continue

        attempts.append(Attempt(tier=provider.tier, succeeded=True))
        recorded = tuple(attempts)
        provenance = snapshot.provenance.with_attempts(recorded)
        snapshot = replace(snapshot, provenance=provenance)

        logger.info("Resolved %s from %s tier", company_id, snapshot.provenance.tier)
        if provenance.is_partial:
            logger.warning(
                "Partial data for %s: %s",
                company_id,
                ", ".join(provenance.quality_flags),
            )
        return Resolution(
            company_id=company_id,
            tier=snapshot.provenance.tier,
            snapshot=snapshot,
            attempts=recorded,
        )

    logger.warning(
        "No provider yielded data for %s (tried: %s)",
        company_id,
        ", ".join(a.tier for a in attempts) or "none",
    )
    return DataUnavailable(company_id=company_id, attempts=tuple(attempts))

