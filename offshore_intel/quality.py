"""Per-record data-quality scoring.

A record starts at 100 and loses a fixed weight for every rule it breaks,
floored at 0. Weights come from configuration; a weight of 0 switches a rule
off. Scoring never raises, so a bad record can never stop a batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from offshore_intel.config import DEFAULT_CONFIG, QualityConfig

logger = logging.getLogger(__name__)

MAX_SCORE = 100

BUCKETS = (("excellent", 90), ("good", 75), ("fair", 50), ("poor", 0))


@dataclass(frozen=True)
class QualityInput:
    """The fields the rules look at. None means "not applicable to this record"."""

    when: datetime | None
    vessel: str
    location: str | None = None
    location_resolved: bool | None = None
    hours: float | None = None
    cost: float | None = None
    daily_rate: float | None = None
    parse_issues: tuple[str, ...] = ()


Rule = tuple[str, Callable[[QualityInput, QualityConfig], bool], Callable[[QualityInput, QualityConfig], str]]

# Evaluated in this order; the issue list follows it.
RULES: tuple[Rule, ...] = (
    ("missing_date", lambda r, c: r.when is None, lambda r, c: "Missing date"),
    ("missing_vessel", lambda r, c: not (r.vessel or "").strip(), lambda r, c: "Missing vessel"),
    (
        "missing_location",
        lambda r, c: r.location is not None and not r.location.strip(),
        lambda r, c: "Missing location",
    ),
    (
        "excessive_hours",
        lambda r, c: r.hours is not None and r.hours > c.max_hours,
        lambda r, c: f"Implausible duration: {r.hours:g}h exceeds {c.max_hours:g}h",
    ),
    (
        "negative_cost",
        lambda r, c: r.cost is not None and r.cost < 0,
        lambda r, c: f"Negative cost: {r.cost:.2f}",
    ),
    (
        "suspicious_rate",
        lambda r, c: r.daily_rate is not None
        and not (c.min_daily_rate <= r.daily_rate <= c.max_daily_rate),
        lambda r, c: f"Daily rate {r.daily_rate:.2f} outside {c.min_daily_rate:g}-{c.max_daily_rate:g}",
    ),
    (
        "date_out_of_range",
        lambda r, c: r.when is not None and not (c.min_year <= r.when.year <= c.max_year),
        lambda r, c: f"Date {r.when:%Y-%m-%d} outside {c.min_year}-{c.max_year}",
    ),
    (
        "unresolved_location",
        lambda r, c: bool(r.location and r.location.strip()) and r.location_resolved is False,
        lambda r, c: f"Unresolved location {r.location!r}",
    ),
)


class QualityScorer:
    def __init__(self, config: QualityConfig | None = None):
        self.config = config or DEFAULT_CONFIG.quality
        negative = [name for name, weight in self.config.weights.items() if weight < 0]
        if negative:
            raise ValueError(f"quality weights must be >= 0: {', '.join(sorted(negative))}")

    def violations(self, record: QualityInput) -> list[str]:
        """Names of the enabled rules this record breaks."""
        return [
            name
            for name, check, _ in RULES
            if self.config.weights.get(name, 0) > 0 and check(record, self.config)
        ]

    def score(self, record: QualityInput) -> tuple[int, tuple[str, ...]]:
        score = MAX_SCORE
        issues: list[str] = []
        for name, check, message in RULES:
            weight = self.config.weights.get(name, 0)
            if weight <= 0 or not check(record, self.config):
                continue
            score -= weight
            issues.append(message(record, self.config))
        issues.extend(record.parse_issues)
        return max(0, score), tuple(issues)


def bucket_for(score: int) -> str:
    for name, floor in BUCKETS:
        if score >= floor:
            return name
    return "poor"


def distribution(scores) -> dict[str, int]:
    """Count scores per bucket: excellent >= 90, good >= 75, fair >= 50, else poor."""
    counts = {name: 0 for name, _ in BUCKETS}
    for score in scores:
        counts[bucket_for(score)] += 1
    return counts
