"""Vessel cost calculator.

Hourly contract rates are a step function of vessel size, indexed by date
range. Support-class vessels (FSV by default) pay a fraction of the tier
rate. Date ranges are inclusive on both ends, so a rate change effective
2024-07-01 prices 2024-06-30 at the old rate and 2024-07-01 at the new one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime

from offshore_intel.classification import VesselClassifier, VesselProfile
from offshore_intel.config import RatePeriod, RateTableConfig, SizeTier, validate_rate_table
from offshore_intel.errors import MissingRateTable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VesselCost:
    hourly_rate: float
    daily_rate: float
    total: float
    rate_description: str
    size_tier: str
    size_ft: float


@dataclass
class CostSummary:
    total_cost: float = 0.0
    total_hours: float = 0.0
    event_count: int = 0
    by_department: dict[str, float] = field(default_factory=dict)
    by_activity: dict[str, float] = field(default_factory=dict)
    by_rate_period: dict[str, float] = field(default_factory=dict)
    by_vessel: dict[str, float] = field(default_factory=dict)

    @property
    def average_hourly_cost(self) -> float:
        return round(self.total_cost / self.total_hours, 2) if self.total_hours else 0.0


def _as_date(when) -> date:
    if isinstance(when, datetime):
        return when.date()
    return when


class VesselCostCalculator:
    def __init__(self, rate_table: RateTableConfig, vessels: VesselClassifier | None = None):
        self.rate_table = validate_rate_table(rate_table)
        self.vessels = vessels

    def tier_for(self, size_ft: float | None) -> SizeTier:
        size = size_ft if size_ft and size_ft > 0 else self.rate_table.default_size_ft
        for tier in self.rate_table.tiers:
            if tier.max_size_ft is None or size <= tier.max_size_ft:
                return tier
        raise MissingRateTable(f"no size tier covers a {size:g} ft vessel")

    def period_for(self, tier: SizeTier, when) -> RatePeriod:
        day = _as_date(when)
        for period in tier.periods:
            if period.covers(day):
                return period
        raise MissingRateTable(f"no contract rate for size tier {tier.name!r} on {day.isoformat()}")

    def hourly_rate(self, when, size_ft: float | None = None, vessel_type: str | None = None) -> tuple[float, RatePeriod, SizeTier]:
        tier = self.tier_for(size_ft)
        period = self.period_for(tier, when)
        rate = period.hourly_rate
        if vessel_type in self.rate_table.support_vessel_types:
            rate *= self.rate_table.support_multiplier
        return round(rate, 2), period, tier

    def default_daily_rate(self, when) -> float:
        """Daily rate of a default-size, full-rate vessel; used for ledger budgets."""
        rate, _, _ = self.hourly_rate(when)
        return round(rate * 24, 2)

    def _profile(self, vessel) -> VesselProfile:
        if isinstance(vessel, VesselProfile):
            return vessel
        if self.vessels is not None:
            return self.vessels.classify(vessel)
        return VesselProfile(str(vessel or ""), "Unassigned", "Unknown", None)

    def cost(self, vessel, when, hours: float) -> VesselCost:
        """Price `hours` of vessel time on `when`.

        `vessel` is a name or a VesselProfile. Raises MissingRateTable when no
        configured range covers the date.
        """
        profile = self._profile(vessel)
        hourly, period, tier = self.hourly_rate(when, profile.size_ft, profile.vessel_type)
        return VesselCost(
            hourly_rate=hourly,
            daily_rate=round(hourly * 24, 2),
            total=round(hours * hourly, 2),
            rate_description=period.description,
            size_tier=tier.name,
            size_ft=profile.size_ft or self.rate_table.default_size_ft,
        )


def _add(bucket: dict[str, float], key: str | None, amount: float) -> None:
    key = key or "Unassigned"
    bucket[key] = round(bucket.get(key, 0.0) + amount, 2)


def summarize_costs(events) -> CostSummary:
    """Total vessel cost with department, activity, rate-period and vessel breakdowns."""
    summary = CostSummary()
    for event in events:
        amount = event.vessel_cost_total or 0.0
        summary.event_count += 1
        summary.total_cost = round(summary.total_cost + amount, 2)
        summary.total_hours = round(summary.total_hours + (event.final_hours or 0.0), 2)
        _add(summary.by_department, event.department, amount)
        _add(summary.by_activity, event.activity_category, amount)
        _add(summary.by_rate_period, event.rate_description or "Unpriced", amount)
        _add(summary.by_vessel, event.record.vessel, amount)
    return summary


@dataclass(frozen=True)
class BudgetVsActual:
    lc_number: str
    month: date | None
    budgeted_days: float
    budgeted_cost: float
    actual_days: float
    actual_cost: float
    variance: float
    variance_pct: float


def budget_vs_actual(budget_lines: dict, events) -> list[BudgetVsActual]:
    """Ledger budget against priced event cost, per LC and month.

    `budget_lines` maps (code, month start) to (allocated days, budgeted
    cost), as AllocationTable.budget_lines does. Variance is actual minus
    budget; its percentage is 0 where nothing was budgeted. Events without
    an LC are left out.
    """
    actual: dict[tuple, list[float]] = {}
    for event in events:
        if not event.lc_number:
            continue
        when = event.record.event_date
        key = (event.lc_number, date(when.year, when.month, 1) if when else None)
        hours_cost = actual.setdefault(key, [0.0, 0.0])
        hours_cost[0] += event.final_hours or 0.0
        hours_cost[1] += event.vessel_cost_total or 0.0

    rows = []
    for key in sorted(set(budget_lines) | set(actual), key=lambda k: (k[0], k[1] or date.min)):
        budgeted_days, budgeted_cost = budget_lines.get(key, (0.0, 0.0))
        hours, cost = actual.get(key, (0.0, 0.0))
        variance = round(cost - budgeted_cost, 2)
        rows.append(
            BudgetVsActual(
                lc_number=key[0],
                month=key[1],
                budgeted_days=round(budgeted_days, 2),
                budgeted_cost=round(budgeted_cost, 2),
                actual_days=round(hours / 24, 2),
                actual_cost=round(cost, 2),
                variance=variance,
                variance_pct=round(variance / budgeted_cost * 100, 2) if budgeted_cost else 0.0,
            )
        )
    over = sum(1 for r in rows if r.variance > 0)
    logger.info("Budget vs actual: %d LC-months, %d over budget", len(rows), over)
    return rows
