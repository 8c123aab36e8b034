"""Tests for the contract rate table and the vessel cost calculator."""

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from offshore_intel.classification import VesselClassifier, VesselProfile
from offshore_intel.config import DEFAULT_CONFIG, RatePeriod, RateTableConfig, SizeTier, validate_rate_table
from offshore_intel.errors import MissingRateTable
from offshore_intel.vessel_cost import VesselCostCalculator, budget_vs_actual, summarize_costs


def _table(periods=None, support_multiplier=0.8):
    periods = periods or (
        RatePeriod(date(2024, 1, 1), date(2024, 6, 30), 1000.0, "H1 2024"),
        RatePeriod(date(2024, 7, 1), date(2024, 12, 31), 1200.0, "H2 2024"),
    )
    return RateTableConfig(
        tiers=(
            SizeTier("small", 200.0, tuple(periods)),
            SizeTier("large", None, tuple(RatePeriod(p.start, p.end, p.hourly_rate * 2, p.description) for p in periods)),
        ),
        support_multiplier=support_multiplier,
        support_vessel_types=frozenset({"FSV"}),
        default_size_ft=150.0,
    )


def _profile(size_ft=180.0, vessel_type="OSV"):
    return VesselProfile("Test Vessel", "Test Co", vessel_type, size_ft)


class TestRateTableValidation:
    def test_default_table_is_valid(self):
        assert validate_rate_table(DEFAULT_CONFIG.rate_table) is DEFAULT_CONFIG.rate_table

    def test_gap_rejected(self):
        periods = (
            RatePeriod(date(2024, 1, 1), date(2024, 6, 29), 1000.0, "H1"),
            RatePeriod(date(2024, 7, 1), date(2024, 12, 31), 1200.0, "H2"),
        )
        with pytest.raises(MissingRateTable, match="gap"):
            validate_rate_table(_table(periods))

    def test_overlap_rejected(self):
        periods = (
            RatePeriod(date(2024, 1, 1), date(2024, 7, 1), 1000.0, "H1"),
            RatePeriod(date(2024, 7, 1), date(2024, 12, 31), 1200.0, "H2"),
        )
        with pytest.raises(MissingRateTable, match="overlaps"):
            validate_rate_table(_table(periods))

    def test_empty_table_rejected(self):
        with pytest.raises(MissingRateTable):
            validate_rate_table(RateTableConfig(tiers=()))


class TestCalculator:
    def test_boundary_last_day_of_old_rate(self):
        calc = VesselCostCalculator(_table())
        cost = calc.cost(_profile(), datetime(2024, 6, 30, 23, 0), 10.0)
        assert cost.hourly_rate == 1000.0
        assert cost.total == 10000.0
        assert cost.rate_description == "H1 2024"

    def test_boundary_first_day_of_new_rate(self):
        calc = VesselCostCalculator(_table())
        cost = calc.cost(_profile(), datetime(2024, 7, 1, 0, 30), 10.0)
        assert cost.hourly_rate == 1200.0
        assert cost.total == 12000.0

    def test_support_multiplier(self):
        calc = VesselCostCalculator(_table())
        cost = calc.cost(_profile(vessel_type="FSV"), date(2024, 3, 1), 1.0)
        assert cost.hourly_rate == 800.0
        assert cost.daily_rate == 19200.0

    def test_size_tier(self):
        calc = VesselCostCalculator(_table())
        assert calc.cost(_profile(size_ft=310.0), date(2024, 3, 1), 1.0).hourly_rate == 2000.0
        assert calc.tier_for(200.0).name == "small"

    def test_missing_size_uses_default(self):
        calc = VesselCostCalculator(_table())
        cost = calc.cost(_profile(size_ft=None), date(2024, 3, 1), 1.0)
        assert cost.size_ft == 150.0
        assert cost.size_tier == "small"

    def test_date_outside_table(self):
        calc = VesselCostCalculator(_table())
        with pytest.raises(MissingRateTable):
            calc.cost(_profile(), date(2025, 1, 1), 1.0)

    def test_vessel_name_goes_through_classifier(self):
        calc = VesselCostCalculator(
            DEFAULT_CONFIG.rate_table,
            VesselClassifier(DEFAULT_CONFIG.fleet, DEFAULT_CONFIG.vessel_patterns),
        )
        # Fast Giant: 194 ft FSV -> up to 200ft tier at 80%
        cost = calc.cost("Fast Giant", date(2024, 5, 1), 10.0)
        assert cost.hourly_rate == 640.0
        assert cost.total == 6400.0

    def test_default_daily_rate(self):
        calc = VesselCostCalculator(DEFAULT_CONFIG.rate_table)
        assert calc.default_daily_rate(date(2024, 5, 1)) == 24000.0
        assert calc.default_daily_rate(date(2025, 4, 1)) == 27480.0


def _enriched(cost, hours, department="Drilling", activity="Productive", vessel="A", rate="H1"):
    return SimpleNamespace(
        vessel_cost_total=cost,
        final_hours=hours,
        department=department,
        activity_category=activity,
        rate_description=rate,
        record=SimpleNamespace(vessel=vessel),
    )


def test_summarize_costs_breakdowns():
    summary = summarize_costs([
        _enriched(1000.0, 1.0),
        _enriched(3000.0, 3.0, department="Production", vessel="B"),
        _enriched(None, 2.0, activity="Non-Productive", rate=None),
    ])
    assert summary.total_cost == 4000.0
    assert summary.total_hours == 6.0
    assert summary.event_count == 3
    assert summary.by_department == {"Drilling": 1000.0, "Production": 3000.0}
    assert summary.by_rate_period["Unpriced"] == 0.0
    assert summary.by_vessel == {"A": 1000.0, "B": 3000.0}
    assert summary.average_hourly_cost == 666.67


def _charged(lc, when, hours, cost):
    return SimpleNamespace(
        lc_number=lc,
        final_hours=hours,
        vessel_cost_total=cost,
        record=SimpleNamespace(event_date=when),
    )


class TestBudgetVsActual:
    def test_variance_per_lc_and_month(self):
        lines = {
            ("4001", date(2024, 3, 1)): (2.0, 48000.0),
            ("4001", date(2024, 4, 1)): (1.0, 24000.0),
        }
        events = [
            _charged("4001", datetime(2024, 3, 10, 6), 36.0, 36000.0),
            _charged("4001", datetime(2024, 3, 20, 6), 24.0, 24000.0),
        ]
        march, april = budget_vs_actual(lines, events)
        assert (march.lc_number, march.month) == ("4001", date(2024, 3, 1))
        assert march.actual_days == 2.5
        assert march.actual_cost == 60000.0
        assert march.variance == 12000.0
        assert march.variance_pct == 25.0
        assert (april.actual_cost, april.variance, april.variance_pct) == (0.0, -24000.0, -100.0)

    def test_unbudgeted_spend(self):
        [row] = budget_vs_actual({}, [_charged("9361", datetime(2024, 5, 2), 12.0, 12000.0)])
        assert row.budgeted_cost == 0.0
        assert row.variance == 12000.0
        assert row.variance_pct == 0.0

    def test_events_without_lc_left_out(self):
        assert budget_vs_actual({}, [_charged("", datetime(2024, 5, 2), 12.0, 12000.0)]) == []
