"""Tests for voyage grouping, identifiers and segments."""

import logging
from datetime import datetime

import pytest

from offshore_intel.locations import default_resolver
from offshore_intel.sources.parser import ManifestLine, VoyageSummary
from offshore_intel.voyages import (
    VoyageResolver,
    VoyageVisit,
    collapse_duplicates,
    parse_location_list,
    standardized_voyage_id,
    unique_voyage_id,
    visits_from_manifests,
)


def _visit(location, when, vessel="Example I", number="100", row_index=0):
    return VoyageVisit(vessel=vessel, voyage_number=number, location=location, when=when, row_index=row_index)


def _manifest(when, origin="Fourchon", destination="Atlantis", vessel="Example I", number="100", row_index=0):
    return ManifestLine(
        vessel=vessel,
        voyage_number=number,
        manifest_number=f"M-{row_index}",
        manifest_date=when,
        origin=origin,
        offshore_location=destination,
        cost_code="",
        deck_tons=1.0,
        rt_tons=0.0,
        lifts=1.0,
        wet_bulk_bbls=0.0,
        wet_bulk_gals=0.0,
        deck_sqft=0.0,
        remarks="",
        row_index=row_index,
    )


@pytest.fixture(scope="module")
def voyages():
    return VoyageResolver(default_resolver())


class TestIdentifiers:
    def test_unique_id(self):
        assert unique_voyage_id(2024, 1, "Example I", "100") == "2024_Jan_ExampleI_100"

    def test_unique_id_defaults(self):
        assert unique_voyage_id(None, None, None, None) == "0000_XX_Unknown_000"

    def test_standardized_id(self):
        assert standardized_voyage_id(2024, 3, "Fast Giant", "7") == "2024-03-FastGiant-007"


class TestLocationLists:
    def test_parse(self):
        assert parse_location_list("Fourchon -> Atlantis ->  Fourchon") == ["Fourchon", "Atlantis", "Fourchon"]
        assert parse_location_list(None) == []

    def test_collapse_consecutive_only(self):
        assert collapse_duplicates(["A", "a", "B", "A"]) == ["A", "B", "A"]


class TestResolve:
    def test_same_number_different_months_are_two_voyages(self, voyages):
        manifests = [
            _manifest(datetime(2024, 1, 10), row_index=0),
            _manifest(datetime(2024, 2, 12), row_index=1),
        ]
        result = voyages.resolve(visits_from_manifests(manifests))
        assert [v.unique_voyage_id for v in result] == ["2024_Jan_ExampleI_100", "2024_Feb_ExampleI_100"]
        assert all(v.record_count == 1 for v in result)

    def test_round_trip(self, voyages):
        [voyage] = voyages.resolve([
            _visit("Fourchon", datetime(2024, 5, 1, 6)),
            _visit("Atlantis", datetime(2024, 5, 1, 20), row_index=1),
            _visit("Mad Dog", datetime(2024, 5, 2, 8), row_index=2),
            _visit("Port Fourchon", datetime(2024, 5, 3, 6), row_index=3),
        ])
        assert voyage.location_list == ("Fourchon", "Atlantis", "Mad Dog", "Port Fourchon")
        assert voyage.origin_port == "Fourchon"
        assert voyage.main_destination == "Atlantis"
        assert voyage.stop_count == 4
        assert voyage.voyage_pattern == "Round Trip"
        assert voyage.voyage_purpose == "Mixed"
        assert voyage.includes_drilling and voyage.includes_production
        assert voyage.duration_hours == 48.0

    def test_visits_sorted_by_time(self, voyages):
        [voyage] = voyages.resolve([
            _visit("Atlantis", datetime(2024, 5, 1, 20)),
            _visit("Fourchon", datetime(2024, 5, 1, 6), row_index=1),
        ])
        assert voyage.location_list == ("Fourchon", "Atlantis")
        assert voyage.voyage_pattern == "One Way"
        assert voyage.voyage_purpose == "Production"

    def test_repeated_stop_collapsed(self, voyages):
        [voyage] = voyages.resolve([
            _visit("Ocean BlackLion", datetime(2024, 5, 1, 6)),
            _visit("Ocean BlackLion", datetime(2024, 5, 1, 9), row_index=1),
        ])
        assert voyage.location_list == ("Ocean BlackLion",)
        assert voyage.voyage_pattern == "Single Stop"
        assert voyage.voyage_purpose == "Drilling"
        assert voyage.main_destination is None

    def test_vessels_kept_apart(self, voyages):
        result = voyages.resolve([
            _visit("Fourchon", datetime(2024, 5, 1), vessel="A"),
            _visit("Fourchon", datetime(2024, 5, 1), vessel="B"),
        ])
        assert len(result) == 2

    def test_visits_without_number_skipped(self, voyages):
        assert voyages.resolve([_visit("Fourchon", datetime(2024, 5, 1), number="")]) == []

    def test_offshore_only(self, voyages):
        [voyage] = voyages.resolve([
            _visit("Atlantis", datetime(2024, 5, 1)),
            _visit("Na Kika", datetime(2024, 5, 2), row_index=1),
        ])
        assert voyage.voyage_pattern == "Offshore Only"

    def test_deterministic(self, voyages):
        visits = [
            _visit("Fourchon", datetime(2024, 5, 1, 6)),
            _visit("Atlantis", datetime(2024, 5, 1, 20), row_index=1),
            _visit("Fourchon", datetime(2024, 6, 1, 6), row_index=2),
        ]
        assert voyages.resolve(visits) == voyages.resolve(list(reversed(visits)))

    def test_undated_visit_joins_its_only_month(self, voyages):
        [voyage] = voyages.resolve([
            _visit("Fourchon", datetime(2024, 5, 1)),
            _visit("Atlantis", None, row_index=1),
        ])
        assert voyage.unique_voyage_id == "2024_May_ExampleI_100"
        assert voyage.location_list == ("Fourchon", "Atlantis")
        assert voyage.record_count == 2

    def test_undated_visits_never_merge_across_months(self, voyages, caplog):
        visits = [
            _visit("Fourchon", datetime(2024, 5, 1)),
            _visit("Fourchon", datetime(2024, 6, 1), row_index=1),
            _visit("Atlantis", None, row_index=2),
            _visit("Na Kika", None, row_index=3),
        ]
        with caplog.at_level(logging.WARNING, logger="offshore_intel.voyages"):
            result = voyages.resolve(visits)
        assert [v.unique_voyage_id for v in result] == ["2024_May_ExampleI_100", "2024_Jun_ExampleI_100"]
        assert all(v.location_list == ("Fourchon",) for v in result)
        assert "2 undated visits" in caplog.text


class TestSummaries:
    def _summary(self, locations, row_index=0):
        return VoyageSummary(
            vessel="Example I",
            voyage_number="12",
            year=2024,
            month="Feb",
            month_number=2,
            start_date=datetime(2024, 2, 1),
            end_date=datetime(2024, 2, 3),
            mission="Supply",
            route_type="",
            locations=locations,
            row_index=row_index,
        )

    def test_voyage_from_summary(self, voyages):
        [voyage] = voyages.resolve_summaries([self._summary("Fourchon -> Atlantis -> Atlantis -> Fourchon")])
        assert voyage.unique_voyage_id == "2024_Feb_ExampleI_12"
        assert voyage.location_list == ("Fourchon", "Atlantis", "Fourchon")
        assert voyage.mission == "Supply"
        assert voyage.duration_hours == 48.0

    def test_first_row_wins(self, voyages):
        result = voyages.resolve_summaries([
            self._summary("Fourchon -> Atlantis"),
            self._summary("Fourchon -> Na Kika", row_index=1),
        ])
        assert len(result) == 1
        assert result[0].main_destination == "Atlantis"

    def test_segments(self, voyages):
        [voyage] = voyages.resolve_summaries([self._summary("Fourchon -> Atlantis -> Mad Dog -> Fourchon")])
        segments = voyages.segments(voyage)
        assert [(s.segment_type, s.voyage_pattern, s.department) for s in segments] == [
            ("Outbound", "Outbound", "Production"),
            ("Intermediate", "Offshore Transfer", "Integrated"),
            ("Return", "Return", "Logistics"),
        ]
        assert [s.is_offshore for s in segments] == [True, True, False]
        assert voyages.segments(voyages.resolve_summaries([self._summary("Fourchon")])[0]) == []


class TestMerge:
    def _listed(self, voyages, start=datetime(2024, 3, 1), end=None):
        return voyages.resolve_summaries([
            VoyageSummary(
                vessel="Example I",
                voyage_number="100",
                year=2024,
                month="Mar",
                month_number=3,
                start_date=start,
                end_date=end,
                mission="Supply",
                route_type="",
                locations="Fourchon -> Mad Dog -> Fourchon",
                row_index=0,
            )
        ])

    def _derived(self, voyages):
        return voyages.resolve([
            _visit("Fourchon", datetime(2024, 3, 10, 6)),
            _visit("Atlantis", datetime(2024, 3, 11, 6), row_index=1),
        ])

    def test_list_row_wins(self, voyages):
        [voyage] = voyages.merge(self._derived(voyages), self._listed(voyages))
        assert voyage.unique_voyage_id == "2024_Mar_ExampleI_100"
        assert voyage.location_list == ("Fourchon", "Mad Dog", "Fourchon")
        assert voyage.mission == "Supply"
        assert voyage.record_count == 3

    def test_missing_end_filled_from_derived(self, voyages):
        [voyage] = voyages.merge(self._derived(voyages), self._listed(voyages))
        assert voyage.start == datetime(2024, 3, 1)
        assert voyage.end == datetime(2024, 3, 11, 6)
        assert voyage.duration_hours == 246.0

    def test_unmatched_voyages_kept(self, voyages):
        derived = voyages.resolve([_visit("Fourchon", datetime(2024, 4, 2))])
        merged = voyages.merge(derived, self._listed(voyages))
        assert [v.unique_voyage_id for v in merged] == ["2024_Apr_ExampleI_100", "2024_Mar_ExampleI_100"]
