"""Voyage resolver.

Voyage numbers are reused from month to month, so a voyage is keyed by
(vessel, voyage number, year, month) and never by the number alone. Visits
are stable-sorted by vessel, voyage number and timestamp, partitioned into
index lists per key, and each partition is walked start -> transit -> end
to build the ordered stop list.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime

from offshore_intel.locations import LocationResolver
from offshore_intel.parsing import MONTH_NAMES
from offshore_intel.sources.parser import ManifestLine, VoyageEvent, VoyageSummary

logger = logging.getLogger(__name__)

VoyageKey = tuple[str, str, int | None, int | None]


@dataclass(frozen=True)
class VoyageVisit:
    """One location call taken from an event or a manifest."""

    vessel: str
    voyage_number: str
    location: str
    when: datetime | None
    until: datetime | None = None
    source: str = "voyage_events"
    row_index: int = 0


@dataclass(frozen=True)
class Voyage:
    unique_voyage_id: str
    standardized_voyage_id: str
    vessel: str
    voyage_number: str
    year: int | None
    month_number: int | None
    origin_port: str | None
    main_destination: str | None
    location_list: tuple[str, ...]
    stop_count: int
    start: datetime | None
    end: datetime | None
    duration_hours: float | None
    voyage_purpose: str
    voyage_pattern: str
    includes_production: bool
    includes_drilling: bool
    record_count: int
    mission: str = ""


@dataclass(frozen=True)
class VoyageSegment:
    unique_voyage_id: str
    segment_number: int
    origin: str
    destination: str
    segment_type: str
    voyage_pattern: str
    department: str
    is_offshore: bool


def month_abbreviation(month_number: int | None) -> str:
    if not month_number:
        return "XX"
    return MONTH_NAMES[month_number][:3]


def _compact_vessel(vessel: str | None) -> str:
    return (vessel or "Unknown").replace(" ", "") or "Unknown"


def unique_voyage_id(year: int | None, month_number: int | None, vessel: str | None, voyage_number: str | None) -> str:
    """'2024_Jan_ExampleI_100'."""
    year_part = str(year) if year else "0000"
    number_part = voyage_number or "000"
    return f"{year_part}_{month_abbreviation(month_number)}_{_compact_vessel(vessel)}_{number_part}"


def standardized_voyage_id(year: int | None, month_number: int | None, vessel: str | None, voyage_number: str | None) -> str:
    """'2024-01-ExampleI-100', zero-padded."""
    year_part = str(year) if year else "0000"
    month_part = f"{month_number:02d}" if month_number else "00"
    number = voyage_number or ""
    number_part = number.zfill(3) if number.isdigit() else (number or "000")
    return f"{year_part}-{month_part}-{_compact_vessel(vessel)}-{number_part}"


def parse_location_list(text: str | None) -> list[str]:
    """Split 'Fourchon -> Atlantis -> Fourchon' into its stops."""
    if not text:
        return []
    return [part.strip() for part in str(text).split("->") if part.strip()]


def collapse_duplicates(locations) -> list[str]:
    """Drop consecutive repeats: A, A, B, A -> A, B, A."""
    collapsed: list[str] = []
    for location in locations:
        if not collapsed or collapsed[-1].lower() != location.lower():
            collapsed.append(location)
    return collapsed


def visits_from_events(events: list[VoyageEvent]) -> list[VoyageVisit]:
    return [
        VoyageVisit(
            vessel=e.vessel,
            voyage_number=e.voyage_number,
            location=e.location,
            when=e.event_date,
            until=e.end_date,
            source="voyage_events",
            row_index=e.row_index,
        )
        for e in events
    ]


def visits_from_manifests(manifests: list[ManifestLine]) -> list[VoyageVisit]:
    """Each manifest is a call at its origin followed by its offshore location."""
    visits = []
    for m in manifests:
        for location in (m.origin, m.offshore_location):
            visits.append(
                VoyageVisit(
                    vessel=m.vessel,
                    voyage_number=m.voyage_number,
                    location=location,
                    when=m.manifest_date,
                    source="manifests",
                    row_index=m.row_index,
                )
            )
    return visits


class _VoyageWalk:
    """Start -> Transit -> End over one partition's visits."""

    def __init__(self):
        self.state = "start"
        self.origin: str | None = None
        self.stops: list[str] = []

    def visit(self, location: str) -> None:
        if not location:
            return
        if self.state == "start":
            self.origin = location
            self.stops.append(location)
            self.state = "transit"
        elif self.stops[-1].lower() != location.lower():
            self.stops.append(location)

    def finish(self) -> list[str]:
        self.state = "end"
        return list(self.stops)


class VoyageResolver:
    def __init__(self, resolver: LocationResolver):
        self.resolver = resolver

    # -- classification helpers -------------------------------------------

    def _main_destination(self, locations: list[str]) -> str | None:
        for location in locations[1:]:
            if not self.resolver.is_base(location):
                return location
        return locations[1] if len(locations) > 1 else None

    def _pattern(self, locations: list[str]) -> str:
        if not locations:
            return "Unknown"
        if len(locations) == 1:
            return "Single Stop"
        bases = [self.resolver.is_base(loc) for loc in locations]
        if not any(bases):
            return "Offshore Only"
        if bases[0] and bases[-1]:
            return "Round Trip"
        return "One Way"

    @staticmethod
    def _purpose(includes_production: bool, includes_drilling: bool) -> str:
        if includes_production and includes_drilling:
            return "Mixed"
        if includes_production:
            return "Production"
        if includes_drilling:
            return "Drilling"
        return "Other"

    def _build(
        self,
        vessel: str,
        voyage_number: str,
        year: int | None,
        month_number: int | None,
        locations: list[str],
        start: datetime | None,
        end: datetime | None,
        record_count: int,
        mission: str = "",
    ) -> Voyage:
        includes_production = any(self.resolver.is_production(loc) for loc in locations)
        includes_drilling = any(self.resolver.is_drilling(loc) for loc in locations)
        duration = None
        if start is not None and end is not None:
            duration = round((end - start).total_seconds() / 3600, 2)
        return Voyage(
            unique_voyage_id=unique_voyage_id(year, month_number, vessel, voyage_number),
            standardized_voyage_id=standardized_voyage_id(year, month_number, vessel, voyage_number),
            vessel=vessel,
            voyage_number=voyage_number,
            year=year,
            month_number=month_number,
            origin_port=locations[0] if locations else None,
            main_destination=self._main_destination(locations),
            location_list=tuple(locations),
            stop_count=len(locations),
            start=start,
            end=end,
            duration_hours=duration,
            voyage_purpose=self._purpose(includes_production, includes_drilling),
            voyage_pattern=self._pattern(locations),
            includes_production=includes_production,
            includes_drilling=includes_drilling,
            record_count=record_count,
            mission=mission,
        )

    # -- resolution -------------------------------------------------------

    def resolve(self, visits: list[VoyageVisit]) -> list[Voyage]:
        """Group visits into voyages; one Voyage per (vessel, number, year, month)."""
        usable = [v for v in visits if v.vessel and v.voyage_number]
        skipped = len(visits) - len(usable)
        if skipped:
            logger.warning("Skipped %d visits without vessel or voyage number", skipped)

        months: dict[tuple[str, str], set[tuple[int, int]]] = {}
        for visit in usable:
            if visit.when is not None:
                months.setdefault((visit.vessel, visit.voyage_number), set()).add((visit.when.year, visit.when.month))

        ordered = sorted(
            usable,
            key=lambda v: (v.vessel, v.voyage_number, v.when is None, v.when or datetime.min),
        )
        groups: dict[VoyageKey, list[int]] = {}
        unplaced = 0
        for idx, visit in enumerate(ordered):
            if visit.when is not None:
                year, month = visit.when.year, visit.when.month
            else:
                # undated calls join the voyage number's only dated month
                candidates = months.get((visit.vessel, visit.voyage_number), set())
                if len(candidates) != 1:
                    unplaced += 1
                    continue
                (year, month), = candidates
            groups.setdefault((visit.vessel, visit.voyage_number, year, month), []).append(idx)
        if unplaced:
            logger.warning("Left %d undated visits out of voyage grouping; no single month to place them in", unplaced)

        voyages = []
        for (vessel, number, year, month), indices in groups.items():
            walk = _VoyageWalk()
            times: list[datetime] = []
            records = set()
            for idx in indices:
                visit = ordered[idx]
                walk.visit(visit.location)
                records.add((visit.source, visit.row_index))
                times.extend(t for t in (visit.when, visit.until) if t is not None)
            voyages.append(
                self._build(
                    vessel,
                    number,
                    year,
                    month,
                    walk.finish(),
                    min(times) if times else None,
                    max(times) if times else None,
                    len(records),
                )
            )
        logger.info("Resolved %d voyages from %d visits", len(voyages), len(usable))
        return voyages

    def resolve_summaries(self, summaries: list[VoyageSummary]) -> list[Voyage]:
        """Voyages straight from the voyage-list export; first row wins per id."""
        voyages: dict[str, Voyage] = {}
        for summary in summaries:
            if not summary.vessel or not summary.voyage_number:
                continue
            voyage = self._build(
                summary.vessel,
                summary.voyage_number,
                summary.year,
                summary.month_number,
                collapse_duplicates(parse_location_list(summary.locations)),
                summary.start_date,
                summary.end_date,
                1,
                mission=summary.mission,
            )
            if voyage.unique_voyage_id in voyages:
                logger.warning("Duplicate voyage-list row %d for %s", summary.row_index, voyage.unique_voyage_id)
                continue
            voyages[voyage.unique_voyage_id] = voyage
        return list(voyages.values())

    def merge(self, derived: list[Voyage], listed: list[Voyage]) -> list[Voyage]:
        """One voyage per unique id across both sources.

        The voyage-list row wins; the event/manifest voyage only fills its
        missing times and adds to its record count. Derived order is kept and
        list-only voyages follow.
        """
        by_id = {v.unique_voyage_id: v for v in listed}
        merged = []
        seen = set()
        for voyage in derived:
            seen.add(voyage.unique_voyage_id)
            winner = by_id.get(voyage.unique_voyage_id)
            if winner is None:
                merged.append(voyage)
                continue
            start = winner.start or voyage.start
            end = winner.end or voyage.end
            duration = winner.duration_hours
            if duration is None and start is not None and end is not None:
                duration = round((end - start).total_seconds() / 3600, 2)
            merged.append(
                replace(
                    winner,
                    start=start,
                    end=end,
                    duration_hours=duration,
                    record_count=winner.record_count + voyage.record_count,
                )
            )
        merged.extend(v for v in listed if v.unique_voyage_id not in seen)
        return merged

    def _segment_department(self, destination: str) -> str:
        facility_type = self.resolver.resolve(destination).facility_type
        if facility_type in ("Drilling", "Production", "Integrated", "Logistics"):
            return facility_type
        return "Other"

    def segments(self, voyage: Voyage) -> list[VoyageSegment]:
        locations = list(voyage.location_list)
        if len(locations) < 2:
            return []
        last = len(locations) - 2
        segments = []
        for i in range(len(locations) - 1):
            origin, destination = locations[i], locations[i + 1]
            origin_base = self.resolver.is_base(origin)
            destination_base = self.resolver.is_base(destination)
            if origin_base and not destination_base:
                pattern = "Outbound"
            elif destination_base and not origin_base:
                pattern = "Return"
            elif not origin_base and not destination_base:
                pattern = "Offshore Transfer"
            else:
                pattern = "Round Trip"
            if i == 0:
                segment_type = "Outbound"
            elif i == last:
                segment_type = "Return"
            else:
                segment_type = "Intermediate"
            segments.append(
                VoyageSegment(
                    unique_voyage_id=voyage.unique_voyage_id,
                    segment_number=i + 1,
                    origin=origin,
                    destination=destination,
                    segment_type=segment_type,
                    voyage_pattern=pattern,
                    department=self._segment_department(destination),
                    is_offshore=not destination_base,
                )
            )
        return segments
