"""Turn raw export rows into typed, immutable records.

One parser per source type. Cardinality is preserved: every input row
becomes exactly one record, and cells that cannot be parsed degrade to a
default value plus an entry in ``parse_issues``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

from offshore_intel.errors import ParseFailure
from offshore_intel.parsing import (
    is_blank,
    parse_date,
    parse_month,
    parse_number,
    parse_text,
    parse_year,
)
from offshore_intel.sources.contracts import (
    SOURCE_TYPES,
    ParseMetrics,
    missing_expected_fields,
    new_parse_metrics,
    resolve_columns,
    validate_rows,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoyageEvent:
    vessel: str
    voyage_number: str
    mission: str
    parent_event: str
    event: str
    location: str
    port_type: str
    remarks: str
    event_date: datetime | None
    end_date: datetime | None
    hours: float
    cost_dedicated_to: str
    row_index: int
    parse_issues: tuple[str, ...] = ()


@dataclass(frozen=True)
class ManifestLine:
    vessel: str
    voyage_number: str
    manifest_number: str
    manifest_date: datetime | None
    origin: str
    offshore_location: str
    cost_code: str
    deck_tons: float
    rt_tons: float
    lifts: float
    wet_bulk_bbls: float
    wet_bulk_gals: float
    deck_sqft: float
    remarks: str
    row_index: int
    parse_issues: tuple[str, ...] = ()


@dataclass(frozen=True)
class CostAllocationEntry:
    lc_number: str
    location_reference: str
    rig_location: str
    description: str
    cost_element: str
    project_type: str
    department: str
    month_year: date | None
    month_year_raw: str
    allocated_days: float
    daily_rate: float
    total_cost: float
    row_index: int
    parse_issues: tuple[str, ...] = ()


@dataclass(frozen=True)
class VoyageSummary:
    vessel: str
    voyage_number: str
    year: int | None
    month: str
    month_number: int | None
    start_date: datetime | None
    end_date: datetime | None
    mission: str
    route_type: str
    locations: str
    row_index: int
    parse_issues: tuple[str, ...] = ()


@dataclass(frozen=True)
class BulkTransfer:
    vessel: str
    port_type: str
    start_date: datetime | None
    action: str
    quantity: float
    unit: str
    bulk_type: str
    bulk_description: str
    at_port: str
    destination_port: str
    remarks: str
    tank: str
    row_index: int
    parse_issues: tuple[str, ...] = ()


class _RowReader:
    """Reads canonical fields out of one row using the resolved header map."""

    def __init__(self, row: dict, columns: dict[str, str], metrics: ParseMetrics):
        self.row = row
        self.columns = columns
        self.metrics = metrics
        self.issues: list[str] = []

    def raw(self, field: str):
        header = self.columns.get(field)
        if header is None:
            return None
        return self.row.get(header)

    def text(self, field: str) -> str:
        return parse_text(self.raw(field))

    def number(self, field: str) -> float:
        value = self.raw(field)
        number = parse_number(value)
        if number == 0.0 and not is_blank(value) and parse_text(value) not in {"0", "0.0", "-"}:
            self.issues.append(f"Non-numeric {field} {parse_text(value)!r} treated as 0")
        return number

    def date(self, field: str) -> datetime | None:
        value = self.raw(field)
        if is_blank(value):
            return None
        parsed = parse_date(value)
        if parsed is None:
            self.issues.append(f"Unparseable {field} {parse_text(value)!r}")
            self.metrics["date_issue_count"] += 1
        return parsed


def _prepare(source: str, rows) -> tuple[list[dict], dict[str, str], ParseMetrics]:
    try:
        rows = validate_rows(source, rows)
    except ValueError as exc:
        raise ParseFailure(str(exc)) from exc

    headers: list = []
    seen: set = set()
    for row in rows:
        for header in row.keys():
            if header not in seen:
                seen.add(header)
                headers.append(header)
    columns = resolve_columns(source, headers)

    metrics = new_parse_metrics()
    metrics["row_count"] = len(rows)
    if rows:
        missing = missing_expected_fields(source, columns)
        metrics["unmatched_field_count"] = len(missing)
        if missing:
            logger.warning("%s: no column found for %s", source, ", ".join(missing))
    return rows, columns, metrics


def parse_voyage_events(rows) -> tuple[list[VoyageEvent], ParseMetrics]:
    rows, columns, metrics = _prepare("voyage_events", rows)
    records = []
    for idx, row in enumerate(rows):
        reader = _RowReader(row, columns, metrics)
        start = reader.date("event_date")
        end = reader.date("end_date")
        hours = reader.number("hours")
        if is_blank(reader.raw("hours")) and start and end and end >= start:
            hours = round((end - start).total_seconds() / 3600, 2)
        records.append(
            VoyageEvent(
                vessel=reader.text("vessel"),
                voyage_number=reader.text("voyage_number"),
                mission=reader.text("mission"),
                parent_event=reader.text("parent_event"),
                event=reader.text("event"),
                location=reader.text("location"),
                port_type=reader.text("port_type").lower(),
                remarks=reader.text("remarks"),
                event_date=start,
                end_date=end,
                hours=hours,
                cost_dedicated_to=reader.text("cost_dedicated_to"),
                row_index=idx,
                parse_issues=tuple(reader.issues),
            )
        )
    return records, metrics


def parse_manifests(rows) -> tuple[list[ManifestLine], ParseMetrics]:
    rows, columns, metrics = _prepare("manifests", rows)
    records = []
    for idx, row in enumerate(rows):
        reader = _RowReader(row, columns, metrics)
        records.append(
            ManifestLine(
                vessel=reader.text("vessel"),
                voyage_number=reader.text("voyage_number"),
                manifest_number=reader.text("manifest_number"),
                manifest_date=reader.date("manifest_date"),
                origin=reader.text("origin"),
                offshore_location=reader.text("offshore_location"),
                cost_code=reader.text("cost_code"),
                deck_tons=reader.number("deck_tons"),
                rt_tons=reader.number("rt_tons"),
                lifts=reader.number("lifts"),
                wet_bulk_bbls=reader.number("wet_bulk_bbls"),
                wet_bulk_gals=reader.number("wet_bulk_gals"),
                deck_sqft=reader.number("deck_sqft"),
                remarks=reader.text("remarks"),
                row_index=idx,
                parse_issues=tuple(reader.issues),
            )
        )
    return records, metrics


def parse_cost_allocations(rows) -> tuple[list[CostAllocationEntry], ParseMetrics]:
    rows, columns, metrics = _prepare("cost_allocations", rows)
    records = []
    for idx, row in enumerate(rows):
        reader = _RowReader(row, columns, metrics)
        period = reader.date("month_year")
        records.append(
            CostAllocationEntry(
                lc_number=reader.text("lc_number"),
                location_reference=reader.text("location_reference"),
                rig_location=reader.text("rig_location"),
                description=reader.text("description"),
                cost_element=reader.text("cost_element"),
                project_type=reader.text("project_type"),
                department=reader.text("department"),
                month_year=period.date().replace(day=1) if period else None,
                month_year_raw=reader.text("month_year"),
                allocated_days=reader.number("allocated_days"),
                daily_rate=reader.number("daily_rate"),
                total_cost=reader.number("total_cost"),
                row_index=idx,
                parse_issues=tuple(reader.issues),
            )
        )
    return records, metrics


def parse_voyage_summaries(rows) -> tuple[list[VoyageSummary], ParseMetrics]:
    rows, columns, metrics = _prepare("voyage_summaries", rows)
    records = []
    for idx, row in enumerate(rows):
        reader = _RowReader(row, columns, metrics)
        start = reader.date("start_date")
        year = parse_year(reader.raw("year"))
        month_number = parse_month(reader.raw("month"))
        if year is None and start is not None:
            year = start.year
        if month_number is None and start is not None:
            month_number = start.month
        records.append(
            VoyageSummary(
                vessel=reader.text("vessel"),
                voyage_number=reader.text("voyage_number"),
                year=year,
                month=reader.text("month"),
                month_number=month_number,
                start_date=start,
                end_date=reader.date("end_date"),
                mission=reader.text("mission"),
                route_type=reader.text("route_type"),
                locations=reader.text("locations"),
                row_index=idx,
                parse_issues=tuple(reader.issues),
            )
        )
    return records, metrics


def parse_bulk_transfers(rows) -> tuple[list[BulkTransfer], ParseMetrics]:
    rows, columns, metrics = _prepare("bulk_transfers", rows)
    records = []
    for idx, row in enumerate(rows):
        reader = _RowReader(row, columns, metrics)
        records.append(
            BulkTransfer(
                vessel=reader.text("vessel"),
                port_type=reader.text("port_type").lower(),
                start_date=reader.date("start_date"),
                action=reader.text("action"),
                quantity=reader.number("quantity"),
                unit=reader.text("unit").lower(),
                bulk_type=reader.text("bulk_type"),
                bulk_description=reader.text("bulk_description"),
                at_port=reader.text("at_port"),
                destination_port=reader.text("destination_port"),
                remarks=reader.text("remarks"),
                tank=reader.text("tank"),
                row_index=idx,
                parse_issues=tuple(reader.issues),
            )
        )
    return records, metrics


PARSERS = {
    "voyage_events": parse_voyage_events,
    "manifests": parse_manifests,
    "cost_allocations": parse_cost_allocations,
    "voyage_summaries": parse_voyage_summaries,
    "bulk_transfers": parse_bulk_transfers,
}


def parse_batch(sources: dict[str, list[dict] | None]) -> tuple[dict[str, list], dict[str, ParseMetrics]]:
    """Parse every source of a batch.

    Raises ParseFailure when the batch holds no rows at all or when any source
    carries a row that is not a mapping.
    """
    unknown = set(sources).difference(SOURCE_TYPES)
    if unknown:
        raise ParseFailure(f"unknown source types: {', '.join(sorted(unknown))}")

    total_rows = sum(len(rows or ()) for rows in sources.values())
    if total_rows == 0:
        raise ParseFailure("batch contains no rows in any source")

    records: dict[str, list] = {}
    metrics: dict[str, ParseMetrics] = {}
    for source in SOURCE_TYPES:
        records[source], metrics[source] = PARSERS[source](sources.get(source) or [])
        if metrics[source]["row_count"]:
            logger.info(
                "Parsed %d %s rows (%d date issues)",
                metrics[source]["row_count"],
                source,
                metrics[source]["date_issue_count"],
            )
    return records, metrics
