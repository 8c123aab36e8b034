"""Column contracts for the five tabular export types.

Headers are matched by normalized name (see parsing.normalize_header) against
the alias lists below, never by position. The first alias is the header the
export tool writes today; the rest are spellings seen in older or hand-edited
files.
"""

from __future__ import annotations

from typing import TypedDict

from offshore_intel.parsing import normalize_header

SOURCE_TYPES = (
    "voyage_events",
    "manifests",
    "cost_allocations",
    "voyage_summaries",
    "bulk_transfers",
)


class ParseMetrics(TypedDict):
    row_count: int
    unmatched_field_count: int
    date_issue_count: int


COLUMN_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "voyage_events": {
        "vessel": ("Vessel", "Vessel Name", "Ship"),
        "voyage_number": ("Voyage #", "Voyage Number", "Voyage No", "Voyage"),
        "mission": ("Mission",),
        "parent_event": ("Parent Event", "Event Group"),
        "event": ("Event", "Event Name"),
        "location": ("Location", "Rig Location", "Facility"),
        "port_type": ("Port Type",),
        "remarks": ("Remarks", "Comments", "Notes"),
        "event_date": ("From", "Start", "Start Date", "Event Date"),
        "end_date": ("To", "End", "End Date"),
        "hours": ("Hours", "Duration", "Duration (hrs)"),
        "cost_dedicated_to": ("Cost Dedicated to", "LC Number", "LC", "Cost Code"),
    },
    "manifests": {
        "vessel": ("Transporter", "Vessel", "Vessel Name"),
        "voyage_number": ("Voyage Id", "Voyage #", "Voyage Number"),
        "manifest_number": ("Manifest Number", "Manifest #", "Manifest No"),
        "manifest_date": ("Manifest Date", "Date"),
        "origin": ("From", "Origin", "Origin Port"),
        "offshore_location": ("Offshore Location", "Destination", "Location"),
        "cost_code": ("Cost Code", "LC Number", "LC"),
        "deck_tons": ("Deck Tons", "Deck Tonnage"),
        "rt_tons": ("RT Tons", "Below Deck Tons"),
        "lifts": ("Lifts", "Lift Count"),
        "wet_bulk_bbls": ("Wet Bulk (bbls)", "Wet Bulk bbls", "Wet Bulk Bbls"),
        "wet_bulk_gals": ("Wet Bulk (gals)", "Wet Bulk gals", "Wet Bulk Gals"),
        "deck_sqft": ("Deck Sqft", "Deck Sq Ft", "Deck Area"),
        "remarks": ("Remarks", "Comments"),
    },
    "cost_allocations": {
        "lc_number": ("LC Number", "LC", "Cost Code", "Allocation Code"),
        "location_reference": ("Location Reference", "Location", "Rig Reference"),
        "rig_location": ("Rig Location", "Rig", "Facility"),
        "description": ("Description", "LC Description"),
        "cost_element": ("Cost Element",),
        "project_type": ("Project Type", "Project"),
        "department": ("Department", "Dept"),
        "month_year": ("Month-Year", "Month Year", "Period", "Month"),
        "allocated_days": ("Alloc (days)", "Allocated Days", "Total Allocated Days", "Days"),
        "daily_rate": ("Vessel Daily Rate", "Daily Rate", "Day Rate"),
        "total_cost": ("Total Cost", "Vessel Cost", "Cost"),
    },
    "voyage_summaries": {
        "vessel": ("Vessel", "Vessel Name"),
        "voyage_number": ("Voyage Number", "Voyage #", "Voyage"),
        "year": ("Year",),
        "month": ("Month",),
        "start_date": ("Start Date", "Start", "From"),
        "end_date": ("End Date", "End", "To"),
        "mission": ("Mission", "Type"),
        "route_type": ("Route Type", "Route"),
        "locations": ("Locations", "Route Locations", "Stops"),
    },
    "bulk_transfers": {
        "vessel": ("Vessel Name", "Vessel"),
        "port_type": ("Port Type",),
        "start_date": ("Start Date", "Date", "From"),
        "action": ("Action",),
        "quantity": ("Qty", "Quantity", "Volume"),
        "unit": ("Unit", "UOM"),
        "bulk_type": ("Bulk Type", "Fluid Type"),
        "bulk_description": ("Bulk Description", "Fluid Description", "Description"),
        "at_port": ("At Port", "Port"),
        "destination_port": ("Destination Port", "Destination"),
        "remarks": ("Remarks", "Comments"),
        "tank": ("Tank",),
    },
}

# Fields a row should carry for the record to be useful; absent ones are
# reported once per batch as a warning, never as a failure.
EXPECTED_FIELDS: dict[str, tuple[str, ...]] = {
    "voyage_events": ("vessel", "event_date", "hours"),
    "manifests": ("vessel", "voyage_number", "manifest_date"),
    "cost_allocations": ("lc_number", "month_year"),
    "voyage_summaries": ("vessel", "voyage_number", "locations"),
    "bulk_transfers": ("vessel", "quantity", "bulk_type"),
}


def new_parse_metrics() -> ParseMetrics:
    return {
        "row_count": 0,
        "unmatched_field_count": 0,
        "date_issue_count": 0,
    }


def resolve_columns(source: str, headers) -> dict[str, str]:
    """Map canonical field -> actual header for one source.

    The first header whose normalized form matches an alias wins; aliases are
    tried in order so the preferred header beats a looser one ("Location" vs
    "Rig Location" in voyage events).
    """
    if source not in COLUMN_ALIASES:
        raise ValueError(f"unknown source type: {source}")
    by_normalized: dict[str, str] = {}
    for header in headers:
        by_normalized.setdefault(normalize_header(header), header)

    resolved: dict[str, str] = {}
    taken: set[str] = set()
    for field, aliases in COLUMN_ALIASES[source].items():
        for alias in aliases:
            header = by_normalized.get(normalize_header(alias))
            if header is not None and header not in taken:
                resolved[field] = header
                taken.add(header)
                break
    return resolved


def validate_rows(source: str, rows) -> list[dict]:
    if source not in COLUMN_ALIASES:
        raise ValueError(f"unknown source type: {source}")
    if rows is None:
        return []
    if not isinstance(rows, (list, tuple)):
        raise ValueError(f"{source} rows must be a list, got {type(rows).__name__}")
    for idx, row in enumerate(rows):
        if not isinstance(row, dict):
            raise ValueError(f"{source} row[{idx}] must be dict, got {type(row).__name__}")
    return list(rows)


def missing_expected_fields(source: str, resolved: dict[str, str]) -> list[str]:
    return [field for field in EXPECTED_FIELDS[source] if field not in resolved]
