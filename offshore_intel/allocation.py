"""Cost-allocation reconciler.

Builds the LC-code lookup from the cost-allocation ledger and answers
"which department, project and rig does this code belong to". When a code is
missing from the ledger the reconciler falls back, in order, to keywords in
the description, the location and the remarks. That order matters: roughly a
third of voyage events carry no clean code match.

Also parses multi-LC allocation strings from the voyage-event export
("9358 45, 10137 12, 10101") into per-code percentages.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date

from offshore_intel.errors import MissingRateTable, ReconciliationConflict
from offshore_intel.keywords import (
    DESCRIPTION_VOCABULARY,
    LOCATION_VOCABULARY,
    first_match,
    normalize_department,
    normalize_project_type,
)
from offshore_intel.locations import LocationResolver, normalize_location
from offshore_intel.sources.parser import CostAllocationEntry

logger = logging.getLogger(__name__)

FOURCHON = "Fourchon"
FOURCHON_BASE_LC = "FOURCHON_BASE"

_TWO_DIGIT_YEAR_RE = re.compile(r"(?:^|[^0-9])(\d{2})$")

# Rig names recognised inside free-text LC descriptions. Longer spellings
# first so "stena ice max" wins over "stena".
RIG_NAME_PATTERNS: tuple[tuple[str, str], ...] = (
    ("thunder horse", "Thunder Horse"),
    ("thunderhorse", "Thunder Horse"),
    ("stena ice max", "Stena IceMAX"),
    ("stena icemax", "Stena IceMAX"),
    ("icemax", "Stena IceMAX"),
    ("stena", "Stena IceMAX"),
    ("ocean blacklion", "Ocean BlackLion"),
    ("ocean black lion", "Ocean BlackLion"),
    ("blacklion", "Ocean BlackLion"),
    ("black lion", "Ocean BlackLion"),
    ("ocean blackhornet", "Ocean Blackhornet"),
    ("ocean black hornet", "Ocean Blackhornet"),
    ("blackhornet", "Ocean Blackhornet"),
    ("black hornet", "Ocean Blackhornet"),
    ("ocean blacktip", "Ocean Blacktip"),
    ("blacktip", "Ocean Blacktip"),
    ("mad dog", "Mad Dog"),
    ("maddog", "Mad Dog"),
    ("na kika", "Na Kika"),
    ("nakika", "Na Kika"),
    ("atlantis", "Atlantis"),
    ("argos", "Argos"),
    ("deepwater invictus", "Deepwater Invictus"),
    ("invictus", "Deepwater Invictus"),
    ("island venture", "Island Venture"),
    ("island intervention", "Island Intervention"),
    ("auriga", "Auriga"),
    ("c-constructor", "C-Constructor"),
    ("c constructor", "C-Constructor"),
    ("thr", "Thunder Horse"),
)


@dataclass(frozen=True)
class AllocationEntry:
    code: str
    department: str | None
    project_type: str | None
    rig_location: str
    location_reference: str
    description: str
    allocated_days: float
    daily_rate: float
    budgeted_cost: float
    months: tuple[date, ...] = ()


@dataclass(frozen=True)
class AllocationConflict:
    code: str
    field_name: str
    kept: str
    rejected: str
    row_index: int

    def describe(self) -> str:
        return (
            f"LC {self.code}: conflicting {self.field_name} {self.rejected!r} "
            f"(row {self.row_index}) ignored, kept {self.kept!r}"
        )


@dataclass(frozen=True)
class AllocationClassification:
    department: str | None
    project_type: str | None
    rig_location: str | None
    source: str | None


@dataclass(frozen=True)
class LCAllocation:
    lc_number: str
    percentage: float
    department: str | None
    mapped_location: str
    is_special_case: bool = False


@dataclass
class AllocationTable(Mapping):
    """Read-only mapping of LC code -> AllocationEntry plus what the build found."""

    entries: dict[str, AllocationEntry] = field(default_factory=dict)
    conflicts: list[AllocationConflict] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)
    # (code, ledger month) -> (allocated days, budgeted cost)
    budget_lines: dict[tuple[str, date | None], tuple[float, float]] = field(default_factory=dict)

    def __getitem__(self, code: str) -> AllocationEntry:
        return self.entries[code]

    def __iter__(self):
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def conflicts_for(self, code: str) -> list[AllocationConflict]:
        return [c for c in self.conflicts if c.code == code]


def normalize_lc(value) -> str:
    """'9358.0' -> '9358'; strips whitespace."""
    text = str(value or "").strip()
    if re.fullmatch(r"\d+\.0+", text):
        text = text.split(".", 1)[0]
    return text


def parse_lc_allocation_string(text: str | None) -> list[tuple[str, float]]:
    """Split '9358 45, 10137 12, 10101' into [(lc, percent), ...].

    A lone code gets 100%. Codes without a percentage share whatever the
    explicit percentages leave over; totals that still differ from 100 are
    scaled to 100. Percentages are rounded to two decimals.
    """
    if not text or not str(text).strip():
        return []
    normalized = re.sub(r"[;|]", ",", str(text))
    parts = [p.strip() for p in normalized.split(",") if p.strip()]
    if not parts:
        return []
    if len(parts) == 1 and len(parts[0].split()) == 1:
        return [(normalize_lc(parts[0]), 100.0)]

    with_percent: list[list] = []
    without_percent: list[str] = []
    total = 0.0
    for part in parts:
        tokens = part.split()
        lc = normalize_lc(tokens[0])
        if len(tokens) == 1:
            without_percent.append(lc)
            continue
        try:
            percent = float(tokens[1].rstrip("%"))
        except ValueError:
            percent = -1.0
        if 0 <= percent <= 100:
            with_percent.append([lc, percent])
            total += percent
        else:
            logger.warning("Invalid percentage %r for LC %s in %r", tokens[1], lc, text)
            without_percent.append(lc)

    remainder = max(0.0, 100.0 - total)
    if without_percent:
        if remainder > 0:
            share = remainder / len(without_percent)
            with_percent.extend([lc, share] for lc in without_percent)
            total = 100.0
        else:
            logger.warning("No remainder left for LCs %s in %r", ", ".join(without_percent), text)
            with_percent.extend([lc, 0.0] for lc in without_percent)

    if abs(total - 100.0) > 0.01 and total > 0:
        factor = 100.0 / total
        for allocation in with_percent:
            allocation[1] *= factor

    return [(lc, round(percent, 2)) for lc, percent in with_percent if 0 <= percent <= 100.0001]


def extract_rig_location(description: str | None) -> str | None:
    """Recover a rig name from text such as 'MC 777 U / THUNDERHORSE/ DWP'."""
    if not description:
        return None
    lowered = description.strip().lower()
    for pattern, name in RIG_NAME_PATTERNS:
        if re.search(r"(?<![a-z0-9])" + re.escape(pattern) + r"(?![a-z0-9])", lowered):
            return name
    # Slash-separated segments: "mc 777 u / thunderhorse/ dwp"
    for segment in re.split(r"[/|]", lowered):
        cleaned = re.sub(r"\s+", " ", segment).strip()
        for pattern, name in RIG_NAME_PATTERNS:
            if len(pattern) > 3 and pattern in cleaned:
                return name
    return None


def is_two_digit_year(raw: str) -> bool:
    text = (raw or "").strip()
    if not text or re.search(r"\d{4}", text):
        return False
    return bool(_TWO_DIGIT_YEAR_RE.search(text))


class CostAllocationReconciler:
    """LC-code lookup plus the code -> description -> location -> remarks fallback."""

    def __init__(
        self,
        resolver: LocationResolver,
        fourchon_logistics_lcs=frozenset(),
        strict: bool = False,
        daily_rate_for: Callable[[date], float] | None = None,
    ):
        self.resolver = resolver
        self.fourchon_logistics_lcs = frozenset(fourchon_logistics_lcs)
        self.strict = strict
        self.daily_rate_for = daily_rate_for
        self.table = AllocationTable()

    # -- building ---------------------------------------------------------

    def _entry_department(self, entry: CostAllocationEntry, code: str) -> str | None:
        department = normalize_department(entry.department)
        if department:
            return department
        if code in self.fourchon_logistics_lcs:
            return "Logistics"
        if self.resolver.facility_for_lc(code) is not None:
            return "Production"
        department = first_match(entry.description, DESCRIPTION_VOCABULARY)
        if department:
            return department
        for text in (entry.rig_location, entry.location_reference):
            department = self.resolver.resolve(text).department
            if department:
                return department
        return None

    def _budgeted_cost(self, entry: CostAllocationEntry, issues: list[str]) -> tuple[float, float]:
        daily_rate = entry.daily_rate
        if daily_rate <= 0 and self.daily_rate_for is not None and entry.month_year is not None:
            try:
                daily_rate = self.daily_rate_for(entry.month_year)
            except MissingRateTable as exc:
                issues.append(f"LC {entry.lc_number} row {entry.row_index}: no contract rate ({exc})")
                logger.warning("No contract rate for LC %s month %s", entry.lc_number, entry.month_year)
                daily_rate = 0.0
        return daily_rate, round(entry.allocated_days * daily_rate, 2)

    def build(self, entries: list[CostAllocationEntry]) -> AllocationTable:
        table = AllocationTable()
        seen_keys: dict[tuple, int] = {}
        dated = 0
        january = 0

        for entry in entries:
            code = normalize_lc(entry.lc_number)
            if not code:
                table.issues.append(f"Row {entry.row_index}: cost allocation without LC number")
                continue

            key = (code, entry.month_year, normalize_location(entry.rig_location))
            if key in seen_keys:
                table.issues.append(
                    f"Duplicate allocation for LC {code} / {entry.month_year or entry.month_year_raw} / "
                    f"{entry.rig_location or '-'} (rows {seen_keys[key]} and {entry.row_index})"
                )
            else:
                seen_keys[key] = entry.row_index
            if entry.allocated_days <= 0:
                table.issues.append(f"LC {code} row {entry.row_index}: non-positive allocated days")
            if is_two_digit_year(entry.month_year_raw):
                table.issues.append(
                    f"LC {code} row {entry.row_index}: two-digit year in {entry.month_year_raw!r}"
                )
            if entry.total_cost < 0 or entry.daily_rate < 0:
                table.issues.append(f"LC {code} row {entry.row_index}: negative cost")
            if entry.month_year is not None:
                dated += 1
                january += entry.month_year.month == 1

            department = self._entry_department(entry, code)
            project_type = normalize_project_type(entry.project_type)
            rig = entry.rig_location or extract_rig_location(entry.description) or ""
            daily_rate, budget = self._budgeted_cost(entry, table.issues)
            days, cost = table.budget_lines.get((code, entry.month_year), (0.0, 0.0))
            table.budget_lines[(code, entry.month_year)] = (days + entry.allocated_days, round(cost + budget, 2))

            existing = table.entries.get(code)
            if existing is None:
                table.entries[code] = AllocationEntry(
                    code=code,
                    department=department,
                    project_type=project_type,
                    rig_location=rig,
                    location_reference=entry.location_reference,
                    description=entry.description,
                    allocated_days=entry.allocated_days,
                    daily_rate=daily_rate,
                    budgeted_cost=budget,
                    months=(entry.month_year,) if entry.month_year else (),
                )
                continue

            for field_name, new_value in (("department", department), ("project_type", project_type)):
                kept = getattr(existing, field_name)
                if kept and new_value and kept != new_value:
                    table.conflicts.append(
                        AllocationConflict(code, field_name, kept, new_value, entry.row_index)
                    )
            months = existing.months
            if entry.month_year and entry.month_year not in months:
                months = months + (entry.month_year,)
            table.entries[code] = AllocationEntry(
                code=code,
                department=existing.department or department,
                project_type=existing.project_type or project_type,
                rig_location=existing.rig_location or rig,
                location_reference=existing.location_reference or entry.location_reference,
                description=existing.description or entry.description,
                allocated_days=existing.allocated_days + entry.allocated_days,
                daily_rate=existing.daily_rate or daily_rate,
                budgeted_cost=round(existing.budgeted_cost + budget, 2),
                months=months,
            )

        if dated >= 3 and january == dated:
            table.issues.append(
                "Every Month-Year value parsed as January; the date column is probably mis-encoded"
            )
        for conflict in table.conflicts:
            table.issues.append(conflict.describe())

        logger.info(
            "Built allocation table: %d codes, %d conflicts, %d issues",
            len(table.entries),
            len(table.conflicts),
            len(table.issues),
        )
        if self.strict and table.conflicts:
            raise ReconciliationConflict(
                f"{len(table.conflicts)} conflicting cost-allocation codes: "
                + ", ".join(sorted({c.code for c in table.conflicts})),
                conflicts=table.conflicts,
            )
        self.table = table
        return table

    # -- lookups ----------------------------------------------------------

    def get(self, code: str | None) -> AllocationEntry | None:
        if not code:
            return None
        return self.table.get(normalize_lc(code))

    def department_from_code(self, code: str | None) -> str | None:
        entry = self.get(code)
        return entry.department if entry else None

    @staticmethod
    def department_from_description(text: str | None) -> str | None:
        return first_match(text, DESCRIPTION_VOCABULARY)

    def department_from_location(self, location: str | None) -> str | None:
        if not location:
            return None
        department = self.resolver.resolve(location).department
        if department:
            return department
        return first_match(location, LOCATION_VOCABULARY)

    def department_from_remarks(self, remarks: str | None) -> str | None:
        return first_match(remarks, DESCRIPTION_VOCABULARY)

    def classify(
        self,
        code: str | None,
        description: str | None = "",
        location: str | None = "",
        remarks: str | None = "",
    ) -> AllocationClassification:
        entry = self.get(code)
        if entry is not None and entry.department:
            return AllocationClassification(
                department=entry.department,
                project_type=entry.project_type,
                rig_location=entry.rig_location or None,
                source="code",
            )

        project_type = entry.project_type if entry else None
        rig = (entry.rig_location if entry else None) or extract_rig_location(description) or None
        chain = (
            ("description", self.department_from_description, description),
            ("location", self.department_from_location, location),
            ("remarks", self.department_from_remarks, remarks),
        )
        for source, strategy, text in chain:
            department = strategy(text)
            if department:
                return AllocationClassification(department, project_type, rig, source)
        return AllocationClassification(None, project_type, rig, None)

    def split_allocations(self, cost_dedicated_to: str | None, location: str, port_type: str = "") -> list[LCAllocation]:
        """Per-LC shares of one voyage event.

        Fourchon base time is always Logistics: either the whole event (base
        port with no LC) or the Fourchon logistics codes. Other shares carry
        the ledger department when the code is known, otherwise None so the
        caller's fallback chain decides.
        """
        resolved = self.resolver.resolve(location)
        at_fourchon = resolved.canonical_name == FOURCHON
        at_base = (port_type or "").lower() == "base" or resolved.facility_type == "Logistics"
        parsed = parse_lc_allocation_string(cost_dedicated_to)

        if at_fourchon and at_base and not parsed:
            return [LCAllocation(FOURCHON_BASE_LC, 100.0, "Logistics", resolved.canonical_name, True)]
        if not parsed:
            department = "Logistics" if at_base else None
            return [LCAllocation("", 100.0, department, location, at_base)]

        allocations = []
        for lc, percent in parsed:
            entry = self.get(lc)
            mapped = (entry.location_reference if entry and entry.location_reference else "") or location
            if lc in self.fourchon_logistics_lcs and at_fourchon:
                allocations.append(LCAllocation(lc, percent, "Logistics", mapped, True))
                continue
            allocations.append(LCAllocation(lc, percent, entry.department if entry else None, mapped))
        return allocations
