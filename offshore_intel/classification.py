"""Classification engine: pure functions from record text to categories.

Every classifier here is deterministic and side-effect free. Configuration
(keyword lists, fleet, reconciler) is passed in; nothing reads module state
that a batch could mutate.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from offshore_intel.allocation import CostAllocationReconciler, normalize_lc
from offshore_intel.config import DEFAULT_CONFIG, FleetVessel, VesselPattern
from offshore_intel.keywords import PROJECT_TYPE_RULES, first_match, normalize_project_type
from offshore_intel.sources.parser import BulkTransfer, ManifestLine

logger = logging.getLogger(__name__)

PRODUCTIVE = "Productive"
NON_PRODUCTIVE = "Non-Productive"
UNASSIGNED = "Unassigned"
UNCLASSIFIED = "Unclassified"

GALLONS_PER_BARREL = 42.0

VESSEL_TYPES = ("OSV", "FSV", "AHTS", "PSV", "MSV")

# Raw vessel-class spellings -> contract class. Keys are lowercase.
VESSEL_TYPE_MAP: dict[str, str] = {
    "osv": "OSV",
    "offshore supply vessel": "OSV",
    "fsv": "FSV",
    "fast supply vessel": "FSV",
    "fast support vessel": "FSV",
    "crew boat": "FSV",
    "ahts": "AHTS",
    "anchor handler": "AHTS",
    "anchor handling tug supply": "AHTS",
    "psv": "PSV",
    "platform supply vessel": "PSV",
    "msv": "MSV",
    "multi-service vessel": "MSV",
    "multi service vessel": "MSV",
    "specialty": "MSV",
    "support": "MSV",
}

# (category, specific type, trigger keywords), checked top to bottom.
FLUID_RULES: tuple[tuple[str, str | None, tuple[str, ...]], ...] = (
    ("Drilling", "WBM", ("wbm", "water based mud", "water-based mud")),
    ("Drilling", "SBM", ("sbm", "synthetic based mud", "synthetic-based mud")),
    ("Drilling", "OBM", ("obm", "oil based mud", "oil-based mud")),
    ("Drilling", "Premix", ("premix", "pre-mix")),
    ("Drilling", "Base Oil", ("baseoil", "base oil", "base-oil")),
    ("Drilling", None, ("drilling mud", "drilling fluid", "drill fluid", "mud")),
    ("Completion", "Calcium Chloride/Calcium Bromide", ("calcium chloride/calcium bromide", "cacl2/cabr2")),
    ("Completion", "Calcium Bromide", ("calcium bromide", "cabr2", "ca br2", "cabr")),
    ("Completion", "Calcium Chloride", ("calcium chloride", "cacl2", "ca cl2", "cacl")),
    ("Completion", "Sodium Chloride", ("sodium chloride", "nacl", "na cl")),
    ("Completion", "KCL", ("kcl", "potassium chloride")),
    ("Completion", "Clayfix", ("clayfix", "clay fix")),
    ("Completion", "Brine", ("completion fluid", "completion brine", "brine", "workover fluid", "intervention fluid")),
    ("Production", "Asphaltene Inhibitor", ("asphaltene",)),
    ("Production", "Calcium Nitrate (Petrocare 45)", ("calcium nitrate", "petrocare")),
    ("Production", "Methanol", ("methanol",)),
    ("Production", "Xylene", ("xylene",)),
    ("Production", "Corrosion Inhibitor", ("corrosion inhibitor",)),
    ("Production", "Scale Inhibitor", ("scale inhibitor",)),
    ("Production", "LDHI", ("ldhi", "low dosage hydrate inhibitor")),
    ("Production", "Subsea 525", ("subsea 525", "subsea525")),
)


# -- activity ---------------------------------------------------------------


def classify_activity(
    parent_event: str | None,
    event: str | None,
    remarks: str | None = "",
    npt_keywords=None,
) -> str:
    """Non-Productive iff the combined lowercase text contains an NPT keyword."""
    keywords = DEFAULT_CONFIG.npt_keywords if npt_keywords is None else npt_keywords
    text = " ".join(part for part in (parent_event, event, remarks) if part).lower()
    if any(keyword in text for keyword in keywords):
        return NON_PRODUCTIVE
    return PRODUCTIVE


# -- department -------------------------------------------------------------


@dataclass(frozen=True)
class EventContext:
    """The text a department strategy may look at."""

    code: str = ""
    description: str = ""
    location: str = ""
    remarks: str = ""
    port_type: str = ""


DepartmentStrategy = Callable[[EventContext], "str | None"]


class DepartmentChain:
    """Ordered department strategies; the first non-None answer wins.

    Each strategy is a pure function of the EventContext, so a new signal can
    be added with insert() without touching the others.
    """

    def __init__(self, strategies: list[tuple[str, DepartmentStrategy]]):
        self.strategies = list(strategies)

    @classmethod
    def default(cls, reconciler: CostAllocationReconciler) -> DepartmentChain:
        def allocation_code(ctx: EventContext) -> str | None:
            return reconciler.department_from_code(ctx.code)

        def lc_pattern(ctx: EventContext) -> str | None:
            code = normalize_lc(ctx.code)
            if not code:
                return None
            if code in reconciler.fourchon_logistics_lcs:
                return "Logistics"
            if reconciler.resolver.facility_for_lc(code) is not None:
                return "Production"
            return None

        def description(ctx: EventContext) -> str | None:
            return reconciler.department_from_description(ctx.description)

        def location(ctx: EventContext) -> str | None:
            return reconciler.department_from_location(ctx.location)

        def remarks(ctx: EventContext) -> str | None:
            return reconciler.department_from_remarks(ctx.remarks)

        return cls([
            ("allocation_code", allocation_code),
            ("lc_pattern", lc_pattern),
            ("description", description),
            ("location", location),
            ("remarks", remarks),
        ])

    def insert(self, index: int, name: str, strategy: DepartmentStrategy) -> DepartmentChain:
        strategies = list(self.strategies)
        strategies.insert(index, (name, strategy))
        return DepartmentChain(strategies)

    def resolve(self, ctx: EventContext) -> tuple[str, str | None]:
        """Return (department, name of the strategy that decided)."""
        for name, strategy in self.strategies:
            department = strategy(ctx)
            if department:
                return department, name
        return UNASSIGNED, None

    def __call__(self, ctx: EventContext) -> str:
        return self.resolve(ctx)[0]


# -- project type -----------------------------------------------------------


def classify_project_type(text: str | None, explicit: str | None = None) -> str:
    """Explicit ledger project type first, then keyword rules in priority order."""
    normalized = normalize_project_type(explicit)
    if normalized:
        return normalized
    return first_match(text, PROJECT_TYPE_RULES) or UNCLASSIFIED


# -- fluids and cargo -------------------------------------------------------


@dataclass(frozen=True)
class FluidClassification:
    category: str
    specific_type: str | None
    is_fuel: bool = False

    @property
    def counts_toward_production_volume(self) -> bool:
        return not self.is_fuel


def classify_fluid(bulk_type: str | None, description: str | None = "", fuel_keywords=None) -> FluidClassification:
    """Classify a bulk fluid into Drilling / Completion / Production / Other.

    Fuel is checked first: diesel and gas oil are Other and never count
    toward production-fluid volume, whatever else the description says.
    """
    keywords = DEFAULT_CONFIG.fuel_keywords if fuel_keywords is None else fuel_keywords
    text = f"{bulk_type or ''} {description or ''}".lower()
    if any(re.search(r"(?<![a-z])" + re.escape(k) + r"(?![a-z])", text) for k in keywords):
        return FluidClassification("Other", "Fuel", is_fuel=True)
    for category, specific, triggers in FLUID_RULES:
        if any(trigger in text for trigger in triggers):
            return FluidClassification(category, specific)
    if "chemical" in text and "drilling" not in text:
        return FluidClassification("Production", None)
    if "water" in text and "mud" not in text:
        return FluidClassification("Other", "Water")
    return FluidClassification("Other", None)


def to_barrels(quantity: float, unit: str | None) -> float:
    unit = (unit or "").strip().lower()
    if unit.startswith("gal"):
        return round(quantity / GALLONS_PER_BARREL, 2)
    return round(quantity, 2)


@dataclass(frozen=True)
class EnrichedBulkTransfer:
    record: BulkTransfer
    fluid_category: str
    fluid_specific_type: str | None
    volume_bbls: float
    is_return: bool
    counts_toward_production_volume: bool
    company: str = UNASSIGNED
    vessel_type: str = "Unknown"
    data_quality_score: int = 100
    data_quality_issues: tuple[str, ...] = ()


def classify_bulk_transfer(transfer: BulkTransfer, fuel_keywords=None) -> EnrichedBulkTransfer:
    fluid = classify_fluid(transfer.bulk_type, transfer.bulk_description, fuel_keywords)
    text = f"{transfer.action} {transfer.remarks}".lower()
    return EnrichedBulkTransfer(
        record=transfer,
        fluid_category=fluid.category,
        fluid_specific_type=fluid.specific_type,
        volume_bbls=to_barrels(transfer.quantity, transfer.unit),
        is_return="return" in text,
        counts_toward_production_volume=fluid.counts_toward_production_volume,
    )


def classify_cargo(manifest: ManifestLine) -> str:
    if manifest.deck_tons > 0:
        return "Deck Cargo"
    if manifest.rt_tons > 0:
        return "Below Deck Cargo"
    if manifest.wet_bulk_bbls > 0 or manifest.wet_bulk_gals > 0:
        return "Liquid Bulk"
    if manifest.lifts > 0:
        return "Lift Only"
    return "Other/Mixed"


# -- vessels ----------------------------------------------------------------


def normalize_vessel_type(raw_type: str | None) -> str:
    """Map a raw vessel class to OSV/FSV/AHTS/PSV/MSV, else 'Unknown'."""
    if not raw_type:
        return "Unknown"
    return VESSEL_TYPE_MAP.get(raw_type.strip().lower(), "Unknown")


def normalize_vessel_name(name: str | None) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


@dataclass(frozen=True)
class VesselProfile:
    name: str
    company: str
    vessel_type: str
    size_ft: float | None
    matched_by: str | None = None


class VesselClassifier:
    """Company, vessel class and size from the fleet list, then name tokens."""

    def __init__(self, fleet: tuple[FleetVessel, ...] | list[FleetVessel], patterns: tuple[VesselPattern, ...] | list[VesselPattern]):
        self._fleet = {normalize_vessel_name(v.name): v for v in fleet}
        self._patterns = list(patterns)

    def classify(self, name: str | None) -> VesselProfile:
        key = normalize_vessel_name(name)
        display = (name or "").strip()
        if not key:
            return VesselProfile(display, UNASSIGNED, "Unknown", None)

        vessel = self._fleet.get(key)
        if vessel is not None:
            return VesselProfile(
                name=vessel.name,
                company=vessel.company,
                vessel_type=normalize_vessel_type(vessel.vessel_type),
                size_ft=vessel.size_ft or None,
                matched_by="fleet",
            )

        tokens = set(re.split(r"[^a-z0-9]+", key))
        company = None
        vessel_type = None
        for pattern in self._patterns:
            if pattern.token not in tokens:
                continue
            company = company or pattern.company
            vessel_type = vessel_type or pattern.vessel_type
            if company and vessel_type:
                break
        if company is None and vessel_type is None:
            return VesselProfile(display, UNASSIGNED, "Unknown", None)
        return VesselProfile(
            name=display,
            company=company or UNASSIGNED,
            vessel_type=normalize_vessel_type(vessel_type) if vessel_type else "Unknown",
            size_ft=None,
            matched_by="pattern",
        )
