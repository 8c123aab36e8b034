"""Static configuration consumed by the enrichment core.

Everything an operator may need to change without a code release lives here:
the contract rate table, the facility/alias table, keyword lists, the known
fleet and the quality-score weights. Defaults come from reference.py and a
JSON file (``--config`` or ``OFFSHORE_INTEL_CONFIG``) can override any
top-level section.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import Literal

from offshore_intel import reference
from offshore_intel.errors import ConfigurationError, MissingRateTable

logger = logging.getLogger(__name__)

FacilityType = Literal["Drilling", "Production", "Integrated", "Logistics", "Unclassified"]

CONFIG_ENV_VAR = "OFFSHORE_INTEL_CONFIG"


@dataclass(frozen=True)
class FacilityConfig:
    name: str
    display_name: str
    facility_type: FacilityType
    aliases: tuple[str, ...] = ()
    keywords: tuple[str, ...] = ()
    parent_facility: str | None = None
    production_lcs: tuple[str, ...] = ()


@dataclass(frozen=True)
class RatePeriod:
    start: date
    end: date
    hourly_rate: float
    description: str

    def covers(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class SizeTier:
    name: str
    max_size_ft: float | None
    periods: tuple[RatePeriod, ...]


@dataclass(frozen=True)
class RateTableConfig:
    tiers: tuple[SizeTier, ...]
    support_multiplier: float = 0.8
    support_vessel_types: frozenset[str] = frozenset({"FSV"})
    default_size_ft: float = 250.0


@dataclass(frozen=True)
class FleetVessel:
    name: str
    company: str
    size_ft: float
    vessel_type: str


@dataclass(frozen=True)
class VesselPattern:
    token: str
    company: str | None
    vessel_type: str | None


@dataclass(frozen=True)
class QualityConfig:
    weights: dict[str, int]
    max_hours: float = 24.0
    min_daily_rate: float = 1000.0
    max_daily_rate: float = 100000.0
    min_year: int = 2020
    max_year: int = 2030


@dataclass(frozen=True)
class PipelineConfig:
    facilities: tuple[FacilityConfig, ...]
    rate_table: RateTableConfig
    fleet: tuple[FleetVessel, ...]
    vessel_patterns: tuple[VesselPattern, ...]
    npt_keywords: tuple[str, ...]
    fuel_keywords: tuple[str, ...]
    fourchon_logistics_lcs: frozenset[str]
    quality: QualityConfig
    strict_allocation: bool = False
    workers: int = 1


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip())


def _facility_from_dict(raw: dict) -> FacilityConfig:
    return FacilityConfig(
        name=raw["name"],
        display_name=raw.get("display_name") or raw["name"],
        facility_type=raw.get("facility_type", "Unclassified"),
        aliases=tuple(a.strip().lower() for a in raw.get("aliases") or () if a and a.strip()),
        keywords=tuple(k.strip().lower() for k in raw.get("keywords") or () if k and k.strip()),
        parent_facility=raw.get("parent_facility"),
        production_lcs=tuple(str(lc).strip() for lc in raw.get("production_lcs") or ()),
    )


def _rate_table_from_dict(raw: dict) -> RateTableConfig:
    tiers = []
    for tier in raw.get("tiers") or ():
        periods = tuple(
            RatePeriod(
                start=_as_date(p["start"]),
                end=_as_date(p["end"]),
                hourly_rate=float(p["hourly_rate"]),
                description=p.get("description") or f"{p['start']} - {p['end']}",
            )
            for p in tier.get("periods") or ()
        )
        max_size = tier.get("max_size_ft")
        tiers.append(
            SizeTier(
                name=tier.get("name") or f"<= {max_size}ft",
                max_size_ft=float(max_size) if max_size is not None else None,
                periods=tuple(sorted(periods, key=lambda p: p.start)),
            )
        )
    # Open-ended tier last
    tiers.sort(key=lambda t: (t.max_size_ft is None, t.max_size_ft or 0.0))
    return RateTableConfig(
        tiers=tuple(tiers),
        support_multiplier=float(raw.get("support_multiplier", 0.8)),
        support_vessel_types=frozenset(raw.get("support_vessel_types") or ("FSV",)),
        default_size_ft=float(raw.get("default_size_ft", 250)),
    )


def validate_rate_table(table: RateTableConfig) -> RateTableConfig:
    """Reject empty tiers and periods that overlap or leave a gap.

    Ranges are inclusive on both bounds, so contiguous means the next period
    starts exactly one day after the previous one ends.
    """
    if not table.tiers:
        raise MissingRateTable("rate table has no size tiers")
    for tier in table.tiers:
        if not tier.periods:
            raise MissingRateTable(f"size tier {tier.name!r} has no rate periods")
        for period in tier.periods:
            if period.end < period.start:
                raise MissingRateTable(
                    f"size tier {tier.name!r}: period {period.description!r} ends before it starts"
                )
        for prev, nxt in zip(tier.periods, tier.periods[1:]):
            gap = (nxt.start - prev.end).days
            if gap < 1:
                raise MissingRateTable(
                    f"size tier {tier.name!r}: {prev.description!r} overlaps {nxt.description!r}"
                )
            if gap > 1:
                raise MissingRateTable(
                    f"size tier {tier.name!r}: gap between {prev.end} and {nxt.start}"
                )
    return table


def build_config(overrides: dict | None = None) -> PipelineConfig:
    """Build a PipelineConfig from the reference defaults plus overrides."""
    raw = {
        "facilities": reference.FACILITIES,
        "rate_table": reference.RATE_TABLE,
        "fleet": reference.FLEET,
        "vessel_patterns": reference.VESSEL_NAME_PATTERNS,
        "npt_keywords": reference.NPT_KEYWORDS,
        "fuel_keywords": reference.FUEL_KEYWORDS,
        "fourchon_logistics_lcs": reference.FOURCHON_LOGISTICS_LCS,
        "quality": reference.QUALITY,
        "strict_allocation": False,
        "workers": 1,
    }
    for key, value in (overrides or {}).items():
        if key not in raw:
            logger.warning("Ignoring unknown config section %r", key)
            continue
        if key == "quality" and isinstance(value, dict):
            merged = dict(reference.QUALITY)
            merged.update(value)
            merged["weights"] = {**reference.QUALITY["weights"], **(value.get("weights") or {})}
            value = merged
        raw[key] = value

    try:
        return _config_from_raw(raw)
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"invalid configuration: {type(exc).__name__} {exc}") from exc


def _config_from_raw(raw: dict) -> PipelineConfig:
    quality = raw["quality"]
    return PipelineConfig(
        facilities=tuple(_facility_from_dict(f) for f in raw["facilities"]),
        rate_table=validate_rate_table(_rate_table_from_dict(raw["rate_table"])),
        fleet=tuple(
            FleetVessel(
                name=v["name"],
                company=v.get("company") or "Unassigned",
                size_ft=float(v.get("size_ft") or 0),
                vessel_type=v.get("vessel_type") or "Unknown",
            )
            for v in raw["fleet"]
        ),
        vessel_patterns=tuple(
            VesselPattern(token=p["token"].lower(), company=p.get("company"), vessel_type=p.get("vessel_type"))
            for p in raw["vessel_patterns"]
        ),
        npt_keywords=tuple(k.lower() for k in raw["npt_keywords"]),
        fuel_keywords=tuple(k.lower() for k in raw["fuel_keywords"]),
        fourchon_logistics_lcs=frozenset(str(lc).strip() for lc in raw["fourchon_logistics_lcs"]),
        quality=QualityConfig(
            weights={k: int(v) for k, v in quality["weights"].items()},
            max_hours=float(quality.get("max_hours", 24.0)),
            min_daily_rate=float(quality.get("min_daily_rate", 1000.0)),
            max_daily_rate=float(quality.get("max_daily_rate", 100000.0)),
            min_year=int(quality.get("min_year", 2020)),
            max_year=int(quality.get("max_year", 2030)),
        ),
        strict_allocation=bool(raw["strict_allocation"]),
        workers=max(1, int(raw["workers"])),
    )


def load_config(path: str | Path | None = None) -> PipelineConfig:
    """Load config from a JSON file, falling back to OFFSHORE_INTEL_CONFIG, then defaults."""
    path = path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return DEFAULT_CONFIG
    config_path = Path(path)
    try:
        overrides = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"cannot read config file {config_path}: {exc}") from exc
    if not isinstance(overrides, dict):
        raise ConfigurationError(f"config file {config_path} must contain a JSON object")
    logger.info("Loaded config overrides from %s: %s", config_path, ", ".join(sorted(overrides)))
    return build_config(overrides)


def with_workers(config: PipelineConfig, workers: int) -> PipelineConfig:
    return replace(config, workers=max(1, int(workers)))


DEFAULT_CONFIG: PipelineConfig = build_config()
