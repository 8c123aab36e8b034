"""Outlier-aware statistics over numeric KPI series.

Population variance, linear-interpolation quartiles, IQR and Z-score
outliers and mean +/- 2 sigma control limits. Series with fewer than two
values have no meaningful spread and summarize to None.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime

import numpy as np

logger = logging.getLogger(__name__)

IQR_FACTOR = 1.5
Z_THRESHOLD = 2.0
CONTROL_SIGMA = 2.0
# float noise guard so a value sitting exactly on |z| = 2 is still flagged
_Z_EPSILON = 1e-9

CARGO_OPS = "cargo ops"
WEEKS_PER_MONTH = 4.33


@dataclass(frozen=True)
class ControlLimits:
    lower: float
    center: float
    upper: float


@dataclass(frozen=True)
class VarianceSummary:
    count: int
    mean: float
    variance: float
    std_dev: float
    coefficient_of_variation: float
    min: float
    max: float
    median: float
    q1: float
    q3: float
    iqr: float
    iqr_outliers: tuple[float, ...]
    z_score_outliers: tuple[float, ...]
    control_limits: ControlLimits

    @property
    def quartiles(self) -> tuple[float, float, float]:
        return self.q1, self.median, self.q3


@dataclass(frozen=True)
class DataPoint:
    value: float
    vessel: str = ""
    location: str = ""
    when: datetime | date | None = None


def _clean(values) -> np.ndarray:
    arr = np.array([v for v in values if v is not None], dtype=float)
    return arr[~np.isnan(arr)]


def summarize(values, clamp_lower: bool = False) -> VarianceSummary | None:
    """Distribution summary of `values`, or None for fewer than two numbers.

    With clamp_lower the lower control limit is floored at 0, for KPIs that
    cannot go negative.
    """
    arr = _clean(values)
    if arr.size < 2:
        return None

    mean = float(np.mean(arr))
    variance = float(np.var(arr))
    std = float(np.sqrt(variance))
    q1, median, q3 = (float(q) for q in np.percentile(arr, [25, 50, 75]))
    iqr = q3 - q1
    low_fence = q1 - IQR_FACTOR * iqr
    high_fence = q3 + IQR_FACTOR * iqr
    iqr_outliers = tuple(float(v) for v in arr if v < low_fence or v > high_fence)

    if std > 0:
        z = np.abs((arr - mean) / std)
        z_outliers = tuple(float(v) for v, score in zip(arr, z) if score >= Z_THRESHOLD - _Z_EPSILON)
    else:
        z_outliers = ()

    lower = mean - CONTROL_SIGMA * std
    if clamp_lower:
        lower = max(0.0, lower)

    return VarianceSummary(
        count=int(arr.size),
        mean=mean,
        variance=variance,
        std_dev=std,
        coefficient_of_variation=(std / abs(mean) * 100) if mean else 0.0,
        min=float(np.min(arr)),
        max=float(np.max(arr)),
        median=median,
        q1=q1,
        q3=q3,
        iqr=iqr,
        iqr_outliers=iqr_outliers,
        z_score_outliers=z_outliers,
        control_limits=ControlLimits(lower=lower, center=mean, upper=mean + CONTROL_SIGMA * std),
    )


def _group_key(point: DataPoint, key: str) -> str:
    if key == "vessel":
        return point.vessel or "Unknown"
    if key == "location":
        return point.location or "Unknown"
    if key == "month":
        return f"{point.when:%Y-%m}" if point.when else "Unknown"
    raise ValueError(f"unknown grouping key: {key}")


def summarize_by(points, key: str = "vessel", clamp_lower: bool = False) -> dict[str, VarianceSummary | None]:
    """Summaries per vessel, location or month ('YYYY-MM'), sorted by group."""
    groups: dict[str, list[float]] = {}
    for point in points:
        groups.setdefault(_group_key(point, key), []).append(point.value)
    return {name: summarize(groups[name], clamp_lower) for name in sorted(groups)}


# -- KPI series ----------------------------------------------------------------


def _month_start(when) -> date | None:
    if when is None:
        return None
    return date(when.year, when.month, 1)


def _charged_to(code, lcs) -> bool:
    return lcs is None or str(code or "").strip() in lcs


def _is_cargo_ops(event) -> bool:
    return (event.record.parent_event or "").strip().lower() == CARGO_OPS


def _sorted_keys(buckets):
    return sorted(buckets, key=lambda k: (k[0], k[1] or date.min))


def lifts_per_hour_points(events, manifests, drilling_lcs=None) -> list[DataPoint]:
    """Lifts per Cargo Ops hour, per vessel and month.

    With `drilling_lcs` only events and manifests charged to those codes
    count; without it every code does.
    """
    hours: dict[tuple, float] = {}
    for event in events:
        if not _is_cargo_ops(event) or not _charged_to(event.lc_number, drilling_lcs):
            continue
        key = (event.record.vessel, _month_start(event.record.event_date))
        hours[key] = hours.get(key, 0.0) + event.final_hours
    lifts: dict[tuple, float] = {}
    for manifest in manifests:
        if not _charged_to(manifest.record.cost_code, drilling_lcs):
            continue
        key = (manifest.record.vessel, _month_start(manifest.record.manifest_date))
        lifts[key] = lifts.get(key, 0.0) + manifest.record.lifts
    points = []
    for key in _sorted_keys(lifts):
        if hours.get(key, 0.0) > 0:
            points.append(DataPoint(round(lifts[key] / hours[key], 4), vessel=key[0], when=key[1]))
    return points


def _offshore_hours(events, drilling_lcs) -> dict[tuple, list[float]]:
    """(vessel, month) -> [offshore, productive, waiting] hours; base time excluded."""
    buckets: dict[tuple, list[float]] = {}
    for event in events:
        if event.location_type == "Logistics" or not _charged_to(event.lc_number, drilling_lcs):
            continue
        key = (event.record.vessel, _month_start(event.record.event_date))
        bucket = buckets.setdefault(key, [0.0, 0.0, 0.0])
        bucket[0] += event.final_hours
        if event.activity_category == "Productive":
            bucket[1] += event.final_hours
        if "waiting" in f"{event.record.parent_event} {event.record.event}".lower():
            bucket[2] += event.final_hours
    return buckets


def utilization_points(events, drilling_lcs=None) -> list[DataPoint]:
    """Productive share of offshore hours, in percent, per vessel and month."""
    buckets = _offshore_hours(events, drilling_lcs)
    return [
        DataPoint(round(buckets[key][1] / buckets[key][0] * 100, 2), vessel=key[0], when=key[1])
        for key in _sorted_keys(buckets)
        if buckets[key][0] > 0
    ]


def waiting_hours_points(events, drilling_lcs=None) -> list[DataPoint]:
    buckets = _offshore_hours(events, drilling_lcs)
    return [
        DataPoint(round(buckets[key][2], 2), vessel=key[0], when=key[1])
        for key in _sorted_keys(buckets)
        if buckets[key][0] > 0
    ]


def visits_per_week_points(events, manifests, drilling_lcs=None) -> list[DataPoint]:
    """Distinct voyages per week, per vessel and month.

    A visit is a voyage number seen on a Cargo Ops event or a manifest; a
    month counts as WEEKS_PER_MONTH weeks.
    """
    visits: dict[tuple, set[str]] = {}
    for event in events:
        if _is_cargo_ops(event) and event.record.voyage_number and _charged_to(event.lc_number, drilling_lcs):
            key = (event.record.vessel, _month_start(event.record.event_date))
            visits.setdefault(key, set()).add(event.record.voyage_number)
    for manifest in manifests:
        if manifest.record.voyage_number and _charged_to(manifest.record.cost_code, drilling_lcs):
            key = (manifest.record.vessel, _month_start(manifest.record.manifest_date))
            visits.setdefault(key, set()).add(manifest.record.voyage_number)
    return [
        DataPoint(round(len(visits[key]) / WEEKS_PER_MONTH, 4), vessel=key[0], when=key[1])
        for key in _sorted_keys(visits)
    ]


def cost_per_ton_points(events, manifests) -> list[DataPoint]:
    """Vessel cost per ton delivered (deck + below deck), per vessel and month."""
    costs: dict[tuple, float] = {}
    for event in events:
        key = (event.record.vessel, _month_start(event.record.event_date))
        costs[key] = costs.get(key, 0.0) + (event.vessel_cost_total or 0.0)
    tons: dict[tuple, float] = {}
    for manifest in manifests:
        key = (manifest.record.vessel, _month_start(manifest.record.manifest_date))
        tons[key] = tons.get(key, 0.0) + manifest.record.deck_tons + manifest.record.rt_tons
    points = []
    for key in _sorted_keys(tons):
        if tons[key] > 0 and key in costs:
            points.append(DataPoint(round(costs[key] / tons[key], 4), vessel=key[0], when=key[1]))
    return points


def event_hours_points(events) -> list[DataPoint]:
    return [
        DataPoint(e.final_hours, vessel=e.record.vessel, location=e.mapped_location, when=e.record.event_date)
        for e in events
    ]


def voyage_duration_points(voyages) -> list[DataPoint]:
    return [
        DataPoint(v.duration_hours, vessel=v.vessel, location=v.main_destination or "", when=v.start)
        for v in voyages
        if v.duration_hours is not None
    ]
