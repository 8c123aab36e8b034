from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field, replace
from datetime import date, datetime

from offshore_intel.allocation import (
    AllocationConflict,
    AllocationTable,
    CostAllocationReconciler,
    LCAllocation,
)
from offshore_intel.classification import (
    UNASSIGNED,
    UNCLASSIFIED,
    DepartmentChain,
    EnrichedBulkTransfer,
    EventContext,
    VesselClassifier,
    classify_activity,
    classify_bulk_transfer,
    classify_cargo,
    classify_fluid,
    classify_project_type,
)
from offshore_intel.config import DEFAULT_CONFIG, PipelineConfig
from offshore_intel.errors import OffshoreIntelError
from offshore_intel.fingerprint import batch_fingerprint, make_fingerprint
from offshore_intel.locations import LocationResolver
from offshore_intel.metrics import ProcessingSummary, SourceCounts
from offshore_intel.quality import QualityInput, QualityScorer, distribution
from offshore_intel.sources.contracts import SOURCE_TYPES
from offshore_intel.sources.parser import ManifestLine, VoyageEvent, parse_batch
from offshore_intel.variance import (
    VarianceSummary,
    cost_per_ton_points,
    event_hours_points,
    lifts_per_hour_points,
    summarize,
    summarize_by,
    utilization_points,
    visits_per_week_points,
    voyage_duration_points,
    waiting_hours_points,
)
from offshore_intel.vessel_cost import (
    BudgetVsActual,
    CostSummary,
    VesselCostCalculator,
    budget_vs_actual,
    summarize_costs,
)
from offshore_intel.voyages import (
    Voyage,
    VoyageResolver,
    VoyageSegment,
    visits_from_events,
    visits_from_manifests,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchInput:
    voyage_events: list[dict] = field(default_factory=list)
    manifests: list[dict] = field(default_factory=list)
    cost_allocations: list[dict] = field(default_factory=list)
    voyage_summaries: list[dict] = field(default_factory=list)
    bulk_transfers: list[dict] = field(default_factory=list)

    def as_sources(self) -> dict[str, list[dict]]:
        return {source: getattr(self, source) for source in SOURCE_TYPES}


@dataclass(frozen=True)
class EnrichedEvent:
    record: VoyageEvent
    activity_category: str
    department: str
    department_source: str | None
    project_type: str
    fluid_category: str | None
    vessel_type: str
    company: str
    lc_number: str
    lc_percentage: float
    final_hours: float
    hourly_rate: float | None
    daily_rate: float | None
    vessel_cost_total: float | None
    rate_description: str | None
    mapped_location: str
    location_type: str
    data_quality_score: int
    data_quality_issues: tuple[str, ...]
    fingerprint: str


@dataclass(frozen=True)
class EnrichedManifest:
    record: ManifestLine
    cargo_type: str
    department: str
    department_source: str | None
    project_type: str
    vessel_type: str
    company: str
    mapped_location: str
    location_type: str
    data_quality_score: int
    data_quality_issues: tuple[str, ...]
    fingerprint: str


@dataclass(frozen=True)
class EnrichedDataset:
    voyage_events: tuple[EnrichedEvent, ...]
    manifests: tuple[EnrichedManifest, ...]
    bulk_transfers: tuple[EnrichedBulkTransfer, ...]
    voyages: tuple[Voyage, ...]
    voyage_list: tuple[Voyage, ...]
    segments: tuple[VoyageSegment, ...]
    allocations: AllocationTable
    conflicts: tuple[AllocationConflict, ...]
    variance: dict[str, VarianceSummary | None]
    variance_by_vessel: dict[str, dict[str, VarianceSummary | None]]
    cost_summary: CostSummary
    budget_vs_actual: tuple[BudgetVsActual, ...]
    summary: ProcessingSummary

    def to_records(self) -> dict[str, list[dict]]:
        """Plain, JSON-friendly rows per sink table."""
        return {
            "voyage_events": [_flatten(e) for e in self.voyage_events],
            "vessel_manifests": [_flatten(m) for m in self.manifests],
            "bulk_actions": [_flatten(b) for b in self.bulk_transfers],
            "voyages": [_plain(asdict(v)) for v in self.voyages],
            "voyage_segments": [_plain(asdict(s)) for s in self.segments],
            "cost_allocations": [
                _plain({**asdict(entry), "fingerprint": make_fingerprint(entry)})
                for entry in self.allocations.values()
            ],
        }


def _plain(value):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _flatten(enriched) -> dict:
    row = asdict(enriched)
    record = row.pop("record")
    record.pop("parse_issues", None)
    return _plain({**record, **row})


def _flagged(enriched) -> bool:
    return enriched.data_quality_score < 100 or bool(enriched.data_quality_issues)


class OffshorePipeline:
    """One batch in, one complete EnrichedDataset out.

    Lookup tables (locations, fleet, rates, allocations) are built once per
    run and only read while records are enriched, so per-record work can be
    spread over a thread pool without locking.
    """

    def __init__(self, config: PipelineConfig = DEFAULT_CONFIG, workers: int | None = None, strict: bool | None = None):
        self.config = config
        self.workers = max(1, int(workers if workers is not None else config.workers))
        self.strict = config.strict_allocation if strict is None else strict
        self.locations = LocationResolver(config.facilities)
        self.vessels = VesselClassifier(config.fleet, config.vessel_patterns)
        self.costs = VesselCostCalculator(config.rate_table, self.vessels)
        self.scorer = QualityScorer(config.quality)
        self.voyage_resolver = VoyageResolver(self.locations)
        self.reconciler = self._new_reconciler()
        self.departments = DepartmentChain.default(self.reconciler)

    def _new_reconciler(self) -> CostAllocationReconciler:
        return CostAllocationReconciler(
            self.locations,
            self.config.fourchon_logistics_lcs,
            strict=self.strict,
            daily_rate_for=self.costs.default_daily_rate,
        )

    # -- per-record enrichment --------------------------------------------

    def _location_type(self, name: str) -> tuple[str, str, bool]:
        location = self.locations.resolve(name)
        known = location.facility_type != "Unclassified"
        mapped = location.canonical_name if known else (name or location.canonical_name)
        return mapped, location.facility_type, known

    def _conflict_issues(self, code: str) -> tuple[str, ...]:
        return tuple(c.describe() for c in self.reconciler.table.conflicts_for(code))

    def _department(self, allocation: LCAllocation, ctx: EventContext) -> tuple[str, str | None]:
        if allocation.is_special_case and allocation.department:
            return allocation.department, "special_case"
        return self.departments.resolve(ctx)

    def enrich_event(self, event: VoyageEvent) -> list[EnrichedEvent]:
        profile = self.vessels.classify(event.vessel)
        activity = classify_activity(event.parent_event, event.event, event.remarks, self.config.npt_keywords)
        mapped, location_type, known = self._location_type(event.location)
        description = f"{event.parent_event} {event.event}".strip()
        text = f"{description} {event.remarks}".strip()
        fluid = classify_fluid(None, text, self.config.fuel_keywords)
        # None unless the event text names a fluid
        fluid_category = fluid.category if fluid.specific_type or fluid.category != "Other" else None

        enriched = []
        for allocation in self.reconciler.split_allocations(event.cost_dedicated_to, event.location, event.port_type):
            ctx = EventContext(
                code=allocation.lc_number,
                description=description,
                location=event.location,
                remarks=event.remarks,
                port_type=event.port_type,
            )
            department, source = self._department(allocation, ctx)
            entry = self.reconciler.get(allocation.lc_number)
            project_type = classify_project_type(text, entry.project_type if entry else None)
            hours = round(event.hours * allocation.percentage / 100.0, 2)

            hourly = daily = total = None
            rate_description = None
            if event.event_date is not None:
                cost = self.costs.cost(profile, event.event_date, hours)
                hourly, daily, total, rate_description = cost.hourly_rate, cost.daily_rate, cost.total, cost.rate_description

            score, issues = self.scorer.score(
                QualityInput(
                    when=event.event_date,
                    vessel=event.vessel,
                    location=event.location,
                    location_resolved=known,
                    hours=event.hours,
                    cost=total,
                    daily_rate=daily,
                    parse_issues=event.parse_issues,
                )
            )
            enriched.append(
                EnrichedEvent(
                    record=event,
                    activity_category=activity,
                    department=department,
                    department_source=source,
                    project_type=project_type,
                    fluid_category=fluid_category,
                    vessel_type=profile.vessel_type,
                    company=profile.company,
                    lc_number=allocation.lc_number,
                    lc_percentage=allocation.percentage,
                    final_hours=hours,
                    hourly_rate=hourly,
                    daily_rate=daily,
                    vessel_cost_total=total,
                    rate_description=rate_description,
                    mapped_location=mapped if allocation.mapped_location == event.location else allocation.mapped_location,
                    location_type=location_type,
                    data_quality_score=score,
                    data_quality_issues=issues + self._conflict_issues(allocation.lc_number),
                    fingerprint=make_fingerprint(
                        {"source": "voyage_events", "record": asdict(event), "lc": allocation.lc_number}
                    ),
                )
            )
        return enriched

    def enrich_manifest(self, manifest: ManifestLine) -> EnrichedManifest:
        profile = self.vessels.classify(manifest.vessel)
        mapped, location_type, known = self._location_type(manifest.offshore_location)
        ctx = EventContext(
            code=manifest.cost_code,
            location=manifest.offshore_location,
            remarks=manifest.remarks,
        )
        department, source = self.departments.resolve(ctx)
        entry = self.reconciler.get(manifest.cost_code)
        project_type = classify_project_type(manifest.remarks, entry.project_type if entry else None)
        if project_type == UNCLASSIFIED:
            project_type = "Cargo"
        score, issues = self.scorer.score(
            QualityInput(
                when=manifest.manifest_date,
                vessel=manifest.vessel,
                location=manifest.offshore_location,
                location_resolved=known,
                parse_issues=manifest.parse_issues,
            )
        )
        return EnrichedManifest(
            record=manifest,
            cargo_type=classify_cargo(manifest),
            department=department,
            department_source=source,
            project_type=project_type,
            vessel_type=profile.vessel_type,
            company=profile.company,
            mapped_location=mapped,
            location_type=location_type,
            data_quality_score=score,
            data_quality_issues=issues + self._conflict_issues(manifest.cost_code),
            fingerprint=make_fingerprint({"source": "manifests", "record": asdict(manifest)}),
        )

    def enrich_bulk_transfer(self, transfer) -> EnrichedBulkTransfer:
        profile = self.vessels.classify(transfer.vessel)
        classified = classify_bulk_transfer(transfer, self.config.fuel_keywords)
        score, issues = self.scorer.score(
            QualityInput(
                when=transfer.start_date,
                vessel=transfer.vessel,
                parse_issues=transfer.parse_issues,
            )
        )
        return replace(
            classified,
            company=profile.company,
            vessel_type=profile.vessel_type,
            data_quality_score=score,
            data_quality_issues=issues,
        )

    def _map(self, func, records: list) -> list:
        if self.workers > 1 and len(records) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as executor:
                return list(executor.map(func, records))
        return [func(record) for record in records]

    # -- batch --------------------------------------------------------------

    def run(self, batch: BatchInput | dict) -> EnrichedDataset:
        sources = batch.as_sources() if isinstance(batch, BatchInput) else dict(batch)
        records, parse_metrics = parse_batch(sources)

        self.reconciler = self._new_reconciler()
        self.departments = DepartmentChain.default(self.reconciler)
        table = self.reconciler.build(records["cost_allocations"])

        events = [e for group in self._map(self.enrich_event, records["voyage_events"]) for e in group]
        manifests = self._map(self.enrich_manifest, records["manifests"])
        bulk = self._map(self.enrich_bulk_transfer, records["bulk_transfers"])

        visits = visits_from_events(records["voyage_events"]) + visits_from_manifests(records["manifests"])
        voyage_list = self.voyage_resolver.resolve_summaries(records["voyage_summaries"])
        voyages = self.voyage_resolver.merge(self.voyage_resolver.resolve(visits), voyage_list)
        segments = [s for v in voyages for s in self.voyage_resolver.segments(v)]

        # Without a ledger there are no drilling codes to restrict to
        drilling_lcs = {code for code, entry in table.items() if entry.department == "Drilling"} if table else None
        lifts_points = lifts_per_hour_points(events, manifests, drilling_lcs)
        cost_points = cost_per_ton_points(events, manifests)
        utilization = utilization_points(events, drilling_lcs)
        visits_points = visits_per_week_points(events, manifests, drilling_lcs)
        variance = {
            "lifts_per_hour": summarize(p.value for p in lifts_points),
            "cost_per_ton": summarize((p.value for p in cost_points), clamp_lower=True),
            "event_hours": summarize((p.value for p in event_hours_points(events)), clamp_lower=True),
            "voyage_duration_hours": summarize(
                (p.value for p in voyage_duration_points(voyages)), clamp_lower=True
            ),
            "utilization_pct": summarize((p.value for p in utilization), clamp_lower=True),
            "waiting_hours": summarize(
                (p.value for p in waiting_hours_points(events, drilling_lcs)), clamp_lower=True
            ),
            "visits_per_week": summarize((p.value for p in visits_points), clamp_lower=True),
        }
        variance_by_vessel = {
            "lifts_per_hour": summarize_by(lifts_points, "vessel"),
            "cost_per_ton": summarize_by(cost_points, "vessel", clamp_lower=True),
            "utilization_pct": summarize_by(utilization, "vessel", clamp_lower=True),
            "visits_per_week": summarize_by(visits_points, "vessel", clamp_lower=True),
        }
        cost_summary = summarize_costs(events)
        budget_rows = budget_vs_actual(table.budget_lines, events)

        summary = self._summarize(
            sources, parse_metrics, events, manifests, bulk, table, voyages, voyage_list, cost_summary
        )
        logger.info(
            "Batch %s: %d events, %d manifests, %d bulk transfers, %d voyages, %d flagged, cost %.2f",
            summary.batch_fingerprint[:12],
            len(events),
            len(manifests),
            len(bulk),
            summary.voyage_count,
            summary.flagged,
            cost_summary.total_cost,
        )
        return EnrichedDataset(
            voyage_events=tuple(events),
            manifests=tuple(manifests),
            bulk_transfers=tuple(bulk),
            voyages=tuple(voyages),
            voyage_list=tuple(voyage_list),
            segments=tuple(segments),
            allocations=table,
            conflicts=tuple(table.conflicts),
            variance=variance,
            variance_by_vessel=variance_by_vessel,
            cost_summary=cost_summary,
            budget_vs_actual=tuple(budget_rows),
            summary=summary,
        )

    def _summarize(self, sources, parse_metrics, events, manifests, bulk, table, voyages, voyage_list, cost_summary) -> ProcessingSummary:
        def counts(source: str, ingested: int, classified: int, flagged: int) -> SourceCounts:
            return SourceCounts(
                ingested=ingested,
                classified=classified,
                flagged=flagged,
                date_issues=parse_metrics[source]["date_issue_count"],
            )

        department_breakdown: dict[str, int] = {}
        activity_breakdown: dict[str, int] = {}
        for event in events:
            department_breakdown[event.department] = department_breakdown.get(event.department, 0) + 1
            activity_breakdown[event.activity_category] = activity_breakdown.get(event.activity_category, 0) + 1

        allocation_rows = parse_metrics["cost_allocations"]["row_count"]
        return ProcessingSummary(
            counts={
                "voyage_events": counts(
                    "voyage_events",
                    parse_metrics["voyage_events"]["row_count"],
                    sum(1 for e in events if e.department != UNASSIGNED),
                    sum(1 for e in events if _flagged(e)),
                ),
                "manifests": counts(
                    "manifests",
                    len(manifests),
                    sum(1 for m in manifests if m.department != UNASSIGNED),
                    sum(1 for m in manifests if _flagged(m)),
                ),
                "cost_allocations": counts(
                    "cost_allocations",
                    allocation_rows,
                    sum(1 for entry in table.values() if entry.department),
                    len(table.issues),
                ),
                "voyage_summaries": counts(
                    "voyage_summaries",
                    parse_metrics["voyage_summaries"]["row_count"],
                    len(voyage_list),
                    parse_metrics["voyage_summaries"]["row_count"] - len(voyage_list),
                ),
                "bulk_transfers": counts(
                    "bulk_transfers",
                    len(bulk),
                    sum(1 for b in bulk if b.fluid_specific_type is not None),
                    sum(1 for b in bulk if _flagged(b)),
                ),
            },
            quality_distribution=distribution(
                [e.data_quality_score for e in events]
                + [m.data_quality_score for m in manifests]
                + [b.data_quality_score for b in bulk]
            ),
            department_breakdown=dict(sorted(department_breakdown.items())),
            activity_breakdown=dict(sorted(activity_breakdown.items())),
            voyage_count=len(voyages),
            allocation_code_count=len(table),
            allocation_conflict_count=len(table.conflicts),
            allocation_issue_count=len(table.issues),
            total_vessel_cost=cost_summary.total_cost,
            batch_fingerprint=batch_fingerprint(sources),
        )


def run(batch: BatchInput | dict, config: PipelineConfig | None = None, workers: int | None = None) -> EnrichedDataset:
    """Run one batch; any OffshoreIntelError aborts it and nothing is returned."""
    pipeline = OffshorePipeline(config or DEFAULT_CONFIG, workers=workers)
    try:
        return pipeline.run(batch)
    except OffshoreIntelError as exc:
        logger.error("Batch aborted (%s): %s", exc.kind, exc)
        raise
