from dataclasses import asdict, dataclass, field


@dataclass
class SourceCounts:
    ingested: int = 0
    classified: int = 0
    flagged: int = 0
    date_issues: int = 0


@dataclass
class ProcessingSummary:
    counts: dict[str, SourceCounts] = field(default_factory=dict)
    quality_distribution: dict[str, int] = field(default_factory=dict)
    department_breakdown: dict[str, int] = field(default_factory=dict)
    activity_breakdown: dict[str, int] = field(default_factory=dict)
    voyage_count: int = 0
    allocation_code_count: int = 0
    allocation_conflict_count: int = 0
    allocation_issue_count: int = 0
    total_vessel_cost: float = 0.0
    batch_fingerprint: str = ""

    @property
    def ingested(self) -> int:
        return sum(c.ingested for c in self.counts.values())

    @property
    def flagged(self) -> int:
        return sum(c.flagged for c in self.counts.values())

    def to_dict(self) -> dict:
        return asdict(self)
