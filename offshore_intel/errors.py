"""Batch-level failures raised by the enrichment core.

Per-record problems never raise; they degrade to defaults and are reported as
data-quality issues. The exceptions below abort the whole batch so callers can
tell "fix the input" apart from "fix the configuration".
"""


class OffshoreIntelError(Exception):
    """Base class for batch-level failures."""

    kind = "error"


class ParseFailure(OffshoreIntelError):
    """The batch input cannot be parsed at all (empty batch, non-mapping rows)."""

    kind = "parse_failure"


class ReconciliationConflict(OffshoreIntelError):
    """Conflicting cost-allocation codes in strict mode."""

    kind = "reconciliation_conflict"

    def __init__(self, message: str, conflicts=None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])


class MissingRateTable(OffshoreIntelError):
    """No contract rate covers a required size tier or date."""

    kind = "missing_rate_table"


class ConfigurationError(OffshoreIntelError):
    """The configuration file is unreadable or a section is malformed."""

    kind = "configuration"
