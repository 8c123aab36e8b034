"""Supabase sink for enriched batches."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from supabase import create_client

from offshore_intel.fingerprint import make_fingerprint

logger = logging.getLogger(__name__)

# dataset key -> table
TABLES = {
    "voyage_events": "voyage_events",
    "vessel_manifests": "vessel_manifests",
    "voyages": "voyages",
    "bulk_actions": "bulk_actions",
    "cost_allocations": "cost_allocations",
}

CHUNK_SIZE = 500


def _client():
    load_dotenv()
    return create_client(os.environ["SUPABASE_URL"], os.environ["SUPABASE_KEY"])


class SupabaseSink:
    def __init__(self, client=None, chunk_size: int = CHUNK_SIZE):
        self._client = client
        self.chunk_size = chunk_size

    @property
    def client(self):
        if self._client is None:
            self._client = _client()
        return self._client

    def _upsert(self, table: str, rows: list[dict]) -> int:
        written = 0
        for start in range(0, len(rows), self.chunk_size):
            chunk = rows[start : start + self.chunk_size]
            self.client.table(table).upsert(chunk, on_conflict="fingerprint").execute()
            written += len(chunk)
        return written

    def write(self, dataset) -> dict[str, int]:
        """Upsert every enriched table; re-running a batch rewrites the same rows.

        Returns rows written per table. Failures are logged and re-raised;
        tables already written stay written.
        """
        records = dataset.to_records()
        counts: dict[str, int] = {}
        for key, table in TABLES.items():
            rows = []
            for row in records.get(key, []):
                if "fingerprint" not in row:
                    row = {**row, "fingerprint": make_fingerprint(row)}
                rows.append(row)
            if not rows:
                counts[table] = 0
                continue
            try:
                counts[table] = self._upsert(table, rows)
            except Exception:
                logger.exception("Failed to upsert %d row(s) into %s", len(rows), table)
                raise
            logger.info("Upserted %d row(s) into %s", counts[table], table)
        return counts
