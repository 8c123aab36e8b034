import os

import pytest

from offshore_intel.pipeline import BatchInput, run
from offshore_intel.sink import TABLES, SupabaseSink


class _Resp:
    def __init__(self, data=None):
        self.data = data or []


class _TableOp:
    def __init__(self, owner, name):
        self._owner = owner
        self._name = name
        self._rows = None

    def upsert(self, rows, on_conflict=None, **_kwargs):
        self._rows = rows
        self._owner.upserts.append((self._name, list(rows), on_conflict))
        return self

    def execute(self):
        if self._name in self._owner.fail_on:
            raise RuntimeError(f"{self._name} unavailable")
        return _Resp(self._rows)


class _FakeSupabase:
    def __init__(self, fail_on=()):
        self.fail_on = set(fail_on)
        self.upserts = []

    def table(self, name):
        return _TableOp(self, name)


def _dataset():
    rows = [
        {
            "Vessel": "Fast Giant",
            "Voyage #": "7",
            "Event": "Offload",
            "Location": "Atlantis",
            "From": f"2024-04-0{day} 08:00",
            "Hours": 3,
            "Cost Dedicated to": "9361",
        }
        for day in range(1, 4)
    ]
    return run(BatchInput(voyage_events=rows))


def test_write_upserts_on_fingerprint():
    fake = _FakeSupabase()
    counts = SupabaseSink(client=fake).write(_dataset())

    assert counts["voyage_events"] == 3
    assert counts["vessel_manifests"] == 0
    assert counts["voyages"] == 1
    assert set(counts) == set(TABLES.values())
    assert all(on_conflict == "fingerprint" for _, _, on_conflict in fake.upserts)
    for _, rows, _ in fake.upserts:
        assert all(len(row["fingerprint"]) == 64 for row in rows)


def test_empty_tables_are_not_sent():
    fake = _FakeSupabase()
    SupabaseSink(client=fake).write(_dataset())
    assert {name for name, _, _ in fake.upserts} == {"voyage_events", "voyages"}


def test_rows_chunked():
    fake = _FakeSupabase()
    SupabaseSink(client=fake, chunk_size=2).write(_dataset())
    event_chunks = [rows for name, rows, _ in fake.upserts if name == "voyage_events"]
    assert [len(chunk) for chunk in event_chunks] == [2, 1]


def test_rewrite_sends_identical_rows():
    first, second = _FakeSupabase(), _FakeSupabase()
    dataset = _dataset()
    SupabaseSink(client=first).write(dataset)
    SupabaseSink(client=second).write(dataset)
    assert first.upserts == second.upserts


def test_failure_propagates():
    fake = _FakeSupabase(fail_on={"voyages"})
    with pytest.raises(RuntimeError, match="voyages unavailable"):
        SupabaseSink(client=fake).write(_dataset())
    # tables before the failing one were already written
    assert fake.upserts[0][0] == "voyage_events"


@pytest.mark.live
def test_live_write():
    """Round-trip one small batch against a real project (needs real SUPABASE_URL/KEY)."""
    if os.environ.get("SUPABASE_URL", "").startswith("https://test."):
        pytest.skip("no real Supabase credentials")
    counts = SupabaseSink().write(_dataset())
    assert counts["voyage_events"] == 3
