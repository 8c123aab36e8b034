import json

import pandas as pd
import pytest

import offshore_intel.main as main_mod
from offshore_intel.errors import ParseFailure

EVENTS_CSV = """Vessel,Voyage #,Parent Event,Event,Location,Port Type,From,To,Hours,Cost Dedicated to
Example I,100,Marine,Waiting on Weather,Thunder Horse Prod,Rig,2024-03-10 06:00,2024-03-10 12:00,6,
Fast Giant,7,Marine,Offload,Atlantis,Rig,2024-03-11 08:00,2024-03-11 11:00,,9361
"""


@pytest.fixture
def events_csv(tmp_path):
    path = tmp_path / "events.csv"
    path.write_text(EVENTS_CSV, encoding="utf-8")
    return path


class _FailingSink:
    def __init__(self, *args, **kwargs):
        pass

    def write(self, dataset):
        raise RuntimeError("supabase down")


class TestReadTable:
    def test_csv_blanks_become_none(self, events_csv):
        rows = main_mod.read_table(events_csv)
        assert len(rows) == 2
        assert rows[0]["Cost Dedicated to"] is None
        assert rows[1]["Hours"] is None
        assert rows[1]["Vessel"] == "Fast Giant"

    def test_excel(self, tmp_path):
        path = tmp_path / "events.xlsx"
        pd.DataFrame([{"Vessel": "Example I", "Hours": 4}]).to_excel(path, index=False, engine="openpyxl")
        assert main_mod.read_table(path) == [{"Vessel": "Example I", "Hours": 4}]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ParseFailure):
            main_mod.read_table(tmp_path / "nope.csv")


class TestMain:
    def test_writes_outputs(self, events_csv, tmp_path):
        out = tmp_path / "out"
        code = main_mod.main(["--voyage-events", str(events_csv), "--output-dir", str(out)])
        assert code == 0

        events = pd.read_csv(out / "voyage_events.csv")
        assert list(events["department"]) == ["Production", "Production"]
        assert list(events["activity_category"]) == ["Non-Productive", "Productive"]
        # hours derived from From/To when the cell is blank
        assert events["final_hours"].tolist() == [6.0, 3.0]

        summary = json.loads((out / "summary.json").read_text(encoding="utf-8"))
        assert summary["counts"]["voyage_events"]["ingested"] == 2
        assert summary["voyage_count"] == 2

    def test_missing_input_returns_1(self, tmp_path):
        assert main_mod.main(["--voyage-events", str(tmp_path / "missing.csv")]) == 1

    def test_no_input_returns_1(self):
        assert main_mod.main([]) == 1

    def test_bad_config_returns_1(self, events_csv, tmp_path, caplog):
        config = tmp_path / "config.json"
        config.write_text(
            json.dumps({"rate_table": {"tiers": [{"name": "all", "periods": [{"start": "2024-01-01", "hourly_rate": 900}]}]}}),
            encoding="utf-8",
        )
        assert main_mod.main(["--voyage-events", str(events_csv), "--config", str(config)]) == 1
        assert "configuration" in caplog.text

    def test_sink_failure_is_warning_by_default(self, events_csv, monkeypatch):
        monkeypatch.setattr(main_mod, "SupabaseSink", _FailingSink)
        assert main_mod.main(["--voyage-events", str(events_csv), "--sink"]) == 0

    def test_sink_failure_raises_when_required(self, events_csv, monkeypatch):
        monkeypatch.setattr(main_mod, "SupabaseSink", _FailingSink)
        with pytest.raises(RuntimeError, match="supabase down"):
            main_mod.main(["--voyage-events", str(events_csv), "--sink", "--sink-required"])

    def test_workers_from_env(self, events_csv, monkeypatch):
        seen = {}

        class _SpyPipeline(main_mod.OffshorePipeline):
            def __init__(self, config, **kwargs):
                seen["workers"] = config.workers
                super().__init__(config, **kwargs)

        monkeypatch.setattr(main_mod, "OffshorePipeline", _SpyPipeline)
        monkeypatch.setenv("OFFSHORE_INTEL_WORKERS", "3")
        assert main_mod.main(["--voyage-events", str(events_csv)]) == 0
        assert seen["workers"] == 3

    def test_strict_flag(self, events_csv, tmp_path):
        ledger = tmp_path / "ledger.csv"
        ledger.write_text(
            "LC Number,Department,Month-Year,Alloc (days)\n"
            "4001,Drilling,Mar-2024,2\n"
            "4001,Production,Apr-2024,1\n",
            encoding="utf-8",
        )
        args = ["--voyage-events", str(events_csv), "--cost-allocations", str(ledger)]
        assert main_mod.main(args) == 0
        assert main_mod.main(args + ["--strict"]) == 1
