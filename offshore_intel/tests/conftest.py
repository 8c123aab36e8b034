import os
import sys

import pytest

# Repository root on the path so `offshore_intel.*` imports resolve without an install
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

# Dummy credentials so the sink can build a client without a real Supabase project
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-key-not-real")


def pytest_configure(config):
    config.addinivalue_line("markers", "live: writes to a real Supabase project (skipped by default, run with: pytest -m live)")


def pytest_collection_modifyitems(config, items):
    if config.getoption("-m") and "live" in config.getoption("-m"):
        return
    skip_live = pytest.mark.skip(reason="live tests skipped by default (run with: pytest -m live)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)
