"""Tests for activity, department, project-type, fluid, cargo and vessel classification."""

import pytest

from offshore_intel.allocation import CostAllocationReconciler
from offshore_intel.classification import (
    NON_PRODUCTIVE,
    PRODUCTIVE,
    UNASSIGNED,
    VESSEL_TYPE_MAP,
    DepartmentChain,
    EventContext,
    VesselClassifier,
    classify_activity,
    classify_bulk_transfer,
    classify_cargo,
    classify_fluid,
    classify_project_type,
    normalize_vessel_type,
    to_barrels,
)
from offshore_intel.config import DEFAULT_CONFIG
from offshore_intel.locations import default_resolver
from offshore_intel.sources.parser import BulkTransfer, ManifestLine


def _manifest(**overrides):
    fields = {
        "vessel": "Example I",
        "voyage_number": "1",
        "manifest_number": "M-1",
        "manifest_date": None,
        "origin": "Fourchon",
        "offshore_location": "Atlantis",
        "cost_code": "",
        "deck_tons": 0.0,
        "rt_tons": 0.0,
        "lifts": 0.0,
        "wet_bulk_bbls": 0.0,
        "wet_bulk_gals": 0.0,
        "deck_sqft": 0.0,
        "remarks": "",
        "row_index": 0,
    }
    fields.update(overrides)
    return ManifestLine(**fields)


def _transfer(**overrides):
    fields = {
        "vessel": "Example I",
        "port_type": "rig",
        "start_date": None,
        "action": "Discharge",
        "quantity": 420.0,
        "unit": "bbls",
        "bulk_type": "",
        "bulk_description": "",
        "at_port": "Atlantis",
        "destination_port": "",
        "remarks": "",
        "tank": "",
        "row_index": 0,
    }
    fields.update(overrides)
    return BulkTransfer(**fields)


@pytest.fixture(scope="module")
def chain():
    reconciler = CostAllocationReconciler(default_resolver(), DEFAULT_CONFIG.fourchon_logistics_lcs)
    return DepartmentChain.default(reconciler)


class TestActivity:
    def test_waiting_on_weather_is_non_productive(self):
        assert classify_activity("Standby", "Waiting on Weather") == NON_PRODUCTIVE

    def test_remarks_count(self):
        assert classify_activity("Cargo Ops", "Offload", "delay due to crane breakdown") == NON_PRODUCTIVE

    def test_loading_is_productive(self):
        assert classify_activity("Cargo Ops", "Loading") == PRODUCTIVE

    def test_case_insensitive(self):
        assert classify_activity("", "WEATHER HOLD") == NON_PRODUCTIVE

    def test_idempotent(self):
        results = {classify_activity("Standby", "Waiting on Weather") for _ in range(5)}
        assert results == {NON_PRODUCTIVE}

    def test_custom_keywords(self):
        assert classify_activity("", "Crew change", npt_keywords=("crew",)) == NON_PRODUCTIVE


class TestDepartmentChain:
    def test_lc_pattern_for_fourchon_code(self, chain):
        assert chain.resolve(EventContext(code="7777")) == ("Logistics", "lc_pattern")

    def test_lc_pattern_for_production_code(self, chain):
        assert chain.resolve(EventContext(code="10099")) == ("Production", "lc_pattern")

    def test_description_before_location(self, chain):
        ctx = EventContext(description="Run casing", location="Atlantis")
        assert chain.resolve(ctx) == ("Drilling", "description")

    def test_location(self, chain):
        assert chain.resolve(EventContext(location="Ocean BlackLion")) == ("Drilling", "location")

    def test_integrated_location_falls_to_vocabulary(self, chain):
        assert chain.resolve(EventContext(location="Thunder Horse")) == ("Production", "location")

    def test_unassigned(self, chain):
        assert chain.resolve(EventContext(location="Nowhere")) == (UNASSIGNED, None)
        assert chain(EventContext()) == UNASSIGNED

    def test_insert_new_strategy_first(self, chain):
        extended = chain.insert(0, "always_marine", lambda ctx: "Logistics")
        assert extended.resolve(EventContext(code="10099")) == ("Logistics", "always_marine")
        # the default chain is left as it was
        assert chain.resolve(EventContext(code="10099"))[1] == "lc_pattern"


class TestProjectType:
    def test_explicit_value_wins(self):
        assert classify_project_type("drill pipe", "completions") == "Completions"

    def test_p_and_a_beats_drilling(self):
        assert classify_project_type("Plug and abandon, drill out cement") == "P&A"

    def test_completions_beats_drilling(self):
        assert classify_project_type("Completion fluid for drilling rig") == "Completions"

    def test_unclassified(self):
        assert classify_project_type("misc") == "Unclassified"
        assert classify_project_type(None) == "Unclassified"


class TestFluids:
    def test_fuel_checked_first(self):
        fluid = classify_fluid("Diesel", "production chemical tote")
        assert (fluid.category, fluid.specific_type, fluid.is_fuel) == ("Other", "Fuel", True)
        assert not fluid.counts_toward_production_volume

    def test_drilling_mud(self):
        assert classify_fluid("SBM", "").specific_type == "SBM"
        assert classify_fluid("", "Synthetic based mud").category == "Drilling"

    def test_completion_brine(self):
        fluid = classify_fluid("CaBr2", "")
        assert (fluid.category, fluid.specific_type) == ("Completion", "Calcium Bromide")

    def test_production_chemical(self):
        assert classify_fluid("Methanol", "").category == "Production"
        assert classify_fluid("Chemical", "").category == "Production"

    def test_water(self):
        assert classify_fluid("Potable Water", "").specific_type == "Water"

    def test_gallons_to_barrels(self):
        assert to_barrels(420.0, "gals") == 10.0
        assert to_barrels(420.0, "bbls") == 420.0

    def test_bulk_transfer(self):
        enriched = classify_bulk_transfer(_transfer(bulk_type="Methanol", unit="gals", action="Return to base"))
        assert enriched.fluid_category == "Production"
        assert enriched.volume_bbls == 10.0
        assert enriched.is_return
        assert enriched.counts_toward_production_volume


class TestCargo:
    def test_deck_first(self):
        assert classify_cargo(_manifest(deck_tons=5.0, rt_tons=2.0)) == "Deck Cargo"

    def test_below_deck(self):
        assert classify_cargo(_manifest(rt_tons=2.0)) == "Below Deck Cargo"

    def test_liquid(self):
        assert classify_cargo(_manifest(wet_bulk_gals=100.0)) == "Liquid Bulk"

    def test_lifts_only(self):
        assert classify_cargo(_manifest(lifts=3.0)) == "Lift Only"

    def test_nothing(self):
        assert classify_cargo(_manifest()) == "Other/Mixed"


class TestVesselType:
    def test_specialty_and_support_are_msv(self):
        assert normalize_vessel_type("Specialty") == "MSV"
        assert normalize_vessel_type(" support ") == "MSV"

    def test_known_types(self):
        assert normalize_vessel_type("Fast Supply Vessel") == "FSV"
        assert normalize_vessel_type("AHTS") == "AHTS"

    def test_unknown(self):
        assert normalize_vessel_type("Barge") == "Unknown"
        assert normalize_vessel_type(None) == "Unknown"

    def test_map_keys_are_lowercase(self):
        assert all(key == key.lower() for key in VESSEL_TYPE_MAP)


class TestVesselClassifier:
    @pytest.fixture(scope="class")
    def vessels(self):
        return VesselClassifier(DEFAULT_CONFIG.fleet, DEFAULT_CONFIG.vessel_patterns)

    def test_fleet_match(self, vessels):
        profile = vessels.classify("  fast  giant ")
        assert (profile.name, profile.company, profile.vessel_type, profile.size_ft) == (
            "Fast Giant", "Edison Chouest Offshore", "FSV", 194.0,
        )
        assert profile.matched_by == "fleet"

    def test_pattern_match(self, vessels):
        profile = vessels.classify("HOS Warhorse")
        assert (profile.company, profile.vessel_type, profile.size_ft) == ("Hornbeck Offshore", "OSV", None)
        assert profile.matched_by == "pattern"

    def test_pattern_combines_company_and_type(self, vessels):
        profile = vessels.classify("Chouest FSV 12")
        assert (profile.company, profile.vessel_type) == ("Edison Chouest Offshore", "FSV")

    def test_unknown_vessel(self, vessels):
        profile = vessels.classify("Example I")
        assert (profile.company, profile.vessel_type, profile.size_ft) == (UNASSIGNED, "Unknown", None)
