"""Default reference tables for the Gulf of Mexico offshore fleet.

These are plain data. config.build_config() turns them into the frozen
config objects consumed by the resolver, classifiers and cost calculator, and
a JSON config file can replace any of them without code changes.
"""

# Facility master table. "aliases" are extra spellings seen in exports;
# "keywords" disambiguate facilities that share a base name.
FACILITIES: list[dict] = [
    # Production
    {"name": "Argos", "display_name": "Argos", "facility_type": "Production",
     "aliases": ["argos platform"], "production_lcs": ["9999"]},
    {"name": "Atlantis PQ", "display_name": "Atlantis", "facility_type": "Production",
     "aliases": ["atlantis", "atlantis pq"], "production_lcs": ["9361"]},
    {"name": "Na Kika", "display_name": "Na Kika", "facility_type": "Production",
     "aliases": ["nakika", "na-kika"], "production_lcs": ["9359"]},
    {"name": "Thunder Horse Prod", "display_name": "Thunder Horse (Production)",
     "facility_type": "Production", "parent_facility": "Thunder Horse PDQ",
     "aliases": ["thunder horse production", "thr prod"], "keywords": ["prod"],
     "production_lcs": ["9360", "10099"]},
    {"name": "Mad Dog Prod", "display_name": "Mad Dog (Production)",
     "facility_type": "Production", "parent_facility": "Mad Dog",
     "aliases": ["mad dog production", "maddog prod"], "keywords": ["prod"],
     "production_lcs": ["9358", "10097"]},
    # Drilling
    {"name": "Thunder Horse Drilling", "display_name": "Thunder Horse (Drilling)",
     "facility_type": "Drilling", "parent_facility": "Thunder Horse PDQ",
     "aliases": ["thunder horse drill", "thr drilling"], "keywords": ["drill"]},
    {"name": "Mad Dog Drilling", "display_name": "Mad Dog (Drilling)",
     "facility_type": "Drilling", "parent_facility": "Mad Dog",
     "aliases": ["mad dog drill", "maddog drilling"], "keywords": ["drill"]},
    {"name": "Ocean Blackhornet", "display_name": "Ocean BlackHornet", "facility_type": "Drilling",
     "aliases": ["ocean black hornet", "blackhornet", "black hornet"]},
    {"name": "Ocean BlackLion", "display_name": "Ocean BlackLion", "facility_type": "Drilling",
     "aliases": ["ocean black lion", "blacklion", "black lion"]},
    {"name": "Ocean Blacktip", "display_name": "Ocean BlackTip", "facility_type": "Drilling",
     "aliases": ["ocean black tip", "blacktip"]},
    {"name": "Deepwater Invictus", "display_name": "Deepwater Invictus", "facility_type": "Drilling",
     "aliases": ["invictus", "dw invictus"]},
    {"name": "Island Venture", "display_name": "Island Venture", "facility_type": "Drilling",
     "aliases": []},
    {"name": "Stena IceMAX", "display_name": "Stena IceMAX", "facility_type": "Drilling",
     "aliases": ["stena ice max", "icemax", "stena icemax"]},
    {"name": "Auriga", "display_name": "Auriga", "facility_type": "Drilling", "aliases": []},
    {"name": "Island Intervention", "display_name": "Island Intervention",
     "facility_type": "Drilling", "aliases": []},
    {"name": "C-Constructor", "display_name": "C-Constructor", "facility_type": "Drilling",
     "aliases": ["c constructor"]},
    # Integrated (drilling and production on one installation)
    {"name": "Thunder Horse PDQ", "display_name": "Thunder Horse (Drill/Prod)",
     "facility_type": "Integrated", "aliases": ["thunder horse", "thunderhorse", "thr", "th pdq"]},
    {"name": "Mad Dog", "display_name": "Mad Dog (Drill/Prod)", "facility_type": "Integrated",
     "aliases": ["maddog", "mad dog spar"]},
    # Shore bases
    {"name": "Fourchon", "display_name": "Port Fourchon", "facility_type": "Logistics",
     "aliases": ["port fourchon", "fourchon base", "c-port", "cport"]},
    {"name": "Venice", "display_name": "Venice Base", "facility_type": "Logistics",
     "aliases": ["venice base", "port of venice"]},
    {"name": "Galveston", "display_name": "Galveston", "facility_type": "Logistics",
     "aliases": ["port of galveston"]},
]

# Cost codes that belong to the supply base, whatever the cost table says.
FOURCHON_LOGISTICS_LCS: list[str] = ["999", "333", "7777", "8888"]

# Activity text that marks non-productive time.
NPT_KEYWORDS: list[str] = [
    "waiting",
    "delay",
    "breakdown",
    "weather",
    "standby",
    "equipment failure",
    "equipment problems",
    "mechanical problems",
    "port or supply base closed",
]

# Fuel transfers are not productive cargo.
FUEL_KEYWORDS: list[str] = ["diesel", "gas oil", "marine gas oil", "mgo", "fuel"]

# Contract rates in USD per hour, by vessel size tier. Date ranges are
# inclusive and must be contiguous within a tier.
RATE_TABLE: dict = {
    "support_multiplier": 0.8,
    "support_vessel_types": ["FSV"],
    "default_size_ft": 250,
    "tiers": [
        {"name": "up to 200ft", "max_size_ft": 200, "periods": [
            {"start": "2023-01-01", "end": "2025-03-31", "hourly_rate": 800.0,
             "description": "Jan 2023 - Mar 2025 Rate"},
            {"start": "2025-04-01", "end": "2027-12-31", "hourly_rate": 915.0,
             "description": "Apr 2025 onward Rate"},
        ]},
        {"name": "200-250ft", "max_size_ft": 250, "periods": [
            {"start": "2023-01-01", "end": "2025-03-31", "hourly_rate": 1000.0,
             "description": "Jan 2023 - Mar 2025 Rate"},
            {"start": "2025-04-01", "end": "2027-12-31", "hourly_rate": 1145.0,
             "description": "Apr 2025 onward Rate"},
        ]},
        {"name": "250-300ft", "max_size_ft": 300, "periods": [
            {"start": "2023-01-01", "end": "2025-03-31", "hourly_rate": 1200.0,
             "description": "Jan 2023 - Mar 2025 Rate"},
            {"start": "2025-04-01", "end": "2027-12-31", "hourly_rate": 1375.0,
             "description": "Apr 2025 onward Rate"},
        ]},
        {"name": "over 300ft", "max_size_ft": None, "periods": [
            {"start": "2023-01-01", "end": "2025-03-31", "hourly_rate": 1500.0,
             "description": "Jan 2023 - Mar 2025 Rate"},
            {"start": "2025-04-01", "end": "2027-12-31", "hourly_rate": 1720.0,
             "description": "Apr 2025 onward Rate"},
        ]},
    ],
}

# Known fleet. Vessel classes follow the contract categories
# (OSV/FSV/AHTS/PSV/MSV); specialty and lab vessels are MSV.
FLEET: list[dict] = [
    {"name": "Amber", "company": "Edison Chouest Offshore", "size_ft": 280, "vessel_type": "OSV"},
    {"name": "Cajun IV", "company": "Jackson Offshore", "size_ft": 210, "vessel_type": "FSV"},
    {"name": "Charlie Comeaux", "company": "Edison Chouest Offshore", "size_ft": 299, "vessel_type": "OSV"},
    {"name": "Claire Candies", "company": "Otto Candies", "size_ft": 282, "vessel_type": "OSV"},
    {"name": "Dauphin Island", "company": "Edison Chouest Offshore", "size_ft": 312, "vessel_type": "OSV"},
    {"name": "Fantasy Island", "company": "Edison Chouest Offshore", "size_ft": 312, "vessel_type": "MSV"},
    {"name": "Fast Giant", "company": "Edison Chouest Offshore", "size_ft": 194, "vessel_type": "FSV"},
    {"name": "Fast Goliath", "company": "Edison Chouest Offshore", "size_ft": 194, "vessel_type": "FSV"},
    {"name": "Fast Hauler", "company": "Edison Chouest Offshore", "size_ft": 194, "vessel_type": "FSV"},
    {"name": "Fast Leopard", "company": "Edison Chouest Offshore", "size_ft": 201, "vessel_type": "FSV"},
    {"name": "Fast Lion", "company": "Edison Chouest Offshore", "size_ft": 190, "vessel_type": "FSV"},
    {"name": "Fast Tiger", "company": "Edison Chouest Offshore", "size_ft": 196, "vessel_type": "FSV"},
    {"name": "Gibson Lab", "company": "Laborde Marine", "size_ft": 240, "vessel_type": "MSV"},
    {"name": "Harvey Carrier", "company": "Harvey Gulf", "size_ft": 280, "vessel_type": "OSV"},
    {"name": "Harvey Champion", "company": "Harvey Gulf", "size_ft": 310, "vessel_type": "OSV"},
    {"name": "Harvey Freedom", "company": "Harvey Gulf", "size_ft": 310, "vessel_type": "OSV"},
    {"name": "Harvey Power", "company": "Harvey Gulf", "size_ft": 310, "vessel_type": "OSV"},
    {"name": "Harvey Provider", "company": "Harvey Gulf", "size_ft": 240, "vessel_type": "MSV"},
    {"name": "Harvey Supporter", "company": "Harvey Gulf", "size_ft": 310, "vessel_type": "OSV"},
    {"name": "HOS Black Foot", "company": "Hornbeck Offshore", "size_ft": 310, "vessel_type": "OSV"},
    {"name": "HOS Blackhawk", "company": "Hornbeck Offshore", "size_ft": 280, "vessel_type": "OSV"},
    {"name": "HOS Commander", "company": "Hornbeck Offshore", "size_ft": 320, "vessel_type": "OSV"},
    {"name": "HOS Mauser", "company": "Hornbeck Offshore", "size_ft": 280, "vessel_type": "OSV"},
    {"name": "HOS Panther", "company": "Hornbeck Offshore", "size_ft": 280, "vessel_type": "OSV"},
    {"name": "HOS Ruger", "company": "Hornbeck Offshore", "size_ft": 280, "vessel_type": "OSV"},
    {"name": "Lightning", "company": "Jackson Offshore", "size_ft": 252, "vessel_type": "OSV"},
    {"name": "Lucy", "company": "Edison Chouest Offshore", "size_ft": 270, "vessel_type": "OSV"},
    {"name": "Millie", "company": "Edison Chouest Offshore", "size_ft": 298, "vessel_type": "OSV"},
    {"name": "Pelican Island", "company": "Edison Chouest Offshore", "size_ft": 312, "vessel_type": "OSV"},
    {"name": "Persistence Lab", "company": "Laborde Marine", "size_ft": 150, "vessel_type": "MSV"},
    {"name": "Regulus", "company": "Tidewater Marine", "size_ft": 272, "vessel_type": "OSV"},
    {"name": "Ship Island", "company": "Edison Chouest Offshore", "size_ft": 312, "vessel_type": "OSV"},
    {"name": "Squall", "company": "Jackson Offshore", "size_ft": 252, "vessel_type": "OSV"},
    {"name": "Tucker Candies", "company": "Otto Candies", "size_ft": 290, "vessel_type": "OSV"},
]

# Name-token fallbacks for vessels missing from FLEET. Checked in order.
VESSEL_NAME_PATTERNS: list[dict] = [
    {"token": "hos", "company": "Hornbeck Offshore", "vessel_type": "OSV"},
    {"token": "harvey", "company": "Harvey Gulf", "vessel_type": "OSV"},
    {"token": "chouest", "company": "Edison Chouest Offshore", "vessel_type": None},
    {"token": "candies", "company": "Otto Candies", "vessel_type": "OSV"},
    {"token": "seacor", "company": "Seacor Marine", "vessel_type": None},
    {"token": "jackson", "company": "Jackson Offshore", "vessel_type": None},
    {"token": "fast", "company": "Edison Chouest Offshore", "vessel_type": "FSV"},
    {"token": "fsv", "company": None, "vessel_type": "FSV"},
    {"token": "osv", "company": None, "vessel_type": "OSV"},
    {"token": "ahts", "company": None, "vessel_type": "AHTS"},
    {"token": "psv", "company": None, "vessel_type": "PSV"},
    {"token": "msv", "company": None, "vessel_type": "MSV"},
    {"token": "lab", "company": "Laborde Marine", "vessel_type": "MSV"},
]

# Deductions per violated rule. A weight of 0 switches the rule off; the
# location and date-window rules are off unless a config file enables them.
QUALITY: dict = {
    "weights": {
        "missing_date": 20,
        "missing_vessel": 15,
        "excessive_hours": 5,
        "negative_cost": 10,
        "suspicious_rate": 5,
        "missing_location": 0,
        "date_out_of_range": 0,
        "unresolved_location": 0,
    },
    "max_hours": 24.0,
    "min_daily_rate": 1000.0,
    "max_daily_rate": 100000.0,
    "min_year": 2020,
    "max_year": 2030,
}
