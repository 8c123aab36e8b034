"""Keyword vocabularies for text-based department and project-type inference.

Vocabularies are ordered: the first department whose keyword list matches
wins. Matching is case-insensitive and anchored at the start of a word, so
"prod" matches "production" but "rig" does not match "origin".
"""

import re
from functools import lru_cache

# Free-text descriptions and activity names (parent event + event).
DESCRIPTION_VOCABULARY: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Drilling", (
        "drill", "completion", "workover", "rig", "spud", "bha", "mud", "cementing",
        "casing", "perforation", "fracturing", "logging", "wireline", "coil", "well",
        "abandon", "plug",
    )),
    ("Production", (
        "production", "prod", "facility", "platform", "process", "separation",
        "compression", "pipeline", "manifold", "flowline", "riser", "subsea",
        "umbilical", "export", "condensate", "hydrocarbon", "crude", "treating",
        "pdq", "pq", "atlantis", "na kika", "mad dog", "thunder horse", "argos",
    )),
    ("Logistics", (
        "logistics", "fourchon", "supply", "port", "base", "transport", "cargo",
        "freight", "delivery", "loading", "unloading", "warehouse", "charter",
    )),
)

# Location text that the facility table could not resolve.
LOCATION_VOCABULARY: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Drilling", (
        "drilling", "drill", "rig", "blackhornet", "blackhawk", "blacklion", "blacktip",
        "stena", "ocean", "deepwater", "invictus", "island", "venture",
    )),
    ("Production", (
        "atlantis", "na kika", "mad dog", "thunder horse", "production", "prod",
        "pdq", "pq", "facility", "platform", "argos",
    )),
    ("Logistics", (
        "fourchon", "port", "base", "supply", "houston", "cameron", "venice",
        "galveston", "intracoastal", "dock", "wharf", "terminal",
    )),
)

# Checked in this order; P&A beats Completions beats Drilling.
PROJECT_TYPE_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("P&A", ("p&a", "plug and abandon", "abandon", "plug")),
    ("Completions", (
        "completion", "fracturing", "frac", "perforation", "workover", "stimulation",
        "acidizing",
    )),
    ("Drilling", (
        "drill", "spud", "cementing", "casing", "mud", "logging", "wireline", "bha",
    )),
    ("Production", (
        "production", "facility", "platform", "processing", "separation", "export",
    )),
    ("Personnel", ("crew", "personnel", "passenger", "pob")),
    ("Cargo", ("cargo", "supply", "freight")),
)

PROJECT_TYPES = ("Drilling", "Completions", "Production", "P&A", "Personnel", "Cargo", "Unclassified")

# Explicit project-type cells use many spellings.
PROJECT_TYPE_ALIASES: dict[str, str] = {
    "drilling": "Drilling",
    "drill": "Drilling",
    "completion": "Completions",
    "completions": "Completions",
    "production": "Production",
    "prod": "Production",
    "p&a": "P&A",
    "p & a": "P&A",
    "plug and abandon": "P&A",
    "plug & abandon": "P&A",
    "abandonment": "P&A",
    "personnel": "Personnel",
    "crew": "Personnel",
    "cargo": "Cargo",
}

DEPARTMENT_ALIASES: dict[str, str] = {
    "drilling": "Drilling",
    "drill": "Drilling",
    "production": "Production",
    "prod": "Production",
    "logistics": "Logistics",
    "marine": "Logistics",
}


@lru_cache(maxsize=None)
def _pattern(keyword: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword))


def contains_keyword(text: str, keyword: str) -> bool:
    return bool(_pattern(keyword).search(text))


def first_match(text: str | None, vocabulary) -> str | None:
    """Return the label of the first vocabulary entry with a keyword in text."""
    if not text:
        return None
    lowered = text.lower()
    for label, keywords in vocabulary:
        if any(contains_keyword(lowered, keyword) for keyword in keywords):
            return label
    return None


def normalize_department(value: str | None) -> str | None:
    if not value:
        return None
    return DEPARTMENT_ALIASES.get(value.strip().lower())


def normalize_project_type(value: str | None) -> str | None:
    if not value:
        return None
    lowered = value.strip().lower()
    if lowered in PROJECT_TYPE_ALIASES:
        return PROJECT_TYPE_ALIASES[lowered]
    for project_type in PROJECT_TYPES:
        if lowered == project_type.lower():
            return project_type
    return None
