"""Master location resolver.

Maps the many spellings of a facility name found in the exports to one
canonical facility. Resolution order is exact name, alias, then containment;
anything left over is "Unknown" with facility type "Unclassified".

Thunder Horse and Mad Dog each exist as a drilling rig, a production
platform and an integrated parent. Containment matches on the shared base
name and lets the "drill"/"prod" keyword pick the variant; with neither
keyword the integrated parent wins.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from offshore_intel.config import DEFAULT_CONFIG, FacilityConfig, FacilityType
from offshore_intel.keywords import contains_keyword

logger = logging.getLogger(__name__)

# Suffix tokens that name a variant rather than the installation itself.
_VARIANT_TOKENS = {"pdq", "pq", "prod", "production", "drilling", "drill", "spar", "platform"}
_MIN_CONTAINMENT_LEN = 5


@dataclass(frozen=True)
class CanonicalLocation:
    canonical_name: str
    display_name: str
    facility_type: FacilityType
    aliases: frozenset[str] = frozenset()
    parent_facility: str | None = None
    production_lcs: tuple[str, ...] = ()

    @property
    def department(self) -> str | None:
        """Department implied by the facility type; None when ambiguous."""
        return {
            "Drilling": "Drilling",
            "Production": "Production",
            "Logistics": "Logistics",
        }.get(self.facility_type)


UNKNOWN_LOCATION = CanonicalLocation(
    canonical_name="Unknown",
    display_name="Unknown",
    facility_type="Unclassified",
)


def normalize_location(text: str | None) -> str:
    """Lowercase, turn separators into spaces and collapse whitespace."""
    if not text:
        return ""
    lowered = str(text).strip().lower()
    lowered = re.sub(r"[_\-/()|,]+", " ", lowered)
    return re.sub(r"\s+", " ", lowered).strip()


def _compact(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text)


def _token_runs(normalized: str) -> set[str]:
    """Compact form of every contiguous run of whole tokens.

    "thunderhorse drill" and "thunder horse drill" both yield "thunderhorse",
    while "cargo staging" never yields "argos".
    """
    tokens = [_compact(t) for t in normalized.split()]
    return {"".join(tokens[i:j]) for i in range(len(tokens)) for j in range(i + 1, len(tokens) + 1)}


def _base_name(name: str) -> str:
    tokens = normalize_location(name).split()
    while len(tokens) > 1 and tokens[-1] in _VARIANT_TOKENS:
        tokens.pop()
    return " ".join(tokens)


class LocationResolver:
    """Resolve free-text location names against a facility table.

    Built once per batch from configuration and read-only afterwards, so it is
    safe to share between worker threads.
    """

    def __init__(self, facilities: tuple[FacilityConfig, ...] | list[FacilityConfig]):
        self._by_name: dict[str, CanonicalLocation] = {}
        self._by_alias: dict[str, CanonicalLocation] = {}
        self._by_lc: dict[str, CanonicalLocation] = {}
        self._families: dict[str, list[CanonicalLocation]] = {}
        self._family_keywords: dict[str, dict[str, CanonicalLocation]] = {}

        locations = {}
        for facility in facilities:
            location = CanonicalLocation(
                canonical_name=facility.name,
                display_name=facility.display_name,
                facility_type=facility.facility_type,
                aliases=frozenset(normalize_location(a) for a in facility.aliases),
                parent_facility=facility.parent_facility,
                production_lcs=tuple(facility.production_lcs),
            )
            locations[facility.name] = location
            for keyword in facility.keywords:
                family = facility.parent_facility or facility.name
                self._family_keywords.setdefault(family, {})[keyword] = location

        for location in locations.values():
            for key in (location.canonical_name, location.display_name):
                self._by_name.setdefault(normalize_location(key), location)
            for alias in location.aliases:
                if alias in self._by_alias and self._by_alias[alias] is not location:
                    logger.warning(
                        "Alias %r maps to both %s and %s; keeping the first",
                        alias,
                        self._by_alias[alias].canonical_name,
                        location.canonical_name,
                    )
                    continue
                self._by_alias[alias] = location
            for lc in location.production_lcs:
                self._by_lc.setdefault(lc, location)
            family = location.parent_facility or location.canonical_name
            self._families.setdefault(family, []).append(location)

        self._roots = {family: locations.get(family) for family in self._families}
        self._containment_keys = self._build_containment_keys()

    def _build_containment_keys(self) -> list[tuple[str, str]]:
        """(compact key, family) pairs, longest first so the most specific name wins.

        Keys are whole names (base names and aliases), never a lone first
        word, so "Stena Carron" does not land on Stena IceMAX.
        """
        keys: dict[str, str] = {}
        for family, members in self._families.items():
            root = self._roots.get(family) or members[0]
            candidates = {_base_name(root.canonical_name), _base_name(root.display_name)}
            for member in members:
                candidates.update(member.aliases)
            for candidate in candidates:
                compact = _compact(candidate)
                if len(compact) >= _MIN_CONTAINMENT_LEN:
                    keys.setdefault(compact, family)
        return sorted(keys.items(), key=lambda item: (-len(item[0]), item[0]))

    def _pick_variant(self, family: str, normalized: str) -> CanonicalLocation:
        variants = self._family_keywords.get(family, {})
        hits = [location for keyword, location in variants.items() if contains_keyword(normalized, keyword)]
        if len(hits) == 1:
            return hits[0]
        root = self._roots.get(family)
        if root is not None:
            return root
        return self._families[family][0]

    def resolve(self, name: str | None) -> CanonicalLocation:
        normalized = normalize_location(name)
        if not normalized:
            return UNKNOWN_LOCATION

        location = self._by_name.get(normalized)
        if location is not None:
            return location

        location = self._by_alias.get(normalized)
        if location is not None:
            return location

        runs = _token_runs(normalized)
        for key, family in self._containment_keys:
            if key in runs:
                return self._pick_variant(family, normalized)
        return UNKNOWN_LOCATION

    def is_known(self, name: str | None) -> bool:
        return self.resolve(name) is not UNKNOWN_LOCATION

    def is_drilling(self, name: str | None) -> bool:
        return self.resolve(name).facility_type in ("Drilling", "Integrated")

    def is_production(self, name: str | None) -> bool:
        return self.resolve(name).facility_type in ("Production", "Integrated")

    def is_base(self, name: str | None) -> bool:
        return self.resolve(name).facility_type == "Logistics"

    def facility_for_lc(self, lc_number: str | None) -> CanonicalLocation | None:
        """Production facility that owns this LC, if any."""
        if not lc_number:
            return None
        return self._by_lc.get(str(lc_number).strip())

    def by_canonical_name(self, name: str) -> CanonicalLocation | None:
        return self._by_name.get(normalize_location(name))

    @property
    def facilities(self) -> list[CanonicalLocation]:
        seen = []
        for members in self._families.values():
            seen.extend(members)
        return seen


def default_resolver() -> LocationResolver:
    return LocationResolver(DEFAULT_CONFIG.facilities)
