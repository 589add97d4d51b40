"""Process-wide, read-only lookup over the curated drug and route tables."""

from __future__ import annotations

import difflib
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping

from core.constants import normalize_name
from core.enums import DrugId, Matrix, RouteId
from core.exceptions import UnknownDrugError, UnknownRouteError
from core.models import DrugProfile, MatrixConstants, RouteProfile
from data.curation.validate import assert_valid_curation
from data.loaders import CURATION_DIR, load_drugs_curation, load_routes_curation

logger = logging.getLogger(__name__)


def _drug_from_raw(d: dict[str, Any]) -> DrugProfile:
    return DrugProfile(
        id=DrugId(d["id"]),
        name=d["name"],
        category=d["category"],
        drug_class=d["drug_class"],
        dosing_interval_h=float(d["dosing_interval_h"]),
        matrices={
            m: MatrixConstants(
                half_life_h=float(d[m.value]["half_life_h"]),
                cutoff_ng_ml=float(d[m.value]["cutoff_ng_ml"]),
            )
            for m in Matrix
        },
        metabolite_info=d.get("metabolite_info", ""),
        fixed_dose_mg=d.get("fixed_dose_mg"),
        concentration_scale=float(d.get("concentration_scale", 1.0)),
        aliases=tuple(normalize_name(a) for a in d.get("aliases", []) or []),
    )


def _route_from_raw(r: dict[str, Any]) -> RouteProfile:
    return RouteProfile(
        id=RouteId(r["id"]),
        name=r["name"],
        bioavailability=float(r["bioavailability"]),
        absorption_rate_h=float(r["absorption_rate_h"]),
        oral_factor=float(r["oral_factor"]),
        aliases=tuple(normalize_name(a) for a in r.get("aliases", []) or []),
    )


def _index_terms(entries: Mapping[Any, Any]) -> dict[str, Any]:
    index: dict[str, Any] = {}
    for key, e in entries.items():
        index[normalize_name(e.name)] = key
        index[normalize_name(key.value)] = key
        for a in e.aliases:
            index[a] = key
    return index


def suggest_terms(token: str, known_terms: list[str], limit: int = 5) -> tuple[str, ...]:
    """
    Suggest close matches for a token from known terms.

    Uses difflib to keep it local and dependency-free.
    """
    q = normalize_name(token)
    if not q:
        return tuple()
    return tuple(difflib.get_close_matches(q, known_terms, n=limit, cutoff=0.6))


@dataclass(frozen=True)
class ReferenceData:
    drugs: Mapping[DrugId, DrugProfile]
    routes: Mapping[RouteId, RouteProfile]
    drug_terms: Mapping[str, DrugId]
    route_terms: Mapping[str, RouteId]

    def drug(self, drug_id: DrugId) -> DrugProfile:
        return self.drugs[drug_id]

    def route(self, route_id: RouteId) -> RouteProfile:
        return self.routes[route_id]

    def resolve_drug(self, raw: str) -> DrugProfile:
        key = normalize_name(raw)
        drug_id = self.drug_terms.get(key)
        if drug_id is None:
            raise UnknownDrugError(raw, suggest_terms(raw, list(self.drug_terms)))
        return self.drugs[drug_id]

    def resolve_route(self, raw: str) -> RouteProfile:
        key = normalize_name(raw)
        route_id = self.route_terms.get(key)
        if route_id is None:
            raise UnknownRouteError(raw, suggest_terms(raw, list(self.route_terms)))
        return self.routes[route_id]

    def drugs_by_category(self) -> dict[str, list[DrugProfile]]:
        out: dict[str, list[DrugProfile]] = {}
        for d in self.drugs.values():
            out.setdefault(d.category, []).append(d)
        return out


def build_reference_data(curation_dir: Path = CURATION_DIR) -> ReferenceData:
    assert_valid_curation(curation_dir)

    drugs_raw = load_drugs_curation(curation_dir / "drugs.json")
    routes_raw = load_routes_curation(curation_dir / "routes.json")

    drugs = {p.id: p for p in (_drug_from_raw(d) for d in drugs_raw["drugs"])}
    routes = {p.id: p for p in (_route_from_raw(r) for r in routes_raw["routes"])}
    logger.debug("Loaded %d drugs and %d routes from %s", len(drugs), len(routes), curation_dir)

    return ReferenceData(
        drugs=MappingProxyType(drugs),
        routes=MappingProxyType(routes),
        drug_terms=MappingProxyType(_index_terms(drugs)),
        route_terms=MappingProxyType(_index_terms(routes)),
    )


@lru_cache(maxsize=1)
def get_reference_data() -> ReferenceData:
    """Loaded once per process; the tables are never mutated afterwards."""
    return build_reference_data()
