from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from core.constants import SPECTRUM_MAX_PPM, normalize_name
from core.enums import DrugId, Matrix, RouteId
from core.exceptions import ReferenceDataError
from data.loaders import (
    CURATION_DIR,
    load_drugs_curation,
    load_nmr_curation,
    load_routes_curation,
)

_ALLOWED_CATEGORIES = {
    "synthetic_opioids",
    "natural_opioids",
    "stimulants",
    "depressants",
    "psychedelics",
    "other",
}

_ID_RE = re.compile(r"^[a-z0-9][a-z0-9_]*$")


@dataclass(frozen=True)
class CurationError:
    path: str
    message: str


def _is_positive(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and x > 0


def _check_aliases(
    prefix: str,
    entry: dict[str, Any],
    seen: dict[str, str],
    errors: list[CurationError],
) -> None:
    """Names and aliases share one lookup namespace per table."""
    owner = entry.get("id", "?")
    terms = [entry.get("name", "")]
    aliases = entry.get("aliases", []) or []
    if not isinstance(aliases, list):
        errors.append(CurationError(prefix + ".aliases", "aliases must be a list."))
        aliases = []
    terms.extend(aliases)

    for t in terms:
        if not isinstance(t, str) or not t.strip():
            errors.append(
                CurationError(prefix + ".aliases", "Alias must be a non-empty string.")
            )
            continue
        key = normalize_name(t)
        other = seen.get(key)
        if other is not None and other != owner:
            errors.append(
                CurationError(
                    prefix + ".aliases",
                    f"'{t}' already maps to '{other}'.",
                )
            )
            continue
        seen[key] = owner


def validate_drugs_curation(raw: dict[str, Any]) -> list[CurationError]:
    errors: list[CurationError] = []
    src = "drugs.json"

    if not isinstance(raw, dict):
        return [CurationError(src, "Root must be a JSON object.")]

    if raw.get("version") != 1:
        errors.append(CurationError(src, "Expected version=1."))

    drugs = raw.get("drugs")
    if not isinstance(drugs, list):
        errors.append(CurationError(src, "Expected key 'drugs' to be a list."))
        return errors

    known_ids = {d.value for d in DrugId}
    seen_ids: set[str] = set()
    seen_terms: dict[str, str] = {}

    for i, d in enumerate(drugs):
        prefix = f"drugs[{i}]"
        if not isinstance(d, dict):
            errors.append(CurationError(prefix, "Drug must be an object."))
            continue

        drug_id = d.get("id")
        if not isinstance(drug_id, str) or not _ID_RE.match(drug_id):
            errors.append(CurationError(prefix + ".id", "Missing or malformed drug id."))
            continue
        if drug_id not in known_ids:
            errors.append(
                CurationError(prefix + ".id", f"Unknown drug id '{drug_id}'.")
            )
        if drug_id in seen_ids:
            errors.append(CurationError(prefix + ".id", f"Duplicate id '{drug_id}'."))
        seen_ids.add(drug_id)

        if d.get("category") not in _ALLOWED_CATEGORIES:
            errors.append(
                CurationError(
                    prefix + ".category",
                    f"category must be one of {sorted(_ALLOWED_CATEGORIES)}.",
                )
            )
        if not isinstance(d.get("drug_class"), str) or not d["drug_class"]:
            errors.append(CurationError(prefix + ".drug_class", "Missing drug_class."))

        for m in Matrix:
            block = d.get(m.value)
            if not isinstance(block, dict):
                errors.append(
                    CurationError(prefix + f".{m.value}", "Missing matrix constants.")
                )
                continue
            for k in ("half_life_h", "cutoff_ng_ml"):
                if not _is_positive(block.get(k)):
                    errors.append(
                        CurationError(prefix + f".{m.value}.{k}", "Must be > 0.")
                    )

        if not _is_positive(d.get("dosing_interval_h")):
            errors.append(
                CurationError(prefix + ".dosing_interval_h", "Must be > 0.")
            )

        for k in ("fixed_dose_mg", "concentration_scale"):
            v = d.get(k)
            if v is not None and not _is_positive(v):
                errors.append(CurationError(prefix + f".{k}", "Must be > 0 when set."))

        _check_aliases(prefix, d, seen_terms, errors)

    missing = known_ids - seen_ids
    if missing:
        errors.append(CurationError(src, f"Missing drugs: {sorted(missing)}"))

    return errors


def validate_routes_curation(raw: dict[str, Any]) -> list[CurationError]:
    errors: list[CurationError] = []
    src = "routes.json"

    if not isinstance(raw, dict) or not isinstance(raw.get("routes"), list):
        return [CurationError(src, "Expected an object with a 'routes' list.")]

    known_ids = {r.value for r in RouteId}
    seen_ids: set[str] = set()
    seen_terms: dict[str, str] = {}

    for i, r in enumerate(raw["routes"]):
        prefix = f"routes[{i}]"
        if not isinstance(r, dict):
            errors.append(CurationError(prefix, "Route must be an object."))
            continue

        route_id = r.get("id")
        if route_id not in known_ids:
            errors.append(CurationError(prefix + ".id", f"Unknown route id '{route_id}'."))
            continue
        if route_id in seen_ids:
            errors.append(CurationError(prefix + ".id", f"Duplicate id '{route_id}'."))
        seen_ids.add(route_id)

        bio = r.get("bioavailability")
        if not _is_positive(bio) or bio > 1.0:
            errors.append(
                CurationError(prefix + ".bioavailability", "Must be in (0, 1].")
            )
        for k in ("absorption_rate_h", "oral_factor"):
            if not _is_positive(r.get(k)):
                errors.append(CurationError(prefix + f".{k}", "Must be > 0."))

        _check_aliases(prefix, r, seen_terms, errors)

    missing = known_ids - seen_ids
    if missing:
        errors.append(CurationError(src, f"Missing routes: {sorted(missing)}"))

    return errors


def _validate_peaks(prefix: str, peaks: Any, errors: list[CurationError]) -> None:
    if not isinstance(peaks, list) or not peaks:
        errors.append(CurationError(prefix, "peaks must be a non-empty list."))
        return
    for j, p in enumerate(peaks):
        p2 = f"{prefix}[{j}]"
        if not isinstance(p, dict):
            errors.append(CurationError(p2, "Peak must be an object."))
            continue
        shift = p.get("shift_ppm")
        if not isinstance(shift, (int, float)) or not 0.0 <= shift <= SPECTRUM_MAX_PPM:
            errors.append(
                CurationError(p2 + ".shift_ppm", f"Must be within 0-{SPECTRUM_MAX_PPM} ppm.")
            )
        intensity = p.get("intensity")
        if not isinstance(intensity, (int, float)) or intensity < 0:
            errors.append(CurationError(p2 + ".intensity", "Must be >= 0."))


def validate_nmr_curation(raw: dict[str, Any]) -> list[CurationError]:
    errors: list[CurationError] = []
    src = "nmr_peaks.json"

    if not isinstance(raw, dict):
        return [CurationError(src, "Root must be a JSON object.")]

    _validate_peaks("default", raw.get("default"), errors)

    known_ids = {d.value for d in DrugId}
    assigned: set[str] = set()
    for i, g in enumerate(raw.get("groups", []) or []):
        prefix = f"groups[{i}]"
        drugs = g.get("drugs") if isinstance(g, dict) else None
        if not isinstance(drugs, list) or not drugs:
            errors.append(CurationError(prefix + ".drugs", "drugs must be a non-empty list."))
            continue
        for did in drugs:
            if did not in known_ids:
                errors.append(CurationError(prefix + ".drugs", f"Unknown drug id '{did}'."))
            elif did in assigned:
                errors.append(
                    CurationError(prefix + ".drugs", f"'{did}' appears in more than one group.")
                )
            assigned.add(did)
        _validate_peaks(prefix + ".peaks", g.get("peaks"), errors)

    return errors


def collect_curation_errors(curation_dir: Path = CURATION_DIR) -> list[CurationError]:
    errors: list[CurationError] = []
    errors.extend(validate_drugs_curation(load_drugs_curation(curation_dir / "drugs.json")))
    errors.extend(validate_routes_curation(load_routes_curation(curation_dir / "routes.json")))
    errors.extend(validate_nmr_curation(load_nmr_curation(curation_dir / "nmr_peaks.json")))
    return errors


def assert_valid_curation(curation_dir: Path = CURATION_DIR) -> None:
    errors = collect_curation_errors(curation_dir)
    if errors:
        msg = "Curation validation failed:\n" + "\n".join(
            f"- {e.path}: {e.message}" for e in errors
        )
        raise ReferenceDataError(msg)


def main() -> int:
    errors = collect_curation_errors()
    if errors:
        print("Curation validation failed:\n")
        for e in errors:
            print(f"- {e.path}: {e.message}")
        return 1
    print("Curation validation passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
