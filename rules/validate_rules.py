from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from core.enums import DrugId, RouteId, RulePhase

ALLOWED_PHASES = {p.value for p in RulePhase}
ALLOWED_FIELDS = {"bioavailability", "absorption_rate_h", "oral_factor"}
ALLOWED_MATCH_KEYS = {"drugs", "drug_classes", "exclude_drugs", "routes", "exclude_routes"}

REQUIRED_TOP_KEYS = {
    "id",
    "name",
    "phase",
    "order",
    "match",
    "effect",
}

KNOWN_DRUGS = {d.value for d in DrugId}
KNOWN_ROUTES = {r.value for r in RouteId}


@dataclass
class RuleError:
    file: str
    message: str


def _load_json(path: Path) -> Dict[str, Any]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception as e:
        raise ValueError(f"Invalid JSON: {e}") from e


def _check_ids(path: Path, key: str, values: Any, known: set[str]) -> List[RuleError]:
    if not isinstance(values, list) or any(not isinstance(x, str) for x in values):
        return [RuleError(path.name, f"match.{key} must be a list of strings")]
    unknown = sorted(set(values) - known)
    if unknown:
        return [RuleError(path.name, f"match.{key} has unknown ids: {unknown}")]
    return []


def validate_rule(path: Path, raw: Dict[str, Any]) -> List[RuleError]:
    errors: List[RuleError] = []

    # Required top-level keys
    missing = REQUIRED_TOP_KEYS - set(raw.keys())
    if missing:
        errors.append(RuleError(path.name, f"Missing required keys: {sorted(missing)}"))
        return errors  # cannot safely continue

    if raw["phase"] not in ALLOWED_PHASES:
        errors.append(RuleError(path.name, f"Invalid phase: {raw['phase']} (allowed: {sorted(ALLOWED_PHASES)})"))

    if not isinstance(raw["order"], int):
        errors.append(RuleError(path.name, "order must be an integer"))

    match = raw.get("match")
    if not isinstance(match, dict):
        errors.append(RuleError(path.name, "match must be an object"))
    else:
        extra = set(match) - ALLOWED_MATCH_KEYS
        if extra:
            errors.append(RuleError(path.name, f"Unknown match keys: {sorted(extra)}"))
        for key in ("drugs", "exclude_drugs"):
            if key in match:
                errors.extend(_check_ids(path, key, match[key], KNOWN_DRUGS))
        for key in ("routes", "exclude_routes"):
            if key in match:
                errors.extend(_check_ids(path, key, match[key], KNOWN_ROUTES))
        if not (match.get("routes") or match.get("exclude_routes")):
            errors.append(RuleError(path.name, "match must constrain routes"))

        # Universal restrictions apply to every drug; drug rules must name some
        if raw["phase"] == "drug" and not (match.get("drugs") or match.get("drug_classes")):
            errors.append(RuleError(path.name, "drug-phase rules must list drugs or drug_classes"))

    effect = raw.get("effect")
    if not isinstance(effect, dict):
        errors.append(RuleError(path.name, "effect must be an object"))
        return errors

    blocks = {"multiply", "set"} & set(effect.keys())
    if not blocks:
        errors.append(RuleError(path.name, "effect must include multiply and/or set"))

    for b in sorted(blocks):
        body = effect[b]
        if not isinstance(body, dict) or not body:
            errors.append(RuleError(path.name, f"effect.{b} must be a non-empty object"))
            continue
        for k, v in body.items():
            if k not in ALLOWED_FIELDS:
                errors.append(RuleError(path.name, f"effect.{b} has unknown field: {k}"))
            if not isinstance(v, (int, float)) or isinstance(v, bool) or v <= 0:
                errors.append(RuleError(path.name, f"effect.{b}.{k} must be a number > 0"))
            elif k == "bioavailability" and b == "set" and v > 1.0:
                errors.append(RuleError(path.name, "effect.set.bioavailability must be <= 1"))

    return errors


def main() -> int:
    base_dir = Path(__file__).resolve().parents[1]
    rule_dir = base_dir / "rules" / "rule_defs"

    if not rule_dir.exists():
        print(f"Rule directory not found: {rule_dir}")
        return 2

    all_errors: List[RuleError] = []
    files = sorted(rule_dir.glob("*.json"))
    if not files:
        print(f"No rule JSON files found in: {rule_dir}")
        return 2

    seen_ids: Dict[str, str] = {}
    for p in files:
        try:
            raw = _load_json(p)
            all_errors.extend(validate_rule(p, raw))
            rid = raw.get("id")
            if rid in seen_ids:
                all_errors.append(RuleError(p.name, f"Duplicate rule id {rid} (also in {seen_ids[rid]})"))
            seen_ids[rid] = p.name
        except Exception as e:
            all_errors.append(RuleError(p.name, str(e)))

    if all_errors:
        print("Rule validation failed:\n")
        for err in all_errors:
            print(f"- {err.file}: {err.message}")
        return 1

    print(f"Rule validation passed ({len(files)} rules).")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
