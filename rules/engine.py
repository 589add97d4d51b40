# route adjustment rule loading + evaluation
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from functools import lru_cache
from pathlib import Path
from typing import Any

from core.enums import DrugId, RouteId, RulePhase
from core.exceptions import ReferenceDataError
from core.models import AppliedRule, DrugProfile, RouteParams

logger = logging.getLogger(__name__)

RULE_DIR = Path(__file__).parent / "rule_defs"

# Fields an effect block may touch (names of RouteParams attributes)
ADJUSTABLE_FIELDS = ("bioavailability", "absorption_rate_h", "oral_factor")

_PHASE_RANK = {RulePhase.drug: 0, RulePhase.universal: 1}


@dataclass(frozen=True)
class RuleMatch:
    drugs: frozenset[DrugId] = frozenset()
    drug_classes: frozenset[str] = frozenset()
    exclude_drugs: frozenset[DrugId] = frozenset()
    routes: frozenset[RouteId] = frozenset()
    exclude_routes: frozenset[RouteId] = frozenset()


@dataclass(frozen=True)
class Rule:
    id: str
    name: str
    phase: RulePhase
    order: int
    match: RuleMatch
    # Defaults last
    multiply: dict[str, float] = field(default_factory=dict)
    overrides: dict[str, float] = field(default_factory=dict)
    note: str = ""
    source: str = ""


def _parse_match(raw: dict[str, Any]) -> RuleMatch:
    return RuleMatch(
        drugs=frozenset(DrugId(d) for d in raw.get("drugs", [])),
        drug_classes=frozenset(raw.get("drug_classes", [])),
        exclude_drugs=frozenset(DrugId(d) for d in raw.get("exclude_drugs", [])),
        routes=frozenset(RouteId(r) for r in raw.get("routes", [])),
        exclude_routes=frozenset(RouteId(r) for r in raw.get("exclude_routes", [])),
    )


def load_rules(rule_dir: Path = RULE_DIR) -> list[Rule]:
    """
    Load every rule file and return them in application order:
    drug-specific rules first (by `order`, then file name), universal
    route restrictions last.
    """
    rules: list[Rule] = []

    for p in sorted(rule_dir.glob("*.json")):
        raw = json.loads(p.read_text(encoding="utf-8"))

        try:
            effect = raw["effect"]
            rule = Rule(
                id=raw["id"],
                name=raw["name"],
                phase=RulePhase(raw.get("phase", "drug")),
                order=int(raw.get("order", 0)),
                match=_parse_match(raw["match"]),
                multiply={k: float(v) for k, v in effect.get("multiply", {}).items()},
                overrides={k: float(v) for k, v in effect.get("set", {}).items()},
                note=raw.get("note", ""),
                source=p.name,
            )
        except KeyError as e:
            raise ReferenceDataError(
                f"Rule file '{p.name}' missing required key: {e}"
            ) from e
        except ValueError as e:
            raise ReferenceDataError(f"Rule file '{p.name}': {e}") from e

        unknown = (set(rule.multiply) | set(rule.overrides)) - set(ADJUSTABLE_FIELDS)
        if unknown:
            raise ReferenceDataError(
                f"Rule file '{p.name}' adjusts unknown fields: {sorted(unknown)}"
            )

        rules.append(rule)

    rules.sort(key=lambda r: (_PHASE_RANK[r.phase], r.order, r.source))
    return rules


@lru_cache(maxsize=1)
def get_rules() -> tuple[Rule, ...]:
    return tuple(load_rules(RULE_DIR))


def rule_matches(rule: Rule, drug: DrugProfile, route_id: RouteId) -> bool:
    m = rule.match

    if m.drugs or m.drug_classes:
        if drug.id not in m.drugs and drug.drug_class not in m.drug_classes:
            return False
    if drug.id in m.exclude_drugs:
        return False

    if m.routes and route_id not in m.routes:
        return False
    if route_id in m.exclude_routes:
        return False

    return True


def apply_rule(rule: Rule, params: RouteParams) -> RouteParams:
    """Multiplications first, then replacements; returns a new RouteParams."""
    changes: dict[str, float] = {}
    for k, factor in rule.multiply.items():
        changes[k] = getattr(params, k) * factor
    changes.update(rule.overrides)
    return replace(params, **changes)


def adjust_route_parameters(
    drug: DrugProfile,
    route_id: RouteId,
    base: RouteParams,
    rules: tuple[Rule, ...] | list[Rule] | None = None,
) -> tuple[RouteParams, list[AppliedRule]]:
    """
    Fold every matching rule over `base` in load order.

    `base` is never modified; several rules may apply to the same pair.
    """
    if rules is None:
        rules = get_rules()

    params = base
    applied: list[AppliedRule] = []
    for rule in rules:
        if not rule_matches(rule, drug, route_id):
            continue
        params = apply_rule(rule, params)
        applied.append(AppliedRule(rule_id=rule.id, name=rule.name, note=rule.note))
        logger.debug("Rule %s applied to %s/%s -> %s", rule.id, drug.id, route_id, params)

    return params, applied
