from __future__ import annotations

import copy

import pytest

from core.constants import parse_metabolism
from core.enums import DrugId, Metabolism, RouteId
from core.exceptions import UnknownDrugError, UnknownRouteError
from data.curation.validate import collect_curation_errors, validate_drugs_curation
from data.loaders import load_drugs_curation


def test_tables_are_complete(ref):
    assert set(ref.drugs) == set(DrugId)
    assert set(ref.routes) == set(RouteId)
    assert len(ref.drugs) == 24
    assert len(ref.routes) == 11


def test_curation_files_validate():
    assert collect_curation_errors() == []


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("heroin", DrugId.diamorphine),
        ("  HeRoIn ", DrugId.diamorphine),
        ("DIAMORPHINE", DrugId.diamorphine),
        ("meperidine", DrugId.pethidine),
        ("ethanol", DrugId.alcohol),
        ("propoxyphene", DrugId.dextropropoxyphene),
        ("lsd", DrugId.lsd),
    ],
)
def test_resolve_drug_names_and_aliases(ref, raw, expected):
    assert ref.resolve_drug(raw).id == expected


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("IV", RouteId.intravenous),
        ("i.v.", RouteId.intravenous),
        ("SC", RouteId.subcutaneous),
        ("sub-q", RouteId.subcutaneous),
        ("SL", RouteId.sublingual),
        ("under   tongue", RouteId.sublingual),
        ("patch", RouteId.transdermal),
        ("Oral", RouteId.oral),
    ],
)
def test_resolve_route_abbreviations(ref, raw, expected):
    assert ref.resolve_route(raw).id == expected


def test_unknown_drug_carries_suggestions(ref):
    with pytest.raises(UnknownDrugError) as exc:
        ref.resolve_drug("morphin")

    assert exc.value.token == "morphin"
    assert "morphine" in exc.value.suggestions
    assert str(exc.value).startswith("Drug not found: morphin. Did you mean:")


def test_unknown_route_carries_suggestions(ref):
    with pytest.raises(UnknownRouteError) as exc:
        ref.resolve_route("intravenus")

    assert "intravenous" in exc.value.suggestions


def test_unknown_name_without_close_match(ref):
    with pytest.raises(UnknownDrugError) as exc:
        ref.resolve_drug("zzzzzzzz")

    assert exc.value.suggestions == ()
    assert str(exc.value) == "Drug not found: zzzzzzzz"


def test_tables_are_read_only(ref):
    with pytest.raises(TypeError):
        ref.drugs[DrugId.morphine] = None  # type: ignore[index]


def test_drug_menu_groups_cover_every_drug(ref):
    groups = ref.drugs_by_category()
    assert sum(len(v) for v in groups.values()) == 24
    assert DrugId.fentanyl in {d.id for d in groups["synthetic_opioids"]}


def test_duplicate_alias_is_a_curation_error():
    raw = copy.deepcopy(load_drugs_curation())
    morphine = next(d for d in raw["drugs"] if d["id"] == "morphine")
    morphine["aliases"].append("heroin")

    errors = validate_drugs_curation(raw)
    assert any("already maps to" in e.message for e in errors)


def test_missing_half_life_is_a_curation_error():
    raw = copy.deepcopy(load_drugs_curation())
    raw["drugs"][0]["saliva"]["half_life_h"] = 0

    errors = validate_drugs_curation(raw)
    assert any(e.path.endswith("saliva.half_life_h") for e in errors)


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("1", Metabolism.slow),
        ("slow", Metabolism.slow),
        ("2", Metabolism.normal),
        (" NORMAL ", Metabolism.normal),
        (3, Metabolism.fast),
        ("fast", Metabolism.fast),
        ("4", None),
        ("quick", None),
    ],
)
def test_parse_metabolism(raw, expected):
    assert parse_metabolism(raw) is expected
