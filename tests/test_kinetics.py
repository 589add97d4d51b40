from __future__ import annotations

import math

import pytest

from core.enums import DrugId, Matrix, Metabolism, RouteId
from core.exceptions import InvalidInputError
from core.models import RouteParams
from model.pk import (
    age_factor,
    compute_accumulation,
    compute_detection,
    compute_single_dose_concentration,
    decompose_seconds,
    elimination_rate,
    flip_flop_half_life,
    metabolism_factor,
    solve_detection_time,
)
from helpers import assert_has_rule, make_patient


def _diamorphine_iv(ref):
    drug = ref.drug(DrugId.diamorphine)
    route = ref.route(RouteId.intravenous)
    return compute_detection(drug, route, make_patient())


def test_accumulation_factor_closed_form():
    # k=0.1, tau=8, 3 doses: 1 + r + r^2 with r = 1 - exp(-0.8)
    acc = compute_accumulation(1.0, 0.1, 8.0, 16.0)
    r = 1 - math.exp(-0.8)

    assert acc.num_doses == 3
    assert acc.accumulation_factor == pytest.approx(1.853, abs=1e-3)
    assert acc.accumulation_factor == pytest.approx(1 + r + r * r)


def test_accumulation_degenerate_interval_uses_dose_count():
    # exp(-50) leaves r within 1e-3 of 1
    acc = compute_accumulation(2.0, 10.0, 5.0, 20.0)

    assert acc.num_doses == 5
    assert acc.accumulation_factor == 5.0
    assert acc.total_conc == pytest.approx(10.0)


def test_accumulation_is_non_decreasing_in_duration():
    prev_factor, prev_total = 0.0, 0.0
    for duration in (0.0, 4.0, 8.0, 12.0, 24.0, 48.0, 96.0, 240.0):
        acc = compute_accumulation(3.0, 0.2, 6.0, duration)
        assert acc.accumulation_factor >= prev_factor
        assert acc.total_conc >= prev_total
        prev_factor, prev_total = acc.accumulation_factor, acc.total_conc


@pytest.mark.parametrize(
    "k,tau,duration",
    [(0.01, 24.0, 0.0), (0.1, 8.0, 16.0), (0.5, 4.0, 200.0), (5.0, 4.0, 48.0), (0.05, 2.0, 1000.0)],
)
def test_buildup_is_clamped_to_percent_range(k, tau, duration):
    acc = compute_accumulation(1.5, k, tau, duration)
    assert 0.0 <= acc.buildup_percent <= 100.0


def test_steady_state_is_infinite_series_limit():
    acc = compute_accumulation(2.0, 0.1, 8.0, 0.0)
    assert acc.steady_state_conc == pytest.approx(2.0 / (1 - math.exp(-0.8)))


def test_detection_time_is_zero_at_or_below_cutoff():
    assert solve_detection_time(5.0, 10.0, 0.3) == 0.0
    assert solve_detection_time(10.0, 10.0, 0.3) == 0.0


def test_detection_time_inverts_exponential_decay():
    hours = solve_detection_time(40.0, 10.0, 0.2)
    assert hours == pytest.approx(math.log(4.0) / 0.2)
    assert 40.0 * math.exp(-0.2 * hours) == pytest.approx(10.0)


@pytest.mark.parametrize("total", [0, 59, 60, 3599, 3600, 86399, 86400, 196, 1_000_000])
def test_decomposition_round_trips(total):
    d = decompose_seconds(total)

    assert d.days * 86400 + d.hours * 3600 + d.minutes * 60 + d.seconds == total
    assert 0 <= d.hours <= 23
    assert 0 <= d.minutes <= 59
    assert 0 <= d.seconds <= 59


def test_age_factor_bands():
    assert age_factor(0) == 1.15
    assert age_factor(34) == 1.15
    assert age_factor(35) == 1.0
    assert age_factor(49) == 1.0
    assert age_factor(50) == 0.85
    assert age_factor(64) == 0.85
    assert age_factor(65) == 0.70
    assert age_factor(90) == 0.70


def test_metabolism_factors():
    assert metabolism_factor(Metabolism.slow) == 0.7
    assert metabolism_factor(Metabolism.normal) == 1.0
    assert metabolism_factor(Metabolism.fast) == 1.4


def test_elimination_rate_combines_factors():
    k = elimination_rate(6.93, 40, Metabolism.normal)
    assert k == pytest.approx(0.1)
    assert elimination_rate(6.93, 70, Metabolism.slow) == pytest.approx(0.1 * 0.7 * 0.7)


def test_flip_flop_lengthens_half_life_only_when_absorption_is_slower():
    assert flip_flop_half_life(10.0, 1.5) == 10.0
    assert flip_flop_half_life(0.05, 0.1) == pytest.approx(0.05 * (1 + 0.1 / (0.05 * 0.693)))


def test_single_dose_scales_inversely_with_weight(ref):
    drug = ref.drug(DrugId.morphine)
    params = RouteParams(bioavailability=0.7, absorption_rate_h=1.5, oral_factor=0.01)

    concs = [compute_single_dose_concentration(drug, params, 100, w) for w in (40, 60, 80, 120)]
    assert concs == sorted(concs, reverse=True)
    assert len(set(concs)) == len(concs)


def test_single_dose_rejects_non_positive_weight(ref):
    drug = ref.drug(DrugId.morphine)
    params = RouteParams(bioavailability=0.7, absorption_rate_h=1.5, oral_factor=0.01)

    with pytest.raises(InvalidInputError):
        compute_single_dose_concentration(drug, params, 100, 0)


def test_fixed_dose_drug_ignores_entered_dosage(ref):
    drug = ref.drug(DrugId.fentanyl)
    params = RouteParams(bioavailability=0.7, absorption_rate_h=1.5, oral_factor=0.01)

    a = compute_single_dose_concentration(drug, params, 1, 70)
    b = compute_single_dose_concentration(drug, params, 5000, 70)
    assert a == b == pytest.approx(1000 * 0.01 * 0.7 / 70)


def test_alcohol_concentration_is_halved(ref):
    params = RouteParams(bioavailability=0.7, absorption_rate_h=1.5, oral_factor=0.01)
    alcohol = compute_single_dose_concentration(ref.drug(DrugId.alcohol), params, 100, 70)
    morphine = compute_single_dose_concentration(ref.drug(DrugId.morphine), params, 100, 70)

    assert alcohol == pytest.approx(morphine * 0.5)


def test_diamorphine_intravenous_scenario(ref):
    report = _diamorphine_iv(ref)
    saliva = report.results[Matrix.saliva]

    assert report.params.bioavailability == 1.0
    assert report.params.oral_factor == 0.08
    assert_has_rule(report, "OPIOID_INTRAVENOUS")

    assert saliva.single_dose_conc == pytest.approx(1.0526, abs=1e-3)
    assert saliva.accumulation.num_doses == 13
    assert saliva.accumulation.accumulation_factor == pytest.approx(13.0, abs=1e-6)
    assert saliva.accumulation.total_conc == pytest.approx(13.68, abs=0.01)
    assert saliva.elimination_rate == pytest.approx(5.74, abs=0.01)
    assert saliva.cutoff_ng_ml == 10.0

    d = saliva.detection
    assert d.total_seconds == pytest.approx(197, abs=1)
    assert (d.days, d.hours, d.minutes) == (0, 0, 3)
    assert d.seconds in (16, 17)


def test_report_carries_both_matrices(ref):
    report = _diamorphine_iv(ref)

    assert list(report.results) == [Matrix.saliva, Matrix.urine]
    assert report.primary is report.results[Matrix.saliva]
    urine = report.results[Matrix.urine]
    assert urine.single_dose_conc == report.primary.single_dose_conc
    assert urine.half_life_h > report.primary.half_life_h


def test_below_cutoff_reports_zero_detection(ref):
    drug = ref.drug(DrugId.amphetamine)
    route = ref.route(RouteId.oral)
    report = compute_detection(drug, route, make_patient(dosage_mg=10, duration_h=0.0))

    for r in report.results.values():
        assert r.accumulation.total_conc <= r.cutoff_ng_ml
        assert r.detection_time_h == 0.0
        assert r.detection.total_seconds == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"weight_kg": 0},
        {"weight_kg": -5},
        {"dosage_mg": 0},
        {"age_years": -1},
        {"duration_h": -1.0},
        {"duration_h": float("nan")},
        {"duration_h": float("inf")},
        {"duration_h": 8761.0},
        {"weight_kg": float("inf")},
    ],
)
def test_invalid_patient_input_is_rejected(ref, overrides):
    drug = ref.drug(DrugId.morphine)
    route = ref.route(RouteId.oral)

    with pytest.raises(InvalidInputError):
        compute_detection(drug, route, make_patient(**overrides))


def test_year_long_duration_is_accepted(ref):
    drug = ref.drug(DrugId.morphine)
    route = ref.route(RouteId.oral)
    report = compute_detection(drug, route, make_patient(duration_h=8760.0))

    assert report.primary.accumulation.num_doses == int(8760.0 // drug.dosing_interval_h) + 1
