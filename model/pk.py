# dose -> concentration -> accumulation -> detection time

from __future__ import annotations

import logging
import math

from core.constants import (
    AGE_FACTOR_BANDS,
    DEGENERATE_R_TOLERANCE,
    LN2,
    MAX_BUILDUP_PERCENT,
    MAX_DURATION_H,
    METABOLISM_FACTORS,
)
from core.enums import Matrix, Metabolism
from core.exceptions import InvalidInputError
from core.models import (
    Accumulation,
    DetectionReport,
    DetectionTime,
    DrugProfile,
    MatrixResult,
    PatientInput,
    RouteParams,
    RouteProfile,
)
from rules.engine import Rule, adjust_route_parameters

logger = logging.getLogger(__name__)


def validate_patient_input(patient: PatientInput) -> None:
    """Reject inputs the model cannot handle before any arithmetic happens."""
    for field, value in (
        ("dosage", patient.dosage_mg),
        ("weight", patient.weight_kg),
        ("age", patient.age_years),
        ("duration", patient.duration_h),
    ):
        if not math.isfinite(value):
            raise InvalidInputError(field, value, "a finite number")
    if patient.dosage_mg <= 0:
        raise InvalidInputError("dosage", patient.dosage_mg, "a positive number of mg")
    if patient.weight_kg <= 0:
        raise InvalidInputError("weight", patient.weight_kg, "a positive number of kg")
    if patient.age_years < 0:
        raise InvalidInputError("age", patient.age_years, "zero or more years")
    if patient.duration_h < 0:
        raise InvalidInputError("duration", patient.duration_h, "zero or more hours")
    if patient.duration_h > MAX_DURATION_H:
        raise InvalidInputError(
            "duration", patient.duration_h, f"at most {MAX_DURATION_H:.0f} hours"
        )


def effective_dose_mg(drug: DrugProfile, dosage_mg: float) -> float:
    return drug.fixed_dose_mg if drug.fixed_dose_mg is not None else float(dosage_mg)


def compute_single_dose_concentration(
    drug: DrugProfile,
    params: RouteParams,
    dosage_mg: float,
    weight_kg: float,
) -> float:
    if weight_kg <= 0:
        raise InvalidInputError("weight", weight_kg, "a positive number of kg")

    dose = effective_dose_mg(drug, dosage_mg)
    conc = dose * params.oral_factor * params.bioavailability / weight_kg
    return conc * drug.concentration_scale


def flip_flop_half_life(half_life_h: float, absorption_rate_h: float) -> float:
    """Lengthen the apparent half-life when absorption is rate-limiting."""
    if absorption_rate_h > half_life_h * LN2:
        return half_life_h * (1 + absorption_rate_h / (half_life_h * LN2))
    return half_life_h


def age_factor(age_years: float) -> float:
    for lower, factor in AGE_FACTOR_BANDS:
        if age_years >= lower:
            return factor
    return AGE_FACTOR_BANDS[-1][1]


def metabolism_factor(metabolism: Metabolism) -> float:
    return METABOLISM_FACTORS[metabolism]


def elimination_rate(half_life_h: float, age_years: float, metabolism: Metabolism) -> float:
    return (LN2 / half_life_h) * age_factor(age_years) * metabolism_factor(metabolism)


def compute_accumulation(
    single_dose_conc: float,
    k: float,
    dosing_interval_h: float,
    duration_h: float,
) -> Accumulation:
    """
    Multiple-dose superposition under first-order elimination.

    r is the fraction eliminated per interval. When r is within tolerance of 1
    every dose is cleared before the next and the geometric sum collapses to n.
    """
    num_doses = int(math.floor(duration_h / dosing_interval_h)) + 1
    r = 1 - math.exp(-k * dosing_interval_h)

    if abs(r - 1) < DEGENERATE_R_TOLERANCE:
        factor = float(num_doses)
    else:
        factor = (1 - r**num_doses) / (1 - r)

    total = single_dose_conc * factor
    steady = single_dose_conc / (1 - math.exp(-k * dosing_interval_h))
    buildup = min(total / steady * 100, MAX_BUILDUP_PERCENT) if steady > 0 else 0.0

    return Accumulation(
        num_doses=num_doses,
        accumulation_factor=factor,
        total_conc=total,
        steady_state_conc=steady,
        buildup_percent=buildup,
    )


def solve_detection_time(total_conc: float, cutoff: float, k: float) -> float:
    """Hours until C0 * exp(-k t) falls to the cutoff; 0 when already below."""
    if total_conc <= cutoff:
        return 0.0
    return math.log(total_conc / cutoff) / k


def decompose_seconds(total_seconds: int) -> DetectionTime:
    days, rem = divmod(total_seconds, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, seconds = divmod(rem, 60)
    return DetectionTime(
        total_seconds=total_seconds,
        days=days,
        hours=hours,
        minutes=minutes,
        seconds=seconds,
    )


def detection_from_hours(hours: float) -> DetectionTime:
    return decompose_seconds(int(hours * 3600))


def compute_matrix(
    drug: DrugProfile,
    matrix: Matrix,
    params: RouteParams,
    patient: PatientInput,
    single_dose_conc: float,
) -> MatrixResult:
    consts = drug.matrices[matrix]
    half_life = flip_flop_half_life(consts.half_life_h, params.absorption_rate_h)
    k = elimination_rate(half_life, patient.age_years, patient.metabolism)

    acc = compute_accumulation(single_dose_conc, k, drug.dosing_interval_h, patient.duration_h)
    hours = solve_detection_time(acc.total_conc, consts.cutoff_ng_ml, k)

    logger.debug(
        "%s/%s: t1/2=%.4f k=%.4f doses=%d factor=%.4f total=%.4f -> %.4f h",
        drug.id,
        matrix,
        half_life,
        k,
        acc.num_doses,
        acc.accumulation_factor,
        acc.total_conc,
        hours,
    )

    return MatrixResult(
        matrix=matrix,
        half_life_h=half_life,
        cutoff_ng_ml=consts.cutoff_ng_ml,
        dosing_interval_h=drug.dosing_interval_h,
        single_dose_conc=single_dose_conc,
        elimination_rate=k,
        accumulation=acc,
        detection_time_h=hours,
        detection=detection_from_hours(hours),
    )


def compute_detection(
    drug: DrugProfile,
    route: RouteProfile,
    patient: PatientInput,
    rules: tuple[Rule, ...] | list[Rule] | None = None,
) -> DetectionReport:
    """
    Full pipeline for one drug/route/patient.

    The route table entry is copied into a RouteParams value before the
    adjustment rules run; the shared profile is never touched.
    """
    validate_patient_input(patient)

    params, applied = adjust_route_parameters(
        drug, route.id, RouteParams.from_profile(route), rules=rules
    )
    single = compute_single_dose_concentration(
        drug, params, patient.dosage_mg, patient.weight_kg
    )

    report = DetectionReport(
        drug=drug,
        route=route,
        patient=patient,
        params=params,
        effective_dose_mg=effective_dose_mg(drug, patient.dosage_mg),
        applied_rules=applied,
    )
    for m in Matrix:
        report.results[m] = compute_matrix(drug, m, params, patient, single)

    return report
