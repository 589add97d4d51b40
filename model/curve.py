from __future__ import annotations

import math

from core.constants import (
    CURVE_HALF_LIVES,
    CURVE_MIN_KA,
    CURVE_MIN_PLOTTED_CONC,
    CURVE_MIN_SPAN_H,
    CURVE_SAMPLES,
    CURVE_SLOW_ABSORPTION_H,
    LN2,
)
from core.models import ConcentrationCurve, CurveAnalysis, MatrixResult


def _concentration_at(
    t: float,
    single_dose_conc: float,
    k: float,
    ka: float,
    absorption_rate_h: float,
    dosing_interval_h: float,
    num_doses: int,
    duration_h: float,
) -> float:
    conc = 0.0
    for n in range(num_doses):
        dose_time = n * dosing_interval_h
        if t < dose_time:
            continue
        since = t - dose_time
        if absorption_rate_h < CURVE_SLOW_ABSORPTION_H:
            absorbed = single_dose_conc
        else:
            absorbed = single_dose_conc * (1.0 - math.exp(-ka * since))
        conc += absorbed * math.exp(-k * since)

    if t > duration_h:
        conc *= math.exp(-k * (t - duration_h))
    return conc


def analyse_curve(
    times_h: tuple[float, ...],
    concs: tuple[float, ...],
    cutoff: float,
    accumulated_conc: float | None = None,
) -> CurveAnalysis:
    """
    Compare the observed peak against the cutoff; when it is exceeded, report
    the last sample still above it as the time to non-detection.

    ``accumulated_conc`` is the report's single-dose x accumulation-factor
    value. When given and at or below the cutoff it decides the outcome, so
    the chart never claims a detection the report rules out.
    """
    if accumulated_conc is not None and accumulated_conc <= cutoff:
        return CurveAnalysis(
            detected=False, peak_conc=accumulated_conc, time_to_non_detection_h=0.0
        )

    peak = max(concs) if concs else 0.0
    if peak <= cutoff:
        return CurveAnalysis(detected=False, peak_conc=peak, time_to_non_detection_h=0.0)

    last = 0.0
    for t, c in zip(reversed(times_h), reversed(concs)):
        if c > cutoff:
            last = t
            break
    return CurveAnalysis(detected=True, peak_conc=peak, time_to_non_detection_h=last)


def sample_concentration_curve(
    single_dose_conc: float,
    k: float,
    cutoff: float,
    half_life_h: float,
    duration_h: float,
    dosing_interval_h: float,
    absorption_rate_h: float,
    samples: int = CURVE_SAMPLES,
    accumulated_conc: float | None = None,
) -> ConcentrationCurve:
    ka = max(LN2 / absorption_rate_h, CURVE_MIN_KA)
    tmax = max(duration_h + CURVE_HALF_LIVES * half_life_h, CURVE_MIN_SPAN_H)
    dt = tmax / (samples - 1)
    num_doses = int(math.floor(duration_h / dosing_interval_h)) + 1

    times = tuple(i * dt for i in range(samples))
    concs = tuple(
        _concentration_at(
            t,
            single_dose_conc,
            k,
            ka,
            absorption_rate_h,
            dosing_interval_h,
            num_doses,
            duration_h,
        )
        for t in times
    )

    cmax = max(max(concs), cutoff * 2.0, 1.0)

    return ConcentrationCurve(
        times_h=times,
        concs=concs,
        cmax=cmax,
        cutoff=cutoff,
        duration_h=duration_h,
        num_doses=num_doses,
        half_life_h=half_life_h,
        absorption_rate_h=absorption_rate_h,
        analysis=analyse_curve(times, concs, cutoff, accumulated_conc),
    )


def curve_for_result(result: MatrixResult, absorption_rate_h: float, duration_h: float) -> ConcentrationCurve:
    return sample_concentration_curve(
        single_dose_conc=result.single_dose_conc,
        k=result.elimination_rate,
        cutoff=result.cutoff_ng_ml,
        half_life_h=result.half_life_h,
        duration_h=duration_h,
        dosing_interval_h=result.dosing_interval_h,
        absorption_rate_h=absorption_rate_h,
        accumulated_conc=result.accumulation.total_conc,
    )


def is_plotted(conc: float) -> bool:
    return conc > CURVE_MIN_PLOTTED_CONC
