from __future__ import annotations

from typing import Any

from core.models import (
    ConcentrationCurve,
    DetectionReport,
    DetectionTime,
    MatrixResult,
    Spectrum,
)
from model.spectrum import peak_label

SCHEMA_VERSION = "1.0"


def _val(x: Any) -> Any:
    """Convert enums-like objects to plain JSON-safe values."""
    if hasattr(x, "value"):
        return x.value
    return x


def _detection_to_dict(d: DetectionTime) -> dict[str, int]:
    return {
        "total_seconds": d.total_seconds,
        "days": d.days,
        "hours": d.hours,
        "minutes": d.minutes,
        "seconds": d.seconds,
    }


def _matrix_to_dict(r: MatrixResult) -> dict[str, Any]:
    acc = r.accumulation
    return {
        "matrix": _val(r.matrix),
        "half_life_h": r.half_life_h,
        "cutoff_ng_ml": r.cutoff_ng_ml,
        "dosing_interval_h": r.dosing_interval_h,
        "num_doses": acc.num_doses,
        "accumulation_factor": acc.accumulation_factor,
        "single_dose_conc": r.single_dose_conc,
        "total_conc": acc.total_conc,
        "elimination_rate": r.elimination_rate,
        "steady_state_conc": acc.steady_state_conc,
        "buildup_percent": acc.buildup_percent,
        "detection_time_h": r.detection_time_h,
        "detection": _detection_to_dict(r.detection),
    }


def _curve_to_dict(c: ConcentrationCurve) -> dict[str, Any]:
    a = c.analysis
    return {
        "times_h": list(c.times_h),
        "concs": list(c.concs),
        "scale_max": c.cmax,
        "cutoff": c.cutoff,
        "analysis": {
            "detected": a.detected,
            "peak_conc": a.peak_conc,
            "time_to_non_detection_h": a.time_to_non_detection_h,
        },
    }


def _spectrum_to_dict(s: Spectrum) -> dict[str, Any]:
    return {
        "display_conc": s.display_conc,
        "max_intensity": s.max_intensity,
        "freqs_ppm": list(s.freqs_ppm),
        "intensities": list(s.intensities),
        "peaks": [
            {
                "shift_ppm": p.shift_ppm,
                "intensity": p.intensity,
                "width_ppm": p.width_ppm,
                "assignment": peak_label(p),
            }
            for p in s.peaks
        ],
    }


def build_json_payload(
    *,
    report: DetectionReport,
    curve: ConcentrationCurve | None = None,
    spectrum: Spectrum | None = None,
) -> dict[str, Any]:
    patient = report.patient

    # Deterministic matrix ordering: saliva first, then urine
    results = [_matrix_to_dict(r) for r in report.results.values()]

    payload: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "input": {
            "drug": {"id": _val(report.drug.id), "name": report.drug.name},
            "route": {"id": _val(report.route.id), "name": report.route.name},
            "dosage_mg": patient.dosage_mg,
            "weight_kg": patient.weight_kg,
            "age_years": patient.age_years,
            "metabolism": patient.metabolism.name,
            "duration_h": patient.duration_h,
        },
        "route_params": {
            "bioavailability": report.params.bioavailability,
            "absorption_rate_h": report.params.absorption_rate_h,
            "oral_factor": report.params.oral_factor,
        },
        "effective_dose_mg": report.effective_dose_mg,
        "applied_rules": [
            {"id": a.rule_id, "name": a.name, "note": a.note}
            for a in report.applied_rules
        ],
        "results": results,
        "metabolite_info": report.drug.metabolite_info,
    }
    if curve is not None:
        payload["curve"] = _curve_to_dict(curve)
    if spectrum is not None:
        payload["spectrum"] = _spectrum_to_dict(spectrum)
    return payload
