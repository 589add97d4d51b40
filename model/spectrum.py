# synthetic 1H NMR spectrum, illustrative only

from __future__ import annotations

import random
from functools import lru_cache
from typing import Any

from core.constants import (
    PEAK_WIDTH_BASE_PPM,
    PEAK_WIDTH_FLOOR_PPM,
    PEAK_WIDTH_JITTER_STEPS,
    SPECTRUM_MAX_PPM,
    SPECTRUM_POINTS,
    SPECTRUM_STEP_PPM,
)
from core.enums import DrugId
from core.exceptions import InvalidInputError
from core.models import Spectrum, SpectrumPeak
from data.loaders import load_nmr_curation

# (lower shift bound, label); first matching band from the top wins
_SHIFT_LABELS: tuple[tuple[float, str], ...] = (
    (10.0, "AROMATIC H"),
    (7.0, "AROMATIC/VINYL H"),
    (4.0, "O-CH, N-CH"),
    (2.0, "CH2, CH3 ALPHA"),
    (1.0, "CH2, CH3 BETA"),
)
_FALLBACK_LABEL = "CH3 ALIPHATIC"


@lru_cache(maxsize=1)
def _peak_table() -> tuple[tuple[dict[str, Any], ...], dict[str, tuple[dict[str, Any], ...]]]:
    raw = load_nmr_curation()
    default = tuple(raw["default"])
    by_drug: dict[str, tuple[dict[str, Any], ...]] = {}
    for g in raw.get("groups", []):
        for did in g["drugs"]:
            by_drug[did] = tuple(g["peaks"])
    return default, by_drug


def reference_peaks(drug_id: DrugId) -> tuple[dict[str, Any], ...]:
    default, by_drug = _peak_table()
    return by_drug.get(drug_id.value, default)


def generate_peaks(drug_id: DrugId, rng: random.Random | None = None) -> tuple[SpectrumPeak, ...]:
    """Curated shifts and intensities with a line width jittered per run (0.080-0.099 ppm)."""
    rng = rng or random.Random()
    peaks = []
    for p in reference_peaks(drug_id):
        width = PEAK_WIDTH_BASE_PPM + rng.randrange(PEAK_WIDTH_JITTER_STEPS) / 1000.0
        peaks.append(
            SpectrumPeak(
                shift_ppm=float(p["shift_ppm"]),
                intensity=float(p["intensity"]),
                width_ppm=width,
                label=p.get("label"),
            )
        )
    return tuple(peaks)


def peak_label(peak: SpectrumPeak) -> str:
    if peak.label:
        return peak.label
    for lower, label in _SHIFT_LABELS:
        if peak.shift_ppm >= lower:
            return label
    return _FALLBACK_LABEL


def in_range(peak: SpectrumPeak) -> bool:
    return 0.0 <= peak.shift_ppm <= SPECTRUM_MAX_PPM


def frequency_axis() -> tuple[float, ...]:
    return tuple(SPECTRUM_MAX_PPM - i * SPECTRUM_STEP_PPM for i in range(SPECTRUM_POINTS))


def synthesize_spectrum(
    drug_id: DrugId,
    display_conc: float,
    peaks: tuple[SpectrumPeak, ...],
) -> Spectrum:
    """
    Sum a Lorentzian-like line for each peak over the 12.0 -> 0.0 ppm axis.

    Peaks outside the axis are skipped. `max_intensity` falls back to 1.0 so
    a flat spectrum (zero concentration) still has a usable scale.
    """
    if display_conc < 0:
        raise InvalidInputError("concentration", display_conc, "zero or more")

    freqs = frequency_axis()
    values = [0.0] * len(freqs)

    for p in peaks:
        if not in_range(p):
            continue
        width = max(PEAK_WIDTH_FLOOR_PPM, p.width_ppm)
        height = p.intensity * display_conc / 100.0
        for i, f in enumerate(freqs):
            delta = abs(f - p.shift_ppm)
            values[i] += height / (1.0 + (delta / width) ** 2)

    top = max(values)
    if top <= 0.0:
        top = 1.0

    return Spectrum(
        drug_id=drug_id,
        display_conc=display_conc,
        freqs_ppm=freqs,
        intensities=tuple(values),
        peaks=peaks,
        max_intensity=top,
    )
