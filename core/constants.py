from __future__ import annotations

from typing import Dict

from core.enums import Metabolism

# ln(2) as used throughout the model (kept at three decimals)
LN2 = 0.693

# Accumulation engine
DEGENERATE_R_TOLERANCE = 1e-3
MAX_BUILDUP_PERCENT = 100.0

# One year of continuous use; bounds the dose count and the curve superposition
MAX_DURATION_H = 8760.0

# (lower age bound, factor); first matching band from the top wins
AGE_FACTOR_BANDS: tuple[tuple[int, float], ...] = (
    (65, 0.70),
    (50, 0.85),
    (35, 1.00),
    (0, 1.15),
)

METABOLISM_FACTORS: Dict[Metabolism, float] = {
    Metabolism.slow: 0.7,
    Metabolism.normal: 1.0,
    Metabolism.fast: 1.4,
}

# Concentration curve
CURVE_SAMPLES = 61
CURVE_MIN_SPAN_H = 24.0
CURVE_HALF_LIVES = 8.0
CURVE_GRID_EVERY_ROWS = 6
CURVE_MIN_KA = 0.1
CURVE_SLOW_ABSORPTION_H = 0.5
CURVE_MIN_PLOTTED_CONC = 0.001
PLOT_WIDTH = 119

# NMR spectrum
SPECTRUM_POINTS = 121
SPECTRUM_MAX_PPM = 12.0
SPECTRUM_STEP_PPM = 0.1
SPECTRUM_ROWS = 50
PEAK_WIDTH_BASE_PPM = 0.08
PEAK_WIDTH_JITTER_STEPS = 20  # 0.001 ppm each
PEAK_WIDTH_FLOOR_PPM = 0.05

_METABOLISM_ALIASES: Dict[str, Metabolism] = {
    "1": Metabolism.slow,
    "slow": Metabolism.slow,
    "2": Metabolism.normal,
    "normal": Metabolism.normal,
    "3": Metabolism.fast,
    "fast": Metabolism.fast,
}


def normalize_name(raw: str | None) -> str:
    """Canonical lookup key for drug/route names: trimmed, lowercased, single-spaced."""
    if raw is None:
        return ""
    return " ".join(str(raw).split()).lower()


def parse_metabolism(raw: str | int) -> Metabolism | None:
    return _METABOLISM_ALIASES.get(normalize_name(str(raw)))
