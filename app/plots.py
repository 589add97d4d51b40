"""Fixed-width ASCII charts: saliva concentration curve and NMR spectrum.

Both renderers return a list of lines so the plain and rich front ends can
print them the same way, and tests can inspect individual rows.
"""

from __future__ import annotations

from core.constants import CURVE_GRID_EVERY_ROWS, PLOT_WIDTH, SPECTRUM_POINTS, SPECTRUM_ROWS
from core.models import ConcentrationCurve, Spectrum
from model.curve import is_plotted
from model.spectrum import in_range, peak_label

RULE = "=" * 68

CURVE_MARK = "*"
CUTOFF_MARK = "-"
GRID_MARK = "+"
DOSING_END_MARK = "|"

# Column used for the end-of-dosing marker
DOSING_END_COL = int(PLOT_WIDTH * 0.1)

SPECTRUM_SCALE = (
    "12.0                10.0                8.0                 6.0"
    "                 4.0                 2.0                 0.0"
)
SPECTRUM_TICKS = "|" + ("                   |" * 6)


def _column(value: float, cmax: float) -> int:
    return round(value * (PLOT_WIDTH - 2) / cmax)


def curve_row(curve: ConcentrationCurve, i: int) -> str:
    t = curve.times_h[i]
    conc = curve.concs[i]
    line = [" "] * PLOT_WIDTH

    if i % CURVE_GRID_EVERY_ROWS == 0:
        for j in range(9, PLOT_WIDTH, 10):
            line[j] = GRID_MARK

    if curve.duration_h > 0 and abs(t - curve.duration_h) < curve.dt:
        if line[DOSING_END_COL] == " ":
            line[DOSING_END_COL] = DOSING_END_MARK

    if is_plotted(conc):
        pos = _column(conc, curve.cmax)
        if 0 <= pos < PLOT_WIDTH:
            line[pos] = CURVE_MARK

    cut = _column(curve.cutoff, curve.cmax)
    if 0 <= cut < PLOT_WIDTH and line[cut] != CURVE_MARK:
        line[cut] = CUTOFF_MARK

    return "".join(line)


def render_concentration_curve(curve: ConcentrationCurve) -> list[str]:
    out = [
        RULE,
        "  SALIVA CONCENTRATION vs TIME WITH ACCUMULATION",
        "       (INCLUDES CHRONIC USE BUILD-UP EFFECTS)",
        "       (ADJUSTED FOR ROUTE OF ADMINISTRATION)",
        RULE,
        "",
        f"Time range: 0 to {curve.t_end:.1f} hours",
        f"Maximum concentration: {curve.cmax:.2f} ng/mL",
        f"Cutoff level: {curve.cutoff:.2f} ng/mL",
        f"Dosing period: {curve.duration_h:.1f} hours ({curve.num_doses} doses)",
        "",
    ]

    out.extend(curve_row(curve, i) for i in range(len(curve.times_h)))

    out += [
        "",
        f"LEGEND: {CURVE_MARK} = CONCENTRATION CURVE",
        f"        {CUTOFF_MARK} = DETECTION CUTOFF THRESHOLD",
        f"        {GRID_MARK} = TIME GRID MARKERS (every {curve.t_end / 10.0:.1f} hrs)",
        f"        {DOSING_END_MARK} = END OF DOSING PERIOD",
        "",
    ]

    a = curve.analysis
    if a.detected:
        t = a.time_to_non_detection_h
        out += [
            f"ANALYSIS: Time to non-detection = {t:.1f} hours ({t / 24.0:.1f} days)",
            f"          Peak concentration = {a.peak_conc:.2f} ng/mL",
            f"          Dosing duration = {curve.duration_h:.1f} hours ({curve.duration_h / 24.0:.1f} days)",
            f"          Absorption rate = {curve.absorption_rate_h:.2f} hours",
            f"          Elimination half-life = {curve.half_life_h:.1f} hours",
        ]
    else:
        out += [
            f"ANALYSIS: Peak concentration ({a.peak_conc:.2f} ng/mL) below cutoff",
            "          No detection expected with these parameters",
        ]
    return out


def spectrum_row(spectrum: Spectrum, line_no: int) -> str:
    """Row `line_no` counts down from SPECTRUM_ROWS (top) to 1 (baseline)."""
    thresh = spectrum.max_intensity * line_no / SPECTRUM_ROWS

    if line_no % 10 == 0:
        fill = "-"
    elif line_no % 5 == 0:
        fill = "."
    else:
        fill = " "
    row = [fill] * SPECTRUM_POINTS

    for i, v in enumerate(spectrum.intensities):
        if v >= thresh:
            row[i] = "*"

    for i in range(0, SPECTRUM_POINTS, 20):
        if row[i] != "*":
            row[i] = "|"

    for i in range(10, SPECTRUM_POINTS, 10):
        if i % 20 != 0 and row[i] not in ("*", "|"):
            row[i] = "+"

    return "".join(row)


def render_spectrum(spectrum: Spectrum, drug_name: str) -> list[str]:
    out = [
        RULE,
        f"          1H NMR SPECTRUM SIMULATION FOR {drug_name.upper()}",
        f"       CONCENTRATION: {spectrum.display_conc:.2f} NG/ML IN SAMPLE",
        "       CHEMICAL SHIFT RANGE: 0.0 - 12.0 PPM",
        "       SYNTHETIC SPECTRUM FOR IDENTIFICATION",
        RULE,
        "",
        f"Maximum intensity = {spectrum.max_intensity:.2f} (relative)",
        "Chemical shift scale: 12.0 to 0.0 PPM",
        "",
        SPECTRUM_SCALE,
        SPECTRUM_TICKS,
    ]

    out.extend(spectrum_row(spectrum, line) for line in range(SPECTRUM_ROWS, 0, -1))

    if spectrum.peaks:
        out += [
            "",
            "PEAK ASSIGNMENTS:",
            "SHIFT(PPM)  INTENSITY  WIDTH   ASSIGNMENT",
            "----------  ---------  -----   ----------",
        ]
        for p in spectrum.peaks:
            if not in_range(p):
                continue
            out.append(
                f"{p.shift_ppm:8.2f}    {p.intensity:7.1f}    {p.width_ppm:5.2f}   {peak_label(p)}"
            )

    out += [
        "",
        "SPECTRUM ANALYSIS:",
        f"NUMBER OF PEAKS DETECTED: {len(spectrum.peaks)}",
        f"MAXIMUM PEAK INTENSITY:   {spectrum.max_intensity:.2f}",
        f"SAMPLE CONCENTRATION:     {spectrum.display_conc:.2f} NG/ML",
        "INTEGRATION COMPLETE",
        "",
        "* = SPECTRAL PEAK    | = MAJOR PPM GRID (2 PPM)    + = MINOR PPM GRID (1 PPM)",
    ]
    return out
