from __future__ import annotations

import random

import pytest

from app.plots import render_spectrum, spectrum_row
from core.constants import SPECTRUM_POINTS
from core.enums import DrugId
from core.exceptions import InvalidInputError
from core.models import SpectrumPeak
from model.spectrum import generate_peaks, peak_label, synthesize_spectrum


def _fentanyl(conc: float = 100.0, seed: int = 7):
    peaks = generate_peaks(DrugId.fentanyl, random.Random(seed))
    return synthesize_spectrum(DrugId.fentanyl, conc, peaks)


def test_frequency_axis_runs_from_12_to_0_ppm():
    s = _fentanyl()

    assert len(s.freqs_ppm) == SPECTRUM_POINTS == 121
    assert s.freqs_ppm[0] == 12.0
    assert s.freqs_ppm[-1] == pytest.approx(0.0, abs=1e-9)
    assert s.freqs_ppm[1] == pytest.approx(11.9)
    assert len(s.intensities) == 121


def test_peak_widths_stay_in_band():
    for seed in range(20):
        for drug_id in (DrugId.fentanyl, DrugId.lsd, DrugId.alcohol):
            for p in generate_peaks(drug_id, random.Random(seed)):
                assert 0.08 <= p.width_ppm <= 0.0991


def test_seed_makes_widths_reproducible():
    a = generate_peaks(DrugId.lsd, random.Random(42))
    b = generate_peaks(DrugId.lsd, random.Random(42))
    assert a == b


def test_curated_peak_sets():
    assert len(generate_peaks(DrugId.fentanyl)) == 4
    assert len(generate_peaks(DrugId.methamphetamine)) == 4
    assert len(generate_peaks(DrugId.amphetamine)) == 3
    assert len(generate_peaks(DrugId.lsd)) == 6
    # Drugs without a curated set use the generic one
    assert [p.shift_ppm for p in generate_peaks(DrugId.alcohol)] == [7.0, 3.5, 1.5]


def test_strongest_fentanyl_line_sits_at_piperidine_shift():
    s = _fentanyl()
    top = max(range(len(s.intensities)), key=lambda i: s.intensities[i])

    assert s.freqs_ppm[top] == pytest.approx(2.4)
    assert s.max_intensity == s.intensities[top]
    # 200 * 100/100 plus small tails from the other peaks
    assert s.max_intensity == pytest.approx(200.0, rel=0.02)


def test_intensity_scales_with_display_concentration():
    low = _fentanyl(conc=50.0)
    high = _fentanyl(conc=100.0)
    assert high.max_intensity == pytest.approx(2 * low.max_intensity)


def test_zero_concentration_is_flat_with_unit_scale():
    s = _fentanyl(conc=0.0)

    assert all(v == 0.0 for v in s.intensities)
    assert s.max_intensity == 1.0
    assert all("*" not in spectrum_row(s, line) for line in range(50, 0, -1))


def test_negative_concentration_is_rejected():
    with pytest.raises(InvalidInputError):
        synthesize_spectrum(DrugId.fentanyl, -1.0, generate_peaks(DrugId.fentanyl))


def test_out_of_range_peak_is_skipped():
    peaks = (SpectrumPeak(shift_ppm=13.0, intensity=100.0, width_ppm=0.09),)
    s = synthesize_spectrum(DrugId.alcohol, 100.0, peaks)
    assert s.max_intensity == 1.0


@pytest.mark.parametrize(
    "shift,label",
    [
        (10.5, "AROMATIC H"),
        (7.0, "AROMATIC/VINYL H"),
        (6.8, "O-CH, N-CH"),
        (3.0, "CH2, CH3 ALPHA"),
        (1.3, "CH2, CH3 BETA"),
        (0.9, "CH3 ALIPHATIC"),
    ],
)
def test_generic_labels_by_shift(shift, label):
    assert peak_label(SpectrumPeak(shift_ppm=shift, intensity=1.0, width_ppm=0.09)) == label


def test_curated_labels_override_generic():
    labels = [peak_label(p) for p in generate_peaks(DrugId.methamphetamine)]
    assert labels == ["PHENYL H", "CH2-PHENYL", "CH-NH2", "CH3 (IF METH)"]


def test_rows_carry_grid_and_peaks():
    s = _fentanyl()

    top = spectrum_row(s, 50)
    assert len(top) == 121
    assert top[96] == "*"  # 2.4 ppm
    assert top.count("*") == 1
    assert top[0] == "|"
    assert top[10] == "+"
    assert top[1] == "-"

    minor = spectrum_row(s, 45)
    assert minor[1] == "."

    plain = spectrum_row(s, 49)
    assert plain[1] == " "


def test_render_spectrum_table():
    s = _fentanyl()
    lines = render_spectrum(s, "Fentanyl")

    assert lines[1].strip() == "1H NMR SPECTRUM SIMULATION FOR FENTANYL"
    assert "PEAK ASSIGNMENTS:" in lines
    assert any(line.endswith("FENTANYL N-CH3") for line in lines)
    assert "NUMBER OF PEAKS DETECTED: 4" in lines
