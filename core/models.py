# dataclasses for reference data, inputs and computed results
from __future__ import annotations

from dataclasses import dataclass, field

from core.enums import DrugId, Matrix, Metabolism, RouteId


@dataclass(frozen=True)
class MatrixConstants:
    half_life_h: float
    cutoff_ng_ml: float


@dataclass(frozen=True)
class DrugProfile:
    id: DrugId
    name: str
    category: str  # menu grouping, display only
    drug_class: str
    dosing_interval_h: float
    matrices: dict[Matrix, MatrixConstants]
    metabolite_info: str = ""
    fixed_dose_mg: float | None = None  # replaces the entered dosage when set
    concentration_scale: float = 1.0
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class RouteProfile:
    id: RouteId
    name: str
    bioavailability: float
    absorption_rate_h: float
    oral_factor: float
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True)
class RouteParams:
    """Working copy of route constants; adjustment rules produce new instances."""

    bioavailability: float
    absorption_rate_h: float
    oral_factor: float

    @classmethod
    def from_profile(cls, route: RouteProfile) -> "RouteParams":
        return cls(
            bioavailability=route.bioavailability,
            absorption_rate_h=route.absorption_rate_h,
            oral_factor=route.oral_factor,
        )


@dataclass(frozen=True)
class PatientInput:
    dosage_mg: int
    weight_kg: int
    age_years: int
    metabolism: Metabolism
    duration_h: float


@dataclass(frozen=True)
class Accumulation:
    num_doses: int
    accumulation_factor: float
    total_conc: float
    steady_state_conc: float
    buildup_percent: float


@dataclass(frozen=True)
class DetectionTime:
    total_seconds: int
    days: int
    hours: int
    minutes: int
    seconds: int

    @property
    def whole_hours(self) -> int:
        return self.total_seconds // 3600


@dataclass(frozen=True)
class MatrixResult:
    matrix: Matrix
    half_life_h: float  # after flip-flop correction
    cutoff_ng_ml: float
    dosing_interval_h: float
    single_dose_conc: float
    elimination_rate: float
    accumulation: Accumulation
    detection_time_h: float
    detection: DetectionTime


@dataclass(frozen=True)
class AppliedRule:
    rule_id: str
    name: str
    note: str = ""


@dataclass
class DetectionReport:
    drug: DrugProfile
    route: RouteProfile
    patient: PatientInput
    params: RouteParams
    effective_dose_mg: float
    applied_rules: list[AppliedRule] = field(default_factory=list)
    results: dict[Matrix, MatrixResult] = field(default_factory=dict)

    @property
    def primary(self) -> MatrixResult:
        return self.results[Matrix.saliva]


@dataclass(frozen=True)
class CurveAnalysis:
    detected: bool
    peak_conc: float
    time_to_non_detection_h: float


@dataclass(frozen=True)
class ConcentrationCurve:
    times_h: tuple[float, ...]
    concs: tuple[float, ...]
    cmax: float  # vertical scale, not the observed peak
    cutoff: float
    duration_h: float
    num_doses: int
    half_life_h: float
    absorption_rate_h: float
    analysis: CurveAnalysis

    @property
    def t_end(self) -> float:
        return self.times_h[-1]

    @property
    def dt(self) -> float:
        return self.times_h[1] - self.times_h[0]


@dataclass(frozen=True)
class SpectrumPeak:
    shift_ppm: float
    intensity: float
    width_ppm: float
    label: str | None = None  # drug-specific assignment, if curated


@dataclass(frozen=True)
class Spectrum:
    drug_id: DrugId
    display_conc: float
    freqs_ppm: tuple[float, ...]
    intensities: tuple[float, ...]
    peaks: tuple[SpectrumPeak, ...]
    max_intensity: float  # scaling value, 1.0 when the spectrum is flat
