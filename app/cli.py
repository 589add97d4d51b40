from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from collections.abc import Callable

from core.constants import normalize_name, parse_metabolism
from core.enums import Metabolism
from core.exceptions import InvalidInputError, NarcDetectError, UnknownIdentifierError
from core.models import DetectionReport, DrugProfile, PatientInput, RouteProfile, Spectrum
from data.reference import ReferenceData, get_reference_data
from model.curve import curve_for_result
from model.pk import compute_detection
from model.spectrum import generate_peaks, synthesize_spectrum

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]

_CATEGORY_TITLES = {
    "synthetic_opioids": "SYNTHETIC OPIOIDS",
    "natural_opioids": "NATURAL OPIOIDS",
    "stimulants": "STIMULANTS",
    "depressants": "DEPRESSANTS",
    "psychedelics": "PSYCHEDELICS",
    "other": "OTHER",
}

BANNER = (
    "=" * 68,
    "NARCDETECT - Drug Detection Time Calculator v2.0",
    "FOR ORAL FLUID (SALIVA) TESTING",
    "=" * 68,
    "",
    "ESTIMATES TIME UNTIL NON-DETECTABLE",
    "BASED ON PHARMACOKINETIC PARAMETERS",
    "INCLUDES CHRONIC USE ACCUMULATION",
    "AND ROUTES OF ADMINISTRATION",
    "WITH NMR SPECTRUM SIMULATION",
    "",
)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def format_drug_menu(ref: ReferenceData) -> list[str]:
    """Drug names grouped by menu category, aliases in parentheses."""
    out = ["AVAILABLE DRUGS BY TYPE:", "=" * 68]
    groups = ref.drugs_by_category()
    for cat, title in _CATEGORY_TITLES.items():
        drugs = groups.get(cat)
        if not drugs:
            continue
        out.append(f"{title}:")
        for d in drugs:
            alias = f" ({', '.join(a.upper() for a in d.aliases)})" if d.aliases else ""
            out.append(f"  {d.name.upper()}{alias}")
        out.append("")
    out.append("=" * 68)
    return out


def format_route_menu(ref: ReferenceData) -> list[str]:
    out = ["AVAILABLE ROUTES OF ADMINISTRATION:"]
    for r in ref.routes.values():
        abbrev = ", ".join(a.upper() for a in r.aliases[:4])
        out.append(f"  {r.name.upper():<15} {abbrev}")
    return out


def _parse_number(field: str, raw: str, cast: Callable[[str], float | int]) -> float | int:
    try:
        return cast(raw.strip())
    except (TypeError, ValueError) as e:
        raise InvalidInputError(field, raw, "a number") from e


def _parse_metabolism_arg(raw: str | None) -> Metabolism | None:
    if raw is None:
        return None
    m = parse_metabolism(raw)
    if m is None:
        raise InvalidInputError("metabolism", raw, "one of 1/2/3 or slow/normal/fast")
    return m


def _ask_yes_no(question: str, input_fn: InputFn) -> bool:
    try:
        answer = input_fn(f"{question} (Y/N): ")
    except EOFError:
        # Closed stdin after a finished report means "no"
        return False
    return normalize_name(answer).startswith("y")


def collect_interactive(
    ref: ReferenceData,
    args: argparse.Namespace,
    input_fn: InputFn = input,
) -> tuple[DrugProfile, RouteProfile, PatientInput]:
    """
    Prompt for every value not already given on the command line.

    Each answer is resolved immediately so an unknown name or a bad number
    stops the run before any calculation.
    """
    if args.drug:
        drug = ref.resolve_drug(args.drug)
    else:
        print("\n".join(format_drug_menu(ref)))
        drug = ref.resolve_drug(input_fn("Enter drug name: "))

    if args.route:
        route = ref.resolve_route(args.route)
    else:
        print()
        print("\n".join(format_route_menu(ref)))
        route = ref.resolve_route(input_fn("Enter route of administration: "))

    print()
    dose = args.dose
    if dose is None:
        dose = _parse_number("dosage", input_fn("Enter dosage in mg: "), int)
    weight = args.weight
    if weight is None:
        weight = _parse_number("weight", input_fn("Enter body weight in kg: "), int)
    age = args.age
    if age is None:
        age = _parse_number("age", input_fn("Enter age in years: "), int)
    metabolism = _parse_metabolism_arg(args.metabolism)
    if metabolism is None:
        metabolism = _parse_metabolism_arg(
            input_fn("Metabolism rate (1=SLOW, 2=NORMAL, 3=FAST): ")
        )
    duration = args.duration
    if duration is None:
        duration = _parse_number(
            "duration", input_fn("Duration of use in hours (24.0=1 day): "), float
        )

    patient = PatientInput(
        dosage_mg=dose,
        weight_kg=weight,
        age_years=age,
        metabolism=metabolism,
        duration_h=float(duration),
    )
    return drug, route, patient


def collect_from_args(
    ref: ReferenceData, args: argparse.Namespace, p: argparse.ArgumentParser
) -> tuple[DrugProfile, RouteProfile, PatientInput]:
    missing = [
        opt
        for opt, v in (
            ("DRUG", args.drug),
            ("ROUTE", args.route),
            ("--dose", args.dose),
            ("--weight", args.weight),
            ("--age", args.age),
            ("--metabolism", args.metabolism),
            ("--duration", args.duration),
        )
        if v is None
    ]
    if missing:
        p.error(f"missing required input: {', '.join(missing)} (or use --interactive)")

    drug = ref.resolve_drug(args.drug)
    route = ref.resolve_route(args.route)
    patient = PatientInput(
        dosage_mg=args.dose,
        weight_kg=args.weight,
        age_years=args.age,
        metabolism=_parse_metabolism_arg(args.metabolism),
        duration_h=float(args.duration),
    )
    return drug, route, patient


def build_spectrum(report: DetectionReport, seed: int | None) -> Spectrum:
    rng = random.Random(seed)
    peaks = generate_peaks(report.drug.id, rng)
    return synthesize_spectrum(report.drug.id, float(report.patient.dosage_mg), peaks)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="narcdetect",
        description=(
            "Educational drug detection-time estimator (oral fluid and urine). "
            "Not for clinical or forensic use."
        ),
    )
    p.add_argument("drug", nargs="?", help="Drug name or alias, e.g. morphine, heroin.")
    p.add_argument("route", nargs="?", help="Route name or abbreviation, e.g. oral, IV, SL.")
    p.add_argument("--dose", type=int, metavar="MG", help="Dosage in mg.")
    p.add_argument("--weight", type=int, metavar="KG", help="Body weight in kg.")
    p.add_argument("--age", type=int, metavar="YEARS", help="Age in years.")
    p.add_argument(
        "--metabolism",
        metavar="CLASS",
        help="Metabolism rate: slow|normal|fast (or 1|2|3).",
    )
    p.add_argument(
        "--duration",
        type=float,
        metavar="HOURS",
        help="Duration of use in hours (24.0 = 1 day).",
    )
    p.add_argument(
        "--nmr",
        action="store_true",
        help="Also print the synthetic NMR spectrum and peak table.",
    )
    p.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the NMR line widths (reproducible spectra).",
    )
    p.add_argument(
        "--format",
        choices=("plain", "rich", "json"),
        default="plain",
        help="Output format. 'rich' uses tables/panels; 'json' prints a versioned payload.",
    )
    p.add_argument(
        "-i",
        "--interactive",
        action="store_true",
        help="Prompt for any input not given on the command line.",
    )
    p.add_argument(
        "--list",
        action="store_true",
        help="Print the available drugs and routes, then exit.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging to stderr.")
    return p


def main(argv: list[str] | None = None, input_fn: InputFn = input) -> None:
    p = _build_parser()
    args = p.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        ref = get_reference_data()
    except NarcDetectError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2) from e

    if args.list:
        print("\n".join(format_drug_menu(ref)))
        print()
        print("\n".join(format_route_menu(ref)))
        return

    interactive = args.interactive or (
        (args.drug is None or args.route is None) and sys.stdin.isatty()
    )

    try:
        if interactive:
            if args.format != "json":
                print("\n".join(BANNER))
            drug, route, patient = collect_interactive(ref, args, input_fn)
        else:
            drug, route, patient = collect_from_args(ref, args, p)

        logger.debug("Inputs: drug=%s route=%s %s", drug.id, route.id, patient)
        report = compute_detection(drug, route, patient)
    except UnknownIdentifierError as e:
        print(str(e), file=sys.stderr)
        print(
            "Tip: use --list to see known drug names, routes and abbreviations.",
            file=sys.stderr,
        )
        raise SystemExit(2) from e
    except NarcDetectError as e:
        print(str(e), file=sys.stderr)
        raise SystemExit(2) from e
    except (EOFError, KeyboardInterrupt) as e:
        print("\nInput aborted.", file=sys.stderr)
        raise SystemExit(2) from e

    curve = curve_for_result(report.primary, report.params.absorption_rate_h, patient.duration_h)

    # JSON MODE
    if args.format == "json":
        from app.json_output import build_json_payload

        want_nmr = args.nmr or (
            interactive and _ask_yes_no("Generate NMR spectrum simulation?", input_fn)
        )
        spectrum = build_spectrum(report, args.seed) if want_nmr else None
        payload = build_json_payload(report=report, curve=curve, spectrum=spectrum)
        print(json.dumps(payload, indent=2, sort_keys=False))
        return

    from app.plots import render_concentration_curve, render_spectrum

    curve_lines = render_concentration_curve(curve)

    # RICH MODE
    if args.format == "rich":
        from app.render import render_rich_chart, render_rich_report

        render_rich_report(report, curve_lines)
        render_chart = render_rich_chart
    # PLAIN MODE
    else:
        from app.render import format_report, render_plain

        render_plain([""] + curve_lines + [""] + format_report(report))
        render_chart = render_plain

    want_nmr = args.nmr or (
        interactive and _ask_yes_no("\nGenerate NMR spectrum simulation?", input_fn)
    )
    if want_nmr:
        spectrum = build_spectrum(report, args.seed)
        render_chart([""] + render_spectrum(spectrum, drug.name))


if __name__ == "__main__":
    main()
