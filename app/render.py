from __future__ import annotations

from core.enums import Matrix
from core.models import DetectionReport, MatrixResult

RULE = "=" * 68

DISCLAIMERS = (
    "Estimates based on population averages",
    "Individual variation can be significant",
    "Chronic use calculations are simplified",
    "Assumes regular dosing intervals",
    "Route-specific parameters are estimates",
    "For research/educational use only",
)

# Text styles for the rich front end
_MATRIX_STYLE = {
    Matrix.saliva: "bold cyan",
    Matrix.urine: "bold yellow",
}


def _mk_console():
    """
    Force ANSI + colors even when Rich mis-detects TTY on Windows.
    Keep this in one place so every rich block behaves identically.
    """
    from rich.console import Console

    return Console(
        force_terminal=True,
        no_color=False,
        color_system="truecolor",
        stderr=False,
    )


def _input_lines(report: DetectionReport) -> list[str]:
    p = report.patient
    prm = report.params
    out = [
        "INPUT PARAMETERS:",
        f"  Dosage: {p.dosage_mg} mg",
        f"  Weight: {p.weight_kg} kg",
        f"  Age: {p.age_years} years",
        f"  Metabolism: {p.metabolism.name.upper()}",
        f"  Duration of use: {p.duration_h:.1f} hours ({p.duration_h / 24.0:.2f} days)",
        f"  Route: {report.route.name} (Bioavail {prm.bioavailability * 100.0:.1f}%, "
        f"Abs rate {prm.absorption_rate_h:.2f} hr)",
    ]
    if report.drug.fixed_dose_mg is not None:
        out.append(f"  {report.drug.name} dose: {report.drug.fixed_dose_mg:.0f} mg (constant)")
    return out


def _pk_lines(r: MatrixResult) -> list[str]:
    acc = r.accumulation
    return [
        f"PHARMACOKINETIC DATA ({r.matrix.value.upper()}):",
        f"  Half-life: {r.half_life_h:.1f} hours",
        f"  Cutoff: {r.cutoff_ng_ml:.1f} ng/mL",
        f"  Dosing interval: {r.dosing_interval_h:.1f} hours",
        f"  Number of doses: {acc.num_doses}",
        f"  Accumulation factor: {acc.accumulation_factor:.3f}",
        f"  Single dose conc: {r.single_dose_conc:.2f} ng/mL",
        f"  Total accum conc: {acc.total_conc:.2f} ng/mL",
        f"  Elim rate: {r.elimination_rate:.4f} /hour",
        f"  Steady-state conc: {acc.steady_state_conc:.2f} ng/mL",
        f"  Buildup to SS: {acc.buildup_percent:.1f}%",
    ]


def _detection_lines(r: MatrixResult) -> list[str]:
    d = r.detection
    return [
        f"DETECTION TIME ({r.matrix.value.upper()}): {d.total_seconds} seconds",
        f"EQUIVALENT TO: {d.whole_hours} hours, {d.minutes} minutes, {d.seconds} seconds",
        f"FULL FORMAT: {d.days} days, {d.hours} hours, {d.minutes} minutes, {d.seconds} seconds",
    ]


def _rule_lines(report: DetectionReport) -> list[str]:
    if not report.applied_rules:
        return ["ROUTE ADJUSTMENTS: none"]
    out = ["ROUTE ADJUSTMENTS:"]
    for a in report.applied_rules:
        out.append(f"  - [{a.rule_id}] {a.name}")
        if a.note:
            out.append(f"    {a.note}")
    return out


def format_report(report: DetectionReport) -> list[str]:
    """Plain-text detection report, one string per output line."""
    out = [
        RULE,
        f"DETECTION TIME CALCULATION FOR {report.drug.name.upper()}",
        RULE,
        "",
    ]
    out += _input_lines(report)
    out.append("")
    out += _rule_lines(report)

    for r in report.results.values():
        out.append("")
        out += _pk_lines(r)

    for r in report.results.values():
        out.append("")
        out += _detection_lines(r)

    out.append("")
    out.append(f"METABOLITE INFO: {report.drug.metabolite_info}")
    out.append("")
    out.append("** IMPORTANT DISCLAIMERS **")
    out += [f"- {d}" for d in DISCLAIMERS]
    return out


def render_plain(lines: list[str]) -> None:
    for line in lines:
        print(line)


def render_rich_chart(lines: list[str]) -> None:
    from rich.text import Text

    # Charts are fixed-width; keep them unstyled so columns stay aligned
    _mk_console().print(Text("\n".join(lines)), soft_wrap=True)


def render_rich_report(report: DetectionReport, curve_lines: list[str]) -> None:
    from rich.panel import Panel
    from rich.table import Table
    from rich.text import Text

    render_rich_chart(curve_lines)
    console = _mk_console()

    title = Text(f"Detection time: {report.drug.name}", style="bold")
    console.print(Panel("\n".join(_input_lines(report)[1:]), title=title, expand=False))

    if report.applied_rules:
        rules = Table(title="Route adjustments", show_lines=False)
        rules.add_column("Rule", no_wrap=True)
        rules.add_column("Name", overflow="fold")
        rules.add_column("Note", overflow="fold")
        for a in report.applied_rules:
            rules.add_row(a.rule_id, a.name, a.note)
        console.print(rules)

    table = Table(title="Pharmacokinetic data", show_lines=False)
    table.add_column("Quantity", no_wrap=True)
    for m in report.results:
        table.add_column(m.value.capitalize(), justify="right", style=_MATRIX_STYLE.get(m, ""))

    results = list(report.results.values())
    table_rows = [
        ("Half-life (h)", lambda r: f"{r.half_life_h:.1f}"),
        ("Cutoff (ng/mL)", lambda r: f"{r.cutoff_ng_ml:.1f}"),
        ("Dosing interval (h)", lambda r: f"{r.dosing_interval_h:.1f}"),
        ("Number of doses", lambda r: str(r.accumulation.num_doses)),
        ("Accumulation factor", lambda r: f"{r.accumulation.accumulation_factor:.3f}"),
        ("Single dose conc (ng/mL)", lambda r: f"{r.single_dose_conc:.2f}"),
        ("Total accum conc (ng/mL)", lambda r: f"{r.accumulation.total_conc:.2f}"),
        ("Elim rate (/h)", lambda r: f"{r.elimination_rate:.4f}"),
        ("Steady-state conc (ng/mL)", lambda r: f"{r.accumulation.steady_state_conc:.2f}"),
        ("Buildup to SS (%)", lambda r: f"{r.accumulation.buildup_percent:.1f}"),
        ("Detection time (s)", lambda r: str(r.detection.total_seconds)),
        (
            "Detection time (d h m s)",
            lambda r: f"{r.detection.days}d {r.detection.hours}h "
            f"{r.detection.minutes}m {r.detection.seconds}s",
        ),
    ]
    for label, fmt in table_rows:
        table.add_row(label, *(fmt(r) for r in results))
    console.print(table)

    console.print(f"[bold]Metabolite info:[/bold] {report.drug.metabolite_info}")

    console.print(
        Panel(
            "\n".join(f"- {d}" for d in DISCLAIMERS),
            title=Text("Important disclaimers", style="bold red"),
            border_style="red",
            expand=False,
        )
    )
