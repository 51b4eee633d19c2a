from __future__ import annotations

import json
from pathlib import Path

import typer
from pydantic import ValidationError
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from pse.catalog.batteries import battery_financials, find_battery, list_batteries
from pse.catalog.rate_plans import find_rate_plan, list_rate_plans, rates_from_plan
from pse.config import settings
from pse.engine.offset_cap import compute_solar_battery_offset_cap
from pse.estimators.combined import calculate_solar_battery_combined
from pse.estimators.projection import calculate_combined_multi_year
from pse.io import load_scenario, run_scenario
from pse.log import configure_logging

app = typer.Typer(help="Peak-shaving savings estimates for solar + battery on Ontario rate plans.")

# ----------------------------- Typer Options (module-scope) -----------------------------

OPT_PLAN: str = typer.Option(settings.default_rate_plan, "--plan", help="Rate plan id (ulo, tou).")
OPT_USAGE: float = typer.Option(..., "--usage", min=0, help="Annual usage in kWh.")
OPT_SOLAR: float = typer.Option(0.0, "--solar", min=0, help="Annual solar production in kWh.")
OPT_BATTERY: str = typer.Option("renon-16", "--battery", help="Battery id from the catalog.")
OPT_AI_MODE: bool = typer.Option(settings.ai_mode, "--ai-mode/--no-ai-mode", help="Allow grid charging at the cheapest rate.")
OPT_CAP: float | None = typer.Option(None, "--cap-fraction", min=0, max=1, help="Cap savings at this share of the baseline bill.")
OPT_LOG_LEVEL: str | None = typer.Option(None, "--log-level", help="Override PSE_LOG_LEVEL.")

# -------------------------------------- Helpers --------------------------------------

def _money(v: float) -> str:
    return f"${v:,.2f}"


@app.callback()
def main(log_level: str | None = OPT_LOG_LEVEL) -> None:
    configure_logging(log_level)

# -------------------------------------- Commands --------------------------------------

@app.command()
def plans() -> None:
    """List rate plans and their $/kWh period rates."""
    table = Table(title="Rate plans ($/kWh)")
    table.add_column("id", no_wrap=True)
    table.add_column("name")
    for col in ("ultra-low", "off-peak", "mid-peak", "on-peak"):
        table.add_column(col, justify="right", no_wrap=True)
    for p in list_rate_plans():
        r = rates_from_plan(p)
        table.add_row(p.id, p.name, f"{r.ultra_low:.3f}", f"{r.off_peak:.3f}", f"{r.mid_peak:.3f}", f"{r.on_peak:.3f}")
    rprint(table)


@app.command()
def batteries() -> None:
    """List the battery catalog with rebate and net price."""
    table = Table(title="Batteries")
    table.add_column("id", no_wrap=True)
    table.add_column("battery")
    for col in ("usable kWh", "price", "rebate", "net"):
        table.add_column(col, justify="right", no_wrap=True)
    for b in list_batteries():
        f = battery_financials(b)
        table.add_row(b.id, b.label, f"{b.usable_kwh:g}", _money(b.price), _money(f.rebate), _money(f.net_price))
    rprint(table)


@app.command()
def estimate(
    plan: str = OPT_PLAN,
    usage: float = OPT_USAGE,
    solar: float = OPT_SOLAR,
    battery: str = OPT_BATTERY,
    ai_mode: bool = OPT_AI_MODE,
    cap_fraction: float | None = OPT_CAP,
) -> None:
    """Baseline, solar and solar + battery bills for one plan."""
    rate_plan = find_rate_plan(plan)
    if rate_plan is None:
        raise typer.BadParameter(f"unknown rate plan: {plan}", param_hint="--plan")
    spec = find_battery(battery)
    if spec is None:
        raise typer.BadParameter(f"unknown battery: {battery}", param_hint="--battery")

    est = calculate_solar_battery_combined(
        usage, solar, spec, rate_plan, offset_cap_fraction=cap_fraction, ai_mode=ai_mode,
    )
    rprint(f"[bold]{rate_plan.name}[/bold] with {spec.label} ({est.formula.value} formula)")
    rprint(f"  Baseline bill:             {_money(est.baseline_annual_bill)}")
    rprint(f"  After solar:               {_money(est.post_solar_annual_bill)}")
    rprint(f"  After solar + battery:     {_money(est.post_solar_battery_annual_bill)}")
    rprint(f"  [green]Annual savings:[/green]            {_money(est.combined_annual_savings)}")
    rprint(f"  [green]Monthly savings:[/green]           {_money(est.combined_monthly_savings)}")


@app.command(name="offset-cap")
def offset_cap(
    usage: float = OPT_USAGE,
    production: float = typer.Option(..., "--production", min=0, help="Annual solar production in kWh."),
    pitch: str | None = typer.Option(None, "--pitch", help="Roof pitch label or degrees."),
    azimuth: float | None = typer.Option(None, "--azimuth", help="Roof azimuth in degrees (180 = south)."),
) -> None:
    """Plausible maximum total offset for the roof."""
    res = compute_solar_battery_offset_cap(
        usage_kwh=usage, production_kwh=production, roof_pitch=pitch, roof_azimuth=azimuth,
    )
    rprint(f"[bold]Offset cap:[/bold] {res.cap_fraction:.2f}")
    rprint(res.to_dict())


@app.command()
def project(
    savings: float = typer.Option(..., "--savings", help="First-year annual savings ($)."),
    net_cost: float = typer.Option(..., "--net-cost", help="System cost after rebates ($)."),
    years: int = typer.Option(settings.projection_years, "--years", min=1, help="Projection horizon."),
) -> None:
    """Multi-year savings with rate escalation and degradation."""
    proj = calculate_combined_multi_year(savings, net_cost, years=years)
    table = Table(title=f"{years}-year projection")
    for col in ("year", "annual", "cumulative"):
        table.add_column(col, justify="right")
    for y in proj.years:
        table.add_row(str(y.year), _money(y.annual_savings), _money(y.cumulative_savings))
    rprint(table)
    payback = "never" if proj.payback_years == float("inf") else f"{proj.payback_years:.1f} years"
    rprint(f"[bold]Payback:[/bold] {payback}  [bold]Net profit:[/bold] {_money(proj.net_profit)}  "
           f"[bold]Annual ROI:[/bold] {proj.annual_roi_label}")


@app.command(name="run-scenario")
def run_scenario_cmd(path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Scenario JSON file.")) -> None:
    """Evaluate a JSON scenario file and print the result as JSON."""
    try:
        scenario = load_scenario(path)
    except ValidationError as e:
        rprint(f"[red]Invalid scenario:[/red] {escape(str(e))}")
        raise typer.Exit(code=1) from e
    typer.echo(json.dumps(run_scenario(scenario), indent=2))


if __name__ == "__main__":
    app()
