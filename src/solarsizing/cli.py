"""Command-line interface for solar self-consumption studies."""

import json
import logging
from datetime import datetime
from pathlib import Path

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import dates, db
from .analysis import pipeline, summary
from .collectors import datadis
from .config import DIALECTS, load_study
from .errors import SolarSizingError
from .loadcurve import DEFAULT_REFERENCE_YEAR, normalize_by_profile
from .tariffs import DEFAULT_CONFIG_PATH, load_tariffs_from_yaml, save_tariffs_to_db

console = Console()

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@click.group()
@click.option("--db-path", type=click.Path(), help="Path to SQLite database")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, db_path, verbose):
    """Solar sizing - load curves, tariffs, bills and Flux Solar credits."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = Path(db_path) if db_path else None
    configure_logging(verbose)


# Database commands
@cli.group("db")
def database():
    """Database management commands."""
    pass


@database.command("init")
@click.pass_context
def db_init(ctx):
    """Initialize the database schema."""
    db.init_db(ctx.obj["db_path"])
    console.print("[green]Database initialized successfully[/green]")

    if DEFAULT_CONFIG_PATH.exists():
        tariffs = load_tariffs_from_yaml(DEFAULT_CONFIG_PATH)
        count = save_tariffs_to_db(tariffs, ctx.obj["db_path"])
        console.print(f"[green]Loaded {count} tariff(s) from config[/green]")


@database.command("stats")
@click.pass_context
def db_stats(ctx):
    """Show database statistics."""
    stats = db.get_stats(ctx.obj["db_path"])

    table = Table(title="Database Statistics")
    table.add_column("Category", style="cyan")
    table.add_column("Count", justify="right")
    table.add_column("Details")

    curves = stats["load_curves"]
    table.add_row("Load curves", str(curves["count"]), f"{curves['missing_hours']} missing hours")
    for source, count in stats.get("curves_by_source", {}).items():
        table.add_row(f"  └ {source}", str(count), "")

    table.add_row("Tariffs", str(stats["tariffs"]["count"]), "")

    results = stats["study_results"]
    table.add_row("Study results", str(results["count"]), f"latest {results['latest'] or 'N/A'}")

    console.print(table)


# Load curve commands
@cli.group()
def curve():
    """Load curve import and inspection commands."""
    pass


@curve.command("import")
@click.argument("dialect", type=click.Choice(DIALECTS, case_sensitive=False))
@click.argument("csv_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--name", help="Curve name (defaults to the file name)")
@click.option("--annual-consumption", type=float, default=0.0, help="kWh per year (REE profiles)")
@click.option("--reference-year", type=int, help="Non-leap year to align the curve to")
@click.option("--as-profile", is_flag=True, help="Average by month, weekday and hour instead of trimming")
@click.option("--replace", is_flag=True, help="Replace a stored curve with the same name")
@click.pass_context
def curve_import(ctx, dialect, csv_path, name, annual_consumption, reference_year, as_profile, replace):
    """Import a consumption CSV and store its normalized 8760-hour curve."""
    collector = pipeline.COLLECTORS[dialect.lower()]
    path = Path(csv_path)
    name = name or path.stem

    try:
        if dialect.lower() == "ree":
            if as_profile:
                load_curve = normalize_by_profile(
                    collector.parse_csv(path, annual_consumption), name, reference_year or DEFAULT_REFERENCE_YEAR
                )
            else:
                load_curve = collector.load_curve(path, annual_consumption, name=name, reference_year=reference_year)
        elif as_profile:
            load_curve = normalize_by_profile(collector.parse_csv(path), name, reference_year or DEFAULT_REFERENCE_YEAR)
        else:
            load_curve = collector.load_curve(path, name=name, reference_year=reference_year)
    except SolarSizingError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    _store_curve(ctx, load_curve, collector.SOURCE_NAME, replace)


@curve.command("import-datadis")
@click.option("--nif", required=True, help="NIF of the contract holder")
@click.option("--cups", required=True, help="CUPS of the supply point")
@click.option("--start", "start", required=True, help="First month (YYYY/MM)")
@click.option("--end", "end", required=True, help="Last month (YYYY/MM)")
@click.option("--reference-year", type=int, help="Non-leap year to align the curve to")
@click.option("--replace", is_flag=True, help="Replace a stored curve with the same name")
@click.pass_context
def curve_import_datadis(ctx, nif, cups, start, end, reference_year, replace):
    """Download consumption from the Datadis API.

    Requires DATADIS_USER and DATADIS_PASSWORD environment variables.
    """
    try:
        console.print(f"[cyan]Fetching {cups} from Datadis ({start} to {end})...[/cyan]")
        load_curve = datadis.fetch_load_curve(
            nif.replace(" ", ""), cups, start.replace(" ", ""), end.replace(" ", ""), reference_year=reference_year
        )
    except SolarSizingError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)
    except httpx.TimeoutException:
        console.print("[red]Request timed out - try a shorter period[/red]")
        raise SystemExit(1)
    except httpx.HTTPError as e:
        console.print(f"[red]Could not reach Datadis: {e}[/red]")
        raise SystemExit(1)

    _store_curve(ctx, load_curve, datadis.SOURCE_NAME, replace)


def _store_curve(ctx, load_curve, source: str, replace: bool) -> None:
    db.init_db(ctx.obj["db_path"])
    result = db.save_load_curve(load_curve, source, ctx.obj["db_path"], replace=replace)
    if result["skipped"]:
        console.print(f"[yellow]Curve '{load_curve.name}' already exists, use --replace to overwrite[/yellow]")
        return
    console.print(
        f"[green]Imported '{load_curve.name}': {load_curve.total:.1f} kWh over {result['imported']} hours[/green]"
    )
    if load_curve.missing_hours:
        console.print(f"[yellow]{load_curve.missing_hours} hours were missing and set to 0[/yellow]")


@curve.command("list")
@click.pass_context
def curve_list(ctx):
    """List stored load curves."""
    db.init_db(ctx.obj["db_path"])
    curves = db.list_load_curves(ctx.obj["db_path"])

    if not curves:
        console.print("[yellow]No load curves found[/yellow]")
        return

    table = Table(title="Load Curves")
    table.add_column("Name", style="cyan")
    table.add_column("Source")
    table.add_column("Year", justify="right")
    table.add_column("Total kWh", justify="right")
    table.add_column("Missing", justify="right")

    for c in curves:
        table.add_row(
            c["name"], c["source"], str(c["reference_year"]), f"{c['total_kwh']:.1f}", str(c["missing_hours"])
        )

    console.print(table)


@curve.command("show")
@click.argument("name")
@click.pass_context
def curve_show(ctx, name):
    """Show monthly totals and profile statistics of a stored curve."""
    db.init_db(ctx.obj["db_path"])
    load_curve = db.get_load_curve(name, ctx.obj["db_path"])
    if load_curve is None:
        console.print(f"[red]No load curve named '{name}'[/red]")
        raise SystemExit(1)

    profile = summary.consumption_profile(load_curve.values, load_curve.dates)

    table = Table(title=f"{name}: {profile['yearly']:.1f} kWh/year")
    table.add_column("Month", style="cyan")
    table.add_column("kWh", justify="right")
    table.add_column("Peak hour kWh", justify="right")

    for month, (total, peak) in enumerate(zip(profile["monthly"], profile["monthly_peak"])):
        table.add_row(MONTH_NAMES[month], f"{total:.1f}", f"{peak:.2f}")

    console.print(table)
    if load_curve.missing_hours:
        console.print(f"[yellow]{load_curve.missing_hours} hours missing from source[/yellow]")


# Study commands
@cli.group()
def study():
    """Self-consumption study commands."""
    pass


@study.command("run")
@click.argument("config_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.option("--save", is_flag=True, help="Store the result in the database")
@click.pass_context
def study_run(ctx, config_path, as_json, save):
    """Run a study described by a YAML file."""
    db.init_db(ctx.obj["db_path"])
    try:
        config = load_study(Path(config_path), ctx.obj["db_path"])
        result = pipeline.run_study(config, ctx.obj["db_path"])
    except SolarSizingError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    data = result.to_dict()

    if save:
        row_id = db.save_study_result(result.name, data, ctx.obj["db_path"])
        if not as_json:
            console.print(f"[green]Saved study result #{row_id}[/green]")

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    console.print(summary.format_study_summary_text(data))
    console.print(_bills_table(data))
    if data["flux"]:
        console.print(_savings_table(data["flux"]))


def _bills_table(data: dict) -> Table:
    bills = data["bills"]
    table = Table(title="Monthly Bills (EUR)")
    table.add_column("Month", style="cyan")
    table.add_column("No PV", justify="right")
    table.add_column("With PV", justify="right")
    table.add_column("Compensated", justify="right")
    table.add_column("Unlimited", justify="right")
    table.add_column("Before credits", justify="right")
    if data["flux"]:
        table.add_column("Flux Solar", justify="right")

    for m, month in enumerate(MONTH_NAMES):
        row = [
            month,
            f"{bills['no_pv'][m]:.2f}",
            f"{bills['with_pv'][m]:.2f}",
            f"{bills['capped'][m]:.2f}",
            f"{bills['uncapped'][m]:.2f}",
            f"{bills['before_credits'][m]:.2f}",
        ]
        if data["flux"]:
            row.append(f"{data['flux']['final_year_bills'][m]:.2f}")
        table.add_row(*row)
    return table


def _savings_table(flux: dict) -> Table:
    table = Table(title="Annual Savings (EUR)")
    table.add_column("Year", style="cyan", justify="right")
    table.add_column("Savings", justify="right")
    for year, savings in enumerate(flux["annual_savings"], start=1):
        table.add_row(str(year), f"{savings:.2f}")
    return table


@study.command("history")
@click.option("--name", help="Only results of this study")
@click.pass_context
def study_history(ctx, name):
    """List stored study results."""
    db.init_db(ctx.obj["db_path"])
    results = db.get_study_results(name, ctx.obj["db_path"])

    if not results:
        console.print("[yellow]No study results found[/yellow]")
        return

    table = Table(title="Study Results")
    table.add_column("ID", justify="right")
    table.add_column("Study", style="cyan")
    table.add_column("Run at")
    table.add_column("Bill with PV", justify="right")
    table.add_column("Final year savings", justify="right")

    for r in results:
        payload = r["payload"]
        flux = payload.get("flux") or {}
        savings = flux.get("annual_savings") or []
        table.add_row(
            str(r["id"]),
            r["name"],
            r["run_at"],
            f"{sum(payload['bills']['capped']):.2f}",
            f"{savings[-1]:.2f}" if savings else "N/A",
        )

    console.print(table)


# Tariff commands
@cli.group()
def tariff():
    """Tariff management commands."""
    pass


@tariff.command("load")
@click.option("--config", type=click.Path(exists=True), help="Path to tariffs.yaml")
@click.pass_context
def tariff_load(ctx, config):
    """Load tariffs from YAML config."""
    config_path = Path(config) if config else None
    try:
        tariffs = load_tariffs_from_yaml(config_path)
    except SolarSizingError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)
    db.init_db(ctx.obj["db_path"])
    count = save_tariffs_to_db(tariffs, ctx.obj["db_path"])
    console.print(f"[green]Loaded {count} tariff(s)[/green]")


@tariff.command("periods")
@click.argument("moment")
@click.option("--class", "tariff_class", default="2.0TD", help="2.0TD, 3.0TD or 6.1TD")
@click.option("--holiday", "holidays", multiple=True, help="Holiday date (YYYY-MM-DD), repeatable")
def tariff_periods(moment, tariff_class, holidays):
    """Show the tariff period of an hour (YYYY-MM-DDTHH:MM)."""
    try:
        when = datetime.fromisoformat(moment)
        period = dates.tariff_period(when, tariff_class, holidays)
    except (ValueError, SolarSizingError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1)

    console.print(f"{when:%Y-%m-%d %H:%M} ({when:%A}) -> {tariff_class} period P{period}")


if __name__ == "__main__":
    cli()
