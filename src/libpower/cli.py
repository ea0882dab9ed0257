"""libpower CLI - Command Line Interface.

This module provides the command-line interface for libpower, allowing users
to inspect the internal power records of a Liberty library and to evaluate
internal power at a given input slew and output load.

The CLI is built using Typer and uses Rich for formatted output.

Typical usage example:

  $ libpower parse my_lib.lib
  $ libpower power my_lib.lib --cell INV_X1 --pin Y --slew 0.1 --load 0.01 --report
"""

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import ErrorPolicy, get_settings
from .exceptions import LibertyError
from .log_utils import setup_logging
from .models.common import OperatingCondition, RiseFall

app = typer.Typer(
    name="libpower",
    help="libpower: Liberty internal power analysis",
    no_args_is_help=True,
)
console = Console()


@app.callback(invoke_without_command=False)
def main(
    ctx: typer.Context,
    quiet: Optional[bool] = typer.Option(
        None, "--quiet", "-q", help="Suppress debug logs (show warnings/errors only)"
    ),
    on_error: Optional[ErrorPolicy] = typer.Option(
        None, "--on-error", help="What to do with malformed internal_power groups"
    ),
):
    """libpower: Liberty internal power analysis."""
    settings = get_settings()
    setup_logging(quiet=settings.quiet if quiet is None else quiet)
    ctx.obj = {"on_error": on_error if on_error is not None else settings.on_error}


def _load_library(ctx: typer.Context, file: Path):
    """Parses a Liberty file, exiting with an error message on failure."""
    from .parsers.liberty import LibertyParser

    if not file.exists():
        console.print(f"[red]Error:[/red] File not found: {file}")
        raise typer.Exit(1)

    on_error = (ctx.obj or {}).get("on_error") or get_settings().on_error
    parser = LibertyParser(on_error=on_error)
    try:
        lib = parser.parse(file)
    except LibertyError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    return parser, lib


def _edge_label(power, rf: RiseFall) -> str:
    model = power.model(rf)
    if model is None or model.table is None:
        return "-"
    return f"{model.table.order}D"


@app.command()
def parse(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Path to Liberty file"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output JSON file"),
):
    """Parses a Liberty file and lists its internal power records.

    Args:
        file: The path to the Liberty file to parse.
        output: Optional. Path to save the internal power summary as a JSON file.

    Raises:
        typer.Exit: If the file is not found or cannot be loaded.
    """
    logger = logging.getLogger("libpower.cli")
    logger.info(f"Starting parse for {file}")

    parser, lib = _load_library(ctx, file)
    powers = [power for cell in lib.cells.values() for power in cell.internal_powers]

    console.print(
        Panel.fit(
            f"[bold green]Library:[/] {lib.name}\n"
            f"[bold]Cells:[/] {lib.cell_count}\n"
            f"[bold]Internal power records:[/] {len(powers)}\n"
            f"[bold]Power unit:[/] {lib.leakage_power_unit}\n"
            f"[bold]Nom Voltage:[/] {lib.nom_voltage or 'N/A'} V\n"
            f"[bold]Nom Temp:[/] {lib.nom_temperature or 'N/A'} °C",
            title="Liberty Summary",
        )
    )

    if powers:
        table = Table(title="Internal Power")
        table.add_column("Cell")
        table.add_column("Pin")
        table.add_column("Related")
        table.add_column("When")
        table.add_column("PG Pin")
        table.add_column("Rise", justify="center")
        table.add_column("Fall", justify="center")
        for power in powers:
            table.add_row(
                power.liberty_cell.name,
                power.port.name,
                power.related_port.name if power.related_port else "-",
                str(power.when) if power.when else "-",
                power.related_pg_pin or "-",
                _edge_label(power, RiseFall.RISE),
                _edge_label(power, RiseFall.FALL),
            )
        console.print(table)

    for w in parser.validate(lib):
        console.print(f"[yellow]Warning:[/yellow] {w}")

    if output:
        data = {
            "library": lib.name,
            "power_unit": lib.leakage_power_unit,
            "internal_power": [
                {
                    "cell": power.liberty_cell.name,
                    "pin": power.port.name,
                    "related_pin": power.related_port.name if power.related_port else None,
                    "when": str(power.when) if power.when else None,
                    "related_pg_pin": power.related_pg_pin,
                    "rise_order": power.model(RiseFall.RISE).table.order
                    if power.model(RiseFall.RISE)
                    else None,
                    "fall_order": power.model(RiseFall.FALL).table.order
                    if power.model(RiseFall.FALL)
                    else None,
                }
                for power in powers
            ],
        }
        output.write_text(json.dumps(data, indent=2))
        console.print(f"[green]Saved to:[/green] {output}")


@app.command()
def power(
    ctx: typer.Context,
    file: Path = typer.Argument(..., help="Path to Liberty file"),
    cell: str = typer.Option(..., "--cell", "-c", help="Cell name"),
    pin: str = typer.Option(..., "--pin", "-p", help="Output pin name"),
    related: Optional[str] = typer.Option(None, "--related", "-r", help="Related pin name"),
    edge: Optional[RiseFall] = typer.Option(None, "--edge", "-e", help="Only this edge"),
    slew: float = typer.Option(..., "--slew", "-s", help="Input transition time (library units)"),
    load: float = typer.Option(..., "--load", "-l", help="Output load (library units)"),
    process: Optional[float] = typer.Option(None, "--process", help="Corner process factor"),
    voltage: Optional[float] = typer.Option(None, "--voltage", help="Corner voltage"),
    temperature: Optional[float] = typer.Option(None, "--temperature", help="Corner temperature"),
    report: bool = typer.Option(False, "--report", help="Show the table lookup report"),
    digits: Optional[int] = typer.Option(None, "--digits", "-d", help="Digits in reports"),
):
    """Evaluates internal power of a cell pin at a given slew and load.

    Without corner options the library's default operating condition is used
    (nominal if it has none). Any of --process/--voltage/--temperature builds a
    corner from the library's nominal values with those overrides.

    Raises:
        typer.Exit: If the file, cell or pin is not found, or the data is malformed.
    """
    _, lib = _load_library(ctx, file)
    digits = digits if digits is not None else get_settings().report_digits

    liberty_cell = lib.find_cell(cell)
    if liberty_cell is None:
        console.print(f"[red]Error:[/red] Cell not found: {cell}")
        raise typer.Exit(1)
    port = liberty_cell.find_port(pin)
    if port is None:
        console.print(f"[red]Error:[/red] Pin not found: {cell}/{pin}")
        raise typer.Exit(1)

    corner = lib.default_corner
    if process is not None or voltage is not None or temperature is not None:
        corner = OperatingCondition(
            name="cli",
            process=process if process is not None else (lib.nom_process or 1.0),
            voltage=voltage if voltage is not None else (lib.nom_voltage or 1.0),
            temperature=temperature if temperature is not None else (lib.nom_temperature or 25.0),
        )

    powers = [
        p
        for p in liberty_cell.internal_powers_for(port)
        if related is None or (p.related_port is not None and p.related_port.name == related)
    ]
    if not powers:
        console.print(f"[yellow]No internal power for {cell}/{pin}[/yellow]")
        raise typer.Exit(0)

    edges = [edge] if edge is not None else list(RiseFall.range())
    unit = lib.units.power_unit

    table = Table(title=f"Internal Power {cell}/{pin} (slew={slew}, load={load})")
    table.add_column("Related")
    table.add_column("When")
    for rf in edges:
        table.add_column(f"{rf.value.capitalize()} ({unit.suffix})", justify="right")

    reports = []
    try:
        for p in powers:
            row = [
                p.related_port.name if p.related_port else "-",
                str(p.when) if p.when else "-",
            ]
            for rf in edges:
                row.append(unit.as_string(p.power(rf, corner, slew, load), digits))
                if report:
                    text = p.report_power(rf, corner, slew, load, digits)
                    if text:
                        related_name = p.related_port.name if p.related_port else "-"
                        reports.append((f"{related_name} {rf.value}", text))
            table.add_row(*row)
    except LibertyError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print(table)
    for title, text in reports:
        console.print(Panel(escape(text.rstrip()), title=title), highlight=False)


if __name__ == "__main__":
    app()
