"""Typer-based CLI for importing, updating and exporting ranking tables."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .archive import bundle_filename, iter_model_bundle
from .csv_codec import decode, encode
from .layout import MAIN_CSV_NAME, NOTES_CSV_NAME
from .results import DecodeResult, TableFormatError
from .stores import TableStore

app = typer.Typer(help="Ranking table CSV utilities")
console = Console()

_DEFAULT_DB = Path("./data/ranking.db")


def _read_text(path: Path) -> str:
    if not path.exists() or not path.is_file():
        raise typer.BadParameter(f"File not found: {path}")
    return path.read_text(encoding="utf-8")


def _decode_files(main_path: Path, notes_path: Optional[Path]) -> DecodeResult:
    main_csv = _read_text(main_path)
    notes_csv = _read_text(notes_path) if notes_path is not None else None
    try:
        return decode(main_csv, notes_csv)
    except TableFormatError as exc:
        typer.secho(f"Cannot read {main_path}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc


def _print_summary(title: str, counts: dict[str, int]) -> None:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Item")
    table.add_column("Count", justify="right")
    for name, value in counts.items():
        table.add_row(name.replace("_", " "), str(value))
    console.print(table)


def _print_diagnostics(result: DecodeResult) -> None:
    for diagnostic in result.diagnostics:
        typer.secho(f"  skipped {diagnostic}", fg=typer.colors.YELLOW)


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log decoder warnings and store activity.")) -> None:
    logging.basicConfig(level=logging.INFO if verbose else logging.ERROR, format="%(levelname)s %(name)s: %(message)s")


@app.command("import")
def import_table(
    main_csv: Path = typer.Argument(..., help="Main ranking CSV with control rows."),
    notes: Optional[Path] = typer.Option(None, "--notes", "-n", help="Notes CSV in the same layout."),
    db: Path = typer.Option(_DEFAULT_DB, "--db", help="Path to the SQLite table store."),
):
    """Replace the stored table with the contents of the CSV files."""

    result = _decode_files(main_csv, notes)
    TableStore(db).replace_table(result.model)
    typer.secho(f"Imported {main_csv} into {db}", fg=typer.colors.GREEN)
    _print_summary("Import", result.counts.as_dict())
    _print_diagnostics(result)


@app.command()
def update(
    main_csv: Path = typer.Argument(..., help="Main ranking CSV with control rows."),
    notes: Optional[Path] = typer.Option(None, "--notes", "-n", help="Notes CSV in the same layout."),
    db: Path = typer.Option(_DEFAULT_DB, "--db", help="Path to the SQLite table store."),
):
    """Merge the CSV files into the stored table without deleting anything."""

    result = _decode_files(main_csv, notes)
    counts = TableStore(db).merge_table(result.model)
    typer.secho(f"Updated {db} from {main_csv}", fg=typer.colors.GREEN)
    _print_summary("Update", counts.as_dict())
    _print_diagnostics(result)


@app.command()
def export(
    db: Path = typer.Option(_DEFAULT_DB, "--db", help="Path to the SQLite table store."),
    out: Path = typer.Option(Path("./export"), "--out", "-o", help="Directory for the exported CSV files."),
):
    """Write the stored table back out as the main and notes CSV files."""

    model = TableStore(db).load_table()
    try:
        encoded = encode(model)
    except TableFormatError as exc:
        typer.secho(f"Cannot export {db}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    out.mkdir(parents=True, exist_ok=True)
    (out / MAIN_CSV_NAME).write_text(encoded.main_csv, encoding="utf-8")
    (out / NOTES_CSV_NAME).write_text(encoded.notes_csv, encoding="utf-8")
    typer.secho(f"Exported table to {out}", fg=typer.colors.GREEN)
    _print_summary("Export", model.stats())


@app.command()
def bundle(
    main_csv: Path = typer.Argument(..., help="Main ranking CSV with control rows."),
    notes: Optional[Path] = typer.Option(None, "--notes", "-n", help="Notes CSV in the same layout."),
    out: Optional[Path] = typer.Option(None, "--out", "-o", help="ZIP file to write (defaults to a dated name)."),
):
    """Re-encode the CSV files and pack them into a ZIP with a README."""

    result = _decode_files(main_csv, notes)
    target = out or Path(bundle_filename())
    try:
        chunks = iter_model_bundle(result.model)
    except TableFormatError as exc:
        typer.secho(f"Cannot bundle {main_csv}: {exc}", fg=typer.colors.RED)
        raise typer.Exit(code=1) from exc

    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("wb") as handle:
        for chunk in chunks:
            handle.write(chunk)
    typer.secho(f"Bundle written to {target}", fg=typer.colors.GREEN)
    _print_diagnostics(result)


@app.command()
def validate(
    main_csv: Path = typer.Argument(..., help="Main ranking CSV with control rows."),
    notes: Optional[Path] = typer.Option(None, "--notes", "-n", help="Notes CSV in the same layout."),
):
    """Decode the CSV files and report what would be imported."""

    result = _decode_files(main_csv, notes)
    _print_summary("Validate", result.counts.as_dict())
    if result.ok:
        typer.secho("No problems found", fg=typer.colors.GREEN)
        return
    typer.secho(f"{len(result.diagnostics)} item(s) would be skipped:", fg=typer.colors.YELLOW)
    _print_diagnostics(result)


if __name__ == "__main__":  # pragma: no cover
    app()
