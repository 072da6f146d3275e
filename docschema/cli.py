"""Command line interface for schema inference."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import rich.traceback
import typer
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TimeElapsedColumn

from . import encode as encode_module
from .config import ModelConfig
from .errors import DecodeError, EmptyModelError
from .io import ChunkingConfig, DocumentStream
from .model import SchemaModel, build_model

rich.traceback.install(show_locals=False)

app = typer.Typer(help="Infer a probabilistic schema from JSON and Extended JSON documents.")
console = Console()

_OUTPUT_FORMATS = {"json", "yaml"}


def _resolve_path(path: Path | str) -> Path:
    """Resolve a string or path to an absolute Path."""
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise typer.BadParameter(f"Path does not exist: {resolved}")
    return resolved


@app.callback()
def configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log discovered paths and kinds."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _infer_source(
    source: Path,
    model_config: ModelConfig,
    chunk_config: ChunkingConfig,
) -> SchemaModel:
    stream = DocumentStream(_resolve_path(source), chunk_config)
    with Progress(SpinnerColumn(), *Progress.get_default_columns(), TimeElapsedColumn(), console=console) as progress:
        task = progress.add_task(f"Inferring {source.name}", start=True)
        model = build_model(
            stream,
            model_config,
            progress_callback=lambda advance: progress.update(task, advance=advance),
        )
    if stream.skipped:
        console.print(f"[yellow]Skipped {stream.skipped} invalid record(s) in {source}[/yellow]")
    return model


def _emit(model: SchemaModel, output: Optional[Path], output_format: str, indent: Optional[int]) -> None:
    snapshot = model.snapshot()
    if output_format == "yaml":
        rendered = encode_module.to_yaml(snapshot)
    else:
        rendered = encode_module.to_json(snapshot, indent=indent)

    if output is None:
        typer.echo(rendered)
        return

    output_path = output.expanduser().resolve()
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(rendered if rendered.endswith("\n") else rendered + "\n", encoding="utf-8")
    console.print(f"Schema for {snapshot.document_count} document(s) written to [green]{output_path}[/green]")


def _check_format(output_format: str) -> str:
    normalized = output_format.lower()
    if normalized not in _OUTPUT_FORMATS:
        raise typer.BadParameter("format must be 'json' or 'yaml'")
    return normalized


@app.command()
def infer(
    source: Path = typer.Argument(..., help="JSON, JSONL or Extended JSON file to analyse."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Path to write the schema; printed to stdout when omitted."
    ),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format: json or yaml."),
    chunk_size: int = typer.Option(1000, "--chunk-size", help="Number of documents read per chunk."),
    input_format: Optional[str] = typer.Option(
        None, "--input-format", help="Force 'jsonl', 'json_array' or 'json_object' instead of detecting it."
    ),
    max_records: Optional[int] = typer.Option(None, "--max-records", help="Stop after this many documents."),
    sample_size: int = typer.Option(10, "--sample-size", help="Distinct sample values kept per field kind."),
    skip_invalid: bool = typer.Option(
        False,
        "--skip-invalid/--strict",
        help="Skip records that fail to decode instead of aborting.",
    ),
    indent: Optional[int] = typer.Option(2, "--indent", help="JSON indentation; use 0 for compact output."),
) -> None:
    """Infer the schema of a single document collection."""

    output_format = _check_format(output_format)
    try:
        model_config = ModelConfig(sample_size=sample_size)
        chunk_config = ChunkingConfig(
            size=chunk_size, format=input_format, max_records=max_records, skip_invalid=skip_invalid
        )
    except ValueError as error:
        raise typer.BadParameter(str(error)) from error

    try:
        model = _infer_source(source, model_config, chunk_config)
        _emit(model, output, output_format, indent or None)
    except (DecodeError, EmptyModelError) as error:
        console.print(f"[red]{error}[/red]")
        raise typer.Exit(code=1) from error


@app.command()
def merge(
    sources: list[Path] = typer.Argument(..., help="Files whose schemas are combined into one."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Path to write the merged schema; printed to stdout when omitted."
    ),
    output_format: str = typer.Option("json", "--format", "-f", help="Output format: json or yaml."),
    sample_size: int = typer.Option(10, "--sample-size", help="Distinct sample values kept per field kind."),
    indent: Optional[int] = typer.Option(2, "--indent", help="JSON indentation; use 0 for compact output."),
) -> None:
    """Infer one schema per source and merge them into a combined schema."""

    output_format = _check_format(output_format)
    try:
        model_config = ModelConfig(sample_size=sample_size)
    except ValueError as error:
        raise typer.BadParameter(str(error)) from error

    combined = SchemaModel(model_config)
    try:
        for source in sources:
            combined.merge(_infer_source(source, model_config, ChunkingConfig()))
        _emit(combined, output, output_format, indent or None)
    except (DecodeError, EmptyModelError) as error:
        console.print(f"[red]{error}[/red]")
        raise typer.Exit(code=1) from error


def main() -> None:
    """Entrypoint for the ``docschema`` console script."""

    app()


if __name__ == "__main__":  # pragma: no cover
    main()
