"""
M-Pesa SMS Parser - Main Entry Point

Command-line interface around the parsing engine. It parses single
messages, re-parses exported message backlogs in bulk, and checks
structured records before a bulk import.

Architecture Overview:
┌──────────────┐
│  SMS text    │
└──────┬───────┘
       │
       ▼
┌──────────────────────────────────────────────────────────────┐
│                        PARSING ENGINE                         │
│  ┌────────────┐  ┌────────────┐  ┌────────────┐  ┌────────┐  │
│  │ Normalizer │─▶│  Primary   │─▶│Alternative │─▶│ Basic  │  │
│  │            │  │ templates  │  │ templates  │  │fallback│  │
│  └────────────┘  └────────────┘  └────────────┘  └────────┘  │
│                 Scoring + Validation → ParseOutcome           │
└─────────────────────────┬────────────────────────────────────┘
                          │
                          ▼
┌──────────────────────────────────────────────────────────────┐
│                         OUTPUT LAYER                          │
│              JSON / JSONL / CSV outcome writers               │
└──────────────────────────────────────────────────────────────┘
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mpesa import (
    CATALOG,
    ConfigError,
    EngineSettings,
    MessageParser,
    ParseOutcome,
    load_settings,
    parse_batch,
    validate_import_batch,
)
from output import ExportFormat, OutcomeWriter


# Configure logging
def setup_logging(verbose: bool = False, log_file: Optional[Path] = None):
    """Configure loguru logging."""
    # Remove default handler
    logger.remove()

    # Console logging
    log_level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=log_level,
        colorize=True
    )

    # File logging
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="10 MB"
        )


def read_messages(input_path: Path) -> list[str]:
    """
    Read messages from a file.

    - .json: a list of strings, or of objects with an "sms_content" key
    - .jsonl: one string or object per line
    - anything else: plain text, messages separated by blank lines
    """
    suffix = input_path.suffix.lower()
    text = input_path.read_text(encoding='utf-8')

    if suffix == '.json':
        items = json.loads(text)
        if not isinstance(items, list):
            raise ValueError("JSON input must be a list of messages")
    elif suffix == '.jsonl':
        items = [json.loads(line) for line in text.splitlines() if line.strip()]
    else:
        blocks = [block.strip() for block in text.replace('\r\n', '\n').split('\n\n')]
        return [block for block in blocks if block]

    messages = []
    for item in items:
        if isinstance(item, dict):
            item = item.get('sms_content', item.get('text', ''))
        messages.append(str(item))
    return messages


def print_outcome(console: Console, outcome: ParseOutcome) -> None:
    """Print one outcome as a table of populated fields."""
    status = "[green]✓ valid[/]" if outcome.is_valid else "[red]✗ invalid[/]"
    console.print(f"Status: {status}")
    console.print(f"Tier: {outcome.tier.value}")
    if outcome.pattern_used:
        console.print(f"Pattern: {outcome.pattern_used}")

    conf = outcome.confidence
    if isinstance(conf, float):
        console.print(f"Confidence: {conf:.0%}")
    elif conf is not None:
        console.print(f"Confidence: {conf.value}")

    populated = outcome.fields.to_dict()
    table = Table(title="Transaction")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in populated.items():
        if value is not None:
            table.add_row(name, escape(str(value)))
    console.print(table)

    if outcome.basic_info and outcome.basic_info.has_any_info:
        info = outcome.basic_info
        console.print(f"Phone numbers: {escape(', '.join(info.phone_numbers) or '-')}")
        console.print(f"Names: {escape(', '.join(info.names) or '-')}")

    for error in outcome.errors:
        console.print(f"  [red]Error:[/] {escape(error)}")
    for warning in outcome.warnings:
        console.print(f"  [yellow]Warning:[/] {escape(warning)}")


@click.group()
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='Path to settings.yaml configuration file'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--log-file',
    type=click.Path(path_type=Path),
    default=None,
    help='Write logs to file'
)
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool, log_file: Optional[Path]):
    """
    M-Pesa SMS Parser - turn notification messages into transactions.

    Examples:

        # Parse one message
        python main.py parse "MPESA received Ksh1,500.00 from ..."

        # Re-parse a backlog into CSV
        python main.py batch -i messages.json -o results.csv -f csv

        # List known templates
        python main.py patterns
    """
    setup_logging(verbose=verbose, log_file=log_file)

    try:
        settings = load_settings(config_path)
    except ConfigError as e:
        Console().print(f"[bold red]Initialization failed: {escape(str(e))}[/]")
        raise SystemExit(1)

    ctx.ensure_object(dict)
    ctx.obj['settings'] = settings


@main.command('parse')
@click.argument('text')
@click.option('--json', 'as_json', is_flag=True, help='Print the outcome as JSON')
@click.pass_context
def parse_command(ctx: click.Context, text: str, as_json: bool):
    """Parse a single message (use - to read it from stdin)."""
    if text == '-':
        text = click.get_text_stream('stdin').read()

    settings: EngineSettings = ctx.obj['settings']
    outcome = MessageParser(settings).parse(text)

    if as_json:
        click.echo(json.dumps(outcome.to_dict(), indent=2, default=str))
    else:
        print_outcome(Console(), outcome)

    if not outcome.is_valid:
        raise SystemExit(1)


@main.command('batch')
@click.option(
    '--input', '-i',
    'input_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='File of messages (.json, .jsonl or blank-line separated text)'
)
@click.option(
    '--output', '-o',
    'output_path',
    type=click.Path(path_type=Path),
    required=True,
    help='Output file path'
)
@click.option(
    '--format', '-f',
    'output_format',
    type=click.Choice([f.value for f in ExportFormat]),
    default=ExportFormat.JSON.value,
    help='Output format'
)
@click.option('--workers', '-w', type=int, default=None, help='Worker threads')
@click.pass_context
def batch_command(
    ctx: click.Context,
    input_path: Path,
    output_path: Path,
    output_format: str,
    workers: Optional[int],
):
    """Parse every message in a file and export the outcomes."""
    console = Console()
    settings: EngineSettings = ctx.obj['settings']

    try:
        messages = read_messages(input_path)
    except (ValueError, OSError) as e:
        console.print(f"[bold red]Error: cannot read {escape(str(input_path))}: {escape(str(e))}[/]")
        raise SystemExit(1)

    if not messages:
        console.print(f"[yellow]No messages found in {escape(str(input_path))}[/]")
        raise SystemExit(1)

    outcomes, summary = parse_batch(messages, settings=settings, workers=workers)
    OutcomeWriter().write(outcomes, output_path, ExportFormat(output_format), summary)

    table = Table(title="Batch Summary")
    table.add_column("Tier", style="cyan")
    table.add_column("Messages", justify="right")
    for tier, count in summary.by_tier.items():
        table.add_row(tier, str(count))
    console.print(table)

    console.print(f"[bold]Total:[/] {summary.total}")
    console.print(f"[bold green]Valid:[/] {summary.valid}")
    console.print(f"[bold red]Invalid:[/] {summary.invalid}")
    if summary.duplicate_transaction_ids:
        console.print(
            f"[yellow]Duplicate transaction ids:[/] {', '.join(summary.duplicate_transaction_ids)}"
        )
    console.print(f"[green]✓ Output written to: {escape(str(output_path))}[/]")


@main.command('patterns')
def patterns_command():
    """List the templates in priority order."""
    table = Table(title="Pattern Catalog")
    table.add_column("#", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Tier")
    table.add_column("Type")

    for index, pattern in enumerate(CATALOG, 1):
        table.add_row(str(index), pattern.name, pattern.tier.value, pattern.transaction_type.value)

    Console().print(table)


@main.command('validate-import')
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--json', 'as_json', is_flag=True, help='Print the report as JSON')
def validate_import_command(input_path: Path, as_json: bool):
    """Check structured records (JSON) before a bulk import."""
    console = Console()

    try:
        data = json.loads(input_path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as e:
        console.print(f"[bold red]Error: cannot read {escape(str(input_path))}: {escape(str(e))}[/]")
        raise SystemExit(1)

    if isinstance(data, dict):
        data = data.get('transactions')

    try:
        report = validate_import_batch(data)
    except ValueError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/]")
        raise SystemExit(1)

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        console.print(f"[bold green]Accepted:[/] {report.success}")
        console.print(f"[bold red]Rejected:[/] {report.errors}")
        for failure in report.failed:
            console.print(f"  [red]✗[/] {escape(failure['error'])}")

    if report.errors:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
