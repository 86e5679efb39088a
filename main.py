"""
Policy Intake - Main Entry Point

Command-line access to the intake core: reconcile a saved document-AI
response against the mapping table and vocabulary, validate the draft,
and preview the backend payload.

Architecture Overview:
┌──────────────────────┐
│  Document-AI result  │
└──────────┬───────────┘
           │
           ▼
┌──────────────────────────────────────────────────────────────┐
│                    RECONCILIATION LAYER                       │
│  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐           │
│  │   Adapter   │──│Mapping Table│──│ Vocabulary  │           │
│  └─────────────┘  └─────────────┘  └─────────────┘           │
└─────────────────────────┼────────────────────────────────────┘
                          │
                          ▼
┌──────────────────────────────────────────────────────────────┐
│                     VALIDATION LAYER                          │
│  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐           │
│  │  Overrides  │──│  Validator  │──│   Wizard    │           │
│  └─────────────┘  └─────────────┘  └─────────────┘           │
└─────────────────────────┼────────────────────────────────────┘
                          │
                          ▼
┌──────────────────────────────────────────────────────────────┐
│                     SUBMISSION LAYER                          │
│                  ┌─────────────────┐                         │
│                  │ Payload Builder │                         │
│                  └─────────────────┘                         │
└──────────────────────────────────────────────────────────────┘
"""

import sys
from pathlib import Path
from typing import Optional
import json

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from pipeline import IntakeSession, PipelineConfig, load_payload
from submission import SubmissionContext
from validation import check_national_id
from vocabulary import MasterDataPayload
from wizard import OperationType, STEP_TABLE, active_steps


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


def _print_result(result, report, console: Console):
    """Print mapped fields and validation issues."""
    table = Table(title="Mapped Fields")

    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_column("Confidence", justify="right")
    table.add_column("Tier", style="bold")
    table.add_column("Source")

    for name, mapped in result.mapped.items():
        if mapped.mapped_value.is_empty:
            continue
        table.add_row(
            name,
            mapped.mapped_value.display(),
            f"{mapped.confidence}%",
            mapped.confidence_tier.display_name,
            mapped.source.key,
        )

    console.print()
    console.print(table)

    if result.unmapped:
        console.print()
        console.print("[bold yellow]Unmapped fields:[/]")
        for extracted in result.unmapped:
            console.print(f"  {extracted.name}: {extracted.raw_value}")

    console.print()
    for issue in report.errors:
        console.print(f"[red]✗ {issue.field}[/]: {issue.message}")
    for issue in report.warnings:
        console.print(f"[yellow]⚠ {issue.field}[/]: {issue.message}")

    summary = result.summary
    console.print()
    console.print(f"[bold]Mapped:[/] {summary.mapped_fields}/{summary.total_fields} ({summary.success_percentage}%)")
    console.print(f"[bold red]Errors:[/] {len(report.errors)}")
    console.print(f"[bold yellow]Warnings:[/] {len(report.warnings)}")
    tab = report.first_tab_with_errors()
    if tab:
        console.print(f"[bold]First tab with errors:[/] {tab}")


@click.group()
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
def cli(ctx, verbose: bool, log_file: Optional[Path]):
    """Policy Intake - reconcile and validate AI-extracted policy data."""
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@cli.command()
@click.option(
    '--input', '-i',
    'input_path',
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help='Saved document-AI response (JSON or YAML)'
)
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='Path to intake.yaml configuration file'
)
@click.option(
    '--master-data', '-m',
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help='Saved master-data response (JSON or YAML)'
)
@click.option(
    '--operation',
    type=click.Choice([o.value for o in OperationType], case_sensitive=False),
    default=None,
    help='Operation type for the payload preview'
)
@click.option(
    '--payload', '-o',
    'payload_path',
    type=click.Path(path_type=Path),
    default=None,
    help='Write the backend payload to this file'
)
@click.option(
    '--json-report',
    type=click.Path(path_type=Path),
    default=None,
    help='Write detailed JSON report'
)
@click.option(
    '--strict',
    is_flag=True,
    help='Exit with status 1 when validation finds errors'
)
@click.pass_context
def reconcile(
    ctx,
    input_path: Path,
    config_path: Optional[Path],
    master_data: Optional[Path],
    operation: Optional[str],
    payload_path: Optional[Path],
    json_report: Optional[Path],
    strict: bool,
):
    """
    Reconcile a document-AI response into a policy draft.

    Examples:

        # Reconcile with the built-in vocabulary
        python main.py reconcile -i response.json

        # With backend master data and a payload preview
        python main.py reconcile -i response.json -m master.json -o payload.json
    """
    console = Console()
    console.print("[bold blue]Policy Intake[/]")

    try:
        config = PipelineConfig.from_yaml(str(config_path)) if config_path else PipelineConfig()

        vocabulary = None
        if master_data:
            vocabulary = MasterDataPayload.model_validate(load_payload(str(master_data)) or {}).to_vocabulary()

        session = IntakeSession(config, vocabulary)
        raw = load_payload(str(input_path))
        result = session.reconcile(raw)
        report = session.validator.validate(result.draft, result.mapped)

        _print_result(result, report, console)

        if payload_path:
            document = raw if isinstance(raw, dict) else {}
            context = SubmissionContext(
                processed_with_ai=True,
                file_name=document.get('fileName') or document.get('archivo') or input_path.name,
                completeness=result.summary.success_percentage,
                operation=OperationType.parse(operation),
            )
            payload = session.builder.build(result.draft, context)
            with open(payload_path, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
            console.print(f"[green]✓ Payload written to: {payload_path}[/]")

        if json_report:
            with open(json_report, 'w', encoding='utf-8') as f:
                json.dump({
                    'result': result.to_dict(),
                    'validation': report.to_dict(),
                }, f, indent=2, ensure_ascii=False, default=str)
            console.print(f"Report written to: {json_report}")

    except Exception as e:
        console.print(f"[bold red]Error: {e}[/]")
        if ctx.obj.get('verbose'):
            logger.exception("Full traceback:")
        raise SystemExit(1)

    if strict and report.errors:
        raise SystemExit(1)


@cli.command('check-id')
@click.argument('values', nargs=-1, required=True)
def check_id(values):
    """Check CI / RUT numbers and show them formatted."""
    console = Console()
    table = Table(title="National ID Check")

    table.add_column("Input", style="cyan")
    table.add_column("Valid", style="bold")
    table.add_column("Formatted")
    table.add_column("Error")

    all_valid = True
    for value in values:
        check = check_national_id(value)
        all_valid = all_valid and check.is_valid
        table.add_row(
            value,
            "[green]✓" if check.is_valid else "[red]✗",
            check.formatted or '',
            check.error or '',
        )

    console.print(table)
    if not all_valid:
        raise SystemExit(1)


@cli.command()
@click.option(
    '--operation',
    type=click.Choice([o.value for o in OperationType], case_sensitive=False),
    default=OperationType.EMISION.value,
    help='Operation type'
)
def steps(operation: str):
    """List the wizard steps an operation goes through."""
    console = Console()
    op = OperationType.parse(operation)
    table = Table(title=f"Wizard Steps - {op.display_name}")

    table.add_column("#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Title")
    table.add_column("Description")

    for index, step in enumerate(active_steps(op), start=1):
        definition = STEP_TABLE[step]
        table.add_row(str(index), step.value, definition.title, definition.description)

    console.print(table)


if __name__ == "__main__":
    cli()
