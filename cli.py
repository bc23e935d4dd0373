#!/usr/bin/env python3
"""
CLI for the Boatyard lifecycle engine.

Usage:
    python cli.py init-db
    python cli.py serve --port 8000
    python cli.py projects
    python cli.py export-bom <project-id> --output bom.csv
    python cli.py status-info

Commands:
    init-db      Create tables and the default settings row
    serve        Start the API server
    projects     List active projects
    export-bom   Write the latest BOM of a project as CSV
    status-info  Show the project status graph and its policies
"""
import logging
from pathlib import Path

import click
import pandas as pd

from boatyard import __version__
from boatyard.config import get_config

config = get_config()

# Configure logging
logging.basicConfig(level=config.log_level, format=config.log_format)
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__)
def cli():
    """Boatyard project lifecycle CLI.

    Manage the database, run the API and export bills of materials.
    """
    pass


@cli.command('init-db')
def init_db_command():
    """Create all tables and the default settings row."""
    from boatyard.models import init_db, ensure_default_settings, DATABASE_URL

    init_db()
    settings = ensure_default_settings()
    click.echo(click.style('Database initialized', fg='green', bold=True))
    click.echo(f"  URL: {DATABASE_URL}")
    click.echo(f"  Cost estimation ratio: {settings.cost_estimation_ratio}")
    click.echo(f"  Warn threshold: {settings.cost_warn_threshold}")


@cli.command()
@click.option('--port', default=8000, type=int, help='Port to listen on')
@click.option('--host', default='127.0.0.1', help='Host to bind to')
@click.option('--reload', is_flag=True, help='Enable auto-reload')
def serve(port: int, host: str, reload: bool):
    """Start the API server.

    Runs the FastAPI application with uvicorn.

    Example:
        python cli.py serve --port 8000 --reload
    """
    import uvicorn

    click.echo(click.style('Boatyard - API Server', fg='cyan', bold=True))
    click.echo(f"Starting server at http://{host}:{port}")
    click.echo("Press CTRL+C to stop\n")

    uvicorn.run(
        "boatyard.main:app",
        host=host,
        port=port,
        reload=reload
    )


@cli.command()
def projects():
    """List active projects."""
    from boatyard.models import SessionLocal
    from boatyard.domain.services import ProjectService

    db = SessionLocal()
    try:
        result = ProjectService(db).get_active()
    finally:
        db.close()

    if not result.value:
        click.echo("No active projects.")
        return

    df = pd.DataFrame([
        {
            'Number': p.project_number,
            'Title': p.title,
            'Type': p.type.value,
            'Status': p.status.value,
            'Items': p.configuration.item_count,
            'Total excl. VAT': str(p.configuration.total_excl_vat),
        }
        for p in result.value
    ])
    click.echo(df.to_string(index=False))


@cli.command('export-bom')
@click.argument('project_id')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='CSV file to write (default: stdout)')
@click.option('--generate', is_flag=True, help='Generate a new BOM snapshot before exporting')
def export_bom(project_id: str, output: str, generate: bool):
    """Export the latest BOM snapshot of a project as CSV.

    Example:
        python cli.py export-bom 3f0c... --generate -o bom.csv
    """
    from boatyard.models import SessionLocal
    from boatyard.domain.audit import AuditContext
    from boatyard.domain.services import BOMService

    db = SessionLocal()
    try:
        service = BOMService(db)
        if generate:
            result = service.generate_bom(project_id, AuditContext.system())
        else:
            result = service.get_latest_bom(project_id)
        if not result.ok:
            raise click.ClickException(result.error)
        bom = result.value
        if bom is None:
            raise click.ClickException("No BOM has been generated for this project (use --generate)")

        summary = service.get_estimation_summary(bom)
        csv_text = service.export_to_csv(bom)
    finally:
        db.close()

    if output:
        Path(output).write_text(csv_text)
        click.echo(f"BOM #{bom.snapshot_number} written to {output} ({len(bom.items)} items)")
    else:
        click.echo(csv_text, nl=False)

    if summary.is_high_estimation:
        click.echo(click.style(
            f"Warning: {summary.estimated_value_share * 100:.0f}% of BOM cost is estimated "
            f"(threshold {summary.warn_threshold * 100:.0f}%)",
            fg='yellow',
        ), err=True)


@cli.command('status-info')
def status_info():
    """Show every project status with its policies and successors."""
    from boatyard.domain.entities import ProjectStatus
    from boatyard.domain.workflow import StatusMachine

    rows = []
    for status in ProjectStatus:
        info = StatusMachine.get_status_info(status)
        rows.append({
            'Status': status.value,
            'Label': info.label,
            'Editable': StatusMachine.is_editable(status),
            'Frozen': StatusMachine.is_frozen(status),
            'Locked': StatusMachine.is_locked(status),
            'Next': ', '.join(s.value for s in StatusMachine.get_valid_next_statuses(status)) or '-',
            'Effects on entry': ', '.join(e.type.value for e in StatusMachine.get_milestone_effects(status)) or '-',
        })
    click.echo(pd.DataFrame(rows).to_string(index=False))


if __name__ == '__main__':
    cli()
