# Overview: Flask CLI command groups for bootstrap and reporting.

# backend/pos_backend/cli.py
# Commands Legend (run with FLASK_APP=pos_backend):
# - flask system init
#   Create all tables and seed default payment types (idempotent).
# - flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask reports tax [--start 2026-10-01] [--end 2026-10-31] [--include-voided]
#   Print the tax reconciliation summary and one line per day.
# - flask db ...
#   Flask-Migrate schema migrations.

import click
from flask.cli import with_appcontext

from .errors import SaleError
from .extensions import db
from .models import PaymentType
from .services import tax_reconciliation_service


DEFAULT_PAYMENT_TYPES = (
    ("Cash", "Cash payment"),
    ("Card", "Card payment"),
)


def seed_payment_types() -> int:
    """Insert missing default payment types. Returns how many were added."""
    existing = {name for (name,) in db.session.query(PaymentType.name).all()}
    added = 0
    for name, description in DEFAULT_PAYMENT_TYPES:
        if name not in existing:
            db.session.add(PaymentType(name=name, description=description, is_active=True))
            added += 1
    db.session.commit()
    return added


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create tables and seed payment types. Safe to run repeatedly."""
    db.create_all()
    added = seed_payment_types()
    click.echo(f"OK  Schema ready, {added} payment type(s) added")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()
    seed_payment_types()
    click.echo("OK  Database reset")


@click.group('reports')
def reports_group():
    """Read-only reports."""


@reports_group.command('tax')
@click.option('--start', default=None, help='ISO-8601 start (inclusive)')
@click.option('--end', default=None, help='ISO-8601 end; a bare date covers the whole day')
@click.option('--include-voided', is_flag=True, help='Count voided sales too')
@with_appcontext
def tax_report(start, end, include_voided):
    """Expected vs. recorded tax."""
    try:
        report = tax_reconciliation_service.tax_reconciliation(
            start=start, end=end, include_voided=include_voided,
        )
        daily = tax_reconciliation_service.daily_tax_reconciliation(
            start=start, end=end, include_voided=include_voided,
        )
    except SaleError as exc:
        raise click.ClickException(exc.message)

    summary = report["summary"]
    click.echo(f"Taxable items:      {summary['total_items']}")
    click.echo(f"Expected tax:       {summary['total_expected_tax']}")
    click.echo(f"Actual tax:         {summary['total_actual_tax']}")
    click.echo(f"Excluded tax:       {summary['total_excluded_tax']}")
    click.echo(f"Items tax-excluded: {summary['items_tax_excluded']}")
    for row in daily:
        click.echo(
            f"{row['date']}  sales={row['sale_count']:<4} expected={row['expected_tax']:>10} "
            f"recorded={row['recorded_tax']:>10} excluded={row['excluded_tax']:>10}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(reports_group)
