# Overview: Flask CLI command group for schema bootstrap, stock inspection and reconciliation.

# backend/stockline/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to stockline (PowerShell: $env:FLASK_APP="stockline").
# - Use: python -m flask ledger <command> [options]
#
# Schema:
# - python -m flask ledger init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for managed schemas).
# - python -m flask ledger reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection:
# - python -m flask ledger stock [--product-id <uuid>]
#   Print on-hand warehouse quantity per product.
# - python -m flask ledger reconcile [--product-id <uuid>]
#   Compare stock rows with delivery/truck-load history; exits 1 on drift.

import click
from flask.cli import with_appcontext

from .errors import ValidationError
from .extensions import db
from .services import stock_service
from .validation import parse_uuid


@click.group('ledger')
def ledger_group():
    """Stock ledger maintenance commands."""
    pass


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Schema created.")


@ledger_group.command('reset-db')
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

    click.echo("PASS Database reset complete.")


def _product_option(value):
    if value is None:
        return None
    try:
        return parse_uuid(value, "product-id")
    except ValidationError as exc:
        raise click.BadParameter(exc.message)


@ledger_group.command('stock')
@click.option('--product-id', help='Only show this product (UUID)')
@with_appcontext
def show_stock(product_id):
    """Print on-hand quantity per product."""
    product_uuid = _product_option(product_id)

    if product_uuid is not None:
        qty = stock_service.get_quantity_on_hand(product_uuid)
        click.echo(f"{product_uuid}  {qty}")
        return

    rows = stock_service.list_stock()
    if not rows:
        click.echo("No stock recorded.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Product ID':<38} {'Name':<30} {'On hand':>10}")
    click.echo("="*80)
    for row in rows:
        click.echo(f"{row['product_id']:<38} {row['product_name'][:30]:<30} {row['quantity']:>10}")
    click.echo("="*80 + "\n")


@ledger_group.command('reconcile')
@click.option('--product-id', help='Only reconcile this product (UUID)')
@with_appcontext
def reconcile(product_id):
    """Compare stock rows with delivery/truck-load history."""
    report = stock_service.reconcile_stock(_product_option(product_id))

    drifted = [row for row in report if row["drift"] != 0]
    for row in report:
        marker = "FAIL" if row["drift"] else "PASS"
        click.echo(
            f"{marker} {row['product_id']} delivered={row['delivered']} "
            f"dispatched={row['dispatched']} expected={row['expected']} "
            f"on_hand={row['on_hand']} drift={row['drift']}"
        )

    if drifted:
        click.echo(f"FAIL {len(drifted)} product(s) drifted from history.")
        raise SystemExit(1)

    click.echo(f"PASS {len(report)} product(s) reconciled.")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
