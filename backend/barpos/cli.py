# Overview: Flask CLI command groups for database bootstrap and ledger inspection.

# backend/barpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet.
# - python -m flask system seed
#   Add the sample bar catalog with opening stock (existing SKUs are skipped).
# - python -m flask system reset --yes
#   Delete every row from every table (schema is kept).
#
# Inventory inspection:
# - python -m flask inventory movements --limit 30 [--product-id 1]
#   Show the most recent stock movements.
# - python -m flask inventory check
#   Compare cached godown/counter stock against the movement log.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .providers import product_catalog, reporting, stock_ledger
from .seed import seed_sample_data


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create database tables."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('seed')
@with_appcontext
def seed():
    """Load sample products and opening stock."""
    result = seed_sample_data(product_catalog(), stock_ledger())
    click.echo(f"PASS Added {len(result['added'])} products, skipped {result['skipped']} existing.")


@system_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset(yes):
    """
    DANGER: Clear all application data.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Clearing all tables...")
    for table in reversed(db.metadata.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()
    current_app.logger.warning("Application data reset from CLI")

    click.echo("PASS Reset complete. Run 'python -m flask system seed' for sample data.")


@click.group('inventory')
def inventory_group():
    """Stock ledger inspection commands."""


@inventory_group.command('movements')
@click.option('--limit', type=int, default=None, help='Number of movements (default STOCK_MOVEMENT_LIMIT)')
@click.option('--product-id', type=int, default=None, help='Only this product')
@with_appcontext
def list_movements(limit, product_id):
    """List recent stock movements, newest first."""
    limit = limit or current_app.config.get("STOCK_MOVEMENT_LIMIT", 30)
    movements = stock_ledger().list_movements(limit, product_id=product_id)
    if not movements:
        click.echo("No stock movements recorded.")
        return

    click.echo(f"{'ID':<6} {'When':<21} {'Type':<11} {'Qty':>5}  {'From':<8} {'To':<8} Product")
    for m in movements:
        data = m.to_dict()
        click.echo(
            f"{m.id:<6} {data['created_at'] or '':<21} {m.movement_type:<11} {m.quantity:>5}  "
            f"{m.from_location or '-':<8} {m.to_location or '-':<8} {data['product_name'] or m.product_id}"
        )


@inventory_group.command('check')
@with_appcontext
def check_ledger():
    """Report products whose cached stock disagrees with their movements."""
    discrepancies = reporting().stock_discrepancies()
    if not discrepancies:
        click.echo("PASS Cached stock matches the movement log for every product.")
        return

    for row in discrepancies:
        click.echo(
            f"FAIL product {row['product_id']} ({row['name']}): cached {row['cached_total']}, "
            f"movements {row['movement_balance']} (difference {row['difference']:+d})"
        )
    raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(inventory_group)
