# Overview: Flask CLI command groups for bootstrap, catalog seeding, associates and stock audits.

# backend/merchpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-name "Store Admin"]
#   Idempotent bootstrap: creates tables, seeds default categories, creates the first admin
#   associate and prints its associate code.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Categories:
# - python -m flask categories seed
#   Insert any missing default category values.
# - python -m flask categories backfill-abbreviations
#   Fill in missing abbreviations (unique within each category type).
#
# Associates:
# - python -m flask associates list
# - python -m flask associates create --name "Jane Doe" [--email jane@example.com] [--role admin]
#
# Inventory audit:
# - python -m flask inventory reconcile [--repair]
#   Compare each item's quantity with the sum of its ledger rows; --repair overwrites drifting counters.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .services import auth_service, catalog_service, stock_service
from .services.auth_service import AssociateError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-name', default='Store Admin', help='Display name for the first admin associate')
@click.option('--admin-email', default=None, help='Optional email for the first admin associate')
@with_appcontext
def init_system(admin_name, admin_email):
    """
    Initialize merchpos: schema, default categories, first admin associate.

    Safe to re-run: existing tables, category values and admins are kept.
    """
    click.echo("START Initializing merchpos...")

    db.create_all()
    click.echo("PASS Tables ready")

    created = catalog_service.seed_defaults()
    click.echo(f"PASS Seeded {created} default category values")

    admin = db.session.query(User).filter_by(role="admin", is_active=True).order_by(User.id.asc()).first()
    if admin:
        click.echo(f"WARN  Admin already exists: {admin.full_name} (ID: {admin.id}), skipping...")
        return

    admin = auth_service.create_associate(admin_name, email=admin_email, role="admin")
    click.echo(f"PASS Created admin: {admin.full_name} (ID: {admin.id})")
    click.echo("\n" + "=" * 60)
    click.echo(f"Admin associate code: {admin.associate_code}")
    click.echo("=" * 60)
    click.echo("Use this code to sign in, then create associates from the Associates page.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('categories')
def categories_group():
    """Category value maintenance."""


@categories_group.command('seed')
@with_appcontext
def seed_categories():
    """Insert missing default category values."""
    created = catalog_service.seed_defaults()
    click.echo(f"PASS Seeded {created} category values")


@categories_group.command('backfill-abbreviations')
@with_appcontext
def backfill_abbreviations():
    """Generate abbreviations for categories that have none."""
    updated = catalog_service.backfill_abbreviations()
    if not updated:
        click.echo("PASS All categories already have abbreviations")
        return
    for cat in updated:
        click.echo(f"PASS {cat.type}:{cat.value!r} -> {cat.abbreviation}")
    click.echo(f"DONE Updated {len(updated)} categories")


@click.group('associates')
def associates_group():
    """Associate directory commands."""


@associates_group.command('list')
@with_appcontext
def list_associates():
    """List associates with role, status and code."""
    users = auth_service.list_associates()
    if not users:
        click.echo("No associates found.")
        return
    for u in users:
        status = "active" if u.is_active else "inactive"
        click.echo(f"{u.id:>4}  {u.associate_code:<8} {u.role:<10} {status:<9} {u.full_name}")


@associates_group.command('create')
@click.option('--name', prompt=True, help='Full name, e.g. "Jane Doe"')
@click.option('--email', default=None)
@click.option('--role', type=click.Choice(['associate', 'admin']), default='associate')
@with_appcontext
def create_associate(name, email, role):
    """Create an associate and print the generated associate code."""
    try:
        user = auth_service.create_associate(name, email=email, role=role)
    except AssociateError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created {role}: {user.full_name} (ID: {user.id}) code={user.associate_code}")


@click.group('inventory')
def inventory_group():
    """Inventory audit commands."""


@inventory_group.command('reconcile')
@click.option('--repair', is_flag=True, help='Overwrite drifting counters with the ledger sum')
@with_appcontext
def reconcile(repair):
    """Compare item quantities with their ledger sums."""
    results = stock_service.reconcile_all(repair=repair)
    drifting = [r for r in results if not r.in_sync]

    for r in drifting:
        action = "REPAIRED" if r.repaired else "DRIFT"
        click.echo(f"{action} {r.sku}: quantity={r.counter} ledger={r.ledger_sum} drift={r.drift:+d}")

    click.echo(f"DONE Checked {len(results)} items, {len(drifting)} drifting")
    if drifting and not repair:
        raise SystemExit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(categories_group)
    app.cli.add_command(associates_group)
    app.cli.add_command(inventory_group)
