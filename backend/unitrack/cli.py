# Overview: Flask CLI command groups for bootstrap and stock operations.

# backend/unitrack/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Apply the schema first: python -m flask db upgrade
#
# System bootstrap:
# - python -m flask system init
#   Idempotent: creates default roles, permissions and role grants.
#
# Users:
# - python -m flask users create --name "Ana" --email ana@example.com --role warehouse
#   Create an actor profile with a role.
# - python -m flask users list
#
# Stock:
# - python -m flask stock add <product_id> 5 --actor <profile_id>
#   Add 5 new serialized units (one ledger row each).
# - python -m flask stock report [--threshold 3]
#   Per-product status counts and the low-stock list.

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import InventoryError
from .models import Profile
from .permissions import DEFAULT_ROLES
from .services import item_service, permission_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create default roles, permissions and the default role grants."""
    click.echo("START Initializing roles and permissions...")

    role_count = permission_service.create_default_roles()
    click.echo(f"PASS Roles created: {role_count} (defaults: {', '.join(DEFAULT_ROLES)})")

    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")


@click.group('users')
def users_group():
    """Actor profile commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(list(DEFAULT_ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, role):
    """Create an actor profile."""
    if db.session.query(Profile).filter_by(email=email).first():
        raise click.ClickException(f"A user with email {email} already exists")

    profile = Profile(name=name, email=email, role=role)
    db.session.add(profile)
    db.session.commit()
    click.echo(f"PASS Created user: {name} ({email}) with role '{role}'")
    click.echo(f"     ID: {profile.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    profiles = db.session.query(Profile).order_by(Profile.name).all()
    if not profiles:
        click.echo("No users found. Create one with 'python -m flask users create'.")
        return

    click.echo(f"{'ID':<38} {'Name':<24} {'Email':<32} Role")
    for profile in profiles:
        click.echo(f"{profile.id:<38} {(profile.name or ''):<24} {(profile.email or ''):<32} {profile.role or ''}")


@click.group('stock')
def stock_group():
    """Stock intake and reporting commands."""


@stock_group.command('add')
@click.argument('product_id')
@click.argument('quantity', type=int)
@click.option('--actor', 'actor_id', required=True, help='Profile ID performing the intake')
@click.option('--notes', default=None, help='Ledger note (defaults to a standard intake note)')
@with_appcontext
def add_stock_cli(product_id, quantity, actor_id, notes):
    """Add QUANTITY new units of PRODUCT_ID."""
    try:
        items = item_service.add_stock(product_id=product_id, quantity=quantity, actor_id=actor_id, notes=notes)
    except InventoryError as e:
        raise click.ClickException(e.message)

    click.echo(f"PASS Added {len(items)} units: {items[0].serial_id} .. {items[-1].serial_id}")


@stock_group.command('report')
@click.option('--threshold', type=int, default=None, help='Low-stock threshold (defaults to LOW_STOCK_THRESHOLD)')
@with_appcontext
def stock_report(threshold):
    """Print per-product status counts and products at or below the threshold."""
    try:
        overview = stock_service.get_inventory_overview()
        low = stock_service.get_low_stock_products(threshold)
    except InventoryError as e:
        raise click.ClickException(e.message)

    click.echo(f"{'Product':<32} {'avail':>6} {'sold':>6} {'repair':>6} {'dmg':>6} {'unav':>6}")
    for row in overview:
        counts = row["counts"]
        click.echo(
            f"{row['name'][:32]:<32} {counts['available']:>6} {counts['sold']:>6} "
            f"{counts['in_repair']:>6} {counts['damaged']:>6} {counts['unavailable']:>6}"
        )

    click.echo("")
    if not low:
        click.echo("PASS No products at or below the low-stock threshold")
        return
    click.echo(f"WARN {len(low)} low-stock products:")
    for row in low:
        click.echo(f"  - {row['name']}: {row['available']} available")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
