# Overview: Flask CLI command groups for bootstrap and maintenance.

# backend/larder/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--location "Main Kitchen"]
#   Idempotent bootstrap: creates tables, a default location and default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Ana" --email ana@larder.local --role MANAGER
#   Create an acting user (prompts if options are omitted).
#
# Locations:
# - python -m flask locations create --name "Bar" [--address "..."]
#   Create a stock-holding location.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User
from .permissions import ROLES
from .services.location_service import create_location


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--location', 'location_name', default='Main Kitchen', help='Default location name')
@with_appcontext
def init_system(location_name):
    """
    Initialize Larder: schema, a default location, and one user per role.

    Safe to run repeatedly; existing rows are left alone.
    """
    click.echo("BUILD  Creating tables...")
    db.create_all()

    result = create_location(name=location_name)
    if result.ok:
        click.echo(f"PASS Created location: {result.value.name} (ID: {result.value.id})")
    else:
        click.echo(f"WARN  {result.message}, skipping...")

    default_users = [
        ("Admin", "admin@larder.local", "ADMIN"),
        ("Manager", "manager@larder.local", "MANAGER"),
        ("Staff", "staff@larder.local", "STAFF"),
    ]
    for name, email, role in default_users:
        if db.session.query(User).filter_by(email=email).first():
            click.echo(f"WARN  User '{email}' already exists, skipping...")
            continue
        user = User(name=name, email=email, role=role)
        db.session.add(user)
        db.session.commit()
        click.echo(f"PASS Created user: {email} with role '{role}' (ID: {user.id})")

    click.echo("DONE Larder initialized.")


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


@click.group('users')
def users_group():
    """Acting user management."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, email, role):
    """Create a user. Authentication is handled upstream; this only records identity and role."""
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        click.echo(f"FAIL User '{email}' already exists")
        return

    user = User(name=name.strip(), email=email, role=role.upper())
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {email} with role '{user.role}' (ID: {user.id})")


@click.group('locations')
def locations_group():
    """Location management."""


@locations_group.command('create')
@click.option('--name', prompt=True, help='Location name')
@click.option('--address', default=None, help='Street address')
@with_appcontext
def create_location_cli(name, address):
    """Create a stock-holding location."""
    result = create_location(name=name, address=address)
    if not result.ok:
        click.echo(f"FAIL {result.message}")
        return
    click.echo(f"PASS Created location: {result.value.name} (ID: {result.value.id})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(locations_group)
