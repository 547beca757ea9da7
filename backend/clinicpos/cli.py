# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/clinicpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, default users, categories and services.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --username nurse --name "Nurse" --password "nurse123" --role EMPLOYEE
#   Create a user (prompts if options are omitted).

import click
from decimal import Decimal
from flask.cli import with_appcontext

from .errors import ValidationError
from .extensions import db
from .models import ProductCategory, Service, User, ROLES, ROLE_ADMIN, ROLE_EMPLOYEE
from .services.auth_service import create_user

DEFAULT_USERS = [
    ("admin", "Administrator", "admin123", ROLE_ADMIN),
    ("employee", "Employee", "employee123", ROLE_EMPLOYEE),
]

DEFAULT_CATEGORIES = [
    ("Tablets", "tablet"),
    ("Blister strips", "strip"),
    ("Injections", "vial"),
    ("Equipment", "pack"),
    ("Cosmetics", "bottle"),
]

DEFAULT_SERVICES = [
    ("General check-up", "General health examination", Decimal("100000")),
    ("Injection", "Injection administration", Decimal("20000")),
    ("Wound dressing", "Wound cleaning and dressing", Decimal("50000")),
    ("Blood test", "Blood analysis", Decimal("150000")),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the clinic POS: schema, default users, categories and services.

    Safe to run repeatedly; existing rows are left untouched.

    Default credentials: admin/admin123 and employee/employee123.
    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing clinic POS...")
    db.create_all()

    click.echo("\nUSERS Creating default users...")
    for username, name, password, role in DEFAULT_USERS:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"SKIP User '{username}' already exists")
            continue
        create_user(username=username, name=name, password=password, role=role)
        click.echo(f"PASS Created user: {username} ({role})")

    click.echo("\nLIST Creating default categories...")
    for name, unit in DEFAULT_CATEGORIES:
        if db.session.query(ProductCategory).filter_by(name=name).first():
            continue
        db.session.add(ProductCategory(name=name, unit=unit))
    db.session.commit()

    click.echo("LIST Creating default services...")
    for name, description, price in DEFAULT_SERVICES:
        if db.session.query(Service).filter_by(name=name).first():
            continue
        db.session.add(Service(name=name, description=description, price=price, is_active=True))
    db.session.commit()

    click.echo("\nPASS Initialization complete.")
    click.echo("SECURITY Default passwords: admin123 / employee123. Change them!")


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
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES, case_sensitive=False), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, name, password, role):
    """
    Create a new user interactively.

    Password must be at least 6 characters and mix letters and digits.
    """
    try:
        user = create_user(username=username, name=name, password=password, role=role)
    except ValidationError as e:
        click.echo(f"FAIL {e.message}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include deactivated users')
@with_appcontext
def list_users(include_inactive):
    """List all users with their roles."""
    query = db.session.query(User)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    users = query.order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<30} {'Role':<10} {'Active'}")
    click.echo("="*80)

    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.name:<30} {user.role:<10} "
            f"{'yes' if user.is_active else 'no'}"
        )

    click.echo("="*80 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
