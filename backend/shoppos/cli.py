# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/shoppos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, a default category, and default users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Jane" --email jane@shop.local --password secret1 --role cashier
#   Create a user (prompts if options are omitted).
# - python -m flask users set-active jane@shop.local --inactive
#   Deactivate (or --active to reactivate) a user; deactivation revokes sessions.

import click
from flask.cli import with_appcontext

from .errors import ValidationError
from .extensions import db
from .models import Category, User, ROLES, ROLE_ADMIN, ROLE_MANAGER, ROLE_CASHIER
from .services import session_service
from .services.auth_service import create_user


DEFAULT_PASSWORD = "admin123"

DEFAULT_USERS = [
    ("admin", "Administrator", "admin@shop.local", ROLE_ADMIN),
    ("manager", "Store Manager", "manager@shop.local", ROLE_MANAGER),
    ("cashier", "Cashier", "cashier@shop.local", ROLE_CASHIER),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the shop: schema, default category, and default users.

    Creates:
    - All tables (if missing)
    - Category "General" (if no categories exist)
    - Users: admin, manager, cashier (password "admin123")

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing ShopPOS...")

    db.create_all()
    click.echo("PASS Schema ready")

    if not db.session.query(Category).first():
        db.session.add(Category(name="General", description="Default category"))
        db.session.commit()
        click.echo("PASS Created default category: General")

    for username, name, email, role in DEFAULT_USERS:
        existing = db.session.query(User).filter(
            db.or_(User.username == username, User.email == email)
        ).first()
        if existing:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(name=name, email=email, password=DEFAULT_PASSWORD, role=role, username=username)
        except ValidationError as e:
            click.echo(f"FAIL Failed to create user '{username}': {e.message}")
            continue
        click.echo(f"PASS Created user: {username} ({email}) with role '{role}'")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    for username, _, email, _ in DEFAULT_USERS:
        click.echo(f"   {username:<9} -> {email:<20} / {DEFAULT_PASSWORD}")


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


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("=" * 80)
    for user in users:
        active_str = "Yes" if user.active else "No"
        click.echo(f"{user.id:<5} {(user.username or '-'):<20} {user.email:<30} {active_str:<8} {user.role}")
    click.echo("")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address (unique)')
@click.option('--username', default=None, help='Login name (optional, unique)')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(ROLES), default=ROLE_CASHIER, show_default=True)
@with_appcontext
def create_user_command(name, email, username, password, role):
    """Create a user."""
    try:
        user = create_user(name=name, email=email, password=password, role=role, username=username)
    except ValidationError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}) with role '{user.role}'")


@users_group.command('set-active')
@click.argument('identifier')
@click.option('--active/--inactive', default=True, help='Activate or deactivate the user')
@with_appcontext
def set_active(identifier, active):
    """Activate or deactivate a user by username or email."""
    user = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier)
    ).first()
    if not user:
        raise click.ClickException(f"User '{identifier}' not found")

    user.active = active
    db.session.commit()

    if active:
        click.echo(f"PASS User {user.email} activated")
    else:
        revoked = session_service.revoke_all_user_sessions(user.id, reason="User account deactivated")
        click.echo(f"PASS User {user.email} deactivated ({revoked} session(s) revoked)")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
