"""
CLI command tests (flask system / flask users).
"""

from shoppos.extensions import db
from shoppos.models import Category, SessionToken, User
from shoppos.services import session_service


class TestSystemCommands:

    def test_init_seeds_category_and_users(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "init"])

        assert result.exit_code == 0, result.output
        assert db.session.query(Category).filter_by(name="General").count() == 1
        roles = {u.username: u.role for u in db.session.query(User).all()}
        assert roles == {"admin": "admin", "manager": "manager", "cashier": "cashier"}

    def test_init_is_idempotent(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=["system", "init"])

        result = runner.invoke(args=["system", "init"])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert db.session.query(User).count() == 3
        assert db.session.query(Category).count() == 1

    def test_reset_requires_confirmation(self, app, category):
        runner = app.test_cli_runner()

        result = runner.invoke(args=["system", "reset-db"], input="n\n")

        assert result.exit_code != 0
        assert db.session.query(Category).count() == 1


class TestUserCommands:

    def test_create_and_list(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create",
            "--name", "Priya", "--email", "priya@shop.test", "--username", "priya",
            "--password", "secret123", "--role", "manager",
        ])
        assert result.exit_code == 0, result.output

        listing = runner.invoke(args=["users", "list"])
        assert "priya@shop.test" in listing.output
        assert "manager" in listing.output

    def test_create_rejects_short_password(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=[
            "users", "create", "--name", "Weak", "--email", "weak@shop.test", "--password", "abc",
        ])

        assert result.exit_code != 0
        assert db.session.query(User).count() == 0

    def test_set_inactive_revokes_sessions(self, app, cashier_user):
        session_service.create_session(cashier_user.id)
        runner = app.test_cli_runner()

        result = runner.invoke(args=["users", "set-active", "cashier", "--inactive"])

        assert result.exit_code == 0, result.output
        assert "1 session(s) revoked" in result.output
        db.session.refresh(cashier_user)
        assert cashier_user.active is False
        assert db.session.query(SessionToken).filter_by(is_revoked=False).count() == 0

    def test_set_active_unknown_user(self, app):
        result = app.test_cli_runner().invoke(args=["users", "set-active", "nobody"])
        assert result.exit_code != 0
