from __future__ import annotations

import click
from flask import Flask, jsonify

from app.core.auth import Account, account_from_headers
from app.core.config import Config
from app.core.extensions import db, login_manager, migrate
from app.ledger import ledger_bp


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    app.register_blueprint(ledger_bp)

    register_cli(app)
    register_routes(app)
    return app


def register_routes(app: Flask) -> None:
    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})

    @app.errorhandler(401)
    def unauthorized(_error):
        return jsonify({"error": "Unauthorized", "message": "Account required"}), 401

    @app.errorhandler(403)
    def forbidden(_error):
        return jsonify({"error": "Forbidden", "message": "Admin account required"}), 403

    @app.errorhandler(404)
    def not_found(_error):
        return jsonify({"error": "NotFound", "message": "Resource not found"}), 404


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Delete existing data before seed.")
    def seed_demo(reset: bool) -> None:
        """Seed a demo graveyard with three graves."""
        from app.core.models import LedgerStats
        from app.ledger.demo import seed_demo_data

        if reset:
            db.drop_all()
            db.create_all()
        if db.session.get(LedgerStats, 1) is None:
            graveyard = seed_demo_data(app.config.get("LEDGER_ADMIN_ACCOUNT") or None)
            click.echo(f"Demo data seeded: graveyard {graveyard.id}.")
        else:
            click.echo("Seed skipped: ledger already has data.")

    @app.cli.command("grant-admin")
    @click.argument("account", required=False)
    def grant_admin_command(account: str | None) -> None:
        """Grant ledger admin rights (defaults to LEDGER_ADMIN_ACCOUNT)."""
        from app.ledger.access import grant_admin

        account = account or app.config.get("LEDGER_ADMIN_ACCOUNT")
        if not account:
            raise click.UsageError("Pass an account or set LEDGER_ADMIN_ACCOUNT.")
        admin = grant_admin(account)
        click.echo(f"Admin granted: {admin.account}")

    @app.cli.command("ledger-audit")
    def ledger_audit() -> None:
        """Recount every counter by scanning and report mismatches."""
        from app.ledger.analytics import audit_counters

        report = audit_counters()
        for mismatch in report.mismatches:
            click.echo(f"MISMATCH {mismatch.counter}: stored={mismatch.stored} scanned={mismatch.scanned}")
        click.echo(f"Checked {report.checked} counters, {len(report.mismatches)} mismatches.")
        if not report.consistent:
            raise SystemExit(1)


@login_manager.request_loader
def load_account(request) -> Account | None:
    return account_from_headers(request.headers)
