import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate
from sqlalchemy.exc import IntegrityError

from config import Config
from models import db
from models.enums import RoleName
from models.user import User, Role
from routes import ALL_BLUEPRINTS
from security.password import hash_password
from security.rbac import load_current_user
from services.errors import AppError
from services.gateway import build_gateway
from services.reconciler import expire_stale_bookings
from utils.seed import seed_roles

logger = logging.getLogger(__name__)


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # One gateway client per process
    app.extensions["payment_gateway"] = build_gateway(app.config)

    with app.app_context():
        if app.config.get("CREATE_TABLES_ON_STARTUP"):
            db.create_all()
        # Seed default roles at startup (safe & idempotent)
        seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(AppError)
    def _app_error(exc):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(500)
    def _internal_error(exc):
        db.session.rollback()
        logger.error("Unhandled error", exc_info=getattr(exc, "original_exception", None))
        return jsonify(error="Internal server error"), 500

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------

def register_cli(app):
    @app.cli.command("create-user")
    @click.argument("email")
    @click.argument("password")
    @click.option("--role", "roles", multiple=True, default=("CUSTOMER",),
                  type=click.Choice([r.value for r in RoleName], case_sensitive=False))
    @click.option("--full-name", default=None)
    def create_user(email, password, roles, full_name):
        """Provision a user with one or more roles."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            raise click.ClickException("User already exists")

        user = User(email=email, password_hash=hash_password(password), full_name=full_name)
        for name in roles:
            role = Role.query.filter_by(name=name.upper()).first()
            if not role:
                role = Role(name=name.upper())
                db.session.add(role)
            user.roles.append(role)

        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise click.ClickException("User already exists")

        click.echo(f"{user.email} created with roles {', '.join(sorted(user.role_names))}")

    @app.cli.command("sweep-stale-bookings")
    @click.option("--ttl-minutes", type=int, default=None,
                  help="Override BOOKING_PAYMENT_TTL_MINUTES.")
    def sweep_stale_bookings(ttl_minutes):
        """Cancel bookings whose payment never completed."""
        ttl = ttl_minutes if ttl_minutes is not None else app.config["BOOKING_PAYMENT_TTL_MINUTES"]
        expired = expire_stale_bookings(ttl)
        click.echo(f"Expired {len(expired)} booking(s)")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
