# app.py
from __future__ import annotations

import os
import json

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_cors import CORS
from sqlalchemy import event

from config import Config
from db import db, migrate
from errors import SeatPoolError

# Ensure models are imported so Flask-Migrate sees them
from models.route import Route
from models.trip import Trip
from models.reservation import Reservation, Passenger

# Blueprints
from routes.network import network_bp
from routes.trips import trips_bp
from routes.reservations import reservations_bp

# CLI tasks
from tasks.reconcile_seats import reconcile_seats


def create_app(config_class=Config) -> Flask:
    app = Flask(__name__)

    # Respect reverse proxy headers (scheme / host) for correct URL generation
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[arg-type]

    # CORS (open for now; tighten origins for production)
    CORS(app, resources={r"/*": {"origins": "*"}})

    # Load config + init extensions
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        # MySQL sessions run in the operator's timezone (departure dates/times are local)
        if db.engine.dialect.name == "mysql":
            tz_offset = app.config.get("DB_TIME_ZONE", "-06:00")

            @event.listens_for(db.engine, "connect")
            def _set_session_timezone(dbapi_conn, _):
                cur = dbapi_conn.cursor()
                try:
                    cur.execute("SET time_zone = %s", (tz_offset,))
                finally:
                    cur.close()

        # Touch models so Alembic/Flask-Migrate registers them
        _ = (Route, Trip, Reservation, Passenger)

    # Health check
    @app.route("/")
    def health_check():
        return jsonify(status="ok"), 200

    @app.errorhandler(404)
    def handle_404(e):
        return jsonify(error="Not Found", path=request.path), 404

    # Domain errors carry their own status + code
    @app.errorhandler(SeatPoolError)
    def handle_domain_error(e: SeatPoolError):
        if e.http_status >= 500:
            app.logger.error("[api] %s %s -> %s", request.method, request.path, e.message)
        return jsonify(e.to_dict()), e.http_status

    # Global error handler
    @app.errorhandler(Exception)
    def handle_any_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify(error=e.description), e.code
        app.logger.exception("[api] unhandled error on %s %s", request.method, request.path)
        return jsonify(error=str(e)), 500

    # --- Debug: list routes ---
    @app.route("/__routes")
    def __routes():
        from flask import Response
        lines = []
        for rule in app.url_map.iter_rules():
            methods = ",".join(sorted(m for m in rule.methods if m not in {"HEAD", "OPTIONS"}))
            lines.append(f"{methods:10s} {rule.rule}")
        lines.sort()
        return Response("\n".join(lines), mimetype="text/plain")

    # Register blueprints
    app.register_blueprint(network_bp)
    app.register_blueprint(trips_bp)
    app.register_blueprint(reservations_bp)

    # CLI: recompute seat pools from confirmed reservations
    @app.cli.command("reconcile-seats")
    @click.option("--fix", is_flag=True, help="Rewrite drifted rows.")
    def reconcile_seats_cmd(fix: bool):
        drift = reconcile_seats(fix=fix)
        for row in drift:
            print(json.dumps(row))
        print(f"Seat reconciliation complete: {len(drift)} drifted row(s).")

    return app


# Optional local entrypoint (useful for quick dev runs)
if __name__ == "__main__":
    app = create_app()
    app.run(
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        debug=bool(os.environ.get("FLASK_DEBUG", "")),
    )
