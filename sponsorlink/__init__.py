"""
Flask application factory.

Creates and configures the app, resolves the bearer identity for every
request, maps the error taxonomy to JSON responses, registers blueprints.
"""
import logging

from flask import Flask, g, jsonify, request


def create_app():
    """Create and configure the Flask application."""
    from sponsorlink.config import SECRET_KEY
    from sponsorlink.database import import_models
    from sponsorlink.errors import AuthenticationError, MarketplaceError
    from sponsorlink.logging_config import configure_logging
    from sponsorlink.services.accounts import purge_expired_tokens, resolve_identity

    app = Flask(__name__)
    configure_logging(app)
    app.secret_key = SECRET_KEY

    logger = logging.getLogger('sponsorlink.app')

    # ── Identity ────────────────────────────────────────────────────────
    # Invalid credentials only fail endpoints that require an identity;
    # public listings still render (masked) for them.

    @app.before_request
    def load_identity():
        g.identity = None
        g.auth_error = None
        header = request.headers.get('Authorization', '')
        if not header.startswith('Bearer '):
            return
        try:
            g.identity = resolve_identity(header[len('Bearer '):].strip())
        except AuthenticationError as e:
            g.auth_error = e

    # ── Errors ──────────────────────────────────────────────────────────

    @app.errorhandler(MarketplaceError)
    def handle_marketplace_error(error):
        if error.status_code >= 500:
            logger.error("%s on %s %s: %s", type(error).__name__, request.method, request.path, error.message)
        return jsonify(error.to_dict()), error.status_code

    # ── CLI ─────────────────────────────────────────────────────────────

    @app.cli.command('purge-tokens')
    def purge_tokens_command():
        """Delete expired email verification tokens."""
        print(f'Purged {purge_expired_tokens()} expired tokens')

    # Register blueprints
    from sponsorlink.routes.auth import bp as auth_bp
    from sponsorlink.routes.domains import bp as domains_bp
    from sponsorlink.routes.health import bp as health_bp
    from sponsorlink.routes.payments import bp as payments_bp
    from sponsorlink.routes.posts import bp as posts_bp
    from sponsorlink.routes.reports import bp as reports_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(posts_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(domains_bp)

    # Initialize circuit breakers for external collaborators
    from sponsorlink.extensions import redis_client
    from sponsorlink.services.circuit_breaker import init_breakers
    init_breakers(redis_client)

    # Base.metadata must know every table. Schema is managed by Alembic.
    import_models()

    return app
