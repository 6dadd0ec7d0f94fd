"""
Marketplace Application Package

FLOW OVERVIEW
- create_app(test_config=None)
  • Build Flask app, apply config (test dict or env-based), init extensions (DB, Mail).
  • Register blueprints: auth (/auth), main (/), catalog (/api), orders (/api/orders),
    notifications (/api/notifications), payment (/api/payment), invoice (/api/invoice),
    admin (/api/admin).
  • Register global JSON error handlers and the request-metrics hook.
"""

import time

from flask import Flask, request
from .models import db
from .extensions import mail
from .routes import auth_bp, main_bp, catalog_bp, orders_bp, notifications_bp, payment_bp, invoice_bp, admin_bp
from .config import Config


def create_app(test_config=None):
    """Application factory pattern for production deployment"""
    app = Flask(__name__, template_folder='templates')

    # Configuration
    if test_config:
        # Defaults first, then the caller's overrides
        app.config.from_object(Config(load_env=False))
        app.config.update(test_config)
    else:
        app.config.from_object(Config())

    # Initialize extensions
    db.init_app(app)
    mail.init_app(app)

    # Register blueprints
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(main_bp)
    app.register_blueprint(catalog_bp, url_prefix='/api')
    app.register_blueprint(orders_bp, url_prefix='/api/orders')
    app.register_blueprint(notifications_bp, url_prefix='/api/notifications')
    app.register_blueprint(payment_bp, url_prefix='/api/payment')
    app.register_blueprint(invoice_bp, url_prefix='/api/invoice')
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    # Register error handlers
    from .utils.error_handlers import register_error_handlers
    register_error_handlers(app)

    _register_request_metrics(app)

    return app


def _register_request_metrics(app):
    from .utils.prom_metrics import observe_request

    @app.before_request
    def start_timer():
        request.environ['marketplace.start_time'] = time.perf_counter()

    @app.after_request
    def record_metrics(response):
        started = request.environ.get('marketplace.start_time')
        if started is not None:
            endpoint = request.url_rule.rule if request.url_rule else 'unmatched'
            observe_request(endpoint, response.status_code, time.perf_counter() - started)
        return response
