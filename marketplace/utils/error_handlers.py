"""
Error Handlers

Global JSON error responses for routes that do not translate an error
themselves.
"""

from flask import jsonify


class MarketplaceError(Exception):
    """Base class for errors raised by the service layer"""


def json_error(message, status_code):
    return jsonify({'success': False, 'error': message}), status_code


def register_error_handlers(app):
    """Register error handlers with the Flask app"""

    @app.errorhandler(400)
    def bad_request(error):
        return json_error('Bad request', 400)

    @app.errorhandler(404)
    def not_found(error):
        return json_error('Not found', 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return json_error('Method not allowed', 405)

    @app.errorhandler(500)
    def internal_error(error):
        from ..models import db
        db.session.rollback()
        app.logger.error(f"Unhandled server error: {error}")
        return json_error('Internal server error. Please try again later.', 500)
