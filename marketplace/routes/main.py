"""
Main Routes

Health, status and Prometheus exposition. These routes are lightweight and
used by load balancers, scrapers and tests (availability checks).
"""

import os
from datetime import datetime

from flask import Blueprint, Response, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..models import db
from ..utils.prom_metrics import metrics_latest, CONTENT_TYPE_LATEST

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({'status': 'healthy', 'timestamp': datetime.utcnow().isoformat()})


@main_bp.route('/api/status')
def api_status():
    """API status endpoint"""
    try:
        db.session.execute(text('SELECT 1'))
        database = 'ok'
    except SQLAlchemyError:
        db.session.rollback()
        database = 'unavailable'

    return jsonify({
        'status': 'operational' if database == 'ok' else 'degraded',
        'version': '1.0.0',
        'environment': os.getenv('FLASK_ENV', 'development'),
        'database': database,
    })


@main_bp.route('/api/metrics')
def metrics():
    """Prometheus metrics endpoint."""
    output = metrics_latest()
    return Response(output, mimetype=CONTENT_TYPE_LATEST)
