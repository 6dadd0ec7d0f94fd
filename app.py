#!/usr/bin/env python3
"""
Marketplace application entry point.

This module creates the Flask application via `create_app` and makes sure the
database tables exist. When executed directly, it runs the development
server. In production, a WSGI server should import `app` from this module.

Environment variables of interest:
- FLASK_ENV: selects config.env (development) or config.prod.env (production).
- DATABASE_URL, SECRET_KEY, mail, storage, payment and e-invoice settings:
  consumed by `marketplace.config.Config`.
"""

import logging
import os

from marketplace import create_app
from marketplace.models import db

logging.basicConfig(level=os.getenv('LOG_LEVEL', 'INFO'),
                    format='%(asctime)s %(levelname)s %(name)s: %(message)s')

app = create_app()

with app.app_context():
    db.create_all()
    app.logger.info(f"Database ready at {app.config['SQLALCHEMY_DATABASE_URI']}")

if __name__ == '__main__':
    app.run(debug=os.getenv('FLASK_ENV', 'development') == 'development', host='0.0.0.0', port=int(os.getenv('PORT', 5000)))
