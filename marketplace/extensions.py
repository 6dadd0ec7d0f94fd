"""
Flask extension instances shared across the package.

Initialized in the app factory (marketplace/__init__.py).
"""

from flask_mail import Mail

mail = Mail()
