"""
Routes Package

This package contains all Flask route blueprints.
"""

from .auth import auth_bp
from .main import main_bp
from .catalog import catalog_bp
from .orders import orders_bp
from .notifications import notifications_bp
from .payment import payment_bp
from .invoice import invoice_bp
from .admin import admin_bp

__all__ = [
    'auth_bp',
    'main_bp',
    'catalog_bp',
    'orders_bp',
    'notifications_bp',
    'payment_bp',
    'invoice_bp',
    'admin_bp'
]
