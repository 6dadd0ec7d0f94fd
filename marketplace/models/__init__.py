"""
Database Models Package

FLOW OVERVIEW
- Centralizes SQLAlchemy DB instance and model imports for convenient usage.
- Exposes: db, Profile, catalog, order, invoice, payment and content models.
"""

from .database import db
from .profile import Profile
from .catalog import Store, Category, Brand, Product, ProductVariant
from .order import Order, OrderItem, PaymentTransaction
from .invoice import InvoiceSettings, Invoice, InvoiceItem
from .payment import CardToken, CardEditVerification, Bank, ManagedBankAccount
from .content import Notification, Announcement

__all__ = [
    'db',
    'Profile',
    'Store',
    'Category',
    'Brand',
    'Product',
    'ProductVariant',
    'Order',
    'OrderItem',
    'PaymentTransaction',
    'InvoiceSettings',
    'Invoice',
    'InvoiceItem',
    'CardToken',
    'CardEditVerification',
    'Bank',
    'ManagedBankAccount',
    'Notification',
    'Announcement'
]
