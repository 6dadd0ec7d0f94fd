"""
Order Models

Orders with their line items, and the payment transactions that settle them.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    store_id = db.Column(db.String(36), db.ForeignKey('stores.id'), nullable=True)
    total_amount = db.Column(db.Float, nullable=False, default=0)
    currency = db.Column(db.String(3), default='TRY')
    status = db.Column(db.String(30), default='pending')
    payment_status = db.Column(db.String(30), default='pending')
    invoice_id = db.Column(db.String(36), nullable=True)
    invoice_status = db.Column(db.String(20), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship('OrderItem', backref='order', lazy=True, cascade='all, delete-orphan')
    buyer = db.relationship('Profile', foreign_keys=[user_id])
    store = db.relationship('Store', foreign_keys=[store_id])

    def to_dict(self, include_items=True):
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'store_id': self.store_id,
            'total_amount': self.total_amount,
            'currency': self.currency,
            'status': self.status,
            'payment_status': self.payment_status,
            'invoice_id': self.invoice_id,
            'invoice_status': self.invoice_status,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_items:
            data['order_items'] = [item.to_dict() for item in self.items]
        return data


class OrderItem(db.Model):
    __tablename__ = 'order_items'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=False)
    product_id = db.Column(db.String(36), db.ForeignKey('products.id'), nullable=False)
    variant_id = db.Column(db.String(36), db.ForeignKey('product_variants.id'), nullable=True)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    price = db.Column(db.Float, nullable=False)
    tax_rate = db.Column(db.Float, nullable=True)

    product = db.relationship('Product')
    variant = db.relationship('ProductVariant')

    @property
    def display_name(self):
        """Line name as printed on invoices: "product - variant" when a variant is set"""
        name = self.product.name if self.product else ''
        if self.variant:
            return f'{name} - {self.variant.name}'
        return name

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'product_id': self.product_id,
            'variant_id': self.variant_id,
            'quantity': self.quantity,
            'price': self.price,
            'tax_rate': self.tax_rate,
        }


class PaymentTransaction(db.Model):
    """A card payment attempt; 3-D Secure payments wait in AWAITING_3DS for the bank callback"""
    __tablename__ = 'payment_transactions'

    STATUS_PENDING = 'PENDING'
    STATUS_AWAITING_3DS = 'AWAITING_3DS'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_FAILED = 'FAILED'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=True)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=True)
    seller_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=True)
    bank_id = db.Column(db.String(36), db.ForeignKey('banks.id'), nullable=True)
    amount = db.Column(db.Float, nullable=False, default=0)
    currency = db.Column(db.String(3), default='TRY')
    status = db.Column(db.String(20), nullable=False, default=STATUS_PENDING)
    error_code = db.Column(db.String(50))
    error_message = db.Column(db.Text)
    provider_response = db.Column(db.JSON)
    completed_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'order_id': self.order_id,
            'bank_id': self.bank_id,
            'amount': self.amount,
            'currency': self.currency,
            'status': self.status,
            'error_code': self.error_code,
            'error_message': self.error_message,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
        }
