"""
Invoice Models

Seller invoice settings, invoices and their line items. Invoice numbers are
`prefix + YYYY + MM + 8-digit sequence`.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid


class InvoiceSettings(db.Model):
    __tablename__ = 'invoice_settings'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    seller_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), unique=True, nullable=False)
    invoice_prefix = db.Column(db.String(10), nullable=False, default='INV')
    is_e_invoice_user = db.Column(db.Boolean, default=False)
    auto_invoice_generation = db.Column(db.Boolean, default=False)
    company_name = db.Column(db.String(255))
    address = db.Column(db.Text)
    tax_office = db.Column(db.String(100))
    tax_number = db.Column(db.String(20))
    gib_username = db.Column(db.String(100))
    gib_password = db.Column(db.String(255))
    gib_api_key = db.Column(db.String(255))

    def has_gib_credentials(self):
        return bool(self.gib_username and self.gib_password and self.gib_api_key)


class Invoice(db.Model):
    __tablename__ = 'invoices'

    STATUS_DRAFT = 'DRAFT'
    STATUS_ISSUED = 'ISSUED'
    STATUS_REJECTED = 'REJECTED'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    invoice_number = db.Column(db.String(40), unique=True, nullable=False)
    order_id = db.Column(db.String(36), db.ForeignKey('orders.id'), nullable=False)
    seller_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    buyer_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    buyer_type = db.Column(db.String(20))  # CORPORATE, INDIVIDUAL
    buyer_name = db.Column(db.String(255))
    buyer_tax_number = db.Column(db.String(20))
    buyer_tax_office = db.Column(db.String(100))
    buyer_address = db.Column(db.Text)
    subtotal = db.Column(db.Float, nullable=False, default=0)
    tax_total = db.Column(db.Float, nullable=False, default=0)
    total = db.Column(db.Float, nullable=False, default=0)
    currency = db.Column(db.String(3), default='TRY')
    status = db.Column(db.String(20), nullable=False, default=STATUS_DRAFT)
    type = db.Column(db.String(20))  # E_FATURA, E_ARSIV
    gib_uuid = db.Column(db.String(64))
    pdf_url = db.Column(db.String(1024))
    xml_url = db.Column(db.String(1024))
    error_message = db.Column(db.Text)
    issued_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    items = db.relationship('InvoiceItem', backref='invoice', lazy=True, cascade='all, delete-orphan')
    seller_settings = db.relationship(
        'InvoiceSettings',
        primaryjoin='Invoice.seller_id == foreign(InvoiceSettings.seller_id)',
        uselist=False,
        viewonly=True,
    )

    def to_dict(self, include_items=False):
        data = {
            'id': self.id,
            'invoice_number': self.invoice_number,
            'order_id': self.order_id,
            'seller_id': self.seller_id,
            'buyer_id': self.buyer_id,
            'buyer_type': self.buyer_type,
            'buyer_name': self.buyer_name,
            'subtotal': self.subtotal,
            'tax_total': self.tax_total,
            'total': self.total,
            'currency': self.currency,
            'status': self.status,
            'type': self.type,
            'pdf_url': self.pdf_url,
            'issued_at': self.issued_at.isoformat() if self.issued_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_items:
            data['invoice_items'] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    __tablename__ = 'invoice_items'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    invoice_id = db.Column(db.String(36), db.ForeignKey('invoices.id'), nullable=False)
    product_id = db.Column(db.String(36), nullable=True)
    variant_id = db.Column(db.String(36), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)
    tax_rate = db.Column(db.Float, nullable=False)
    tax_amount = db.Column(db.Float, nullable=False)
    total_amount = db.Column(db.Float, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'variant_id': self.variant_id,
            'name': self.name,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'tax_rate': self.tax_rate,
            'tax_amount': self.tax_amount,
            'total_amount': self.total_amount,
        }
