"""
Catalog Models

Stores, categories, brands, products and product variants. Products only show
on the storefront once an admin approved them and they are active.
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid


class Store(db.Model):
    """A seller's storefront"""
    __tablename__ = 'stores'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    products = db.relationship('Product', backref='store', lazy=True)

    @property
    def seller_id(self):
        return self.user_id

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'slug': self.slug,
            'is_active': self.is_active,
        }


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False)
    parent_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    children = db.relationship('Category', backref=db.backref('parent', remote_side=[id]), lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'parent_id': self.parent_id,
            'is_active': self.is_active,
        }


class Brand(db.Model):
    __tablename__ = 'brands'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), unique=True, nullable=False)
    description = db.Column(db.Text)
    logo_url = db.Column(db.String(1024))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'slug': self.slug,
            'description': self.description,
            'logo_url': self.logo_url,
            'is_active': self.is_active,
        }


class Product(db.Model):
    """Product listed by a store; moderated by admins"""
    __tablename__ = 'products'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    store_id = db.Column(db.String(36), db.ForeignKey('stores.id'), nullable=True)
    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=True)
    brand_id = db.Column(db.String(36), db.ForeignKey('brands.id'), nullable=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Float, nullable=False, default=0)
    stock = db.Column(db.Integer, nullable=False, default=0)
    image_url = db.Column(db.String(1024))

    # Moderation
    is_approved = db.Column(db.Boolean, default=False)
    is_active = db.Column(db.Boolean, default=False)
    reject_reason = db.Column(db.Text)
    approved_at = db.Column(db.DateTime)
    approved_by = db.Column(db.String(36))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    variants = db.relationship('ProductVariant', backref='product', lazy=True, cascade='all, delete-orphan')

    EDITABLE_FIELDS = ('name', 'description', 'price', 'stock', 'image_url',
                       'category_id', 'brand_id', 'store_id', 'is_active')

    @property
    def approval_status(self):
        if self.is_approved:
            return 'approved'
        if self.reject_reason:
            return 'rejected'
        return 'pending'

    def approve(self, admin_id):
        now = datetime.utcnow()
        self.is_approved = True
        self.is_active = True
        self.reject_reason = None
        self.approved_at = now
        self.approved_by = admin_id
        self.updated_at = now

    def reject(self, reason):
        self.is_approved = False
        self.is_active = False
        self.reject_reason = reason
        self.updated_at = datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'store_id': self.store_id,
            'category_id': self.category_id,
            'brand_id': self.brand_id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'stock': self.stock,
            'image_url': self.image_url,
            'is_approved': self.is_approved,
            'is_active': self.is_active,
            'approval_status': self.approval_status,
            'reject_reason': self.reject_reason,
            'approved_at': self.approved_at.isoformat() if self.approved_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class ProductVariant(db.Model):
    __tablename__ = 'product_variants'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    product_id = db.Column(db.String(36), db.ForeignKey('products.id'), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Float)
    stock = db.Column(db.Integer, default=0)

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'name': self.name,
            'price': self.price,
            'stock': self.stock,
        }
