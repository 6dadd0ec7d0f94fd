"""
Profile Model

A profile is the identity record a session points at. Its `role` column drives
coarse authorization (customer, seller, admin, system).
"""

from datetime import datetime
from .database import db
from .utils import generate_uuid

ROLES = ('customer', 'seller', 'admin', 'system')


class Profile(db.Model):
    """User profile for authentication, authorization and invoicing details"""
    __tablename__ = 'profiles'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    email = db.Column(db.String(254), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=True)
    role = db.Column(db.String(20), nullable=False, default='customer')
    status = db.Column(db.String(20), nullable=False, default='active')  # active, suspended
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))
    phone = db.Column(db.String(30))

    # Billing identity
    is_corporate = db.Column(db.Boolean, default=False)
    company_name = db.Column(db.String(255))
    tax_number = db.Column(db.String(20))
    tax_office = db.Column(db.String(100))
    address = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_login = db.Column(db.DateTime)

    stores = db.relationship('Store', backref='owner', lazy=True)

    def __init__(self, email, password_hash=None, role='customer', **kwargs):
        """Initialize a profile after validating the email and role"""
        # Import validators here to avoid circular imports
        from ..utils.validators import validate_email

        email_validation = validate_email(email)
        if not email_validation.is_valid:
            raise ValueError(email_validation.error_message)
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role}")

        super().__init__(**kwargs)
        self.email = email_validation.sanitized_value
        self.password_hash = password_hash
        self.role = role
        self.status = kwargs.get('status', 'active')

    def __repr__(self):
        return f'<Profile {self.email} ({self.role})>'

    @property
    def full_name(self):
        return ' '.join(part for part in (self.first_name, self.last_name) if part)

    def is_active(self):
        return self.status == 'active'

    def has_role(self, *roles):
        return self.role in roles

    def update_last_login(self):
        """Update the last login timestamp"""
        self.last_login = datetime.utcnow()
        db.session.commit()

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'role': self.role,
            'status': self.status,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'phone': self.phone,
            'is_corporate': self.is_corporate,
            'company_name': self.company_name,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
