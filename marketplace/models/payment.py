"""
Payment Models

Saved card tokens, the one-time codes that guard card edits, the banks that
process card payments and the marketplace's own (managed) bank accounts.
"""

from datetime import datetime, timedelta
from .database import db
from .utils import generate_uuid, generate_verification_code


class CardToken(db.Model):
    """Tokenized payment card. Only the last four digits are kept."""
    __tablename__ = 'card_tokens'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    card_holder_name = db.Column(db.String(255), nullable=False)
    last_four_digits = db.Column(db.String(4), nullable=False)
    expiry_month = db.Column(db.String(2), nullable=False)
    expiry_year = db.Column(db.String(4), nullable=False)
    card_type = db.Column(db.String(20), default='UNKNOWN')
    bank_id = db.Column(db.String(36), db.ForeignKey('banks.id'), nullable=True)
    token_value = db.Column(db.String(255), nullable=False)
    title = db.Column(db.String(100))
    is_default = db.Column(db.Boolean, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_owned_by(self, user_id):
        return self.user_id == user_id

    def to_dict(self):
        """Client-facing shape; the token value never leaves the server"""
        return {
            'id': self.id,
            'cardHolderName': self.card_holder_name,
            'lastFourDigits': self.last_four_digits,
            'cardType': self.card_type,
            'expiryMonth': self.expiry_month,
            'expiryYear': self.expiry_year,
            'isDefault': self.is_default,
            'bankId': self.bank_id,
            'title': self.title,
        }


class CardEditVerification(db.Model):
    """One-time email code that confirms a card edit"""
    __tablename__ = 'card_edit_verifications'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('profiles.id'), nullable=False)
    card_id = db.Column(db.String(36), db.ForeignKey('card_tokens.id', ondelete='CASCADE'), nullable=False)
    code = db.Column(db.String(6), nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.Index('idx_card_edit_lookup', 'user_id', 'card_id', 'code'),
    )

    def __init__(self, user_id, card_id, expires_in_minutes=10, code=None):
        """Initialize a new code with an absolute expiry"""
        self.user_id = user_id
        self.card_id = card_id
        self.code = code or generate_verification_code()
        self.created_at = datetime.utcnow()
        self.expires_at = self.created_at + timedelta(minutes=expires_in_minutes)
        self.used = False

    def is_expired(self, now=None):
        return (now or datetime.utcnow()) > self.expires_at

    def mark_used(self):
        self.used = True


class Bank(db.Model):
    __tablename__ = 'banks'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    name = db.Column(db.String(255), nullable=False)
    logo = db.Column(db.String(1024))
    supported_card_types = db.Column(db.JSON, default=list)
    installment_options = db.Column(db.JSON, default=list)
    is_active = db.Column(db.Boolean, default=True)

    # Virtual POS credentials
    pos_api_endpoint = db.Column(db.String(1024))
    pos_api_key = db.Column(db.String(255))
    pos_api_secret = db.Column(db.String(255))

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'logo': self.logo,
            'supported_card_types': self.supported_card_types or [],
            'installment_options': self.installment_options or [],
        }


class ManagedBankAccount(db.Model):
    """Bank account owned by the marketplace, shown for transfers and payouts"""
    __tablename__ = 'managed_bank_accounts'

    id = db.Column(db.String(36), primary_key=True, default=generate_uuid)
    bank_name = db.Column(db.String(255), nullable=False)
    account_holder = db.Column(db.String(255), nullable=False)
    iban = db.Column(db.String(34), unique=True, nullable=False)
    branch_name = db.Column(db.String(255))
    currency = db.Column(db.String(3), default='TRY')
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    EDITABLE_FIELDS = ('bank_name', 'account_holder', 'iban', 'branch_name', 'currency', 'is_active')

    def to_dict(self):
        return {
            'id': self.id,
            'bank_name': self.bank_name,
            'account_holder': self.account_holder,
            'iban': self.iban,
            'branch_name': self.branch_name,
            'currency': self.currency,
            'is_active': self.is_active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
