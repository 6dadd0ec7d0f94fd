"""
Card Edit Verification Codes

FLOW OVERVIEW
- issue_card_edit_code(profile, card)
  • Enforce the per (user, card) generation limit, store a 6-digit code with a
    10-minute absolute expiry, email it to the profile's address.
- verify_card_edit_code(user_id, card_id, code)
  • Most recent matching (user, card, code) record → reject if missing, used
    or expired → mark used.
- has_confirmed_edit(user_id, card_id)
  • True while a consumed code for the card is still inside its expiry window;
    gates card info edits.

Errors are raised as CardVerificationError carrying the HTTP status and a
machine-readable error code.
"""

import logging
from datetime import datetime, timedelta

from flask import current_app

from ..models import db, CardEditVerification
from .error_handlers import MarketplaceError
from .mailer import send_card_edit_code_email

logger = logging.getLogger(__name__)


class CardVerificationError(MarketplaceError):
    def __init__(self, message, error_code, status_code=400):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code


def recent_code_count(user_id, card_id, window_seconds, now=None):
    since = (now or datetime.utcnow()) - timedelta(seconds=window_seconds)
    return CardEditVerification.query.filter(
        CardEditVerification.user_id == user_id,
        CardEditVerification.card_id == card_id,
        CardEditVerification.created_at >= since,
    ).count()


def issue_card_edit_code(profile, card):
    """Create a code for `card` and email it to `profile`"""
    config = current_app.config

    issued = recent_code_count(profile.id, card.id, config['CARD_EDIT_CODE_WINDOW_SECONDS'])
    if issued >= config['CARD_EDIT_CODE_MAX_PER_WINDOW']:
        logger.warning(f"Card edit code limit reached for user {profile.id} card {card.id}")
        raise CardVerificationError(
            'Çok fazla kod talebi. Lütfen daha sonra tekrar deneyin.',
            'RATE_LIMIT_EXCEEDED',
            429,
        )

    verification = CardEditVerification(
        user_id=profile.id,
        card_id=card.id,
        expires_in_minutes=config['CARD_EDIT_CODE_TTL_MINUTES'],
    )
    db.session.add(verification)
    db.session.commit()

    send_card_edit_code_email(profile.email, verification.code)
    return verification


def verify_card_edit_code(user_id, card_id, code, now=None):
    """Consume a code. Returns the consumed record."""
    record = CardEditVerification.query.filter_by(
        user_id=user_id,
        card_id=card_id,
        code=code,
    ).order_by(CardEditVerification.created_at.desc()).first()

    if record is None:
        raise CardVerificationError('Kod bulunamadı veya yanlış', 'CODE_NOT_FOUND')

    if record.used:
        raise CardVerificationError('Kod zaten kullanılmış', 'CODE_ALREADY_USED')

    if record.is_expired(now):
        raise CardVerificationError('Kodun süresi dolmuş', 'CODE_EXPIRED')

    record.mark_used()
    db.session.commit()
    logger.info(f"Card edit code consumed for user {user_id} card {card_id}")
    return record


def has_confirmed_edit(user_id, card_id, now=None):
    return CardEditVerification.query.filter(
        CardEditVerification.user_id == user_id,
        CardEditVerification.card_id == card_id,
        CardEditVerification.used.is_(True),
        CardEditVerification.expires_at >= (now or datetime.utcnow()),
    ).first() is not None
