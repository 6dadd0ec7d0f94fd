"""
Outbound Email

HTML emails sent through the configured SMTP relay with Flask-Mail.
"""

import logging
from datetime import datetime

from flask import current_app, render_template
from flask_mail import Message

from ..extensions import mail

logger = logging.getLogger(__name__)


def send_card_edit_code_email(recipient, code):
    """Send the card edit verification code. Exceptions from the relay propagate."""
    html = render_template(
        'email/card_edit_code.html',
        code=code,
        year=datetime.utcnow().year,
        ttl_minutes=current_app.config['CARD_EDIT_CODE_TTL_MINUTES'],
    )
    msg = Message(
        subject='Kart Düzenleme Onay Kodunuz',
        recipients=[recipient],
        html=html,
        sender=current_app.config.get('MAIL_DEFAULT_SENDER'),
    )
    mail.send(msg)
    logger.info(f"Card edit code sent to {recipient}")
