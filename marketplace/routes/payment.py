"""
Payment Routes

FLOW OVERVIEW
- /api/payment/complete [POST]
  • Bank 3-D Secure callback → PaymentService.complete_3d_secure_payment.
- /api/payment/banks [GET]
  • Active banks, or the built-in default list when none are configured.
- /api/payment/methods [GET, POST]
  • List / save the caller's card tokens (never the full number or CVV).
- /api/payment/methods/<id> [GET]
  • One card: 404 unknown, 403 owned by someone else.
- /api/payment/methods/delete?cardId= [POST]
- /api/payment/methods/set-default?cardId= [POST]
  • Unset the other defaults and set this one in a single commit.
- /api/payment/methods/update-title, /update-info [PATCH]
  • update-info needs a verified edit code for the card (403 otherwise).
- /api/payment/methods/send-edit-code, /verify-edit-code [POST]
  • One-time email codes confirming card edits (rate limited).
"""

import smtplib

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ..models import db, Bank, CardEditVerification, CardToken
from ..models.utils import generate_card_token, get_or_none
from ..utils.api_utils import request_validator, rate_limiter, error_response
from ..utils.auth_utils import login_required
from ..utils.card_verification import (
    CardVerificationError, has_confirmed_edit, issue_card_edit_code, verify_card_edit_code
)
from ..utils.payment_service import PaymentService, detect_card_type
from ..utils.prom_metrics import observe_payment_completion
from ..utils.validators import (
    sanitize_input, validate_card_expiry, validate_card_number, validate_verification_code
)

payment_bp = Blueprint('payment', __name__)

DEFAULT_BANKS = [
    {'id': '1', 'name': 'Garanti BBVA', 'logo': '/banks/garanti.png',
     'supported_card_types': ['VISA', 'MASTERCARD']},
    {'id': '2', 'name': 'İş Bankası', 'logo': '/banks/isbank.png',
     'supported_card_types': ['VISA', 'MASTERCARD', 'TROY']},
    {'id': '3', 'name': 'Yapı Kredi', 'logo': '/banks/yapikredi.png',
     'supported_card_types': ['VISA', 'MASTERCARD']},
    {'id': '4', 'name': 'Akbank', 'logo': '/banks/akbank.png',
     'supported_card_types': ['VISA', 'MASTERCARD']},
    {'id': '5', 'name': 'Ziraat Bankası', 'logo': '/banks/ziraat.png',
     'supported_card_types': ['VISA', 'MASTERCARD', 'TROY']},
]


def _load_owned_card(card_id):
    """Return (card, error_response) for a card the caller must own"""
    card = get_or_none(CardToken, card_id)
    if card is None:
        return None, error_response('Kart bulunamadı', 404)
    if not card.is_owned_by(g.profile.id):
        current_app.logger.warning(f"Profile {g.profile.id} tried to access card {card_id}")
        return None, error_response('Bu karta erişim yetkiniz yok', 403)
    return card, None


def _set_default_card(user_id, card):
    """Make `card` the only default card of `user_id`; the caller commits"""
    CardToken.query.filter(
        CardToken.user_id == user_id,
        CardToken.id != card.id,
    ).update({CardToken.is_default: False}, synchronize_session='fetch')
    card.is_default = True


@payment_bp.route('/complete', methods=['POST'])
def complete_payment():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('transactionId', 'paymentId', 'status')):
        return jsonify({'success': False, 'error': 'Missing required fields'}), 400

    try:
        result = PaymentService().complete_3d_secure_payment(
            data['transactionId'],
            data['paymentId'],
            data['status'],
            data.get('bankResponseData'),
        )
    except Exception as e:
        db.session.rollback()
        observe_payment_completion('error')
        current_app.logger.error(f"Payment completion error: {str(e)}", exc_info=True)
        return jsonify({'success': False, 'error': 'Payment completion failed', 'details': str(e)}), 500

    if not result.success:
        observe_payment_completion('failed')
        current_app.logger.warning(
            f"Payment {data['transactionId']} not completed: {result.error_code} {result.error_message}"
        )
        return jsonify(result.to_dict()), 400

    observe_payment_completion('duplicate' if result.already_processed else 'success')
    return jsonify(result.to_dict())


@payment_bp.route('/banks', methods=['GET'])
def list_banks():
    try:
        banks = Bank.query.filter_by(is_active=True).order_by(Bank.name).all()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Bankalar yüklenirken hata: {str(e)}")
        return jsonify({'banks': DEFAULT_BANKS})

    if not banks:
        return jsonify({'banks': DEFAULT_BANKS})

    return jsonify({'banks': [bank.to_dict() for bank in banks]})


@payment_bp.route('/methods', methods=['GET'])
@login_required
def list_payment_methods():
    cards = CardToken.query.filter_by(user_id=g.profile.id).order_by(
        CardToken.is_default.desc(), CardToken.created_at.desc()
    ).all()
    banks = Bank.query.filter_by(is_active=True).order_by(Bank.name).all()

    return jsonify({
        'savedCards': [card.to_dict() for card in cards],
        'banks': [bank.to_dict() for bank in banks],
    })


@payment_bp.route('/methods', methods=['POST'])
@login_required
def add_payment_method():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if request_validator.require_fields(data, ('cardHolderName', 'cardNumber', 'expiryMonth', 'expiryYear')):
        return error_response('Kart sahibi, kart numarası ve son kullanma tarihi zorunludur', 400)

    number = validate_card_number(str(data['cardNumber']))
    if not number.is_valid:
        return error_response(number.error_message, 400)

    expiry = validate_card_expiry(data['expiryMonth'], data['expiryYear'])
    if not expiry.is_valid:
        return error_response(expiry.error_message, 400)
    month, year = expiry.sanitized_value.split('/')

    bank_id = data.get('bankId')
    if bank_id and db.session.get(Bank, str(bank_id)) is None:
        bank_id = None

    card = CardToken(
        user_id=g.profile.id,
        card_holder_name=sanitize_input(data['cardHolderName'], 255),
        last_four_digits=number.sanitized_value[-4:],
        expiry_month=month,
        expiry_year=year,
        card_type=data.get('cardType') or detect_card_type(number.sanitized_value),
        bank_id=bank_id,
        token_value=generate_card_token(),
        title=sanitize_input(data.get('title') or '', 100) or None,
        is_default=False,
    )

    try:
        db.session.add(card)
        db.session.flush()
        if data.get('makeDefault'):
            _set_default_card(g.profile.id, card)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Kart kaydedilirken hata: {str(e)}", exc_info=True)
        return error_response('Kart kaydedilemedi', 500)

    return jsonify({'success': True, 'card': card.to_dict()}), 201


@payment_bp.route('/methods/<card_id>', methods=['GET'])
@login_required
def get_payment_method(card_id):
    card, err = _load_owned_card(card_id)
    if err:
        return err
    return jsonify({'card': card.to_dict()})


@payment_bp.route('/methods/delete', methods=['POST'])
@login_required
def delete_payment_method():
    card_id = request.args.get('cardId')
    if not card_id:
        return error_response("Kart ID'si gereklidir", 400)

    card = get_or_none(CardToken, card_id, user_id=g.profile.id)
    if card is None:
        return error_response('Kart bulunamadı', 404)

    try:
        CardEditVerification.query.filter_by(card_id=card.id).delete()
        db.session.delete(card)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Kart silinirken hata: {str(e)}", exc_info=True)
        return error_response('Kart silinemedi', 500)

    return jsonify({'success': True})


@payment_bp.route('/methods/set-default', methods=['POST'])
@login_required
def set_default_payment_method():
    card_id = request.args.get('cardId')
    if not card_id:
        return error_response("Kart ID'si gereklidir", 400)

    card = get_or_none(CardToken, card_id, user_id=g.profile.id)
    if card is None:
        return error_response('Kart bulunamadı', 404)

    try:
        _set_default_card(g.profile.id, card)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Varsayılan kart ayarlanırken hata: {str(e)}", exc_info=True)
        return error_response('Varsayılan kart ayarlanamadı', 500)

    return jsonify({'success': True})


@payment_bp.route('/methods/update-title', methods=['PATCH'])
@login_required
def update_card_title():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if not data.get('cardId') or not isinstance(data.get('title'), str):
        return error_response('Eksik parametre', 400)

    card, err = _load_owned_card(data['cardId'])
    if err:
        return err

    card.title = sanitize_input(data['title'], 100)
    db.session.commit()
    return jsonify({'success': True})


@payment_bp.route('/methods/update-info', methods=['PATCH'])
@login_required
def update_card_info():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if not data.get('cardId'):
        return error_response('Eksik kart ID', 400)

    card, err = _load_owned_card(data['cardId'])
    if err:
        return err

    if not has_confirmed_edit(g.profile.id, card.id):
        return error_response('Kart bilgilerini düzenlemek için doğrulama kodu gereklidir', 403,
                              error_code='EDIT_NOT_VERIFIED')

    labels = {
        'card_holder_name': 'Kart Sahibi Adı',
        'expiry_month': 'Son Kullanma Ayı',
        'expiry_year': 'Son Kullanma Yılı',
        'title': 'Kart Başlığı',
    }
    missing = [label for field, label in labels.items() if not str(data.get(field) or '').strip()]
    if missing:
        return error_response(f"Eksik veya hatalı alanlar: {', '.join(missing)}", 400)

    expiry = validate_card_expiry(data['expiry_month'], data['expiry_year'])
    if not expiry.is_valid:
        return error_response(expiry.error_message, 400)

    if data.get('card_number'):
        number = validate_card_number(str(data['card_number']))
        if not number.is_valid:
            return error_response(number.error_message, 400)
        card.last_four_digits = number.sanitized_value[-4:]
        card.card_type = detect_card_type(number.sanitized_value)

    card.card_holder_name = sanitize_input(data['card_holder_name'], 255)
    card.expiry_month, card.expiry_year = expiry.sanitized_value.split('/')
    card.title = sanitize_input(data['title'], 100)

    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Kart güncellenirken hata: {str(e)}", exc_info=True)
        return error_response('Kart güncellenemedi', 500)

    return jsonify({'success': True, 'card': card.to_dict()})


@payment_bp.route('/methods/send-edit-code', methods=['POST'])
@login_required
def send_edit_code():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if not data.get('cardId'):
        return error_response('Kart ID eksik', 400)

    card, err = _load_owned_card(data['cardId'])
    if err:
        return err

    try:
        issue_card_edit_code(g.profile, card)
    except CardVerificationError as e:
        return error_response(e.message, e.status_code, error_code=e.error_code)
    except (smtplib.SMTPException, OSError) as e:
        current_app.logger.error(f"Card edit code email failed for {g.profile.id}: {str(e)}", exc_info=True)
        return error_response('Kod e-posta ile gönderilemedi', 500)

    return jsonify({'success': True})


@payment_bp.route('/methods/verify-edit-code', methods=['POST'])
@login_required
def verify_edit_code():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if not data.get('cardId') or not data.get('code'):
        return error_response('Eksik parametre', 400)

    allowed, limit_error = rate_limiter.check_rate_limit(
        f"card-edit-verify:{g.profile.id}",
        current_app.config['CARD_EDIT_VERIFY_MAX_ATTEMPTS'],
        60,
    )
    if not allowed:
        return jsonify(limit_error), 429

    code = validate_verification_code(data['code'])
    if not code.is_valid:
        return error_response('Kod bulunamadı veya yanlış', 400, error_code='CODE_NOT_FOUND')

    try:
        verify_card_edit_code(g.profile.id, str(data['cardId']), code.sanitized_value)
    except CardVerificationError as e:
        return error_response(e.message, e.status_code, error_code=e.error_code)

    return jsonify({'success': True})
