"""
Payment Service

FLOW OVERVIEW
- complete_3d_secure_payment(transaction_id, payment_id, status, bank_response_data)
  1. Load the payment transaction and its bank.
  2. Already COMPLETED → report success without re-verifying.
  3. Bank reported a failure status → FAILED without a gateway call.
  4. Otherwise ask the bank's virtual POS to verify the 3-D Secure result.
  5. Persist the outcome on the transaction; on success mark the order PAID /
     PROCESSING and notify the seller.
- verify_3d_secure_payment(bank, payment_id, bank_response_data)
  • POST {pos_api_endpoint}/verify3d; transport errors become a failed verification.
- detect_card_type(card_number)
  • Brand detection from the leading digits.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

import requests
from flask import current_app

from ..models import db, Bank, Notification, Order, PaymentTransaction
from .error_handlers import MarketplaceError

logger = logging.getLogger(__name__)

FAILED_BANK_STATUSES = {'failure', 'failed', 'error', 'declined', 'cancelled'}


class PaymentServiceError(MarketplaceError):
    """The payment gateway could not be reached or answered with something other than JSON"""


@dataclass
class VerificationResult:
    success: bool
    error_code: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class PaymentResult:
    success: bool
    order_id: Optional[str] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    already_processed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {'success': self.success, 'orderId': self.order_id}
        if self.error_message:
            data['error'] = self.error_message
        if self.error_code:
            data['errorCode'] = self.error_code
        if self.already_processed:
            data['alreadyProcessed'] = True
        return data


def detect_card_type(card_number):
    """Detect the card brand (VISA, MASTERCARD, AMEX, TROY) from its prefix"""
    digits = re.sub(r'\D', '', card_number or '')
    if digits.startswith('4'):
        return 'VISA'
    if re.match(r'^5[1-5]', digits) or re.match(r'^2[2-7]', digits):
        return 'MASTERCARD'
    if re.match(r'^3[47]', digits):
        return 'AMEX'
    if digits.startswith('9'):
        return 'TROY'
    return 'UNKNOWN'


class PaymentService:
    """Bank-facing payment operations"""

    def __init__(self, timeout=None, http=None):
        self.timeout = timeout if timeout is not None else current_app.config['PAYMENT_GATEWAY_TIMEOUT']
        self.http = http or requests

    def complete_3d_secure_payment(self, transaction_id, payment_id, status, bank_response_data=None) -> PaymentResult:
        transaction = db.session.get(PaymentTransaction, str(transaction_id))
        if transaction is None:
            return PaymentResult(False, error_message='Ödeme işlemi bulunamadı', error_code='TRANSACTION_NOT_FOUND')

        if transaction.status == PaymentTransaction.STATUS_COMPLETED:
            logger.info(f"Transaction {transaction.id} already processed with status {transaction.status}")
            return PaymentResult(True, order_id=transaction.order_id, already_processed=True)

        bank = db.session.get(Bank, transaction.bank_id) if transaction.bank_id else None
        if bank is None:
            return PaymentResult(False, order_id=transaction.order_id,
                                 error_message='Banka bilgisi bulunamadı', error_code='BANK_NOT_FOUND')

        provider_payment_id = payment_id
        if not provider_payment_id and isinstance(bank_response_data, dict):
            provider_payment_id = bank_response_data.get('paymentId')

        if str(status).strip().lower() in FAILED_BANK_STATUSES:
            verification = VerificationResult(False, 'BANK_DECLINED', '3D Secure doğrulaması banka tarafından reddedildi')
        else:
            verification = self.verify_3d_secure_payment(bank, provider_payment_id, bank_response_data)

        transaction.status = PaymentTransaction.STATUS_COMPLETED if verification.success else PaymentTransaction.STATUS_FAILED
        transaction.error_code = verification.error_code
        transaction.error_message = verification.error_message
        transaction.provider_response = bank_response_data
        transaction.completed_at = datetime.utcnow() if verification.success else None

        if verification.success and transaction.order_id:
            order = db.session.get(Order, transaction.order_id)
            if order is not None:
                order.payment_status = 'PAID'
                order.status = 'PROCESSING'
                seller_id = transaction.seller_id or (order.store.user_id if order.store else None)
                if seller_id:
                    self.create_seller_notification(seller_id, order.id)
        elif verification.success:
            logger.warning(f"Payment transaction {transaction.id} completed via 3DS but has no associated order_id")

        db.session.commit()

        return PaymentResult(
            verification.success,
            order_id=transaction.order_id,
            error_message=verification.error_message,
            error_code=verification.error_code,
        )

    def verify_3d_secure_payment(self, bank, payment_id, bank_response_data) -> VerificationResult:
        if not bank.pos_api_endpoint:
            return VerificationResult(False, '3D_VERIFICATION_ERROR', 'Banka POS adresi tanımlı değil')

        try:
            result = self._post_verify(bank, payment_id, bank_response_data)
        except PaymentServiceError as e:
            logger.error(f"3D Secure verification error: {e}")
            return VerificationResult(False, '3D_VERIFICATION_ERROR', '3D Secure doğrulama sırasında bir hata oluştu')

        if isinstance(result, dict) and result.get('success') is True:
            return VerificationResult(True)

        message = result.get('errorMessage') if isinstance(result, dict) else None
        return VerificationResult(False, 'VERIFICATION_FAILED', message or '3D Secure doğrulama başarısız')

    def _post_verify(self, bank, payment_id, bank_response_data):
        headers = {
            'Content-Type': 'application/json',
            'Authorization': f'ApiKey {bank.pos_api_key}:{bank.pos_api_secret}',
        }
        payload = {
            'paymentId': payment_id,
            'responseData': bank_response_data,
        }
        try:
            response = self.http.post(
                f"{bank.pos_api_endpoint.rstrip('/')}/verify3d",
                json=payload,
                headers=headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as e:
            raise PaymentServiceError(f"Gateway call to {bank.name} failed: {e}") from e

    @staticmethod
    def create_seller_notification(seller_id, order_id):
        return Notification.create(
            user_id=seller_id,
            title='Yeni Sipariş',
            content=f'Yeni bir siparişiniz var! Sipariş ID: {order_id}',
            type='ORDER',
            reference_id=order_id,
        )
