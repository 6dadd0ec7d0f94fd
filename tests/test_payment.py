#!/usr/bin/env python3
"""
Payment completion callback, bank list and saved card management.
"""

import pytest
import requests
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

from marketplace.models import (
    db, CardEditVerification, CardToken, Notification, PaymentTransaction
)
from marketplace.utils.payment_service import PaymentService, detect_card_type
from conftest import make_card


def _confirm_edit(session, owner, card):
    record = CardEditVerification(user_id=owner.id, card_id=card.id, code='123456')
    record.mark_used()
    session.add(record)
    session.commit()
    return record


def _gateway_response(payload, status_code=200):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def transaction(db_session, order, bank, seller, customer):
    tx = PaymentTransaction(order_id=order.id, user_id=customer.id, seller_id=seller.id,
                            bank_id=bank.id, amount=order.total_amount,
                            status=PaymentTransaction.STATUS_AWAITING_3DS)
    db_session.add(tx)
    db_session.commit()
    return tx


class TestCompletePayment:

    def _complete(self, client, transaction, status='success'):
        return client.post('/api/payment/complete', json={
            'transactionId': transaction.id,
            'paymentId': 'pay-123',
            'status': status,
            'bankResponseData': {'mdStatus': '1'},
        })

    def test_successful_completion(self, client, db_session, transaction, order, seller):
        with patch('requests.post', return_value=_gateway_response({'success': True})) as mock_post:
            response = self._complete(client, transaction)

        assert response.status_code == 200
        assert response.get_json() == {'success': True, 'orderId': order.id}

        args, kwargs = mock_post.call_args
        assert args[0] == 'https://pos.test/api/verify3d'
        assert kwargs['headers']['Authorization'] == 'ApiKey key:secret'
        assert kwargs['json'] == {'paymentId': 'pay-123', 'responseData': {'mdStatus': '1'}}

        db_session.refresh(transaction)
        db_session.refresh(order)
        assert transaction.status == PaymentTransaction.STATUS_COMPLETED
        assert transaction.completed_at is not None
        assert transaction.provider_response == {'mdStatus': '1'}
        assert order.payment_status == 'PAID'
        assert order.status == 'PROCESSING'

        notification = Notification.query.filter_by(user_id=seller.id).one()
        assert notification.title == 'Yeni Sipariş'
        assert notification.type == 'ORDER'
        assert notification.reference_id == order.id

    def test_negative_gateway_answer(self, client, db_session, transaction, order):
        payload = {'success': False, 'errorMessage': 'MD status invalid'}
        with patch('requests.post', return_value=_gateway_response(payload)):
            response = self._complete(client, transaction)

        assert response.status_code == 400
        data = response.get_json()
        assert data['success'] is False
        assert data['error'] == 'MD status invalid'

        db_session.refresh(transaction)
        db_session.refresh(order)
        assert transaction.status == PaymentTransaction.STATUS_FAILED
        assert transaction.error_code == 'VERIFICATION_FAILED'
        assert order.payment_status == 'pending'
        assert Notification.query.count() == 0

    def test_gateway_transport_error(self, client, db_session, transaction):
        with patch('requests.post', side_effect=requests.ConnectionError('refused')):
            response = self._complete(client, transaction)

        assert response.status_code == 400
        db_session.refresh(transaction)
        assert transaction.error_code == '3D_VERIFICATION_ERROR'

    def test_bank_reported_failure_skips_gateway(self, client, db_session, transaction):
        with patch('requests.post') as mock_post:
            response = self._complete(client, transaction, status='failure')

        assert response.status_code == 400
        mock_post.assert_not_called()
        db_session.refresh(transaction)
        assert transaction.status == PaymentTransaction.STATUS_FAILED

    def test_duplicate_callback_is_not_reverified(self, client, db_session, transaction):
        with patch('requests.post', return_value=_gateway_response({'success': True})):
            self._complete(client, transaction)

        with patch('requests.post') as mock_post:
            response = self._complete(client, transaction)

        assert response.status_code == 200
        assert response.get_json()['alreadyProcessed'] is True
        mock_post.assert_not_called()
        assert Notification.query.count() == 1

    def test_non_dict_bank_payload_with_falsy_payment_id(self, db_session, transaction):
        with patch('requests.post', return_value=_gateway_response({'success': True})) as mock_post:
            result = PaymentService().complete_3d_secure_payment(transaction.id, 0, 'success', 'raw-bank-body')

        assert result.success is True
        assert mock_post.call_args[1]['json'] == {'paymentId': 0, 'responseData': 'raw-bank-body'}

    def test_unknown_transaction(self, client, db_session):
        response = client.post('/api/payment/complete', json={
            'transactionId': 'missing', 'paymentId': 'p', 'status': 'success'})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_missing_fields(self, client, db_session):
        response = client.post('/api/payment/complete', json={'transactionId': 'x'})
        assert response.status_code == 400
        assert response.get_json()['error'] == 'Missing required fields'

    def test_unexpected_exception(self, client, db_session, transaction):
        with patch.object(PaymentService, 'complete_3d_secure_payment', side_effect=RuntimeError('boom')):
            response = self._complete(client, transaction)

        assert response.status_code == 500
        assert response.get_json() == {'success': False, 'error': 'Payment completion failed', 'details': 'boom'}


class TestBanks:

    def test_default_list_when_none_configured(self, client, db_session):
        response = client.get('/api/payment/banks')
        names = [bank['name'] for bank in response.get_json()['banks']]
        assert names == ['Garanti BBVA', 'İş Bankası', 'Yapı Kredi', 'Akbank', 'Ziraat Bankası']

    def test_configured_banks(self, client, bank):
        response = client.get('/api/payment/banks')
        banks = response.get_json()['banks']
        assert [b['name'] for b in banks] == ['Test Bank']
        assert 'pos_api_secret' not in banks[0]


class TestPaymentMethods:

    def test_list_only_own_cards(self, client, db_session, customer, other_customer, login):
        make_card(db_session, customer, last_four='1111')
        make_card(db_session, other_customer, last_four='9999')
        login(customer)

        cards = client.get('/api/payment/methods').get_json()['savedCards']
        assert [c['lastFourDigits'] for c in cards] == ['1111']
        assert 'token_value' not in cards[0]

    def test_add_card_keeps_last_four_only(self, client, customer, login):
        login(customer)
        response = client.post('/api/payment/methods', json={
            'cardHolderName': 'Ayşe Yılmaz',
            'cardNumber': '4111 1111 1111 1234',
            'expiryMonth': '7',
            'expiryYear': '2099',
            'title': 'Maaş kartı',
        })

        assert response.status_code == 201
        card = response.get_json()['card']
        assert card['lastFourDigits'] == '1234'
        assert card['cardType'] == 'VISA'
        assert card['expiryMonth'] == '07'
        assert card['isDefault'] is False

        stored = CardToken.query.one()
        assert stored.token_value.startswith('token_')
        assert '4111' not in stored.token_value

    def test_add_card_as_default_unsets_previous(self, client, db_session, customer, login):
        previous = make_card(db_session, customer, is_default=True)
        login(customer)

        response = client.post('/api/payment/methods', json={
            'cardHolderName': 'Ayşe Yılmaz', 'cardNumber': '5500000000000004',
            'expiryMonth': '01', 'expiryYear': '2099', 'makeDefault': True,
        })
        assert response.status_code == 201

        db_session.refresh(previous)
        assert previous.is_default is False
        assert CardToken.query.filter_by(is_default=True).one().last_four_digits == '0004'

    def test_add_card_rejects_expired(self, client, customer, login):
        login(customer)
        response = client.post('/api/payment/methods', json={
            'cardHolderName': 'A', 'cardNumber': '4111111111111111', 'expiryMonth': '01', 'expiryYear': '2001'})
        assert response.status_code == 400

    def test_get_card_ownership(self, client, card, customer, other_customer, login):
        login(other_customer)
        assert client.get(f'/api/payment/methods/{card.id}').status_code == 403
        assert client.get('/api/payment/methods/missing').status_code == 404

        login(customer)
        response = client.get(f'/api/payment/methods/{card.id}')
        assert response.status_code == 200
        assert response.get_json()['card']['id'] == card.id

    def test_delete_foreign_card_never_succeeds(self, client, card, other_customer, login):
        card_id = card.id
        login(other_customer)

        response = client.post(f'/api/payment/methods/delete?cardId={card_id}')
        assert response.status_code in (403, 404)
        assert response.get_json().get('success') is not True
        assert db.session.get(CardToken, card_id) is not None

    def test_delete_own_card(self, client, db_session, card, customer, login):
        card_id = card.id
        db_session.add(CardEditVerification(user_id=customer.id, card_id=card_id))
        db_session.commit()
        login(customer)

        response = client.post(f'/api/payment/methods/delete?cardId={card_id}')
        assert response.status_code == 200
        assert db.session.get(CardToken, card_id) is None
        assert CardEditVerification.query.count() == 0

    def test_delete_requires_card_id(self, client, customer, login):
        login(customer)
        assert client.post('/api/payment/methods/delete').status_code == 400

    def test_set_default_switches_in_one_commit(self, client, db_session, customer, login):
        first = make_card(db_session, customer, last_four='1111', is_default=True)
        second = make_card(db_session, customer, last_four='2222')
        login(customer)

        with patch.object(db.session, 'commit', wraps=db.session.commit) as commit:
            response = client.post(f'/api/payment/methods/set-default?cardId={second.id}')

        assert response.status_code == 200
        assert commit.call_count == 1
        db_session.refresh(first)
        db_session.refresh(second)
        assert first.is_default is False
        assert second.is_default is True

    def test_set_default_foreign_card(self, client, db_session, card, other_customer, login):
        own = make_card(db_session, other_customer, is_default=True)
        login(other_customer)

        response = client.post(f'/api/payment/methods/set-default?cardId={card.id}')
        assert response.status_code == 404
        db_session.refresh(own)
        assert own.is_default is True

    def test_update_title(self, client, db_session, card, customer, other_customer, login):
        login(other_customer)
        assert client.patch('/api/payment/methods/update-title',
                            json={'cardId': card.id, 'title': 'x'}).status_code == 403

        login(customer)
        response = client.patch('/api/payment/methods/update-title', json={'cardId': card.id, 'title': 'İş kartı'})
        assert response.status_code == 200
        db_session.refresh(card)
        assert card.title == 'İş kartı'

    def test_update_info_requires_verified_code(self, client, db_session, card, customer, login):
        login(customer)
        payload = {'cardId': card.id, 'card_holder_name': 'Ayşe Demir', 'expiry_month': 3,
                   'expiry_year': 2098, 'title': 'Yeni'}

        response = client.patch('/api/payment/methods/update-info', json=payload)
        assert response.status_code == 403
        assert response.get_json()['error_code'] == 'EDIT_NOT_VERIFIED'

        # An issued but unconsumed code does not unlock the edit
        db_session.add(CardEditVerification(user_id=customer.id, card_id=card.id, code='654321'))
        db_session.commit()
        assert client.patch('/api/payment/methods/update-info', json=payload).status_code == 403

        expired = _confirm_edit(db_session, customer, card)
        expired.expires_at = datetime.utcnow() - timedelta(seconds=1)
        db_session.commit()
        assert client.patch('/api/payment/methods/update-info', json=payload).status_code == 403

        db_session.refresh(card)
        assert card.card_holder_name != 'Ayşe Demir'

    def test_update_info_lists_missing_fields(self, client, db_session, card, customer, login):
        _confirm_edit(db_session, customer, card)
        login(customer)
        response = client.patch('/api/payment/methods/update-info', json={'cardId': card.id, 'title': 'T'})
        assert response.status_code == 400
        assert 'Kart Sahibi Adı' in response.get_json()['error']

    def test_update_info(self, client, db_session, card, customer, login):
        _confirm_edit(db_session, customer, card)
        login(customer)
        response = client.patch('/api/payment/methods/update-info', json={
            'cardId': card.id,
            'card_holder_name': 'Ayşe Demir',
            'expiry_month': 3,
            'expiry_year': 2098,
            'title': 'Yeni',
            'card_number': '5105105105105100',
        })

        assert response.status_code == 200
        db_session.refresh(card)
        assert card.card_holder_name == 'Ayşe Demir'
        assert (card.expiry_month, card.expiry_year) == ('03', '2098')
        assert card.last_four_digits == '5100'
        assert card.card_type == 'MASTERCARD'


@pytest.mark.parametrize('number,expected', [
    ('4111111111111111', 'VISA'),
    ('5500 0000 0000 0004', 'MASTERCARD'),
    ('371449635398431', 'AMEX'),
    ('9792000000000001', 'TROY'),
    ('6011000000000004', 'UNKNOWN'),
])
def test_detect_card_type(number, expected):
    assert detect_card_type(number) == expected
