"""
Tests for invoice generation, numbering, e-archive dispatch and download.
"""

import pytest
from datetime import datetime
from unittest.mock import Mock, patch

from marketplace.models import Invoice, Order, OrderItem
from marketplace.utils.invoice_service import InvoiceService, InvoiceServiceError


def _number(sequence, prefix='MP'):
    now = datetime.utcnow()
    return f"{prefix}{now.year}{now.month:02d}{sequence:08d}"


def _another_order(db_session, customer, store, product):
    order = Order(user_id=customer.id, store_id=store.id, total_amount=100.0)
    order.items.append(OrderItem(product_id=product.id, quantity=1, price=100.0, tax_rate=18))
    db_session.add(order)
    db_session.commit()
    return order


def _gib_response(ok=True, payload=None, status_code=200, text=''):
    response = Mock()
    response.ok = ok
    response.status_code = status_code
    response.text = text
    response.json.return_value = payload or {}
    return response


@pytest.fixture
def gib_settings(db_session, invoice_settings):
    invoice_settings.auto_invoice_generation = True
    invoice_settings.gib_username = 'gib-user'
    invoice_settings.gib_password = 'gib-pass'
    invoice_settings.gib_api_key = 'gib-key'
    db_session.commit()
    return invoice_settings


class TestGenerateInvoice:

    def test_invoice_mirrors_order_lines(self, client, db_session, order, invoice_settings):
        response = client.post('/api/invoice/generate', json={'orderId': order.id})

        assert response.status_code == 200
        data = response.get_json()
        assert data['success'] is True
        assert data['invoiceNumber'] == _number(1)

        invoice = Invoice.query.one()
        assert invoice.id == data['invoiceId']
        assert invoice.status == Invoice.STATUS_DRAFT
        assert invoice.type == 'E_ARSIV'
        assert invoice.buyer_type == 'INDIVIDUAL'
        assert invoice.buyer_name == 'Ayşe Yılmaz'
        assert len(invoice.items) == 3

        by_rate = {item.tax_rate: item for item in invoice.items}
        assert set(by_rate) == {8.0, 18.0, 1.0}
        assert by_rate[8.0].name == 'Kupa - Kırmızı'
        assert by_rate[8.0].tax_amount == pytest.approx(19.2)
        assert by_rate[8.0].total_amount == pytest.approx(259.2)
        assert by_rate[18.0].name == 'Kupa'
        assert by_rate[18.0].tax_amount == pytest.approx(18.0)

        assert invoice.subtotal == pytest.approx(420.0)
        assert invoice.tax_total == pytest.approx(38.0)
        assert invoice.total == pytest.approx(458.0)

        db_session.refresh(order)
        assert order.invoice_id == invoice.id
        assert order.invoice_status == Invoice.STATUS_ISSUED

    def test_second_request_returns_existing_invoice(self, client, db_session, order, invoice_settings):
        first = client.post('/api/invoice/generate', json={'orderId': order.id}).get_json()
        second = client.post('/api/invoice/generate', json={'orderId': order.id})

        assert second.status_code == 200
        data = second.get_json()
        assert data['alreadyGenerated'] is True
        assert data['invoiceId'] == first['invoiceId']
        assert Invoice.query.count() == 1

    def test_numbers_increase_per_invoice(self, client, db_session, order, customer, store, product, invoice_settings):
        other = _another_order(db_session, customer, store, product)

        first = client.post('/api/invoice/generate', json={'orderId': order.id}).get_json()
        second = client.post('/api/invoice/generate', json={'orderId': other.id}).get_json()

        assert first['invoiceNumber'] == _number(1)
        assert second['invoiceNumber'] == _number(2)

    def test_corporate_buyer_of_e_invoice_seller(self, client, db_session, order, customer, invoice_settings):
        customer.is_corporate = True
        customer.company_name = 'Yılmaz Ltd.'
        customer.tax_number = '9876543210'
        invoice_settings.is_e_invoice_user = True
        db_session.commit()

        client.post('/api/invoice/generate', json={'orderId': order.id})

        invoice = Invoice.query.one()
        assert invoice.type == 'E_FATURA'
        assert invoice.buyer_type == 'CORPORATE'
        assert invoice.buyer_name == 'Yılmaz Ltd.'
        assert invoice.buyer_tax_number == '9876543210'

    def test_missing_order_id(self, client, db_session):
        response = client.post('/api/invoice/generate', json={})
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_unknown_order(self, client, db_session):
        response = client.post('/api/invoice/generate', json={'orderId': 'missing'})
        assert response.status_code == 404
        assert response.get_json() == {'success': False, 'message': 'Sipariş bulunamadı'}

    def test_seller_without_settings(self, client, db_session, order):
        response = client.post('/api/invoice/generate', json={'orderId': order.id})

        assert response.status_code == 500
        assert response.get_json()['message'] == 'Satıcı fatura ayarları bulunamadı'
        assert Invoice.query.count() == 0
        db_session.refresh(order)
        assert order.invoice_id is None


class TestAutoGeneration:

    def test_dispatch_issues_invoice(self, client, db_session, order, gib_settings):
        payload = {'uuid': 'gib-uuid-1', 'pdfUrl': 'https://einvoice.test/1.pdf', 'xmlUrl': 'https://einvoice.test/1.xml'}
        with patch('requests.post', return_value=_gib_response(payload=payload)) as mock_post:
            response = client.post('/api/invoice/generate', json={'orderId': order.id})

        assert response.status_code == 200
        assert response.get_json()['pdfUrl'] == 'https://einvoice.test/1.pdf'

        args, kwargs = mock_post.call_args
        assert args[0] == 'http://einvoice.test/dispatch'
        assert kwargs['headers'] == {'Content-Type': 'application/xml', 'X-API-KEY': 'gib-key'}
        assert kwargs['auth'] == ('gib-user', 'gib-pass')
        assert b'<InvoiceTypeCode>E_ARSIV</InvoiceTypeCode>' in kwargs['data']

        invoice = Invoice.query.one()
        assert invoice.status == Invoice.STATUS_ISSUED
        assert invoice.gib_uuid == 'gib-uuid-1'
        assert invoice.xml_url == 'https://einvoice.test/1.xml'
        assert invoice.issued_at is not None

    def test_dispatch_failure_rejects_invoice(self, client, db_session, order, gib_settings):
        with patch('requests.post', return_value=_gib_response(ok=False, status_code=503, text='down')):
            response = client.post('/api/invoice/generate', json={'orderId': order.id})

        assert response.status_code == 500
        assert response.get_json()['success'] is False

        invoice = Invoice.query.one()
        assert invoice.status == Invoice.STATUS_REJECTED
        assert '503' in invoice.error_message

        db_session.refresh(order)
        assert order.invoice_id is None

    def test_missing_credentials(self, db_session, order, invoice_settings):
        invoice_settings.gib_api_key = None
        service = InvoiceService()
        invoice = service.create_invoice(order.id, invoice_settings.seller_id, order.user_id,
                                         service.build_invoice_lines(order))
        with patch('requests.post') as mock_post:
            with pytest.raises(InvoiceServiceError):
                service.send_invoice_to_gib(invoice, invoice_settings)

        mock_post.assert_not_called()
        assert invoice.status == Invoice.STATUS_REJECTED


class TestInvoiceNumbering:

    def test_first_number(self, app_context, db_session):
        assert InvoiceService.generate_invoice_number('INV', datetime(2024, 3, 5)) == 'INV20240300000001'

    def test_continues_after_last_sequence(self, db_session, order, seller, customer):
        db_session.add(Invoice(invoice_number='XY20230100000041', order_id=order.id,
                               seller_id=seller.id, buyer_id=customer.id))
        db_session.commit()

        assert InvoiceService.generate_invoice_number('MP', datetime(2024, 12, 1)) == 'MP20241200000042'


class TestDownloadInvoice:

    def _invoice(self, db_session, order, seller, customer, pdf_url=None):
        invoice = Invoice(invoice_number=_number(7), order_id=order.id, seller_id=seller.id,
                          buyer_id=customer.id, pdf_url=pdf_url)
        db_session.add(invoice)
        db_session.commit()
        return invoice

    def test_redirects_to_pdf(self, client, db_session, order, seller, customer):
        invoice = self._invoice(db_session, order, seller, customer, pdf_url='https://einvoice.test/7.pdf')

        response = client.get(f'/api/invoice/download/{invoice.id}')
        assert response.status_code == 302
        assert response.headers['Location'] == 'https://einvoice.test/7.pdf'

    def test_invoice_without_pdf(self, client, db_session, order, seller, customer):
        invoice = self._invoice(db_session, order, seller, customer)

        response = client.get(f'/api/invoice/download/{invoice.id}')
        assert response.status_code == 500
        assert response.get_json()['success'] is False

    def test_unknown_invoice(self, client, db_session):
        response = client.get('/api/invoice/download/missing')
        assert response.status_code == 404
        assert response.get_json()['message'] == 'Fatura bulunamadı'
