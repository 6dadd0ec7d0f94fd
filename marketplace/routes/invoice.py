"""
Invoice Routes

FLOW OVERVIEW
- /api/invoice/generate [POST]
  • {orderId} → order lines → InvoiceService.create_invoice → link the invoice
    to the order. An order that already has an invoice gets that invoice back.
- /api/invoice/download/<id> [GET]
  • Redirect to the invoice PDF.
"""

from flask import Blueprint, current_app, jsonify, redirect

from ..models import db, Invoice, Order
from ..models.utils import get_or_none
from ..utils.api_utils import request_validator
from ..utils.invoice_service import InvoiceService, InvoiceServiceError
from ..utils.prom_metrics import observe_invoice_generation

invoice_bp = Blueprint('invoice', __name__)


def _failure(message, status_code):
    return jsonify({'success': False, 'message': message}), status_code


@invoice_bp.route('/generate', methods=['POST'])
def generate_invoice():
    ok, data, err = request_validator.validate_json_request()
    if not ok:
        return jsonify(err), 400

    if not data.get('orderId'):
        return _failure("Sipariş ID'si gereklidir", 400)

    order = get_or_none(Order, data['orderId'])
    if order is None:
        return _failure('Sipariş bulunamadı', 404)

    if order.invoice_id:
        existing = db.session.get(Invoice, order.invoice_id)
        if existing is not None:
            observe_invoice_generation('existing')
            return jsonify({
                'success': True,
                'invoiceId': existing.id,
                'invoiceNumber': existing.invoice_number,
                'pdfUrl': existing.pdf_url,
                'alreadyGenerated': True,
            })

    try:
        if order.store is None:
            raise InvoiceServiceError('Siparişin mağaza bilgisi bulunamadı')

        service = InvoiceService()
        invoice = service.create_invoice(
            order_id=order.id,
            seller_id=order.store.seller_id,
            buyer_id=order.user_id,
            lines=service.build_invoice_lines(order),
        )

        order.invoice_id = invoice.id
        order.invoice_status = Invoice.STATUS_ISSUED
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        observe_invoice_generation('error')
        current_app.logger.error(f"Invoice generation error for order {order.id}: {str(e)}", exc_info=True)
        return _failure(str(e) or 'Fatura oluşturulurken bir hata oluştu', 500)

    observe_invoice_generation('created')
    return jsonify({
        'success': True,
        'invoiceId': invoice.id,
        'invoiceNumber': invoice.invoice_number,
        'pdfUrl': invoice.pdf_url,
    })


@invoice_bp.route('/download/<invoice_id>', methods=['GET'])
def download_invoice(invoice_id):
    invoice = get_or_none(Invoice, invoice_id)
    if invoice is None:
        return _failure('Fatura bulunamadı', 404)

    if invoice.pdf_url:
        return redirect(invoice.pdf_url)

    try:
        pdf_url = InvoiceService.generate_invoice_pdf(invoice)
    except InvoiceServiceError as e:
        current_app.logger.error(f"Invoice download error for {invoice_id}: {str(e)}")
        return _failure(str(e), 500)

    return redirect(pdf_url)
