"""
Invoice Service

FLOW OVERVIEW
- build_invoice_lines(order)
  • One line per order item; the item's tax rate or DEFAULT_TAX_RATE.
- create_invoice(order_id, seller_id, buyer_id, lines)
  1. Seller invoice settings, buyer profile and order must exist.
  2. Number = prefix + YYYY + MM + 8-digit sequence.
  3. Line tax/total amounts and invoice totals.
  4. E_FATURA for e-invoice sellers selling to corporate buyers, else E_ARSIV.
  5. Insert DRAFT invoice with its items.
  6. Auto generation → send_invoice_to_gib (ISSUED, or REJECTED and raise).
- generate_invoice_pdf(invoice)
  • Returns the stored PDF URL; raises when none exists.
"""

import logging
import re
import xml.etree.ElementTree as ET
from datetime import datetime

import requests
from flask import current_app

from ..models import db, Invoice, InvoiceItem, InvoiceSettings, Order, Profile
from .error_handlers import MarketplaceError

logger = logging.getLogger(__name__)


class InvoiceServiceError(MarketplaceError):
    """Invoice creation, dispatch or rendering failed"""


def _money(value):
    return round(float(value), 2)


class InvoiceService:

    def __init__(self, api_url=None, timeout=None, http=None):
        config = current_app.config
        self.api_url = api_url or config['EINVOICE_API_URL']
        self.timeout = timeout if timeout is not None else config['EINVOICE_TIMEOUT']
        self.http = http or requests

    @staticmethod
    def build_invoice_lines(order, default_tax_rate=None):
        if default_tax_rate is None:
            default_tax_rate = current_app.config['DEFAULT_TAX_RATE']
        return [
            {
                'product_id': item.product_id,
                'variant_id': item.variant_id,
                'name': item.display_name,
                'quantity': item.quantity,
                'unit_price': item.price,
                'tax_rate': item.tax_rate if item.tax_rate is not None else default_tax_rate,
            }
            for item in order.items
        ]

    def create_invoice(self, order_id, seller_id, buyer_id, lines):
        settings = InvoiceSettings.query.filter_by(seller_id=seller_id).first()
        if settings is None:
            raise InvoiceServiceError('Satıcı fatura ayarları bulunamadı')

        buyer = db.session.get(Profile, buyer_id)
        if buyer is None:
            raise InvoiceServiceError('Alıcı bilgileri bulunamadı')

        order = db.session.get(Order, order_id)
        if order is None:
            raise InvoiceServiceError('Sipariş bulunamadı')

        invoice = Invoice(
            invoice_number=self.generate_invoice_number(settings.invoice_prefix),
            order_id=order.id,
            seller_id=seller_id,
            buyer_id=buyer.id,
            buyer_type='CORPORATE' if buyer.is_corporate else 'INDIVIDUAL',
            buyer_name=buyer.company_name if buyer.is_corporate and buyer.company_name else buyer.full_name,
            buyer_tax_number=buyer.tax_number,
            buyer_tax_office=buyer.tax_office,
            buyer_address=buyer.address,
            currency=order.currency or 'TRY',
            status=Invoice.STATUS_DRAFT,
            type='E_FATURA' if settings.is_e_invoice_user and buyer.is_corporate else 'E_ARSIV',
        )

        subtotal = 0.0
        tax_total = 0.0
        for line in lines:
            net = float(line['unit_price']) * int(line['quantity'])
            tax_amount = net * float(line['tax_rate']) / 100
            invoice.items.append(InvoiceItem(
                product_id=line.get('product_id'),
                variant_id=line.get('variant_id'),
                name=line['name'],
                quantity=int(line['quantity']),
                unit_price=float(line['unit_price']),
                tax_rate=float(line['tax_rate']),
                tax_amount=_money(tax_amount),
                total_amount=_money(net + tax_amount),
            ))
            subtotal += net
            tax_total += tax_amount

        invoice.subtotal = _money(subtotal)
        invoice.tax_total = _money(tax_total)
        invoice.total = _money(subtotal + tax_total)

        db.session.add(invoice)
        db.session.commit()
        logger.info(f"Invoice {invoice.invoice_number} created for order {order.id} ({len(lines)} lines)")

        if settings.auto_invoice_generation:
            self.send_invoice_to_gib(invoice, settings)

        return invoice

    @staticmethod
    def generate_invoice_number(prefix, now=None):
        last = Invoice.query.order_by(Invoice.created_at.desc(), Invoice.invoice_number.desc()).first()

        sequence = 1
        if last is not None:
            match = re.search(r'(\d+)$', last.invoice_number)
            if match:
                # Trailing 8 digits are the running sequence
                sequence = int(match.group(1)[-8:]) + 1

        now = now or datetime.utcnow()
        return f"{prefix}{now.year}{now.month:02d}{sequence:08d}"

    def send_invoice_to_gib(self, invoice, settings=None):
        settings = settings or invoice.seller_settings
        try:
            if settings is None or not settings.has_gib_credentials():
                raise InvoiceServiceError('GİB API bilgileri eksik')

            response = self.http.post(
                self.api_url,
                data=self.build_invoice_xml(invoice, settings),
                headers={
                    'Content-Type': 'application/xml',
                    'X-API-KEY': settings.gib_api_key,
                },
                auth=(settings.gib_username, settings.gib_password),
                timeout=self.timeout,
            )
            if not response.ok:
                raise InvoiceServiceError(f"GİB API hatası: {response.status_code} - {response.text}")
            result = response.json()
        except (MarketplaceError, requests.RequestException, ValueError) as e:
            logger.error(f"GIB invoice sending error for {invoice.invoice_number}: {e}")
            invoice.status = Invoice.STATUS_REJECTED
            invoice.error_message = str(e)
            db.session.commit()
            raise InvoiceServiceError(f"Fatura GİB'e gönderilirken bir hata oluştu: {e}") from e

        invoice.status = Invoice.STATUS_ISSUED
        invoice.gib_uuid = result.get('uuid')
        invoice.pdf_url = result.get('pdfUrl')
        invoice.xml_url = result.get('xmlUrl')
        invoice.issued_at = datetime.utcnow()
        db.session.commit()
        logger.info(f"Invoice {invoice.invoice_number} issued with GIB uuid {invoice.gib_uuid}")
        return invoice

    @staticmethod
    def build_invoice_xml(invoice, settings):
        root = ET.Element('Invoice')
        ET.SubElement(root, 'ID').text = invoice.invoice_number
        ET.SubElement(root, 'InvoiceTypeCode').text = invoice.type
        ET.SubElement(root, 'IssueDate').text = datetime.utcnow().date().isoformat()

        supplier = ET.SubElement(ET.SubElement(root, 'AccountingSupplierParty'), 'Party')
        ET.SubElement(supplier, 'PartyName').text = settings.company_name or ''
        ET.SubElement(supplier, 'PostalAddress').text = settings.address or ''
        _tax_scheme(supplier, settings.tax_office, settings.tax_number)

        customer = ET.SubElement(ET.SubElement(root, 'AccountingCustomerParty'), 'Party')
        ET.SubElement(customer, 'PartyName').text = invoice.buyer_name or ''
        ET.SubElement(customer, 'PostalAddress').text = invoice.buyer_address or ''
        if invoice.buyer_tax_number:
            _tax_scheme(customer, invoice.buyer_tax_office, invoice.buyer_tax_number)

        lines = ET.SubElement(root, 'InvoiceLines')
        for item in invoice.items:
            line = ET.SubElement(lines, 'InvoiceLine')
            ET.SubElement(line, 'ID').text = item.id or ''
            ET.SubElement(ET.SubElement(line, 'Item'), 'Name').text = item.name
            ET.SubElement(line, 'Price').text = str(item.unit_price)
            ET.SubElement(line, 'Quantity').text = str(item.quantity)
            ET.SubElement(line, 'TaxRate').text = str(item.tax_rate)
            ET.SubElement(line, 'TaxAmount').text = str(item.tax_amount)
            ET.SubElement(line, 'LineExtensionAmount').text = str(item.total_amount)

        ET.SubElement(root, 'TaxTotal').text = str(invoice.tax_total)
        totals = ET.SubElement(root, 'LegalMonetaryTotal')
        ET.SubElement(totals, 'LineExtensionAmount').text = str(invoice.subtotal)
        ET.SubElement(totals, 'TaxExclusiveAmount').text = str(invoice.subtotal)
        ET.SubElement(totals, 'TaxInclusiveAmount').text = str(invoice.total)
        ET.SubElement(totals, 'PayableAmount').text = str(invoice.total)

        return ET.tostring(root, encoding='utf-8', xml_declaration=True)

    @staticmethod
    def generate_invoice_pdf(invoice):
        """Return the PDF location for an invoice issued by the e-archive service"""
        if not invoice.pdf_url:
            raise InvoiceServiceError("Fatura PDF URL'i bulunamadı")
        return invoice.pdf_url


def _tax_scheme(party, tax_office, tax_number):
    scheme = ET.SubElement(party, 'TaxScheme')
    ET.SubElement(scheme, 'TaxTypeCode').text = 'KDV'
    ET.SubElement(scheme, 'TaxOffice').text = tax_office or ''
    ET.SubElement(scheme, 'TaxNumber').text = tax_number or ''
