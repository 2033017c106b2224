"""
Invoice PDF export using reportlab
"""
from io import BytesIO
from decimal import Decimal
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

HEADER_COLOR = colors.HexColor('#0f172a')
MUTED_COLOR = colors.HexColor('#64748b')


def _text(value) -> str:
    return escape(str(value)) if value not in (None, "") else "-"


def _date(value) -> str:
    return value.strftime('%b %d, %Y') if value else '-'


def render_invoice_pdf(invoice) -> bytes:
    """Render an invoice with its items, totals and payment history"""
    currency = (invoice.currency or {}).get("code", "")
    agency = invoice.agency or {}
    client = invoice.client or {}

    def money(value) -> str:
        return f"{currency} {Decimal(value or 0):,.2f}"

    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, rightMargin=40, leftMargin=40, topMargin=40, bottomMargin=40)
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle('InvoiceTitle', parent=styles['Heading1'], fontSize=24, textColor=HEADER_COLOR, alignment=TA_RIGHT)
    label_style = ParagraphStyle('InvoiceLabel', parent=styles['Normal'], fontSize=9, textColor=MUTED_COLOR)
    normal_style = ParagraphStyle('InvoiceNormal', parent=styles['Normal'], fontSize=10, leading=14)
    bold_style = ParagraphStyle('InvoiceBold', parent=normal_style, fontName='Helvetica-Bold')

    elements = []

    # Agency (left) and invoice title (right)
    agency_block = [Paragraph(_text(agency.get("name")), bold_style)]
    for key in ("address", "email", "phone", "website", "registration_number"):
        if agency.get(key):
            agency_block.append(Paragraph(_text(agency[key]), normal_style))
    title_block = [
        Paragraph("INVOICE", title_style),
        Paragraph(f"#{_text(invoice.invoice_number)}", ParagraphStyle('InvoiceNumber', parent=label_style, alignment=TA_RIGHT, fontSize=12)),
    ]
    header_table = Table([[agency_block, title_block]], colWidths=[3.5 * inch, 3.0 * inch])
    header_table.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
    elements.append(header_table)
    elements.append(Spacer(1, 20))

    # Bill to and dates
    bill_to = [Paragraph("Bill To", label_style), Paragraph(_text(client.get("name")), bold_style)]
    for key in ("agency_name", "address", "email", "phone", "registration_number"):
        if client.get(key):
            bill_to.append(Paragraph(_text(client[key]), normal_style))
    details = Table([
        ['Issue Date', _date(invoice.issued_date)],
        ['Due Date', _date(invoice.due_date)],
        ['Status', _text(invoice.status).replace('_', ' ').title()],
    ], colWidths=[1.2 * inch, 1.6 * inch])
    details.setStyle(TableStyle([
        ('TEXTCOLOR', (0, 0), (0, -1), MUTED_COLOR),
        ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
    ]))
    mid_table = Table([[bill_to, details]], colWidths=[3.7 * inch, 2.8 * inch])
    mid_table.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
    elements.append(mid_table)
    elements.append(Spacer(1, 20))

    # Line items
    items_data = [['Description', 'Qty', 'Unit Price', 'Tax %', 'Amount']]
    for item in invoice.items:
        items_data.append([
            Paragraph(_text(item.description), normal_style),
            str(item.quantity),
            money(item.unit_price),
            f"{Decimal(item.tax_rate or 0):.2f}",
            money(item.line_total),
        ])
    items_table = Table(items_data, colWidths=[2.6 * inch, 0.6 * inch, 1.2 * inch, 0.7 * inch, 1.4 * inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HEADER_COLOR),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('LINEBELOW', (0, 1), (-1, -1), 0.25, colors.HexColor('#e2e8f0')),
        ('PADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 12))

    # Totals
    totals_data = [
        ['Subtotal', money(invoice.subtotal)],
        ['Tax', money(invoice.tax_total)],
        ['Discount', f"- {money(invoice.discount)}"],
        ['Total', money(invoice.total_amount)],
        ['Paid', money(invoice.amount_paid)],
        ['Balance Due', money(invoice.amount_due)],
    ]
    totals_table = Table(totals_data, colWidths=[1.5 * inch, 1.6 * inch], hAlign='RIGHT')
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTNAME', (0, 3), (-1, 3), 'Helvetica-Bold'),
        ('FONTNAME', (0, 5), (-1, 5), 'Helvetica-Bold'),
        ('BACKGROUND', (0, 5), (-1, 5), colors.whitesmoke),
        ('LINEABOVE', (0, 3), (-1, 3), 0.5, MUTED_COLOR),
    ]))
    elements.append(totals_table)

    # Payment history
    if invoice.payments:
        elements.append(Spacer(1, 20))
        elements.append(Paragraph("Payment History", bold_style))
        elements.append(Spacer(1, 6))
        payments_data = [['Date', 'Method', 'Reference', 'Amount']]
        for payment in invoice.payments:
            payments_data.append([
                _date(payment.date),
                payment.method.replace('-', ' ').title(),
                _text(payment.transaction_id),
                money(payment.amount),
            ])
        payments_table = Table(payments_data, colWidths=[1.4 * inch, 1.4 * inch, 2.3 * inch, 1.4 * inch])
        payments_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('TEXTCOLOR', (0, 0), (-1, 0), MUTED_COLOR),
            ('ALIGN', (-1, 0), (-1, -1), 'RIGHT'),
            ('LINEBELOW', (0, 0), (-1, 0), 0.5, MUTED_COLOR),
        ]))
        elements.append(payments_table)

    # Notes and terms
    for heading, body in (("Notes", invoice.notes), ("Terms", invoice.terms)):
        if body:
            elements.append(Spacer(1, 16))
            elements.append(Paragraph(heading, bold_style))
            elements.append(Paragraph(_text(body).replace('\n', '<br/>'), normal_style))

    doc.build(elements)
    return buffer.getvalue()
