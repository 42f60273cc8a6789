"""
Bill receipt PDF
"""
from io import BytesIO

from django.utils import timezone
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import mm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from core.constants import BillStatus

STATUS_COLORS = {
    BillStatus.PAID: '#10b981',
    BillStatus.PARTIALLY_PAID: '#f59e0b',
    BillStatus.PENDING: '#64748b',
    BillStatus.OVERDUE: '#ef4444',
}


def _styles():
    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='ReceiptTitle',
        parent=styles['Heading1'],
        fontSize=20,
        spaceAfter=6,
        alignment=TA_CENTER,
        textColor=colors.HexColor('#1e40af')
    ))
    styles.add(ParagraphStyle(
        name='ReceiptSubtitle',
        parent=styles['Normal'],
        fontSize=11,
        alignment=TA_CENTER,
        textColor=colors.HexColor('#64748b'),
        spaceAfter=14
    ))
    styles.add(ParagraphStyle(
        name='SectionHeader',
        parent=styles['Heading2'],
        fontSize=13,
        textColor=colors.HexColor('#1e40af'),
        spaceBefore=12,
        spaceAfter=8
    ))
    styles.add(ParagraphStyle(
        name='Footer',
        parent=styles['Normal'],
        fontSize=9,
        alignment=TA_CENTER,
        textColor=colors.HexColor('#94a3b8')
    ))
    return styles


def _money(value):
    return f"{value:,.2f}"


def generate_bill_receipt_pdf(bill, signed_by_user=None):
    """
    Receipt / invoice for one bill: items, totals and recorded payments.

    Returns:
        BytesIO buffer containing the PDF
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=20*mm,
        leftMargin=20*mm,
        topMargin=20*mm,
        bottomMargin=20*mm
    )
    styles = _styles()
    elements = []

    dormitory = bill.dormitory
    elements.append(Paragraph(dormitory.name, styles['ReceiptTitle']))
    if dormitory.address:
        elements.append(Paragraph(dormitory.address[:120], styles['ReceiptSubtitle']))

    title = "RECEIPT" if bill.status == BillStatus.PAID else "BILL"
    elements.append(Paragraph(title, styles['ReceiptTitle']))
    elements.append(Paragraph(f"No. B-{bill.id:06d} | Period {bill.month:02d}/{bill.year}", styles['ReceiptSubtitle']))

    badge = Table(
        [[Paragraph(f"<font color='white'><b>{bill.get_status_display().upper()}</b></font>", styles['Normal'])]],
        colWidths=[110]
    )
    badge.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, -1), colors.HexColor(STATUS_COLORS.get(bill.status, '#64748b'))),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    wrapper = Table([[badge]], colWidths=[doc.width])
    wrapper.setStyle(TableStyle([('ALIGN', (0, 0), (-1, -1), 'CENTER')]))
    elements.append(wrapper)
    elements.append(Spacer(1, 12))

    tenant_data = [
        ['Room:', bill.room_number, 'Bill date:', bill.bill_date.strftime('%d %b %Y')],
        ['Tenant:', bill.tenant.name, 'Due date:', bill.due_date.strftime('%d %b %Y')],
    ]
    tenant_table = Table(tenant_data, colWidths=[60, 190, 70, 130])
    tenant_table.setStyle(TableStyle([
        ('FONTNAME', (1, 0), (1, -1), 'Helvetica-Bold'),
        ('FONTNAME', (3, 0), (3, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (0, -1), colors.HexColor('#64748b')),
        ('TEXTCOLOR', (2, 0), (2, -1), colors.HexColor('#64748b')),
    ]))
    elements.append(tenant_table)

    elements.append(Paragraph("Items", styles['SectionHeader']))
    item_rows = [['Item', 'Detail', 'Amount']]
    for item in bill.items.all():
        detail = item.description
        if item.unit_price is not None and item.quantity is not None:
            detail = f"{item.quantity} x {_money(item.unit_price)}"
        item_rows.append([item.name, detail, _money(item.amount)])
    item_rows.append(['Total', '', _money(bill.total_amount)])
    item_rows.append(['Paid', '', _money(bill.paid_amount)])
    item_rows.append(['Remaining', '', _money(bill.remaining_amount)])
    if bill.late_fee:
        item_rows.append(['Late fee (not included)', '', _money(bill.late_fee)])

    items_table = Table(item_rows, colWidths=[160, 190, 100])
    items_table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('ALIGN', (2, 0), (2, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('LINEBELOW', (0, 0), (-1, 0), 1, colors.HexColor('#1e40af')),
        ('LINEBELOW', (0, 1), (-1, -2), 0.5, colors.HexColor('#e2e8f0')),
        ('TOPPADDING', (0, 0), (-1, -1), 6),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
    ]))
    elements.append(items_table)

    payments = list(bill.payments.all())
    if payments:
        elements.append(Paragraph("Payments", styles['SectionHeader']))
        payment_rows = [['Date', 'Method', 'Reference', 'Amount']]
        for payment in payments:
            payment_rows.append([
                timezone.localtime(payment.paid_at).strftime('%d %b %Y'),
                payment.get_method_display(),
                payment.reference_code or '-',
                _money(payment.amount),
            ])
        payment_table = Table(payment_rows, colWidths=[90, 110, 150, 100])
        payment_table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('LINEBELOW', (0, 0), (-1, 0), 1, colors.HexColor('#1e40af')),
        ]))
        elements.append(payment_table)

    elements.append(Spacer(1, 40))
    if signed_by_user is not None:
        signed_by_name = signed_by_user.get_full_name() or signed_by_user.get_username()
    else:
        signed_by_name = "Authorized Person"
    sig_table = Table(
        [['_' * 30, '_' * 30], [bill.tenant.name, signed_by_name], ['Payer', 'Received by']],
        colWidths=[doc.width/2, doc.width/2]
    )
    sig_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('FONTNAME', (0, 1), (-1, 1), 'Helvetica-Bold'),
        ('TEXTCOLOR', (0, 2), (-1, 2), colors.HexColor('#64748b')),
    ]))
    elements.append(sig_table)
    elements.append(Spacer(1, 24))

    generated = timezone.localtime().strftime('%d %b %Y, %I:%M %p')
    elements.append(Paragraph(f"Generated on {generated}", styles['Footer']))
    elements.append(Paragraph("Please keep this document as proof of payment.", styles['Footer']))

    doc.build(elements)
    buffer.seek(0)
    return buffer
