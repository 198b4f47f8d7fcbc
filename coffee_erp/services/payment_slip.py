from datetime import datetime
from io import BytesIO
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from coffee_erp.money import format_amount


def generate_payment_slip(payment, approval=None):
    """Printable slip for a supplier payment, with the approval trail when there is one."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=1*cm, bottomMargin=1*cm,
                            title=f"Payment Slip {payment.reference}")
    styles = getSampleStyleSheet()
    elements = []

    title_style = ParagraphStyle('SlipTitle', parent=styles['Heading1'], fontSize=18,
                                 alignment=TA_CENTER, spaceAfter=20)
    elements.append(Paragraph("PAYMENT SLIP", title_style))
    elements.append(Spacer(1, 10))

    details = [
        ["Reference:", payment.reference, "Status:", payment.status],
        ["Supplier:", payment.supplier, "Batch:", payment.batch_number or "-"],
        ["Department:", payment.department, "Method:", payment.method or "-"],
        ["Amount:", format_amount(payment.amount, payment.currency),
         "Paid:", format_amount(payment.paid_amount or 0, payment.currency)],
        ["Processed By:", payment.processed_by or "-", "Outstanding:",
         format_amount(payment.outstanding, payment.currency)],
    ]
    details_table = Table(details, colWidths=[3*cm, 5.5*cm, 3*cm, 5.5*cm])
    details_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (0, -1), colors.lightgrey),
        ('BACKGROUND', (2, 0), (2, -1), colors.lightgrey),
        ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('PADDING', (0, 0), (-1, -1), 5),
    ]))
    elements.append(details_table)
    elements.append(Spacer(1, 20))

    if approval is not None:
        elements.append(Paragraph("APPROVALS:", styles['Heading2']))
        rows = [["Stage", "Approved By", "Date"]]
        trail = [
            ("Finance", approval.finance_approved_by, approval.finance_approved_at),
            ("Admin", approval.admin_approved_1_by, approval.admin_approved_1_at),
            ("Second Admin", approval.admin_approved_2_by, approval.admin_approved_2_at),
        ]
        for label, user, when in trail:
            if when:
                rows.append([label, user.display_name if user else "", when.strftime('%Y-%m-%d %H:%M')])
        if approval.rejected_at:
            rows.append(["Rejected", approval.rejected_by.display_name if approval.rejected_by else "",
                         approval.rejected_at.strftime('%Y-%m-%d %H:%M')])

        trail_table = Table(rows, colWidths=[4*cm, 7*cm, 6*cm])
        trail_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#6b4226')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 9),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
            ('PADDING', (0, 0), (-1, -1), 5),
        ]))
        elements.append(trail_table)
        elements.append(Spacer(1, 20))

    elements.append(Paragraph("Received by: ____________________   Signature: ____________________",
                              styles['Normal']))
    elements.append(Spacer(1, 10))
    elements.append(Paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles['Normal']))

    doc.build(elements)
    buffer.seek(0)
    return buffer
