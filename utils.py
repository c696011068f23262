# utils.py
import os

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer

RECEIPT_FORMATS = ('txt', 'pdf', 'csv', 'xlsx')


def format_money(amount: float, currency: str = "") -> str:
    """Two-decimal money string, e.g. format_money(2.5, '$') -> '$2.50'."""
    return f"{currency}{amount:.2f}"


def format_percent(fraction: float) -> str:
    return f"{fraction * 100:.1f}%"


def receipt_filename(receipt, ext: str) -> str:
    return f"receipt_{receipt.header.receipt_number}.{ext}"


def receipt_dataframe(receipt) -> pd.DataFrame:
    """One row per receipt line."""
    columns = ['item_id', 'name', 'price', 'quantity', 'discount_percent',
               'line_net', 'discount_amount']
    return pd.DataFrame(receipt.to_dict()['lines'], columns=columns)


def generate_txt_receipt(receipt, file_path: str, currency="$"):
    """Write a simple text receipt."""
    header = receipt.header
    totals = receipt.totals
    with open(file_path, 'w', encoding='utf-8') as f:
        f.write(f"Receipt: {header.receipt_number}\n")
        if header.store_id:
            f.write(f"Store: {header.store_id}\n")
        f.write(f"Date: {header.timestamp.strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write("-" * 44 + "\n")
        f.write("Item            QTY    Price   Disc      Net\n")
        for line in receipt.lines:
            f.write(f"{line.item.name[:15]:15} {line.quantity:3} "
                    f"{format_money(line.item.price, currency):>8} "
                    f"{format_percent(line.discount_percent):>6} "
                    f"{format_money(line.line_net, currency):>8}\n")
        f.write("-" * 44 + "\n")
        f.write(f"Subtotal:     {format_money(totals.subtotal, currency):>10}\n")
        f.write(f"Discount:     {format_money(totals.discount, currency):>10}\n")
        f.write(f"VAT:          {format_money(totals.vat, currency):>10}\n")
        f.write(f"Total:        {format_money(totals.grand_total, currency):>10}\n")
        f.write("-" * 44 + "\n")
        f.write("Thank you for your purchase!\n")
    return file_path


def generate_pdf_receipt(receipt, file_path: str, currency="$"):
    """Generate a PDF receipt using ReportLab."""
    doc = SimpleDocTemplate(file_path, pagesize=letter)
    elements = []

    styles = getSampleStyleSheet()
    styles.add(ParagraphStyle(
        name='RightAlign',
        parent=styles['Normal'],
        alignment=2,  # 2 is right alignment
    ))

    header = receipt.header
    elements.append(Paragraph(f"Receipt {header.receipt_number}", styles['Heading1']))
    if header.store_id:
        elements.append(Paragraph(f"Store: {header.store_id}", styles['Normal']))
    elements.append(Paragraph(f"Date: {header.timestamp.strftime('%Y-%m-%d %H:%M:%S')}",
                              styles['Normal']))
    elements.append(Spacer(1, 0.2 * inch))

    data = [["Item", "Quantity", "Price", "Discount", "Net"]]
    for line in receipt.lines:
        data.append([
            line.item.name,
            str(line.quantity),
            format_money(line.item.price, currency),
            format_percent(line.discount_percent),
            format_money(line.line_net, currency),
        ])

    totals = receipt.totals
    data.append(["" for _ in range(5)])
    data.append(["Subtotal:", "", "", "", format_money(totals.subtotal, currency)])
    data.append(["Discount:", "", "", "", format_money(totals.discount, currency)])
    data.append(["VAT:", "", "", "", format_money(totals.vat, currency)])
    data.append(["Total:", "", "", "", format_money(totals.grand_total, currency)])

    table = Table(data, colWidths=[2.3*inch, 0.9*inch, 1*inch, 0.9*inch, 1*inch])
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (4, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (4, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (4, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (4, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (4, 0), 12),
        ('BACKGROUND', (0, 1), (4, -1), colors.white),
        ('GRID', (0, 0), (-1, -6), 1, colors.black),
        ('ALIGN', (1, 1), (4, -1), 'RIGHT'),
        ('FONTNAME', (0, -4), (4, -1), 'Helvetica-Bold'),
    ]))

    elements.append(table)
    elements.append(Spacer(1, 0.5 * inch))
    elements.append(Paragraph("Thank you for your purchase!", styles['RightAlign']))

    doc.build(elements)
    return file_path


def export_receipt_csv(receipt, file_path: str):
    """Dump receipt lines to CSV."""
    receipt_dataframe(receipt).to_csv(file_path, index=False)
    return file_path


def export_receipt_excel(receipt, file_path: str):
    """Export receipt lines and totals to an Excel workbook."""
    totals = pd.DataFrame([receipt.to_dict()['totals']])
    with pd.ExcelWriter(file_path) as writer:
        receipt_dataframe(receipt).to_excel(writer, index=False, sheet_name='Lines')
        totals.to_excel(writer, index=False, sheet_name='Totals')
    return file_path


def save_receipt(receipt, receipt_dir: str, fmt: str, currency="$"):
    """Write the receipt into receipt_dir in the given format; returns the path."""
    if fmt not in RECEIPT_FORMATS:
        raise ValueError(f"Unknown receipt format: {fmt}")
    os.makedirs(receipt_dir, exist_ok=True)
    file_path = os.path.join(receipt_dir, receipt_filename(receipt, fmt))

    if fmt == 'pdf':
        return generate_pdf_receipt(receipt, file_path, currency=currency)
    if fmt == 'csv':
        return export_receipt_csv(receipt, file_path)
    if fmt == 'xlsx':
        return export_receipt_excel(receipt, file_path)
    return generate_txt_receipt(receipt, file_path, currency=currency)
