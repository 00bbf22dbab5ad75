"""
Export a generated TTB Form 5120.17 as CSV, Excel or PDF.

All exporters take the ``form_data`` dict built by the TTB router and return
the file contents as bytes.
"""

import csv
import io
from typing import List, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

EXPORT_FORMATS = {
    "csv": ("text/csv", "csv"),
    "xlsx": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "xlsx"),
    "pdf": ("application/pdf", "pdf"),
}

HEADER = ["Section", "Line", "Description", "Value"]

BULK_LINES = [
    ("line1_on_hand_first", "On hand beginning of period"),
    ("line2_produced", "Produced by fermentation"),
    ("line11_total", "Total"),
    ("line12_bottled", "Bottled or packed"),
    ("line17_taxpaid", "Removed taxpaid"),
    ("line23_inventory_losses", "Inventory losses"),
    ("line27_total", "Total"),
    ("line28_on_hand_fermenters", "On hand end of period, in fermenters"),
    ("line29_on_hand_finished", "On hand end of period, finished"),
    ("line32_total_on_hand", "Total on hand end of period"),
]

BOTTLED_LINES = [
    ("line1_on_hand_first", "On hand beginning of period"),
    ("line2_bottled", "Bottled or packed"),
    ("line7_total", "Total"),
    ("line13_taxpaid", "Removed taxpaid"),
    ("line16_inventory_losses", "Breakage and inventory losses"),
    ("line19_total", "Total"),
    ("line20_on_hand_end", "On hand end of period"),
]

TAX_LINES = [
    ("gross_tax", "Gross tax"),
    ("small_producer_credit", "Small producer credit"),
    ("net_tax_owed", "Net tax owed"),
    ("effective_tax_rate", "Effective rate per gallon"),
]

MATERIAL_LINES = [
    ("apples_received_lbs", "Apples received (lbs)"),
    ("other_fruit_received_lbs", "Other fruit received (lbs)"),
    ("apple_juice_gallons", "Juice (gallons)"),
    ("sugar_received_lbs", "Sugar received (lbs)"),
    ("honey_received_lbs", "Honey received (lbs)"),
]


def form_rows(form_data: dict) -> List[Tuple[str, str, str, float]]:
    rows: List[Tuple[str, str, str, float]] = []

    bulk = form_data.get("bulk_wines", {})
    for key, label in BULK_LINES:
        rows.append(("Part I-A Bulk wines", key.split("_")[0].replace("line", ""), label, bulk.get(key, 0)))

    bottled = form_data.get("bottled_wines", {})
    for key, label in BOTTLED_LINES:
        rows.append(("Part I-B Bottled wines", key.split("_")[0].replace("line", ""), label, bottled.get(key, 0)))

    for channel, gallons in form_data.get("tax_paid_removals", {}).items():
        if channel == "total":
            continue
        rows.append(("Tax-paid removals", "", channel.replace("_", " ").title(), gallons))

    materials = form_data.get("materials", {})
    for key, label in MATERIAL_LINES:
        rows.append(("Part IV Materials", "", label, materials.get(key, 0)))

    rows.append(("Part VII Fermenters", "", "Gallons in fermenters", form_data.get("fermenters", {}).get("gallons_in_fermenters", 0)))

    tax = form_data.get("tax_summary", {})
    for key, label in TAX_LINES:
        rows.append(("Tax summary", "", label, tax.get(key, 0)))

    recon = form_data.get("reconciliation", {})
    rows.append(("Reconciliation", "", "Total available", recon.get("total_available", 0)))
    rows.append(("Reconciliation", "", "Total accounted for", recon.get("total_accounted_for", 0)))
    rows.append(("Reconciliation", "", "Variance", recon.get("variance", 0)))
    return rows


def export_csv(form_data: dict, period_label: str) -> bytes:
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([f"TTB Form 5120.17 - {period_label}"])
    writer.writerow(HEADER)
    for row in form_rows(form_data):
        writer.writerow(row)
    return buf.getvalue().encode("utf-8")


def export_xlsx(form_data: dict, period_label: str) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Form 5120.17"

    ws.append([f"TTB Form 5120.17 - {period_label}"])
    ws["A1"].font = Font(bold=True, size=14)
    ws.append(HEADER)
    for cell in ws[2]:
        cell.font = Font(bold=True)

    for row in form_rows(form_data):
        ws.append(list(row))

    ws.column_dimensions["A"].width = 26
    ws.column_dimensions["C"].width = 40
    ws.column_dimensions["D"].width = 14

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def export_pdf(form_data: dict, period_label: str) -> bytes:
    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=letter, leftMargin=0.6 * inch, rightMargin=0.6 * inch)
    styles = getSampleStyleSheet()

    table = Table(
        [HEADER] + [[s, line, desc, f"{value:,.3f}"] for s, line, desc, value in form_rows(form_data)],
        colWidths=[1.9 * inch, 0.5 * inch, 3.2 * inch, 1.1 * inch],
        repeatRows=1,
    )
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#1B2A4A")),
                ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (3, 1), (3, -1), "RIGHT"),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ]
        )
    )

    doc.build(
        [
            Paragraph(f"TTB Form 5120.17 - {period_label}", styles["Title"]),
            Spacer(1, 0.2 * inch),
            table,
        ]
    )
    return buf.getvalue()


def export_form(form_data: dict, period_label: str, fmt: str) -> bytes:
    if fmt == "csv":
        return export_csv(form_data, period_label)
    if fmt == "xlsx":
        return export_xlsx(form_data, period_label)
    if fmt == "pdf":
        return export_pdf(form_data, period_label)
    raise ValueError(f"Unsupported export format: {fmt}")
