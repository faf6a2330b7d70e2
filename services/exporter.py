# services/exporter.py

import csv
import io
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

import pandas as pd
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from core.logging_config import logger


MEDIA_TYPES = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}

# PDF rows beyond this are cut; CSV and Excel are never truncated
PDF_ROW_LIMIT = 2000


@dataclass
class ExportFile:
    filename: str
    media_type: str
    content: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.content)


# ============================================================
# Column selection
# ============================================================
def infer_columns(rows: List[Dict[str, Any]]) -> List[str]:
    """Union of keys in first-seen order."""
    columns: List[str] = []
    for row in rows:
        for key in row:
            if key not in columns:
                columns.append(key)
    return columns


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def select_columns(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    """Project every row onto ``columns`` (missing fields become empty)."""
    columns = columns or infer_columns(rows)
    return [{col: row.get(col) for col in columns} for row in rows]


# ============================================================
# CSV
# ============================================================
def to_csv_bytes(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None) -> bytes:
    columns = columns or infer_columns(rows)

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(columns)
    for row in rows:
        writer.writerow([_cell(row.get(col)) for col in columns])

    # BOM so Excel opens UTF-8 (₹) correctly
    return buffer.getvalue().encode("utf-8-sig")


def parse_csv_bytes(content: bytes) -> List[Dict[str, str]]:
    text = content.decode("utf-8-sig")
    reader = csv.DictReader(io.StringIO(text))
    return [dict(row) for row in reader]


# ============================================================
# EXCEL (pandas + openpyxl)
# ============================================================
def to_excel_bytes(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None, sheet_name: str = "Report") -> bytes:
    columns = columns or infer_columns(rows)
    df = pd.DataFrame(select_columns(rows, columns), columns=columns)

    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    return buffer.getvalue()


# ============================================================
# PDF (reportlab)
# ============================================================
def to_pdf_bytes(rows: List[Dict[str, Any]], columns: Optional[List[str]] = None, title: str = "Report") -> bytes:
    columns = columns or infer_columns(rows)

    buffer = BytesIO()
    pagesize = landscape(A4) if len(columns) > 6 else A4
    doc = SimpleDocTemplate(buffer, pagesize=pagesize, leftMargin=0.4 * inch, rightMargin=0.4 * inch)
    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        "ReportTitle",
        parent=styles["Heading1"],
        fontSize=16,
        textColor=colors.HexColor("#1a1a1a"),
        spaceAfter=8,
        alignment=TA_CENTER,
    )
    cell_style = ParagraphStyle("Cell", parent=styles["Normal"], fontSize=7, leading=9)

    story.append(Paragraph(title, title_style))
    story.append(Paragraph(f"Generated: {datetime.now().strftime('%d/%m/%Y %H:%M')}", styles["Normal"]))
    story.append(Spacer(1, 0.2 * inch))

    if not rows:
        story.append(Paragraph("No records found.", styles["Normal"]))
    else:
        if len(rows) > PDF_ROW_LIMIT:
            logger.warning(f"PDF export truncated to {PDF_ROW_LIMIT} of {len(rows)} rows")

        # ₹ is not in the built-in Helvetica; spell it out
        def pdf_text(value: Any) -> str:
            return _cell(value).replace("₹", "Rs. ")

        data = [[Paragraph(f"<b>{pdf_text(c)}</b>", cell_style) for c in columns]]
        for row in rows[:PDF_ROW_LIMIT]:
            data.append([Paragraph(pdf_text(row.get(c)), cell_style) for c in columns])

        table = Table(data, repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#2563eb")),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("ALIGN", (0, 0), (-1, -1), "LEFT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f1f5f9")]),
            ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ]))
        story.append(table)

    doc.build(story)
    return buffer.getvalue()


# ============================================================
# Dispatch
# ============================================================
def export_rows(
    rows: List[Dict[str, Any]],
    fmt: str = "csv",
    filename: str = "export",
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> ExportFile:
    fmt = (fmt or "csv").lower()
    if fmt not in MEDIA_TYPES:
        raise ValueError(f"Unsupported export format: {fmt}")

    columns = columns or infer_columns(rows)
    stamp = datetime.now().strftime("%Y-%m-%d")
    name = f"{filename}_{stamp}.{fmt}"

    if fmt == "csv":
        content = to_csv_bytes(rows, columns)
    elif fmt == "xlsx":
        content = to_excel_bytes(rows, columns)
    else:
        content = to_pdf_bytes(rows, columns, title or filename.replace("_", " ").title())

    logger.info(f"📄 Exported {len(rows)} rows as {name}")
    return ExportFile(filename=name, media_type=MEDIA_TYPES[fmt], content=content)


# ============================================================
# Import templates
# ============================================================
RIDER_TEMPLATE_COLUMNS = [
    "Triev ID",
    "Rider Name",
    "Mobile Number",
    "Chassis Number",
    "Client Name",
    "Client ID",
    "Wallet Amount",
    "Allotment Date",
    "Team Leader",
    "Status",
    "Remarks",
]

WALLET_TEMPLATE_COLUMNS = ["Triev ID", "Mobile Number", "Wallet Amount"]

RIDER_TEMPLATE_SAMPLE = {
    "Triev ID": "TR1001",
    "Rider Name": "Ravi Kumar",
    "Mobile Number": "9876543210",
    "Chassis Number": "MD2A11CZ5KCA00001",
    "Client Name": "Zomato",
    "Client ID": "ZOM-001",
    "Wallet Amount": "(-) 500",
    "Allotment Date": "2024-01-15",
    "Team Leader": "team.leader@example.com",
    "Status": "active",
    "Remarks": "",
}

WALLET_TEMPLATE_SAMPLE = {
    "Triev ID": "TR1001",
    "Mobile Number": "9876543210",
    "Wallet Amount": "1500",
}


def import_template(kind: str, fmt: str = "csv") -> ExportFile:
    if kind == "rider":
        return export_rows([RIDER_TEMPLATE_SAMPLE], fmt, "rider_import_template", RIDER_TEMPLATE_COLUMNS)
    if kind == "wallet":
        return export_rows([WALLET_TEMPLATE_SAMPLE], fmt, "wallet_import_template", WALLET_TEMPLATE_COLUMNS)
    raise ValueError(f"Unknown template: {kind}")
