"""
Printable costing sheet.

Generates a one-page PDF for a single committed CostingRecord.
Uses fpdf2 (pure Python, no system dependencies).

Sections:
1. Header — style name, created date, versions, final FOB highlight
2. Photo + style pills (composition, yarn, gauge/weight)
3. Cost breakdown table
4. Disclaimer + audit footer (record id, generation time)
"""

import math
from datetime import datetime
from io import BytesIO

from fpdf import FPDF

from .config import settings
from .display import EMPTY, format_date, format_money, format_optional, format_plain
from .schemas import CostingRecord


def build_breakdown_rows(record: CostingRecord) -> list[tuple[str, str]]:
    """(label, value) rows of the cost breakdown, in sheet order."""
    currency = record.currency or settings.DEFAULT_CURRENCY
    inputs = record.inputs
    computed = record.computed

    def money(amount) -> str:
        return format_money(amount, currency)

    roc_amount = computed.fob_per_pc * inputs.roc_pct / 100
    return [
        ("Yarn price / LBS", format_plain(inputs.yarn_price_per_lb, 4)),
        ("Garments Weight (grams)", f"{format_plain(record.weight_gm, 2)} gm"),
        ("Garments Weight (LBS / Doz)", format_optional(computed.lbs_per_doz)),
        ("Wastage %", f"{format_plain(inputs.wastage_pct, 2)}%"),
        ("Garments Weight LBS (Including Wastage @ %)", format_optional(computed.lbs_with_wastage)),
        ("Yarn Cost (per dozen)", EMPTY if computed.yarn_cost_doz is None else money(computed.yarn_cost_doz)),
        ("Accessories Cost (per dozen)", money(inputs.accessories_cost_doz)),
        ("Fabric (per dozen)", money(inputs.fabric_doz)),
        ("Fabric Cost (per dozen)", money(inputs.fabric_cost_doz)),
        ("Fabric Attachment CM (per dozen)", money(inputs.fabric_attach_cost_doz)),
        ("Timing (min)", str(math.trunc(inputs.timing_min))),
        ("CM (per dozen)", money(inputs.cm_doz)),
        ("Costing price / FOB (per pc)", money(computed.fob_per_pc)),
        (f"ROC ({format_plain(inputs.roc_pct, 2)}%)", money(roc_amount)),
        ("Final FOB cost per piece", money(computed.final_per_pc)),
    ]


def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        text
        .replace("•", "-")    # bullet
        .replace("—", "-")    # em dash
        .replace("–", "-")    # en dash
        .replace("“", '"')    # left double quote
        .replace("”", '"')    # right double quote
        .replace("‘", "'")    # left single quote
        .replace("’", "'")    # right single quote
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


class CostingPDF(FPDF):
    """Custom PDF class for the costing sheet."""

    def __init__(self, company_name=""):
        super().__init__()
        self.company_name = company_name
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        pass  # Drawn manually on the single page

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, _safe(self.company_name), align="C")

    def section_header(self, title):
        """Render a section header bar."""
        self.set_font("Helvetica", "B", 11)
        self.set_fill_color(45, 55, 72)
        self.set_text_color(255, 255, 255)
        self.cell(0, 8, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def kv_row(self, label, value, width, bold=False):
        """Label left, value right, thin rule underneath."""
        self.set_font("Helvetica", "B" if bold else "", 9)
        self.cell(width * 0.65, 6, _safe(label), border="B")
        self.cell(width * 0.35, 6, _safe(value), border="B", align="R")
        self.ln()


def generate_costing_pdf(record: CostingRecord) -> bytes:
    """
    Generate the printable costing sheet for one record.

    Only the frozen record is used: inputs, computed snapshot, style and photo.

    Returns:
        PDF bytes
    """
    currency = record.currency or settings.DEFAULT_CURRENCY

    pdf = CostingPDF(company_name=settings.COMPANY_NAME)
    pdf.add_page()
    pw = pdf.w - pdf.l_margin - pdf.r_margin  # printable width

    # ── SECTION 1: Header ──
    pdf.set_font("Helvetica", "B", 18)
    pdf.multi_cell(pw * 0.6, 8, _safe(record.style_name), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    pdf.set_text_color(100, 100, 100)
    pdf.cell(0, 5, f"Created: {format_date(record.created_at)}", new_x="LMARGIN", new_y="NEXT")
    pdf.cell(
        0, 5,
        _safe(f"Calc version: {record.calc_version} - App: {record.app_version}"),
        new_x="LMARGIN", new_y="NEXT",
    )
    pdf.set_text_color(0, 0, 0)

    header_bottom = pdf.get_y()
    # Final FOB box, top right
    box_w = pw * 0.36
    box_x = pdf.w - pdf.r_margin - box_w
    pdf.set_xy(box_x, pdf.t_margin)
    pdf.set_fill_color(45, 55, 72)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "", 8)
    pdf.cell(box_w, 6, "  Final FOB cost per piece", fill=True, new_x="LEFT", new_y="NEXT")
    pdf.set_font("Helvetica", "B", 16)
    pdf.cell(box_w, 10, _safe(f"  {format_money(record.computed.final_per_pc, currency)} / pc"), fill=True)
    pdf.set_text_color(0, 0, 0)
    pdf.set_xy(pdf.l_margin, max(header_bottom, pdf.t_margin + 18) + 4)

    # ── SECTION 2: Photo + style ──
    pdf.section_header("STYLE")
    if record.photo is not None and record.photo.data:
        photo = record.photo
        # 70mm wide, but keep tall photos within 80mm
        if photo.width and photo.height and photo.height / photo.width > 80 / 70:
            pdf.image(BytesIO(photo.data), x=pdf.l_margin, h=80)
        else:
            pdf.image(BytesIO(photo.data), x=pdf.l_margin, w=70)
        pdf.ln(2)

    gauge_weight = f"{record.gauge}gg / {round(record.weight_gm)} gm"
    pdf.set_font("Helvetica", "", 9)
    for label, value in (
        ("Composition", record.composition or EMPTY),
        ("Yarn", record.yarn_desc or EMPTY),
        ("Gauge/Weight", gauge_weight),
    ):
        pdf.set_font("Helvetica", "B", 9)
        pdf.cell(30, 5, f"{label}:")
        pdf.set_font("Helvetica", "", 9)
        pdf.multi_cell(pw - 30, 5, _safe(value), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── SECTION 3: Cost breakdown ──
    pdf.section_header("COST BREAKDOWN")
    rows = build_breakdown_rows(record)
    for i, (label, value) in enumerate(rows):
        pdf.kv_row(label, value, pw, bold=(i == len(rows) - 1))
    pdf.ln(6)

    # ── SECTION 4: Disclaimer + audit ──
    pdf.set_font("Helvetica", "I", 8)
    pdf.set_text_color(100, 100, 100)
    pdf.cell(pw, 4, "Disclaimer: Final costing should be reviewed before buyer submission.",
             new_x="LMARGIN", new_y="NEXT")
    pdf.cell(pw, 4, _safe(f"Record ID: {record.id}"), new_x="LMARGIN", new_y="NEXT")
    pdf.cell(pw, 4, f"Generated: {format_date(datetime.utcnow())}", new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)

    return bytes(pdf.output())
