"""
PDF Quotation Generator.

Renders a quotation document (see presentation.quotation_document) as a PDF.
Uses fpdf2 (pure Python, no system dependencies).

Sections, in order:
1. Letterhead + quote number
2. Client / quote details
3. Scope of work
4. Quotation items (system components, then appliance protection)
5. Subtotal, safety factor, total
6. Notes (if any)
7. Terms & conditions
"""

from fpdf import FPDF

from .catalog import currency_symbol


def _money_prefix(currency: str) -> str:
    """Currency symbol if the built-in fonts can draw it, else the code ('INR ')."""
    symbol = currency_symbol(currency)
    try:
        symbol.encode("latin-1")
    except UnicodeEncodeError:
        return f"{currency} "
    return symbol


def _fmt(amount, currency: str = "USD") -> str:
    """Format a number as $X,XXX.XX (or 'INR X,XXX.XX' when the symbol is not latin-1)."""
    try:
        return f"{_money_prefix(currency)}{float(amount):,.2f}"
    except (ValueError, TypeError):
        return f"{_money_prefix(currency)}0.00"


def _safe(text: str) -> str:
    """Replace Unicode chars that can't be rendered by built-in PDF fonts (latin-1)."""
    if not text:
        return ""
    return (
        str(text)
        .replace("\u2022", "-")    # bullet
        .replace("\u2014", " - ")  # em dash
        .replace("\u2013", "-")    # en dash
        .replace("\u201c", '"')    # left double quote
        .replace("\u201d", '"')    # right double quote
        .replace("\u2018", "'")    # left single quote
        .replace("\u2019", "'")    # right single quote
        .replace("\u00b2", "2")    # superscript two
        .encode("latin-1", errors="replace")
        .decode("latin-1")
    )


class QuotationPDF(FPDF):
    """Quotation layout: dark section bars, right-aligned money columns."""

    def __init__(self, company_name=""):
        super().__init__()
        self.company_name = company_name
        self.set_auto_page_break(auto=True, margin=20)

    def header(self):
        pass  # Letterhead is drawn once on the first page

    def footer(self):
        self.set_y(-15)
        self.set_font("Helvetica", "I", 8)
        self.set_text_color(150, 150, 150)
        self.cell(0, 10, f"{_safe(self.company_name)} - Page {self.page_no()}/{{nb}}", align="C")

    def section_header(self, title):
        self.set_font("Helvetica", "B", 11)
        self.set_fill_color(45, 55, 72)
        self.set_text_color(255, 255, 255)
        self.cell(0, 8, f"  {title}", fill=True, new_x="LMARGIN", new_y="NEXT")
        self.set_text_color(0, 0, 0)
        self.ln(2)

    def table_header(self, cols):
        """cols: [(label, width), ...]"""
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(240, 240, 240)
        for label, width in cols:
            align = "R" if label in ("Qty", "Unit Price", "Total") else "L"
            self.cell(width, 6, label, border="B", fill=True, align=align)
        self.ln()

    def table_row(self, values, widths):
        self.set_font("Helvetica", "", 8)
        for i, (val, width) in enumerate(zip(values, widths)):
            align = "L" if i == 0 else "R"
            self.cell(width, 5.5, _safe(val), align=align)
        self.ln()

    def category_row(self, label):
        self.set_font("Helvetica", "B", 8)
        self.set_fill_color(248, 248, 248)
        self.cell(0, 6, _safe(label), fill=True, new_x="LMARGIN", new_y="NEXT")

    def total_row(self, label, amount_text, bold=False):
        self.set_font("Helvetica", "B" if bold else "", 9)
        self.cell(140, 6, _safe(label), align="R", border="T")
        self.cell(50, 6, amount_text, align="R", border="T")
        self.ln()


def generate_quotation_pdf(doc: dict) -> bytes:
    """
    Generate the quotation PDF.

    Args:
        doc: quotation document dict from presentation.quotation_document

    Returns:
        PDF bytes
    """
    currency = doc["currency"]
    company = doc["company"]

    def money(amount) -> str:
        return _fmt(amount, currency)

    pdf = QuotationPDF(company_name=company.get("name", ""))
    pdf.alias_nb_pages()
    pdf.add_page()
    pw = pdf.w - pdf.l_margin - pdf.r_margin  # printable width

    # ── Letterhead ──
    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 10, _safe(company.get("name", "")), new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    pdf.set_text_color(100, 100, 100)
    for key in ("address", "phone", "email", "website"):
        if company.get(key):
            pdf.cell(0, 4.5, _safe(company[key]), new_x="LMARGIN", new_y="NEXT")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(4)

    pdf.set_font("Helvetica", "B", 14)
    pdf.cell(0, 8, f"QUOTATION {_safe(doc['quote_number'])}", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(2)

    # ── Client / details ──
    client = doc["client"]
    pdf.set_font("Helvetica", "B", 10)
    pdf.cell(pw / 2, 5, "Quotation For:")
    pdf.cell(pw / 2, 5, "Quote Details:", new_x="LMARGIN", new_y="NEXT")
    pdf.set_font("Helvetica", "", 9)
    left = [client["name"], client["location"], f"Project: {client['project']}"]
    right = [
        f"Date: {doc['issue_date']}",
        f"Valid Until: {doc['valid_until']}",
        f"Currency: {currency}",
        f"Prepared By: {doc['prepared_by']}",
    ]
    for i in range(max(len(left), len(right))):
        pdf.cell(pw / 2, 4.5, _safe(left[i]) if i < len(left) else "")
        pdf.cell(pw / 2, 4.5, _safe(right[i]) if i < len(right) else "", new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── Scope of work ──
    pdf.section_header("SCOPE OF WORK")
    pdf.set_font("Helvetica", "", 9)
    pdf.multi_cell(
        pw, 4.5,
        "Supply, installation, and commissioning of a complete wet chemical "
        "kitchen fire suppression system including:",
    )
    for line in doc["scope_of_work"]:
        pdf.set_x(pdf.l_margin)
        pdf.cell(pw, 4.5, _safe(f"  - {line}"), new_x="LMARGIN", new_y="NEXT")
    pdf.ln(4)

    # ── Quotation items ──
    pdf.section_header("QUOTATION ITEMS")
    cols = [("Item Description", 95), ("Qty", 20), ("Unit Price", 35), ("Total", 40)]
    widths = [c[1] for c in cols]
    pdf.table_header(cols)

    def item_row(item):
        pdf.table_row(
            [
                item["description"],
                item["quantity"],
                money(item["unit_price"]) + item["unit"],
                money(item["total"]),
            ],
            widths,
        )

    for item in doc["line_items"]:
        item_row(item)

    if doc["appliance_items"]:
        pdf.category_row("Appliance Protection")
        for item in doc["appliance_items"]:
            item_row(item)

    pdf.ln(1)
    pdf.total_row("SUBTOTAL", money(doc["subtotal"]))
    pdf.total_row(f"Safety Factor ({doc['safety_factor_percent']:g}%)", money(doc["safety_amount"]))

    pdf.ln(1)
    pdf.set_fill_color(45, 55, 72)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font("Helvetica", "B", 12)
    pdf.cell(130, 10, "  TOTAL QUOTATION AMOUNT", fill=True)
    pdf.cell(60, 10, f"{money(doc['total'])}  ", fill=True, align="R")
    pdf.set_text_color(0, 0, 0)
    pdf.ln(14)

    # ── Notes ──
    if doc.get("notes"):
        pdf.section_header("NOTES")
        pdf.set_font("Helvetica", "", 9)
        pdf.multi_cell(pw, 4.5, _safe(doc["notes"]))
        pdf.ln(4)

    # ── Terms ──
    pdf.section_header("TERMS & CONDITIONS")
    pdf.set_font("Helvetica", "", 8)
    for n, term in enumerate(doc["terms"], start=1):
        pdf.set_x(pdf.l_margin)
        pdf.cell(pw, 4.5, _safe(f"{n}. {term}"), new_x="LMARGIN", new_y="NEXT")

    return pdf.output()
