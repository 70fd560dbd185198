"""
Presentation Formatter: turns estimator output into display data.

Four views:
1. Live summary (SummaryPreview, no safety factor)
2. Results view (bill of quantities + cost breakdown for one calculation)
3. Recent calculations list
4. Quotation document (line items, safety factor, terms) - rendered as text
   here and as PDF by pdf_generator

Stored subtotals are in the base currency and get multiplied by the record's
exchange rate here. The stored total is already converted.
"""

import math
from datetime import timedelta

from .catalog import COST_CATEGORY_LABELS, PRICING, currency_symbol
from .config import settings
from .models import CostCategory
from .schemas import EstimationResult, SummaryPreview


TERMS_AND_CONDITIONS = [
    "This quotation is valid for {valid_days} days from the date issued.",
    "Prices are in {currency} and include all standard components.",
    "Installation timeline: 2-3 weeks from order confirmation.",
    "Payment terms: 50% advance, 50% upon completion.",
    "Warranty: 12 months on all parts and labor.",
    "Annual maintenance contract available separately.",
    "All work complies with NFPA 96 and NFPA 17A standards.",
    "Any changes to scope may affect final price and timeline.",
]

PREPARED_BY = "KFSS Calculator"


def format_cost(amount, currency: str = "USD", exchange_rate: float = 1.0,
                decimals: int = 2) -> str:
    """Symbol + grouped amount, after conversion: format_cost(1320, "EUR", 0.92) -> '€1,214.40'."""
    try:
        value = float(amount) * float(exchange_rate)
    except (ValueError, TypeError):
        value = 0.0
    return f"{currency_symbol(currency)}{value:,.{decimals}f}"


def round_half_up(value: float) -> int:
    """Whole-number rounding for display (2.5 -> 3, not banker's 2)."""
    return int(math.floor(value + 0.5))


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def cylinder_label(result: EstimationResult) -> str:
    return "10kg cylinders" if result.cylinders_required > 1 else "5kg cylinder"


# --- Live summary ---

def summary_view(preview: SummaryPreview) -> dict:
    """Display strings for the summary panel."""
    return {
        "project_name": preview.project_name,
        "client_name": preview.client_name,
        "hood_area": f"{preview.hood_area_m2:.1f} m²",
        "plenum_nozzles": str(preview.nozzles.plenum),
        "duct_nozzles": str(preview.nozzles.duct),
        "appliance_nozzles": str(preview.nozzles.appliances),
        "total_nozzles": str(preview.nozzles.total),
        "cylinders": str(preview.cylinders_required),
        "agent_weight": f"{preview.agent_weight_kg:.1f} kg",
        "piping": f"{round_half_up(preview.piping_length_m)} m",
        "currency": preview.currency,
        "cost": format_cost(preview.total_cost, preview.currency),
    }


# --- Results ---

def results_view(result: EstimationResult) -> dict:
    """Project info, configuration, bill of quantities and cost breakdown."""
    cfg = result.configuration
    currency = result.project.currency
    rate = result.exchange_rate
    symbol = currency_symbol(currency)

    hood_lines = [
        f"Length: {cfg.hood_length} m",
        f"Depth: {cfg.hood_depth} m",
        f"Area: {result.hood_area_m2:.1f} m²",
        f"Plenum Sections: {cfg.plenum_sections}",
        f"Duct Openings: {cfg.duct_sections}",
    ]
    if cfg.expert.hood_material:
        hood_lines.append(f"Material: {cfg.expert.hood_material}")

    appliances = [
        {
            "name": a.name + (" (Custom)" if a.custom else ""),
            "nozzles": _plural(a.nozzle_count, "nozzle"),
            "cost": format_cost(a.price, currency, rate),
        }
        for a in cfg.selected_appliances
    ]

    n = result.nozzles
    bill_of_quantities = [
        {
            "label": "Total Nozzles Required",
            "value": str(n.total),
            "details": f"Plenum: {n.plenum} - Duct: {n.duct} - Appliances: {n.appliances}",
        },
        {
            "label": "Cylinders Required",
            "value": str(result.cylinders_required),
            "details": cylinder_label(result),
        },
        {
            "label": "Wet Chemical Agent",
            "value": f"{result.agent_weight_kg:.1f} kg",
            "details": "",
        },
        {
            "label": "Piping Length",
            "value": f"{round_half_up(result.piping_length_m)} m",
            "details": f"{(cfg.expert.pipe_material or 'galvanized').title()} pipe",
        },
    ]

    cost_breakdown = [
        {
            "category": category.value,
            "label": COST_CATEGORY_LABELS[category],
            "amount": format_cost(amount, currency, rate),
        }
        for category, amount in result.ordered_subtotals()
    ]

    return {
        "id": result.id,
        "project": {
            "name": result.project.name,
            "client": result.project.client,
            "location": result.project.location or "Not specified",
            "currency": f"{currency} ({symbol})",
            "calculated_at": result.timestamp.strftime("%Y-%m-%d %H:%M UTC"),
        },
        "configuration": {
            "hood": hood_lines,
            "appliances": appliances,
        },
        "bill_of_quantities": bill_of_quantities,
        "cost_breakdown": cost_breakdown,
        "total": format_cost(result.total_cost, currency),
    }


def render_results_text(result: EstimationResult) -> str:
    view = results_view(result)
    p = view["project"]
    lines = [
        f"Project: {p['name']}",
        f"Client: {p['client']}",
        f"Location: {p['location']}",
        f"Currency: {p['currency']}",
        f"Calculation Date: {p['calculated_at']}",
        "",
        "BILL OF QUANTITIES",
    ]
    for item in view["bill_of_quantities"]:
        line = f"  {item['label']}: {item['value']}"
        if item["details"]:
            line += f" ({item['details']})"
        lines.append(line)
    lines.append("")
    lines.append("COST BREAKDOWN")
    for item in view["cost_breakdown"]:
        lines.append(f"  {item['label']:<24}{item['amount']:>16}")
    lines.append(f"  {'Total System Cost':<24}{view['total']:>16}")
    return "\n".join(lines)


# --- Recent calculations ---

def recent_view(results) -> list:
    """One compact entry per history record, newest first."""
    return [
        {
            "id": r.id,
            "project": r.project.name,
            "nozzles": _plural(r.nozzles.total, "nozzle"),
            "cost": format_cost(r.total_cost, r.project.currency, decimals=0),
            "date": r.timestamp.strftime("%Y-%m-%d"),
            "time": r.timestamp.strftime("%H:%M"),
        }
        for r in results
    ]


# --- Quotation ---

def quote_number(result: EstimationResult) -> str:
    """Q-<year>-<month>-<last 6 digits of the calculation id>."""
    ts = result.timestamp
    return f"Q-{ts.year}-{ts.month:02d}-{str(result.id)[-6:]}"


def default_company() -> dict:
    return {
        "name": settings.COMPANY_NAME,
        "address": settings.COMPANY_ADDRESS,
        "phone": settings.COMPANY_PHONE,
        "email": settings.COMPANY_EMAIL,
        "website": settings.COMPANY_WEBSITE,
    }


def quotation_document(result: EstimationResult, company: dict = None,
                       valid_days: int = None) -> dict:
    """
    Build the quotation as plain data. All amounts are converted to the
    quotation currency.

    Line totals are before safety factor; the safety factor is shown as its
    own line so that subtotal + safety factor = stored total.
    """
    company = company or default_company()
    valid_days = valid_days if valid_days is not None else settings.QUOTE_VALID_DAYS
    cfg = result.configuration
    rate = result.exchange_rate
    currency = result.project.currency

    multiplier = 1 + result.safety_factor_percent / 100.0
    if multiplier <= 0:
        multiplier = 1.0

    def base(category: CostCategory) -> float:
        return result.subtotals.get(category, 0.0) / multiplier

    cylinders = result.cylinders_required
    cylinder_price = PRICING["cylinder_10kg"] if cylinders > 1 else PRICING["cylinder_5kg"]
    pipe_material = (cfg.expert.pipe_material or "galvanized").title()
    piping_m = round_half_up(result.piping_length_m)

    line_items = [
        {
            "description": f"Wet Chemical Cylinder System ({result.cylinder_size_kg}kg)",
            "quantity": str(cylinders),
            "unit_price": cylinder_price * rate,
            "unit": "",
            "total": base(CostCategory.CYLINDERS) * rate,
        },
        {
            "description": "Discharge Nozzles (various types)",
            "quantity": str(result.nozzles.total),
            "unit_price": PRICING["nozzle"] * rate,
            "unit": "",
            "total": base(CostCategory.NOZZLES) * rate,
        },
        {
            "description": f"Piping & Fittings ({pipe_material})",
            "quantity": f"{piping_m} m",
            "unit_price": PRICING["piping_per_meter"] * rate,
            "unit": "/m",
            "total": base(CostCategory.PIPING) * rate,
        },
        {
            "description": "Hood & Agent Tank Assembly",
            "quantity": "1",
            "unit_price": PRICING["hood_agent_tank"] * rate,
            "unit": "",
            "total": base(CostCategory.HOOD_AGENT_TANK) * rate,
        },
        {
            "description": "Manual Release Station",
            "quantity": "1",
            "unit_price": PRICING["manual_release"] * rate,
            "unit": "",
            "total": base(CostCategory.MANUAL_RELEASE) * rate,
        },
        {
            "description": "Professional Installation",
            "quantity": "1",
            "unit_price": PRICING["installation_labor"] * rate,
            "unit": "",
            "total": base(CostCategory.INSTALLATION_LABOR) * rate,
        },
        {
            "description": "System Commissioning & Testing",
            "quantity": "1",
            "unit_price": PRICING["commissioning"] * rate,
            "unit": "",
            "total": base(CostCategory.COMMISSIONING) * rate,
        },
    ]

    appliance_items = [
        {
            "description": f"{a.name} Protection",
            "quantity": str(a.nozzle_count),
            "unit_price": a.price / a.nozzle_count * rate,
            "unit": "",
            "total": a.price * rate,
        }
        for a in cfg.selected_appliances
    ]

    subtotal = round(sum(i["total"] for i in line_items + appliance_items), 2)
    total = result.total_cost
    safety_amount = round(total - subtotal, 2)

    issue_date = result.timestamp.date()
    nozzle_count = result.nozzles.total

    return {
        "quote_number": quote_number(result),
        "calculation_id": result.id,
        "issue_date": issue_date.isoformat(),
        "valid_until": (issue_date + timedelta(days=valid_days)).isoformat(),
        "currency": currency,
        "currency_symbol": currency_symbol(currency),
        "exchange_rate": rate,
        "prepared_by": PREPARED_BY,
        "company": company,
        "client": {
            "name": result.project.client,
            "location": result.project.location or "Address not specified",
            "project": result.project.name,
        },
        "scope_of_work": [
            f"Wet chemical suppression system with {_plural(cylinders, 'cylinder')}",
            f"{nozzle_count} discharge nozzles (plenum, duct, and appliance protection)",
            f"Approximately {piping_m} meters of piping",
            "Manual release station and automatic detection system",
            "Professional installation and commissioning",
            "System testing and certification",
            "Operator training on system use",
        ],
        "line_items": line_items,
        "appliance_items": appliance_items,
        "subtotal": subtotal,
        "safety_factor_percent": result.safety_factor_percent,
        "safety_amount": safety_amount,
        "total": total,
        "notes": cfg.expert.notes,
        "terms": [
            t.format(valid_days=valid_days, currency=currency)
            for t in TERMS_AND_CONDITIONS
        ],
    }


def _pct(value: float) -> str:
    return f"{value:g}%"


def render_quotation_text(doc: dict) -> str:
    """Plain-text quotation, one line item per row."""
    cur = doc["currency"]

    def money(amount) -> str:
        return format_cost(amount, cur)

    company = doc["company"]
    client = doc["client"]
    lines = [
        "QUOTATION",
        f"Quote No: {doc['quote_number']}",
        "",
        company["name"],
    ]
    lines += [company[k] for k in ("address", "phone", "email", "website") if company.get(k)]
    lines += [
        "",
        "Quotation For:",
        f"  {client['name']}",
        f"  {client['location']}",
        f"  Project: {client['project']}",
        "",
        f"Date: {doc['issue_date']}",
        f"Valid Until: {doc['valid_until']}",
        f"Currency: {cur}",
        f"Prepared By: {doc['prepared_by']}",
        "",
        "SCOPE OF WORK",
        "Supply, installation, and commissioning of a complete wet chemical "
        "kitchen fire suppression system including:",
    ]
    lines += [f"  - {s}" for s in doc["scope_of_work"]]
    lines += ["", "QUOTATION ITEMS", f"{'Item Description':<44}{'Qty':>8}{'Unit Price':>16}{'Total':>16}"]

    def row(item) -> str:
        unit_price = money(item["unit_price"]) + item["unit"]
        return f"{item['description'][:44]:<44}{item['quantity']:>8}{unit_price:>16}{money(item['total']):>16}"

    lines += [row(i) for i in doc["line_items"]]
    if doc["appliance_items"]:
        lines.append("Appliance Protection")
        lines += [row(i) for i in doc["appliance_items"]]

    lines += [
        f"{'SUBTOTAL':<68}{money(doc['subtotal']):>16}",
        f"{'Safety Factor (' + _pct(doc['safety_factor_percent']) + ')':<68}{money(doc['safety_amount']):>16}",
        f"{'TOTAL QUOTATION AMOUNT':<68}{money(doc['total']):>16}",
        "",
    ]
    if doc.get("notes"):
        lines += ["NOTES", doc["notes"], ""]
    lines.append("TERMS & CONDITIONS")
    lines += [f"  {n}. {t}" for n, t in enumerate(doc["terms"], start=1)]
    return "\n".join(lines)
