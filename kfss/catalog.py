"""
Reference data: standard appliances, component pricing, currency tables.

All values are fixed configuration constants. Prices are in USD (the base
currency); other currencies are reached through EXCHANGE_RATES at
presentation time.
"""

import logging
import uuid

from .models import CostCategory
from .schemas import ApplianceSpec

logger = logging.getLogger(__name__)


COST_CATEGORY_LABELS = {
    CostCategory.NOZZLES: "Nozzles",
    CostCategory.CYLINDERS: "Cylinders",
    CostCategory.PIPING: "Piping",
    CostCategory.HOOD_AGENT_TANK: "Hood Agent Tank",
    CostCategory.MANUAL_RELEASE: "Manual Release",
    CostCategory.INSTALLATION_LABOR: "Installation Labor",
    CostCategory.COMMISSIONING: "Commissioning",
    CostCategory.APPLIANCES: "Appliances",
}


# --- Component pricing (USD) ---

PRICING = {
    "nozzle": 85.00,
    "cylinder_5kg": 1200.00,
    "cylinder_10kg": 1900.00,
    "piping_per_meter": 35.00,
    "hood_agent_tank": 1800.00,
    "manual_release": 250.00,
    "installation_labor": 850.00,
    "commissioning": 400.00,
}

# Flat-rate categories - one of each per installation
FIXED_COSTS = {
    CostCategory.HOOD_AGENT_TANK: PRICING["hood_agent_tank"],
    CostCategory.MANUAL_RELEASE: PRICING["manual_release"],
    CostCategory.INSTALLATION_LABOR: PRICING["installation_labor"],
    CostCategory.COMMISSIONING: PRICING["commissioning"],
}


# --- Currency ---

BASE_CURRENCY = "USD"

# Approximate rates, units of currency per USD
EXCHANGE_RATES = {
    "USD": 1.0,
    "EUR": 0.92,
    "INR": 83.0,
    "AED": 3.67,
}

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "INR": "₹",
    "AED": "د.إ",
}


def exchange_rate(currency: str) -> float:
    """Units of `currency` per USD. Unknown codes fall back to 1.0."""
    rate = EXCHANGE_RATES.get(currency)
    if rate is None:
        logger.warning("Unknown currency %r, using exchange rate 1.0", currency)
        return 1.0
    return rate


def currency_symbol(currency: str) -> str:
    return CURRENCY_SYMBOLS.get(currency, "$")


# --- Appliances ---

STANDARD_APPLIANCES = (
    ApplianceSpec(id="fryer", name="Deep Fryer", nozzle_count=1, price=850),
    ApplianceSpec(id="range", name="Cooking Range", nozzle_count=2, price=1200),
    ApplianceSpec(id="grill", name="Griddle/Grill", nozzle_count=1, price=750),
    ApplianceSpec(id="broiler", name="Broiler", nozzle_count=1, price=900),
    ApplianceSpec(id="wok", name="Wok Station", nozzle_count=2, price=1100),
    ApplianceSpec(id="oven", name="Convection Oven", nozzle_count=1, price=650),
    ApplianceSpec(id="steamer", name="Steamer", nozzle_count=1, price=700),
    ApplianceSpec(id="dishwasher", name="Dishwasher", nozzle_count=1, price=600),
)

CUSTOM_PRICE_PER_NOZZLE = 600.00
MIN_APPLIANCE_NOZZLES = 1
MAX_APPLIANCE_NOZZLES = 5


def get_standard_appliance(appliance_id: str):
    """Catalog lookup by id. Returns None for unknown ids."""
    for appliance in STANDARD_APPLIANCES:
        if appliance.id == appliance_id:
            return appliance
    return None


def make_custom_appliance(name: str, nozzle_count: int) -> ApplianceSpec:
    """
    Build an ad-hoc appliance. Price is estimated at $600 per nozzle.
    Caller is responsible for range-checking nozzle_count.
    """
    return ApplianceSpec(
        id=f"custom-{uuid.uuid4().hex[:12]}",
        name=name.strip(),
        nozzle_count=nozzle_count,
        price=nozzle_count * CUSTOM_PRICE_PER_NOZZLE,
        custom=True,
    )
