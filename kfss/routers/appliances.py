from fastapi import APIRouter, HTTPException
from typing import List

from .. import schemas
from ..catalog import CURRENCY_SYMBOLS, EXCHANGE_RATES, PRICING, STANDARD_APPLIANCES, get_standard_appliance

router = APIRouter(prefix="/appliances", tags=["appliances"])


@router.get("/", response_model=List[schemas.ApplianceSpec])
def list_appliances():
    return list(STANDARD_APPLIANCES)


@router.get("/pricing")
def get_pricing():
    """Unit prices (base currency) and supported currencies."""
    return {
        "pricing": PRICING,
        "currencies": {
            code: {"rate": rate, "symbol": CURRENCY_SYMBOLS.get(code, "$")}
            for code, rate in EXCHANGE_RATES.items()
        },
    }


@router.get("/{appliance_id}", response_model=schemas.ApplianceSpec)
def get_appliance(appliance_id: str):
    appliance = get_standard_appliance(appliance_id)
    if not appliance:
        raise HTTPException(status_code=404, detail="Appliance not found")
    return appliance
