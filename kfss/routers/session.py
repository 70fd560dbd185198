"""
Calculator Session API: the working form, appliance selection and commit.

GET   /api/session - Form state, expert flag, selection
PATCH /api/session/form - Update raw form values
PUT   /api/session/expert-mode - Toggle expert mode
POST  /api/session/appliances/custom - Add (and select) a custom appliance
POST  /api/session/appliances/{id}/toggle - Select / deselect an appliance
GET   /api/session/summary - Live summary (no safety factor)
POST  /api/session/calculate - Validate, compute, record
POST  /api/session/reset - Clear history and restore defaults
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import schemas
from ..database import get_db
from ..estimator import Estimator
from ..exceptions import NotFoundError, ValidationError
from ..kv_store import SqlKeyValueStore
from ..presentation import results_view, summary_view
from ..session import CalculatorSession

router = APIRouter(prefix="/session", tags=["calculator-session"])

# Singleton estimator - owns the id generator, no other state
estimator = Estimator()


def get_calculator_session(db: Session = Depends(get_db)) -> CalculatorSession:
    """Session rebuilt from the persisted key-value rows on each request."""
    return CalculatorSession(SqlKeyValueStore(db), estimator=estimator)


def validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"fields": e.fields, "messages": e.messages})


def not_found(e: NotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


def _state(calc: CalculatorSession) -> dict:
    return {
        "fields": calc.form.fields,
        "expert_mode": calc.expert_mode,
        "selected_ids": calc.form.selected_ids,
        "appliances": [
            {**a.model_dump(), "selected": calc.is_selected(a.id)}
            for a in calc.available_appliances()
        ],
    }


# --- Endpoints ---

@router.get("")
def get_session(calc: CalculatorSession = Depends(get_calculator_session)):
    return _state(calc)


@router.patch("/form")
def update_form(
    update: schemas.FormUpdate,
    calc: CalculatorSession = Depends(get_calculator_session),
):
    """Store raw values as typed. Parsing happens at summary / calculate time."""
    try:
        calc.update_fields(update.fields)
    except ValidationError as e:
        raise validation_error(e)
    return _state(calc)


@router.put("/expert-mode")
def set_expert_mode(
    update: schemas.ExpertModeUpdate,
    calc: CalculatorSession = Depends(get_calculator_session),
):
    calc.set_expert_mode(update.enabled)
    return {"expert_mode": calc.expert_mode}


@router.post("/appliances/custom", status_code=201)
def add_custom_appliance(
    request: schemas.CustomApplianceCreate,
    calc: CalculatorSession = Depends(get_calculator_session),
):
    try:
        appliance = calc.add_custom_appliance(request.name, request.nozzle_count)
    except ValidationError as e:
        raise validation_error(e)
    return {**appliance.model_dump(), "selected": True}


@router.post("/appliances/{appliance_id}/toggle")
def toggle_appliance(
    appliance_id: str,
    calc: CalculatorSession = Depends(get_calculator_session),
):
    try:
        selected = calc.toggle_appliance(appliance_id)
    except NotFoundError as e:
        raise not_found(e)
    return {"id": appliance_id, "selected": selected}


@router.get("/summary")
def get_summary(calc: CalculatorSession = Depends(get_calculator_session)):
    """
    Live summary of the current form.

    Never fails on incomplete input: blank names and dimensions fall back to
    placeholders and defaults.
    """
    preview = calc.summary()
    return {
        "summary": preview.model_dump(mode="json"),
        "display": summary_view(preview),
    }


@router.post("/calculate", status_code=201)
def calculate(calc: CalculatorSession = Depends(get_calculator_session)):
    """
    Commit a calculation.

    422 with the offending field names when required input is missing;
    nothing is recorded in that case.
    """
    try:
        result = calc.perform_calculation()
    except ValidationError as e:
        raise validation_error(e)
    return {
        "result": result.model_dump(mode="json"),
        "display": results_view(result),
    }


@router.post("/reset")
def reset(calc: CalculatorSession = Depends(get_calculator_session)):
    calc.reset()
    return _state(calc)
