"""
Estimates API: history, last calculation, results and quotation views.

GET  /api/estimates - Recent calculations, newest first
GET  /api/estimates/last - Last calculation (404 if none)
POST /api/estimates/compute - Stateless estimate, nothing recorded
GET  /api/estimates/{id} - One calculation
POST /api/estimates/{id}/load - Restore into the form, make it the last calculation
GET  /api/estimates/{id}/results - Results view + plain-text rendering
GET  /api/estimates/{id}/quotation - Quotation document + plain-text rendering
"""

from fastapi import APIRouter, Depends, HTTPException

from .. import schemas
from ..exceptions import NotFoundError, ValidationError
from ..presentation import (
    quotation_document,
    recent_view,
    render_quotation_text,
    render_results_text,
    results_view,
)
from ..session import CalculatorSession
from .session import estimator, get_calculator_session, not_found, validation_error

router = APIRouter(prefix="/estimates", tags=["estimates"])


def find_estimate(calc: CalculatorSession, record_id: int) -> schemas.EstimationResult:
    """History first, then the last-calculation slot (which may have been evicted from history)."""
    record = calc.records.get(record_id)
    if record is None:
        last = calc.records.last_calculation()
        if last is not None and last.id == record_id:
            record = last
    if record is None:
        raise HTTPException(status_code=404, detail=str(NotFoundError(record_id)))
    return record


def last_estimate(calc: CalculatorSession) -> schemas.EstimationResult:
    last = calc.records.last_calculation()
    if last is None:
        raise HTTPException(status_code=404, detail="No calculation yet")
    return last


@router.get("/")
def list_estimates(calc: CalculatorSession = Depends(get_calculator_session)):
    history = calc.records.all()
    return {
        "estimates": [r.model_dump(mode="json") for r in history],
        "display": recent_view(history),
    }


@router.get("/last", response_model=schemas.EstimationResult)
def get_last_estimate(calc: CalculatorSession = Depends(get_calculator_session)):
    return last_estimate(calc)


@router.post("/compute", response_model=schemas.EstimationResult)
def compute_estimate(inp: schemas.EstimatorInput):
    """Run the estimator on a complete input. The result is not recorded."""
    try:
        return estimator.compute(inp)
    except ValidationError as e:
        raise validation_error(e)


@router.get("/{record_id}", response_model=schemas.EstimationResult)
def get_estimate(record_id: int, calc: CalculatorSession = Depends(get_calculator_session)):
    return find_estimate(calc, record_id)


@router.post("/{record_id}/load")
def load_estimate(record_id: int, calc: CalculatorSession = Depends(get_calculator_session)):
    """Only calculations still in the recent history can be loaded."""
    try:
        record = calc.load_calculation(record_id)
    except NotFoundError as e:
        raise not_found(e)
    return {
        "result": record.model_dump(mode="json"),
        "fields": calc.form.fields,
        "selected_ids": calc.form.selected_ids,
    }


@router.get("/{record_id}/results")
def get_results(record_id: int, calc: CalculatorSession = Depends(get_calculator_session)):
    record = find_estimate(calc, record_id)
    return {**results_view(record), "text": render_results_text(record)}


@router.get("/{record_id}/quotation")
def get_quotation(record_id: int, calc: CalculatorSession = Depends(get_calculator_session)):
    doc = quotation_document(find_estimate(calc, record_id))
    return {"document": doc, "text": render_quotation_text(doc)}
