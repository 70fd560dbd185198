"""
PDF download endpoints.

GET /api/estimates/last/pdf - quotation PDF for the last calculation
GET /api/estimates/{id}/pdf - quotation PDF for a recorded calculation
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..pdf_generator import generate_quotation_pdf
from ..presentation import quotation_document
from ..schemas import EstimationResult
from ..session import CalculatorSession
from .estimates import find_estimate, last_estimate
from .session import get_calculator_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/estimates", tags=["pdf"])


def _pdf_response(record: EstimationResult) -> Response:
    doc = quotation_document(record)
    # Convert bytearray to bytes for Response compatibility
    pdf_bytes = bytes(generate_quotation_pdf(doc))
    logger.info("Generated quotation %s (%d bytes)", doc["quote_number"], len(pdf_bytes))

    filename = f"Quotation-{doc['quote_number']}.pdf"
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )


@router.get("/last/pdf")
def download_last_pdf(calc: CalculatorSession = Depends(get_calculator_session)):
    return _pdf_response(last_estimate(calc))


@router.get("/{record_id}/pdf")
def download_pdf(record_id: int, calc: CalculatorSession = Depends(get_calculator_session)):
    """Returns: application/pdf"""
    return _pdf_response(find_estimate(calc, record_id))
