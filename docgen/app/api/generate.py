"""
Document generation endpoint.

Clients submit a request tree. Every template item is rendered, the
generated locations are written into each item's ``result.location``,
and the reconciled tree is returned with the same shape as the request.

Error responses carry the taxonomy code and pipeline stage:

    {"error": CODE, "stage": STAGE, "message": ..., "failures": [...]}

    400  malformed address or template data
    422  one or more generation jobs failed (per-job details)
    500  reconciliation mismatch or unexpected failure
"""

import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from docgen.app.config import get_settings
from docgen.app.coordinator.composer import DocumentComposer
from docgen.app.errors import (
    DocumentGenerationError,
    GenerationFailed,
    InvalidAddress,
    InvalidTemplateData,
)
from docgen.app.schemas.request_tree import RequestTree

logger = logging.getLogger(__name__)

router = APIRouter()


@lru_cache(maxsize=1)
def get_composer() -> DocumentComposer:
    return DocumentComposer.from_settings(get_settings())


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------


def status_for(exc: DocumentGenerationError) -> int:
    if isinstance(exc, (InvalidAddress, InvalidTemplateData)):
        return 400
    if isinstance(exc, GenerationFailed):
        return 422
    return 500


def error_body(exc: DocumentGenerationError) -> Dict[str, Any]:
    failures: List[Dict[str, Any]] = []
    if isinstance(exc, GenerationFailed):
        failures = [
            {
                "index": index,
                "address": address,
                "error": error.code,
                "message": str(error),
            }
            for index, address, error in exc.failures
        ]
    return {
        "error": exc.code,
        "stage": exc.stage,
        "message": str(exc),
        "failures": failures,
    }


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------


@router.post(
    "",
    summary="Generate every template item of a request tree",
    response_model=RequestTree,
)
async def generate_documents(
    tree: RequestTree = Body(...),
    composer: DocumentComposer = Depends(get_composer),
):
    """
    Generate the documents described by ``tree``.

    Returns the request tree with ``result.location`` set on every
    template item.
    """
    try:
        return await composer.compose(tree)
    except DocumentGenerationError as exc:
        status_code = status_for(exc)
        if status_code >= 500:
            logger.exception("Document generation failed at stage '%s'", exc.stage)
        else:
            logger.warning(
                "Document generation rejected (%s at stage '%s')",
                exc.code,
                exc.stage,
            )
        return JSONResponse(status_code=status_code, content=error_body(exc))
