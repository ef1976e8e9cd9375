"""
WaifuPicks Backend — Vote Route Handlers
==========================================

What:  POST /waifu/update and POST /waifu/compare record comparison results.
How:   Bodies are validated here; the ledger applies them inside the
       request's transaction.

Not-found policy per endpoint:
    /waifu/update, single form   {id, field, operation}  → 404 if id unknown
    /waifu/update, pairwise form {winner, loser}         → creates unknown ids
    /waifu/compare               {winner, loser}         → creates unknown ids

Only /waifu/update is behind the bearer check (when TOKEN_SECRET is set).
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from waifupicks.database import get_db_session
from waifupicks.schemas.item import (
    CompareRequest,
    ErrorResponse,
    OutcomeRequest,
    SuccessResponse,
    parse_update_request,
)
from waifupicks.security import require_token
from waifupicks.services.ledger_service import ledger_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/waifu", tags=["Votes"])


@router.post(
    "/update",
    response_model=SuccessResponse,
    responses={
        400: {"description": "Invalid request body", "model": ErrorResponse},
        401: {"description": "Missing bearer token", "model": ErrorResponse},
        403: {"description": "Invalid or expired token", "model": ErrorResponse},
        404: {"description": "Single-form target does not exist", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Record a vote or adjust one counter",
)
async def update_waifu(
    payload: Any = Body(
        ...,
        description="Either {id, field, operation} or {winner, loser} with full participants",
    ),
    claims: Optional[Dict[str, Any]] = Depends(require_token),
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    request = parse_update_request(payload)

    if isinstance(request, OutcomeRequest):
        await ledger_service.record_outcome(db=db, winner=request.winner, loser=request.loser)
    else:
        await ledger_service.update_single(
            db=db,
            item_id=request.id,
            field=request.field,
            operation=request.operation,
        )

    return SuccessResponse()


@router.post(
    "/compare",
    response_model=SuccessResponse,
    responses={
        400: {"description": "Invalid request body", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Record that one item beat another",
)
async def compare_waifus(
    body: CompareRequest,
    db: AsyncSession = Depends(get_db_session),
) -> SuccessResponse:
    outcome = body.to_outcome()
    await ledger_service.record_outcome(db=db, winner=outcome.winner, loser=outcome.loser)
    return SuccessResponse()
