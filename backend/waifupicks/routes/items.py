"""
WaifuPicks Backend — Items Route Handler
==========================================

What:  GET /items returns every tracked item with its counters.
Who:   Called by the frontend leaderboard; ranking happens client-side.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from waifupicks.database import get_db_session
from waifupicks.schemas.item import ErrorResponse, ItemResponse
from waifupicks.services.ledger_service import ledger_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Items"])


@router.get(
    "/items",
    response_model=List[ItemResponse],
    responses={
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="List all tracked items",
    description="Returns every item in storage order. No ordering is guaranteed.",
)
async def list_items(db: AsyncSession = Depends(get_db_session)) -> List[ItemResponse]:
    return await ledger_service.list_items(db=db)
