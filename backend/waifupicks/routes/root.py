"""
WaifuPicks Backend — Root Route
=================================

GET / doubles as the liveness probe and, when TOKEN_SECRET is configured,
as the token endpoint the frontend calls before submitting votes.
"""

import logging
from typing import Union

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from waifupicks.config import settings
from waifupicks.schemas.item import TokenResponse
from waifupicks.security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Root"])


@router.get(
    "/",
    response_model=None,
    responses={
        200: {"description": "Plaintext OK, or {token} when token checks are enabled"},
    },
    summary="Liveness probe and token issuance",
)
async def root() -> Union[PlainTextResponse, TokenResponse]:
    if not settings.auth_enabled:
        return PlainTextResponse("OK")

    return TokenResponse(token=create_access_token())
