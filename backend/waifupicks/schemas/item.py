"""
WaifuPicks Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the API contract with the voting frontend.
How:   FastAPI uses these to validate request bodies, serialize responses,
       and generate OpenAPI documentation. JSON keys keep the frontend's
       camelCase (`imageUrl`); Python attributes stay snake_case.

Request shapes accepted by POST /waifu/update:
    {"id", "field", "operation"}                 → SingleUpdateRequest
    {"winner": {...}, "loser": {...}}            → OutcomeRequest
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from waifupicks.exceptions import ValidationError
from waifupicks.models.item import MAX_KEY_LENGTH

CounterField = Literal["wins", "losses"]
Operation = Literal["increment", "decrement"]


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class Participant(BaseModel):
    """
    One side of a recorded outcome, with its requested counter adjustment.

    Every attribute is required: a vote naming a participant without
    provenance or without an enumerated field/operation is rejected whole.
    """
    id: str = Field(min_length=1, max_length=MAX_KEY_LENGTH, description="Stable item identifier")
    image_url: str = Field(alias="imageUrl", min_length=1, description="Display reference")
    source: str = Field(max_length=MAX_KEY_LENGTH, description="Provenance tag")
    field: CounterField = Field(description="Counter to adjust: wins or losses")
    operation: Operation = Field(description="increment (+1) or decrement (-1)")

    model_config = {"populate_by_name": True}


class OutcomeRequest(BaseModel):
    """Pairwise form of POST /waifu/update."""
    winner: Participant
    loser: Participant


class SingleUpdateRequest(BaseModel):
    """Legacy single-participant form of POST /waifu/update."""
    id: str = Field(min_length=1, max_length=MAX_KEY_LENGTH)
    field: CounterField
    operation: Operation


class CompareParticipant(BaseModel):
    """
    Participant in POST /waifu/compare; the counter adjustment is implied.

    Only `id` is required. A missing imageUrl or source is stored as "".
    """
    id: str = Field(min_length=1, max_length=MAX_KEY_LENGTH)
    image_url: str = Field(default="", alias="imageUrl")
    source: str = Field(default="", max_length=MAX_KEY_LENGTH)

    model_config = {"populate_by_name": True}


class CompareRequest(BaseModel):
    winner: CompareParticipant
    loser: CompareParticipant

    def to_outcome(self) -> OutcomeRequest:
        """
        Winner gains a win, loser gains a loss.

        Skips validation: compare allows an empty imageUrl, Participant does not.
        """
        return OutcomeRequest.model_construct(
            winner=Participant.model_construct(
                id=self.winner.id,
                image_url=self.winner.image_url,
                source=self.winner.source,
                field="wins",
                operation="increment",
            ),
            loser=Participant.model_construct(
                id=self.loser.id,
                image_url=self.loser.image_url,
                source=self.loser.source,
                field="losses",
                operation="increment",
            ),
        )


def _first_error_location(exc: PydanticValidationError) -> Optional[str]:
    errors = exc.errors()
    if not errors:
        return None
    return ".".join(str(part) for part in errors[0]["loc"]) or None


def parse_update_request(payload: Any) -> Union[OutcomeRequest, SingleUpdateRequest]:
    """
    Pick the request form from the body shape and validate it.

    A body carrying `winner` or `loser` is the pairwise form; anything else
    is treated as the single-participant form.

    Raises:
        ValidationError: Body is not an object or fails its form's schema.
    """
    if not isinstance(payload, dict):
        raise ValidationError(message="Invalid request body")

    model = OutcomeRequest if ("winner" in payload or "loser" in payload) else SingleUpdateRequest
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(
            message="Invalid request body",
            field=_first_error_location(exc),
        ) from exc


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ItemResponse(BaseModel):
    """An item as listed by GET /items."""
    id: str
    image_url: str = Field(alias="imageUrl")
    source: Optional[str] = None
    wins: int
    losses: int

    model_config = {"populate_by_name": True}


class SuccessResponse(BaseModel):
    success: bool = True


class TokenResponse(BaseModel):
    token: str = Field(description="HS256 bearer token for POST /waifu/update")


class ErrorResponse(BaseModel):
    """
    Standardized error response format for all API errors.

    Example:
        {
            "error": "validation_error",
            "message": "Invalid request body",
            "details": {"field": "winner.source"},
            "request_id": "1f2e3d4c"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[Dict[str, Any]] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")

