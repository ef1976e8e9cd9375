"""
WaifuPicks Backend — Ledger Service (Win/Loss Bookkeeping)
===========================================================

What:  Owns every read and write of item statistics.
How:   Each participant of an outcome becomes one atomic upsert
       (INSERT ... ON CONFLICT (id) DO UPDATE). Both upserts share the
       caller's transaction and are committed together before the call
       returns, so an outcome is applied whole or not at all and is durable
       by the time the route acknowledges it.
Who:   Called by route handlers; never sees HTTP requests or token claims.

Outcome Protocol (per participant):
    row exists  → counter named by `field` moves by +1 / -1 (floored at 0)
    row missing → row inserted with image_url/source as given,
                  field counter = 1 if increment else 0, other counter = 0

    Consequence: decrementing an unknown participant creates an all-zero
    row instead of failing.

Legacy single update:
    row exists  → counter moves by +1 / -1 (floored at 0)
    row missing → NotFoundError, nothing written
"""

import logging
from typing import List

from sqlalchemy import case, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from waifupicks.exceptions import DatabaseError, NotFoundError, ValidationError
from waifupicks.models.item import COUNTER_FIELDS, Item
from waifupicks.schemas.item import ItemResponse, Participant

logger = logging.getLogger(__name__)

OPERATIONS = ("increment", "decrement")

# Dialects with a native INSERT ... ON CONFLICT construct in SQLAlchemy
_UPSERT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


def _adjusted(column, operation: str):
    """SQL expression for a counter after one increment or decrement."""
    if operation == "increment":
        return column + 1
    return case((column > 0, column - 1), else_=0)


def _seed_counters(field: str, operation: str) -> dict:
    """Counters for a row created by its first recorded outcome."""
    counters = {name: 0 for name in COUNTER_FIELDS}
    counters[field] = 1 if operation == "increment" else 0
    return counters


class LedgerService:
    """
    Business logic for item statistics.

    Responsibilities:
        - list_items(): every tracked item
        - record_outcome(): pairwise upsert of winner and loser
        - update_single(): strict single-counter update (legacy clients)

    Error Handling Strategy:
        Invalid participants raise ValidationError before any statement is
        issued. Driver failures are wrapped in DatabaseError; the session
        dependency rolls the transaction back.
    """

    async def list_items(self, db: AsyncSession) -> List[ItemResponse]:
        try:
            result = await db.execute(select(Item))
            items = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing items: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve items. Please try again.",
                context={"error_type": type(e).__name__},
            )

        return [
            ItemResponse(
                id=item.id,
                image_url=item.image_url,
                source=item.source,
                wins=item.wins,
                losses=item.losses,
            )
            for item in items
        ]

    async def record_outcome(
        self,
        db: AsyncSession,
        winner: Participant,
        loser: Participant,
    ) -> None:
        """
        Apply a pairwise comparison result.

        Args:
            db: Async session; its transaction spans both participants
            winner: Winner descriptor with its requested adjustment
            loser: Loser descriptor with its requested adjustment

        Raises:
            ValidationError: Either participant is incomplete (nothing written)
            DatabaseError: The store rejected or failed a statement
        """
        # Validate both sides before touching either row
        for role, participant in (("winner", winner), ("loser", loser)):
            self._validate_participant(role, participant)

        try:
            for participant in (winner, loser):
                await self._upsert(db, participant)
            # Durable before the route acknowledges
            await db.commit()
        except SQLAlchemyError as e:
            logger.error(
                "Database error recording outcome %s > %s: %s",
                winner.id,
                loser.id,
                str(e),
                exc_info=True,
            )
            raise DatabaseError(
                message="Could not record the comparison. Please try again.",
                context={"winner": winner.id, "loser": loser.id},
            )

        logger.info(
            "Recorded outcome: %s %s %s, %s %s %s",
            winner.id, winner.operation, winner.field,
            loser.id, loser.operation, loser.field,
        )

    async def update_single(
        self,
        db: AsyncSession,
        item_id: str,
        field: str,
        operation: str,
    ) -> None:
        """
        Adjust one counter of an existing item.

        Raises:
            ValidationError: Unknown field or operation
            NotFoundError: No item with this id (nothing written)
            DatabaseError: The store rejected or failed the statement
        """
        if not item_id:
            raise ValidationError(message="Invalid request body", field="id")
        self._validate_adjustment(field, operation, prefix="")

        table = Item.__table__
        try:
            result = await db.execute(
                update(table)
                .where(table.c.id == item_id)
                .values({field: _adjusted(table.c[field], operation)})
            )
            if result.rowcount == 0:
                raise NotFoundError(resource="waifu", resource_id=item_id)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error("Database error updating item %s: %s", item_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not update the item. Please try again.",
                context={"item_id": item_id},
            )

        logger.info("Updated item %s: %s %s", item_id, operation, field)

    # ── Internals ─────────────────────────────────────────────────────────

    def _validate_participant(self, role: str, participant: Participant) -> None:
        for attr in ("id", "image_url", "source"):
            value = getattr(participant, attr, None)
            # image_url and source may be empty; only id must be non-empty
            if value is None or (attr == "id" and value == ""):
                raise ValidationError(
                    message="Invalid request body",
                    field=f"{role}.{attr}",
                )
        self._validate_adjustment(participant.field, participant.operation, prefix=f"{role}.")

    def _validate_adjustment(self, field: str, operation: str, prefix: str) -> None:
        if field not in COUNTER_FIELDS:
            raise ValidationError(message="Invalid request body", field=f"{prefix}field")
        if operation not in OPERATIONS:
            raise ValidationError(message="Invalid request body", field=f"{prefix}operation")

    async def _upsert(self, db: AsyncSession, participant: Participant) -> None:
        dialect = db.bind.dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise DatabaseError(
                message="The configured database does not support upserts.",
                context={"dialect": dialect},
            )

        table = Item.__table__
        stmt = insert(table).values(
            id=participant.id,
            image_url=participant.image_url,
            source=participant.source,
            **_seed_counters(participant.field, participant.operation),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.id],
            set_={participant.field: _adjusted(table.c[participant.field], participant.operation)},
        )
        await db.execute(stmt)


ledger_service = LedgerService()
