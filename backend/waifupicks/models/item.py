"""
WaifuPicks Backend — Item SQLAlchemy Model
============================================

What:  ORM model for the ledger table: one row per tracked item.
Who:   Used by LedgerService for reads and upserts, and by Alembic.

Table Design:
    - id: Client-supplied opaque identifier, primary key. Addressing items
      by key is what lets a vote use a native upsert instead of a
      read-then-insert pair.
    - image_url / source: Opaque display and provenance strings, written on
      creation only.
    - wins / losses: Non-negative counters (CHECK constraints).

    The table name comes from COLLECTION_NAME (default "Waifus").
"""

from typing import Optional

from sqlalchemy import CheckConstraint, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from waifupicks.config import settings
from waifupicks.database import Base

# Counter columns a vote may target
COUNTER_FIELDS = ("wins", "losses")

# Width of the id and source columns; request schemas enforce the same bound
MAX_KEY_LENGTH = 255


class Item(Base):
    """
    A tracked item and its cumulative comparison record.

    Lifecycle:
        1. Created on the first recorded outcome naming its id
        2. Counters adjusted on every later outcome it takes part in
        3. Never deleted by the API
    """

    __tablename__ = settings.collection_name

    id: Mapped[str] = mapped_column(
        String(MAX_KEY_LENGTH),
        primary_key=True,
        comment="Client-supplied stable identifier",
    )

    image_url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Display reference, opaque to the backend",
    )

    # Nullable: rows created by the earliest clients carry no provenance
    source: Mapped[Optional[str]] = mapped_column(
        String(MAX_KEY_LENGTH),
        nullable=True,
        default=None,
        comment="Provenance tag, opaque to the backend",
    )

    wins: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    losses: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    __table_args__ = (
        CheckConstraint("wins >= 0", name="ck_items_wins_non_negative"),
        CheckConstraint("losses >= 0", name="ck_items_losses_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<Item(id='{self.id}', wins={self.wins}, losses={self.losses})>"
