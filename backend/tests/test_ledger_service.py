"""
WaifuPicks Backend — Ledger Service Unit Tests
================================================

What:  Tests for LedgerService against an in-memory SQLite ledger.
How:   Each step runs in its own committed session; rows are read back
       directly to check counters. Storage failures use a mock session.

What we test:
    ✅ Fresh ids are created with counters seeded from field/operation
    ✅ Existing ids move by exactly one, other fields untouched
    ✅ Replays double-count
    ✅ Decrement of an unknown id creates an all-zero row
    ✅ Decrement never drops a counter below zero
    ✅ All-or-nothing validation across both participants
    ✅ Strict single update: NotFoundError and no row created
    ✅ Driver errors surface as DatabaseError
    ✅ Writes are committed before the service call returns
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from waifupicks.exceptions import DatabaseError, NotFoundError, ValidationError
from waifupicks.schemas.item import CompareRequest, Participant
from waifupicks.services.ledger_service import LedgerService


def make(item_id, field="wins", operation="increment", source="anilist", image_url=None):
    return Participant(
        id=item_id,
        image_url=image_url or f"https://img.example/{item_id}.png",
        source=source,
        field=field,
        operation=operation,
    )


class TestRecordOutcome:
    """Pairwise upsert protocol."""

    def setup_method(self):
        self.service = LedgerService()

    @pytest.mark.asyncio
    async def test_empty_ledger_creates_both_items(self, database, fetch_items):
        async with database.session() as db:
            await self.service.record_outcome(
                db=db,
                winner=make("a", "wins", "increment", source="s", image_url="u1"),
                loser=make("b", "losses", "increment", source="s", image_url="u2"),
            )

        items = await fetch_items()
        assert set(items) == {"a", "b"}
        assert (items["a"].wins, items["a"].losses) == (1, 0)
        assert (items["b"].wins, items["b"].losses) == (0, 1)
        assert items["a"].image_url == "u1"
        assert items["b"].image_url == "u2"
        assert items["a"].source == "s"

    @pytest.mark.asyncio
    async def test_existing_items_move_by_one(self, database, seed_items, fetch_items):
        await seed_items(("a", 3, 2), ("b", 5, 7))

        async with database.session() as db:
            await self.service.record_outcome(
                db=db,
                winner=make("a", "wins", "increment", image_url="changed"),
                loser=make("b", "losses", "increment", source="changed"),
            )

        items = await fetch_items()
        assert (items["a"].wins, items["a"].losses) == (4, 2)
        assert (items["b"].wins, items["b"].losses) == (5, 8)
        # Creation-time fields are never rewritten by a vote
        assert items["a"].image_url == "https://img.example/a.png"
        assert items["b"].source == "seed"

    @pytest.mark.asyncio
    async def test_decrement_existing_items(self, database, seed_items, fetch_items):
        await seed_items(("a", 3, 2), ("b", 5, 7))

        async with database.session() as db:
            await self.service.record_outcome(
                db=db,
                winner=make("a", "wins", "decrement"),
                loser=make("b", "losses", "decrement"),
            )

        items = await fetch_items()
        assert (items["a"].wins, items["a"].losses) == (2, 2)
        assert (items["b"].wins, items["b"].losses) == (5, 6)

    @pytest.mark.asyncio
    async def test_replaying_an_outcome_double_counts(self, database, fetch_items):
        for _ in range(2):
            async with database.session() as db:
                await self.service.record_outcome(
                    db=db,
                    winner=make("a", "wins"),
                    loser=make("b", "losses"),
                )

        items = await fetch_items()
        assert items["a"].wins == 2
        assert items["b"].losses == 2
        assert len(items) == 2

    @pytest.mark.asyncio
    async def test_decrement_of_unknown_id_creates_zeroed_item(self, database, fetch_items):
        async with database.session() as db:
            await self.service.record_outcome(
                db=db,
                winner=make("a", "wins", "decrement"),
                loser=make("b", "losses", "increment"),
            )

        items = await fetch_items()
        assert (items["a"].wins, items["a"].losses) == (0, 0)
        assert (items["b"].wins, items["b"].losses) == (0, 1)

    @pytest.mark.asyncio
    async def test_decrement_floors_at_zero(self, database, seed_items, fetch_items):
        await seed_items(("a", 0, 4), ("b", 1, 0))

        async with database.session() as db:
            await self.service.record_outcome(
                db=db,
                winner=make("a", "wins", "decrement"),
                loser=make("b", "losses", "decrement"),
            )

        items = await fetch_items()
        assert (items["a"].wins, items["a"].losses) == (0, 4)
        assert (items["b"].wins, items["b"].losses) == (1, 0)

    @pytest.mark.asyncio
    async def test_invalid_loser_rejects_whole_outcome(self, database, fetch_items):
        loser = make("b", "losses").model_copy(update={"source": None})

        with pytest.raises(ValidationError) as exc_info:
            async with database.session() as db:
                await self.service.record_outcome(db=db, winner=make("a"), loser=loser)

        assert exc_info.value.field == "loser.source"
        assert await fetch_items() == {}

    @pytest.mark.asyncio
    async def test_invalid_winner_field_rejects_whole_outcome(self, database, seed_items, fetch_items):
        await seed_items(("b", 0, 0))
        winner = make("a").model_copy(update={"field": "draws"})

        with pytest.raises(ValidationError) as exc_info:
            async with database.session() as db:
                await self.service.record_outcome(db=db, winner=winner, loser=make("b", "losses"))

        assert exc_info.value.field == "winner.field"
        items = await fetch_items()
        assert set(items) == {"b"}
        assert items["b"].losses == 0

    @pytest.mark.asyncio
    async def test_loser_failure_rolls_back_winner(self, database, fetch_items, monkeypatch):
        real_upsert = self.service._upsert

        async def flaky_upsert(db, participant):
            if participant.id == "b":
                raise OperationalError("INSERT", {}, Exception("connection lost"))
            await real_upsert(db, participant)

        monkeypatch.setattr(self.service, "_upsert", flaky_upsert)

        with pytest.raises(DatabaseError):
            async with database.session() as db:
                await self.service.record_outcome(db=db, winner=make("a"), loser=make("b", "losses"))

        assert await fetch_items() == {}

    @pytest.mark.asyncio
    async def test_database_failure_raises_database_error(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("INSERT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.record_outcome(
                db=mock_db_session,
                winner=make("a"),
                loser=make("b", "losses"),
            )

    @pytest.mark.asyncio
    async def test_outcome_is_committed_before_returning(self, mock_db_session):
        await self.service.record_outcome(
            db=mock_db_session,
            winner=make("a"),
            loser=make("b", "losses"),
        )

        assert mock_db_session.execute.await_count == 2
        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_failure_raises_database_error(self, mock_db_session):
        mock_db_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk full"))

        with pytest.raises(DatabaseError):
            await self.service.record_outcome(
                db=mock_db_session,
                winner=make("a"),
                loser=make("b", "losses"),
            )

    @pytest.mark.asyncio
    async def test_compare_participant_without_image_is_stored_empty(self, database, fetch_items):
        outcome = CompareRequest(winner={"id": "a"}, loser={"id": "b"}).to_outcome()

        async with database.session() as db:
            await self.service.record_outcome(db=db, winner=outcome.winner, loser=outcome.loser)

        items = await fetch_items()
        assert (items["a"].image_url, items["a"].source, items["a"].wins) == ("", "", 1)
        assert (items["b"].image_url, items["b"].losses) == ("", 1)


class TestUpdateSingle:
    """Legacy strict single-counter update."""

    def setup_method(self):
        self.service = LedgerService()

    @pytest.mark.asyncio
    async def test_increment_existing(self, database, seed_items, fetch_items):
        await seed_items(("a", 1, 1))

        async with database.session() as db:
            await self.service.update_single(db=db, item_id="a", field="losses", operation="increment")

        items = await fetch_items()
        assert (items["a"].wins, items["a"].losses) == (1, 2)

    @pytest.mark.asyncio
    async def test_decrement_existing(self, database, seed_items, fetch_items):
        await seed_items(("a", 3, 0))

        async with database.session() as db:
            await self.service.update_single(db=db, item_id="a", field="wins", operation="decrement")

        items = await fetch_items()
        assert items["a"].wins == 2

    @pytest.mark.asyncio
    async def test_unknown_id_raises_not_found_without_creating(self, database, fetch_items):
        with pytest.raises(NotFoundError):
            async with database.session() as db:
                await self.service.update_single(db=db, item_id="ghost", field="wins", operation="increment")

        assert await fetch_items() == {}

    @pytest.mark.asyncio
    async def test_unknown_operation_rejected(self, database, seed_items, fetch_items):
        await seed_items(("a", 1, 1))

        with pytest.raises(ValidationError):
            async with database.session() as db:
                await self.service.update_single(db=db, item_id="a", field="wins", operation="double")

        assert (await fetch_items())["a"].wins == 1

    @pytest.mark.asyncio
    async def test_update_is_committed_before_returning(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=1)

        await self.service.update_single(db=mock_db_session, item_id="a", field="wins", operation="increment")

        mock_db_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_found_is_not_committed(self, mock_db_session):
        mock_db_session.execute.return_value = MagicMock(rowcount=0)

        with pytest.raises(NotFoundError):
            await self.service.update_single(db=mock_db_session, item_id="ghost", field="wins", operation="increment")

        mock_db_session.commit.assert_not_awaited()


class TestListItems:

    def setup_method(self):
        self.service = LedgerService()

    @pytest.mark.asyncio
    async def test_empty(self, database):
        async with database.session() as db:
            assert await self.service.list_items(db=db) == []

    @pytest.mark.asyncio
    async def test_one_entry_per_id_after_mixed_calls(self, database):
        async with database.session() as db:
            await self.service.record_outcome(db=db, winner=make("a"), loser=make("b", "losses"))
        async with database.session() as db:
            await self.service.record_outcome(db=db, winner=make("b"), loser=make("c", "losses"))
        async with database.session() as db:
            await self.service.update_single(db=db, item_id="a", field="losses", operation="increment")

        async with database.session() as db:
            listed = await self.service.list_items(db=db)

        by_id = {item.id: item for item in listed}
        assert len(listed) == 3
        assert (by_id["a"].wins, by_id["a"].losses) == (1, 1)
        assert (by_id["b"].wins, by_id["b"].losses) == (1, 1)
        assert (by_id["c"].wins, by_id["c"].losses) == (0, 1)

    @pytest.mark.asyncio
    async def test_database_failure_raises_database_error(self, mock_db_session):
        mock_db_session.execute.side_effect = OperationalError("SELECT", {}, Exception("down"))

        with pytest.raises(DatabaseError):
            await self.service.list_items(db=mock_db_session)
