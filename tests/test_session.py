"""
Tests for BillSession: roster, ledger, shares, stages and settlement.
"""

import threading
import pytest
from decimal import Decimal
from uuid import uuid4

from bill_splitter.audit import AuditLogger
from bill_splitter.models.audit import AuditEventType
from bill_splitter.models.bill import AssignmentStatus, Item, SessionStage
from bill_splitter.session import BillSession
from bill_splitter.settlement import (
    DuplicateNameError,
    IndexOutOfRangeError,
    NotFoundError,
    SessionStateError,
    round2,
)


def make_item(name: str, quantity: str, unit_price: str) -> Item:
    return Item(name=name, quantity=Decimal(quantity), unit_price=Decimal(unit_price))


@pytest.fixture
def session():
    return BillSession()


@pytest.fixture
def dinner(session):
    """Pizza × 2 at 10.00 and Soda × 3 at 2.00, shared by Alice and Bob."""
    session.replace_items([
        make_item("Pizza", "2", "10.00"),
        make_item("Soda", "3", "2.00"),
    ])
    session.add_participant("Alice")
    session.add_participant("Bob")
    return session


def assert_grid_matches(session: BillSession):
    grid = session.shares_snapshot()
    assert len(grid) == len(session.items)
    assert all(len(row) == len(session.participants) for row in grid)


class TestRoster:
    """Adding and removing participants."""

    def test_add_participant(self, session):
        alice = session.add_participant("  Alice ")
        assert alice.name == "Alice"
        assert session.participants == (alice,)

    def test_blank_name_rejected(self, session):
        with pytest.raises(ValueError, match="Please enter a name"):
            session.add_participant("   ")
        assert session.participants == ()

    def test_duplicate_name_rejected(self, session):
        """Duplicates are detected ignoring case and surrounding spaces."""
        session.add_participant("Alice")
        with pytest.raises(DuplicateNameError):
            session.add_participant("  alice ")
        assert len(session.participants) == 1
        assert session.audit.events_of_type(AuditEventType.DUPLICATE_NAME_REJECTED)

    def test_remove_participant_keeps_other_shares(self, session):
        """Shares [2, 3, 5] become [2, 5] when the middle person leaves."""
        session.replace_items([make_item("Nachos", "10", "1.00")])
        session.add_participant("A")
        bob = session.add_participant("B")
        carol = session.add_participant("C")
        session.set_share(0, 0, 2)
        session.set_share(0, 1, 3)
        session.set_share(0, 2, 5)

        removed = session.remove_participant(bob.id)

        assert removed == bob
        assert session.shares_snapshot() == ((Decimal("2"), Decimal("5")),)
        assert session.participant_index(carol.id) == 1

    def test_remove_unknown_participant(self, session):
        with pytest.raises(NotFoundError):
            session.remove_participant(uuid4())

    def test_grid_tracks_every_change(self, session):
        """The grid always has len(items) rows of len(participants) cells."""
        assert_grid_matches(session)
        alice = session.add_participant("Alice")
        assert_grid_matches(session)
        session.replace_items([make_item("Pizza", "1", "10"), make_item("Soda", "1", "2")])
        assert_grid_matches(session)
        session.add_participant("Bob")
        assert_grid_matches(session)
        session.remove_participant(alice.id)
        assert_grid_matches(session)
        session.replace_items([make_item("Tea", "1", "1")])
        assert_grid_matches(session)
        session.reset()
        assert_grid_matches(session)


class TestLedger:
    """Replacing the item list."""

    def test_replace_items_discards_shares(self, dinner):
        dinner.set_share(0, 0, 1)
        dinner.replace_items([make_item("Tea", "2", "1.50")])
        assert dinner.shares_snapshot() == ((Decimal("0"), Decimal("0")),)
        event = dinner.audit.events_of_type(AuditEventType.ITEMS_REPLACED)[-1]
        assert event.details["discarded_assignments"] is True

    def test_replace_items_rejects_repeated_item(self, session):
        tea = make_item("Tea", "1", "1")
        with pytest.raises(ValueError):
            session.replace_items([tea, tea])
        assert session.items == ()

    def test_item_index(self, dinner):
        soda = dinner.items[1]
        assert dinner.item_index(soda.id) == 1
        with pytest.raises(NotFoundError):
            dinner.item_index(uuid4())


class TestShares:
    """Setting shares and tax."""

    def test_negative_share_clamped(self, dinner):
        assert dinner.set_share(0, 0, -5) == Decimal("0.00")

    def test_share_rounded_half_up(self, dinner):
        assert dinner.set_share(0, 0, 1.005) == Decimal("1.01")
        assert dinner.get_share(0, 0) == Decimal("1.01")

    def test_stale_index_rejected(self, dinner):
        """Out-of-range writes fail and leave the grid untouched."""
        before = dinner.shares_snapshot()
        with pytest.raises(IndexOutOfRangeError):
            dinner.set_share(2, 0, 1)
        with pytest.raises(IndexOutOfRangeError):
            dinner.set_share(0, 2, 1)
        assert dinner.shares_snapshot() == before

    def test_needs_two_people(self, session):
        session.replace_items([make_item("Pizza", "1", "10")])
        session.add_participant("Alice")
        with pytest.raises(SessionStateError):
            session.set_share(0, 0, 1)
        with pytest.raises(SessionStateError):
            session.split_item_equally(0)

    def test_set_share_by_id_survives_removal(self, dinner):
        """Id addressing lands on the right cell after the roster shifts."""
        dinner.add_participant("Carol")
        alice, bob, carol = dinner.participants
        pizza = dinner.items[0]
        dinner.remove_participant(alice.id)

        dinner.set_share_by_id(pizza.id, carol.id, 2)

        assert dinner.get_share(0, 1) == Decimal("2.00")
        assert dinner.get_share(0, 0) == Decimal("0")

    def test_over_assignment_allowed_but_reported(self, dinner):
        assert dinner.set_share(0, 0, 5) == Decimal("5.00")
        assert dinner.unassigned_quantity(0) == Decimal("-3.00")
        assert not dinner.is_fully_assigned(0)
        report = dinner.assignment_report()
        assert report.items[0].status == AssignmentStatus.OVER_ASSIGNED

    def test_split_item_equally(self, dinner):
        """Cents left over by an equal split go to the first person."""
        dinner.add_participant("Carol")
        dinner.replace_items([make_item("Cake", "1", "9.00")])
        row = dinner.split_item_equally(0)
        assert row == (Decimal("0.34"), Decimal("0.33"), Decimal("0.33"))
        assert dinner.is_fully_assigned(0)

    def test_split_item_equally_bad_index(self, dinner):
        with pytest.raises(IndexOutOfRangeError):
            dinner.split_item_equally(5)

    def test_tax_clamped(self, session):
        assert session.set_tax_amount(-4) == Decimal("0.00")
        assert session.set_tax_amount("6.005") == Decimal("6.01")
        assert session.tax_amount == Decimal("6.01")

    def test_huge_tax_rejected(self, session):
        """A value too large to round is a ValueError and changes nothing."""
        with pytest.raises(ValueError):
            session.set_tax_amount(1e30)
        assert session.tax_amount == Decimal("0.00")


class TestStages:
    """The derived workflow stage."""

    def test_walk_through_stages(self, session):
        assert session.stage == SessionStage.EMPTY

        session.replace_items([make_item("Pizza", "2", "10.00")])
        assert session.stage == SessionStage.ITEMS_LOADED

        session.add_participant("Alice")
        session.add_participant("Bob")
        assert session.stage == SessionStage.PEOPLE_ADDED

        session.set_share(0, 0, 1)
        assert session.stage == SessionStage.SHARES_IN_PROGRESS

        session.set_share(0, 1, 1)
        assert session.stage == SessionStage.FULLY_ASSIGNED

        session.settle()
        assert session.stage == SessionStage.SETTLED

        session.set_tax_amount(5)
        assert session.stage == SessionStage.FULLY_ASSIGNED

        session.reset()
        assert session.stage == SessionStage.EMPTY

    def test_settle_requires_full_assignment(self, dinner):
        dinner.set_share(0, 0, 1)
        with pytest.raises(SessionStateError) as exc_info:
            dinner.settle()
        assert exc_info.value.stage == SessionStage.SHARES_IN_PROGRESS.value

    def test_reading_settled_summaries_logs_one_settlement(self, dinner):
        """After settling, summaries() reads totals without settling again."""
        dinner.split_item_equally(0)
        dinner.split_item_equally(1)
        settled = dinner.settle()

        for _ in range(3):
            assert dinner.stage == SessionStage.SETTLED
            assert dinner.summaries() == settled

        assert len(dinner.audit.events_of_type(AuditEventType.BILL_SETTLED)) == 1

    def test_reset_from_unsettled_session(self, dinner):
        dinner.set_share(0, 0, 1)
        assert dinner.stage == SessionStage.SHARES_IN_PROGRESS
        dinner.reset()
        assert dinner.stage == SessionStage.EMPTY

    def test_reset_clears_everything(self, dinner):
        dinner.set_share(0, 0, 1)
        dinner.set_tax_amount(3)
        dinner.reset()
        assert dinner.items == ()
        assert dinner.participants == ()
        assert dinner.shares_snapshot() == ()
        assert dinner.tax_amount == Decimal("0.00")


class TestConcurrentEdits:
    """Several threads editing one session."""

    def test_parallel_set_share_loses_no_writes(self):
        """Each thread owns one column; every cell ends up written."""
        item_count, people, rounds = 20, 4, 20
        session = BillSession(audit_logger=AuditLogger(max_history=item_count * people * rounds + 100))
        session.replace_items([make_item(f"Item {i}", "4", "1.00") for i in range(item_count)])
        for p in range(people):
            session.add_participant(f"Person {p}")
        start = threading.Barrier(people)
        errors = []

        def assign(column: int):
            start.wait()
            try:
                for _ in range(rounds):
                    for i in range(item_count):
                        session.set_share(i, column, 1)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=assign, args=(p,)) for p in range(people)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert_grid_matches(session)
        assert all(v == Decimal("1.00") for row in session.shares_snapshot() for v in row)
        assert session.is_all_assigned()
        updates = session.audit.events_of_type(AuditEventType.SHARE_UPDATED)
        assert len(updates) == item_count * people * rounds

    def test_audit_history_follows_mutation_order(self, dinner):
        dinner.set_share(0, 0, 1)
        dinner.set_tax_amount(2)
        bob = dinner.participants[1]
        dinner.remove_participant(bob.id)
        recent = [e.event_type for e in dinner.audit.history[-3:]]
        assert recent == [
            AuditEventType.SHARE_UPDATED,
            AuditEventType.TAX_UPDATED,
            AuditEventType.PARTICIPANT_REMOVED,
        ]


class TestEndToEnd:
    """A full split from items to settlement."""

    def test_pizza_and_soda(self, dinner):
        dinner.set_share(0, 0, 1)
        dinner.set_share(0, 1, 1)
        dinner.set_share(1, 0, 2)
        dinner.set_share(1, 1, 1)
        dinner.set_tax_amount(6)

        assert dinner.is_all_assigned()
        assert dinner.unassigned_quantity(0) == 0
        assert dinner.unassigned_quantity(1) == 0

        alice, bob = dinner.settle()

        assert alice.subtotal == Decimal("14.00")
        assert bob.subtotal == Decimal("12.00")
        assert round2(alice.tax_share) == Decimal("3.23")
        assert round2(bob.tax_share) == Decimal("2.77")
        assert round2(alice.final_total) == Decimal("17.23")
        assert round2(bob.final_total) == Decimal("14.77")
        assert dinner.stage == SessionStage.SETTLED
        assert dinner.audit.events_of_type(AuditEventType.BILL_SETTLED)

    def test_audit_events_share_session_correlation(self, dinner):
        """Session events are stamped with the session id."""
        assert dinner.audit.history
        assert all(e.correlation_id == dinner.session_id for e in dinner.audit.history)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
