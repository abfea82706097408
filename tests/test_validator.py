"""
Tests for AssignmentValidator.
"""

import pytest
from decimal import Decimal

from bill_splitter.models.bill import AssignmentStatus, Item
from bill_splitter.settlement import IndexOutOfRangeError
from bill_splitter.validation import AssignmentValidator


def make_item(name: str, quantity: str, unit_price: str = "1.00") -> Item:
    return Item(name=name, quantity=Decimal(quantity), unit_price=Decimal(unit_price))


class TestAssignmentValidator:
    """Completeness checks over a share grid."""

    def test_unassigned_quantity(self):
        validator = AssignmentValidator(
            [make_item("Soda", "3")],
            [[Decimal("2"), Decimal("0.5")]],
        )
        assert validator.assigned_quantity(0) == Decimal("2.5")
        assert validator.unassigned_quantity(0) == Decimal("0.5")
        assert not validator.is_fully_assigned(0)

    def test_within_tolerance_counts_as_assigned(self):
        """A shortfall below one cent is rounding noise."""
        validator = AssignmentValidator([make_item("Cake", "1")], [["0.995", "0"]])
        assert validator.is_fully_assigned(0)

    def test_one_cent_short_is_not_assigned(self):
        """The tolerance is strict: exactly 0.01 left is still unassigned."""
        validator = AssignmentValidator([make_item("Cake", "1")], [["0.33", "0.33", "0.33"]])
        assert validator.unassigned_quantity(0) == Decimal("0.01")
        assert not validator.is_fully_assigned(0)

    def test_empty_ledger_is_all_assigned(self):
        assert AssignmentValidator([], []).is_all_assigned()

    def test_bad_index(self):
        validator = AssignmentValidator([make_item("Soda", "3")], [[1]])
        with pytest.raises(IndexOutOfRangeError):
            validator.unassigned_quantity(1)
        with pytest.raises(IndexOutOfRangeError):
            validator.assigned_quantity(-1)

    def test_report_statuses(self):
        items = [
            make_item("Pizza", "2"),
            make_item("Soda", "3"),
            make_item("Tea", "1"),
            make_item("Cake", "1"),
        ]
        shares = [[1, 1], [1, 0], [0, 0], [1, 1]]

        report = AssignmentValidator(items, shares).report()

        assert [s.status for s in report.items] == [
            AssignmentStatus.COMPLETE,
            AssignmentStatus.PARTIAL,
            AssignmentStatus.UNASSIGNED,
            AssignmentStatus.OVER_ASSIGNED,
        ]
        assert report.all_assigned is False
        assert report.items[3].unassigned == Decimal("-1")

    def test_friendly_summary_when_done(self):
        report = AssignmentValidator([make_item("Tea", "1")], [[1]]).report()
        assert AssignmentValidator.get_user_friendly_summary(report) == (
            "✅ All items are fully assigned."
        )

    def test_friendly_summary_lists_problems(self):
        items = [make_item("Soda", "3"), make_item("Cake", "1")]
        report = AssignmentValidator(items, [[1, 0], [2, 0]]).report()

        summary = AssignmentValidator.get_user_friendly_summary(report)

        assert "Soda: 2.00 of 3.00 unassigned" in summary
        assert "Cake: over-assigned by 1.00" in summary


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
