"""
Assignment Validator

Answers one question: has every unit of every item been given to someone?

    unassigned(i)        = quantity(i) - Σ shares[i][*]     (negative = over-assigned)
    fully_assigned(i)    = |unassigned(i)| < 0.01
    all_assigned()       = every item fully assigned

The validator works on a snapshot of the session and never caches: the
session builds a fresh one for every query, so the answer always reflects
the latest share edit. The tolerance absorbs the noise of 2-decimal shares
(e.g. three people taking 0.33 of one item).
"""

from decimal import Decimal
from typing import Sequence

from bill_splitter.models.bill import (
    AssignmentReport,
    AssignmentStatus,
    Item,
    ItemAssignmentStatus,
)
from bill_splitter.settlement.errors import IndexOutOfRangeError
from bill_splitter.settlement.rounding import ASSIGNMENT_EPSILON, ZERO, Number, to_decimal


class AssignmentValidator:
    """Completeness checks over a ledger and its share grid."""

    def __init__(
        self,
        items: Sequence[Item],
        shares: Sequence[Sequence[Number]],
        epsilon: Decimal = ASSIGNMENT_EPSILON,
    ):
        self._items = items
        self._shares = shares
        self._epsilon = epsilon

    def _check_index(self, item_index: int) -> None:
        if not 0 <= item_index < len(self._items):
            raise IndexOutOfRangeError("item", item_index, len(self._items))

    def assigned_quantity(self, item_index: int) -> Decimal:
        """Sum of all participants' shares of one item."""
        self._check_index(item_index)
        row = self._shares[item_index] if item_index < len(self._shares) else ()
        return sum((to_decimal(v) for v in row), ZERO)

    def unassigned_quantity(self, item_index: int) -> Decimal:
        """Quantity not yet given to anyone; negative when over-assigned."""
        assigned = self.assigned_quantity(item_index)
        return self._items[item_index].quantity - assigned

    def is_fully_assigned(self, item_index: int) -> bool:
        return abs(self.unassigned_quantity(item_index)) < self._epsilon

    def is_all_assigned(self) -> bool:
        """True when every item is fully assigned (vacuously true with no items)."""
        return all(self.is_fully_assigned(i) for i in range(len(self._items)))

    def _status(self, assigned: Decimal, unassigned: Decimal) -> AssignmentStatus:
        if abs(unassigned) < self._epsilon:
            return AssignmentStatus.COMPLETE
        if unassigned < ZERO:
            return AssignmentStatus.OVER_ASSIGNED
        if assigned == ZERO:
            return AssignmentStatus.UNASSIGNED
        return AssignmentStatus.PARTIAL

    def report(self) -> AssignmentReport:
        """Per-item assignment progress."""
        statuses = []
        for i, item in enumerate(self._items):
            assigned = self.assigned_quantity(i)
            unassigned = item.quantity - assigned
            statuses.append(ItemAssignmentStatus(
                item=item,
                assigned=assigned,
                unassigned=unassigned,
                status=self._status(assigned, unassigned),
            ))

        return AssignmentReport(
            items=statuses,
            all_assigned=all(s.status == AssignmentStatus.COMPLETE for s in statuses),
        )

    @staticmethod
    def get_user_friendly_summary(report: AssignmentReport) -> str:
        """
        Explain what is left to assign.

        This is what the assignment page shows under the share table.
        """
        if report.all_assigned:
            return "✅ All items are fully assigned."

        lines = ["⚠️ Some items still need to be assigned:"]
        for status in report.incomplete_items:
            name = status.item.name
            if status.status == AssignmentStatus.OVER_ASSIGNED:
                lines.append(
                    f"   • {name}: over-assigned by {abs(status.unassigned):.2f}"
                )
            else:
                lines.append(
                    f"   • {name}: {status.unassigned:.2f} of "
                    f"{status.item.quantity:.2f} unassigned"
                )
        return "\n".join(lines)
