"""
Share Matrix

Maps (item, participant) → assigned quantity.

Cells are keyed by the stable ids of the item and the participant. Row and
column order come from the ordered id lists the matrix keeps in step with
the session's ledger and roster, so the positional grid handed to the UI is
a projection and can never drift out of shape: it always has one row per
item and one column per participant.
"""

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from bill_splitter.settlement.errors import IndexOutOfRangeError, NotFoundError
from bill_splitter.settlement.rounding import ZERO, Number, clamp_non_negative


class ShareMatrix:
    """
    Quantity of each item assigned to each participant.

    Every write goes through clamp_non_negative(); there is no upper bound,
    over-assignment is reported by the validator instead.
    """

    def __init__(
        self,
        item_ids: Iterable[UUID] = (),
        participant_ids: Iterable[UUID] = (),
    ):
        self._item_ids: list[UUID] = list(item_ids)
        self._participant_ids: list[UUID] = list(participant_ids)
        self._cells: dict[tuple[UUID, UUID], Decimal] = {}

    # -------------------------------------------------------------------------
    # Shape
    # -------------------------------------------------------------------------

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, columns) == (items, participants)."""
        return len(self._item_ids), len(self._participant_ids)

    def add_column(self, participant_id: UUID) -> int:
        """Append a zero column for a new participant; returns its position."""
        if participant_id in self._participant_ids:
            raise ValueError(f"Participant {participant_id} already has a column")
        self._participant_ids.append(participant_id)
        return len(self._participant_ids) - 1

    def remove_column(self, participant_id: UUID) -> int:
        """
        Drop a participant's column; later columns shift left.

        Returns the position the column occupied.
        """
        position = self.participant_position(participant_id)
        del self._participant_ids[position]
        for item_id in self._item_ids:
            self._cells.pop((item_id, participant_id), None)
        return position

    def reset_rows(self, item_ids: Iterable[UUID]) -> None:
        """Replace all rows with zero rows for the given items."""
        self._item_ids = list(item_ids)
        self._cells.clear()

    def clear(self) -> None:
        """Drop every row and column."""
        self._item_ids = []
        self._participant_ids = []
        self._cells.clear()

    # -------------------------------------------------------------------------
    # Index translation
    # -------------------------------------------------------------------------

    def item_position(self, item_id: UUID) -> int:
        try:
            return self._item_ids.index(item_id)
        except ValueError:
            raise NotFoundError("item", item_id) from None

    def participant_position(self, participant_id: UUID) -> int:
        try:
            return self._participant_ids.index(participant_id)
        except ValueError:
            raise NotFoundError("participant", participant_id) from None

    def _ids_at(self, item_index: int, participant_index: int) -> tuple[UUID, UUID]:
        rows, cols = self.shape
        # Negative indices are stale indices too, not Python-style offsets
        if not 0 <= item_index < rows:
            raise IndexOutOfRangeError("item", item_index, rows)
        if not 0 <= participant_index < cols:
            raise IndexOutOfRangeError("participant", participant_index, cols)
        return self._item_ids[item_index], self._participant_ids[participant_index]

    # -------------------------------------------------------------------------
    # Cells
    # -------------------------------------------------------------------------

    def get(self, item_index: int, participant_index: int) -> Decimal:
        key = self._ids_at(item_index, participant_index)
        return self._cells.get(key, ZERO)

    def set(self, item_index: int, participant_index: int, value: Number) -> Decimal:
        """Store max(0, round2(value)) and return the stored value."""
        key = self._ids_at(item_index, participant_index)
        stored = clamp_non_negative(value)
        self._cells[key] = stored
        return stored

    def set_by_id(self, item_id: UUID, participant_id: UUID, value: Number) -> Decimal:
        return self.set(
            self.item_position(item_id),
            self.participant_position(participant_id),
            value,
        )

    def row(self, item_index: int) -> tuple[Decimal, ...]:
        rows, _ = self.shape
        if not 0 <= item_index < rows:
            raise IndexOutOfRangeError("item", item_index, rows)
        item_id = self._item_ids[item_index]
        return tuple(
            self._cells.get((item_id, pid), ZERO)
            for pid in self._participant_ids
        )

    def row_sum(self, item_index: int) -> Decimal:
        return sum(self.row(item_index), ZERO)

    def is_zero(self) -> bool:
        """True when nothing has been assigned to anyone."""
        return all(v == ZERO for v in self._cells.values())

    def snapshot(self) -> tuple[tuple[Decimal, ...], ...]:
        """Positional copy of the grid: snapshot()[item][participant]."""
        return tuple(self.row(i) for i in range(len(self._item_ids)))
