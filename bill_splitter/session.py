"""
Bill Session

The single owner of a split: roster, ledger, share matrix and tax amount.
All mutation goes through the methods below; everything read out of the
session is an immutable snapshot.

Sizing invariant: the share grid always has len(items) rows of
len(participants) cells. It is re-established inside the same locked call
that changes either collection.

Mutations run under one re-entrant lock, so two Streamlit script threads
editing different cells of the same session cannot interleave. Audit
events are logged while the lock is held, so the history lists mutations
in the order they happened.
"""

from decimal import ROUND_DOWN, Decimal
from threading import RLock
from typing import Iterable, Optional
from uuid import UUID, uuid4

from bill_splitter.audit import AuditLogger
from bill_splitter.models.audit import AuditEventBuilder
from bill_splitter.models.bill import (
    AssignmentReport,
    Item,
    Participant,
    PersonSummary,
    SessionStage,
)
from bill_splitter.settlement.calculator import calculate_person_summaries, grand_total
from bill_splitter.settlement.errors import (
    DuplicateNameError,
    IndexOutOfRangeError,
    SessionStateError,
)
from bill_splitter.settlement.matrix import ShareMatrix
from bill_splitter.settlement.rounding import (
    CENT,
    ZERO,
    Number,
    clamp_non_negative,
)
from bill_splitter.validation import AssignmentValidator


class BillSession:
    """
    One bill being split.

    Usage:
        session = BillSession()
        session.replace_items(extraction.items)
        alice = session.add_participant("Alice")
        bob = session.add_participant("Bob")
        session.set_share(0, 0, 1)
        ...
        if session.is_all_assigned():
            summaries = session.settle()
    """

    def __init__(
        self,
        audit_logger: Optional[AuditLogger] = None,
        min_participants: int = 2,
    ):
        self.session_id: UUID = uuid4()
        self._audit = audit_logger or AuditLogger(correlation_id=self.session_id)
        self._min_participants = min_participants
        self._lock = RLock()

        self._participants: list[Participant] = []
        self._items: list[Item] = []
        self._matrix = ShareMatrix()
        self._tax_amount: Decimal = ZERO.quantize(CENT)
        self._settled = False

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def audit(self) -> AuditLogger:
        return self._audit

    @property
    def participants(self) -> tuple[Participant, ...]:
        with self._lock:
            return tuple(self._participants)

    @property
    def items(self) -> tuple[Item, ...]:
        with self._lock:
            return tuple(self._items)

    @property
    def tax_amount(self) -> Decimal:
        with self._lock:
            return self._tax_amount

    @property
    def min_participants(self) -> int:
        return self._min_participants

    def shares_snapshot(self) -> tuple[tuple[Decimal, ...], ...]:
        """Positional copy of the grid: shares_snapshot()[item][participant]."""
        with self._lock:
            return self._matrix.snapshot()

    def get_share(self, item_index: int, participant_index: int) -> Decimal:
        with self._lock:
            return self._matrix.get(item_index, participant_index)

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def add_participant(self, name: str) -> Participant:
        """
        Add a person to the roster.

        Raises:
            ValueError: name is blank
            DuplicateNameError: name matches an existing one, ignoring
                                case and surrounding whitespace
        """
        trimmed = (name or "").strip()
        if not trimmed:
            raise ValueError("Please enter a name")

        with self._lock:
            key = trimmed.casefold()
            if any(p.name_key == key for p in self._participants):
                self._audit.log(AuditEventBuilder.duplicate_name_rejected(trimmed))
                raise DuplicateNameError(trimmed)

            participant = Participant(name=trimmed)
            self._matrix.add_column(participant.id)
            self._participants.append(participant)
            self._settled = False
            self._audit.log(AuditEventBuilder.participant_added(participant.id, participant.name))

        return participant

    def remove_participant(self, participant_id: UUID) -> Participant:
        """
        Remove a person and their column of shares.

        Raises:
            NotFoundError: no participant has this id
        """
        with self._lock:
            position = self._matrix.remove_column(participant_id)
            participant = self._participants.pop(position)
            self._settled = False
            self._audit.log(AuditEventBuilder.participant_removed(
                participant.id, participant.name, position,
            ))

        return participant

    def participant_index(self, participant_id: UUID) -> int:
        with self._lock:
            return self._matrix.participant_position(participant_id)

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def replace_items(self, new_items: Iterable[Item]) -> None:
        """
        Load a new list of items and start assignment over.

        Every existing share is discarded; the grid becomes
        len(new_items) × len(participants) zeros.
        """
        items = list(new_items)
        if len({item.id for item in items}) != len(items):
            raise ValueError("Each item may only appear once")
        with self._lock:
            discarded = bool(self._items) and not self._matrix.is_zero()
            self._items = items
            self._matrix.reset_rows(item.id for item in items)
            self._settled = False
            self._audit.log(AuditEventBuilder.items_replaced(len(items), discarded))

    def item_index(self, item_id: UUID) -> int:
        with self._lock:
            return self._matrix.item_position(item_id)

    # -------------------------------------------------------------------------
    # Shares and tax
    # -------------------------------------------------------------------------

    def _require_assignable(self) -> None:
        if len(self._participants) < self._min_participants:
            raise SessionStateError(
                f"Add at least {self._min_participants} people before assigning shares",
                stage=self._stage().value,
            )

    def set_share(self, item_index: int, participant_index: int, value: Number) -> Decimal:
        """
        Set how much of an item a participant had.

        Stores max(0, round2(value)) and returns the stored value.
        Over-assignment is allowed here and reported by the validator.

        Raises:
            IndexOutOfRangeError: stale item or participant index
            SessionStateError: fewer than min_participants people
        """
        with self._lock:
            self._require_assignable()
            stored = self._matrix.set(item_index, participant_index, value)
            item_id = self._items[item_index].id
            participant_id = self._participants[participant_index].id
            self._settled = False
            self._audit.log(AuditEventBuilder.share_updated(item_id, participant_id, str(stored)))

        return stored

    def set_share_by_id(self, item_id: UUID, participant_id: UUID, value: Number) -> Decimal:
        """
        Same as set_share() but addressed by stable ids.

        Raises:
            NotFoundError: unknown item or participant id
        """
        with self._lock:
            return self.set_share(
                self._matrix.item_position(item_id),
                self._matrix.participant_position(participant_id),
                value,
            )

    def split_item_equally(self, item_index: int) -> tuple[Decimal, ...]:
        """
        Give every participant an equal share of one item.

        Shares are rounded down to cents; what rounding leaves over goes to
        the first participant so the row adds up to the item quantity.
        """
        with self._lock:
            self._require_assignable()
            if not 0 <= item_index < len(self._items):
                raise IndexOutOfRangeError("item", item_index, len(self._items))

            quantity = self._items[item_index].quantity
            count = len(self._participants)
            base = (quantity / count).quantize(CENT, rounding=ROUND_DOWN)
            first = quantity - base * (count - 1)

            for p in range(count):
                self.set_share(item_index, p, first if p == 0 else base)
            return self._matrix.row(item_index)

    def set_tax_amount(self, value: Number) -> Decimal:
        """Set the bill-wide tax/tip; stored as max(0, round2(value))."""
        stored = clamp_non_negative(value)
        with self._lock:
            self._tax_amount = stored
            self._settled = False
            self._audit.log(AuditEventBuilder.tax_updated(str(stored)))

        return stored

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def _validator(self) -> AssignmentValidator:
        return AssignmentValidator(tuple(self._items), self._matrix.snapshot())

    def unassigned_quantity(self, item_index: int) -> Decimal:
        with self._lock:
            return self._validator().unassigned_quantity(item_index)

    def is_fully_assigned(self, item_index: int) -> bool:
        with self._lock:
            return self._validator().is_fully_assigned(item_index)

    def is_all_assigned(self) -> bool:
        with self._lock:
            return self._validator().is_all_assigned()

    def assignment_report(self) -> AssignmentReport:
        with self._lock:
            return self._validator().report()

    # -------------------------------------------------------------------------
    # Settlement
    # -------------------------------------------------------------------------

    def summaries(self) -> list[PersonSummary]:
        """Current per-person totals, whatever the stage."""
        with self._lock:
            return calculate_person_summaries(
                tuple(self._items),
                self._matrix.snapshot(),
                tuple(self._participants),
                self._tax_amount,
            )

    def settle(self) -> list[PersonSummary]:
        """
        Produce the final split.

        Raises:
            SessionStateError: unless every item is fully assigned
        """
        with self._lock:
            stage = self._stage()
            if stage not in (SessionStage.FULLY_ASSIGNED, SessionStage.SETTLED):
                raise SessionStateError(
                    "All items must be fully assigned before settling",
                    stage=stage.value,
                )
            summaries = self.summaries()
            self._settled = True
            self._audit.log(AuditEventBuilder.bill_settled(
                len(summaries), str(grand_total(summaries)),
            ))

        return summaries

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _stage(self) -> SessionStage:
        if not self._items:
            return SessionStage.EMPTY
        if len(self._participants) < self._min_participants:
            return SessionStage.ITEMS_LOADED
        if self._matrix.is_zero():
            return SessionStage.PEOPLE_ADDED
        if not self._validator().is_all_assigned():
            return SessionStage.SHARES_IN_PROGRESS
        if self._settled:
            return SessionStage.SETTLED
        return SessionStage.FULLY_ASSIGNED

    @property
    def stage(self) -> SessionStage:
        with self._lock:
            return self._stage()

    def reset(self) -> None:
        """Start over: roster, ledger, shares and tax are all cleared."""
        with self._lock:
            self._participants = []
            self._items = []
            self._matrix.clear()
            self._tax_amount = ZERO.quantize(CENT)
            self._settled = False
            self._audit.log(AuditEventBuilder.session_reset())
