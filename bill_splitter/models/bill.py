"""
Core Data Models for Bill Splitter

These models define the schemas for everything that flows between the
extraction service, the settlement engine and the front end.

All money and quantities are Decimal. Participants and items carry a stable
UUID so share assignments can be keyed by identity rather than by position.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class SessionStage(str, Enum):
    """
    Where a bill session is in the split workflow.

    EMPTY → ITEMS_LOADED → PEOPLE_ADDED → SHARES_IN_PROGRESS
          → FULLY_ASSIGNED → SETTLED

    The stage is always derived from session state; "start over" returns
    the session to EMPTY.
    """
    EMPTY = "empty"
    ITEMS_LOADED = "items_loaded"
    PEOPLE_ADDED = "people_added"
    SHARES_IN_PROGRESS = "shares_in_progress"
    FULLY_ASSIGNED = "fully_assigned"
    SETTLED = "settled"


class AssignmentStatus(str, Enum):
    """Assignment state of a single item."""
    UNASSIGNED = "unassigned"        # nothing assigned yet
    PARTIAL = "partial"              # some quantity still unassigned
    COMPLETE = "complete"            # within tolerance of the item quantity
    OVER_ASSIGNED = "over_assigned"  # more assigned than the item quantity


# =============================================================================
# ROSTER AND LEDGER
# =============================================================================

class Participant(BaseModel):
    """A person sharing the bill."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable participant identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name, unique within a roster (case-insensitive)"
    )

    @property
    def name_key(self) -> str:
        """Key used for duplicate detection."""
        return self.name.casefold()


class Item(BaseModel):
    """
    A billable line item.

    Produced by the extraction service (or typed in by the user) and frozen
    once built. The engine only requires quantity and unit price to be
    strictly positive.
    """

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable item identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Item name as printed on the bill"
    )
    quantity: Decimal = Field(
        ...,
        gt=0,
        description="Number of units on the bill"
    )
    unit_price: Decimal = Field(
        ...,
        gt=0,
        description="Price of one unit"
    )

    @property
    def line_total(self) -> Decimal:
        """quantity × unit price."""
        return self.quantity * self.unit_price


# =============================================================================
# SETTLEMENT OUTPUT
# =============================================================================

class PersonSummary(BaseModel):
    """
    What one participant owes.

    Derived from session state on every read; never stored.
    tax_share is unrounded so the shares add up to the tax amount.
    """

    model_config = ConfigDict(frozen=True)

    participant: Participant
    subtotal: Decimal
    tax_share: Decimal
    final_total: Decimal


class ItemAssignmentStatus(BaseModel):
    """Assignment progress of one item."""

    model_config = ConfigDict(frozen=True)

    item: Item
    assigned: Decimal = Field(
        ...,
        description="Sum of all participants' shares of this item"
    )
    unassigned: Decimal = Field(
        ...,
        description="quantity - assigned; negative when over-assigned"
    )
    status: AssignmentStatus


class AssignmentReport(BaseModel):
    """Assignment progress of the whole ledger."""

    model_config = ConfigDict(frozen=True)

    items: list[ItemAssignmentStatus] = Field(default_factory=list)
    all_assigned: bool

    @property
    def incomplete_items(self) -> list[ItemAssignmentStatus]:
        """Items that still need attention."""
        return [
            s for s in self.items
            if s.status != AssignmentStatus.COMPLETE
        ]


# =============================================================================
# EXTRACTION MODELS
# =============================================================================

class ImageUpload(BaseModel):
    """Represents an uploaded bill photo before extraction."""

    upload_id: UUID = Field(
        default_factory=uuid4,
        description="Unique upload identifier"
    )
    uploaded_at: datetime = Field(
        default_factory=_utcnow
    )
    original_filename: str
    file_size_bytes: int = Field(ge=0)
    mime_type: str

    @field_validator('mime_type')
    @classmethod
    def validate_mime_type(cls, v: str) -> str:
        """Only allow image types."""
        v = v.strip().lower()
        if not v.startswith("image/"):
            raise ValueError(f"Only image files are allowed, got: {v}")
        return v


class ExtractionResult(BaseModel):
    """
    Line items read off a bill photo.

    These are PROPOSED items: the user may edit them before they are
    loaded into a session.
    """

    extraction_id: UUID = Field(
        default_factory=uuid4,
        description="Unique ID for this extraction attempt"
    )
    processed_at: datetime = Field(
        default_factory=_utcnow,
        description="When extraction was performed"
    )
    file_name: Optional[str] = None
    mode: str = Field(
        default="gemini-vision",
        description="How the items were obtained"
    )
    items: list[Item] = Field(default_factory=list)
    truncated: bool = Field(
        default=False,
        description="Model output was cut off; the bill may have more items"
    )

    @property
    def total_amount(self) -> Decimal:
        """Sum of all line totals."""
        return sum((item.line_total for item in self.items), Decimal("0"))
