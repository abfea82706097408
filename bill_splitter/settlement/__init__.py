"""Settlement engine: rounding policy, share matrix and calculator."""

from bill_splitter.settlement.calculator import (
    allocate_tax,
    calculate_person_summaries,
    calculate_subtotals,
    grand_total,
)
from bill_splitter.settlement.errors import (
    BillSplitError,
    DuplicateNameError,
    IndexOutOfRangeError,
    NotFoundError,
    SessionStateError,
)
from bill_splitter.settlement.matrix import ShareMatrix
from bill_splitter.settlement.rounding import (
    ASSIGNMENT_EPSILON,
    clamp_non_negative,
    round2,
    to_decimal,
)

__all__ = [
    "ASSIGNMENT_EPSILON",
    "BillSplitError",
    "DuplicateNameError",
    "IndexOutOfRangeError",
    "NotFoundError",
    "SessionStateError",
    "ShareMatrix",
    "allocate_tax",
    "calculate_person_summaries",
    "calculate_subtotals",
    "clamp_non_negative",
    "grand_total",
    "round2",
    "to_decimal",
]
