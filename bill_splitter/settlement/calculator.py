"""
Settlement Calculator

Pure functions turning (items, share grid, participants, tax amount) into
one PersonSummary per participant, in roster order.

    subtotal[p]  = Σ_items shares[item][p] × item.unit_price
    tax_share[p] = subtotal[p] / Σ subtotal × tax_amount   (0 if Σ subtotal == 0)
    final[p]     = subtotal[p] + tax_share[p]

Tax shares are left unrounded so that Σ tax_share reconstructs tax_amount;
rounding to cents is a presentation concern.
"""

from decimal import Decimal
from typing import Iterable, Sequence

from bill_splitter.models.bill import Item, Participant, PersonSummary
from bill_splitter.settlement.rounding import ZERO, Number, to_decimal


def _share(shares: Sequence[Sequence[Number]], item_index: int, participant_index: int) -> Decimal:
    # Missing rows/cells count as nothing assigned
    if item_index >= len(shares):
        return ZERO
    row = shares[item_index]
    if participant_index >= len(row):
        return ZERO
    return to_decimal(row[participant_index])


def calculate_subtotals(
    items: Sequence[Item],
    shares: Sequence[Sequence[Number]],
    participant_count: int,
) -> list[Decimal]:
    """Each participant's spend before tax, in roster order."""
    return [
        sum(
            (_share(shares, i, p) * item.unit_price for i, item in enumerate(items)),
            ZERO,
        )
        for p in range(participant_count)
    ]


def allocate_tax(subtotals: Sequence[Decimal], tax_amount: Number) -> list[Decimal]:
    """
    Split tax_amount proportionally to subtotals.

    When nobody has spent anything the tax is not distributable and every
    share is zero.
    """
    tax = to_decimal(tax_amount)
    total = sum(subtotals, ZERO)
    if total == ZERO:
        return [ZERO for _ in subtotals]
    return [(subtotal / total) * tax for subtotal in subtotals]


def calculate_person_summaries(
    items: Sequence[Item],
    shares: Sequence[Sequence[Number]],
    participants: Sequence[Participant],
    tax_amount: Number,
) -> list[PersonSummary]:
    """Per-participant subtotal, tax share and final total, in roster order."""
    subtotals = calculate_subtotals(items, shares, len(participants))
    tax_shares = allocate_tax(subtotals, tax_amount)

    return [
        PersonSummary(
            participant=participant,
            subtotal=subtotal,
            tax_share=tax_share,
            final_total=subtotal + tax_share,
        )
        for participant, subtotal, tax_share in zip(participants, subtotals, tax_shares)
    ]


def grand_total(summaries: Iterable[PersonSummary]) -> Decimal:
    """Sum of everyone's final totals."""
    return sum((s.final_total for s in summaries), ZERO)
