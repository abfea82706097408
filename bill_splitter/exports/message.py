"""
Share Message Export

Renders a settled split as a chat message people can forward to the group.
Amounts are rounded to cents here, for display only.
"""

from decimal import Decimal
from typing import Sequence
from urllib.parse import quote

from bill_splitter.models.bill import PersonSummary
from bill_splitter.settlement.calculator import grand_total
from bill_splitter.settlement.rounding import round2

WHATSAPP_SHARE_URL = "https://wa.me/?text="


def format_currency(amount: Decimal, currency_symbol: str = "₹") -> str:
    """12.345 -> '₹12.35'."""
    return f"{currency_symbol}{round2(amount):,.2f}"


def build_share_message(
    summaries: Sequence[PersonSummary],
    currency_symbol: str = "₹",
) -> str:
    """Plain-text (WhatsApp-flavoured markdown) summary of who owes what."""
    lines = ["🧾 *Bill Split Summary*", ""]

    for summary in summaries:
        lines.append(f"👤 *{summary.participant.name}*")
        lines.append(f"   Subtotal: {format_currency(summary.subtotal, currency_symbol)}")
        lines.append(f"   Tax/Tip: {format_currency(summary.tax_share, currency_symbol)}")
        lines.append(f"   *Total: {format_currency(summary.final_total, currency_symbol)}*")
        lines.append("")

    total = format_currency(grand_total(summaries), currency_symbol)
    lines.append(f"💰 *Grand Total: {total}*")

    return "\n".join(lines)


def build_whatsapp_url(message: str) -> str:
    """Link that opens WhatsApp with the message pre-filled."""
    return WHATSAPP_SHARE_URL + quote(message, safe="")
