"""Export helpers for settled bills."""

from bill_splitter.exports.message import (
    build_share_message,
    build_whatsapp_url,
    format_currency,
)

__all__ = ["build_share_message", "build_whatsapp_url", "format_currency"]
