"""Stdout notification adapter.

Implements NotificationPort by printing checkout messages to the terminal
with human-readable formatting.
"""

import asyncio
import logging

from storefront.core.models import CheckoutMessage, MessageKind
from storefront.core.ports import NotificationPort

logger = logging.getLogger(__name__)

_MARKERS = {
    MessageKind.INFO: "[..]",
    MessageKind.SUCCESS: "[OK]",
    MessageKind.FAILURE: "[!!]",
    MessageKind.ERROR: "[ERROR]",
}


class StdoutNotificationAdapter(NotificationPort):
    """Prints checkout messages to stdout."""

    def __init__(self, verbose: bool = False, width: int = 60):
        """Initialize stdout notification adapter.

        Args:
            verbose: If True, include the message kind and order id in output.
            width: Width of the separator rules.
        """
        self.verbose = verbose
        self.width = width

    async def notify(self, message: CheckoutMessage) -> None:
        """Show one checkout message."""
        await asyncio.to_thread(print, self.format_message(message))
        logger.debug(
            f"Displayed {message.kind.value} message",
            extra={"title": message.title, "order_id": message.order_id},
        )

    def format_message(self, message: CheckoutMessage) -> str:
        lines = [
            "=" * self.width,
            f"{_MARKERS[message.kind]} {message.title}",
            "-" * self.width,
            message.body,
        ]
        if self.verbose:
            lines.append("")
            lines.append(f"Kind: {message.kind.value.upper()}")
            if message.order_id is not None:
                lines.append(f"Order: #{message.order_id}")
        lines.append("=" * self.width)
        return "\n".join(lines)
