"""Console confirmation adapters.

Implements ConfirmationPort for the interactive shell and for
non-interactive runs.
"""

import asyncio
import logging

from storefront.core.ports import ConfirmationPort

logger = logging.getLogger(__name__)

APPROVE_ANSWERS = frozenset({"y", "yes", "confirm"})


class ConsoleConfirmation(ConfirmationPort):
    """Asks the shopper to confirm on stdin.

    Any answer other than yes/confirm counts as a decline. End of input
    also declines.
    """

    async def confirm(self, title: str, message: str) -> bool:
        prompt = f"\n{title}\n{message}\nConfirm? [y/N] "
        try:
            answer = await asyncio.to_thread(input, prompt)
        except EOFError:
            logger.info("Confirmation input closed, treating as decline")
            return False
        return answer.strip().lower() in APPROVE_ANSWERS


class AutoApproveConfirmation(ConfirmationPort):
    """Approves every prompt without asking."""

    async def confirm(self, title: str, message: str) -> bool:
        logger.debug(f"Auto-approving confirmation: {title}")
        return True
