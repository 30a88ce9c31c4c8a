"""Simulated payment gateway.

Implements PaymentOutcomePort with a seedable random source and DelayPort
with asyncio sleeps. Nothing here talks to a real payment provider.
"""

import asyncio
import logging
import random

from storefront.core.ports import DelayPort, PaymentOutcomePort

logger = logging.getLogger(__name__)


class RandomPaymentOutcome(PaymentOutcomePort):
    """Draws each payment outcome from a uniform random number."""

    def __init__(self, seed: int | None = None):
        """Initialize the outcome source.

        Args:
            seed: Fixes the sequence of outcomes when set, for reproducible runs.
        """
        self._random = random.Random(seed)

    def succeeds(self, probability: float) -> bool:
        if not 0.0 <= probability <= 1.0:
            raise ValueError(f"probability must be between 0 and 1, got {probability}")
        draw = self._random.random()
        logger.debug(f"Payment draw {draw:.3f} against {probability}")
        return draw < probability


class AsyncioDelay(DelayPort):
    """Simulates gateway latency with asyncio.sleep."""

    async def wait(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))
