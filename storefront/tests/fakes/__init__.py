"""Fake implementations of core ports for testing.

These in-memory implementations allow core domain logic to be tested
without real randomness, waiting, or a terminal:

- FakePaymentOutcome: Scripted payment draws
- FakeDelay: Records requested delays without sleeping
- FakeConfirmation: Scripted (or blocking) approval prompts
- FakeNotificationPort: Captured checkout messages for assertion
- FakeOrderStore: In-memory store with injectable failures
"""

from .notification import FakeNotificationPort
from .payment import FakeDelay, FakePaymentOutcome
from .prompt import FakeConfirmation
from .store import FakeOrderStore

__all__ = [
    "FakeConfirmation",
    "FakeDelay",
    "FakeNotificationPort",
    "FakeOrderStore",
    "FakePaymentOutcome",
]
