"""Fake ConfirmationPort implementation for testing."""

import asyncio

from storefront.core.ports import ConfirmationPort


class FakeConfirmation(ConfirmationPort):
    """Answers prompts from a script, approving by default.

    With ``block=True`` every prompt waits forever, which lets tests
    cancel a checkout while it is waiting for approval.
    """

    def __init__(self, *answers: bool, default: bool = True, block: bool = False):
        self.answers = list(answers)
        self.default = default
        self.block = block
        self.prompts: list[tuple[str, str]] = []
        self.prompted = asyncio.Event()

    async def confirm(self, title: str, message: str) -> bool:
        self.prompts.append((title, message))
        self.prompted.set()
        if self.block:
            await asyncio.Event().wait()
        if self.answers:
            return self.answers.pop(0)
        return self.default
