"""Saga-style compensation for writes spread over storage and the database.

Each completed side effect registers an undo step. When a later step fails
the undo steps run newest-first; every undo is retried a few times and its
own failure is only logged, so the original error is what propagates.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List

LOGGER = logging.getLogger(__name__)

UndoAction = Callable[[], Awaitable[object]]


@dataclass
class _Compensation:
    description: str
    action: UndoAction


class CompensationLog:
    """Collect undo steps and run them on failure.

    Undo actions must be idempotent because they may be retried.

    Args:
        retries: Extra attempts per undo action after the first failure.
        retry_delay: Base delay in seconds between attempts (grows linearly).
    """

    def __init__(self, retries: int = 2, retry_delay: float = 0.2) -> None:
        self.retries = retries
        self.retry_delay = retry_delay
        self._steps: List[_Compensation] = []

    def register(self, description: str, action: UndoAction) -> None:
        self._steps.append(_Compensation(description, action))

    def discard(self) -> None:
        """Forget all undo steps once the unit of work is committed."""
        self._steps.clear()

    async def compensate(self) -> bool:
        """Run undo steps newest-first. Returns True when all of them succeeded."""
        all_ok = True
        while self._steps:
            step = self._steps.pop()
            if not await self._run(step):
                all_ok = False
        return all_ok

    async def _run(self, step: _Compensation) -> bool:
        for attempt in range(1, self.retries + 2):
            try:
                await step.action()
                LOGGER.info("Compensation succeeded: %s", step.description)
                return True
            except Exception as exc:  # pylint: disable=broad-exception-caught
                LOGGER.warning(
                    "Compensation attempt %d failed (%s): %s", attempt, step.description, exc
                )
                if attempt <= self.retries:
                    await asyncio.sleep(self.retry_delay * attempt)
        LOGGER.error("Compensation gave up: %s", step.description)
        return False
