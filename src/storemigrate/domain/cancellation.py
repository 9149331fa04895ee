"""Cooperative cancellation shared by import services and stage handlers."""

from __future__ import annotations

import asyncio

from storemigrate.domain.errors import PipelineCancelled


class CancellationToken:
    """Set once; checked before every persistence call."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancellation requested") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise PipelineCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()
