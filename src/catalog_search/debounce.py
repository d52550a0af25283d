"""Cancellation tokens and keystroke debouncing for search attempts."""

from __future__ import annotations

import asyncio
import itertools

_token_ids = itertools.count(1)


class CancellationToken:
    """Marks one search attempt; cancelling it invalidates the attempt."""

    def __init__(self) -> None:
        self.id = next(_token_ids)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self._cancelled else "active"
        return f"CancellationToken(id={self.id}, {state})"


class Debouncer:
    """Issues one token per attempt and lets only the latest one through.

    Every ``issue()`` cancels the previously issued token, so a burst of
    keystrokes leaves a single live attempt once input goes quiet.
    """

    def __init__(self, delay_seconds: float) -> None:
        self._delay = delay_seconds
        self._current: CancellationToken | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def current(self) -> CancellationToken | None:
        return self._current

    def issue(self) -> CancellationToken:
        if self._current is not None:
            self._current.cancel()
        self._current = CancellationToken()
        return self._current

    def cancel(self) -> None:
        if self._current is not None:
            self._current.cancel()

    def is_current(self, token: CancellationToken) -> bool:
        return token is self._current and not token.cancelled

    async def settle(self, token: CancellationToken) -> bool:
        """Wait out the quiet period; return False if the token was superseded."""

        if self._delay > 0:
            await asyncio.sleep(self._delay)
        return self.is_current(token)
