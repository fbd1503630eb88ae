from __future__ import annotations

import time
from typing import Callable, Optional


class CooldownStore:
    """Remembers, per key, until when a repeat notification is suppressed."""

    def __init__(
        self, cooldown_seconds: float, *, clock: Callable[[], float] = time.time
    ) -> None:
        self._cooldown_seconds = float(cooldown_seconds)
        self._clock = clock
        self._until: dict[str, float] = {}

    @property
    def cooldown_seconds(self) -> float:
        return self._cooldown_seconds

    def should_notify(self, key: str, now: Optional[float] = None) -> bool:
        if not key:
            return False
        now_ts = float(now if now is not None else self._clock())
        until = self._until.get(key, 0.0)
        if now_ts < until:
            return False
        self._until[key] = now_ts + self._cooldown_seconds
        return True

    def reset(self, key: Optional[str] = None) -> None:
        if key is None:
            self._until.clear()
        else:
            self._until.pop(key, None)
