"""Published result holder shared with readers."""

from __future__ import annotations

from regimescan.domain.models import CycleResult, Regime


class ResultBoard:
    """Latest published cycle result.

    Each publish replaces the whole result in one assignment, so readers
    see either the previous result or the new one, never a mix.
    """

    def __init__(self) -> None:
        self._current: CycleResult | None = None
        self._publish_count = 0

    def publish(self, result: CycleResult) -> None:
        self._current = result
        self._publish_count += 1

    @property
    def current(self) -> CycleResult | None:
        return self._current

    @property
    def regime(self) -> Regime | None:
        current = self._current
        return current.regime if current is not None else None

    @property
    def publish_count(self) -> int:
        return self._publish_count
