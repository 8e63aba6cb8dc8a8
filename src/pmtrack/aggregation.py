"""Running averages of PM measurements between reporting flushes."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from .frames import Measurement


@dataclass(frozen=True)
class Report:
    """Averaged window ready to be sent."""

    average_pm25: float
    average_pm10: float
    samples: int


@dataclass
class AggregationWindow:
    sum_pm25: float = 0.0
    sum_pm10: float = 0.0
    count: int = 0
    window_start: float = 0.0


class Aggregator:
    """
    Accumulates measurements until ``flush`` turns them into a Report.

    Windowing is by elapsed time only and is driven by the scheduler. The
    accumulate/flush pair is not thread-safe: if sampling and reporting ever
    run concurrently, flush must become an atomic swap of the window.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.window = AggregationWindow(window_start=clock())

    def accumulate(self, measurement: Measurement) -> None:
        self.window.sum_pm25 += measurement.pm25
        self.window.sum_pm10 += measurement.pm10
        self.window.count += 1

    def flush(self) -> Optional[Report]:
        window = self.window
        if window.count == 0:
            return None
        report = Report(
            average_pm25=window.sum_pm25 / window.count,
            average_pm10=window.sum_pm10 / window.count,
            samples=window.count,
        )
        self.window = AggregationWindow(window_start=self._clock())
        return report

    @property
    def pending(self) -> int:
        return self.window.count
