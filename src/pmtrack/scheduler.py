from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .aggregation import Aggregator
from .frames import ChecksumInvalid, FrameDecoder, FrameSynchronizer, Measurement
from .reporting import Reporter

logger = logging.getLogger(__name__)

SAMPLE_INTERVAL_SEC = 3.0
REPORT_INTERVAL_SEC = 60.0


class SchedulerState(str, enum.Enum):
    RUNNING_UNBOUNDED = "running_unbounded"
    RUNNING_BOUNDED = "running_bounded"
    STOPPED = "stopped"


@dataclass
class SamplerStats:
    samples: int = 0
    measurements: int = 0
    checksum_errors: int = 0
    other_frames: int = 0
    reports: int = 0
    reports_sent: int = 0
    reports_failed: int = 0


class ReportScheduler:
    """
    Sampling loop: read a frame, decode it, accumulate, flush on a timer.

    ``samples`` of None or 0 runs until the stream fails or the process is
    interrupted; a positive value stops after that many frames. Every frame
    read counts against the budget, whatever it decodes to. Whatever is left
    in the window when a bounded run stops is dropped, not flushed.
    """

    def __init__(
        self,
        synchronizer: FrameSynchronizer,
        decoder: FrameDecoder,
        aggregator: Aggregator,
        reporter: Optional[Reporter] = None,
        *,
        samples: Optional[int] = None,
        sample_interval: float = SAMPLE_INTERVAL_SEC,
        report_interval: float = REPORT_INTERVAL_SEC,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if samples is not None and samples < 0:
            raise ValueError("samples must be a non-negative integer")
        self.synchronizer = synchronizer
        self.decoder = decoder
        self.aggregator = aggregator
        self.reporter = reporter
        self.sample_interval = sample_interval
        self.report_interval = report_interval
        self._clock = clock
        self._sleep = sleep
        self.remaining = samples or 0
        self.state = (
            SchedulerState.RUNNING_BOUNDED if self.remaining > 0 else SchedulerState.RUNNING_UNBOUNDED
        )
        self.stats = SamplerStats()

    def run(self) -> SamplerStats:
        last_flush = self._clock()
        while self.state is not SchedulerState.STOPPED:
            self._sample()
            now = self._clock()
            if now - last_flush >= self.report_interval:
                self._flush()
                last_flush = now
            if self.state is SchedulerState.RUNNING_BOUNDED:
                self.remaining -= 1
                if self.remaining <= 0:
                    self.state = SchedulerState.STOPPED
                    break
            self._sleep(self.sample_interval)
        if self.aggregator.pending:
            logger.debug("Dropping partial window of %d samples", self.aggregator.pending)
        return self.stats

    def _sample(self) -> None:
        frame = self.synchronizer.next_frame()
        result = self.decoder.decode(frame)
        self.stats.samples += 1
        if isinstance(result, Measurement):
            self.aggregator.accumulate(result)
            self.stats.measurements += 1
        elif isinstance(result, ChecksumInvalid):
            self.stats.checksum_errors += 1
        else:
            self.stats.other_frames += 1

    def _flush(self) -> None:
        report = self.aggregator.flush()
        if report is None:
            logger.debug("Nothing to report this window")
            return
        self.stats.reports += 1
        logger.info(
            "Average over %d samples: PM2.5 %.2f PM10 %.2f",
            report.samples,
            report.average_pm25,
            report.average_pm10,
        )
        if self.reporter is None:
            return
        if self.reporter.send(report):
            self.stats.reports_sent += 1
        else:
            self.stats.reports_failed += 1
