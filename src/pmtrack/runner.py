from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import serial
from serial.tools import list_ports

from .aggregation import Aggregator
from .config import SamplerConfig
from .errors import EndOfStream
from .frames import FrameDecoder, FrameSynchronizer
from .reporting import Reporter
from .scheduler import ReportScheduler, SamplerStats

logger = logging.getLogger(__name__)

DEFAULT_PORT = "/dev/ttyUSB0"


@dataclass
class SerialSettings:
    port: str
    baudrate: int = 9600
    timeout: Optional[float] = None


def discover_ports() -> List[Tuple[str, str]]:
    """Return ``(device, description)`` for every serial port pyserial can see."""
    return [(info.device, info.description) for info in sorted(list_ports.comports())]


def default_port() -> str:
    ports = discover_ports()
    return ports[0][0] if ports else DEFAULT_PORT


class SamplerHost:
    """Owns the serial port and HTTP session for one sampling run."""

    def __init__(
        self,
        settings: SerialSettings,
        config: SamplerConfig,
        *,
        samples: Optional[int] = None,
        api_key: str = "",
        verbose: bool = False,
    ):
        self.settings = settings
        self.config = config
        self.samples = samples
        self.api_key = api_key
        self.verbose = verbose

    def run(self) -> SamplerStats:
        if self.settings.port == "-":
            return self._run_from_stream()

        logger.info("Attempting to connect to %s at %d", self.settings.port, self.settings.baudrate)
        handle = self._open_serial()
        logger.info("Is connected %s", handle.is_open)
        try:
            return self._sample(handle)
        finally:
            handle.close()

    def _run_from_stream(self) -> SamplerStats:
        return self._sample(sys.stdin.buffer, stop_at_eof=True)

    def _sample(self, stream: Any, stop_at_eof: bool = False) -> SamplerStats:
        synchronizer = FrameSynchronizer(stream)
        decoder = FrameDecoder(verbose=self.verbose)
        reporter = self._build_reporter()
        scheduler = ReportScheduler(
            synchronizer,
            decoder,
            Aggregator(),
            reporter,
            samples=self.samples,
            sample_interval=self.config.sample_interval_sec,
            report_interval=self.config.report_interval_sec,
        )
        try:
            return scheduler.run()
        except EndOfStream:
            if not stop_at_eof:
                raise
            logger.info("Reached end of input stream")
            return scheduler.stats
        finally:
            if reporter is not None:
                reporter.close()
            stats = scheduler.stats
            logger.info(
                "Final stats: samples=%d measurements=%d checksum_errors=%d other_frames=%d "
                "skipped_bytes=%d reports=%d sent=%d failed=%d",
                stats.samples,
                stats.measurements,
                stats.checksum_errors,
                stats.other_frames,
                synchronizer.stats()["skipped_bytes"],
                stats.reports,
                stats.reports_sent,
                stats.reports_failed,
            )

    def _build_reporter(self) -> Optional[Reporter]:
        if not self.api_key:
            logger.info("No ThingSpeak API key configured, averages will only be logged")
            return None
        return Reporter(
            self.api_key,
            url=self.config.endpoint_url,
            timeout=self.config.request_timeout_sec,
        )

    def _open_serial(self):
        return serial.Serial(
            port=self.settings.port,
            baudrate=self.settings.baudrate,
            timeout=self.settings.timeout,
        )
