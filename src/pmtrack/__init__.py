"""SDS011 particulate sensor sampling and ThingSpeak reporting."""

from importlib.metadata import PackageNotFoundError, version

from .aggregation import Aggregator, Report
from .errors import EndOfStream, ProtocolViolation, ReportDeliveryFailed, StreamError
from .frames import ChecksumInvalid, FrameDecoder, FrameSynchronizer, Measurement, NotAMeasurementFrame
from .reporting import Reporter
from .scheduler import ReportScheduler, SamplerStats

try:  # pragma: no cover - fallback when package metadata missing
    __version__ = version("pmtrack")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "Aggregator",
    "Report",
    "EndOfStream",
    "ProtocolViolation",
    "ReportDeliveryFailed",
    "StreamError",
    "ChecksumInvalid",
    "FrameDecoder",
    "FrameSynchronizer",
    "Measurement",
    "NotAMeasurementFrame",
    "Reporter",
    "ReportScheduler",
    "SamplerStats",
]
