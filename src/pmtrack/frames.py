from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Union

from .errors import EndOfStream, ProtocolViolation, StreamError


FRAME_MARKER = 0xAA
FRAME_LENGTH = 19
KIND_QUERY_DATA = 0xC0

HEX_DUMP_BYTES = 10


@dataclass(frozen=True)
class Measurement:
    pm25: float
    pm10: float


@dataclass(frozen=True)
class ChecksumInvalid:
    expected: int
    actual: int


@dataclass(frozen=True)
class NotAMeasurementFrame:
    kind: int


DecodeResult = Union[Measurement, ChecksumInvalid, NotAMeasurementFrame]


def checksum(frame: bytes) -> int:
    """Low 8 bits of the sum of the PM and device-id bytes (offsets 2..7)."""
    return sum(frame[2:8]) & 0xFF


class FrameSynchronizer:
    """
    Pull 19-byte frames off a blocking byte stream.

    The stream only needs ``read(n)``. Bytes are consumed one at a time until
    the 0xAA marker shows up, then the remaining 18 bytes are read in one go.
    There is no escaping in the sensor protocol, so a marker inside a
    misaligned frame is accepted and the next call simply re-scans.
    """

    def __init__(self, stream: Any):
        self.stream = stream
        self._stats: Dict[str, int] = {"frames": 0, "skipped_bytes": 0}
        self._log = logging.getLogger(__name__)

    def next_frame(self) -> bytes:
        while True:
            byte = self._read(1)
            if not byte:
                raise EndOfStream("Stream closed while waiting for frame marker")
            if byte[0] == FRAME_MARKER:
                break
            self._stats["skipped_bytes"] += 1
        body = self._read(FRAME_LENGTH - 1)
        if len(body) != FRAME_LENGTH - 1:
            raise StreamError(
                f"Short read: expected {FRAME_LENGTH - 1} bytes after marker, got {len(body)}"
            )
        self._stats["frames"] += 1
        return bytes([FRAME_MARKER]) + bytes(body)

    def _read(self, size: int) -> bytes:
        try:
            return self.stream.read(size)
        except (OSError, ValueError) as exc:
            raise StreamError(f"Serial read failed: {exc}") from exc

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)


class FrameDecoder:
    """Validate candidate frames and turn query-data responses into measurements."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self._stats: Dict[str, int] = {"frames": 0, "checksum_errors": 0, "other_frames": 0}
        self._log = logging.getLogger(__name__)

    def decode(self, frame: bytes) -> DecodeResult:
        if len(frame) != FRAME_LENGTH or frame[0] != FRAME_MARKER:
            raise ProtocolViolation(
                f"Frame must be {FRAME_LENGTH} bytes starting with 0x{FRAME_MARKER:02X}, "
                f"got {bytes(frame[:2]).hex().upper() or 'nothing'} ({len(frame)} bytes)"
            )
        if self.verbose:
            self._log.debug("Packet %s", bytes(frame[:HEX_DUMP_BYTES]).hex(" ").upper())

        kind = frame[1]
        if kind != KIND_QUERY_DATA:
            self._stats["other_frames"] += 1
            self._log.debug("Ignoring frame of kind 0x%02X", kind)
            return NotAMeasurementFrame(kind=kind)

        expected = frame[8]
        actual = checksum(frame)
        if actual != expected:
            self._stats["checksum_errors"] += 1
            self._log.warning(
                "Invalid query packet (checksum expected=%02X, actual=%02X)", expected, actual
            )
            return ChecksumInvalid(expected=expected, actual=actual)

        pm25 = (frame[3] << 8 | frame[2]) / 10.0
        pm10 = (frame[5] << 8 | frame[4]) / 10.0
        self._stats["frames"] += 1
        self._log.info("PM2.5 %.1f\tPM10 %.1f", pm25, pm10)
        return Measurement(pm25=pm25, pm10=pm10)

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)
