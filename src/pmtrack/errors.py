from __future__ import annotations

from typing import Optional


class PmtrackError(Exception):
    """Base class for errors raised by pmtrack."""


class StreamError(PmtrackError):
    """The serial stream failed or was closed while reading a frame."""


class EndOfStream(StreamError):
    """The stream ended cleanly between frames."""


class ProtocolViolation(PmtrackError):
    """A frame reached the decoder without the 0xAA marker at offset 0."""


class ReportDeliveryFailed(PmtrackError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
