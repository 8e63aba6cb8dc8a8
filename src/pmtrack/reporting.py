"""Best-effort delivery of averaged reports to ThingSpeak."""
from __future__ import annotations

import logging
from typing import Dict, Optional

import requests

from .aggregation import Report
from .errors import ReportDeliveryFailed

logger = logging.getLogger(__name__)

THINGSPEAK_UPDATE_URL = "https://api.thingspeak.com/update.json"


def format_value(value: float) -> str:
    # repr() is locale independent and round-trips the float
    return repr(float(value))


def build_payload(report: Report, api_key: str) -> Dict[str, str]:
    return {
        "api_key": api_key,
        "field1": format_value(report.average_pm25),
        "field2": format_value(report.average_pm10),
    }


class Reporter:
    """
    POST one averaged report per call; failures are logged and dropped.

    The requests session is created lazily unless one is passed in, and only a
    session created here is closed by ``close``.
    """

    def __init__(
        self,
        api_key: str,
        *,
        url: str = THINGSPEAK_UPDATE_URL,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    def __enter__(self) -> "Reporter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def send(self, report: Report) -> bool:
        try:
            self._post(report)
        except ReportDeliveryFailed as exc:
            logger.warning("Error posting to thingspeak: %s", exc)
            return False
        logger.info(
            "Data posted to thingspeak (pm25=%.1f pm10=%.1f samples=%d)",
            report.average_pm25,
            report.average_pm10,
            report.samples,
        )
        return True

    def _post(self, report: Report) -> None:
        try:
            response = self._get_session().post(
                self.url,
                data=build_payload(report, self.api_key),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ReportDeliveryFailed(f"transport error: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise ReportDeliveryFailed(
                f"HTTP {response.status_code} from {self.url}", status_code=response.status_code
            )

    def _get_session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def close(self) -> None:
        if self._session is not None and self._owns_session:
            self._session.close()
            self._session = None
