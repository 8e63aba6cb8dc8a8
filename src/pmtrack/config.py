from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from .reporting import THINGSPEAK_UPDATE_URL
from .scheduler import REPORT_INTERVAL_SEC, SAMPLE_INTERVAL_SEC


@dataclass
class SerialConfig:
    baudrate: int = 9600
    timeout: Optional[float] = None  # None blocks until the sensor sends data


@dataclass
class SamplerConfig:
    sample_interval_sec: float = SAMPLE_INTERVAL_SEC
    report_interval_sec: float = REPORT_INTERVAL_SEC
    endpoint_url: str = THINGSPEAK_UPDATE_URL
    request_timeout_sec: Optional[float] = None
    serial: SerialConfig = field(default_factory=SerialConfig)

    def validate(self) -> "SamplerConfig":
        if self.sample_interval_sec < 0:
            raise ValueError("sample_interval_sec must be >= 0")
        if self.report_interval_sec <= 0:
            raise ValueError("report_interval_sec must be > 0")
        if self.request_timeout_sec is not None and self.request_timeout_sec <= 0:
            raise ValueError("request_timeout_sec must be > 0 when set")
        if self.serial.baudrate <= 0:
            raise ValueError("serial.baudrate must be > 0")
        if not self.endpoint_url.startswith(("https://", "http://")):
            raise ValueError(f"Unsupported endpoint_url '{self.endpoint_url}'")
        return self


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = {**base}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merged[key] = _merge(base[key], value)  # type: ignore[index]
        else:
            merged[key] = value
    return merged


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


def load_config(path: Path | str | None = None, overrides: Sequence[str] | None = None) -> SamplerConfig:
    """
    Build a sampler configuration from an optional JSON file plus overrides.

    Overrides are dotted `key=value` pairs, e.g.:
        ["report_interval_sec=120", "serial.baudrate=115200"]
    """
    data: Dict[str, Any] = _load_json(Path(path)) if path is not None else {}
    override_data: Dict[str, Any] = {}
    for override in overrides or []:
        key, raw_value = _parse_override(override)
        _assign_nested(override_data, key, raw_value)
    merged = _merge(data, override_data)
    serial_data = merged.get("serial") or {}
    return SamplerConfig(
        sample_interval_sec=float(merged.get("sample_interval_sec", SAMPLE_INTERVAL_SEC)),
        report_interval_sec=float(merged.get("report_interval_sec", REPORT_INTERVAL_SEC)),
        endpoint_url=str(merged.get("endpoint_url", THINGSPEAK_UPDATE_URL)),
        request_timeout_sec=_optional_float(merged.get("request_timeout_sec")),
        serial=SerialConfig(
            baudrate=int(serial_data.get("baudrate", 9600)),
            timeout=_optional_float(serial_data.get("timeout")),
        ),
    ).validate()


def _parse_override(item: str) -> tuple[str, Any]:
    if "=" not in item:
        raise ValueError(f"Override '{item}' must use key=value syntax")
    key, raw_value = item.split("=", 1)
    key = key.strip()
    if not key:
        raise ValueError("Override key may not be empty")
    return key, _coerce_value(raw_value.strip())


def _coerce_value(raw: str) -> Any:
    if raw.lower() in {"true", "false"}:
        return raw.lower() == "true"
    if raw.lower() in {"none", "null"}:
        return None
    try:
        if "." in raw or "e" in raw.lower():
            return float(raw)
        return int(raw)
    except ValueError:
        pass
    return raw


def _assign_nested(target: Dict[str, Any], dotted_key: str, value: Any) -> None:
    cursor = target
    parts = dotted_key.split(".")
    for part in parts[:-1]:
        cursor = cursor.setdefault(part, {})
    cursor[parts[-1]] = value
