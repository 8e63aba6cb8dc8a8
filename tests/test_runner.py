from __future__ import annotations

import io

import pytest

from frame_helpers import build_frame
from pmtrack.config import SamplerConfig
from pmtrack.errors import EndOfStream
from pmtrack.runner import DEFAULT_PORT, SamplerHost, SerialSettings, default_port


class FakeSerialInstance:
    def __init__(self, data: bytes, **kwargs):
        self._buffer = io.BytesIO(data)
        self.kwargs = kwargs
        self.is_open = True

    def read(self, size: int = 1) -> bytes:
        return self._buffer.read(size)

    def close(self) -> None:
        self.is_open = False


class FakeSerialModule:
    def __init__(self, data: bytes):
        self.data = data
        self.instances: list[FakeSerialInstance] = []

    def Serial(self, **kwargs):
        instance = FakeSerialInstance(self.data, **kwargs)
        self.instances.append(instance)
        return instance


class FakeStdin:
    def __init__(self, data: bytes):
        self.buffer = io.BytesIO(data)


def fast_config() -> SamplerConfig:
    cfg = SamplerConfig()
    cfg.sample_interval_sec = 0.0
    return cfg


def test_serial_run_closes_port(monkeypatch):
    fake_serial = FakeSerialModule(build_frame(50, 100) * 3)
    monkeypatch.setattr("pmtrack.runner.serial", fake_serial)

    settings = SerialSettings(port="/dev/ttyFAKE", baudrate=9600)
    host = SamplerHost(settings, fast_config(), samples=2)
    stats = host.run()

    assert stats.samples == 2
    assert stats.measurements == 2
    (instance,) = fake_serial.instances
    assert instance.kwargs == {"port": "/dev/ttyFAKE", "baudrate": 9600, "timeout": None}
    assert instance.is_open is False


def test_serial_stream_end_is_fatal_and_port_closed(monkeypatch):
    fake_serial = FakeSerialModule(build_frame())
    monkeypatch.setattr("pmtrack.runner.serial", fake_serial)

    host = SamplerHost(SerialSettings(port="/dev/ttyFAKE"), fast_config())
    with pytest.raises(EndOfStream):
        host.run()
    assert fake_serial.instances[0].is_open is False


def test_stdin_replay_ends_cleanly(monkeypatch):
    monkeypatch.setattr("sys.stdin", FakeStdin(build_frame() * 4))

    host = SamplerHost(SerialSettings(port="-"), fast_config())
    stats = host.run()

    assert stats.samples == 4
    assert stats.measurements == 4


def test_reporter_only_built_with_api_key(monkeypatch):
    built = []

    class StubReporter:
        def __init__(self, api_key, **kwargs):
            built.append((api_key, kwargs))
            self.closed = False

        def send(self, report):
            return True

        def close(self):
            self.closed = True

    monkeypatch.setattr("pmtrack.runner.Reporter", StubReporter)
    monkeypatch.setattr("sys.stdin", FakeStdin(build_frame()))

    SamplerHost(SerialSettings(port="-"), fast_config()).run()
    assert built == []

    monkeypatch.setattr("sys.stdin", FakeStdin(build_frame()))
    cfg = fast_config()
    cfg.request_timeout_sec = 7.0
    SamplerHost(SerialSettings(port="-"), cfg, api_key="KEY").run()
    assert built == [("KEY", {"url": cfg.endpoint_url, "timeout": 7.0})]


def test_default_port_falls_back(monkeypatch):
    monkeypatch.setattr("pmtrack.runner.discover_ports", lambda: [])
    assert default_port() == DEFAULT_PORT
    monkeypatch.setattr("pmtrack.runner.discover_ports", lambda: [("/dev/ttyUSB3", "USB Serial")])
    assert default_port() == "/dev/ttyUSB3"
