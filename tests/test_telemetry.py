"""Telemetry wiring tests."""

from __future__ import annotations

from fastapi import FastAPI

from metal_advisor.config import AppSettings
from metal_advisor.core import telemetry


def test_disabled_telemetry_leaves_app_untouched():
    app = FastAPI()

    assert telemetry.setup_telemetry(app, AppSettings(telemetry_enabled=False)) is False
    assert id(app) not in telemetry._instrumented


def test_enabled_telemetry_instruments_app_once(monkeypatch):
    calls: list[str] = []

    class Recorder:
        def __init__(self, name: str) -> None:
            self.name = name

        def __call__(self, *args, **kwargs):
            calls.append(self.name)
            return self

        def add_span_processor(self, processor) -> None:
            calls.append(f"{self.name}.add_span_processor")

        def instrument(self, **kwargs) -> None:
            calls.append(f"{self.name}.instrument")

        def instrument_app(self, app, **kwargs) -> None:
            calls.append(f"{self.name}.instrument_app")

    for name in (
        "OTLPSpanExporter",
        "OTLPMetricExporter",
        "BatchSpanProcessor",
        "PeriodicExportingMetricReader",
        "TracerProvider",
        "MeterProvider",
        "HTTPXClientInstrumentor",
    ):
        monkeypatch.setattr(telemetry, name, Recorder(name))
    monkeypatch.setattr(telemetry, "FastAPIInstrumentor", Recorder("FastAPIInstrumentor"))
    monkeypatch.setattr(telemetry.trace, "set_tracer_provider", lambda provider: calls.append("set_tracer"))
    monkeypatch.setattr(telemetry.metrics, "set_meter_provider", lambda provider: calls.append("set_meter"))
    monkeypatch.setattr(telemetry, "_instrumented", set())

    app = FastAPI()
    settings = AppSettings(telemetry_enabled=True, telemetry_otlp_endpoint="http://collector:4317")

    assert telemetry.setup_telemetry(app, settings) is True
    assert telemetry.setup_telemetry(app, settings) is True
    assert calls.count("FastAPIInstrumentor.instrument_app") == 1
    assert "HTTPXClientInstrumentor.instrument" in calls
    assert {"set_tracer", "set_meter"} <= set(calls)
