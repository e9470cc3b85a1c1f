# tests/unit/test_telemetry.py
from src.core.telemetry import TelemetryEmitter


def test_no_consent_means_no_events():
    seen = []
    emitter = TelemetryEmitter(False, sink=seen.append)
    assert emitter.emit("status_changed", status="processing") is False
    assert seen == []


def test_private_fields_are_stripped():
    seen = []
    emitter = TelemetryEmitter(True, sink=seen.append)
    assert emitter.emit("submitted", email="a@b.c", name="Ana", property_url="https://x", platform="airbnb") is True
    (event,) = seen
    assert event["event"] == "submitted"
    assert event["platform"] == "airbnb"
    assert not {"email", "name", "property_url"} & set(event)


def test_failing_sink_does_not_raise():
    def boom(_payload):
        raise OSError("disk full")

    assert TelemetryEmitter(True, sink=boom).emit("x") is False
