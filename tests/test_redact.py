from __future__ import annotations

from pygunshot._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "type": "sensor_update",
        "token": "abc",
        "Authorization": "Bearer abc",
        "nested": {"api_token": "abc", "mic_id": 1},
    }

    redacted = redact_for_log(payload)
    assert redacted["type"] == "sensor_update"
    assert redacted["token"] == "<redacted>"
    assert redacted["Authorization"] == "<redacted>"
    assert redacted["nested"] == {"api_token": "<redacted>", "mic_id": 1}


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_shortens_long_batches() -> None:
    batch = [{"id": i} for i in range(25)]

    redacted = redact_for_log(batch, max_items=3)

    assert redacted == [{"id": 0}, {"id": 1}, {"id": 2}, "<+22 more>"]
    assert redact_for_log(b"\x00" * 8) == "<bytes:8b>"
