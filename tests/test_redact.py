from __future__ import annotations

from sharealyzer._redact import redact_for_log


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "phoneCountryCode": "+49",
        "phoneNumber": "1701234567",
        "token": "123456",
        "accessToken": "ACCESS",
        "nested": {"refreshToken": "REFRESH", "identifier": "abc"},
    }

    redacted = redact_for_log(payload)
    assert redacted["phoneCountryCode"] == "+49"
    assert redacted["phoneNumber"] == "<redacted>"
    assert redacted["token"] == "<redacted>"
    assert redacted["accessToken"] == "<redacted>"
    assert redacted["nested"]["refreshToken"] == "<redacted>"
    assert redacted["nested"]["identifier"] == "abc"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_walks_lists() -> None:
    redacted = redact_for_log([{"accessToken": "A"}, 3, b"raw"])
    assert redacted == [{"accessToken": "<redacted>"}, 3, "<bytes:3b>"]
