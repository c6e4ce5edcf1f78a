import pytest

from rfidclock.dedup import DedupWindow
from rfidclock.errors import InvalidBadgeId, UnparsablePayload
from rfidclock.parsing import (ACCESS_DENIED, ACCESS_GRANTED, ATTENDANCE, normalize_badge_id,
                               parse_payload)


@pytest.mark.parametrize("raw", ["3513B5B1", "35 13 B5 B1", " 35 13 b5 b1 ", "35:13-b5.b1"])
def test_normalize_badge_id(raw):
    assert normalize_badge_id(raw) == "3513B5B1"


@pytest.mark.parametrize("raw", [None, "", "  ", ":-:"])
def test_normalize_rejects_empty(raw):
    with pytest.raises(InvalidBadgeId):
        normalize_badge_id(raw)


def test_attendance_scan():
    event = parse_payload(ATTENDANCE, "Marcaje RFID: 85 DB 6D B1")
    assert event.kind == ATTENDANCE
    assert event.badge_id == "85DB6DB1"


def test_attendance_scan_lowercase_hex():
    assert parse_payload(ATTENDANCE, "Marcaje RFID: ba 91 0f b1").badge_id == "BA910FB1"


def test_access_granted():
    event = parse_payload(ACCESS_GRANTED, "Puerta abierta ID: 12")
    assert event.kind == ACCESS_GRANTED
    assert event.sensor_id == 12


@pytest.mark.parametrize("message", ["Intento fallido huella", "Intento fallido huella: 3 - No permissions",
                                     "Huella desconocida"])
def test_access_denied(message):
    event = parse_payload(ACCESS_DENIED, message)
    assert event.kind == ACCESS_DENIED
    assert event.sensor_id is None


@pytest.mark.parametrize("kind, message", [
    (ATTENDANCE, "Marcaje RFID: "),
    (ATTENDANCE, "Marcaje RFID:    "),
    (ATTENDANCE, "RFID 3513B5B1"),
    (ACCESS_GRANTED, "Puerta abierta ID: abc"),
    (ACCESS_DENIED, "Puerta abierta ID: 4"),
])
def test_unparsable(kind, message):
    with pytest.raises(UnparsablePayload):
        parse_payload(kind, message)


def test_non_text_payload_is_unparsable():
    with pytest.raises(UnparsablePayload):
        parse_payload(ATTENDANCE, {"uid": "3513B5B1"})


def test_unknown_kind():
    with pytest.raises(ValueError):
        parse_payload("temperature", "21.5")


def test_dedup_window_remembers_keys():
    window = DedupWindow(max_keys=10)
    window.mark("-Nx1")
    assert "-Nx1" in window
    assert "-Nx2" not in window
    assert len(window) == 1


def test_dedup_window_clears_when_full():
    window = DedupWindow(max_keys=3)
    for key in ("a", "b", "c"):
        window.mark(key)
    window.trim(keep=["b", "c"])
    assert len(window) == 3
    assert window.clears == 0

    window.mark("d")
    window.trim(keep=["c", "d", "zz"])
    assert window.clears == 1
    assert "a" not in window and "b" not in window
    assert "c" in window and "d" in window
    # Only keys already marked survive a clear
    assert "zz" not in window


def test_dedup_window_needs_positive_bound():
    with pytest.raises(ValueError):
        DedupWindow(max_keys=0)
