# rfidclock/parsing.py

import re
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidBadgeId, UnparsablePayload

# Hardware-defined payloads, must match exactly
RFID_PATTERN = re.compile(r"Marcaje RFID: ([A-Fa-f0-9 ]+)")
ACCESS_GRANTED_PATTERN = re.compile(r"Puerta abierta ID: (\d+)")
ACCESS_DENIED_PATTERN = re.compile(r"Intento fallido huella|Huella desconocida")

ATTENDANCE = "attendance"
ACCESS_GRANTED = "access_granted"
ACCESS_DENIED = "access_denied"
CHANNEL_KINDS = (ATTENDANCE, ACCESS_GRANTED, ACCESS_DENIED)

_NON_ALNUM = re.compile(r"[^0-9A-Z]")


def normalize_badge_id(raw) -> str:
    """Uppercase, drop whitespace and separators: ``"35 13 b5:b1"`` -> ``"3513B5B1"``."""
    if raw is None:
        raise InvalidBadgeId("Badge id is empty")
    uid = _NON_ALNUM.sub("", str(raw).upper())
    if not uid:
        raise InvalidBadgeId(f"Badge id {raw!r} has no alphanumeric characters")
    return uid


@dataclass(frozen=True)
class HardwareEvent:
    kind: str
    badge_id: Optional[str] = None
    sensor_id: Optional[int] = None


def parse_attendance(message: str) -> HardwareEvent:
    match = RFID_PATTERN.search(message)
    if not match or not match.group(1).strip():
        raise UnparsablePayload(f"Not an RFID scan: {message!r}")
    return HardwareEvent(ATTENDANCE, badge_id=normalize_badge_id(match.group(1)))


def parse_access_granted(message: str) -> HardwareEvent:
    match = ACCESS_GRANTED_PATTERN.search(message)
    if not match:
        raise UnparsablePayload(f"Not an access grant: {message!r}")
    return HardwareEvent(ACCESS_GRANTED, sensor_id=int(match.group(1)))


def parse_access_denied(message: str) -> HardwareEvent:
    if not ACCESS_DENIED_PATTERN.search(message):
        raise UnparsablePayload(f"Not an access denial: {message!r}")
    return HardwareEvent(ACCESS_DENIED)


PARSERS = {
    ATTENDANCE: parse_attendance,
    ACCESS_GRANTED: parse_access_granted,
    ACCESS_DENIED: parse_access_denied,
}


def parse_payload(kind: str, payload) -> HardwareEvent:
    if not isinstance(payload, str):
        raise UnparsablePayload(f"Expected a text payload, got {type(payload).__name__}")
    try:
        parser = PARSERS[kind]
    except KeyError:
        raise ValueError(f"Unknown channel kind: {kind}")
    return parser(payload)
