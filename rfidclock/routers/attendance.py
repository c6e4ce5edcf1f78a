from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
import re

from ..dependencies import get_services
from ..lateness import format_duration
from ..resolver import CheckedIn, CheckedOut

router = APIRouter(prefix="/attendance", tags=["attendance"])

# --- Pydantic Schemas ---

class ResolvePayload(BaseModel):
    badge_id: str
    timestamp: Optional[datetime] = None

class CheckInPayload(BaseModel):
    worker_id: int
    badge_id: str
    timestamp: Optional[datetime] = None

class CheckOutPayload(BaseModel):
    worker_id: int
    timestamp: Optional[datetime] = None


def record_to_dict(rec):
    worker_name = rec.worker_snapshot_name or "Unknown"
    if rec.worker_id is None:
        worker_name = f"{worker_name} (deleted)"
    return {
        "id": rec.id,
        "worker_id": rec.worker_id,
        "worker_full_name": worker_name,
        "badge_uid": rec.badge_uid,
        "attendance_date": rec.attendance_date,
        "check_in_time": rec.check_in_time,
        "check_out_time": rec.check_out_time,
        "worked_duration": format_duration(rec.worked_duration_seconds),
        "is_late": rec.is_late,
        "lateness_duration": format_duration(rec.lateness_duration_seconds),
        "status": rec.status,
    }


def parse_date(date_str):
    # Basic validation for the date string format
    if not re.match(r"^\d{4}-\d{2}-\d{2}$", date_str):
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD.")
    try:
        return date.fromisoformat(date_str)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date value.")

# --- Routes ---

@router.post("/resolve")
def resolve_scan(payload: ResolvePayload, services=Depends(get_services)):
    """Same path a badge scan from the readers takes: check-in or check-out, decided by state."""
    action = services.resolver.resolve(payload.badge_id, payload.timestamp)
    if isinstance(action, CheckedIn):
        return {"action": "checked_in", "record": record_to_dict(action.record)}
    if isinstance(action, CheckedOut):
        return {"action": "checked_out", "record": record_to_dict(action.record)}
    return {"action": "ignored", "reason": action.reason}

@router.post("/check-in")
def check_in(payload: CheckInPayload, services=Depends(get_services)):
    rec = services.ledger.check_in(payload.worker_id, payload.badge_id, payload.timestamp)
    return record_to_dict(rec)

@router.post("/check-out")
def check_out(payload: CheckOutPayload, services=Depends(get_services)):
    rec = services.ledger.check_out(payload.worker_id, payload.timestamp)
    return record_to_dict(rec)

@router.get("/active/{worker_id}")
def active_session(worker_id: int, services=Depends(get_services)):
    rec = services.ledger.active_session(worker_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="No active attendance found")
    return record_to_dict(rec)

@router.get("/date/{date_str}")
def attendance_for_date(date_str: str, services=Depends(get_services)):
    day = parse_date(date_str)
    return [record_to_dict(rec) for rec in services.ledger.by_date(day)]

@router.get("/late/{date_str}")
def late_for_date(date_str: str, services=Depends(get_services)):
    day = parse_date(date_str)
    return [record_to_dict(rec) for rec in services.ledger.late_by_date(day)]
