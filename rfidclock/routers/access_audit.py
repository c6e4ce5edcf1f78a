# rfidclock/routers/access_audit.py

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_services

router = APIRouter(prefix="/access-audit", tags=["access-audit"])


def access_to_dict(entry):
    return {
        "id": entry.id,
        "worker_id": entry.worker_id,
        "worker_full_name": entry.worker_snapshot_name,
        "sensor_id": entry.sensor_id,
        "access_granted": entry.access_granted,
        "status": entry.status,
        "access_time": entry.access_time,
    }


def _range(services, start_time, end_time):
    start, end = services.clock.localize(start_time), services.clock.localize(end_time)
    if start > end:
        raise HTTPException(status_code=400, detail="start_time must not be after end_time")
    return start, end


@router.get("/worker/{worker_id}")
def access_history_by_worker(worker_id: int, services=Depends(get_services)):
    return [access_to_dict(e) for e in services.audit.history(worker_id=worker_id)]


@router.get("/worker/{worker_id}/denied-count")
def denied_count(worker_id: int, start_time: datetime, end_time: datetime, services=Depends(get_services)):
    start, end = _range(services, start_time, end_time)
    return {"worker_id": worker_id, "denied": services.audit.count_denied(worker_id, start, end)}


@router.get("/time-range")
def access_history_by_time_range(start_time: datetime, end_time: datetime, status: str = None,
                                 services=Depends(get_services)):
    if status and status.upper() not in ("GRANTED", "DENIED"):
        raise HTTPException(status_code=400, detail="status must be GRANTED or DENIED")
    start, end = _range(services, start_time, end_time)
    return [access_to_dict(e) for e in services.audit.history(start, end, status=status)]


@router.get("/denied")
def recent_denied(hours: int = Query(24, ge=1), services=Depends(get_services)):
    """Failed fingerprint attempts in the last ``hours`` hours."""
    return [access_to_dict(e) for e in services.audit.recent(hours, status="DENIED")]


@router.get("/granted")
def recent_granted(hours: int = Query(24, ge=1), services=Depends(get_services)):
    return [access_to_dict(e) for e in services.audit.recent(hours, status="GRANTED")]
