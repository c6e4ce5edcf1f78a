# rfidclock/routers/admin.py

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_services

router = APIRouter(tags=["admin"])


@router.post("/admin/poll/{channel:path}")
def poll_channel(channel: str, services=Depends(get_services)):
    """Run one poll cycle of a channel right now, outside its timer."""
    if channel not in services.poller.channels:
        raise HTTPException(status_code=404, detail=f"Unknown channel: {channel}")
    return asdict(services.poller.poll(channel))


@router.delete("/workers/{worker_id}")
def deprovision_worker(worker_id: int, services=Depends(get_services)):
    released = services.directory.deprovision(worker_id)
    return {"ok": True, "worker_id": worker_id, "badges_released": released}


@router.post("/workers/{worker_id}/enroll-fingerprint")
def enroll_fingerprint(worker_id: int, services=Depends(get_services)):
    """Blocks while the sensor waits for the finger (bounded by the enrollment timeout)."""
    worker = services.directory.enroll_fingerprint(worker_id)
    return {"ok": True, "worker_id": worker.id, "sensor_id": worker.sensor_id}
