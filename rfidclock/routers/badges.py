# rfidclock/routers/badges.py

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..dependencies import get_services

router = APIRouter(prefix="/badges", tags=["badges"])


class OwnerPayload(BaseModel):
    worker_id: int


def badge_to_dict(badge):
    return {
        "uid": badge.uid,
        "owner_id": badge.owner_id,
        "claimed": badge.owner_id is not None,
        "last_seen": badge.last_seen,
    }


@router.get("/unclaimed")
def list_unclaimed(services=Depends(get_services)):
    """Badges seen by the readers (or seeded) that nobody holds yet."""
    return {"badges": services.badges.list_unclaimed()}


@router.get("/owner/{worker_id}")
def badges_of_worker(worker_id: int, services=Depends(get_services)):
    return {"worker_id": worker_id, "badges": services.badges.badges_of(worker_id)}


@router.post("/{badge_id}/claim")
def claim_badge(badge_id: str, payload: OwnerPayload, services=Depends(get_services)):
    badge = services.badges.claim(badge_id, payload.worker_id)
    return badge_to_dict(badge)


@router.post("/{badge_id}/release")
def release_badge(badge_id: str, payload: OwnerPayload, services=Depends(get_services)):
    badge = services.badges.release(badge_id, payload.worker_id)
    return badge_to_dict(badge)
