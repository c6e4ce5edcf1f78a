# rfidclock/badges.py

import logging
from typing import NamedTuple, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError

from .errors import AlreadyClaimed, NotOwned, WorkerNotFound
from .locks import KeyedLocks
from .models import Badge, Worker
from .parsing import normalize_badge_id

logger = logging.getLogger(__name__)


class BadgeState(NamedTuple):
    badge_id: str
    owner_id: Optional[int]

    @property
    def claimed(self):
        return self.owner_id is not None


class BadgeRegistry:
    """
    Pool of physical badges and who (if anyone) holds each of them.

    The badge row is the only place ownership lives. Claim and release are
    serialized per badge uid and written as compare-and-set updates, so two
    concurrent claims of the same pool badge cannot both succeed.
    """

    def __init__(self, session_factory, clock):
        self.session_factory = session_factory
        self.clock = clock
        self._locks = KeyedLocks()

    def _get_or_create(self, db, uid):
        badge = db.get(Badge, uid)
        if badge is not None:
            return badge
        db.add(Badge(uid=uid))
        try:
            db.commit()
        except IntegrityError:
            # Inserted by another process in the meantime
            db.rollback()
        else:
            logger.info("New badge %s added to the pool", uid)
        return db.get(Badge, uid)

    def observe(self, badge_id) -> BadgeState:
        uid = normalize_badge_id(badge_id)
        now = self.clock.now()
        with self._locks.hold(uid):
            db = self.session_factory()
            try:
                badge = self._get_or_create(db, uid)
                if badge.last_seen is None or now > badge.last_seen:
                    badge.last_seen = now
                db.commit()
                return BadgeState(uid, badge.owner_id)
            finally:
                db.close()

    def claim(self, badge_id, owner_id) -> Badge:
        uid = normalize_badge_id(badge_id)
        with self._locks.hold(uid):
            db = self.session_factory()
            try:
                if db.get(Worker, owner_id) is None:
                    raise WorkerNotFound(f"Worker not found with ID: {owner_id}")
                self._get_or_create(db, uid)
                result = db.execute(
                    update(Badge)
                    .where(Badge.uid == uid, or_(Badge.owner_id.is_(None), Badge.owner_id == owner_id))
                    .values(owner_id=owner_id)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    db.rollback()
                    holder = db.get(Badge, uid).owner_id
                    raise AlreadyClaimed(f"Badge {uid} is already claimed by worker {holder}")
                db.commit()
                badge = db.get(Badge, uid)
                db.refresh(badge)
                logger.info("Badge %s claimed by worker %s", uid, owner_id)
                return badge
            finally:
                db.close()

    def release(self, badge_id, owner_id) -> Badge:
        uid = normalize_badge_id(badge_id)
        with self._locks.hold(uid):
            db = self.session_factory()
            try:
                result = db.execute(
                    update(Badge)
                    .where(Badge.uid == uid, Badge.owner_id == owner_id)
                    .values(owner_id=None)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    db.rollback()
                    raise NotOwned(f"Badge {uid} is not held by worker {owner_id}")
                db.commit()
                badge = db.get(Badge, uid)
                db.refresh(badge)
                logger.info("Badge %s released by worker %s, back in the pool", uid, owner_id)
                return badge
            finally:
                db.close()

    def list_unclaimed(self):
        db = self.session_factory()
        try:
            rows = db.query(Badge.uid).filter(Badge.owner_id.is_(None)).order_by(Badge.uid).all()
            return [r.uid for r in rows]
        finally:
            db.close()

    def badges_of(self, owner_id):
        db = self.session_factory()
        try:
            rows = db.query(Badge.uid).filter(Badge.owner_id == owner_id).order_by(Badge.uid).all()
            return [r.uid for r in rows]
        finally:
            db.close()

    def seed_pool(self, badge_ids):
        """Make sure the badges shipped with the hardware exist in the pool."""
        created = existing = 0
        db = self.session_factory()
        try:
            for uid in dict.fromkeys(normalize_badge_id(raw) for raw in badge_ids):
                if db.get(Badge, uid) is None:
                    db.add(Badge(uid=uid))
                    created += 1
                else:
                    existing += 1
            db.commit()
        finally:
            db.close()
        logger.info("Badge pool seeded: %d created | %d existing | %d total",
                    created, existing, created + existing)
        return created, existing
