# rfidclock/resolver.py

import logging
from dataclasses import dataclass

from .errors import BusinessRuleViolation
from .models import AttendanceRecord

logger = logging.getLogger(__name__)

UNOWNED_BADGE = "unowned-badge"


@dataclass
class CheckedIn:
    record: AttendanceRecord


@dataclass
class CheckedOut:
    record: AttendanceRecord


@dataclass
class Ignored:
    reason: str


class SmartEventResolver:
    """Turns a badge scan into a check-in or a check-out."""

    def __init__(self, badges, ledger):
        self.badges = badges
        self.ledger = ledger

    def resolve(self, badge_id, timestamp=None):
        state = self.badges.observe(badge_id)
        if not state.claimed:
            logger.warning("Scan of unclaimed badge %s, kept in the pool", state.badge_id)
            return Ignored(UNOWNED_BADGE)

        worker_id = state.owner_id
        try:
            if self.ledger.active_session(worker_id) is not None:
                logger.info("Worker %s has an active check-in, processing CHECK-OUT", worker_id)
                return CheckedOut(self.ledger.check_out(worker_id, timestamp))
            logger.info("Worker %s has no active check-in, processing CHECK-IN", worker_id)
            return CheckedIn(self.ledger.check_in(worker_id, state.badge_id, timestamp))
        except BusinessRuleViolation as e:
            # A rejected scan is an ignored event, not a pipeline failure
            logger.warning("Scan of badge %s by worker %s ignored: %s", state.badge_id, worker_id, e.message)
            return Ignored(e.code)
