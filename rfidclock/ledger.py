# rfidclock/ledger.py

import logging
from datetime import timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from .errors import AlreadyCheckedIn, NoActiveSession, OutsideAllowedWindow, WorkerNotFound
from .lateness import calendar_date_for, entry_window, evaluate, within_entry_window
from .locks import KeyedLocks
from .models import AttendanceRecord, Worker
from .parsing import normalize_badge_id

logger = logging.getLogger(__name__)

CHECKED_IN = "CHECKED_IN"
CHECKED_OUT = "CHECKED_OUT"


class AttendanceLedger:
    """
    Check-in / check-out state machine, one record per session.

    NONE -> CHECKED_IN -> CHECKED_OUT. A closed record is never reopened; the
    next check-in starts a new one. Every transition for a worker runs under
    that worker's lock, and the open-session unique index catches anything
    that slips past it (another process writing to the same database).
    """

    def __init__(self, session_factory, clock, shift, enforce_entry_window=True):
        self.session_factory = session_factory
        self.clock = clock
        self.shift = shift
        self.enforce_entry_window = enforce_entry_window
        self._locks = KeyedLocks()

    @staticmethod
    def _open_record(db, worker_id):
        return (
            db.query(AttendanceRecord)
            .filter(AttendanceRecord.worker_id == worker_id, AttendanceRecord.status == CHECKED_IN)
            .first()
        )

    def _moment(self, timestamp):
        return self.clock.now() if timestamp is None else self.clock.localize(timestamp)

    def check_in(self, worker_id, badge_id, timestamp=None, shift=None) -> AttendanceRecord:
        shift = shift or self.shift
        uid = normalize_badge_id(badge_id)
        check_in_time = self._moment(timestamp)

        if self.enforce_entry_window and not within_entry_window(check_in_time, shift):
            window_start, window_end = entry_window(shift)
            logger.warning("Check-in rejected for worker %s: %s outside allowed window (%s - %s)",
                           worker_id, check_in_time.time(), window_start, window_end)
            raise OutsideAllowedWindow(
                f"Check-in at {check_in_time.time()} is outside the allowed window {window_start} - {window_end}"
            )

        with self._locks.hold(worker_id):
            db = self.session_factory()
            try:
                worker = db.get(Worker, worker_id)
                if worker is None:
                    raise WorkerNotFound(f"Worker not found with ID: {worker_id}")
                if self._open_record(db, worker_id) is not None:
                    raise AlreadyCheckedIn(f"Worker {worker_id} already has an active check-in")

                attendance_date = self.clock.business_date(check_in_time, calendar_date_for(check_in_time, shift))
                lateness = evaluate(check_in_time, attendance_date, shift)

                rec = AttendanceRecord(
                    worker_id=worker_id,
                    worker_snapshot_name=worker.full_name,
                    badge_uid=uid,
                    attendance_date=attendance_date,
                    check_in_time=check_in_time,
                    is_late=lateness.is_late,
                    lateness_duration_seconds=int(lateness.duration.total_seconds()),
                    status=CHECKED_IN,
                )
                db.add(rec)
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    raise AlreadyCheckedIn(f"Worker {worker_id} already has an active check-in")
                db.refresh(rec)
                logger.info("CHECK-IN worker %s with badge %s at %s (late=%s)",
                            worker_id, uid, check_in_time, lateness.is_late)
                return rec
            finally:
                db.close()

    def check_out(self, worker_id, timestamp=None) -> AttendanceRecord:
        check_out_time = self._moment(timestamp)
        with self._locks.hold(worker_id):
            db = self.session_factory()
            try:
                rec = self._open_record(db, worker_id)
                if rec is None:
                    raise NoActiveSession(f"No active check-in found for worker {worker_id}")
                worked = max(timedelta(0), check_out_time - rec.check_in_time)
                rec.check_out_time = check_out_time
                rec.worked_duration_seconds = int(worked.total_seconds())
                rec.status = CHECKED_OUT
                db.commit()
                db.refresh(rec)
                logger.info("CHECK-OUT worker %s at %s", worker_id, check_out_time)
                return rec
            finally:
                db.close()

    def active_session(self, worker_id):
        db = self.session_factory()
        try:
            return self._open_record(db, worker_id)
        finally:
            db.close()

    # --- Read side ---

    def history(self, start_date, end_date, status=None, ascending=False):
        db = self.session_factory()
        try:
            query = db.query(AttendanceRecord).filter(
                AttendanceRecord.attendance_date >= start_date,
                AttendanceRecord.attendance_date <= end_date,
            )
            if status and status.upper() == "LATE":
                query = query.filter(AttendanceRecord.is_late == True)  # noqa: E712
            elif status and status.upper() == "ON_TIME":
                query = query.filter(AttendanceRecord.is_late == False)  # noqa: E712
            order = AttendanceRecord.check_in_time.asc() if ascending else AttendanceRecord.check_in_time.desc()
            return query.order_by(order).all()
        finally:
            db.close()

    def by_date(self, day):
        return self.history(day, day, ascending=True)

    def late_by_date(self, day):
        return self.history(day, day, status="LATE", ascending=True)

    def count_late(self, worker_id, start_date, end_date):
        db = self.session_factory()
        try:
            return (
                db.query(func.count(AttendanceRecord.id))
                .filter(
                    AttendanceRecord.worker_id == worker_id,
                    AttendanceRecord.is_late == True,  # noqa: E712
                    AttendanceRecord.attendance_date >= start_date,
                    AttendanceRecord.attendance_date <= end_date,
                )
                .scalar()
            )
        finally:
            db.close()
