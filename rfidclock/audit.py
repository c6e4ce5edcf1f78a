import logging
from datetime import timedelta

from sqlalchemy import func

from .models import AccessLog

logger = logging.getLogger(__name__)

UNKNOWN_NAME = "Unknown"


class AccessAudit:
    """Append-only log of door access events reported by the fingerprint sensor."""

    def __init__(self, session_factory, directory, clock):
        self.session_factory = session_factory
        self.directory = directory
        self.clock = clock

    def record(self, granted, sensor_id, timestamp):
        worker = self.directory.by_sensor_id(sensor_id) if sensor_id is not None else None
        status = "GRANTED" if granted else "DENIED"
        logger.info("Logging access %s for sensor ID: %s", status, sensor_id)

        entry = AccessLog(
            worker_id=worker.id if worker else None,
            worker_snapshot_name=worker.full_name if worker else UNKNOWN_NAME,
            sensor_id=sensor_id,
            access_granted=granted,
            status=status,
            access_time=timestamp,
        )
        db = self.session_factory()
        try:
            db.add(entry)
            db.commit()
            db.refresh(entry)
            return entry
        finally:
            db.close()

    # --- Read side ---

    def history(self, start=None, end=None, status=None, worker_id=None):
        """Access events, newest first, optionally bounded in time and filtered."""
        db = self.session_factory()
        try:
            query = db.query(AccessLog)
            if start is not None:
                query = query.filter(AccessLog.access_time >= start)
            if end is not None:
                query = query.filter(AccessLog.access_time <= end)
            if status:
                query = query.filter(AccessLog.status == status.upper())
            if worker_id is not None:
                query = query.filter(AccessLog.worker_id == worker_id)
            return query.order_by(AccessLog.access_time.desc(), AccessLog.id.desc()).all()
        finally:
            db.close()

    def recent(self, hours=24, status=None):
        since = self.clock.now() - timedelta(hours=hours)
        return self.history(start=since, status=status)

    def count_denied(self, worker_id, start, end):
        db = self.session_factory()
        try:
            return (
                db.query(func.count(AccessLog.id))
                .filter(
                    AccessLog.worker_id == worker_id,
                    AccessLog.status == "DENIED",
                    AccessLog.access_time >= start,
                    AccessLog.access_time <= end,
                )
                .scalar()
            )
        finally:
            db.close()
