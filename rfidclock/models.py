from datetime import datetime, timezone
from sqlalchemy import (Column, Integer, String, DateTime, Date, Boolean, ForeignKey,
                        BigInteger, CheckConstraint, Index, text)
from .database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Worker(Base):
    __tablename__ = "workers"
    id = Column(Integer, primary_key=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    document_number = Column(String(20), unique=True, index=True, nullable=False)
    email = Column(String(150))
    sensor_id = Column(Integer, unique=True, index=True)  # Fingerprint slot on the sensor
    has_restricted_area_access = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), default="ACTIVE", nullable=False)
    created_at_utc = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at_utc = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}"


class Badge(Base):
    __tablename__ = "badges"

    # Normalized RFID uid, e.g. "3513B5B1"
    uid = Column(String(32), primary_key=True)
    # Weak reference: the badge row alone decides whether it is claimed
    owner_id = Column(Integer, ForeignKey("workers.id", ondelete="SET NULL"), nullable=True, index=True)
    last_seen = Column(DateTime)
    created_at_utc = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at_utc = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    __table_args__ = (
        CheckConstraint("status IN ('CHECKED_IN', 'CHECKED_OUT')", name="chk_attendance_status"),
        Index("idx_attendance_worker_date", "worker_id", "attendance_date"),
        # At most one open session per worker
        Index(
            "uq_attendance_open_session",
            "worker_id",
            unique=True,
            sqlite_where=text("status = 'CHECKED_IN'"),
            postgresql_where=text("status = 'CHECKED_IN'"),
        ),
    )

    id = Column(Integer, primary_key=True)
    # Nulled when the worker is deprovisioned, the snapshot keeps the name
    worker_id = Column(Integer, ForeignKey("workers.id", ondelete="SET NULL"), nullable=True)
    worker_snapshot_name = Column(String(200))
    badge_uid = Column(String(32), nullable=False)

    # Business date, not necessarily the calendar date of check_in_time
    attendance_date = Column(Date, nullable=False, index=True)
    # Local wall-clock times of the site
    check_in_time = Column(DateTime, nullable=False)
    check_out_time = Column(DateTime)
    worked_duration_seconds = Column(BigInteger)
    is_late = Column(Boolean, nullable=False, default=False)
    lateness_duration_seconds = Column(BigInteger, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="CHECKED_IN", index=True)

    created_at_utc = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at_utc = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)


class AccessLog(Base):
    __tablename__ = "access_logs"

    __table_args__ = (
        CheckConstraint("status IN ('GRANTED', 'DENIED')", name="chk_access_status"),
    )

    id = Column(Integer, primary_key=True)
    worker_id = Column(Integer, ForeignKey("workers.id", ondelete="SET NULL"), nullable=True, index=True)
    worker_snapshot_name = Column(String(200))
    sensor_id = Column(Integer)
    access_granted = Column(Boolean, nullable=False)
    status = Column(String(20), nullable=False)
    access_time = Column(DateTime, nullable=False, index=True)
    created_at_utc = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
