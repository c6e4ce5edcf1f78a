# rfidclock/workers.py

import logging

from .errors import EnrollmentFailed, WorkerNotFound
from .mailbox import LAST_CREATED_ID_PATH
from .models import AccessLog, AttendanceRecord, Badge, Worker

logger = logging.getLogger(__name__)

REGISTER_COMMAND = "REGISTRAR"
WAITING_FOR_REGISTRATION = "ESPERANDO_REGISTRO"


class WorkerDirectory:
    """Read access to workers, plus the two lifecycle operations the engine cares about."""

    def __init__(self, session_factory, mailbox=None, enrollment_timeout=30.0, enrollment_poll=1.0):
        self.session_factory = session_factory
        self.mailbox = mailbox
        self.enrollment_timeout = enrollment_timeout
        self.enrollment_poll = enrollment_poll

    def _first(self, *criteria):
        db = self.session_factory()
        try:
            return db.query(Worker).filter(*criteria).first()
        finally:
            db.close()

    def get(self, worker_id):
        worker = self._first(Worker.id == worker_id)
        if worker is None:
            raise WorkerNotFound(f"Worker not found with ID: {worker_id}")
        return worker

    def by_sensor_id(self, sensor_id):
        return self._first(Worker.sensor_id == sensor_id)

    def by_document_number(self, document_number):
        return self._first(Worker.document_number == document_number)

    def deprovision(self, worker_id):
        """
        Remove a worker without losing history.

        Badges go back to the pool, attendance and access rows lose their
        worker reference but keep the name snapshot.
        """
        db = self.session_factory()
        try:
            worker = db.get(Worker, worker_id)
            if worker is None:
                raise WorkerNotFound(f"Worker not found with ID: {worker_id}")
            released = (
                db.query(Badge)
                .filter(Badge.owner_id == worker_id)
                .update({Badge.owner_id: None}, synchronize_session=False)
            )
            db.query(AttendanceRecord).filter(AttendanceRecord.worker_id == worker_id).update(
                {AttendanceRecord.worker_id: None}, synchronize_session=False
            )
            db.query(AccessLog).filter(AccessLog.worker_id == worker_id).update(
                {AccessLog.worker_id: None}, synchronize_session=False
            )
            db.delete(worker)
            db.commit()
            logger.info("Worker %s deprovisioned, %d badge(s) back in the pool", worker_id, released)
            return released
        finally:
            db.close()

    def enroll_fingerprint(self, worker_id):
        """
        Ask the sensor to register a new fingerprint and bind its slot to the worker.

        Blocks until the device reports a state other than "waiting for
        registration", or until the enrollment timeout passes.
        """
        if self.mailbox is None:
            raise EnrollmentFailed("No mailbox configured")
        self.get(worker_id)

        self.mailbox.send_command(REGISTER_COMMAND, WAITING_FOR_REGISTRATION)
        try:
            state = self.mailbox.wait_for_state_change(
                WAITING_FOR_REGISTRATION, self.enrollment_timeout, self.enrollment_poll
            )
            if state is None:
                raise EnrollmentFailed(f"Device did not answer within {self.enrollment_timeout}s")
            logger.info("Device state changed to %s", state)

            raw_id = self.mailbox.read(LAST_CREATED_ID_PATH)
            try:
                sensor_id = int(raw_id)
            except (TypeError, ValueError):
                raise EnrollmentFailed(f"Device reported no fingerprint ID (state {state})")
            return self._assign_sensor_id(worker_id, sensor_id)
        finally:
            self.mailbox.clear_command()

    def _assign_sensor_id(self, worker_id, sensor_id):
        db = self.session_factory()
        try:
            holder = db.query(Worker).filter(Worker.sensor_id == sensor_id).first()
            if holder is not None and holder.id != worker_id:
                raise EnrollmentFailed(f"Fingerprint ID {sensor_id} is already assigned to worker {holder.id}")
            worker = db.get(Worker, worker_id)
            if worker is None:
                raise WorkerNotFound(f"Worker not found with ID: {worker_id}")
            worker.sensor_id = sensor_id
            db.commit()
            db.refresh(worker)
            logger.info("Fingerprint %s assigned to worker %s", sensor_id, worker_id)
            return worker
        finally:
            db.close()
