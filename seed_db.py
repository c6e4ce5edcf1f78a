import random
from datetime import datetime, timedelta
from faker import Faker

from rfidclock.badges import BadgeRegistry
from rfidclock.clock import BusinessClock
from rfidclock.database import SessionLocal, init_db
from rfidclock.lateness import ShiftConfiguration, evaluate
from rfidclock.models import AttendanceRecord, Badge, Worker
from rfidclock.settings import settings

# --- Configuration ---
NUM_WORKERS = 5          # One per system badge
NUM_DAYS = 30            # Last month
CHECK_IN_RATE = 0.8      # 80% chance they come in on a given day
# ---------------------

init_db()
db = SessionLocal()
fake = Faker()
clock = BusinessClock.from_settings(settings)
shift = ShiftConfiguration.from_settings(settings)

print(f"Generating data for {NUM_WORKERS} workers over {NUM_DAYS} days...")

try:
    # 1. Badge pool
    BadgeRegistry(SessionLocal, clock).seed_pool(settings.system_badges)

    # 2. Workers
    existing_documents = {w.document_number for w in db.query(Worker.document_number).all()}
    new_workers = []
    while len(new_workers) + len(existing_documents) < NUM_WORKERS:
        document = fake.unique.numerify("########")
        if document not in existing_documents:
            new_workers.append(Worker(
                first_name=fake.first_name(),
                last_name=fake.last_name(),
                document_number=document,
                email=fake.email(),
            ))
    if new_workers:
        print(f"Adding {len(new_workers)} new workers...")
        db.add_all(new_workers)
        db.commit()

    # 3. Hand the pool badges out, one per worker without a badge
    all_workers = db.query(Worker).order_by(Worker.id).all()
    holders = {b.owner_id for b in db.query(Badge).filter(Badge.owner_id.isnot(None)).all()}
    free_badges = db.query(Badge).filter(Badge.owner_id.is_(None)).order_by(Badge.uid).all()
    for worker, badge in zip([w for w in all_workers if w.id not in holders], free_badges):
        badge.owner_id = worker.id
        print(f"Badge {badge.uid} -> {worker.full_name}")
    db.commit()

    # 4. Closed attendance sessions for past days
    badge_of = {b.owner_id: b.uid for b in db.query(Badge).filter(Badge.owner_id.isnot(None)).all()}
    today = clock.now().date()
    records = []
    for i in range(1, NUM_DAYS + 1):
        day = today - timedelta(days=i)
        if day.weekday() >= 5:
            continue
        for worker in all_workers:
            if worker.id not in badge_of or random.random() >= CHECK_IN_RATE:
                continue
            check_in = datetime.combine(day, shift.start) + timedelta(minutes=random.randint(-30, 40))
            check_out = check_in + timedelta(hours=random.uniform(7.5, 9.5))
            lateness = evaluate(check_in, day, shift)
            records.append(AttendanceRecord(
                worker_id=worker.id,
                worker_snapshot_name=worker.full_name,
                badge_uid=badge_of[worker.id],
                attendance_date=day,
                check_in_time=check_in,
                check_out_time=check_out,
                worked_duration_seconds=int((check_out - check_in).total_seconds()),
                is_late=lateness.is_late,
                lateness_duration_seconds=int(lateness.duration.total_seconds()),
                status="CHECKED_OUT",
            ))

    print(f"Adding {len(records)} attendance records...")
    chunk_size = 500
    for i in range(0, len(records), chunk_size):
        db.add_all(records[i:i + chunk_size])
        db.commit()

    print("Demo data generation complete!")

except Exception as e:
    db.rollback()
    print(f"An error occurred: {e}")
finally:
    db.close()
