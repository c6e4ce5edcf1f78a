# rfidclock/routers/metrics.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from sqlalchemy import func, extract
from datetime import timedelta
from collections import defaultdict
import re

from ..database import get_db
from ..dependencies import get_services
from ..models import AttendanceRecord

router = APIRouter(
    prefix="/api/metrics", # Add a prefix for all routes in this file
    tags=["metrics"]
)

@router.get("/daily_checkins_last_week")
def get_daily_checkins_last_week(db: Session = Depends(get_db), services=Depends(get_services)):
    """
    Counts check-ins per business date for the past 7 days (including today),
    split into on time and late. Returns data formatted for Chart.js.
    """
    today = services.clock.now().date()
    seven_days_ago = today - timedelta(days=6)

    results = (
        db.query(
            AttendanceRecord.attendance_date.label("day"),
            AttendanceRecord.is_late.label("is_late"),
            func.count(AttendanceRecord.id).label("count"),
        )
        .filter(
            AttendanceRecord.attendance_date >= seven_days_ago,
            AttendanceRecord.attendance_date <= today,
        )
        .group_by(AttendanceRecord.attendance_date, AttendanceRecord.is_late)
        .all()
    )

    # Ensure all days in the range are present, even if count is 0
    on_time = defaultdict(int)
    late = defaultdict(int)
    for r in results:
        (late if r.is_late else on_time)[r.day] += r.count
    days = [seven_days_ago + timedelta(days=i) for i in range(7)]

    return {
        "labels": [d.strftime("%Y-%m-%d") for d in days],
        "data": [on_time[d] + late[d] for d in days],
        "late": [late[d] for d in days],
    }

@router.get("/monthly_summary/{year_month}")
def get_monthly_summary(year_month: str, db: Session = Depends(get_db)):
    """
    Total check-ins for a month (YYYY-MM), how many were late, and the late
    count per worker.
    """
    if not re.match(r"^\d{4}-\d{2}$", year_month):
        raise HTTPException(status_code=400, detail="Invalid month format. Use YYYY-MM.")

    year, month = map(int, year_month.split('-'))
    if not (1 <= month <= 12):
        raise HTTPException(status_code=400, detail="Invalid year or month value.")

    records_in_month = db.query(
            AttendanceRecord.worker_snapshot_name,
            AttendanceRecord.is_late,
        ).filter(
            extract('year', AttendanceRecord.attendance_date) == year,
            extract('month', AttendanceRecord.attendance_date) == month,
        ).all()

    total_checkins = len(records_in_month)
    late_counts = defaultdict(int)
    for record in records_in_month:
        if record.is_late:
            late_counts[record.worker_snapshot_name or "N/A"] += 1
    total_late = sum(late_counts.values())

    # --- Format Breakdown with Percentages ---
    def format_breakdown(counts_dict, total):
        formatted = {}
        for key, count in counts_dict.items():
            percent = round((count / total) * 100, 1) if total > 0 else 0.0
            formatted[key] = f"{count} ({percent}%)"
        return formatted

    return {
        "month": year_month,
        "total_checkins": total_checkins,
        "total_late": total_late,
        "late_breakdown": format_breakdown(late_counts, total_checkins),
    }
