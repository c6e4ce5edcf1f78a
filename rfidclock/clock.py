# rfidclock/clock.py

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import logging
from typing import Optional

logger = logging.getLogger(__name__)


class BusinessClock:
    """
    Local wall-clock time of the site, with an optional simulated override.

    All attendance timestamps are naive datetimes in the site's timezone, the
    same frame the shift times (08:00, 22:00...) are expressed in.
    """

    def __init__(self, tz_name="UTC", simulation_mode=False, simulated_date=None, simulated_datetime=None):
        try:
            self.tz = ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Could not load timezone %s, using UTC.", tz_name)
            self.tz = timezone.utc
        self.simulation_mode = simulation_mode
        self.simulated_date = simulated_date
        self.simulated_datetime = simulated_datetime

    @classmethod
    def from_settings(cls, settings):
        return cls(
            tz_name=settings.site_timezone,
            simulation_mode=settings.simulation_mode,
            simulated_date=settings.simulated_date,
            simulated_datetime=settings.simulated_datetime,
        )

    def now(self) -> datetime:
        if self.simulation_mode and self.simulated_datetime is not None:
            return self.simulated_datetime
        return datetime.now(self.tz).replace(tzinfo=None)

    def localize(self, moment: datetime) -> datetime:
        """Aware datetimes are converted to site wall-clock time, naive ones are kept."""
        if moment.tzinfo is None:
            return moment
        return moment.astimezone(self.tz).replace(tzinfo=None)

    def business_date(self, moment: datetime, calendar_date: Optional[date] = None) -> date:
        """Attendance date for a check-in happening at ``moment``.

        The simulated date wins when set, then ``calendar_date``, then the
        date of ``moment``.
        """
        if self.simulation_mode:
            if self.simulated_date is not None:
                return self.simulated_date
            if self.simulated_datetime is not None:
                return self.simulated_datetime.date()
        return calendar_date or moment.date()
