# rfidclock/configuration.py

import logging
import threading
from dataclasses import replace

from .errors import InvalidConfiguration

logger = logging.getLogger(__name__)

# request field -> ShiftConfiguration field
SHIFT_FIELDS = {
    "work_start": "start",
    "work_end": "end",
    "late_tolerance_minutes": "tolerance_minutes",
    "early_entry_minutes": "early_entry_minutes",
}
CLOCK_FIELDS = ("simulation_mode", "simulated_date", "simulated_datetime")
NOT_NULL = tuple(SHIFT_FIELDS) + ("enforce_entry_window", "simulation_mode")


class SystemConfiguration:
    """
    Shift and business-clock values an operator may change while the engine
    runs. Changes apply to the next check-in; records already written keep
    the lateness they were computed with.
    """

    def __init__(self, clock, ledger):
        self.clock = clock
        self.ledger = ledger
        self._lock = threading.Lock()

    def current(self) -> dict:
        shift = self.ledger.shift
        return {
            "work_start": shift.start,
            "work_end": shift.end,
            "late_tolerance_minutes": shift.tolerance_minutes,
            "early_entry_minutes": shift.early_entry_minutes,
            "night_shift": shift.is_night_shift,
            "enforce_entry_window": self.ledger.enforce_entry_window,
            "simulation_mode": self.clock.simulation_mode,
            "simulated_date": self.clock.simulated_date,
            "simulated_datetime": self.clock.simulated_datetime,
            "timezone": str(self.clock.tz),
        }

    def update(self, **changes) -> dict:
        """Apply the given fields; omitted fields keep their value.

        The new shift is validated before anything is applied, so a rejected
        update leaves the running configuration untouched.
        """
        unknown = set(changes) - set(SHIFT_FIELDS) - set(CLOCK_FIELDS) - {"enforce_entry_window"}
        if unknown:
            raise InvalidConfiguration(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

        with self._lock:
            for key in NOT_NULL:
                if key in changes and changes[key] is None:
                    raise InvalidConfiguration(f"{key} cannot be null")
            shift_changes = {SHIFT_FIELDS[k]: v for k, v in changes.items() if k in SHIFT_FIELDS}
            try:
                shift = replace(self.ledger.shift, **shift_changes)
            except ValueError as e:
                raise InvalidConfiguration(str(e))

            self.ledger.shift = shift
            if "enforce_entry_window" in changes:
                self.ledger.enforce_entry_window = changes["enforce_entry_window"]
            for key in CLOCK_FIELDS:
                if key in changes:
                    setattr(self.clock, key, changes[key])

        logger.info("System configuration updated: %s", ", ".join(sorted(changes)) or "nothing")
        return self.current()

    def enable_simulation(self, simulated_date=None, simulated_datetime=None) -> dict:
        with self._lock:
            self.clock.simulation_mode = True
            if simulated_date is not None:
                self.clock.simulated_date = simulated_date
            if simulated_datetime is not None:
                self.clock.simulated_datetime = simulated_datetime
        logger.info("Simulation mode enabled (date=%s, datetime=%s)",
                    self.clock.simulated_date, self.clock.simulated_datetime)
        return self.current()

    def disable_simulation(self) -> dict:
        with self._lock:
            self.clock.simulation_mode = False
            self.clock.simulated_date = None
            self.clock.simulated_datetime = None
        logger.info("Simulation mode disabled")
        return self.current()
