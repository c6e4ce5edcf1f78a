# rfidclock/settings.py

from datetime import date, datetime, time
from typing import Dict, List, Optional
import json, os

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    database_url: str = "sqlite:///./rfidclock.db"

    # --- Mailbox (device-written realtime store) ---
    mailbox_url: str = "https://iot-attendance-default-rtdb.firebaseio.com"
    mailbox_secret: str = ""        # Database secret, sent as ?auth= when set
    fetch_timeout_seconds: float = 5.0

    # channel path -> kind (attendance | access_granted | access_denied)
    channels: Dict[str, str] = {
        "logs/asistencia": "attendance",
        "logs/accesos": "access_granted",
        "logs/seguridad": "access_denied",
    }
    poller_enabled: bool = True
    poll_interval_seconds: float = 3.0
    poll_batch_size: int = 5
    dedup_max_keys: int = 1000
    # -----------------------------------------------

    # --- Shift ---
    work_start: time = time(8, 0)
    work_end: time = time(17, 0)
    late_tolerance_minutes: int = 15
    early_entry_minutes: int = 60
    enforce_entry_window: bool = True
    # -------------

    # --- Business clock (simulation is for testing night shifts etc.) ---
    site_timezone: str = "America/Lima"
    simulation_mode: bool = False
    simulated_date: Optional[date] = None
    simulated_datetime: Optional[datetime] = None
    # --------------------------------------------------------------------

    # Badges that are registered in the pool at startup
    system_badges: List[str] = ["3513B5B1", "85DB6DB1", "BA910FB1", "40C86F61", "FD5FC801"]

    enrollment_timeout_seconds: float = 30.0
    enrollment_poll_seconds: float = 1.0

    log_level: str = "INFO"
    log_file: str = ""              # Empty = console only

    model_config = SettingsConfigDict(env_file=".env", env_prefix="", extra="allow")

    def __init__(self, **data):
        super().__init__(**data)
        env_channels = os.getenv("CHANNELS")
        if env_channels:
            try: self.channels = json.loads(env_channels)
            except ValueError: pass  # keep the defaults on malformed JSON
        env_badges = os.getenv("SYSTEM_BADGE_LIST")  # comma separated
        if env_badges:
            self.system_badges = [x.strip() for x in env_badges.split(",") if x.strip()]
        # Normalize 'postgres://' to 'postgresql://'
        if self.database_url.startswith("postgres://"):
            self.database_url = self.database_url.replace("postgres://", "postgresql://", 1)


settings = Settings()
