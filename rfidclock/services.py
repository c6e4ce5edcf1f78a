from dataclasses import dataclass

from .audit import AccessAudit
from .badges import BadgeRegistry
from .clock import BusinessClock
from .configuration import SystemConfiguration
from .lateness import ShiftConfiguration
from .ledger import AttendanceLedger
from .mailbox import Mailbox
from .poller import IngestionPoller, PollScheduler
from .resolver import SmartEventResolver
from .workers import WorkerDirectory


@dataclass
class Services:
    clock: BusinessClock
    badges: BadgeRegistry
    ledger: AttendanceLedger
    resolver: SmartEventResolver
    directory: WorkerDirectory
    audit: AccessAudit
    mailbox: Mailbox
    poller: IngestionPoller
    scheduler: PollScheduler
    configuration: SystemConfiguration


def build_services(settings, session_factory, mailbox=None, clock=None):
    """Wire the engine together from settings."""
    clock = clock or BusinessClock.from_settings(settings)
    mailbox = mailbox or Mailbox(settings.mailbox_url, settings.mailbox_secret, settings.fetch_timeout_seconds)

    badges = BadgeRegistry(session_factory, clock)
    ledger = AttendanceLedger(
        session_factory, clock, ShiftConfiguration.from_settings(settings),
        enforce_entry_window=settings.enforce_entry_window,
    )
    resolver = SmartEventResolver(badges, ledger)
    directory = WorkerDirectory(
        session_factory, mailbox,
        enrollment_timeout=settings.enrollment_timeout_seconds,
        enrollment_poll=settings.enrollment_poll_seconds,
    )
    audit = AccessAudit(session_factory, directory, clock)
    poller = IngestionPoller(
        mailbox, settings.channels, resolver, audit, clock,
        batch_size=settings.poll_batch_size,
        dedup_max_keys=settings.dedup_max_keys,
    )
    scheduler = PollScheduler(poller, settings.poll_interval_seconds)
    configuration = SystemConfiguration(clock, ledger)
    return Services(clock, badges, ledger, resolver, directory, audit, mailbox, poller, scheduler, configuration)
