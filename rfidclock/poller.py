# rfidclock/poller.py

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from .dedup import DedupWindow
from .errors import ChannelFetchFailed, UnparsablePayload
from .parsing import ACCESS_DENIED, ACCESS_GRANTED, ATTENDANCE, CHANNEL_KINDS, parse_payload

logger = logging.getLogger(__name__)


@dataclass
class PollReport:
    channel: str
    fetched: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    busy: bool = False
    fetch_error: Optional[str] = None


class IngestionPoller:
    """
    Reads the tail of each device channel and dispatches entries not seen before.

    Each channel has its own dedup window and its own lock; a poll of one
    channel never waits for another, and two polls of the same channel never
    overlap (the second one returns immediately with ``busy=True``).
    """

    def __init__(self, mailbox, channels, resolver, audit, clock, batch_size=5, dedup_max_keys=1000):
        unknown = {kind for kind in channels.values() if kind not in CHANNEL_KINDS}
        if unknown:
            raise ValueError(f"Unknown channel kind(s): {', '.join(sorted(unknown))}")
        self.mailbox = mailbox
        self.channels = dict(channels)
        self.resolver = resolver
        self.audit = audit
        self.clock = clock
        self.batch_size = batch_size
        self.windows = {channel: DedupWindow(dedup_max_keys) for channel in self.channels}
        self._locks = {channel: threading.Lock() for channel in self.channels}
        self._handlers = {
            ATTENDANCE: self._on_attendance,
            ACCESS_GRANTED: self._on_access_granted,
            ACCESS_DENIED: self._on_access_denied,
        }

    # --- Handlers ---

    def _on_attendance(self, event):
        action = self.resolver.resolve(event.badge_id, self.clock.now())
        logger.info("Badge %s -> %s", event.badge_id, type(action).__name__)

    def _on_access_granted(self, event):
        self.audit.record(True, event.sensor_id, self.clock.now())

    def _on_access_denied(self, event):
        logger.info(">> [ACCESS DENIED]")
        self.audit.record(False, None, self.clock.now())

    # --- Polling ---

    def poll(self, channel) -> PollReport:
        try:
            lock = self._locks[channel]
        except KeyError:
            raise ValueError(f"Unknown channel: {channel}")
        if not lock.acquire(blocking=False):
            logger.debug("Poll of %s still running, skipping this cycle", channel)
            return PollReport(channel, busy=True)
        try:
            return self._poll(channel)
        finally:
            lock.release()

    def _poll(self, channel):
        report = PollReport(channel)
        try:
            entries = self.mailbox.fetch_tail(channel, self.batch_size)
        except ChannelFetchFailed as e:
            # Retried on the next scheduled cycle
            logger.error("Error polling %s: %s", channel, e.message)
            report.fetch_error = e.message
            return report

        report.fetched = len(entries)
        kind = self.channels[channel]
        window = self.windows[channel]
        for key, payload in entries:
            if key in window:
                report.skipped += 1
                continue
            try:
                event = parse_payload(kind, payload)
                self._handlers[kind](event)
                report.processed += 1
            except UnparsablePayload as e:
                logger.warning("Skipping entry %s on %s: %s", key, channel, e.message)
                report.failed += 1
            except Exception:
                # One bad entry must not stop its siblings
                logger.exception("Error processing entry %s on %s", key, channel)
                report.failed += 1
            window.mark(key)
        window.trim(keep=[key for key, _ in entries])
        return report


class PollScheduler:
    """One interval job per channel on an APScheduler background scheduler.

    ``max_instances=1`` keeps polls of a channel from overlapping and
    ``coalesce`` folds missed runs into one when a fetch is slow.
    """

    def __init__(self, poller, interval=3.0):
        self.poller = poller
        self.interval = interval
        self._scheduler = None

    @property
    def running(self):
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        if self.running:
            return
        self._scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=max(1, len(self.poller.channels)))},
        )
        for channel in self.poller.channels:
            self._scheduler.add_job(
                self._poll, "interval", seconds=self.interval, args=[channel],
                id=f"poll-{channel}", max_instances=1, coalesce=True,
                next_run_time=datetime.now(),
            )
        self._scheduler.start()
        logger.info("Poller started for %d channel(s), every %ss", len(self.poller.channels), self.interval)

    def _poll(self, channel):
        try:
            self.poller.poll(channel)
        except Exception:
            logger.exception("Unexpected error polling %s", channel)

    def stop(self, wait=False):
        if not self.running:
            return
        self._scheduler.shutdown(wait=wait)
        logger.info("Poller stopped")
