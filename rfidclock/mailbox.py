"""
Client for the realtime key-value store the devices write to.

The devices append lines of text under log channels (``logs/asistencia``...)
and read commands from ``admin/*``. There is no push subscription here, only
REST reads and writes with a timeout.
"""
import logging
import threading
import time

import requests

from .errors import ChannelFetchFailed

logger = logging.getLogger(__name__)

COMMAND_PATH = "admin/comando"
STATE_PATH = "admin/estado"
TARGET_ID_PATH = "admin/id_target"
LAST_CREATED_ID_PATH = "admin/ultimo_id_creado"

NO_COMMAND = "NADA"
READY = "LISTO"


class Mailbox:
    def __init__(self, base_url, secret="", timeout=5.0, session=None):
        self.base_url = base_url.rstrip("/")
        self.secret = secret
        self.timeout = timeout
        self._session = session
        self._local = threading.local()

    @property
    def http(self):
        """HTTP session of the calling thread; each poll thread gets its own."""
        if self._session is not None:
            return self._session
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._local.session = requests.Session()
        return session

    def _url(self, path):
        return f"{self.base_url}/{path.strip('/')}.json"

    def _params(self, **extra):
        params = dict(extra)
        if self.secret:
            params["auth"] = self.secret
        return params

    def _get(self, path, params):
        try:
            response = self.http.get(self._url(path), params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.Timeout as e:
            raise ChannelFetchFailed(path, f"Timeout reading {path}: {e}") from e
        except (requests.RequestException, ValueError) as e:
            raise ChannelFetchFailed(path, f"Error reading {path}: {e}") from e

    def fetch_tail(self, channel, limit):
        """Last ``limit`` entries of a channel as ``[(key, payload), ...]`` in key order."""
        data = self._get(channel, self._params(orderBy='"$key"', limitToLast=limit))
        if data is None:
            return []
        if not isinstance(data, dict):
            raise ChannelFetchFailed(channel, f"Unexpected payload on {channel}: {type(data).__name__}")
        return sorted(data.items())

    def read(self, path):
        return self._get(path, self._params())

    def write(self, path, value):
        try:
            response = self.http.put(self._url(path), params=self._params(), json=value, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise ChannelFetchFailed(path, f"Error writing {path}: {e}") from e
        logger.info("Mailbox %s set to %r", path, value)

    # --- Device commands ---

    def send_command(self, command, state, target_id=None):
        if target_id is not None:
            self.write(TARGET_ID_PATH, target_id)
        self.write(COMMAND_PATH, command)
        self.write(STATE_PATH, state)

    def clear_command(self):
        self.send_command(NO_COMMAND, READY)

    def wait_for_state_change(self, previous, timeout, interval=1.0, sleep=time.sleep, clock=time.monotonic):
        """
        Poll ``admin/estado`` until it differs from ``previous``.

        Returns the new state, or None when ``timeout`` seconds pass without a
        change. Read failures count as "no change yet".
        """
        deadline = clock() + timeout
        while clock() < deadline:
            try:
                state = self.read(STATE_PATH)
            except ChannelFetchFailed as e:
                logger.warning("Could not read device state: %s", e.message)
                state = previous
            if state != previous:
                return state
            sleep(interval)
        return None
