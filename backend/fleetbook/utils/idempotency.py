import logging
import threading
from contextlib import contextmanager
from typing import Set

from fleetbook.utils.exceptions import DuplicateSubmissionError

logger = logging.getLogger(__name__)


class InFlightGuard:
    """
    Tracks actions that are currently being submitted.

    A second submission of the same action key is refused until the first one
    resolves, whether it succeeded or failed. Prevents double bookings and
    double transitions from repeated clicks.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: Set[str] = set()

    def is_in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._in_flight

    def acquire(self, key: str) -> None:
        with self._lock:
            if key in self._in_flight:
                logger.info(f"Rejected duplicate submission: {key}")
                raise DuplicateSubmissionError(key)
            self._in_flight.add(key)

    def release(self, key: str) -> None:
        with self._lock:
            self._in_flight.discard(key)

    @contextmanager
    def hold(self, key: str):
        self.acquire(key)
        try:
            yield
        finally:
            self.release(key)


def create_key(user_id: str) -> str:
    return f"create:{user_id}"


def transition_key(booking_id: str) -> str:
    return f"transition:{booking_id}"


def delete_key(booking_id: str) -> str:
    return f"delete:{booking_id}"
