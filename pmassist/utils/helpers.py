"""Shared utility functions.

today_iso:   current UTC date as ``YYYY-MM-DD`` (the stored date format)
normalize_date: date-ish input → ``YYYY-MM-DD`` string, "" on bad input
new_id:      millisecond-timestamp ids, unique and increasing per process
locked:      run a service method under its dashboard state lock
"""
import functools
import logging
import threading
import time
from datetime import date, datetime, timezone

logger = logging.getLogger(__name__)

_id_lock = threading.Lock()
_last_id = 0


def today_iso() -> str:
    """Return today's UTC date as an ISO string."""
    return datetime.now(timezone.utc).date().isoformat()


def normalize_date(value) -> str:
    """Normalise a date value to ``YYYY-MM-DD``.

    Accepts ``date``/``datetime`` objects, ISO dates, ISO datetimes and
    ``DD.MM.YYYY``. Returns "" for empty or unparseable input.
    """
    if not value:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass
    try:
        return datetime.strptime(text, "%d.%m.%Y").date().isoformat()
    except ValueError:
        logger.debug("Unparseable date value %r", value)
        return ""


def new_id(existing=()) -> str:
    """Return a fresh id: the current epoch in milliseconds as a string.

    Two ids issued within the same millisecond are bumped by one so ids
    stay unique and increasing. ``existing`` ids are skipped as well.
    """
    global _last_id
    taken = set(existing)
    with _id_lock:
        candidate = max(int(time.time() * 1000), _last_id + 1)
        while str(candidate) in taken:
            candidate += 1
        _last_id = candidate
    return str(candidate)


def locked(method):
    """Run ``method`` holding ``self.state.lock``.

    Services sharing one DashboardStore serialise their read-modify-write
    cycles on its lock. The lock is re-entrant, so locked methods may call
    each other.
    """
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.state.lock:
            return method(self, *args, **kwargs)
    return wrapper
