"""
Design (utils.py)
- Purpose: Reusable helpers: id generation, ISO date parsing/formatting, and the desktop
           notification wrapper around plyer.
- Inputs: Various helper parameters (existing ids, date strings, messages).
- Outputs: Helper results (ids, dates, strings).
- Side effects: notify_desktop shows an OS toast.
- Thread-safety: Stateless; safe to call from any thread.
"""

import logging
import uuid
from datetime import date, datetime
from typing import Container, Optional

from plyer import notification

from .config import APP_NAME, NOTIFY_TIMEOUT_SEC

log = logging.getLogger(__name__)

ID_LENGTH = 9
DATE_FORMAT = "%Y-%m-%d"


def new_id(existing: Container[str] = ()) -> str:
    """
    Purpose: Generate a short random id not present in `existing`.
    Inputs: existing (ids already used in the target collection).
    Outputs: 9-char lowercase hex string.
    """
    while True:
        candidate = uuid.uuid4().hex[:ID_LENGTH]
        if candidate not in existing:
            return candidate


def parse_date(value: str) -> Optional[date]:
    """
    Purpose: Parse a YYYY-MM-DD string.
    Outputs: date, or None if empty/malformed.
    """
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        return None


def format_date(value: date) -> str:
    return value.strftime(DATE_FORMAT)


def parse_timestamp(value: str) -> Optional[datetime]:
    """ISO-8601 timestamp -> naive local datetime (None if malformed)."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def notify_desktop(message: str, title: str = APP_NAME) -> bool:
    """
    Purpose: Show an OS-level toast for a feed entry.
    Inputs: message, optional title.
    Outputs: True if the toast was handed to the platform backend.
    Side Effects: Calls plyer; platforms without a backend are logged and skipped.
    Thread-safety: Safe.
    """
    try:
        notification.notify(title=title, message=message, timeout=NOTIFY_TIMEOUT_SEC)
    except (NotImplementedError, OSError) as exc:
        log.warning("desktop notification unavailable: %s", exc)
        return False
    return True
