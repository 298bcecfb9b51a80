"""
Design (views.py)
- Purpose: Derived views over a fleet snapshot: list filters, overdue detection, KPI counts,
           per-ship stats, maintenance history, calendar bucketing and the notification feed.
- Inputs: Entity sequences (usually from FleetRepo.snapshot()), plus `today` / `now`.
- Outputs: New lists / dicts / small frozen dataclasses. Inputs are never mutated.
- Side effects: None.
- Thread-safety: Pure functions.
"""

import calendar
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .config import CALENDAR_PREVIEW_COUNT, NOTIFICATION_PREVIEW_LIMIT, OVERDUE_DAYS, UPCOMING_LIMIT
from .models import (
    Component,
    Job,
    JobPriority,
    JobStatus,
    Notification,
    Ship,
    ShipStatus,
)
from .utils import format_date, parse_date, parse_timestamp

# Filter sentinel: bypasses that filter dimension
ALL = "all"

ACTIVE_JOB_STATUSES = (JobStatus.OPEN, JobStatus.IN_PROGRESS)


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


def _matches(value, wanted) -> bool:
    if wanted is None or wanted == ALL:
        return True
    return value == wanted


# ---------- Filters ----------

def filter_ships(ships: Sequence[Ship], search: str = "", status=ALL) -> List[Ship]:
    """Name/flag case-insensitive, IMO by substring; AND an exact status (or ALL)."""
    needle = (search or "").strip().lower()
    result = []
    for ship in ships:
        if needle and not (_contains(ship.name, needle) or needle in ship.imo
                           or _contains(ship.flag, needle)):
            continue
        if _matches(ship.status, status):
            result.append(ship)
    return result


def filter_components(components: Sequence[Component], search: str = "") -> List[Component]:
    needle = (search or "").strip().lower()
    if not needle:
        return list(components)
    return [c for c in components if _contains(c.name, needle) or _contains(c.serial_number, needle)]


def components_on_ship(ship_id: Optional[str], components: Sequence[Component]) -> List[Component]:
    return [c for c in components if c.ship_id == ship_id]


def filter_jobs(
    jobs: Sequence[Job],
    ships: Sequence[Ship],
    components: Sequence[Component],
    search: str = "",
    status=ALL,
    priority=ALL,
) -> List[Job]:
    """
    Purpose: Job list filter.
    Inputs: search matched case-insensitively against ship name, component name, job type and
            description; status / priority are exact matches or ALL.
    Outputs: Matching jobs in their original order.
    """
    needle = (search or "").strip().lower()
    ship_names = {s.id: s.name for s in ships}
    component_names = {c.id: c.name for c in components}
    result = []
    for job in jobs:
        if needle and not (
            _contains(ship_names.get(job.ship_id), needle)
            or _contains(component_names.get(job.component_id), needle)
            or _contains(job.type.value, needle)
            or _contains(job.description, needle)
        ):
            continue
        if _matches(job.status, status) and _matches(job.priority, priority):
            result.append(job)
    return result


# ---------- Overdue ----------

def is_component_overdue(component: Component, today: date) -> bool:
    """Overdue iff last maintenance is more than OVERDUE_DAYS before today (90 days is not)."""
    last = parse_date(component.last_maintenance_date)
    if last is None:
        return False
    return today - last > timedelta(days=OVERDUE_DAYS)


def is_job_overdue(job: Job, today: date) -> bool:
    if job.status is JobStatus.COMPLETED:
        return False
    scheduled = parse_date(job.scheduled_date)
    return scheduled is not None and scheduled < today


def overdue_components(components: Sequence[Component], today: date) -> List[Component]:
    return [c for c in components if is_component_overdue(c, today)]


def overdue_jobs(jobs: Sequence[Job], today: date) -> List[Job]:
    return [j for j in jobs if is_job_overdue(j, today)]


def _is_critical_open(job: Job) -> bool:
    return job.priority is JobPriority.CRITICAL and job.status is not JobStatus.COMPLETED


# ---------- KPIs ----------

@dataclass(frozen=True)
class KpiSummary:
    total_ships: int
    ships_by_status: Dict[ShipStatus, int]
    total_jobs: int
    jobs_by_status: Dict[JobStatus, int]
    jobs_by_priority: Dict[JobPriority, int]
    active_jobs: int
    overdue_components: int
    overdue_jobs: int
    critical_jobs: int

    @property
    def active_ships(self) -> int:
        return self.ships_by_status[ShipStatus.ACTIVE]

    @property
    def ships_under_maintenance(self) -> int:
        return self.ships_by_status[ShipStatus.UNDER_MAINTENANCE]

    @property
    def completed_jobs(self) -> int:
        return self.jobs_by_status[JobStatus.COMPLETED]


def compute_kpis(
    ships: Sequence[Ship],
    components: Sequence[Component],
    jobs: Sequence[Job],
    today: date,
) -> KpiSummary:
    ship_counts = Counter(s.status for s in ships)
    status_counts = Counter(j.status for j in jobs)
    priority_counts = Counter(j.priority for j in jobs)
    return KpiSummary(
        total_ships=len(ships),
        ships_by_status={status: ship_counts[status] for status in ShipStatus},
        total_jobs=len(jobs),
        jobs_by_status={status: status_counts[status] for status in JobStatus},
        jobs_by_priority={priority: priority_counts[priority] for priority in JobPriority},
        active_jobs=sum(status_counts[s] for s in ACTIVE_JOB_STATUSES),
        overdue_components=len(overdue_components(components, today)),
        overdue_jobs=len(overdue_jobs(jobs, today)),
        critical_jobs=sum(1 for j in jobs if _is_critical_open(j)),
    )


@dataclass(frozen=True)
class ShipStats:
    components: int
    overdue_components: int
    active_jobs: int
    total_jobs: int
    critical_jobs: int


def ship_stats(ship_id: str, components: Sequence[Component], jobs: Sequence[Job], today: date) -> ShipStats:
    own_components = components_on_ship(ship_id, components)
    own_jobs = [j for j in jobs if j.ship_id == ship_id]
    return ShipStats(
        components=len(own_components),
        overdue_components=len(overdue_components(own_components, today)),
        active_jobs=sum(1 for j in own_jobs if j.status in ACTIVE_JOB_STATUSES),
        total_jobs=len(own_jobs),
        critical_jobs=sum(1 for j in own_jobs if _is_critical_open(j)),
    )


def maintenance_history(ship_id: str, jobs: Sequence[Job]) -> List[Job]:
    """Completed jobs of one ship, most recently scheduled first."""
    done = [j for j in jobs if j.ship_id == ship_id and j.status is JobStatus.COMPLETED]
    return sorted(done, key=lambda j: j.scheduled_date, reverse=True)


# ---------- Calendar ----------

def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_grid(year: int, month: int) -> List[List[Optional[int]]]:
    """Weeks starting on Sunday; days outside the month are None."""
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(year, month)
    return [[day or None for day in week] for week in weeks]


def _month_prefix(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}-"


def jobs_by_date(jobs: Sequence[Job], year: int, month: int) -> Dict[str, List[Job]]:
    """
    Purpose: Bucket a month's jobs by their exact scheduled_date string.
    Outputs: {YYYY-MM-DD: [jobs]} with keys in ascending date order.
    """
    prefix = _month_prefix(year, month)
    buckets: Dict[str, List[Job]] = {}
    for job in sorted(jobs, key=lambda j: j.scheduled_date):
        if job.scheduled_date.startswith(prefix):
            buckets.setdefault(job.scheduled_date, []).append(job)
    return buckets


def day_cell(
    jobs: Sequence[Job],
    day: date,
    preview: int = CALENDAR_PREVIEW_COUNT,
) -> Tuple[List[Job], int]:
    """(first `preview` jobs scheduled on day, how many more are hidden)"""
    key = format_date(day)
    scheduled = [j for j in jobs if j.scheduled_date == key]
    return scheduled[:preview], max(0, len(scheduled) - preview)


def upcoming_jobs(jobs: Sequence[Job], year: int, month: int, limit: int = UPCOMING_LIMIT) -> List[Job]:
    prefix = _month_prefix(year, month)
    pending = [j for j in jobs if j.scheduled_date.startswith(prefix) and j.status is not JobStatus.COMPLETED]
    return sorted(pending, key=lambda j: j.scheduled_date)[:limit]


# ---------- Notifications ----------

def active_notifications(
    notifications: Sequence[Notification],
    limit: Optional[int] = NOTIFICATION_PREVIEW_LIMIT,
) -> List[Notification]:
    """Undismissed entries, newest first (feed order), truncated to `limit` (None = all)."""
    active = [n for n in notifications if not n.dismissed]
    return active if limit is None else active[:limit]


def format_relative_time(timestamp: str, now: datetime) -> str:
    when = parse_timestamp(timestamp)
    if when is None:
        return ""
    elapsed = now - when
    if elapsed < timedelta(hours=1):
        return f"{max(0, int(elapsed.total_seconds() // 60))}m ago"
    if elapsed < timedelta(days=1):
        return f"{int(elapsed.total_seconds() // 3600)}h ago"
    return format_date(when.date())
