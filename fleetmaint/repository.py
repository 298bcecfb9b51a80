"""
Design (repository.py)
- Purpose: Encapsulate all fleet state (ships, components, jobs, notifications) behind a small
           mutation API and a lock, so the UI never touches collections directly. Every
           mutation is persisted to the BlobStore before it becomes visible in memory.
- Inputs: Drafts from forms.py, ids, field changes.
- Outputs: Built entities; snapshots (copies) of the current collections.
- Side effects: Writes the affected blobs plus `notifications` on every mutation; appends
                exactly one Notification per ship/component/job create, update or delete.
- Thread-safety: All reads and mutations take the internal lock; snapshot returns copies.
                 Listeners are called after the lock is released.
"""

import json
import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .cascade import cascade_delete_component, cascade_delete_ship
from .config import COMPONENTS_KEY, JOBS_KEY, NOTIFICATIONS_KEY, SHIPS_KEY
from .forms import ComponentDraft, FieldErrors, JobDraft, ShipDraft, apply_changes
from .models import (
    Component,
    Job,
    JobStatus,
    Notification,
    NotificationKind,
    Ship,
    copy_entity,
)
from .seed import seed_components, seed_jobs, seed_notifications, seed_ships
from .storage import BlobStore, StorageError
from .utils import format_date, new_id

log = logging.getLogger(__name__)

Listener = Callable[[Notification], None]


class FleetError(Exception):
    """Base class for rejected store operations."""


class EntityNotFound(FleetError):
    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} '{entity_id}' not found")
        self.kind = kind
        self.entity_id = entity_id


class ValidationFailed(FleetError):
    def __init__(self, errors: FieldErrors):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = dict(errors)


class IntegrityError(FleetError):
    """A reference between entities would be broken by the write."""


@dataclass(frozen=True)
class FleetSnapshot:
    ships: Tuple[Ship, ...]
    components: Tuple[Component, ...]
    jobs: Tuple[Job, ...]
    notifications: Tuple[Notification, ...]


# blob key -> (attribute name, entity class, seed factory)
_COLLECTIONS = {
    SHIPS_KEY: ("_ships", Ship, seed_ships),
    COMPONENTS_KEY: ("_components", Component, seed_components),
    JOBS_KEY: ("_jobs", Job, seed_jobs),
    NOTIFICATIONS_KEY: ("_notifications", Notification, seed_notifications),
}


def _find(items: Sequence, entity_id: str):
    return next((item for item in items if item.id == entity_id), None)


def _replace_item(items: Sequence, updated) -> list:
    return [updated if item.id == updated.id else item for item in items]


def _merge(draft, changes: Dict[str, object]):
    try:
        return apply_changes(draft, changes)
    except KeyError as exc:
        raise ValidationFailed({str(exc.args[0]): "Field cannot be changed"}) from None


# fields validated against each other; editing one re-checks the group
_LINKED_FIELDS = (frozenset({"install_date", "last_maintenance_date"}),)


def _check_changed(draft, changes: Dict[str, object]) -> None:
    """
    Raise ValidationFailed for problems in the edited fields only. Untouched fields keep
    whatever the stored record holds, so a status change never trips over a legacy value.
    """
    keys = set(changes)
    for group in _LINKED_FIELDS:
        if keys & group:
            keys |= group
    errors = {k: v for k, v in draft.validate().items() if k in keys}
    if errors:
        raise ValidationFailed(errors)


class FleetRepo:
    """
    Design (FleetRepo)
    - State:
        _ships / _components / _jobs: entity lists in insertion order
        _notifications: newest first
        _blobs: BlobStore the collections are hydrated from and persisted to
        _clock: returns "now" (injectable for tests)
        _lock: threading.Lock protecting every read and write
        _listeners: callables receiving each newly appended Notification
    """

    def __init__(self, blobs: BlobStore, clock: Callable[[], datetime] = datetime.now) -> None:
        self._lock = threading.Lock()
        self._blobs = blobs
        self._clock = clock
        self._ships: List[Ship] = []
        self._components: List[Component] = []
        self._jobs: List[Job] = []
        self._notifications: List[Notification] = []
        self._listeners: List[Listener] = []

    # -------- Hydration --------

    def load(self) -> None:
        """
        Purpose: Hydrate every collection from the blob store.
        Side effects: Missing keys (or unreadable JSON) fall back to the seed dataset; malformed
                      records are skipped and broken references are logged. Nothing is written back
                      until the first mutation.
        Raises: StorageError if the store itself cannot be read.
        """
        with self._lock:
            for key, (attr, entity_cls, seed) in _COLLECTIONS.items():
                setattr(self, attr, self._load_collection(key, entity_cls, seed))
            self._warn_dangling()
            log.info(
                "loaded %d ships, %d components, %d jobs, %d notifications",
                len(self._ships), len(self._components), len(self._jobs), len(self._notifications),
            )

    def _load_collection(self, key: str, entity_cls, seed) -> list:
        try:
            data = self._blobs.get_json(key)
        except json.JSONDecodeError as exc:
            log.warning("blob '%s' is not valid JSON (%s); using seed data", key, exc)
            return seed()
        if data is None:
            return seed()
        if not isinstance(data, list):
            log.warning("blob '%s' is not a list; using seed data", key)
            return seed()
        items = []
        seen = set()
        for raw in data:
            if not isinstance(raw, dict):
                continue
            try:
                item = entity_cls.from_dict(raw)
            except (KeyError, TypeError, ValueError) as exc:
                log.warning("skipping malformed %s record %r: %s", key, raw.get("id"), exc)
                continue
            if item.id in seen:
                log.warning("skipping duplicate %s id %r", key, item.id)
                continue
            seen.add(item.id)
            items.append(item)
        return items

    def _warn_dangling(self) -> None:
        """Report loaded records whose references are broken. They are kept as-is."""
        ship_ids = {s.id for s in self._ships}
        component_ships = {c.id: c.ship_id for c in self._components}
        for component in self._components:
            if component.ship_id not in ship_ids:
                log.warning("component %r refers to missing ship %r", component.id, component.ship_id)
        for job in self._jobs:
            if job.ship_id not in ship_ids:
                log.warning("job %r refers to missing ship %r", job.id, job.ship_id)
            if job.component_id not in component_ships:
                log.warning("job %r refers to missing component %r", job.id, job.component_id)
            elif component_ships[job.component_id] != job.ship_id:
                log.warning("job %r: component %r is not on ship %r",
                            job.id, job.component_id, job.ship_id)

    # -------- Listeners --------

    def subscribe(self, listener: Listener) -> None:
        """Register a callable invoked with every new Notification after it is persisted."""
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, notification: Optional[Notification]) -> None:
        if notification is None:
            return
        for listener in list(self._listeners):
            listener(notification)

    # -------- Commit (lock must be held) --------

    def _new_notification(self, message: str, kind: NotificationKind) -> Notification:
        return Notification(
            id=new_id({n.id for n in self._notifications}),
            message=message,
            kind=kind,
            timestamp=self._clock().isoformat(timespec="seconds"),
            dismissed=False,
        )

    def _commit(
        self,
        updates: Dict[str, list],
        message: Optional[str] = None,
        kind: NotificationKind = NotificationKind.INFO,
    ) -> Optional[Notification]:
        """
        Purpose: Persist the new collections (plus the notification feed when `message` is
                 given) and only then swap them into memory.
        Outputs: The appended Notification, or None when no message was given.
        Raises: StorageError. Keys already written are restored to their previous blob so the
                store and memory both keep the pre-mutation state.
        """
        notification = None
        if message is not None:
            notification = self._new_notification(message, kind)
            updates[NOTIFICATIONS_KEY] = [notification] + self._notifications

        written: List[Tuple[str, Optional[str]]] = []
        try:
            for key, items in updates.items():
                previous = self._blobs.get(key)
                self._blobs.set_json(key, [item.to_dict() for item in items])
                written.append((key, previous))
        except StorageError:
            log.error("persist failed; restoring %d blob(s)", len(written))
            self._restore(written)
            raise

        for key, items in updates.items():
            setattr(self, _COLLECTIONS[key][0], list(items))
        if notification is not None:
            log.info("%s [%s]", notification.message, notification.kind.value)
        return notification

    def _restore(self, written: List[Tuple[str, Optional[str]]]) -> None:
        for key, previous in reversed(written):
            try:
                if previous is None:
                    self._blobs.remove(key)
                else:
                    self._blobs.set(key, previous)
            except StorageError as exc:
                log.error("could not restore blob '%s': %s", key, exc)

    # -------- Lookups --------

    def _require(self, items: Sequence, kind: str, entity_id: str):
        item = _find(items, entity_id)
        if item is None:
            raise EntityNotFound(kind, entity_id)
        return item

    def get_ship(self, ship_id: str) -> Optional[Ship]:
        with self._lock:
            ship = _find(self._ships, ship_id)
            return copy_entity(ship) if ship else None

    def get_component(self, component_id: str) -> Optional[Component]:
        with self._lock:
            component = _find(self._components, component_id)
            return copy_entity(component) if component else None

    def get_job(self, job_id: str) -> Optional[Job]:
        with self._lock:
            job = _find(self._jobs, job_id)
            return copy_entity(job) if job else None

    def snapshot(self) -> FleetSnapshot:
        """
        Purpose: Return copies of all collections for safe iteration by views and UI.
        Thread-safety: Protected by _lock.
        """
        with self._lock:
            return FleetSnapshot(
                ships=tuple(copy_entity(s) for s in self._ships),
                components=tuple(copy_entity(c) for c in self._components),
                jobs=tuple(copy_entity(j) for j in self._jobs),
                notifications=tuple(copy_entity(n) for n in self._notifications),
            )

    # -------- Ships --------

    def add_ship(self, draft: ShipDraft) -> Ship:
        errors = draft.validate()
        if errors:
            raise ValidationFailed(errors)
        with self._lock:
            ship = draft.build(new_id({s.id for s in self._ships}))
            note = self._commit(
                {SHIPS_KEY: self._ships + [ship]},
                f'Ship "{ship.name}" has been added', NotificationKind.SUCCESS,
            )
        self._emit(note)
        return copy_entity(ship)

    def update_ship(self, ship_id: str, **changes) -> Ship:
        with self._lock:
            current = self._require(self._ships, "ship", ship_id)
            draft = _merge(ShipDraft.from_ship(current), changes)
            _check_changed(draft, changes)
            ship = draft.build(ship_id)
            note = self._commit(
                {SHIPS_KEY: _replace_item(self._ships, ship)},
                "Ship has been updated", NotificationKind.INFO,
            )
        self._emit(note)
        return copy_entity(ship)

    def delete_ship(self, ship_id: str) -> None:
        """
        Purpose: Remove a ship and, transitively, its components and their jobs.
        Side effects: Rewrites ships, components, jobs and notifications.
        """
        with self._lock:
            self._require(self._ships, "ship", ship_id)
            ships, components, jobs = cascade_delete_ship(
                ship_id, self._ships, self._components, self._jobs
            )
            note = self._commit(
                {SHIPS_KEY: ships, COMPONENTS_KEY: components, JOBS_KEY: jobs},
                "Ship has been deleted", NotificationKind.WARNING,
            )
        self._emit(note)

    # -------- Components --------

    def add_component(self, draft: ComponentDraft) -> Component:
        errors = draft.validate()
        if errors:
            raise ValidationFailed(errors)
        with self._lock:
            if _find(self._ships, draft.ship_id) is None:
                raise IntegrityError(f"ship '{draft.ship_id}' does not exist")
            component = draft.build(new_id({c.id for c in self._components}))
            note = self._commit(
                {COMPONENTS_KEY: self._components + [component]},
                f'Component "{component.name}" has been added', NotificationKind.SUCCESS,
            )
        self._emit(note)
        return copy_entity(component)

    def update_component(self, component_id: str, **changes) -> Component:
        with self._lock:
            current = self._require(self._components, "component", component_id)
            draft = _merge(ComponentDraft.from_component(current), changes)
            _check_changed(draft, changes)
            if draft.ship_id != current.ship_id:
                if _find(self._ships, draft.ship_id) is None:
                    raise IntegrityError(f"ship '{draft.ship_id}' does not exist")
                if any(j.component_id == component_id for j in self._jobs):
                    raise IntegrityError("component has jobs; it cannot move to another ship")
            component = draft.build(component_id)
            note = self._commit(
                {COMPONENTS_KEY: _replace_item(self._components, component)},
                "Component has been updated", NotificationKind.INFO,
            )
        self._emit(note)
        return copy_entity(component)

    def delete_component(self, component_id: str) -> None:
        with self._lock:
            self._require(self._components, "component", component_id)
            components, jobs = cascade_delete_component(component_id, self._components, self._jobs)
            note = self._commit(
                {COMPONENTS_KEY: components, JOBS_KEY: jobs},
                "Component has been deleted", NotificationKind.WARNING,
            )
        self._emit(note)

    # -------- Jobs --------

    def _check_job_refs(self, ship_id: str, component_id: str) -> None:
        if _find(self._ships, ship_id) is None:
            raise IntegrityError(f"ship '{ship_id}' does not exist")
        component = _find(self._components, component_id)
        if component is None:
            raise IntegrityError(f"component '{component_id}' does not exist")
        if component.ship_id != ship_id:
            raise IntegrityError(f"component '{component_id}' does not belong to ship '{ship_id}'")

    def add_job(self, draft: JobDraft) -> Job:
        errors = draft.validate()
        if errors:
            raise ValidationFailed(errors)
        with self._lock:
            self._check_job_refs(draft.ship_id, draft.component_id)
            job = draft.build(
                new_id({j.id for j in self._jobs}),
                created_date=format_date(self._clock().date()),
            )
            note = self._commit(
                {JOBS_KEY: self._jobs + [job]},
                "Job has been created", NotificationKind.SUCCESS,
            )
        self._emit(note)
        return copy_entity(job)

    def update_job(self, job_id: str, **changes) -> Job:
        """
        Purpose: Edit a job. id and created_date are not editable.
        Side effects: One notification; when `status` is among the changes it reports the new
                      status (success for Completed, info otherwise).
        """
        with self._lock:
            current = self._require(self._jobs, "job", job_id)
            draft = _merge(JobDraft.from_job(current), changes)
            _check_changed(draft, changes)
            if (draft.ship_id, draft.component_id) != (current.ship_id, current.component_id):
                self._check_job_refs(draft.ship_id, draft.component_id)
            job = draft.build(job_id, created_date=current.created_date)
            if "status" in changes:
                message = f'Job status updated to "{job.status.value}"'
                kind = NotificationKind.SUCCESS if job.status is JobStatus.COMPLETED else NotificationKind.INFO
            else:
                message, kind = "Job has been updated", NotificationKind.INFO
            note = self._commit({JOBS_KEY: _replace_item(self._jobs, job)}, message, kind)
        self._emit(note)
        return copy_entity(job)

    def set_job_status(self, job_id: str, status: JobStatus) -> Job:
        """Status-only edit (the one job change engineers are offered)."""
        return self.update_job(job_id, status=status)

    def delete_job(self, job_id: str) -> None:
        with self._lock:
            self._require(self._jobs, "job", job_id)
            note = self._commit(
                {JOBS_KEY: [j for j in self._jobs if j.id != job_id]},
                "Job has been deleted", NotificationKind.WARNING,
            )
        self._emit(note)

    # -------- Notifications --------

    def add_notification(self, message: str, kind: NotificationKind = NotificationKind.INFO) -> Notification:
        with self._lock:
            note = self._commit({}, message, NotificationKind(kind))
        self._emit(note)
        return copy_entity(note)

    def dismiss_notification(self, notification_id: str) -> None:
        """Mark a feed entry dismissed; it stays in the collection."""
        with self._lock:
            current = self._require(self._notifications, "notification", notification_id)
            if current.dismissed:
                return
            updated = replace(current, dismissed=True)
            self._commit({NOTIFICATIONS_KEY: _replace_item(self._notifications, updated)})
