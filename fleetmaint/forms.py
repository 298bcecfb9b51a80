"""
Design (forms.py)
- Purpose: Typed draft records for the Ship / Component / Job forms and their field validation.
- Inputs: Raw form values (strings, as typed or picked in the UI).
- Outputs: validate() -> {field_name: message}; empty dict means the draft is valid.
           build() -> the entity, once validate() passed.
- Side effects: None. Validation problems are reported per field, never raised.
- Thread-safety: Frozen dataclasses; safe.
"""

import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Dict, Optional, Sequence, Type

from .config import DEFAULT_ENGINEER_ID
from .models import (
    Component,
    Job,
    JobPriority,
    JobStatus,
    JobType,
    Ship,
    ShipStatus,
)
from .utils import parse_date

IMO_PATTERN = re.compile(r"^\d{7}$")

FieldErrors = Dict[str, str]


def _is_member(enum_cls: Type[Enum], value) -> bool:
    try:
        enum_cls(value)
    except ValueError:
        return False
    return True


def _require(errors: FieldErrors, field: str, value: str, message: str) -> bool:
    if not (value or "").strip():
        errors[field] = message
        return False
    return True


def _require_date(errors: FieldErrors, field: str, value: str, message: str) -> bool:
    if not _require(errors, field, value, message):
        return False
    if parse_date(value) is None:
        errors[field] = "Date must be in YYYY-MM-DD format"
        return False
    return True


def draft_field_names(draft_cls) -> set:
    return {f.name for f in fields(draft_cls)}


@dataclass(frozen=True)
class ShipDraft:
    name: str = ""
    imo: str = ""
    flag: str = ""
    status: str = ShipStatus.ACTIVE.value

    @classmethod
    def from_ship(cls, ship: Ship) -> "ShipDraft":
        return cls(name=ship.name, imo=ship.imo, flag=ship.flag, status=ship.status.value)

    def validate(self) -> FieldErrors:
        errors: FieldErrors = {}
        _require(errors, "name", self.name, "Ship name is required")
        if _require(errors, "imo", self.imo, "IMO number is required"):
            if not IMO_PATTERN.match(self.imo.strip()):
                errors["imo"] = "IMO number must be 7 digits"
        _require(errors, "flag", self.flag, "Flag is required")
        if not _is_member(ShipStatus, self.status):
            errors["status"] = "Unknown ship status"
        return errors

    def build(self, ship_id: str) -> Ship:
        return Ship(
            id=ship_id,
            name=self.name.strip(),
            imo=self.imo.strip(),
            flag=self.flag.strip(),
            status=ShipStatus(self.status),
        )


@dataclass(frozen=True)
class ComponentDraft:
    ship_id: str = ""
    name: str = ""
    serial_number: str = ""
    install_date: str = ""
    last_maintenance_date: str = ""

    @classmethod
    def from_component(cls, component: Component) -> "ComponentDraft":
        return cls(
            ship_id=component.ship_id,
            name=component.name,
            serial_number=component.serial_number,
            install_date=component.install_date,
            last_maintenance_date=component.last_maintenance_date,
        )

    def validate(self, ships: Optional[Sequence[Ship]] = None) -> FieldErrors:
        errors: FieldErrors = {}
        if _require(errors, "ship_id", self.ship_id, "Ship is required") and ships is not None:
            if not any(s.id == self.ship_id for s in ships):
                errors["ship_id"] = "Ship does not exist"
        _require(errors, "name", self.name, "Component name is required")
        _require(errors, "serial_number", self.serial_number, "Serial number is required")
        installed = _require_date(errors, "install_date", self.install_date,
                                  "Installation date is required")
        maintained = _require_date(errors, "last_maintenance_date", self.last_maintenance_date,
                                   "Last maintenance date is required")
        if installed and maintained:
            if parse_date(self.last_maintenance_date) < parse_date(self.install_date):
                errors["last_maintenance_date"] = "Last maintenance cannot precede installation"
        return errors

    def build(self, component_id: str) -> Component:
        return Component(
            id=component_id,
            ship_id=self.ship_id,
            name=self.name.strip(),
            serial_number=self.serial_number.strip(),
            install_date=self.install_date.strip(),
            last_maintenance_date=self.last_maintenance_date.strip(),
        )


@dataclass(frozen=True)
class JobDraft:
    ship_id: str = ""
    component_id: str = ""
    type: str = JobType.INSPECTION.value
    priority: str = JobPriority.MEDIUM.value
    status: str = JobStatus.OPEN.value
    scheduled_date: str = ""
    description: str = ""
    assigned_engineer_id: str = DEFAULT_ENGINEER_ID

    @classmethod
    def from_job(cls, job: Job) -> "JobDraft":
        return cls(
            ship_id=job.ship_id,
            component_id=job.component_id,
            type=job.type.value,
            priority=job.priority.value,
            status=job.status.value,
            scheduled_date=job.scheduled_date,
            description=job.description,
            assigned_engineer_id=job.assigned_engineer_id,
        )

    def validate(
        self,
        ships: Optional[Sequence[Ship]] = None,
        components: Optional[Sequence[Component]] = None,
    ) -> FieldErrors:
        """
        Purpose: Field checks, plus referential checks when a fleet snapshot is supplied.
        Inputs: ships / components (optional); without them only shape is validated.
        Outputs: {field: message}.
        """
        errors: FieldErrors = {}
        has_ship = _require(errors, "ship_id", self.ship_id, "Ship is required")
        has_component = _require(errors, "component_id", self.component_id, "Component is required")
        if not _is_member(JobType, self.type):
            errors["type"] = "Unknown job type"
        if not _is_member(JobPriority, self.priority):
            errors["priority"] = "Unknown priority"
        if not _is_member(JobStatus, self.status):
            errors["status"] = "Unknown job status"
        _require_date(errors, "scheduled_date", self.scheduled_date, "Scheduled date is required")
        _require(errors, "description", self.description, "Description is required")

        if has_ship and ships is not None and not any(s.id == self.ship_id for s in ships):
            errors["ship_id"] = "Ship does not exist"
        if has_component and components is not None:
            component = next((c for c in components if c.id == self.component_id), None)
            if component is None:
                errors["component_id"] = "Component does not exist"
            elif has_ship and component.ship_id != self.ship_id:
                errors["component_id"] = "Component does not belong to the selected ship"
        return errors

    def build(self, job_id: str, created_date: str) -> Job:
        return Job(
            id=job_id,
            ship_id=self.ship_id,
            component_id=self.component_id,
            type=JobType(self.type),
            priority=JobPriority(self.priority),
            status=JobStatus(self.status),
            assigned_engineer_id=self.assigned_engineer_id,
            scheduled_date=self.scheduled_date.strip(),
            description=self.description.strip(),
            created_date=created_date,
        )


def apply_changes(draft, changes: Dict[str, object]):
    """
    Purpose: Merge edited fields into a draft (enum members are unwrapped to their values).
    Raises: KeyError naming the first field the draft does not have.
    """
    allowed = draft_field_names(type(draft))
    normalized = {}
    for key, value in changes.items():
        if key not in allowed:
            raise KeyError(key)
        normalized[key] = value.value if isinstance(value, Enum) else value
    return replace(draft, **normalized)


def validate_login(email: str, password: str) -> FieldErrors:
    errors: FieldErrors = {}
    _require(errors, "email", email, "Email is required")
    _require(errors, "password", password, "Password is required")
    return errors


# Picker lookups map a display label ("Main Engine [c1]") to the id stored on the draft.
ChoiceLookups = Dict[str, Dict[str, str]]


def resolve_choices(values: Dict[str, str], lookups: ChoiceLookups) -> Dict[str, str]:
    """Form values with picker labels replaced by ids; unknown entries pass through unchanged."""
    resolved = dict(values)
    for key, mapping in lookups.items():
        current = values.get(key, "")
        resolved[key] = mapping.get(current, current)
    return resolved


def choice_labels(draft, lookups: ChoiceLookups) -> Dict[str, str]:
    """
    Purpose: Initial form values for a draft, with ids shown as their picker labels.
    Outputs: {field: text}. An id with no label (e.g. an assignee who is no longer an
             engineer) is kept as the raw id so saving the form does not drop it.
    """
    initial = {f.name: getattr(draft, f.name) for f in fields(draft)}
    for key, mapping in lookups.items():
        reverse = {v: k for k, v in mapping.items()}
        current = initial.get(key, "")
        initial[key] = reverse.get(current, current)
    return initial
