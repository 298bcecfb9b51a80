"""
Design (models.py)
- Purpose: Define simple, typed data structures for domain entities (Ship, Component, Job,
           Notification, User) and the enumerations their fields draw from.
- Inputs: Field values (str / enum members).
- Outputs: Dataclass instances; plain dicts via to_dict() for the JSON blobs.
- Side effects: None.
- Thread-safety: Dataclasses are plain containers; FleetRepo protects concurrent access.

Persisted dicts keep the camelCase keys of the saved blob layout (shipId, serialNumber, ...).
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict


class ShipStatus(str, Enum):
    ACTIVE = "Active"
    UNDER_MAINTENANCE = "Under Maintenance"
    INACTIVE = "Inactive"


class JobType(str, Enum):
    INSPECTION = "Inspection"
    REPAIR = "Repair"
    REPLACEMENT = "Replacement"
    PREVENTIVE = "Preventive"


class JobPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class JobStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class NotificationKind(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Role(str, Enum):
    ADMIN = "Admin"
    INSPECTOR = "Inspector"
    ENGINEER = "Engineer"


@dataclass
class Ship:
    """
    Design (Ship)
    - Fields:
        id: unique within the ships collection.
        name: display name.
        imo: 7-digit IMO number (string, digits only).
        flag: flag state.
        status: ShipStatus.
    """
    id: str
    name: str
    imo: str
    flag: str
    status: ShipStatus = ShipStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "imo": self.imo,
            "flag": self.flag,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ship":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            imo=str(data.get("imo", "")),
            flag=str(data.get("flag", "")),
            status=ShipStatus(data.get("status", ShipStatus.ACTIVE.value)),
        )


@dataclass
class Component:
    """
    Design (Component)
    - Fields:
        ship_id: owning Ship id.
        install_date / last_maintenance_date: ISO dates (YYYY-MM-DD).
    - "Overdue" is derived in views, never stored.
    """
    id: str
    ship_id: str
    name: str
    serial_number: str
    install_date: str
    last_maintenance_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "shipId": self.ship_id,
            "name": self.name,
            "serialNumber": self.serial_number,
            "installDate": self.install_date,
            "lastMaintenanceDate": self.last_maintenance_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Component":
        return cls(
            id=str(data["id"]),
            ship_id=str(data["shipId"]),
            name=str(data.get("name", "")),
            serial_number=str(data.get("serialNumber", "")),
            install_date=str(data.get("installDate", "")),
            last_maintenance_date=str(data.get("lastMaintenanceDate", "")),
        )


@dataclass
class Job:
    """
    Design (Job)
    - Fields:
        ship_id / component_id: the Ship and one of its Components.
        assigned_engineer_id: User id of the engineer.
        scheduled_date: ISO date.
        created_date: ISO date stamped at creation; never updated.
    """
    id: str
    ship_id: str
    component_id: str
    type: JobType
    priority: JobPriority
    status: JobStatus
    assigned_engineer_id: str
    scheduled_date: str
    description: str
    created_date: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "componentId": self.component_id,
            "shipId": self.ship_id,
            "type": self.type.value,
            "priority": self.priority.value,
            "status": self.status.value,
            "assignedEngineerId": self.assigned_engineer_id,
            "scheduledDate": self.scheduled_date,
            "description": self.description,
            "createdDate": self.created_date,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Job":
        return cls(
            id=str(data["id"]),
            ship_id=str(data["shipId"]),
            component_id=str(data["componentId"]),
            type=JobType(data["type"]),
            priority=JobPriority(data["priority"]),
            status=JobStatus(data["status"]),
            assigned_engineer_id=str(data.get("assignedEngineerId", "")),
            scheduled_date=str(data.get("scheduledDate", "")),
            description=str(data.get("description") or ""),
            created_date=str(data.get("createdDate", "")),
        )


@dataclass
class Notification:
    """Feed entry. `dismissed` only ever goes False -> True."""
    id: str
    message: str
    kind: NotificationKind
    timestamp: str
    dismissed: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "type": self.kind.value,
            "timestamp": self.timestamp,
            "dismissed": self.dismissed,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        return cls(
            id=str(data["id"]),
            message=str(data.get("message", "")),
            kind=NotificationKind(data.get("type", NotificationKind.INFO.value)),
            timestamp=str(data.get("timestamp", "")),
            dismissed=bool(data.get("dismissed", False)),
        )


@dataclass(frozen=True)
class User:
    id: str
    role: Role
    email: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "role": self.role.value, "email": self.email, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            role=Role(data["role"]),
            email=str(data["email"]),
            name=str(data.get("name", "")),
        )


def copy_entity(entity):
    """Shallow copy of any entity dataclass (all fields are immutable values)."""
    return replace(entity)
