"""
Seed dataset used when a collection has never been persisted.

Each function returns fresh objects so callers may mutate them freely.
"""

from typing import List

from .models import (
    Component,
    Job,
    JobPriority,
    JobStatus,
    JobType,
    Notification,
    Ship,
    ShipStatus,
)


def seed_ships() -> List[Ship]:
    return [
        Ship(id="s1", name="Ever Given", imo="9811000", flag="Panama", status=ShipStatus.ACTIVE),
        Ship(id="s2", name="Maersk Alabama", imo="9164263", flag="USA", status=ShipStatus.UNDER_MAINTENANCE),
        Ship(id="s3", name="MSC Oscar", imo="9684750", flag="Panama", status=ShipStatus.ACTIVE),
    ]


def seed_components() -> List[Component]:
    return [
        Component(id="c1", ship_id="s1", name="Main Engine", serial_number="ME-1234",
                  install_date="2020-01-10", last_maintenance_date="2024-03-12"),
        Component(id="c2", ship_id="s2", name="Radar", serial_number="RAD-5678",
                  install_date="2021-07-18", last_maintenance_date="2023-12-01"),
        Component(id="c3", ship_id="s1", name="Navigation System", serial_number="NAV-9012",
                  install_date="2020-01-10", last_maintenance_date="2024-01-15"),
        Component(id="c4", ship_id="s3", name="Propeller", serial_number="PROP-3456",
                  install_date="2019-06-20", last_maintenance_date="2023-11-10"),
    ]


def seed_jobs() -> List[Job]:
    return [
        Job(
            id="j1",
            ship_id="s1",
            component_id="c1",
            type=JobType.INSPECTION,
            priority=JobPriority.HIGH,
            status=JobStatus.OPEN,
            assigned_engineer_id="3",
            scheduled_date="2025-06-05",
            description="Regular inspection of main engine",
            created_date="2025-05-20",
        ),
        Job(
            id="j2",
            ship_id="s2",
            component_id="c2",
            type=JobType.REPAIR,
            priority=JobPriority.CRITICAL,
            status=JobStatus.IN_PROGRESS,
            assigned_engineer_id="3",
            scheduled_date="2025-05-28",
            description="Radar malfunction repair",
            created_date="2025-05-15",
        ),
    ]


def seed_notifications() -> List[Notification]:
    return []
