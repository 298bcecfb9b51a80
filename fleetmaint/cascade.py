"""
Design (cascade.py)
- Purpose: Cascading deletes, one function per parent entity.
- Inputs: Parent id plus the current child collections.
- Outputs: New lists with the parent and every dependent removed; inputs are not mutated.
- Side effects: None.
- Thread-safety: Pure functions.

Ship -> Components -> Jobs. A ship delete drops jobs either by ship_id or by a removed
component_id, so a job pointing at a removed component never survives.
"""

from typing import List, Sequence, Tuple

from .models import Component, Job, Ship


def cascade_delete_component(
    component_id: str,
    components: Sequence[Component],
    jobs: Sequence[Job],
) -> Tuple[List[Component], List[Job]]:
    remaining_components = [c for c in components if c.id != component_id]
    remaining_jobs = [j for j in jobs if j.component_id != component_id]
    return remaining_components, remaining_jobs


def cascade_delete_ship(
    ship_id: str,
    ships: Sequence[Ship],
    components: Sequence[Component],
    jobs: Sequence[Job],
) -> Tuple[List[Ship], List[Component], List[Job]]:
    remaining_ships = [s for s in ships if s.id != ship_id]
    remaining_components = list(components)
    remaining_jobs = [j for j in jobs if j.ship_id != ship_id]
    for component in components:
        if component.ship_id == ship_id:
            remaining_components, remaining_jobs = cascade_delete_component(
                component.id, remaining_components, remaining_jobs
            )
    return remaining_ships, remaining_components, remaining_jobs
