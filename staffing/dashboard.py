from __future__ import annotations

from datetime import date
from typing import List

from .capacity import allocated_on, is_active_on
from .config import Settings
from .models import (
    CapacityAlert,
    EngineerDashboard,
    ManagerDashboard,
    ManagerStats,
    ProjectStatus,
    UpcomingAssignment,
    User,
    UserRole,
)
from .storage import InMemoryStore


async def build_manager_dashboard(store: InMemoryStore, settings: Settings, today: date) -> ManagerDashboard:
    """Team-wide utilisation for `today`, recent assignments and capacity alerts."""
    engineers: List[User] = await store.list_users(role=UserRole.ENGINEER)
    projects = await store.list_projects()
    assignments = await store.find_assignments()

    alerts: List[CapacityAlert] = []
    total_utilization = 0
    overloaded = 0
    for engineer in engineers:
        utilization = allocated_on((a for a in assignments if a.engineer_id == engineer.id), today)
        total_utilization += utilization

        if utilization > engineer.max_capacity:
            overloaded += 1
            alerts.append(
                CapacityAlert(engineer=engineer.public(), current_utilization=utilization, kind="overloaded")
            )
        elif utilization < settings.UNDERUTILIZED_THRESHOLD:
            alerts.append(
                CapacityAlert(engineer=engineer.public(), current_utilization=utilization, kind="underutilized")
            )

    stats = ManagerStats(
        total_engineers=len(engineers),
        active_projects=sum(1 for p in projects if p.status == ProjectStatus.ACTIVE),
        avg_utilization=round(total_utilization / len(engineers)) if engineers else 0,
        overloaded_engineers=overloaded,
    )

    recent = sorted(assignments, key=lambda a: a.start_date, reverse=True)
    recent = recent[: settings.RECENT_ASSIGNMENTS_LIMIT]

    return ManagerDashboard(
        stats=stats,
        recent_assignments=await store.populate(recent),
        capacity_alerts=alerts,
    )


async def build_engineer_dashboard(store: InMemoryStore, engineer: User, today: date) -> EngineerDashboard:
    """An engineer's own workload: active, upcoming and total allocation."""
    mine = await store.find_assignments(engineer_id=engineer.id)
    details = await store.populate(mine)

    active = [d for d in details if is_active_on(d, today)]
    upcoming = [
        UpcomingAssignment(**d.model_dump(), days_until=(d.start_date - today).days)
        for d in details
        if d.start_date > today
    ]

    current_projects = []
    seen = set()
    for d in active:
        if d.project_id in seen:
            continue
        seen.add(d.project_id)
        project = await store.get_project(d.project_id)
        if project is not None:
            current_projects.append(project)

    allocated = allocated_on(mine, today)
    return EngineerDashboard(
        assignments=details,
        active_assignments=active,
        upcoming_assignments=upcoming,
        current_projects=current_projects,
        total_allocated=allocated,
        available_capacity=engineer.max_capacity - allocated,
    )
