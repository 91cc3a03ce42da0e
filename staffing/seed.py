from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Optional

from .models import (
    AssignmentCreate,
    ProjectCreate,
    ProjectStatus,
    Seniority,
    User,
    UserCreate,
    UserRole,
)
from .service import StaffingService

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_ENGINEERS = [
    ("alice@example.com", "Alice Chen", ["React", "TypeScript", "Node.js"], Seniority.SENIOR, 100, "Frontend"),
    ("bob@example.com", "Bob Patel", ["Python", "Django", "PostgreSQL"], Seniority.MID, 100, "Backend"),
    ("carol@example.com", "Carol Diaz", ["Go", "Kubernetes", "AWS"], Seniority.SENIOR, 50, "Platform"),
    ("dan@example.com", "Dan Okafor", ["JavaScript", "React"], Seniority.JUNIOR, 100, "Frontend"),
]


async def seed_demo_data(service: StaffingService, today: Optional[date] = None) -> bool:
    """Populate an empty store with a manager, engineers, projects and assignments.

    Returns False without touching anything when the store already has users.
    """
    if (await service.store.counts())["users"]:
        return False

    today = today or date.today()
    manager = await _user(
        service,
        UserCreate(
            email="manager@example.com",
            password=DEMO_PASSWORD,
            name="Morgan Lee",
            role=UserRole.MANAGER,
            department="Engineering",
        ),
    )

    engineers: Dict[str, User] = {}
    for email, name, skills, seniority, max_capacity, department in DEMO_ENGINEERS:
        engineers[email] = await _user(
            service,
            UserCreate(
                email=email,
                password=DEMO_PASSWORD,
                name=name,
                role=UserRole.ENGINEER,
                skills=skills,
                seniority=seniority,
                max_capacity=max_capacity,
                department=department,
            ),
        )

    portal = await service.create_project(
        manager,
        ProjectCreate(
            name="Customer Portal",
            description="Self-service portal for account management",
            start_date=today - timedelta(days=30),
            end_date=today + timedelta(days=90),
            required_skills=["React", "Node.js"],
            team_size=3,
            status=ProjectStatus.ACTIVE,
        ),
    )
    billing = await service.create_project(
        manager,
        ProjectCreate(
            name="Billing Migration",
            description="Move invoicing onto the new payments platform",
            start_date=today + timedelta(days=14),
            end_date=today + timedelta(days=120),
            required_skills=["Python", "PostgreSQL"],
            team_size=2,
            status=ProjectStatus.PLANNING,
        ),
    )
    await service.create_project(
        manager,
        ProjectCreate(
            name="Cluster Upgrade",
            description="Upgrade production Kubernetes clusters",
            start_date=today - timedelta(days=120),
            end_date=today - timedelta(days=10),
            required_skills=["Kubernetes", "AWS"],
            team_size=1,
            status=ProjectStatus.COMPLETED,
        ),
    )

    plan = [
        ("alice@example.com", portal.id, 60, -30, 90, "Tech Lead"),
        ("dan@example.com", portal.id, 80, -30, 90, "Developer"),
        ("bob@example.com", billing.id, 50, 14, 120, "Developer"),
        ("carol@example.com", portal.id, 25, -7, 60, "DevOps"),
    ]
    for email, project_id, allocation, start, end, role in plan:
        await service.create_assignment(
            AssignmentCreate(
                engineer_id=engineers[email].id,
                project_id=project_id,
                allocation_percentage=allocation,
                start_date=today + timedelta(days=start),
                end_date=today + timedelta(days=end),
                role=role,
            )
        )

    logger.info("Seeded demo data: 1 manager, %d engineers, 3 projects", len(engineers))
    return True


async def _user(service: StaffingService, payload: UserCreate) -> User:
    _, public = await service.register(payload)
    return await service.get_user(public.id)
