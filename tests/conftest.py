from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from staffing.config import Settings
from staffing.models import ProjectCreate, ProjectStatus, Seniority, User, UserCreate, UserRole
from staffing.service import StaffingService

TODAY = date(2025, 3, 10)
PASSWORD = "secret123"


def make_settings(tmp_path: Path, **overrides) -> Settings:
    base = dict(
        JWT_SECRET="test-secret-0123456789abcdef0123456789",
        JWT_EXPIRES_HOURS=1,
        UNDERUTILIZED_THRESHOLD=30,
        RECENT_ASSIGNMENTS_LIMIT=5,
        DATA_FILE=None,
        BOOTSTRAP_MANAGER_EMAIL=None,
        BOOTSTRAP_MANAGER_PASSWORD=None,
        SEED_DEMO_DATA=False,
    )
    base.update(overrides)
    return Settings(**base)


async def add_user(
    service: StaffingService,
    email: str,
    role: UserRole = UserRole.ENGINEER,
    **fields,
) -> User:
    _, public = await service.register(
        UserCreate(email=email, password=PASSWORD, name=fields.pop("name", email.split("@")[0]), role=role, **fields)
    )
    return await service.get_user(public.id)


def project_payload(name: str = "Portal", status: ProjectStatus = ProjectStatus.ACTIVE) -> ProjectCreate:
    return ProjectCreate(
        name=name,
        description=f"{name} project",
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        required_skills=["Python"],
        team_size=3,
        status=status,
    )


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def service(settings: Settings) -> StaffingService:
    return StaffingService(settings=settings)


@pytest.fixture
def senior() -> dict:
    return dict(skills=["Python", "Go"], seniority=Seniority.SENIOR, department="Platform")
