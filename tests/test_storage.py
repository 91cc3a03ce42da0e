from __future__ import annotations

import asyncio
from datetime import date
from pathlib import Path

import pytest

from conftest import add_user, make_settings, project_payload
from staffing.models import AssignmentCreate, User, UserRole
from staffing.service import StaffingService
from staffing.storage import InMemoryStore


@pytest.mark.asyncio
async def test_snapshot_survives_restart(tmp_path: Path) -> None:
    data_file = tmp_path / "data" / "store.json"
    settings = make_settings(tmp_path, DATA_FILE=str(data_file))

    first = StaffingService(settings=settings)
    manager = await add_user(first, "boss@example.com", role=UserRole.MANAGER)
    eng = await add_user(first, "eng@example.com", skills=["Python"])
    project = await first.create_project(manager, project_payload())
    created = await first.create_assignment(
        AssignmentCreate(
            engineer_id=eng.id,
            project_id=project.id,
            allocation_percentage=40,
            start_date=date(2025, 1, 1),
            end_date=date(2025, 1, 31),
        )
    )
    assert data_file.exists()

    second = StaffingService(settings=settings)
    await second.start()
    restored = await second.store.get_user(eng.id)
    assert restored is not None
    assert restored.skills == ["Python"]
    assert restored.password_hash == eng.password_hash
    assert (await second.get_project(project.id)).name == project.name
    assignment = await second.get_assignment(created.id)
    assert assignment.start_date == date(2025, 1, 1)
    assert assignment.allocation_percentage == 40


@pytest.mark.asyncio
async def test_load_without_file_is_noop(tmp_path: Path) -> None:
    store = InMemoryStore(str(tmp_path / "missing.json"))
    await store.load()
    assert await store.counts() == {"users": 0, "projects": 0, "assignments": 0}


@pytest.mark.asyncio
async def test_concurrent_writes_leave_complete_snapshot(tmp_path: Path) -> None:
    data_file = tmp_path / "store.json"
    store = InMemoryStore(str(data_file))
    users = [
        User(id=f"u{i}", email=f"u{i}@example.com", name=f"User {i}", role=UserRole.ENGINEER, password_hash="x")
        for i in range(10)
    ]
    await asyncio.gather(*(store.add_user(u) for u in users))

    assert not data_file.with_suffix(".json.tmp").exists()
    reloaded = InMemoryStore(str(data_file))
    await reloaded.load()
    assert (await reloaded.counts())["users"] == 10


@pytest.mark.asyncio
async def test_find_user_by_email_is_case_insensitive(tmp_path: Path) -> None:
    service = StaffingService(settings=make_settings(tmp_path))
    eng = await add_user(service, "eng@example.com")
    found = await service.store.find_user_by_email("  ENG@example.com ")
    assert found is not None and found.id == eng.id


@pytest.mark.asyncio
async def test_bootstrap_manager_created_once(tmp_path: Path) -> None:
    settings = make_settings(
        tmp_path,
        DATA_FILE=str(tmp_path / "store.json"),
        BOOTSTRAP_MANAGER_EMAIL="admin@example.com",
        BOOTSTRAP_MANAGER_PASSWORD="admin-pass",
    )
    service = StaffingService(settings=settings)
    await service.start()
    await service.start()

    managers = await service.list_users(role=UserRole.MANAGER)
    assert [m.email for m in managers] == ["admin@example.com"]
    _, user = await service.login("admin@example.com", "admin-pass")
    assert user.role == UserRole.MANAGER
