from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional

from .models import (
    Assignment,
    AssignmentDetail,
    EngineerSummary,
    Project,
    ProjectSummary,
    User,
    UserRole,
)

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Very small document store.

    Records live in dicts keyed by id. When `data_file` is given the whole
    store is written there as JSON after every write and read back by `load()`.
    """

    def __init__(self, data_file: Optional[str] = None) -> None:
        self._users: Dict[str, User] = {}
        self._projects: Dict[str, Project] = {}
        self._assignments: Dict[str, Assignment] = {}

        self._data_file = Path(data_file) if data_file else None
        self._lock = asyncio.Lock()

    # ---------- snapshot ----------

    async def load(self) -> None:
        if self._data_file is None or not self._data_file.exists():
            return
        async with self._lock:
            raw = json.loads(self._data_file.read_text())
            self._users = {u["id"]: User.model_validate(u) for u in raw.get("users", [])}
            self._projects = {p["id"]: Project.model_validate(p) for p in raw.get("projects", [])}
            self._assignments = {
                a["id"]: Assignment.model_validate(a) for a in raw.get("assignments", [])
            }
        logger.info(
            "Loaded %d users, %d projects, %d assignments from %s",
            len(self._users),
            len(self._projects),
            len(self._assignments),
            self._data_file,
        )

    async def _persist(self) -> None:
        # Caller holds the lock; only the file write leaves the event loop
        if self._data_file is None:
            return
        data = {
            "users": [u.model_dump(mode="json") for u in self._users.values()],
            "projects": [p.model_dump(mode="json") for p in self._projects.values()],
            "assignments": [a.model_dump(mode="json") for a in self._assignments.values()],
        }
        await asyncio.to_thread(self._write_snapshot, json.dumps(data, indent=2))

    def _write_snapshot(self, text: str) -> None:
        self._data_file.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._data_file.with_suffix(self._data_file.suffix + ".tmp")
        tmp.write_text(text)
        tmp.replace(self._data_file)

    # ---------- User APIs ----------

    async def add_user(self, user: User) -> User:
        async with self._lock:
            self._users[user.id] = user
            await self._persist()
            return user

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self._lock:
            return self._users.get(user_id)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        needle = email.strip().lower()
        async with self._lock:
            for user in self._users.values():
                if user.email.lower() == needle:
                    return user
            return None

    async def update_user(self, user: User) -> User:
        async with self._lock:
            self._users[user.id] = user
            await self._persist()
            return user

    async def delete_user(self, user_id: str) -> Optional[User]:
        """Remove a user together with their assignments."""
        async with self._lock:
            user = self._users.pop(user_id, None)
            if user is not None:
                self._assignments = {
                    aid: a for aid, a in self._assignments.items() if a.engineer_id != user_id
                }
                await self._persist()
            return user

    async def list_users(self, role: Optional[UserRole] = None) -> List[User]:
        async with self._lock:
            users = [u for u in self._users.values() if role is None or u.role == role]
        return sorted(users, key=lambda u: u.name.lower())

    # ---------- Project APIs ----------

    async def add_project(self, project: Project) -> Project:
        async with self._lock:
            self._projects[project.id] = project
            await self._persist()
            return project

    async def get_project(self, project_id: str) -> Optional[Project]:
        async with self._lock:
            return self._projects.get(project_id)

    async def update_project(self, project: Project) -> Project:
        async with self._lock:
            self._projects[project.id] = project
            await self._persist()
            return project

    async def delete_project(self, project_id: str) -> Optional[Project]:
        """Remove a project together with its assignments."""
        async with self._lock:
            project = self._projects.pop(project_id, None)
            if project is not None:
                self._assignments = {
                    aid: a for aid, a in self._assignments.items() if a.project_id != project_id
                }
                await self._persist()
            return project

    async def list_projects(self) -> List[Project]:
        async with self._lock:
            projects = list(self._projects.values())
        return sorted(projects, key=lambda p: p.created_at, reverse=True)

    # ---------- Assignment APIs ----------

    async def add_assignment(self, assignment: Assignment) -> Assignment:
        async with self._lock:
            self._assignments[assignment.id] = assignment
            await self._persist()
            return assignment

    async def get_assignment(self, assignment_id: str) -> Optional[Assignment]:
        async with self._lock:
            return self._assignments.get(assignment_id)

    async def update_assignment(self, assignment: Assignment) -> Assignment:
        async with self._lock:
            self._assignments[assignment.id] = assignment
            await self._persist()
            return assignment

    async def delete_assignment(self, assignment_id: str) -> Optional[Assignment]:
        async with self._lock:
            assignment = self._assignments.pop(assignment_id, None)
            if assignment is not None:
                await self._persist()
            return assignment

    async def find_assignments(
        self,
        *,
        engineer_id: Optional[str] = None,
        project_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[Assignment]:
        """Assignments matching every given filter, ordered by start date.

        `start` keeps assignments ending on or after it, `end` keeps those
        starting on or before it.
        """
        async with self._lock:
            found = [
                a
                for a in self._assignments.values()
                if (engineer_id is None or a.engineer_id == engineer_id)
                and (project_id is None or a.project_id == project_id)
                and (start is None or a.end_date >= start)
                and (end is None or a.start_date <= end)
            ]
        return sorted(found, key=lambda a: (a.start_date, a.created_at))

    async def populate(self, assignments: List[Assignment]) -> List[AssignmentDetail]:
        """Attach engineer and project summaries to each assignment."""
        async with self._lock:
            details = []
            for a in assignments:
                engineer = self._users.get(a.engineer_id)
                project = self._projects.get(a.project_id)
                details.append(
                    AssignmentDetail(
                        **a.model_dump(),
                        engineer=EngineerSummary(**engineer.model_dump()) if engineer else None,
                        project=ProjectSummary(**project.model_dump()) if project else None,
                    )
                )
            return details

    async def counts(self) -> Dict[str, int]:
        async with self._lock:
            return {
                "users": len(self._users),
                "projects": len(self._projects),
                "assignments": len(self._assignments),
            }
