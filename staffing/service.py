from __future__ import annotations

import logging
import secrets
import uuid
from datetime import date
from typing import List, Optional, Tuple

from prometheus_client import Counter, Gauge

from . import capacity
from .auth import create_access_token, hash_password, verify_password
from .config import Settings, settings
from .dashboard import build_engineer_dashboard, build_manager_dashboard
from .errors import (
    AuthenticationError,
    BadRequestError,
    CapacityExceededError,
    NotFoundError,
    PermissionDenied,
)
from .models import (
    Assignment,
    AssignmentCreate,
    AssignmentDetail,
    AssignmentUpdate,
    CapacityCheck,
    CapacityPreview,
    EngineerCapacity,
    EngineerDashboard,
    EngineerWithCapacity,
    ManagerDashboard,
    Project,
    ProjectCreate,
    ProjectStatus,
    ProjectUpdate,
    Seniority,
    User,
    UserCreate,
    UserPublic,
    UserRole,
    UserUpdate,
)
from .storage import InMemoryStore

logger = logging.getLogger(__name__)


login_counter = Counter(
    "staffing_logins_total",
    "Login attempts",
    ["outcome"],
)

assignments_created_counter = Counter(
    "staffing_assignments_created_total",
    "Total number of assignments created",
)

capacity_rejected_counter = Counter(
    "staffing_capacity_rejections_total",
    "Assignment writes rejected because they would exceed capacity",
    ["operation"],
)

entities_gauge = Gauge(
    "staffing_entities",
    "Number of stored records",
    ["kind"],
)

CAPACITY_FILTERS = ("available", "full", "overloaded")


class StaffingService:
    """
    Projects, engineers and percentage-based assignments over a document store.

    * Capacity check: overlapping allocations + candidate <= engineer.max_capacity
    * Engineers only see their own assignments
    * Deleting a user or project removes their assignments
    """

    def __init__(self, settings: Settings = settings, store: Optional[InMemoryStore] = None):
        if not settings.JWT_SECRET:
            logger.warning("STAFFING_JWT_SECRET is not set; signing tokens with a random per-process key")
            settings = settings.model_copy(update={"JWT_SECRET": secrets.token_urlsafe(32)})
        self.settings = settings
        self.store = store if store is not None else InMemoryStore(settings.DATA_FILE)

    # -------------------- lifecycle --------------------

    async def start(self) -> None:
        await self.store.load()
        if self.settings.BOOTSTRAP_MANAGER_EMAIL and self.settings.BOOTSTRAP_MANAGER_PASSWORD:
            existing = await self.store.find_user_by_email(self.settings.BOOTSTRAP_MANAGER_EMAIL)
            if existing is None:
                await self._create_user(
                    UserCreate(
                        email=self.settings.BOOTSTRAP_MANAGER_EMAIL,
                        password=self.settings.BOOTSTRAP_MANAGER_PASSWORD,
                        name="Administrator",
                        role=UserRole.MANAGER,
                    )
                )
                logger.info("Created bootstrap manager %s", self.settings.BOOTSTRAP_MANAGER_EMAIL)
        await self._refresh_gauges()

    async def _refresh_gauges(self) -> None:
        for kind, count in (await self.store.counts()).items():
            entities_gauge.labels(kind=kind).set(count)

    def _today(self, today: Optional[date]) -> date:
        return today or date.today()

    # ----------------- public API: auth -----------------

    async def register(self, payload: UserCreate) -> Tuple[str, UserPublic]:
        if await self.store.find_user_by_email(payload.email) is not None:
            raise BadRequestError("User with this email already exists")
        user = await self._create_user(payload)
        logger.info("Registered %s %s", user.role.value, user.email)
        return create_access_token(user.id, self.settings), user.public()

    async def _create_user(self, payload: UserCreate) -> User:
        user = User(
            id=str(uuid.uuid4()),
            email=payload.email.strip().lower(),
            name=payload.name,
            role=payload.role,
            skills=payload.skills,
            seniority=payload.seniority,
            max_capacity=payload.max_capacity or self.settings.DEFAULT_MAX_CAPACITY,
            department=payload.department,
            password_hash=hash_password(payload.password),
        )
        await self.store.add_user(user)
        await self._refresh_gauges()
        return user

    async def login(self, email: Optional[str], password: Optional[str]) -> Tuple[str, UserPublic]:
        if not email or not password:
            raise BadRequestError("Please provide email and password")

        user = await self.store.find_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            login_counter.labels(outcome="rejected").inc()
            logger.info("Rejected login for %s", email)
            raise AuthenticationError("Invalid credentials")

        login_counter.labels(outcome="ok").inc()
        return create_access_token(user.id, self.settings), user.public()

    # ----------------- public API: users -----------------

    async def list_users(self, role: Optional[UserRole] = None) -> List[UserPublic]:
        return [u.public() for u in await self.store.list_users(role=role)]

    async def get_user(self, user_id: str) -> User:
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def update_user(self, user_id: str, payload: UserUpdate) -> UserPublic:
        user = await self.get_user(user_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = user.model_copy(update=changes)
        await self.store.update_user(updated)
        return updated.public()

    async def delete_user(self, user_id: str, acting: User) -> None:
        if user_id == acting.id:
            raise BadRequestError("You cannot delete your own account")
        if await self.store.delete_user(user_id) is None:
            raise NotFoundError("User not found")
        logger.info("Deleted user %s", user_id)
        await self._refresh_gauges()

    async def list_engineers(
        self,
        *,
        search: Optional[str] = None,
        skill: Optional[str] = None,
        seniority: Optional[Seniority] = None,
        capacity_filter: Optional[str] = None,
        today: Optional[date] = None,
    ) -> List[EngineerWithCapacity]:
        """Team overview: engineers with their load on `today`, filtered."""
        if capacity_filter and capacity_filter not in CAPACITY_FILTERS:
            raise BadRequestError(f"Unknown capacity filter: {capacity_filter}")

        day = self._today(today)
        engineers = await self.store.list_users(role=UserRole.ENGINEER)
        assignments = await self.store.find_assignments(start=day, end=day)
        needle = (search or "").strip().lower()

        result: List[EngineerWithCapacity] = []
        for engineer in engineers:
            cap = capacity.engineer_capacity(engineer, assignments, day)

            if needle and not any(
                needle in field.lower() for field in (engineer.name, engineer.email, engineer.department)
            ):
                continue
            if skill and skill not in engineer.skills:
                continue
            if seniority and engineer.seniority != seniority:
                continue
            if capacity_filter == "available" and cap.available_capacity <= 0:
                continue
            if capacity_filter == "full" and cap.available_capacity != 0:
                continue
            if capacity_filter == "overloaded" and cap.total_allocated <= engineer.max_capacity:
                continue

            result.append(
                EngineerWithCapacity(
                    **engineer.public().model_dump(),
                    total_allocated=cap.total_allocated,
                    available_capacity=cap.available_capacity,
                    capacity_status=cap.status,
                )
            )
        return result

    async def engineer_capacity(self, engineer_id: str, today: Optional[date] = None) -> EngineerCapacity:
        engineer = await self._get_engineer(engineer_id)
        day = self._today(today)
        assignments = await self.store.find_assignments(engineer_id=engineer_id, start=day, end=day)
        return capacity.engineer_capacity(engineer, assignments, day)

    async def _get_engineer(self, engineer_id: str) -> User:
        engineer = await self.store.get_user(engineer_id)
        if engineer is None or engineer.role != UserRole.ENGINEER:
            raise NotFoundError("Engineer not found")
        return engineer

    # ----------------- public API: projects -----------------

    async def list_projects(
        self,
        *,
        status: Optional[ProjectStatus] = None,
        search: Optional[str] = None,
    ) -> List[Project]:
        needle = (search or "").strip().lower()
        return [
            p
            for p in await self.store.list_projects()
            if (status is None or p.status == status)
            and (not needle or needle in p.name.lower() or needle in p.description.lower())
        ]

    async def get_project(self, project_id: str) -> Project:
        project = await self.store.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        return project

    async def create_project(self, manager: User, payload: ProjectCreate) -> Project:
        project = Project(
            id=str(uuid.uuid4()),
            manager_id=manager.id,
            **payload.model_dump(),
        )
        await self.store.add_project(project)
        logger.info("Project %s created by %s", project.name, manager.email)
        await self._refresh_gauges()
        return project

    async def update_project(self, project_id: str, payload: ProjectUpdate) -> Project:
        project = await self.get_project(project_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = project.model_copy(update=changes)
        if updated.end_date <= updated.start_date:
            raise BadRequestError("End date must be after start date")
        return await self.store.update_project(updated)

    async def delete_project(self, project_id: str) -> None:
        if await self.store.delete_project(project_id) is None:
            raise NotFoundError("Project not found")
        logger.info("Deleted project %s", project_id)
        await self._refresh_gauges()

    # ----------------- public API: assignments -----------------

    async def list_assignments(
        self,
        viewer: User,
        *,
        engineer_id: Optional[str] = None,
        project_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[AssignmentDetail]:
        if viewer.role == UserRole.ENGINEER:
            if engineer_id and engineer_id != viewer.id:
                raise PermissionDenied("Engineers can only view their own assignments")
            engineer_id = viewer.id

        found = await self.store.find_assignments(
            engineer_id=engineer_id,
            project_id=project_id,
            start=start,
            end=end,
        )
        return await self.store.populate(found)

    async def get_assignment(self, assignment_id: str) -> Assignment:
        assignment = await self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    async def preview_capacity(self, payload: CapacityPreview) -> CapacityCheck:
        engineer = await self._get_engineer(payload.engineer_id)
        existing = await self.store.find_assignments(engineer_id=engineer.id)
        return capacity.check_capacity(
            engineer,
            existing,
            payload.allocation_percentage,
            payload.start_date,
            payload.end_date,
            exclude_id=payload.exclude_assignment_id,
        )

    async def create_assignment(self, payload: AssignmentCreate) -> AssignmentDetail:
        engineer = await self._get_engineer(payload.engineer_id)
        project = await self.get_project(payload.project_id)
        if project.status == ProjectStatus.COMPLETED:
            raise BadRequestError("Cannot assign engineers to a completed project")

        existing = await self.store.find_assignments(engineer_id=engineer.id)
        check = capacity.check_capacity(
            engineer,
            existing,
            payload.allocation_percentage,
            payload.start_date,
            payload.end_date,
        )
        if not check.fits:
            capacity_rejected_counter.labels(operation="create").inc()
            logger.info("Capacity exceeded for %s: %s", engineer.email, check.warning)
            raise CapacityExceededError(check.available)

        assignment = Assignment(id=str(uuid.uuid4()), **payload.model_dump())
        await self.store.add_assignment(assignment)
        assignments_created_counter.inc()
        await self._refresh_gauges()
        return (await self.store.populate([assignment]))[0]

    async def update_assignment(self, assignment_id: str, payload: AssignmentUpdate) -> AssignmentDetail:
        current = await self.get_assignment(assignment_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = current.model_copy(update=changes)
        if updated.end_date <= updated.start_date:
            raise BadRequestError("End date must be after start date")

        engineer = await self._get_engineer(current.engineer_id)
        existing = await self.store.find_assignments(engineer_id=engineer.id)
        check = capacity.check_capacity(
            engineer,
            existing,
            updated.allocation_percentage,
            updated.start_date,
            updated.end_date,
            exclude_id=current.id,
        )
        if not check.fits:
            capacity_rejected_counter.labels(operation="update").inc()
            raise CapacityExceededError(check.available)

        await self.store.update_assignment(updated)
        return (await self.store.populate([updated]))[0]

    async def delete_assignment(self, assignment_id: str) -> None:
        if await self.store.delete_assignment(assignment_id) is None:
            raise NotFoundError("Assignment not found")
        await self._refresh_gauges()

    # ----------------- public API: dashboards -----------------

    async def manager_dashboard(self, today: Optional[date] = None) -> ManagerDashboard:
        return await build_manager_dashboard(self.store, self.settings, self._today(today))

    async def engineer_dashboard(self, engineer: User, today: Optional[date] = None) -> EngineerDashboard:
        return await build_engineer_dashboard(self.store, engineer, self._today(today))
