# staffing/models.py
from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


BCRYPT_MAX_PASSWORD_BYTES = 72


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    """Base for every record: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserRole(str, Enum):
    ENGINEER = "engineer"
    MANAGER = "manager"


class Seniority(str, Enum):
    JUNIOR = "junior"
    MID = "mid"
    SENIOR = "senior"


class ProjectStatus(str, Enum):
    PLANNING = "planning"
    ACTIVE = "active"
    COMPLETED = "completed"


def _check_range(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and end <= start:
        raise ValueError("End date must be after start date")


# ----------------- users -----------------


class UserPublic(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole
    skills: List[str] = Field(default_factory=list)
    seniority: Seniority = Seniority.MID
    max_capacity: int = 100
    department: str = ""
    created_at: datetime = Field(default_factory=utcnow)


class User(UserPublic):
    password_hash: str

    def public(self) -> UserPublic:
        return UserPublic(**self.model_dump(exclude={"password_hash"}))


class UserCreate(CamelModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=100)
    role: UserRole
    skills: List[str] = Field(default_factory=list)
    seniority: Seniority = Seniority.MID
    max_capacity: Optional[int] = Field(default=None, ge=1, le=100)
    department: str = ""

    @field_validator("password")
    @classmethod
    def _password_fits_bcrypt(cls, value: str) -> str:
        # bcrypt rejects anything past 72 bytes
        if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"Password cannot be longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return value


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    skills: Optional[List[str]] = None
    seniority: Optional[Seniority] = None
    max_capacity: Optional[int] = Field(default=None, ge=1, le=100)
    department: Optional[str] = None


class LoginRequest(CamelModel):
    # Presence is checked by the service so a blank field gets a 400 message
    email: Optional[str] = None
    password: Optional[str] = None


# ----------------- projects -----------------


class ProjectCreate(CamelModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=500)
    start_date: date
    end_date: date
    required_skills: List[str] = Field(default_factory=list)
    team_size: int = Field(default=3, ge=1, le=50)
    status: ProjectStatus = ProjectStatus.PLANNING

    @model_validator(mode="after")
    def _dates_in_order(self) -> "ProjectCreate":
        _check_range(self.start_date, self.end_date)
        return self


class ProjectUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=500)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    required_skills: Optional[List[str]] = None
    team_size: Optional[int] = Field(default=None, ge=1, le=50)
    status: Optional[ProjectStatus] = None


class Project(CamelModel):
    id: str
    name: str
    description: str
    start_date: date
    end_date: date
    required_skills: List[str] = Field(default_factory=list)
    team_size: int = 3
    status: ProjectStatus = ProjectStatus.PLANNING
    manager_id: str
    created_at: datetime = Field(default_factory=utcnow)


# ----------------- assignments -----------------


class AssignmentCreate(CamelModel):
    engineer_id: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    allocation_percentage: int = Field(ge=1, le=100)
    start_date: date
    end_date: date
    role: str = Field(default="Developer", min_length=1)

    @model_validator(mode="after")
    def _dates_in_order(self) -> "AssignmentCreate":
        _check_range(self.start_date, self.end_date)
        return self


class AssignmentUpdate(CamelModel):
    allocation_percentage: Optional[int] = Field(default=None, ge=1, le=100)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    role: Optional[str] = Field(default=None, min_length=1)


class Assignment(CamelModel):
    id: str
    engineer_id: str
    project_id: str
    allocation_percentage: int
    start_date: date
    end_date: date
    role: str = "Developer"
    created_at: datetime = Field(default_factory=utcnow)


class EngineerSummary(CamelModel):
    id: str
    name: str
    email: str
    skills: List[str] = Field(default_factory=list)
    seniority: Seniority


class ProjectSummary(CamelModel):
    id: str
    name: str
    description: str
    status: ProjectStatus


class AssignmentDetail(Assignment):
    """Assignment with its engineer and project populated."""

    engineer: Optional[EngineerSummary] = None
    project: Optional[ProjectSummary] = None


# ----------------- capacity -----------------


class CapacityCheck(CamelModel):
    engineer_id: str
    current_allocation: int
    requested: int
    new_total: int
    max_capacity: int
    available: int
    fits: bool
    warning: Optional[str] = None


class EngineerCapacity(CamelModel):
    engineer_id: str
    max_capacity: int
    total_allocated: int
    available_capacity: int
    status: str
    active_assignments: int


class EngineerWithCapacity(UserPublic):
    total_allocated: int = 0
    available_capacity: int = 0
    capacity_status: str = "Available"


class CapacityPreview(CamelModel):
    engineer_id: str = Field(min_length=1)
    allocation_percentage: int = Field(ge=0, le=100)
    start_date: date
    end_date: date
    exclude_assignment_id: Optional[str] = None

    @model_validator(mode="after")
    def _dates_in_order(self) -> "CapacityPreview":
        _check_range(self.start_date, self.end_date)
        return self


# ----------------- dashboards -----------------


class CapacityAlert(CamelModel):
    engineer: UserPublic
    current_utilization: int
    kind: str  # "overloaded" | "underutilized"


class ManagerStats(CamelModel):
    total_engineers: int = 0
    active_projects: int = 0
    avg_utilization: int = 0
    overloaded_engineers: int = 0


class ManagerDashboard(CamelModel):
    stats: ManagerStats
    recent_assignments: List[AssignmentDetail] = Field(default_factory=list)
    capacity_alerts: List[CapacityAlert] = Field(default_factory=list)


class UpcomingAssignment(AssignmentDetail):
    days_until: int


class EngineerDashboard(CamelModel):
    assignments: List[AssignmentDetail] = Field(default_factory=list)
    active_assignments: List[AssignmentDetail] = Field(default_factory=list)
    upcoming_assignments: List[UpcomingAssignment] = Field(default_factory=list)
    current_projects: List[Project] = Field(default_factory=list)
    total_allocated: int = 0
    available_capacity: int = 0


# ----------------- response envelopes -----------------


class ApiResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None


class AuthResponse(ApiResponse):
    token: str
    user: UserPublic


class UserResponse(ApiResponse):
    user: UserPublic


class UserListResponse(ApiResponse):
    count: int
    users: List[UserPublic]


class EngineerListResponse(ApiResponse):
    count: int
    engineers: List[EngineerWithCapacity]


class CapacityResponse(ApiResponse):
    capacity: EngineerCapacity


class CapacityCheckResponse(ApiResponse):
    check: CapacityCheck


class ProjectResponse(ApiResponse):
    project: Project


class ProjectListResponse(ApiResponse):
    count: int
    projects: List[Project]


class AssignmentResponse(ApiResponse):
    assignment: AssignmentDetail


class AssignmentListResponse(ApiResponse):
    count: int
    assignments: List[AssignmentDetail]


class ManagerDashboardResponse(ApiResponse):
    dashboard: ManagerDashboard


class EngineerDashboardResponse(ApiResponse):
    dashboard: EngineerDashboard
