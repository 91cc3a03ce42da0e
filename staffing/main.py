from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from .auth import get_current_user, require_manager
from .config import settings
from .errors import PermissionDenied, StaffingError
from .logging_setup import setup_logging
from .models import (
    ApiResponse,
    AssignmentCreate,
    AssignmentListResponse,
    AssignmentResponse,
    AssignmentUpdate,
    AuthResponse,
    CapacityCheckResponse,
    CapacityPreview,
    CapacityResponse,
    EngineerDashboardResponse,
    EngineerListResponse,
    LoginRequest,
    ManagerDashboardResponse,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectStatus,
    ProjectUpdate,
    Seniority,
    User,
    UserCreate,
    UserListResponse,
    UserResponse,
    UserRole,
    UserUpdate,
)
from .seed import seed_demo_data
from .service import StaffingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

CurrentUser = Annotated[User, Depends(get_current_user)]
Manager = Annotated[User, Depends(require_manager)]


def get_service(request: Request) -> StaffingService:
    return request.app.state.service


Service = Annotated[StaffingService, Depends(get_service)]


# ----------------- Auth -----------------


@router.post("/auth/login", response_model=AuthResponse)
async def login(payload: LoginRequest, service: Service) -> AuthResponse:
    token, user = await service.login(payload.email, payload.password)
    return AuthResponse(token=token, user=user)


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
async def register(payload: UserCreate, service: Service, _manager: Manager) -> AuthResponse:
    token, user = await service.register(payload)
    return AuthResponse(token=token, user=user)


@router.get("/auth/profile", response_model=UserResponse)
async def profile(user: CurrentUser) -> UserResponse:
    return UserResponse(user=user.public())


# ----------------- Users / engineers -----------------


@router.get("/users", response_model=UserListResponse)
async def list_users(
    service: Service,
    _manager: Manager,
    role: Optional[UserRole] = None,
) -> UserListResponse:
    users = await service.list_users(role=role)
    return UserListResponse(count=len(users), users=users)


@router.get("/users/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, service: Service, user: CurrentUser) -> UserResponse:
    _require_self_or_manager(user, user_id)
    found = await service.get_user(user_id)
    return UserResponse(user=found.public())


@router.put("/users/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, payload: UserUpdate, service: Service, user: CurrentUser) -> UserResponse:
    _require_self_or_manager(user, user_id)
    if user.role != UserRole.MANAGER and payload.max_capacity is not None:
        raise PermissionDenied("Only managers can change capacity")
    updated = await service.update_user(user_id, payload)
    return UserResponse(user=updated, message="User updated successfully")


@router.delete("/users/{user_id}", response_model=ApiResponse)
async def delete_user(user_id: str, service: Service, manager: Manager) -> ApiResponse:
    await service.delete_user(user_id, acting=manager)
    return ApiResponse(message="User deleted successfully")


@router.get("/engineers", response_model=EngineerListResponse)
async def list_engineers(
    service: Service,
    _user: CurrentUser,
    search: Optional[str] = None,
    skill: Optional[str] = None,
    seniority: Optional[Seniority] = None,
    capacity: Optional[str] = None,
    on: Optional[date] = None,
) -> EngineerListResponse:
    engineers = await service.list_engineers(
        search=search,
        skill=skill,
        seniority=seniority,
        capacity_filter=capacity,
        today=on,
    )
    return EngineerListResponse(count=len(engineers), engineers=engineers)


@router.get("/engineers/{engineer_id}/capacity", response_model=CapacityResponse)
async def engineer_capacity(
    engineer_id: str,
    service: Service,
    _user: CurrentUser,
    on: Optional[date] = None,
) -> CapacityResponse:
    return CapacityResponse(capacity=await service.engineer_capacity(engineer_id, today=on))


def _require_self_or_manager(user: User, user_id: str) -> None:
    if user.role != UserRole.MANAGER and user.id != user_id:
        raise PermissionDenied("Not allowed to access this user")


# ----------------- Projects -----------------


@router.get("/projects", response_model=ProjectListResponse)
async def list_projects(
    service: Service,
    _user: CurrentUser,
    status: Optional[ProjectStatus] = None,
    search: Optional[str] = None,
) -> ProjectListResponse:
    projects = await service.list_projects(status=status, search=search)
    return ProjectListResponse(count=len(projects), projects=projects)


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(payload: ProjectCreate, service: Service, manager: Manager) -> ProjectResponse:
    return ProjectResponse(project=await service.create_project(manager, payload))


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, service: Service, _user: CurrentUser) -> ProjectResponse:
    return ProjectResponse(project=await service.get_project(project_id))


@router.put("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str, payload: ProjectUpdate, service: Service, _manager: Manager
) -> ProjectResponse:
    return ProjectResponse(project=await service.update_project(project_id, payload))


@router.delete("/projects/{project_id}", response_model=ApiResponse)
async def delete_project(project_id: str, service: Service, _manager: Manager) -> ApiResponse:
    await service.delete_project(project_id)
    return ApiResponse(message="Project deleted successfully")


# ----------------- Assignments -----------------


@router.get("/assignments", response_model=AssignmentListResponse)
async def list_assignments(
    service: Service,
    user: CurrentUser,
    engineer_id: Annotated[Optional[str], Query(alias="engineerId")] = None,
    project_id: Annotated[Optional[str], Query(alias="projectId")] = None,
    start_date: Annotated[Optional[date], Query(alias="startDate")] = None,
    end_date: Annotated[Optional[date], Query(alias="endDate")] = None,
) -> AssignmentListResponse:
    assignments = await service.list_assignments(
        user,
        engineer_id=engineer_id,
        project_id=project_id,
        start=start_date,
        end=end_date,
    )
    return AssignmentListResponse(count=len(assignments), assignments=assignments)


@router.post("/assignments", response_model=AssignmentResponse, status_code=201)
async def create_assignment(payload: AssignmentCreate, service: Service, _manager: Manager) -> AssignmentResponse:
    return AssignmentResponse(assignment=await service.create_assignment(payload))


@router.post("/assignments/check", response_model=CapacityCheckResponse)
async def check_assignment(payload: CapacityPreview, service: Service, _manager: Manager) -> CapacityCheckResponse:
    return CapacityCheckResponse(check=await service.preview_capacity(payload))


@router.put("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(
    assignment_id: str, payload: AssignmentUpdate, service: Service, _manager: Manager
) -> AssignmentResponse:
    return AssignmentResponse(assignment=await service.update_assignment(assignment_id, payload))


@router.delete("/assignments/{assignment_id}", response_model=ApiResponse)
async def delete_assignment(assignment_id: str, service: Service, _manager: Manager) -> ApiResponse:
    await service.delete_assignment(assignment_id)
    return ApiResponse(message="Assignment deleted successfully")


# ----------------- Dashboards -----------------


@router.get("/dashboard/manager", response_model=ManagerDashboardResponse)
async def manager_dashboard(
    service: Service, _manager: Manager, on: Optional[date] = None
) -> ManagerDashboardResponse:
    return ManagerDashboardResponse(dashboard=await service.manager_dashboard(today=on))


@router.get("/dashboard/engineer", response_model=EngineerDashboardResponse)
async def engineer_dashboard(
    service: Service, user: CurrentUser, on: Optional[date] = None
) -> EngineerDashboardResponse:
    return EngineerDashboardResponse(dashboard=await service.engineer_dashboard(user, today=on))


# ----------------- Error handling -----------------


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def _staffing_error(_request: Request, exc: StaffingError) -> JSONResponse:
    return _error(exc.status_code, exc.message)


async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        return _error(400, "Invalid request")
    first = errors[0]
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    field = ".".join(str(part) for part in first.get("loc", ())[1:])
    if first.get("type") == "missing":
        message = "Please provide all required fields"
    elif field:
        message = f"{field}: {message}"
    return _error(400, message)


async def _http_error(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ----------------- Application -----------------


def create_app(service: Optional[StaffingService] = None) -> FastAPI:
    service = service or StaffingService()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        if service.settings.SEED_DEMO_DATA and await seed_demo_data(service):
            logger.info("Demo data loaded; log in as manager@example.com")
        logger.info("Staffing API ready")
        yield

    app = FastAPI(title="Engineer Staffing API", version="0.1.0", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=service.settings.cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StaffingError, _staffing_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(Exception, _unhandled_error)

    app.include_router(router)

    @app.get("/health", include_in_schema=False)
    async def health() -> dict:
        return {"status": "ok"}

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


app = create_app()


def run() -> None:
    import uvicorn

    setup_logging(settings.LOG_LEVEL)
    uvicorn.run("staffing.main:app", host="0.0.0.0", port=8000, log_config=None)
