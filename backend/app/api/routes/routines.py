from datetime import date
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from app.api.deps import get_current_user_id
from app.core.exceptions import AuthorizationError
from app.core.logging import get_logger
from app.core.rate_limit import limiter
from app.database import get_db
from app.models import Routine
from app.services.routines import (
    AutoLogService,
    BatchLogService,
    RoutineRepository,
    describe,
    generate_planned_routine_logs,
    summarize,
)
from app.services.routines.planned import GROUPERS

logger = get_logger(__name__)

router = APIRouter()


class RoutineTimeIn(BaseModel):
    time: str
    name: Optional[str] = None


class RoutineVariableIn(BaseModel):
    variable_id: int
    default_value: Optional[Any] = None
    default_unit: Optional[str] = None
    weekdays: Optional[list[int]] = None
    times: list[RoutineTimeIn] = Field(default_factory=list)


class RoutineCreate(BaseModel):
    routine_name: str
    notes: Optional[str] = None
    is_active: bool = True
    weekdays: list[int] = Field(default_factory=list)
    variables: list[RoutineVariableIn] = Field(default_factory=list)


class RoutineActiveUpdate(BaseModel):
    is_active: bool


class CreateAutoLogsRequest(BaseModel):
    targetDate: Optional[date] = None
    userId: Optional[str] = None


class BatchLogEntry(BaseModel):
    variable_id: int
    date: str
    time_of_day: str
    default_value: Optional[Any] = None
    default_unit: Optional[str] = None
    routine_id: Optional[int] = None
    routine_name: Optional[str] = None
    variable_name: Optional[str] = None


class BatchLogRequest(BaseModel):
    logs: list[BatchLogEntry]


def serialize_routine(routine: Routine) -> dict[str, Any]:
    return {
        "id": routine.id,
        "routine_name": routine.routine_name,
        "notes": routine.notes,
        "is_active": routine.is_active,
        "weekdays": routine.weekdays or [],
        "last_auto_logged": (
            routine.last_auto_logged.isoformat() if routine.last_auto_logged else None
        ),
        "variables": [
            {
                "id": rv.id,
                "variable_id": rv.variable_id,
                "variable_name": rv.variable.label if rv.variable else None,
                "default_value": rv.default_value,
                "default_unit": rv.default_unit,
                "weekdays": rv.weekdays or [],
                "times": rv.times or [],
            }
            for rv in routine.variables
        ],
    }


@router.get("")
async def list_routines(
    user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    """List the current user's routines."""
    routines = RoutineRepository(db).list_routines(user_id)
    return {"routines": [serialize_routine(r) for r in routines]}


@router.post("", status_code=201)
async def create_routine(
    routine: RoutineCreate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create a routine with its variable bindings."""
    created = RoutineRepository(db).create_routine(
        user_id=user_id,
        routine_name=routine.routine_name,
        notes=routine.notes,
        is_active=routine.is_active,
        weekdays=routine.weekdays,
        variables=[v.model_dump() for v in routine.variables],
    )
    return serialize_routine(created)


@router.get("/bindings")
async def list_bindings(
    user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)
):
    """Active routine-variable bindings as the auto-logger sees them."""
    bindings = RoutineRepository(db).get_active_bindings(user_id)
    return {"bindings": [b.to_dict() for b in bindings]}


@router.get("/planned")
async def planned_logs(
    start: date,
    end: date,
    group_by: Optional[Literal["routine", "date", "variable"]] = Query(default=None),
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Expand the user's active routines into planned logs for a date range."""
    bindings = RoutineRepository(db).get_active_bindings(user_id)
    planned = generate_planned_routine_logs(bindings, start, end)

    if group_by:
        grouped = GROUPERS[group_by](planned)
        return {
            "group_by": group_by,
            "groups": {k: [p.to_dict() for p in v] for k, v in grouped.items()},
            "total": len(planned),
        }
    return {"logs": [p.to_dict() for p in planned], "total": len(planned)}


@router.post("/batch-log")
@limiter.limit("30/minute")
async def batch_log(
    request: Request,
    body: BatchLogRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Write selected planned logs, skipping variables already logged that day."""
    return BatchLogService(db).log_planned(user_id, [log.model_dump() for log in body.logs])


@router.post("/create-auto-logs")
async def create_auto_logs(
    body: CreateAutoLogsRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Create auto-logs for the requested date (default today).

    ``userId`` in the body must match the authenticated user when given.
    """
    if body.userId and body.userId != user_id:
        raise AuthorizationError("Cannot create auto-logs for another user")

    target_date = body.targetDate or date.today()
    try:
        outcomes = AutoLogService(db).create_routine_auto_logs(target_date, user_id)
    except Exception as e:
        logger.error("create_auto_logs_failed", user_id=user_id, error=str(e))
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to create auto-logs", "details": str(e)},
        )

    summary = summarize(outcomes)
    return {
        "success": True,
        "summary": summary,
        "details": [o.to_dict() for o in outcomes],
        "message": describe(summary),
    }


@router.get("/{routine_id}")
async def get_routine(
    routine_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Get a single routine."""
    return serialize_routine(RoutineRepository(db).get_routine(user_id, routine_id))


@router.patch("/{routine_id}/active")
async def set_routine_active(
    routine_id: int,
    body: RoutineActiveUpdate,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Activate or pause a routine."""
    routine = RoutineRepository(db).set_active(user_id, routine_id, body.is_active)
    return serialize_routine(routine)


@router.delete("/{routine_id}")
async def delete_routine(
    routine_id: int,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Delete a routine and its bindings."""
    RoutineRepository(db).delete_routine(user_id, routine_id)
    return {"status": "deleted", "id": routine_id}
