from __future__ import annotations

from datetime import date, time

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from shiftrecon.audit import log_audit
from shiftrecon.db import get_db
from shiftrecon.routers.deps import actor_id, actor_type, client_ip, request_id, user_agent
from shiftrecon.schemas import (
    AssignmentCheckRequest,
    AssignmentCheckResponse,
    AvailabilityConfigRead,
    AvailabilityConfigUpsert,
    AvailabilityOverrideRead,
    AvailabilityOverrideUpsert,
    AvailabilityRead,
    ConflictRead,
)
from shiftrecon.services.availability import (
    create_availability_config,
    delete_availability_config,
    delete_availability_override,
    ensure_company_employee,
    list_availability_configs,
    list_availability_overrides,
    resolve_employee_availability,
    update_availability_config,
    upsert_availability_override,
)
from shiftrecon.services.conflicts import check_assignment

router = APIRouter(tags=["scheduling"])


def _audit_write(
    db: Session,
    request: Request,
    *,
    action: str,
    company_id: int,
    entity_type: str,
    entity_id: int,
    details: dict,
) -> None:
    actor = actor_id(request)
    log_audit(
        db,
        actor_type=actor_type(actor),
        actor_id=actor,
        action=action,
        success=True,
        company_id=company_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        ip=client_ip(request),
        user_agent=user_agent(request),
        details=details,
        request_id=request_id(request),
    )


@router.get("/api/employees/{employee_id}/availability", response_model=AvailabilityRead)
def get_employee_availability(
    employee_id: int,
    company_id: int = Query(..., ge=1),
    day_date: date = Query(...),
    start_time: time | None = Query(default=None),
    end_time: time | None = Query(default=None),
    db: Session = Depends(get_db),
) -> AvailabilityRead:
    ensure_company_employee(db, company_id=company_id, employee_id=employee_id)
    result = resolve_employee_availability(
        db,
        company_id=company_id,
        employee_id=employee_id,
        day_date=day_date,
        start=start_time,
        end=end_time,
    )
    return AvailabilityRead(
        employee_id=employee_id,
        day_date=day_date,
        available=result.available,
        reason=result.reason,
        source=result.source,
    )


@router.get(
    "/api/employees/{employee_id}/availability-configs",
    response_model=list[AvailabilityConfigRead],
)
def list_availability_configs_endpoint(
    employee_id: int,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> list[AvailabilityConfigRead]:
    ensure_company_employee(db, company_id=company_id, employee_id=employee_id)
    configs = list_availability_configs(db, company_id=company_id, employee_id=employee_id)
    return [AvailabilityConfigRead.model_validate(config) for config in configs]


@router.post(
    "/api/employees/{employee_id}/availability-configs",
    response_model=AvailabilityConfigRead,
    status_code=201,
)
def create_availability_config_endpoint(
    employee_id: int,
    payload: AvailabilityConfigUpsert,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> AvailabilityConfigRead:
    config = create_availability_config(db, company_id=company_id, employee_id=employee_id, payload=payload)
    _audit_write(
        db,
        request,
        action="AVAILABILITY_CONFIG_CREATED",
        company_id=company_id,
        entity_type="availability_config",
        entity_id=config.id,
        details={"employee_id": employee_id, **payload.model_dump(mode="json")},
    )
    return AvailabilityConfigRead.model_validate(config)


@router.put("/api/availability-configs/{config_id}", response_model=AvailabilityConfigRead)
def update_availability_config_endpoint(
    config_id: int,
    payload: AvailabilityConfigUpsert,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> AvailabilityConfigRead:
    config = update_availability_config(db, company_id=company_id, config_id=config_id, payload=payload)
    _audit_write(
        db,
        request,
        action="AVAILABILITY_CONFIG_UPDATED",
        company_id=company_id,
        entity_type="availability_config",
        entity_id=config.id,
        details={"employee_id": config.employee_id, **payload.model_dump(mode="json")},
    )
    return AvailabilityConfigRead.model_validate(config)


@router.delete("/api/availability-configs/{config_id}", status_code=204)
def delete_availability_config_endpoint(
    config_id: int,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> None:
    delete_availability_config(db, company_id=company_id, config_id=config_id)
    _audit_write(
        db,
        request,
        action="AVAILABILITY_CONFIG_DELETED",
        company_id=company_id,
        entity_type="availability_config",
        entity_id=config_id,
        details={},
    )


@router.get(
    "/api/employees/{employee_id}/availability-overrides",
    response_model=list[AvailabilityOverrideRead],
)
def list_availability_overrides_endpoint(
    employee_id: int,
    company_id: int = Query(..., ge=1),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[AvailabilityOverrideRead]:
    ensure_company_employee(db, company_id=company_id, employee_id=employee_id)
    overrides = list_availability_overrides(
        db,
        company_id=company_id,
        employee_id=employee_id,
        start_date=start_date,
        end_date=end_date,
    )
    return [AvailabilityOverrideRead.model_validate(override) for override in overrides]


@router.put(
    "/api/employees/{employee_id}/availability-overrides",
    response_model=AvailabilityOverrideRead,
)
def upsert_availability_override_endpoint(
    employee_id: int,
    payload: AvailabilityOverrideUpsert,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> AvailabilityOverrideRead:
    override = upsert_availability_override(db, company_id=company_id, employee_id=employee_id, payload=payload)
    _audit_write(
        db,
        request,
        action="AVAILABILITY_OVERRIDE_UPSERT",
        company_id=company_id,
        entity_type="availability_override",
        entity_id=override.id,
        details={"employee_id": employee_id, **payload.model_dump(mode="json")},
    )
    return AvailabilityOverrideRead.model_validate(override)


@router.delete("/api/availability-overrides/{override_id}", status_code=204)
def delete_availability_override_endpoint(
    override_id: int,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> None:
    delete_availability_override(db, company_id=company_id, override_id=override_id)
    _audit_write(
        db,
        request,
        action="AVAILABILITY_OVERRIDE_DELETED",
        company_id=company_id,
        entity_type="availability_override",
        entity_id=override_id,
        details={},
    )


@router.post("/api/scheduling/assignment-check", response_model=AssignmentCheckResponse)
def assignment_check_endpoint(
    payload: AssignmentCheckRequest,
    db: Session = Depends(get_db),
) -> AssignmentCheckResponse:
    result = check_assignment(
        db,
        company_id=payload.company_id,
        employee_id=payload.employee_id,
        day_date=payload.day_date,
        start=payload.start_time,
        end=payload.end_time,
        exclude_shift_id=payload.shift_id,
        mode=payload.mode,
    )
    return AssignmentCheckResponse(
        employee_id=result.employee_id,
        day_date=result.day_date,
        available=result.availability.available,
        reason=result.availability.reason,
        conflicts=[
            ConflictRead(shift_id=conflict.shift_id, shift_title=conflict.shift_title, time=conflict.time_label)
            for conflict in result.conflicts
        ],
        has_findings=result.has_findings,
    )
