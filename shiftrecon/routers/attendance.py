from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from shiftrecon.audit import log_audit
from shiftrecon.db import get_db
from shiftrecon.routers.deps import actor_id, actor_type, client_ip, request_id, user_agent
from shiftrecon.schemas import AttendanceConfirmationRead, AttendanceConfirmationRequest, ConfirmAllResponse
from shiftrecon.services.confirmations import (
    confirm_all_present,
    confirm_attendance,
    list_shift_confirmations,
)

router = APIRouter(tags=["attendance"])


@router.get(
    "/api/shifts/{shift_id}/attendance-confirmations",
    response_model=list[AttendanceConfirmationRead],
)
def list_shift_confirmations_endpoint(
    shift_id: int,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> list[AttendanceConfirmationRead]:
    confirmations = list_shift_confirmations(db, company_id=company_id, shift_id=shift_id)
    return [AttendanceConfirmationRead.model_validate(item) for item in confirmations]


@router.put(
    "/api/assignments/{assignment_id}/attendance-confirmation",
    response_model=AttendanceConfirmationRead,
)
def confirm_attendance_endpoint(
    assignment_id: int,
    payload: AttendanceConfirmationRequest,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> AttendanceConfirmationRead:
    actor = actor_id(request)
    confirmation = confirm_attendance(
        db,
        company_id=company_id,
        assignment_id=assignment_id,
        status=payload.status,
        confirmed_by=actor,
    )
    log_audit(
        db,
        actor_type=actor_type(actor),
        actor_id=actor,
        action="ATTENDANCE_CONFIRMED",
        success=True,
        company_id=company_id,
        entity_type="shift_assignment",
        entity_id=str(assignment_id),
        ip=client_ip(request),
        user_agent=user_agent(request),
        details={
            "shift_id": confirmation.shift_id,
            "employee_id": confirmation.employee_id,
            "status": payload.status.value,
        },
        request_id=request_id(request),
    )
    return AttendanceConfirmationRead.model_validate(confirmation)


@router.post(
    "/api/shifts/{shift_id}/attendance-confirmations/confirm-all",
    response_model=ConfirmAllResponse,
)
def confirm_all_present_endpoint(
    shift_id: int,
    request: Request,
    company_id: int = Query(..., ge=1),
    db: Session = Depends(get_db),
) -> ConfirmAllResponse:
    actor = actor_id(request)
    confirmed_count = confirm_all_present(db, company_id=company_id, shift_id=shift_id, confirmed_by=actor)
    log_audit(
        db,
        actor_type=actor_type(actor),
        actor_id=actor,
        action="ATTENDANCE_CONFIRM_ALL",
        success=True,
        company_id=company_id,
        entity_type="shift",
        entity_id=str(shift_id),
        ip=client_ip(request),
        user_agent=user_agent(request),
        details={"confirmed_count": confirmed_count},
        request_id=request_id(request),
    )
    return ConfirmAllResponse(shift_id=shift_id, confirmed_count=confirmed_count)
