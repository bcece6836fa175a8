from __future__ import annotations

from datetime import date
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from shiftrecon.audit import log_audit
from shiftrecon.db import get_db
from shiftrecon.models import DiscrepancyType
from shiftrecon.routers.deps import XLSX_MEDIA_TYPE, actor_id, actor_type, client_ip, request_id, user_agent
from shiftrecon.schemas import CoverageReportResponse, DiscrepancyReportResponse
from shiftrecon.services.coverage import build_coverage_summary, filter_coverage_view
from shiftrecon.services.exports import (
    build_coverage_csv_text,
    build_coverage_xlsx_bytes,
    build_discrepancy_xlsx_bytes,
)
from shiftrecon.services.reports import (
    attendance_timezone,
    build_coverage_response,
    build_discrepancy_response,
    compute_reconciliation,
    filter_items_by_type,
)

router = APIRouter(tags=["reports"])


def _audit_export(
    db: Session,
    request: Request,
    *,
    action: str,
    company_id: int,
    date_from: date,
    date_to: date,
    row_count: int,
    extra: dict | None = None,
) -> None:
    actor = actor_id(request)
    log_audit(
        db,
        actor_type=actor_type(actor),
        actor_id=actor,
        action=action,
        success=True,
        company_id=company_id,
        entity_type="export",
        entity_id=f"{date_from.isoformat()}..{date_to.isoformat()}",
        ip=client_ip(request),
        user_agent=user_agent(request),
        details={
            "date_from": date_from.isoformat(),
            "date_to": date_to.isoformat(),
            "row_count": row_count,
            **(extra or {}),
        },
        request_id=request_id(request),
    )


@router.get("/api/reports/discrepancies", response_model=DiscrepancyReportResponse)
def get_discrepancy_report(
    company_id: int = Query(..., ge=1),
    date_from: date = Query(...),
    date_to: date = Query(...),
    type: DiscrepancyType | None = Query(default=None),
    db: Session = Depends(get_db),
) -> DiscrepancyReportResponse:
    reconciliation = compute_reconciliation(db, company_id=company_id, date_from=date_from, date_to=date_to)
    return build_discrepancy_response(reconciliation, item_type=type)


@router.get("/api/reports/coverage", response_model=CoverageReportResponse)
def get_coverage_report(
    company_id: int = Query(..., ge=1),
    date_from: date = Query(...),
    date_to: date = Query(...),
    view: Literal["issues", "all"] = Query(default="issues"),
    db: Session = Depends(get_db),
) -> CoverageReportResponse:
    reconciliation = compute_reconciliation(db, company_id=company_id, date_from=date_from, date_to=date_to)
    return build_coverage_response(reconciliation, view=view)


@router.get("/api/reports/coverage/export.xlsx")
def export_coverage_xlsx(
    request: Request,
    company_id: int = Query(..., ge=1),
    date_from: date = Query(...),
    date_to: date = Query(...),
    view: Literal["issues", "all"] = Query(default="all"),
    db: Session = Depends(get_db),
) -> Response:
    reconciliation = compute_reconciliation(db, company_id=company_id, date_from=date_from, date_to=date_to)
    summary = build_coverage_summary(reconciliation.report)
    coverages = filter_coverage_view(summary, view)
    payload = build_coverage_xlsx_bytes(
        summary,
        coverages,
        client_names=reconciliation.snapshot.client_names(),
        date_from=date_from,
        date_to=date_to,
    )
    _audit_export(
        db,
        request,
        action="COVERAGE_EXPORT_XLSX",
        company_id=company_id,
        date_from=date_from,
        date_to=date_to,
        row_count=len(coverages),
        extra={"view": view},
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": (
                f'attachment; filename="coverage-{date_from.isoformat()}-{date_to.isoformat()}.xlsx"'
            ),
        },
    )


@router.get("/api/reports/coverage/export.csv")
def export_coverage_csv(
    request: Request,
    company_id: int = Query(..., ge=1),
    date_from: date = Query(...),
    date_to: date = Query(...),
    view: Literal["issues", "all"] = Query(default="all"),
    db: Session = Depends(get_db),
) -> Response:
    reconciliation = compute_reconciliation(db, company_id=company_id, date_from=date_from, date_to=date_to)
    summary = build_coverage_summary(reconciliation.report)
    coverages = filter_coverage_view(summary, view)
    payload = build_coverage_csv_text(coverages, client_names=reconciliation.snapshot.client_names())
    _audit_export(
        db,
        request,
        action="COVERAGE_EXPORT_CSV",
        company_id=company_id,
        date_from=date_from,
        date_to=date_to,
        row_count=len(coverages),
        extra={"view": view},
    )
    return Response(
        content=payload.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": (
                f'attachment; filename="coverage-{date_from.isoformat()}-{date_to.isoformat()}.csv"'
            ),
        },
    )


@router.get("/api/reports/discrepancies/export.xlsx")
def export_discrepancies_xlsx(
    request: Request,
    company_id: int = Query(..., ge=1),
    date_from: date = Query(...),
    date_to: date = Query(...),
    type: DiscrepancyType | None = Query(default=None),
    db: Session = Depends(get_db),
) -> Response:
    reconciliation = compute_reconciliation(db, company_id=company_id, date_from=date_from, date_to=date_to)
    items = filter_items_by_type(reconciliation.report.items, type)
    payload = build_discrepancy_xlsx_bytes(
        items,
        confirmations=reconciliation.confirmations,
        tz=attendance_timezone(),
        date_from=date_from,
        date_to=date_to,
        counts=reconciliation.report.counts(),
    )
    _audit_export(
        db,
        request,
        action="DISCREPANCY_EXPORT_XLSX",
        company_id=company_id,
        date_from=date_from,
        date_to=date_to,
        row_count=len(items),
        extra={"type": type.value if type is not None else None},
    )
    return Response(
        content=payload,
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": (
                f'attachment; filename="discrepancies-{date_from.isoformat()}-{date_to.isoformat()}.xlsx"'
            ),
        },
    )
