from __future__ import annotations

import logging
import time as time_module
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from shiftrecon.models import DiscrepancyType, ShiftAttendanceConfirmation
from shiftrecon.schemas import (
    ClockedEmployeeRead,
    CoverageReportResponse,
    CoverageSummaryRead,
    DiscrepancyItemRead,
    DiscrepancyReportResponse,
    EmployeeRefRead,
    FailedShiftRead,
    ShiftCoverageRead,
)
from shiftrecon.services.confirmations import confirmation_index
from shiftrecon.services.coverage import (
    CoverageSummary,
    CoverageView,
    ShiftCoverage,
    build_coverage_summary,
    filter_coverage_view,
)
from shiftrecon.services.discrepancies import DiscrepancyItem, DiscrepancyReport, FailedShift, classify_range
from shiftrecon.services.snapshot import ReconciliationSnapshot, load_reconciliation_snapshot
from shiftrecon.settings import get_settings

logger = logging.getLogger("shiftrecon.reconcile")

DEFAULT_TIMEZONE = "America/New_York"


@lru_cache
def attendance_timezone() -> ZoneInfo:
    raw_name = (get_settings().attendance_timezone or "").strip() or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(raw_name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("attendance_timezone_invalid", extra={"attendance_timezone": raw_name})
        return ZoneInfo(DEFAULT_TIMEZONE)


@dataclass(frozen=True)
class Reconciliation:
    snapshot: ReconciliationSnapshot
    report: DiscrepancyReport

    @property
    def confirmations(self) -> dict[tuple[int, int], ShiftAttendanceConfirmation]:
        return confirmation_index(self.snapshot.confirmations)


def validate_report_range(date_from: date, date_to: date) -> None:
    if date_to < date_from:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="date_to must be greater than or equal to date_from",
        )
    max_days = get_settings().report_max_range_days
    if (date_to - date_from).days + 1 > max_days:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Report range cannot exceed {max_days} days",
        )


def compute_reconciliation(
    db: Session,
    *,
    company_id: int,
    date_from: date,
    date_to: date,
) -> Reconciliation:
    validate_report_range(date_from, date_to)
    settings = get_settings()
    tz = attendance_timezone()

    started = time_module.perf_counter()
    snapshot = load_reconciliation_snapshot(
        db,
        company_id=company_id,
        start_date=date_from,
        end_date=date_to,
        tz=tz,
    )
    report = classify_range(
        snapshot.shifts,
        snapshot.assignments,
        snapshot.time_entries,
        snapshot.employees,
        tz=tz,
        threshold_minutes=settings.late_threshold_minutes,
        start_date=date_from,
        end_date=date_to,
    )
    logger.info(
        "reconciliation_computed",
        extra={
            "company_id": company_id,
            "date_from": date_from.isoformat(),
            "date_to": date_to.isoformat(),
            "shift_count": len(snapshot.shifts),
            "item_count": len(report.items),
            "failed_shift_count": len(report.failed_shifts),
            "duration_ms": round((time_module.perf_counter() - started) * 1000, 2),
        },
    )
    return Reconciliation(snapshot=snapshot, report=report)


def filter_items_by_type(
    items: list[DiscrepancyItem],
    item_type: DiscrepancyType | None,
) -> list[DiscrepancyItem]:
    if item_type is None:
        return list(items)
    return [item for item in items if item.type == item_type]


def _failed_shift_read(failed: FailedShift) -> FailedShiftRead:
    return FailedShiftRead(
        shift_id=failed.shift_id,
        shift_title=failed.shift_title,
        date=failed.date,
        error=failed.error,
    )


def discrepancy_item_read(
    item: DiscrepancyItem,
    confirmations: dict[tuple[int, int], ShiftAttendanceConfirmation],
) -> DiscrepancyItemRead:
    confirmation = None
    if item.shift_id is not None:
        confirmation = confirmations.get((item.shift_id, item.employee_id))
    return DiscrepancyItemRead(
        shift_id=item.shift_id,
        shift_title=item.shift_title,
        shift_code=item.shift_code,
        date=item.date,
        pay_type=item.pay_type,
        scheduled_start=item.scheduled_start,
        scheduled_end=item.scheduled_end,
        employee_id=item.employee_id,
        employee_name=item.employee_name,
        type=item.type,
        clock_in=item.clock_in,
        clock_out=item.clock_out,
        minutes_diff=item.minutes_diff,
        hours_worked=item.hours_worked,
        time_entry_id=item.time_entry_id,
        manual_status=confirmation.status if confirmation is not None else None,
        manual_confirmed_by=confirmation.confirmed_by if confirmation is not None else None,
        manual_confirmed_at=confirmation.confirmed_at if confirmation is not None else None,
    )


def build_discrepancy_response(
    reconciliation: Reconciliation,
    *,
    item_type: DiscrepancyType | None = None,
) -> DiscrepancyReportResponse:
    report = reconciliation.report
    confirmations = reconciliation.confirmations
    items = filter_items_by_type(report.items, item_type)
    return DiscrepancyReportResponse(
        company_id=reconciliation.snapshot.company_id,
        date_from=reconciliation.snapshot.start_date,
        date_to=reconciliation.snapshot.end_date,
        total=len(items),
        counts=report.counts(),
        items=[discrepancy_item_read(item, confirmations) for item in items],
        failed_shifts=[_failed_shift_read(failed) for failed in report.failed_shifts],
    )


def shift_coverage_read(coverage: ShiftCoverage, client_names: dict[int, str]) -> ShiftCoverageRead:
    return ShiftCoverageRead(
        shift_id=coverage.shift_id,
        shift_title=coverage.shift_title,
        shift_code=coverage.shift_code,
        date=coverage.date,
        start_time=coverage.start_time,
        end_time=coverage.end_time,
        client_id=coverage.client_id,
        client_name=client_names.get(coverage.client_id) if coverage.client_id is not None else None,
        slots=coverage.slots,
        assigned_employees=[
            EmployeeRefRead(employee_id=ref.employee_id, name=ref.name) for ref in coverage.assigned_employees
        ],
        clocked_employees=[
            ClockedEmployeeRead(employee_id=ref.employee_id, name=ref.name, hours=ref.hours)
            for ref in coverage.clocked_employees
        ],
        missing_employees=[
            EmployeeRefRead(employee_id=ref.employee_id, name=ref.name) for ref in coverage.missing_employees
        ],
        extra_employees=[
            ClockedEmployeeRead(employee_id=ref.employee_id, name=ref.name, hours=ref.hours)
            for ref in coverage.extra_employees
        ],
        total_assigned=coverage.total_assigned,
        total_clocked=coverage.total_clocked,
        coverage_percent=coverage.coverage_percent,
        status=coverage.status,
        scheduled_hours=coverage.scheduled_hours,
        worked_hours=coverage.worked_hours,
    )


def coverage_summary_read(summary: CoverageSummary) -> CoverageSummaryRead:
    return CoverageSummaryRead(
        total_shifts=summary.total_shifts,
        fully_covered=summary.fully_covered,
        partially_covered=summary.partially_covered,
        uncovered=summary.uncovered,
        over_covered=summary.over_covered,
        empty=summary.empty,
        failed_shifts=summary.failed_shifts,
        overall_percent=summary.overall_percent,
        total_slots=summary.total_slots,
        total_clocked=summary.total_clocked,
        total_scheduled_hours=summary.total_scheduled_hours,
        total_worked_hours=summary.total_worked_hours,
        total_no_shows=summary.total_no_shows,
        total_extras=summary.total_extras,
    )


def build_coverage_response(reconciliation: Reconciliation, *, view: CoverageView) -> CoverageReportResponse:
    summary = build_coverage_summary(reconciliation.report)
    client_names = reconciliation.snapshot.client_names()
    return CoverageReportResponse(
        company_id=reconciliation.snapshot.company_id,
        date_from=reconciliation.snapshot.start_date,
        date_to=reconciliation.snapshot.end_date,
        view=view,
        summary=coverage_summary_read(summary),
        items=[shift_coverage_read(item, client_names) for item in filter_coverage_view(summary, view)],
        failed_shifts=[_failed_shift_read(failed) for failed in reconciliation.report.failed_shifts],
    )
