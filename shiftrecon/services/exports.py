from __future__ import annotations

import csv
from collections.abc import Iterable
from datetime import date, datetime, time, tzinfo
from io import BytesIO, StringIO

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from shiftrecon.models import ConfirmationStatus, CoverageStatus, DiscrepancyType, ShiftAttendanceConfirmation, ShiftPayType
from shiftrecon.services.coverage import ClockedEmployee, CoverageSummary, EmployeeRef, ShiftCoverage
from shiftrecon.services.discrepancies import DiscrepancyItem
from shiftrecon.services.reconcile_calc import format_hhmm, to_local

COVERAGE_HEADERS = [
    "Date",
    "Code",
    "Shift",
    "Client",
    "Time",
    "Scheduled",
    "Clocked",
    "No-shows",
    "Extras",
    "Scheduled Hours",
    "Worked Hours",
    "Status",
]

DISCREPANCY_HEADERS = [
    "Date",
    "Shift",
    "Pay Type",
    "Employee",
    "Status",
    "Scheduled Time",
    "Clock In",
    "Clock Out",
    "Hours",
    "Difference (min)",
    "Manual Confirmation",
]

COVERAGE_STATUS_LABELS: dict[CoverageStatus, str] = {
    CoverageStatus.FULL: "Full",
    CoverageStatus.PARTIAL: "Partial",
    CoverageStatus.UNCOVERED: "Uncovered",
    CoverageStatus.OVER: "Over",
    CoverageStatus.EMPTY: "No staff",
}

DISCREPANCY_TYPE_LABELS: dict[DiscrepancyType, str] = {
    DiscrepancyType.NO_SHOW: "No-show",
    DiscrepancyType.LATE_ARRIVAL: "Late arrival",
    DiscrepancyType.EARLY_DEPARTURE: "Early departure",
    DiscrepancyType.EXTRA_CLOCK: "Extra clock-in",
    DiscrepancyType.OK: "OK",
}

PAY_TYPE_LABELS: dict[ShiftPayType, str] = {
    ShiftPayType.HOURLY: "Hourly",
    ShiftPayType.DAILY: "Daily",
}

CONFIRMATION_LABELS: dict[ConfirmationStatus, str] = {
    ConfirmationStatus.PRESENT: "Present",
    ConfirmationStatus.ABSENT: "Absent",
}

HEADER_FILL = PatternFill(fill_type="solid", fgColor="0B4F73")
META_LABEL_FILL = PatternFill(fill_type="solid", fgColor="EAF4F9")
META_VALUE_FILL = PatternFill(fill_type="solid", fgColor="F8FCFF")
ZEBRA_FILL = PatternFill(fill_type="solid", fgColor="F7FBFE")
WARNING_FILL = PatternFill(fill_type="solid", fgColor="FFF3CD")
ALERT_FILL = PatternFill(fill_type="solid", fgColor="FDE2E4")
SUCCESS_FILL = PatternFill(fill_type="solid", fgColor="E6F4EA")

HEADER_FONT = Font(bold=True, color="FFFFFF")
BOLD_FONT = Font(bold=True, color="0F172A")
MUTED_FONT = Font(color="334155")

THIN_SIDE = Side(style="thin", color="D5E2EC")
THIN_BORDER = Border(left=THIN_SIDE, right=THIN_SIDE, top=THIN_SIDE, bottom=THIN_SIDE)

_ROW_FILLS: dict[str, PatternFill] = {
    COVERAGE_STATUS_LABELS[CoverageStatus.UNCOVERED]: ALERT_FILL,
    COVERAGE_STATUS_LABELS[CoverageStatus.PARTIAL]: WARNING_FILL,
    COVERAGE_STATUS_LABELS[CoverageStatus.OVER]: WARNING_FILL,
    COVERAGE_STATUS_LABELS[CoverageStatus.FULL]: SUCCESS_FILL,
    DISCREPANCY_TYPE_LABELS[DiscrepancyType.NO_SHOW]: ALERT_FILL,
    DISCREPANCY_TYPE_LABELS[DiscrepancyType.LATE_ARRIVAL]: WARNING_FILL,
    DISCREPANCY_TYPE_LABELS[DiscrepancyType.EARLY_DEPARTURE]: WARNING_FILL,
    DISCREPANCY_TYPE_LABELS[DiscrepancyType.EXTRA_CLOCK]: WARNING_FILL,
}


def _time_label(start: time | None, end: time | None) -> str:
    if start is None or end is None:
        return "-"
    return f"{format_hhmm(start)} - {format_hhmm(end)}"


def _names(refs: Iterable[EmployeeRef | ClockedEmployee]) -> str:
    return ", ".join(ref.name for ref in refs)


def _clocked_names(refs: Iterable[ClockedEmployee]) -> str:
    return ", ".join(f"{ref.name} ({ref.hours:.2f}h)" for ref in refs)


def _clock_label(value: datetime | None, tz: tzinfo) -> str:
    if value is None:
        return "-"
    return to_local(value, tz).strftime("%H:%M")


def coverage_row(coverage: ShiftCoverage, client_names: dict[int, str]) -> list[object]:
    client_name = client_names.get(coverage.client_id, "") if coverage.client_id is not None else ""
    return [
        coverage.date.isoformat(),
        coverage.shift_code or "",
        coverage.shift_title,
        client_name,
        _time_label(coverage.start_time, coverage.end_time),
        _names(coverage.assigned_employees),
        _clocked_names(coverage.clocked_employees),
        _names(coverage.missing_employees),
        _names(coverage.extra_employees),
        coverage.scheduled_hours,
        coverage.worked_hours,
        COVERAGE_STATUS_LABELS[coverage.status],
    ]


def discrepancy_row(
    item: DiscrepancyItem,
    *,
    tz: tzinfo,
    confirmation: ShiftAttendanceConfirmation | None = None,
) -> list[object]:
    manual = ""
    if confirmation is not None:
        manual = CONFIRMATION_LABELS[ConfirmationStatus(confirmation.status)]
    return [
        item.date.isoformat(),
        item.shift_title,
        PAY_TYPE_LABELS[item.pay_type],
        item.employee_name,
        DISCREPANCY_TYPE_LABELS[item.type],
        _time_label(item.scheduled_start, item.scheduled_end),
        _clock_label(item.clock_in, tz),
        _clock_label(item.clock_out, tz),
        item.hours_worked,
        item.minutes_diff,
        manual,
    ]


def _style_header(ws: Worksheet, row: int = 1) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        cell.border = THIN_BORDER


def _auto_width(ws: Worksheet) -> None:
    for column_cells in ws.iter_cols(min_row=1, max_row=ws.max_row, min_col=1, max_col=ws.max_column):
        max_len = 0
        col_letter = get_column_letter(column_cells[0].column)
        for cell in column_cells:
            value = "" if cell.value is None else str(cell.value)
            max_len = max(max_len, len(value))
        ws.column_dimensions[col_letter].width = min(max_len + 2, 45)


def _style_table_region(ws: Worksheet, *, status_col_name: str = "Status") -> None:
    ws.freeze_panes = "A2"
    if ws.max_row < 2:
        return
    ws.auto_filter.ref = f"A1:{get_column_letter(ws.max_column)}{ws.max_row}"

    status_col = None
    for col_idx in range(1, ws.max_column + 1):
        if ws.cell(row=1, column=col_idx).value == status_col_name:
            status_col = col_idx
            break

    for row_idx in range(2, ws.max_row + 1):
        status_value = ws.cell(row=row_idx, column=status_col).value if status_col else None
        row_fill = _ROW_FILLS.get(status_value) if isinstance(status_value, str) else None
        if row_fill is None and row_idx % 2 == 0:
            row_fill = ZEBRA_FILL

        for col_idx in range(1, ws.max_column + 1):
            cell = ws.cell(row=row_idx, column=col_idx)
            cell.border = THIN_BORDER
            if row_fill is not None:
                cell.fill = row_fill
            if isinstance(cell.value, (int, float)):
                cell.alignment = Alignment(horizontal="center", vertical="center")
            else:
                cell.alignment = Alignment(horizontal="left", vertical="center")


def _append_metadata_sheet(wb: Workbook, rows: list[tuple[str, object]]) -> None:
    ws = wb.create_sheet("Summary")
    for label, value in rows:
        ws.append([label, value])
    for row_idx in range(1, ws.max_row + 1):
        label_cell = ws.cell(row=row_idx, column=1)
        value_cell = ws.cell(row=row_idx, column=2)
        label_cell.font = BOLD_FONT
        label_cell.fill = META_LABEL_FILL
        label_cell.border = THIN_BORDER
        value_cell.font = MUTED_FONT
        value_cell.fill = META_VALUE_FILL
        value_cell.border = THIN_BORDER
    _auto_width(ws)


def _workbook_bytes(wb: Workbook) -> bytes:
    stream = BytesIO()
    wb.save(stream)
    return stream.getvalue()


def build_coverage_xlsx_bytes(
    summary: CoverageSummary,
    coverages: Iterable[ShiftCoverage],
    *,
    client_names: dict[int, str],
    date_from: date,
    date_to: date,
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Coverage"
    ws.append(COVERAGE_HEADERS)
    _style_header(ws)
    for coverage in coverages:
        ws.append(coverage_row(coverage, client_names))
    _style_table_region(ws)
    _auto_width(ws)

    _append_metadata_sheet(
        wb,
        [
            ("Period", f"{date_from.isoformat()} - {date_to.isoformat()}"),
            ("Shifts", summary.total_shifts),
            ("Overall coverage (%)", summary.overall_percent),
            ("Full", summary.fully_covered),
            ("Partial", summary.partially_covered),
            ("Uncovered", summary.uncovered),
            ("Over", summary.over_covered),
            ("No staff", summary.empty),
            ("Failed shifts", summary.failed_shifts),
            ("No-shows", summary.total_no_shows),
            ("Extras", summary.total_extras),
            ("Scheduled hours", summary.total_scheduled_hours),
            ("Worked hours", summary.total_worked_hours),
        ],
    )
    return _workbook_bytes(wb)


def build_coverage_csv_text(coverages: Iterable[ShiftCoverage], *, client_names: dict[int, str]) -> str:
    buffer = StringIO()
    # UTF-8 BOM for spreadsheet apps
    buffer.write("\ufeff")
    writer = csv.writer(buffer)
    writer.writerow(COVERAGE_HEADERS)
    for coverage in coverages:
        writer.writerow(coverage_row(coverage, client_names))
    return buffer.getvalue()


def build_discrepancy_xlsx_bytes(
    items: Iterable[DiscrepancyItem],
    *,
    confirmations: dict[tuple[int, int], ShiftAttendanceConfirmation],
    tz: tzinfo,
    date_from: date,
    date_to: date,
    counts: dict[DiscrepancyType, int],
) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = "Discrepancies"
    ws.append(DISCREPANCY_HEADERS)
    _style_header(ws)
    for item in items:
        confirmation = None
        if item.shift_id is not None:
            confirmation = confirmations.get((item.shift_id, item.employee_id))
        ws.append(discrepancy_row(item, tz=tz, confirmation=confirmation))
    _style_table_region(ws)
    _auto_width(ws)

    metadata: list[tuple[str, object]] = [("Period", f"{date_from.isoformat()} - {date_to.isoformat()}")]
    metadata.extend((DISCREPANCY_TYPE_LABELS[item_type], counts.get(item_type, 0)) for item_type in DiscrepancyType)
    _append_metadata_sheet(wb, metadata)
    return _workbook_bytes(wb)
