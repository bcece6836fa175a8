from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import date, datetime, time, timezone
from unittest.mock import patch

from fastapi.testclient import TestClient

from shiftrecon.db import get_db
from shiftrecon.main import app
from shiftrecon.models import (
    AssignmentStatus,
    Client,
    ConfirmationStatus,
    Employee,
    Shift,
    ShiftAssignment,
    ShiftAttendanceConfirmation,
    ShiftPayType,
    TimeEntry,
    TimeEntryStatus,
)
from shiftrecon.routers.deps import XLSX_MEDIA_TYPE
from shiftrecon.services.availability import AvailabilityResult
from shiftrecon.services.snapshot import ReconciliationSnapshot

DAY = date(2026, 3, 2)
CONFIRMED_AT = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


class _FakeDB:
    def commit(self) -> None:
        return

    def rollback(self) -> None:
        return

    def add(self, _obj) -> None:  # type: ignore[no-untyped-def]
        return


def _override_get_db(fake_db: _FakeDB):
    def _override() -> Generator[_FakeDB, None, None]:
        yield fake_db

    return _override


def _snapshot() -> ReconciliationSnapshot:
    # America/New_York is UTC-5 on this date, so 09:00 local is 14:00 UTC.
    shifts = [
        Shift(
            id=10,
            company_id=1,
            title="Front desk",
            shift_code="FD1",
            shift_date=DAY,
            start_time=time(9),
            end_time=time(17),
            slots=2,
            pay_type=ShiftPayType.HOURLY,
            client_id=3,
        ),
        Shift(
            id=11,
            company_id=1,
            title="Back office",
            shift_date=DAY,
            start_time=time(9),
            end_time=time(17),
            slots=1,
            pay_type=ShiftPayType.DAILY,
        ),
    ]
    assignments = [
        ShiftAssignment(id=1, company_id=1, shift_id=10, employee_id=1, status=AssignmentStatus.CONFIRMED),
        ShiftAssignment(id=2, company_id=1, shift_id=10, employee_id=2, status=AssignmentStatus.CONFIRMED),
        ShiftAssignment(id=3, company_id=1, shift_id=11, employee_id=3, status=AssignmentStatus.ACCEPTED),
    ]
    entries = [
        TimeEntry(
            id=100,
            company_id=1,
            employee_id=1,
            shift_id=10,
            clock_in=datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc),
            clock_out=datetime(2026, 3, 2, 22, 0, tzinfo=timezone.utc),
            break_minutes=0,
            status=TimeEntryStatus.APPROVED,
        ),
        TimeEntry(
            id=101,
            company_id=1,
            employee_id=3,
            shift_id=11,
            clock_in=datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc),
            clock_out=datetime(2026, 3, 2, 22, 0, tzinfo=timezone.utc),
            break_minutes=30,
            status=TimeEntryStatus.APPROVED,
        ),
    ]
    employees = [
        Employee(id=1, company_id=1, first_name="Ana", last_name="Doe"),
        Employee(id=2, company_id=1, first_name="Bo", last_name="Lee"),
        Employee(id=3, company_id=1, first_name="Cy", last_name="Roe"),
    ]
    confirmations = [
        ShiftAttendanceConfirmation(
            id=50,
            company_id=1,
            shift_id=10,
            assignment_id=2,
            employee_id=2,
            status=ConfirmationStatus.ABSENT,
            confirmed_by="manager-7",
            confirmed_at=CONFIRMED_AT,
        )
    ]
    return ReconciliationSnapshot(
        company_id=1,
        start_date=DAY,
        end_date=DAY,
        shifts=shifts,
        assignments=assignments,
        time_entries=entries,
        employees=employees,
        clients=[Client(id=3, company_id=1, name="Acme")],
        confirmations=confirmations,
    )


REPORT_PARAMS = {"company_id": 1, "date_from": "2026-03-02", "date_to": "2026-03-02"}


@patch("shiftrecon.services.reports.load_reconciliation_snapshot", side_effect=lambda *_args, **_kwargs: _snapshot())
class ReportEndpointsTests(unittest.TestCase):
    def setUp(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeDB())
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_discrepancy_report_includes_manual_confirmation(self, _mock_snapshot) -> None:
        response = self.client.get("/api/reports/discrepancies", params=REPORT_PARAMS)

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(body["counts"]["no_show"], 1)
        self.assertEqual(body["counts"]["ok"], 2)
        self.assertEqual(body["counts"]["extra_clock"], 0)

        no_show = body["items"][0]
        self.assertEqual(no_show["type"], "no_show")
        self.assertEqual(no_show["employee_name"], "Bo Lee")
        self.assertEqual(no_show["manual_status"], "absent")
        self.assertEqual(no_show["manual_confirmed_by"], "manager-7")
        self.assertIsNone(body["items"][1]["manual_status"])

    def test_discrepancy_report_type_filter(self, _mock_snapshot) -> None:
        response = self.client.get("/api/reports/discrepancies", params={**REPORT_PARAMS, "type": "ok"})

        body = response.json()
        self.assertEqual(body["total"], 2)
        self.assertTrue(all(item["type"] == "ok" for item in body["items"]))

    def test_coverage_report_views(self, _mock_snapshot) -> None:
        issues = self.client.get("/api/reports/coverage", params=REPORT_PARAMS).json()
        everything = self.client.get("/api/reports/coverage", params={**REPORT_PARAMS, "view": "all"}).json()

        self.assertEqual(issues["view"], "issues")
        self.assertEqual([item["shift_id"] for item in issues["items"]], [10])
        self.assertEqual(issues["items"][0]["status"], "partial")
        self.assertEqual(issues["items"][0]["client_name"], "Acme")
        self.assertEqual(len(everything["items"]), 2)
        self.assertEqual(everything["summary"]["fully_covered"], 1)
        self.assertEqual(everything["summary"]["overall_percent"], 67)

    def test_inverted_range_uses_error_envelope(self, mock_snapshot) -> None:
        response = self.client.get(
            "/api/reports/coverage",
            params={**REPORT_PARAMS, "date_from": "2026-03-05"},
            headers={"X-Request-Id": "req-1"},
        )

        self.assertEqual(response.status_code, 422)
        error = response.json()["error"]
        self.assertEqual(error["code"], "VALIDATION_ERROR")
        self.assertEqual(error["request_id"], "req-1")
        mock_snapshot.assert_not_called()

    def test_missing_company_is_rejected(self, _mock_snapshot) -> None:
        response = self.client.get(
            "/api/reports/discrepancies",
            params={"date_from": "2026-03-02", "date_to": "2026-03-02"},
        )
        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "VALIDATION_ERROR")

    @patch("shiftrecon.routers.reports.log_audit")
    def test_coverage_xlsx_export_is_audited(self, mock_log_audit, _mock_snapshot) -> None:
        response = self.client.get(
            "/api/reports/coverage/export.xlsx",
            params=REPORT_PARAMS,
            headers={"X-Actor-Id": "manager-3"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], XLSX_MEDIA_TYPE)
        self.assertIn("coverage-2026-03-02-2026-03-02.xlsx", response.headers["content-disposition"])
        kwargs = mock_log_audit.call_args.kwargs
        self.assertEqual(kwargs["action"], "COVERAGE_EXPORT_XLSX")
        self.assertEqual(kwargs["actor_id"], "manager-3")
        self.assertEqual(kwargs["details"]["row_count"], 2)

    @patch("shiftrecon.routers.reports.log_audit")
    def test_coverage_csv_export(self, mock_log_audit, _mock_snapshot) -> None:
        response = self.client.get("/api/reports/coverage/export.csv", params={**REPORT_PARAMS, "view": "issues"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertTrue(response.content.startswith(b"\xef\xbb\xbf"))
        self.assertEqual(mock_log_audit.call_args.kwargs["details"]["row_count"], 1)

    @patch("shiftrecon.routers.reports.log_audit")
    def test_discrepancy_xlsx_export(self, mock_log_audit, _mock_snapshot) -> None:
        response = self.client.get("/api/reports/discrepancies/export.xlsx", params=REPORT_PARAMS)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["content-type"], XLSX_MEDIA_TYPE)
        self.assertEqual(mock_log_audit.call_args.kwargs["action"], "DISCREPANCY_EXPORT_XLSX")


class SchedulingEndpointsTests(unittest.TestCase):
    def setUp(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeDB())
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    @patch("shiftrecon.services.conflicts.load_employee_day_schedule")
    @patch("shiftrecon.services.conflicts.resolve_employee_availability")
    @patch("shiftrecon.services.conflicts.ensure_company_employee")
    def test_assignment_check_block_mode_returns_conflict(
        self,
        _mock_ensure,
        mock_resolve,
        mock_schedule,
    ) -> None:
        mock_resolve.return_value = AvailabilityResult(available=False, reason="Blocked: Mon", source="config")
        mock_schedule.return_value = (
            [
                Shift(
                    id=10,
                    company_id=1,
                    title="Front desk",
                    shift_date=DAY,
                    start_time=time(9),
                    end_time=time(17),
                    slots=1,
                )
            ],
            [ShiftAssignment(id=1, company_id=1, shift_id=10, employee_id=1, status=AssignmentStatus.CONFIRMED)],
        )

        response = self.client.post(
            "/api/scheduling/assignment-check",
            json={
                "company_id": 1,
                "employee_id": 1,
                "day_date": "2026-03-02",
                "start_time": "16:00",
                "end_time": "20:00",
                "mode": "block",
            },
        )

        self.assertEqual(response.status_code, 409)
        error = response.json()["error"]
        self.assertEqual(error["code"], "ASSIGNMENT_BLOCKED")
        self.assertEqual(error["message"], "Blocked: Mon")
        self.assertEqual(error["details"]["conflicts"][0]["time"], "09:00–17:00")

    @patch("shiftrecon.services.conflicts.load_employee_day_schedule", return_value=([], []))
    @patch("shiftrecon.services.conflicts.resolve_employee_availability")
    @patch("shiftrecon.services.conflicts.ensure_company_employee")
    def test_assignment_check_warn_mode(self, _mock_ensure, mock_resolve, _mock_schedule) -> None:
        mock_resolve.return_value = AvailabilityResult(available=True)

        response = self.client.post(
            "/api/scheduling/assignment-check",
            json={
                "company_id": 1,
                "employee_id": 1,
                "day_date": "2026-03-02",
                "start_time": "16:00",
                "end_time": "20:00",
            },
        )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["available"])
        self.assertFalse(body["has_findings"])
        self.assertEqual(body["conflicts"], [])

    def test_assignment_check_rejects_empty_window(self) -> None:
        response = self.client.post(
            "/api/scheduling/assignment-check",
            json={
                "company_id": 1,
                "employee_id": 1,
                "day_date": "2026-03-02",
                "start_time": "09:00",
                "end_time": "09:00",
            },
        )
        self.assertEqual(response.status_code, 422)


class AttendanceEndpointsTests(unittest.TestCase):
    def setUp(self) -> None:
        app.dependency_overrides[get_db] = _override_get_db(_FakeDB())
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    @patch("shiftrecon.routers.attendance.log_audit")
    @patch("shiftrecon.routers.attendance.confirm_attendance")
    def test_confirm_attendance_uses_actor_header(self, mock_confirm, mock_log_audit) -> None:
        mock_confirm.return_value = ShiftAttendanceConfirmation(
            id=50,
            company_id=1,
            shift_id=10,
            assignment_id=2,
            employee_id=2,
            status=ConfirmationStatus.PRESENT,
            confirmed_by="manager-4",
            confirmed_at=CONFIRMED_AT,
        )

        response = self.client.put(
            "/api/assignments/2/attendance-confirmation",
            params={"company_id": 1},
            json={"status": "present"},
            headers={"X-Actor-Id": "manager-4"},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "present")
        self.assertEqual(mock_confirm.call_args.kwargs["confirmed_by"], "manager-4")
        self.assertEqual(mock_log_audit.call_args.kwargs["action"], "ATTENDANCE_CONFIRMED")

    @patch("shiftrecon.routers.attendance.log_audit")
    @patch("shiftrecon.routers.attendance.confirm_all_present", return_value=3)
    def test_confirm_all_defaults_to_system_actor(self, mock_confirm_all, _mock_log_audit) -> None:
        response = self.client.post(
            "/api/shifts/10/attendance-confirmations/confirm-all",
            params={"company_id": 1},
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"shift_id": 10, "confirmed_count": 3})
        self.assertEqual(mock_confirm_all.call_args.kwargs["confirmed_by"], "system")


if __name__ == "__main__":
    unittest.main()
