from datetime import date, datetime, time
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shiftrecon.models import ConfirmationStatus, CoverageStatus, DiscrepancyType, ShiftPayType


class AvailabilityConfigUpsert(BaseModel):
    default_available: bool = True
    blocked_weekdays: list[int] = Field(default_factory=list)
    blocked_start_time: time | None = None
    blocked_end_time: time | None = None
    effective_from: date | None = None
    effective_to: date | None = None
    reason: str | None = Field(default=None, max_length=500)

    @field_validator("blocked_weekdays")
    @classmethod
    def _validate_weekdays(cls, value: list[int]) -> list[int]:
        for weekday in value:
            if weekday < 0 or weekday > 6:
                raise ValueError("blocked_weekdays values must be between 0 (Monday) and 6 (Sunday).")
        return value


class AvailabilityConfigRead(BaseModel):
    id: int
    employee_id: int
    default_available: bool
    blocked_weekdays: list[int]
    blocked_start_time: time | None
    blocked_end_time: time | None
    effective_from: date | None
    effective_to: date | None
    reason: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityOverrideUpsert(BaseModel):
    day_date: date
    is_available: bool
    reason: str | None = Field(default=None, max_length=500)
    source: str = Field(default="admin", min_length=1, max_length=40)


class AvailabilityOverrideRead(BaseModel):
    id: int
    employee_id: int
    day_date: date
    is_available: bool
    reason: str | None
    source: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AvailabilityRead(BaseModel):
    employee_id: int
    day_date: date
    available: bool
    reason: str | None = None
    source: Literal["override", "config", "default"]


class AssignmentCheckRequest(BaseModel):
    company_id: int = Field(ge=1)
    employee_id: int = Field(ge=1)
    day_date: date
    start_time: time
    end_time: time
    shift_id: int | None = Field(default=None, ge=1)
    mode: Literal["warn", "block"] = "warn"

    @model_validator(mode="after")
    def _validate_window(self) -> "AssignmentCheckRequest":
        if self.end_time == self.start_time:
            raise ValueError("start_time and end_time must differ.")
        return self


class ConflictRead(BaseModel):
    shift_id: int
    shift_title: str
    time: str


class AssignmentCheckResponse(BaseModel):
    employee_id: int
    day_date: date
    available: bool
    reason: str | None = None
    conflicts: list[ConflictRead] = Field(default_factory=list)
    has_findings: bool


class DiscrepancyItemRead(BaseModel):
    shift_id: int | None
    shift_title: str
    shift_code: str | None = None
    date: date
    pay_type: ShiftPayType
    scheduled_start: time | None = None
    scheduled_end: time | None = None
    employee_id: int
    employee_name: str
    type: DiscrepancyType
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    minutes_diff: int
    hours_worked: float
    time_entry_id: int | None = None
    manual_status: ConfirmationStatus | None = None
    manual_confirmed_by: str | None = None
    manual_confirmed_at: datetime | None = None


class FailedShiftRead(BaseModel):
    shift_id: int
    shift_title: str
    date: date
    error: str


class DiscrepancyReportResponse(BaseModel):
    company_id: int
    date_from: date
    date_to: date
    total: int
    counts: dict[DiscrepancyType, int]
    items: list[DiscrepancyItemRead]
    failed_shifts: list[FailedShiftRead] = Field(default_factory=list)


class EmployeeRefRead(BaseModel):
    employee_id: int
    name: str


class ClockedEmployeeRead(BaseModel):
    employee_id: int
    name: str
    hours: float


class ShiftCoverageRead(BaseModel):
    shift_id: int
    shift_title: str
    shift_code: str | None = None
    date: date
    start_time: time | None = None
    end_time: time | None = None
    client_id: int | None = None
    client_name: str | None = None
    slots: int
    assigned_employees: list[EmployeeRefRead]
    clocked_employees: list[ClockedEmployeeRead]
    missing_employees: list[EmployeeRefRead]
    extra_employees: list[ClockedEmployeeRead]
    total_assigned: int
    total_clocked: int
    coverage_percent: int
    status: CoverageStatus
    scheduled_hours: float
    worked_hours: float


class CoverageSummaryRead(BaseModel):
    total_shifts: int
    fully_covered: int
    partially_covered: int
    uncovered: int
    over_covered: int
    empty: int
    failed_shifts: int
    overall_percent: int
    total_slots: int
    total_clocked: int
    total_scheduled_hours: float
    total_worked_hours: float
    total_no_shows: int
    total_extras: int


class CoverageReportResponse(BaseModel):
    company_id: int
    date_from: date
    date_to: date
    view: Literal["issues", "all"]
    summary: CoverageSummaryRead
    items: list[ShiftCoverageRead]
    failed_shifts: list[FailedShiftRead] = Field(default_factory=list)


class AttendanceConfirmationRequest(BaseModel):
    status: ConfirmationStatus


class AttendanceConfirmationRead(BaseModel):
    id: int
    shift_id: int
    assignment_id: int
    employee_id: int
    status: ConfirmationStatus
    confirmed_by: str
    confirmed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConfirmAllResponse(BaseModel):
    shift_id: int
    confirmed_count: int
