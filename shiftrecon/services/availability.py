from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import date, time
from typing import Literal

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftrecon.models import Employee, EmployeeAvailabilityConfig, EmployeeAvailabilityOverride
from shiftrecon.schemas import AvailabilityConfigUpsert, AvailabilityOverrideUpsert

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

AvailabilitySource = Literal["override", "config", "default"]


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    reason: str | None = None
    source: AvailabilitySource = "default"


@dataclass(frozen=True)
class ConfigVerdict:
    config_id: int | None
    blocked: bool
    reason: str | None = None


AvailabilityPolicy = Callable[[Sequence[ConfigVerdict]], AvailabilityResult]


def weekday_label(weekday: int) -> str:
    if 0 <= weekday < len(WEEKDAY_LABELS):
        return WEEKDAY_LABELS[weekday]
    return str(weekday)


def any_block_wins(verdicts: Sequence[ConfigVerdict]) -> AvailabilityResult:
    # TODO: confirm with product whether an allowing config should outrank a blocking one.
    for verdict in verdicts:
        if verdict.blocked:
            return AvailabilityResult(available=False, reason=verdict.reason, source="config")
    return AvailabilityResult(available=True, source="default")


def config_in_effect(config: EmployeeAvailabilityConfig, day_date: date) -> bool:
    if config.effective_from is not None and day_date < config.effective_from:
        return False
    if config.effective_to is not None and day_date > config.effective_to:
        return False
    return True


def _candidate_segments(start: time, end: time) -> list[tuple[time, time | None]]:
    # None stands for 24:00; an overnight candidate splits at midnight.
    if end > start:
        return [(start, end)]
    segments: list[tuple[time, time | None]] = [(start, None)]
    if end > time.min:
        segments.append((time.min, end))
    return segments


def _windows_overlap(start: time, end: time, other_start: time, other_end: time) -> bool:
    for segment_start, segment_end in _candidate_segments(start, end):
        if segment_start < other_end and (segment_end is None or segment_end > other_start):
            return True
    return False


def evaluate_config(
    config: EmployeeAvailabilityConfig,
    day_date: date,
    *,
    start: time | None = None,
    end: time | None = None,
) -> ConfigVerdict:
    weekday = day_date.weekday()
    if weekday in (config.blocked_weekdays or []):
        return ConfigVerdict(
            config_id=config.id,
            blocked=True,
            reason=config.reason or f"Blocked: {weekday_label(weekday)}",
        )

    if config.blocked_start_time is not None and config.blocked_end_time is not None:
        if start is not None and end is not None and _windows_overlap(
            start, end, config.blocked_start_time, config.blocked_end_time
        ):
            window = f"{config.blocked_start_time:%H:%M}-{config.blocked_end_time:%H:%M}"
            return ConfigVerdict(
                config_id=config.id,
                blocked=True,
                reason=config.reason or f"Blocked: {window}",
            )

    if config.default_available is False:
        return ConfigVerdict(
            config_id=config.id,
            blocked=True,
            reason=config.reason or "Unavailable by default",
        )

    return ConfigVerdict(config_id=config.id, blocked=False)


def resolve_availability(
    employee_id: int,
    day_date: date,
    configs: Iterable[EmployeeAvailabilityConfig],
    overrides: Iterable[EmployeeAvailabilityOverride],
    *,
    start: time | None = None,
    end: time | None = None,
    policy: AvailabilityPolicy = any_block_wins,
) -> AvailabilityResult:
    """Decide if an employee can work on a date.

    An override for that exact date is authoritative. Otherwise each config in
    effect on the date yields a verdict and ``policy`` combines them.
    """
    for override in overrides or []:
        if override.employee_id == employee_id and override.day_date == day_date:
            if override.is_available:
                reason = override.reason or "Available (exception)"
            else:
                reason = override.reason or "Unavailable (exception)"
            return AvailabilityResult(available=override.is_available, reason=reason, source="override")

    applicable = sorted(
        (
            config
            for config in configs or []
            if config.employee_id == employee_id and config_in_effect(config, day_date)
        ),
        key=lambda config: config.id or 0,
    )
    if not applicable:
        return AvailabilityResult(available=True, source="default")

    verdicts = [evaluate_config(config, day_date, start=start, end=end) for config in applicable]
    return policy(verdicts)


def ensure_company_employee(db: Session, *, company_id: int, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None or employee.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


def list_availability_configs(db: Session, *, company_id: int, employee_id: int) -> list[EmployeeAvailabilityConfig]:
    return list(
        db.scalars(
            select(EmployeeAvailabilityConfig)
            .where(
                EmployeeAvailabilityConfig.company_id == company_id,
                EmployeeAvailabilityConfig.employee_id == employee_id,
            )
            .order_by(EmployeeAvailabilityConfig.id.asc())
        ).all()
    )


def list_availability_overrides(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[EmployeeAvailabilityOverride]:
    stmt = (
        select(EmployeeAvailabilityOverride)
        .where(
            EmployeeAvailabilityOverride.company_id == company_id,
            EmployeeAvailabilityOverride.employee_id == employee_id,
        )
        .order_by(EmployeeAvailabilityOverride.day_date.asc(), EmployeeAvailabilityOverride.id.asc())
    )
    if start_date is not None:
        stmt = stmt.where(EmployeeAvailabilityOverride.day_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(EmployeeAvailabilityOverride.day_date <= end_date)
    return list(db.scalars(stmt).all())


def resolve_employee_availability(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    day_date: date,
    start: time | None = None,
    end: time | None = None,
    policy: AvailabilityPolicy = any_block_wins,
) -> AvailabilityResult:
    configs = list_availability_configs(db, company_id=company_id, employee_id=employee_id)
    overrides = list_availability_overrides(
        db,
        company_id=company_id,
        employee_id=employee_id,
        start_date=day_date,
        end_date=day_date,
    )
    return resolve_availability(
        employee_id,
        day_date,
        configs,
        overrides,
        start=start,
        end=end,
        policy=policy,
    )


def _validate_config_payload(payload: AvailabilityConfigUpsert) -> None:
    if (payload.blocked_start_time is None) != (payload.blocked_end_time is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="blocked_start_time and blocked_end_time must be provided together",
        )
    if (
        payload.blocked_start_time is not None
        and payload.blocked_end_time is not None
        and payload.blocked_end_time <= payload.blocked_start_time
    ):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="blocked_end_time must be greater than blocked_start_time",
        )
    if (
        payload.effective_from is not None
        and payload.effective_to is not None
        and payload.effective_to < payload.effective_from
    ):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="effective_to must be greater than or equal to effective_from",
        )


def create_availability_config(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    payload: AvailabilityConfigUpsert,
) -> EmployeeAvailabilityConfig:
    ensure_company_employee(db, company_id=company_id, employee_id=employee_id)
    _validate_config_payload(payload)

    config = EmployeeAvailabilityConfig(
        company_id=company_id,
        employee_id=employee_id,
        default_available=payload.default_available,
        blocked_weekdays=sorted(set(payload.blocked_weekdays)),
        blocked_start_time=payload.blocked_start_time,
        blocked_end_time=payload.blocked_end_time,
        effective_from=payload.effective_from,
        effective_to=payload.effective_to,
        reason=payload.reason,
    )
    db.add(config)
    db.commit()
    db.refresh(config)
    return config


def update_availability_config(
    db: Session,
    *,
    company_id: int,
    config_id: int,
    payload: AvailabilityConfigUpsert,
) -> EmployeeAvailabilityConfig:
    config = db.get(EmployeeAvailabilityConfig, config_id)
    if config is None or config.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Availability config not found")
    _validate_config_payload(payload)

    config.default_available = payload.default_available
    config.blocked_weekdays = sorted(set(payload.blocked_weekdays))
    config.blocked_start_time = payload.blocked_start_time
    config.blocked_end_time = payload.blocked_end_time
    config.effective_from = payload.effective_from
    config.effective_to = payload.effective_to
    config.reason = payload.reason

    db.commit()
    db.refresh(config)
    return config


def delete_availability_config(db: Session, *, company_id: int, config_id: int) -> None:
    config = db.get(EmployeeAvailabilityConfig, config_id)
    if config is None or config.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Availability config not found")
    db.delete(config)
    db.commit()


def upsert_availability_override(
    db: Session,
    *,
    company_id: int,
    employee_id: int,
    payload: AvailabilityOverrideUpsert,
) -> EmployeeAvailabilityOverride:
    ensure_company_employee(db, company_id=company_id, employee_id=employee_id)

    override = db.scalar(
        select(EmployeeAvailabilityOverride).where(
            EmployeeAvailabilityOverride.employee_id == employee_id,
            EmployeeAvailabilityOverride.day_date == payload.day_date,
        )
    )
    if override is None:
        override = EmployeeAvailabilityOverride(
            company_id=company_id,
            employee_id=employee_id,
            day_date=payload.day_date,
            is_available=payload.is_available,
            reason=payload.reason,
            source=payload.source,
        )
        db.add(override)
    else:
        override.is_available = payload.is_available
        override.reason = payload.reason
        override.source = payload.source

    db.commit()
    db.refresh(override)
    return override


def delete_availability_override(db: Session, *, company_id: int, override_id: int) -> None:
    override = db.get(EmployeeAvailabilityOverride, override_id)
    if override is None or override.company_id != company_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Availability override not found")
    db.delete(override)
    db.commit()
