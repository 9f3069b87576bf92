# clinic/routes/schedule_api.py
"""
JSON API for availability, the occurrence grid and admin overrides.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from clinic.core.calendar_export import generate_ical
from clinic.core.config import DEFAULT_SLOT_DURATION_MINUTES
from clinic.core.errors import SchedulingError
from clinic.core.models import GeneratedOccurrence, ShiftOccurrence
from clinic.core.request_logging import log_override_event
from clinic.core.schedule import (
    cancel_occurrence,
    generate_occurrences_for_range,
    get_available_slots,
    get_month_availability,
    reassign_occurrence,
    restore_occurrence,
    swap_occurrence,
)
from clinic.core.storage import load_schedule_data
from clinic.core.validators import http_error_for, validate_date_range, validate_month_params
from clinic.database.database import get_db

router = APIRouter(prefix="/api", tags=["schedule_api"])

#: Default span of the occurrence grid and calendar feed when no end is given.
DEFAULT_RANGE_DAYS = 28
DEFAULT_CALENDAR_DAYS = 90


class CancelRequest(BaseModel):
    note: str | None = None
    expected_version: int | None = None


class RestoreRequest(BaseModel):
    expected_version: int | None = None


class SwapRequest(BaseModel):
    substitute_provider_id: str
    note: str | None = None
    expected_version: int | None = None


class ReassignRequest(BaseModel):
    target_provider_id: str
    target_date: str | None = None
    note: str | None = None


def _occurrence_payload(occurrence: GeneratedOccurrence) -> dict[str, Any]:
    payload = occurrence.model_dump(mode="json", exclude={"override"})
    payload["status"] = occurrence.status
    payload["substitute_provider_id"] = occurrence.substitute_provider_id
    payload["working_provider_id"] = occurrence.working_provider_id
    payload["note"] = occurrence.override.note if occurrence.override else ""
    payload["version"] = occurrence.override.version if occurrence.override else 0
    return payload


def _override_payload(override: ShiftOccurrence) -> dict[str, Any]:
    return override.model_dump(mode="json")


@router.get("/providers/{provider_id}/slots")
async def get_provider_slots(
    provider_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    duration: int = Query(DEFAULT_SLOT_DURATION_MINUTES, description="Appointment length in minutes"),
    location: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """Bookable start times for one provider on one date."""
    try:
        data = load_schedule_data(db)
        result = get_available_slots(provider_id, date, duration, data, location_filter=location)
    except SchedulingError as e:
        raise http_error_for(e) from e
    return {"provider_id": provider_id, "date": date, "duration": duration, **result.model_dump()}


@router.get("/providers/{provider_id}/month/{year}/{month}")
async def get_provider_month(
    provider_id: str,
    year: int,
    month: int,
    duration: int = Query(DEFAULT_SLOT_DURATION_MINUTES),
    location: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """One status per day: available, holiday, pto or no-shift."""
    validate_month_params(year, month)
    try:
        data = load_schedule_data(db)
        days = get_month_availability(provider_id, year, month, duration, data, location_filter=location)
    except SchedulingError as e:
        raise http_error_for(e) from e
    return {"provider_id": provider_id, "year": year, "month": month, "duration": duration, "days": days}


@router.get("/occurrences")
async def list_occurrences(
    start: str | None = Query(None),
    end: str | None = Query(None),
    db: Session = Depends(get_db),
):
    """Admin grid: every occurrence in the range with its override applied."""
    start_date, end_date = validate_date_range(start, end, DEFAULT_RANGE_DAYS)
    try:
        data = load_schedule_data(db)
        occurrences = generate_occurrences_for_range(start_date, end_date, data)
    except SchedulingError as e:
        raise http_error_for(e) from e
    return {
        "start": start_date.isoformat(),
        "end": end_date.isoformat(),
        "occurrences": [_occurrence_payload(o) for o in occurrences],
    }


@router.get("/providers/{provider_id}/calendar.ics")
async def export_provider_calendar(
    provider_id: str,
    start: str | None = Query(None),
    end: str | None = Query(None),
    db: Session = Depends(get_db),
) -> Response:
    """Provider's working shifts as a downloadable iCal file."""
    start_date, end_date = validate_date_range(start, end, DEFAULT_CALENDAR_DAYS)
    try:
        data = load_schedule_data(db)
        ical_content = generate_ical(provider_id, start_date, end_date, data)
    except SchedulingError as e:
        raise http_error_for(e) from e

    return Response(
        content=ical_content,
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{provider_id}.ics"',
        },
    )


# ============ Overrides ============


@router.post("/occurrences/{assignment_id}/{date}/cancel")
async def post_cancel(
    assignment_id: str,
    date: str,
    body: CancelRequest | None = None,
    db: Session = Depends(get_db),
):
    body = body or CancelRequest()
    try:
        override = cancel_occurrence(db, assignment_id, date, note=body.note, expected_version=body.expected_version)
    except SchedulingError as e:
        log_override_event("cancel", assignment_id, date, success=False, details={"reason": str(e)})
        raise http_error_for(e) from e
    log_override_event("cancel", assignment_id, date)
    return _override_payload(override)


@router.post("/occurrences/{assignment_id}/{date}/restore")
async def post_restore(
    assignment_id: str,
    date: str,
    body: RestoreRequest | None = None,
    db: Session = Depends(get_db),
):
    body = body or RestoreRequest()
    try:
        override = restore_occurrence(db, assignment_id, date, expected_version=body.expected_version)
    except SchedulingError as e:
        log_override_event("restore", assignment_id, date, success=False, details={"reason": str(e)})
        raise http_error_for(e) from e
    log_override_event("restore", assignment_id, date)
    return _override_payload(override)


@router.post("/occurrences/{assignment_id}/{date}/swap")
async def post_swap(
    assignment_id: str,
    date: str,
    body: SwapRequest,
    db: Session = Depends(get_db),
):
    try:
        override = swap_occurrence(
            db,
            assignment_id,
            date,
            body.substitute_provider_id,
            note=body.note,
            expected_version=body.expected_version,
        )
    except SchedulingError as e:
        log_override_event("swap", assignment_id, date, success=False, details={"reason": str(e)})
        raise http_error_for(e) from e
    log_override_event("swap", assignment_id, date, details={"substitute_provider_id": body.substitute_provider_id})
    return _override_payload(override)


@router.post("/occurrences/{assignment_id}/{date}/reassign")
async def post_reassign(
    assignment_id: str,
    date: str,
    body: ReassignRequest,
    db: Session = Depends(get_db),
):
    """Move an occurrence to another provider and/or date. 409 when the target is unavailable."""
    details = {"target_provider_id": body.target_provider_id, "target_date": body.target_date}
    try:
        override = reassign_occurrence(
            db,
            assignment_id,
            date,
            body.target_provider_id,
            target_date=body.target_date,
            note=body.note,
        )
    except SchedulingError as e:
        log_override_event("reassign", assignment_id, date, success=False, details={**details, "reason": str(e)})
        raise http_error_for(e) from e
    log_override_event("reassign", assignment_id, date, details=details)
    return _override_payload(override)
