import datetime

from fastapi import HTTPException, status

from clinic.core.errors import (
    ConflictError,
    InvalidInputError,
    SchedulingError,
    StorageError,
    UnknownReferenceError,
)
from clinic.core.time_utils import parse_date


def validate_month_params(year: int, month: int) -> datetime.date:
    """
    Validate year/month path parameters.

    Returns the first day of the month, HTTP 400 for invalid values.
    """
    try:
        return datetime.date(year, month, 1)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid month: {year}-{month}",
        ) from e


def validate_date_range(
    start: str | None,
    end: str | None,
    default_days: int,
) -> tuple[datetime.date, datetime.date]:
    """
    Parse optional start/end query parameters.

    - start defaults to today
    - end defaults to start + default_days - 1
    - end before start gives HTTP 400
    """
    try:
        start_date = parse_date(start, "start") if start else datetime.date.today()
        end_date = parse_date(end, "end") if end else start_date + datetime.timedelta(days=default_days - 1)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    if end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End date must not be before start date",
        )
    return start_date, end_date


def http_error_for(error: SchedulingError) -> HTTPException:
    """Map an engine error to the HTTP status the API reports."""
    if isinstance(error, UnknownReferenceError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))
    if isinstance(error, InvalidInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, ConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(error))
    if isinstance(error, StorageError):
        return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Schedule data unavailable")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
