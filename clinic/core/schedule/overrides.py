"""
Admin override actions: cancel, restore, swap and reassign.

Each action validates against a schedule snapshot, then writes
ShiftOccurrence rows in one transaction. Nothing is written when
validation fails. Concurrent edits of the same (assignment_id, date) are
caught by the unique constraint and the version column and reported as
OverrideConflictError.
"""

import datetime
import logging
import uuid
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from clinic.core.constants import STATUS_CANCELLED, STATUS_SCHEDULED, STATUS_SWAPPED
from clinic.core.errors import ConflictError, InvalidInputError, OverrideConflictError
from clinic.core.logging_config import LogContext
from clinic.core.models import GeneratedOccurrence, ProviderAssignment, ScheduleData, ShiftOccurrence
from clinic.core.storage import load_schedule_data
from clinic.core.time_utils import parse_date
from clinic.database import repository
from clinic.database.database import ShiftOccurrenceRecord

from .occurrences import generate_occurrences

logger = logging.getLogger(__name__)


@contextmanager
def _atomic(session: Session, action: str, assignment_id: str, date: datetime.date):
    """Commit on success; roll back everything written inside the block on failure."""
    try:
        yield
        session.commit()
    except (IntegrityError, StaleDataError) as e:
        session.rollback()
        logger.warning("Concurrent %s on %s/%s: %s", action, assignment_id, date, e)
        raise OverrideConflictError(
            f"Occurrence {assignment_id} on {date} was changed by someone else, reload and try again"
        ) from e
    except Exception:
        session.rollback()
        raise


def _write_override(
    session: Session,
    assignment_id: str,
    date: datetime.date,
    status: str,
    substitute_provider_id: str | None = None,
    note: str | None = None,
    expected_version: int | None = None,
) -> ShiftOccurrenceRecord:
    """
    Insert or update the override row for (assignment_id, date).

    expected_version is the version the caller last saw; 0 means "no row
    yet". A mismatch is reported before anything is written.
    """
    record = repository.find_occurrence(session, assignment_id, date)

    if expected_version is not None:
        current = record.version if record is not None else 0
        if current != expected_version:
            raise OverrideConflictError(
                f"Occurrence {assignment_id} on {date} is at version {current}, expected {expected_version}"
            )

    if record is None:
        record = ShiftOccurrenceRecord(
            id=f"occ-{uuid.uuid4().hex[:12]}",
            assignment_id=assignment_id,
            date=date,
            status=status,
            substitute_provider_id=substitute_provider_id,
            note=note or "",
        )
        session.add(record)
    else:
        record.status = status
        record.substitute_provider_id = substitute_provider_id
        if note is not None:
            record.note = note

    session.flush()
    return record


def _snapshot(session: Session, data: ScheduleData | None) -> ScheduleData:
    return data if data is not None else load_schedule_data(session)


def cancel_occurrence(
    session: Session,
    assignment_id: str,
    date: datetime.date | str,
    note: str | None = None,
    expected_version: int | None = None,
    data: ScheduleData | None = None,
) -> ShiftOccurrence:
    """Mark one occurrence as cancelled."""
    day = parse_date(date)
    _snapshot(session, data).require_assignment(assignment_id)

    with LogContext(action="cancel", assignment_id=assignment_id):
        with _atomic(session, "cancel", assignment_id, day):
            record = _write_override(
                session, assignment_id, day, STATUS_CANCELLED, note=note, expected_version=expected_version
            )
        logger.info("Cancelled occurrence %s on %s", assignment_id, day)
    return repository.occurrences.to_model(record)


def restore_occurrence(
    session: Session,
    assignment_id: str,
    date: datetime.date | str,
    expected_version: int | None = None,
    data: ScheduleData | None = None,
) -> ShiftOccurrence:
    """Back to the generated default: scheduled, no substitute, empty note."""
    day = parse_date(date)
    _snapshot(session, data).require_assignment(assignment_id)

    with LogContext(action="restore", assignment_id=assignment_id):
        with _atomic(session, "restore", assignment_id, day):
            record = _write_override(
                session, assignment_id, day, STATUS_SCHEDULED, note="", expected_version=expected_version
            )
        logger.info("Restored occurrence %s on %s", assignment_id, day)
    return repository.occurrences.to_model(record)


def swap_occurrence(
    session: Session,
    assignment_id: str,
    date: datetime.date | str,
    substitute_provider_id: str,
    note: str | None = None,
    expected_version: int | None = None,
    data: ScheduleData | None = None,
) -> ShiftOccurrence:
    """
    Hand one occurrence to a substitute provider.

    Raises:
        UnknownReferenceError: Assignment or substitute does not exist
        InvalidInputError: Substitute is the assigned provider
    """
    day = parse_date(date)
    snapshot = _snapshot(session, data)
    assignment = snapshot.require_assignment(assignment_id)
    snapshot.require_provider(substitute_provider_id)
    if substitute_provider_id == assignment.provider_id:
        raise InvalidInputError("Substitute must differ from the assigned provider")

    with LogContext(action="swap", assignment_id=assignment_id, provider_id=substitute_provider_id):
        with _atomic(session, "swap", assignment_id, day):
            record = _write_override(
                session,
                assignment_id,
                day,
                STATUS_SWAPPED,
                substitute_provider_id=substitute_provider_id,
                note=note,
                expected_version=expected_version,
            )
        logger.info("Swapped occurrence %s on %s to %s", assignment_id, day, substitute_provider_id)
    return repository.occurrences.to_model(record)


def _matching_target_assignment(
    data: ScheduleData,
    source: ProviderAssignment,
    target_provider_id: str,
    target_date: datetime.date,
) -> ProviderAssignment | None:
    """The target provider's assignment for the same template, active on target_date."""
    source_slot = data.slot(source.shift_plan_slot_id)
    if source_slot is None:
        return None
    for candidate in data.assignments:
        if candidate.provider_id != target_provider_id or not candidate.is_active(target_date):
            continue
        slot = data.slot(candidate.shift_plan_slot_id)
        if slot is not None and slot.template_id == source_slot.template_id:
            return candidate
    return None


def _worked_occurrence(data: ScheduleData, assignment_id: str, date: datetime.date) -> GeneratedOccurrence | None:
    """The non-cancelled occurrence of assignment_id on date, generated or ad hoc."""
    for occurrence in generate_occurrences([date], data):
        if occurrence.assignment_id == assignment_id and occurrence.status != STATUS_CANCELLED:
            return occurrence
    return None


def _check_reassign_target(data: ScheduleData, target_provider_id: str, target_date: datetime.date) -> None:
    holiday = data.scheduled_provider(target_provider_id).holiday_on(target_date)
    if holiday is not None:
        raise ConflictError(f"{target_date} is a holiday ({holiday.name}) for provider {target_provider_id}")

    for occurrence in generate_occurrences([target_date], data):
        if occurrence.working_provider_id == target_provider_id:
            raise ConflictError(
                f"Provider {target_provider_id} already works {occurrence.template_name} on {target_date}"
            )


def reassign_occurrence(
    session: Session,
    assignment_id: str,
    date: datetime.date | str,
    target_provider_id: str,
    target_date: datetime.date | str | None = None,
    note: str | None = None,
    data: ScheduleData | None = None,
) -> ShiftOccurrence:
    """
    Move one occurrence to another provider and/or another date.

    The source occurrence is cancelled. Same provider on a new date writes
    a scheduled override on the original assignment for that date. A new
    provider gets the occurrence under their own assignment for the same
    template when one is active on the target date, otherwise the original
    assignment is marked swapped with the target as substitute.

    Args:
        session: Database session
        assignment_id: Assignment of the occurrence being moved
        date: Date of the occurrence being moved
        target_provider_id: Provider who should work it
        target_date: New date, defaults to the same date
        note: Stored on both written rows
        data: Snapshot to validate against, loaded from the session if omitted

    Returns:
        The override row written for the target

    Raises:
        UnknownReferenceError: Assignment or target provider does not exist
        InvalidInputError: Nothing would change, or the source occurrence is
            not scheduled on date (off-rotation or cancelled)
        ConflictError: Target date is a holiday for the target provider, the
            target provider already works that date, or the original assignment
            already has its own occurrence on the target date and the target
            provider has no assignment to take the shift under
    """
    source_date = parse_date(date)
    new_date = parse_date(target_date, "target_date") if target_date is not None else source_date

    snapshot = _snapshot(session, data)
    source = snapshot.require_assignment(assignment_id)
    snapshot.require_provider(target_provider_id)

    same_provider = target_provider_id == source.provider_id
    if same_provider and new_date == source_date:
        raise InvalidInputError("Reassignment must change the provider or the date")

    if _worked_occurrence(snapshot, assignment_id, source_date) is None:
        raise InvalidInputError(f"No scheduled occurrence of {assignment_id} on {source_date} to reassign")

    _check_reassign_target(snapshot, target_provider_id, new_date)

    target_assignment = None
    if not same_provider:
        target_assignment = _matching_target_assignment(snapshot, source, target_provider_id, new_date)
        # The fallback writes on (assignment_id, new_date); that key must not hold another worked shift
        if (
            target_assignment is None
            and new_date != source_date
            and _worked_occurrence(snapshot, assignment_id, new_date) is not None
        ):
            raise ConflictError(
                f"{assignment_id} already has an occurrence on {new_date}; "
                f"provider {target_provider_id} has no matching assignment to take it under"
            )

    with LogContext(action="reassign", assignment_id=assignment_id, provider_id=target_provider_id):
        with _atomic(session, "reassign", assignment_id, source_date):
            _write_override(session, assignment_id, source_date, STATUS_CANCELLED, note=note)

            if same_provider:
                record = _write_override(session, assignment_id, new_date, STATUS_SCHEDULED, note=note)
            elif target_assignment is not None:
                record = _write_override(session, target_assignment.id, new_date, STATUS_SCHEDULED, note=note)
            else:
                # Same date and no own assignment: this overwrites the cancel above
                record = _write_override(
                    session,
                    assignment_id,
                    new_date,
                    STATUS_SWAPPED,
                    substitute_provider_id=target_provider_id,
                    note=note,
                )

        logger.info(
            "Reassigned occurrence %s on %s to %s on %s",
            assignment_id,
            source_date,
            target_provider_id,
            new_date,
        )
    return repository.occurrences.to_model(record)
