# clinic/database/repository.py
"""
Per-entity repositories over the SQLAlchemy session.

Each repository converts between an ORM record and its pydantic model, so
the engine only ever sees pydantic objects. Repositories flush but never
commit; the caller owns the transaction.
"""

import datetime
import logging
from typing import Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy.orm import Session

from clinic.core.models import (
    Booking,
    HolidayDate,
    Location,
    Provider,
    ProviderAssignment,
    PtoEntry,
    ShiftOccurrence,
    ShiftPlan,
    ShiftPlanSlot,
    ShiftTemplate,
)
from clinic.database.database import (
    AppointmentRecord,
    Base,
    HolidayDateRecord,
    LocationRecord,
    ProviderAssignmentRecord,
    ProviderRecord,
    PtoEntryRecord,
    ShiftOccurrenceRecord,
    ShiftPlanRecord,
    ShiftPlanSlotRecord,
    ShiftTemplateRecord,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class Repository(Generic[ModelT]):
    """list / get / upsert / delete for one entity."""

    def __init__(self, record_cls: type[Base], model_cls: type[ModelT], read_only_fields: frozenset[str] = frozenset()):
        self.record_cls = record_cls
        self.model_cls = model_cls
        # Columns the database manages itself (e.g. an optimistic version counter)
        self.read_only_fields = read_only_fields
        self._columns = [c.name for c in record_cls.__table__.columns]

    def to_model(self, record) -> ModelT:
        return self.model_cls.model_validate({name: getattr(record, name) for name in self._columns})

    def _record_values(self, model: ModelT) -> dict:
        dumped = model.model_dump()
        return {
            name: dumped[name] for name in self._columns if name in dumped and name not in self.read_only_fields
        }

    def list(self, session: Session) -> list[ModelT]:
        records = session.query(self.record_cls).order_by(self.record_cls.id).all()
        return [self.to_model(r) for r in records]

    def get(self, session: Session, record_id: str) -> ModelT | None:
        record = session.get(self.record_cls, record_id)
        return self.to_model(record) if record is not None else None

    def upsert(self, session: Session, model: ModelT) -> ModelT:
        values = self._record_values(model)
        record = session.get(self.record_cls, values["id"])
        if record is None:
            record = self.record_cls(**values)
            session.add(record)
        else:
            for name, value in values.items():
                setattr(record, name, value)
        session.flush()
        return self.to_model(record)

    def delete(self, session: Session, record_id: str) -> bool:
        record = session.get(self.record_cls, record_id)
        if record is None:
            return False
        session.delete(record)
        session.flush()
        return True


locations = Repository(LocationRecord, Location)
providers = Repository(ProviderRecord, Provider)
holidays = Repository(HolidayDateRecord, HolidayDate)
pto_entries = Repository(PtoEntryRecord, PtoEntry)
templates = Repository(ShiftTemplateRecord, ShiftTemplate)
plans = Repository(ShiftPlanRecord, ShiftPlan)
plan_slots = Repository(ShiftPlanSlotRecord, ShiftPlanSlot)
assignments = Repository(ProviderAssignmentRecord, ProviderAssignment)
bookings = Repository(AppointmentRecord, Booking)
occurrences = Repository(ShiftOccurrenceRecord, ShiftOccurrence, read_only_fields=frozenset({"version"}))

#: Insert order for seeding; parents before children.
ALL_REPOSITORIES: tuple[tuple[str, Repository], ...] = (
    ("locations", locations),
    ("providers", providers),
    ("holidays", holidays),
    ("pto_entries", pto_entries),
    ("templates", templates),
    ("plans", plans),
    ("slots", plan_slots),
    ("assignments", assignments),
    ("bookings", bookings),
    ("occurrences", occurrences),
)


def find_occurrence(session: Session, assignment_id: str, date: datetime.date) -> ShiftOccurrenceRecord | None:
    """The stored override row for (assignment_id, date), if any."""
    return (
        session.query(ShiftOccurrenceRecord)
        .filter(ShiftOccurrenceRecord.assignment_id == assignment_id, ShiftOccurrenceRecord.date == date)
        .one_or_none()
    )
