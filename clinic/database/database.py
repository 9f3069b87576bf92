# clinic/database/database.py
"""
SQLAlchemy database setup and models.

String primary keys throughout, so seed files and admin tools can use
readable IDs ("prov-1", "tpl-morning"). Times of day are stored as "HH:MM".
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker

from clinic.core.config import DATABASE_URL

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class LocationRecord(Base):
    __tablename__ = "locations"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    address = Column(String(255), default="")
    phone = Column(String(50), default="")
    timezone = Column(String(64), default="America/New_York")

    def __repr__(self):
        return f"<LocationRecord(id={self.id}, name={self.name})>"


class ProviderRecord(Base):
    """Dentist or hygienist with holiday/PTO calendar memberships."""

    __tablename__ = "providers"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    role = Column(String(32), default="Dentist", nullable=False)
    primary_location_id = Column(String(64), ForeignKey("locations.id"), nullable=False)
    holiday_calendar_id = Column(String(64), index=True)
    pto_calendar_id = Column(String(64), index=True)
    shift_plan_ids = Column(JSON, default=list)  # ["plan-2wk"]
    bio = Column(Text)
    photo_url = Column(String(255))

    def __repr__(self):
        return f"<ProviderRecord(id={self.id}, name={self.name}, role={self.role})>"


class HolidayDateRecord(Base):
    __tablename__ = "holiday_dates"

    id = Column(String(64), primary_key=True)
    calendar_id = Column(String(64), nullable=False, index=True)
    date = Column(Date, nullable=False)
    name = Column(String(100), nullable=False)


class PtoEntryRecord(Base):
    """Time off. Without start/end time the entry covers whole days."""

    __tablename__ = "pto_entries"

    id = Column(String(64), primary_key=True)
    calendar_id = Column(String(64), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    start_time = Column(String(5))
    end_time = Column(String(5))
    reason = Column(String(255))


class ShiftTemplateRecord(Base):
    __tablename__ = "shift_templates"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), default="")
    week_days = Column(JSON, nullable=False)  # ["Mon", "Wed"]
    start_time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    location_id = Column(String(64), ForeignKey("locations.id"))
    day_segments = Column(JSON, default=dict)  # {"Mon": [{"start_time": "08:00", "end_time": "12:00"}]}
    default_role = Column(String(32))
    color = Column(String(16))


class ShiftPlanRecord(Base):
    __tablename__ = "shift_plans"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), default="")
    effective_date = Column(Date, nullable=False)
    cycle_length = Column(Integer, default=1, nullable=False)
    cycle_unit = Column(String(16), default="weeks", nullable=False)


class ShiftPlanSlotRecord(Base):
    __tablename__ = "shift_plan_slots"

    id = Column(String(64), primary_key=True)
    shift_plan_id = Column(String(64), ForeignKey("shift_plans.id"), nullable=False, index=True)
    cycle_index = Column(Integer, default=1, nullable=False)
    template_id = Column(String(64), ForeignKey("shift_templates.id"), nullable=False)


class ProviderAssignmentRecord(Base):
    __tablename__ = "provider_assignments"

    id = Column(String(64), primary_key=True)
    provider_id = Column(String(64), ForeignKey("providers.id"), nullable=False, index=True)
    shift_plan_slot_id = Column(String(64), ForeignKey("shift_plan_slots.id"), nullable=False)
    effective_date = Column(Date, nullable=False)
    end_date = Column(Date)

    def __repr__(self):
        return (
            f"<ProviderAssignmentRecord(id={self.id}, provider_id={self.provider_id}, "
            f"slot={self.shift_plan_slot_id}, {self.effective_date}..{self.end_date})>"
        )


class AppointmentRecord(Base):
    """Existing booking. Only provider, date and start time matter to availability."""

    __tablename__ = "appointments"

    id = Column(String(64), primary_key=True)
    provider_id = Column(String(64), ForeignKey("providers.id"), nullable=False, index=True)
    location_id = Column(String(64), ForeignKey("locations.id"))
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    duration_minutes = Column(Integer, default=60, nullable=False)
    status = Column(String(16), default="confirmed", nullable=False)
    patient_name = Column(String(100))
    patient_email = Column(String(255))
    patient_phone = Column(String(50))
    appointment_type = Column(String(100))
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)


class ShiftOccurrenceRecord(Base):
    """
    Admin override for one generated occurrence.

    At most one row per (assignment_id, date). The version column is
    SQLAlchemy's optimistic lock: an UPDATE against a stale version raises
    StaleDataError.
    """

    __tablename__ = "shift_occurrences"
    __table_args__ = (UniqueConstraint("assignment_id", "date", name="uq_occurrence_assignment_date"),)

    id = Column(String(64), primary_key=True)
    assignment_id = Column(String(64), ForeignKey("provider_assignments.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    status = Column(String(16), default="scheduled", nullable=False)
    substitute_provider_id = Column(String(64), ForeignKey("providers.id"))
    note = Column(Text, default="", nullable=False)
    version = Column(Integer, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return (
            f"<ShiftOccurrenceRecord(assignment_id={self.assignment_id}, date={self.date}, "
            f"status={self.status}, version={self.version})>"
        )


def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
