import datetime
import json
from collections import defaultdict
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, PrivateAttr, field_validator, model_validator

from clinic.core.config import END_OF_DAY_TIME_STRING, MINUTES_PER_DAY
from clinic.core.constants import (
    BOOKING_BLOCKING_STATUSES,
    CYCLE_UNIT_ALIASES,
    CYCLE_UNIT_WEEKS,
    STATUS_CANCELLED,
    STATUS_SCHEDULED,
    STATUS_SWAPPED,
    WEEKDAY_LABELS,
)
from clinic.core.errors import UnknownReferenceError
from clinic.core.time_utils import parse_date, parse_iso_duration_minutes, parse_time_to_minutes

OccurrenceStatus = Literal["scheduled", "cancelled", "swapped"]
BookingStatus = Literal["confirmed", "cancelled", "completed"]


def _coerce_date(value: Any) -> Any:
    if value is None or value == "":
        return None
    return parse_date(value)


IsoDate = Annotated[datetime.date, BeforeValidator(_coerce_date)]
OptionalIsoDate = Annotated[datetime.date | None, BeforeValidator(_coerce_date)]

_END_OF_DAY_MINUTE = parse_time_to_minutes(END_OF_DAY_TIME_STRING)


class Location(BaseModel):
    """Clinic location. The timezone is stored for display only."""
    id: str
    name: str
    address: str = ""
    phone: str = ""
    timezone: str = "America/New_York"


class Provider(BaseModel):
    """Dentist or hygienist with calendar memberships."""
    id: str
    name: str
    role: str = "Dentist"
    primary_location_id: str
    holiday_calendar_id: str | None = None
    pto_calendar_id: str | None = None
    shift_plan_ids: list[str] = Field(default_factory=list)
    bio: str | None = None
    photo_url: str | None = None


class ShiftPlan(BaseModel):
    """A named rotation of cycle_length weeks (or months) starting at effective_date."""
    id: str
    name: str = ""
    effective_date: IsoDate
    cycle_length: int = Field(default=1, ge=1)
    cycle_unit: Literal["weeks", "months"] = CYCLE_UNIT_WEEKS

    @field_validator("cycle_unit", mode="before")
    @classmethod
    def _normalise_unit(cls, value: Any) -> Any:
        if isinstance(value, str):
            return CYCLE_UNIT_ALIASES.get(value.strip().lower(), value)
        return value


class ShiftPlanSlot(BaseModel):
    """One (cycle position, template) pairing inside a plan."""
    id: str
    shift_plan_id: str
    cycle_index: int = Field(default=1, ge=1)
    template_id: str


class DaySegment(BaseModel):
    """A sub-window of a template on one weekday, e.g. the morning before lunch."""
    start_time: str
    end_time: str

    @property
    def start_minute(self) -> int:
        return parse_time_to_minutes(self.start_time, "segment start_time")

    @property
    def end_minute(self) -> int:
        return parse_time_to_minutes(self.end_time, "segment end_time")

    @model_validator(mode="after")
    def _check_order(self) -> "DaySegment":
        if self.end_minute <= self.start_minute:
            raise ValueError(f"Segment end {self.end_time} must be after start {self.start_time}")
        return self


class ShiftTemplate(BaseModel):
    """
    Reusable shift shape: weekdays, start time, duration and location.

    The duration is held in integer minutes. At the boundary it may be given
    as an ISO-8601 duration ("duration": "PT8H") or as an end time
    ("end_time": "17:00"); both are converted once, here.

    day_segments overrides the single window for specific weekdays with one
    or two sub-windows (a lunch break splits the day into two).
    """

    id: str
    name: str = ""
    week_days: list[str]
    start_time: str
    duration_minutes: int = Field(gt=0)
    location_id: str | None = None
    day_segments: dict[str, list[DaySegment]] = Field(default_factory=dict)
    default_role: str | None = None
    color: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalise_boundary_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if data.get("duration_minutes") is None:
            duration = data.pop("duration", None)
            end_time = data.get("end_time")
            if duration:
                data["duration_minutes"] = parse_iso_duration_minutes(duration)
            elif end_time and data.get("start_time"):
                data["duration_minutes"] = parse_time_to_minutes(end_time, "end_time") - parse_time_to_minutes(
                    data["start_time"], "start_time"
                )
        data.pop("duration", None)
        data.pop("end_time", None)

        week_days = data.get("week_days")
        if isinstance(week_days, str):
            data["week_days"] = json.loads(week_days) if week_days.strip().startswith("[") else week_days.split(",")

        segments = data.pop("segments_json", None)
        if segments and not data.get("day_segments"):
            data["day_segments"] = _segments_from_rows(segments)
        return data

    @field_validator("week_days")
    @classmethod
    def _check_week_days(cls, value: list[str]) -> list[str]:
        cleaned = [d.strip()[:3].title() for d in value]
        unknown = [d for d in cleaned if d not in WEEKDAY_LABELS]
        if unknown:
            raise ValueError(f"Unknown weekday label(s): {unknown}")
        return cleaned

    @field_validator("day_segments")
    @classmethod
    def _check_day_segments(cls, value: dict[str, list[DaySegment]]) -> dict[str, list[DaySegment]]:
        for day, segments in value.items():
            if day not in WEEKDAY_LABELS:
                raise ValueError(f"Unknown weekday label in day_segments: {day!r}")
            if not 1 <= len(segments) <= 2:
                raise ValueError(f"{day}: a day has one or two segments, got {len(segments)}")
        return value

    @model_validator(mode="after")
    def _check_window(self) -> "ShiftTemplate":
        if self.start_minute + self.duration_minutes > MINUTES_PER_DAY:
            raise ValueError(f"Template {self.id} runs past midnight")
        return self

    @property
    def start_minute(self) -> int:
        return parse_time_to_minutes(self.start_time, "start_time")

    def occurs_on(self, date: datetime.date) -> bool:
        return WEEKDAY_LABELS[date.weekday()] in self.week_days


def _segments_from_rows(rows: Any) -> dict[str, list[dict[str, str]]]:
    """Convert [{day, seg1Start, seg1End, seg2Start?, seg2End?}] into day_segments."""
    if isinstance(rows, str):
        rows = json.loads(rows)
    result: dict[str, list[dict[str, str]]] = {}
    for row in rows:
        segments = [{"start_time": row["seg1Start"], "end_time": row["seg1End"]}]
        if row.get("seg2Start") and row.get("seg2End"):
            segments.append({"start_time": row["seg2Start"], "end_time": row["seg2End"]})
        result[row["day"]] = segments
    return result


class ProviderAssignment(BaseModel):
    """Binds a provider to a plan slot for an open or closed date range."""
    id: str
    provider_id: str
    shift_plan_slot_id: str
    effective_date: IsoDate
    end_date: OptionalIsoDate = None

    @model_validator(mode="after")
    def _check_range(self) -> "ProviderAssignment":
        if self.end_date is not None and self.end_date < self.effective_date:
            raise ValueError(f"Assignment {self.id}: end_date is before effective_date")
        return self

    def is_active(self, date: datetime.date) -> bool:
        return self.effective_date <= date and (self.end_date is None or self.end_date >= date)


class HolidayDate(BaseModel):
    id: str
    calendar_id: str
    date: IsoDate
    name: str


class PtoEntry(BaseModel):
    """
    Time off for one PTO calendar.

    Without times the entry covers whole days. With times, a single-day
    entry blocks start_time..end_time; a multi-day entry blocks from
    start_time on the first day until end_time on the last day.
    """

    id: str
    calendar_id: str
    start_date: IsoDate
    end_date: IsoDate
    start_time: str | None = None
    end_time: str | None = None
    reason: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _split_datetimes(cls, data: Any) -> Any:
        # {"start": "2026-02-16T00:00", "end": "2026-02-20T23:59", "notes": ...}
        if not isinstance(data, dict) or "start" not in data:
            return data
        data = dict(data)
        start = data.pop("start")
        end = data.pop("end")
        data.setdefault("start_date", start.split("T")[0])
        data.setdefault("end_date", end.split("T")[0])
        if "T" in start:
            data.setdefault("start_time", start.split("T")[1][:5])
        if "T" in end:
            data.setdefault("end_time", end.split("T")[1][:5])
        if "notes" in data:
            data.setdefault("reason", data.pop("notes"))
        return data

    @model_validator(mode="after")
    def _check_range(self) -> "PtoEntry":
        if self.end_date < self.start_date:
            raise ValueError(f"PTO entry {self.id}: end_date is before start_date")
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError(f"PTO entry {self.id}: give both start_time and end_time, or neither")
        return self

    @property
    def has_times(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    def covers(self, date: datetime.date) -> bool:
        return self.start_date <= date <= self.end_date

    def _window_on(self, date: datetime.date) -> tuple[int, int]:
        start = parse_time_to_minutes(self.start_time, "PTO start_time")
        end = parse_time_to_minutes(self.end_time, "PTO end_time")
        if self.start_date == self.end_date:
            return start, end
        if date == self.start_date:
            return start, MINUTES_PER_DAY
        if date == self.end_date:
            return 0, end
        return 0, MINUTES_PER_DAY

    def is_full_day_on(self, date: datetime.date) -> bool:
        """True when the entry leaves nothing of this date bookable."""
        if not self.has_times:
            return True
        if self.start_date < date < self.end_date:
            return True
        start, end = self._window_on(date)
        return start == 0 and end >= _END_OF_DAY_MINUTE

    def blocker_on(self, date: datetime.date) -> tuple[int, int] | None:
        """Partial-day blocker window for this date, in minutes. None for full days."""
        if not self.covers(date) or self.is_full_day_on(date):
            return None
        return self._window_on(date)


class Booking(BaseModel):
    """An existing appointment. Only provider, date and start time matter to the engine."""
    id: str
    provider_id: str
    location_id: str | None = None
    date: IsoDate
    start_time: str
    duration_minutes: int = Field(default=60, gt=0)
    status: BookingStatus = "confirmed"
    patient_name: str | None = None
    patient_email: str | None = None
    patient_phone: str | None = None
    appointment_type: str | None = None
    notes: str | None = None

    @property
    def blocks_slot(self) -> bool:
        return self.status in BOOKING_BLOCKING_STATUSES


class ShiftOccurrence(BaseModel):
    """Stored override for one generated occurrence, keyed by (assignment_id, date)."""
    id: str
    assignment_id: str
    date: IsoDate
    status: OccurrenceStatus = STATUS_SCHEDULED
    substitute_provider_id: str | None = None
    note: str = ""
    version: int = 1


# === Engine results ===


class AvailableSlot(BaseModel):
    time: str  # "HH:MM"
    location_id: str
    location_name: str
    template_name: str


class SlotResult(BaseModel):
    slots: list[AvailableSlot] = Field(default_factory=list)
    blocked_by_holiday: bool = False
    holiday_name: str | None = None
    blocked_by_pto: bool = False
    pto_note: str | None = None
    no_shift: bool = False


class GeneratedOccurrence(BaseModel):
    """A concrete shift on one date, decorated with any stored override."""
    date: IsoDate
    provider_id: str
    assignment_id: str
    slot_id: str
    template_id: str
    template_name: str
    start_time: str
    duration_minutes: int
    location_id: str | None = None
    location_name: str | None = None
    color: str | None = None
    override: ShiftOccurrence | None = None
    ad_hoc: bool = False

    @property
    def status(self) -> str:
        return self.override.status if self.override else STATUS_SCHEDULED

    @property
    def substitute_provider_id(self) -> str | None:
        if self.override and self.override.status == STATUS_SWAPPED:
            return self.override.substitute_provider_id
        return None

    @property
    def working_provider_id(self) -> str | None:
        """Provider who actually works this occurrence, or None when cancelled."""
        if self.status == STATUS_CANCELLED:
            return None
        return self.substitute_provider_id or self.provider_id


# === Snapshot handed to the engine ===


class ScheduledProvider(BaseModel):
    """A provider together with its resolved holiday, PTO and plan references."""

    provider: Provider
    holidays: list[HolidayDate] = Field(default_factory=list)
    pto_entries: list[PtoEntry] = Field(default_factory=list)
    assignments: list[ProviderAssignment] = Field(default_factory=list)
    plan_ids: list[str] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.provider.id

    def holiday_on(self, date: datetime.date) -> HolidayDate | None:
        return next((h for h in self.holidays if h.date == date), None)

    def pto_covering(self, date: datetime.date) -> list[PtoEntry]:
        return [p for p in self.pto_entries if p.covers(date)]

    def active_assignments(self, date: datetime.date) -> list[ProviderAssignment]:
        return [a for a in self.assignments if a.is_active(date)]


class ScheduleData(BaseModel):
    """
    Pre-loaded configuration, exception records, bookings and overrides.

    Built by clinic.core.storage from the database or a seed file. The engine
    reads from it and never mutates it.
    """

    locations: list[Location] = Field(default_factory=list)
    providers: list[Provider] = Field(default_factory=list)
    plans: list[ShiftPlan] = Field(default_factory=list)
    slots: list[ShiftPlanSlot] = Field(default_factory=list)
    templates: list[ShiftTemplate] = Field(default_factory=list)
    assignments: list[ProviderAssignment] = Field(default_factory=list)
    holidays: list[HolidayDate] = Field(default_factory=list)
    pto_entries: list[PtoEntry] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
    occurrences: list[ShiftOccurrence] = Field(default_factory=list)

    _by_id: dict[str, dict[str, Any]] = PrivateAttr(default_factory=dict)
    _slots_by_plan: dict[str, list[ShiftPlanSlot]] = PrivateAttr(default_factory=dict)
    _overrides: dict[tuple[str, datetime.date], ShiftOccurrence] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._by_id = {
            "location": {x.id: x for x in self.locations},
            "provider": {x.id: x for x in self.providers},
            "plan": {x.id: x for x in self.plans},
            "slot": {x.id: x for x in self.slots},
            "template": {x.id: x for x in self.templates},
            "assignment": {x.id: x for x in self.assignments},
        }
        slots_by_plan: dict[str, list[ShiftPlanSlot]] = defaultdict(list)
        for slot in self.slots:
            slots_by_plan[slot.shift_plan_id].append(slot)
        self._slots_by_plan = dict(slots_by_plan)
        self._overrides = {(o.assignment_id, o.date): o for o in self.occurrences}

    # Lookups return None for missing IDs; callers decide whether that is an
    # error (input) or a dangling reference (skip).

    def location(self, location_id: str | None) -> Location | None:
        return self._by_id["location"].get(location_id) if location_id else None

    def provider(self, provider_id: str) -> Provider | None:
        return self._by_id["provider"].get(provider_id)

    def plan(self, plan_id: str) -> ShiftPlan | None:
        return self._by_id["plan"].get(plan_id)

    def slot(self, slot_id: str) -> ShiftPlanSlot | None:
        return self._by_id["slot"].get(slot_id)

    def template(self, template_id: str) -> ShiftTemplate | None:
        return self._by_id["template"].get(template_id)

    def assignment(self, assignment_id: str) -> ProviderAssignment | None:
        return self._by_id["assignment"].get(assignment_id)

    def slots_for_plan(self, plan_id: str) -> list[ShiftPlanSlot]:
        return self._slots_by_plan.get(plan_id, [])

    def override_for(self, assignment_id: str, date: datetime.date) -> ShiftOccurrence | None:
        return self._overrides.get((assignment_id, date))

    def bookings_for(self, provider_id: str, date: datetime.date) -> list[Booking]:
        return [b for b in self.bookings if b.provider_id == provider_id and b.date == date]

    def require_provider(self, provider_id: str) -> Provider:
        provider = self.provider(provider_id)
        if provider is None:
            raise UnknownReferenceError("provider", provider_id)
        return provider

    def require_assignment(self, assignment_id: str) -> ProviderAssignment:
        assignment = self.assignment(assignment_id)
        if assignment is None:
            raise UnknownReferenceError("assignment", assignment_id)
        return assignment

    def scheduled_provider(self, provider_id: str) -> ScheduledProvider:
        """Resolve a provider's holidays, PTO entries, assignments and plans."""
        provider = self.require_provider(provider_id)
        assignments = [a for a in self.assignments if a.provider_id == provider_id]

        plan_ids = list(provider.shift_plan_ids)
        for assignment in assignments:
            slot = self.slot(assignment.shift_plan_slot_id)
            if slot is not None and slot.shift_plan_id not in plan_ids:
                plan_ids.append(slot.shift_plan_id)

        return ScheduledProvider(
            provider=provider,
            holidays=[h for h in self.holidays if h.calendar_id == provider.holiday_calendar_id],
            pto_entries=[p for p in self.pto_entries if p.calendar_id == provider.pto_calendar_id],
            assignments=assignments,
            plan_ids=plan_ids,
        )
