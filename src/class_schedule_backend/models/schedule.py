'''
Schedule API Models
'''
from datetime import date, datetime, time, timedelta, timezone
from typing import Annotated, Optional
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, HttpUrl, ValidationInfo, computed_field, field_validator

from ..common.config import settings
from ..core.weekday_time import is_valid_timezone
from .enums import Weekday

SUBJECT_MIN_LENGTH = 2
SUBJECT_MAX_LENGTH = 255
NOTES_MAX_LENGTH = 1000
LOCATION_MAX_LENGTH = 255
MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480


def _strip_subject(value):
    return value.strip() if isinstance(value, str) else value


def _blank_to_none(value):
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


Subject = Annotated[str, BeforeValidator(_strip_subject)]
Notes = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
MeetingUrl = Annotated[Optional[HttpUrl], BeforeValidator(_blank_to_none)]


# --- Validation Models (used by ScheduleService before any write) ---

class SessionVenue(BaseModel):
    """Where a class happens: a room, a meeting link, both or neither."""
    location: Notes = Field(None, max_length=LOCATION_MAX_LENGTH)
    meeting_url: MeetingUrl = None

    @property
    def meeting_link(self) -> Optional[str]:
        return str(self.meeting_url) if self.meeting_url is not None else None


class SeriesRule(SessionVenue):
    """
    A validated weekly rule. Built by the service from raw create/edit input;
    a failure here means nothing has been written yet.
    """
    subject: Subject = Field(..., min_length=SUBJECT_MIN_LENGTH, max_length=SUBJECT_MAX_LENGTH)
    days_of_week: set[Weekday] = Field(..., min_length=1)
    start_time: time
    end_time: time
    notes: Notes = Field(None, max_length=NOTES_MAX_LENGTH)
    timezone: Optional[str] = Field(None, validate_default=True)
    end_date: Optional[date] = None

    @field_validator('start_time', 'end_time')
    @classmethod
    def truncate_to_minutes(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0, tzinfo=None)

    @field_validator('end_time')
    @classmethod
    def check_duration(cls, value: time, info: ValidationInfo) -> time:
        start = info.data.get('start_time')
        if start is None:
            return value
        duration = (value.hour * 60 + value.minute) - (start.hour * 60 + start.minute)
        if duration <= 0:
            raise ValueError("End time must be after start time")
        if not MIN_DURATION_MINUTES <= duration <= MAX_DURATION_MINUTES:
            raise ValueError("Class duration must be between 15 minutes and 8 hours")
        return value

    @field_validator('timezone')
    @classmethod
    def check_timezone(cls, value: Optional[str]) -> str:
        if value is None:
            return settings.DEFAULT_TIMEZONE
        if not is_valid_timezone(value):
            raise ValueError(f"Unknown timezone '{value}'")
        return value

    @property
    def duration_minutes(self) -> int:
        return (self.end_time.hour * 60 + self.end_time.minute) - (self.start_time.hour * 60 + self.start_time.minute)

    @property
    def sorted_days(self) -> list[int]:
        return sorted(int(day) for day in self.days_of_week)


class OccurrenceRule(SessionVenue):
    """A validated standalone (one-off) occurrence."""
    subject: Subject = Field(..., min_length=SUBJECT_MIN_LENGTH, max_length=SUBJECT_MAX_LENGTH)
    start_datetime: datetime
    duration_minutes: int = Field(..., ge=MIN_DURATION_MINUTES, le=MAX_DURATION_MINUTES)
    notes: Notes = Field(None, max_length=NOTES_MAX_LENGTH)

    @field_validator('start_datetime')
    @classmethod
    def as_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# --- Request Payloads ---

class SeriesPayload(BaseModel):
    """
    JSON body for creating a weekly class.
    Only shapes are checked here, the rule itself is validated by the service
    so that API and in-process callers get the same field-identified errors.
    """
    subject: str
    days_of_week: list[int] = Field(..., description="ISO weekdays, 1=Monday .. 7=Sunday")
    start_time: time
    end_time: time
    notes: Optional[str] = None
    timezone: Optional[str] = Field(None, description="IANA timezone, defaults to the server setting.")
    location: Optional[str] = None
    meeting_url: Optional[str] = None
    end_date: Optional[date] = Field(None, description="Last day that still gets a session (inclusive).")


class SeriesEditPayload(SeriesPayload):
    """JSON body for editing a weekly class."""
    expected_version: Optional[int] = Field(None, description="Reject the edit if the series moved past this version.")


class OccurrencePayload(BaseModel):
    """JSON body for a standalone class session."""
    subject: str
    start_datetime: datetime
    duration_minutes: int
    notes: Optional[str] = None
    location: Optional[str] = None
    meeting_url: Optional[str] = None


# --- Read Models ---

class SeriesRead(BaseModel):
    """
    A recurrence series as returned by the API.
    """
    id: UUID
    group_id: UUID
    subject: str
    days_of_week: list[Weekday]
    start_time: time
    duration_minutes: int
    notes: Optional[str] = None
    location: Optional[str] = None
    meeting_url: Optional[str] = None
    timezone: str
    end_date: Optional[date] = None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def end_time(self) -> time:
        start = datetime.combine(datetime.min.date(), self.start_time)
        return (start + timedelta(minutes=self.duration_minutes)).time()

    @computed_field
    @property
    def day_names(self) -> list[str]:
        return [day.label for day in self.days_of_week]


class OccurrenceRead(BaseModel):
    """
    A single materialized (or standalone) class session.
    `id` is the stable key attendance records point at.
    """
    id: UUID
    series_id: Optional[UUID] = None
    group_id: UUID
    subject: str
    start_datetime: datetime
    duration_minutes: int
    notes: Optional[str] = None
    location: Optional[str] = None
    meeting_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def end_datetime(self) -> datetime:
        return self.start_datetime + timedelta(minutes=self.duration_minutes)

    @computed_field
    @property
    def is_standalone(self) -> bool:
        return self.series_id is None
