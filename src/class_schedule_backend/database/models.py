from typing import Optional

from sqlalchemy import CheckConstraint, Date, ForeignKeyConstraint, Index, Integer, JSON, PrimaryKeyConstraint, String, Text, Time, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import datetime
import uuid

from .types import UTCDateTime

class Base(DeclarativeBase):
    pass


class RecurrenceSeries(Base):
    """
    A weekly recurrence rule. Pure template: it has no calendar meaning of
    its own, only the ScheduleOccurrences materialized from it do.
    """
    __tablename__ = 'recurrence_series'
    __table_args__ = (
        CheckConstraint('duration_minutes >= 15 AND duration_minutes <= 480', name='recurrence_series_duration_check'),
        PrimaryKeyConstraint('id', name='recurrence_series_pkey'),
        Index('idx_recurrence_series_group', 'group_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject: Mapped[str] = mapped_column(String(255))
    # ISO weekdays, 1=Monday .. 7=Sunday, sorted and unique
    days_of_week: Mapped[list[int]] = mapped_column(JSON().with_variant(JSONB, 'postgresql'))
    start_time: Mapped[datetime.time] = mapped_column(Time)
    duration_minutes: Mapped[int] = mapped_column(Integer)
    timezone: Mapped[str] = mapped_column(Text, default='UTC')
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime)
    updated_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    meeting_url: Mapped[Optional[str]] = mapped_column(Text)
    # Last day (series timezone) that may still get an occurrence
    end_date: Mapped[Optional[datetime.date]] = mapped_column(Date)

    # Every UPDATE/DELETE checks and bumps the version (optimistic locking)
    __mapper_args__ = {'version_id_col': version}


class ScheduleOccurrences(Base):
    """
    One concrete class session. Never mutated after insert. Subject,
    duration, notes, location and meeting link are snapshots of the series
    taken at generation time.
    """
    __tablename__ = 'schedule_occurrences'
    __table_args__ = (
        ForeignKeyConstraint(['series_id'], ['recurrence_series.id'], ondelete='CASCADE', name='schedule_occurrences_series_id_fkey'),
        PrimaryKeyConstraint('id', name='schedule_occurrences_pkey'),
        UniqueConstraint('series_id', 'start_datetime', name='schedule_occurrences_series_id_start_datetime_key'),
        Index('idx_schedule_occurrences_group_start', 'group_id', 'start_datetime')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    group_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    subject: Mapped[str] = mapped_column(String(255))
    start_datetime: Mapped[datetime.datetime] = mapped_column(UTCDateTime)
    duration_minutes: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime.datetime] = mapped_column(UTCDateTime)
    series_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    location: Mapped[Optional[str]] = mapped_column(String(255))
    meeting_url: Mapped[Optional[str]] = mapped_column(Text)

    @property
    def end_datetime(self) -> datetime.datetime:
        return self.start_datetime + datetime.timedelta(minutes=self.duration_minutes)
