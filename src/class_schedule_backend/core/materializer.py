'''
Turns a recurrence series into the concrete occurrences a time window needs.

The materializer only plans: it returns transient ScheduleOccurrences rows and
leaves adding and flushing them to the caller (ScheduleService).
'''
import uuid
from datetime import datetime, timedelta
from typing import Iterable, Optional

from ..database import models as db_models
from ..models.enums import Weekday
from ..common.config import settings
from ..common.exceptions import ScheduleValidationError
from ..common.logger import log
from .weekday_time import next_on_or_after, resolve_timezone, to_utc, UTC


def occurrence_key(series_id: Optional[uuid.UUID], start: datetime) -> tuple[Optional[uuid.UUID], datetime]:
    """Identity of an occurrence inside its series: (series_id, UTC start)."""
    return series_id, to_utc(start)


def materialize(
    series: db_models.RecurrenceSeries,
    reference_now: datetime,
    window_weeks: Optional[int] = None,
    existing_occurrences: Iterable[db_models.ScheduleOccurrences] = ()
) -> list[db_models.ScheduleOccurrences]:
    """
    Plans the occurrences of `series` that should exist between
    `reference_now` and `reference_now + window_weeks` weeks but are not in
    `existing_occurrences`. A series with an `end_date` stops generating
    after that day.

    Weekday and time-of-day are evaluated on the wall clock of the series
    timezone, so a 15:00 class stays at 15:00 local across DST changes. The
    returned rows carry UTC instants and are sorted by start.
    Running it again with its own output in `existing_occurrences` yields [].
    """
    if window_weeks is None:
        window_weeks = settings.MATERIALIZE_WINDOW_WEEKS
    if window_weeks < 1:
        raise ScheduleValidationError("window_weeks", "must be at least 1 week.")

    now_utc = to_utc(reference_now)
    horizon = now_utc + timedelta(weeks=window_weeks)
    tz = resolve_timezone(series.timezone)
    local_now = now_utc.astimezone(tz)

    taken = {
        occurrence_key(occ.series_id, occ.start_datetime)
        for occ in existing_occurrences
        if occ.series_id == series.id
    }

    planned: list[db_models.ScheduleOccurrences] = []
    for day in sorted(Weekday(d) for d in series.days_of_week):
        first = next_on_or_after(day, series.start_time, local_now)

        for week in range(window_weeks):
            local_candidate = datetime.combine(
                first.date() + timedelta(weeks=week), series.start_time, tzinfo=tz
            )
            candidate = local_candidate.astimezone(UTC)

            if candidate < now_utc or candidate > horizon:
                continue
            # The recurrence end date is inclusive, on the series wall clock
            if series.end_date is not None and local_candidate.date() > series.end_date:
                continue

            key = occurrence_key(series.id, candidate)
            if key in taken:
                continue
            taken.add(key)

            planned.append(db_models.ScheduleOccurrences(
                id=uuid.uuid4(),
                series_id=series.id,
                group_id=series.group_id,
                subject=series.subject,
                duration_minutes=series.duration_minutes,
                notes=series.notes,
                location=series.location,
                meeting_url=series.meeting_url,
                start_datetime=candidate,
                created_at=now_utc
            ))

    planned.sort(key=lambda occ: occ.start_datetime)
    log.debug(f"Planned {len(planned)} new occurrence(s) for series {series.id} over {window_weeks} week(s).")
    return planned
