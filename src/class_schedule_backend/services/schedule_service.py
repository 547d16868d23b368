'''
Schedule Service
Creates, edits and deletes weekly class series and keeps their materialized
occurrences in step with the rule.
'''
from contextlib import contextmanager
from datetime import date, datetime, time, timedelta
from typing import Annotated, Iterable, Optional
from uuid import UUID, uuid4

import pydantic
from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.stores import SeriesStore, OccurrenceStore
from ..models import schedule as schedule_models
from ..core.materializer import materialize
from ..core.weekday_time import to_utc, utc_now
from ..common.config import settings
from ..common.exceptions import (
    ScheduleError,
    ScheduleValidationError,
    SeriesNotFoundError,
    OccurrenceNotFoundError,
    ConcurrentModificationError,
    SeriesHasDependentsError,
    SeriesOwnedOccurrenceError,
    StorageFailureError
)
from ..common.logger import log
from .dependents import DependentsChecker


class ScheduleService:
    """
    Series manager for the recurring class schedule.

    Every public method takes an optional `reference_now` (defaults to the
    current UTC time) so callers and tests control what "now" means.
    The service only flushes; the request's session commits or rolls back
    the whole operation (see database.engine.get_db_session).
    """
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        dependents: Annotated[DependentsChecker, Depends(DependentsChecker)]
    ):
        self.db = db
        self.dependents = dependents
        self.series_store = SeriesStore(db)
        self.occurrence_store = OccurrenceStore(db)

    # --- Helpers ---

    @staticmethod
    def _now(reference_now: Optional[datetime]) -> datetime:
        return to_utc(reference_now) if reference_now is not None else utc_now()

    @staticmethod
    def _validate(model_class: type[pydantic.BaseModel], **fields) -> pydantic.BaseModel:
        """Runs a validation model and reports the first failing field."""
        try:
            return model_class(**fields)
        except pydantic.ValidationError as e:
            error = e.errors()[0]
            field = str(error['loc'][0]) if error['loc'] else 'rule'
            log.warning(f"Rejected schedule input on '{field}': {error['msg']}")
            raise ScheduleValidationError(field, error['msg']) from e

    @staticmethod
    def _window(window_weeks: Optional[int]) -> int:
        if window_weeks is None:
            return settings.MATERIALIZE_WINDOW_WEEKS
        if window_weeks < 1:
            raise ScheduleValidationError("window_weeks", "must be at least 1 week.")
        return window_weeks

    @contextmanager
    def _storage_guard(self, action: str, series_id: Optional[UUID] = None):
        """
        Translates persistence errors into schedule errors.
        A stale version means another writer got to the series first.
        """
        try:
            yield
        except ScheduleError:
            raise
        except StaleDataError as e:
            log.warning(f"Concurrent modification detected during '{action}' on series {series_id}: {e}")
            raise ConcurrentModificationError(series_id) from e
        except SQLAlchemyError as e:
            log.error(f"Storage failure during '{action}' (series {series_id}): {e}", exc_info=True)
            raise StorageFailureError(f"Could not {action}.") from e

    async def _get_series_internal(self, series_id: UUID, for_update: bool = False) -> db_models.RecurrenceSeries:
        """
        Internal helper to fetch a single series by ID.
        Raises SeriesNotFoundError if not found.
        """
        series = await self.series_store.get(series_id, for_update=for_update)
        if not series:
            log.warning(f"Tried to fetch non-existing series: {series_id}")
            raise SeriesNotFoundError(series_id)
        return series

    async def _insert_planned(
        self,
        series: db_models.RecurrenceSeries,
        now: datetime,
        window_weeks: int,
        existing: Iterable[db_models.ScheduleOccurrences]
    ) -> list[db_models.ScheduleOccurrences]:
        planned = materialize(series, now, window_weeks, existing)
        if planned:
            self.occurrence_store.add_all(planned)
            await self.db.flush()
        return planned

    # --- Series Reads ---

    async def get_series(self, series_id: UUID) -> db_models.RecurrenceSeries:
        log.info(f"Fetching series {series_id}")
        with self._storage_guard("load the series", series_id):
            return await self._get_series_internal(series_id)

    async def list_series(self, group_id: UUID) -> list[db_models.RecurrenceSeries]:
        log.info(f"Listing series for group {group_id}")
        with self._storage_guard("list series"):
            return await self.series_store.list_for_group(group_id)

    # --- Series Writes ---

    async def create_series(
        self,
        group_id: UUID,
        subject: str,
        days_of_week: Iterable[int],
        start_time: time,
        end_time: time,
        notes: Optional[str] = None,
        timezone: Optional[str] = None,
        location: Optional[str] = None,
        meeting_url: Optional[str] = None,
        end_date: Optional[date] = None,
        reference_now: Optional[datetime] = None,
        window_weeks: Optional[int] = None
    ) -> db_models.RecurrenceSeries:
        """
        Validates the rule, stores the series and materializes its first
        window of occurrences. Nothing is written when validation fails.
        """
        now = self._now(reference_now)
        rule = self._validate(
            schedule_models.SeriesRule,
            subject=subject,
            days_of_week=days_of_week,
            start_time=start_time,
            end_time=end_time,
            notes=notes,
            timezone=timezone,
            location=location,
            meeting_url=meeting_url,
            end_date=end_date
        )
        window = self._window(window_weeks)
        log.info(f"Creating series '{rule.subject}' for group {group_id} on days {rule.sorted_days}.")

        with self._storage_guard("create the series"):
            series = db_models.RecurrenceSeries(
                id=uuid4(),
                group_id=group_id,
                subject=rule.subject,
                days_of_week=rule.sorted_days,
                start_time=rule.start_time,
                duration_minutes=rule.duration_minutes,
                notes=rule.notes,
                timezone=rule.timezone,
                location=rule.location,
                meeting_url=rule.meeting_link,
                end_date=rule.end_date,
                created_at=now,
                updated_at=now
            )
            self.series_store.add(series)
            await self.db.flush()

            created = await self._insert_planned(series, now, window, ())
            log.info(f"Series {series.id} created with {len(created)} occurrence(s).")
            return series

    async def edit_series(
        self,
        series_id: UUID,
        subject: str,
        days_of_week: Iterable[int],
        start_time: time,
        end_time: time,
        notes: Optional[str] = None,
        timezone: Optional[str] = None,
        location: Optional[str] = None,
        meeting_url: Optional[str] = None,
        end_date: Optional[date] = None,
        expected_version: Optional[int] = None,
        reference_now: Optional[datetime] = None,
        window_weeks: Optional[int] = None
    ) -> db_models.RecurrenceSeries:
        """
        Replaces the rule of a series.
        1. Occurrences starting at or after now are purged; past ones stay untouched.
        2. The template fields are updated (version-checked).
        3. The window is materialized again from the new rule.
        """
        now = self._now(reference_now)
        rule = self._validate(
            schedule_models.SeriesRule,
            subject=subject,
            days_of_week=days_of_week,
            start_time=start_time,
            end_time=end_time,
            notes=notes,
            timezone=timezone,
            location=location,
            meeting_url=meeting_url,
            end_date=end_date
        )
        window = self._window(window_weeks)
        log.info(f"Editing series {series_id} at {now.isoformat()}.")

        with self._storage_guard("edit the series", series_id):
            series = await self._get_series_internal(series_id, for_update=True)
            if expected_version is not None and series.version != expected_version:
                log.warning(f"Series {series_id} is at version {series.version}, edit expected {expected_version}.")
                raise ConcurrentModificationError(
                    series_id,
                    f"Recurrence series {series_id} is at version {series.version}, not {expected_version}. Reload and retry."
                )

            purged = await self.occurrence_store.delete_for_series(series_id, since=now)

            series.subject = rule.subject
            series.days_of_week = rule.sorted_days
            series.start_time = rule.start_time
            series.duration_minutes = rule.duration_minutes
            series.notes = rule.notes
            series.timezone = rule.timezone
            series.location = rule.location
            series.meeting_url = rule.meeting_link
            series.end_date = rule.end_date
            series.updated_at = now
            await self.db.flush()

            remaining = await self.occurrence_store.list_for_series(series_id)
            created = await self._insert_planned(series, now, window, remaining)
            log.info(
                f"Series {series_id} edited: {len(purged)} future occurrence(s) purged, "
                f"{len(remaining)} kept, {len(created)} regenerated."
            )
            return series

    async def delete_series(
        self,
        series_id: UUID,
        force: bool = False
    ) -> int:
        """
        Deletes a series and every occurrence it produced, past ones included.
        Refuses when the dependents hook reports records pointing at those
        occurrences, unless `force` is set. Returns the number of deleted occurrences.
        """
        log.info(f"Deleting series {series_id} (force={force}).")

        with self._storage_guard("delete the series", series_id):
            series = await self._get_series_internal(series_id, for_update=True)
            occurrences = await self.occurrence_store.list_for_series(series_id)
            occurrence_ids = [occ.id for occ in occurrences]

            if occurrence_ids and await self.dependents.has_dependents(occurrence_ids):
                if not force:
                    log.warning(f"Refusing to delete series {series_id}: its occurrences have dependents.")
                    raise SeriesHasDependentsError(occurrence_ids)
                log.warning(f"Force-deleting series {series_id} although its occurrences have dependents.")

            deleted = await self.occurrence_store.delete_for_series(series_id)
            await self.series_store.delete(series)
            await self.db.flush()
            log.info(f"Series {series_id} deleted along with {len(deleted)} occurrence(s).")
            return len(deleted)

    async def refresh_series(
        self,
        series_id: UUID,
        reference_now: Optional[datetime] = None,
        window_weeks: Optional[int] = None
    ) -> list[db_models.ScheduleOccurrences]:
        """
        Tops up the rolling window of a series. Insert-only: existing
        occurrences are never touched.
        """
        now = self._now(reference_now)
        window = self._window(window_weeks)

        with self._storage_guard("refresh the series", series_id):
            series = await self._get_series_internal(series_id, for_update=True)
            existing = await self.occurrence_store.list_for_series(series_id, since=now)
            created = await self._insert_planned(series, now, window, existing)
            log.info(f"Series {series_id} refreshed: {len(created)} new occurrence(s).")
            return created

    async def refresh_all_series(
        self,
        reference_now: Optional[datetime] = None,
        window_weeks: Optional[int] = None
    ) -> int:
        """Tops up every series. Returns the total number of new occurrences."""
        now = self._now(reference_now)
        with self._storage_guard("list series"):
            series_ids = await self.series_store.list_ids()

        total = 0
        for series_id in series_ids:
            created = await self.refresh_series(series_id, reference_now=now, window_weeks=window_weeks)
            total += len(created)
        log.info(f"Refreshed {len(series_ids)} series, {total} new occurrence(s).")
        return total

    # --- Occurrences ---

    async def get_occurrence(self, occurrence_id: UUID) -> db_models.ScheduleOccurrences:
        with self._storage_guard("load the occurrence"):
            occurrence = await self.occurrence_store.get(occurrence_id)
        if not occurrence:
            log.warning(f"Tried to fetch non-existing occurrence: {occurrence_id}")
            raise OccurrenceNotFoundError(occurrence_id)
        return occurrence

    async def list_occurrences(
        self,
        group_id: UUID,
        range_start: datetime,
        range_end: datetime
    ) -> list[db_models.ScheduleOccurrences]:
        """Occurrences of a group with range_start <= start < range_end."""
        start, end = to_utc(range_start), to_utc(range_end)
        if end <= start:
            raise ScheduleValidationError("range_end", "must be after range_start.")
        with self._storage_guard("list occurrences"):
            return await self.occurrence_store.list_in_range(start, end, group_id=group_id)

    async def list_upcoming_occurrences(
        self,
        within_hours: Optional[int] = None,
        group_id: Optional[UUID] = None,
        reference_now: Optional[datetime] = None
    ) -> list[db_models.ScheduleOccurrences]:
        """
        Read-only feed for the reminder subsystem: occurrences starting in
        the next `within_hours` hours.
        """
        now = self._now(reference_now)
        hours = settings.REMINDER_LOOKAHEAD_HOURS if within_hours is None else within_hours
        if hours < 1:
            raise ScheduleValidationError("within_hours", "must be at least 1 hour.")
        with self._storage_guard("list upcoming occurrences"):
            return await self.occurrence_store.list_in_range(now, now + timedelta(hours=hours), group_id=group_id)

    async def create_standalone_occurrence(
        self,
        group_id: UUID,
        subject: str,
        start_datetime: datetime,
        duration_minutes: int,
        notes: Optional[str] = None,
        location: Optional[str] = None,
        meeting_url: Optional[str] = None,
        reference_now: Optional[datetime] = None
    ) -> db_models.ScheduleOccurrences:
        """Creates a one-off class session that belongs to no series."""
        now = self._now(reference_now)
        rule = self._validate(
            schedule_models.OccurrenceRule,
            subject=subject,
            start_datetime=start_datetime,
            duration_minutes=duration_minutes,
            notes=notes,
            location=location,
            meeting_url=meeting_url
        )
        log.info(f"Creating standalone occurrence '{rule.subject}' for group {group_id} at {rule.start_datetime.isoformat()}.")

        with self._storage_guard("create the occurrence"):
            occurrence = db_models.ScheduleOccurrences(
                id=uuid4(),
                series_id=None,
                group_id=group_id,
                subject=rule.subject,
                start_datetime=rule.start_datetime,
                duration_minutes=rule.duration_minutes,
                notes=rule.notes,
                location=rule.location,
                meeting_url=rule.meeting_link,
                created_at=now
            )
            self.occurrence_store.add_all([occurrence])
            await self.db.flush()
            return occurrence

    async def delete_occurrence(self, occurrence_id: UUID, force: bool = False) -> None:
        """
        Deletes a standalone occurrence. Series occurrences only go away
        through edit_series or delete_series.
        """
        log.info(f"Deleting occurrence {occurrence_id} (force={force}).")

        with self._storage_guard("delete the occurrence"):
            occurrence = await self.occurrence_store.get(occurrence_id)
            if not occurrence:
                log.warning(f"Tried to delete non-existing occurrence: {occurrence_id}")
                raise OccurrenceNotFoundError(occurrence_id)
            if occurrence.series_id is not None:
                raise SeriesOwnedOccurrenceError(occurrence_id, occurrence.series_id)

            if await self.dependents.has_dependents([occurrence_id]):
                if not force:
                    raise SeriesHasDependentsError([occurrence_id])
                log.warning(f"Force-deleting occurrence {occurrence_id} although it has dependents.")

            await self.occurrence_store.delete(occurrence)
            await self.db.flush()
