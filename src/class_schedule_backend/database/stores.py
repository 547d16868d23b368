'''
Series and occurrence stores.
Thin query layer over an AsyncSession; the ScheduleService owns the
transaction and decides when to flush.
'''
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from . import models as db_models


class SeriesStore:
    """
    Reads and writes recurrence_series rows.
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, series_id: UUID, for_update: bool = False) -> Optional[db_models.RecurrenceSeries]:
        """
        Fetches one series. With for_update the row stays locked until the
        transaction ends (ignored by SQLite).
        """
        stmt = select(db_models.RecurrenceSeries).filter(db_models.RecurrenceSeries.id == series_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalars().first()

    async def list_for_group(self, group_id: UUID) -> list[db_models.RecurrenceSeries]:
        stmt = select(db_models.RecurrenceSeries).filter(
            db_models.RecurrenceSeries.group_id == group_id
        ).order_by(db_models.RecurrenceSeries.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_ids(self) -> list[UUID]:
        result = await self.db.execute(select(db_models.RecurrenceSeries.id))
        return list(result.scalars().all())

    def add(self, series: db_models.RecurrenceSeries):
        self.db.add(series)

    async def delete(self, series: db_models.RecurrenceSeries):
        await self.db.delete(series)


class OccurrenceStore:
    """
    Reads and writes schedule_occurrences rows.
    """
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, occurrence_id: UUID) -> Optional[db_models.ScheduleOccurrences]:
        return await self.db.get(db_models.ScheduleOccurrences, occurrence_id)

    async def list_for_series(
        self,
        series_id: UUID,
        since: Optional[datetime] = None
    ) -> list[db_models.ScheduleOccurrences]:
        """All occurrences of a series, optionally only those starting at or after `since`."""
        stmt = select(db_models.ScheduleOccurrences).filter(
            db_models.ScheduleOccurrences.series_id == series_id
        )
        if since is not None:
            stmt = stmt.filter(db_models.ScheduleOccurrences.start_datetime >= since)
        stmt = stmt.order_by(db_models.ScheduleOccurrences.start_datetime)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_in_range(
        self,
        range_start: datetime,
        range_end: datetime,
        group_id: Optional[UUID] = None
    ) -> list[db_models.ScheduleOccurrences]:
        """Occurrences with range_start <= start_datetime < range_end, ordered by start."""
        stmt = select(db_models.ScheduleOccurrences).filter(
            db_models.ScheduleOccurrences.start_datetime >= range_start,
            db_models.ScheduleOccurrences.start_datetime < range_end
        )
        if group_id is not None:
            stmt = stmt.filter(db_models.ScheduleOccurrences.group_id == group_id)
        stmt = stmt.order_by(db_models.ScheduleOccurrences.start_datetime)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def add_all(self, occurrences: Iterable[db_models.ScheduleOccurrences]):
        self.db.add_all(list(occurrences))

    async def delete_for_series(self, series_id: UUID, since: Optional[datetime] = None) -> list[UUID]:
        """
        Deletes the occurrences of a series, or only those starting at or
        after `since`. Returns the IDs of the deleted rows.
        """
        stmt = select(db_models.ScheduleOccurrences.id).filter(
            db_models.ScheduleOccurrences.series_id == series_id
        )
        if since is not None:
            stmt = stmt.filter(db_models.ScheduleOccurrences.start_datetime >= since)
        result = await self.db.execute(stmt)
        occurrence_ids = list(result.scalars().all())
        if not occurrence_ids:
            return []

        await self.db.execute(
            delete(db_models.ScheduleOccurrences)
            .where(db_models.ScheduleOccurrences.id.in_(occurrence_ids))
            .execution_options(synchronize_session="evaluate")
        )
        return occurrence_ids

    async def delete(self, occurrence: db_models.ScheduleOccurrences):
        await self.db.delete(occurrence)
