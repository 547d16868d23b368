"""
This file contains custom, application-specific exceptions.

Every schedule error carries the HTTP status the API layer answers with,
see the handler registered in main.py.
"""
from typing import Optional
from uuid import UUID


class ScheduleError(Exception):
    """Base class for every error raised by the schedule engine."""
    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"detail": self.message}


class ScheduleValidationError(ScheduleError):
    """Raised when a rule or occurrence field is malformed. Never retried."""
    status_code = 422

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.reason = message

    def to_dict(self) -> dict:
        return {"detail": self.reason, "field": self.field}


class SeriesNotFoundError(ScheduleError):
    """Raised when a series ID is not found in the database."""
    status_code = 404

    def __init__(self, series_id: UUID):
        super().__init__(f"Recurrence series {series_id} not found.")
        self.series_id = series_id


class OccurrenceNotFoundError(ScheduleError):
    """Raised when an occurrence ID is not found in the database."""
    status_code = 404

    def __init__(self, occurrence_id: UUID):
        super().__init__(f"Occurrence {occurrence_id} not found.")
        self.occurrence_id = occurrence_id


class ConcurrentModificationError(ScheduleError):
    """Raised when two writers raced on the same series. Reload and retry."""
    status_code = 409

    def __init__(self, series_id: UUID, detail: Optional[str] = None):
        super().__init__(detail or f"Recurrence series {series_id} was modified concurrently.")
        self.series_id = series_id


class SeriesHasDependentsError(ScheduleError):
    """Raised when a delete would drop occurrences that other records point at."""
    status_code = 409

    def __init__(self, occurrence_ids: list[UUID]):
        super().__init__(
            f"{len(occurrence_ids)} occurrence(s) have dependent records. Pass force=true to delete anyway."
        )
        self.occurrence_ids = occurrence_ids


class SeriesOwnedOccurrenceError(ScheduleError):
    """Raised when a single series occurrence is deleted outside of its series."""
    status_code = 409

    def __init__(self, occurrence_id: UUID, series_id: UUID):
        super().__init__(
            f"Occurrence {occurrence_id} belongs to series {series_id}; edit or delete the series instead."
        )
        self.occurrence_id = occurrence_id
        self.series_id = series_id


class StorageFailureError(ScheduleError):
    """Raised when the database rejects or cannot run a write. Not retried."""
    status_code = 503
