'''
API endpoints for managing weekly class series.
'''
from typing import Annotated, Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..models import schedule as schedule_models
from ..services.schedule_service import ScheduleService


class SeriesAPI:
    """
    A class to encapsulate CRUD endpoints for recurrence series.
    """
    def __init__(self):
        self.router = APIRouter(
            tags=["Series"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/groups/{group_id}/series",
                self.list_series,
                methods=["GET"],
                response_model=List[schedule_models.SeriesRead])

        self.router.add_api_route(
                "/groups/{group_id}/series",
                self.create_series,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=schedule_models.SeriesRead)

        self.router.add_api_route(
                "/series/{series_id}",
                self.get_series,
                methods=["GET"],
                response_model=schedule_models.SeriesRead)

        self.router.add_api_route(
                "/series/{series_id}",
                self.edit_series,
                methods=["PUT"],
                response_model=schedule_models.SeriesRead)

        self.router.add_api_route(
                "/series/{series_id}",
                self.delete_series,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        self.router.add_api_route(
                "/series/{series_id}/materialize",
                self.refresh_series,
                methods=["POST"],
                response_model=List[schedule_models.OccurrenceRead])

    async def list_series(
        self,
        group_id: UUID,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> List[Any]:
        """
        Retrieves all weekly classes of a group, newest first.
        """
        series = await schedule_service.list_series(group_id)
        return [schedule_models.SeriesRead.model_validate(s) for s in series]

    async def create_series(
        self,
        group_id: UUID,
        series_data: schedule_models.SeriesPayload,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> Any:
        """
        Creates a weekly class and materializes its upcoming sessions.
        """
        series = await schedule_service.create_series(
            group_id=group_id,
            **series_data.model_dump()
        )
        return schedule_models.SeriesRead.model_validate(series)

    async def get_series(
        self,
        series_id: UUID,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> Any:
        """
        Retrieves a single weekly class by its ID.
        """
        series = await schedule_service.get_series(series_id)
        return schedule_models.SeriesRead.model_validate(series)

    async def edit_series(
        self,
        series_id: UUID,
        series_data: schedule_models.SeriesEditPayload,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> Any:
        """
        Replaces the rule of a weekly class. Past sessions are kept,
        upcoming ones are regenerated.
        """
        series = await schedule_service.edit_series(
            series_id=series_id,
            **series_data.model_dump()
        )
        return schedule_models.SeriesRead.model_validate(series)

    async def delete_series(
        self,
        series_id: UUID,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        force: Annotated[bool, Query(description="Delete even if sessions have dependent records")] = False
    ):
        """
        Deletes a weekly class and all of its sessions.
        """
        await schedule_service.delete_series(series_id, force=force)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def refresh_series(
        self,
        series_id: UUID,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        window_weeks: Annotated[int | None, Query(ge=1, description="Weeks ahead to keep materialized")] = None
    ) -> List[Any]:
        """
        Tops up the upcoming sessions of a weekly class. Returns only the new ones.
        """
        created = await schedule_service.refresh_series(series_id, window_weeks=window_weeks)
        return [schedule_models.OccurrenceRead.model_validate(o) for o in created]

# Instantiate the class and export its router
series_api = SeriesAPI()
router = series_api.router
