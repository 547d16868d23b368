'''
API endpoints for reading class sessions and managing standalone ones.
'''
from datetime import datetime
from typing import Annotated, Any, List
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..models import schedule as schedule_models
from ..services.schedule_service import ScheduleService


class OccurrencesAPI:
    """
    A class to encapsulate endpoints for schedule occurrences.
    """
    def __init__(self):
        self.router = APIRouter(
            tags=["Occurrences"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        # Must precede /occurrences/{occurrence_id}
        self.router.add_api_route(
                "/occurrences/upcoming",
                self.list_upcoming,
                methods=["GET"],
                response_model=List[schedule_models.OccurrenceRead])

        self.router.add_api_route(
                "/groups/{group_id}/occurrences",
                self.list_occurrences,
                methods=["GET"],
                response_model=List[schedule_models.OccurrenceRead])

        self.router.add_api_route(
                "/groups/{group_id}/occurrences",
                self.create_occurrence,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=schedule_models.OccurrenceRead)

        self.router.add_api_route(
                "/occurrences/{occurrence_id}",
                self.get_occurrence,
                methods=["GET"],
                response_model=schedule_models.OccurrenceRead)

        self.router.add_api_route(
                "/occurrences/{occurrence_id}",
                self.delete_occurrence,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

    async def list_occurrences(
        self,
        group_id: UUID,
        range_start: datetime,
        range_end: datetime,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> List[Any]:
        """
        Retrieves the sessions of a group starting in [range_start, range_end).
        """
        occurrences = await schedule_service.list_occurrences(group_id, range_start, range_end)
        return [schedule_models.OccurrenceRead.model_validate(o) for o in occurrences]

    async def list_upcoming(
        self,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        within_hours: Annotated[int | None, Query(ge=1, description="Look-ahead in hours")] = None,
        group_id: Annotated[UUID | None, Query(description="Optional filter for Group ID")] = None
    ) -> List[Any]:
        """
        Sessions starting soon, for the reminder subsystem.
        """
        occurrences = await schedule_service.list_upcoming_occurrences(within_hours=within_hours, group_id=group_id)
        return [schedule_models.OccurrenceRead.model_validate(o) for o in occurrences]

    async def get_occurrence(
        self,
        occurrence_id: UUID,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> Any:
        """
        Retrieves a single session by its ID.
        """
        occurrence = await schedule_service.get_occurrence(occurrence_id)
        return schedule_models.OccurrenceRead.model_validate(occurrence)

    async def create_occurrence(
        self,
        group_id: UUID,
        occurrence_data: schedule_models.OccurrencePayload,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)]
    ) -> Any:
        """
        Creates a one-off session that belongs to no weekly class.
        """
        occurrence = await schedule_service.create_standalone_occurrence(
            group_id=group_id,
            **occurrence_data.model_dump()
        )
        return schedule_models.OccurrenceRead.model_validate(occurrence)

    async def delete_occurrence(
        self,
        occurrence_id: UUID,
        schedule_service: Annotated[ScheduleService, Depends(ScheduleService)],
        force: Annotated[bool, Query(description="Delete even if the session has dependent records")] = False
    ):
        """
        Deletes a standalone session.
        """
        await schedule_service.delete_occurrence(occurrence_id, force=force)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

# Instantiate the class and export its router
occurrences_api = OccurrencesAPI()
router = occurrences_api.router
