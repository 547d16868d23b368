'''
Dependents hook.
Attendance (and anything else keyed on occurrence IDs) lives outside this
service, so deletes ask this hook instead of checking foreign keys.
'''
from uuid import UUID

from ..common.logger import log


class DependentsChecker:
    """
    Default implementation: nothing depends on any occurrence.
    The attendance subsystem overrides this dependency
    (app.dependency_overrides[DependentsChecker]) with a real lookup.
    """
    async def has_dependents(self, occurrence_ids: list[UUID]) -> bool:
        log.info(f"No dependents registry configured; {len(occurrence_ids)} occurrence(s) treated as free.")
        return False
