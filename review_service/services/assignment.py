from operator import itemgetter
from typing import Optional
import logging

from .. import config
from ..errors import AlreadyAssignedError, ConflictError, ReviewServiceError
from ..models import AssignmentOutcome, AssignmentReport
from .lifecycle import ReviewLifecycleManager
from .store import ReviewStore

logger = logging.getLogger(__name__)


class BalancedAssignmentEngine:
    """Hands every unassigned film of an owner to the least loaded reviewer.

    Films are assigned one after another, so each pick sees the invitations
    issued for the previous films of the same run. The insert locks the film
    and is conditional on it still being unassigned, so two concurrent runs
    never invite two reviewers to the same film; the later one reports the
    film as skipped. Two concurrent runs may still both pick the same
    lightest reviewer for different films.
    """

    def __init__(
            self,
            lifecycle: ReviewLifecycleManager,
            store: ReviewStore,
            max_attempts: int = config.ASSIGNMENT_MAX_ATTEMPTS
    ):
        self.lifecycle = lifecycle
        self.store = store
        self.max_attempts = max_attempts

    async def pick_reviewer(self, owner: int) -> Optional[int]:
        loads = await self.store.query_reviewer_load_counts(exclude=owner)
        if not loads:
            return None
        reviewer_id, _ = min(loads, key=itemgetter(1))
        return reviewer_id

    async def assign_balanced(self, owner: int) -> AssignmentReport:
        film_ids = await self.store.query_unassigned_films(owner)
        logger.info(f"Found {len(film_ids)} unassigned movies of user {owner}")

        outcomes = []
        for film_id in film_ids:
            outcomes.append(await self.assign_film(film_id, owner))

        report = AssignmentReport.from_outcomes(owner, outcomes)
        logger.info(
            f"Assigned {len(report.assigned)} movies of user {owner}, "
            f"{len(report.skipped)} skipped, {len(report.failed)} failed"
        )
        return report

    async def assign_film(self, film_id: int, owner: int) -> AssignmentOutcome:
        try:
            reviewer_id = await self._invite_lightest(film_id, owner)
        except AlreadyAssignedError as e:
            logger.info(f"Movie ID {film_id} was assigned concurrently, skipping")
            return AssignmentOutcome(film_id=film_id, error=e.code, detail=e.detail)
        except ReviewServiceError as e:
            logger.error(f"Could not assign movie ID {film_id}: {e.detail}")
            return AssignmentOutcome(film_id=film_id, error=e.code, detail=e.detail)
        return AssignmentOutcome(film_id=film_id, reviewer_id=reviewer_id)

    async def _invite_lightest(self, film_id: int, owner: int) -> int:
        for attempt in range(1, self.max_attempts + 1):
            reviewer_id = await self.pick_reviewer(owner)
            if reviewer_id is None:
                raise ConflictError("No reviewer is available")
            try:
                await self.lifecycle.issue_invitation(reviewer_id, film_id, owner, only_if_unassigned=True)
                return reviewer_id
            except AlreadyAssignedError:
                raise
            except ConflictError as e:
                if attempt == self.max_attempts:
                    raise
                logger.warning(f"Attempt {attempt}/{self.max_attempts} to assign movie ID {film_id} failed: {e}")
        raise ConflictError("No reviewer is available")
