from typing import List, Optional

from sqlmodel import SQLModel

from ..errors import AlreadyAssignedError

ALREADY_ASSIGNED = AlreadyAssignedError.code


class AssignmentOutcome(SQLModel):
    film_id: int
    reviewer_id: Optional[int] = None
    error: Optional[str] = None
    detail: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class AssignmentReport(SQLModel):
    """Outcome of one balanced assignment run.

    ``skipped`` holds films another writer assigned while the run was in
    progress, ``failed`` the films left without a reviewer.
    """

    owner: int
    assigned: List[AssignmentOutcome] = []
    skipped: List[AssignmentOutcome] = []
    failed: List[AssignmentOutcome] = []

    @classmethod
    def from_outcomes(cls, owner: int, outcomes: List[AssignmentOutcome]) -> "AssignmentReport":
        return cls(
            owner=owner,
            assigned=[outcome for outcome in outcomes if outcome.ok],
            skipped=[outcome for outcome in outcomes if outcome.error == ALREADY_ASSIGNED],
            failed=[outcome for outcome in outcomes if not outcome.ok and outcome.error != ALREADY_ASSIGNED],
        )
