from .films import Film
from .users import User
from .reviews import Review, ReviewInvitation, ReviewPage, ReviewPatch, ReviewUpdate, UNCHANGED
from .assignments import AssignmentOutcome, AssignmentReport

__all__ = [
    "Film",
    "User",
    "Review",
    "ReviewInvitation",
    "ReviewPage",
    "ReviewPatch",
    "ReviewUpdate",
    "UNCHANGED",
    "AssignmentOutcome",
    "AssignmentReport",
]
