from typing import Optional
import logging

from .. import config
from ..errors import AlreadyCompletedError, ConflictError, ForbiddenError, NotFoundError
from ..models import Review, ReviewPage, ReviewPatch
from .store import ReviewStore

logger = logging.getLogger(__name__)


class ReviewLifecycleManager:
    """Creates, reads, completes and revokes review invitations.

    Only the owner of a film may invite reviewers to it or revoke their
    invitations, only the invited reviewer may fill in the review, and a
    completed review is never deleted.
    """

    def __init__(self, store: ReviewStore, page_size: int = config.REVIEWS_PAGE_SIZE):
        self.store = store
        self.page_size = page_size

    async def list_reviews(self, film_id: int, page: Optional[int] = None) -> ReviewPage:
        if page is None:
            page = 1
        if page < 1:
            raise ValueError(f"Page numbers start at 1, got {page}")
        offset = self.page_size * (page - 1)
        reviews, total = await self.store.query_reviews_by_film(film_id, offset, self.page_size)
        return ReviewPage(reviews=reviews, total=total, page=page, page_size=self.page_size)

    async def count_reviews(self, film_id: int) -> int:
        return await self.store.count_reviews_by_film(film_id)

    async def get_review(self, film_id: int, reviewer_id: int) -> Review:
        review = await self.store.query_review_by_key(film_id, reviewer_id)
        if review is None:
            raise NotFoundError("The review was not found")
        return review

    async def issue_invitation(
            self,
            reviewer_id: int,
            film_id: int,
            requester_id: int,
            only_if_unassigned: bool = False
    ) -> Review:
        film = await self.store.query_film_owner_and_privacy(film_id)
        if film is None:
            logger.warning(f"Invitation requested for a non-existent movie ID {film_id}")
            raise NotFoundError("The movie was not found")
        if film.owner != requester_id:
            logger.warning(f"User {requester_id} is not the owner of movie ID {film_id}")
            raise ForbiddenError("Only the owner of the movie can invite reviewers")
        if film.private:
            raise NotFoundError("The movie was not found")

        if not await self.store.query_user_exists(reviewer_id):
            logger.warning(f"Invitation requested for a non-existent reviewer ID {reviewer_id}")
            raise ConflictError("The reviewer does not exist")

        try:
            await self.store.insert_review(film_id, reviewer_id, only_if_unassigned=only_if_unassigned)
        except ConflictError:
            logger.warning(f"Reviewer {reviewer_id} was not invited to movie ID {film_id}: already assigned")
            raise

        logger.info(f"Reviewer {reviewer_id} invited to review movie ID {film_id}")
        return Review.issued(reviewer_id, film_id)

    async def delete_invitation(self, film_id: int, reviewer_id: int, requester_id: int) -> None:
        ownership = await self.store.query_review_ownership(film_id, reviewer_id)
        if ownership is None:
            raise NotFoundError("The review was not found")
        if ownership.owner != requester_id:
            logger.warning(f"User {requester_id} tried to revoke a review of movie ID {film_id} they do not own")
            raise ForbiddenError("Only the owner of the movie can revoke an invitation")
        if ownership.completed:
            raise AlreadyCompletedError("The review has already been completed")

        await self.store.delete_review(film_id, reviewer_id)
        logger.info(f"Invitation of reviewer {reviewer_id} for movie ID {film_id} revoked")

    async def update_review(self, patch: ReviewPatch, film_id: int, reviewer_id: int, requester_id: int) -> None:
        review = await self.store.query_review_by_key(film_id, reviewer_id)
        if review is None:
            raise NotFoundError("The review was not found")
        if review.reviewer_id != requester_id:
            logger.warning(f"User {requester_id} tried to update the review of reviewer {reviewer_id}")
            raise ForbiddenError("Only the invited reviewer can update the review")

        await self.store.update_review(film_id, reviewer_id, patch.values())
        logger.info(f"Review of movie ID {film_id} by reviewer {reviewer_id} updated")
